"""Locate external command-line tools (``gh``) once per process."""

from __future__ import annotations

import asyncio
import os
import shutil
import subprocess
from collections.abc import Iterator
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path

import structlog

log = structlog.get_logger("repopolisher.engine")

DEFAULT_KNOWN_DIRS: tuple[str, ...] = ("/opt/homebrew/bin", "/usr/local/bin")

_PROBE_TIMEOUT = 10


@dataclass(frozen=True)
class ResolvedExecutable:
    path: str
    version: str

    @property
    def directory(self) -> str:
        return str(Path(self.path).parent)


@dataclass(frozen=True)
class ExecutableNotFound:
    name: str


ResolveResult = ResolvedExecutable | ExecutableNotFound


def _probe(candidate: str) -> str | None:
    """Run ``<candidate> --version``; return its first output line on success."""
    try:
        result = subprocess.run(
            [candidate, "--version"],
            capture_output=True,
            text=True,
            timeout=_PROBE_TIMEOUT,
        )
    except (FileNotFoundError, PermissionError, subprocess.TimeoutExpired, OSError):
        return None
    if result.returncode != 0:
        return None
    lines = result.stdout.strip().splitlines()
    return lines[0] if lines else ""


def _login_shell_lookup(name: str) -> str | None:
    shell = os.environ.get("SHELL") or "/bin/sh"
    try:
        result = subprocess.run(
            [shell, "-lc", f"command -v {name}"],
            capture_output=True,
            text=True,
            timeout=_PROBE_TIMEOUT,
        )
    except (FileNotFoundError, subprocess.TimeoutExpired, OSError):
        return None
    if result.returncode != 0:
        return None
    path = result.stdout.strip()
    return path if path and os.path.exists(path) else None


class ExecutableResolver:
    """Ordered lookup: env override → known install dirs → PATH → login shell.

    Every candidate must answer ``--version`` successfully. The outcome is
    computed on first use and cached on the instance. Lookup and probes are
    blocking subprocess calls.
    """

    def __init__(
        self,
        name: str,
        env_var: str | None = None,
        known_dirs: tuple[str, ...] = DEFAULT_KNOWN_DIRS,
    ) -> None:
        self.name = name
        self.env_var = env_var
        self.known_dirs = known_dirs
        self._result: ResolveResult | None = None

    def candidates(self) -> Iterator[str]:
        """Yield distinct candidate paths; later strategies run only when pulled."""
        seen: set[str] = set()

        def fresh(path: str) -> bool:
            if path in seen:
                return False
            seen.add(path)
            return True

        if self.env_var:
            override = os.environ.get(self.env_var)
            if override and os.path.exists(override) and fresh(override):
                yield override

        for directory in self.known_dirs:
            path = os.path.join(directory, self.name)
            if os.path.exists(path) and fresh(path):
                yield path

        which = shutil.which(self.name)
        if which and fresh(which):
            yield which

        shell_path = _login_shell_lookup(self.name)
        if shell_path and fresh(shell_path):
            yield shell_path

    def resolve(self) -> ResolveResult:
        """Blocking lookup; use :meth:`aresolve` from async code."""
        if self._result is not None:
            return self._result

        result: ResolveResult = ExecutableNotFound(self.name)
        for candidate in self.candidates():
            version = _probe(candidate)
            if version is not None:
                result = ResolvedExecutable(path=candidate, version=version)
                break

        if isinstance(result, ResolvedExecutable):
            log.info("resolver.found", tool=self.name, path=result.path, version=result.version)
        else:
            log.warning("resolver.not_found", tool=self.name)
        self._result = result
        return result

    async def aresolve(self) -> ResolveResult:
        """Run :meth:`resolve` in a worker thread so probes never block the loop."""
        if self._result is not None:
            return self._result
        return await asyncio.to_thread(self.resolve)


@lru_cache(maxsize=1)
def get_gh_resolver() -> ExecutableResolver:
    """Process-wide resolver for the GitHub CLI (``GH_CLI_PATH`` override)."""
    return ExecutableResolver("gh", env_var="GH_CLI_PATH")


def build_tool_env(extra_dirs: list[str] | tuple[str, ...] = ()) -> dict[str, str]:
    """Copy of ``os.environ`` with *extra_dirs* and the known dirs appended to PATH."""
    env = dict(os.environ)
    existing = [p for p in env.get("PATH", "").split(os.pathsep) if p]
    merged = list(dict.fromkeys([*existing, *extra_dirs, *DEFAULT_KNOWN_DIRS]))
    env["PATH"] = os.pathsep.join(merged)
    return env
