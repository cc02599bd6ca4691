"""Git subprocess helpers for the workspace engine."""

from __future__ import annotations

import asyncio
import os
from pathlib import Path


class GitCommandError(RuntimeError):
    """A git command exited non-zero, timed out, or could not be spawned."""

    def __init__(self, args: list[str], returncode: int | None, stderr: str) -> None:
        self.args_list = args
        self.returncode = returncode
        self.stderr = stderr
        super().__init__(f"git command failed (exit {returncode}): {stderr.strip()}")


def git_timeout() -> float | None:
    """Optional per-command timeout in seconds (``REPOPOLISHER_GIT_TIMEOUT``)."""
    raw = os.environ.get("REPOPOLISHER_GIT_TIMEOUT")
    return float(raw) if raw else None


async def run_git(args: list[str], cwd: Path | None = None) -> str:
    """Run ``git <args>``, returning stdout. Raises GitCommandError on failure."""
    cmd = ["git", *args]
    try:
        proc = await asyncio.create_subprocess_exec(
            *cmd,
            cwd=str(cwd) if cwd is not None else None,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
    except FileNotFoundError as exc:
        raise GitCommandError(cmd, None, f"git executable not found: {exc}") from exc

    try:
        stdout, stderr = await asyncio.wait_for(proc.communicate(), timeout=git_timeout())
    except asyncio.TimeoutError as exc:
        proc.kill()
        await proc.wait()
        raise GitCommandError(cmd, None, "timed out") from exc

    if proc.returncode != 0:
        raise GitCommandError(cmd, proc.returncode, stderr.decode(errors="replace"))
    return stdout.decode(errors="replace")


async def shallow_clone(repo_url: str, target: Path) -> Path:
    """Clone *repo_url* into *target* with depth 1."""
    await run_git(["clone", "--depth", "1", "--", repo_url, str(target)])
    return target


async def read_origin_url(path: Path) -> str | None:
    """Return the fetch URL of the ``origin`` remote, or None."""
    try:
        url = await run_git(["config", "--get", "remote.origin.url"], cwd=path)
    except GitCommandError:
        return None
    return url.strip() or None
