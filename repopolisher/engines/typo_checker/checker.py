"""TypoChecker — run the ``typos`` CLI and turn its JSON lines into issues."""

from __future__ import annotations

import asyncio
import json
import os
import re
from pathlib import Path

import structlog

from repopolisher.core.database import new_id
from repopolisher.models.issue import Issue
from repopolisher.services import CheckerFailedError, ToolNotInstalledError

log = structlog.get_logger("repopolisher.engine")

DEFAULT_EXCLUDES: tuple[str, ...] = (
    "node_modules",
    ".git",
    "dist",
    "build",
    "target",
    "*.min.js",
    "*.lock",
    "package-lock.json",
    "pnpm-lock.yaml",
    "yarn.lock",
)

TYPO_CONFIDENCE = 0.95

# typos exits 2 when it found typos
_SUCCESS_CODES = {0, 2}

_VERSION_RE = re.compile(r"typos(?:-cli)?\s+([\d.]+)")

_INSTALL_HINT = "typos-cli is not installed. Please install it: cargo install typos-cli"


def _relativize(path: str, base_path: str) -> str:
    base = base_path.rstrip("/\\")
    if path.startswith(base) and len(path) > len(base) and path[len(base)] in "/\\":
        return path[len(base) + 1 :]
    return path


def parse_typos_output(
    output: str,
    task_id: str,
    project_id: str,
    base_path: str,
) -> list[Issue]:
    """Map ``typos --format json`` output onto open :class:`Issue` rows.

    Only ``"type": "typo"`` records are kept. Lines that are not valid JSON
    objects, or lack the typo text, are skipped.
    """
    issues: list[Issue] = []
    for raw in output.splitlines():
        raw = raw.strip()
        if not raw:
            continue
        try:
            record = json.loads(raw)
        except json.JSONDecodeError:
            log.debug("typos.malformed_line", line=raw[:200])
            continue
        if not isinstance(record, dict) or record.get("type") != "typo":
            continue
        typo = record.get("typo")
        path = record.get("path")
        if not typo or not path:
            continue

        corrections = record.get("corrections") or []
        suggestion = corrections[0] if corrections else None
        byte_offset = record.get("byte_offset")
        context = record.get("context")
        context_line = context.get("line") if isinstance(context, dict) else None

        issues.append(
            Issue(
                id=new_id(),
                task_id=task_id,
                project_id=project_id,
                type="typo",
                file_path=_relativize(str(path), base_path),
                line=record.get("line_num") or 1,
                column=byte_offset + 1 if isinstance(byte_offset, int) else 1,
                message=f'"{typo}" should be "{suggestion or "unknown"}"',
                severity="warning",
                original=typo,
                suggestion=suggestion,
                context=context_line or "",
                confidence=TYPO_CONFIDENCE,
                status="open",
            )
        )
    return issues


class TypoChecker:
    """Thin async wrapper around the ``typos`` binary."""

    def __init__(
        self,
        binary_path: str | None = None,
        config_path: str | None = None,
        exclude: list[str] | None = None,
    ) -> None:
        self.binary_path = (
            binary_path or os.environ.get("REPOPOLISHER_TYPOS_PATH") or self._default_binary()
        )
        self.config_path = config_path or os.environ.get("REPOPOLISHER_TYPOS_CONFIG")
        self.exclude = list(exclude) if exclude is not None else list(DEFAULT_EXCLUDES)

    @staticmethod
    def _default_binary() -> str:
        return "typos.exe" if os.name == "nt" else "typos"

    def build_args(self, project_path: str) -> list[str]:
        args = ["--format", "json"]
        for pattern in self.exclude:
            args.extend(["--exclude", pattern])
        if self.config_path and Path(self.config_path).exists():
            args.extend(["--config", self.config_path])
        args.append(project_path)
        return args

    async def check(self, project_path: str, task_id: str, project_id: str) -> list[Issue]:
        """Run typos over *project_path*.

        Raises :class:`ToolNotInstalledError` when the binary is missing and
        :class:`CheckerFailedError` for any exit code other than 0 or 2.
        """
        returncode, stdout, stderr = await self._run(self.build_args(project_path))

        if returncode not in _SUCCESS_CODES:
            if "not found" in stderr or "ENOENT" in stderr:
                raise ToolNotInstalledError(_INSTALL_HINT)
            raise CheckerFailedError(returncode, stderr)

        issues = parse_typos_output(stdout, task_id, project_id, project_path)
        log.info(
            "typos.checked",
            path=project_path,
            exit_code=returncode,
            issues=len(issues),
        )
        return issues

    async def is_available(self) -> bool:
        try:
            returncode, _, _ = await self._run(["--version"])
        except ToolNotInstalledError:
            return False
        return returncode == 0

    async def get_version(self) -> str | None:
        try:
            returncode, stdout, _ = await self._run(["--version"])
        except ToolNotInstalledError:
            return None
        if returncode != 0:
            return None
        match = _VERSION_RE.search(stdout)
        return match.group(1) if match else stdout.strip()

    async def _run(self, args: list[str]) -> tuple[int | None, str, str]:
        try:
            proc = await asyncio.create_subprocess_exec(
                self.binary_path,
                *args,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except FileNotFoundError as exc:
            raise ToolNotInstalledError(_INSTALL_HINT) from exc
        stdout, stderr = await proc.communicate()
        return (
            proc.returncode,
            stdout.decode("utf-8", errors="replace"),
            stderr.decode("utf-8", errors="replace"),
        )
