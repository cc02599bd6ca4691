"""Apply original → suggestion replacements from issues to files on disk."""

from __future__ import annotations

import os
import re
import shutil
import tempfile
from collections import defaultdict
from collections.abc import Sequence
from dataclasses import dataclass, field
from pathlib import Path

import structlog

from repopolisher.models.issue import Issue
from repopolisher.services import NoFixableIssuesError, NoFixesAppliedError

log = structlog.get_logger("repopolisher.engine")

_NEWLINE_RE = re.compile(r"\r\n|\n")
_SPLIT_RE = re.compile(r"\r?\n")


@dataclass
class FileChange:
    path: str
    additions: int
    deletions: int

    def to_dict(self) -> dict:
        return {"path": self.path, "additions": self.additions, "deletions": self.deletions}


@dataclass
class FixResult:
    applied_issue_ids: set[str] = field(default_factory=set)
    warnings: list[str] = field(default_factory=list)
    files: list[FileChange] = field(default_factory=list)


def detect_newline(content: str) -> str:
    match = _NEWLINE_RE.search(content)
    return match.group(0) if match else "\n"


def byte_hint_to_index(line: str, column: int) -> int:
    """Convert a 1-based byte column into a character index within *line*."""
    offset = max(0, column - 1)
    encoded = line.encode("utf-8")
    if offset >= len(encoded):
        return len(line)
    return len(encoded[:offset].decode("utf-8", errors="ignore"))


def _find_context_line(lines: list[str], context: str | None) -> int:
    normalized = (context or "").strip()
    if not normalized:
        return -1
    for index, line in enumerate(lines):
        if line.strip() == normalized:
            return index
    return -1


def _resolve_inside(root: Path, relative_path: str) -> Path | None:
    full = (root / relative_path).resolve()
    try:
        full.relative_to(root)
    except ValueError:
        return None
    return full


def _write_atomic(path: Path, content: str) -> None:
    fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
    try:
        with os.fdopen(fd, "wb") as handle:
            handle.write(content.encode("utf-8"))
        shutil.copymode(path, tmp_name)
        os.replace(tmp_name, path)
    except BaseException:
        if os.path.exists(tmp_name):
            os.unlink(tmp_name)
        raise


def _apply_to_lines(
    lines: list[str], issue: Issue, warnings: list[str]
) -> int | None:
    """Splice one fix into *lines*. Returns the modified line index or None."""
    index = issue.line - 1
    target = issue.original
    replacement = issue.suggestion

    if index < 0 or index >= len(lines) or target not in lines[index]:
        relocated = _find_context_line(lines, issue.context)
        if relocated != -1:
            index = relocated

    if index < 0 or index >= len(lines):
        warnings.append(f"Cannot apply fix (line missing): {issue.file_path}:{issue.line}")
        return None

    content = lines[index]
    match = content.find(target, byte_hint_to_index(content, issue.column))
    if match == -1:
        match = content.find(target)

    if match == -1:
        relocated = _find_context_line(lines, issue.context)
        if relocated != -1:
            index = relocated
            content = lines[index]
            match = content.find(target)

    if match == -1:
        warnings.append(f'Cannot find "{target}" in {issue.file_path}:{issue.line}')
        return None

    lines[index] = content[:match] + replacement + content[match + len(target) :]
    return index


def apply_fixes(repo_path: str | Path, issues: Sequence[Issue]) -> FixResult:
    """Apply every fixable issue in *issues* to the tree at *repo_path*.

    Within a file, fixes run in descending (line, column) order so a splice
    never moves the offset of a match that has not been processed yet.
    Per-issue problems become warnings. Raises :class:`NoFixableIssuesError`
    when nothing in the batch is fixable and :class:`NoFixesAppliedError`
    when no fix landed.
    """
    if not issues:
        raise NoFixableIssuesError("No issues selected for this draft.")

    by_file: dict[str, list[Issue]] = defaultdict(list)
    for issue in issues:
        if not issue.file_path or not issue.original or not issue.suggestion:
            continue
        by_file[issue.file_path].append(issue)

    if not by_file:
        raise NoFixableIssuesError("Selected issues do not contain auto-fix suggestions.")

    root = Path(repo_path).resolve()
    result = FixResult()

    for relative_path, file_issues in by_file.items():
        full_path = _resolve_inside(root, relative_path)
        if full_path is None:
            result.warnings.append(f"Path escapes repository: {relative_path}")
            continue
        if not full_path.is_file():
            result.warnings.append(f"File not found: {relative_path}")
            continue

        try:
            text = full_path.read_bytes().decode("utf-8")
        except UnicodeDecodeError:
            result.warnings.append(f"Cannot decode file as UTF-8: {relative_path}")
            continue

        newline = detect_newline(text)
        lines = _SPLIT_RE.split(text)
        changed: set[int] = set()

        ordered = sorted(file_issues, key=lambda i: (i.line, i.column), reverse=True)
        for issue in ordered:
            index = _apply_to_lines(lines, issue, result.warnings)
            if index is None:
                continue
            changed.add(index)
            result.applied_issue_ids.add(issue.id)

        if changed:
            _write_atomic(full_path, newline.join(lines))
            result.files.append(
                FileChange(path=relative_path, additions=len(changed), deletions=len(changed))
            )

    if not result.applied_issue_ids:
        reason = f" {result.warnings[0]}" if result.warnings else ""
        raise NoFixesAppliedError(
            f"No fixes were applied; working tree is already clean.{reason}",
            warnings=result.warnings,
        )

    log.info(
        "fixes.applied",
        repo=str(root),
        applied=len(result.applied_issue_ids),
        files=len(result.files),
        warnings=len(result.warnings),
    )
    return result
