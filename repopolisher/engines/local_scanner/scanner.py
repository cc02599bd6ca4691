"""Inspect a directory on disk and collect what is needed to register it."""

from __future__ import annotations

import asyncio
import json
import re
from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path

import structlog

from repopolisher.engines.workspace.repo import read_origin_url

log = structlog.get_logger("repopolisher.engine")

LANGUAGE_EXTENSIONS: dict[str, str] = {
    ".ts": "TypeScript",
    ".tsx": "TypeScript",
    ".js": "JavaScript",
    ".jsx": "JavaScript",
    ".py": "Python",
    ".rs": "Rust",
    ".go": "Go",
    ".java": "Java",
    ".rb": "Ruby",
    ".php": "PHP",
    ".swift": "Swift",
    ".kt": "Kotlin",
    ".cs": "C#",
    ".cpp": "C++",
    ".c": "C",
    ".vue": "Vue",
    ".svelte": "Svelte",
}

SKIP_DIRS = frozenset(
    {"node_modules", ".git", "dist", "build", "target", "__pycache__", ".next", "venv"}
)

MAX_DEPTH = 3

_PYPROJECT_DESC_RE = re.compile(r'description\s*=\s*"([^"]+)"')


@dataclass
class ScannedProject:
    path: str
    name: str
    description: str | None = None
    languages: dict[str, int] = field(default_factory=dict)
    git_remote: str | None = None
    last_modified: datetime | None = None


def count_languages(root: Path, depth: int = 0, max_depth: int = MAX_DEPTH) -> Counter:
    """Count source files per language, descending at most *max_depth* levels."""
    counts: Counter = Counter()
    if depth > max_depth:
        return counts
    try:
        entries = list(root.iterdir())
    except OSError:
        return counts
    for entry in entries:
        if entry.is_dir() and not entry.is_symlink():
            if entry.name in SKIP_DIRS:
                continue
            counts.update(count_languages(entry, depth + 1, max_depth))
        elif entry.is_file():
            language = LANGUAGE_EXTENSIONS.get(entry.suffix)
            if language:
                counts[language] += 1
    return counts


def read_description(root: Path) -> str | None:
    """package.json ``description``, overridden by a pyproject ``description``."""
    description = None
    package_json = root / "package.json"
    if package_json.is_file():
        try:
            data = json.loads(package_json.read_text(encoding="utf-8"))
        except (OSError, ValueError):
            data = None
        if isinstance(data, dict) and isinstance(data.get("description"), str):
            description = data["description"]

    pyproject = root / "pyproject.toml"
    if pyproject.is_file():
        try:
            match = _PYPROJECT_DESC_RE.search(pyproject.read_text(encoding="utf-8"))
        except OSError:
            match = None
        if match:
            description = match.group(1)
    return description


async def scan_directory(path: str | Path) -> ScannedProject | None:
    """Return scan results for *path*, or None if it is not a directory."""
    root = Path(path).expanduser()
    if not root.is_dir():
        return None
    root = root.resolve()

    git_remote = await read_origin_url(root) if (root / ".git").exists() else None
    scanned = ScannedProject(
        path=str(root),
        name=root.name,
        description=read_description(root),
        languages=dict(await asyncio.to_thread(count_languages, root)),
        git_remote=git_remote,
        last_modified=datetime.fromtimestamp(root.stat().st_mtime, tz=timezone.utc),
    )
    log.debug("scanner.scanned", path=scanned.path, languages=scanned.languages)
    return scanned
