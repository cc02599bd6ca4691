"""Filesystem locations for local state."""

from __future__ import annotations

import os
from pathlib import Path


def data_dir() -> Path:
    """Root directory for the database and repository cache."""
    return Path(os.environ.get("REPOPOLISHER_DATA_DIR", Path.home() / ".repopolisher"))


def cache_dir() -> Path:
    """Directory holding shallow clones of remote projects."""
    explicit = os.environ.get("REPOPOLISHER_CACHE_DIR")
    if explicit:
        return Path(explicit)
    return data_dir() / "cache" / "repos"
