"""Per-project locks serializing access to a shared working copy."""

from __future__ import annotations

import asyncio


class ProjectLocks:
    """Hands out one :class:`asyncio.Lock` per project id.

    Analysis and submission for the same project share a cached checkout;
    holding the project's lock while touching it prevents one run from
    resetting the tree under the other.
    """

    def __init__(self) -> None:
        self._locks: dict[str, asyncio.Lock] = {}

    def for_project(self, project_id: str) -> asyncio.Lock:
        lock = self._locks.get(project_id)
        if lock is None:
            lock = self._locks[project_id] = asyncio.Lock()
        return lock
