"""RepositoryMaterializer — make sure a usable working copy exists on disk."""

from __future__ import annotations

import asyncio
import shutil
from dataclasses import dataclass
from pathlib import Path

import structlog

from repopolisher.core.github import parse_remote_url
from repopolisher.core.paths import cache_dir
from repopolisher.engines.workspace.repo import GitCommandError, run_git, shallow_clone
from repopolisher.models.project import Project
from repopolisher.services import MissingRemoteError, NotFoundError, RepositoryStateError

log = structlog.get_logger("repopolisher.engine")


@dataclass
class WorkingCopy:
    """Resolved on-disk checkout. *owner*/*repo* are None for local trees without a remote."""

    path: Path
    owner: str | None = None
    repo: str | None = None


def _remove_path(path: Path) -> None:
    if path.is_dir() and not path.is_symlink():
        shutil.rmtree(path)
    elif path.exists() or path.is_symlink():
        path.unlink()


def _ensure_directory(path: Path) -> None:
    """Create *path*; a non-directory entry in its place is replaced."""
    if path.exists() and not path.is_dir():
        _remove_path(path)
    path.mkdir(parents=True, exist_ok=True)


class RepositoryMaterializer:
    """Resolve a project to a local working copy.

    Local projects are passed through untouched. Remote projects live in
    ``<cache_root>/<owner>/<repo>`` as depth-1 clones that are cleaned and
    hard-reset to the remote default branch on every call, or deleted and
    re-cloned when that fails. Nothing outside the cache root is mutated.
    """

    def __init__(self, cache_root: Path | None = None) -> None:
        self.cache_root = Path(cache_root) if cache_root is not None else cache_dir()

    def cache_path(self, owner: str, repo: str) -> Path:
        return self.cache_root / owner / repo

    def existing_path(self, project: Project) -> Path | None:
        """Path of the project's tree if it is already on disk (no side effects)."""
        if project.source == "local":
            return Path(project.local_path) if project.local_path else None
        if not project.remote_owner or not project.remote_repo:
            return None
        path = self.cache_path(project.remote_owner, project.remote_repo)
        return path if path.is_dir() else None

    async def ensure_working_copy(
        self, project: Project, *, for_submission: bool = False
    ) -> WorkingCopy:
        """Return an up-to-date working copy for *project*.

        Raises :class:`NotFoundError` if a local project's path is gone,
        :class:`MissingRemoteError` if a remote target is required but
        cannot be derived, and :class:`RepositoryStateError` if cloning
        fails even after the delete-and-reclone fallback.
        """
        if project.source == "local":
            return self._local_copy(project, for_submission)
        return await self._remote_copy(project)

    # ── local ────────────────────────────────────────────────────────────

    @staticmethod
    def _local_copy(project: Project, for_submission: bool) -> WorkingCopy:
        if not project.local_path or not Path(project.local_path).is_dir():
            raise NotFoundError(f"local project path not found: {project.local_path}")

        remote = parse_remote_url(project.local_git_remote)
        if remote is None:
            if for_submission:
                raise MissingRemoteError(
                    "local project does not have a valid GitHub remote; "
                    "cannot submit a pull request"
                )
            return WorkingCopy(path=Path(project.local_path))
        return WorkingCopy(path=Path(project.local_path), owner=remote.owner, repo=remote.repo)

    # ── remote ───────────────────────────────────────────────────────────

    async def _remote_copy(self, project: Project) -> WorkingCopy:
        owner, repo, url = project.remote_owner, project.remote_repo, project.remote_url
        if not owner or not repo or not url:
            raise MissingRemoteError("project is missing remote owner/repo/url metadata")

        _ensure_directory(self.cache_root)
        _ensure_directory(self.cache_root / owner)
        path = self.cache_path(owner, repo)

        if path.exists() and not path.is_dir():
            log.warning("workspace.corrupt_entry", path=str(path))
            await asyncio.to_thread(_remove_path, path)

        if not path.exists():
            await self._clone(url, path)
        else:
            try:
                await self._refresh(path)
            except GitCommandError as exc:
                log.warning("workspace.refresh_failed", path=str(path), error=str(exc))
                await asyncio.to_thread(_remove_path, path)
                await self._clone(url, path)

        return WorkingCopy(path=path, owner=owner, repo=repo)

    @staticmethod
    async def _refresh(path: Path) -> None:
        """Clean, fetch, and hard-reset an existing clone to the remote default branch."""
        if not (path / ".git").exists():
            raise GitCommandError(["rev-parse"], None, f"{path} is not a git checkout")
        await run_git(["clean", "-fd"], cwd=path)
        await run_git(["fetch", "--depth", "1", "origin"], cwd=path)
        head = await run_git(["rev-parse", "--abbrev-ref", "origin/HEAD"], cwd=path)
        branch = head.strip().removeprefix("origin/")
        await run_git(["reset", "--hard", f"origin/{branch}"], cwd=path)
        log.info("workspace.refreshed", path=str(path), branch=branch)

    @staticmethod
    async def _clone(url: str, path: Path) -> None:
        try:
            await shallow_clone(url, path)
        except GitCommandError as exc:
            if path.exists():
                await asyncio.to_thread(_remove_path, path)
            raise RepositoryStateError(f"failed to clone {url}: {exc.stderr.strip()}") from exc
        log.info("workspace.cloned", url=url, path=str(path))
