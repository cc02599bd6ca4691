"""ProjectService — project registration and bookkeeping."""

from __future__ import annotations

import httpx
import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from repopolisher.core.database import utcnow
from repopolisher.core.github import GitHubClient, parse_remote_url
from repopolisher.dao.project_dao import ProjectDAO, ProjectFilters
from repopolisher.engines.local_scanner import scan_directory
from repopolisher.engines.workspace import RepositoryMaterializer
from repopolisher.models.project import Project
from repopolisher.services import (
    ConflictError,
    NotFoundError,
    ToolExecutionError,
    ValidationError,
)

log = structlog.get_logger("repopolisher.service")

PROJECT_SOURCES = ("local", "remote")
PROJECT_CATEGORIES = ("ai", "web", "cli", "library", "other")


class ProjectService:
    """Stateless service for project CRUD and analysis stats."""

    def __init__(
        self,
        project_dao: ProjectDAO,
        github: GitHubClient | None = None,
        materializer: RepositoryMaterializer | None = None,
    ) -> None:
        self._project_dao = project_dao
        self._github = github
        self._materializer = materializer or RepositoryMaterializer()

    async def get(self, session: AsyncSession, project_id: str) -> Project:
        """Return a project. Raises :class:`NotFoundError` if missing."""
        project = await self._project_dao.get_by_id(session, project_id)
        if project is None:
            raise NotFoundError("project not found")
        return project

    async def list(
        self,
        session: AsyncSession,
        *,
        source: str | None = None,
        category: str | None = None,
        search: str | None = None,
        sort_by: str = "updated_at",
        sort_order: str = "desc",
        limit: int = 50,
        offset: int = 0,
    ) -> list[Project]:
        if source is not None and source not in PROJECT_SOURCES:
            raise ValidationError(f"invalid source: {source}")
        if category is not None and category not in PROJECT_CATEGORIES:
            raise ValidationError(f"invalid category: {category}")
        return await self._project_dao.list_filtered(
            session,
            ProjectFilters(source=source, category=category, search=search),
            sort_by=sort_by,
            sort_order=sort_order,
            limit=limit,
            offset=offset,
        )

    async def stats(self, session: AsyncSession) -> dict:
        return await self._project_dao.summary(session)

    async def add_local(self, session: AsyncSession, path: str) -> Project:
        """Register a directory on disk.

        Raises :class:`ValidationError` if *path* is not a directory and
        :class:`ConflictError` if it is already registered.
        """
        scanned = await scan_directory(path)
        if scanned is None:
            raise ValidationError(f"not a directory: {path}")

        existing = await self._project_dao.get_by_field(session, local_path=scanned.path)
        if existing is not None:
            raise ConflictError(f"project at '{scanned.path}' already exists")

        project = await self._project_dao.create(
            session,
            source="local",
            name=scanned.name,
            description=scanned.description,
            languages=scanned.languages,
            local_path=scanned.path,
            local_git_remote=scanned.git_remote,
            local_last_modified=scanned.last_modified,
        )
        log.info("project.added", project_id=project.id, source="local", path=scanned.path)
        return project

    async def add_remote(self, session: AsyncSession, url: str) -> Project:
        """Register a GitHub repository by URL.

        Metadata comes from the GitHub REST API. Raises
        :class:`ValidationError` for an unparsable or non-GitHub URL,
        :class:`ConflictError` if already registered and
        :class:`NotFoundError` if GitHub does not know the repository.
        """
        ref = parse_remote_url(url)
        if ref is None or not ref.is_github:
            raise ValidationError(f"not a GitHub repository URL: {url}")

        remote_url = f"https://github.com/{ref.owner}/{ref.repo}"
        existing = await self._project_dao.get_by_field(session, remote_url=remote_url)
        if existing is not None:
            raise ConflictError(f"project with url '{remote_url}' already exists")

        meta = await self._fetch_metadata(ref.owner, ref.repo)
        project = await self._project_dao.create(
            session,
            source="remote",
            name=meta["name"],
            description=meta["description"],
            languages=meta["languages"],
            remote_owner=ref.owner,
            remote_repo=ref.repo,
            remote_url=remote_url,
            default_branch=meta["default_branch"],
            stars=meta["stars"],
        )
        log.info("project.added", project_id=project.id, source="remote", repo=ref.full_name)
        return project

    async def _fetch_metadata(self, owner: str, repo: str) -> dict:
        if self._github is None:
            async with GitHubClient() as client:
                return await self._fetch_with(client, owner, repo)
        return await self._fetch_with(self._github, owner, repo)

    @staticmethod
    async def _fetch_with(client: GitHubClient, owner: str, repo: str) -> dict:
        try:
            return await client.fetch_repository(owner, repo)
        except httpx.HTTPStatusError as exc:
            if exc.response.status_code == 404:
                raise NotFoundError(f"repository {owner}/{repo} not found on GitHub") from exc
            raise ToolExecutionError(
                f"GitHub API error {exc.response.status_code} for {owner}/{repo}"
            ) from exc
        except httpx.HTTPError as exc:
            raise ToolExecutionError(f"GitHub API request failed: {exc}") from exc

    async def remove(self, session: AsyncSession, project_id: str) -> None:
        """Delete a project; its tasks, issues and drafts go with it."""
        deleted = await self._project_dao.delete(session, project_id)
        if not deleted:
            raise NotFoundError("project not found")
        log.info("project.removed", project_id=project_id)

    async def record_analysis(
        self, session: AsyncSession, project_id: str, issues_found: int
    ) -> Project:
        project = await self.get(session, project_id)
        updated = await self._project_dao.update(
            session,
            project_id,
            analysis_count=project.analysis_count + 1,
            last_analyzed_at=utcnow(),
            issues_found=issues_found,
        )
        return updated  # type: ignore[return-value]

    async def working_copy_path(self, session: AsyncSession, project_id: str) -> str | None:
        """On-disk path of the project's tree, or None if not materialized yet."""
        project = await self.get(session, project_id)
        path = self._materializer.existing_path(project)
        return str(path) if path is not None else None
