"""Dependency injection — an explicitly built container plus FastAPI getters."""

from __future__ import annotations

from collections.abc import AsyncGenerator
from dataclasses import dataclass, field
from typing import Any

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from repopolisher.core.database import Database
from repopolisher.core.events import EventBus, EventType, log_event
from repopolisher.core.github import GitHubClient
from repopolisher.core.locks import ProjectLocks
from repopolisher.dao.analysis_task_dao import AnalysisTaskDAO
from repopolisher.dao.issue_dao import IssueDAO
from repopolisher.dao.pr_draft_dao import PRDraftDAO
from repopolisher.dao.project_dao import ProjectDAO
from repopolisher.engines.analysis import AnalysisRunner
from repopolisher.engines.pr_submitter import PRSubmitter
from repopolisher.engines.typo_checker import TypoChecker
from repopolisher.engines.workspace import RepositoryMaterializer
from repopolisher.services.analysis_service import AnalysisService
from repopolisher.services.pr_draft_service import PRDraftService
from repopolisher.services.project_service import ProjectService

_PENDING_EVENTS = "repopolisher.pending_events"


@dataclass
class Container:
    """Everything a request handler may need, wired once per process."""

    database: Database
    github: GitHubClient
    events: EventBus
    checker: TypoChecker
    materializer: RepositoryMaterializer
    project_service: ProjectService
    analysis_service: AnalysisService
    draft_service: PRDraftService
    analysis_runner: AnalysisRunner
    pr_submitter: PRSubmitter
    locks: ProjectLocks = field(default_factory=ProjectLocks)

    async def aclose(self) -> None:
        await self.github.close()
        await self.database.close()


def build_container(
    database: Database | None = None,
    *,
    github: GitHubClient | None = None,
    checker: TypoChecker | None = None,
    materializer: RepositoryMaterializer | None = None,
    pr_submitter: PRSubmitter | None = None,
) -> Container:
    """Wire DAOs, services and engines around *database*."""
    database = database or Database()
    github = github or GitHubClient()
    checker = checker or TypoChecker()
    materializer = materializer or RepositoryMaterializer()
    events = EventBus()
    events.on_any(log_event)
    locks = ProjectLocks()

    project_dao = ProjectDAO()
    task_dao = AnalysisTaskDAO()
    issue_dao = IssueDAO()
    draft_dao = PRDraftDAO()

    project_service = ProjectService(project_dao, github, materializer)
    analysis_service = AnalysisService(task_dao, issue_dao)
    draft_service = PRDraftService(draft_dao, project_dao, issue_dao, analysis_service)

    analysis_runner = AnalysisRunner(
        project_service, analysis_service, materializer, checker, events, locks
    )
    pr_submitter = pr_submitter or PRSubmitter(
        draft_service, project_service, issue_dao, materializer, events, locks
    )

    return Container(
        database=database,
        github=github,
        events=events,
        checker=checker,
        materializer=materializer,
        project_service=project_service,
        analysis_service=analysis_service,
        draft_service=draft_service,
        analysis_runner=analysis_runner,
        pr_submitter=pr_submitter,
        locks=locks,
    )


# ---------------------------------------------------------------------------
# Getters (for Depends())
# ---------------------------------------------------------------------------


def get_container(request: Request) -> Container:
    return request.app.state.container


def get_session_factory(
    container: Container = Depends(get_container),
) -> async_sessionmaker[AsyncSession]:
    return container.database.session_factory


def get_events(container: Container = Depends(get_container)) -> EventBus:
    return container.events


def publish_on_commit(
    session: AsyncSession, event_type: EventType, source: str, payload: dict[str, Any]
) -> None:
    """Queue an event on *session*; :func:`get_session` publishes it after commit."""
    session.info.setdefault(_PENDING_EVENTS, []).append((event_type, source, payload))


async def get_session(
    factory: async_sessionmaker[AsyncSession] = Depends(get_session_factory),
    events: EventBus = Depends(get_events),
) -> AsyncGenerator[AsyncSession, None]:
    """Yield a per-request session with automatic commit/rollback.

    Events queued with :func:`publish_on_commit` go out only once the
    transaction has committed; a rollback drops them.
    """
    async with factory() as session:
        async with session.begin():
            yield session
        for event_type, source, payload in session.info.pop(_PENDING_EVENTS, []):
            events.publish(event_type, source, payload)


def get_project_service(container: Container = Depends(get_container)) -> ProjectService:
    return container.project_service


def get_analysis_service(container: Container = Depends(get_container)) -> AnalysisService:
    return container.analysis_service


def get_draft_service(container: Container = Depends(get_container)) -> PRDraftService:
    return container.draft_service


def get_analysis_runner(container: Container = Depends(get_container)) -> AnalysisRunner:
    return container.analysis_runner


def get_pr_submitter(container: Container = Depends(get_container)) -> PRSubmitter:
    return container.pr_submitter


def get_checker(container: Container = Depends(get_container)) -> TypoChecker:
    return container.checker
