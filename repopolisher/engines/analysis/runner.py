"""AnalysisRunner — materialize, spell-check, and persist issues for a project."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass

import structlog
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from repopolisher.core.events import EventBus, EventType
from repopolisher.core.locks import ProjectLocks
from repopolisher.engines.typo_checker import TypoChecker
from repopolisher.engines.workspace import RepositoryMaterializer
from repopolisher.services.analysis_service import AnalysisService
from repopolisher.services.project_service import ProjectService

log = structlog.get_logger("repopolisher.engine")

_SOURCE = "analysis-runner"


@dataclass
class AnalysisOutcome:
    task_id: str
    issues_found: int
    files_scanned: int = 0


class AnalysisRunner:
    """Orchestration layer: workspace + checker engines → service-layer writes."""

    def __init__(
        self,
        project_service: ProjectService,
        analysis_service: AnalysisService,
        materializer: RepositoryMaterializer,
        checker: TypoChecker,
        events: EventBus,
        locks: ProjectLocks,
    ) -> None:
        self._project_service = project_service
        self._analysis = analysis_service
        self._materializer = materializer
        self._checker = checker
        self._events = events
        self._locks = locks

    async def start(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        project_id: str,
    ) -> AnalysisOutcome:
        """Run one typo analysis for *project_id*.

        1. Create a running task (committed, so it is visible while we work)
        2. Materialize the working copy under the project lock and run typos
        3. Store issues, complete the task and update project stats

        Any failure after step 1, cancellation included, marks the task failed
        and is re-raised.
        """
        async with session_factory() as session:
            async with session.begin():
                project = await self._project_service.get(session, project_id)
                task = await self._analysis.create_task(session, project_id)
        task_id = task.id

        self._events.publish(
            EventType.ANALYSIS_STARTED, _SOURCE, {"project_id": project_id, "task_id": task_id}
        )
        log.info("analysis.started", project_id=project_id, task_id=task_id)

        try:
            async with self._locks.for_project(project_id):
                working_copy = await self._materializer.ensure_working_copy(project)
                await self._report_progress(session_factory, project_id, task_id, 10.0)
                issues = await self._checker.check(str(working_copy.path), task_id, project_id)
            await self._report_progress(session_factory, project_id, task_id, 90.0)

            # only files with findings are reported by typos
            files_scanned = len({issue.file_path for issue in issues})
            async with session_factory() as session:
                async with session.begin():
                    await self._analysis.save_issues(session, issues)
                    await self._analysis.complete_task(
                        session,
                        task_id,
                        issues_found=len(issues),
                        files_scanned=files_scanned,
                    )
                    await self._project_service.record_analysis(session, project_id, len(issues))
        except (Exception, asyncio.CancelledError) as exc:
            await self._record_failure(session_factory, project_id, task_id, exc)
            raise

        self._events.publish(
            EventType.ANALYSIS_COMPLETED,
            _SOURCE,
            {"project_id": project_id, "task_id": task_id, "issues_found": len(issues)},
        )
        log.info(
            "analysis.completed",
            project_id=project_id,
            task_id=task_id,
            issues_found=len(issues),
            files_scanned=files_scanned,
        )
        return AnalysisOutcome(
            task_id=task_id, issues_found=len(issues), files_scanned=files_scanned
        )

    async def _report_progress(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        project_id: str,
        task_id: str,
        progress: float,
    ) -> None:
        async with session_factory() as session:
            async with session.begin():
                await self._analysis.update_progress(session, task_id, progress)
        self._events.publish(
            EventType.ANALYSIS_PROGRESS,
            _SOURCE,
            {"project_id": project_id, "task_id": task_id, "progress": progress},
        )

    async def _record_failure(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        project_id: str,
        task_id: str,
        exc: BaseException,
    ) -> None:
        error = str(exc) or type(exc).__name__
        log.error("analysis.failed", project_id=project_id, task_id=task_id, error=error)
        try:
            async with session_factory() as session:
                async with session.begin():
                    await self._analysis.fail_task(session, task_id, error)
        except Exception:
            log.warning("analysis.status_update_failed", task_id=task_id, exc_info=True)
        self._events.publish(
            EventType.ANALYSIS_FAILED,
            _SOURCE,
            {"project_id": project_id, "task_id": task_id, "error": error},
        )
