"""AnalysisService — analysis task lifecycle and the issue store."""

from __future__ import annotations

from collections.abc import Sequence

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from repopolisher.core.database import utcnow
from repopolisher.dao.analysis_task_dao import AnalysisTaskDAO
from repopolisher.dao.issue_dao import IssueDAO
from repopolisher.models.analysis_task import AnalysisTask
from repopolisher.models.issue import Issue
from repopolisher.services import NotFoundError, ValidationError

log = structlog.get_logger("repopolisher.service")

ISSUE_STATUSES = ("open", "included", "ignored", "fixed")

# user-driven transitions; draft reconciliation bypasses these
ISSUE_TRANSITIONS: dict[str, frozenset[str]] = {
    "open": frozenset({"included", "ignored"}),
    "included": frozenset({"open", "fixed"}),
    "ignored": frozenset({"open"}),
    "fixed": frozenset(),
}


def check_issue_transition(current: str, target: str) -> None:
    """Raise :class:`ValidationError` unless *current* → *target* is allowed."""
    if target not in ISSUE_STATUSES:
        raise ValidationError(f"invalid issue status: {target}")
    if target not in ISSUE_TRANSITIONS.get(current, frozenset()):
        raise ValidationError(f"cannot change issue status from '{current}' to '{target}'")


class AnalysisService:
    """Stateless service for analysis tasks and their issues."""

    def __init__(self, task_dao: AnalysisTaskDAO, issue_dao: IssueDAO) -> None:
        self._task_dao = task_dao
        self._issue_dao = issue_dao

    # ── tasks ────────────────────────────────────────────────────────────

    async def create_task(self, session: AsyncSession, project_id: str) -> AnalysisTask:
        return await self._task_dao.create(
            session,
            project_id=project_id,
            type="typo",
            status="running",
            progress=0.0,
            started_at=utcnow(),
        )

    async def get_task(self, session: AsyncSession, task_id: str) -> AnalysisTask:
        task = await self._task_dao.get_by_id(session, task_id)
        if task is None:
            raise NotFoundError("analysis task not found")
        return task

    async def history(self, session: AsyncSession, project_id: str) -> list[AnalysisTask]:
        return await self._task_dao.list_by_project(session, project_id)

    async def update_progress(
        self, session: AsyncSession, task_id: str, progress: float
    ) -> AnalysisTask:
        await self._require_running(session, task_id)
        return await self._task_dao.update(  # type: ignore[return-value]
            session, task_id, progress=max(0.0, min(progress, 100.0))
        )

    async def complete_task(
        self,
        session: AsyncSession,
        task_id: str,
        *,
        issues_found: int,
        files_scanned: int,
    ) -> AnalysisTask:
        await self._require_running(session, task_id)
        task = await self._task_dao.update(
            session,
            task_id,
            status="completed",
            progress=100.0,
            issues_found=issues_found,
            files_scanned=files_scanned,
            completed_at=utcnow(),
        )
        log.info(
            "analysis.task_completed",
            task_id=task_id,
            issues_found=issues_found,
            files_scanned=files_scanned,
        )
        return task  # type: ignore[return-value]

    async def fail_task(self, session: AsyncSession, task_id: str, error: str) -> AnalysisTask:
        await self._require_running(session, task_id)
        task = await self._task_dao.update(
            session, task_id, status="failed", error=error, completed_at=utcnow()
        )
        log.warning("analysis.task_failed", task_id=task_id, error=error)
        return task  # type: ignore[return-value]

    async def _require_running(self, session: AsyncSession, task_id: str) -> AnalysisTask:
        task = await self.get_task(session, task_id)
        if task.status != "running":
            raise ValidationError(f"analysis task is already {task.status}")
        return task

    # ── issues ───────────────────────────────────────────────────────────

    async def save_issues(self, session: AsyncSession, issues: Sequence[Issue]) -> int:
        if not issues:
            return 0
        await self._issue_dao.add_all(session, issues)
        return len(issues)

    async def get_issue(self, session: AsyncSession, issue_id: str) -> Issue:
        issue = await self._issue_dao.get_by_id(session, issue_id)
        if issue is None:
            raise NotFoundError("issue not found")
        return issue

    async def list_issues(
        self,
        session: AsyncSession,
        project_id: str,
        status: str | None = None,
    ) -> list[Issue]:
        if status is not None and status not in ISSUE_STATUSES:
            raise ValidationError(f"invalid issue status: {status}")
        return await self._issue_dao.list_by_project(session, project_id, status)

    async def issue_counts(self, session: AsyncSession, project_id: str) -> dict[str, int]:
        return await self._issue_dao.count_by_status(session, project_id)

    async def update_issue_status(self, session: AsyncSession, issue_id: str, status: str) -> Issue:
        """User-driven status change, validated against the transition table."""
        issue = await self.get_issue(session, issue_id)
        check_issue_transition(issue.status, status)
        updated = await self._issue_dao.update(session, issue_id, status=status)
        return updated  # type: ignore[return-value]

    async def update_issue_statuses(
        self, session: AsyncSession, issue_ids: Sequence[str], status: str
    ) -> int:
        """Batch form of :meth:`update_issue_status`; all or nothing.

        Raises :class:`NotFoundError` if any id is unknown and
        :class:`ValidationError` if any issue cannot make the transition.
        """
        unique_ids = list(dict.fromkeys(issue_ids))
        issues = await self._issue_dao.list_by_ids(session, unique_ids)
        if len(issues) != len(unique_ids):
            found = {issue.id for issue in issues}
            missing = [pk for pk in unique_ids if pk not in found]
            raise NotFoundError(f"issues not found: {', '.join(missing)}")
        for issue in issues:
            check_issue_transition(issue.status, status)
        return await self._issue_dao.update_many(session, unique_ids, status=status)

    async def set_issue_statuses(
        self, session: AsyncSession, issue_ids: Sequence[str], status: str
    ) -> int:
        """Unvalidated bulk write used by draft reconciliation."""
        if status not in ISSUE_STATUSES:
            raise ValidationError(f"invalid issue status: {status}")
        return await self._issue_dao.update_many(session, list(issue_ids), status=status)
