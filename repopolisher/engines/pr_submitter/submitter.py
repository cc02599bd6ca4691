"""PRSubmitter — turn a draft into a hosted pull request (or a local record)."""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from dataclasses import dataclass, field
from pathlib import Path

import structlog
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from repopolisher.core.events import EventBus, EventType
from repopolisher.core.locks import ProjectLocks
from repopolisher.dao.issue_dao import IssueDAO
from repopolisher.engines.fix_applier import apply_fixes
from repopolisher.engines.submitter import GhCli, PullRequestSpec
from repopolisher.engines.workspace import RepositoryMaterializer
from repopolisher.services import ToolExecutionError, ValidationError
from repopolisher.services.pr_draft_service import PRDraftService
from repopolisher.services.project_service import ProjectService

log = structlog.get_logger("repopolisher.engine")

SUBMIT_METHODS = ("gh-cli", "local")

_SOURCE = "pr-submitter"


@dataclass
class SubmitResult:
    success: bool
    message: str = ""
    pr_url: str | None = None
    pr_number: int | None = None
    warnings: list[str] = field(default_factory=list)


class PRSubmitter:
    """Orchestration layer: workspace + fix applier + gh → draft/issue writes."""

    def __init__(
        self,
        draft_service: PRDraftService,
        project_service: ProjectService,
        issue_dao: IssueDAO,
        materializer: RepositoryMaterializer,
        events: EventBus,
        locks: ProjectLocks,
        gh_factory: Callable[[Path], GhCli] = GhCli,
    ) -> None:
        self._drafts = draft_service
        self._projects = project_service
        self._issue_dao = issue_dao
        self._materializer = materializer
        self._events = events
        self._locks = locks
        self._gh_factory = gh_factory

    async def submit(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        draft_id: str,
        method: str = "gh-cli",
    ) -> SubmitResult:
        """Submit *draft_id*.

        ``local`` only records the submission. ``gh-cli`` applies the
        draft's fixes to the working copy and opens a PR; on success applied
        issues become ``fixed`` and the rest ``open``. A failed PR creation
        raises :class:`ToolExecutionError` carrying the fix warnings and
        leaves the draft and its issues untouched.
        """
        if method not in SUBMIT_METHODS:
            raise ValidationError(f"invalid submit method: {method}")

        async with session_factory() as session:
            draft = await self._drafts.get(session, draft_id)
            project = await self._projects.get(session, draft.project_id)
            if draft.status in ("submitted", "merged", "closed"):
                raise ValidationError(f"draft is already {draft.status}")
            issues = await self._issue_dao.list_by_ids(session, draft.issue_ids or [])

        if method == "local":
            async with session_factory() as session:
                async with session.begin():
                    await self._drafts.mark_submitted(session, draft_id, method="local")
            self._publish(draft_id, project.id, method, None)
            log.info("pr.submitted", draft_id=draft_id, method=method)
            return SubmitResult(success=True, message="Changes applied locally")

        async with self._locks.for_project(project.id):
            working_copy = await self._materializer.ensure_working_copy(
                project, for_submission=True
            )
            fixes = await asyncio.to_thread(apply_fixes, working_copy.path, issues)
            if fixes.warnings:
                log.warning("pr.fix_warnings", draft_id=draft_id, warnings=fixes.warnings)

            gh = self._gh_factory(working_copy.path)
            created = await gh.create_pr(
                PullRequestSpec(
                    title=draft.title,
                    body=draft.body,
                    branch=draft.branch,
                    base_branch=draft.base_branch,
                )
            )

        if not created.success:
            raise ToolExecutionError(
                created.error or "pull request creation failed", warnings=fixes.warnings
            )

        async with session_factory() as session:
            async with session.begin():
                submitted = await self._drafts.mark_submitted(
                    session,
                    draft_id,
                    method="gh-cli",
                    pr_url=created.pr_url,
                    pr_number=created.pr_number,
                    files=[change.to_dict() for change in fixes.files],
                )
                fixed, reopened = await self._drafts.reconcile_issues(
                    session, submitted, fixes.applied_issue_ids
                )

        self._publish(draft_id, project.id, method, created.pr_url)
        log.info(
            "pr.submitted",
            draft_id=draft_id,
            method=method,
            pr_url=created.pr_url,
            fixed=fixed,
            reopened=reopened,
        )
        return SubmitResult(
            success=True,
            message="Pull request created",
            pr_url=created.pr_url,
            pr_number=created.pr_number,
            warnings=fixes.warnings,
        )

    def _publish(self, draft_id: str, project_id: str, method: str, pr_url: str | None) -> None:
        self._events.publish(
            EventType.PR_SUBMITTED,
            _SOURCE,
            {"draft_id": draft_id, "project_id": project_id, "method": method, "pr_url": pr_url},
        )
