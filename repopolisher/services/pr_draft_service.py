"""PRDraftService — pull-request draft lifecycle and issue reconciliation."""

from __future__ import annotations

import time
from collections.abc import Collection, Sequence
from dataclasses import dataclass
from typing import Any

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from repopolisher.core.database import utcnow
from repopolisher.dao.issue_dao import IssueDAO
from repopolisher.dao.pr_draft_dao import PRDraftDAO
from repopolisher.dao.project_dao import ProjectDAO
from repopolisher.models.issue import Issue
from repopolisher.models.pr_draft import PRDraft
from repopolisher.services import NotFoundError, ValidationError
from repopolisher.services.analysis_service import AnalysisService

log = structlog.get_logger("repopolisher.service")

DEFAULT_BASE_BRANCH = "main"
BODY_ISSUE_LIMIT = 20

DRAFT_STATUSES = ("draft", "ready", "submitted", "merged", "closed")

# status changes allowed through update(); "submitted" is only set by submission
DRAFT_TRANSITIONS: dict[str, frozenset[str]] = {
    "draft": frozenset({"ready"}),
    "ready": frozenset({"draft"}),
    "submitted": frozenset({"merged", "closed"}),
    "merged": frozenset(),
    "closed": frozenset(),
}


@dataclass
class DraftCreated:
    draft_id: str
    title: str
    body: str
    branch: str


def _plural(count: int) -> str:
    return "typo" if count == 1 else "typos"


def default_title(issues: Sequence[Issue]) -> str:
    return f"fix: correct {len(issues)} {_plural(len(issues))} in codebase"


def default_body(issues: Sequence[Issue]) -> str:
    listed = "\n".join(
        f"- `{i.original}` → `{i.suggestion}` in `{i.file_path}:{i.line}`"
        for i in issues[:BODY_ISSUE_LIMIT]
    )
    if len(issues) > BODY_ISSUE_LIMIT:
        listed += f"\n- ... and {len(issues) - BODY_ISSUE_LIMIT} more"
    return (
        "## Summary\n\n"
        f"This PR fixes {len(issues)} {_plural(len(issues))} found in the codebase.\n\n"
        "## Changes\n\n"
        f"{listed}\n\n"
        "---\n"
        "Generated by RepoPolisher"
    )


def new_branch_name() -> str:
    return f"fix/typos-{int(time.time() * 1000)}"


class PRDraftService:
    """Stateless service for PR drafts."""

    def __init__(
        self,
        draft_dao: PRDraftDAO,
        project_dao: ProjectDAO,
        issue_dao: IssueDAO,
        analysis_service: AnalysisService,
    ) -> None:
        self._draft_dao = draft_dao
        self._project_dao = project_dao
        self._issue_dao = issue_dao
        self._analysis = analysis_service

    async def create(
        self,
        session: AsyncSession,
        project_id: str,
        issue_ids: Sequence[str],
        *,
        title: str | None = None,
        body: str | None = None,
    ) -> DraftCreated:
        """Create a draft from *issue_ids* and mark those issues ``included``.

        Unknown ids are dropped. Raises :class:`NotFoundError` for an unknown
        project and :class:`ValidationError` when nothing resolves or an
        issue is already fixed or belongs to another project.
        """
        if not await self._project_dao.exists(session, project_id):
            raise NotFoundError("project not found")

        issues = await self._issue_dao.list_by_ids(session, issue_ids)
        if not issues:
            raise ValidationError("no issues selected")
        for issue in issues:
            if issue.project_id != project_id:
                raise ValidationError(f"issue {issue.id} belongs to another project")
            if issue.status == "fixed":
                raise ValidationError(f"issue {issue.id} is already fixed")

        resolved_ids = [issue.id for issue in issues]
        draft = await self._draft_dao.create(
            session,
            project_id=project_id,
            title=title or default_title(issues),
            body=body or default_body(issues),
            branch=new_branch_name(),
            base_branch=DEFAULT_BASE_BRANCH,
            issue_ids=resolved_ids,
            files=[],
            status="draft",
        )
        await self._analysis.set_issue_statuses(session, resolved_ids, "included")

        log.info("draft.created", draft_id=draft.id, project_id=project_id, issues=len(issues))
        return DraftCreated(
            draft_id=draft.id, title=draft.title, body=draft.body, branch=draft.branch
        )

    async def get(self, session: AsyncSession, draft_id: str) -> PRDraft:
        draft = await self._draft_dao.get_by_id(session, draft_id)
        if draft is None:
            raise NotFoundError("draft not found")
        return draft

    async def list_by_project(self, session: AsyncSession, project_id: str) -> list[PRDraft]:
        return await self._draft_dao.list_by_project(session, project_id)

    async def update(
        self,
        session: AsyncSession,
        draft_id: str,
        *,
        title: str | None = None,
        body: str | None = None,
        status: str | None = None,
    ) -> PRDraft:
        """Merge the given fields into the draft. ``None`` leaves a field as is."""
        draft = await self.get(session, draft_id)
        updates: dict[str, Any] = {"updated_at": utcnow()}

        if title is not None:
            if not title.strip():
                raise ValidationError("title must not be empty")
            updates["title"] = title
        if body is not None:
            updates["body"] = body
        if status is not None and status != draft.status:
            if status not in DRAFT_STATUSES:
                raise ValidationError(f"invalid draft status: {status}")
            if status not in DRAFT_TRANSITIONS[draft.status]:
                raise ValidationError(
                    f"cannot change draft status from '{draft.status}' to '{status}'"
                )
            updates["status"] = status

        draft = await self._draft_dao.update(session, draft_id, **updates)
        return draft  # type: ignore[return-value]

    async def delete(self, session: AsyncSession, draft_id: str) -> None:
        """Remove a draft and reopen every issue it references.

        Submitted drafts are handled the same way, so their fixed issues
        become open again.
        """
        draft = await self.get(session, draft_id)
        reopened = await self._analysis.set_issue_statuses(session, draft.issue_ids or [], "open")
        await self._draft_dao.delete(session, draft_id)
        log.info("draft.deleted", draft_id=draft_id, status=draft.status, reopened=reopened)

    async def mark_submitted(
        self,
        session: AsyncSession,
        draft_id: str,
        *,
        method: str,
        pr_url: str | None = None,
        pr_number: int | None = None,
        files: list[dict[str, Any]] | None = None,
    ) -> PRDraft:
        values: dict[str, Any] = {
            "status": "submitted",
            "submit_method": method,
            "submitted_at": utcnow(),
            "updated_at": utcnow(),
            "pr_url": pr_url,
            "pr_number": pr_number,
        }
        if files is not None:
            values["files"] = files
        draft = await self._draft_dao.update(session, draft_id, **values)
        if draft is None:
            raise NotFoundError("draft not found")
        return draft

    async def reconcile_issues(
        self, session: AsyncSession, draft: PRDraft, applied_ids: Collection[str]
    ) -> tuple[int, int]:
        """Applied issues become ``fixed``, every other referenced issue ``open``.

        Returns ``(fixed, reopened)`` row counts.
        """
        referenced = list(draft.issue_ids or [])
        applied = [pk for pk in referenced if pk in applied_ids]
        skipped = [pk for pk in referenced if pk not in applied_ids]
        fixed = await self._analysis.set_issue_statuses(session, applied, "fixed")
        reopened = await self._analysis.set_issue_statuses(session, skipped, "open")
        return fixed, reopened
