"""Analysis router — start runs, inspect tasks, curate issues."""

from __future__ import annotations

from typing import Literal

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from repopolisher.api.deps import (
    get_analysis_runner,
    get_analysis_service,
    get_checker,
    get_session,
    get_session_factory,
    publish_on_commit,
)
from repopolisher.api.schemas.analysis import (
    AnalysisTaskResponse,
    AuthStatusResponse,
    BatchUpdateIssuesRequest,
    BatchUpdateResponse,
    CheckerStatus,
    IssueCountsResponse,
    IssueResponse,
    StartAnalysisRequest,
    StartAnalysisResponse,
    UpdateIssueRequest,
)
from repopolisher.core.events import EventType
from repopolisher.engines.analysis import AnalysisRunner
from repopolisher.engines.submitter import check_auth
from repopolisher.engines.typo_checker import TypoChecker
from repopolisher.services.analysis_service import AnalysisService

router = APIRouter()

_SOURCE = "api.analysis"


@router.post("/start", response_model=StartAnalysisResponse)
async def start_analysis(
    body: StartAnalysisRequest,
    factory: async_sessionmaker[AsyncSession] = Depends(get_session_factory),
    runner: AnalysisRunner = Depends(get_analysis_runner),
) -> StartAnalysisResponse:
    outcome = await runner.start(factory, body.project_id)
    return StartAnalysisResponse(
        task_id=outcome.task_id,
        issues_found=outcome.issues_found,
        files_scanned=outcome.files_scanned,
    )


@router.get("/tasks/{task_id}", response_model=AnalysisTaskResponse)
async def get_task(
    task_id: str,
    session: AsyncSession = Depends(get_session),
    svc: AnalysisService = Depends(get_analysis_service),
) -> AnalysisTaskResponse:
    return AnalysisTaskResponse.model_validate(await svc.get_task(session, task_id))


@router.get("/history/{project_id}", response_model=list[AnalysisTaskResponse])
async def analysis_history(
    project_id: str,
    session: AsyncSession = Depends(get_session),
    svc: AnalysisService = Depends(get_analysis_service),
) -> list[AnalysisTaskResponse]:
    return [AnalysisTaskResponse.model_validate(t) for t in await svc.history(session, project_id)]


@router.get("/issues", response_model=list[IssueResponse])
async def list_issues(
    project_id: str = Query(...),
    status: Literal["open", "included", "ignored", "fixed"] | None = Query(None),
    session: AsyncSession = Depends(get_session),
    svc: AnalysisService = Depends(get_analysis_service),
) -> list[IssueResponse]:
    issues = await svc.list_issues(session, project_id, status)
    return [IssueResponse.model_validate(i) for i in issues]


@router.get("/issues/counts", response_model=IssueCountsResponse)
async def issue_counts(
    project_id: str = Query(...),
    session: AsyncSession = Depends(get_session),
    svc: AnalysisService = Depends(get_analysis_service),
) -> IssueCountsResponse:
    return IssueCountsResponse(**await svc.issue_counts(session, project_id))


@router.patch("/issues/{issue_id}", response_model=IssueResponse)
async def update_issue(
    issue_id: str,
    body: UpdateIssueRequest,
    session: AsyncSession = Depends(get_session),
    svc: AnalysisService = Depends(get_analysis_service),
) -> IssueResponse:
    issue = await svc.update_issue_status(session, issue_id, body.status)
    publish_on_commit(
        session, EventType.ISSUE_UPDATED, _SOURCE, {"issue_ids": [issue_id], "status": body.status}
    )
    return IssueResponse.model_validate(issue)


@router.patch("/issues", response_model=BatchUpdateResponse)
async def update_issues(
    body: BatchUpdateIssuesRequest,
    session: AsyncSession = Depends(get_session),
    svc: AnalysisService = Depends(get_analysis_service),
) -> BatchUpdateResponse:
    updated = await svc.update_issue_statuses(session, body.issue_ids, body.status)
    publish_on_commit(
        session,
        EventType.ISSUE_UPDATED,
        _SOURCE,
        {"issue_ids": body.issue_ids, "status": body.status},
    )
    return BatchUpdateResponse(updated=updated)


@router.get("/checker", response_model=CheckerStatus)
async def checker_status(checker: TypoChecker = Depends(get_checker)) -> CheckerStatus:
    return CheckerStatus(
        available=await checker.is_available(), version=await checker.get_version()
    )


@router.get("/auth", response_model=AuthStatusResponse)
async def auth_status() -> AuthStatusResponse:
    status = await check_auth()
    return AuthStatusResponse(
        installed=status.installed,
        version=status.version,
        authenticated=status.authenticated,
        username=status.username,
        recommended="gh-cli" if status.installed and status.authenticated else "local",
    )
