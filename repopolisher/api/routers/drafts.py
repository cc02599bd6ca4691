"""PR drafts router."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from repopolisher.api.deps import (
    get_draft_service,
    get_pr_submitter,
    get_session,
    get_session_factory,
    publish_on_commit,
)
from repopolisher.api.schemas.draft import (
    CreateDraftRequest,
    DraftCreatedResponse,
    DraftResponse,
    SubmitDraftRequest,
    SubmitDraftResponse,
    UpdateDraftRequest,
)
from repopolisher.core.events import EventType
from repopolisher.engines.pr_submitter import PRSubmitter
from repopolisher.services.pr_draft_service import PRDraftService

router = APIRouter()

_SOURCE = "api.drafts"


@router.post("/", response_model=DraftCreatedResponse, status_code=201)
async def create_draft(
    body: CreateDraftRequest,
    session: AsyncSession = Depends(get_session),
    svc: PRDraftService = Depends(get_draft_service),
) -> DraftCreatedResponse:
    created = await svc.create(
        session, body.project_id, body.issue_ids, title=body.title, body=body.body
    )
    publish_on_commit(
        session,
        EventType.PR_CREATED,
        _SOURCE,
        {"draft_id": created.draft_id, "project_id": body.project_id},
    )
    return DraftCreatedResponse.model_validate(created)


@router.get("/", response_model=list[DraftResponse])
async def list_drafts(
    project_id: str = Query(...),
    session: AsyncSession = Depends(get_session),
    svc: PRDraftService = Depends(get_draft_service),
) -> list[DraftResponse]:
    return [DraftResponse.model_validate(d) for d in await svc.list_by_project(session, project_id)]


@router.get("/{draft_id}", response_model=DraftResponse)
async def get_draft(
    draft_id: str,
    session: AsyncSession = Depends(get_session),
    svc: PRDraftService = Depends(get_draft_service),
) -> DraftResponse:
    return DraftResponse.model_validate(await svc.get(session, draft_id))


@router.patch("/{draft_id}", response_model=DraftResponse)
async def update_draft(
    draft_id: str,
    body: UpdateDraftRequest,
    session: AsyncSession = Depends(get_session),
    svc: PRDraftService = Depends(get_draft_service),
) -> DraftResponse:
    draft = await svc.update(
        session, draft_id, title=body.title, body=body.body, status=body.status
    )
    publish_on_commit(
        session, EventType.PR_UPDATED, _SOURCE, {"draft_id": draft_id, "status": draft.status}
    )
    return DraftResponse.model_validate(draft)


@router.post("/{draft_id}/submit", response_model=SubmitDraftResponse)
async def submit_draft(
    draft_id: str,
    body: SubmitDraftRequest,
    factory: async_sessionmaker[AsyncSession] = Depends(get_session_factory),
    submitter: PRSubmitter = Depends(get_pr_submitter),
) -> SubmitDraftResponse:
    result = await submitter.submit(factory, draft_id, body.method)
    return SubmitDraftResponse.model_validate(result)


@router.delete("/{draft_id}", status_code=204)
async def delete_draft(
    draft_id: str,
    session: AsyncSession = Depends(get_session),
    svc: PRDraftService = Depends(get_draft_service),
) -> None:
    await svc.delete(session, draft_id)
    publish_on_commit(session, EventType.PR_DELETED, _SOURCE, {"draft_id": draft_id})
