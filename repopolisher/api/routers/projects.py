"""Projects router."""

from __future__ import annotations

from typing import Literal

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from repopolisher.api.deps import get_project_service, get_session, publish_on_commit
from repopolisher.api.schemas.project import (
    AddLocalProjectRequest,
    AddRemoteProjectRequest,
    ProjectPathResponse,
    ProjectResponse,
    ProjectStats,
)
from repopolisher.core.events import EventType
from repopolisher.services.project_service import ProjectService

router = APIRouter()

_SOURCE = "api.projects"


@router.get("/", response_model=list[ProjectResponse])
async def list_projects(
    source: Literal["local", "remote"] | None = Query(None),
    category: str | None = Query(None),
    search: str | None = Query(None),
    sort_by: Literal["name", "stars", "updated_at", "issues_found"] = Query("updated_at"),
    sort_order: Literal["asc", "desc"] = Query("desc"),
    limit: int = Query(50, ge=1, le=100),
    offset: int = Query(0, ge=0),
    session: AsyncSession = Depends(get_session),
    svc: ProjectService = Depends(get_project_service),
) -> list[ProjectResponse]:
    projects = await svc.list(
        session,
        source=source,
        category=category,
        search=search,
        sort_by=sort_by,
        sort_order=sort_order,
        limit=limit,
        offset=offset,
    )
    return [ProjectResponse.model_validate(p) for p in projects]


@router.get("/stats", response_model=ProjectStats)
async def project_stats(
    session: AsyncSession = Depends(get_session),
    svc: ProjectService = Depends(get_project_service),
) -> ProjectStats:
    return ProjectStats(**await svc.stats(session))


@router.get("/{project_id}", response_model=ProjectResponse)
async def get_project(
    project_id: str,
    session: AsyncSession = Depends(get_session),
    svc: ProjectService = Depends(get_project_service),
) -> ProjectResponse:
    return ProjectResponse.model_validate(await svc.get(session, project_id))


@router.get("/{project_id}/path", response_model=ProjectPathResponse)
async def get_project_path(
    project_id: str,
    session: AsyncSession = Depends(get_session),
    svc: ProjectService = Depends(get_project_service),
) -> ProjectPathResponse:
    return ProjectPathResponse(path=await svc.working_copy_path(session, project_id))


@router.post("/local", response_model=ProjectResponse, status_code=201)
async def add_local_project(
    body: AddLocalProjectRequest,
    session: AsyncSession = Depends(get_session),
    svc: ProjectService = Depends(get_project_service),
) -> ProjectResponse:
    project = await svc.add_local(session, body.path)
    publish_on_commit(
        session, EventType.PROJECT_ADDED, _SOURCE, {"project_id": project.id, "source": "local"}
    )
    return ProjectResponse.model_validate(project)


@router.post("/remote", response_model=ProjectResponse, status_code=201)
async def add_remote_project(
    body: AddRemoteProjectRequest,
    session: AsyncSession = Depends(get_session),
    svc: ProjectService = Depends(get_project_service),
) -> ProjectResponse:
    project = await svc.add_remote(session, body.url)
    publish_on_commit(
        session, EventType.PROJECT_ADDED, _SOURCE, {"project_id": project.id, "source": "remote"}
    )
    return ProjectResponse.model_validate(project)


@router.delete("/{project_id}", status_code=204)
async def remove_project(
    project_id: str,
    session: AsyncSession = Depends(get_session),
    svc: ProjectService = Depends(get_project_service),
) -> None:
    await svc.remove(session, project_id)
    publish_on_commit(session, EventType.PROJECT_REMOVED, _SOURCE, {"project_id": project_id})
