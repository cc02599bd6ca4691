"""Analysis task and issue schemas."""

from __future__ import annotations

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

IssueStatus = Literal["open", "included", "ignored", "fixed"]


class StartAnalysisRequest(BaseModel):
    project_id: str


class StartAnalysisResponse(BaseModel):
    task_id: str
    issues_found: int
    files_scanned: int


class AnalysisTaskResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    project_id: str
    type: str
    status: str
    progress: float
    issues_found: int
    files_scanned: int
    error: str | None
    started_at: datetime | None
    completed_at: datetime | None
    created_at: datetime


class IssueResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    task_id: str
    project_id: str
    type: str
    file_path: str
    line: int
    column: int
    message: str
    severity: str
    original: str | None
    suggestion: str | None
    context: str | None
    confidence: float | None
    status: IssueStatus
    created_at: datetime


class UpdateIssueRequest(BaseModel):
    status: IssueStatus


class BatchUpdateIssuesRequest(BaseModel):
    issue_ids: list[str] = Field(min_length=1)
    status: IssueStatus


class BatchUpdateResponse(BaseModel):
    updated: int


class CheckerStatus(BaseModel):
    available: bool
    version: str | None


class AuthStatusResponse(BaseModel):
    installed: bool
    version: str | None
    authenticated: bool
    username: str | None
    recommended: Literal["gh-cli", "local"]


class IssueCountsResponse(BaseModel):
    open: int = 0
    included: int = 0
    ignored: int = 0
    fixed: int = 0
