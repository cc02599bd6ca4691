"""PR draft schemas."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field


class CreateDraftRequest(BaseModel):
    project_id: str
    issue_ids: list[str] = Field(min_length=1)
    title: str | None = None
    body: str | None = None


class DraftCreatedResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    draft_id: str
    title: str
    body: str
    branch: str


class UpdateDraftRequest(BaseModel):
    title: str | None = None
    body: str | None = None
    status: Literal["draft", "ready", "merged", "closed"] | None = None


class SubmitDraftRequest(BaseModel):
    method: Literal["gh-cli", "local"] = "gh-cli"


class SubmitDraftResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    success: bool
    message: str
    pr_url: str | None
    pr_number: int | None
    warnings: list[str]


class DraftResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    project_id: str
    title: str
    body: str
    branch: str
    base_branch: str
    issue_ids: list[str]
    files: list[dict[str, Any]]
    status: str
    pr_url: str | None
    pr_number: int | None
    submit_method: str | None
    submitted_at: datetime | None
    created_at: datetime
    updated_at: datetime
