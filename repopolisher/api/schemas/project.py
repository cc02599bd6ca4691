"""Project request/response schemas."""

from __future__ import annotations

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, field_validator


class AddLocalProjectRequest(BaseModel):
    path: str

    @field_validator("path", mode="before")
    @classmethod
    def _strip_whitespace(cls, v: str) -> str:
        return v.strip() if isinstance(v, str) else v


class AddRemoteProjectRequest(BaseModel):
    url: str

    @field_validator("url", mode="before")
    @classmethod
    def _strip_whitespace(cls, v: str) -> str:
        return v.strip() if isinstance(v, str) else v


class ProjectResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    source: Literal["local", "remote"]
    name: str
    description: str | None
    category: str
    languages: dict[str, int]
    local_path: str | None
    local_git_remote: str | None
    local_last_modified: datetime | None
    remote_owner: str | None
    remote_repo: str | None
    remote_url: str | None
    default_branch: str | None
    stars: int | None
    analysis_count: int
    last_analyzed_at: datetime | None
    issues_found: int
    created_at: datetime
    updated_at: datetime


class ProjectStats(BaseModel):
    total: int
    by_source: dict[str, int]
    by_category: dict[str, int]
    analyzed: int
    with_issues: int


class ProjectPathResponse(BaseModel):
    path: str | None
