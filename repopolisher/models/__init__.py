"""SQLAlchemy ORM models — one file per table."""

from repopolisher.models.analysis_task import AnalysisTask
from repopolisher.models.issue import Issue
from repopolisher.models.pr_draft import PRDraft
from repopolisher.models.project import Project

__all__ = [
    "Project",
    "AnalysisTask",
    "Issue",
    "PRDraft",
]
