"""pr_drafts table."""

from datetime import datetime
from typing import Any, Optional

from sqlalchemy import JSON, DateTime, Enum, ForeignKey, Index, Integer, Text
from sqlalchemy.orm import Mapped, mapped_column

from repopolisher.core.database import Base, TimestampMixin, new_id

pr_status_enum = Enum(
    "draft", "ready", "submitted", "merged", "closed", name="pr_status"
)
submit_method_enum = Enum("gh-cli", "local", name="submit_method")


class PRDraft(TimestampMixin, Base):
    __tablename__ = "pr_drafts"

    id: Mapped[str] = mapped_column(Text, primary_key=True, default=new_id)
    project_id: Mapped[str] = mapped_column(
        Text, ForeignKey("projects.id", ondelete="CASCADE"), nullable=False
    )
    title: Mapped[str] = mapped_column(Text, nullable=False)
    body: Mapped[str] = mapped_column(Text, nullable=False)
    branch: Mapped[str] = mapped_column(Text, nullable=False)
    base_branch: Mapped[str] = mapped_column(Text, nullable=False)
    # snapshot of issue ids, not a live join
    issue_ids: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    files: Mapped[list[dict[str, Any]]] = mapped_column(JSON, nullable=False, default=list)
    status: Mapped[str] = mapped_column(pr_status_enum, nullable=False, default="draft")
    pr_url: Mapped[Optional[str]] = mapped_column(Text)
    pr_number: Mapped[Optional[int]] = mapped_column(Integer)
    submit_method: Mapped[Optional[str]] = mapped_column(submit_method_enum)
    submitted_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))

    __table_args__ = (Index("idx_pr_drafts_project", "project_id", "created_at"),)
