"""issues table."""

from datetime import datetime
from typing import Optional

from sqlalchemy import DateTime, Enum, Float, ForeignKey, Index, Integer, Text
from sqlalchemy.orm import Mapped, mapped_column

from repopolisher.core.database import Base, new_id, utcnow

issue_status_enum = Enum("open", "included", "ignored", "fixed", name="issue_status")
issue_severity_enum = Enum("error", "warning", "info", name="issue_severity")


class Issue(Base):
    __tablename__ = "issues"

    id: Mapped[str] = mapped_column(Text, primary_key=True, default=new_id)
    task_id: Mapped[str] = mapped_column(
        Text, ForeignKey("analysis_tasks.id", ondelete="CASCADE"), nullable=False
    )
    project_id: Mapped[str] = mapped_column(
        Text, ForeignKey("projects.id", ondelete="CASCADE"), nullable=False
    )
    type: Mapped[str] = mapped_column(Text, nullable=False, default="typo")
    file_path: Mapped[str] = mapped_column(Text, nullable=False)
    line: Mapped[int] = mapped_column(Integer, nullable=False)
    column: Mapped[int] = mapped_column(Integer, nullable=False)
    message: Mapped[str] = mapped_column(Text, nullable=False)
    severity: Mapped[str] = mapped_column(issue_severity_enum, nullable=False, default="warning")
    original: Mapped[Optional[str]] = mapped_column(Text)
    suggestion: Mapped[Optional[str]] = mapped_column(Text)
    context: Mapped[Optional[str]] = mapped_column(Text)
    confidence: Mapped[Optional[float]] = mapped_column(Float)
    status: Mapped[str] = mapped_column(issue_status_enum, nullable=False, default="open")
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False
    )

    __table_args__ = (
        Index("idx_issues_project_status", "project_id", "status"),
        Index("idx_issues_task", "task_id"),
    )
