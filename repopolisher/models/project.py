"""projects table."""

from datetime import datetime
from typing import Optional

from sqlalchemy import JSON, DateTime, Enum, Index, Integer, Text, text
from sqlalchemy.orm import Mapped, mapped_column

from repopolisher.core.database import Base, TimestampMixin, new_id

project_source_enum = Enum("local", "remote", name="project_source")
project_category_enum = Enum(
    "ai", "web", "cli", "library", "other", name="project_category"
)


class Project(TimestampMixin, Base):
    __tablename__ = "projects"

    id: Mapped[str] = mapped_column(Text, primary_key=True, default=new_id)
    source: Mapped[str] = mapped_column(project_source_enum, nullable=False)
    name: Mapped[str] = mapped_column(Text, nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text)
    category: Mapped[str] = mapped_column(
        project_category_enum, nullable=False, default="other"
    )
    # language -> file count (local) or byte count (remote)
    languages: Mapped[dict[str, int]] = mapped_column(JSON, nullable=False, default=dict)

    # local source
    local_path: Mapped[Optional[str]] = mapped_column(Text, unique=True)
    local_git_remote: Mapped[Optional[str]] = mapped_column(Text)
    local_last_modified: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))

    # remote source
    remote_owner: Mapped[Optional[str]] = mapped_column(Text)
    remote_repo: Mapped[Optional[str]] = mapped_column(Text)
    remote_url: Mapped[Optional[str]] = mapped_column(Text, unique=True)
    default_branch: Mapped[Optional[str]] = mapped_column(Text)
    stars: Mapped[Optional[int]] = mapped_column(Integer)

    # analysis stats
    analysis_count: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0, server_default=text("0")
    )
    last_analyzed_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
    issues_found: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0, server_default=text("0")
    )

    __table_args__ = (
        Index("idx_projects_source", "source"),
        Index("idx_projects_updated", "updated_at"),
    )
