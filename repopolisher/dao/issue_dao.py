"""IssueDAO — issues table operations."""

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from repopolisher.dao.base import BaseDAO
from repopolisher.models.issue import Issue


class IssueDAO(BaseDAO[Issue]):
    model = Issue

    async def list_by_project(
        self,
        session: AsyncSession,
        project_id: str,
        status: str | None = None,
    ) -> list[Issue]:
        """Issues of a project ordered by file and position."""
        stmt = select(Issue).where(Issue.project_id == project_id)
        if status is not None:
            stmt = stmt.where(Issue.status == status)
        stmt = stmt.order_by(Issue.file_path, Issue.line, Issue.column, Issue.id)
        result = await session.execute(stmt)
        return list(result.scalars().all())

    async def count_by_status(self, session: AsyncSession, project_id: str) -> dict[str, int]:
        stmt = (
            select(Issue.status, func.count())
            .where(Issue.project_id == project_id)
            .group_by(Issue.status)
        )
        counts = {row[0]: row[1] for row in await session.execute(stmt)}
        return {key: counts.get(key, 0) for key in ("open", "included", "ignored", "fixed")}
