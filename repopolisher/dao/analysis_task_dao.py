"""AnalysisTaskDAO — analysis_tasks table operations."""

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from repopolisher.dao.base import BaseDAO
from repopolisher.models.analysis_task import AnalysisTask


class AnalysisTaskDAO(BaseDAO[AnalysisTask]):
    model = AnalysisTask

    async def list_by_project(self, session: AsyncSession, project_id: str) -> list[AnalysisTask]:
        """All tasks of a project, newest first."""
        stmt = (
            select(AnalysisTask)
            .where(AnalysisTask.project_id == project_id)
            .order_by(AnalysisTask.created_at.desc(), AnalysisTask.id.desc())
        )
        result = await session.execute(stmt)
        return list(result.scalars().all())
