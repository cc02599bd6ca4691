"""PRDraftDAO — pr_drafts table operations."""

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from repopolisher.dao.base import BaseDAO
from repopolisher.models.pr_draft import PRDraft


class PRDraftDAO(BaseDAO[PRDraft]):
    model = PRDraft

    async def list_by_project(self, session: AsyncSession, project_id: str) -> list[PRDraft]:
        """Drafts of a project, newest first."""
        stmt = (
            select(PRDraft)
            .where(PRDraft.project_id == project_id)
            .order_by(PRDraft.created_at.desc(), PRDraft.id.desc())
        )
        result = await session.execute(stmt)
        return list(result.scalars().all())
