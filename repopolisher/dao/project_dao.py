"""ProjectDAO — projects table operations."""

from dataclasses import dataclass

from sqlalchemy import asc, desc, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from repopolisher.dao.base import BaseDAO, clamp_limit
from repopolisher.models.project import Project

_SORT_COLUMNS = {
    "name": Project.name,
    "stars": Project.stars,
    "updated_at": Project.updated_at,
    "issues_found": Project.issues_found,
}


@dataclass
class ProjectFilters:
    """Optional filters for project list queries."""

    source: str | None = None
    category: str | None = None
    search: str | None = None


class ProjectDAO(BaseDAO[Project]):
    model = Project

    async def list_filtered(
        self,
        session: AsyncSession,
        filters: ProjectFilters | None = None,
        *,
        sort_by: str = "updated_at",
        sort_order: str = "desc",
        limit: int = 50,
        offset: int = 0,
    ) -> list[Project]:
        """Filtered, sorted, offset-paginated project list."""
        query = select(Project)
        if filters:
            if filters.source is not None:
                query = query.where(Project.source == filters.source)
            if filters.category is not None:
                query = query.where(Project.category == filters.category)
            if filters.search:
                query = query.where(Project.name.ilike(f"%{filters.search}%"))

        column = _SORT_COLUMNS.get(sort_by, Project.updated_at)
        direction = asc if sort_order == "asc" else desc
        query = (
            query.order_by(direction(column), Project.id)
            .limit(clamp_limit(limit))
            .offset(max(offset, 0))
        )
        result = await session.execute(query)
        return list(result.scalars().all())

    async def summary(self, session: AsyncSession) -> dict:
        """Aggregate counts by source and category plus analysis coverage."""
        by_source_stmt = select(Project.source, func.count()).group_by(Project.source)
        by_category_stmt = select(Project.category, func.count()).group_by(Project.category)
        totals_stmt = select(
            func.count(),
            func.count().filter(Project.last_analyzed_at.is_not(None)),
            func.count().filter(Project.issues_found > 0),
        ).select_from(Project)

        by_source = {row[0]: row[1] for row in await session.execute(by_source_stmt)}
        by_category = {row[0]: row[1] for row in await session.execute(by_category_stmt)}
        total, analyzed, with_issues = (await session.execute(totals_stmt)).one()

        return {
            "total": total,
            "by_source": {key: by_source.get(key, 0) for key in ("local", "remote")},
            "by_category": {
                key: by_category.get(key, 0)
                for key in ("ai", "web", "cli", "library", "other")
            },
            "analyzed": analyzed,
            "with_issues": with_issues,
        }
