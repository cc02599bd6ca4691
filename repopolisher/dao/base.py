"""Generic base DAO — CRUD (ORM) + bulk helpers (Core)."""

from collections.abc import Sequence
from typing import Any, Generic, TypeVar

from sqlalchemy import func, select, update
from sqlalchemy import exists as sa_exists
from sqlalchemy.ext.asyncio import AsyncSession

from repopolisher.core.database import Base

ModelT = TypeVar("ModelT", bound=Base)

LIMIT_MIN = 1
LIMIT_MAX = 100


def clamp_limit(limit: int) -> int:
    return max(LIMIT_MIN, min(limit, LIMIT_MAX))


class BaseDAO(Generic[ModelT]):
    """Base data-access object. Subclasses set ``model`` class attribute."""

    model: type[ModelT]

    # ── ORM methods ──────────────────────────────────────────────────────

    @staticmethod
    def _require_pk(pk: str) -> None:
        """Raise ValueError if *pk* is empty."""
        if not pk:
            raise ValueError("pk must not be empty")

    async def get_by_id(self, session: AsyncSession, pk: str) -> ModelT | None:
        self._require_pk(pk)
        return await session.get(self.model, pk)

    async def create(self, session: AsyncSession, **values: Any) -> ModelT:
        obj = self.model(**values)
        session.add(obj)
        await session.flush()
        await session.refresh(obj)
        return obj

    async def add_all(self, session: AsyncSession, objs: Sequence[ModelT]) -> list[ModelT]:
        """Persist already-built model instances in a single flush."""
        session.add_all(objs)
        await session.flush()
        return list(objs)

    async def update(self, session: AsyncSession, pk: str, **values: Any) -> ModelT | None:
        self._require_pk(pk)
        obj = await session.get(self.model, pk)
        if obj is None:
            return None
        immutable = {"id", "created_at"}
        column_keys = set(self.model.__mapper__.column_attrs.keys())
        for key in values:
            if key in immutable:
                raise AttributeError(f"'{key}' is immutable and cannot be updated")
            if key not in column_keys:
                raise AttributeError(f"{self.model.__name__} has no column '{key}'")
        for key, val in values.items():
            setattr(obj, key, val)
        await session.flush()
        await session.refresh(obj)
        return obj

    async def delete(self, session: AsyncSession, pk: str) -> bool:
        self._require_pk(pk)
        obj = await session.get(self.model, pk)
        if obj is None:
            return False
        await session.delete(obj)
        await session.flush()
        return True

    async def exists(self, session: AsyncSession, pk: str) -> bool:
        """Check existence without loading the full ORM object."""
        self._require_pk(pk)
        table = self.model.__table__
        stmt = select(sa_exists().where(table.c.id == pk))
        result = await session.execute(stmt)
        return result.scalar_one()

    async def get_by_field(self, session: AsyncSession, **filters: Any) -> ModelT | None:
        """Return the first row matching all *filters*, or None.

        Raises ``ValueError`` if called without any filters.
        """
        if not filters:
            raise ValueError("get_by_field() requires at least one filter")
        stmt = select(self.model)
        for key, val in filters.items():
            stmt = stmt.where(getattr(self.model, key) == val)
        result = await session.execute(stmt)
        return result.scalars().first()

    async def list_by_ids(self, session: AsyncSession, ids: Sequence[str]) -> list[ModelT]:
        """Return rows whose id is in *ids*, in the order of *ids*.

        Unknown ids are dropped silently.
        """
        if not ids:
            return []
        stmt = select(self.model).where(self.model.id.in_(list(ids)))  # type: ignore[attr-defined]
        result = await session.execute(stmt)
        by_id = {row.id: row for row in result.scalars().all()}  # type: ignore[attr-defined]
        ordered: list[ModelT] = []
        seen: set[str] = set()
        for pk in ids:
            if pk in by_id and pk not in seen:
                ordered.append(by_id[pk])
                seen.add(pk)
        return ordered

    # ── Core methods ─────────────────────────────────────────────────────

    async def update_many(self, session: AsyncSession, ids: Sequence[str], **values: Any) -> int:
        """Set *values* on every row in *ids*. Returns the affected row count."""
        if not ids:
            return 0
        stmt = (
            update(self.model)
            .where(self.model.id.in_(list(ids)))  # type: ignore[attr-defined]
            .values(**values)
        )
        result = await session.execute(stmt)
        return result.rowcount or 0

    async def count(self, session: AsyncSession, query=None) -> int:
        """Return the row count for *query*, or total rows if query is None."""
        if query is None:
            query = select(func.count()).select_from(self.model.__table__)
        else:
            query = select(func.count()).select_from(query.subquery())

        result = await session.execute(query)
        return result.scalar_one()
