"""Async database handle, session factory, and declarative base."""

from __future__ import annotations

import os
import uuid
from datetime import datetime, timezone

import structlog
from sqlalchemy import DateTime, MetaData, event
from sqlalchemy.ext.asyncio import (
    AsyncAttrs,
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from repopolisher.core.paths import data_dir

log = structlog.get_logger(__name__)

# Naming convention for constraints (Alembic auto-migration friendly)
convention = {
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_name)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "fk": "fk_%(table_name)s_%(column_0_name)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}


def new_id() -> str:
    """Synthetic string identity used by every table."""
    return uuid.uuid4().hex


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Base(AsyncAttrs, DeclarativeBase):
    """Base class for all ORM models."""

    metadata = MetaData(naming_convention=convention)


class TimestampMixin:
    """Mixin that adds created_at / updated_at columns.

    Both are set client-side so SQLite and PostgreSQL behave the same and
    the ORM object has a value before flush.
    """

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False
    )


def default_database_url() -> str:
    return os.environ.get(
        "REPOPOLISHER_DATABASE_URL",
        f"sqlite+aiosqlite:///{data_dir() / 'repopolisher.db'}",
    )


def _enable_sqlite_foreign_keys(dbapi_connection, _record) -> None:
    # Cascading deletes rely on FK enforcement, which SQLite disables by default.
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


class Database:
    """Explicitly constructed persistence handle.

    Created once at process startup and passed to whoever needs sessions.
    ``connect()`` must be awaited before ``session_factory`` is used and
    ``close()`` disposes the pooled connections on shutdown.
    """

    def __init__(self, url: str | None = None) -> None:
        self.url = url or default_database_url()
        self._engine: AsyncEngine | None = None
        self._session_factory: async_sessionmaker[AsyncSession] | None = None

    @property
    def is_connected(self) -> bool:
        return self._engine is not None

    @property
    def engine(self) -> AsyncEngine:
        if self._engine is None:
            raise RuntimeError("call Database.connect() before using the engine")
        return self._engine

    @property
    def session_factory(self) -> async_sessionmaker[AsyncSession]:
        if self._session_factory is None:
            raise RuntimeError("call Database.connect() before opening sessions")
        return self._session_factory

    async def connect(self) -> None:
        """Create the async engine and session factory (idempotent)."""
        if self._engine is not None:
            return
        if self.url.startswith("sqlite"):
            self._prepare_sqlite_dir()
            engine = create_async_engine(self.url)
            event.listen(engine.sync_engine, "connect", _enable_sqlite_foreign_keys)
        else:
            engine = create_async_engine(
                self.url,
                pool_pre_ping=True,
                pool_size=10,
                max_overflow=20,
                pool_recycle=1800,
            )
        self._engine = engine
        self._session_factory = async_sessionmaker(engine, expire_on_commit=False)
        log.info("database.connected", dialect=engine.dialect.name)

    async def create_schema(self) -> None:
        """Create all tables that do not exist yet."""
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    async def close(self) -> None:
        """Dispose the async engine, closing all pooled connections."""
        if self._engine is not None:
            await self._engine.dispose()
            self._engine = None
            self._session_factory = None
            log.info("database.closed")

    def _prepare_sqlite_dir(self) -> None:
        _, _, path = self.url.partition(":///")
        if path and path != ":memory:":
            os.makedirs(os.path.dirname(os.path.abspath(path)), exist_ok=True)
