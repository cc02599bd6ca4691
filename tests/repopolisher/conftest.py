"""Shared fixtures for repopolisher tests.

Every test that needs persistence gets its own SQLite file under
``tmp_path``, so no external database is required.
"""

from __future__ import annotations

import pytest
import pytest_asyncio

from repopolisher.core.database import Database


@pytest_asyncio.fixture
async def database(tmp_path):
    db = Database(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}")
    await db.connect()
    await db.create_schema()
    yield db
    await db.close()


@pytest.fixture
def session_factory(database):
    return database.session_factory


@pytest_asyncio.fixture
async def session(session_factory):
    """A session inside an open transaction, rolled back after the test."""
    async with session_factory() as sess:
        async with sess.begin():
            yield sess
            await sess.rollback()
