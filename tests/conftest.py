"""Shared test fixtures: a testcontainers PostgreSQL for integration tests.

The container is session-scoped (started once per test run).  Each test
function gets an isolated DB session via savepoint rollback.

Requires Docker.  Tests needing the container are marked with
``@pytest.mark.integration`` and are deselected by default; run them with
``pytest -m integration``.
"""

from __future__ import annotations

import os
from collections.abc import AsyncIterator, Iterator
from pathlib import Path
from typing import TYPE_CHECKING

import pytest
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from tabsession.workspace.settings import _get_settings_cached

if TYPE_CHECKING:
    from testcontainers.postgres import PostgresContainer


def _set_env(key: str, value: str) -> None:
    """Set an env var and invalidate the settings cache."""
    os.environ[key] = value
    _get_settings_cached.cache_clear()


@pytest.fixture(scope="session")
def pg_container() -> Iterator[PostgresContainer]:
    """Start a PostgreSQL 17 container for the test session."""
    from testcontainers.postgres import PostgresContainer

    with PostgresContainer(
        image="postgres:17",
        username="test",
        password="test",
        dbname="tabsession_test",
        driver="psycopg",
    ) as pg:
        yield pg


@pytest.fixture(scope="session")
def pg_url(pg_container: PostgresContainer) -> str:
    """PostgreSQL URL (psycopg3 dialect) with Alembic migrations applied."""
    url = pg_container.get_connection_url()
    _set_env("TABSESSION_DATABASE_URL", url)

    from alembic import command
    from alembic.config import Config

    ini_path = Path(__file__).parent.parent / "tabsession" / "workspace" / "alembic.ini"
    command.upgrade(Config(str(ini_path)), "head")

    return url


@pytest.fixture(scope="session")
def async_engine(pg_url: str) -> Iterator[AsyncEngine]:
    engine = create_async_engine(pg_url)
    yield engine
    engine.sync_engine.dispose()


@pytest.fixture
async def db_session(async_engine: AsyncEngine) -> AsyncIterator[AsyncSession]:
    """Async SQLAlchemy session; all changes rolled back after the test.

    ``join_transaction_mode="create_savepoint"`` makes ``session.commit()``
    inside tested code commit only a savepoint, while the outer transaction
    is rolled back at teardown.
    """
    async with async_engine.connect() as conn:
        await conn.begin()
        session = AsyncSession(bind=conn, join_transaction_mode="create_savepoint")
        yield session
        await session.close()
        await conn.rollback()


@pytest.fixture
async def session_factory(async_engine: AsyncEngine) -> AsyncIterator[async_sessionmaker[AsyncSession]]:
    """Session factory for store-level tests; rows are deleted after the test."""
    from sqlalchemy import delete

    from tabsession.workspace.db.tables import UserTabSet

    factory = async_sessionmaker(async_engine, expire_on_commit=False)
    yield factory
    async with factory() as db:
        await db.execute(delete(UserTabSet))
        await db.commit()
