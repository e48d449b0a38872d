"""Fixtures for tab-manager and service tests.  No external services required."""

from __future__ import annotations

from collections.abc import AsyncIterator
from pathlib import Path

import pytest
from fakes import FakeAuth, FakeNavigator, RecordingStore, counter_clock
from httpx import ASGITransport, AsyncClient

from tabsession.workspace.app import app
from tabsession.workspace.context import WorkspaceSession
from tabsession.workspace.history import LastClosedStack
from tabsession.workspace.models.enums import Platform
from tabsession.workspace.registry import TabRegistry
from tabsession.workspace.settings import TabSessionSettings
from tabsession.workspace.store.local import LocalTabSetStore


@pytest.fixture
def registry() -> TabRegistry:
    return TabRegistry(history=LastClosedStack(5), clock=counter_clock())


@pytest.fixture
def store() -> RecordingStore:
    return RecordingStore()


@pytest.fixture
def navigator() -> FakeNavigator:
    return FakeNavigator()


@pytest.fixture
def auth() -> FakeAuth:
    return FakeAuth()


@pytest.fixture
def settings() -> TabSessionSettings:
    return TabSessionSettings(
        debounce_seconds=0.05,
        save_retry_attempts=1,
        last_closed_limit=5,
    )


@pytest.fixture
async def session(
    store: RecordingStore,
    auth: FakeAuth,
    navigator: FakeNavigator,
    settings: TabSessionSettings,
) -> AsyncIterator[WorkspaceSession]:
    ws = WorkspaceSession(
        store=store,
        auth=auth,
        navigator=navigator,
        settings=settings,
        platform=Platform.OTHER,
        clock=counter_clock(),
    )
    yield ws
    await ws.aclose()


@pytest.fixture
async def client(tmp_path: Path) -> AsyncIterator[AsyncClient]:
    """Async HTTP client wired to the service with a local store under *tmp_path*.

    The app lifespan does NOT run under ``ASGITransport``, so state fields
    are pre-set here.
    """
    app.state.db_engine = None
    app.state.tab_store = LocalTabSetStore(tmp_path)

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.state.tab_store = None
