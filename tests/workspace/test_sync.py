"""Unit tests for PersistenceSync: load, debounce, hash gating and failures."""

from __future__ import annotations

import asyncio
from pathlib import Path

from fakes import RecordingStore, make_tab

from tabsession.workspace.models.enums import SyncPhase
from tabsession.workspace.models.tab import DASHBOARD_TAB_ID, PersistedTab, TabSet
from tabsession.workspace.registry import TabRegistry
from tabsession.workspace.store.local import LocalTabSetStore
from tabsession.workspace.sync import PersistenceSync

USER = "user-1"


def _stored_set() -> TabSet:
    return TabSet(
        tabs=[
            PersistedTab(id=DASHBOARD_TAB_ID, route="/dashboard", title="Dashboard", module_code="dashboard"),
            PersistedTab(id="emp-42", route="/employees/42", title="Jane Doe", module_code="workforce"),
        ],
        active_tab_id="emp-42",
    )


def _make_sync(registry: TabRegistry, store: object, **kwargs: object) -> PersistenceSync:
    options: dict[str, object] = {"debounce_seconds": 0.01, "retry_attempts": 1, "retry_wait": 0}
    options.update(kwargs)
    return PersistenceSync(registry, store, **options)  # type: ignore[arg-type]


# ---------------------------------------------------------------------------
# Initial load
# ---------------------------------------------------------------------------


async def test_start_restores_without_writing(registry: TabRegistry) -> None:
    store = RecordingStore({USER: _stored_set()})
    sync = _make_sync(registry, store)

    restored = await sync.start(USER)
    await sync.wait_idle()

    assert restored is True
    assert sync.phase is SyncPhase.SYNCING
    assert [t.id for t in registry.tabs] == [DASHBOARD_TAB_ID, "emp-42"]
    assert registry.active_tab_id == "emp-42"
    assert store.saves == []
    assert sync.last_saved_hash == _stored_set().content_hash()


async def test_start_without_stored_state_keeps_defaults(registry: TabRegistry) -> None:
    store = RecordingStore()
    sync = _make_sync(registry, store)

    assert await sync.start(USER) is False
    assert [t.id for t in registry.tabs] == [DASHBOARD_TAB_ID]
    assert sync.last_saved_hash is None

    registry.open_or_focus(make_tab("a"))
    await sync.wait_idle()

    assert len(store.saves) == 1


async def test_empty_stored_set_treated_as_absent(registry: TabRegistry) -> None:
    store = RecordingStore({USER: TabSet(tabs=[], active_tab_id=None)})
    sync = _make_sync(registry, store)

    assert await sync.start(USER) is False
    assert registry.active_tab_id == DASHBOARD_TAB_ID


async def test_load_failure_falls_back_to_defaults(registry: TabRegistry) -> None:
    store = RecordingStore()
    store.load_error = OSError("connection refused")
    sync = _make_sync(registry, store)

    assert await sync.start(USER) is False
    assert sync.phase is SyncPhase.SYNCING
    assert [t.id for t in registry.tabs] == [DASHBOARD_TAB_ID]


async def test_load_failure_discards_tabs_already_in_registry(registry: TabRegistry) -> None:
    registry.open_or_focus(make_tab("stale"))
    store = RecordingStore()
    store.load_error = OSError("connection refused")
    sync = _make_sync(registry, store)

    assert await sync.start(USER) is False
    assert [t.id for t in registry.tabs] == [DASHBOARD_TAB_ID]
    assert registry.active_tab_id == DASHBOARD_TAB_ID


async def test_malformed_stored_file_falls_back_to_defaults(registry: TabRegistry, tmp_path: Path) -> None:
    store = LocalTabSetStore(tmp_path)
    path = tmp_path / "tab_sets" / f"{USER}.json"
    path.parent.mkdir(parents=True)
    path.write_text("{not json", encoding="utf-8")
    sync = _make_sync(registry, store)

    assert await sync.start(USER) is False
    assert [t.id for t in registry.tabs] == [DASHBOARD_TAB_ID]


async def test_changes_during_load_are_not_written(registry: TabRegistry) -> None:
    store = RecordingStore({USER: _stored_set()})
    store.load_gate = asyncio.Event()
    sync = _make_sync(registry, store)

    task = asyncio.create_task(sync.start(USER))
    await asyncio.sleep(0)
    assert sync.is_initial_load

    registry.open_or_focus(make_tab("early"))
    store.load_gate.set()
    await task
    await sync.wait_idle()

    assert store.saves == []
    assert "early" not in registry
    assert registry.active_tab_id == "emp-42"


async def test_stop_during_load_discards_result(registry: TabRegistry) -> None:
    store = RecordingStore({USER: _stored_set()})
    store.load_gate = asyncio.Event()
    sync = _make_sync(registry, store)

    task = asyncio.create_task(sync.start(USER))
    await asyncio.sleep(0)
    await sync.stop()
    store.load_gate.set()

    assert await task is False
    assert sync.phase is SyncPhase.IDLE
    assert [t.id for t in registry.tabs] == [DASHBOARD_TAB_ID]


async def test_switching_user_starts_from_defaults(registry: TabRegistry) -> None:
    store = RecordingStore({"alice": _stored_set()})
    sync = _make_sync(registry, store, debounce_seconds=60)
    await sync.start("alice")
    registry.open_or_focus(make_tab("payroll-7"))

    assert await sync.start("bob") is False
    assert [t.id for t in registry.tabs] == [DASHBOARD_TAB_ID]
    assert sync.user_id == "bob"

    registry.open_or_focus(make_tab("bobtab"))
    await sync.flush()

    assert [t.id for t in store.data["bob"].tabs] == [DASHBOARD_TAB_ID, "bobtab"]
    assert [t.id for t in store.data["alice"].tabs] == [DASHBOARD_TAB_ID, "emp-42", "payroll-7"]


async def test_restart_for_same_user_keeps_unsaved_changes(registry: TabRegistry) -> None:
    store = RecordingStore({USER: _stored_set()})
    sync = _make_sync(registry, store, debounce_seconds=60)
    await sync.start(USER)
    registry.open_or_focus(make_tab("b"))

    assert await sync.start(USER) is False

    assert [t.id for t in registry.tabs] == [DASHBOARD_TAB_ID, "emp-42", "b"]
    assert sync.phase is SyncPhase.SYNCING
    assert len(store.saves) == 1
    assert store.data[USER] == registry.to_tab_set()
    assert sync.pending is None


# ---------------------------------------------------------------------------
# Debounce and hash gating
# ---------------------------------------------------------------------------


async def test_burst_collapses_into_one_write_of_final_state(registry: TabRegistry) -> None:
    store = RecordingStore()
    sync = _make_sync(registry, store)
    await sync.start(USER)

    for name in ("a", "b", "c", "d"):
        registry.open_or_focus(make_tab(name))
    registry.close_tab("b")
    registry.focus_tab("a")
    await sync.wait_idle()

    assert len(store.saves) == 1
    user_id, saved = store.saves[0]
    assert user_id == USER
    assert saved == registry.to_tab_set()
    assert sync.last_saved_hash == saved.content_hash()


async def test_focusing_active_tab_does_not_write(registry: TabRegistry) -> None:
    store = RecordingStore({USER: _stored_set()})
    sync = _make_sync(registry, store)
    await sync.start(USER)

    registry.focus_tab("emp-42")
    await sync.wait_idle()

    assert store.saves == []
    assert sync.pending is None


async def test_dirty_flag_toggle_does_not_write(registry: TabRegistry) -> None:
    store = RecordingStore({USER: _stored_set()})
    sync = _make_sync(registry, store)
    await sync.start(USER)

    registry.mark_dirty("emp-42")
    registry.mark_dirty("emp-42", False)
    await sync.wait_idle()

    assert store.saves == []


async def test_reverted_change_drops_pending_write(registry: TabRegistry) -> None:
    store = RecordingStore({USER: _stored_set()})
    sync = _make_sync(registry, store)
    await sync.start(USER)

    registry.focus_tab(DASHBOARD_TAB_ID)
    assert sync.pending is not None
    registry.focus_tab("emp-42")
    assert sync.pending is None
    await sync.wait_idle()

    assert store.saves == []


async def test_second_change_after_save_writes_again(registry: TabRegistry) -> None:
    store = RecordingStore()
    sync = _make_sync(registry, store)
    await sync.start(USER)

    registry.open_or_focus(make_tab("a"))
    await sync.wait_idle()
    registry.open_or_focus(make_tab("b"))
    await sync.wait_idle()

    assert [len(saved.tabs) for _, saved in store.saves] == [2, 3]


# ---------------------------------------------------------------------------
# Explicit flush / stop
# ---------------------------------------------------------------------------


async def test_flush_writes_before_debounce_elapses(registry: TabRegistry) -> None:
    store = RecordingStore()
    sync = _make_sync(registry, store, debounce_seconds=60)
    await sync.start(USER)

    registry.open_or_focus(make_tab("a"))
    assert store.saves == []

    await asyncio.wait_for(sync.flush(), timeout=5)

    assert len(store.saves) == 1
    assert sync.pending is None


async def test_stop_discards_pending_write(registry: TabRegistry) -> None:
    store = RecordingStore()
    sync = _make_sync(registry, store, debounce_seconds=60)
    await sync.start(USER)

    registry.open_or_focus(make_tab("a"))
    await sync.stop()

    assert store.saves == []
    assert sync.pending is None
    assert sync.phase is SyncPhase.IDLE

    registry.open_or_focus(make_tab("b"))
    assert sync.pending is None


async def test_close_unsubscribes_from_registry(registry: TabRegistry) -> None:
    store = RecordingStore()
    sync = _make_sync(registry, store)
    await sync.start(USER)
    await sync.close()

    await sync.start(USER)
    registry.open_or_focus(make_tab("a"))
    await sync.wait_idle()

    assert store.saves == []


# ---------------------------------------------------------------------------
# Write failures
# ---------------------------------------------------------------------------


async def test_failed_write_keeps_local_state_and_retries_on_next_change(registry: TabRegistry) -> None:
    store = RecordingStore()
    store.failures_left = 1
    sync = _make_sync(registry, store)
    await sync.start(USER)

    registry.open_or_focus(make_tab("a"))
    await sync.wait_idle()

    assert store.saves == []
    assert sync.last_saved_hash is None
    assert "a" in registry

    registry.open_or_focus(make_tab("b"))
    await sync.wait_idle()

    assert len(store.saves) == 1
    assert sync.last_saved_hash == registry.to_tab_set().content_hash()


async def test_failed_snapshot_is_written_when_reproduced(registry: TabRegistry) -> None:
    store = RecordingStore()
    sync = _make_sync(registry, store)
    await sync.start(USER)
    registry.open_or_focus(make_tab("a"))
    await sync.wait_idle()
    saved_hash = sync.last_saved_hash

    store.failures_left = 1
    registry.focus_tab(DASHBOARD_TAB_ID)
    await sync.wait_idle()
    assert sync.last_saved_hash == saved_hash

    registry.focus_tab("a")
    registry.focus_tab(DASHBOARD_TAB_ID)
    await sync.wait_idle()

    assert store.saves[-1][1].active_tab_id == DASHBOARD_TAB_ID
    assert sync.last_saved_hash != saved_hash


async def test_transient_failures_are_retried_with_backoff(registry: TabRegistry) -> None:
    store = RecordingStore()
    store.failures_left = 2
    sync = _make_sync(registry, store, retry_attempts=3)
    await sync.start(USER)

    registry.open_or_focus(make_tab("a"))
    await sync.wait_idle()

    assert store.save_attempts == 3
    assert len(store.saves) == 1
