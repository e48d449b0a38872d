"""Debounced, hash-gated synchronization of the tab registry to a tab-set store.

Lifecycle per user session::

    IDLE --start(user)--> LOADING --load done/absent/failed--> SYNCING --stop()--> IDLE

While LOADING, registry changes are observed but never written: the default
dashboard-only state must not overwrite a real persisted set that is still
being fetched.

While SYNCING, each change is serialized and hashed.  A hash equal to the
last *confirmed* write is dropped.  Anything else fills a single pending-write
slot (latest snapshot, its hash, a due time) and a background flusher writes
the slot once the due time passes.  Bursts of changes only move the snapshot
and the due time, so they collapse into one write of the final state.

``last_saved_hash`` moves only after a successful write.  A failed write
leaves it stale so the next change (even one that reproduces the failed
snapshot) is written again.  Cross-device policy is last-write-wins.
"""

from __future__ import annotations

import asyncio
import contextlib
import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING

from loguru import logger
from tenacity import AsyncRetrying, RetryCallState, stop_after_attempt, wait_exponential

from tabsession.workspace.models.enums import SyncPhase
from tabsession.workspace.models.tab import TabSet

if TYPE_CHECKING:
    from tabsession.workspace.registry import TabRegistry
    from tabsession.workspace.store.base import TabSetStore


@dataclass
class PendingWrite:
    """The single queued write: latest snapshot plus when it becomes due."""

    user_id: str
    tab_set: TabSet
    content_hash: str
    due_at: float


def _log_retry(retry_state: RetryCallState) -> None:
    exc = retry_state.outcome.exception() if retry_state.outcome else None
    logger.debug("Sync: save attempt {} failed ({}), retrying", retry_state.attempt_number, exc)


class PersistenceSync:
    """Keeps a user's persisted tab set in step with a ``TabRegistry``.

    Subscribes to the registry on construction.  Only ``start``/``stop``/
    ``flush``/``wait_idle`` are awaited by callers; registry mutations stay
    synchronous and never wait on the network.
    """

    def __init__(
        self,
        registry: TabRegistry,
        store: TabSetStore,
        *,
        debounce_seconds: float = 2.0,
        retry_attempts: int = 3,
        retry_wait: float = 0.5,
        retry_max_wait: float = 8.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._registry = registry
        self._store = store
        self._debounce = debounce_seconds
        self._retry_attempts = max(1, retry_attempts)
        self._retry_wait = retry_wait
        self._retry_max_wait = retry_max_wait
        self._clock = clock

        self._phase = SyncPhase.IDLE
        self._user_id: str | None = None
        self._last_saved_hash: str | None = None
        self._pending: PendingWrite | None = None
        self._inflight: PendingWrite | None = None
        self._flusher: asyncio.Task[None] | None = None
        self._wake = asyncio.Event()

        self._unsubscribe = registry.subscribe(self._on_change)

    # -- State -----------------------------------------------------------------

    @property
    def phase(self) -> SyncPhase:
        return self._phase

    @property
    def user_id(self) -> str | None:
        return self._user_id

    @property
    def last_saved_hash(self) -> str | None:
        return self._last_saved_hash

    @property
    def pending(self) -> PendingWrite | None:
        return self._pending

    @property
    def is_initial_load(self) -> bool:
        return self._phase is SyncPhase.LOADING

    # -- Lifecycle -------------------------------------------------------------

    async def start(self, user_id: str) -> bool:
        """Load the user's stored tab set and begin syncing.

        Returns ``True`` if a stored set was restored into the registry.  Read
        failures and empty or malformed data are logged and treated as "no
        saved state": the registry is reset to the dashboard-only set and the
        error never propagates.

        Starting again for the user already being synced only flushes the
        pending write; the in-memory tabs are newer than the stored set.
        Switching users flushes the previous user's pending write first.
        """
        if self._phase is SyncPhase.SYNCING and self._user_id == user_id:
            logger.debug("Sync: already syncing user {}; flushing", user_id)
            await self.flush()
            return False
        if self._phase is not SyncPhase.IDLE:
            await self.flush()
            await self.stop()

        self._user_id = user_id
        self._phase = SyncPhase.LOADING
        self._last_saved_hash = None
        logger.info("Sync: loading tab set for user {}", user_id)

        tab_set: TabSet | None = None
        try:
            tab_set = await self._store.load(user_id)
        except Exception as exc:
            logger.warning("Sync: could not load tab set for user {}: {}", user_id, exc)

        if self._user_id != user_id or self._phase is not SyncPhase.LOADING:
            # stop() or a newer start() ran while the load was in flight.
            return False

        restored = False
        if tab_set is not None and tab_set.tabs:
            self._registry.restore(tab_set)
            self._last_saved_hash = self._registry.to_tab_set().content_hash()
            restored = True
        else:
            logger.info("Sync: no saved tab set for user {}; starting from defaults", user_id)
            self._registry.restore(TabSet())

        self._phase = SyncPhase.SYNCING
        return restored

    async def stop(self) -> None:
        """Stop syncing.  A pending, unflushed snapshot is discarded."""
        if self._pending is not None:
            logger.debug("Sync: discarding pending write for user {}", self._pending.user_id)
        self._pending = None
        self._phase = SyncPhase.IDLE
        self._user_id = None

        flusher, self._flusher = self._flusher, None
        if flusher is not None and not flusher.done():
            flusher.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await flusher

    async def close(self) -> None:
        """Stop and detach from the registry."""
        await self.stop()
        self._unsubscribe()

    async def flush(self) -> None:
        """Write the pending snapshot now instead of waiting out the debounce."""
        if self._pending is not None:
            self._pending.due_at = self._clock()
            self._ensure_flusher()
            self._wake.set()
        await self.wait_idle()

    async def wait_idle(self) -> None:
        """Wait until the flusher has nothing left to write."""
        while self._flusher is not None and not self._flusher.done():
            await self._flusher

    # -- Change handling -------------------------------------------------------

    def _on_change(self, registry: TabRegistry) -> None:
        if self._phase is not SyncPhase.SYNCING or self._user_id is None:
            return

        tab_set = registry.to_tab_set()
        content_hash = tab_set.content_hash()

        if self._pending is not None and self._pending.content_hash == content_hash:
            # Nothing persisted changed (e.g. a dirty-flag toggle); keep the due time.
            return

        baseline = self._inflight.content_hash if self._inflight is not None else self._last_saved_hash
        if content_hash == baseline:
            if self._pending is not None:
                logger.debug("Sync: change reverted to persisted state; dropping pending write")
            self._pending = None
            return

        self._pending = PendingWrite(
            user_id=self._user_id,
            tab_set=tab_set,
            content_hash=content_hash,
            due_at=self._clock() + self._debounce,
        )
        self._ensure_flusher()

    def _ensure_flusher(self) -> None:
        if self._flusher is not None and not self._flusher.done():
            return
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.debug("Sync: no running event loop; write deferred until flush()")
            return
        self._flusher = loop.create_task(self._run_flusher())

    async def _run_flusher(self) -> None:
        while self._pending is not None:
            delay = self._pending.due_at - self._clock()
            if delay > 0:
                self._wake.clear()
                with contextlib.suppress(TimeoutError):
                    await asyncio.wait_for(self._wake.wait(), timeout=delay)
                continue

            pending, self._pending = self._pending, None
            if pending.content_hash == self._last_saved_hash:
                continue
            self._inflight = pending
            try:
                await self._write(pending)
            finally:
                self._inflight = None

    async def _write(self, pending: PendingWrite) -> bool:
        try:
            async for attempt in AsyncRetrying(
                stop=stop_after_attempt(self._retry_attempts),
                wait=wait_exponential(multiplier=self._retry_wait, max=self._retry_max_wait),
                before_sleep=_log_retry,
                reraise=True,
            ):
                with attempt:
                    await self._store.save(pending.user_id, pending.tab_set)
        except Exception as exc:
            # The local registry is untouched; the stale hash makes the next change retry.
            logger.warning(
                "Sync: saving tab set for user {} failed after {} attempts: {}",
                pending.user_id,
                self._retry_attempts,
                exc,
            )
            return False

        if pending.user_id == self._user_id:
            self._last_saved_hash = pending.content_hash
        logger.debug("Sync: saved {} tabs for user {}", len(pending.tab_set.tabs), pending.user_id)
        return True
