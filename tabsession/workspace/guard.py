"""Unsaved-changes guard for destructive tab actions.

State machine::

    IDLE --request (no dirty tabs)--> action runs, IDLE
    IDLE --request (dirty tabs)----> PENDING_CONFIRMATION
    PENDING_CONFIRMATION --confirm()--> action runs, IDLE
    PENDING_CONFIRMATION --cancel()---> IDLE, nothing changed

Only dirty, non-pinned tabs count as "affected".  Pinned tabs never block an
action and are never listed for confirmation, even at logout where they are
closed anyway.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from loguru import logger

from tabsession.workspace.models.enums import GuardedActionKind, GuardOutcome, GuardState

if TYPE_CHECKING:
    from tabsession.workspace.models.tab import WorkspaceTab
    from tabsession.workspace.registry import TabRegistry

GuardedCallable = Callable[[], Awaitable[None]]


@dataclass
class GuardedAction:
    kind: GuardedActionKind
    affected: tuple[WorkspaceTab, ...]
    run: GuardedCallable


@dataclass
class GuardResult:
    """What happened to a request, plus the tabs a confirmation UI should list."""

    outcome: GuardOutcome
    kind: GuardedActionKind | None = None
    affected: tuple[WorkspaceTab, ...] = field(default_factory=tuple)

    @property
    def needs_confirmation(self) -> bool:
        return self.outcome is GuardOutcome.PENDING


class UnsavedChangesGuard:
    """Holds at most one destructive action awaiting user confirmation."""

    def __init__(self, registry: TabRegistry) -> None:
        self._registry = registry
        self._pending: GuardedAction | None = None

    @property
    def state(self) -> GuardState:
        return GuardState.IDLE if self._pending is None else GuardState.PENDING_CONFIRMATION

    @property
    def pending(self) -> GuardedAction | None:
        return self._pending

    # -- Entry points ----------------------------------------------------------

    async def request_close(self, tab_id: str, action: GuardedCallable) -> GuardResult:
        """Guard closing one tab; only that tab can be affected."""
        tab = self._registry.get(tab_id)
        affected = (tab,) if tab is not None and tab.has_unsaved_changes and not tab.is_pinned else ()
        return await self._submit(GuardedActionKind.CLOSE_TAB, affected, action)

    async def request_close_others(self, keep_id: str, action: GuardedCallable) -> GuardResult:
        """Guard "close other tabs"; dirty tabs that would close are affected."""
        affected = tuple(t for t in self._registry.closable_others(keep_id) if t.has_unsaved_changes)
        return await self._submit(GuardedActionKind.CLOSE_OTHERS, affected, action)

    async def request_logout(self, action: GuardedCallable) -> GuardResult:
        """Guard logout; every dirty non-pinned tab is affected."""
        affected = tuple(self._registry.dirty_tabs(include_pinned=False))
        return await self._submit(GuardedActionKind.LOGOUT, affected, action)

    async def _submit(
        self,
        kind: GuardedActionKind,
        affected: tuple[WorkspaceTab, ...],
        action: GuardedCallable,
    ) -> GuardResult:
        if self._pending is not None:
            logger.debug("Guard: {} requested while {} awaits confirmation", kind, self._pending.kind)
            return GuardResult(GuardOutcome.PENDING, self._pending.kind, self._pending.affected)

        if not affected:
            await action()
            return GuardResult(GuardOutcome.EXECUTED, kind)

        self._pending = GuardedAction(kind=kind, affected=affected, run=action)
        logger.info("Guard: {} needs confirmation ({} tabs with unsaved changes)", kind, len(affected))
        return GuardResult(GuardOutcome.PENDING, kind, affected)

    # -- Resolution ------------------------------------------------------------

    async def confirm(self) -> GuardResult:
        """Run the pending action, discarding unsaved changes in the affected tabs."""
        pending, self._pending = self._pending, None
        if pending is None:
            return GuardResult(GuardOutcome.NOTHING_PENDING)
        logger.info("Guard: {} confirmed; discarding unsaved changes in {} tabs", pending.kind, len(pending.affected))
        await pending.run()
        return GuardResult(GuardOutcome.EXECUTED, pending.kind, pending.affected)

    def cancel(self) -> GuardResult:
        """Abort the pending action with no side effects."""
        pending, self._pending = self._pending, None
        if pending is None:
            return GuardResult(GuardOutcome.NOTHING_PENDING)
        logger.debug("Guard: {} cancelled", pending.kind)
        return GuardResult(GuardOutcome.CANCELLED, pending.kind, pending.affected)
