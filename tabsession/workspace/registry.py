"""In-process tab registry.

Holds the ordered set of open workspace tabs for the logged-in user and the
id of the active one.  Ephemeral -- rebuilt from the persistence API at
sign-in.  Every mutation goes through a method on ``TabRegistry``; observers
(persistence sync, UI) subscribe to change notifications instead of reading
or writing the tab list directly.

The registry is single-threaded by contract: it lives on the UI event loop
and never awaits, so no locking is needed.
"""

from __future__ import annotations

import time
from collections.abc import Callable, Iterator
from typing import TYPE_CHECKING

from loguru import logger

from tabsession.workspace.history import LastClosedStack
from tabsession.workspace.models.tab import DASHBOARD_TAB_ID, TabSet, WorkspaceTab, dashboard_tab

if TYPE_CHECKING:
    from collections.abc import Sequence

ChangeListener = Callable[["TabRegistry"], None]

# Smallest step between two activation stamps; keeps successor selection total.
_STAMP_EPSILON = 1e-6


class TabRegistry:
    """Ordered collection of workspace tabs with an active-tab pointer.

    Invariants maintained by every method:

    - the dashboard tab is always present;
    - tab ids are unique;
    - ``active_tab_id`` always references a present tab.

    Mutations that change nothing (focusing the active tab, closing a
    protected tab) do not notify listeners.
    """

    def __init__(
        self,
        *,
        history: LastClosedStack | None = None,
        dashboard_route: str = "/dashboard",
        soft_tab_limit: int = 15,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._tabs: list[WorkspaceTab] = []
        self._active_tab_id: str | None = None
        self._history = history if history is not None else LastClosedStack()
        self._listeners: list[ChangeListener] = []
        self._clock = clock
        self._last_stamp = 0.0
        self._dashboard_route = dashboard_route
        self._soft_tab_limit = soft_tab_limit

        self._ensure_dashboard()
        self._activate(DASHBOARD_TAB_ID)

    # -- Observers -------------------------------------------------------------

    def subscribe(self, listener: ChangeListener) -> Callable[[], None]:
        """Register *listener*; returns a callable that unsubscribes it."""
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    def _notify(self) -> None:
        for listener in list(self._listeners):
            listener(self)

    # -- Query -----------------------------------------------------------------

    @property
    def tabs(self) -> tuple[WorkspaceTab, ...]:
        """Snapshot of the open tabs in display order."""
        return tuple(self._tabs)

    @property
    def active_tab_id(self) -> str | None:
        return self._active_tab_id

    @property
    def active_tab(self) -> WorkspaceTab | None:
        if self._active_tab_id is None:
            return None
        return self.get(self._active_tab_id)

    @property
    def history(self) -> LastClosedStack:
        return self._history

    def get(self, tab_id: str) -> WorkspaceTab | None:
        for tab in self._tabs:
            if tab.id == tab_id:
                return tab
        return None

    def tab_at(self, position: int) -> WorkspaceTab | None:
        """Return the tab at 1-based *position*, or ``None`` if out of range."""
        if position < 1 or position > len(self._tabs):
            return None
        return self._tabs[position - 1]

    def dirty_tabs(self, *, include_pinned: bool = False) -> list[WorkspaceTab]:
        """Tabs with unsaved changes, in display order."""
        return [t for t in self._tabs if t.has_unsaved_changes and (include_pinned or not t.is_pinned)]

    def to_tab_set(self) -> TabSet:
        """Serialize to the persisted shape (dirty flags and timestamps stripped)."""
        return TabSet(
            tabs=[t.to_persisted() for t in self._tabs],
            active_tab_id=self._active_tab_id,
        )

    def __len__(self) -> int:
        return len(self._tabs)

    def __contains__(self, tab_id: object) -> bool:
        return any(t.id == tab_id for t in self._tabs)

    def __iter__(self) -> Iterator[WorkspaceTab]:
        return iter(tuple(self._tabs))

    # -- Open / focus ----------------------------------------------------------

    def open_or_focus(self, tab: WorkspaceTab) -> WorkspaceTab:
        """Focus the tab describing the same work item, or append *tab* and focus it.

        Returns the registry-owned record (existing or newly inserted).
        """
        existing = next((t for t in self._tabs if t.matches(tab)), None)
        if existing is not None:
            if existing.id != self._active_tab_id:
                self._activate(existing.id)
                self._notify()
            return existing

        record = tab.model_copy()
        self._tabs.append(record)
        self._activate(record.id)
        logger.debug("Registry: opened tab {} ({})", record.id, record.route)
        if len(self._tabs) > self._soft_tab_limit:
            logger.warning(
                "Registry: {} tabs open (soft limit {}); consider closing unused tabs",
                len(self._tabs),
                self._soft_tab_limit,
            )
        self._notify()
        return record

    def focus_tab(self, tab_id: str) -> WorkspaceTab | None:
        """Make *tab_id* active.  Returns the tab, or ``None`` if unknown."""
        tab = self.get(tab_id)
        if tab is None:
            return None
        if tab_id != self._active_tab_id:
            self._activate(tab_id)
            self._notify()
        return tab

    def cycle(self, step: int) -> WorkspaceTab | None:
        """Move the active pointer *step* positions, wrapping around."""
        if not self._tabs:
            return None
        current = self._index(self._active_tab_id) if self._active_tab_id else None
        start = current if current is not None else 0
        target = self._tabs[(start + step) % len(self._tabs)]
        return self.focus_tab(target.id)

    # -- Close -----------------------------------------------------------------

    def close_tab(self, tab_id: str) -> WorkspaceTab | None:
        """Close a single tab.

        No-op (returns ``None``) for the dashboard tab, pinned tabs and unknown
        ids.  Pinned tabs must be unpinned before they can be closed.  The
        closed tab is remembered for ``reopen_last_closed``.
        """
        if tab_id == DASHBOARD_TAB_ID:
            logger.debug("Registry: refusing to close dashboard tab")
            return None
        tab = self.get(tab_id)
        if tab is None:
            return None
        if tab.is_pinned:
            logger.debug("Registry: refusing to close pinned tab {}", tab_id)
            return None

        self._tabs.remove(tab)
        self._history.push(tab)
        self._reconcile_active()
        logger.debug("Registry: closed tab {} (active={})", tab_id, self._active_tab_id)
        self._notify()
        return tab

    def close_all_except(self, keep_id: str = DASHBOARD_TAB_ID) -> list[WorkspaceTab]:
        """Close every tab but *keep_id* and the dashboard, pinned tabs included.

        This is the privileged bulk close used at logout; it bypasses the
        per-tab protections of ``close_tab``.  Returns the closed tabs.
        """
        keep = {keep_id, DASHBOARD_TAB_ID}
        closed = [t for t in self._tabs if t.id not in keep]
        self._tabs = [t for t in self._tabs if t.id in keep]
        self._ensure_dashboard()
        for tab in closed:
            self._history.push(tab)

        target = keep_id if keep_id in self else DASHBOARD_TAB_ID
        changed = bool(closed) or target != self._active_tab_id
        if target != self._active_tab_id:
            self._activate(target)
        if changed:
            logger.debug("Registry: closed {} tabs (kept {})", len(closed), target)
            self._notify()
        return closed

    def closable_others(self, keep_id: str) -> list[WorkspaceTab]:
        """Tabs ``close_others(keep_id)`` would close, in display order."""
        if keep_id not in self:
            return []
        return [t for t in self._tabs if t.id not in {keep_id, DASHBOARD_TAB_ID} and not t.is_pinned]

    def close_others(self, keep_id: str) -> list[WorkspaceTab]:
        """User-facing "close other tabs": pinned tabs and the dashboard survive.

        *keep_id* becomes active.  Unknown *keep_id* is a no-op.
        """
        if keep_id not in self:
            return []
        closed = self.closable_others(keep_id)
        if not closed and keep_id == self._active_tab_id:
            return []
        closed_ids = {t.id for t in closed}
        self._tabs = [t for t in self._tabs if t.id not in closed_ids]
        for tab in closed:
            self._history.push(tab)

        if keep_id != self._active_tab_id:
            self._activate(keep_id)
        logger.debug("Registry: closed {} other tabs (kept {})", len(closed), keep_id)
        self._notify()
        return closed

    def close_where(self, predicate: Callable[[WorkspaceTab], bool]) -> list[WorkspaceTab]:
        """Close every non-dashboard tab matching *predicate*, pinned or not.

        Used when access to the underlying records is revoked.  Closed tabs are
        not remembered, so they cannot be reopened.
        """
        closed = [t for t in self._tabs if t.id != DASHBOARD_TAB_ID and predicate(t)]
        if not closed:
            return []
        closed_ids = {t.id for t in closed}
        self._tabs = [t for t in self._tabs if t.id not in closed_ids]
        self._reconcile_active()
        self._notify()
        return closed

    def reopen_last_closed(self) -> WorkspaceTab | None:
        """Re-insert the most recently closed tab at the end and focus it.

        If the same work item is already open the existing tab is focused
        instead, so ids stay unique.
        """
        tab = self._history.pop()
        if tab is None:
            return None
        existing = next((t for t in self._tabs if t.matches(tab)), None)
        if existing is not None:
            return self.focus_tab(existing.id)

        self._tabs.append(tab)
        self._activate(tab.id)
        logger.debug("Registry: reopened tab {}", tab.id)
        self._notify()
        return tab

    # -- Flags -----------------------------------------------------------------

    def pin_tab(self, tab_id: str) -> bool:
        return self._set_flag(tab_id, "is_pinned", True)

    def unpin_tab(self, tab_id: str) -> bool:
        return self._set_flag(tab_id, "is_pinned", False)

    def mark_dirty(self, tab_id: str, dirty: bool = True) -> bool:
        return self._set_flag(tab_id, "has_unsaved_changes", dirty)

    def _set_flag(self, tab_id: str, name: str, value: bool) -> bool:
        """Set a boolean attribute; returns ``True`` if anything changed."""
        tab = self.get(tab_id)
        if tab is None or getattr(tab, name) == value:
            return False
        setattr(tab, name, value)
        self._notify()
        return True

    # -- Ordering --------------------------------------------------------------

    def reorder(self, tab_ids: Sequence[str]) -> bool:
        """Move the listed tabs to the front in the given order.

        Unknown and repeated ids are ignored; unlisted tabs keep their relative
        order after the listed ones.  Returns ``True`` if the order changed.
        """
        by_id = {t.id: t for t in self._tabs}
        ordered: list[WorkspaceTab] = []
        for tab_id in tab_ids:
            tab = by_id.pop(tab_id, None)
            if tab is not None:
                ordered.append(tab)
        ordered.extend(t for t in self._tabs if t.id in by_id)

        if [t.id for t in ordered] == [t.id for t in self._tabs]:
            return False
        self._tabs = ordered
        self._notify()
        return True

    # -- Restore ---------------------------------------------------------------

    def restore(self, tab_set: TabSet) -> None:
        """Atomically replace the open tabs with a persisted set.

        Duplicate ids keep their first occurrence; the dashboard is re-inserted
        at the front if the set lacks it; an unknown ``active_tab_id`` falls
        back to the dashboard.  Dirty flags start cleared.
        """
        tabs: list[WorkspaceTab] = []
        seen: set[str] = set()
        for persisted in tab_set.tabs:
            if persisted.id in seen:
                logger.warning("Registry: dropping duplicate tab id {} from restored set", persisted.id)
                continue
            seen.add(persisted.id)
            tabs.append(WorkspaceTab.from_persisted(persisted))

        self._tabs = tabs
        self._ensure_dashboard()
        active = tab_set.active_tab_id
        self._activate(active if active is not None and active in self else DASHBOARD_TAB_ID)
        logger.info("Registry: restored {} tabs (active={})", len(self._tabs), self._active_tab_id)
        self._notify()

    # -- Internals -------------------------------------------------------------

    def _index(self, tab_id: str) -> int | None:
        for i, tab in enumerate(self._tabs):
            if tab.id == tab_id:
                return i
        return None

    def _stamp(self) -> float:
        now = self._clock()
        if now <= self._last_stamp:
            now = self._last_stamp + _STAMP_EPSILON
        self._last_stamp = now
        return now

    def _activate(self, tab_id: str) -> None:
        tab = self.get(tab_id)
        if tab is None:  # pragma: no cover - callers check membership first
            msg = f"Cannot activate unknown tab '{tab_id}'"
            raise LookupError(msg)
        tab.last_active_at = self._stamp()
        self._active_tab_id = tab_id

    def _ensure_dashboard(self) -> None:
        if DASHBOARD_TAB_ID not in self:
            self._tabs.insert(0, dashboard_tab(self._dashboard_route))

    def _reconcile_active(self) -> None:
        """Re-point the active tab after a close: most recently active survivor wins."""
        if self._active_tab_id is not None and self._active_tab_id in self:
            return
        self._ensure_dashboard()
        successor = max(self._tabs, key=lambda t: t.last_active_at)
        self._activate(successor.id)
