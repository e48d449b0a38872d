"""Workspace session: the one object that owns a user's tab state.

``WorkspaceSession`` wires the registry, closed-tab history, persistence
sync, unsaved-changes guard, keyboard dispatcher and ephemeral tab state
together and is handed by reference to UI consumers.  UI code never touches
the tab list directly; every change goes through a method here or on
``registry``.
"""

from __future__ import annotations

import time
from collections.abc import Callable
from typing import TYPE_CHECKING

from loguru import logger

from tabsession.workspace.guard import GuardResult, UnsavedChangesGuard
from tabsession.workspace.history import LastClosedStack
from tabsession.workspace.models.tab import DASHBOARD_TAB_ID, WorkspaceTab
from tabsession.workspace.registry import TabRegistry
from tabsession.workspace.settings import TabSessionSettings, get_settings
from tabsession.workspace.shortcuts import KeyboardShortcutDispatcher
from tabsession.workspace.sync import PersistenceSync
from tabsession.workspace.tab_state import TabStateCache

if TYPE_CHECKING:
    from tabsession.workspace.collaborators import AuthProvider, Navigator
    from tabsession.workspace.models.enums import Platform
    from tabsession.workspace.shortcuts import KeyEvent
    from tabsession.workspace.store.base import TabSetStore


class WorkspaceSession:
    """Tab manager for one signed-in user."""

    def __init__(
        self,
        *,
        store: TabSetStore,
        auth: AuthProvider,
        navigator: Navigator,
        settings: TabSessionSettings | None = None,
        platform: Platform | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._settings = settings or get_settings()
        self._auth = auth
        self._navigator = navigator

        self.history = LastClosedStack(self._settings.last_closed_limit)
        self.registry = TabRegistry(
            history=self.history,
            dashboard_route=self._settings.dashboard_route,
            soft_tab_limit=self._settings.soft_tab_limit,
            clock=clock,
        )
        self.sync = PersistenceSync(
            self.registry,
            store,
            debounce_seconds=self._settings.debounce_seconds,
            retry_attempts=self._settings.save_retry_attempts,
            retry_max_wait=self._settings.save_retry_max_wait,
        )
        self.guard = UnsavedChangesGuard(self.registry)
        self.shortcuts = KeyboardShortcutDispatcher(self.registry, self.guard, navigator, platform=platform)
        self.tab_state = TabStateCache()
        self._unsubscribe = self.registry.subscribe(lambda registry: self.tab_state.prune(t.id for t in registry))

    # -- Session ---------------------------------------------------------------

    async def sign_in(self, user_id: str | None = None) -> bool:
        """Restore the user's tabs and start syncing.  Returns whether tabs were restored."""
        user_id = user_id or self._auth.current_user_id()
        if user_id is None:
            msg = "No signed-in user to load workspace tabs for"
            raise ValueError(msg)
        if user_id != self.sync.user_id:
            # Closed-tab history and per-tab filters belong to the previous user.
            self.history.clear()
            self.tab_state.clear()
        restored = await self.sync.start(user_id)
        active = self.registry.active_tab
        if restored and active is not None:
            self._navigator.navigate(active.route)
        return restored

    async def logout(self) -> GuardResult:
        """Guarded logout.

        If dirty non-pinned tabs exist, nothing happens until
        ``guard.confirm()``.  Dirty *pinned* tabs do not trigger the prompt and
        are discarded with everything else.
        """
        return await self.guard.request_logout(self._perform_logout)

    async def _perform_logout(self) -> None:
        user_id = self.sync.user_id
        self.tab_state.clear()
        self.registry.close_all_except(DASHBOARD_TAB_ID)
        self.history.clear()
        await self.sync.flush()
        await self.sync.stop()
        await self._auth.sign_out()
        logger.info("Workspace: user {} logged out", user_id)
        self._navigator.navigate(self._settings.post_logout_route)

    async def aclose(self) -> None:
        self._unsubscribe()
        await self.sync.close()

    # -- Navigation ------------------------------------------------------------

    def open_tab(self, tab: WorkspaceTab) -> WorkspaceTab:
        """Open (or focus the duplicate of) *tab* and navigate to it."""
        record = self.registry.open_or_focus(tab)
        self._navigator.navigate(record.route)
        return record

    def navigate_to_record(
        self,
        *,
        route: str,
        title: str,
        context_type: str,
        context_id: str,
        module_code: str,
        subtitle: str | None = None,
        icon_name: str | None = None,
    ) -> WorkspaceTab:
        """Open a record (employee, appraisal, ...) in its own tab, focusing it if already open."""
        return self.open_tab(
            WorkspaceTab(
                route=route,
                title=title,
                subtitle=subtitle,
                module_code=module_code,
                context_type=context_type,
                context_id=context_id,
                icon_name=icon_name,
            )
        )

    def navigate_to_list(
        self,
        *,
        route: str,
        title: str,
        module_code: str,
        icon_name: str | None = None,
    ) -> WorkspaceTab:
        """Open a list view, focusing the existing tab for the same route."""
        return self.open_tab(WorkspaceTab(route=route, title=title, module_code=module_code, icon_name=icon_name))

    def focus(self, tab_id: str) -> WorkspaceTab | None:
        tab = self.registry.focus_tab(tab_id)
        if tab is not None:
            self._navigator.navigate(tab.route)
        return tab

    def reopen_last_closed(self) -> WorkspaceTab | None:
        tab = self.registry.reopen_last_closed()
        if tab is not None:
            self._navigator.navigate(tab.route)
        return tab

    async def handle_key(self, event: KeyEvent) -> bool:
        return await self.shortcuts.handle(event)

    # -- Close -----------------------------------------------------------------

    async def request_close(self, tab_id: str) -> GuardResult:
        """Close a tab from the UI, asking for confirmation if it is dirty."""

        async def _close() -> None:
            before = self.registry.active_tab_id
            if self.registry.close_tab(tab_id) is None:
                return
            active = self.registry.active_tab
            if active is not None and active.id != before:
                self._navigator.navigate(active.route)

        return await self.guard.request_close(tab_id, _close)

    async def request_close_others(self, keep_id: str) -> GuardResult:
        """Close every tab except *keep_id*, pinned tabs and the dashboard."""

        async def _close() -> None:
            self.registry.close_others(keep_id)
            active = self.registry.active_tab
            if active is not None:
                self._navigator.navigate(active.route)

        return await self.guard.request_close_others(keep_id, _close)

    def close_unauthorized(self, is_allowed: Callable[[WorkspaceTab], bool]) -> list[WorkspaceTab]:
        """Close tabs the user may no longer see after a role or company switch."""
        before = self.registry.active_tab_id
        closed = self.registry.close_where(lambda tab: not is_allowed(tab))
        if closed:
            logger.info(
                "Workspace: closed {} tabs no longer authorized ({})",
                len(closed),
                ", ".join(t.title for t in closed),
            )
            active = self.registry.active_tab
            if active is not None and active.id != before:
                self._navigator.navigate(active.route)
        return closed
