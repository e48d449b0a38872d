"""Keyboard shortcuts for tab navigation.

Key map (``mod`` is Cmd on macOS, Ctrl elsewhere)::

    mod+W             close active tab (guarded when dirty)
    mod+Shift+T       reopen last closed tab
    mod+Tab           next tab (wraps)       -- Ctrl also accepted on macOS,
    mod+Shift+Tab     previous tab (wraps)      where Cmd+Tab is the app switcher
    mod+1 .. mod+9    jump to tab by position

Every shortcut that lands on a tab navigates to its route so the URL and the
visible tab never disagree.
"""

from __future__ import annotations

import sys
from dataclasses import dataclass
from typing import TYPE_CHECKING

from loguru import logger

from tabsession.workspace.models.enums import Platform, ShortcutCommand
from tabsession.workspace.models.tab import DASHBOARD_TAB_ID

if TYPE_CHECKING:
    from tabsession.workspace.collaborators import Navigator
    from tabsession.workspace.guard import GuardResult, UnsavedChangesGuard
    from tabsession.workspace.models.tab import WorkspaceTab
    from tabsession.workspace.registry import TabRegistry


@dataclass(frozen=True)
class KeyEvent:
    """Platform-neutral key press as reported by the UI layer."""

    key: str
    ctrl: bool = False
    meta: bool = False
    shift: bool = False
    alt: bool = False


@dataclass(frozen=True)
class Shortcut:
    command: ShortcutCommand
    position: int | None = None


def detect_platform(platform: str | None = None) -> Platform:
    """Map ``sys.platform`` (or *platform*) to the modifier convention to use."""
    name = platform if platform is not None else sys.platform
    return Platform.MAC if name == "darwin" else Platform.OTHER


def resolve_shortcut(event: KeyEvent, platform: Platform) -> Shortcut | None:
    """Translate a key event into a tab command, or ``None`` if it is not ours."""
    primary = event.meta if platform is Platform.MAC else event.ctrl
    key = event.key.lower()

    if key == "tab":
        if event.alt or not (primary or event.ctrl):
            return None
        return Shortcut(ShortcutCommand.PREVIOUS_TAB if event.shift else ShortcutCommand.NEXT_TAB)

    if not primary or event.alt:
        return None
    if key == "w" and not event.shift:
        return Shortcut(ShortcutCommand.CLOSE_ACTIVE)
    if key == "t" and event.shift:
        return Shortcut(ShortcutCommand.REOPEN_CLOSED)
    if len(key) == 1 and key in "123456789" and not event.shift:
        return Shortcut(ShortcutCommand.JUMP_TO, position=int(key))
    return None


class KeyboardShortcutDispatcher:
    """Executes resolved shortcuts against the registry."""

    def __init__(
        self,
        registry: TabRegistry,
        guard: UnsavedChangesGuard,
        navigator: Navigator,
        *,
        platform: Platform | None = None,
    ) -> None:
        self._registry = registry
        self._guard = guard
        self._navigator = navigator
        self._platform = platform if platform is not None else detect_platform()
        self.last_guard_result: GuardResult | None = None

    @property
    def platform(self) -> Platform:
        return self._platform

    def resolve(self, event: KeyEvent) -> Shortcut | None:
        return resolve_shortcut(event, self._platform)

    async def handle(self, event: KeyEvent) -> bool:
        """Run the shortcut bound to *event*.

        Returns ``True`` when the event was a tab shortcut (the UI should
        suppress its default handling), even if the command turned out to be a
        no-op such as closing a pinned tab.
        """
        shortcut = self.resolve(event)
        if shortcut is None:
            return False

        logger.debug("Shortcut: {} (position={})", shortcut.command, shortcut.position)
        target = await self._execute(shortcut)
        if target is not None:
            self._navigator.navigate(target.route)
        return True

    async def _execute(self, shortcut: Shortcut) -> WorkspaceTab | None:
        command = shortcut.command
        if command is ShortcutCommand.CLOSE_ACTIVE:
            await self._close_active()
            return None
        if command is ShortcutCommand.REOPEN_CLOSED:
            return self._registry.reopen_last_closed()
        if command is ShortcutCommand.NEXT_TAB:
            return self._registry.cycle(1)
        if command is ShortcutCommand.PREVIOUS_TAB:
            return self._registry.cycle(-1)
        if command is ShortcutCommand.JUMP_TO and shortcut.position is not None:
            tab = self._registry.tab_at(shortcut.position)
            return self._registry.focus_tab(tab.id) if tab is not None else None
        return None

    async def _close_active(self) -> None:
        active = self._registry.active_tab
        if active is None or active.id == DASHBOARD_TAB_ID or active.is_pinned:
            return

        tab_id = active.id

        async def _close() -> None:
            if self._registry.close_tab(tab_id) is not None and self._registry.active_tab is not None:
                self._navigator.navigate(self._registry.active_tab.route)

        self.last_guard_result = await self._guard.request_close(tab_id, _close)
