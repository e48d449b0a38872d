"""Data models for the workspace tab manager."""

from tabsession.workspace.models.api import TabSetResponse
from tabsession.workspace.models.enums import (
    GuardedActionKind,
    GuardOutcome,
    GuardState,
    Platform,
    ShortcutCommand,
    SyncPhase,
)
from tabsession.workspace.models.tab import (
    DASHBOARD_TAB_ID,
    PersistedTab,
    TabSet,
    WorkspaceTab,
    dashboard_tab,
)

__all__ = [
    "DASHBOARD_TAB_ID",
    # Enums
    "GuardOutcome",
    "GuardState",
    "GuardedActionKind",
    # Tabs
    "PersistedTab",
    "Platform",
    "ShortcutCommand",
    "SyncPhase",
    "TabSet",
    # API schemas
    "TabSetResponse",
    "WorkspaceTab",
    "dashboard_tab",
]
