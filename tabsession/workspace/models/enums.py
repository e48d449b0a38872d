"""Shared enumerations used across the tab manager."""

from __future__ import annotations

from enum import StrEnum

# -- Sync --------------------------------------------------------------------


class SyncPhase(StrEnum):
    """PersistenceSync lifecycle for one user session."""

    IDLE = "idle"
    LOADING = "loading"
    SYNCING = "syncing"


# -- Guard -------------------------------------------------------------------


class GuardState(StrEnum):
    IDLE = "idle"
    PENDING_CONFIRMATION = "pending_confirmation"


class GuardedActionKind(StrEnum):
    CLOSE_TAB = "close_tab"
    CLOSE_OTHERS = "close_others"
    LOGOUT = "logout"


class GuardOutcome(StrEnum):
    """Result of submitting or resolving a guarded action."""

    EXECUTED = "executed"
    PENDING = "pending"
    CANCELLED = "cancelled"
    NOTHING_PENDING = "nothing_pending"


# -- Keyboard ----------------------------------------------------------------


class Platform(StrEnum):
    MAC = "mac"
    OTHER = "other"


class ShortcutCommand(StrEnum):
    CLOSE_ACTIVE = "close_active"
    REOPEN_CLOSED = "reopen_closed"
    NEXT_TAB = "next_tab"
    PREVIOUS_TAB = "previous_tab"
    JUMP_TO = "jump_to"
