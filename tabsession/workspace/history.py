"""Bounded history of closed tabs, backing "reopen last closed tab"."""

from __future__ import annotations

from collections import deque
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from tabsession.workspace.models.tab import WorkspaceTab


class LastClosedStack:
    """LIFO for reopening, with the oldest entry evicted once *limit* is reached."""

    def __init__(self, limit: int = 10) -> None:
        if limit < 1:
            msg = f"limit must be positive, got {limit}"
            raise ValueError(msg)
        self._entries: deque[WorkspaceTab] = deque(maxlen=limit)

    def push(self, tab: WorkspaceTab) -> None:
        # Stored copy: the closed record must not change if the caller keeps a reference.
        self._entries.append(tab.model_copy(update={"has_unsaved_changes": False}))

    def pop(self) -> WorkspaceTab | None:
        if not self._entries:
            return None
        return self._entries.pop()

    def peek(self) -> WorkspaceTab | None:
        return self._entries[-1] if self._entries else None

    def clear(self) -> None:
        self._entries.clear()

    @property
    def limit(self) -> int:
        return self._entries.maxlen or 0

    def __len__(self) -> int:
        return len(self._entries)
