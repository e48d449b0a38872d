"""Ephemeral per-tab UI state.

Filters, search terms, page numbers and scroll positions survive switching
between tabs but are never persisted: they live only as long as the tab is
open in this session and are wiped at logout.
"""

from __future__ import annotations

from collections.abc import Iterable
from typing import Any


class TabStateCache:
    def __init__(self) -> None:
        self._states: dict[str, dict[str, Any]] = {}

    def get(self, tab_id: str) -> dict[str, Any]:
        """Return a copy of the tab's state (empty if none was stored)."""
        return dict(self._states.get(tab_id, {}))

    def update(self, tab_id: str, **values: Any) -> dict[str, Any]:
        state = self._states.setdefault(tab_id, {})
        state.update(values)
        return dict(state)

    def discard(self, tab_id: str) -> None:
        self._states.pop(tab_id, None)

    def prune(self, live_ids: Iterable[str]) -> None:
        """Drop state for every tab that is no longer open."""
        live = set(live_ids)
        for tab_id in [t for t in self._states if t not in live]:
            del self._states[tab_id]

    def clear(self) -> None:
        self._states.clear()

    def __contains__(self, tab_id: object) -> bool:
        return tab_id in self._states

    def __len__(self) -> int:
        return len(self._states)
