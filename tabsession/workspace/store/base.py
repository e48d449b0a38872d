"""Tab-set store interface: the persistence API consumed by the tab manager.

One record per user, upserted on every save (last-write-wins).  The interface
is async to support local filesystem, S3, PostgreSQL and remote HTTP
backends behind the same calls.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from tabsession.workspace.models.tab import TabSet


@runtime_checkable
class TabSetStore(Protocol):
    """Async protocol for reading and writing a user's persisted tab set.

    Backends raise ordinary exceptions on I/O failure and
    ``pydantic.ValidationError`` on malformed stored data; the caller decides
    how to degrade.
    """

    async def load(self, user_id: str) -> TabSet | None:
        """Return the stored tab set, or ``None`` if the user has none."""
        ...

    async def save(self, user_id: str, tab_set: TabSet) -> None:
        """Upsert the user's tab set, replacing whatever was stored."""
        ...

    async def delete(self, user_id: str) -> None:
        """Delete the user's tab set.  No-op if not found."""
        ...
