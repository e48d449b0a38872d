"""Tab-set data access on PostgreSQL.

One row per user in ``user_tab_sets``.  Saves are an ``INSERT ... ON
CONFLICT DO UPDATE`` so concurrent sessions of the same user simply
overwrite each other (last-write-wins, no merge).
"""

from __future__ import annotations

from sqlalchemy import delete, func
from sqlalchemy.dialects.postgresql import insert
from sqlalchemy.ext.asyncio import AsyncSession

from tabsession.workspace.db.tables import UserTabSet
from tabsession.workspace.models.tab import TabSet


class TabSetNotFoundError(LookupError):
    """Raised when a user has no stored tab set."""


async def get_tab_set_row(db: AsyncSession, user_id: str) -> UserTabSet:
    """Get a user's row.  Raises ``TabSetNotFoundError`` if missing."""
    row = await db.get(UserTabSet, user_id)
    if row is None:
        raise TabSetNotFoundError(user_id)
    return row


async def upsert_tab_set(db: AsyncSession, user_id: str, tab_set: TabSet) -> UserTabSet:
    """Insert or replace a user's tab set and return the stored row."""
    tabs = [t.model_dump(mode="json", by_alias=True) for t in tab_set.tabs]
    stmt = insert(UserTabSet).values(user_id=user_id, tabs=tabs, active_tab_id=tab_set.active_tab_id)
    stmt = stmt.on_conflict_do_update(
        index_elements=[UserTabSet.user_id],
        set_={
            "tabs": stmt.excluded.tabs,
            "active_tab_id": stmt.excluded.active_tab_id,
            "updated_at": func.now(),
        },
    )
    await db.execute(stmt)
    await db.commit()

    row = await db.get(UserTabSet, user_id, populate_existing=True)
    return row  # type: ignore[return-value]


async def delete_tab_set(db: AsyncSession, user_id: str) -> None:
    """Delete a user's tab set.  No-op if missing."""
    await db.execute(delete(UserTabSet).where(UserTabSet.user_id == user_id))
    await db.commit()


def row_to_tab_set(row: UserTabSet) -> TabSet:
    """Validate a stored row back into a ``TabSet``."""
    return TabSet.model_validate({"tabs": row.tabs, "activeTabId": row.active_tab_id})
