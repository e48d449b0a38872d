"""PostgreSQL tab-set store.

Thin adapter from the ``TabSetStore`` protocol onto the tab-set managers.
Each call opens its own short-lived ``AsyncSession`` from the factory.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from tabsession.workspace.managers.tab_sets import (
    TabSetNotFoundError,
    delete_tab_set,
    get_tab_set_row,
    row_to_tab_set,
    upsert_tab_set,
)

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

    from tabsession.workspace.models.tab import TabSet


class SqlTabSetStore:
    """PostgreSQL implementation of the TabSetStore protocol (table ``user_tab_sets``)."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def load(self, user_id: str) -> TabSet | None:
        async with self._session_factory() as db:
            try:
                row = await get_tab_set_row(db, user_id)
            except TabSetNotFoundError:
                return None
            return row_to_tab_set(row)

    async def save(self, user_id: str, tab_set: TabSet) -> None:
        async with self._session_factory() as db:
            await upsert_tab_set(db, user_id, tab_set)

    async def delete(self, user_id: str) -> None:
        async with self._session_factory() as db:
            await delete_tab_set(db, user_id)
