"""Tab-set endpoints (RPC-style): the persistence API.

All write operations use POST; reads use GET.  Saves are unconditional
upserts -- the most recent successful write wins.
"""

from __future__ import annotations

from datetime import UTC, datetime

from fastapi import APIRouter, HTTPException, status
from loguru import logger
from pydantic import ValidationError

from tabsession.workspace.deps import Store
from tabsession.workspace.models.api import TabSetResponse
from tabsession.workspace.models.tab import TabSet

router = APIRouter(prefix="/tab-sets", tags=["tab-sets"])


@router.get("/{user_id}/get", response_model=TabSetResponse)
async def get_tab_set(user_id: str, store: Store) -> TabSetResponse:
    """Get a user's persisted tab set.  Unreadable stored data counts as none."""
    try:
        tab_set = await store.load(user_id)
    except ValidationError as exc:
        logger.warning("Stored tab set for user {} is malformed: {}", user_id, exc)
        tab_set = None
    if tab_set is None:
        raise HTTPException(status.HTTP_404_NOT_FOUND, detail=f"No tab set stored for user '{user_id}'.")
    return TabSetResponse(user_id=user_id, tabs=tab_set.tabs, active_tab_id=tab_set.active_tab_id)


@router.post("/{user_id}/save", response_model=TabSetResponse)
async def save_tab_set(user_id: str, body: TabSet, store: Store) -> TabSetResponse:
    """Upsert a user's tab set."""
    if body.active_tab_id is not None and all(t.id != body.active_tab_id for t in body.tabs):
        raise HTTPException(
            status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=f"activeTabId '{body.active_tab_id}' does not reference a tab in the set.",
        )
    await store.save(user_id, body)
    logger.debug("Saved {} tabs for user {}", len(body.tabs), user_id)
    return TabSetResponse(
        user_id=user_id,
        tabs=body.tabs,
        active_tab_id=body.active_tab_id,
        updated_at=datetime.now(UTC),
    )


@router.post("/{user_id}/delete", status_code=status.HTTP_204_NO_CONTENT)
async def delete_tab_set(user_id: str, store: Store) -> None:
    """Delete a user's tab set.  Idempotent."""
    await store.delete(user_id)
