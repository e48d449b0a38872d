"""FastAPI dependency injection for the tab-set store.

Usage in route handlers::

    @router.get("/{user_id}/get")
    async def get_tab_set(user_id: str, store: Store) -> TabSetResponse:
        ...

The store is created once in the app lifespan and stored on ``app.state``.
Requests fail with HTTP 503 if the lifespan could not configure it.
"""

from __future__ import annotations

from typing import Annotated

from fastapi import Depends, HTTPException, Request, status

from tabsession.workspace.store.base import TabSetStore


async def get_store(request: Request) -> TabSetStore:
    """Return the shared tab-set store."""
    store: TabSetStore | None = getattr(request.app.state, "tab_store", None)
    if store is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Tab-set store not configured.",
        )
    return store


Store = Annotated[TabSetStore, Depends(get_store)]
"""Annotated dependency: the configured tab-set store."""
