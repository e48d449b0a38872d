"""HTTP tab-set store: talks to a running persistence service.

This is the backend a tab manager uses when the tab sets live behind the
service in ``tabsession.workspace.app`` rather than in a locally reachable
store.  Endpoints::

    GET  {base_url}/api/tab-sets/{user_id}/get     -> 200 TabSet | 404
    POST {base_url}/api/tab-sets/{user_id}/save    -> 200 TabSet
    POST {base_url}/api/tab-sets/{user_id}/delete  -> 204
"""

from __future__ import annotations

from urllib.parse import quote

import httpx

from tabsession.workspace.models.tab import TabSet


class HttpTabSetStore:
    """httpx implementation of the TabSetStore protocol.

    Non-2xx responses other than a 404 on ``load`` raise
    ``httpx.HTTPStatusError``.  Pass *client* to share a connection pool or to
    inject a test transport; otherwise one is created and owned here.
    """

    def __init__(
        self,
        base_url: str,
        *,
        client: httpx.AsyncClient | None = None,
        timeout: float = 10.0,
    ) -> None:
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(base_url=base_url, timeout=timeout)

    def _url(self, user_id: str, action: str) -> str:
        return f"/api/tab-sets/{quote(user_id, safe='')}/{action}"

    async def load(self, user_id: str) -> TabSet | None:
        resp = await self._client.get(self._url(user_id, "get"))
        if resp.status_code == httpx.codes.NOT_FOUND:
            return None
        resp.raise_for_status()
        return TabSet.model_validate(resp.json())

    async def save(self, user_id: str, tab_set: TabSet) -> None:
        resp = await self._client.post(
            self._url(user_id, "save"),
            content=tab_set.to_json(),
            headers={"Content-Type": "application/json"},
        )
        resp.raise_for_status()

    async def delete(self, user_id: str) -> None:
        resp = await self._client.post(self._url(user_id, "delete"))
        resp.raise_for_status()

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()
