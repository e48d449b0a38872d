"""Tests for the tab-set persistence endpoints (local store backend)."""

from __future__ import annotations

from pathlib import Path

from httpx import AsyncClient

from tabsession.workspace.app import app

_PAYLOAD = {
    "tabs": [
        {"id": "dashboard", "route": "/dashboard", "title": "Dashboard", "moduleCode": "dashboard"},
        {
            "id": "emp-42",
            "route": "/employees/42",
            "title": "Jane Doe",
            "moduleCode": "workforce",
            "contextType": "employee",
            "contextId": "42",
            "isPinned": True,
        },
    ],
    "activeTabId": "emp-42",
}


async def test_tab_set_full_cycle(client: AsyncClient) -> None:
    """Exercise save -> get -> overwrite -> delete in one test."""
    # Missing
    resp = await client.get("/api/tab-sets/user-1/get")
    assert resp.status_code == 404

    # Save
    resp = await client.post("/api/tab-sets/user-1/save", json=_PAYLOAD)
    assert resp.status_code == 200
    body = resp.json()
    assert body["userId"] == "user-1"
    assert body["activeTabId"] == "emp-42"
    assert body["updatedAt"] is not None

    # Get
    resp = await client.get("/api/tab-sets/user-1/get")
    assert resp.status_code == 200
    body = resp.json()
    assert [t["id"] for t in body["tabs"]] == ["dashboard", "emp-42"]
    assert body["tabs"][1]["isPinned"] is True
    assert body["tabs"][1]["contextType"] == "employee"

    # Overwrite (last write wins)
    resp = await client.post(
        "/api/tab-sets/user-1/save",
        json={"tabs": _PAYLOAD["tabs"][:1], "activeTabId": "dashboard"},
    )
    assert resp.status_code == 200
    resp = await client.get("/api/tab-sets/user-1/get")
    assert resp.json()["activeTabId"] == "dashboard"

    # Delete
    resp = await client.post("/api/tab-sets/user-1/delete")
    assert resp.status_code == 204
    resp = await client.get("/api/tab-sets/user-1/get")
    assert resp.status_code == 404


async def test_save_accepts_snake_case_fields(client: AsyncClient) -> None:
    payload = {
        "tabs": [{"id": "dashboard", "route": "/dashboard", "title": "Dashboard", "module_code": "dashboard"}],
        "active_tab_id": "dashboard",
    }
    resp = await client.post("/api/tab-sets/user-2/save", json=payload)
    assert resp.status_code == 200


async def test_save_rejects_dangling_active_tab(client: AsyncClient) -> None:
    resp = await client.post(
        "/api/tab-sets/user-1/save",
        json={"tabs": _PAYLOAD["tabs"], "activeTabId": "ghost"},
    )
    assert resp.status_code == 422
    assert "ghost" in resp.json()["detail"]


async def test_save_rejects_invalid_body(client: AsyncClient) -> None:
    resp = await client.post("/api/tab-sets/user-1/save", json={"tabs": [{"id": "x"}]})
    assert resp.status_code == 422


async def test_users_are_isolated(client: AsyncClient) -> None:
    await client.post("/api/tab-sets/alice/save", json=_PAYLOAD)

    resp = await client.get("/api/tab-sets/bob/get")
    assert resp.status_code == 404


async def test_store_not_configured(client: AsyncClient) -> None:
    app.state.tab_store = None

    resp = await client.get("/api/tab-sets/user-1/get")
    assert resp.status_code == 503


async def test_malformed_stored_set_reads_as_missing(client: AsyncClient, tmp_path: Path) -> None:
    path = tmp_path / "tab_sets" / "user-1.json"
    path.parent.mkdir(parents=True)
    path.write_text('{"tabs": [{"id": 1}]', encoding="utf-8")

    resp = await client.get("/api/tab-sets/user-1/get")
    assert resp.status_code == 404
