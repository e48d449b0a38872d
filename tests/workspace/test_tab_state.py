from __future__ import annotations

from tabsession.workspace.tab_state import TabStateCache


def test_update_merges_and_get_returns_copy() -> None:
    cache = TabStateCache()
    cache.update("a", search="smith")
    cache.update("a", page=2)

    state = cache.get("a")
    state["page"] = 99

    assert cache.get("a") == {"search": "smith", "page": 2}
    assert cache.get("missing") == {}


def test_prune_keeps_only_live_tabs() -> None:
    cache = TabStateCache()
    for tab_id in ("a", "b", "c"):
        cache.update(tab_id, page=1)

    cache.prune(["b"])

    assert "b" in cache
    assert len(cache) == 1


def test_discard_and_clear() -> None:
    cache = TabStateCache()
    cache.update("a", page=1)
    cache.update("b", page=1)

    cache.discard("a")
    cache.discard("missing")
    assert "a" not in cache

    cache.clear()
    assert len(cache) == 0
