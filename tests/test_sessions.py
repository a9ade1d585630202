from datetime import datetime, timedelta, timezone

import pytest

from conftest import post
from data.sessions import SessionStore


def test_get_unknown_key_returns_none() -> None:
    assert SessionStore().get("nobody") is None


def test_upsert_merges_fields_last_write_wins() -> None:
    store = SessionStore()
    store.upsert("u1", offset=5, total=10)
    state = store.upsert("u1", offset=7)
    assert state.offset == 7
    assert state.total == 10
    assert state.requester_id == "u1"
    assert store.get("u1") == state


def test_upsert_rejects_unknown_fields() -> None:
    with pytest.raises(TypeError):
        SessionStore().upsert("u1", colour="blue")


def test_record_results_sets_last_results_only() -> None:
    store = SessionStore()
    store.upsert("u1", offset=3)
    state = store.record_results("u1", [post(10, 1), post(5, 2)])
    assert [p.id for p in state.last_results] == ["p1", "p2"]
    assert state.offset == 3


def test_keys_are_isolated() -> None:
    store = SessionStore()
    store.upsert("a", offset=1)
    store.upsert("b", offset=2)
    assert store.get("a").offset == 1
    assert store.get("b").offset == 2


def test_lru_eviction_drops_least_recently_used() -> None:
    store = SessionStore(max_entries=2)
    store.upsert("a", offset=1)
    store.upsert("b", offset=1)
    store.get("a")
    store.upsert("c", offset=1)
    assert "a" in store
    assert "b" not in store
    assert len(store) == 2


def test_evict_idle_sessions() -> None:
    store = SessionStore()
    store.upsert("old", offset=1)
    store.upsert("new", offset=1)
    later = datetime.now(timezone.utc) + timedelta(hours=2)

    assert store.evict_idle(3600, now=later) == 2
    assert len(store) == 0

    store.upsert("fresh", offset=1)
    assert store.evict_idle(3600) == 0
    assert "fresh" in store
