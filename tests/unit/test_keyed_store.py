"""Tests for the in-memory keyed store."""

from src.persistence.repositories.keyed_store import InMemoryKeyedStore


def test_get_returns_default_for_missing_key():
    store = InMemoryKeyedStore()

    assert store.get("activity:u1") is None
    assert store.get("activity:u1", "normal") == "normal"


def test_set_and_get():
    store = InMemoryKeyedStore()
    store.set("activity:u1", "quiet")

    assert store.get("activity:u1") == "quiet"


def test_append_evicts_oldest_beyond_max_length():
    store = InMemoryKeyedStore()
    for i in range(5):
        length = store.append("history:u1", i, max_length=3)

    assert length == 3
    assert store.get("history:u1") == [2, 3, 4]


def test_append_does_not_mutate_previously_returned_list():
    store = InMemoryKeyedStore()
    store.append("feedback:u1", "a")
    snapshot = store.get("feedback:u1")

    store.append("feedback:u1", "b")

    assert snapshot == ["a"]
    assert store.get("feedback:u1") == ["a", "b"]


def test_keys_by_prefix_and_delete():
    store = InMemoryKeyedStore()
    store.set("activity:u1", 1)
    store.set("activity:u2", 2)
    store.set("feedback:u1", 3)

    assert sorted(store.keys("activity:")) == ["activity:u1", "activity:u2"]

    store.delete("activity:u1")
    assert store.keys("activity:") == ["activity:u2"]
