from dataclasses import replace

import pytest
from sqlalchemy.exc import OperationalError

from thoughtchain.entities import ChainStatus, new_chain, new_step, utc_now_iso
from thoughtchain.errors import InvariantError, StorageError
from thoughtchain.services.chain_store import ChainStore


def _chain_with(chain_id, *thoughts, status=ChainStatus.active.value, created=None):
    chain = new_chain(chain_id)
    if created:
        chain = replace(chain, created=created)
    steps = [new_step(index + 1, thought) for index, thought in enumerate(thoughts)]
    return replace(chain, steps=steps, status=status)


def test_put_then_get_round_trips(store):
    chain = _chain_with("round-trip", "first idea", "second idea")
    chain = replace(chain, steps=[chain.steps[0], replace(chain.steps[1], reflection="because")])
    store.put(chain)

    loaded = store.get("round-trip")
    assert loaded.to_dict() == chain.to_dict()


def test_put_is_idempotent(store):
    chain = _chain_with("idempotent", "only step")
    store.put(chain)
    store.put(chain)

    assert store.get("idempotent").to_dict() == chain.to_dict()
    assert store.stats().total_steps == 1


def test_put_replaces_all_steps(store):
    store.put(_chain_with("replace", "a", "b", "c"))
    store.put(_chain_with("replace", "x"))

    loaded = store.get("replace")
    assert [step.thought for step in loaded.steps] == ["x"]


def test_put_checks_invariants_before_writing(store):
    broken = replace(new_chain("broken"), steps=[new_step(2, "skipped one")])
    with pytest.raises(InvariantError):
        store.put(broken)
    assert store.get("broken") is None


def test_get_missing_returns_none(store):
    assert store.get("does-not-exist") is None


def test_list_recent_orders_newest_first(store):
    store.put(_chain_with("old", "a", created="2024-01-01T00:00:00.000Z"))
    store.put(_chain_with("mid", "b", created="2024-06-01T00:00:00.000Z"))
    store.put(_chain_with("new", "c", created="2025-01-01T00:00:00.000Z"))

    assert [chain.id for chain in store.list_recent(2)] == ["new", "mid"]


def test_search_matches_thought_or_reflection_case_insensitively(store):
    store.put(_chain_with("cache-chain", "We should add a Redis CACHE layer"))
    reflective = _chain_with("reflective", "Plain thought")
    reflective = replace(reflective, steps=[replace(reflective.steps[0], reflection="cache warming matters")])
    store.put(reflective)
    store.put(_chain_with("unrelated", "Nothing to see"))

    found = {chain.id for chain in store.search("cache", 10)}
    assert found == {"cache-chain", "reflective"}


def test_search_returns_each_chain_once_with_all_steps(store):
    store.put(_chain_with("repeat", "cache one", "cache two", "unrelated"))
    results = store.search("cache", 10)
    assert [chain.id for chain in results] == ["repeat"]
    assert len(results[0].steps) == 3


def test_search_treats_wildcards_literally(store):
    store.put(_chain_with("percent", "100% done"))
    store.put(_chain_with("plain", "half done"))
    assert [chain.id for chain in store.search("100%", 10)] == ["percent"]
    assert store.search("_", 10) == []


def test_blank_search_lists_recent(store):
    store.put(_chain_with("a", "x", created="2024-01-01T00:00:00.000Z"))
    store.put(_chain_with("b", "y", created="2024-02-01T00:00:00.000Z"))
    assert [chain.id for chain in store.search("", 5)] == ["b", "a"]
    assert [chain.id for chain in store.search(None, 1)] == ["b"]


def test_most_recent_active_skips_concluded(store):
    store.put(_chain_with("active-old", "a", created="2024-01-01T00:00:00.000Z"))
    store.put(_chain_with(
        "concluded-new", "b",
        status=ChainStatus.concluded.value,
        created="2025-01-01T00:00:00.000Z",
    ))
    assert store.most_recent_active().id == "active-old"


def test_most_recent_active_none_when_empty(store):
    assert store.most_recent_active() is None


def test_stats_counts(store):
    store.put(_chain_with("one", "a", "b"))
    store.put(_chain_with("two", "c", status=ChainStatus.concluded.value))
    stats = store.stats()
    assert (stats.total_chains, stats.total_steps, stats.active_chains) == (2, 3, 1)
    assert stats.storage_location == ":memory:"


def test_file_store_persists_across_reopen(file_location):
    from thoughtchain.db import create_store

    first = create_store(file_location)
    first.put(_chain_with("durable", "remember me"))
    first.close()

    second = create_store(file_location)
    try:
        assert second.get("durable").steps[0].thought == "remember me"
        assert second.stats().storage_location == file_location.path
    finally:
        second.close()


def test_close_is_idempotent(store):
    store.close()
    store.close()


def test_storage_failures_become_storage_errors(store, monkeypatch):
    def boom(*args, **kwargs):
        raise OperationalError("SELECT 1", {}, Exception("disk I/O error"))

    monkeypatch.setattr(ChainStore, "_chains_query", boom)
    with pytest.raises(StorageError, match="Failed to load thought chain"):
        store.get("anything")


def test_updated_and_concluded_timestamps_persist(store):
    now = utc_now_iso()
    chain = replace(
        _chain_with("stamped", "done"),
        updated=now,
        concluded=now,
        status=ChainStatus.concluded.value,
    )
    store.put(chain)
    loaded = store.get("stamped")
    assert loaded.updated == now
    assert loaded.concluded == now
    assert loaded.is_concluded
