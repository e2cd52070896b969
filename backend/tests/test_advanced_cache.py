from __future__ import annotations

import pytest

from conftest import DAY_MS, FakeClock
from learnpath.cache import AdvancedCache, CacheEntry, MemoryKeyValueStore
from learnpath.cache.store import item_size
from learnpath.errors import CacheEntryDecodeError, CacheSerializationError, StoreQuotaExceeded


def _entry_size(cache: AdvancedCache, key: str, value: object, timestamp: int) -> int:
    raw = CacheEntry.wrap(value, timestamp=timestamp, version=cache.version).serialize()
    return item_size(cache.namespace + key, raw)


def test_round_trip_returns_stored_value(cache: AdvancedCache) -> None:
    payload = {"questions": [{"id": "q1", "text": "What is a list?"}], "count": 1}
    assert cache.set("quiz-a", payload, tags=["quiz"]) is True
    assert cache.get("quiz-a") == payload
    assert cache.has("quiz-a")
    assert cache.get("missing") is None


def test_entry_expires_after_expiry_window(cache: AdvancedCache, clock: FakeClock, store: MemoryKeyValueStore) -> None:
    cache.set("k", "value")

    clock.advance(DAY_MS)
    assert cache.get("k") == "value"

    clock.advance(1)
    assert cache.get("k") is None
    assert store.get_item("test:k") is None
    assert cache.get_stats().total_items == 0


def test_version_mismatch_is_a_miss_and_removes_entry(store: MemoryKeyValueStore, clock: FakeClock) -> None:
    old = AdvancedCache(store, version="1.0.0", namespace="test:", clock=clock)
    new = AdvancedCache(store, version="1.1.0", namespace="test:", clock=clock)
    old.set("k", {"a": 1})

    assert new.get("k") is None
    assert store.get_item("test:k") is None


def test_explicit_version_on_write(cache: AdvancedCache) -> None:
    cache.set("k", "v", version="0.9.0")
    assert cache.get("k") is None


def test_unreadable_entry_is_a_miss(cache: AdvancedCache, store: MemoryKeyValueStore) -> None:
    store.set_item("test:broken", "{not json")
    store.set_item("test:legacy", '{"data": 1, "timestamp": 1, "version": "1.0.0", "tags": []}')

    assert cache.get("broken") is None
    assert cache.get("legacy") is None


def test_oldest_entries_are_evicted_first(store: MemoryKeyValueStore, clock: FakeClock, events) -> None:
    cache = AdvancedCache(store, version="1.0.0", namespace="test:", clock=clock)
    value = "x" * 100
    size = _entry_size(cache, "a", value, clock())
    cache.capacity_bytes = size * 3 + size // 2

    for key in ("a", "b", "c"):
        assert cache.set(key, value)
        clock.advance(1000)

    assert cache.set("d", value)
    assert cache.get("a") is None
    assert [cache.get(key) for key in ("b", "c", "d")] == [value, value, value]

    clock.advance(1000)
    assert cache.set("e", value)
    assert cache.get("b") is None
    assert cache.get("c") == value

    evicted = [event.payload["key"] for event in events if event.name == "cache_evicted"]
    assert evicted == ["a", "b"]


def test_oversized_entry_is_not_written(store: MemoryKeyValueStore, clock: FakeClock, events) -> None:
    cache = AdvancedCache(store, namespace="test:", capacity_bytes=200, clock=clock)
    cache.set("small", 1)

    assert cache.set("huge", "x" * 500) is False
    assert cache.get("huge") is None
    assert cache.get("small") == 1
    assert any(
        event.name == "cache_write_failed" and event.payload["reason"] == "oversized" for event in events
    )


def test_unserializable_value_is_not_written(cache: AdvancedCache, store: MemoryKeyValueStore) -> None:
    assert cache.set("bad", {"value": object()}) is False
    assert cache.set("nan", float("nan")) is False
    assert store.keys() == []


class FlakyStore(MemoryKeyValueStore):
    """Rejects a number of writes as if another writer had filled the quota."""

    def __init__(self, failures: int) -> None:
        super().__init__(capacity_bytes=64 * 1024)
        self.failures = failures

    def set_item(self, key: str, value: str) -> None:
        if key.endswith(":new") and self.failures:
            self.failures -= 1
            raise StoreQuotaExceeded("quota exceeded")
        super().set_item(key, value)


def test_quota_error_evicts_once_and_retries(clock: FakeClock) -> None:
    store = FlakyStore(failures=1)
    cache = AdvancedCache(store, namespace="test:", clock=clock)
    cache.set("old", "o")
    clock.advance(10)
    cache.set("recent", "r")

    assert cache.set("new", "n") is True
    assert cache.get("new") == "n"
    assert cache.get("old") is None
    assert cache.get("recent") == "r"


def test_persistent_quota_error_drops_the_write(clock: FakeClock, events) -> None:
    store = FlakyStore(failures=5)
    cache = AdvancedCache(store, namespace="test:", clock=clock)
    cache.set("old", "o")

    assert cache.set("new", "n") is False
    assert cache.get("new") is None
    assert any(event.name == "cache_write_failed" and event.payload["reason"] == "quota" for event in events)


def test_foreign_keys_count_towards_capacity_but_are_never_evicted(clock: FakeClock) -> None:
    store = MemoryKeyValueStore(capacity_bytes=400)
    store.set_item("other-app:settings", "y" * 200)
    cache = AdvancedCache(store, namespace="test:", clock=clock)

    assert cache.set("a", "x" * 60)
    clock.advance(1)
    assert cache.set("b", "x" * 60)

    assert store.get_item("other-app:settings") == "y" * 200
    assert cache.get("a") is None
    assert cache.get("b") == "x" * 60
    assert store.usage_bytes() <= 400


def test_clear_by_tags_skips_unreadable_entries(cache: AdvancedCache, store: MemoryKeyValueStore) -> None:
    cache.set("quiz-1", 1, tags=["quiz", "goal:python"])
    cache.set("quiz-2", 2, tags=["quiz"])
    cache.set("roadmap-1", 3, tags=["roadmap", "goal:python"])
    store.set_item("test:broken", "not-json")

    assert cache.clear_by_tags(["quiz"]) == 2
    assert cache.get("roadmap-1") == 3
    assert store.get_item("test:broken") == "not-json"

    assert cache.clear_by_tags(["goal:python"]) == 1
    assert cache.clear_by_tags([]) == 0


def test_clear_only_touches_owned_keys(cache: AdvancedCache, store: MemoryKeyValueStore) -> None:
    store.set_item("preferences", "dark")
    cache.set("a", 1)
    cache.set("b", 2)

    assert cache.clear() == 2
    assert store.keys() == ["preferences"]


def test_separate_instances_are_isolated(store: MemoryKeyValueStore, clock: FakeClock) -> None:
    first = AdvancedCache(store, namespace="first:", clock=clock)
    second = AdvancedCache(store, namespace="second:", clock=clock)
    first.set("k", "one")
    second.set("k", "two")

    first.clear()
    assert first.get("k") is None
    assert second.get("k") == "two"


def test_prune_removes_stale_entries(cache: AdvancedCache, clock: FakeClock, store: MemoryKeyValueStore) -> None:
    cache.set("expired", 1)
    clock.advance(DAY_MS + 1)
    cache.set("fresh", 2)
    cache.set("outdated", 3, version="0.1.0")
    store.set_item("test:broken", "???")

    assert cache.prune() == 3
    assert cache.get("fresh") == 2
    assert store.keys() == ["test:fresh"]


def test_stats_summarise_owned_entries(cache: AdvancedCache, clock: FakeClock, store: MemoryKeyValueStore) -> None:
    store.set_item("unrelated", "ignored")
    first_ts = clock()
    cache.set("a", "x", tags=["quiz", "goal:python"])
    clock.advance(500)
    cache.set("b", "y", tags=["quiz"])

    stats = cache.get_stats()
    assert stats.total_items == 2
    assert stats.oldest_item == first_ts
    assert stats.newest_item == first_ts + 500
    assert stats.items_by_tag == {"goal:python": 1, "quiz": 2}
    assert stats.total_size == store.usage_bytes() - item_size("unrelated", "ignored")
    assert stats.average_item_size == stats.total_size / 2


def test_empty_stats(cache: AdvancedCache) -> None:
    stats = cache.get_stats()
    assert stats.total_items == 0
    assert stats.oldest_item is None
    assert stats.average_item_size == 0.0


def test_entry_codec_rejects_bad_input() -> None:
    entry = CacheEntry.wrap({"b": 1}, timestamp=5, version="1.0.0", tags=["z", "a"])
    raw = entry.serialize()
    assert raw == '{"value":{"b":1},"timestamp":5,"version":"1.0.0","tags":["a","z"]}'
    assert CacheEntry.deserialize(raw) == entry

    with pytest.raises(CacheEntryDecodeError):
        CacheEntry.deserialize("[1, 2]")
    with pytest.raises(CacheEntryDecodeError):
        CacheEntry.deserialize('{"timestamp": 5, "version": "1.0.0"}')
    with pytest.raises(CacheSerializationError):
        CacheEntry.wrap({1, 2}, timestamp=5, version="1.0.0").serialize()
