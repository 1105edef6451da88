"""Tests for the TTL cache."""

from nutrition_engine.services.cache import TtlCache


def test_cache_hit_and_miss_counters() -> None:
    cache = TtlCache()

    assert cache.get("missing") is None
    cache.set("key", [1, 2], ttl_seconds=60)

    assert cache.get("key") == [1, 2]
    assert cache.hits == 1
    assert cache.misses == 1
    assert len(cache) == 1


def test_expired_entries_are_misses() -> None:
    cache = TtlCache()
    cache.set("key", "value", ttl_seconds=0)

    assert cache.get("key") is None
    assert len(cache) == 0


def test_size_bound_sweeps_only_expired_entries() -> None:
    cache = TtlCache(max_entries=2)
    cache.set("stale", 1, ttl_seconds=0)
    cache.set("live-1", 2, ttl_seconds=60)
    cache.set("live-2", 3, ttl_seconds=60)

    assert len(cache) == 2
    assert cache.get("live-1") == 2
    assert cache.get("live-2") == 3

    cache.set("live-3", 4, ttl_seconds=60)
    assert len(cache) == 3


def test_clear_drops_everything() -> None:
    cache = TtlCache()
    cache.set("key", "value", ttl_seconds=60)

    cache.clear()

    assert cache.get("key") is None
