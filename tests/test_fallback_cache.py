"""Tests for InMemoryFallbackCache."""

from datetime import timedelta

from nearby_transit.application.services import InMemoryFallbackCache
from tests.test_models import NOW


def test_get_freshest_returns_newest_unexpired_entry() -> None:
    """Given entries of different ages, when reading, then the newest one within max age is returned."""
    cache: InMemoryFallbackCache[str] = InMemoryFallbackCache()
    cache.set("old", "old-value", NOW - timedelta(seconds=50))
    cache.set("new", "new-value", NOW - timedelta(seconds=10))

    assert cache.get_freshest(60, NOW) == ("new-value", NOW - timedelta(seconds=10))


def test_entries_at_max_age_are_expired() -> None:
    """Given an entry exactly max age old, when reading, then it is treated as expired."""
    cache: InMemoryFallbackCache[str] = InMemoryFallbackCache()
    cache.set("k", "v", NOW - timedelta(seconds=60))

    assert cache.get_freshest(60, NOW) is None
    assert cache.get_freshest(61, NOW) is not None


def test_set_replaces_value_for_key() -> None:
    """Given an existing key, when setting again, then the entry is replaced."""
    cache: InMemoryFallbackCache[int] = InMemoryFallbackCache()
    cache.set("k", 1, NOW - timedelta(seconds=5))
    cache.set("k", 2, NOW)

    assert len(cache) == 1
    assert cache.get_freshest(60, NOW) == (2, NOW)


def test_evict_older_than_removes_only_expired() -> None:
    """Given fresh and stale entries, when evicting, then only stale ones are removed."""
    cache: InMemoryFallbackCache[str] = InMemoryFallbackCache()
    cache.set("stale", "a", NOW - timedelta(minutes=20))
    cache.set("fresh", "b", NOW - timedelta(minutes=1))

    assert cache.evict_older_than(600, NOW) == 1
    assert len(cache) == 1
    assert cache.evict_older_than(0, NOW) == 1
    assert len(cache) == 0
