"""Tests for InMemoryCache."""

from unittest.mock import MagicMock

from mapdesk.adapters.cache import InMemoryCache


class FakeClock:
    def __init__(self):
        self.now = 0.0

    def __call__(self):
        return self.now


class TestInMemoryCache:
    def test_set_and_get(self):
        cache = InMemoryCache(name="t")
        cache.set("a", [1, 2])
        assert cache.get("a") == [1, 2]
        assert cache.get("missing") is None

    def test_entries_expire(self):
        clock = FakeClock()
        cache = InMemoryCache(default_ttl_seconds=10, clock=clock)
        cache.set("a", "x")
        clock.now = 10.5
        assert cache.get("a") is None
        assert cache.size() == 0

    def test_no_default_ttl_never_expires(self):
        clock = FakeClock()
        cache = InMemoryCache(clock=clock)
        cache.set("pipeline", "model")
        clock.now = 10**9
        assert cache.get("pipeline") == "model"

    def test_per_entry_ttl_overrides_default(self):
        clock = FakeClock()
        cache = InMemoryCache(default_ttl_seconds=10, clock=clock)
        cache.set("a", "x", ttl=100)
        clock.now = 50
        assert cache.get("a") == "x"

    def test_get_or_compute_calls_once(self):
        cache = InMemoryCache()
        compute = MagicMock(return_value=["Old Mill"])
        assert cache.get_or_compute("names", compute) == ["Old Mill"]
        assert cache.get_or_compute("names", compute) == ["Old Mill"]
        compute.assert_called_once()

    def test_get_or_compute_after_expiry_recomputes(self):
        clock = FakeClock()
        cache = InMemoryCache(default_ttl_seconds=60, clock=clock)
        compute = MagicMock(side_effect=[["Old Mill"], ["Old Mill", "Harbor"]])
        cache.get_or_compute("names", compute)
        clock.now = 61
        assert cache.get_or_compute("names", compute) == ["Old Mill", "Harbor"]

    def test_purge_expired(self):
        clock = FakeClock()
        cache = InMemoryCache(clock=clock)
        cache.set("short", 1, ttl=5)
        cache.set("long", 2, ttl=50)
        clock.now = 10
        assert cache.purge_expired() == 1
        assert cache.size() == 1

    def test_invalidate_and_clear(self):
        cache = InMemoryCache()
        cache.set("a", 1)
        cache.set("b", 2)
        assert cache.invalidate("a") is True
        assert cache.invalidate("a") is False
        assert cache.clear() == 1
