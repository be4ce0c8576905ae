"""Tests for TTLCache."""

import pytest

from morpheus_rewards.data.cache import TTLCache


class _Clock:
    def __init__(self) -> None:
        self.now = 0.0

    def __call__(self) -> float:
        return self.now


class TestTTLCache:
    def test_set_and_get(self):
        cache = TTLCache(ttl=60.0)
        cache.set("key", "value")
        assert cache.get("key") == "value"

    def test_miss_returns_none(self):
        assert TTLCache(ttl=60.0).get("missing") is None

    def test_expiry_with_injected_clock(self):
        clock = _Clock()
        cache = TTLCache(ttl=10.0, clock=clock)
        cache.set("key", 1)
        clock.now = 9.999
        assert cache.get("key") == 1
        clock.now = 10.0
        assert cache.get("key") is None
        assert len(cache) == 0

    def test_explicit_times(self):
        cache = TTLCache(ttl=10.0)
        cache.set("key", 1, now=100.0)
        assert cache.expires_at("key") == 110.0
        assert cache.get("key", now=105.0) == 1
        assert cache.get("key", now=110.0) is None

    def test_per_entry_ttl(self):
        cache = TTLCache(ttl=10.0)
        cache.set("key", 1, ttl=100.0, now=0.0)
        assert cache.get("key", now=50.0) == 1

    def test_zero_ttl_expires_immediately(self):
        cache = TTLCache(ttl=0.0)
        cache.set("key", "value")
        assert cache.get("key") is None

    def test_none_is_rejected(self):
        with pytest.raises(ValueError):
            TTLCache(ttl=1.0).set("key", None)

    def test_set_drops_expired_entries(self):
        clock = _Clock()
        cache = TTLCache(ttl=60.0, clock=clock)
        for i in range(100):
            cache.set(f"period_rewards:0:{i}", i)
            clock.now += 30.0
        # only keys written in the last 60 s survive
        assert len(cache) <= 2
        assert cache.get("period_rewards:0:99") == 99

    def test_set_keeps_live_entries(self):
        clock = _Clock()
        cache = TTLCache(ttl=60.0, clock=clock)
        cache.set("a", 1)
        clock.now = 59.0
        cache.set("b", 2)
        assert len(cache) == 2

    def test_invalidate_and_clear(self):
        cache = TTLCache(ttl=60.0)
        cache.set("a", 1)
        cache.set("b", 2)
        cache.invalidate("a")
        assert cache.get("a") is None
        assert cache.get("b") == 2
        cache.clear()
        assert len(cache) == 0
        assert cache.expires_at("b") is None
