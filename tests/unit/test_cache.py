"""Unit tests for the TTL cache."""

from __future__ import annotations

import threading

import pytest

from listing_fields.cache import TTLCache


class FakeClock:
    def __init__(self) -> None:
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now


class TestTTLCache:
    def test_get_missing_returns_default(self) -> None:
        cache = TTLCache()
        assert cache.get("x") is None
        assert cache.get("x", 5) == 5

    def test_expiry(self) -> None:
        clock = FakeClock()
        cache = TTLCache(default_ttl=10, clock=clock)
        cache.set("counts", {"cafes": 3})
        clock.now += 9
        assert cache.get("counts") == {"cafes": 3}
        clock.now += 1
        assert cache.get("counts") is None
        assert len(cache) == 0

    def test_zero_ttl_not_stored(self) -> None:
        cache = TTLCache(default_ttl=0)
        cache.set("a", 1)
        assert cache.get("a") is None

    def test_forget_prefix(self) -> None:
        cache = TTLCache()
        cache.set("terms:category", 1)
        cache.set("terms:tag", 2)
        cache.set("other", 3)
        cache.forget_prefix("terms:")
        assert len(cache) == 1
        assert cache.get("other") == 3

    def test_forget_and_clear(self) -> None:
        cache = TTLCache()
        cache.set("a", 1)
        cache.set("b", 2)
        cache.forget("a")
        assert cache.get("a") is None
        cache.clear()
        assert len(cache) == 0

    def test_remember_computes_once(self) -> None:
        cache = TTLCache()
        calls = []

        def compute() -> int:
            calls.append(1)
            return 42

        assert cache.remember("k", compute) == 42
        assert cache.remember("k", compute) == 42
        assert len(calls) == 1

    def test_remember_recomputes_after_expiry(self) -> None:
        clock = FakeClock()
        cache = TTLCache(default_ttl=5, clock=clock)
        values = iter([1, 2])
        assert cache.remember("k", lambda: next(values)) == 1
        clock.now += 5
        assert cache.remember("k", lambda: next(values)) == 2

    def test_remember_concurrent_callers(self) -> None:
        cache = TTLCache()
        started = threading.Event()
        calls = []

        def compute() -> str:
            calls.append(1)
            started.wait(1)
            return "value"

        results: list[str] = []
        threads = [
            threading.Thread(target=lambda: results.append(cache.remember("k", compute)))
            for _ in range(4)
        ]
        for t in threads:
            t.start()
        started.set()
        for t in threads:
            t.join()

        assert results == ["value"] * 4
        assert len(calls) == 1

    def test_set_prunes_expired_entries(self) -> None:
        clock = FakeClock()
        cache = TTLCache(default_ttl=5, clock=clock)
        for i in range(10):
            cache.set(f"terms:{i}", i)
        clock.now += 5
        cache.set("fresh", 1)
        assert list(cache._entries) == ["fresh"]

    def test_remember_releases_key_locks(self) -> None:
        cache = TTLCache()
        for i in range(20):
            cache.remember(f"counts:{i}", lambda: i)
        assert cache._key_locks == {}

    def test_remember_releases_key_lock_on_error(self) -> None:
        cache = TTLCache()

        def compute() -> int:
            raise RuntimeError("store unavailable")

        with pytest.raises(RuntimeError):
            cache.remember("k", compute)
        assert cache._key_locks == {}
        assert cache.remember("k", lambda: 7) == 7
