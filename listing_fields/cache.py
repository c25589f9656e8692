"""Time-boxed cache for expensive derived reads (e.g. term counts).

Cached values are never authoritative: staleness up to the TTL is
acceptable, so never cache anything correctness depends on.
"""

from __future__ import annotations

import threading
import time
from collections.abc import Callable
from typing import Any, TypeVar

T = TypeVar("T")


class TTLCache:
    """Thread-safe in-memory cache with per-entry expiry.

    ``remember`` computes a missing value at most once per key at a time;
    concurrent callers for the same key wait for the first computation.
    """

    def __init__(self, default_ttl: float = 3600.0, clock: Callable[[], float] = time.monotonic):
        self.default_ttl = default_ttl
        self._clock = clock
        self._entries: dict[str, tuple[float, Any]] = {}
        self._lock = threading.Lock()
        self._key_locks: dict[str, threading.Lock] = {}

    def get(self, key: str, default: Any = None) -> Any:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return default
            expires, value = entry
            if expires <= self._clock():
                del self._entries[key]
                return default
            return value

    def set(self, key: str, value: Any, ttl: float | None = None) -> None:
        ttl = self.default_ttl if ttl is None else ttl
        if ttl <= 0:
            return
        with self._lock:
            now = self._clock()
            self._prune(now)
            self._entries[key] = (now + ttl, value)

    def _prune(self, now: float) -> None:
        for key in [k for k, (expires, _) in self._entries.items() if expires <= now]:
            del self._entries[key]

    def forget(self, key: str) -> None:
        with self._lock:
            self._entries.pop(key, None)

    def forget_prefix(self, prefix: str) -> None:
        with self._lock:
            for key in [k for k in self._entries if k.startswith(prefix)]:
                del self._entries[key]

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def remember(self, key: str, compute: Callable[[], T], ttl: float | None = None) -> T:
        """Return the cached value for ``key`` or compute and cache it."""
        missing = object()
        value = self.get(key, missing)
        if value is not missing:
            return value

        with self._lock:
            key_lock = self._key_locks.setdefault(key, threading.Lock())
        try:
            with key_lock:
                # Another thread may have filled it while we waited.
                value = self.get(key, missing)
                if value is not missing:
                    return value
                value = compute()
                self.set(key, value, ttl)
                return value
        finally:
            with self._lock:
                if self._key_locks.get(key) is key_lock:
                    del self._key_locks[key]

    def __len__(self) -> int:
        with self._lock:
            now = self._clock()
            return sum(1 for expires, _ in self._entries.values() if expires > now)
