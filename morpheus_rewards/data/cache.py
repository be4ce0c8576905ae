"""Dict-based cache with per-entry TTL expiry."""

from __future__ import annotations

import time
from typing import Any, Callable


class TTLCache:
    """Cache with a default TTL and an injectable clock.

    ``None`` is never stored; :meth:`get` returns ``None`` for a miss or an
    expired entry.  Every :meth:`set` drops all expired entries, so the
    store stays bounded by what was written within one TTL.

    Parameters
    ----------
    ttl : float
        Default seconds before an entry expires.
    clock : Callable[[], float]
        Time source (default ``time.monotonic``).
    """

    def __init__(self, ttl: float, clock: Callable[[], float] = time.monotonic) -> None:
        self._ttl = ttl
        self._clock = clock
        self._store: dict[str, tuple[float, Any]] = {}

    @property
    def ttl(self) -> float:
        return self._ttl

    def get(self, key: str, now: float | None = None) -> Any | None:
        entry = self._store.get(key)
        if entry is None:
            return None
        expires_at, value = entry
        if (self._clock() if now is None else now) >= expires_at:
            del self._store[key]
            return None
        return value

    def set(self, key: str, value: Any, ttl: float | None = None, now: float | None = None) -> None:
        if value is None:
            raise ValueError("TTLCache cannot store None")
        start = self._clock() if now is None else now
        self._purge(start)
        self._store[key] = (start + (self._ttl if ttl is None else ttl), value)

    def expires_at(self, key: str) -> float | None:
        entry = self._store.get(key)
        return entry[0] if entry else None

    def invalidate(self, key: str) -> None:
        self._store.pop(key, None)

    def clear(self) -> None:
        self._store.clear()

    def __len__(self) -> int:
        return len(self._store)

    def _purge(self, now: float) -> None:
        # Keys embedding a timestamp are never read again once expired
        expired = [k for k, (expires_at, _) in self._store.items() if now >= expires_at]
        for key in expired:
            del self._store[key]
