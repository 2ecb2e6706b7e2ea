"""
RESPONSIBILITIES
- Hold cached values in a bounded, time-expiring, least-recently-used map.
- Serialize map mutation across request threads.
- Allow at most one in-flight computation per key.
PROCESS OVERVIEW
1. get() returns live entries, dropping expired ones and refreshing recency.
2. set() stores with expires_at = clock() + ttl and evicts beyond max_entries.
3. get_or_create() takes the key's in-flight lock, re-checks, then computes.
"""

from __future__ import annotations

import threading
import time
from collections import OrderedDict
from dataclasses import dataclass
from typing import Any, Callable, Generic, TypeVar

from countyreport.core.logger import get_logger

LOGGER = get_logger()

T = TypeVar("T")
Clock = Callable[[], float]


@dataclass(slots=True)
class CacheEntry:
    """Cached value and its absolute expiry on the store clock."""

    key: str
    value: Any
    expires_at: float


@dataclass(slots=True)
class CacheStats:
    hits: int = 0
    misses: int = 0
    evictions: int = 0
    expirations: int = 0


class ExpiringLRUCache:
    """Thread-safe LRU cache whose entries expire a fixed time after insertion."""

    def __init__(
        self,
        max_entries: int = 32,
        ttl_seconds: float = 15 * 60,
        *,
        clock: Clock | None = None,
    ) -> None:
        if max_entries < 1:
            raise ValueError("max_entries must be at least 1")
        if ttl_seconds <= 0:
            raise ValueError("ttl_seconds must be positive")
        self._max_entries = max_entries
        self._ttl = float(ttl_seconds)
        self._clock = clock or time.monotonic
        self._entries: OrderedDict[str, CacheEntry] = OrderedDict()
        self._lock = threading.Lock()
        self._inflight: dict[str, threading.Lock] = {}
        self._inflight_guard = threading.Lock()
        self._stats = CacheStats()

    @property
    def ttl_seconds(self) -> float:
        return self._ttl

    @property
    def max_entries(self) -> int:
        return self._max_entries

    def get(self, key: str) -> Any | None:
        """Return the live value for ``key`` or ``None``."""

        with self._lock:
            entry = self._lookup_locked(key)
            if entry is None:
                self._stats.misses += 1
                return None
            self._stats.hits += 1
            return entry.value

    def set(self, key: str, value: Any) -> None:
        """Store ``value`` under ``key`` for one time-to-live window."""

        with self._lock:
            self._entries[key] = CacheEntry(key=key, value=value, expires_at=self._clock() + self._ttl)
            self._entries.move_to_end(key)
            while len(self._entries) > self._max_entries:
                evicted, _ = self._entries.popitem(last=False)
                self._stats.evictions += 1
                LOGGER.debug("countyreport.cache evicted key=%s", evicted)

    def get_or_create(self, key: str, factory: Callable[[], T]) -> T:
        """Return the cached value, computing it at most once across threads.

        Exceptions raised by ``factory`` propagate and nothing is stored. Each
        call counts exactly once in the stats: as a miss when it runs
        ``factory``, otherwise as a hit, including callers that waited for
        another thread's computation.
        """

        cached = self._hit_or_none(key)
        if cached is not None:
            return cached.value
        lock = self._key_lock(key)
        with lock:
            try:
                cached = self._hit_or_none(key)
                if cached is not None:
                    return cached.value
                with self._lock:
                    self._stats.misses += 1
                LOGGER.info("countyreport.cache miss key=%s", key)
                value = factory()
                self.set(key, value)
                return value
            finally:
                self._drop_key_lock(key, lock)

    def invalidate(self, key: str) -> None:
        with self._lock:
            self._entries.pop(key, None)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def stats(self) -> dict[str, int]:
        with self._lock:
            return {
                "size": len(self._entries),
                "max_entries": self._max_entries,
                "hits": self._stats.hits,
                "misses": self._stats.misses,
                "evictions": self._stats.evictions,
                "expirations": self._stats.expirations,
            }

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, key: object) -> bool:
        if not isinstance(key, str):
            return False
        with self._lock:
            return self._lookup_locked(key, touch=False) is not None

    # Internal helpers -------------------------------------------------

    def _hit_or_none(self, key: str) -> CacheEntry | None:
        with self._lock:
            entry = self._lookup_locked(key)
            if entry is not None:
                self._stats.hits += 1
            return entry

    def _lookup_locked(self, key: str, *, touch: bool = True) -> CacheEntry | None:
        entry = self._entries.get(key)
        if entry is None:
            return None
        if entry.expires_at <= self._clock():
            del self._entries[key]
            self._stats.expirations += 1
            LOGGER.debug("countyreport.cache expired key=%s", key)
            return None
        if touch:
            self._entries.move_to_end(key)
        return entry

    def _key_lock(self, key: str) -> threading.Lock:
        with self._inflight_guard:
            lock = self._inflight.get(key)
            if lock is None:
                lock = threading.Lock()
                self._inflight[key] = lock
            return lock

    def _drop_key_lock(self, key: str, lock: threading.Lock) -> None:
        # Threads already waiting keep their reference and re-check the map.
        with self._inflight_guard:
            if self._inflight.get(key) is lock:
                del self._inflight[key]


class NamespacedCache(Generic[T]):
    """Logical cache with its own key space over a shared store."""

    def __init__(self, store: ExpiringLRUCache, prefix: str) -> None:
        self._store = store
        self._prefix = prefix

    @property
    def store(self) -> ExpiringLRUCache:
        return self._store

    def full_key(self, key: str) -> str:
        return f"{self._prefix}:{key}"

    def get(self, key: str) -> T | None:
        return self._store.get(self.full_key(key))

    def get_or_create(self, key: str, factory: Callable[[], T]) -> T:
        return self._store.get_or_create(self.full_key(key), factory)

    def invalidate(self, key: str) -> None:
        self._store.invalidate(self.full_key(key))


__all__ = ["ExpiringLRUCache", "NamespacedCache", "CacheEntry", "CacheStats"]
