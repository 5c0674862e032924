"""In-memory bounded TTL cache backing the rate limiter.

Two eviction forces apply independently: a per-entry time-to-live and a
maximum entry count (least-recently-used dropped first). Thread-safe, since
FastAPI runs sync dependencies on a worker pool.
"""

from __future__ import annotations

import logging
import threading
import time
from collections import OrderedDict
from dataclasses import dataclass
from typing import Callable, Generic, TypeVar

logger = logging.getLogger(__name__)

V = TypeVar("V")


@dataclass
class CacheItem(Generic[V]):
    """Container for cached values with expiration metadata."""

    value: V
    expires_at: float


class BoundedTTLCache(Generic[V]):
    """Thread-safe, in-memory TTL cache with LRU eviction.

    Reading a live entry marks it as recently used but never extends its
    TTL; only ``set`` refreshes the expiry.

    Attributes:
        max_entries: Maximum number of cached items.
        ttl_seconds: Time-to-live applied to all entries.
    """

    def __init__(
        self,
        max_entries: int = 10000,
        ttl_seconds: float = 3600,
        *,
        clock: Callable[[], float] = time.time,
    ) -> None:
        if max_entries < 1:
            raise ValueError("max_entries must be >= 1")
        if ttl_seconds <= 0:
            raise ValueError("ttl_seconds must be > 0")

        self._max_entries = max_entries
        self._ttl = ttl_seconds
        self._clock = clock
        self._store: OrderedDict[str, CacheItem[V]] = OrderedDict()
        self._lock = threading.RLock()
        self._hits = 0
        self._misses = 0
        self._evictions = 0

    def __repr__(self) -> str:  # pragma: no cover - representation only
        return (
            f"BoundedTTLCache(max_entries={self._max_entries}, ttl_seconds={self._ttl}, "
            f"size={len(self._store)}, hits={self._hits}, misses={self._misses}, "
            f"evictions={self._evictions})"
        )

    @property
    def max_entries(self) -> int:
        return self._max_entries

    @property
    def lock(self) -> threading.RLock:
        """Re-entrant lock guarding the store, for callers that read-modify-write."""
        return self._lock

    def get(self, key: str) -> V | None:
        """Retrieve a cached value if it exists and is not expired.

        Args:
            key: Cache key.

        Returns:
            Cached value or None if not found/expired.
        """

        with self._lock:
            item = self._store.get(key)
            if item is None:
                self._misses += 1
                return None

            if self._is_expired(item):
                self._evict_single(key)
                self._misses += 1
                logger.debug("cache.miss", extra={"reason": "expired"})
                return None

            self._hits += 1
            self._store.move_to_end(key)  # mark as recently used
            return item.value

    def peek(self, key: str) -> V | None:
        """Like ``get`` but leaves recency and counters untouched."""

        with self._lock:
            item = self._store.get(key)
            if item is None or self._is_expired(item):
                return None
            return item.value

    def set(self, key: str, value: V) -> None:
        """Store a value with TTL, evicting as needed.

        Args:
            key: Cache key.
            value: Value to store.
        """

        with self._lock:
            self._evict_expired_locked()
            self._store[key] = CacheItem(value=value, expires_at=self._clock() + self._ttl)
            self._store.move_to_end(key)
            self._evict_if_over_capacity_locked()

    def delete(self, key: str) -> bool:
        """Remove a single entry. Returns True if it was present."""

        with self._lock:
            return self._store.pop(key, None) is not None

    def clear(self) -> None:
        """Remove all cached entries and reset counters."""

        with self._lock:
            self._store.clear()
            self._hits = 0
            self._misses = 0
            self._evictions = 0

    def size(self) -> int:
        """Count of live (non-expired) entries."""

        with self._lock:
            return sum(1 for item in self._store.values() if not self._is_expired(item))

    def __len__(self) -> int:
        return self.size()

    def stats(self) -> dict[str, int | float]:
        """Return lightweight cache metrics without exposing values."""

        with self._lock:
            return {
                "ttl_seconds": self._ttl,
                "max_entries": self._max_entries,
                "entries": self.size(),
                "hits": self._hits,
                "misses": self._misses,
                "evictions": self._evictions,
            }

    def _evict_single(self, key: str) -> None:
        if key in self._store:
            self._store.pop(key, None)
            self._evictions += 1

    def _evict_expired_locked(self) -> None:
        # Only the least recently used end is swept; expired entries further
        # back are dropped lazily by get() or by capacity eviction.
        while self._store:
            key, item = next(iter(self._store.items()))
            if not self._is_expired(item):
                break
            self._evict_single(key)

    def _evict_if_over_capacity_locked(self) -> None:
        while len(self._store) > self._max_entries:
            # popitem(last=False) removes the least recently used entry
            self._store.popitem(last=False)
            self._evictions += 1

    def _is_expired(self, item: CacheItem[V]) -> bool:
        return self._clock() >= item.expires_at
