"""
Snapshot cache - in-memory cache for normalized UV snapshots.

Short-lived (5 minute) cache keyed by the exact coordinate a snapshot
was computed from. With the default single slot, caching a new
coordinate invalidates the previous entry.
"""
from __future__ import annotations

import time
from collections import OrderedDict
from dataclasses import dataclass
from typing import Callable, Optional, Tuple

from app.config import Coordinate
from app.models import UVSnapshot

CacheKey = Tuple[float, float]


@dataclass(frozen=True)
class CacheEntry:
    """Internal cache entry with metadata."""

    data: UVSnapshot
    cached_at: float
    ttl_seconds: float


class SnapshotCache:
    """
    In-memory TTL cache for UV snapshots.

    Features:
    - TTL: 5 minutes (300 seconds) default
    - LRU eviction: 1 entry default (latest coordinate only)
    - Whole-value replacement: entries are never patched

    Single event loop only; there is no locking.
    """

    def __init__(
        self,
        ttl_seconds: float = 300,
        max_entries: int = 1,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """
        Initialize snapshot cache.

        Args:
            ttl_seconds: Time-to-live in seconds (default: 5 minutes)
            max_entries: Maximum cached coordinates (default: 1)
            clock: Monotonic time source, injectable for tests
        """
        self._cache: OrderedDict[CacheKey, CacheEntry] = OrderedDict()
        self._ttl_seconds = ttl_seconds
        self._max_entries = max(1, max_entries)
        self._clock = clock

    def get(self, coordinate: Coordinate) -> Optional[UVSnapshot]:
        """
        Get cached snapshot for a coordinate.

        Returns:
            Cached UVSnapshot if fresh (age < TTL), None otherwise

        Side Effects:
            - Moves accessed entry to end (LRU)
            - Removes expired entry if found
        """
        cache_key = self._get_cache_key(coordinate)
        entry = self._cache.get(cache_key)
        if entry is None:
            return None

        if not self._is_fresh(entry):
            del self._cache[cache_key]
            return None

        self._cache.move_to_end(cache_key)
        return entry.data

    def put(self, coordinate: Coordinate, data: UVSnapshot) -> None:
        """
        Store a snapshot, replacing any previous entry for the coordinate.

        Side Effects:
            - Evicts oldest entry if at max_entries
        """
        cache_key = self._get_cache_key(coordinate)

        if len(self._cache) >= self._max_entries and cache_key not in self._cache:
            self._evict_oldest()

        self._cache[cache_key] = CacheEntry(
            data=data,
            cached_at=self._clock(),
            ttl_seconds=self._ttl_seconds,
        )
        self._cache.move_to_end(cache_key)

    def clear(self) -> None:
        """Clear all cached entries."""
        self._cache.clear()

    def stats(self) -> dict[str, float]:
        """Current size, capacity and TTL."""
        return {
            "total_entries": len(self._cache),
            "max_entries": self._max_entries,
            "ttl_seconds": self._ttl_seconds,
        }

    def _get_cache_key(self, coordinate: Coordinate) -> CacheKey:
        """Exact latitude/longitude; the label is not part of the key."""
        return (coordinate.latitude, coordinate.longitude)

    def _is_fresh(self, entry: CacheEntry) -> bool:
        return self._clock() - entry.cached_at < entry.ttl_seconds

    def _evict_oldest(self) -> None:
        if self._cache:
            self._cache.popitem(last=False)
