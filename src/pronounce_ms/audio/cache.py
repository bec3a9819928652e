"""
Bounded In-Memory Audio Record Cache.

Holds one CacheRecord per resolved (text, language) pair. The cache never
grows past its capacity: when a new key arrives at a full cache, the
oldest-inserted fifth of the entries is dropped first.

Eviction is insertion-order FIFO, not LRU. Reading a record does not
move it; only writing the same key again counts as a new insertion.

Memory only: everything is lost on restart.

Example:
    >>> cache = BoundedCache(capacity=5)
    >>> for name in "ABCDE":
    ...     _ = cache.put(CacheRecord(name, f"u:{name}", name, "zh-CN"))
    >>> cache.put(CacheRecord("F", "u:F", "F", "zh-CN"))
    1
    >>> "A" in cache
    False
"""
from __future__ import annotations

import math
import threading
import time
from collections import OrderedDict
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from pronounce_ms.core.config import Defaults
from pronounce_ms.core.logging import get_logger, verbose
from pronounce_ms.core.metrics import metrics

_LOG = get_logger("pronounce-ms.cache")


@dataclass(frozen=True)
class CacheRecord:
    """
    One resolved audio lookup.

    Attributes:
        key: Derived cache key.
        resource_locator: Opaque URI of the audio, fetched by the proxy.
        text: Original text.
        language: Language code used for the lookup.
        created_at: Unix timestamp of the resolution.
    """
    key: str
    resource_locator: str
    text: str
    language: str
    created_at: float = field(default_factory=time.time)


class BoundedCache:
    """
    Thread-safe bounded cache with FIFO batch eviction.

    Invariant:
        size <= capacity after every put.

    Attributes:
        capacity: Maximum number of records.
        eviction_fraction: Share of capacity dropped when full.
    """

    def __init__(
        self,
        capacity: int = Defaults.CACHE_MAX_ITEMS,
        eviction_fraction: float = Defaults.CACHE_EVICTION_FRACTION,
    ):
        if capacity <= 0:
            raise ValueError(f"capacity must be positive, got {capacity}")
        self.capacity = int(capacity)
        self.eviction_fraction = float(eviction_fraction)

        # Insertion order is the eviction order
        self._d: "OrderedDict[str, CacheRecord]" = OrderedDict()
        self._lock = threading.Lock()

    @property
    def eviction_batch(self) -> int:
        """Number of records dropped per eviction (at least one)."""
        return max(1, math.floor(self.capacity * self.eviction_fraction))

    def get(self, key: str) -> Optional[CacheRecord]:
        with self._lock:
            return self._d.get(key)

    def put(self, record: CacheRecord) -> int:
        """
        Store a record.

        Writing an existing key replaces the record and moves it to the
        newest position without evicting anything. Writing a new key into
        a full cache first drops the oldest `eviction_batch` records.

        Returns:
            Number of evicted records.
        """
        evicted = 0
        with self._lock:
            if record.key in self._d:
                del self._d[record.key]
            elif len(self._d) >= self.capacity:
                batch = min(self.eviction_batch, len(self._d))
                for _ in range(batch):
                    self._d.popitem(last=False)
                evicted = batch
            self._d[record.key] = record
            size = len(self._d)

        metrics.set_cache_size(size)
        if evicted:
            metrics.record_evictions(evicted)
            verbose(_LOG, "evicted", count=evicted, size=size, capacity=self.capacity)
        return evicted

    def delete(self, key: str) -> bool:
        with self._lock:
            removed = self._d.pop(key, None) is not None
            size = len(self._d)
        metrics.set_cache_size(size)
        return removed

    def clear(self) -> int:
        """Remove every record. Returns the number of records removed."""
        with self._lock:
            previous = len(self._d)
            self._d.clear()
        metrics.set_cache_size(0)
        verbose(_LOG, "cleared", previous=previous)
        return previous

    def size(self) -> int:
        with self._lock:
            return len(self._d)

    def __len__(self) -> int:
        return self.size()

    def __contains__(self, key: object) -> bool:
        with self._lock:
            return key in self._d

    def keys(self) -> list[str]:
        """Keys from oldest to newest."""
        with self._lock:
            return list(self._d.keys())

    def stats(self) -> Dict[str, Any]:
        """
        Snapshot of the cache state.

        Returns:
            Dict with size, capacity, utilization (size / capacity) and
            per_language_counts.
        """
        with self._lock:
            size = len(self._d)
            per_language: Dict[str, int] = {}
            for record in self._d.values():
                per_language[record.language] = per_language.get(record.language, 0) + 1
        return {
            "size": size,
            "capacity": self.capacity,
            "utilization": size / self.capacity,
            "per_language_counts": per_language,
        }
