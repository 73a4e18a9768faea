"""
TTL + LRU cache for blast radius results.

Entries are keyed by (tenant_id, execution_id, sorted source node ids) and
expire ``ttl_seconds`` after they were written. An entry may be tagged with
the generation of the graph it was computed from; a lookup that names a
different generation misses.

The cache is bounded: when full, the least recently used entry is evicted.
All operations take a single lock; concurrent writers for the same key
simply overwrite each other (last write wins).
"""

import threading
import time
from collections import OrderedDict
from dataclasses import dataclass
from typing import Any, Callable, Iterable, Optional

import structlog

from iacgraph.models.blast_radius import BlastRadiusResult

logger = structlog.get_logger()

CacheKey = tuple[str, str, tuple[str, ...]]


def make_cache_key(tenant_id: str, execution_id: str, node_ids: Iterable[str]) -> CacheKey:
    """Order-insensitive key for a source node set."""
    return (tenant_id, execution_id, tuple(sorted(set(node_ids))))


@dataclass
class CacheEntry:
    """A cached result and when it was stored."""

    result: BlastRadiusResult
    created_at: float
    generation: Optional[int] = None
    hits: int = 0

    def is_expired(self, now: float, ttl: float) -> bool:
        return now - self.created_at > ttl


class BlastRadiusCache:
    """
    Thread-safe bounded TTL cache.

    Attributes:
        ttl_seconds: Entry lifetime
        max_entries: Capacity before LRU eviction
        clock: Monotonic time source (injectable for tests)

    Example:
        >>> cache = BlastRadiusCache(ttl_seconds=60)
        >>> key = make_cache_key("tenant-a", "exec-1", ["n2", "n1"])
        >>> cache.put(key, result)
        >>> cache.get(key) is result
        True
    """

    def __init__(
        self,
        ttl_seconds: float = 3600.0,
        max_entries: int = 10_000,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.ttl_seconds = ttl_seconds
        self.max_entries = max_entries
        self.clock = clock
        self._entries: OrderedDict[CacheKey, CacheEntry] = OrderedDict()
        self._lock = threading.Lock()
        self._stats = {"hits": 0, "misses": 0, "evictions": 0, "expirations": 0}

    def get(self, key: CacheKey, generation: Optional[int] = None) -> Optional[BlastRadiusResult]:
        """
        Return a live entry, dropping it if it has expired.

        When ``generation`` is given, an entry computed from another graph
        generation is treated as a miss.
        """
        with self._lock:
            entry = self._entries.get(key)
            if entry is None or (generation is not None and entry.generation != generation):
                self._stats["misses"] += 1
                return None
            if entry.is_expired(self.clock(), self.ttl_seconds):
                del self._entries[key]
                self._stats["expirations"] += 1
                self._stats["misses"] += 1
                return None
            self._entries.move_to_end(key)
            entry.hits += 1
            self._stats["hits"] += 1
            return entry.result

    def put(self, key: CacheKey, result: BlastRadiusResult, generation: Optional[int] = None) -> None:
        with self._lock:
            if key in self._entries:
                del self._entries[key]
            elif len(self._entries) >= self.max_entries:
                evicted, _ = self._entries.popitem(last=False)
                self._stats["evictions"] += 1
                logger.debug("blast_radius_cache_evicted", tenant_id=evicted[0], execution_id=evicted[1])
            self._entries[key] = CacheEntry(result=result, created_at=self.clock(), generation=generation)

    def invalidate_execution(self, tenant_id: str, execution_id: str) -> int:
        """Drop every entry for one execution; returns how many were removed."""
        with self._lock:
            stale = [k for k in self._entries if k[0] == tenant_id and k[1] == execution_id]
            for key in stale:
                del self._entries[key]
        if stale:
            logger.info(
                "blast_radius_cache_invalidated",
                tenant_id=tenant_id,
                execution_id=execution_id,
                entries=len(stale),
            )
        return len(stale)

    def clear(self) -> int:
        with self._lock:
            count = len(self._entries)
            self._entries.clear()
        logger.info("blast_radius_cache_cleared", entries=count)
        return count

    def stats(self) -> dict[str, Any]:
        with self._lock:
            total = self._stats["hits"] + self._stats["misses"]
            return {
                "size": len(self._entries),
                "max_entries": self.max_entries,
                "ttl_seconds": self.ttl_seconds,
                **self._stats,
                "hit_rate": self._stats["hits"] / total if total else 0.0,
            }

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
