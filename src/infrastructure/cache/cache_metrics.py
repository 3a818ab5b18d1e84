"""Cache metrics tracking for observability.

Lightweight in-memory counters for cache operations, keyed by namespace (the
key prefix: "user", "course", "session", ...). The cache manager exposes them
through get_stats() for the health-check endpoint.

Usage:
    metrics = CacheMetrics()
    metrics.record_hit("course")
    metrics.record_miss("course")

    stats = metrics.get_stats("course")
    print(f"Hit rate: {stats['hit_rate']:.2%}")
"""

from collections import defaultdict
from dataclasses import dataclass
from threading import Lock
from typing import Any


@dataclass
class CacheStats:
    """Cache statistics for a specific namespace.

    Attributes:
        hits: Reads served from cache.
        misses: Reads not served (absent, stale or unreadable).
        errors: Store operation failures.
        sets: Successful writes.
        deletes: Successful deletes.
        invalidations: Entries removed through tag or event invalidation.
    """

    hits: int = 0
    misses: int = 0
    errors: int = 0
    sets: int = 0
    deletes: int = 0
    invalidations: int = 0

    @property
    def total_requests(self) -> int:
        """Total cache reads (hits + misses)."""
        return self.hits + self.misses

    @property
    def hit_rate(self) -> float:
        """Cache hit rate (0.0 to 1.0)."""
        if self.total_requests == 0:
            return 0.0
        return self.hits / self.total_requests

    def to_dict(self) -> dict[str, Any]:
        """Convert stats to dictionary for JSON serialization."""
        return {
            "hits": self.hits,
            "misses": self.misses,
            "errors": self.errors,
            "sets": self.sets,
            "deletes": self.deletes,
            "invalidations": self.invalidations,
            "total_requests": self.total_requests,
            "hit_rate": round(self.hit_rate, 4),
        }


class CacheMetrics:
    """In-memory cache metrics tracker.

    Thread-safe counters per namespace. One instance is owned by each
    CacheManager, so tests get isolated counters.
    """

    def __init__(self) -> None:
        """Initialize metrics tracker with empty counters."""
        self._stats: dict[str, CacheStats] = defaultdict(CacheStats)
        self._lock = Lock()

    def record_hit(self, namespace: str) -> None:
        """Record a cache hit."""
        with self._lock:
            self._stats[namespace].hits += 1

    def record_miss(self, namespace: str) -> None:
        """Record a cache miss."""
        with self._lock:
            self._stats[namespace].misses += 1

    def record_error(self, namespace: str) -> None:
        """Record a cache operation error."""
        with self._lock:
            self._stats[namespace].errors += 1

    def record_set(self, namespace: str) -> None:
        """Record a successful write."""
        with self._lock:
            self._stats[namespace].sets += 1

    def record_delete(self, namespace: str) -> None:
        """Record a successful delete."""
        with self._lock:
            self._stats[namespace].deletes += 1

    def record_invalidations(self, namespace: str, count: int) -> None:
        """Record entries removed by invalidation.

        Args:
            namespace: Namespace the entries belonged to.
            count: Number of entries removed.
        """
        with self._lock:
            self._stats[namespace].invalidations += count

    def get_stats(self, namespace: str) -> dict[str, Any]:
        """Get statistics for a specific namespace.

        Args:
            namespace: Cache namespace to query.

        Returns:
            Dictionary with counters, total_requests and hit_rate.
        """
        with self._lock:
            stats = self._stats.get(namespace, CacheStats())
            return stats.to_dict()

    def get_all_stats(self) -> dict[str, dict[str, Any]]:
        """Get statistics for all namespaces."""
        with self._lock:
            return {
                namespace: stats.to_dict() for namespace, stats in self._stats.items()
            }

    def reset(self, namespace: str | None = None) -> None:
        """Reset metrics.

        Args:
            namespace: Optional namespace to reset. If None, reset all.
        """
        with self._lock:
            if namespace is None:
                self._stats.clear()
            else:
                self._stats[namespace] = CacheStats()
