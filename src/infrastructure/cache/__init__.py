"""Cache infrastructure package.

This package provides the Redis-backed cache layer.
All cache dependencies are wired through src.core.container.

Architecture:
- RedisAdapter: Concrete Redis implementation of KeyValueStoreProtocol
- CacheKeys: Centralized key shapes (entities, tags, versions, sessions)
- CacheMetrics: Per-namespace hit/miss/error counters
- CacheManager: Tagged, versioned cache with event-driven invalidation
"""

from src.infrastructure.cache.cache_keys import CacheKeys
from src.infrastructure.cache.cache_manager import (
    CacheConfig,
    CacheEntry,
    CacheInvalidationEvent,
    CacheManager,
    CacheWarmer,
    InvalidationEventType,
    WarmingConfig,
    WarmingReport,
)
from src.infrastructure.cache.cache_metrics import CacheMetrics, CacheStats
from src.infrastructure.cache.redis_adapter import RedisAdapter

__all__ = [
    "CacheConfig",
    "CacheEntry",
    "CacheInvalidationEvent",
    "CacheKeys",
    "CacheManager",
    "CacheMetrics",
    "CacheStats",
    "CacheWarmer",
    "InvalidationEventType",
    "RedisAdapter",
    "WarmingConfig",
    "WarmingReport",
]
