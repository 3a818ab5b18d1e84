"""Application services composing the cache and session core."""

from src.services.cache_strategies import (
    AnalyticsCacheStrategy,
    CacheInvalidationStrategy,
    CacheStrategies,
    CourseCacheStrategy,
    CourseFetchers,
    RecommendationCacheStrategy,
    SearchCacheStrategy,
    StaticContentCacheStrategy,
    UserCacheStrategy,
)

__all__ = [
    "AnalyticsCacheStrategy",
    "CacheInvalidationStrategy",
    "CacheStrategies",
    "CourseCacheStrategy",
    "CourseFetchers",
    "RecommendationCacheStrategy",
    "SearchCacheStrategy",
    "StaticContentCacheStrategy",
    "UserCacheStrategy",
]
