"""Domain caching policies for the learning platform.

Each strategy fixes the TTLs and tag vocabulary for one kind of data and
composes the CacheManager. Tags always include the entity-scoped tag
(``user:{id}``, ``course:{id}``) so lifecycle events can invalidate
everything about one entity at once.

TTLs (seconds):
    user profile 28800, user courses 1800, progress 900,
    course metadata/lessons/dependencies 3600, lesson content 7200,
    course stats 1800, search results 1800, popular searches 3600,
    suggestions 1800, dashboard analytics 300, system/user analytics 600,
    course analytics 900, course/learning-path recommendations 7200,
    peer recommendations 3600, settings 3600, certificates 86400,
    leaderboards 1800

Usage:
    strategies = CacheStrategies(cache_manager)

    profile = await strategies.user.get_user_profile("u1", load_profile)
    await strategies.invalidation.on_course_update("c1")
"""

import asyncio
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any

from src.infrastructure.cache.cache_manager import CacheConfig, CacheManager

Fetcher = Callable[[], Awaitable[Any]]


class _Strategy:
    def __init__(self, cache: CacheManager) -> None:
        self._cache = cache
        self._keys = cache.keys


class UserCacheStrategy(_Strategy):
    """User profile, enrollments and progress."""

    PROFILE_TTL = 28800
    COURSES_TTL = 1800
    PROGRESS_TTL = 900

    def _profile_config(self, user_id: str) -> CacheConfig:
        return CacheConfig(
            ttl=self.PROFILE_TTL,
            tags=["user", "profile", f"user:{user_id}"],
        )

    async def cache_user_profile(self, user_id: str, profile: Any) -> bool:
        return await self._cache.set(
            self._keys.user(user_id, "profile"),
            profile,
            self._profile_config(user_id),
        )

    async def get_user_profile(self, user_id: str, fallback: Fetcher) -> Any:
        """Cached profile, loaded through ``fallback`` on miss."""
        return await self._cache.get_or_set(
            self._keys.user(user_id, "profile"),
            fallback,
            self._profile_config(user_id),
        )

    async def cache_user_courses(self, user_id: str, courses: list[Any]) -> bool:
        return await self._cache.set(
            self._keys.user(user_id, "courses"),
            courses,
            CacheConfig(
                ttl=self.COURSES_TTL,
                tags=["user", "courses", f"user:{user_id}"],
            ),
        )

    async def cache_user_progress(
        self, user_id: str, progress: dict[str, Any]
    ) -> bool:
        """Cache the progress summary and one entry per course.

        Args:
            user_id: User id.
            progress: Mapping of course id to that course's progress.

        Returns:
            True if every write succeeded.
        """
        stored = await self._cache.set(
            self._keys.user(user_id, "progress:summary"),
            progress,
            CacheConfig(
                ttl=self.PROGRESS_TTL,
                tags=["user", "progress", f"user:{user_id}"],
            ),
        )
        for course_id, course_progress in progress.items():
            stored &= await self._cache.set(
                self._keys.progress(user_id, course_id),
                course_progress,
                CacheConfig(
                    ttl=self.PROGRESS_TTL,
                    tags=[
                        "user",
                        "progress",
                        "course",
                        f"user:{user_id}",
                        f"course:{course_id}",
                    ],
                ),
            )
        return stored

    async def invalidate_user_cache(self, user_id: str) -> int:
        return await self._cache.invalidate_by_tags([f"user:{user_id}"])


class CourseCacheStrategy(_Strategy):
    """Course metadata, lessons, stats and prerequisites."""

    METADATA_TTL = 3600
    LESSON_TTL = 7200
    STATS_TTL = 1800
    DEPENDENCIES_TTL = 3600

    def _metadata_config(self, course_id: str) -> CacheConfig:
        return CacheConfig(
            ttl=self.METADATA_TTL,
            tags=["course", "metadata", f"course:{course_id}"],
        )

    async def cache_course_metadata(self, course_id: str, metadata: Any) -> bool:
        return await self._cache.set(
            self._keys.course(course_id, "metadata"),
            metadata,
            self._metadata_config(course_id),
        )

    async def get_course_metadata(self, course_id: str, fallback: Fetcher) -> Any:
        return await self._cache.get_or_set(
            self._keys.course(course_id, "metadata"),
            fallback,
            self._metadata_config(course_id),
        )

    async def cache_course_lessons(
        self, course_id: str, lessons: list[dict[str, Any]]
    ) -> bool:
        """Cache the lesson list and each lesson (keyed by its ``id``)."""
        stored = await self._cache.set(
            self._keys.course(course_id, "lessons"),
            lessons,
            CacheConfig(
                ttl=self.METADATA_TTL,
                tags=["course", "lessons", f"course:{course_id}"],
            ),
        )
        for lesson in lessons:
            lesson_id = str(lesson["id"])
            stored &= await self._cache.set(
                self._keys.lesson(lesson_id, "content"),
                lesson,
                CacheConfig(
                    ttl=self.LESSON_TTL,
                    tags=[
                        "lesson",
                        "content",
                        f"course:{course_id}",
                        f"lesson:{lesson_id}",
                    ],
                ),
            )
        return stored

    async def cache_course_stats(self, course_id: str, stats: Any) -> bool:
        return await self._cache.set(
            self._keys.course(course_id, "stats"),
            stats,
            CacheConfig(
                ttl=self.STATS_TTL,
                tags=["course", "stats", f"course:{course_id}"],
            ),
        )

    async def cache_course_dependencies(
        self, course_id: str, dependencies: Any
    ) -> bool:
        return await self._cache.set(
            self._keys.course(course_id, "dependencies"),
            dependencies,
            CacheConfig(
                ttl=self.DEPENDENCIES_TTL,
                tags=["course", "dependencies", f"course:{course_id}"],
            ),
        )

    async def warm_course_cache(
        self, course_id: str, fetchers: "CourseFetchers"
    ) -> bool:
        """Load every piece of a course and cache it.

        Fetchers run concurrently; a fetcher exception propagates.
        """
        metadata, lessons, stats, dependencies = await asyncio.gather(
            fetchers.metadata(),
            fetchers.lessons(),
            fetchers.stats(),
            fetchers.dependencies(),
        )
        results = [
            await self.cache_course_metadata(course_id, metadata),
            await self.cache_course_lessons(course_id, lessons),
            await self.cache_course_stats(course_id, stats),
            await self.cache_course_dependencies(course_id, dependencies),
        ]
        return all(results)

    async def invalidate_course_cache(self, course_id: str) -> int:
        return await self._cache.invalidate_by_tags([f"course:{course_id}"])


@dataclass
class CourseFetchers:
    """Loaders used by CourseCacheStrategy.warm_course_cache."""

    metadata: Fetcher
    lessons: Callable[[], Awaitable[list[dict[str, Any]]]]
    stats: Fetcher
    dependencies: Fetcher


class SearchCacheStrategy(_Strategy):
    """Search results, popular searches and autocomplete suggestions."""

    RESULTS_TTL = 1800
    POPULAR_TTL = 3600
    SUGGESTIONS_TTL = 1800

    def _results_key(
        self, query: str, filters: dict[str, Any], pagination: dict[str, Any]
    ) -> str:
        # total describes the result set, not the request
        page = {name: value for name, value in pagination.items() if name != "total"}
        return self._keys.search(query, {**filters, **page})

    async def cache_search_results(
        self,
        query: str,
        filters: dict[str, Any],
        results: list[Any],
        pagination: dict[str, Any],
    ) -> bool:
        return await self._cache.set(
            self._results_key(query, filters, pagination),
            {"results": results, "pagination": pagination},
            CacheConfig(ttl=self.RESULTS_TTL, tags=["search", f"query:{query}"]),
        )

    async def get_search_results(
        self,
        query: str,
        filters: dict[str, Any],
        pagination: dict[str, Any],
        fallback: Callable[[], Awaitable[dict[str, Any]]],
    ) -> dict[str, Any]:
        """Cached results page, computed through ``fallback`` on miss.

        Args:
            query: Search text.
            filters: Search filters.
            pagination: Page parameters (``page``, ``limit``).
            fallback: Returns ``{"results": [...], "total": n}``.

        Returns:
            ``{"results": [...], "pagination": {..., "total": n}}``
        """

        async def load() -> dict[str, Any]:
            data = await fallback()
            return {
                "results": data["results"],
                "pagination": {**pagination, "total": data["total"]},
            }

        return await self._cache.get_or_set(
            self._results_key(query, filters, pagination),
            load,
            CacheConfig(ttl=self.RESULTS_TTL, tags=["search", f"query:{query}"]),
        )

    async def cache_popular_searches(self, searches: list[str]) -> bool:
        return await self._cache.set(
            self._keys.popular_searches(),
            searches,
            CacheConfig(ttl=self.POPULAR_TTL, tags=["search", "popular"]),
        )

    async def cache_search_suggestions(
        self, prefix: str, suggestions: list[str]
    ) -> bool:
        return await self._cache.set(
            self._keys.suggestions(prefix),
            suggestions,
            CacheConfig(ttl=self.SUGGESTIONS_TTL, tags=["search", "suggestions"]),
        )


class AnalyticsCacheStrategy(_Strategy):
    """Short-lived analytics snapshots."""

    DASHBOARD_TTL = 300
    SYSTEM_TTL = 600
    COURSE_TTL = 900
    USER_TTL = 600

    async def cache_dashboard_metrics(self, user_id: str, metrics: Any) -> bool:
        return await self._cache.set(
            self._keys.analytics("dashboard", "current", [user_id]),
            metrics,
            CacheConfig(
                ttl=self.DASHBOARD_TTL,
                tags=["analytics", "dashboard", f"user:{user_id}"],
            ),
        )

    async def cache_system_analytics(self, timeframe: str, data: Any) -> bool:
        return await self._cache.set(
            self._keys.analytics("system", timeframe),
            data,
            CacheConfig(
                ttl=self.SYSTEM_TTL,
                tags=["analytics", "system", f"timeframe:{timeframe}"],
            ),
        )

    async def cache_course_analytics(
        self, course_id: str, timeframe: str, data: Any
    ) -> bool:
        return await self._cache.set(
            self._keys.analytics("course_performance", timeframe, [course_id]),
            data,
            CacheConfig(
                ttl=self.COURSE_TTL,
                tags=[
                    "analytics",
                    "course",
                    f"course:{course_id}",
                    f"timeframe:{timeframe}",
                ],
            ),
        )

    async def cache_user_analytics(
        self, user_id: str, timeframe: str, data: Any
    ) -> bool:
        return await self._cache.set(
            self._keys.analytics("user_learning", timeframe, [user_id]),
            data,
            CacheConfig(
                ttl=self.USER_TTL,
                tags=[
                    "analytics",
                    "user",
                    f"user:{user_id}",
                    f"timeframe:{timeframe}",
                ],
            ),
        )


class RecommendationCacheStrategy(_Strategy):
    """Personalized recommendations."""

    RECOMMENDATIONS_TTL = 7200
    PEERS_TTL = 3600

    async def cache_course_recommendations(
        self, user_id: str, recommendations: list[Any]
    ) -> bool:
        return await self._cache.set(
            self._keys.recommendations(user_id, "courses"),
            recommendations,
            CacheConfig(
                ttl=self.RECOMMENDATIONS_TTL,
                tags=["recommendations", "courses", f"user:{user_id}"],
            ),
        )

    async def cache_learning_path_recommendations(
        self, user_id: str, paths: list[Any]
    ) -> bool:
        return await self._cache.set(
            self._keys.recommendations(user_id, "learning_paths"),
            paths,
            CacheConfig(
                ttl=self.RECOMMENDATIONS_TTL,
                tags=["recommendations", "learning_paths", f"user:{user_id}"],
            ),
        )

    async def cache_peer_recommendations(self, user_id: str, peers: list[Any]) -> bool:
        return await self._cache.set(
            self._keys.recommendations(user_id, "peers"),
            peers,
            CacheConfig(
                ttl=self.PEERS_TTL,
                tags=["recommendations", "peers", f"user:{user_id}"],
            ),
        )


class StaticContentCacheStrategy(_Strategy):
    """Settings, certificates and leaderboards."""

    SETTINGS_TTL = 3600
    CERTIFICATE_TTL = 86400
    LEADERBOARD_TTL = 1800

    async def cache_system_settings(self, settings: Any) -> bool:
        return await self._cache.set(
            self._keys.settings("system"),
            settings,
            CacheConfig(ttl=self.SETTINGS_TTL, tags=["settings", "system"]),
        )

    async def cache_user_settings(self, user_id: str, settings: Any) -> bool:
        return await self._cache.set(
            self._keys.settings("user", user_id),
            settings,
            CacheConfig(
                ttl=self.SETTINGS_TTL,
                tags=["settings", "user", f"user:{user_id}"],
            ),
        )

    async def cache_certificate(
        self, user_id: str, course_id: str, certificate: Any
    ) -> bool:
        return await self._cache.set(
            self._keys.certificate(user_id, course_id),
            certificate,
            CacheConfig(
                ttl=self.CERTIFICATE_TTL,
                tags=["certificates", f"user:{user_id}", f"course:{course_id}"],
            ),
        )

    async def cache_leaderboard(
        self, scope: str, period: str, leaderboard: list[Any]
    ) -> bool:
        return await self._cache.set(
            self._keys.leaderboard(scope, period),
            leaderboard,
            CacheConfig(
                ttl=self.LEADERBOARD_TTL,
                tags=["leaderboard", f"scope:{scope}", f"period:{period}"],
            ),
        )


class CacheInvalidationStrategy(_Strategy):
    """Fan-out of application lifecycle events to tag invalidation.

    Every handler returns the number of entries invalidated.
    """

    async def on_user_update(self, user_id: str) -> int:
        return await self._cache.invalidate_by_tags(
            [f"user:{user_id}", "recommendations", "leaderboard"]
        )

    async def on_course_update(self, course_id: str) -> int:
        return await self._cache.invalidate_by_tags(
            [f"course:{course_id}", "search", "recommendations"]
        )

    async def on_course_enrollment(self, user_id: str, course_id: str) -> int:
        return await self._cache.invalidate_by_tags(
            [f"user:{user_id}", f"course:{course_id}", "recommendations"]
        )

    async def on_lesson_completion(
        self, user_id: str, course_id: str, lesson_id: str
    ) -> int:
        # Course and lesson ids do not narrow the fan-out; progress and
        # leaderboards are aggregated across courses.
        return await self._cache.invalidate_by_tags(
            [f"user:{user_id}", "progress", "analytics", "leaderboard"]
        )


class CacheStrategies:
    """All strategies over one CacheManager."""

    def __init__(self, cache: CacheManager) -> None:
        self.user = UserCacheStrategy(cache)
        self.course = CourseCacheStrategy(cache)
        self.search = SearchCacheStrategy(cache)
        self.analytics = AnalyticsCacheStrategy(cache)
        self.recommendations = RecommendationCacheStrategy(cache)
        self.static = StaticContentCacheStrategy(cache)
        self.invalidation = CacheInvalidationStrategy(cache)
