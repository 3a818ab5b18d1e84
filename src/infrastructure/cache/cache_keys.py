"""Cache key construction utilities.

Centralized cache key construction so every component agrees on key shapes.
The first ``:``-separated segment of a key is its *prefix*; the cache manager
versions entries per prefix, so keys MUST start with the entity name.

Usage:
    from src.infrastructure.cache.cache_keys import CacheKeys

    keys = CacheKeys()
    keys.course("c1", "metadata")      # "course:c1:metadata"
    keys.progress("u1", "c1")          # "progress:u1:c1"
    CacheKeys.prefix_of("course:c1")   # "course"
"""

import hashlib
import json
from dataclasses import dataclass
from typing import Any


def _md5(value: str) -> str:
    return hashlib.md5(value.encode("utf-8")).hexdigest()


@dataclass(frozen=True)
class CacheKeys:
    """Centralized cache key construction utilities.

    Attributes:
        tag_prefix: Prefix of tag -> keys reverse index sets.
        key_tags_prefix: Prefix of key -> tags reverse index sets.
        version_prefix: Prefix of persisted per-prefix version counters.
        session_prefix: Prefix of session records.
        user_sessions_prefix: Prefix of user -> session ids sets.
    """

    tag_prefix: str = "tag"
    key_tags_prefix: str = "key_tags"
    version_prefix: str = "version"
    session_prefix: str = "session"
    user_sessions_prefix: str = "user_sessions"

    # -------------------------------------------------------------------------
    # Entity keys
    # -------------------------------------------------------------------------

    def user(self, user_id: str, suffix: str | None = None) -> str:
        """User cache key.

        Pattern: user:{user_id}[:{suffix}]
        """
        return f"user:{user_id}:{suffix}" if suffix else f"user:{user_id}"

    def course(self, course_id: str, suffix: str | None = None) -> str:
        """Course cache key.

        Pattern: course:{course_id}[:{suffix}]
        """
        return f"course:{course_id}:{suffix}" if suffix else f"course:{course_id}"

    def lesson(self, lesson_id: str, suffix: str | None = None) -> str:
        """Lesson cache key.

        Pattern: lesson:{lesson_id}[:{suffix}]
        """
        return f"lesson:{lesson_id}:{suffix}" if suffix else f"lesson:{lesson_id}"

    def progress(self, user_id: str, course_id: str) -> str:
        """Per-course progress key.

        Pattern: progress:{user_id}:{course_id}
        """
        return f"progress:{user_id}:{course_id}"

    def search(self, query: str, filters: dict[str, Any] | None = None) -> str:
        """Search results key.

        The query and its filters are hashed so arbitrary user input never
        ends up in key names. Filters are serialized with sorted keys so the
        same filter set always maps to the same key.

        Pattern: search:{md5(query:filters_json)}
        """
        filter_str = json.dumps(filters, sort_keys=True, default=str) if filters else ""
        return f"search:{_md5(f'{query}:{filter_str}')}"

    def popular_searches(self) -> str:
        """Popular searches key."""
        return "search:popular"

    def suggestions(self, prefix: str) -> str:
        """Search suggestions key.

        Pattern: search:suggestions:{prefix}
        """
        return f"search:suggestions:{prefix}"

    def analytics(
        self,
        metric: str,
        timeframe: str,
        dimensions: list[str] | None = None,
    ) -> str:
        """Analytics snapshot key.

        Pattern: analytics:{metric}:{timeframe}:{md5(sorted dimensions)}
        """
        dim_str = ",".join(sorted(dimensions)) if dimensions else ""
        return f"analytics:{metric}:{timeframe}:{_md5(dim_str)}"

    def recommendations(self, user_id: str, kind: str) -> str:
        """Recommendations key.

        Pattern: recommendations:{kind}:{user_id}
        """
        return f"recommendations:{kind}:{user_id}"

    def settings(self, scope: str, identifier: str | None = None) -> str:
        """Settings key.

        Pattern: settings:{scope}[:{identifier}]
        """
        return f"settings:{scope}:{identifier}" if identifier else f"settings:{scope}"

    def certificate(self, user_id: str, course_id: str) -> str:
        """Certificate key.

        Pattern: certificate:{user_id}:{course_id}
        """
        return f"certificate:{user_id}:{course_id}"

    def leaderboard(self, scope: str, period: str | None = None) -> str:
        """Leaderboard key.

        Pattern: leaderboard:{scope}[:{period}]
        """
        return f"leaderboard:{scope}:{period}" if period else f"leaderboard:{scope}"

    # -------------------------------------------------------------------------
    # Bookkeeping keys
    # -------------------------------------------------------------------------

    def session(self, session_id: str) -> str:
        """Session record key."""
        return f"{self.session_prefix}:{session_id}"

    def session_pattern(self) -> str:
        """Glob pattern matching every session record."""
        return f"{self.session_prefix}:*"

    def user_sessions(self, user_id: str) -> str:
        """User -> session ids set key."""
        return f"{self.user_sessions_prefix}:{user_id}"

    def tag(self, tag: str) -> str:
        """Tag -> keys set key."""
        return f"{self.tag_prefix}:{tag}"

    def key_tags(self, key: str) -> str:
        """Key -> tags set key."""
        return f"{self.key_tags_prefix}:{key}"

    def version(self, prefix: str) -> str:
        """Persisted version counter key."""
        return f"{self.version_prefix}:{prefix}"

    @staticmethod
    def prefix_of(key: str) -> str:
        """Extract the versioned prefix (first segment) of a key.

        Example:
            CacheKeys.prefix_of("course:1:meta")  # "course"
            CacheKeys.prefix_of(":odd")           # "default"
        """
        head = key.split(":", 1)[0]
        return head or "default"
