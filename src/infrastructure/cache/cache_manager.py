"""Tagged, versioned cache manager.

Generic cache on top of the key-value store. Every value is wrapped in a
CacheEntry stamped with the write time, the current version of its key
prefix, and its tags.

Key Patterns:
    - {prefix}:... -> JSON serialized CacheEntry
    - tag:{tag} -> Set of keys carrying the tag
    - key_tags:{key} -> Set of tags carried by the key
    - version:{prefix} -> Persisted version counter

Invalidation:
    - Tag-based: invalidate_by_tags() deletes every key in the tag sets
    - Event-driven: invalidate_by_event() maps a domain event to tags
    - Version-based: increment_version() makes every entry written under the
      old version of a prefix unreadable; entries are removed lazily on get()

Architecture:
    - Consumes KeyValueStoreProtocol (Result types, never raises)
    - Store failures are logged and degrade to None / False / 0
    - Callers must be able to recompute a miss (see get_or_set)
"""

import asyncio
import json
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from typing import Any, TypeVar

from src.core.result import Failure, Success
from src.domain.protocols.key_value_store_protocol import KeyValueStoreProtocol
from src.domain.protocols.logger_protocol import LoggerProtocol
from src.infrastructure.cache.cache_keys import CacheKeys
from src.infrastructure.cache.cache_metrics import CacheMetrics

T = TypeVar("T")

# Default entry TTL (1 hour in seconds)
DEFAULT_TTL = 3600

# Prefixes whose versions are tracked from startup
DEFAULT_VERSIONED_PREFIXES = ("user", "course", "quiz", "analytics", "session")


class InvalidationEventType(str, Enum):
    """Domain events that trigger cache invalidation."""

    USER_UPDATE = "user-update"
    COURSE_UPDATE = "course-update"
    QUIZ_COMPLETION = "quiz-completion"
    ENROLLMENT_CHANGE = "enrollment-change"
    SETTINGS_CHANGE = "settings-change"


# "{id}" is replaced with the event's entity id
_EVENT_TAGS: dict[InvalidationEventType, tuple[str, ...]] = {
    InvalidationEventType.USER_UPDATE: ("user", "user:{id}", "session"),
    InvalidationEventType.COURSE_UPDATE: ("course", "course:{id}", "analytics"),
    InvalidationEventType.QUIZ_COMPLETION: ("quiz", "quiz:{id}", "analytics", "user"),
    InvalidationEventType.ENROLLMENT_CHANGE: ("course", "user", "analytics"),
    InvalidationEventType.SETTINGS_CHANGE: ("user", "course", "analytics"),
}


@dataclass
class CacheEntry:
    """Versioned, tagged wrapper around cached data.

    Attributes:
        data: Cached payload (JSON-serializable).
        timestamp: Write time in epoch milliseconds.
        version: Version of the key prefix at write time.
        tags: Tags the entry was indexed under.
        dependencies: Reserved for dependency-graph invalidation (unused).
    """

    data: Any
    timestamp: int
    version: int
    tags: list[str] = field(default_factory=list)
    dependencies: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        """Convert entry to dict for JSON serialization."""
        return {
            "data": self.data,
            "timestamp": self.timestamp,
            "version": self.version,
            "tags": list(self.tags),
            "dependencies": list(self.dependencies),
        }

    @classmethod
    def from_dict(cls, raw: Any) -> "CacheEntry":
        """Build entry from its stored dict.

        Raises:
            KeyError: If a required field is missing.
            TypeError: If raw is not a mapping.
            ValueError: If the version is not an integer.
        """
        if not isinstance(raw, dict):
            raise TypeError(f"cache entry must be an object, got {type(raw).__name__}")
        return cls(
            data=raw["data"],
            timestamp=int(raw.get("timestamp", 0)),
            version=int(raw["version"]),
            tags=list(raw.get("tags") or []),
            dependencies=list(raw.get("dependencies") or []),
        )


@dataclass
class CacheConfig:
    """Per-write cache options.

    Attributes:
        ttl: TTL in seconds (None = manager default).
        tags: Tags to index the key under. None means ``[prefix]``; an empty
            list means the key is not tag-indexed.
    """

    ttl: int | None = None
    tags: list[str] | None = None


@dataclass
class CacheInvalidationEvent:
    """Domain event routed to tag invalidation.

    Attributes:
        type: Event type (one of InvalidationEventType).
        entity_id: Id of the changed entity.
        affected_keys: Extra keys to delete explicitly.
        tags: Extra tags to invalidate.
    """

    type: InvalidationEventType
    entity_id: str
    affected_keys: list[str] | None = None
    tags: list[str] | None = None

    def __post_init__(self) -> None:
        """Coerce string event types.

        Raises:
            ValueError: If the type is not a known event type.
        """
        self.type = InvalidationEventType(self.type)


@dataclass
class CacheWarmer:
    """A warming source registered with the cache manager.

    Attributes:
        name: Warmer name for logs (e.g. "user_profiles").
        list_ids: Returns the ids worth warming (e.g. recently active users).
        warm_one: Loads one id and writes it to the cache.
    """

    name: str
    list_ids: Callable[[], Awaitable[list[str]]]
    warm_one: Callable[[str], Awaitable[None]]


@dataclass
class WarmingConfig:
    """Cache warming options.

    Attributes:
        enabled: Whether warm_cache() does anything.
        batch_size: Ids warmed concurrently per batch.
        batch_pause_seconds: Pause between batches.
    """

    enabled: bool = True
    batch_size: int = 100
    batch_pause_seconds: float = 0.1

    def __post_init__(self) -> None:
        """Validate configuration.

        Raises:
            ValueError: If batch size or pause is invalid.
        """
        if self.batch_size < 1:
            raise ValueError("batch_size must be at least 1")
        if self.batch_pause_seconds < 0:
            raise ValueError("batch_pause_seconds must not be negative")


@dataclass
class WarmingReport:
    """Outcome of a warming pass.

    Attributes:
        warmed: Ids warmed successfully.
        failed: Ids (or id listings) that failed.
        skipped: True if the pass did not run (disabled or already running).
    """

    warmed: int = 0
    failed: int = 0
    skipped: bool = False

    def to_dict(self) -> dict[str, Any]:
        """Convert report to dictionary for JSON serialization."""
        return {"warmed": self.warmed, "failed": self.failed, "skipped": self.skipped}


class CacheManager:
    """Tagged, versioned cache with bulk and event-driven invalidation.

    Note:
        No in-process locking is done around the store. Concurrent writers
        follow last-write-wins; tag indexes are kept consistent on set/delete
        but can briefly reference keys that already expired, which tag
        invalidation tolerates.

    Example:
        ```python
        manager = CacheManager(store=RedisAdapter(redis), logger=logger)
        await manager.initialize()

        await manager.set("course:1:meta", {"title": "X"}, CacheConfig(tags=["course:1"]))
        await manager.get("course:1:meta")            # {"title": "X"}
        await manager.invalidate_by_tags(["course:1"])  # 1
        ```
    """

    def __init__(
        self,
        *,
        store: KeyValueStoreProtocol,
        logger: LoggerProtocol,
        keys: CacheKeys | None = None,
        metrics: CacheMetrics | None = None,
        default_ttl: int = DEFAULT_TTL,
        versioned_prefixes: tuple[str, ...] = DEFAULT_VERSIONED_PREFIXES,
        warming: WarmingConfig | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        """Initialize cache manager.

        Args:
            store: Key-value store adapter.
            logger: Structured logger.
            keys: Key builder (defaults to CacheKeys()).
            metrics: Metrics tracker (defaults to a private CacheMetrics).
            default_ttl: TTL used when a write gives none.
            versioned_prefixes: Prefixes whose persisted versions are loaded
                by initialize().
            warming: Warming options.
            clock: Returns the current UTC time (injectable for tests).
        """
        self._store = store
        self._logger = logger
        self._keys = keys or CacheKeys()
        self._metrics = metrics or CacheMetrics()
        self._default_ttl = default_ttl
        self._warming = warming or WarmingConfig()
        self._clock = clock or (lambda: datetime.now(UTC))

        self._versions: dict[str, int] = {prefix: 1 for prefix in versioned_prefixes}
        self._warmers: list[CacheWarmer] = []
        self._warming_in_progress = False
        self._last_warming: WarmingReport | None = None

    @property
    def keys(self) -> CacheKeys:
        """Key builder shared with collaborators."""
        return self._keys

    @property
    def store(self) -> KeyValueStoreProtocol:
        """Underlying key-value store."""
        return self._store

    # =========================================================================
    # Versions
    # =========================================================================

    async def initialize(self) -> None:
        """Load persisted version counters for tracked prefixes.

        A version persisted by another process (or before a restart) wins if
        it is newer than the in-memory one.
        """
        for prefix in list(self._versions):
            match await self._store.get(self._keys.version(prefix)):
                case Success(value=None):
                    continue
                case Success(value=raw):
                    try:
                        persisted = int(raw)
                    except (TypeError, ValueError):
                        self._logger.warning(
                            "Ignoring malformed cache version",
                            prefix=prefix,
                            value=raw,
                        )
                        continue
                    if persisted > self._versions[prefix]:
                        self._versions[prefix] = persisted
                case Failure(error=err):
                    self._logger.warning(
                        "Failed to load cache version",
                        prefix=prefix,
                        error_message=err.message,
                    )

        self._logger.info("Cache versions loaded", versions=dict(self._versions))

    def get_version(self, prefix: str) -> int:
        """Current version of a key prefix (1 if never bumped)."""
        return self._versions.get(prefix, 1)

    async def increment_version(self, prefix: str) -> int:
        """Bump the version of a prefix.

        Every entry written under the previous version becomes a miss on its
        next read (and is deleted then). Nothing is deleted eagerly.

        The persisted counter is bumped atomically, so managers sharing a
        store never hand out the same version twice.

        Args:
            prefix: Key prefix (e.g. "course").

        Returns:
            The new version.
        """
        version_key = self._keys.version(prefix)
        new_version = self.get_version(prefix) + 1

        match await self._store.increment(version_key):
            case Success(value=persisted) if persisted >= new_version:
                new_version = persisted
            case Success(value=persisted):
                # Store counter missing or behind this manager: catch it up
                await self._store.increment(version_key, new_version - persisted)
            case Failure(error=err):
                self._logger.warning(
                    "Failed to persist cache version",
                    prefix=prefix,
                    version=new_version,
                    error_message=err.message,
                )

        self._versions[prefix] = new_version

        self._logger.info(
            "Incremented cache version",
            prefix=prefix,
            version=new_version,
        )
        return new_version

    # =========================================================================
    # Core operations
    # =========================================================================

    async def get(self, key: str) -> Any | None:
        """Get cached data.

        Args:
            key: Cache key.

        Returns:
            Cached data, or None on miss, stale version, or store failure.
        """
        prefix = self._keys.prefix_of(key)

        match await self._store.get_json(key):
            case Success(value=None):
                self._metrics.record_miss(prefix)
                return None
            case Success(value=raw):
                try:
                    entry = CacheEntry.from_dict(raw)
                except (KeyError, TypeError, ValueError) as e:
                    self._logger.warning(
                        "Failed to deserialize cache entry",
                        key=key,
                        error_message=str(e),
                    )
                    self._metrics.record_error(prefix)
                    self._metrics.record_miss(prefix)
                    return None

                if entry.version < self.get_version(prefix):
                    self._logger.debug(
                        "Stale cache entry",
                        key=key,
                        entry_version=entry.version,
                        current_version=self.get_version(prefix),
                    )
                    await self.delete(key)
                    self._metrics.record_miss(prefix)
                    return None

                self._metrics.record_hit(prefix)
                return entry.data
            case Failure(error=err):
                self._logger.warning(
                    "Cache get failed",
                    key=key,
                    error_message=err.message,
                )
                self._metrics.record_error(prefix)
                self._metrics.record_miss(prefix)
                return None
            case _:
                return None

    async def set(
        self,
        key: str,
        data: Any,
        config: CacheConfig | None = None,
    ) -> bool:
        """Write data to the cache.

        Args:
            key: Cache key.
            data: JSON-serializable payload.
            config: TTL and tags (defaults: manager TTL, ``[prefix]``).

        Returns:
            True if written, False on store or serialization failure.
        """
        config = config or CacheConfig()
        prefix = self._keys.prefix_of(key)
        ttl = config.ttl or self._default_ttl
        tags = list(dict.fromkeys(config.tags)) if config.tags is not None else [prefix]

        entry = CacheEntry(
            data=data,
            timestamp=int(self._clock().timestamp() * 1000),
            version=self.get_version(prefix),
            tags=tags,
        )

        result = await self._store.set_json(key, entry.to_dict(), ttl=ttl)
        if isinstance(result, Failure):
            self._logger.error(
                "Cache set failed",
                key=key,
                error_message=result.error.message,
            )
            self._metrics.record_error(prefix)
            return False

        await self._sync_tags(key, tags, ttl)
        self._metrics.record_set(prefix)
        return True

    async def delete(self, key: str) -> bool:
        """Delete a key and unlink it from every tag it carried.

        Args:
            key: Cache key.

        Returns:
            True unless the store failed (deleting a missing key is a success).
        """
        prefix = self._keys.prefix_of(key)
        result = await self._store.delete(key)
        if isinstance(result, Failure):
            self._logger.error(
                "Cache delete failed",
                key=key,
                error_message=result.error.message,
            )
            self._metrics.record_error(prefix)
            return False

        await self._unlink_tags(key)
        self._metrics.record_delete(prefix)
        return True

    async def exists(self, key: str) -> bool:
        """Check whether a key is physically present (ignores versions)."""
        match await self._store.exists(key):
            case Success(value=present):
                return present
            case _:
                return False

    async def get_or_set(
        self,
        key: str,
        fallback: Callable[[], Awaitable[T]],
        config: CacheConfig | None = None,
    ) -> T:
        """Return cached data, computing and storing it on miss.

        A store outage is treated as a miss, so the fallback always covers
        for the cache. Fallback exceptions propagate to the caller. A None
        fallback result is returned but not cached.

        Args:
            key: Cache key.
            fallback: Coroutine function recomputing the value.
            config: TTL and tags for the write.

        Returns:
            Cached or freshly computed value.
        """
        cached = await self.get(key)
        if cached is not None:
            return cached  # type: ignore[no-any-return]

        value = await fallback()
        if value is not None:
            await self.set(key, value, config)
        return value

    # =========================================================================
    # Pattern operations
    # =========================================================================

    async def delete_by_pattern(self, pattern: str) -> int:
        """Delete every key matching a glob pattern.

        Args:
            pattern: Glob-style pattern (e.g. "course:1:*").

        Returns:
            Number of keys deleted (0 on failure).
        """
        match await self._store.keys(pattern):
            case Success(value=matched):
                pass
            case Failure(error=err):
                self._logger.error(
                    "Cache delete by pattern failed",
                    pattern=pattern,
                    error_message=err.message,
                )
                return 0
            case _:
                return 0

        if not matched:
            return 0

        match await self._store.delete_by_pattern(pattern):
            case Success(value=deleted):
                for key in matched:
                    await self._unlink_tags(key)
                return deleted
            case Failure(error=err):
                self._logger.error(
                    "Cache delete by pattern failed",
                    pattern=pattern,
                    error_message=err.message,
                )
                return 0
            case _:
                return 0

    async def get_by_pattern(self, pattern: str) -> dict[str, Any]:
        """Read every readable entry whose key matches a glob pattern.

        Unparseable entries and entries with a stale version are skipped.

        Args:
            pattern: Glob-style pattern.

        Returns:
            Mapping of key to cached data (empty on failure).
        """
        match await self._store.keys(pattern):
            case Success(value=matched):
                pass
            case Failure(error=err):
                self._logger.error(
                    "Cache get by pattern failed",
                    pattern=pattern,
                    error_message=err.message,
                )
                return {}
            case _:
                return {}

        if not matched:
            return {}

        match await self._store.mget(matched):
            case Success(value=values):
                pass
            case Failure(error=err):
                self._logger.error(
                    "Cache get by pattern failed",
                    pattern=pattern,
                    error_message=err.message,
                )
                return {}
            case _:
                return {}

        found: dict[str, Any] = {}
        for key, raw in zip(matched, values):
            if raw is None:
                continue
            try:
                entry = CacheEntry.from_dict(json.loads(raw))
            except (json.JSONDecodeError, KeyError, TypeError, ValueError) as e:
                self._logger.warning(
                    "Skipping unreadable cache entry",
                    key=key,
                    error_message=str(e),
                )
                continue
            if entry.version < self.get_version(self._keys.prefix_of(key)):
                continue
            found[key] = entry.data
        return found

    # =========================================================================
    # Invalidation
    # =========================================================================

    async def invalidate_by_tags(self, tags: list[str]) -> int:
        """Delete every key carrying any of the given tags.

        For each tag the tag's key set is read, the keys are deleted, they
        are unlinked from the other tags they carried, and the tag set itself
        is dropped.

        Args:
            tags: Tags to invalidate.

        Returns:
            Total number of entries deleted.
        """
        total_deleted = 0

        for tag in dict.fromkeys(tags):
            tag_key = self._keys.tag(tag)

            match await self._store.smembers(tag_key):
                case Success(value=members):
                    tagged_keys = sorted(members)
                case Failure(error=err):
                    self._logger.error(
                        "Failed to read tag index",
                        tag=tag,
                        error_message=err.message,
                    )
                    continue
                case _:
                    continue

            if tagged_keys:
                match await self._store.delete_many(tagged_keys):
                    case Success(value=deleted):
                        total_deleted += deleted
                        self._metrics.record_invalidations(
                            self._keys.prefix_of(tag), deleted
                        )
                    case Failure(error=err):
                        self._logger.error(
                            "Failed to delete tagged keys",
                            tag=tag,
                            key_count=len(tagged_keys),
                            error_message=err.message,
                        )
                        continue

                for key in tagged_keys:
                    await self._unlink_tags(key, skip_tag=tag)

            await self._store.delete(tag_key)

        self._logger.info(
            "Invalidated cache entries by tags",
            count=total_deleted,
            tags=list(tags),
        )
        return total_deleted

    def tags_for_event(self, event: CacheInvalidationEvent) -> list[str]:
        """Map an invalidation event to its de-duplicated tag list.

        Args:
            event: Invalidation event.

        Returns:
            Tags in table order followed by the event's own tags.
        """
        tags = [
            template.format(id=event.entity_id)
            for template in _EVENT_TAGS.get(event.type, ())
        ]
        if event.tags:
            tags.extend(event.tags)
        return list(dict.fromkeys(tags))

    async def invalidate_by_event(self, event: CacheInvalidationEvent) -> None:
        """Invalidate everything a domain event affects.

        Args:
            event: Invalidation event.
        """
        self._logger.info(
            "Processing cache invalidation event",
            event_type=event.type.value,
            entity_id=event.entity_id,
        )

        tags = self.tags_for_event(event)
        if tags:
            await self.invalidate_by_tags(tags)

        if event.affected_keys:
            results = await asyncio.gather(
                *(self.delete(key) for key in event.affected_keys),
                return_exceptions=True,
            )
            failed = [
                key
                for key, outcome in zip(event.affected_keys, results)
                if outcome is not True
            ]
            if failed:
                self._logger.warning(
                    "Failed to delete some affected keys",
                    event_type=event.type.value,
                    failed_keys=failed,
                )

    # =========================================================================
    # Warming
    # =========================================================================

    def register_warmer(self, warmer: CacheWarmer) -> None:
        """Register a warming source (run in registration order)."""
        self._warmers.append(warmer)

    async def warm_cache(self) -> WarmingReport:
        """Run one warming pass over every registered warmer.

        Single-flight: a call made while a pass is running returns a skipped
        report immediately. Ids are warmed in fixed-size concurrent batches
        with a pause between batches; a failing id never aborts its batch.

        Returns:
            Report of warmed and failed ids.
        """
        if not self._warming.enabled or self._warming_in_progress:
            return WarmingReport(skipped=True)

        self._warming_in_progress = True
        report = WarmingReport()
        self._logger.info(
            "Starting cache warming pass",
            warmers=[warmer.name for warmer in self._warmers],
        )

        try:
            for warmer in self._warmers:
                await self._run_warmer(warmer, report)
            self._logger.info(
                "Cache warming completed",
                warmed=report.warmed,
                failed=report.failed,
            )
        except Exception as e:
            self._logger.error("Cache warming failed", error=e)
        finally:
            self._warming_in_progress = False
            self._last_warming = report

        return report

    async def _run_warmer(self, warmer: CacheWarmer, report: WarmingReport) -> None:
        """Warm every id listed by one warmer, batch by batch."""
        try:
            ids = await warmer.list_ids()
        except Exception as e:
            self._logger.error(
                "Failed to list ids for warming",
                error=e,
                warmer=warmer.name,
            )
            report.failed += 1
            return

        batch_size = self._warming.batch_size
        for start in range(0, len(ids), batch_size):
            if start > 0:
                await asyncio.sleep(self._warming.batch_pause_seconds)

            batch = ids[start : start + batch_size]
            results = await asyncio.gather(
                *(warmer.warm_one(item_id) for item_id in batch),
                return_exceptions=True,
            )
            for item_id, outcome in zip(batch, results):
                if isinstance(outcome, BaseException):
                    report.failed += 1
                    self._logger.warning(
                        "Failed to warm cache item",
                        warmer=warmer.name,
                        item_id=item_id,
                        error_type=type(outcome).__name__,
                        error_message=str(outcome),
                    )
                else:
                    report.warmed += 1

    # =========================================================================
    # Observability
    # =========================================================================

    def get_stats(self) -> dict[str, Any]:
        """Structured snapshot for health/metrics endpoints."""
        return {
            "metrics": self._metrics.get_all_stats(),
            "warming": {
                "enabled": self._warming.enabled,
                "in_progress": self._warming_in_progress,
                "registered_warmers": [warmer.name for warmer in self._warmers],
                "last_report": (
                    self._last_warming.to_dict() if self._last_warming else None
                ),
            },
            "versions": dict(self._versions),
        }

    async def health_check(self) -> bool:
        """Check store connectivity."""
        match await self._store.ping():
            case Success(value=healthy):
                return healthy
            case Failure(error=err):
                self._logger.error(
                    "Cache health check failed",
                    error_message=err.message,
                )
                return False
            case _:
                return False

    # =========================================================================
    # Tag index helpers
    # =========================================================================

    async def _sync_tags(self, key: str, tags: list[str], ttl: int) -> None:
        """Point the tag indexes at key, replacing tags from an earlier write."""
        key_tags_key = self._keys.key_tags(key)

        previous: set[str] = set()
        match await self._store.smembers(key_tags_key):
            case Success(value=members):
                previous = members
            case Failure(error=err):
                self._logger.warning(
                    "Failed to read key tag index",
                    key=key,
                    error_message=err.message,
                )

        dropped = previous - set(tags)
        for tag in dropped:
            await self._store.srem(self._keys.tag(tag), key)

        if not tags:
            if previous:
                await self._store.delete(key_tags_key)
            return

        for tag in tags:
            tag_key = self._keys.tag(tag)
            result = await self._store.sadd(tag_key, key)
            if isinstance(result, Failure):
                self._logger.warning(
                    "Failed to index key under tag",
                    key=key,
                    tag=tag,
                    error_message=result.error.message,
                )
                continue
            await self._extend_ttl(tag_key, ttl)

        if dropped:
            await self._store.srem(key_tags_key, *dropped)
        await self._store.sadd(key_tags_key, *tags)
        await self._store.expire(key_tags_key, ttl)

    async def _unlink_tags(self, key: str, skip_tag: str | None = None) -> None:
        """Remove key from every tag set it was indexed under."""
        key_tags_key = self._keys.key_tags(key)

        match await self._store.smembers(key_tags_key):
            case Success(value=members):
                tags = members
            case _:
                return

        if not tags:
            return

        for tag in tags:
            if tag != skip_tag:
                await self._store.srem(self._keys.tag(tag), key)
        await self._store.delete(key_tags_key)

    async def _extend_ttl(self, key: str, ttl: int) -> None:
        """Make sure key lives at least ttl more seconds."""
        match await self._store.ttl(key):
            case Success(value=current) if current is not None and current >= ttl:
                return
            case _:
                await self._store.expire(key, ttl)
