"""Unit tests for CacheManager with a mocked store.

Tests cover:
- Event -> tag mapping table
- Event type coercion
- CacheEntry parsing
- Fail-open degradation when every store call fails
- Warming configuration validation

Architecture:
- Pure unit tests (no Redis)
- AsyncMock store returning Result values
"""

from unittest.mock import AsyncMock, MagicMock

import pytest

from src.core.enums import ErrorCode
from src.core.result import Failure, Success
from src.infrastructure.cache.cache_manager import (
    CacheEntry,
    CacheInvalidationEvent,
    CacheManager,
    InvalidationEventType,
    WarmingConfig,
)
from src.infrastructure.errors import CacheError


def _failure() -> Failure[CacheError]:
    return Failure(
        error=CacheError(
            code=ErrorCode.CACHE_UNAVAILABLE,
            message="Connection refused",
        )
    )


@pytest.fixture
def failing_store():
    """Store double whose every operation fails."""
    store = MagicMock()
    for name in (
        "get",
        "get_json",
        "set",
        "set_json",
        "delete",
        "delete_many",
        "exists",
        "expire",
        "ttl",
        "keys",
        "mget",
        "sadd",
        "srem",
        "smembers",
        "ping",
        "increment",
        "delete_by_pattern",
    ):
        setattr(store, name, AsyncMock(return_value=_failure()))
    return store


@pytest.fixture
def manager(failing_store, logger):
    return CacheManager(store=failing_store, logger=logger)


@pytest.mark.unit
class TestEventTags:
    """Test event -> tag mapping."""

    @pytest.mark.parametrize(
        ("event_type", "expected"),
        [
            (InvalidationEventType.USER_UPDATE, ["user", "user:42", "session"]),
            (
                InvalidationEventType.COURSE_UPDATE,
                ["course", "course:42", "analytics"],
            ),
            (
                InvalidationEventType.QUIZ_COMPLETION,
                ["quiz", "quiz:42", "analytics", "user"],
            ),
            (
                InvalidationEventType.ENROLLMENT_CHANGE,
                ["course", "user", "analytics"],
            ),
            (
                InvalidationEventType.SETTINGS_CHANGE,
                ["user", "course", "analytics"],
            ),
        ],
    )
    def test_tags_for_event(self, manager, event_type, expected):
        """Test each event type maps to its tag list."""
        event = CacheInvalidationEvent(type=event_type, entity_id="42")

        assert manager.tags_for_event(event) == expected

    def test_extra_tags_appended_without_duplicates(self, manager):
        """Test event tags are appended after the table tags, de-duplicated."""
        event = CacheInvalidationEvent(
            type=InvalidationEventType.COURSE_UPDATE,
            entity_id="7",
            tags=["course:7", "catalog"],
        )

        assert manager.tags_for_event(event) == [
            "course",
            "course:7",
            "analytics",
            "catalog",
        ]

    def test_string_event_type_coerced(self):
        """Test wire-format event types are accepted."""
        event = CacheInvalidationEvent(type="quiz-completion", entity_id="1")

        assert event.type is InvalidationEventType.QUIZ_COMPLETION

    def test_unknown_event_type_rejected(self):
        """Test unknown event types raise ValueError."""
        with pytest.raises(ValueError):
            CacheInvalidationEvent(type="lesson-deleted", entity_id="1")


@pytest.mark.unit
class TestCacheEntry:
    """Test CacheEntry parsing."""

    def test_from_dict_defaults(self):
        """Test optional fields default to empty."""
        entry = CacheEntry.from_dict({"data": {"a": 1}, "version": "2"})

        assert entry.data == {"a": 1}
        assert entry.version == 2
        assert entry.timestamp == 0
        assert entry.tags == []

    @pytest.mark.parametrize(
        ("raw", "error"),
        [
            ("plain string", TypeError),
            ({"version": 1}, KeyError),
            ({"data": 1, "version": "one"}, ValueError),
        ],
    )
    def test_from_dict_rejects_malformed(self, raw, error):
        """Test malformed entries raise."""
        with pytest.raises(error):
            CacheEntry.from_dict(raw)


@pytest.mark.unit
class TestDegradation:
    """Test that store failures never raise out of the manager."""

    async def test_get_returns_none(self, manager):
        """Test get() degrades to a miss."""
        assert await manager.get("course:1") is None

        stats = manager.get_stats()["metrics"]["course"]
        assert stats["errors"] == 1
        assert stats["misses"] == 1

    async def test_set_returns_false(self, manager):
        """Test set() reports failure."""
        assert await manager.set("course:1", {"title": "X"}) is False

    async def test_delete_returns_false(self, manager):
        """Test delete() reports failure."""
        assert await manager.delete("course:1") is False

    async def test_exists_returns_false(self, manager):
        """Test exists() degrades to False."""
        assert await manager.exists("course:1") is False

    async def test_pattern_operations_degrade(self, manager):
        """Test pattern operations degrade to empty results."""
        assert await manager.delete_by_pattern("course:*") == 0
        assert await manager.get_by_pattern("course:*") == {}

    async def test_invalidate_by_tags_returns_zero(self, manager):
        """Test tag invalidation skips unreadable tags."""
        assert await manager.invalidate_by_tags(["course", "user"]) == 0

    async def test_get_or_set_falls_back(self, manager):
        """Test get_or_set() still computes the value during an outage."""
        fallback = AsyncMock(return_value={"title": "X"})

        value = await manager.get_or_set("course:1", fallback)

        assert value == {"title": "X"}
        fallback.assert_awaited_once()

    async def test_increment_version_is_local_when_store_fails(self, manager):
        """Test the in-memory version advances even if persisting fails."""
        assert await manager.increment_version("course") == 2
        assert manager.get_version("course") == 2

    async def test_health_check_false(self, manager):
        """Test health check reports the outage."""
        assert await manager.health_check() is False

    async def test_initialize_keeps_defaults(self, manager):
        """Test versions stay at 1 when they cannot be loaded."""
        await manager.initialize()

        assert manager.get_version("user") == 1


@pytest.mark.unit
class TestInitialize:
    """Test version loading."""

    async def test_newer_persisted_version_wins(self, logger):
        """Test a persisted version newer than memory replaces it."""
        store = MagicMock()
        persisted = {"version:course": "5", "version:user": "garbage"}
        store.get = AsyncMock(side_effect=lambda key: Success(value=persisted.get(key)))
        manager = CacheManager(store=store, logger=logger)

        await manager.initialize()

        assert manager.get_version("course") == 5
        assert manager.get_version("user") == 1
        assert manager.get_version("never-tracked") == 1


@pytest.mark.unit
class TestDeleteByPattern:
    """Test pattern deletes delegate to the store."""

    async def test_uses_store_pattern_delete_and_unlinks_tags(self, logger):
        """Test the store deletes the pattern and each key leaves its tags."""
        store = MagicMock()
        store.keys = AsyncMock(return_value=Success(value=["course:1", "course:2"]))
        store.delete_by_pattern = AsyncMock(return_value=Success(value=2))
        store.delete_many = AsyncMock()
        store.smembers = AsyncMock(return_value=Success(value={"course"}))
        store.srem = AsyncMock(return_value=Success(value=1))
        store.delete = AsyncMock(return_value=Success(value=True))
        manager = CacheManager(store=store, logger=logger)

        assert await manager.delete_by_pattern("course:*") == 2

        store.delete_by_pattern.assert_awaited_once_with("course:*")
        store.delete_many.assert_not_called()
        store.srem.assert_any_await("tag:course", "course:1")
        store.srem.assert_any_await("tag:course", "course:2")


@pytest.mark.unit
class TestWarmingConfig:
    """Test WarmingConfig validation."""

    def test_batch_size_must_be_positive(self):
        """Test batch_size < 1 raises."""
        with pytest.raises(ValueError):
            WarmingConfig(batch_size=0)

    def test_pause_must_not_be_negative(self):
        """Test negative pause raises."""
        with pytest.raises(ValueError):
            WarmingConfig(batch_pause_seconds=-1)
