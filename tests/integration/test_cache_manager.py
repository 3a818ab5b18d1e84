"""Integration tests for CacheManager against fakeredis.

Tests cover:
- set/get round trip and entry envelope
- Version bumps (lazy stale misses, persistence across instances)
- Tag indexes and tag invalidation (including the key -> tags reverse index)
- Event-driven invalidation
- Pattern operations
- get_or_set
- Cache warming (batching, failure isolation, single-flight)
"""

import asyncio
import json

import pytest

from src.infrastructure.cache.cache_manager import (
    CacheConfig,
    CacheInvalidationEvent,
    CacheManager,
    CacheWarmer,
    InvalidationEventType,
    WarmingConfig,
)


@pytest.mark.integration
class TestSetAndGet:
    """Test basic read/write."""

    async def test_set_then_get_returns_equal_data(self, cache_manager):
        """Test a written value reads back deep-equal."""
        data = {"title": "Intro", "modules": [1, 2, 3], "meta": {"level": "a1"}}

        assert await cache_manager.set("course:1:meta", data) is True

        assert await cache_manager.get("course:1:meta") == data

    async def test_entry_envelope(self, cache_manager, store, clock):
        """Test entries are stored with timestamp, version and tags."""
        await cache_manager.set("course:1:meta", {"title": "X"})

        raw = (await store.get_json("course:1:meta")).value

        assert raw["data"] == {"title": "X"}
        assert raw["version"] == 1
        assert raw["tags"] == ["course"]
        assert raw["timestamp"] == int(clock().timestamp() * 1000)

    async def test_ttl_defaults_and_override(self, cache_manager, store):
        """Test default and explicit TTLs."""
        await cache_manager.set("course:1", 1)
        await cache_manager.set("course:2", 2, CacheConfig(ttl=30))

        assert 3500 < (await store.ttl("course:1")).value <= 3600
        assert 0 < (await store.ttl("course:2")).value <= 30

    async def test_miss_and_metrics(self, cache_manager):
        """Test misses return None and are counted."""
        assert await cache_manager.get("course:404") is None
        await cache_manager.set("course:1", {"a": 1})
        await cache_manager.get("course:1")

        stats = cache_manager.get_stats()["metrics"]["course"]
        assert stats["hits"] == 1
        assert stats["misses"] == 1
        assert stats["sets"] == 1

    async def test_corrupt_entry_is_a_miss(self, cache_manager, store):
        """Test an entry without the envelope is treated as a miss."""
        await store.set_json("course:1", {"title": "no envelope"})

        assert await cache_manager.get("course:1") is None

    async def test_unserializable_value_not_written(self, cache_manager):
        """Test set() reports False for non-JSON data."""
        assert await cache_manager.set("course:1", {"bad": object()}) is False
        assert await cache_manager.exists("course:1") is False

    async def test_delete(self, cache_manager):
        """Test delete() removes the key and is idempotent."""
        await cache_manager.set("course:1", 1)

        assert await cache_manager.delete("course:1") is True
        assert await cache_manager.delete("course:1") is True
        assert await cache_manager.get("course:1") is None


@pytest.mark.integration
class TestVersioning:
    """Test per-prefix versions."""

    async def test_increment_version_makes_entries_stale(self, cache_manager, store):
        """Test old entries miss after a bump but still exist until read."""
        await cache_manager.set("course:1:meta", {"title": "X"})
        await cache_manager.set("user:1", {"name": "Ada"})

        assert await cache_manager.increment_version("course") == 2
        assert (await store.exists("course:1:meta")).value is True

        assert await cache_manager.get("course:1:meta") is None
        assert (await store.exists("course:1:meta")).value is False
        assert await cache_manager.get("user:1") == {"name": "Ada"}

    async def test_entries_written_after_bump_are_readable(self, cache_manager):
        """Test new writes carry the new version."""
        await cache_manager.increment_version("course")
        await cache_manager.set("course:1", {"v": 2})

        assert await cache_manager.get("course:1") == {"v": 2}

    async def test_untracked_prefix_can_be_bumped(self, cache_manager):
        """Test prefixes outside the tracked set start at 1."""
        assert cache_manager.get_version("lesson") == 1
        assert await cache_manager.increment_version("lesson") == 2
        assert cache_manager.get_stats()["versions"]["lesson"] == 2

    async def test_version_persisted_for_other_instances(
        self, cache_manager, store, logger, clock
    ):
        """Test another manager picks up the persisted version on initialize."""
        await cache_manager.set("course:1", {"v": 1})
        await cache_manager.increment_version("course")

        other = CacheManager(store=store, logger=logger, clock=clock)
        await other.initialize()

        assert other.get_version("course") == 2
        assert await other.get("course:1") is None

    async def test_bumps_from_managers_sharing_a_store_accumulate(
        self, cache_manager, store, logger, clock
    ):
        """Test a bump on another manager invalidates entries written after ours."""
        other = CacheManager(store=store, logger=logger, clock=clock)

        assert await cache_manager.increment_version("course") == 2
        await cache_manager.set("course:1", {"v": "after-first-bump"})
        assert await other.increment_version("course") == 3

        assert (await store.get("version:course")).value == "3"
        assert await other.get("course:1") is None

    async def test_bump_catches_up_a_lagging_store(self, cache_manager, store):
        """Test the persisted counter never trails the in-memory version."""
        await cache_manager.increment_version("course")
        await store.delete("version:course")

        assert await cache_manager.increment_version("course") == 3
        assert (await store.get("version:course")).value == "3"

    async def test_get_by_pattern_skips_stale(self, cache_manager):
        """Test pattern reads skip stale entries."""
        await cache_manager.set("course:1", "old")
        await cache_manager.increment_version("course")
        await cache_manager.set("course:2", "new")

        assert await cache_manager.get_by_pattern("course:*") == {"course:2": "new"}


@pytest.mark.integration
class TestTagIndexes:
    """Test tag bookkeeping."""

    async def test_default_tag_is_prefix(self, cache_manager, store):
        """Test keys are tagged with their prefix by default."""
        await cache_manager.set("course:1:meta", 1)

        assert (await store.smembers("tag:course")).value == {"course:1:meta"}
        assert (await store.smembers("key_tags:course:1:meta")).value == {"course"}

    async def test_empty_tag_list_is_untagged(self, cache_manager, store):
        """Test an explicit empty tag list writes no index."""
        await cache_manager.set("session:abc", {"x": 1}, CacheConfig(tags=[]))

        assert (await store.keys("tag:*")).value == []
        assert (await store.exists("key_tags:session:abc")).value is False

    async def test_tag_sets_outlive_their_entries(self, cache_manager, store):
        """Test tag sets are extended to the longest entry TTL."""
        await cache_manager.set("course:1", 1, CacheConfig(ttl=600, tags=["course"]))
        await cache_manager.set("course:2", 2, CacheConfig(ttl=60, tags=["course"]))

        assert (await store.ttl("tag:course")).value > 60

    async def test_rewrite_replaces_tags(self, cache_manager, store):
        """Test rewriting a key with other tags unlinks the old ones."""
        await cache_manager.set("course:1", 1, CacheConfig(tags=["a", "b"]))
        await cache_manager.set("course:1", 2, CacheConfig(tags=["b", "c"]))

        assert (await store.smembers("tag:a")).value == set()
        assert (await store.smembers("tag:c")).value == {"course:1"}
        assert (await store.smembers("key_tags:course:1")).value == {"b", "c"}

    async def test_delete_unlinks_from_every_tag(self, cache_manager, store):
        """Test delete keeps tag sets consistent."""
        await cache_manager.set("course:1", 1, CacheConfig(tags=["course", "course:1"]))
        await cache_manager.set("course:2", 2, CacheConfig(tags=["course"]))

        await cache_manager.delete("course:1")

        assert (await store.smembers("tag:course")).value == {"course:2"}
        assert (await store.smembers("tag:course:1")).value == set()
        assert (await store.exists("key_tags:course:1")).value is False


@pytest.mark.integration
class TestTagInvalidation:
    """Test invalidate_by_tags."""

    async def test_set_get_invalidate_scenario(self, cache_manager):
        """Test the set -> get -> invalidate -> get flow."""
        await cache_manager.set(
            "course:1:meta", {"title": "X"}, CacheConfig(tags=["course:1"])
        )
        assert await cache_manager.get("course:1:meta") == {"title": "X"}

        assert await cache_manager.invalidate_by_tags(["course:1"]) == 1

        assert await cache_manager.get("course:1:meta") is None

    async def test_only_tagged_keys_removed(self, cache_manager):
        """Test the count equals the tag's key set and other keys survive."""
        for key in ("course:123:meta", "course:123:stats", "lesson:9"):
            await cache_manager.set(key, key, CacheConfig(tags=["course:123"]))
        await cache_manager.set("course:456:meta", "other", CacheConfig(tags=["course:456"]))
        await cache_manager.set("user:1", "user", CacheConfig(tags=["user"]))

        assert await cache_manager.invalidate_by_tags(["course:123"]) == 3

        assert await cache_manager.get("course:123:meta") is None
        assert await cache_manager.get("lesson:9") is None
        assert await cache_manager.get("course:456:meta") == "other"
        assert await cache_manager.get("user:1") == "user"

    async def test_expired_members_not_counted(self, cache_manager, store):
        """Test keys that already vanished do not inflate the count."""
        await cache_manager.set("course:1", 1, CacheConfig(tags=["course:1"]))
        await cache_manager.set("course:2", 2, CacheConfig(tags=["course:1"]))
        await store.delete("course:2")

        assert await cache_manager.invalidate_by_tags(["course:1"]) == 1

    async def test_invalidation_cleans_indexes(self, cache_manager, store):
        """Test invalidated keys leave no dangling index entries."""
        await cache_manager.set("course:1", 1, CacheConfig(tags=["course:1", "catalog"]))

        await cache_manager.invalidate_by_tags(["course:1"])

        assert (await store.exists("tag:course:1")).value is False
        assert (await store.smembers("tag:catalog")).value == set()
        assert (await store.exists("key_tags:course:1")).value is False

    async def test_overlapping_tags_counted_once(self, cache_manager):
        """Test a key carrying two invalidated tags is counted once."""
        await cache_manager.set("course:1", 1, CacheConfig(tags=["a", "b"]))

        assert await cache_manager.invalidate_by_tags(["a", "b", "a"]) == 1

    async def test_invalidations_recorded(self, cache_manager):
        """Test invalidations are counted under the tag's prefix."""
        await cache_manager.set("course:1", 1, CacheConfig(tags=["course:1"]))
        await cache_manager.invalidate_by_tags(["course:1"])

        assert cache_manager.get_stats()["metrics"]["course"]["invalidations"] == 1


@pytest.mark.integration
class TestEventInvalidation:
    """Test invalidate_by_event."""

    async def test_quiz_completion_invalidates_every_mapped_tag(self, cache_manager):
        """Test one planted entry per mapped tag is removed."""
        planted = {
            "quiz:list": "quiz",
            "quiz:q1:questions": "quiz:q1",
            "analytics:dashboard": "analytics",
            "user:7:profile": "user",
        }
        for key, tag in planted.items():
            await cache_manager.set(key, key, CacheConfig(tags=[tag]))
        await cache_manager.set("course:1", "kept", CacheConfig(tags=["course"]))

        await cache_manager.invalidate_by_event(
            CacheInvalidationEvent(
                type=InvalidationEventType.QUIZ_COMPLETION, entity_id="q1"
            )
        )

        for key in planted:
            assert await cache_manager.get(key) is None
        assert await cache_manager.get("course:1") == "kept"

    async def test_affected_keys_deleted(self, cache_manager):
        """Test explicit affected keys are deleted even when untagged."""
        await cache_manager.set("settings:system", {"a": 1}, CacheConfig(tags=[]))

        await cache_manager.invalidate_by_event(
            CacheInvalidationEvent(
                type="settings-change",
                entity_id="system",
                affected_keys=["settings:system", "settings:missing"],
            )
        )

        assert await cache_manager.get("settings:system") is None

    async def test_user_update_keeps_sessions(self, cache_manager):
        """Test untagged session records survive a user-update event."""
        await cache_manager.set("session:abc", {"user_id": "u1"}, CacheConfig(tags=[]))
        await cache_manager.set("user:u1:profile", {"name": "Ada"})

        await cache_manager.invalidate_by_event(
            CacheInvalidationEvent(type=InvalidationEventType.USER_UPDATE, entity_id="u1")
        )

        assert await cache_manager.get("session:abc") == {"user_id": "u1"}
        assert await cache_manager.get("user:u1:profile") is None


@pytest.mark.integration
class TestPatternOperations:
    """Test pattern reads and deletes."""

    async def test_get_by_pattern(self, cache_manager, store):
        """Test matching readable entries are returned."""
        await cache_manager.set("search:popular", ["python"])
        await cache_manager.set("search:suggestions:py", ["python"])
        await cache_manager.set("course:1", 1)
        await store.set("search:broken", "{not json")

        found = await cache_manager.get_by_pattern("search:*")

        assert found == {
            "search:popular": ["python"],
            "search:suggestions:py": ["python"],
        }

    async def test_delete_by_pattern(self, cache_manager, store):
        """Test pattern deletes also unlink the keys from their tags."""
        await cache_manager.set("search:1", 1)
        await cache_manager.set("search:2", 2)
        await cache_manager.set("course:1", 1)

        assert await cache_manager.delete_by_pattern("search:*") == 2

        assert await cache_manager.get("course:1") == 1
        assert (await store.smembers("tag:search")).value == set()

    async def test_delete_by_pattern_without_matches(self, cache_manager):
        """Test an unmatched pattern deletes nothing."""
        assert await cache_manager.delete_by_pattern("nothing:*") == 0


@pytest.mark.integration
class TestGetOrSet:
    """Test read-through caching."""

    async def test_fallback_called_once(self, cache_manager):
        """Test the fallback runs on miss only."""
        calls = []

        async def load():
            calls.append(1)
            return {"title": "X"}

        first = await cache_manager.get_or_set("course:1", load)
        second = await cache_manager.get_or_set("course:1", load)

        assert first == second == {"title": "X"}
        assert len(calls) == 1

    async def test_none_not_cached(self, cache_manager):
        """Test a None fallback result is not written."""

        async def load():
            return None

        assert await cache_manager.get_or_set("course:1", load) is None
        assert await cache_manager.exists("course:1") is False

    async def test_fallback_errors_propagate(self, cache_manager):
        """Test fallback exceptions reach the caller."""

        async def load():
            raise LookupError("course not found")

        with pytest.raises(LookupError):
            await cache_manager.get_or_set("course:1", load)


@pytest.mark.integration
class TestWarming:
    """Test cache warming passes."""

    async def test_warms_in_batches_and_isolates_failures(self, cache_manager):
        """Test every id is attempted and failures are counted."""

        async def list_ids():
            return ["1", "2", "3", "4", "5"]

        async def warm_one(course_id):
            if course_id == "3":
                raise RuntimeError("loader failed")
            await cache_manager.set(f"course:{course_id}", {"id": course_id})

        cache_manager.register_warmer(CacheWarmer("courses", list_ids, warm_one))

        report = await cache_manager.warm_cache()

        assert report.warmed == 4
        assert report.failed == 1
        assert report.skipped is False
        assert await cache_manager.get("course:5") == {"id": "5"}
        assert cache_manager.get_stats()["warming"]["last_report"] == report.to_dict()

    async def test_listing_failure_counted(self, cache_manager):
        """Test a failing id listing does not stop other warmers."""

        async def broken_ids():
            raise RuntimeError("db down")

        async def list_ids():
            return ["1"]

        async def warm_one(user_id):
            await cache_manager.set(f"user:{user_id}", {"id": user_id})

        cache_manager.register_warmer(CacheWarmer("broken", broken_ids, warm_one))
        cache_manager.register_warmer(CacheWarmer("users", list_ids, warm_one))

        report = await cache_manager.warm_cache()

        assert report.failed == 1
        assert report.warmed == 1
        assert cache_manager.get_stats()["warming"]["registered_warmers"] == [
            "broken",
            "users",
        ]

    async def test_single_flight(self, cache_manager):
        """Test a pass started while one is running is skipped."""
        release = asyncio.Event()

        async def list_ids():
            await release.wait()
            return []

        async def warm_one(_):
            return None

        cache_manager.register_warmer(CacheWarmer("slow", list_ids, warm_one))

        first = asyncio.create_task(cache_manager.warm_cache())
        await asyncio.sleep(0)
        assert cache_manager.get_stats()["warming"]["in_progress"] is True

        second = await cache_manager.warm_cache()
        release.set()
        await first

        assert second.skipped is True
        assert first.result().skipped is False

    async def test_disabled(self, store, logger):
        """Test warming does nothing when disabled."""
        manager = CacheManager(
            store=store, logger=logger, warming=WarmingConfig(enabled=False)
        )

        report = await manager.warm_cache()

        assert report.skipped is True


@pytest.mark.integration
class TestHealth:
    """Test health reporting."""

    async def test_health_check(self, cache_manager):
        """Test a reachable store is healthy."""
        assert await cache_manager.health_check() is True

    async def test_stats_shape(self, cache_manager):
        """Test get_stats() exposes metrics, warming and versions."""
        stats = cache_manager.get_stats()

        assert set(stats) == {"metrics", "warming", "versions"}
        assert stats["versions"] == {
            "user": 1,
            "course": 1,
            "quiz": 1,
            "analytics": 1,
            "session": 1,
        }
        json.dumps(stats)
