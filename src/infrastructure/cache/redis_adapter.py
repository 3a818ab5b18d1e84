"""Redis adapter implementing KeyValueStoreProtocol.

This adapter provides the Redis implementation of the key-value store
primitives the cache manager and session manager build on: string values
with TTL, glob pattern scans, and sets used as reverse indexes.

Architecture:
- Implements KeyValueStoreProtocol without inheritance (structural typing)
- Maps Redis exceptions to CacheError with proper ErrorCode
- Returns Result types for all operations
- Fail-open strategy for resilience
"""

from __future__ import annotations

import json
from typing import Any

from redis.asyncio import Redis
from redis.exceptions import RedisError

from src.core.enums import ErrorCode
from src.core.result import Failure, Result, Success
from src.infrastructure.enums import InfrastructureErrorCode
from src.infrastructure.errors import CacheError

# Keys deleted per DEL call when clearing a pattern
_DELETE_CHUNK_SIZE = 500


def _decode(value: Any) -> str:
    return value.decode("utf-8") if isinstance(value, bytes) else str(value)


class RedisAdapter:
    """Redis implementation of KeyValueStoreProtocol.

    Wraps an async Redis client. Works with clients created with either
    ``decode_responses=True`` or ``False``; values are always returned as str.

    Note: Does NOT inherit from KeyValueStoreProtocol (uses structural typing).

    Attributes:
        _redis: Async Redis client instance.
    """

    def __init__(self, redis_client: Redis) -> None:
        """Initialize Redis adapter.

        Args:
            redis_client: Async Redis client instance.
        """
        self._redis = redis_client

    @property
    def client(self) -> Redis:
        """Underlying Redis client (for lifecycle management)."""
        return self._redis

    def _error(
        self,
        infrastructure_code: InfrastructureErrorCode,
        message: str,
        exc: Exception,
        **details: Any,
    ) -> Failure[CacheError]:
        """Build a Failure carrying a CacheError for an exception."""
        details["error"] = str(exc)
        if not isinstance(exc, RedisError):
            details["type"] = type(exc).__name__
        code = (
            ErrorCode.CACHE_UNAVAILABLE
            if infrastructure_code == InfrastructureErrorCode.CACHE_CONNECTION_ERROR
            else ErrorCode.CACHE_OPERATION_FAILED
        )
        return Failure(
            error=CacheError(
                code=code,
                infrastructure_code=infrastructure_code,
                message=message,
                details=details,
            )
        )

    async def get(self, key: str) -> Result[str | None, CacheError]:
        """Get value from Redis.

        Args:
            key: Cache key.

        Returns:
            Result with value if found, None if not found, or CacheError.
        """
        try:
            value = await self._redis.get(key)
            if value is None:
                return Success(value=None)
            return Success(value=_decode(value))
        except Exception as e:
            return self._error(
                InfrastructureErrorCode.CACHE_GET_ERROR,
                f"Failed to get key '{key}' from cache",
                e,
                key=key,
            )

    async def get_json(self, key: str) -> Result[Any | None, CacheError]:
        """Get JSON value from Redis.

        Args:
            key: Cache key.

        Returns:
            Result with parsed value if found, None if not found, or CacheError.
        """
        result = await self.get(key)

        match result:
            case Success(value=None):
                return Success(value=None)
            case Success(value=raw):
                try:
                    return Success(value=json.loads(raw))
                except (json.JSONDecodeError, TypeError) as e:
                    return Failure(
                        error=CacheError(
                            code=ErrorCode.CACHE_OPERATION_FAILED,
                            infrastructure_code=InfrastructureErrorCode.CACHE_SERIALIZATION_ERROR,
                            message=f"Failed to parse JSON for key '{key}'",
                            details={"key": key, "error": str(e)},
                        )
                    )
            case Failure(error=err):
                return Failure(error=err)
            case _:
                return Success(value=None)

    async def set(
        self,
        key: str,
        value: str,
        ttl: int | None = None,
    ) -> Result[None, CacheError]:
        """Set value in Redis.

        Args:
            key: Cache key.
            value: Value to cache.
            ttl: Time to live in seconds (None = no expiration).

        Returns:
            Result with None on success, or CacheError.
        """
        try:
            if ttl is not None:
                await self._redis.set(key, value, ex=ttl)
            else:
                await self._redis.set(key, value)
            return Success(value=None)
        except Exception as e:
            return self._error(
                InfrastructureErrorCode.CACHE_SET_ERROR,
                f"Failed to set key '{key}' in cache",
                e,
                key=key,
                ttl=ttl,
            )

    async def set_json(
        self,
        key: str,
        value: Any,
        ttl: int | None = None,
    ) -> Result[None, CacheError]:
        """Set JSON value in Redis.

        Args:
            key: Cache key.
            value: JSON-serializable value.
            ttl: Time to live in seconds (None = no expiration).

        Returns:
            Result with None on success, or CacheError.
        """
        try:
            serialized = json.dumps(value)
        except (TypeError, ValueError) as e:
            return Failure(
                error=CacheError(
                    code=ErrorCode.CACHE_OPERATION_FAILED,
                    infrastructure_code=InfrastructureErrorCode.CACHE_SERIALIZATION_ERROR,
                    message=f"Failed to serialize value for key '{key}'",
                    details={"key": key, "error": str(e)},
                )
            )
        return await self.set(key, serialized, ttl)

    async def delete(self, key: str) -> Result[bool, CacheError]:
        """Delete key from Redis.

        Args:
            key: Cache key to delete.

        Returns:
            Result with True if deleted, False if key didn't exist, or CacheError.
        """
        try:
            deleted_count = await self._redis.delete(key)
            return Success(value=deleted_count > 0)
        except Exception as e:
            return self._error(
                InfrastructureErrorCode.CACHE_DELETE_ERROR,
                f"Failed to delete key '{key}' from cache",
                e,
                key=key,
            )

    async def delete_many(self, keys: list[str]) -> Result[int, CacheError]:
        """Delete several keys in chunked DEL calls.

        Args:
            keys: Keys to delete.

        Returns:
            Result with number of keys that existed and were removed.
        """
        if not keys:
            return Success(value=0)
        try:
            deleted = 0
            for start in range(0, len(keys), _DELETE_CHUNK_SIZE):
                chunk = keys[start : start + _DELETE_CHUNK_SIZE]
                deleted += await self._redis.delete(*chunk)
            return Success(value=deleted)
        except Exception as e:
            return self._error(
                InfrastructureErrorCode.CACHE_DELETE_ERROR,
                "Failed to delete keys from cache",
                e,
                key_count=len(keys),
            )

    async def exists(self, key: str) -> Result[bool, CacheError]:
        """Check if key exists in Redis.

        Args:
            key: Cache key to check.

        Returns:
            Result with True if exists, False if not, or CacheError.
        """
        try:
            exists_count = await self._redis.exists(key)
            return Success(value=exists_count > 0)
        except Exception as e:
            return self._error(
                InfrastructureErrorCode.CACHE_GET_ERROR,
                f"Failed to check existence of key '{key}'",
                e,
                key=key,
            )

    async def expire(self, key: str, seconds: int) -> Result[bool, CacheError]:
        """Set expiration on key in Redis.

        Args:
            key: Cache key.
            seconds: Seconds until expiration.

        Returns:
            Result with True if timeout set, False if key doesn't exist, or CacheError.
        """
        try:
            was_set = await self._redis.expire(key, seconds)
            return Success(value=bool(was_set))
        except Exception as e:
            return self._error(
                InfrastructureErrorCode.CACHE_SET_ERROR,
                f"Failed to set expiration on key '{key}'",
                e,
                key=key,
                seconds=seconds,
            )

    async def ttl(self, key: str) -> Result[int | None, CacheError]:
        """Get time to live for key in Redis.

        Args:
            key: Cache key.

        Returns:
            Result with seconds until expiration, None if no TTL or key
            doesn't exist, or CacheError.
        """
        try:
            ttl_value = await self._redis.ttl(key)
            # Redis returns -2 if key doesn't exist, -1 if no expiration
            if ttl_value in (-2, -1):
                return Success(value=None)
            return Success(value=int(ttl_value))
        except Exception as e:
            return self._error(
                InfrastructureErrorCode.CACHE_GET_ERROR,
                f"Failed to get TTL for key '{key}'",
                e,
                key=key,
            )

    async def keys(self, pattern: str) -> Result[list[str], CacheError]:
        """List keys matching a glob pattern.

        Uses SCAN rather than KEYS so large keyspaces don't block Redis.

        Args:
            pattern: Glob-style pattern (e.g. "session:*").

        Returns:
            Result with matching keys, or CacheError.
        """
        try:
            found = [_decode(key) async for key in self._redis.scan_iter(match=pattern)]
            return Success(value=found)
        except Exception as e:
            return self._error(
                InfrastructureErrorCode.CACHE_GET_ERROR,
                f"Failed to scan keys for pattern '{pattern}'",
                e,
                pattern=pattern,
            )

    async def mget(self, keys: list[str]) -> Result[list[str | None], CacheError]:
        """Get several values at once.

        Args:
            keys: Cache keys.

        Returns:
            Result with values in key order (None for misses), or CacheError.
        """
        if not keys:
            return Success(value=[])
        try:
            values = await self._redis.mget(keys)
            return Success(
                value=[None if value is None else _decode(value) for value in values]
            )
        except Exception as e:
            return self._error(
                InfrastructureErrorCode.CACHE_GET_ERROR,
                "Failed to get multiple keys from cache",
                e,
                key_count=len(keys),
            )

    async def delete_by_pattern(self, pattern: str) -> Result[int, CacheError]:
        """Delete every key matching a glob pattern.

        Args:
            pattern: Glob-style pattern.

        Returns:
            Result with number of deleted keys, or CacheError.
        """
        match await self.keys(pattern):
            case Success(value=matched):
                return await self.delete_many(matched)
            case Failure(error=err):
                return Failure(error=err)
            case _:
                return Success(value=0)

    async def sadd(self, key: str, *members: str) -> Result[int, CacheError]:
        """Add members to a Redis set.

        Args:
            key: Set key.
            *members: Members to add.

        Returns:
            Result with number of newly added members, or CacheError.
        """
        if not members:
            return Success(value=0)
        try:
            added = await self._redis.sadd(key, *members)
            return Success(value=int(added))
        except Exception as e:
            return self._error(
                InfrastructureErrorCode.CACHE_SET_ERROR,
                f"Failed to add members to set '{key}'",
                e,
                key=key,
            )

    async def srem(self, key: str, *members: str) -> Result[int, CacheError]:
        """Remove members from a Redis set.

        Args:
            key: Set key.
            *members: Members to remove.

        Returns:
            Result with number of removed members, or CacheError.
        """
        if not members:
            return Success(value=0)
        try:
            removed = await self._redis.srem(key, *members)
            return Success(value=int(removed))
        except Exception as e:
            return self._error(
                InfrastructureErrorCode.CACHE_DELETE_ERROR,
                f"Failed to remove members from set '{key}'",
                e,
                key=key,
            )

    async def smembers(self, key: str) -> Result[set[str], CacheError]:
        """Get all members of a Redis set.

        Args:
            key: Set key.

        Returns:
            Result with members (empty set if key missing), or CacheError.
        """
        try:
            members = await self._redis.smembers(key)
            return Success(value={_decode(member) for member in members})
        except Exception as e:
            return self._error(
                InfrastructureErrorCode.CACHE_GET_ERROR,
                f"Failed to read members of set '{key}'",
                e,
                key=key,
            )

    async def increment(self, key: str, amount: int = 1) -> Result[int, CacheError]:
        """Increment value in Redis (atomic).

        Args:
            key: Cache key.
            amount: Amount to increment by.

        Returns:
            Result with new value after increment, or CacheError.
        """
        try:
            new_value = await self._redis.incrby(key, amount)
            return Success(value=int(new_value))
        except Exception as e:
            return self._error(
                InfrastructureErrorCode.CACHE_SET_ERROR,
                f"Failed to increment key '{key}'",
                e,
                key=key,
                amount=amount,
            )

    async def flush(self) -> Result[None, CacheError]:
        """Flush all keys from the current Redis database.

        WARNING: Clears ALL cache data! Use only in tests.

        Returns:
            Result with None on success, or CacheError.
        """
        try:
            await self._redis.flushdb()
            return Success(value=None)
        except Exception as e:
            return self._error(
                InfrastructureErrorCode.CACHE_DELETE_ERROR,
                "Failed to flush cache",
                e,
            )

    async def ping(self) -> Result[bool, CacheError]:
        """Check Redis connectivity (health check).

        Returns:
            Result with True if Redis is reachable, or CacheError.
        """
        try:
            await self._redis.ping()  # type: ignore[misc]
            return Success(value=True)
        except Exception as e:
            return self._error(
                InfrastructureErrorCode.CACHE_CONNECTION_ERROR,
                "Redis health check failed",
                e,
            )
