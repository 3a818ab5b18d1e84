"""Key-value store protocol.

Defines the store primitives the cache and session core needs: plain string
values with per-key TTL, pattern scans, and set membership for reverse
indexes. Redis is the natural fit (see RedisAdapter); anything offering the
same primitives can be substituted.

Architecture:
- Protocol-based - uses structural typing
- All operations return Result types (adapters never raise)
- Fail-open: callers degrade to a safe default on Failure
"""

from __future__ import annotations

from typing import Any, Protocol

from src.core.errors import DomainError
from src.core.result import Result


class KeyValueStoreProtocol(Protocol):
    """Key-value store protocol - what the core needs from the store."""

    async def get(self, key: str) -> Result[str | None, DomainError]:
        """Get value (None on miss)."""
        ...

    async def get_json(self, key: str) -> Result[Any | None, DomainError]:
        """Get and JSON-decode value (None on miss)."""
        ...

    async def set(
        self, key: str, value: str, ttl: int | None = None
    ) -> Result[None, DomainError]:
        """Set value with optional TTL in seconds."""
        ...

    async def set_json(
        self, key: str, value: Any, ttl: int | None = None
    ) -> Result[None, DomainError]:
        """JSON-encode and set value with optional TTL in seconds."""
        ...

    async def delete(self, key: str) -> Result[bool, DomainError]:
        """Delete key; True if it existed."""
        ...

    async def delete_many(self, keys: list[str]) -> Result[int, DomainError]:
        """Delete keys; number that existed."""
        ...

    async def exists(self, key: str) -> Result[bool, DomainError]:
        """Check key existence."""
        ...

    async def expire(self, key: str, seconds: int) -> Result[bool, DomainError]:
        """Set TTL on an existing key."""
        ...

    async def ttl(self, key: str) -> Result[int | None, DomainError]:
        """Remaining TTL in seconds (None if missing or persistent)."""
        ...

    async def keys(self, pattern: str) -> Result[list[str], DomainError]:
        """Keys matching a glob-style pattern."""
        ...

    async def mget(self, keys: list[str]) -> Result[list[str | None], DomainError]:
        """Values for keys, None for misses, in the given order."""
        ...

    async def delete_by_pattern(self, pattern: str) -> Result[int, DomainError]:
        """Delete every key matching pattern."""
        ...

    async def sadd(self, key: str, *members: str) -> Result[int, DomainError]:
        """Add members to a set."""
        ...

    async def srem(self, key: str, *members: str) -> Result[int, DomainError]:
        """Remove members from a set."""
        ...

    async def smembers(self, key: str) -> Result[set[str], DomainError]:
        """Members of a set (empty if missing)."""
        ...

    async def increment(self, key: str, amount: int = 1) -> Result[int, DomainError]:
        """Atomically increment an integer value."""
        ...

    async def ping(self) -> Result[bool, DomainError]:
        """Health check."""
        ...
