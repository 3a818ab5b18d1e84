"""Result types for railway-oriented programming.

Store adapters and token verification return Result values instead of
raising, so the session and cache layers can degrade gracefully when Redis
is unavailable or a token has been tampered with.

Usage:
    result = await store.get("course:1:metadata")
    match result:
        case Success(value=None):
            ...  # cache miss
        case Success(value=raw):
            data = json.loads(raw)
        case Failure(error=error):
            logger.warning("Cache read failed", error_message=error.message)
"""

from dataclasses import dataclass
from typing import Generic, TypeVar

T = TypeVar("T")  # Success type
E = TypeVar("E")  # Error type


@dataclass(frozen=True, slots=True, kw_only=True)
class Success(Generic[T]):
    """Represents a successful operation result.

    Attributes:
        value: The successful result value.
    """

    value: T


@dataclass(frozen=True, slots=True, kw_only=True)
class Failure(Generic[E]):
    """Represents a failed operation result.

    Attributes:
        error: The error that occurred.
    """

    error: E


type Result[T, E] = Success[T] | Failure[E]
