"""Domain-level error codes (machine-readable).

Error codes follow ENTITY_ACTION_REASON naming convention and travel inside
DomainError values carried by Failure results.
"""

from enum import Enum


class ErrorCode(Enum):
    """Domain-level error codes (machine-readable)."""

    # Token errors
    TOKEN_EXPIRED = "token_expired"
    TOKEN_INVALID = "token_invalid"

    # Cache / store errors
    CACHE_UNAVAILABLE = "cache_unavailable"
    CACHE_OPERATION_FAILED = "cache_operation_failed"
