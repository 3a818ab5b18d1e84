"""Infrastructure layer error types.

Infrastructure errors represent failures in external systems (the key-value
store) and in token verification.

Architecture:
- Adapters catch exceptions and map them to these error values
- Infrastructure errors inherit from DomainError (not Exception)
- Used with Result types for error propagation
"""

from dataclasses import dataclass
from typing import Any

from src.core.errors import DomainError
from src.infrastructure.enums import InfrastructureErrorCode


@dataclass(frozen=True, slots=True, kw_only=True)
class InfrastructureError(DomainError):
    """Base infrastructure error.

    Attributes:
        code: Domain ErrorCode.
        message: Human-readable message.
        infrastructure_code: Original infrastructure error code.
        details: Additional context.
    """

    infrastructure_code: InfrastructureErrorCode | None = None
    details: dict[str, Any] | None = None


@dataclass(frozen=True, slots=True, kw_only=True)
class CacheError(InfrastructureError):
    """Key-value store errors.

    Wraps Redis exceptions (connection, timeout, wrong type) and JSON
    serialization problems.
    """

    pass


@dataclass(frozen=True, slots=True, kw_only=True)
class SessionTokenError(InfrastructureError):
    """Session token verification errors (bad signature, expired, bad claims)."""

    pass
