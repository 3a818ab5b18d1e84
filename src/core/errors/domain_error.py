"""Base domain error class for Railway-Oriented Programming.

DomainError is the base class for every error value in the session and cache
core. Errors flow through the system as data (inside Failure results), not
as raised exceptions.

Architecture:
- Does NOT inherit from Exception (returned, never raised)
- Dataclass inheritance for specialized errors
"""

from dataclasses import dataclass
from typing import Any

from src.core.enums import ErrorCode


@dataclass(frozen=True, slots=True, kw_only=True)
class DomainError:
    """Base domain error (does NOT inherit from Exception).

    Attributes:
        code: Machine-readable error code (enum).
        message: Human-readable error message.
        details: Optional context for debugging.
    """

    code: ErrorCode
    message: str
    details: dict[str, Any] | None = None

    def __str__(self) -> str:
        """String representation of error."""
        return f"{self.code.value}: {self.message}"
