"""Infrastructure errors package.

Usage:
    from src.infrastructure.errors import CacheError, SessionTokenError
"""

from src.infrastructure.errors.infrastructure_error import (
    CacheError,
    InfrastructureError,
    SessionTokenError,
)

__all__ = [
    "InfrastructureError",
    "CacheError",
    "SessionTokenError",
]
