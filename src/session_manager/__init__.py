"""Session Manager Package.

Server-side session lifecycle for the learning platform: signed session
tokens, concurrent-session eviction, CSRF tokens, expiry sweep and stats.

Key Features:
    - Records stored through the tagged/versioned CacheManager
    - Per-user reverse index with self-healing orphan cleanup
    - Pluggable audit backends (stdlib logging, no-op)

Usage:
    ```python
    from src.session_manager import NewSession, SessionManagerService

    created = await session_manager.create_session(
        NewSession(user_id="u1", email="u1@example.com", role="student")
    )
    result = await session_manager.validate_session(created.session_token)
    ```
"""

from .models import (
    CreatedSession,
    NewSession,
    SessionConfig,
    SessionData,
    SessionFailureReason,
    SessionOptions,
    SessionStats,
    SessionValidationResult,
    UserSession,
)
from .service import SessionManagerService

__version__ = "0.1.0"

__all__ = [
    "CreatedSession",
    "NewSession",
    "SessionConfig",
    "SessionData",
    "SessionFailureReason",
    "SessionManagerService",
    "SessionOptions",
    "SessionStats",
    "SessionValidationResult",
    "UserSession",
    "__version__",
]
