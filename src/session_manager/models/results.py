"""Session validation outcome and statistics models."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from .session import SessionData


class SessionFailureReason(str, Enum):
    """Why a session failed validation."""

    INVALID_TOKEN = "Invalid session token"
    SESSION_NOT_FOUND = "Session not found"
    SESSION_EXPIRED = "Session expired"
    VALIDATION_FAILED = "Session validation failed"


@dataclass
class SessionValidationResult:
    """Outcome of validate_session.

    Attributes:
        valid: Whether the token resolved to a live session.
        session: The session record (valid results only).
        session_id: Session id embedded in the token, when it could be read.
        reason: Failure reason (invalid results only).
        should_refresh: True when last activity was refreshed by this call.
    """

    valid: bool
    session: SessionData | None = None
    session_id: str | None = None
    reason: SessionFailureReason | None = None
    should_refresh: bool = False


@dataclass
class SessionStats:
    """Aggregated session snapshot for health/ops reporting.

    Attributes:
        total_active_sessions: Readable, unexpired session records.
        sessions_per_user: Active session count per user id.
        avg_session_age_seconds: Mean age over every readable record.
        expired_sessions: Readable records past their max age (not yet swept).
    """

    total_active_sessions: int = 0
    sessions_per_user: dict[str, int] = field(default_factory=dict)
    avg_session_age_seconds: float = 0.0
    expired_sessions: int = 0

    def to_dict(self) -> dict[str, Any]:
        """Convert stats to dictionary for JSON serialization."""
        return {
            "total_active_sessions": self.total_active_sessions,
            "sessions_per_user": dict(self.sessions_per_user),
            "avg_session_age_seconds": round(self.avg_session_age_seconds, 3),
            "expired_sessions": self.expired_sessions,
        }
