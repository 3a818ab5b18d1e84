"""Session audit backend abstract interface.

This module defines the SessionAuditBackend interface for tracking
session lifecycle events (security monitoring, forensics).
"""

from abc import ABC, abstractmethod
from typing import Any

from ..models.session import SessionData


class SessionAuditBackend(ABC):
    """Abstract audit backend for session operations.

    Implementations:
        - LoggerAuditBackend: Python logging (concrete - stdlib)
        - NoOpAuditBackend: No-op for testing

    Note:
        Session ids passed to the backend are full ids; tokens and CSRF
        tokens are never passed.
    """

    @abstractmethod
    async def log_session_created(
        self, session_id: str, session: SessionData, context: dict[str, Any]
    ) -> None:
        """Log session creation event.

        Args:
            session_id: New session id
            session: Newly created session record
            context: Additional context (max age, etc.)
        """
        pass

    @abstractmethod
    async def log_session_destroyed(
        self, session_id: str, reason: str, context: dict[str, Any]
    ) -> None:
        """Log session destruction event.

        Args:
            session_id: Destroyed session id
            reason: "logout", "expired", "user_sessions_revoked", ...
            context: Owner and other details
        """
        pass

    @abstractmethod
    async def log_session_evicted(
        self, session_id: str, user_id: str, context: dict[str, Any]
    ) -> None:
        """Log eviction under the concurrent session limit.

        Args:
            session_id: Evicted session id
            user_id: Owner of the session
            context: Limit and session counts
        """
        pass

    @abstractmethod
    async def log_suspicious_activity(
        self, session_id: str, event: str, context: dict[str, Any]
    ) -> None:
        """Log suspicious activity detected.

        Args:
            session_id: Session involved
            event: Suspicious event type ("ip_mismatch", "user_mismatch")
            context: Event details

        Examples:
            context = {
                "expected_ip": "192.168.1.1",
                "actual_ip": "10.0.0.1",
            }
        """
        pass
