"""No-op audit backend - does nothing.

Default backend when no audit is configured; used by the test suite.
"""

from typing import Any

from ..models.session import SessionData
from .base import SessionAuditBackend


class NoOpAuditBackend(SessionAuditBackend):
    """No-op audit backend (all methods do nothing)."""

    async def log_session_created(
        self, session_id: str, session: SessionData, context: dict[str, Any]
    ) -> None:
        pass

    async def log_session_destroyed(
        self, session_id: str, reason: str, context: dict[str, Any]
    ) -> None:
        pass

    async def log_session_evicted(
        self, session_id: str, user_id: str, context: dict[str, Any]
    ) -> None:
        pass

    async def log_suspicious_activity(
        self, session_id: str, event: str, context: dict[str, Any]
    ) -> None:
        pass
