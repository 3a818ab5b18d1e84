"""Logger audit backend - concrete implementation using Python stdlib.

Uses Python's built-in logging module. The application configures handlers
on the ``session_manager.audit`` logger to control where audit records go.
"""

import logging
from typing import Any

from ..models.session import SessionData
from .base import SessionAuditBackend


def _short(session_id: str) -> str:
    return session_id[:8]


class LoggerAuditBackend(SessionAuditBackend):
    """Audit backend using Python's stdlib logging.

    Every record carries an ``event_type`` in ``extra`` so handlers with a
    JSON formatter get structured audit lines. Session ids are truncated to
    their first 8 characters.

    Example:
        ```python
        logger = logging.getLogger("session_manager.audit")
        logger.addHandler(logging.FileHandler("/var/log/session_audit.log"))
        logger.setLevel(logging.INFO)

        audit = LoggerAuditBackend(logger_name="session_manager.audit")
        ```
    """

    def __init__(self, logger_name: str = "session_manager.audit"):
        """Initialize with logger name.

        Args:
            logger_name: Logger name (app configures handlers for this logger)
        """
        self.logger = logging.getLogger(logger_name)

    async def log_session_created(
        self, session_id: str, session: SessionData, context: dict[str, Any]
    ) -> None:
        self.logger.info(
            "Session created",
            extra={
                "event_type": "session_created",
                "session_id": _short(session_id),
                "user_id": session.user_id,
                "role": session.role,
                "ip_address": session.ip_address,
                "login_time": session.login_time.isoformat(),
                **context,
            },
        )

    async def log_session_destroyed(
        self, session_id: str, reason: str, context: dict[str, Any]
    ) -> None:
        self.logger.info(
            "Session destroyed",
            extra={
                "event_type": "session_destroyed",
                "session_id": _short(session_id),
                "reason": reason,
                **context,
            },
        )

    async def log_session_evicted(
        self, session_id: str, user_id: str, context: dict[str, Any]
    ) -> None:
        self.logger.warning(
            "Session evicted",
            extra={
                "event_type": "session_evicted",
                "session_id": _short(session_id),
                "user_id": user_id,
                **context,
            },
        )

    async def log_suspicious_activity(
        self, session_id: str, event: str, context: dict[str, Any]
    ) -> None:
        self.logger.error(
            f"Suspicious activity: {event}",
            extra={
                "event_type": "suspicious_activity",
                "session_id": _short(session_id),
                "suspicious_event": event,
                **context,
            },
        )
