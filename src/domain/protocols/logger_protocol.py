"""LoggerProtocol definition for structured logging.

This protocol standardizes structured logging across the session and cache
core while remaining backend-agnostic. Implementations MUST ensure logs are
structured (key-value context) and safe (no secrets).

Log Levels:
    - DEBUG: Cache hits/misses, lazy refresh decisions
    - INFO: Session lifecycle, invalidation summaries, warming passes
    - WARNING: Degraded store operations, IP mismatches, evictions
    - ERROR: Operation failed, system continues
    - CRITICAL: Reserved for the composition root

Security:
    - NEVER log session tokens or CSRF tokens
    - Session ids are logged truncated (first 8 characters)

Usage:
    from src.core.container import get_logger

    logger: LoggerProtocol = get_logger()
    logger.info("Session created", user_id=user_id)

    sweep_logger = logger.bind(task="session_cleanup")
    sweep_logger.info("Sweep finished", cleaned=3)
"""

from __future__ import annotations

from typing import Any, Protocol


class LoggerProtocol(Protocol):
    """Protocol for structured logging adapters.

    All logging calls MUST be structured: message + key-value context.
    """

    def debug(self, message: str, /, **context: Any) -> None:
        """Log a debug-level message.

        Args:
            message: Human-readable message (avoid f-strings; use context).
            **context: Structured key-value context fields.
        """
        ...

    def info(self, message: str, /, **context: Any) -> None:
        """Log an info-level message.

        Args:
            message: Human-readable message (avoid f-strings; use context).
            **context: Structured key-value context fields.
        """
        ...

    def warning(self, message: str, /, **context: Any) -> None:
        """Log a warning-level message.

        Args:
            message: Human-readable message (avoid f-strings; use context).
            **context: Structured key-value context fields.
        """
        ...

    def error(
        self, message: str, /, *, error: Exception | None = None, **context: Any
    ) -> None:
        """Log an error-level message with optional exception details.

        Args:
            message: Human-readable message (avoid f-strings; use context).
            error: Optional exception instance; implementation may include
                error_type and error_message fields.
            **context: Structured key-value context fields.
        """
        ...

    def critical(
        self, message: str, /, *, error: Exception | None = None, **context: Any
    ) -> None:
        """Log a critical-level message.

        Args:
            message: Human-readable message (avoid f-strings; use context).
            error: Optional exception instance.
            **context: Structured key-value context fields.
        """
        ...

    def bind(self, **context: Any) -> "LoggerProtocol":
        """Return new logger with permanently bound context.

        Args:
            **context: Context to bind to all future logs.

        Returns:
            New logger instance with bound context.
        """
        ...
