"""Session manager configuration model.

Configuration can be provided via:
- Direct instantiation (for testing)
- Application settings (SessionConfig.from_settings)
"""

from dataclasses import dataclass
from datetime import timedelta

from src.core.config import Settings


@dataclass
class SessionConfig:
    """Session manager configuration.

    Attributes:
        csrf_secret: Secret mixed into generated CSRF tokens.
        max_age: Default absolute session lifetime (default: 8 hours).
        max_concurrent_sessions: Sessions per user before eviction (default: 5).
        refresh_ratio: Fraction of max age after which last activity is
            refreshed on validation (default: 0.25).
        expiry_grace: Extra store TTL past max age so an expired session is
            still readable and reported as expired, not missing.
        cleanup_interval: Interval of the expired-session sweep (default: 15 minutes).

    Example:
        >>> config = SessionConfig(csrf_secret="s3cret", max_concurrent_sessions=3)
        >>> config.max_age.total_seconds()
        28800.0
    """

    csrf_secret: str
    max_age: timedelta = timedelta(hours=8)
    max_concurrent_sessions: int = 5
    refresh_ratio: float = 0.25
    expiry_grace: timedelta = timedelta(seconds=60)
    cleanup_interval: timedelta = timedelta(minutes=15)

    def __post_init__(self) -> None:
        """Validate configuration after initialization.

        Raises:
            ValueError: If configuration is invalid
        """
        if not self.csrf_secret:
            raise ValueError("csrf_secret must not be empty")
        if self.max_age <= timedelta(0):
            raise ValueError("max_age must be positive")
        if self.max_concurrent_sessions < 1:
            raise ValueError("max_concurrent_sessions must be at least 1")
        if not 0.0 < self.refresh_ratio <= 1.0:
            raise ValueError("refresh_ratio must be in (0, 1]")
        if self.expiry_grace < timedelta(0):
            raise ValueError("expiry_grace must not be negative")
        if self.cleanup_interval <= timedelta(0):
            raise ValueError("cleanup_interval must be positive")

    @classmethod
    def from_settings(cls, settings: Settings) -> "SessionConfig":
        """Build configuration from application settings."""
        return cls(
            csrf_secret=settings.csrf_secret,
            max_age=timedelta(seconds=settings.session_max_age_seconds),
            max_concurrent_sessions=settings.max_concurrent_sessions,
            refresh_ratio=settings.session_refresh_ratio,
            expiry_grace=timedelta(seconds=settings.session_expiry_grace_seconds),
            cleanup_interval=timedelta(
                seconds=settings.session_cleanup_interval_seconds
            ),
        )
