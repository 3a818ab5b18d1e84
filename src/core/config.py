"""
Configuration management using Pydantic Settings.

Type-safe, validated configuration loaded from environment variables for the
session and cache core.

Architecture:
- Flat Settings structure (no nesting)
- All config loaded from environment variables
- Type validation via Pydantic
- Session/cache components receive plain values, never the Settings object

Usage:
    from src.core.config import get_settings

    settings = get_settings()
    redis_url = settings.redis_url
    max_age = settings.session_max_age_seconds
"""

from functools import lru_cache

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from src.core.enums import Environment


class Settings(BaseSettings):
    """
    Main application settings (flat structure).

    Configuration precedence:
        1. Environment variables
        2. Default values (only for non-sensitive config)
    """

    # Environment detection
    environment: Environment = Field(
        default=Environment.DEVELOPMENT,
        description="Application environment (development, testing, ci, production)",
    )
    log_level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)",
    )
    app_name: str = Field(
        default="learning-platform",
        description="Application name",
    )

    # Key-value store (Redis)
    redis_url: str = Field(
        default="redis://localhost:6379/0",
        description="Redis connection URL (e.g., redis://host:port/db)",
    )

    # Session security
    session_secret: str = Field(
        description="Secret key for session token signing (at least 32 characters)",
    )
    csrf_secret: str = Field(
        description="Secret mixed into generated CSRF tokens",
    )
    session_token_issuer: str = Field(
        default="learning-platform",
        description="Issuer (iss) claim of session tokens",
    )
    session_token_audience: str = Field(
        default="learning-platform-users",
        description="Audience (aud) claim of session tokens",
    )
    session_token_expire_seconds: int = Field(
        default=8 * 60 * 60,
        description="Session token lifetime in seconds",
    )

    # Session lifecycle
    session_max_age_seconds: int = Field(
        default=8 * 60 * 60,
        description="Default absolute session lifetime in seconds",
    )
    max_concurrent_sessions: int = Field(
        default=5,
        description="Maximum concurrent sessions per user before eviction",
    )
    session_refresh_ratio: float = Field(
        default=0.25,
        description="Fraction of max age after which last activity is refreshed",
    )
    session_expiry_grace_seconds: int = Field(
        default=60,
        description="Extra store TTL kept past max age so expiry is detected explicitly",
    )
    session_cleanup_interval_seconds: int = Field(
        default=15 * 60,
        description="Interval of the expired-session sweep",
    )

    # Cache
    cache_default_ttl: int = Field(
        default=3600,
        description="Default cache entry TTL in seconds",
    )
    cache_warming_enabled: bool = Field(
        default=True,
        description="Enable cache warming passes",
    )
    cache_warming_batch_size: int = Field(
        default=100,
        description="Number of ids warmed concurrently per batch",
    )
    cache_warming_batch_pause_seconds: float = Field(
        default=0.1,
        description="Pause between warming batches",
    )
    cache_warming_interval_seconds: int | None = Field(
        default=None,
        description="Interval of the periodic warming pass (None = disabled)",
    )

    model_config = SettingsConfigDict(
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @field_validator("session_secret")
    @classmethod
    def validate_session_secret(cls, v: str) -> str:
        """
        Validate session secret length.

        Raises:
            ValueError: If the secret is shorter than 32 characters.
        """
        if len(v) < 32:
            raise ValueError("session_secret must be at least 32 characters")
        return v

    @field_validator("csrf_secret")
    @classmethod
    def validate_csrf_secret(cls, v: str) -> str:
        """
        Validate CSRF secret is not empty.

        Raises:
            ValueError: If the secret is empty.
        """
        if not v:
            raise ValueError("csrf_secret must not be empty")
        return v

    @field_validator("max_concurrent_sessions")
    @classmethod
    def validate_max_concurrent_sessions(cls, v: int) -> int:
        """
        Validate the concurrent session limit.

        Raises:
            ValueError: If the limit is lower than 1.
        """
        if v < 1:
            raise ValueError("max_concurrent_sessions must be at least 1")
        return v

    @field_validator("session_refresh_ratio")
    @classmethod
    def validate_session_refresh_ratio(cls, v: float) -> float:
        """
        Validate refresh ratio lies in (0, 1].

        Raises:
            ValueError: If ratio is out of range.
        """
        if not 0.0 < v <= 1.0:
            raise ValueError("session_refresh_ratio must be in (0, 1]")
        return v

    @property
    def is_development(self) -> bool:
        """Check if running in development environment."""
        return self.environment == Environment.DEVELOPMENT

    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.environment == Environment.PRODUCTION


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance.

    Returns:
        Settings: Application settings loaded from the environment.
    """
    return Settings()  # type: ignore[call-arg]
