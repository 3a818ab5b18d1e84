"""Session record and the value objects around it.

A session is stored as a JSON document (via the cache manager) under
``session:{session_id}``. Datetimes are timezone-aware UTC and serialized as
ISO-8601 strings.
"""

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any


@dataclass
class SessionData:
    """Server-side record of one authenticated login.

    Attributes:
        user_id: Owner of the session.
        email: User email at login time.
        role: User role at login time.
        permissions: Permission names granted to the session.
        login_time: Creation time; the absolute expiry is measured from it.
        last_activity: Last time the session was refreshed.
        ip_address: Client IP seen at creation or last refresh.
        user_agent: Client user agent seen at creation or last refresh.
        csrf_token: Current CSRF token (rotatable).
        max_age_seconds: Absolute lifetime of this session.
        metadata: Free-form application data.
    """

    user_id: str
    email: str
    role: str
    permissions: list[str]
    login_time: datetime
    last_activity: datetime
    ip_address: str
    user_agent: str
    csrf_token: str
    max_age_seconds: float
    metadata: dict[str, Any] = field(default_factory=dict)

    @property
    def max_age(self) -> timedelta:
        """Absolute lifetime as a timedelta."""
        return timedelta(seconds=self.max_age_seconds)

    @property
    def expires_at(self) -> datetime:
        """Absolute expiry (login time + max age)."""
        return self.login_time + self.max_age

    def is_expired(self, now: datetime) -> bool:
        """Check whether the session outlived its max age at ``now``."""
        return now - self.login_time > self.max_age

    def to_dict(self) -> dict[str, Any]:
        """Convert record to dict for JSON serialization."""
        return {
            "user_id": self.user_id,
            "email": self.email,
            "role": self.role,
            "permissions": list(self.permissions),
            "login_time": self.login_time.isoformat(),
            "last_activity": self.last_activity.isoformat(),
            "ip_address": self.ip_address,
            "user_agent": self.user_agent,
            "csrf_token": self.csrf_token,
            "max_age_seconds": self.max_age_seconds,
            "metadata": dict(self.metadata),
        }

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> "SessionData":
        """Build record from its stored dict.

        Raises:
            KeyError: If a required field is missing.
            TypeError: If raw is not a mapping.
            ValueError: If a datetime is not ISO-8601.
        """
        if not isinstance(raw, dict):
            raise TypeError(f"session record must be an object, got {type(raw).__name__}")
        return cls(
            user_id=raw["user_id"],
            email=raw["email"],
            role=raw["role"],
            permissions=list(raw.get("permissions") or []),
            login_time=datetime.fromisoformat(raw["login_time"]),
            last_activity=datetime.fromisoformat(raw["last_activity"]),
            ip_address=raw.get("ip_address") or "",
            user_agent=raw.get("user_agent") or "",
            csrf_token=raw["csrf_token"],
            max_age_seconds=float(raw["max_age_seconds"]),
            metadata=dict(raw.get("metadata") or {}),
        )


@dataclass
class NewSession:
    """Caller-supplied attributes of a session being created.

    Credentials are verified before this point; the session manager only
    records who logged in and from where.
    """

    user_id: str
    email: str
    role: str
    permissions: list[str] = field(default_factory=list)
    ip_address: str = ""
    user_agent: str = ""
    metadata: dict[str, Any] = field(default_factory=dict)


@dataclass
class SessionOptions:
    """Per-session overrides.

    Attributes:
        max_age: Absolute lifetime (None = configured default).
    """

    max_age: timedelta | None = None

    def __post_init__(self) -> None:
        """Validate options.

        Raises:
            ValueError: If max_age is not positive.
        """
        if self.max_age is not None and self.max_age <= timedelta(0):
            raise ValueError("max_age must be positive")


@dataclass(frozen=True)
class CreatedSession:
    """Result of create_session.

    Attributes:
        session_id: Opaque 256-bit hex id.
        session_token: Signed bearer token handed to the client.
        csrf_token: Initial CSRF token.
    """

    session_id: str
    session_token: str
    csrf_token: str


@dataclass(frozen=True)
class UserSession:
    """One entry of get_user_sessions."""

    session_id: str
    session: SessionData
