"""Session token protocol.

A session token is the bearer credential handed to the client after login.
It is signed and time-limited and carries the session id, the user id and
the issue time. The server-side session record stays the source of truth;
the token only locates it.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Protocol

from src.core.errors import DomainError
from src.core.result import Result


@dataclass(frozen=True, slots=True, kw_only=True)
class SessionTokenClaims:
    """Verified claims extracted from a session token.

    Attributes:
        session_id: Id of the server-side session record.
        user_id: Owner of the session.
        issued_at: When the token was issued (UTC).
        expires_at: When the token stops verifying (UTC).
    """

    session_id: str
    user_id: str
    issued_at: datetime
    expires_at: datetime


class SessionTokenProtocol(Protocol):
    """Signing and verification of session tokens."""

    def generate(self, session_id: str, user_id: str) -> str:
        """Issue a signed token for a session."""
        ...

    def verify(self, token: str) -> Result[SessionTokenClaims, DomainError]:
        """Verify signature, expiry and claims (never raises)."""
        ...
