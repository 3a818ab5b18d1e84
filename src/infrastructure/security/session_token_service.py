"""Session token service (adapter).

This service implements SessionTokenProtocol using PyJWT with HMAC-SHA256.
A session token is a locator for the server-side session record: it carries
the session id and the user id and nothing that grants access on its own.

Security:
    - HMAC-SHA256 (HS256) algorithm
    - 256-bit secret key minimum
    - Issuer and audience claims checked on every verification
    - Default lifetime matches the session max age (8 hours)
"""

from datetime import UTC, datetime, timedelta

import jwt
from jwt.exceptions import (
    ExpiredSignatureError,
    InvalidSignatureError,
    InvalidTokenError,
)

from src.core.enums import ErrorCode
from src.core.result import Failure, Result, Success
from src.domain.protocols.session_token_protocol import SessionTokenClaims
from src.infrastructure.enums import InfrastructureErrorCode
from src.infrastructure.errors import SessionTokenError

_REQUIRED_CLAIMS = ["session_id", "user_id", "iat", "exp", "iss", "aud"]


class SessionTokenService:
    """Signs and verifies session tokens.

    Usage:
        service = SessionTokenService(
            secret_key=settings.session_secret,
            issuer=settings.session_token_issuer,
            audience=settings.session_token_audience,
        )

        token = service.generate(session_id, user_id)
        match service.verify(token):
            case Success(value=claims):
                claims.session_id
            case Failure(error=error):
                error.code  # ErrorCode.TOKEN_EXPIRED / TOKEN_INVALID
    """

    def __init__(
        self,
        secret_key: str,
        *,
        issuer: str = "learning-platform",
        audience: str = "learning-platform-users",
        expiration_seconds: int = 8 * 60 * 60,
    ) -> None:
        """Initialize session token service.

        Args:
            secret_key: Secret key for HMAC-SHA256 signing.
                MUST be at least 256 bits (32 bytes).
            issuer: Value of the iss claim.
            audience: Value of the aud claim.
            expiration_seconds: Token lifetime.

        Raises:
            ValueError: If secret_key is too short or the lifetime is not positive.
        """
        if len(secret_key.encode("utf-8")) < 32:
            msg = "Session secret key must be at least 32 bytes (256 bits)"
            raise ValueError(msg)
        if expiration_seconds <= 0:
            msg = "Session token lifetime must be positive"
            raise ValueError(msg)

        self._secret_key = secret_key
        self._issuer = issuer
        self._audience = audience
        self._expiration_seconds = expiration_seconds
        self._algorithm = "HS256"

    def generate(self, session_id: str, user_id: str) -> str:
        """Issue a signed token for a session.

        Args:
            session_id: Id of the session record.
            user_id: Owner of the session.

        Returns:
            Compact JWT string.
        """
        now = datetime.now(UTC)
        expires_at = now + timedelta(seconds=self._expiration_seconds)

        payload = {
            "session_id": session_id,
            "user_id": user_id,
            "iat": int(now.timestamp()),
            "exp": int(expires_at.timestamp()),
            "iss": self._issuer,
            "aud": self._audience,
        }

        token: str = jwt.encode(payload, self._secret_key, algorithm=self._algorithm)
        return token

    def verify(self, token: str) -> Result[SessionTokenClaims, SessionTokenError]:
        """Verify a session token and extract its claims.

        Never raises: malformed, tampered, expired, wrong issuer/audience and
        claim-less tokens all come back as Failure.

        Args:
            token: Token string.

        Returns:
            Success with claims, or Failure with SessionTokenError.
        """
        try:
            payload = jwt.decode(
                token,
                self._secret_key,
                algorithms=[self._algorithm],
                issuer=self._issuer,
                audience=self._audience,
                options={"require": _REQUIRED_CLAIMS},
            )
        except ExpiredSignatureError:
            return self._failure(
                ErrorCode.TOKEN_EXPIRED,
                InfrastructureErrorCode.TOKEN_EXPIRED,
                "Session token expired",
            )
        except InvalidSignatureError:
            return self._failure(
                ErrorCode.TOKEN_INVALID,
                InfrastructureErrorCode.TOKEN_SIGNATURE_INVALID,
                "Session token signature invalid",
            )
        except InvalidTokenError as e:
            return self._failure(
                ErrorCode.TOKEN_INVALID,
                InfrastructureErrorCode.TOKEN_CLAIMS_INVALID,
                "Session token invalid",
                reason=str(e),
            )

        session_id = payload["session_id"]
        user_id = payload["user_id"]
        if not isinstance(session_id, str) or not isinstance(user_id, str):
            return self._failure(
                ErrorCode.TOKEN_INVALID,
                InfrastructureErrorCode.TOKEN_CLAIMS_INVALID,
                "Session token claims malformed",
            )
        if not session_id or not user_id:
            return self._failure(
                ErrorCode.TOKEN_INVALID,
                InfrastructureErrorCode.TOKEN_CLAIMS_INVALID,
                "Session token claims empty",
            )

        return Success(
            value=SessionTokenClaims(
                session_id=session_id,
                user_id=user_id,
                issued_at=datetime.fromtimestamp(payload["iat"], UTC),
                expires_at=datetime.fromtimestamp(payload["exp"], UTC),
            )
        )

    @staticmethod
    def _failure(
        code: ErrorCode,
        infrastructure_code: InfrastructureErrorCode,
        message: str,
        **details: str,
    ) -> Failure[SessionTokenError]:
        return Failure(
            error=SessionTokenError(
                code=code,
                infrastructure_code=infrastructure_code,
                message=message,
                details=details or None,
            )
        )
