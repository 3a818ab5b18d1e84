"""Security infrastructure adapters.

This package contains security-related infrastructure implementations:
- Session token signing/verification (PyJWT, HS256)
"""

from src.infrastructure.security.session_token_service import SessionTokenService

__all__ = ["SessionTokenService"]
