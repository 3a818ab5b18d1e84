"""Session manager domain models.

Exports:
    - SessionData: Server-side session record
    - NewSession / SessionOptions: Inputs of create_session
    - CreatedSession / UserSession: Outputs of create/list operations
    - SessionFailureReason / SessionValidationResult: Validation outcome
    - SessionStats: Aggregated operational snapshot
    - SessionConfig: Session manager configuration
"""

from .config import SessionConfig
from .results import SessionFailureReason, SessionStats, SessionValidationResult
from .session import (
    CreatedSession,
    NewSession,
    SessionData,
    SessionOptions,
    UserSession,
)

__all__ = [
    "CreatedSession",
    "NewSession",
    "SessionConfig",
    "SessionData",
    "SessionFailureReason",
    "SessionOptions",
    "SessionStats",
    "SessionValidationResult",
    "UserSession",
]
