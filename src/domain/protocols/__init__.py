"""Domain protocols (ports) package.

Protocol definitions that the session and cache core depends on.
Infrastructure adapters implement these protocols without inheritance.

Usage:
    from src.domain.protocols import KeyValueStoreProtocol, LoggerProtocol
"""

from src.domain.protocols.key_value_store_protocol import KeyValueStoreProtocol
from src.domain.protocols.logger_protocol import LoggerProtocol
from src.domain.protocols.session_token_protocol import (
    SessionTokenClaims,
    SessionTokenProtocol,
)

__all__ = [
    "KeyValueStoreProtocol",
    "LoggerProtocol",
    "SessionTokenClaims",
    "SessionTokenProtocol",
]
