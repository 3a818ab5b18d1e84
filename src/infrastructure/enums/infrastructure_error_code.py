"""Infrastructure-specific error codes.

Internal codes for tracking store and token failures. They travel next to
the domain ErrorCode inside InfrastructureError values.

Categories:
- Cache errors (CACHE_*)
- Token errors (TOKEN_*)
"""

from enum import Enum


class InfrastructureErrorCode(Enum):
    """Infrastructure-specific error codes."""

    # Cache errors
    CACHE_CONNECTION_ERROR = "cache_connection_error"
    CACHE_GET_ERROR = "cache_get_error"
    CACHE_SET_ERROR = "cache_set_error"
    CACHE_DELETE_ERROR = "cache_delete_error"
    CACHE_SERIALIZATION_ERROR = "cache_serialization_error"

    # Token errors
    TOKEN_SIGNATURE_INVALID = "token_signature_invalid"
    TOKEN_EXPIRED = "token_expired"
    TOKEN_CLAIMS_INVALID = "token_claims_invalid"
