"""Error handling for vocabclient.

Exception hierarchy with error codes, request/response context and
recovery suggestions.
"""

from vocabclient.errors.base import (
    ApiError,
    CapabilityUnavailableError,
    ConfigValidationError,
    DocumentShapeError,
    ErrorCode,
    ErrorContext,
    RequestAbortedError,
    RequestTimeoutError,
    SessionNotLoadedError,
    TransportError,
    VocabClientError,
)

__all__ = [
    "ApiError",
    "CapabilityUnavailableError",
    "ConfigValidationError",
    "DocumentShapeError",
    "ErrorCode",
    "ErrorContext",
    "RequestAbortedError",
    "RequestTimeoutError",
    "SessionNotLoadedError",
    "TransportError",
    "VocabClientError",
]
