"""Exception hierarchy for vocabclient.

Every error raised by the client core derives from VocabClientError and
carries:
- error_code: an ErrorCode enum value for programmatic handling
- context: ErrorContext with request/response details
- suggestions: actionable steps to resolve the issue
- recoverable: whether retrying the same call may succeed

The four failure families the UI layer has to tell apart are:
- TransportError: the backend could not be reached (or the call was aborted)
- ApiError: the backend answered with a non-2xx status
- CapabilityUnavailableError: the API description exposes no endpoint for
  a capability, so no request was attempted
- DocumentShapeError: the API description is missing or malformed

Example:
    try:
        await client.add_vocab({"term": "resilient"})
    except ApiError as e:
        print(f"HTTP {e.status}: {e.message}")
    except CapabilityUnavailableError as e:
        print(f"Not supported by backend: {e.capability}")
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any


class ErrorCode(Enum):
    """Standardized error codes.

    - E0xx: Connection errors
    - E1xx: Request errors
    - E2xx: Validation and document errors
    - E3xx: Capability errors
    - E9xx: Unknown/internal errors
    """

    # Connection errors (E0xx)
    CONNECTION_FAILED = "E001"

    # Request errors (E1xx)
    REQUEST_TIMEOUT = "E101"
    REQUEST_FAILED = "E102"
    REQUEST_ABORTED = "E103"

    # Validation errors (E2xx)
    INVALID_CONFIG = "E202"
    DOCUMENT_SHAPE = "E205"

    # Capability errors (E3xx)
    CAPABILITY_UNAVAILABLE = "E301"
    SESSION_NOT_LOADED = "E302"

    UNKNOWN = "E999"

    @property
    def category(self) -> str:
        """Get the error category name."""
        code_num = int(self.value[1:])
        if code_num < 100:
            return "connection"
        elif code_num < 200:
            return "request"
        elif code_num < 300:
            return "validation"
        elif code_num < 400:
            return "capability"
        else:
            return "unknown"


@dataclass
class ErrorContext:
    """Structured context captured when an error occurs.

    Attributes:
        request: HTTP request details (method, url).
        response: HTTP response details (status, body).
        extra: Additional context-specific information.
        timestamp: When the error occurred.
    """

    request: dict[str, Any] | None = None
    response: dict[str, Any] | None = None
    extra: dict[str, Any] = field(default_factory=dict)
    timestamp: datetime = field(default_factory=datetime.now)

    def to_dict(self) -> dict[str, Any]:
        """Convert context to dictionary for serialization."""
        result = {
            "request": self.request,
            "response": self.response,
            "extra": self.extra,
            "timestamp": self.timestamp.isoformat(),
        }
        return {k: v for k, v in result.items() if v is not None}


class VocabClientError(Exception):
    """Base exception for all vocabclient errors.

    Attributes:
        error_code: Unique ErrorCode for this error type.
        message: Human-readable error description.
        context: ErrorContext with execution details.
        suggestions: List of actionable steps to resolve the issue.
        recoverable: Whether the error can be retried.
        cause: The underlying exception (if any).
    """

    error_code: ErrorCode = ErrorCode.UNKNOWN
    default_message: str = "An unexpected error occurred"
    default_suggestions: list[str] = []

    def __init__(
        self,
        message: str | None = None,
        error_code: ErrorCode | None = None,
        context: ErrorContext | None = None,
        cause: Exception | None = None,
        recoverable: bool = True,
        suggestions: list[str] | None = None,
        **extra_context: Any,
    ) -> None:
        self.message = message or self.default_message
        self.error_code = error_code or self.error_code
        self.context = context or ErrorContext()
        self.cause = cause
        self.recoverable = recoverable
        self._suggestions = suggestions

        if extra_context:
            self.context.extra.update(extra_context)

        super().__init__(self.message)

    @property
    def suggestions(self) -> list[str]:
        """Get actionable suggestions for resolving this error."""
        if self._suggestions is not None:
            return self._suggestions
        return self.default_suggestions.copy()

    def __str__(self) -> str:
        return self.message

    def format_verbose(self) -> str:
        """Format error with full details including suggestions."""
        lines = [f"Error [{self.error_code.value}]: {self.message}"]

        if self.context.request:
            method = self.context.request.get("method", "?")
            url = self.context.request.get("url", "?")
            lines.append(f"Request: {method} {url}")

        if self.context.response:
            status = self.context.response.get("status", "?")
            lines.append(f"Response: HTTP {status}")

        if self.suggestions:
            lines.append("")
            lines.append("Suggestions:")
            for suggestion in self.suggestions:
                lines.append(f"  - {suggestion}")

        return "\n".join(lines)

    def to_dict(self) -> dict[str, Any]:
        """Convert error to dictionary for serialization."""
        return {
            "error_code": self.error_code.value,
            "error_type": self.__class__.__name__,
            "message": self.message,
            "recoverable": self.recoverable,
            "suggestions": self.suggestions,
            "context": self.context.to_dict(),
            "cause": str(self.cause) if self.cause else None,
        }


class TransportError(VocabClientError):
    """The request never produced an HTTP response.

    Raised for network-level failures: DNS errors, refused or reset
    connections, protocol errors. Retried by the transport within its
    attempt budget.
    """

    error_code = ErrorCode.CONNECTION_FAILED
    default_message = "Failed to reach the backend"
    default_suggestions = [
        "Verify the backend is running (try: curl <base_url>/health)",
        "Check base_url in your configuration matches the API address",
    ]

    def __init__(
        self,
        message: str | None = None,
        url: str | None = None,
        method: str | None = None,
        **kwargs: Any,
    ) -> None:
        self.url = url
        self.method = method
        context = kwargs.pop("context", None) or ErrorContext()
        if url or method:
            context.request = {"method": method, "url": url}
        super().__init__(message=message, context=context, **kwargs)


class RequestTimeoutError(TransportError):
    """The backend did not answer within the configured timeout."""

    error_code = ErrorCode.REQUEST_TIMEOUT
    default_message = "HTTP request timed out"
    default_suggestions = [
        "Increase timeout in your configuration (e.g., timeout: 60)",
        "Check if this endpoint is known to be slow",
    ]


class RequestAbortedError(TransportError):
    """The caller cancelled the request while it was in flight.

    Never retried and never shown as a server error.
    """

    error_code = ErrorCode.REQUEST_ABORTED
    default_message = "Request aborted"
    default_suggestions: list[str] = []

    def __init__(self, message: str | None = None, **kwargs: Any) -> None:
        kwargs.setdefault("recoverable", False)
        super().__init__(message=message, **kwargs)


class ApiError(VocabClientError):
    """The backend answered with a status outside the 2xx range.

    Attributes:
        status: HTTP status code.
        data: Parsed error body (structured value, raw text, or None).
        url: The request URL.
        method: The HTTP method.
    """

    error_code = ErrorCode.REQUEST_FAILED
    default_message = "HTTP request failed"
    default_suggestions = [
        "Check the response body for error details",
        "Verify the request payload matches the API schema",
    ]

    def __init__(
        self,
        message: str | None = None,
        status: int = 0,
        data: Any = None,
        url: str | None = None,
        method: str | None = None,
        **kwargs: Any,
    ) -> None:
        self.status = status
        self.data = data
        self.url = url
        self.method = method
        context = kwargs.pop("context", None) or ErrorContext(
            request={"method": method, "url": url},
            response={"status": status, "body": data},
        )
        kwargs.setdefault("recoverable", status >= 500)
        super().__init__(message=message or f"HTTP {status}", context=context, **kwargs)

    @property
    def is_server_error(self) -> bool:
        return self.status >= 500


class CapabilityUnavailableError(VocabClientError):
    """No backend endpoint was discovered for the requested capability.

    Raised locally by the client facade; no request is attempted.
    """

    error_code = ErrorCode.CAPABILITY_UNAVAILABLE
    default_message = "Capability not exposed by the backend"
    default_suggestions = [
        "Check that the backend's API description lists a matching endpoint",
        "Refresh the API description if the backend was recently upgraded",
    ]

    def __init__(self, capability: str, message: str | None = None, **kwargs: Any) -> None:
        self.capability = capability
        kwargs.setdefault("recoverable", False)
        super().__init__(
            message=message or f"Backend does not expose operation '{capability}'.",
            **kwargs,
        )


class DocumentShapeError(VocabClientError):
    """The API description document lacks the minimum expected structure."""

    error_code = ErrorCode.DOCUMENT_SHAPE
    default_message = "API description from backend is invalid"
    default_suggestions = [
        "Open <base_url>/openapi.json in a browser and check it has a 'paths' section",
        "Verify base_url points at the API server, not a frontend or proxy",
    ]

    def __init__(self, message: str | None = None, **kwargs: Any) -> None:
        kwargs.setdefault("recoverable", False)
        super().__init__(message=message, **kwargs)


class ConfigValidationError(VocabClientError):
    """Configuration contains an invalid value.

    Attributes:
        field: The configuration field that is invalid.
        value: The invalid value.
    """

    error_code = ErrorCode.INVALID_CONFIG
    default_message = "Invalid configuration"
    default_suggestions = [
        "Check your configuration file and VOCABCLIENT_* environment variables",
    ]

    def __init__(
        self,
        message: str | None = None,
        field: str | None = None,
        value: Any = None,
        **kwargs: Any,
    ) -> None:
        self.field = field
        self.value = value
        kwargs.setdefault("recoverable", False)
        super().__init__(message=message, **kwargs)


class SessionNotLoadedError(VocabClientError):
    """The session was used before its API description was loaded."""

    error_code = ErrorCode.SESSION_NOT_LOADED
    default_message = "API description not loaded yet. Call load() first."
    default_suggestions = ["Await ApiSession.load() before using the client"]
