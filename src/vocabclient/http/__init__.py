"""HTTP transport for vocabclient."""

from vocabclient.http.transport import (
    DEFAULT_BASE_URL,
    RequestOutcome,
    Transport,
    build_url,
    extract_error_message,
    normalize_base_url,
    parse_body,
    request_json,
)

__all__ = [
    "DEFAULT_BASE_URL",
    "RequestOutcome",
    "Transport",
    "build_url",
    "extract_error_message",
    "normalize_base_url",
    "parse_body",
    "request_json",
]
