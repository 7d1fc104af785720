"""vocabclient - schema-driven client for a vocabulary learning API.

The backend's routes are not known ahead of time. vocabclient reads the
backend's API description, matches its endpoints to a fixed set of
application capabilities and exposes them as async methods.

Quick Start:
    from vocabclient import ApiSession, ClientSettings

    async with ApiSession(ClientSettings(base_url="http://localhost:8000")) as session:
        client = await session.load()
        if client.has("sessionToday"):
            due = await client.session_today(limit=20)
"""

from __future__ import annotations

from vocabclient.client import (
    BulkFailure,
    BulkSaveReport,
    CapabilityClient,
    PreparedRequest,
    create_client,
    prefill_request,
)
from vocabclient.config import ClientSettings, load_settings
from vocabclient.discovery import (
    CAPABILITY_NAMES,
    CAPABILITY_RULES,
    CachedDocument,
    CapabilityRule,
    Discovery,
    OperationRecord,
    discover,
    fetch_document,
    flatten_operations,
    group_by_tag,
)
from vocabclient.errors import (
    ApiError,
    CapabilityUnavailableError,
    DocumentShapeError,
    RequestAbortedError,
    TransportError,
    VocabClientError,
)
from vocabclient.http import RequestOutcome, Transport, build_url, request_json
from vocabclient.schema import build_example, resolve_schema
from vocabclient.session import ApiSession

__version__ = "0.3.0"

__all__ = [
    # Session and client
    "ApiSession",
    "CapabilityClient",
    "create_client",
    "prefill_request",
    "PreparedRequest",
    "BulkSaveReport",
    "BulkFailure",
    # Configuration
    "ClientSettings",
    "load_settings",
    # Discovery
    "CAPABILITY_NAMES",
    "CAPABILITY_RULES",
    "CapabilityRule",
    "CachedDocument",
    "Discovery",
    "OperationRecord",
    "discover",
    "fetch_document",
    "flatten_operations",
    "group_by_tag",
    # Schema
    "build_example",
    "resolve_schema",
    # Transport
    "RequestOutcome",
    "Transport",
    "build_url",
    "request_json",
    # Errors
    "ApiError",
    "CapabilityUnavailableError",
    "DocumentShapeError",
    "RequestAbortedError",
    "TransportError",
    "VocabClientError",
]
