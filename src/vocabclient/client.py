"""Capability client - named async methods over discovered endpoints.

The client is built from an API description. Each capability method looks
up its winning operation, fails fast with CapabilityUnavailableError when
none was discovered, fills the path placeholder and delegates to the
transport. Any catalog operation can also be called directly with
call_operation.

Example:
    >>> async with CapabilityClient(document, "http://localhost:8000") as client:
    ...     if client.has("addVocab"):
    ...         saved = await client.add_vocab({"term": "resilient"})
    ...     due = await client.session_today(limit=20)
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any

import httpx

from vocabclient.discovery.catalog import (
    OperationRecord,
    build_path,
    get_operation_parameters,
    get_path_params,
    group_by_tag,
)
from vocabclient.discovery.discoverer import Discovery, discover
from vocabclient.errors import CapabilityUnavailableError, VocabClientError
from vocabclient.http.transport import (
    DEFAULT_BASE_URL,
    DEFAULT_RETRY_DELAY,
    DEFAULT_TIMEOUT,
    Transport,
    normalize_base_url,
)
from vocabclient.schema.examples import build_example
from vocabclient.schema.resolver import RefResolver, get_request_body_schema

logger = logging.getLogger(__name__)

DEFAULT_SESSION_LIMIT = 30

UPSERT_DEFAULTS: dict[str, Any] = {
    "autoFixOnValidationFail": True,
    "forceAi": False,
    "tags": [],
    "collocations": [],
    "phrases": [],
    "topics": [],
    "wordFamily": {},
    "cefrLevel": None,
    "ieltsBand": None,
}


@dataclass
class PreparedRequest:
    """Pre-filled inputs for calling an arbitrary operation."""

    path_params: dict[str, str] = field(default_factory=dict)
    query: dict[str, str] = field(default_factory=dict)
    body: Any = None


@dataclass
class BulkFailure:
    index: int
    term: str
    message: str


@dataclass
class BulkSaveReport:
    """Outcome of CapabilityClient.save_many.

    Failures are indexed by position in the input sequence.
    """

    total: int = 0
    success: int = 0
    failed: int = 0
    created: int = 0
    updated: int = 0
    readded: int = 0
    failures: list[BulkFailure] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "total": self.total,
            "success": self.success,
            "failed": self.failed,
            "created": self.created,
            "updated": self.updated,
            "readded": self.readded,
            "failures": [f.__dict__.copy() for f in self.failures],
        }


def prefill_request(document: dict[str, Any], operation: OperationRecord) -> PreparedRequest:
    """Build starting values for an operation's path, query and body.

    Parameter values come from each parameter's ``example`` (empty string
    when absent); the body is synthesized from the request-body schema.
    """
    path_params = {
        str(p.get("name")): _example_text(p.get("example"))
        for p in get_operation_parameters(operation, "path")
    }
    query = {
        str(p.get("name")): _example_text(p.get("example"))
        for p in get_operation_parameters(operation, "query")
    }
    body_schema = get_request_body_schema(document, operation)
    body = build_example(body_schema, resolver=RefResolver(document)) if body_schema else None
    return PreparedRequest(path_params=path_params, query=query, body=body)


def _example_text(value: Any) -> str:
    return "" if value is None else str(value)


class CapabilityClient:
    """Typed access to the capabilities a backend exposes.

    Attributes:
        base_url: API root without trailing slash.
        document: The API description the client was built from.
        discovery: Catalog and capability map for document.
        retries: Extra attempts for transient failures on every call.
        retry_delay: Linear backoff base in seconds.
        session_limit: Default card count for session_today.
    """

    def __init__(
        self,
        document: dict[str, Any],
        base_url: str = DEFAULT_BASE_URL,
        *,
        discovery: Discovery | None = None,
        transport: Transport | None = None,
        timeout: float = DEFAULT_TIMEOUT,
        retries: int = 0,
        retry_delay: float = DEFAULT_RETRY_DELAY,
        session_limit: int = DEFAULT_SESSION_LIMIT,
        http_transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize the client.

        Args:
            document: Parsed API description.
            base_url: API root (default: http://localhost:8000).
            discovery: Precomputed discovery for document (default: computed).
            transport: Shared transport (default: a new one owned by the client).
            timeout: Per-attempt timeout in seconds for an owned transport.
            retries: Extra attempts on transient failure (default: 0).
            retry_delay: Linear backoff base in seconds (default: 0.3).
            session_limit: Default card count for session_today (default: 30).
            http_transport: httpx transport for an owned transport (tests).
        """
        self.document = document
        self.base_url = normalize_base_url(base_url)
        self.discovery = discovery or discover(document)
        self.retries = retries
        self.retry_delay = retry_delay
        self.session_limit = session_limit
        self._owns_transport = transport is None
        self._transport = transport or Transport(timeout=timeout, http_transport=http_transport)

    @property
    def operations(self) -> tuple[OperationRecord, ...]:
        return self.discovery.operations

    @property
    def capabilities(self) -> Mapping[str, OperationRecord]:
        return self.discovery.capabilities

    def has(self, name: str) -> bool:
        """True when an endpoint was discovered for capability name."""
        return name in self.discovery.capabilities

    def operation(self, name: str) -> OperationRecord:
        """The operation discovered for capability name.

        Raises:
            CapabilityUnavailableError: If nothing matched name.
        """
        op = self.discovery.capabilities.get(name)
        if op is None:
            raise CapabilityUnavailableError(name)
        return op

    def grouped_operations(self) -> dict[str, list[OperationRecord]]:
        return group_by_tag(list(self.operations))

    def prefill(self, operation: OperationRecord) -> PreparedRequest:
        return prefill_request(self.document, operation)

    async def close(self) -> None:
        if self._owns_transport:
            await self._transport.disconnect()

    async def __aenter__(self) -> CapabilityClient:
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.close()

    async def call_operation(
        self,
        operation: OperationRecord,
        path_params: Mapping[str, Any] | None = None,
        query: Mapping[str, Any] | None = None,
        body: Any = None,
        *,
        headers: Mapping[str, str] | None = None,
        signal: asyncio.Event | None = None,
    ) -> Any:
        """Call any catalog operation and return the parsed response body.

        Raises:
            ApiError: Non-2xx response.
            TransportError: Backend unreachable or request aborted.
        """
        if operation is None:
            raise ValueError("Operation not found in API description.")

        path = build_path(operation.path, dict(path_params or {}))
        outcome = await self._transport.request_json(
            self.base_url,
            path,
            operation.method,
            query=query,
            body=body,
            headers=headers,
            signal=signal,
            retries=self.retries,
            retry_delay=self.retry_delay,
        )
        return outcome.data

    async def _call(
        self,
        name: str,
        *,
        item_id: Any = None,
        query: Mapping[str, Any] | None = None,
        body: Any = None,
        signal: asyncio.Event | None = None,
    ) -> Any:
        op = self.operation(name)
        path_params: dict[str, Any] = {}
        if item_id is not None:
            placeholders = get_path_params(op.path)
            if placeholders:
                path_params[placeholders[0]] = item_id
        return await self.call_operation(op, path_params, query, body, signal=signal)

    async def health(self, *, signal: asyncio.Event | None = None) -> Any:
        return await self._call("health", signal=signal)

    async def add_vocab(self, payload: dict[str, Any], *, signal: asyncio.Event | None = None) -> Any:
        return await self._call("addVocab", body=payload, signal=signal)

    async def upsert_vocab(self, payload: dict[str, Any], *, signal: asyncio.Event | None = None) -> Any:
        return await self._call("upsertVocab", body=payload, signal=signal)

    async def list_vocab(
        self, query: Mapping[str, Any] | None = None, *, signal: asyncio.Event | None = None
    ) -> Any:
        return await self._call("listVocab", query=query or {}, signal=signal)

    async def get_vocab(self, vocab_id: Any, *, signal: asyncio.Event | None = None) -> Any:
        return await self._call("getVocab", item_id=vocab_id, signal=signal)

    async def update_vocab(
        self, vocab_id: Any, payload: dict[str, Any], *, signal: asyncio.Event | None = None
    ) -> Any:
        return await self._call("updateVocab", item_id=vocab_id, body=payload, signal=signal)

    async def delete_vocab(self, vocab_id: Any, *, signal: asyncio.Event | None = None) -> Any:
        return await self._call("deleteVocab", item_id=vocab_id, signal=signal)

    async def session_today(
        self, limit: int | None = None, *, signal: asyncio.Event | None = None
    ) -> Any:
        if limit is None:
            limit = self.session_limit
        return await self._call("sessionToday", query={"limit": limit}, signal=signal)

    async def submit_review(self, payload: dict[str, Any], *, signal: asyncio.Event | None = None) -> Any:
        return await self._call("submitReview", body=payload, signal=signal)

    async def ai_enrich(self, payload: dict[str, Any], *, signal: asyncio.Event | None = None) -> Any:
        return await self._call("aiEnrich", body=payload, signal=signal)

    async def ai_judge(self, payload: dict[str, Any], *, signal: asyncio.Event | None = None) -> Any:
        return await self._call("aiJudge", body=payload, signal=signal)

    async def sync_export(self, *, signal: asyncio.Event | None = None) -> Any:
        return await self._call("syncExport", signal=signal)

    async def sync_import(self, payload: Any, *, signal: asyncio.Event | None = None) -> Any:
        return await self._call("syncImport", body=payload, signal=signal)

    async def save_many(
        self,
        items: Iterable[dict[str, Any]],
        *,
        overwrite_existing: bool = False,
        use_ai: bool = False,
        signal: asyncio.Event | None = None,
    ) -> BulkSaveReport:
        """Save vocab items one after another.

        Uses upsertVocab when the backend has it, else addVocab. A failing
        item is recorded in the report and the loop moves on.

        Raises:
            CapabilityUnavailableError: If neither capability was discovered.
            RequestAbortedError: If signal was set; items already saved stay saved.
        """
        use_upsert = self.has("upsertVocab")
        if not use_upsert and not self.has("addVocab"):
            raise CapabilityUnavailableError("addVocab")

        items = list(items)
        report = BulkSaveReport(total=len(items))

        for index, item in enumerate(items):
            term = str(item.get("term") or "")
            try:
                if use_upsert:
                    result = await self.upsert_vocab(
                        {
                            **item,
                            **UPSERT_DEFAULTS,
                            "overwriteExisting": overwrite_existing,
                            "useAi": use_ai,
                        },
                        signal=signal,
                    )
                    action = result.get("action") if isinstance(result, dict) else None
                    if action == "created":
                        report.created += 1
                    elif action == "updated":
                        report.updated += 1
                else:
                    result = await self.add_vocab(item, signal=signal)
                    readd_count = result.get("readdCount") if isinstance(result, dict) else None
                    if isinstance(readd_count, (int, float)) and readd_count > 0:
                        report.readded += 1
                    else:
                        report.created += 1
                report.success += 1
            except VocabClientError as e:
                if signal is not None and signal.is_set():
                    raise
                logger.warning(f"Bulk save item {index} ('{term}') failed: {e.message}")
                report.failed += 1
                report.failures.append(BulkFailure(index=index, term=term, message=e.message))

        return report


def create_client(document: dict[str, Any], base_url: str = DEFAULT_BASE_URL, **kwargs: Any) -> CapabilityClient:
    """Build a CapabilityClient for document. See CapabilityClient.__init__."""
    return CapabilityClient(document, base_url, **kwargs)


__all__ = [
    "BulkFailure",
    "BulkSaveReport",
    "CapabilityClient",
    "PreparedRequest",
    "UPSERT_DEFAULTS",
    "create_client",
    "prefill_request",
]
