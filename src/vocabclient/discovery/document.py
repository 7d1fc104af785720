"""Fetching the API description document with a time-to-live cache."""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from vocabclient.errors import DocumentShapeError
from vocabclient.http.transport import Transport, normalize_base_url
from vocabclient.ports.store import KeyValueStore

logger = logging.getLogger(__name__)

DOCUMENT_PATH = "/openapi.json"
CACHE_TTL = 300.0


@dataclass(frozen=True)
class CachedDocument:
    """An API description together with the time it was fetched.

    Attributes:
        document: The parsed API description.
        fetched_at: Unix timestamp (seconds) of the fetch.
    """

    document: dict[str, Any]
    fetched_at: float

    def is_fresh(self, ttl: float, now: float | None = None) -> bool:
        current = time.time() if now is None else now
        return current - self.fetched_at < ttl

    def to_dict(self) -> dict[str, Any]:
        return {"schema": self.document, "savedAt": int(self.fetched_at * 1000)}

    @classmethod
    def from_dict(cls, data: Any) -> CachedDocument | None:
        """Rebuild from a store entry; None when the entry is unusable."""
        if not isinstance(data, dict):
            return None
        document = data.get("schema")
        saved_at = data.get("savedAt")
        if not _has_paths(document) or not isinstance(saved_at, (int, float)):
            return None
        return cls(document=document, fetched_at=saved_at / 1000)


def cache_key(base_url: str | None) -> str:
    return f"openapi:{normalize_base_url(base_url)}"


def _has_paths(document: Any) -> bool:
    return isinstance(document, dict) and isinstance(document.get("paths"), dict)


async def fetch_document(
    base_url: str | None,
    store: KeyValueStore | None = None,
    *,
    force: bool = False,
    ttl: float = CACHE_TTL,
    transport: Transport | None = None,
    path: str = DOCUMENT_PATH,
    retries: int = 1,
    retry_delay: float = 0.3,
    clock: Callable[[], float] = time.time,
) -> CachedDocument:
    """Return the API description, from cache when fresh.

    Args:
        base_url: API root.
        store: Cache for the document between runs (default: no cache).
        force: Skip the cache and always fetch.
        ttl: Seconds a cached document stays fresh (default: 300).
        transport: Transport to use; a short-lived one is created if None.
        path: Path of the description document (default: "/openapi.json").
        retries: Extra attempts on transient failure (default: 1).
        retry_delay: Linear backoff base in seconds.
        clock: Time source, overridable in tests.

    Raises:
        DocumentShapeError: The fetched document has no "paths" section.
        ApiError: The backend answered with an error status.
        TransportError: The backend could not be reached.
    """
    key = cache_key(base_url)
    now = clock()

    if store is not None and not force:
        cached = CachedDocument.from_dict(store.get(key, None))
        if cached is not None and cached.is_fresh(ttl, now):
            logger.debug(f"Using cached API description for {base_url}")
            return cached

    if transport is None:
        async with Transport() as owned:
            outcome = await owned.request_json(
                base_url, path, "GET", retries=retries, retry_delay=retry_delay
            )
    else:
        outcome = await transport.request_json(
            base_url, path, "GET", retries=retries, retry_delay=retry_delay
        )

    if not _has_paths(outcome.data):
        raise DocumentShapeError(
            f"API description at {outcome.url} is invalid: missing 'paths' section",
            url=outcome.url,
        )

    result = CachedDocument(document=outcome.data, fetched_at=now)
    if store is not None:
        store.set(key, result.to_dict())
    logger.info(f"Fetched API description from {outcome.url} ({len(outcome.data['paths'])} paths)")
    return result


__all__ = ["CACHE_TTL", "DOCUMENT_PATH", "CachedDocument", "cache_key", "fetch_document"]
