"""ApiSession - owns the current API description and capability client.

A load fetches the description (through the TTL cache unless forced),
builds a complete new CapabilityClient and only then replaces the
previous one. A failed load leaves the previous client untouched, so
readers never observe a half-built capability map.
"""

from __future__ import annotations

import logging
from typing import Any

import httpx

from vocabclient.client import CapabilityClient
from vocabclient.config.settings import ClientSettings
from vocabclient.discovery.document import CachedDocument, fetch_document
from vocabclient.errors import SessionNotLoadedError
from vocabclient.http.transport import Transport
from vocabclient.ports.store import KeyValueStore

logger = logging.getLogger(__name__)


class ApiSession:
    """Loads the API description and exposes the resulting client.

    Example::

        settings = load_settings("vocabclient.yaml")
        async with ApiSession(settings, store=JsonFileStore(settings.cache_file)) as session:
            await session.load()
            if session.client.has("syncExport"):
                backup = await session.client.sync_export()
    """

    def __init__(
        self,
        settings: ClientSettings | None = None,
        store: KeyValueStore | None = None,
        http_transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.settings = settings or ClientSettings()
        self.store = store
        self._transport = Transport(timeout=self.settings.timeout, http_transport=http_transport)
        self._state: tuple[CachedDocument, CapabilityClient] | None = None

    @property
    def loaded(self) -> bool:
        return self._state is not None

    @property
    def client(self) -> CapabilityClient:
        """The current client.

        Raises:
            SessionNotLoadedError: If load() has not succeeded yet.
        """
        if self._state is None:
            raise SessionNotLoadedError()
        return self._state[1]

    @property
    def document(self) -> CachedDocument:
        if self._state is None:
            raise SessionNotLoadedError()
        return self._state[0]

    async def load(self, force: bool = False) -> CapabilityClient:
        """Fetch the description and swap in a freshly built client.

        Args:
            force: Bypass the document cache.

        Raises:
            DocumentShapeError, ApiError, TransportError: Propagated from the
                fetch; the previous client (if any) stays in place.
        """
        cached = await fetch_document(
            self.settings.base_url,
            self.store,
            force=force,
            ttl=self.settings.cache_ttl,
            transport=self._transport,
            path=self.settings.document_path,
            retries=self.settings.document_retries,
            retry_delay=self.settings.retry_delay,
        )
        client = CapabilityClient(
            cached.document,
            self.settings.base_url,
            transport=self._transport,
            retries=self.settings.retries,
            retry_delay=self.settings.retry_delay,
            session_limit=self.settings.session_limit,
        )
        self._state = (cached, client)
        logger.info(
            f"Session ready: {len(client.capabilities)} capabilities, "
            f"{len(client.operations)} operations"
        )
        return client

    async def refresh(self) -> CapabilityClient:
        """Force a full rebuild from a freshly fetched description."""
        return await self.load(force=True)

    def summary(self) -> dict[str, Any]:
        client = self.client
        return {
            "base_url": client.base_url,
            "operations": len(client.operations),
            "capabilities": {name: str(op) for name, op in client.capabilities.items()},
            "missing": client.discovery.missing,
            "fetched_at": self.document.fetched_at,
        }

    async def close(self) -> None:
        await self._transport.disconnect()

    async def __aenter__(self) -> ApiSession:
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.close()


__all__ = ["ApiSession"]
