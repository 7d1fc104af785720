"""JSON-over-HTTP transport with bounded retry.

Builds request URLs, sends them with httpx, parses the body leniently and
turns non-2xx responses into ApiError. Transient failures (network errors
and 5xx responses) are retried with linear backoff; 4xx responses and
cancelled requests are never retried.

Example:
    >>> async with Transport(timeout=10.0) as transport:
    ...     outcome = await transport.request_json(
    ...         "http://localhost:8000", "/vocab", query={"page": 1}
    ...     )
    ...     print(outcome.status, outcome.data)
"""

from __future__ import annotations

import asyncio
import json
import logging
import time
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

import httpx

from vocabclient.errors import (
    ApiError,
    RequestAbortedError,
    RequestTimeoutError,
    TransportError,
    VocabClientError,
)

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "http://localhost:8000"
DEFAULT_TIMEOUT = 30.0
DEFAULT_RETRY_DELAY = 0.3


@dataclass
class RequestOutcome:
    """Result of one successful transport call.

    Attributes:
        status: HTTP status code (2xx).
        data: Parsed JSON body, the raw text if it was not JSON, or None
            when the body was empty.
        url: The full request URL.
        method: HTTP method in uppercase.
        headers: Response headers.
        duration_ms: Duration of the successful attempt.
    """

    status: int
    data: Any
    url: str
    method: str
    headers: dict[str, str] = field(default_factory=dict)
    duration_ms: float = 0.0


def normalize_base_url(base_url: str | None) -> str:
    """Strip whitespace and a trailing slash, falling back to the default."""
    url = str(base_url or DEFAULT_BASE_URL).strip()
    return url[:-1] if url.endswith("/") else url


def build_url(base_url: str | None, path: str, query: Mapping[str, Any] | None = None) -> str:
    """Join base URL and path and append query parameters.

    Keys whose value is None or "" are skipped. Sequence values become one
    repeated key per element.

    Example:
        >>> build_url("http://api/", "x", {"tag": None, "page": 1, "ids": ["a", "b"]})
        'http://api/x?page=1&ids=a&ids=b'
    """
    root = normalize_base_url(base_url)
    clean_path = path if path.startswith("/") else f"/{path}"

    params: list[tuple[str, Any]] = []
    for key, value in (query or {}).items():
        if value is None or value == "":
            continue
        if isinstance(value, (list, tuple)):
            params.extend((key, item) for item in value)
            continue
        params.append((key, value))

    if not params:
        return str(httpx.URL(f"{root}{clean_path}"))
    return str(httpx.URL(f"{root}{clean_path}", params=params))


def extract_error_message(data: Any, fallback: str) -> str:
    """Pull a human-readable message out of an error response body.

    Priority: plain string body, string ``detail``, list ``detail``
    (JSON-encoded), string ``message``, then the fallback.
    """
    if not data:
        return fallback
    if isinstance(data, str):
        return data
    if isinstance(data, dict):
        detail = data.get("detail")
        if isinstance(detail, str):
            return detail
        if isinstance(detail, list):
            return json.dumps(detail, ensure_ascii=False, separators=(",", ":"))
        message = data.get("message")
        if isinstance(message, str):
            return message
    return fallback


def parse_body(text: str) -> Any:
    """Parse a response body as JSON, falling back to the raw text."""
    if not text:
        return None
    try:
        return json.loads(text)
    except ValueError:
        return text


class Transport:
    """Async HTTP transport shared by the client facade.

    Attributes:
        timeout: Per-attempt timeout in seconds.
        default_headers: Headers sent with every request (callers override).
    """

    def __init__(
        self,
        timeout: float = DEFAULT_TIMEOUT,
        default_headers: dict[str, str] | None = None,
        http_transport: httpx.AsyncBaseTransport | None = None,
        follow_redirects: bool = True,
    ) -> None:
        """Initialize the transport.

        Args:
            timeout: Per-attempt timeout in seconds (default: 30.0).
            default_headers: Headers for all requests (default: None).
            http_transport: Custom httpx transport, e.g. httpx.MockTransport
                in tests (default: None).
            follow_redirects: Follow 3xx responses to their Location
                (default: True).
        """
        if timeout <= 0:
            raise ValueError("timeout must be positive")
        self.timeout = timeout
        self.default_headers = default_headers or {}
        self.follow_redirects = follow_redirects
        self._http_transport = http_transport
        self._client: httpx.AsyncClient | None = None

    async def connect(self) -> None:
        """Create the underlying httpx.AsyncClient."""
        self._client = httpx.AsyncClient(
            timeout=self.timeout,
            headers=self.default_headers,
            transport=self._http_transport,
            follow_redirects=self.follow_redirects,
        )

    async def disconnect(self) -> None:
        """Close the underlying client and release connections."""
        if self._client:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> Transport:
        await self.connect()
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.disconnect()

    async def request_json(
        self,
        base_url: str | None,
        path: str,
        method: str = "GET",
        *,
        query: Mapping[str, Any] | None = None,
        body: Any = None,
        headers: Mapping[str, str] | None = None,
        signal: asyncio.Event | None = None,
        retries: int = 0,
        retry_delay: float = DEFAULT_RETRY_DELAY,
    ) -> RequestOutcome:
        """Send a JSON request, retrying transient failures.

        Args:
            base_url: API root; a trailing slash is ignored.
            path: Request path; a leading slash is added when missing.
            method: HTTP method (default: "GET").
            query: Query parameters, see build_url.
            body: JSON-serializable payload; None sends no body.
            headers: Extra headers layered over the defaults.
            signal: Event that aborts the request when set.
            retries: Extra attempts allowed after the first (default: 0).
            retry_delay: Seconds multiplied by the attempt number before
                each retry (default: 0.3).

        Returns:
            RequestOutcome for the first successful attempt.

        Raises:
            ApiError: The backend answered with a non-2xx status.
            TransportError: The backend could not be reached.
            RequestAbortedError: The signal was set.
        """
        if not self._client:
            await self.connect()

        method = method.upper()
        url = build_url(base_url, path, query)

        request_headers = httpx.Headers()
        content: bytes | None = None
        if body is not None:
            content = json.dumps(body, ensure_ascii=False).encode("utf-8")
            request_headers["Content-Type"] = "application/json"
        request_headers.update(headers or {})

        max_attempts = max(1, int(retries) + 1)

        for attempt in range(max_attempts):
            try:
                return await self._attempt(method, url, request_headers, content, signal)
            except RequestAbortedError:
                raise
            except VocabClientError as e:
                can_retry = attempt < max_attempts - 1 and (
                    not isinstance(e, ApiError) or e.status >= 500
                )
                if not can_retry:
                    raise
                logger.warning(f"{e.message} for {method} {url}, retrying ({attempt + 1}/{max_attempts - 1})")
                await _sleep(retry_delay * (attempt + 1), signal, method, url)

        raise AssertionError("unreachable: the final attempt returns or raises")

    async def _attempt(
        self,
        method: str,
        url: str,
        headers: httpx.Headers,
        content: bytes | None,
        signal: asyncio.Event | None,
    ) -> RequestOutcome:
        assert self._client is not None
        start_time = time.perf_counter()
        send = self._client.request(method, url, headers=headers, content=content)

        try:
            response = await _race(send, signal, method, url)
        except httpx.TimeoutException as e:
            raise RequestTimeoutError(url=url, method=method, cause=e) from e
        except httpx.HTTPError as e:
            logger.error(f"Request error for {method} {url}: {e}")
            raise TransportError(
                message=f"Failed to reach the backend: {e}", url=url, method=method, cause=e
            ) from e

        duration_ms = (time.perf_counter() - start_time) * 1000
        data = parse_body(response.text)

        if not response.is_success:
            raise ApiError(
                extract_error_message(data, f"HTTP {response.status_code}"),
                status=response.status_code,
                data=data,
                url=url,
                method=method,
            )

        logger.debug(f"{method} {url} -> {response.status_code} ({duration_ms:.0f}ms)")
        return RequestOutcome(
            status=response.status_code,
            data=data,
            url=url,
            method=method,
            headers=dict(response.headers),
            duration_ms=duration_ms,
        )


async def _race(coro: Any, signal: asyncio.Event | None, method: str, url: str) -> Any:
    """Await coro unless signal gets set first."""
    if signal is None:
        return await coro
    if signal.is_set():
        coro.close()
        raise RequestAbortedError(url=url, method=method)

    task = asyncio.ensure_future(coro)
    waiter = asyncio.ensure_future(signal.wait())
    try:
        done, _ = await asyncio.wait({task, waiter}, return_when=asyncio.FIRST_COMPLETED)
    finally:
        waiter.cancel()

    if task in done:
        return task.result()

    task.cancel()
    try:
        await task
    except asyncio.CancelledError:
        pass
    raise RequestAbortedError(url=url, method=method)


async def _sleep(delay: float, signal: asyncio.Event | None, method: str, url: str) -> None:
    if delay <= 0:
        if signal is not None and signal.is_set():
            raise RequestAbortedError(url=url, method=method)
        return
    await _race(asyncio.sleep(delay), signal, method, url)


async def request_json(
    base_url: str | None,
    path: str,
    method: str = "GET",
    *,
    timeout: float = DEFAULT_TIMEOUT,
    http_transport: httpx.AsyncBaseTransport | None = None,
    **kwargs: Any,
) -> RequestOutcome:
    """One-shot request through a short-lived Transport.

    Accepts the same keyword arguments as Transport.request_json.
    """
    async with Transport(timeout=timeout, http_transport=http_transport) as transport:
        return await transport.request_json(base_url, path, method, **kwargs)
