"""Tests for the JSON transport: URL building, error mapping and retry."""

from __future__ import annotations

import asyncio
from unittest.mock import AsyncMock, patch

import httpx
import pytest

from vocabclient.errors import (
    ApiError,
    RequestAbortedError,
    RequestTimeoutError,
    TransportError,
)
from vocabclient.http import Transport, build_url, request_json
from vocabclient.http.transport import extract_error_message, normalize_base_url, parse_body


class TestBuildUrl:
    def test_skips_empty_values_and_repeats_sequences(self):
        url = build_url("http://api", "/x", {"tag": None, "page": 1, "ids": ["a", "b"]})

        assert url.endswith("/x?page=1&ids=a&ids=b")
        assert "tag" not in url

    def test_skips_empty_string(self):
        assert build_url("http://api", "/x", {"q": ""}) == "http://api/x"

    def test_adds_leading_slash_and_strips_trailing_slash(self):
        assert build_url("http://api/", "health") == "http://api/health"

    def test_tuple_values(self):
        assert build_url("http://api", "/x", {"ids": ("1", "2")}) == "http://api/x?ids=1&ids=2"

    def test_default_base_url(self):
        assert build_url(None, "/health") == "http://localhost:8000/health"


class TestHelpers:
    def test_normalize_base_url(self):
        assert normalize_base_url("  http://api/ ") == "http://api"
        assert normalize_base_url("") == "http://localhost:8000"

    @pytest.mark.parametrize(
        "data, expected",
        [
            ("boom", "boom"),
            ({"detail": "not found"}, "not found"),
            ({"detail": [{"loc": ["body", "term"]}]}, '[{"loc":["body","term"]}]'),
            ({"message": "bad"}, "bad"),
            ({"other": 1}, "HTTP 418"),
            (None, "HTTP 418"),
        ],
    )
    def test_extract_error_message(self, data, expected):
        assert extract_error_message(data, "HTTP 418") == expected

    def test_parse_body(self):
        assert parse_body("") is None
        assert parse_body('{"a": 1}') == {"a": 1}
        assert parse_body("plain text") == "plain text"


class TestRequestJson:
    @pytest.mark.asyncio
    async def test_success_returns_parsed_body(self, backend, base_url):
        backend.add("GET", "/health", (200, {"status": "ok"}))

        outcome = await request_json(base_url, "/health", http_transport=backend.transport)

        assert outcome.status == 200
        assert outcome.data == {"status": "ok"}
        assert outcome.method == "GET"
        assert outcome.url == f"{base_url}/health"

    @pytest.mark.asyncio
    async def test_non_json_body_returns_text(self, backend, base_url):
        backend.add("GET", "/text", (200, "hello"))

        outcome = await request_json(base_url, "/text", http_transport=backend.transport)

        assert outcome.data == "hello"

    @pytest.mark.asyncio
    async def test_empty_body_returns_none(self, backend, base_url):
        backend.add("DELETE", "/item", (204, None))

        outcome = await request_json(base_url, "/item", "delete", http_transport=backend.transport)

        assert outcome.status == 204
        assert outcome.data is None

    @pytest.mark.asyncio
    async def test_client_error_is_not_retried(self, backend, base_url):
        backend.add("GET", "/missing", (404, {"detail": "not found"}))

        with pytest.raises(ApiError) as exc_info:
            await request_json(
                base_url, "/missing", http_transport=backend.transport, retries=3, retry_delay=0
            )

        assert exc_info.value.message == "not found"
        assert exc_info.value.status == 404
        assert exc_info.value.data == {"detail": "not found"}
        assert len(backend.calls("GET", "/missing")) == 1

    @pytest.mark.asyncio
    async def test_server_error_is_retried_until_success(self, backend, base_url):
        backend.add("GET", "/flaky", (503, {"detail": "busy"}), (503, None), (200, {"ok": True}))

        outcome = await request_json(
            base_url, "/flaky", http_transport=backend.transport, retries=2, retry_delay=0
        )

        assert outcome.data == {"ok": True}
        assert len(backend.calls("GET", "/flaky")) == 3

    @pytest.mark.asyncio
    async def test_server_error_exhausts_attempts(self, backend, base_url):
        backend.add("GET", "/down", (500, "internal"))

        with pytest.raises(ApiError) as exc_info:
            await request_json(
                base_url, "/down", http_transport=backend.transport, retries=2, retry_delay=0
            )

        assert exc_info.value.status == 500
        assert exc_info.value.message == "internal"
        assert exc_info.value.is_server_error
        assert len(backend.calls("GET", "/down")) == 3

    @pytest.mark.asyncio
    async def test_no_retries_by_default(self, backend, base_url):
        backend.add("GET", "/down", (502, None))

        with pytest.raises(ApiError) as exc_info:
            await request_json(base_url, "/down", http_transport=backend.transport)

        assert exc_info.value.message == "HTTP 502"
        assert len(backend.calls("GET", "/down")) == 1

    @pytest.mark.asyncio
    async def test_network_error_is_retried(self, backend, base_url):
        backend.add("GET", "/health", httpx.ConnectError, (200, {"status": "ok"}))

        outcome = await request_json(
            base_url, "/health", http_transport=backend.transport, retries=1, retry_delay=0
        )

        assert outcome.data == {"status": "ok"}
        assert len(backend.calls("GET", "/health")) == 2

    @pytest.mark.asyncio
    async def test_network_error_raises_transport_error(self, backend, base_url):
        backend.add("GET", "/health", httpx.ConnectError)

        with pytest.raises(TransportError) as exc_info:
            await request_json(base_url, "/health", http_transport=backend.transport)

        assert not isinstance(exc_info.value, ApiError)
        assert exc_info.value.method == "GET"
        assert isinstance(exc_info.value.cause, httpx.ConnectError)

    @pytest.mark.asyncio
    async def test_timeout_raises_timeout_error(self, backend, base_url):
        backend.add("GET", "/slow", httpx.ReadTimeout)

        with pytest.raises(RequestTimeoutError):
            await request_json(base_url, "/slow", http_transport=backend.transport)

    @pytest.mark.asyncio
    async def test_backoff_grows_linearly(self, backend, base_url):
        backend.add("GET", "/down", (503, None))

        with patch("vocabclient.http.transport._sleep", new_callable=AsyncMock) as sleep:
            with pytest.raises(ApiError):
                await request_json(
                    base_url, "/down", http_transport=backend.transport, retries=3, retry_delay=0.3
                )

        delays = [c.args[0] for c in sleep.await_args_list]
        assert delays == pytest.approx([0.3, 0.6, 0.9])
        assert len(backend.calls("GET", "/down")) == 4

    @pytest.mark.asyncio
    async def test_no_backoff_after_final_attempt(self, backend, base_url):
        backend.add("GET", "/flaky", (500, None), (200, {"ok": True}))

        with patch("vocabclient.http.transport._sleep", new_callable=AsyncMock) as sleep:
            outcome = await request_json(
                base_url, "/flaky", http_transport=backend.transport, retries=5, retry_delay=1.0
            )

        assert outcome.data == {"ok": True}
        assert [c.args[0] for c in sleep.await_args_list] == [1.0]

    @pytest.mark.asyncio
    async def test_client_error_raised_without_backoff(self, backend, base_url):
        backend.add("POST", "/vocab", (409, {"detail": "exists"}))

        with patch("vocabclient.http.transport._sleep", new_callable=AsyncMock) as sleep:
            with pytest.raises(ApiError) as exc_info:
                await request_json(
                    base_url, "/vocab", "POST", http_transport=backend.transport, body={}, retries=2
                )

        assert exc_info.value.status == 409
        sleep.assert_not_awaited()


class TestRedirects:
    @pytest.mark.asyncio
    async def test_redirect_is_followed(self, backend, base_url):
        backend.add("GET", "/vocab", lambda request: httpx.Response(307, headers={"Location": "/vocab/"}))
        backend.add("GET", "/vocab/", (200, [{"term": "x"}]))

        outcome = await request_json(base_url, "/vocab", http_transport=backend.transport)

        assert outcome.status == 200
        assert outcome.data == [{"term": "x"}]
        assert outcome.url == f"{base_url}/vocab"

    @pytest.mark.asyncio
    async def test_redirect_keeps_method_and_body(self, backend, base_url, read_body):
        backend.add("POST", "/vocab", lambda request: httpx.Response(307, headers={"Location": "/vocab/"}))
        backend.add("POST", "/vocab/", (201, {"id": 1}))

        outcome = await request_json(
            base_url, "/vocab", "POST", http_transport=backend.transport, body={"term": "x"}
        )

        assert outcome.data == {"id": 1}
        assert read_body(backend.calls("POST", "/vocab/")[0]) == {"term": "x"}

    @pytest.mark.asyncio
    async def test_redirects_can_be_disabled(self, backend, base_url):
        backend.add("GET", "/vocab", lambda request: httpx.Response(307, headers={"Location": "/vocab/"}))

        async with Transport(http_transport=backend.transport, follow_redirects=False) as transport:
            with pytest.raises(ApiError) as exc_info:
                await transport.request_json(base_url, "/vocab")

        assert exc_info.value.status == 307
        assert backend.calls("GET", "/vocab/") == []


class TestTransportHeaders:
    @pytest.mark.asyncio
    async def test_json_body_sets_content_type(self, backend, base_url, read_body):
        backend.add("POST", "/vocab", (201, {"id": 1}))

        async with Transport(http_transport=backend.transport) as transport:
            await transport.request_json(base_url, "/vocab", "POST", body={"term": "résumé"})

        request = backend.calls("POST", "/vocab")[0]
        assert request.headers["content-type"] == "application/json"
        assert read_body(request) == {"term": "résumé"}

    @pytest.mark.asyncio
    async def test_no_body_no_content_type(self, backend, base_url):
        backend.add("GET", "/vocab", (200, []))

        async with Transport(http_transport=backend.transport) as transport:
            await transport.request_json(base_url, "/vocab")

        request = backend.calls("GET", "/vocab")[0]
        assert "content-type" not in request.headers
        assert request.content == b""

    @pytest.mark.asyncio
    async def test_caller_headers_override(self, backend, base_url):
        backend.add("PATCH", "/vocab/1", (200, {}))

        async with Transport(
            http_transport=backend.transport, default_headers={"X-Client": "vocab"}
        ) as transport:
            await transport.request_json(
                base_url,
                "/vocab/1",
                "PATCH",
                body={"term": "x"},
                headers={"content-type": "application/merge-patch+json"},
            )

        request = backend.calls("PATCH", "/vocab/1")[0]
        assert request.headers["content-type"] == "application/merge-patch+json"
        assert request.headers["x-client"] == "vocab"

    def test_rejects_non_positive_timeout(self):
        with pytest.raises(ValueError):
            Transport(timeout=0)


class TestCancellation:
    @pytest.mark.asyncio
    async def test_already_set_signal_aborts_without_request(self, backend, base_url):
        backend.add("GET", "/health", (200, {}))
        signal = asyncio.Event()
        signal.set()

        with pytest.raises(RequestAbortedError) as exc_info:
            await request_json(
                base_url, "/health", http_transport=backend.transport, signal=signal, retries=3
            )

        assert exc_info.value.recoverable is False
        assert backend.requests == []

    @pytest.mark.asyncio
    async def test_signal_aborts_in_flight_request(self, base_url):
        signal = asyncio.Event()
        calls = []

        async def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            signal.set()
            await asyncio.sleep(5)
            return httpx.Response(200, json={})

        with pytest.raises(RequestAbortedError):
            await request_json(
                base_url,
                "/slow",
                http_transport=httpx.MockTransport(handler),
                signal=signal,
                retries=3,
                retry_delay=0,
            )

        assert len(calls) == 1

    @pytest.mark.asyncio
    async def test_unset_signal_does_not_interfere(self, backend, base_url):
        backend.add("GET", "/health", (200, {"status": "ok"}))

        outcome = await request_json(
            base_url, "/health", http_transport=backend.transport, signal=asyncio.Event()
        )

        assert outcome.data == {"status": "ok"}
