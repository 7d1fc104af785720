"""Pytest fixtures for vocabclient tests."""

from __future__ import annotations

import copy
import json
from collections.abc import Callable
from typing import Any

import httpx
import pytest

BASE_URL = "http://api.test"

VOCAB_DOCUMENT: dict[str, Any] = {
    "openapi": "3.1.0",
    "info": {"title": "Vocab API", "version": "1.0.0"},
    "paths": {
        "/health": {
            "get": {"operationId": "health_check", "summary": "Health", "tags": ["system"]},
        },
        "/api/v1/vocab": {
            "get": {
                "operationId": "list_vocab",
                "summary": "List vocabulary",
                "tags": ["vocab"],
                "parameters": [
                    {"name": "page", "in": "query", "schema": {"type": "integer"}, "example": 1},
                    {"name": "q", "in": "query", "schema": {"type": "string"}},
                ],
            },
            "post": {
                "operationId": "create_vocab",
                "summary": "Create vocabulary item",
                "tags": ["vocab"],
                "requestBody": {
                    "content": {
                        "application/json": {"schema": {"$ref": "#/components/schemas/VocabCreate"}}
                    }
                },
            },
        },
        "/api/v1/vocab/upsert": {
            "post": {"operationId": "upsert_vocab", "summary": "Create or update", "tags": ["vocab"]},
        },
        "/api/v1/vocab/{vocab_id}": {
            "get": {
                "operationId": "get_vocab",
                "tags": ["vocab"],
                "parameters": [{"name": "vocab_id", "in": "path", "required": True, "example": 42}],
            },
            "put": {"operationId": "update_vocab", "tags": ["vocab"]},
            "delete": {"operationId": "delete_vocab", "tags": ["vocab"]},
        },
        "/api/v1/session/today": {
            "get": {"operationId": "session_today", "summary": "Cards due today", "tags": ["session"]},
        },
        "/api/v1/review": {
            "post": {"operationId": "submit_review", "tags": ["review"]},
        },
        "/api/v1/review/logs": {
            "post": {"operationId": "query_review_logs", "tags": ["review"]},
        },
        "/api/v1/ai/enrich": {
            "post": {"operationId": "ai_enrich", "tags": ["ai"]},
        },
        "/api/v1/ai/judge": {
            "post": {"operationId": "ai_judge", "tags": ["ai"]},
        },
        "/api/v1/sync/export": {
            "get": {"operationId": "sync_export", "tags": ["sync"]},
        },
        "/api/v1/sync/import": {
            "post": {"operationId": "sync_import", "tags": ["sync"]},
        },
    },
    "components": {
        "schemas": {
            "VocabBase": {
                "type": "object",
                "properties": {
                    "term": {"type": "string"},
                    "meanings": {"type": "array", "items": {"type": "string"}},
                    "level": {"type": "string", "enum": ["A1", "A2", "B1"]},
                },
                "required": ["term"],
            },
            "VocabCreate": {
                "allOf": [
                    {"$ref": "#/components/schemas/VocabBase"},
                    {
                        "type": "object",
                        "properties": {
                            "term": {"type": "string", "example": "resilient"},
                            "mnemonic": {"type": "string"},
                            "priority": {"type": "integer"},
                        },
                        "required": ["term", "priority"],
                    },
                ]
            },
        }
    },
}


class FakeBackend:
    """Scripted HTTP backend served through httpx.MockTransport.

    Each route holds a queue of replies; the last reply repeats. A reply is
    (status, body) where body is JSON-encoded unless it is str/bytes, or an
    exception class raised as a network error. Unknown routes get a 404.
    """

    def __init__(self) -> None:
        self.routes: dict[tuple[str, str], list[Any]] = {}
        self.requests: list[httpx.Request] = []

    def add(self, method: str, path: str, *replies: Any) -> FakeBackend:
        self.routes[(method.upper(), path)] = list(replies)
        return self

    def calls(self, method: str, path: str) -> list[httpx.Request]:
        return [r for r in self.requests if r.method == method.upper() and r.url.path == path]

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        replies = self.routes.get((request.method, request.url.path))
        if not replies:
            return httpx.Response(404, json={"detail": "Not Found"})

        reply = replies.pop(0) if len(replies) > 1 else replies[0]
        if isinstance(reply, type) and issubclass(reply, Exception):
            raise reply("backend unreachable", request=request)
        if callable(reply):
            return reply(request)

        status, body = reply
        if body is None:
            return httpx.Response(status)
        if isinstance(body, (str, bytes)):
            return httpx.Response(status, content=body)
        return httpx.Response(status, json=body)

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)


def request_json_body(request: httpx.Request) -> Any:
    return json.loads(request.content) if request.content else None


@pytest.fixture
def base_url() -> str:
    return BASE_URL


@pytest.fixture
def read_body() -> Callable[[httpx.Request], Any]:
    return request_json_body


@pytest.fixture
def backend() -> FakeBackend:
    return FakeBackend()


@pytest.fixture
def vocab_document() -> dict[str, Any]:
    return copy.deepcopy(VOCAB_DOCUMENT)


@pytest.fixture
def document_factory() -> Callable[..., dict[str, Any]]:
    """Build a minimal API description from (method, path, operation) triples."""

    def factory(*entries: tuple[str, str, dict[str, Any]]) -> dict[str, Any]:
        paths: dict[str, Any] = {}
        for method, path, operation in entries:
            paths.setdefault(path, {})[method.lower()] = operation
        return {"openapi": "3.1.0", "paths": paths}

    return factory
