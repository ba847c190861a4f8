"""
Root conftest.py for openapi-mcp tests.

This file provides:
1. Common pytest markers for test categorization
2. Sample OpenAPI documents
3. A mock backend API built on ``httpx.MockTransport``
"""

from __future__ import annotations

import json
from typing import Any, Callable, Dict, List

import httpx
import pytest

from openapi_mcp.logging import configure_logging

# =============================================================================
# PYTEST CONFIGURATION
# =============================================================================

BASE_URL = "http://api.test"


def pytest_collection_modifyitems(config, items):
    """Automatically mark tests based on their location."""
    for item in items:
        norm = str(item.fspath).replace("\\", "/")
        if "/server/" in norm or "mcp" in norm:
            item.add_marker(pytest.mark.mcp)


@pytest.fixture(autouse=True)
def _clean_mcp_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep the developer's MCP_* variables out of the tests."""
    import os

    for key in list(os.environ):
        if key.startswith("MCP_") or key == "API_BASE_URL":
            monkeypatch.delenv(key, raising=False)


@pytest.fixture(autouse=True)
def _reset_logging():
    """Tests that configure logging must not leak handlers or levels."""
    yield
    configure_logging("INFO")


# =============================================================================
# OPENAPI DOCUMENTS
# =============================================================================


@pytest.fixture
def messages_spec() -> Dict[str, Any]:
    """Small API with health, messages and channels endpoints."""
    return {
        "openapi": "3.0.0",
        "info": {"title": "Test API", "version": "1.0.0"},
        "paths": {
            "/health": {
                "get": {"operationId": "health", "summary": "Health check"},
            },
            "/messages": {
                "get": {
                    "operationId": "messages_list",
                    "summary": "Search messages",
                    "parameters": [
                        {"name": "query", "in": "query", "schema": {"type": "string"}},
                        {"name": "limit", "in": "query", "schema": {"type": "integer"}},
                    ],
                },
            },
            "/channels": {
                "get": {
                    "operationId": "channels_list",
                    "parameters": [{"name": "query", "in": "query", "schema": {"type": "string"}}],
                },
                "post": {
                    "operationId": "channels_create",
                    "requestBody": {
                        "content": {
                            "application/json": {
                                "schema": {
                                    "required": ["url"],
                                    "properties": {"url": {"type": "string"}},
                                },
                            },
                        },
                    },
                },
            },
        },
    }


@pytest.fixture
def pet_spec() -> Dict[str, Any]:
    """Two methods on one path, with shared parameters and a request body."""
    return {
        "openapi": "3.0.0",
        "info": {"title": "Pets", "version": "1.0.0"},
        "parameters": {
            "PetId": {
                "name": "petId",
                "in": "path",
                "required": False,
                "description": "Pet identifier",
                "schema": {"type": "integer"},
            },
        },
        "paths": {
            "/pet/{petId}": {
                "get": {
                    "summary": "Get a pet",
                    "parameters": [
                        {"$ref": "#/parameters/PetId", "required": True},
                        {"name": "fields", "in": "query", "schema": {"type": "array"}},
                    ],
                },
                "put": {
                    "summary": "Update a pet",
                    "parameters": [{"$ref": "#/parameters/PetId", "required": True}],
                    "requestBody": {
                        "content": {
                            "application/json": {
                                "schema": {
                                    "type": "object",
                                    "required": ["name"],
                                    "properties": {
                                        "name": {"type": "string", "description": "Pet name"},
                                        "status": {"type": "string", "enum": ["available", "sold"]},
                                        "petId": {"type": "string"},
                                    },
                                },
                            },
                        },
                    },
                },
            },
        },
    }


# =============================================================================
# MOCK BACKEND
# =============================================================================


class MockBackend:
    """Records requests and answers them from a responder callable.

    Usage:
        backend = mock_backend(lambda req: httpx.Response(200, json={"ok": True}))
        tools = openapi_to_tools(spec, client=backend.client)
        ...
        assert backend.requests[0].url.path == "/messages"
    """

    def __init__(self, responder: Callable[[httpx.Request], httpx.Response]):
        self.requests: List[httpx.Request] = []
        self._responder = responder
        self.client = httpx.AsyncClient(base_url=BASE_URL, transport=httpx.MockTransport(self._handle))

    def _handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return self._responder(request)

    @property
    def last(self) -> httpx.Request:
        return self.requests[-1]

    def last_json(self) -> Any:
        return json.loads(self.last.content) if self.last.content else None


@pytest.fixture
def mock_backend() -> Callable[..., MockBackend]:
    def factory(responder: Callable[[httpx.Request], httpx.Response] | None = None) -> MockBackend:
        return MockBackend(responder or (lambda _req: httpx.Response(200, json={"ok": True})))

    return factory
