"""Tests for the MCP server built around compiled tools."""

from __future__ import annotations

import json

import httpx
import mcp.types as types
import pytest
from starlette.testclient import TestClient

from openapi_mcp.config import McpConfig
from openapi_mcp.openapi import openapi_to_tools
from openapi_mcp.server import create_app, create_mcp_server


async def _list_tools(server):
    result = await server.request_handlers[types.ListToolsRequest](types.ListToolsRequest(method="tools/list"))
    return result.root.tools


async def _call_tool(server, name, arguments=None):
    request = types.CallToolRequest(
        method="tools/call",
        params=types.CallToolRequestParams(name=name, arguments=arguments),
    )
    result = await server.request_handlers[types.CallToolRequest](request)
    return result.root


@pytest.fixture
def config() -> McpConfig:
    return McpConfig(server_name="test-server")


# =============================================================================
# Protocol handlers
# =============================================================================


class TestMcpServer:
    @pytest.mark.asyncio
    async def test_list_tools(self, config, messages_spec, mock_backend):
        tools = openapi_to_tools(messages_spec, client=mock_backend().client)
        server = create_mcp_server(config, tools, "Be nice")

        listed = await _list_tools(server)

        assert [t.name for t in listed] == ["health", "messages", "channels_get", "channels_post"]
        messages = listed[1]
        assert messages.description == "Search messages"
        assert set(messages.inputSchema["properties"]) == {"query", "limit"}
        assert server.name == "test-server"
        assert server.instructions == "Be nice"

    @pytest.mark.asyncio
    async def test_call_tool_success(self, config, messages_spec, mock_backend):
        backend = mock_backend(lambda req: httpx.Response(200, json={"messages": []}))
        server = create_mcp_server(config, openapi_to_tools(messages_spec, client=backend.client))

        result = await _call_tool(server, "messages", {"query": "hi", "limit": 2})

        assert not result.isError
        assert result.content[0].type == "text"
        assert json.loads(result.content[0].text) == {"messages": []}
        assert dict(backend.last.url.params) == {"query": "hi", "limit": "2"}

    @pytest.mark.asyncio
    async def test_omitted_optional_arguments_not_sent(self, config, messages_spec, mock_backend):
        backend = mock_backend()
        server = create_mcp_server(config, openapi_to_tools(messages_spec, client=backend.client))

        await _call_tool(server, "messages", {})

        assert backend.last.url.query == b""

    @pytest.mark.asyncio
    async def test_backend_error_reported(self, config, messages_spec, mock_backend):
        backend = mock_backend(lambda req: httpx.Response(400, json={"error": "bad request"}))
        server = create_mcp_server(config, openapi_to_tools(messages_spec, client=backend.client))

        result = await _call_tool(server, "messages", {})

        assert result.isError is True
        assert result.content[0].text == "Error: bad request"

    @pytest.mark.asyncio
    async def test_every_listed_tool_is_callable(self, config, mock_backend):
        spec = {"paths": {"/pet": {"get": {}}, "/pet/{id}": {"get": {}}}}
        backend = mock_backend()
        server = create_mcp_server(config, openapi_to_tools(spec, client=backend.client))

        listed = await _list_tools(server)
        for tool in listed:
            result = await _call_tool(server, tool.name, {})
            assert not result.isError

        assert [t.name for t in listed] == ["pet_get", "pet_get_2"]
        assert len(backend.requests) == 2
        assert backend.requests[0].url.path == "/pet"

    @pytest.mark.asyncio
    async def test_unknown_tool(self, config, messages_spec, mock_backend):
        server = create_mcp_server(config, openapi_to_tools(messages_spec, client=mock_backend().client))

        result = await _call_tool(server, "nope", {})

        assert result.isError is True
        assert result.content[0].text == "Error: Unknown tool: nope"

    @pytest.mark.asyncio
    async def test_invalid_arguments(self, config, messages_spec, mock_backend):
        backend = mock_backend()
        server = create_mcp_server(config, openapi_to_tools(messages_spec, client=backend.client))

        result = await _call_tool(server, "channels_post", {})

        assert result.isError is True
        assert "url" in result.content[0].text
        assert backend.requests == []


# =============================================================================
# HTTP app
# =============================================================================


class TestApp:
    def test_healthz(self, config, messages_spec, mock_backend):
        tools = openapi_to_tools(messages_spec, client=mock_backend().client)
        client = TestClient(create_app(config, tools))

        response = client.get("/healthz")

        assert response.status_code == 200
        assert response.json() == {"status": "ok", "server": "test-server", "tools": 4}

    def test_routes(self, config):
        app = create_app(config, [])
        paths = {route.path for route in app.routes}
        assert paths == {"/healthz", "/mcp"}
