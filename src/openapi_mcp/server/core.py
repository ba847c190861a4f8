from __future__ import annotations

import contextlib
from typing import Any, Dict, List, Optional, Sequence

import httpx
import mcp.types as types
from mcp.server.lowlevel import Server
from mcp.server.streamable_http_manager import StreamableHTTPSessionManager
from pydantic import ValidationError
from starlette.applications import Starlette
from starlette.requests import Request
from starlette.responses import JSONResponse
from starlette.routing import Route

from openapi_mcp.config import McpConfig
from openapi_mcp.errors import ToolExecutionError
from openapi_mcp.logging import correlation_id_from_headers, correlation_scope, get_logger
from openapi_mcp.openapi.constants import ERROR_PREFIX
from openapi_mcp.openapi.models import OpenAPITool

__all__ = ["create_mcp_server", "create_app", "MCP_PATH", "HEALTH_PATH"]

log = get_logger("server")

MCP_PATH = "/mcp"
HEALTH_PATH = "/healthz"
SERVER_VERSION = "1.0.0"


def _format_validation_error(e: ValidationError) -> str:
    parts = []
    for err in e.errors():
        loc = ".".join(str(p) for p in err.get("loc", ())) or "arguments"
        parts.append(f"{loc}: {err.get('msg')}")
    return "; ".join(parts)


def create_mcp_server(
    config: McpConfig,
    tools: Sequence[OpenAPITool],
    instructions: Optional[str] = None,
) -> Server:
    """Low-level MCP server that lists ``tools`` and dispatches calls to them."""
    server: Server = Server(config.server_name, version=SERVER_VERSION, instructions=instructions)
    by_name: Dict[str, OpenAPITool] = {t.name: t for t in tools}

    @server.list_tools()
    async def list_tools() -> List[types.Tool]:
        return [
            types.Tool(name=t.name, description=t.description, inputSchema=t.input_schema)
            for t in tools
        ]

    @server.call_tool()
    async def call_tool(name: str, arguments: Optional[Dict[str, Any]]) -> List[types.TextContent]:
        tool = by_name.get(name)
        if tool is None:
            raise ToolExecutionError(f"{ERROR_PREFIX}Unknown tool: {name}", tool_name=name)

        try:
            validated = tool.input_model.model_validate(arguments or {})
        except ValidationError as e:
            raise ToolExecutionError(
                f"{ERROR_PREFIX}Invalid arguments for {name}: {_format_validation_error(e)}",
                tool_name=name,
            ) from e

        args = validated.model_dump(by_alias=True, exclude_unset=True)
        log.debug(f"Tool {name} called", tool=name, args=args)
        result = await tool.handler(args)
        log.debug(f"Tool {name} completed", tool=name, is_error=bool(result.is_error))

        # The protocol layer turns a raised error into an isError result.
        if result.is_error:
            raise ToolExecutionError(result.first_text, tool_name=name)
        return [types.TextContent(type="text", text=block.text) for block in result.content]

    return server


class _StreamableHTTPEndpoint:
    """ASGI endpoint binding each request's correlation id before dispatch."""

    def __init__(self, session_manager: StreamableHTTPSessionManager):
        self.session_manager = session_manager

    async def __call__(self, scope, receive, send) -> None:
        headers = {
            k.decode("latin-1"): v.decode("latin-1")
            for k, v in scope.get("headers") or []
        }
        with correlation_scope(correlation_id_from_headers(headers)):
            log.debug(f"Received {scope.get('method')} request to {scope.get('path')}")
            await self.session_manager.handle_request(scope, receive, send)


def create_app(
    config: McpConfig,
    tools: Sequence[OpenAPITool],
    instructions: Optional[str] = None,
    *,
    client: Optional[httpx.AsyncClient] = None,
) -> Starlette:
    """Starlette app serving MCP over stateless Streamable HTTP at ``/mcp``.

    ``client`` is the HTTP client the tools share; it is closed on shutdown.
    """
    server = create_mcp_server(config, tools, instructions)
    session_manager = StreamableHTTPSessionManager(app=server, event_store=None, stateless=True)

    log.info(
        f"Creating MCP app with {len(tools)} tool(s)",
        server_name=config.server_name,
        tool_names=[t.name for t in tools],
    )

    async def healthz(_request: Request) -> JSONResponse:
        return JSONResponse({"status": "ok", "server": config.server_name, "tools": len(tools)})

    @contextlib.asynccontextmanager
    async def lifespan(_app: Starlette):
        async with session_manager.run():
            try:
                yield
            finally:
                if client is not None:
                    await client.aclose()

    return Starlette(
        routes=[
            Route(HEALTH_PATH, endpoint=healthz, methods=["GET"]),
            Route(MCP_PATH, endpoint=_StreamableHTTPEndpoint(session_manager), methods=["GET", "POST", "DELETE"]),
        ],
        lifespan=lifespan,
    )
