"""
CLI commands for serving an OpenAPI document as MCP tools.

Usage:
    openapi-mcp serve --spec ./openapi.json      # Serve on MCP_HOST:MCP_PORT
    openapi-mcp tools --spec ./openapi.json      # Show the compiled tools
    openapi-mcp tools --json                     # Same, as JSON
"""

from __future__ import annotations

import asyncio
import json
from dataclasses import replace
from typing import List, Optional, Tuple

import httpx
import typer

from openapi_mcp.cli.output import print_cli_error, print_tools
from openapi_mcp.config import McpConfig, load_config, normalize_log_level, parse_list
from openapi_mcp.errors import OpenAPIMCPError, log_exception
from openapi_mcp.instructions import parse_instructions_mode, resolve_instructions
from openapi_mcp.logging import configure_logging, get_logger
from openapi_mcp.openapi import BuildReport, OpenAPITool, compile_tools, create_client, load_openapi

log = get_logger("cli")


def _apply_overrides(
    config: McpConfig,
    *,
    spec: Optional[str] = None,
    api_base_url: Optional[str] = None,
    host: Optional[str] = None,
    port: Optional[int] = None,
    prefix: Optional[str] = None,
    include: Optional[List[str]] = None,
    exclude: Optional[List[str]] = None,
    instructions_file: Optional[str] = None,
    instructions_mode: Optional[str] = None,
    log_level: Optional[str] = None,
) -> McpConfig:
    changes: dict = {}
    if spec:
        changes["openapi_spec"] = spec
    if api_base_url:
        changes["api_base_url"] = api_base_url.rstrip("/")
    if host:
        changes["host"] = host
    if port is not None:
        changes["port"] = port
    if prefix is not None:
        changes["tool_prefix"] = prefix
    if include:
        changes["include_endpoints"] = [e for item in include for e in parse_list(item)]
    if exclude:
        changes["exclude_endpoints"] = [e for item in exclude for e in parse_list(item)]
    if instructions_file:
        changes["instructions_file"] = instructions_file
    if instructions_mode:
        changes["instructions_mode"] = parse_instructions_mode(instructions_mode)
    if log_level:
        changes["log_level"] = normalize_log_level(log_level)
    return replace(config, **changes)


def _uvicorn_level(level: str) -> str:
    level = level.lower()
    return "warning" if level == "warn" else level


def build_tools(config: McpConfig) -> Tuple[List[OpenAPITool], BuildReport, Optional[str], httpx.AsyncClient]:
    """Load the document and compile it. The caller owns the returned client."""
    spec = load_openapi(config.openapi_spec)
    options = config.tool_options()
    client = create_client(options)
    tools, report = compile_tools(spec, options, client=client)
    instructions = resolve_instructions(
        spec,
        config.instructions_file,
        config.instructions_mode,
        config.convert_html_to_markdown,
    )
    return tools, report, instructions, client


_SPEC_OPT = typer.Option(None, "--spec", "-s", help="OpenAPI URL or file (overrides MCP_OPENAPI_SPEC)")
_PREFIX_OPT = typer.Option(None, "--prefix", help="Tool name prefix (overrides MCP_TOOL_PREFIX)")
_INCLUDE_OPT = typer.Option(None, "--include", "-i", help="Endpoint to include, e.g. get:/messages (repeatable)")
_EXCLUDE_OPT = typer.Option(None, "--exclude", "-x", help="Endpoint to exclude (repeatable)")


def serve_cmd(
    spec: Optional[str] = _SPEC_OPT,
    api_base_url: Optional[str] = typer.Option(None, "--api-base-url", help="Backend API base URL"),
    host: Optional[str] = typer.Option(None, "--host", help="Host to bind"),
    port: Optional[int] = typer.Option(None, "--port", "-p", help="Port to bind"),
    prefix: Optional[str] = _PREFIX_OPT,
    include: Optional[List[str]] = _INCLUDE_OPT,
    exclude: Optional[List[str]] = _EXCLUDE_OPT,
    instructions_file: Optional[str] = typer.Option(None, "--instructions-file", help="Custom instructions file"),
    instructions_mode: Optional[str] = typer.Option(
        None, "--instructions-mode", help="default, replace, append or prepend"
    ),
    log_level: Optional[str] = typer.Option(None, "--log-level", help="DEBUG, INFO, WARN or ERROR"),
):
    """Serve the OpenAPI operations as MCP tools over Streamable HTTP."""
    import uvicorn

    from openapi_mcp.server import MCP_PATH, create_app

    config = _apply_overrides(
        load_config(),
        spec=spec,
        api_base_url=api_base_url,
        host=host,
        port=port,
        prefix=prefix,
        include=include,
        exclude=exclude,
        instructions_file=instructions_file,
        instructions_mode=instructions_mode,
        log_level=log_level,
    )
    configure_logging(config.log_level, config.log_format)

    try:
        tools, _report, instructions, client = build_tools(config)
    except OpenAPIMCPError as e:
        log_exception(log, "Failed to load tools", e, level="error", include_traceback=False)
        print_cli_error(e.message, hint=e.hint)
        raise typer.Exit(1)

    if not tools:
        log.warning("No tools registered. Check MCP_INCLUDE_ENDPOINTS / MCP_EXCLUDE_ENDPOINTS and OpenAPI paths.")
    else:
        log.info(f"Registered {len(tools)} tool(s): {', '.join(t.name for t in tools)}")

    app = create_app(config, tools, instructions, client=client)
    log.info(f"MCP server listening on http://{config.host}:{config.port} (POST/GET {MCP_PATH})")
    uvicorn.run(app, host=config.host, port=config.port, log_level=_uvicorn_level(config.log_level))


def tools_cmd(
    spec: Optional[str] = _SPEC_OPT,
    prefix: Optional[str] = _PREFIX_OPT,
    include: Optional[List[str]] = _INCLUDE_OPT,
    exclude: Optional[List[str]] = _EXCLUDE_OPT,
    output_json: bool = typer.Option(False, "--json", "-j", help="Output as JSON"),
):
    """Compile the OpenAPI document and list the resulting tools."""
    config = _apply_overrides(load_config(), spec=spec, prefix=prefix, include=include, exclude=exclude)
    configure_logging(config.log_level, config.log_format)

    try:
        tools, report, _instructions, client = build_tools(config)
    except OpenAPIMCPError as e:
        print_cli_error(e.message, hint=e.hint)
        raise typer.Exit(1)
    asyncio.run(client.aclose())

    if output_json:
        payload = [
            {"name": t.name, "description": t.description, "inputSchema": t.input_schema}
            for t in tools
        ]
        typer.echo(json.dumps(payload, indent=2))
        return

    if not tools:
        print_cli_error(
            "No tools compiled",
            hint="Check MCP_INCLUDE_ENDPOINTS / MCP_EXCLUDE_ENDPOINTS and the document's paths",
        )
        raise typer.Exit(1)
    print_tools(tools, report)


def register(parent: typer.Typer):
    """Register serve commands with the parent CLI app."""
    parent.command("serve", rich_help_panel="Server")(serve_cmd)
    parent.command("tools", rich_help_panel="Server")(tools_cmd)
