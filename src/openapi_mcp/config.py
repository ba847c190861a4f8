"""Configuration from ``MCP_``-prefixed environment variables."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import List, Mapping, Optional

from openapi_mcp.instructions import InstructionsMode, parse_instructions_mode
from openapi_mcp.openapi.constants import DEFAULT_TIMEOUT
from openapi_mcp.openapi.models import ToolOptions

__all__ = ["McpConfig", "load_config", "normalize_log_level", "parse_list"]

DEFAULT_SERVER_NAME = "openapi-to-mcp"
DEFAULT_API_BASE_URL = "http://127.0.0.1:3000"
DEFAULT_MCP_PORT = 3100
DEFAULT_MCP_HOST = "0.0.0.0"
LOG_LEVELS = ("DEBUG", "INFO", "WARN", "WARNING", "ERROR")


def parse_list(value: Optional[str]) -> List[str]:
    """``"GET:/a, post:/b"`` -> ``["get:/a", "post:/b"]``."""
    if not value:
        return []
    return [s.strip().lower() for s in value.split(",") if s.strip()]


def _env_int(environ: Mapping[str, str], name: str, default: int) -> int:
    try:
        return int(environ.get(name, "").strip())
    except ValueError:
        return default


def _env_float(environ: Mapping[str, str], name: str, default: float) -> float:
    try:
        value = float(environ.get(name, "").strip())
    except ValueError:
        return default
    return value if value > 0 else default


def normalize_log_level(value: Optional[str]) -> str:
    level = (value or "").strip().upper()
    return level if level in LOG_LEVELS else "INFO"


def _first(environ: Mapping[str, str], *names: str) -> Optional[str]:
    for name in names:
        value = (environ.get(name) or "").strip()
        if value:
            return value
    return None


@dataclass
class McpConfig:
    server_name: str = DEFAULT_SERVER_NAME
    api_base_url: str = DEFAULT_API_BASE_URL
    port: int = DEFAULT_MCP_PORT
    host: str = DEFAULT_MCP_HOST
    openapi_spec: Optional[str] = None
    include_endpoints: List[str] = field(default_factory=list)
    exclude_endpoints: List[str] = field(default_factory=list)
    tool_prefix: str = ""
    instructions_file: Optional[str] = None
    instructions_mode: InstructionsMode = InstructionsMode.DEFAULT
    convert_html_to_markdown: bool = True
    log_level: str = "INFO"
    log_format: str = "human"
    timeout: float = DEFAULT_TIMEOUT

    def tool_options(self) -> ToolOptions:
        return ToolOptions(
            include_endpoints=list(self.include_endpoints),
            exclude_endpoints=list(self.exclude_endpoints),
            tool_prefix=self.tool_prefix,
            api_base_url=self.api_base_url,
            timeout=self.timeout,
            convert_html_to_markdown=self.convert_html_to_markdown,
        )


def load_config(environ: Optional[Mapping[str, str]] = None) -> McpConfig:
    env = os.environ if environ is None else environ

    base_url = env.get("MCP_API_BASE_URL") or env.get("API_BASE_URL") or DEFAULT_API_BASE_URL
    log_format = (env.get("MCP_LOG_FORMAT") or "human").strip().lower()

    return McpConfig(
        server_name=(env.get("MCP_SERVER_NAME") or "").strip() or DEFAULT_SERVER_NAME,
        api_base_url=base_url.rstrip("/"),
        port=_env_int(env, "MCP_PORT", DEFAULT_MCP_PORT),
        host=env.get("MCP_HOST") or DEFAULT_MCP_HOST,
        # MCP_OPENAPI_SPEC_URL / MCP_OPENAPI_SPEC_FILE are the older names
        openapi_spec=_first(env, "MCP_OPENAPI_SPEC", "MCP_OPENAPI_SPEC_URL", "MCP_OPENAPI_SPEC_FILE"),
        include_endpoints=parse_list(env.get("MCP_INCLUDE_ENDPOINTS")),
        exclude_endpoints=parse_list(env.get("MCP_EXCLUDE_ENDPOINTS")),
        tool_prefix=env.get("MCP_TOOL_PREFIX", ""),
        instructions_file=_first(env, "MCP_INSTRUCTIONS_FILE"),
        instructions_mode=parse_instructions_mode(env.get("MCP_INSTRUCTIONS_MODE")),
        convert_html_to_markdown=env.get("MCP_CONVERT_HTML_TO_MARKDOWN") != "false",
        log_level=normalize_log_level(env.get("MCP_LOG_LEVEL")),
        log_format=log_format if log_format in ("human", "json") else "human",
        timeout=_env_float(env, "MCP_API_TIMEOUT", DEFAULT_TIMEOUT),
    )
