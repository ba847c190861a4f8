import os

from dotenv import find_dotenv, load_dotenv

if not os.environ.get("OPENAPI_MCP_ENV_LOADED"):
    load_dotenv(find_dotenv(usecwd=True))
    os.environ["OPENAPI_MCP_ENV_LOADED"] = "1"

from openapi_mcp.config import McpConfig, load_config
from openapi_mcp.errors import (
    ConfigurationError,
    OpenAPIError,
    OpenAPIMCPError,
    OpenAPINetworkError,
    OpenAPIParseError,
    ToolExecutionError,
)
from openapi_mcp.instructions import InstructionsMode, combine_instructions, load_instructions
from openapi_mcp.logging import configure_logging, get_logger
from openapi_mcp.openapi import (
    BuildReport,
    OpenAPITool,
    ToolOptions,
    ToolResult,
    compile_tools,
    load_openapi,
    openapi_to_tools,
    safe_json_dumps,
)

__version__ = "1.0.0"

__all__ = [
    "BuildReport",
    "ConfigurationError",
    "InstructionsMode",
    "McpConfig",
    "OpenAPIError",
    "OpenAPIMCPError",
    "OpenAPINetworkError",
    "OpenAPIParseError",
    "OpenAPITool",
    "ToolExecutionError",
    "ToolOptions",
    "ToolResult",
    "combine_instructions",
    "compile_tools",
    "configure_logging",
    "get_logger",
    "load_config",
    "load_instructions",
    "load_openapi",
    "openapi_to_tools",
    "safe_json_dumps",
]
