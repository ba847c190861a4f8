from .builder import compile_tools, create_client, openapi_to_tools
from .io import load_openapi, load_spec
from .models import (
    BuildReport,
    EndpointKey,
    OpenAPISpec,
    OpenAPITool,
    TextContent,
    ToolOptions,
    ToolResult,
)
from .serialize import safe_json_dumps

__all__ = [
    "BuildReport",
    "EndpointKey",
    "OpenAPISpec",
    "OpenAPITool",
    "TextContent",
    "ToolOptions",
    "ToolResult",
    "compile_tools",
    "create_client",
    "load_openapi",
    "load_spec",
    "openapi_to_tools",
    "safe_json_dumps",
]
