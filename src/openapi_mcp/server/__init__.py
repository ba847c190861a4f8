from .core import HEALTH_PATH, MCP_PATH, create_app, create_mcp_server

__all__ = ["HEALTH_PATH", "MCP_PATH", "create_app", "create_mcp_server"]
