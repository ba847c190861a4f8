"""Error hierarchy for openapi-mcp.

Only the collaborators around the tool compiler raise these (document
loading, configuration, instructions). Compiled tools never raise at
invocation time; their failures come back as error-flagged results.

Example:
    from openapi_mcp.errors import ConfigurationError

    raise ConfigurationError(
        "MCP_OPENAPI_SPEC must be set",
        config_key="MCP_OPENAPI_SPEC",
        hint="Point it at a URL or a JSON/YAML file",
    )
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

__all__ = [
    "OpenAPIMCPError",
    "ConfigurationError",
    "OpenAPIError",
    "OpenAPIParseError",
    "OpenAPINetworkError",
    "ToolExecutionError",
    "log_exception",
]


class OpenAPIMCPError(Exception):
    """Base exception for all openapi-mcp errors."""

    def __init__(
        self,
        message: str,
        *,
        details: Optional[Dict[str, Any]] = None,
        hint: Optional[str] = None,
    ):
        self.message = message
        self.details = details or {}
        self.hint = hint
        super().__init__(self._format())

    def _format(self) -> str:
        parts = [self.message]
        if self.hint:
            parts.append(f"Hint: {self.hint}")
        return "\n".join(parts)

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.message!r})"


class ConfigurationError(OpenAPIMCPError):
    """Invalid or missing configuration."""

    def __init__(
        self,
        message: str,
        *,
        config_key: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
        hint: Optional[str] = None,
    ):
        details = dict(details or {})
        if config_key:
            details["config_key"] = config_key
        super().__init__(message, details=details, hint=hint)
        self.config_key = config_key


class OpenAPIError(OpenAPIMCPError):
    """Base for errors while obtaining an OpenAPI document."""


class OpenAPIParseError(OpenAPIError):
    """The document could not be parsed into a mapping."""

    def __init__(
        self,
        message: str,
        *,
        errors: Optional[List[str]] = None,
        source: Optional[str] = None,
        hint: Optional[str] = None,
    ):
        details: Dict[str, Any] = {}
        if errors:
            details["errors"] = list(errors)
        if source:
            details["source"] = source
        super().__init__(message, details=details, hint=hint)
        self.errors = list(errors or [])
        self.source = source


class OpenAPINetworkError(OpenAPIError):
    """The document could not be fetched from its URL."""

    def __init__(
        self,
        message: str,
        *,
        url: Optional[str] = None,
        status_code: Optional[int] = None,
        hint: Optional[str] = None,
    ):
        details: Dict[str, Any] = {}
        if url:
            details["url"] = url
        if status_code is not None:
            details["status_code"] = status_code
        if hint is None and status_code in (401, 403):
            hint = "The spec URL requires authentication"
        super().__init__(message, details=details, hint=hint)
        self.url = url
        self.status_code = status_code


def log_exception(
    logger: logging.Logger | Any,
    msg: str,
    exc: BaseException,
    *,
    level: str = "warning",
    include_traceback: bool = True,
) -> None:
    """Log an exception with its type name, optionally with the traceback."""
    log_fn = getattr(logger, level, None) or logger.warning
    text = f"{msg}: {type(exc).__name__}: {exc}"
    if include_traceback:
        log_fn(text, exc_info=exc)
    else:
        log_fn(text)


class ToolExecutionError(OpenAPIMCPError):
    """Raised inside the protocol layer to report a tool-level failure.

    ``str(error)`` is exactly the text shown to the client.
    """

    def __init__(self, message: str, *, tool_name: Optional[str] = None):
        super().__init__(message, details={"tool_name": tool_name} if tool_name else None)
        self.tool_name = tool_name
