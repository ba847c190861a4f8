"""Server instructions advertised to MCP clients.

Instructions come from the OpenAPI ``info.description`` and, optionally, a
file. ``InstructionsMode`` decides how the two are combined.
"""

from __future__ import annotations

from enum import Enum
from pathlib import Path
from typing import Optional, Union

from openapi_mcp.errors import ConfigurationError
from openapi_mcp.logging import get_logger
from openapi_mcp.openapi.html import normalize_description
from openapi_mcp.openapi.models import OpenAPISpec

__all__ = [
    "InstructionsMode",
    "parse_instructions_mode",
    "load_instructions",
    "combine_instructions",
    "openapi_instructions",
    "resolve_instructions",
]

log = get_logger("instructions")


class InstructionsMode(str, Enum):
    DEFAULT = "default"
    REPLACE = "replace"
    APPEND = "append"
    PREPEND = "prepend"


def parse_instructions_mode(value: Optional[str]) -> InstructionsMode:
    """Case-insensitive; blank or ``none`` means DEFAULT, unknown values warn."""
    if not value or not value.strip():
        return InstructionsMode.DEFAULT
    normalized = value.strip().lower()
    if normalized == "none":
        return InstructionsMode.DEFAULT
    try:
        return InstructionsMode(normalized)
    except ValueError:
        log.warning(f"Invalid MCP_INSTRUCTIONS_MODE value: {value}. Using 'default'", value=value)
        return InstructionsMode.DEFAULT


def load_instructions(file_path: Union[str, Path, None]) -> Optional[str]:
    if file_path is None or not str(file_path).strip():
        return None
    path = Path(str(file_path).strip()).resolve()
    if not path.exists():
        raise ConfigurationError(f"Instructions file not found: {path}", config_key="MCP_INSTRUCTIONS_FILE")
    try:
        return path.read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigurationError(
            f"Failed to read instructions file {path}: {e}",
            config_key="MCP_INSTRUCTIONS_FILE",
        ) from e


def combine_instructions(
    openapi_text: Optional[str],
    file_text: Optional[str],
    mode: InstructionsMode,
) -> Optional[str]:
    if mode is InstructionsMode.DEFAULT:
        return openapi_text or None
    if mode is InstructionsMode.REPLACE:
        return file_text or None
    if not file_text:
        return openapi_text or None
    if not openapi_text:
        return file_text
    if mode is InstructionsMode.APPEND:
        return f"{openapi_text}\n\n{file_text}"
    return f"{file_text}\n\n{openapi_text}"


def openapi_instructions(spec: OpenAPISpec, convert_html: bool = True) -> Optional[str]:
    """``info.description`` of the document, HTML converted when enabled."""
    description = (spec.get("info") or {}).get("description")
    if not isinstance(description, str):
        return None
    return normalize_description(description, convert_html)


def resolve_instructions(
    spec: OpenAPISpec,
    file_path: Union[str, Path, None],
    mode: InstructionsMode,
    convert_html: bool = True,
) -> Optional[str]:
    file_text = load_instructions(file_path) if mode is not InstructionsMode.DEFAULT else None
    return combine_instructions(openapi_instructions(spec, convert_html), file_text, mode)
