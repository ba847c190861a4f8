from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Optional, Union

import httpx
import yaml

from openapi_mcp.errors import ConfigurationError, OpenAPINetworkError, OpenAPIParseError
from openapi_mcp.logging import get_logger

from .models import OpenAPISpec

__all__ = ["load_openapi", "load_spec", "is_url"]

log = get_logger("openapi.loader")

FETCH_TIMEOUT = 15.0


def is_url(source: str) -> bool:
    return source.strip().lower().startswith(("http://", "https://"))


def load_openapi(source: Union[str, Path, dict, None]) -> OpenAPISpec:
    """Load an OpenAPI document from various sources.

    Supports:
    - Dict: returned as-is (already parsed)
    - URL (http/https): fetched remotely
    - Local file path: JSON or YAML, relative paths resolved against the cwd
    - Raw JSON/YAML string: parsed directly

    Example:
        spec = load_openapi("https://api.example.com/openapi.json")
        spec = load_openapi("./openapi.yaml")
    """
    if isinstance(source, dict):
        return source

    if source is None or not str(source).strip():
        raise ConfigurationError(
            "MCP_OPENAPI_SPEC must be set",
            config_key="MCP_OPENAPI_SPEC",
            hint="Use a URL (http:// or https://) or a path to a JSON/YAML file",
        )

    source_str = str(source).strip()

    if is_url(source_str):
        return _fetch_openapi_url(source_str)

    p = Path(source_str).expanduser()
    if not p.is_absolute():
        p = Path.cwd() / p
    try:
        is_file = p.is_file()
    except OSError:
        # Raw documents can be too long to be a valid path.
        is_file = False
    if is_file:
        return _load_openapi_file(p)

    if "\n" not in source_str and not source_str.lstrip().startswith(("{", "[")):
        raise OpenAPIParseError(
            f"OpenAPI spec file not found: {p}",
            source=source_str,
        )
    return _ensure_mapping(_parse_openapi_string(source_str), source="<string>")


def _fetch_openapi_url(url: str) -> OpenAPISpec:
    """Fetch an OpenAPI document from a URL."""
    log.debug("Loading OpenAPI spec from URL", url=url)
    try:
        with httpx.Client(timeout=FETCH_TIMEOUT, follow_redirects=True) as client:
            resp = client.get(url)
            resp.raise_for_status()
    except httpx.HTTPStatusError as e:
        log.error("Failed to load OpenAPI spec from URL", url=url, status=e.response.status_code)
        raise OpenAPINetworkError(
            f"Failed to load OpenAPI spec from {url}: HTTP {e.response.status_code}",
            url=url,
            status_code=e.response.status_code,
        ) from e
    except httpx.HTTPError as e:
        log.error("Failed to load OpenAPI spec from URL", url=url, error=str(e))
        raise OpenAPINetworkError(f"Failed to load OpenAPI spec from {url}: {e}", url=url) from e

    log.debug(
        "OpenAPI spec loaded from URL",
        url=url,
        status=resp.status_code,
        content_type=resp.headers.get("content-type"),
    )
    content_type = resp.headers.get("content-type", "")
    if "json" in content_type or url.endswith(".json"):
        try:
            return _ensure_mapping(resp.json(), source=url)
        except ValueError as e:
            raise OpenAPIParseError(f"Invalid JSON in OpenAPI spec at {url}", errors=[str(e)], source=url) from e
    return _ensure_mapping(_parse_openapi_string(resp.text, source=url), source=url)


def _load_openapi_file(path: Path) -> OpenAPISpec:
    """Load an OpenAPI document from a local file."""
    log.debug("Loading OpenAPI spec from file", file=str(path))
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as e:
        log.error("Failed to read OpenAPI spec file", file=str(path), error=str(e))
        raise OpenAPIParseError(f"Cannot read OpenAPI spec file {path}", errors=[str(e)], source=str(path)) from e

    if path.suffix == ".json":
        try:
            data: Any = json.loads(text)
        except json.JSONDecodeError as e:
            raise OpenAPIParseError(f"Invalid JSON in {path}", errors=[str(e)], source=str(path)) from e
    else:
        data = _parse_openapi_string(text, source=str(path))

    log.debug("OpenAPI spec loaded from file", file=str(path), size=len(text))
    return _ensure_mapping(data, source=str(path))


def _parse_openapi_string(text: str, source: Optional[str] = None) -> Any:
    """Parse an OpenAPI document from raw JSON or YAML."""
    try:
        return json.loads(text)
    except json.JSONDecodeError:
        pass
    try:
        return yaml.safe_load(text)
    except yaml.YAMLError as e:
        raise OpenAPIParseError("OpenAPI spec is neither valid JSON nor YAML", errors=[str(e)], source=source) from e


def _ensure_mapping(data: Any, *, source: str) -> OpenAPISpec:
    if not isinstance(data, dict):
        raise OpenAPIParseError(
            f"OpenAPI spec must be a mapping, got {type(data).__name__}",
            source=source,
        )
    return data


def load_spec(source: Union[str, Path, dict, None]) -> OpenAPISpec:
    """Alias for load_openapi."""
    return load_openapi(source)
