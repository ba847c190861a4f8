from __future__ import annotations

import keyword
import re
from typing import Any, Dict, List, Literal, Optional, Sequence, Tuple, Union

import httpx
from pydantic import BaseModel, ConfigDict, Field, create_model

from openapi_mcp.logging import get_logger

from .constants import BODY_CONTENT_TYPE, ERROR_PREFIX
from .html import normalize_description
from .models import (
    BuildReport,
    CollectedOperation,
    ConcreteParameter,
    InputField,
    OpenAPISpec,
    OpenAPITool,
    Operation,
    OperationContext,
    SchemaKind,
    ToolOptions,
    ToolResult,
)
from .runtime import (
    assign_tool_names,
    collect_operations,
    filter_operations,
    resolve_parameters,
)
from .serialize import safe_json_dumps

__all__ = [
    "build_input_fields",
    "build_input_model",
    "build_description",
    "make_handler",
    "create_client",
    "compile_tools",
    "openapi_to_tools",
]

log = get_logger("openapi.builder")

_Numeric = Union[int, float]


# --------------------------------------------------------------------------
# Schema synthesis
# --------------------------------------------------------------------------


def _string_enum(values: Any) -> Tuple[str, ...]:
    if isinstance(values, list) and values and all(isinstance(v, str) for v in values):
        return tuple(dict.fromkeys(values))
    return ()


def _body_schema(op: Operation) -> Dict[str, Any]:
    content = (op.get("requestBody") or {}).get("content") or {}
    schema = (content.get(BODY_CONTENT_TYPE) or {}).get("schema") or {}
    return schema if isinstance(schema, dict) else {}


def _body_properties(op: Operation) -> Tuple[Dict[str, Any], List[str]]:
    schema = _body_schema(op)
    props = schema.get("properties")
    required = schema.get("required")
    return (
        props if isinstance(props, dict) else {},
        [r for r in required if isinstance(r, str)] if isinstance(required, list) else [],
    )


def build_input_fields(
    params: Sequence[ConcreteParameter],
    op: Operation,
    *,
    convert_html: bool = True,
) -> List[InputField]:
    """Query/path parameters first, then body properties not already claimed."""
    fields: List[InputField] = []
    claimed: set[str] = set()

    for p in params:
        if p.location not in ("query", "path") or p.name in claimed:
            continue
        claimed.add(p.name)
        fields.append(
            InputField(
                name=p.name,
                kind=p.param_schema.kind,
                enum=_string_enum(p.param_schema.enum),
                description=normalize_description(p.description, convert_html),
                required=p.required,
            )
        )

    props, required = _body_properties(op)
    for prop_name, prop in props.items():
        if prop_name in claimed:
            continue
        claimed.add(prop_name)
        prop = prop if isinstance(prop, dict) else {}
        description = prop.get("description")
        fields.append(
            InputField(
                name=prop_name,
                kind=SchemaKind.from_tag(prop.get("type")),
                enum=_string_enum(prop.get("enum")),
                description=normalize_description(description, convert_html) if isinstance(description, str) else None,
                required=prop_name in required,
            )
        )
    return fields


def _py_type(field: InputField) -> Any:
    if field.enum:
        return Literal[field.enum]  # type: ignore[valid-type]
    if field.kind in (SchemaKind.INTEGER, SchemaKind.NUMBER):
        return _Numeric
    if field.kind is SchemaKind.BOOLEAN:
        return bool
    if field.kind is SchemaKind.ARRAY:
        return List[Any]
    return str


def _attr_name(name: str, taken: set[str]) -> str:
    """A Python-safe attribute name for ``name``; the original stays the alias."""
    attr = re.sub(r"\W", "_", name) or "field"
    if attr[0].isdigit() or attr.startswith("_") or keyword.iskeyword(attr) or hasattr(BaseModel, attr):
        attr = f"f_{attr.lstrip('_')}"
    base, n = attr, 2
    while attr in taken:
        attr, n = f"{base}_{n}", n + 1
    taken.add(attr)
    return attr


def build_input_model(name: str, fields: Sequence[InputField]) -> type[BaseModel]:
    """Pydantic model for a tool's arguments. Optional fields accept absence and null."""
    definitions: Dict[str, Any] = {}
    taken: set[str] = set()
    for f in fields:
        typ = _py_type(f)
        if f.required:
            definitions[_attr_name(f.name, taken)] = (typ, Field(..., alias=f.name, description=f.description))
        else:
            definitions[_attr_name(f.name, taken)] = (
                Optional[typ],
                Field(default=None, alias=f.name, description=f.description),
            )

    return create_model(  # type: ignore[call-overload]
        "Input_" + re.sub(r"\W", "_", name),
        __config__=ConfigDict(populate_by_name=True, protected_namespaces=()),
        **definitions,
    )


def build_description(op: Operation, method: str, path: str, *, convert_html: bool = True) -> str:
    parts = [op.get("summary"), op.get("description")]
    text = ". ".join(str(p) for p in parts if p) or f"API {method.upper()} {path}"
    return normalize_description(text, convert_html) or text


# --------------------------------------------------------------------------
# Invocation
# --------------------------------------------------------------------------


def _substitute_path(template: str, path_params: Sequence[str], args: Dict[str, Any]) -> str:
    url = template
    for pname in path_params:
        val = args.get(pname)
        if val is None:
            continue
        text = str(val).lower() if isinstance(val, bool) else str(val)
        url = re.sub(r"\{" + re.escape(pname) + r"\}", lambda _m: text, url, flags=re.IGNORECASE)
    return url


def _response_payload(resp: httpx.Response) -> Any:
    if not resp.content:
        return None
    try:
        return resp.json()
    except ValueError:
        return resp.text


def _error_message(exc: Exception) -> str:
    """Backend ``error`` field when the failure carries one, else the transport message."""
    if isinstance(exc, httpx.HTTPStatusError):
        try:
            body = exc.response.json()
        except ValueError:
            body = None
        if isinstance(body, dict):
            for key in ("error", "message", "detail"):
                if body.get(key) is not None:
                    value = body[key]
                    return value if isinstance(value, str) else safe_json_dumps(value)
        return f"Request failed with status code {exc.response.status_code}"
    return str(exc) or type(exc).__name__


def make_handler(op_ctx: OperationContext, client: httpx.AsyncClient):
    """Build the async handler for one operation. It never raises."""

    async def handler(args: Dict[str, Any]) -> ToolResult:
        args = args or {}
        try:
            url = _substitute_path(op_ctx.path, op_ctx.path_params, args)
            params = {p: args[p] for p in op_ctx.query_params if args.get(p) is not None}
            body = {p: args[p] for p in op_ctx.body_params if p in args} if op_ctx.wants_body else None

            log.debug("Calling backend", tool=op_ctx.name, method=op_ctx.method.upper(), url=url)
            resp = await client.request(
                op_ctx.method.upper(),
                url,
                params=params or None,
                json=body,
            )
            resp.raise_for_status()
            return ToolResult.text(safe_json_dumps(_response_payload(resp)))
        except Exception as e:
            message = _error_message(e)
            log.warning("Backend call failed", tool=op_ctx.name, error=message)
            return ToolResult.error(f"{ERROR_PREFIX}{message}")

    handler.__name__ = op_ctx.name
    return handler


# --------------------------------------------------------------------------
# Compilation
# --------------------------------------------------------------------------


def create_client(options: ToolOptions) -> httpx.AsyncClient:
    return httpx.AsyncClient(base_url=options.api_base_url.rstrip("/"), timeout=options.timeout)


def _make_operation_context(
    spec: OpenAPISpec,
    entry: CollectedOperation,
    name: str,
    options: ToolOptions,
    report: BuildReport,
) -> OperationContext:
    op = entry.operation
    params = resolve_parameters(op, spec, dropped=report.dropped_params)
    fields = build_input_fields(params, op, convert_html=options.convert_html_to_markdown)
    props, _ = _body_properties(op)
    path = "/" + entry.raw_path.lstrip("/") if entry.raw_path else entry.path
    return OperationContext(
        name=name,
        description=build_description(op, entry.method, path, convert_html=options.convert_html_to_markdown),
        method=entry.method,
        path=path,
        path_params=[p.name for p in params if p.location == "path"],
        query_params=[p.name for p in params if p.location == "query"],
        body_params=list(props.keys()),
        input_fields=fields,
    )


def compile_tools(
    spec: OpenAPISpec,
    options: Optional[ToolOptions] = None,
    *,
    client: Optional[httpx.AsyncClient] = None,
) -> Tuple[List[OpenAPITool], BuildReport]:
    """Compile every selected operation of ``spec`` into a tool.

    Returns the tools (document path order, then method order) and a report of
    what was filtered or dropped along the way.
    """
    options = options or ToolOptions()
    client = client or create_client(options)
    report = BuildReport(title=(spec.get("info") or {}).get("title"))

    collected = collect_operations(spec, skipped=report.skipped_paths)
    report.total_ops = len(collected)
    selected = filter_operations(collected, options.include_endpoints, options.exclude_endpoints)
    kept = {id(op) for op in selected}
    report.filtered = [str(op.key) for op in collected if id(op) not in kept]
    names = assign_tool_names(selected, options.tool_prefix)

    tools: List[OpenAPITool] = []
    for entry, name in zip(selected, names):
        op_ctx = _make_operation_context(spec, entry, name, options, report)
        tools.append(
            OpenAPITool(
                name=op_ctx.name,
                description=op_ctx.description,
                input_model=build_input_model(op_ctx.name, op_ctx.input_fields),
                handler=make_handler(op_ctx, client),
                method=op_ctx.method,
                path=op_ctx.path,
            )
        )

    report.registered_tools = len(tools)
    report.tool_names = [t.name for t in tools]
    for key in report.filtered:
        log.debug("Endpoint filtered out", endpoint=key)
    for path in report.skipped_paths:
        log.debug("Skipping malformed path item", path=path)
    for ref in report.dropped_params:
        log.debug("Dropping unresolvable parameter", parameter=str(ref))
    return tools, report


def openapi_to_tools(
    spec: OpenAPISpec,
    options: Optional[ToolOptions] = None,
    *,
    client: Optional[httpx.AsyncClient] = None,
) -> List[OpenAPITool]:
    tools, _ = compile_tools(spec, options, client=client)
    return tools
