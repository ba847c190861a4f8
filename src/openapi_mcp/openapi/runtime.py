from __future__ import annotations

import re
from collections import Counter
from typing import Any, Dict, Iterable, List, Optional, Sequence

from pydantic import ValidationError

from .constants import ALLOWED_METHODS, INDEX_SEGMENT, PARAMETER_REF_PREFIXES
from .models import (
    CollectedOperation,
    ConcreteParameter,
    EndpointKey,
    OpenAPISpec,
    Operation,
    ParameterDef,
    ParameterRef,
)

__all__ = [
    "normalize_path",
    "endpoint_key",
    "path_to_tool_segment",
    "base_tool_name",
    "is_included",
    "collect_operations",
    "filter_operations",
    "assign_tool_names",
    "parse_parameter",
    "resolve_parameter",
    "resolve_parameters",
]

_PATH_PARAM_RE = re.compile(r"\{[^}]+\}")


# --------------------------------------------------------------------------
# Paths and endpoint keys
# --------------------------------------------------------------------------


def normalize_path(path: str) -> str:
    """Lower-case the path and make it start with exactly one slash."""
    return "/" + path.lstrip("/").lower()


def endpoint_key(method: str, path: str) -> EndpointKey:
    return EndpointKey(method.lower(), normalize_path(path))


def is_included(
    key: EndpointKey | str,
    include_endpoints: Sequence[str],
    exclude_endpoints: Sequence[str],
) -> bool:
    """Include list, when non-empty, decides alone; otherwise exclude applies.

    An endpoint listed in both lists is kept.
    """
    key_norm = str(key).lower()
    if include_endpoints:
        return any(key_norm == inc.strip().lower() for inc in include_endpoints)
    return not any(key_norm == exc.strip().lower() for exc in exclude_endpoints)


# --------------------------------------------------------------------------
# Collection
# --------------------------------------------------------------------------


def collect_operations(spec: OpenAPISpec, skipped: Optional[List[str]] = None) -> List[CollectedOperation]:
    """Flatten ``paths`` into operations in document order, then method order.

    Path items that are not mappings are dropped; their keys are appended to
    ``skipped`` when given.
    """
    paths = spec.get("paths") or {}
    if not isinstance(paths, dict):
        return []

    out: List[CollectedOperation] = []
    seen: set[EndpointKey] = set()
    for raw_path, path_item in paths.items():
        if not isinstance(raw_path, str) or not isinstance(path_item, dict):
            if skipped is not None:
                skipped.append(str(raw_path))
            continue
        for method in ALLOWED_METHODS:
            op = path_item.get(method)
            if not isinstance(op, dict):
                continue
            key = endpoint_key(method, raw_path)
            if key in seen:
                if skipped is not None:
                    skipped.append(f"{key} (duplicate)")
                continue
            seen.add(key)
            out.append(CollectedOperation(key, op, raw_path))
    return out


def filter_operations(
    ops: Iterable[CollectedOperation],
    include_endpoints: Sequence[str],
    exclude_endpoints: Sequence[str],
) -> List[CollectedOperation]:
    return [op for op in ops if is_included(op.key, include_endpoints, exclude_endpoints)]


# --------------------------------------------------------------------------
# Naming
# --------------------------------------------------------------------------


def path_to_tool_segment(path: str) -> str:
    """``/pet/{id}`` -> ``pet``; ``/a/b`` -> ``a_b``; ``/`` -> ``index``."""
    segment = normalize_path(path)[1:]
    segment = _PATH_PARAM_RE.sub("", segment)
    segment = re.sub(r"/+", "_", segment)
    if segment.endswith("_"):
        segment = segment[:-1]
    return segment or INDEX_SEGMENT


def base_tool_name(path: str, tool_prefix: str = "") -> str:
    segment = path_to_tool_segment(path)
    if not tool_prefix:
        return segment
    prefix = tool_prefix[:-1] if tool_prefix.endswith("_") else tool_prefix
    return f"{prefix}_{segment}"


def assign_tool_names(ops: Sequence[CollectedOperation], tool_prefix: str = "") -> List[str]:
    """Name each operation; names shared by several operations get ``_<method>``.

    Two passes: count every base name first, then decide per operation.
    Names still shared after that (``/pet`` and ``/pet/{id}`` both as GET)
    keep the first one and get ``_2``, ``_3``... in document order.
    """
    base_names = [base_tool_name(op.path, tool_prefix) for op in ops]
    counts = Counter(base_names)
    names = [
        f"{name}_{op.method}" if counts[name] > 1 else name
        for name, op in zip(base_names, ops)
    ]

    taken = set(names)
    seen: set[str] = set()
    unique: List[str] = []
    for name in names:
        if name in seen:
            n = 2
            while f"{name}_{n}" in taken:
                n += 1
            name = f"{name}_{n}"
            taken.add(name)
        seen.add(name)
        unique.append(name)
    return unique


# --------------------------------------------------------------------------
# Parameter references
# --------------------------------------------------------------------------


def parse_parameter(raw: Any) -> Optional[ParameterDef]:
    """Turn a raw parameter object into a reference or a concrete definition.

    Objects that are neither (missing ``name``/``in``, unknown location) give None.
    """
    if not isinstance(raw, dict):
        return None
    ref = raw.get("$ref")
    if isinstance(ref, str):
        return ParameterRef(ref=ref, overrides={k: v for k, v in raw.items() if k != "$ref"})
    try:
        return ConcreteParameter.model_validate(raw)
    except ValidationError:
        return None


def _unescape_pointer(token: str) -> str:
    return token.replace("~1", "/").replace("~0", "~")


def _shared_parameters(spec: OpenAPISpec, prefix: str) -> Dict[str, Any]:
    if prefix == "#/parameters/":
        shared = spec.get("parameters")
    else:
        shared = (spec.get("components") or {}).get("parameters")
    return shared if isinstance(shared, dict) else {}


def resolve_parameter(param: Optional[ParameterDef], spec: OpenAPISpec) -> Optional[ConcreteParameter]:
    """Resolve a reference against the shared parameter dictionary.

    Local keys next to ``$ref`` win over the target's. Unknown pointer shapes
    and missing targets give None.
    """
    if param is None or isinstance(param, ConcreteParameter):
        return param

    for prefix in PARAMETER_REF_PREFIXES:
        if param.ref.startswith(prefix):
            name = _unescape_pointer(param.ref[len(prefix):])
            target = _shared_parameters(spec, prefix).get(name)
            break
    else:
        return None

    if not isinstance(target, dict) or "$ref" in target:
        return None
    merged = {**target, **param.overrides}
    try:
        return ConcreteParameter.model_validate(merged)
    except ValidationError:
        return None


def resolve_parameters(op: Operation, spec: OpenAPISpec, dropped: Optional[List[str]] = None) -> List[ConcreteParameter]:
    """Resolve an operation's parameter list, dropping what cannot be used."""
    out: List[ConcreteParameter] = []
    for raw in op.get("parameters") or []:
        resolved = resolve_parameter(parse_parameter(raw), spec)
        if resolved is None:
            if dropped is not None:
                dropped.append(str(raw.get("$ref") or raw.get("name")) if isinstance(raw, dict) else str(raw))
            continue
        out.append(resolved)
    return out
