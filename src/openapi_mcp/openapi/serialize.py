"""Never-failing JSON encoding of backend responses.

``safe_json_dumps`` walks the value once, rewriting anything JSON cannot
carry, then encodes the result. Rules:

- ints beyond the double-precision safe range become decimal strings
- callables become ``"[Function]"``
- NaN/Infinity and ``None`` become ``null``
- a container or object seen earlier in the walk becomes ``"[Circular]"``
- other objects are encoded through ``model_dump``/``isoformat``/``str``

Strings are not special-cased: ``hello`` encodes to the seven characters
``"hello"``, quoted once.
If anything goes wrong the output is a small error object instead.
"""

from __future__ import annotations

import dataclasses
import json
import math
from collections.abc import Mapping
from datetime import date, datetime, time
from decimal import Decimal
from enum import Enum
from typing import Any, Dict

from .constants import CIRCULAR_PLACEHOLDER, FUNCTION_PLACEHOLDER, MAX_SAFE_INTEGER

__all__ = ["safe_json_dumps", "to_jsonable"]

_FALLBACK_ERROR = "Failed to serialize response"


def to_jsonable(value: Any, seen: Dict[int, Any] | None = None) -> Any:
    """Rewrite ``value`` into plain JSON types.

    ``seen`` maps the id of every container walked so far to the container
    itself; holding the reference keeps temporaries such as ``model_dump()``
    results alive, so their ids cannot be reused later in the walk.
    """
    if seen is None:
        seen = {}

    if value is None or isinstance(value, (bool, str)):
        return value
    if isinstance(value, int):
        return str(value) if abs(value) > MAX_SAFE_INTEGER else value
    if isinstance(value, float):
        return value if math.isfinite(value) else None
    if isinstance(value, Enum):
        return to_jsonable(value.value, seen)
    if isinstance(value, (datetime, date, time)):
        return value.isoformat()
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, (bytes, bytearray)):
        return bytes(value).decode("utf-8", errors="replace")
    if isinstance(value, type) or (callable(value) and not hasattr(value, "model_dump")):
        return FUNCTION_PLACEHOLDER

    # Everything below is reference-like and may form a cycle.
    if id(value) in seen:
        return CIRCULAR_PLACEHOLDER
    seen[id(value)] = value

    if isinstance(value, Mapping):
        return {str(k): to_jsonable(v, seen) for k, v in value.items()}
    if isinstance(value, (list, tuple, set, frozenset)):
        return [to_jsonable(v, seen) for v in value]
    if hasattr(value, "model_dump"):
        return to_jsonable(value.model_dump(), seen)
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return {f.name: to_jsonable(getattr(value, f.name), seen) for f in dataclasses.fields(value)}
    return str(value)


def safe_json_dumps(value: Any) -> str:
    """Encode ``value`` as JSON text. Never raises."""
    try:
        return json.dumps(to_jsonable(value), ensure_ascii=False, separators=(",", ":"), allow_nan=False)
    except Exception as e:
        try:
            message = str(e)
        except Exception:
            message = type(e).__name__
        return json.dumps({"error": _FALLBACK_ERROR, "message": message})
