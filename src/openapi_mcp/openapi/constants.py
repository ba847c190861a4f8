from __future__ import annotations

__all__ = [
    "ALLOWED_METHODS",
    "BODY_CONTENT_TYPE",
    "CIRCULAR_PLACEHOLDER",
    "DEFAULT_TIMEOUT",
    "ERROR_PREFIX",
    "FUNCTION_PLACEHOLDER",
    "INDEX_SEGMENT",
    "MAX_SAFE_INTEGER",
    "PARAMETER_REF_PREFIXES",
]

# Order matters: tools are emitted in this method order per path.
ALLOWED_METHODS = ("get", "post", "put", "patch", "delete", "head", "options")

BODY_CONTENT_TYPE = "application/json"

PARAMETER_REF_PREFIXES = ("#/parameters/", "#/components/parameters/")

INDEX_SEGMENT = "index"

ERROR_PREFIX = "Error: "
CIRCULAR_PLACEHOLDER = "[Circular]"
FUNCTION_PLACEHOLDER = "[Function]"

MAX_SAFE_INTEGER = 2**53 - 1

DEFAULT_TIMEOUT = 30.0
