"""Logging for openapi-mcp.

Thin layer over the standard library:

- ``configure_logging`` installs a human or JSON handler on the package logger
- ``get_logger`` returns a ``StructuredLogger`` that takes keyword context
- every record carries the correlation id of the request being served

Example:
    from openapi_mcp.logging import configure_logging, get_logger

    configure_logging(level="DEBUG")
    log = get_logger("server")
    log.info("Tool called", tool="messages")
"""

from __future__ import annotations

import json
import logging
import secrets
import sys
from contextlib import contextmanager
from contextvars import ContextVar
from datetime import datetime, timezone
from typing import Any, Iterator, Mapping, Optional

__all__ = [
    "CORRELATION_HEADER",
    "CorrelationIdFilter",
    "HumanFormatter",
    "JSONFormatter",
    "StructuredLogger",
    "configure_logging",
    "correlation_id_from_headers",
    "correlation_scope",
    "generate_correlation_id",
    "get_correlation_id",
    "get_logger",
    "parse_log_level",
]

ROOT_LOGGER = "openapi_mcp"
CORRELATION_HEADER = "x-correlation-id"
SYSTEM_CORRELATION_ID = "system"

_LEVELS = {
    "DEBUG": logging.DEBUG,
    "INFO": logging.INFO,
    "WARN": logging.WARNING,
    "WARNING": logging.WARNING,
    "ERROR": logging.ERROR,
}

_correlation_id: ContextVar[str] = ContextVar("correlation_id", default=SYSTEM_CORRELATION_ID)

# Attributes every LogRecord has; anything else was passed as ``extra``.
_RECORD_ATTRS = frozenset(
    vars(logging.LogRecord("", 0, "", 0, "", (), None)).keys()
    | {"message", "asctime", "correlation_id"}
)


# =============================================================================
# Correlation ids
# =============================================================================


def generate_correlation_id() -> str:
    """Return a new 32-character hex correlation id."""
    return secrets.token_hex(16)


def correlation_id_from_headers(headers: Mapping[str, str] | None) -> str:
    """Use the ``x-correlation-id`` header if present, else a new id."""
    for key, value in (headers or {}).items():
        if key.lower() == CORRELATION_HEADER and isinstance(value, str) and value.strip():
            return value.strip()
    return generate_correlation_id()


def get_correlation_id() -> str:
    return _correlation_id.get()


@contextmanager
def correlation_scope(correlation_id: str) -> Iterator[str]:
    """Bind ``correlation_id`` to log records emitted inside the block."""
    token = _correlation_id.set(correlation_id)
    try:
        yield correlation_id
    finally:
        _correlation_id.reset(token)


class CorrelationIdFilter(logging.Filter):
    """Stamp the current correlation id onto every record."""

    def filter(self, record: logging.LogRecord) -> bool:
        if not hasattr(record, "correlation_id"):
            record.correlation_id = _correlation_id.get()
        return True


# =============================================================================
# Formatters
# =============================================================================


class JSONFormatter(logging.Formatter):
    """One JSON object per line."""

    def format(self, record: logging.LogRecord) -> str:
        data: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "correlation_id": getattr(record, "correlation_id", SYSTEM_CORRELATION_ID),
        }
        if record.levelno >= logging.ERROR:
            data["location"] = f"{record.pathname}:{record.lineno}"
        for key, value in record.__dict__.items():
            if key not in _RECORD_ATTRS and not key.startswith("_"):
                data[key] = value
        if record.exc_info:
            data["exception"] = self.formatException(record.exc_info)
        return json.dumps(data, default=str)


class HumanFormatter(logging.Formatter):
    """``[<correlation id>] LEVEL message key=value ...``"""

    def format(self, record: logging.LogRecord) -> str:
        cid = getattr(record, "correlation_id", SYSTEM_CORRELATION_ID)
        line = f"[{cid}] {record.levelname} {record.getMessage()}"
        extras = [
            f"{k}={v!r}"
            for k, v in record.__dict__.items()
            if k not in _RECORD_ATTRS and not k.startswith("_")
        ]
        if extras:
            line += " " + " ".join(extras)
        if record.exc_info:
            line += "\n" + self.formatException(record.exc_info)
        return line


# =============================================================================
# Structured logger
# =============================================================================


class StructuredLogger:
    """Wrapper that turns keyword arguments into record extras."""

    def __init__(self, name: str):
        self.name = name
        self._logger = logging.getLogger(name)

    @property
    def logger(self) -> logging.Logger:
        return self._logger

    def child(self, suffix: str) -> "StructuredLogger":
        return StructuredLogger(f"{self.name}.{suffix}")

    def isEnabledFor(self, level: int) -> bool:
        return self._logger.isEnabledFor(level)

    def _log(self, level: int, msg: str, exc_info: Any = None, **context: Any) -> None:
        if not self._logger.isEnabledFor(level):
            return
        # Keys that would clobber LogRecord attributes are prefixed instead.
        extra = {(f"ctx_{k}" if k in _RECORD_ATTRS else k): v for k, v in context.items()}
        self._logger.log(level, msg, exc_info=exc_info, extra=extra, stacklevel=3)

    def debug(self, msg: str, **context: Any) -> None:
        self._log(logging.DEBUG, msg, **context)

    def info(self, msg: str, **context: Any) -> None:
        self._log(logging.INFO, msg, **context)

    def warning(self, msg: str, **context: Any) -> None:
        self._log(logging.WARNING, msg, **context)

    warn = warning

    def error(self, msg: str, **context: Any) -> None:
        self._log(logging.ERROR, msg, **context)

    def exception(self, msg: str, **context: Any) -> None:
        context.setdefault("exc_info", True)
        self._log(logging.ERROR, msg, **context)


def get_logger(name: str) -> StructuredLogger:
    """Return a ``StructuredLogger`` under the ``openapi_mcp`` namespace."""
    if name != ROOT_LOGGER and not name.startswith(ROOT_LOGGER + "."):
        name = f"{ROOT_LOGGER}.{name}"
    return StructuredLogger(name)


# =============================================================================
# Configuration
# =============================================================================


def parse_log_level(level: Optional[str]) -> int:
    """Map a level name to a logging level; unknown or empty means INFO."""
    if not level:
        return logging.INFO
    return _LEVELS.get(level.strip().upper(), logging.INFO)


def configure_logging(level: str | int = "INFO", format: str = "human") -> logging.Logger:
    """Install a single stderr handler on the package logger.

    Safe to call more than once; the previous handler is replaced.
    """
    root = logging.getLogger(ROOT_LOGGER)
    root.setLevel(level if isinstance(level, int) else parse_log_level(level))

    for handler in list(root.handlers):
        if getattr(handler, "_openapi_mcp", False):
            root.removeHandler(handler)

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(JSONFormatter() if format == "json" else HumanFormatter())
    handler.addFilter(CorrelationIdFilter())
    handler._openapi_mcp = True  # type: ignore[attr-defined]
    root.addHandler(handler)
    return root
