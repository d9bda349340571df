"""
Structured JSON logging for the settlement kernel.

Every logger lives under ``settlement_kernel`` and writes one JSON object per
line.  Event names are snake_case messages; amounts go into ``extra`` as
strings.  A ``SettlementError`` attached via ``exc_info`` contributes its
``code`` and structured fields as ``exc_*`` keys.
"""

__all__ = [
    "CONTEXT_FIELDS",
    "StructuredFormatter",
    "LogContext",
    "get_logger",
    "configure_logging",
    "reset_logging",
]

import json
import logging
import sys
import threading
from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar
from datetime import UTC, date, datetime
from decimal import Decimal
from typing import Any
from uuid import UUID

# ---------------------------------------------------------------------------
# Context propagation
# ---------------------------------------------------------------------------

# Fields that may be carried on every log line of an operation.
CONTEXT_FIELDS = (
    "correlation_id",
    "actor_id",
    "payable_id",
    "verification_id",
    "trace_id",
)

_context_vars: dict[str, ContextVar[str | None]] = {
    name: ContextVar(f"settlement_log_{name}", default=None) for name in CONTEXT_FIELDS
}


def _context_var(name: str) -> ContextVar[str | None]:
    try:
        return _context_vars[name]
    except KeyError:
        raise ValueError(
            f"Unknown log context field {name!r}; expected one of {CONTEXT_FIELDS}"
        ) from None


class LogContext:
    """
    Operation-scoped log fields held in ``contextvars``.

    A verification binds ``payable_id`` and ``actor_id`` once; every line
    logged underneath (allocation, unit of work, sequences) carries them.
    Values are stored as strings so UUIDs can be passed directly.
    """

    @staticmethod
    def set(**fields: Any) -> None:
        """Set context fields.  ``None`` values are ignored."""
        for var, value in [(_context_var(name), value) for name, value in fields.items()]:
            if value is not None:
                var.set(str(value))

    @staticmethod
    def get_all() -> dict[str, str]:
        return {
            name: value
            for name, var in _context_vars.items()
            if (value := var.get()) is not None
        }

    @staticmethod
    def clear() -> None:
        for var in _context_vars.values():
            var.set(None)

    @staticmethod
    @contextmanager
    def bind(**fields: Any) -> Iterator[None]:
        """Set fields for the duration of the block, then restore them."""
        pending = [(_context_var(name), value) for name, value in fields.items()]
        tokens = [(var, var.set(str(value))) for var, value in pending if value is not None]
        try:
            yield
        finally:
            for var, token in reversed(tokens):
                var.reset(token)


# ---------------------------------------------------------------------------
# JSON Formatter
# ---------------------------------------------------------------------------

_STDLIB_KEYS: frozenset[str] = frozenset(
    vars(logging.LogRecord("", 0, "", 0, "", (), None)).keys()
) | {"message", "taskName"}


def _to_json(obj: Any) -> Any:
    """UUIDs and Decimals as strings, dates in ISO form."""
    if isinstance(obj, (datetime, date)):
        return obj.isoformat()
    if isinstance(obj, (UUID, Decimal)):
        return str(obj)
    return repr(obj)


def _exception_fields(exc: BaseException) -> dict[str, Any]:
    """``exc_*`` keys for an exception; settlement errors expose ``to_dict``."""
    to_dict = getattr(exc, "to_dict", None)
    if callable(to_dict):
        data = to_dict()
    else:
        data = {"message": str(exc)}
    fields = {"exc_type": type(exc).__name__}
    fields.update({f"exc_{key}": value for key, value in data.items()})
    return fields


class StructuredFormatter(logging.Formatter):
    """Formats each log record as a single JSON line."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, tz=UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        payload.update(LogContext.get_all())
        payload.update(
            (key, value) for key, value in vars(record).items()
            if key not in _STDLIB_KEYS and key not in payload
        )

        exc = record.exc_info[1] if record.exc_info else None
        if exc is not None:
            payload.update(_exception_fields(exc))
            payload["traceback"] = self.formatException(record.exc_info)

        return json.dumps(payload, default=_to_json)


# ---------------------------------------------------------------------------
# Logger factory
# ---------------------------------------------------------------------------

_LOGGER_PREFIX = "settlement_kernel"


def get_logger(name: str) -> logging.Logger:
    """Get a logger under the settlement_kernel namespace."""
    return logging.getLogger(f"{_LOGGER_PREFIX}.{name}")


# ---------------------------------------------------------------------------
# Initialization
# ---------------------------------------------------------------------------

_configured = False
_lock = threading.Lock()


def configure_logging(
    *,
    level: int = logging.INFO,
    stream: Any = None,
    handler: logging.Handler | None = None,
) -> None:
    """Configure the settlement_kernel logger hierarchy (idempotent)."""
    global _configured
    with _lock:
        if _configured:
            return
        _configured = True

    root_logger = logging.getLogger(_LOGGER_PREFIX)
    root_logger.setLevel(level)
    root_logger.propagate = False

    h = handler if handler is not None else logging.StreamHandler(stream or sys.stderr)
    h.setFormatter(StructuredFormatter())
    root_logger.addHandler(h)


def reset_logging() -> None:
    """Reset logging configuration. FOR TESTING ONLY."""
    global _configured
    with _lock:
        _configured = False
    logger = logging.getLogger(_LOGGER_PREFIX)
    logger.handlers.clear()
    logger.setLevel(logging.WARNING)
