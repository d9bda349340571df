"""
settlement_engines.tracer -- SETTLEMENT_ENGINE_TRACE for pure calculators.

``@traced_engine`` wraps an engine method and logs, per call, the engine
name and version, a SHA-256 fingerprint of selected arguments and the
duration.  Two calls with equal inputs produce the same fingerprint, which
is also bound as ``trace_id`` for every line the engine logs underneath.

Arguments are matched by parameter name whether passed positionally or by
keyword.  A failing call is logged as ``SETTLEMENT_ENGINE_TRACE_FAILED``
and the exception propagates unchanged.
"""

from __future__ import annotations

import functools
import hashlib
import inspect
import time
from collections.abc import Callable, Mapping
from dataclasses import fields, is_dataclass
from decimal import Decimal
from enum import Enum
from typing import Any

from settlement_kernel.logging_config import LogContext, get_logger

_logger = get_logger("engines.tracer")

FINGERPRINT_LENGTH = 16


def _canonicalize(value: Any) -> str:
    """Stable text form of an engine argument."""
    match value:
        case None:
            return "null"
        case Enum():
            return str(value.value)
        case bool() | int() | Decimal() | str():
            return str(value)
        case Mapping():
            items = sorted(value.items(), key=lambda kv: str(kv[0]))
            return "{" + ",".join(f"{k}:{_canonicalize(v)}" for k, v in items) + "}"
        case list() | tuple():
            return "[" + ",".join(_canonicalize(v) for v in value) + "]"
        case _ if is_dataclass(value) and not isinstance(value, type):
            body = {f.name: getattr(value, f.name) for f in fields(value)}
            return type(value).__name__ + _canonicalize(body)
        case _:
            return str(value)


def compute_input_fingerprint(
    fingerprint_fields: tuple[str, ...],
    arguments: Mapping[str, Any],
) -> str:
    """First 16 hex chars of SHA-256 over the named arguments."""
    canonical = "|".join(
        f"{name}={_canonicalize(arguments.get(name))}" for name in fingerprint_fields
    )
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()[:FINGERPRINT_LENGTH]


def _result_summary(result: Any) -> dict[str, str]:
    total = getattr(result, "total_allocated", None)
    return {} if total is None else {"total_allocated": str(total)}


def traced_engine(
    engine_name: str,
    engine_version: str,
    fingerprint_fields: tuple[str, ...] = (),
) -> Callable:
    """Decorator emitting SETTLEMENT_ENGINE_TRACE around an engine call."""

    def decorator(func: Callable) -> Callable:
        signature = inspect.signature(func)

        @functools.wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            bound = signature.bind(*args, **kwargs)
            bound.apply_defaults()
            fp = compute_input_fingerprint(fingerprint_fields, bound.arguments)
            trace = {
                "trace_type": "SETTLEMENT_ENGINE_TRACE",
                "engine_name": engine_name,
                "engine_version": engine_version,
                "input_fingerprint": fp,
                "function": func.__qualname__,
            }

            t0 = time.monotonic()
            with LogContext.bind(trace_id=fp):
                try:
                    result = func(*args, **kwargs)
                except Exception as exc:
                    _logger.warning("SETTLEMENT_ENGINE_TRACE_FAILED", extra={
                        **trace,
                        "error": str(exc),
                        "duration_ms": round((time.monotonic() - t0) * 1000, 2),
                    })
                    raise

            _logger.info("SETTLEMENT_ENGINE_TRACE", extra={
                **trace,
                "duration_ms": round((time.monotonic() - t0) * 1000, 2),
                **_result_summary(result),
            })
            return result

        return wrapper

    return decorator
