"""
order_tax_engines.tracer -- Engine invocation tracer emitting ORDER_TAX_ENGINE_TRACE.

Responsibility:
    Provide a lightweight decorator (``@traced_engine``) that wraps pure
    engine invocations with structured trace logging.  The trace captures
    engine_name, engine_version, input_fingerprint and duration_ms.

Architecture position:
    Engines -- infrastructure support for the pure calculation layer.
    Does NOT introduce I/O into engines; emits a log record only.

Failure modes:
    - Exceptions raised by the wrapped engine propagate unchanged; a
      ``ORDER_TAX_ENGINE_FAILED`` record is logged with the error code.

Usage:
    from order_tax_engines.tracer import traced_engine

    @traced_engine("tax_calculator", "1.0", fingerprint_fields=("items",))
    def compute(self, configuration, items):
        ...
"""

from __future__ import annotations

import functools
import inspect
import time
from collections.abc import Callable
from typing import Any

from order_tax_engines.fingerprint import compute_input_fingerprint
from order_tax_kernel.logging_config import get_logger

_logger = get_logger("engines.tracer")


def traced_engine(
    engine_name: str,
    engine_version: str,
    fingerprint_fields: tuple[str, ...] = (),
) -> Callable:
    """Decorator that emits ORDER_TAX_ENGINE_TRACE for pure engine invocations.

    Positional arguments are bound to parameter names before fingerprinting,
    so ``compute(cfg, items)`` and ``compute(configuration=cfg, items=items)``
    produce the same fingerprint.

    Args:
        engine_name: Engine identifier (e.g., "tax_calculator").
        engine_version: Engine version (e.g., "1.0").
        fingerprint_fields: Argument names to include in the input
            fingerprint hash.
    """

    def decorator(func: Callable) -> Callable:
        signature = inspect.signature(func)

        @functools.wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            fp = ""
            if fingerprint_fields:
                bound = signature.bind_partial(*args, **kwargs)
                fp = compute_input_fingerprint(fingerprint_fields, dict(bound.arguments))

            t0 = time.monotonic()
            try:
                result = func(*args, **kwargs)
            except Exception as exc:
                _logger.warning(
                    "ORDER_TAX_ENGINE_FAILED",
                    extra={
                        "trace_type": "ORDER_TAX_ENGINE_TRACE",
                        "engine_name": engine_name,
                        "engine_version": engine_version,
                        "input_fingerprint": fp,
                        "error_code": getattr(exc, "code", type(exc).__name__),
                    },
                )
                raise
            duration_ms = round((time.monotonic() - t0) * 1000, 2)

            _logger.info(
                "ORDER_TAX_ENGINE_TRACE",
                extra={
                    "trace_type": "ORDER_TAX_ENGINE_TRACE",
                    "engine_name": engine_name,
                    "engine_version": engine_version,
                    "input_fingerprint": fp,
                    "duration_ms": duration_ms,
                    "function": func.__qualname__,
                },
            )
            return result

        return wrapper

    return decorator
