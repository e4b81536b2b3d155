"""
billing_engines.tracer -- BILLING_ENGINE_TRACE records for engine calls.

Responsibility:
    ``@traced_engine`` wraps a pure engine function and, after each call,
    logs which engine ran, its version, how long it took and a fingerprint
    of the inputs that determined the result.  Two calls with equal
    fingerprints priced the same work the same way.

Architecture position:
    Engines -- observational support for the pure calculation layer.  The
    wrapper reads its arguments and emits one log record; it never alters
    arguments or results.

Invariants enforced:
    - Fingerprints are stable across processes: values are rendered to a
      canonical text form (normalized Decimals, sorted mapping keys,
      dataclasses field by field) and hashed with SHA-256, truncated to
      16 hex chars.
    - Positional and keyword calls of the same inputs fingerprint alike;
      defaults are applied before hashing.

Usage:
    @traced_engine("charges", "1.0", fingerprint_fields=("hours", "hourly_rate"))
    def compute_charge(hours, hourly_rate, candidates=()):
        ...
"""

from __future__ import annotations

import dataclasses
import functools
import hashlib
import inspect
import logging
import time
from collections.abc import Callable, Mapping
from decimal import Decimal
from typing import Any

_logger = logging.getLogger("billing_kernel.engines.tracer")

FINGERPRINT_LENGTH = 16


def _canonicalize(value: Any) -> str:
    if value is None:
        return "null"
    if isinstance(value, Decimal):
        return str(value.normalize())
    if isinstance(value, str):
        return value
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return type(value).__name__ + _canonicalize(dataclasses.asdict(value))
    if isinstance(value, Mapping):
        body = ",".join(f"{k}:{_canonicalize(v)}" for k, v in sorted(value.items()))
        return "{" + body + "}"
    if isinstance(value, (list, tuple)):
        return "[" + ",".join(_canonicalize(v) for v in value) + "]"
    return repr(value)


def compute_input_fingerprint(
    fingerprint_fields: tuple[str, ...],
    arguments: Mapping[str, Any],
) -> str:
    """
    Hash the named entries of ``arguments``.

    Names absent from ``arguments`` hash as ``null``.
    """
    canonical = "|".join(
        f"{name}={_canonicalize(arguments.get(name))}" for name in fingerprint_fields
    )
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()[:FINGERPRINT_LENGTH]


def traced_engine(
    engine_name: str,
    engine_version: str,
    fingerprint_fields: tuple[str, ...] = (),
) -> Callable[[Callable[..., Any]], Callable[..., Any]]:
    """
    Decorate a pure engine function so that each call is traced.

    Args:
        engine_name: Engine identifier, e.g. ``"charges"``.
        engine_version: Version of the engine's rules, e.g. ``"1.0"``.
        fingerprint_fields: Parameter names hashed into the fingerprint.
    """

    def decorator(func: Callable[..., Any]) -> Callable[..., Any]:
        signature = inspect.signature(func)

        @functools.wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            fingerprint = ""
            if fingerprint_fields:
                bound = signature.bind(*args, **kwargs)
                bound.apply_defaults()
                fingerprint = compute_input_fingerprint(fingerprint_fields, bound.arguments)

            started = time.monotonic()
            result = func(*args, **kwargs)
            elapsed_ms = (time.monotonic() - started) * 1000

            _logger.info(
                "BILLING_ENGINE_TRACE",
                extra={
                    "trace_type": "BILLING_ENGINE_TRACE",
                    "engine_name": engine_name,
                    "engine_version": engine_version,
                    "function": func.__qualname__,
                    "input_fingerprint": fingerprint,
                    "duration_ms": round(elapsed_ms, 2),
                },
            )
            return result

        return wrapper

    return decorator
