"""Error Builders

Ergonomic constructors for schema-construction failures and coercion
failures. Construction helpers raise; coercion helpers return Err.
"""
from typing import Any

from .types import AppError, Err, ErrorCode, SchemaError


# =============================================================================
# Schema construction (raised)
# =============================================================================

def schema_error(*parts: Any, **details) -> SchemaError:
    """Build a SchemaError from message fragments."""
    return SchemaError(" ".join(str(p) for p in parts), details=details)


def assert_schema(condition: Any, *parts: Any, **details) -> None:
    """Raise SchemaError unless condition holds."""
    if not condition:
        raise schema_error(*parts, **details)


def invalid_argument(method: str, name: str, value: Any, expected: str) -> SchemaError:
    return schema_error(f"{method}(): {name} must be {expected}, got {value!r}",
        method=method, argument=name)


# =============================================================================
# Captured failures (returned)
# =============================================================================

def coercion_failed(code: ErrorCode, value: Any, target: str, *, origin: str = "", **metadata) -> Err[AppError]:
    """Coercion rule could not convert value to target."""
    return Err(AppError(code=code, message=f"Cannot coerce {type(value).__name__} to {target}",
        metadata={"value": value, "target": target, **metadata}, origin=origin))
