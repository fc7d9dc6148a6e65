"""Shared primitives for the validation engine."""
from __future__ import annotations

import copy
import inspect
import math
from datetime import datetime, timezone
from typing import Any, Callable


class _Undefined:
    """Marker for an absent value; distinct from None."""

    _instance: _Undefined | None = None

    def __new__(cls) -> _Undefined:
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __bool__(self) -> bool:
        return False

    def __repr__(self) -> str:
        return "UNDEFINED"

    def __copy__(self) -> _Undefined:
        return self

    def __deepcopy__(self, memo) -> _Undefined:
        return self

    def __reduce__(self):
        return (_Undefined, ())


class _DeepDefault:
    """Marker stored as the default of an object whose children supply defaults."""

    _instance: _DeepDefault | None = None

    def __new__(cls) -> _DeepDefault:
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "DEEP_DEFAULT"

    def __copy__(self) -> _DeepDefault:
        return self

    def __deepcopy__(self, memo) -> _DeepDefault:
        return self


UNDEFINED: Any = _Undefined()
DEEP_DEFAULT: Any = _DeepDefault()

PRESENCE_MODES = ("optional", "required", "forbidden")


def is_schema(value: Any) -> bool:
    return getattr(type(value), "_is_schema", False) is True


def is_number(value: Any) -> bool:
    """int or float, never bool."""
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def is_nan(value: Any) -> bool:
    return isinstance(value, float) and math.isnan(value)


def as_utc(value: datetime) -> datetime:
    """Naive datetimes are interpreted as UTC."""
    return value.replace(tzinfo=timezone.utc) if value.tzinfo is None else value


def clone_value(value: Any) -> Any:
    """Deep copy containers so defaults never share state between results."""
    if isinstance(value, (dict, list, set, bytearray)):
        return copy.deepcopy(value)
    return value


def arity(fn: Callable) -> int:
    """Number of positional parameters a callback accepts (0 when unknown)."""
    try:
        params = inspect.signature(fn).parameters.values()
    except (TypeError, ValueError):
        return 0
    count = 0
    for param in params:
        if param.kind is inspect.Parameter.VAR_POSITIONAL: return 2
        if param.kind in (inspect.Parameter.POSITIONAL_ONLY, inspect.Parameter.POSITIONAL_OR_KEYWORD): count += 1
    return count


def compare(a: Any, b: Any, operator: str) -> bool:
    match operator:
        case "=":
            return a == b
        case ">":
            return a > b
        case "<":
            return a < b
        case ">=":
            return a >= b
        case "<=":
            return a <= b
    raise ValueError(f"Unknown operator {operator}")


def is_limit(value: Any) -> bool:
    """Non-negative integer limit."""
    return isinstance(value, int) and not isinstance(value, bool) and value >= 0


def format_path(path: tuple | list) -> str:
    """Format a path tuple as a JSON-ish path (``user.addresses[0].street``)."""
    if not path: return ""
    parts = []
    for segment in path:
        if isinstance(segment, int): parts.append(f"[{segment}]")
        elif parts: parts.append(f".{segment}")
        else: parts.append(str(segment))
    return "".join(parts)
