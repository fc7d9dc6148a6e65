"""Coercion Rules

Conversions applied by type coercion hooks when the ``convert`` preference
is on. Each rule reports success or failure through Result; a failed
coercion leaves the value untouched so the type's base check reports it.

Features:
- Type-safe coercion with Result types
- Numeric strings to int/float (integers stay int)
- Truthy/falsy strings to bool
- ISO8601 strings and epoch numbers to timezone-aware datetimes
- Strings to bytes, JSON text to dict/list
"""
from __future__ import annotations

import base64
import binascii
import json
import math
import re
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Generic, TypeVar

from joist.errors import AppError, Err, ErrorCode, Ok, Result, coercion_failed

T = TypeVar("T")
S = TypeVar("S")


@dataclass(frozen=True, slots=True)
class CoercionRule(ABC, Generic[S, T]):
    """Base class for coercion rules.

    Each rule defines:
    - Source type(s) it can coerce from
    - Target type it coerces to
    - The actual coercion logic
    """

    @property
    @abstractmethod
    def source_types(self) -> tuple[type, ...]:
        """Types this rule can coerce from."""

    @property
    @abstractmethod
    def target_type(self) -> type:
        """Type this rule coerces to."""

    @abstractmethod
    def coerce(self, value: Any) -> Result[T, AppError]:
        """Coerce value to target type. Returns Result."""

    def can_coerce(self, value: Any) -> bool:
        return isinstance(value, self.source_types) and not isinstance(value, bool)

    def __call__(self, value: Any) -> Result[T, AppError]:
        if not self.can_coerce(value):
            return coercion_failed(ErrorCode.SCHEMA_INVALID, value, self.target_type.__name__)
        return self.coerce(value)


_INT_PATTERN = re.compile(r"^[+-]?\d+$")


@dataclass(frozen=True, slots=True)
class StringToNumber(CoercionRule[str, float]):
    """Coerce numeric string to int (integral literal) or float."""

    @property
    def source_types(self) -> tuple[type, ...]:
        return (str,)

    @property
    def target_type(self) -> type:
        return float

    def coerce(self, value: Any) -> Result[int | float, AppError]:
        text = value.strip()
        if not text:
            return coercion_failed(ErrorCode.NUMBER_BASE, value, "number")
        if _INT_PATTERN.match(text):
            return Ok(int(text))
        try:
            number = float(text)
        except ValueError:
            return coercion_failed(ErrorCode.NUMBER_BASE, value, "number")
        if math.isnan(number):
            return coercion_failed(ErrorCode.NUMBER_BASE, value, "number")
        if math.isinf(number):
            return Err(AppError(code=ErrorCode.NUMBER_INFINITY, message=f"'{value}' is not a finite number",
                metadata={"value": value}))
        return Ok(number)


@dataclass(frozen=True, slots=True)
class StringToBool(CoercionRule[str, bool]):
    """Coerce string to boolean.

    Truthy: "true" plus configured truthy strings
    Falsy: "false" plus configured falsy strings
    """
    true_values: frozenset[str] = frozenset({"true"})
    false_values: frozenset[str] = frozenset({"false"})
    sensitive: bool = False

    @property
    def source_types(self) -> tuple[type, ...]:
        return (str,)

    @property
    def target_type(self) -> type:
        return bool

    def coerce(self, value: Any) -> Result[bool, AppError]:
        text = value.strip()
        if not self.sensitive:
            text = text.lower()
            true_values = {v.lower() for v in self.true_values}
            false_values = {v.lower() for v in self.false_values}
        else:
            true_values, false_values = self.true_values, self.false_values
        if text in true_values:
            return Ok(True)
        if text in false_values:
            return Ok(False)
        return coercion_failed(ErrorCode.BOOLEAN_BASE, value, "bool")


@dataclass(frozen=True, slots=True)
class ISO8601ToDateTime(CoercionRule[str, datetime]):
    """Coerce ISO8601 string to an aware datetime (naive input is UTC)."""
    default_timezone: timezone = timezone.utc

    @property
    def source_types(self) -> tuple[type, ...]:
        return (str,)

    @property
    def target_type(self) -> type:
        return datetime

    def parse(self, value: str) -> datetime:
        """Parse ISO8601 string handling Z suffix."""
        text = value.strip()
        if text.endswith(("Z", "z")): text = text[:-1] + "+00:00"
        dt = datetime.fromisoformat(text)
        return dt.replace(tzinfo=self.default_timezone) if dt.tzinfo is None else dt

    def coerce(self, value: Any) -> Result[datetime, AppError]:
        try:
            return Ok(self.parse(value))
        except ValueError:
            return coercion_failed(ErrorCode.DATE_BASE, value, "datetime", format="ISO8601")


@dataclass(frozen=True, slots=True)
class EpochToDateTime(CoercionRule[float, datetime]):
    """Coerce epoch number to datetime; ``javascript`` is milliseconds, ``unix`` seconds."""
    unit: str = "javascript"

    @property
    def source_types(self) -> tuple[type, ...]:
        return (int, float)

    @property
    def target_type(self) -> type:
        return datetime

    def coerce(self, value: Any) -> Result[datetime, AppError]:
        seconds = value / 1000 if self.unit == "javascript" else value
        try:
            return Ok(datetime.fromtimestamp(seconds, tz=timezone.utc))
        except (OverflowError, OSError, ValueError):
            return coercion_failed(ErrorCode.DATE_BASE, value, "datetime", unit=self.unit)


@dataclass(frozen=True, slots=True)
class NumericStringToDateTime(CoercionRule[str, datetime]):
    """Coerce a numeric string holding an epoch timestamp."""
    unit: str = "javascript"

    @property
    def source_types(self) -> tuple[type, ...]:
        return (str,)

    @property
    def target_type(self) -> type:
        return datetime

    def coerce(self, value: Any) -> Result[datetime, AppError]:
        match StringToNumber()(value):
            case Ok(number):
                return EpochToDateTime(self.unit)(number)
        return coercion_failed(ErrorCode.DATE_BASE, value, "datetime", unit=self.unit)


@dataclass(frozen=True, slots=True)
class StringToBytes(CoercionRule[str, bytes]):
    """Encode string to bytes."""
    encoding: str = "utf-8"

    @property
    def source_types(self) -> tuple[type, ...]:
        return (str,)

    @property
    def target_type(self) -> type:
        return bytes

    def coerce(self, value: Any) -> Result[bytes, AppError]:
        if self.encoding == "base64":
            try:
                return Ok(base64.b64decode(value, validate=True))
            except binascii.Error:
                return coercion_failed(ErrorCode.BINARY_BASE, value, "bytes", encoding=self.encoding)
        if self.encoding == "hex":
            try:
                return Ok(bytes.fromhex(value))
            except ValueError:
                return coercion_failed(ErrorCode.BINARY_BASE, value, "bytes", encoding=self.encoding)
        try:
            return Ok(value.encode(self.encoding))
        except (LookupError, UnicodeEncodeError):
            return coercion_failed(ErrorCode.BINARY_BASE, value, "bytes", encoding=self.encoding)


@dataclass(frozen=True, slots=True)
class JsonToContainer(CoercionRule[str, Any]):
    """Parse JSON text into a dict or list."""
    target: type = dict

    @property
    def source_types(self) -> tuple[type, ...]:
        return (str,)

    @property
    def target_type(self) -> type:
        return self.target

    def can_coerce(self, value: Any) -> bool:
        opener = "{" if self.target is dict else "["
        return isinstance(value, str) and value.lstrip().startswith(opener)

    def coerce(self, value: Any) -> Result[Any, AppError]:
        code = ErrorCode.OBJECT_BASE if self.target is dict else ErrorCode.ARRAY_BASE
        try:
            parsed = json.loads(value)
        except json.JSONDecodeError as e:
            return coercion_failed(code, value, self.target.__name__, reason=str(e))
        if not isinstance(parsed, self.target):
            return coercion_failed(code, value, self.target.__name__)
        return Ok(parsed)
