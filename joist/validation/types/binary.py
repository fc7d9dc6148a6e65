"""Binary type: bytes/bytearray values, strings encoded when converting."""
from __future__ import annotations

from typing import Any

from joist.errors import ErrorCode, Ok, assert_schema

from ..coercion import StringToBytes
from ..common import compare
from ..ref import Reference
from ..registry import Cast, Coercion, RuleDefinition
from ..schema import Schema
from ..validator import Outcome
from .any import LIMIT_ARG, LIMIT_OPERATORS, define

_ENCODINGS = ("utf-8", "utf8", "ascii", "latin-1", "latin1", "utf-16", "base64", "hex")


class BinarySchema(Schema):
    type = "binary"

    def encoding(self, encoding: str) -> BinarySchema:
        assert_schema(encoding in _ENCODINGS, "Invalid encoding:", encoding)
        return self._set_flag("encoding", encoding)

    def min(self, limit: int | Reference) -> BinarySchema:
        return self._add_rule("min", method="length", args={"limit": limit}, operator=LIMIT_OPERATORS["min"])

    def max(self, limit: int | Reference) -> BinarySchema:
        return self._add_rule("max", method="length", args={"limit": limit}, operator=LIMIT_OPERATORS["max"])

    def length(self, limit: int | Reference) -> BinarySchema:
        return self._add_rule("length", method="length", args={"limit": limit}, operator=LIMIT_OPERATORS["length"])


def _coerce(value: str, helpers) -> Outcome | None:
    match StringToBytes(helpers.schema._flags.get("encoding", "utf-8"))(value):
        case Ok(encoded):
            return Outcome(encoded)
    return None


def _base(value: Any, helpers) -> Outcome | None:
    if isinstance(value, (bytes, bytearray)): return None
    return Outcome(value, [helpers.error(ErrorCode.BINARY_BASE)])


def _length(value: bytes, helpers, args: dict, rule) -> Any:
    if compare(len(value), args["limit"], rule.operator): return value
    return helpers.error(f"binary.{rule.name}", {"limit": args["limit"]})


define("binary", BinarySchema, base_check=_base, coerce=Coercion((str,), _coerce),
    rules={"length": RuleDefinition("length", _length, args=(LIMIT_ARG,))},
    messages={
        ErrorCode.BINARY_BASE: '"{label}" must be a buffer or a string',
        ErrorCode.BINARY_MIN: '"{label}" must be at least {limit} bytes',
        ErrorCode.BINARY_MAX: '"{label}" must be less than or equal to {limit} bytes',
        ErrorCode.BINARY_LENGTH: '"{label}" must be {limit} bytes',
    },
    casts={"string": Cast((bytes, bytearray), lambda value, helpers: bytes(value).decode("utf-8", errors="replace"))})
