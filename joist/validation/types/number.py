"""Number Type

Features:
- int/float values (bool and NaN are rejected, infinities report number.infinity)
- Numeric strings converted when convert is on; integral literals stay int
- Limits (min, max, greater, less) accepting references
- integer, precision (rounded during coercion), multiple, sign and port rules
"""
from __future__ import annotations

import math
import re
from typing import Any

from joist.errors import Err, ErrorCode, Ok, assert_schema

from ..coercion import StringToNumber
from ..common import compare, is_nan, is_number
from ..ref import Reference
from ..registry import Cast, Coercion, RuleArg, RuleDefinition
from ..schema import Schema
from ..validator import Outcome
from .any import define

_PRECISION = re.compile(r"(?:\.(\d+))?(?:[eE]([+-]?\d+))?$")

_COMPARE_OPERATORS = {"min": ">=", "max": "<=", "greater": ">", "less": "<"}


def _is_finite_number(value: Any) -> bool:
    return is_number(value) and not is_nan(value)


def _decimals(value: int | float) -> int:
    match = _PRECISION.search(repr(value))
    places = len(match.group(1)) if match.group(1) else 0
    exponent = int(match.group(2)) if match.group(2) else 0
    return max(places - exponent, 0)


class NumberSchema(Schema):
    type = "number"

    def _compare(self, name: str, limit: Any) -> NumberSchema:
        return self._add_rule(name, method="compare", args={"limit": limit}, operator=_COMPARE_OPERATORS[name])

    def min(self, limit: int | float | Reference) -> NumberSchema:
        return self._compare("min", limit)

    def max(self, limit: int | float | Reference) -> NumberSchema:
        return self._compare("max", limit)

    def greater(self, limit: int | float | Reference) -> NumberSchema:
        return self._compare("greater", limit)

    def less(self, limit: int | float | Reference) -> NumberSchema:
        return self._compare("less", limit)

    def integer(self) -> NumberSchema:
        return self._add_rule("integer")

    def precision(self, limit: int) -> NumberSchema:
        """Maximum decimal places; values are rounded when converting."""
        return self._add_rule("precision", args={"limit": limit})

    def multiple(self, base: int | float | Reference) -> NumberSchema:
        return self._add_rule("multiple", args={"base": base})

    def sign(self, sign: str) -> NumberSchema:
        assert_schema(sign in ("positive", "negative"), "Invalid sign", sign)
        return self._add_rule("sign", args={"sign": sign})

    def positive(self) -> NumberSchema:
        return self.sign("positive")

    def negative(self) -> NumberSchema:
        return self.sign("negative")

    def port(self) -> NumberSchema:
        return self._add_rule("port")


def _round(value: int | float, schema) -> int | float:
    precision = schema._rules_named("precision")
    if not precision or isinstance(value, int): return value
    return round(value, precision[-1].args["limit"])


def _coerce(value: Any, helpers) -> Outcome | None:
    if isinstance(value, str):
        match StringToNumber()(value):
            case Ok(number):
                value = number
            case Err(error) if error.code == ErrorCode.NUMBER_INFINITY:
                return Outcome(value, [helpers.error(ErrorCode.NUMBER_INFINITY)])
            case Err(_):
                return None
    if _is_finite_number(value) and not math.isinf(value): return Outcome(_round(value, helpers.schema))
    return None


def _base(value: Any, helpers) -> Outcome | None:
    if not _is_finite_number(value): return Outcome(value, [helpers.error(ErrorCode.NUMBER_BASE)])
    if math.isinf(value): return Outcome(value, [helpers.error(ErrorCode.NUMBER_INFINITY)])
    return None


def _compare_rule(value: Any, helpers, args: dict, rule) -> Any:
    if compare(value, args["limit"], rule.operator): return value
    return helpers.error(f"number.{rule.name}", {"limit": args["limit"]})


def _integer(value: Any, helpers, args: dict, rule) -> Any:
    if isinstance(value, int) or value.is_integer(): return value
    return helpers.error(ErrorCode.NUMBER_INTEGER)


def _precision(value: Any, helpers, args: dict, rule) -> Any:
    if _decimals(value) <= args["limit"]: return value
    return helpers.error(ErrorCode.NUMBER_PRECISION, {"limit": args["limit"]})


def _multiple(value: Any, helpers, args: dict, rule) -> Any:
    base = args["base"]
    scale = 10 ** max(_decimals(value), _decimals(base))
    if round(value * scale) % round(base * scale) == 0: return value
    return helpers.error(ErrorCode.NUMBER_MULTIPLE, {"multiple": base})


def _sign(value: Any, helpers, args: dict, rule) -> Any:
    if (value > 0) if args["sign"] == "positive" else (value < 0): return value
    return helpers.error(ErrorCode.NUMBER_POSITIVE if args["sign"] == "positive" else ErrorCode.NUMBER_NEGATIVE)


def _port(value: Any, helpers, args: dict, rule) -> Any:
    if (isinstance(value, int) or value.is_integer()) and 0 <= value <= 65535: return value
    return helpers.error(ErrorCode.NUMBER_PORT)


_NUMBER_LIMIT = RuleArg("limit", _is_finite_number, "must be a number")

NUMBER_RULES: dict[str, RuleDefinition] = {
    "compare": RuleDefinition("compare", _compare_rule, args=(_NUMBER_LIMIT,)),
    "integer": RuleDefinition("integer", _integer),
    "precision": RuleDefinition("precision", _precision,
        args=(RuleArg("limit", lambda v: isinstance(v, int) and not isinstance(v, bool), "must be an integer", ref=False),)),
    "multiple": RuleDefinition("multiple", _multiple,
        args=(RuleArg("base", lambda v: _is_finite_number(v) and v > 0, "must be a positive number"),), multi=True),
    "sign": RuleDefinition("sign", _sign),
    "port": RuleDefinition("port", _port),
}

NUMBER_MESSAGES = {
    ErrorCode.NUMBER_BASE: '"{label}" must be a number',
    ErrorCode.NUMBER_INFINITY: '"{label}" cannot be infinity',
    ErrorCode.NUMBER_MIN: '"{label}" must be greater than or equal to {limit}',
    ErrorCode.NUMBER_MAX: '"{label}" must be less than or equal to {limit}',
    ErrorCode.NUMBER_GREATER: '"{label}" must be greater than {limit}',
    ErrorCode.NUMBER_LESS: '"{label}" must be less than {limit}',
    ErrorCode.NUMBER_INTEGER: '"{label}" must be an integer',
    ErrorCode.NUMBER_PRECISION: '"{label}" must have no more than {limit} decimal places',
    ErrorCode.NUMBER_MULTIPLE: '"{label}" must be a multiple of {multiple}',
    ErrorCode.NUMBER_POSITIVE: '"{label}" must be a positive number',
    ErrorCode.NUMBER_NEGATIVE: '"{label}" must be a negative number',
    ErrorCode.NUMBER_PORT: '"{label}" must be a valid port',
}

define("number", NumberSchema, base_check=_base, coerce=Coercion((str, int, float), _coerce), rules=NUMBER_RULES,
    messages=NUMBER_MESSAGES, casts={"string": Cast(is_number, lambda value, helpers: str(value))})
