"""Date Type

Features:
- datetime values; naive datetimes compare as UTC
- Coercion from ISO8601 strings and epoch numbers (milliseconds unless ``unix``)
- Limits (min, max, greater, less) accepting ``"now"`` and references
"""
from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from joist.errors import ErrorCode, Ok, assert_schema

from ..coercion import EpochToDateTime, ISO8601ToDateTime, NumericStringToDateTime
from ..common import as_utc, compare, is_number
from ..ref import Reference
from ..registry import Cast, Coercion, RuleArg, RuleDefinition
from ..schema import Schema
from ..validator import Outcome
from .any import define

_COMPARE_OPERATORS = {"min": ">=", "max": "<=", "greater": ">", "less": "<"}


def parse(value: Any, format: str | None = None) -> datetime | None:
    """datetime for value under format, or None when it cannot be read."""
    if isinstance(value, datetime): return value
    if format == "iso":
        if not isinstance(value, str): return None
        result = ISO8601ToDateTime()(value)
    elif format in ("javascript", "unix") or is_number(value):
        unit = format or "javascript"
        result = EpochToDateTime(unit)(value) if is_number(value) else NumericStringToDateTime(unit)(value)
    elif isinstance(value, str):
        result = NumericStringToDateTime()(value)
        if not result.is_ok(): result = ISO8601ToDateTime()(value)
    else:
        return None
    match result:
        case Ok(parsed):
            return parsed
    return None


def _normalize_limit(value: Any) -> Any:
    return value if value == "now" else parse(value)


class DateSchema(Schema):
    type = "date"

    def _compare(self, name: str, date: Any) -> DateSchema:
        if not isinstance(date, Reference):
            date = _normalize_limit(date)
            assert_schema(date is not None, "Invalid date format")
        return self._add_rule(name, method="compare", args={"date": date}, operator=_COMPARE_OPERATORS[name])

    def min(self, date: datetime | str | Reference) -> DateSchema:
        return self._compare("min", date)

    def max(self, date: datetime | str | Reference) -> DateSchema:
        return self._compare("max", date)

    def greater(self, date: datetime | str | Reference) -> DateSchema:
        return self._compare("greater", date)

    def less(self, date: datetime | str | Reference) -> DateSchema:
        return self._compare("less", date)

    def iso(self) -> DateSchema:
        return self._set_flag("format", "iso")

    def timestamp(self, type: str = "javascript") -> DateSchema:
        assert_schema(type in ("javascript", "unix"), '"type" must be one of "javascript, unix"')
        return self._set_flag("format", type)


def _coerce(value: Any, helpers) -> Outcome | None:
    parsed = parse(value, helpers.schema._flags.get("format"))
    return Outcome(parsed) if parsed is not None else None


def _base(value: Any, helpers) -> Outcome | None:
    if isinstance(value, datetime): return None
    format = helpers.schema._flags.get("format")
    if helpers.prefs.convert and format and isinstance(value, str):
        return Outcome(value, [helpers.error(ErrorCode.DATE_FORMAT, {"format": format})])
    return Outcome(value, [helpers.error(ErrorCode.DATE_BASE)])


def _compare_rule(value: datetime, helpers, args: dict, rule) -> Any:
    limit = args["date"]
    instant = datetime.now(timezone.utc) if limit == "now" else as_utc(limit)
    if compare(as_utc(value), instant, rule.operator): return value
    return helpers.error(f"date.{rule.name}", {"limit": limit})


DATE_RULES = {
    "compare": RuleDefinition("compare", _compare_rule,
        args=(RuleArg("date", lambda v: v is not None, "must have a valid date format", normalize=_normalize_limit),)),
}

DATE_MESSAGES = {
    ErrorCode.DATE_BASE: '"{label}" must be a valid date',
    ErrorCode.DATE_FORMAT: '"{label}" must be in {format} format',
    ErrorCode.DATE_MIN: '"{label}" must be greater than or equal to "{limit}"',
    ErrorCode.DATE_MAX: '"{label}" must be less than or equal to "{limit}"',
    ErrorCode.DATE_GREATER: '"{label}" must be greater than "{limit}"',
    ErrorCode.DATE_LESS: '"{label}" must be less than "{limit}"',
}

define("date", DateSchema, base_check=_base, coerce=Coercion((str, int, float), _coerce), rules=DATE_RULES,
    messages=DATE_MESSAGES,
    casts={
        "number": Cast((datetime,), lambda value, helpers: round(as_utc(value).timestamp() * 1000)),
        "string": Cast((datetime,), lambda value, helpers: value.isoformat()),
    })
