"""Boolean type with configurable truthy/falsy literals."""
from __future__ import annotations

from typing import Any

from joist.errors import ErrorCode, Ok, assert_schema

from ..coercion import StringToBool
from ..common import UNDEFINED
from ..registry import Cast, Coercion
from ..schema import Schema
from ..validator import Outcome
from ..values import Values
from .any import define


class BooleanSchema(Schema):
    type = "boolean"

    def _init(self) -> None:
        self._terms["truthy"] = None
        self._terms["falsy"] = None

    def truthy(self, *values: Any) -> BooleanSchema:
        """Additional values converted to True."""
        return self._literals("truthy", values)

    def falsy(self, *values: Any) -> BooleanSchema:
        """Additional values converted to False."""
        return self._literals("falsy", values)

    def _literals(self, term: str, values: tuple) -> BooleanSchema:
        assert_schema(values, f"Missing {term} values")
        for value in values:
            assert_schema(value is not UNDEFINED, f"Cannot call {term} with UNDEFINED")
        return self._add_terms(term, values)

    def sensitive(self, enabled: bool = True) -> BooleanSchema:
        """Match the ``"true"``/``"false"`` strings and string literals case-sensitively."""
        return self._set_flag("sensitive", True if enabled else UNDEFINED)


def _coerce(value: Any, helpers) -> Outcome | None:
    schema = helpers.schema
    sensitive = bool(schema._flags.get("sensitive"))
    if isinstance(value, str):
        match StringToBool(sensitive=sensitive)(value):
            case Ok(converted):
                return Outcome(converted)

    truthy, falsy = schema._terms.get("truthy"), schema._terms.get("falsy")
    if truthy and Values(truthy).has(value, insensitive=not sensitive): return Outcome(True)
    if falsy and Values(falsy).has(value, insensitive=not sensitive): return Outcome(False)
    return None


def _base(value: Any, helpers) -> Outcome | None:
    if isinstance(value, bool): return None
    return Outcome(value, [helpers.error(ErrorCode.BOOLEAN_BASE)])


def _describe(schema: BooleanSchema, codec) -> dict:
    return {term: [codec.encode(v) for v in schema._terms[term]] for term in ("truthy", "falsy") if schema._terms[term]}


def _build(obj: BooleanSchema, desc: dict, codec) -> BooleanSchema:
    if desc.get("truthy"): obj = obj.truthy(*(codec.decode(v) for v in desc["truthy"]))
    if desc.get("falsy"): obj = obj.falsy(*(codec.decode(v) for v in desc["falsy"]))
    return obj


define("boolean", BooleanSchema, base_check=_base, coerce=Coercion(lambda v: not isinstance(v, bool), _coerce),
    messages={ErrorCode.BOOLEAN_BASE: '"{label}" must be a boolean'}, build=_build, describe=_describe,
    casts={
        "number": Cast((bool,), lambda value, helpers: 1 if value else 0),
        "string": Cast((bool,), lambda value, helpers: "true" if value else "false"),
    })
