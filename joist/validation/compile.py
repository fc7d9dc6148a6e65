"""Literal compilation: plain Python values used where a schema is expected.

    "x", 1, True, None      -> any().valid(value)
    [a, b]                  -> any().valid(a, b), or alternatives().try_(...) when an item is not a literal
    {"a": ...}              -> object().keys({...})
    re.compile(...)         -> string().pattern(...)
    datetime                -> date().valid(value)
    Reference               -> any().valid(ref)
"""
from __future__ import annotations

import re
from datetime import datetime
from typing import Any

from joist.errors import assert_schema, schema_error

from .common import UNDEFINED, is_number, is_schema
from .ref import Reference


def _simple(value: Any) -> bool:
    return value is None or isinstance(value, (bool, str, bytes)) or is_number(value)


def compile_schema(config: Any):
    """Schema for config; schemas are returned unchanged.

    Raises:
        SchemaError: config cannot be expressed as a schema
    """
    from .types.alternatives import AlternativesSchema
    from .types.any import AnySchema
    from .types.date import DateSchema
    from .types.object import ObjectSchema
    from .types.string import StringSchema

    assert_schema(config is not UNDEFINED, "Invalid undefined schema")

    if isinstance(config, (list, tuple)):
        assert_schema(config, "Invalid empty array schema")
        if len(config) == 1: config = config[0]

    if is_schema(config): return config
    if _simple(config) or isinstance(config, Reference): return AnySchema().valid(config)

    if isinstance(config, (list, tuple)):
        if all(_simple(item) for item in config): return AnySchema().valid(*config)
        return AlternativesSchema().try_(*config)

    if isinstance(config, re.Pattern): return StringSchema().pattern(config)
    if isinstance(config, datetime): return DateSchema().valid(config)
    if isinstance(config, dict): return ObjectSchema().keys(config)
    raise schema_error("Invalid schema content:", type(config).__name__)
