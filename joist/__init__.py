"""joist: immutable, chainable schema description and validation

Usage:
    import joist

    user = joist.object_({
        "username": joist.string().alphanum().min(3).max(30).required(),
        "password": joist.string().pattern(re.compile(r"^[a-zA-Z0-9]{3,30}$")),
        "repeat_password": joist.ref("password"),
        "birth_year": joist.number().integer().min(1900).max(2013),
    }).with_("username", "birth_year").xor("password", "access_token")

    result = user.validate({"username": "abc", "birth_year": 1994})
    if result.error:
        print(result.error.to_dict())
"""
from __future__ import annotations

from typing import Any, Callable, Mapping

from joist.config import Settings, get_settings
from joist.errors import AppError, Err, ErrorCode, Ok, Result, SchemaError
from joist.logging import configure_logging
from joist.validation import (
    DEEP_DEFAULT,
    UNDEFINED,
    AlternativesSchema,
    AnySchema,
    ArraySchema,
    BinarySchema,
    BooleanSchema,
    DateSchema,
    ErrorDetail,
    FunctionSchema,
    LazySchema,
    NumberSchema,
    ObjectSchema,
    Preferences,
    Reference,
    Schema,
    StringSchema,
    StripUnknown,
    Validated,
    ValidationError,
    ValidationResult,
    build,
    compile_schema,
    describe,
    is_reference,
    is_schema,
    parse,
    parse_batch,
    ref,
)

__version__ = "0.1.0"


# ============================================================================
# Type constructors
# ============================================================================

def any_() -> AnySchema:
    return AnySchema()


def string() -> StringSchema:
    return StringSchema()


def number() -> NumberSchema:
    return NumberSchema()


def boolean() -> BooleanSchema:
    return BooleanSchema()


def date() -> DateSchema:
    return DateSchema()


def binary() -> BinarySchema:
    return BinarySchema()


def object_(keys: Mapping[str, Any] | None = None) -> ObjectSchema:
    """Object schema; keys, when given, become the allowed children."""
    schema = ObjectSchema()
    return schema if keys is None else schema.keys(keys)


def array() -> ArraySchema:
    return ArraySchema()


def alternatives(*schemas: Any) -> AlternativesSchema:
    schema = AlternativesSchema()
    return schema.try_(*schemas) if schemas else schema


def function() -> FunctionSchema:
    return FunctionSchema()


def lazy(fn: Callable[[], Schema], once: bool = True) -> LazySchema:
    return LazySchema().set(fn, once=once)


bool_ = boolean
alt = alternatives
func = function


# ============================================================================
# Shortcuts
# ============================================================================

def allow(*values: Any) -> AnySchema:
    return AnySchema().allow(*values)


def valid(*values: Any) -> AnySchema:
    return AnySchema().valid(*values)


def invalid(*values: Any) -> AnySchema:
    return AnySchema().invalid(*values)


def required() -> AnySchema:
    return AnySchema().required()


def optional() -> AnySchema:
    return AnySchema().optional()


def forbidden() -> AnySchema:
    return AnySchema().forbidden()


def compile(config: Any) -> Schema:
    """Schema for a literal description (dict, list, regex, scalar or schema)."""
    return compile_schema(config)


def validate(value: Any, schema: Any, prefs: Preferences | dict | None = None, **options: Any) -> ValidationResult:
    return compile_schema(schema).validate(value, prefs, **options)


def attempt(value: Any, schema: Any, message: str | None = None, prefs: Preferences | dict | None = None,
            **options: Any) -> Any:
    """Validated value; raises ValidationError on failure."""
    return compile_schema(schema).attempt(value, message, prefs, **options)


__all__ = [
    "__version__",
    "any_",
    "string",
    "number",
    "boolean",
    "bool_",
    "date",
    "binary",
    "object_",
    "array",
    "alternatives",
    "alt",
    "function",
    "func",
    "lazy",
    "allow",
    "valid",
    "invalid",
    "required",
    "optional",
    "forbidden",
    "ref",
    "compile",
    "validate",
    "attempt",
    "describe",
    "build",
    "parse",
    "parse_batch",
    "is_schema",
    "is_reference",
    "configure_logging",
    "get_settings",
    "Settings",
    "Schema",
    "Reference",
    "Preferences",
    "StripUnknown",
    "Validated",
    "ValidationError",
    "ValidationResult",
    "ErrorDetail",
    "SchemaError",
    "ErrorCode",
    "AppError",
    "Result",
    "Ok",
    "Err",
    "UNDEFINED",
    "DEEP_DEFAULT",
]
