"""The any type: no base check, shared rules and messages for every type."""
from __future__ import annotations

from typing import Any, Callable, Mapping

from joist.errors import Err, ErrorCode, Ok, try_result
from joist.logging import validation_logger

from ..common import is_limit
from ..registry import REGISTRY, Cast, Coercion, RuleArg, RuleDefinition, TypeDefinition
from ..schema import Schema

LIMIT_ARG = RuleArg("limit", is_limit, "must be a positive integer")

LIMIT_OPERATORS = {"min": ">=", "max": "<=", "length": "="}


class AnySchema(Schema):
    type = "any"


def _custom(value: Any, helpers, args: dict, rule) -> Any:
    method = args["method"]
    match try_result(lambda: method(value, helpers), code=ErrorCode.ANY_CUSTOM, origin="custom"):
        case Ok(result):
            if result is None: return value
            return result
        case Err(error):
            validation_logger().debug("callback_failed", rule="custom", error=error.message)
            return helpers.error(ErrorCode.ANY_CUSTOM, {"error": error.cause, "message": error.message,
                "description": args.get("description")})


ANY_RULES: dict[str, RuleDefinition] = {
    "custom": RuleDefinition("custom", _custom, multi=True),
}

ANY_MESSAGES: dict[str, str] = {
    ErrorCode.ANY_REQUIRED: '"{label}" is required',
    ErrorCode.ANY_UNKNOWN: '"{label}" is not allowed',
    ErrorCode.ANY_INVALID: '"{label}" contains an invalid value',
    ErrorCode.ANY_EMPTY: '"{label}" is not allowed to be empty',
    ErrorCode.ANY_ALLOW_ONLY: '"{label}" must be one of {valids}',
    ErrorCode.ANY_REF: '"{label}" {arg} references "{ref}" which {reason}',
    ErrorCode.ANY_DEFAULT: '"{label}" threw an error when running default method',
    ErrorCode.ANY_FAILOVER: '"{label}" threw an error when running failover method',
    ErrorCode.ANY_CUSTOM: '"{label}" failed custom validation because {message}',
}


def define(
    type_name: str,
    schema_class: type,
    *,
    base_check: Callable | None = None,
    coerce: Coercion | None = None,
    rules: Mapping[str, RuleDefinition] | None = None,
    messages: Mapping[str, str] | None = None,
    build: Callable | None = None,
    casts: Mapping[str, Cast] | None = None,
    describe: Callable | None = None,
) -> TypeDefinition:
    """Register a type inheriting the shared any rules and messages."""
    return REGISTRY.register(TypeDefinition(
        type=type_name,
        schema_class=schema_class,
        base_check=base_check,
        coerce=coerce,
        rules={**ANY_RULES, **(rules or {})},
        messages={_key(k): v for k, v in {**ANY_MESSAGES, **(messages or {})}.items()},
        casts=dict(casts or {}),
        build=build,
        describe=describe,
    ))


def _key(code: ErrorCode | str) -> str:
    return code.value if isinstance(code, ErrorCode) else code


define("any", AnySchema)

