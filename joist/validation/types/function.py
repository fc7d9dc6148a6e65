"""Function type: callables, optionally constrained by declared arity or required to be classes.

Arity counts the leading positional parameters that have no default, so
``def f(a, b=1)`` has an arity of 1. Callables whose signature cannot be
inspected have no known arity and fail every arity rule.
"""
from __future__ import annotations

import inspect
from typing import Any, Callable

from joist.errors import ErrorCode

from ..common import is_limit
from ..registry import RuleArg, RuleDefinition
from ..schema import Schema
from ..validator import Outcome
from .any import define

_POSITIONAL = (inspect.Parameter.POSITIONAL_ONLY, inspect.Parameter.POSITIONAL_OR_KEYWORD)


def declared_arity(fn: Callable) -> int | None:
    try:
        params = inspect.signature(fn).parameters.values()
    except (TypeError, ValueError):
        return None
    count = 0
    for param in params:
        if param.kind not in _POSITIONAL or param.default is not inspect.Parameter.empty:
            break
        count += 1
    return count


class FunctionSchema(Schema):
    type = "function"

    def arity(self, n: int) -> FunctionSchema:
        """Exactly n required positional parameters."""
        return self._add_rule("arity", args={"n": n})

    def min_arity(self, n: int) -> FunctionSchema:
        return self._add_rule("min_arity", args={"n": n})

    def max_arity(self, n: int) -> FunctionSchema:
        return self._add_rule("max_arity", args={"n": n})

    def class_(self) -> FunctionSchema:
        """Require a class rather than a plain callable."""
        return self._add_rule("class")


def _base(value: Any, helpers) -> Outcome | None:
    if callable(value):
        return None
    return Outcome(value, [helpers.error(ErrorCode.FUNCTION_BASE)])


def _arity(value: Callable, helpers, args: dict, rule) -> Any:
    n = declared_arity(value)
    if n is not None and n == args["n"]:
        return value
    return helpers.error(ErrorCode.FUNCTION_ARITY, {"n": args["n"]})


def _min_arity(value: Callable, helpers, args: dict, rule) -> Any:
    n = declared_arity(value)
    if n is not None and n >= args["n"]:
        return value
    return helpers.error(ErrorCode.FUNCTION_MIN_ARITY, {"n": args["n"]})


def _max_arity(value: Callable, helpers, args: dict, rule) -> Any:
    n = declared_arity(value)
    if n is not None and n <= args["n"]:
        return value
    return helpers.error(ErrorCode.FUNCTION_MAX_ARITY, {"n": args["n"]})


def _class(value: Callable, helpers, args: dict, rule) -> Any:
    if inspect.isclass(value):
        return value
    return helpers.error(ErrorCode.FUNCTION_CLASS)


def _positive(value: Any) -> bool:
    return is_limit(value) and value > 0


FUNCTION_RULES = {
    "arity": RuleDefinition("arity", _arity, args=(RuleArg("n", is_limit, "a non-negative integer", ref=False),)),
    "min_arity": RuleDefinition("min_arity", _min_arity, args=(RuleArg("n", _positive, "a positive integer", ref=False),)),
    "max_arity": RuleDefinition("max_arity", _max_arity, args=(RuleArg("n", is_limit, "a non-negative integer", ref=False),)),
    "class": RuleDefinition("class", _class),
}

define("function", FunctionSchema, base_check=_base, rules=FUNCTION_RULES,
    messages={
        ErrorCode.FUNCTION_BASE: '"{label}" must be of type function',
        ErrorCode.FUNCTION_ARITY: '"{label}" must have an arity of {n}',
        ErrorCode.FUNCTION_MIN_ARITY: '"{label}" must have an arity greater or equal to {n}',
        ErrorCode.FUNCTION_MAX_ARITY: '"{label}" must have an arity lesser or equal to {n}',
        ErrorCode.FUNCTION_CLASS: '"{label}" must be a class',
    })
