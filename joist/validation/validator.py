"""Validator Core

The universal validation protocol every schema node goes through:

    coerce -> empty -> presence -> allow/deny -> base check -> rules -> finalize

Coercion and base-check failures always end the node's evaluation; other
failures end it only when abort_early is set. Failures are returned as
Report lists, never raised. Every user callback runs through try_result.
"""
from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Any, NamedTuple

from joist.errors import ErrorCode, Err, Ok, try_result
from joist.logging import validation_logger

from . import preferences as preferences_module
from .common import DEEP_DEFAULT, UNDEFINED, arity, clone_value
from .errors import Report, ValidationError, as_reports, create_accumulator, process
from .preferences import Preferences
from .ref import AdjustmentError, Reference
from .state import State


@dataclass(slots=True)
class Outcome:
    """Result of validating one node."""
    value: Any
    errors: list[Report] = field(default_factory=list)


class ValidationResult(NamedTuple):
    value: Any
    error: ValidationError | None

    @property
    def is_valid(self) -> bool:
        return self.error is None


@dataclass(slots=True)
class Helpers:
    """Context handed to base checks, coercions and rules."""
    schema: Any
    state: State
    prefs: Preferences
    original: Any
    rule: Any = None
    value: Any = UNDEFINED

    def error(self, code: ErrorCode | str, local: dict | None = None, state: State | None = None,
              *, value: Any = UNDEFINED, flags: dict | None = None) -> Report:
        template = self.rule.message if self.rule is not None else None
        return self.schema._error(code, self.value if value is UNDEFINED else value, local,
            state or self.state, self.prefs, flags=flags, template=template)


def entry(value: Any, schema, prefs: Any = None, **options: Any) -> ValidationResult:
    """Top-level validation of value against schema."""
    settings = preferences_module.resolve(prefs, **options)
    state = State()
    outcome = validate(value, schema, state, settings)
    if not outcome.errors:
        return ValidationResult(outcome.value, None)
    error = process(outcome.errors, value)
    validation_logger().debug("validation_failed", schema_type=schema.type, error_count=len(error.details),
        codes=[d.type for d in error.details])
    return ValidationResult(outcome.value, error)


def validate(value: Any, schema, state: State, prefs: Preferences, overrides: dict | None = None) -> Outcome:
    """Validate value against one schema node."""
    prefs = schema._prefs_for(prefs)
    helpers = Helpers(schema=schema, state=state, prefs=prefs, original=value, value=value)
    try:
        return _evaluate(value, helpers, overrides)
    except AdjustmentError as failure:
        report = _adjustment_report(failure, helpers)
        return finalize(helpers.value, [report], helpers)


def _evaluate(value: Any, helpers: Helpers, overrides: dict | None) -> Outcome:
    schema, state, prefs = helpers.schema, helpers.state, helpers.prefs
    definition = schema._definition
    flags = schema._flags

    # Coerce

    if definition.coerce is not None and value is not UNDEFINED and prefs.convert and definition.coerce.accepts(value):
        coerced = definition.coerce.method(value, helpers)
        if coerced is not None:
            helpers.value = coerced.value
            if coerced.errors:
                return finalize(coerced.value, coerced.errors, helpers)
            value = coerced.value

    # Empty value

    empty = flags.get("empty")
    if empty is not None and value is not UNDEFINED:
        if empty._match(_trim(value, schema), state, preferences_module.defaults()):
            value = UNDEFINED
        helpers.value = value

    # Presence

    presence = (overrides or {}).get("presence") or flags.get("presence") or (
        "ignore" if flags.get("_ended_switch") else prefs.presence)
    if value is UNDEFINED:
        if presence == "forbidden":
            return finalize(value, None, helpers)
        if presence == "required":
            return finalize(value, [schema._error(ErrorCode.ANY_REQUIRED, value, None, state, prefs)], helpers)
        if presence == "optional":
            if flags.get("default") is not DEEP_DEFAULT or prefs.no_defaults:
                return finalize(value, None, helpers)
            value = {}
            helpers.value = value
    elif presence == "forbidden":
        return finalize(value, [schema._error(ErrorCode.ANY_UNKNOWN, value, None, state, prefs)], helpers)

    accumulator = create_accumulator(prefs.abort_early)
    insensitive = bool(flags.get("insensitive"))

    # Allowed values

    if schema._valids:
        match = schema._valids.get(value, state, prefs, insensitive)
        if match is not None:
            if prefs.convert:
                value = match.value
            helpers.value = value
            return finalize(value, None, helpers)

    # Denied values

    if schema._invalids:
        match = schema._invalids.get(value, state, prefs, insensitive)
        if match is not None:
            if value == "" and isinstance(value, str):
                report = schema._error(ErrorCode.ANY_EMPTY, value, None, state, prefs)
            else:
                report = schema._error(ErrorCode.ANY_INVALID, value,
                    {"invalids": schema._invalids.values(strip_undefined=True)}, state, prefs)
            if not accumulator.add(report):
                return finalize(value, accumulator.errors, helpers)

    if flags.get("only"):
        report = schema._error(ErrorCode.ANY_ALLOW_ONLY, value,
            {"valids": schema._valids.values(strip_undefined=True)}, state, prefs)
        if not accumulator.add(report):
            return finalize(value, accumulator.errors, helpers)

    # Base type

    if definition.base_check is not None:
        checked = definition.base_check(value, helpers)
        if checked is not None:
            value = checked.value
            helpers.value = value
            if checked.errors:
                return finalize(value, [*accumulator.errors, *checked.errors], helpers)

    if not schema._rules:
        return finalize(value, accumulator.errors, helpers)
    return _rules(value, accumulator, helpers)


def _trim(value: Any, schema) -> Any:
    if not isinstance(value, str):
        return value
    trim = schema._rules_named("trim")
    return value.strip() if trim and trim[-1].args.get("enabled", True) else value


def _adjustment_report(failure: AdjustmentError, helpers: Helpers) -> Report:
    error = failure.error
    validation_logger().debug("callback_failed", reference=failure.reference.display, error=error.message)
    return helpers.schema._error(ErrorCode.ANY_CUSTOM, helpers.value,
        {"error": error.cause, "message": f'adjusting "{failure.reference}" raised {error.message}'},
        helpers.state, helpers.prefs)


def _rules(value: Any, accumulator, helpers: Helpers) -> Outcome:
    schema, state, prefs = helpers.schema, helpers.state, helpers.prefs
    definition = schema._definition

    for rule in schema._rules:
        rule_definition = definition.rule(rule.method)
        if rule_definition.convert and prefs.convert:
            continue

        args = rule.args
        if rule.resolve:
            args = dict(rule.args)
            failed = None
            for name in rule.resolve:
                reference: Reference = rule.args[name]
                arg = rule_definition.arg(name)
                try:
                    resolved = reference.resolve(value, state, prefs)
                except AdjustmentError as failure:
                    failed = schema._error(ErrorCode.ANY_REF, value, {"arg": name, "ref": reference,
                        "reason": f"could not be adjusted ({failure.error.message})"}, state, prefs)
                    break
                if arg is not None and arg.normalize is not None:
                    resolved = arg.normalize(resolved)
                if arg is not None and arg.assert_ is not None and not arg.assert_(resolved):
                    failed = schema._error(ErrorCode.ANY_REF, resolved,
                        {"arg": name, "ref": reference, "reason": arg.message}, state, prefs)
                    break
                args[name] = resolved
            if failed is not None:
                if not accumulator.add(failed):
                    return finalize(value, accumulator.errors, helpers)
                continue

        rule_helpers = replace(helpers, rule=rule, value=value)
        result = rule_definition.validate(value, rule_helpers, args, rule)
        reports = as_reports(result)
        if reports is None:
            value = result
            continue
        if reports and not accumulator.add(reports):
            return finalize(value, accumulator.errors, helpers)

    return finalize(value, accumulator.errors, helpers)


def finalize(value: Any, errors: list[Report] | None, helpers: Helpers) -> Outcome:
    """Apply failover, default and result shaping."""
    errors = list(errors or [])
    schema, state, prefs = helpers.schema, helpers.state, helpers.prefs

    if errors:
        failover = _default("failover", UNDEFINED, errors, helpers)
        if failover is not UNDEFINED:
            value = failover
            errors = []

    if value is UNDEFINED:
        value = _default("default", value, errors, helpers)

    cast = schema._flags.get("cast")
    if cast is not None and value is not UNDEFINED and not errors and prefs.convert:
        caster = schema._definition.casts[cast]
        if caster.accepts(value):
            value = caster.method(value, helpers)

    outcome = Outcome(value, errors)
    result = schema._flags.get("result")
    if result:
        outcome.value = UNDEFINED if result == "strip" else helpers.original
        state.shadow(value)
    return outcome


def _default(flag: str, value: Any, errors: list[Report], helpers: Helpers) -> Any:
    schema, state, prefs = helpers.schema, helpers.state, helpers.prefs
    source = schema._flags.get(flag, UNDEFINED)
    if prefs.no_defaults or source is UNDEFINED or source is DEEP_DEFAULT:
        return value

    if callable(source) and not isinstance(source, Reference):
        parent = clone_value(state.ancestors[0]) if state.ancestors else UNDEFINED
        count = 0 if isinstance(source, type) else arity(source)
        args = (parent, helpers)[:count]
        match try_result(lambda: source(*args),
                         code=ErrorCode.ANY_DEFAULT if flag == "default" else ErrorCode.ANY_FAILOVER,
                         origin=f"{schema.type}.{flag}"):
            case Ok(computed):
                return computed
            case Err(error):
                validation_logger().debug("callback_failed", flag=flag, error=error.message)
                errors.append(schema._error(error.code, UNDEFINED, {"error": error.cause}, state, prefs))
                return UNDEFINED

    if isinstance(source, Reference):
        try:
            return source.resolve(value, state, prefs)
        except AdjustmentError as failure:
            errors.append(_adjustment_report(failure, helpers))
            return UNDEFINED
    return clone_value(source)
