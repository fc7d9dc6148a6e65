"""Alternatives Type

A value is valid when it matches one of several schemas.

Features:
- try_(): ordered candidates, the first success wins
- conditional(): branch on a reference or on a schema peeked against the value
- switch cases expanding into chained conditions
- match("any" | "one" | "all") modes over try_() candidates
- Failure aggregation: alternatives.base, a single surfaced error,
  alternatives.types for plain type mismatches, otherwise every branch error
"""
from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Any

from joist.errors import ErrorCode, assert_schema, is_base_code

from ..common import UNDEFINED, is_schema
from ..errors import Report
from ..ref import TO_SIBLING, Reference, create as create_ref
from ..schema import Schema
from ..validator import Outcome, validate
from .any import define

_MATCH_MODES = ("any", "one", "all")


@dataclass(frozen=True, slots=True)
class Alternative:
    """One entry of an alternatives node.

    Either a plain candidate (schema) or a condition: ref + is_ (or a peek
    schema tested against the value itself) selecting then/otherwise.
    """
    schema: Schema | None = None
    ref: Reference | None = None
    peek: Schema | None = None
    is_: Schema | None = None
    then: Schema | None = None
    otherwise: Schema | None = None


class AlternativesSchema(Schema):
    type = "alternatives"

    def _init(self) -> None:
        self._terms["matches"] = ()

    def try_(self, *schemas: Any) -> AlternativesSchema:
        """Candidates tried in order."""
        assert_schema(schemas, "Missing alternative schemas")
        assert_schema(not self._flags.get("_ended_switch"), "Unreachable condition")
        obj = self.clone()
        obj._terms["matches"] = (*obj._terms["matches"], *(Alternative(schema=self._cast(s)) for s in schemas))
        return obj._rebuild()

    def conditional(self, condition: Any, *, is_: Any = UNDEFINED, then: Any = UNDEFINED, otherwise: Any = UNDEFINED,
                    switch: list | None = None) -> AlternativesSchema:
        """Add a condition on a reference (with ``is_``) or a schema peeked against the value."""
        peek = is_schema(condition)
        assert_schema(not self._flags.get("_ended_switch"), "Unreachable condition")
        assert_schema(peek or isinstance(condition, (Reference, str)), "Invalid condition:", condition)
        if peek:
            assert_schema(is_ is UNDEFINED, '"is_" can not be used with a schema condition')
            assert_schema(switch is None, '"switch" can not be used with a schema condition')
        else:
            assert_schema(is_ is not UNDEFINED or switch is not None, 'Missing "is_" or "switch" option')
        if switch is not None:
            assert_schema(isinstance(switch, list), '"switch" must be a list')
            assert_schema(is_ is UNDEFINED, 'Cannot combine "switch" with "is_"')
            assert_schema(then is UNDEFINED, 'Cannot combine "switch" with "then"')
        else:
            assert_schema(then is not UNDEFINED or otherwise is not UNDEFINED,
                'options must have at least one of "then", "otherwise", or "switch"')

        obj = self.clone()
        entries = list(obj._terms["matches"])
        if switch is None:
            entries.append(obj._condition(condition, is_, then, otherwise))
        else:
            for i, case in enumerate(switch):
                assert_schema(isinstance(case, dict) and "is_" in case, 'Switch statement missing "is_"')
                assert_schema("then" in case, 'Switch statement missing "then"')
                last = i + 1 == len(switch)
                assert_schema(set(case) <= ({"is_", "then", "otherwise"} if last else {"is_", "then"}),
                    "Invalid switch case options:", sorted(case))
                case_otherwise = case.get("otherwise", UNDEFINED)
                if last:
                    assert_schema(otherwise is UNDEFINED or case_otherwise is UNDEFINED,
                        'Cannot specify "otherwise" inside and outside a "switch"')
                    if case_otherwise is UNDEFINED: case_otherwise = otherwise
                entries.append(obj._condition(condition, case["is_"], case["then"], case_otherwise))
        obj._terms["matches"] = tuple(entries)
        return obj._rebuild()

    def _condition(self, condition: Any, is_: Any, then: Any, otherwise: Any) -> Alternative:
        then = self._cast(then) if then is not UNDEFINED else None
        otherwise = self._cast(otherwise) if otherwise is not UNDEFINED else None
        if then is not None and otherwise is not None: self._flags["_ended_switch"] = True

        if is_schema(condition): return Alternative(peek=condition, then=then, otherwise=otherwise)

        ref = condition if isinstance(condition, Reference) else create_ref(condition)
        compiled = self._cast(is_)
        if not (isinstance(is_, Reference) or is_schema(is_)): compiled = compiled.required()
        return Alternative(ref=ref, is_=compiled, then=then, otherwise=otherwise)

    def when(self, condition: Any, *, is_: Any = UNDEFINED, then: Any = UNDEFINED, otherwise: Any = UNDEFINED,
             switch: list | None = None) -> AlternativesSchema:
        return self.conditional(condition, is_=is_, then=then, otherwise=otherwise, switch=switch)

    def match(self, mode: str) -> AlternativesSchema:
        """How many try_() candidates must match: the first (any), exactly one, or all."""
        assert_schema(mode in _MATCH_MODES, "Invalid alternatives match mode", mode)
        if mode != "any":
            for entry in self._terms["matches"]:
                assert_schema(entry.schema is not None, "Cannot combine match mode", mode, "with conditional rules")
        return self._set_flag("match", UNDEFINED if mode == "any" else mode)

    def label(self, name: str) -> AlternativesSchema:
        obj = super().label(name)
        if obj is self: return obj
        obj._terms["matches"] = tuple(
            replace(entry, **{key: getattr(entry, key).label(name) for key in ("schema", "then", "otherwise")
                if getattr(entry, key) is not None})
            for entry in obj._terms["matches"])
        return obj

    def _rebuild_terms(self) -> None:
        # Branches sit at this node's position; the condition reference is resolved from it.
        for entry in self._terms["matches"]:
            if entry.ref is not None: self._register(entry.ref)
            for item in (entry.schema, entry.peek, entry.is_, entry.then, entry.otherwise):
                if item is not None: self._register(item, TO_SIBLING)


# ============================================================================
# Resolution
# ============================================================================

def _base(value: Any, helpers) -> Outcome:
    schema, state, prefs = helpers.schema, helpers.state, helpers.prefs
    if schema._flags.get("match"): return _match_mode(value, helpers)

    errors: list[Report] = []
    for entry in schema._terms["matches"]:
        if entry.schema is not None:
            snapshot = state.mainstay.snapshot()
            outcome = validate(value, entry.schema, state.nest(entry.schema), prefs)
            if not outcome.errors: return outcome
            state.mainstay.restore(snapshot)
            errors.extend(outcome.errors)
            continue

        test = entry.peek or entry.is_
        target = entry.ref.resolve(value, state, prefs) if entry.is_ is not None else value
        if not test._match(target, state.localize(state.path, state.ancestors[:1], test), prefs):
            if entry.otherwise is not None:
                return validate(value, entry.otherwise, state.nest(entry.otherwise), prefs)
        elif entry.then is not None:
            return validate(value, entry.then, state.nest(entry.then), prefs)

    if not errors: return Outcome(value, [helpers.error(ErrorCode.ALTERNATIVES_BASE)])
    if len(errors) == 1: return Outcome(value, errors)

    types = []
    for report in errors:
        if len(report.path) != len(state.path) or not is_base_code(report.code): return Outcome(value, errors)
        types.append(report.type.split(".", 1)[0])
    return Outcome(value, [helpers.error(ErrorCode.ALTERNATIVES_TYPES, {"types": types})])


def _match_mode(value: Any, helpers) -> Outcome:
    schema, state, prefs = helpers.schema, helpers.state, helpers.prefs
    mode = schema._flags["match"]
    entries = schema._terms["matches"]

    matched, failed = [], []
    for i, entry in enumerate(entries):
        snapshot = state.mainstay.snapshot()
        outcome = validate(value, entry.schema, state.nest(entry.schema), prefs)
        if outcome.errors:
            state.mainstay.restore(snapshot)
            failed.append([report.to_detail() for report in outcome.errors])
        else:
            matched.append(outcome.value)

    if not matched: return Outcome(value, [helpers.error(ErrorCode.ALTERNATIVES_ANY, {"details": failed})])
    if mode == "one":
        if len(matched) == 1: return Outcome(matched[0])
        return Outcome(value, [helpers.error(ErrorCode.ALTERNATIVES_ONE)])
    if len(matched) != len(entries):
        return Outcome(value, [helpers.error(ErrorCode.ALTERNATIVES_ALL, {"details": failed})])
    if _has_object(schema):
        merged = matched[0]
        for item in matched[1:]:
            merged = _merge(merged, item)
        return Outcome(merged)
    return Outcome(matched[-1])


def _has_object(schema: AlternativesSchema) -> bool:
    return any(entry.schema.type == "object" or (entry.schema.type == "alternatives" and _has_object(entry.schema))
        for entry in schema._terms["matches"] if entry.schema is not None)


def _merge(target: Any, source: Any) -> Any:
    if not (isinstance(target, dict) and isinstance(source, dict)): return source
    merged = dict(target)
    for key, value in source.items():
        merged[key] = _merge(merged[key], value) if key in merged else value
    return merged


# ============================================================================
# Manifest
# ============================================================================

def _describe(schema: AlternativesSchema, codec) -> dict:
    matches = []
    for entry in schema._terms["matches"]:
        if entry.schema is not None:
            matches.append({"schema": codec.describe(entry.schema)})
            continue
        item = {"ref": entry.ref.describe()} if entry.ref is not None else {"peek": codec.describe(entry.peek)}
        for key in ("is_", "then", "otherwise"):
            branch = getattr(entry, key)
            if branch is not None: item[key.rstrip("_")] = codec.describe(branch)
        matches.append(item)
    return {"matches": matches}


def _build(obj: AlternativesSchema, desc: dict, codec) -> AlternativesSchema:
    for item in desc.get("matches", ()):
        if "schema" in item:
            obj = obj.try_(codec.build(item["schema"]))
            continue
        condition = Reference.build(item["ref"]) if "ref" in item else codec.build(item["peek"])
        options = {key: codec.build(item[name]) for key, name in (("is_", "is"), ("then", "then"), ("otherwise", "otherwise"))
            if name in item}
        obj = obj.conditional(condition, **options)
    return obj


define("alternatives", AlternativesSchema, base_check=_base, build=_build, describe=_describe,
    messages={
        ErrorCode.ALTERNATIVES_BASE: '"{label}" does not match any of the allowed types',
        ErrorCode.ALTERNATIVES_TYPES: '"{label}" must be one of {types}',
        ErrorCode.ALTERNATIVES_ANY: '"{label}" does not match any of the allowed types',
        ErrorCode.ALTERNATIVES_ONE: '"{label}" matches more than one allowed type',
        ErrorCode.ALTERNATIVES_ALL: '"{label}" does not match all of the required types',
    })

