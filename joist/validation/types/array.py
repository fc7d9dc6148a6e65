"""Array Type

Features:
- items(): every element must match one of the item schemas; required items must each be
  matched once, forbidden items must match none
- ordered(): positional schemas
- has(), unique(), sort(), min/max/length
- single(): wrap a non-list value into a one-element list
- JSON-string and tuple coercion
"""
from __future__ import annotations

import functools
from typing import Any, Callable

from joist.errors import Err, ErrorCode, Ok, assert_schema, try_result
from joist.logging import validation_logger

from ..coercion import JsonToContainer
from ..common import UNDEFINED, compare, is_number
from ..errors import ReportList
from ..ref import create as create_ref, reach
from ..registry import Cast, Coercion, RuleArg, RuleDefinition
from ..schema import Schema
from ..validator import Outcome, validate
from ..values import canonical
from .any import LIMIT_ARG, LIMIT_OPERATORS, define


class ArraySchema(Schema):
    type = "array"

    def _init(self) -> None:
        self._terms.update({"items": (), "ordered": (), "_inclusions": (), "_exclusions": (), "_requireds": ()})

    def items(self, *schemas: Any) -> ArraySchema:
        """Allowed element schemas.

        Elements are tried against each schema in order. Required schemas
        must be matched by at least one element; forbidden schemas must not
        match any element.
        """
        assert_schema(schemas, "Missing items")
        compiled = tuple(self._cast(schema) for schema in schemas)
        self._check_single(compiled)
        obj = self._add_rule("items")
        obj._terms["items"] = (*obj._terms["items"], *compiled)
        return obj._rebuild()

    def ordered(self, *schemas: Any) -> ArraySchema:
        """Positional schemas: element i must match schema i."""
        assert_schema(schemas, "Missing ordered items")
        compiled = tuple(self._cast(schema) for schema in schemas)
        self._check_single(compiled)
        obj = self._add_rule("items")
        obj._terms["ordered"] = (*obj._terms["ordered"], *compiled)
        return obj._rebuild()

    def _check_single(self, schemas: tuple) -> None:
        if any(schema.type in ("array", "alternatives") for schema in schemas):
            assert_schema(not self._flags.get("single"), "Cannot specify array item with single rule enabled")

    def has(self, schema: Any) -> ArraySchema:
        """At least one element must match schema."""
        return self._add_rule("has", args={"schema": self._cast(schema)})

    def min(self, limit: int) -> ArraySchema:
        return self._add_rule("min", method="length", args={"limit": limit}, operator=LIMIT_OPERATORS["min"])

    def max(self, limit: int) -> ArraySchema:
        return self._add_rule("max", method="length", args={"limit": limit}, operator=LIMIT_OPERATORS["max"])

    def length(self, limit: int) -> ArraySchema:
        return self._add_rule("length", method="length", args={"limit": limit}, operator=LIMIT_OPERATORS["length"])

    def single(self, enabled: bool = True) -> ArraySchema:
        if enabled:
            for schema in (*self._terms["items"], *self._terms["ordered"]):
                assert_schema(schema.type not in ("array", "alternatives"),
                    "Cannot specify single rule when array has array items")
        return self._set_flag("single", True if enabled else UNDEFINED)

    def sparse(self, enabled: bool = True) -> ArraySchema:
        """Allow UNDEFINED elements."""
        return self._set_flag("sparse", True if enabled else UNDEFINED)

    def sort(self, order: str = "ascending", by: str | None = None) -> ArraySchema:
        """Require sorted elements (sorted during coercion when converting)."""
        assert_schema(order in ("ascending", "descending"), "Invalid sort order", order)
        if by is not None:
            ref = create_ref(by, ancestor=0)
            assert_schema(ref.ancestor == 0 and ref.kind == "value", "Cannot sort by ancestor")
        return self._add_rule("sort", args={"order": order, "by": by})

    def unique(self, comparator: Callable[[Any, Any], bool] | str | None = None, ignore_undefined: bool = False,
               separator: str = ".") -> ArraySchema:
        """Reject duplicates, compared by value, by a key path, or by comparator(a, b)."""
        assert_schema(comparator is None or callable(comparator) or isinstance(comparator, str),
            "comparator must be a function or a string")
        return self._add_rule("unique", args={"comparator": comparator, "ignore_undefined": bool(ignore_undefined),
            "separator": separator})

    def _rebuild_terms(self) -> None:
        inclusions, exclusions, requireds = [], [], []
        for schema in self._terms["items"]:
            self._register(schema)
            presence = schema._flags.get("presence")
            if presence == "required":
                requireds.append(schema)
            elif presence == "forbidden":
                exclusions.append(schema.optional())
            else:
                inclusions.append(schema)
        for schema in self._terms["ordered"]:
            self._register(schema)
        self._terms["_inclusions"] = tuple(inclusions)
        self._terms["_exclusions"] = tuple(exclusions)
        self._terms["_requireds"] = tuple(requireds)


# ============================================================================
# Coercion and base check
# ============================================================================

class _SortFailed(Exception):
    def __init__(self, code: ErrorCode, local: dict | None = None):
        super().__init__(code.value)
        self.code = code
        self.local = local or {}


def _sorted(value: list, args: dict, helpers) -> Outcome:
    order = 1 if args["order"] == "ascending" else -1
    by = create_ref(args["by"], ancestor=0) if args.get("by") else None

    def nulls(a: Any, b: Any) -> int | None:
        if a is b or (type(a) is type(b) and a == b):
            return 0
        if a is UNDEFINED:
            return 1
        if b is UNDEFINED:
            return -1
        if a is None:
            return order
        if b is None:
            return -order
        return None

    def cmp(a: Any, b: Any) -> int:
        result = nulls(a, b)
        if result is not None:
            return result
        if by is not None:
            a, b = by.resolve(a, None, helpers.prefs), by.resolve(b, None, helpers.prefs)
            result = nulls(a, b)
            if result is not None:
                return result
        if is_number(a) and is_number(b):
            return (a > b) - (a < b) if order == 1 else (b > a) - (b < a)
        if type(a) is not type(b):
            raise _SortFailed(ErrorCode.ARRAY_SORT_MISMATCHING)
        if not isinstance(a, str):
            raise _SortFailed(ErrorCode.ARRAY_SORT_UNSUPPORTED, {"type": type(a).__name__})
        return (-1 if a < b else 1) * order

    try:
        return Outcome(sorted(value, key=functools.cmp_to_key(cmp)))
    except _SortFailed as failure:
        return Outcome(value, [helpers.error(failure.code, failure.local, value=value)])


def _coerce(value: Any, helpers) -> Outcome | None:
    if isinstance(value, str):
        rule = JsonToContainer(list)
        if not rule.can_coerce(value):
            return None
        match rule(value):
            case Ok(parsed):
                value = parsed
            case Err(_):
                return None
    elif isinstance(value, tuple):
        value = list(value)
    sort = helpers.schema._rules_named("sort")
    if sort:
        return _sorted(value, sort[-1].args, helpers)
    return Outcome(value)


def _base(value: Any, helpers) -> Outcome | None:
    schema = helpers.schema
    if not isinstance(value, list):
        if schema._flags.get("single"):
            return Outcome([value])
        return Outcome(value, [helpers.error(ErrorCode.ARRAY_BASE)])
    if schema._rules_named("items"):
        return Outcome(list(value))
    if not schema._flags.get("sparse"):
        for i, item in enumerate(value):
            if item is UNDEFINED:
                path = (*helpers.state.path, i)
                return Outcome(value, [helpers.error(ErrorCode.ARRAY_SPARSE, {"key": i, "pos": i},
                    helpers.state.localize(path))])
    return None


def _hashable_list(value: Any) -> bool:
    if not isinstance(value, list):
        return False
    try:
        for item in value:
            hash(item)
    except TypeError:
        return False
    return True


# ============================================================================
# Rules
# ============================================================================

def _items(value: list, helpers, args: dict, rule) -> Any:
    schema, state, prefs = helpers.schema, helpers.state, helpers.prefs
    terms = schema._terms
    requireds = list(terms["_requireds"])
    ordereds = list(terms["ordered"])
    inclusions = [*terms["_inclusions"], *requireds]
    sparse = bool(schema._flags.get("sparse"))
    abort = prefs.abort_early
    ancestors = (value, *state.ancestors)
    errors = ReportList()

    def item_error(code: ErrorCode, local: dict, path: tuple, item: Any):
        return helpers.error(code, local, state.localize(path, schema=schema), value=item)

    i = 0
    while i < len(value):
        item = value[i]
        path = (*state.path, i)

        if not sparse and item is UNDEFINED:
            errors.append(item_error(ErrorCode.ARRAY_SPARSE, {"key": i, "pos": i}, path, UNDEFINED))
            if abort:
                return errors
            if ordereds:
                ordereds.pop(0)
            i += 1
            continue

        local_state = state.localize(path, ancestors, schema)

        excluded = False
        for exclusion in terms["_exclusions"]:
            if not exclusion._match(item, local_state, prefs):
                continue
            errors.append(item_error(ErrorCode.ARRAY_EXCLUDES, {"pos": i}, path, item))
            if abort:
                return errors
            excluded = True
            if ordereds:
                ordereds.pop(0)
            break
        if excluded:
            i += 1
            continue

        if terms["ordered"]:
            if ordereds:
                ordered = ordereds.pop(0)
                outcome = validate(item, ordered, local_state, prefs)
                if outcome.errors:
                    errors.extend(outcome.errors)
                    if abort:
                        return errors
                elif ordered._flags.get("result") == "strip":
                    del value[i]
                    continue
                elif not sparse and outcome.value is UNDEFINED:
                    errors.append(item_error(ErrorCode.ARRAY_SPARSE, {"key": i, "pos": i}, path, UNDEFINED))
                    if abort:
                        return errors
                else:
                    value[i] = outcome.value
                i += 1
                continue
            if not terms["items"]:
                errors.append(helpers.error(ErrorCode.ARRAY_ORDERED_LENGTH, {"pos": i, "limit": len(terms["ordered"])}))
                break

        # Required items
        checks: dict[int, Outcome] = {}
        matched = False
        for j, required in enumerate(requireds):
            outcome = validate(item, required, local_state, prefs)
            checks[id(required)] = outcome
            if outcome.errors:
                continue
            value[i] = outcome.value
            matched = True
            del requireds[j]
            if not sparse and outcome.value is UNDEFINED:
                errors.append(item_error(ErrorCode.ARRAY_SPARSE, {"key": i, "pos": i}, path, UNDEFINED))
                if abort:
                    return errors
            break
        if matched:
            i += 1
            continue

        # Inclusions
        removed = errored = False
        for inclusion in inclusions:
            if any(inclusion is required for required in requireds):
                outcome = checks[id(inclusion)]
            else:
                outcome = validate(item, inclusion, local_state, prefs)
                if not outcome.errors:
                    if inclusion._flags.get("result") == "strip":
                        del value[i]
                        removed = True
                    elif not sparse and outcome.value is UNDEFINED:
                        errors.append(item_error(ErrorCode.ARRAY_SPARSE, {"key": i, "pos": i}, path, UNDEFINED))
                        errored = True
                    else:
                        value[i] = outcome.value
                    matched = True
                    break

            if len(inclusions) == 1:
                if prefs.strip_arrays:
                    del value[i]
                    removed = matched = True
                    break
                errors.extend(outcome.errors)
                if abort:
                    return errors
                errored = True
                break

        if removed:
            continue
        if errored:
            i += 1
            continue

        if terms["_inclusions"] and not matched:
            if prefs.strip_arrays:
                del value[i]
                continue
            errors.append(item_error(ErrorCode.ARRAY_INCLUDES, {"pos": i}, path, item))
            if abort:
                return errors
        i += 1

    if requireds:
        _missed(requireds, errors, helpers, value)
    if ordereds:
        required_ordereds = [s for s in ordereds if s._flags.get("presence") == "required"]
        if required_ordereds:
            _missed(required_ordereds, errors, helpers, value)

    return errors if errors else value


def _missed(requireds: list, errors: list, helpers, value: list) -> None:
    known = [schema._flags["label"] for schema in requireds if schema._flags.get("label")]
    unknown = len(requireds) - len(known)
    if known and unknown:
        errors.append(helpers.error(ErrorCode.ARRAY_INCLUDES_REQUIRED_BOTH,
            {"knownMisses": known, "unknownMisses": unknown}, value=value))
    elif known:
        errors.append(helpers.error(ErrorCode.ARRAY_INCLUDES_REQUIRED_KNOWNS, {"knownMisses": known}, value=value))
    else:
        errors.append(helpers.error(ErrorCode.ARRAY_INCLUDES_REQUIRED_UNKNOWNS, {"unknownMisses": unknown}, value=value))


def _has(value: list, helpers, args: dict, rule) -> Any:
    state = helpers.state
    pattern = args["schema"]
    for i, item in enumerate(value):
        local_state = state.localize((*state.path, i), (value, *state.ancestors), helpers.schema)
        if pattern._match(item, local_state, helpers.prefs):
            return value
    label = pattern._flags.get("label")
    if label:
        return helpers.error(ErrorCode.ARRAY_HAS_KNOWN, {"patternLabel": label})
    return helpers.error(ErrorCode.ARRAY_HAS_UNKNOWN)


def _length(value: list, helpers, args: dict, rule) -> Any:
    if compare(len(value), args["limit"], rule.operator):
        return value
    return helpers.error(f"array.{rule.name}", {"limit": args["limit"]})


def _sort(value: list, helpers, args: dict, rule) -> Any:
    outcome = _sorted(value, args, helpers)
    if outcome.errors:
        return ReportList(outcome.errors)
    if all(a is b for a, b in zip(value, outcome.value)):
        return value
    return helpers.error(ErrorCode.ARRAY_SORT, {"order": args["order"], "by": args.get("by") or "value"})


def _unique(value: list, helpers, args: dict, rule) -> Any:
    comparator = args.get("comparator")
    path = tuple(comparator.split(args["separator"])) if isinstance(comparator, str) else None
    custom = comparator if callable(comparator) else None
    state = helpers.state

    seen: dict[Any, int] = {}
    scanned: list[tuple[Any, int]] = []
    for i, element in enumerate(value):
        item = reach(element, path) if path else element
        if args["ignore_undefined"] and item is UNDEFINED:
            continue

        duplicate = None
        if custom is not None:
            for other, pos in scanned:
                match try_result(lambda: custom(other, item), code=ErrorCode.ANY_CUSTOM, origin="array.unique"):
                    case Ok(same):
                        if same:
                            duplicate = pos
                            break
                    case Err(error):
                        validation_logger().debug("callback_failed", rule="unique", error=error.message)
                        return helpers.error(ErrorCode.ANY_CUSTOM, {"error": error.cause, "message": error.message})
            scanned.append((item, i))
        else:
            key = canonical(item)
            if key[0] == "id":
                for other, pos in scanned:
                    if type(other) is type(item) and other == item:
                        duplicate = pos
                        break
                scanned.append((item, i))
            elif key in seen:
                duplicate = seen[key]
            else:
                seen[key] = i

        if duplicate is not None:
            local = {"pos": i, "dupePos": duplicate, "dupeValue": value[duplicate]}
            if path:
                local["path"] = comparator
            return helpers.error(ErrorCode.ARRAY_UNIQUE, local, state.localize((*state.path, i), schema=helpers.schema),
                value=element)
    return value


ARRAY_RULES = {
    "items": RuleDefinition("items", _items, priority=True, manifest=False),
    "has": RuleDefinition("has", _has, multi=True),
    "length": RuleDefinition("length", _length, args=(LIMIT_ARG,)),
    "sort": RuleDefinition("sort", _sort, convert=True),
    "unique": RuleDefinition("unique", _unique, args=(RuleArg("comparator", ref=False),), multi=True),
}

ARRAY_MESSAGES = {
    ErrorCode.ARRAY_BASE: '"{label}" must be an array',
    ErrorCode.ARRAY_EXCLUDES: '"{label}" contains an excluded value',
    ErrorCode.ARRAY_HAS_KNOWN: '"{label}" does not contain at least one required match for type "{patternLabel}"',
    ErrorCode.ARRAY_HAS_UNKNOWN: '"{label}" does not contain at least one required match',
    ErrorCode.ARRAY_INCLUDES: '"{label}" does not match any of the allowed types',
    ErrorCode.ARRAY_INCLUDES_REQUIRED_BOTH: '"{label}" does not contain {knownMisses} and {unknownMisses} other required value(s)',
    ErrorCode.ARRAY_INCLUDES_REQUIRED_KNOWNS: '"{label}" does not contain {knownMisses}',
    ErrorCode.ARRAY_INCLUDES_REQUIRED_UNKNOWNS: '"{label}" does not contain {unknownMisses} required value(s)',
    ErrorCode.ARRAY_LENGTH: '"{label}" must contain {limit} items',
    ErrorCode.ARRAY_MAX: '"{label}" must contain less than or equal to {limit} items',
    ErrorCode.ARRAY_MIN: '"{label}" must contain at least {limit} items',
    ErrorCode.ARRAY_ORDERED_LENGTH: '"{label}" must contain at most {limit} items',
    ErrorCode.ARRAY_SORT: '"{label}" must be sorted in {order} order by {by}',
    ErrorCode.ARRAY_SORT_MISMATCHING: '"{label}" cannot be sorted due to mismatching types',
    ErrorCode.ARRAY_SORT_UNSUPPORTED: '"{label}" cannot be sorted due to unsupported type {type}',
    ErrorCode.ARRAY_SPARSE: '"{label}" must not be a sparse array item',
    ErrorCode.ARRAY_UNIQUE: '"{label}" contains a duplicate value',
}


def _describe(schema: ArraySchema, codec) -> dict:
    desc = {}
    for term in ("items", "ordered"):
        if schema._terms[term]:
            desc[term] = [codec.describe(item) for item in schema._terms[term]]
    return desc


def _build(obj: ArraySchema, desc: dict, codec) -> ArraySchema:
    if desc.get("items"):
        obj = obj.items(*(codec.build(item) for item in desc["items"]))
    if desc.get("ordered"):
        obj = obj.ordered(*(codec.build(item) for item in desc["ordered"]))
    return obj


define("array", ArraySchema, base_check=_base, coerce=Coercion(lambda v: isinstance(v, (str, tuple, list)), _coerce),
    rules=ARRAY_RULES, messages=ARRAY_MESSAGES, build=_build, describe=_describe,
    casts={"set": Cast(_hashable_list, lambda value, helpers: set(value))})
