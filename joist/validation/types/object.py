"""Object Type

Composes child schemas over dict values. Validation of one object runs:

    shallow copy -> renames -> keys (dependency order) -> patterns -> unknown keys -> dependencies

Features:
- Children topologically sorted at build time so a key referencing a sibling is validated after it
- Renames with aliasing, regex sources, multiple/override guards
- Pattern keys (regex or schema) with optional exclusive matching and match-list schemas
- Peer dependencies: with, without, xor, oxor, or, and, nand
- Assertions on nested references, instance checks, key-count limits
"""
from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any, Mapping

from joist.errors import ErrorCode, Ok, SchemaError, assert_schema, schema_error
from joist.logging import schema_logger

from ..coercion import JsonToContainer
from ..common import UNDEFINED, compare, is_schema
from ..ref import Reference, create as create_ref, require_reference
from ..registry import Coercion, RuleArg, RuleDefinition
from ..schema import Schema
from ..validator import Outcome, validate
from .any import LIMIT_ARG, LIMIT_OPERATORS, define

DEPENDENCY_TYPES = ("with", "without", "xor", "oxor", "or", "and", "nand")


@dataclass(frozen=True, slots=True)
class Child:
    key: str
    schema: Schema


@dataclass(frozen=True, slots=True)
class Rename:
    source: str | re.Pattern
    target: str
    alias: bool = False
    multiple: bool = False
    override: bool = False
    ignore_undefined: bool = False

    @property
    def options(self) -> dict[str, bool]:
        return {name: getattr(self, name) for name in ("alias", "multiple", "override", "ignore_undefined")
            if getattr(self, name)}


@dataclass(frozen=True, slots=True)
class Dependency:
    """Peer relation between keys of the same object.

    - key: main key (with/without only), resolved against the object itself
    - peers: peer references, resolved against the object itself
    - paths: peer keys as declared
    """
    type: str
    key: Reference | None
    peers: tuple[Reference, ...]
    paths: tuple[str, ...]
    separator: str = "."


@dataclass(frozen=True, slots=True)
class Pattern:
    rule: Schema
    regex: re.Pattern | None = None
    schema: Schema | None = None
    exclusive: bool = False
    matches: Schema | None = None

    def test(self, key: str, state, prefs) -> bool:
        if self.regex is not None:
            return self.regex.search(key) is not None
        return self.schema._match(key, state, prefs)


class ObjectSchema(Schema):
    type = "object"

    def _init(self) -> None:
        self._terms.update({"keys": None, "renames": (), "dependencies": (), "patterns": ()})

    # ------------------------------------------------------------------
    # Keys
    # ------------------------------------------------------------------

    def keys(self, schema: Mapping[str, Any] | None = None) -> ObjectSchema:
        """Declare children.

        ``None`` allows any key, ``{}`` allows none, otherwise the given
        children are added (replacing existing children of the same name).
        """
        assert_schema(schema is None or isinstance(schema, Mapping), "Object schema must be a valid object")
        assert_schema(not is_schema(schema), "Object schema cannot be a schema")
        obj = self.clone()
        if schema is None:
            obj._terms["keys"] = None
        elif not schema:
            obj._terms["keys"] = ()
        else:
            children = [child for child in obj._terms["keys"] or () if child.key not in schema]
            for key, value in schema.items():
                assert_schema(isinstance(key, str), "Object keys must be strings:", key)
                try:
                    children.append(Child(key, self._cast(value)))
                except SchemaError as e:
                    raise schema_error(f"{e.message} (key {key})") from e
            obj._terms["keys"] = tuple(children)
        return obj._rebuild()

    def append(self, schema: Mapping[str, Any] | None = None) -> ObjectSchema:
        if not schema:
            return self
        return self.keys(schema)

    def unknown(self, allow: bool = True) -> ObjectSchema:
        return self._set_flag("unknown", allow is not False)

    def pattern(self, pattern: re.Pattern | str | Schema, schema: Any, *, exclusive: bool = False,
                matches: Any = None) -> ObjectSchema:
        """Validate unknown keys matching pattern against schema."""
        if isinstance(pattern, str):
            pattern = re.compile(pattern)
        is_regex = isinstance(pattern, re.Pattern)
        assert_schema(is_regex or is_schema(pattern), "pattern must be a regex or schema")
        entry = Pattern(
            rule=self._cast(schema),
            regex=pattern if is_regex else None,
            schema=None if is_regex else pattern,
            exclusive=bool(exclusive),
            matches=self._cast(matches) if matches is not None else None,
        )
        obj = self.clone()
        obj._terms["patterns"] = (*obj._terms["patterns"], entry)
        return obj._rebuild()

    def rename(self, source: str | re.Pattern, target: str, *, alias: bool = False, multiple: bool = False,
               override: bool = False, ignore_undefined: bool = False) -> ObjectSchema:
        """Move a key (or every key matching a regex) to target before children are validated.

        With a regex source, target may use match groups (``\\1``, ``\\g<name>``).
        """
        assert_schema(isinstance(source, (str, re.Pattern)), "Rename missing the from argument")
        assert_schema(isinstance(target, str), "Invalid rename to argument")
        assert_schema(target != source, "Cannot rename key to same name:", source)
        for existing in self._terms["renames"]:
            assert_schema(existing.source != source, "Cannot rename the same key multiple times")
        obj = self.clone()
        obj._terms["renames"] = (*obj._terms["renames"],
            Rename(source, target, bool(alias), bool(multiple), bool(override), bool(ignore_undefined)))
        return obj

    # ------------------------------------------------------------------
    # Dependencies
    # ------------------------------------------------------------------

    def _dependency(self, type: str, key: str | None, peers: Any, separator: str = ".") -> ObjectSchema:
        assert_schema(type in DEPENDENCY_TYPES, "Unknown dependency type", type)
        assert_schema(key is None or isinstance(key, str), type, "key must be a string")
        paths = [peers] if isinstance(peers, str) else list(peers)
        assert_schema(paths, f"{type}() requires at least one peer")
        for peer in paths:
            assert_schema(isinstance(peer, str), type, "peers must be strings")
        dependency = Dependency(
            type=type,
            key=create_ref(key, separator=separator, ancestor=0) if key is not None else None,
            peers=tuple(create_ref(peer, separator=separator, ancestor=0) for peer in paths),
            paths=tuple(paths),
            separator=separator,
        )
        obj = self.clone()
        obj._terms["dependencies"] = (*obj._terms["dependencies"], dependency)
        return obj

    def with_(self, key: str, peers: str | list[str], separator: str = ".") -> ObjectSchema:
        """When key is present, every peer must be present."""
        return self._dependency("with", key, peers, separator)

    def without(self, key: str, peers: str | list[str], separator: str = ".") -> ObjectSchema:
        """When key is present, no peer may be present."""
        return self._dependency("without", key, peers, separator)

    def xor(self, *peers: str, separator: str = ".") -> ObjectSchema:
        """Exactly one peer must be present."""
        return self._dependency("xor", None, peers, separator)

    def oxor(self, *peers: str, separator: str = ".") -> ObjectSchema:
        """At most one peer may be present."""
        return self._dependency("oxor", None, peers, separator)

    def or_(self, *peers: str, separator: str = ".") -> ObjectSchema:
        """At least one peer must be present."""
        return self._dependency("or", None, peers, separator)

    def and_(self, *peers: str, separator: str = ".") -> ObjectSchema:
        """All peers or none of them."""
        return self._dependency("and", None, peers, separator)

    def nand(self, *peers: str, separator: str = ".") -> ObjectSchema:
        """Not all peers at once."""
        return self._dependency("nand", None, peers, separator)

    # ------------------------------------------------------------------
    # Rules
    # ------------------------------------------------------------------

    def assert_(self, ref: Reference | str, schema: Any, message: str | None = None) -> ObjectSchema:
        """Require the value at a nested reference to match schema."""
        ref = require_reference(ref, "assert")
        assert_schema(ref.kind == "global" or ref.depth > 1,
            "Cannot use assertions for root level references - use direct key rules instead")
        assert_schema(message is None or isinstance(message, str), "Message must be a string")
        return self._add_rule("assert", args={"ref": ref, "schema": self._cast(schema), "message": message})

    def instance(self, constructor: type, name: str | None = None) -> ObjectSchema:
        assert_schema(isinstance(constructor, type), "constructor must be a class")
        return self._add_rule("instance", args={"constructor": constructor, "name": name or constructor.__name__})

    def ref(self) -> ObjectSchema:
        """Require the value to be a Reference."""
        return self._add_rule("ref")

    def schema(self, type: str = "any") -> ObjectSchema:
        """Require the value to be a schema, of the given type unless type is ``"any"``."""
        return self._add_rule("schema", args={"type": type})

    def min(self, limit: int | Reference) -> ObjectSchema:
        return self._add_rule("min", method="length", args={"limit": limit}, operator=LIMIT_OPERATORS["min"])

    def max(self, limit: int | Reference) -> ObjectSchema:
        return self._add_rule("max", method="length", args={"limit": limit}, operator=LIMIT_OPERATORS["max"])

    def length(self, limit: int | Reference) -> ObjectSchema:
        return self._add_rule("length", method="length", args={"limit": limit}, operator=LIMIT_OPERATORS["length"])

    # ------------------------------------------------------------------
    # Structure
    # ------------------------------------------------------------------

    def _rebuild_terms(self) -> None:
        keys = self._terms.get("keys")
        if keys:
            ordered = _sort(keys)
            if [c.key for c in ordered] != [c.key for c in keys]:
                schema_logger().debug("key_order_computed", keys=[c.key for c in ordered])
            self._terms["keys"] = ordered
            for child in ordered:
                self._register(child.schema)
        for pattern in self._terms.get("patterns") or ():
            for schema in (pattern.schema, pattern.rule, pattern.matches):
                if schema is not None:
                    self._register(schema)

    def _concat_terms(self, source: Schema) -> None:
        source_keys = source._terms.get("keys")
        if source_keys is not None:
            merged = list(self._terms.get("keys") or ())
            for child in source_keys:
                for i, existing in enumerate(merged):
                    if existing.key == child.key:
                        merged[i] = Child(child.key, existing.schema.concat(child.schema))
                        break
                else:
                    merged.append(child)
            self._terms["keys"] = tuple(merged)
        for name in ("renames", "dependencies", "patterns", "notes", "tags", "metas", "examples"):
            self._terms[name] = (*(self._terms.get(name) or ()), *(source._terms.get(name) or ()))

    def _label(self, key: str | list[str]) -> str | list[str]:
        if isinstance(key, (list, tuple)):
            return [self._label(k) for k in key]
        for child in self._terms.get("keys") or ():
            if child.key == key:
                return child.schema._flags.get("label", key)
        return key


def _sort(children: tuple[Child, ...]) -> tuple[Child, ...]:
    """Order children so each follows the siblings its references point to (Kahn's algorithm)."""
    names = {child.key for child in children}
    after: dict[str, list[str]] = {}
    for child in children:
        roots = [root for root in child.schema._refs.roots() if root in names]
        if child.key in roots:
            raise schema_error(f"Key {child.key} references itself")
        after[child.key] = roots

    ordered: list[Child] = []
    placed: set[str] = set()
    pending = list(children)
    while pending:
        for i, child in enumerate(pending):
            if all(root in placed for root in after[child.key]):
                break
        else:
            raise schema_error("Cyclic key dependencies between", ", ".join(c.key for c in pending))
        ordered.append(pending.pop(i))
        placed.add(child.key)
    return tuple(ordered)


# ============================================================================
# Coercion and base check
# ============================================================================

def _coerce(value: str, helpers) -> Outcome | None:
    rule = JsonToContainer(dict)
    if not rule.can_coerce(value):
        return None
    match rule(value):
        case Ok(parsed):
            return Outcome(parsed)
    return None


def _base(value: Any, helpers) -> Outcome | None:
    schema = helpers.schema
    if not isinstance(value, dict):
        if isinstance(value, Reference) and schema._rules_named("ref"):
            return None
        if is_schema(value) and schema._rules_named("schema"):
            return None
        return Outcome(value, [helpers.error(ErrorCode.OBJECT_BASE)])
    terms = schema._terms
    if terms["keys"] is None and not terms["renames"] and not terms["dependencies"] and not terms["patterns"]:
        return None

    value = dict(value)
    errors: list = []
    abort = helpers.prefs.abort_early

    if terms["renames"] and not _rename(value, errors, helpers):
        return Outcome(value, errors)

    if terms["keys"] is not None or terms["patterns"]:
        unprocessed = list(value)
        if _children(value, unprocessed, errors, helpers) and abort:
            return Outcome(value, errors)
        if _patterns(value, unprocessed, errors, helpers) and abort:
            return Outcome(value, errors)
        if _unknown(value, unprocessed, errors, helpers) and abort:
            return Outcome(value, errors)

    for dependency in terms["dependencies"]:
        failed = _DEPENDENCIES[dependency.type](schema, dependency, value, helpers)
        if failed is None:
            continue
        code, local = failed
        errors.append(helpers.error(code, local, value=value))
        if abort:
            return Outcome(value, errors)

    return Outcome(value, errors)


def _rename(value: dict, errors: list, helpers) -> bool:
    renamed: set[str] = set()
    for rename in helpers.schema._terms["renames"]:
        is_pattern = not isinstance(rename.source, str)
        matches: list[tuple[str, str]] = []
        if not is_pattern:
            if rename.source in value and (value[rename.source] is not UNDEFINED or not rename.ignore_undefined):
                matches.append((rename.source, rename.target))
        else:
            for source in list(value):
                if value[source] is UNDEFINED and rename.ignore_undefined:
                    continue
                if source == rename.target:
                    continue
                found = rename.source.search(source)
                if found:
                    matches.append((source, found.expand(rename.target)))

        for source, target in matches:
            if source == target:
                continue
            local = {"from": source, "to": target, "pattern": is_pattern}
            if not rename.multiple and target in renamed:
                errors.append(helpers.error(ErrorCode.OBJECT_RENAME_MULTIPLE, local, value=value))
                if helpers.prefs.abort_early:
                    return False
            if target in value and not rename.override and target not in renamed:
                errors.append(helpers.error(ErrorCode.OBJECT_RENAME_OVERRIDE, local, value=value))
                if helpers.prefs.abort_early:
                    return False

            if value[source] is UNDEFINED:
                value.pop(target, None)
            else:
                value[target] = value[source]
            renamed.add(target)
            if not rename.alias:
                value.pop(source, None)
    return True


def _children(value: dict, unprocessed: list, errors: list, helpers) -> bool:
    """Validate declared keys; True when an error was added."""
    state, prefs = helpers.state, helpers.prefs
    ancestors = (value, *state.ancestors)
    failed = False
    for child in helpers.schema._terms["keys"] or ():
        key = child.key
        item = value.get(key, UNDEFINED)
        if key in unprocessed:
            unprocessed.remove(key)

        local_state = state.localize((*state.path, key), ancestors, child.schema)
        outcome = validate(item, child.schema, local_state, prefs)
        if outcome.errors:
            errors.extend(outcome.errors)
            failed = True
            if prefs.abort_early:
                return True
        elif child.schema._flags.get("result") == "strip" or (outcome.value is UNDEFINED and item is not UNDEFINED):
            value.pop(key, None)
        elif outcome.value is not UNDEFINED:
            value[key] = outcome.value
    return failed


def _patterns(value: dict, unprocessed: list, errors: list, helpers) -> bool:
    patterns = helpers.schema._terms["patterns"]
    if not unprocessed or not patterns:
        return False
    state, prefs = helpers.state, helpers.prefs
    ancestors = (value, *state.ancestors)
    matched: list[list[str]] = [[] for _ in patterns]
    failed = False

    for key in list(unprocessed):
        local_state = state.localize((*state.path, key), ancestors)
        for i, pattern in enumerate(patterns):
            if not pattern.test(key, state, prefs):
                continue
            if key in unprocessed:
                unprocessed.remove(key)
            outcome = validate(value[key], pattern.rule, local_state.nest(pattern.rule), prefs)
            if outcome.errors:
                errors.extend(outcome.errors)
                failed = True
                if prefs.abort_early:
                    return True
            matched[i].append(key)
            if outcome.value is UNDEFINED:
                value.pop(key, None)
            else:
                value[key] = outcome.value
            if pattern.exclusive:
                break

    for pattern, keys in zip(patterns, matched):
        if pattern.matches is None:
            continue
        outcome = validate(keys, pattern.matches, state.localize(state.path, ancestors), prefs)
        if outcome.errors:
            errors.append(helpers.error(ErrorCode.OBJECT_PATTERN_MATCH,
                {"matches": keys, "details": [report.type for report in outcome.errors]}, value=value))
            failed = True
            if prefs.abort_early:
                return True
    return failed


def _unknown(value: dict, unprocessed: list, errors: list, helpers) -> bool:
    if not unprocessed:
        return False
    schema, state, prefs = helpers.schema, helpers.state, helpers.prefs
    flag = schema._flags.get("unknown")

    if prefs.strip_objects and not flag:
        for key in unprocessed:
            value.pop(key, None)
        return False

    if flag if flag is not None else prefs.allow_unknown:
        return False

    for key in unprocessed:
        local_state = state.localize((*state.path, key), ())
        errors.append(helpers.error(ErrorCode.OBJECT_ALLOW_UNKNOWN, {"child": key}, local_state,
            value=value[key], flags={}))
        if prefs.abort_early:
            return True
    return True


# ============================================================================
# Dependencies
# ============================================================================

def _present(dependency: Dependency, value: dict, helpers) -> tuple[list[str], list[str]]:
    present, missing = [], []
    for peer, path in zip(dependency.peers, dependency.paths):
        resolved = peer.resolve(value, helpers.state, helpers.prefs, shadow=False)
        (missing if resolved is UNDEFINED else present).append(path)
    return present, missing


def _with(schema, dependency, value, helpers):
    if dependency.key.resolve(value, helpers.state, helpers.prefs, shadow=False) is UNDEFINED:
        return None
    for peer, path in zip(dependency.peers, dependency.paths):
        if peer.resolve(value, helpers.state, helpers.prefs, shadow=False) is UNDEFINED:
            return ErrorCode.OBJECT_WITH, _main_peer(schema, dependency, path)
    return None


def _without(schema, dependency, value, helpers):
    if dependency.key.resolve(value, helpers.state, helpers.prefs, shadow=False) is UNDEFINED:
        return None
    for peer, path in zip(dependency.peers, dependency.paths):
        if peer.resolve(value, helpers.state, helpers.prefs, shadow=False) is not UNDEFINED:
            return ErrorCode.OBJECT_WITHOUT, _main_peer(schema, dependency, path)
    return None


def _main_peer(schema, dependency, path: str) -> dict:
    main = dependency.key.key
    return {"main": main, "mainWithLabel": schema._label(main), "peer": path, "peerWithLabel": schema._label(path)}


def _peers(schema, dependency) -> dict:
    return {"peers": list(dependency.paths), "peersWithLabels": schema._label(list(dependency.paths))}


def _xor(schema, dependency, value, helpers):
    present, _ = _present(dependency, value, helpers)
    if len(present) == 1:
        return None
    if not present:
        return ErrorCode.OBJECT_MISSING, _peers(schema, dependency)
    return ErrorCode.OBJECT_XOR, {**_peers(schema, dependency), "present": present,
        "presentWithLabels": schema._label(present)}


def _oxor(schema, dependency, value, helpers):
    present, _ = _present(dependency, value, helpers)
    if len(present) <= 1:
        return None
    return ErrorCode.OBJECT_OXOR, {**_peers(schema, dependency), "present": present,
        "presentWithLabels": schema._label(present)}


def _or(schema, dependency, value, helpers):
    present, _ = _present(dependency, value, helpers)
    if present:
        return None
    return ErrorCode.OBJECT_MISSING, _peers(schema, dependency)


def _and(schema, dependency, value, helpers):
    present, missing = _present(dependency, value, helpers)
    if not present or not missing:
        return None
    return ErrorCode.OBJECT_AND, {"present": present, "presentWithLabels": schema._label(present),
        "missing": missing, "missingWithLabels": schema._label(missing)}


def _nand(schema, dependency, value, helpers):
    present, missing = _present(dependency, value, helpers)
    if missing:
        return None
    main, *rest = dependency.paths
    return ErrorCode.OBJECT_NAND, {"main": main, "mainWithLabel": schema._label(main), "peers": rest,
        "peersWithLabels": schema._label(rest)}


_DEPENDENCIES = {"with": _with, "without": _without, "xor": _xor, "oxor": _oxor, "or": _or, "and": _and, "nand": _nand}


# ============================================================================
# Rules
# ============================================================================

def _assert(value: dict, helpers, args: dict, rule) -> Any:
    ref: Reference = args["ref"]
    state, prefs = helpers.state, helpers.prefs
    resolved = ref.resolve(UNDEFINED, state.localize(state.path, (value, *state.ancestors)), prefs, shadow=False)
    schema = args["schema"]
    entry = state.localize(state.path, (value, *state.ancestors), schema)
    if schema._match(resolved, entry, prefs.model_copy(update={"allow_unknown": True})):
        return value
    return helpers.error(ErrorCode.OBJECT_ASSERT, {"ref": ".".join(ref.path),
        "message": args.get("message") or "pass the assertion test"})


def _instance(value: dict, helpers, args: dict, rule) -> Any:
    if isinstance(value, args["constructor"]):
        return value
    return helpers.error(ErrorCode.OBJECT_INSTANCE, {"type": args["name"]})


def _ref_type(value: Any, helpers, args: dict, rule) -> Any:
    if isinstance(value, Reference):
        return value
    return helpers.error(ErrorCode.OBJECT_REF_TYPE)


def _schema_type(value: Any, helpers, args: dict, rule) -> Any:
    if is_schema(value) and args["type"] in ("any", value.type):
        return value
    return helpers.error(ErrorCode.OBJECT_SCHEMA, {"type": args["type"]})


def _length(value: dict, helpers, args: dict, rule) -> Any:
    if compare(len(value), args["limit"], rule.operator):
        return value
    return helpers.error(f"object.{rule.name}", {"limit": args["limit"]})


OBJECT_RULES = {
    "assert": RuleDefinition("assert", _assert, multi=True),
    "instance": RuleDefinition("instance", _instance, args=(RuleArg("constructor", ref=False),)),
    "length": RuleDefinition("length", _length, args=(LIMIT_ARG,)),
    "ref": RuleDefinition("ref", _ref_type),
    "schema": RuleDefinition("schema", _schema_type, args=(RuleArg("type", lambda t: isinstance(t, str) and bool(t),
        "a type name", ref=False),)),
}

OBJECT_MESSAGES = {
    ErrorCode.OBJECT_BASE: '"{label}" must be of type object',
    ErrorCode.OBJECT_MIN: '"{label}" must have at least {limit} keys',
    ErrorCode.OBJECT_MAX: '"{label}" must have less than or equal to {limit} keys',
    ErrorCode.OBJECT_LENGTH: '"{label}" must have {limit} keys',
    ErrorCode.OBJECT_ALLOW_UNKNOWN: '"{label}" is not allowed',
    ErrorCode.OBJECT_RENAME_MULTIPLE: ('"{label}" cannot rename "{from}" because multiple renames are disabled and '
        'another key was already renamed to "{to}"'),
    ErrorCode.OBJECT_RENAME_OVERRIDE: '"{label}" cannot rename "{from}" because override is disabled and target "{to}" exists',
    ErrorCode.OBJECT_WITH: '"{mainWithLabel}" missing required peer "{peerWithLabel}"',
    ErrorCode.OBJECT_WITHOUT: '"{mainWithLabel}" conflict with forbidden peer "{peerWithLabel}"',
    ErrorCode.OBJECT_XOR: '"{label}" contains a conflict between exclusive peers {peersWithLabels}',
    ErrorCode.OBJECT_OXOR: '"{label}" contains a conflict between optional exclusive peers {peersWithLabels}',
    ErrorCode.OBJECT_MISSING: '"{label}" must contain at least one of {peersWithLabels}',
    ErrorCode.OBJECT_AND: '"{label}" contains {presentWithLabels} without its required peers {missingWithLabels}',
    ErrorCode.OBJECT_NAND: '"{mainWithLabel}" must not exist simultaneously with {peersWithLabels}',
    ErrorCode.OBJECT_ASSERT: '"{ref}" validation failed because "{ref}" failed to {message}',
    ErrorCode.OBJECT_INSTANCE: '"{label}" must be an instance of {type}',
    ErrorCode.OBJECT_PATTERN_MATCH: '"{label}" keys failed to match pattern requirements',
    ErrorCode.OBJECT_REF_TYPE: '"{label}" must be a reference',
    ErrorCode.OBJECT_SCHEMA: '"{label}" must be a schema of {type} type',
}


# ============================================================================
# Manifest hooks
# ============================================================================

def _describe(schema: ObjectSchema, codec) -> dict:
    desc: dict[str, Any] = {}
    terms = schema._terms
    if terms["keys"] is not None:
        desc["keys"] = {child.key: codec.describe(child.schema) for child in terms["keys"]}
    if terms["renames"]:
        desc["renames"] = [{"from": codec.encode(r.source), "to": r.target, "options": r.options}
            for r in terms["renames"]]
    if terms["dependencies"]:
        items = []
        for dependency in terms["dependencies"]:
            item: dict[str, Any] = {"type": dependency.type, "peers": list(dependency.paths)}
            if dependency.key is not None:
                item["key"] = dependency.key.key
            if dependency.separator != ".":
                item["options"] = {"separator": dependency.separator}
            items.append(item)
        desc["dependencies"] = items
    if terms["patterns"]:
        items = []
        for pattern in terms["patterns"]:
            item = {"regex": codec.encode(pattern.regex)} if pattern.regex is not None else {
                "schema": codec.describe(pattern.schema)}
            item["rule"] = codec.describe(pattern.rule)
            if pattern.exclusive:
                item["exclusive"] = True
            if pattern.matches is not None:
                item["matches"] = codec.describe(pattern.matches)
            items.append(item)
        desc["patterns"] = items
    return desc


def _build(obj: ObjectSchema, desc: dict, codec) -> ObjectSchema:
    if "keys" in desc:
        obj = obj.keys({key: codec.build(child) for key, child in desc["keys"].items()})
    for item in desc.get("renames", ()):
        obj = obj.rename(codec.decode(item["from"]), item["to"], **item.get("options", {}))
    for item in desc.get("dependencies", ()):
        obj = obj._dependency(item["type"], item.get("key"), item["peers"], **item.get("options", {}))
    for item in desc.get("patterns", ()):
        pattern = codec.decode(item["regex"]) if "regex" in item else codec.build(item["schema"])
        matches = codec.build(item["matches"]) if "matches" in item else None
        obj = obj.pattern(pattern, codec.build(item["rule"]), exclusive=item.get("exclusive", False), matches=matches)
    return obj


define("object", ObjectSchema, base_check=_base, coerce=Coercion((str,), _coerce), rules=OBJECT_RULES,
    messages=OBJECT_MESSAGES, build=_build, describe=_describe)
