"""Schema Nodes

Immutable, chainable schema objects. Every builder method returns a new
node; the receiver is never mutated, so sub-schemas can be shared freely
between parents and across threads.

Features:
- Flags, ordered rules, allow/deny value sets and type-specific terms
- Reference registry recomputed on every structural change (_rebuild)
- Schema-level preferences with a lazily populated per-node memo
- describe()/validate()/attempt() entrypoints
"""
from __future__ import annotations

import copy
from dataclasses import dataclass, field, replace
from typing import Any, Callable, Iterable, Self

from joist.errors import assert_schema, invalid_argument

from . import preferences as preferences_module
from .common import DEEP_DEFAULT, PRESENCE_MODES, UNDEFINED, is_schema
from .errors import Report, ValidationError
from .ref import RefRegistry, Reference
from .registry import REGISTRY, RuleDefinition, TypeDefinition
from .values import Values
from .validator import ValidationResult, entry, validate


@dataclass(frozen=True, slots=True)
class Rule:
    """A rule attached to a schema.

    - name: rule name (``min``); a single rule replaces an earlier one with the same name
    - method: key into the type's rule table (``length`` for ``min``/``max``)
    - args: arguments, possibly References
    - resolve: names of arguments holding References
    - operator: comparison used by shared limit rules
    - message: template overriding the rendered message
    """
    name: str
    method: str
    args: dict = field(default_factory=dict)
    resolve: tuple[str, ...] = ()
    operator: str | None = None
    message: str | None = None


class Schema:
    """Base schema node; also the ``any`` type."""

    _is_schema = True
    type = "any"

    def __init__(self):
        self._flags: dict[str, Any] = {}
        self._rules: tuple[Rule, ...] = ()
        self._valids = Values()
        self._invalids = Values()
        self._refs = RefRegistry()
        self._preferences: dict[str, Any] | None = None
        self._terms: dict[str, tuple | None] = {"notes": (), "tags": (), "metas": (), "examples": ()}
        self._memo = None
        self._init()

    def _init(self) -> None:
        """Hook for type-specific terms and defaults."""

    def __repr__(self) -> str:
        return f"<{type(self).__name__} type={self.type}>"

    @property
    def _definition(self) -> TypeDefinition:
        return REGISTRY.get(self.type)

    # ------------------------------------------------------------------
    # Cloning and internal mutation (only on fresh clones)
    # ------------------------------------------------------------------

    def clone(self) -> Self:
        obj = copy.copy(self)
        obj._flags = dict(self._flags)
        obj._terms = dict(self._terms)
        obj._refs = self._refs.clone()
        obj._memo = None
        return obj

    def _set_flag(self, name: str, value: Any) -> Self:
        current = self._flags.get(name, UNDEFINED)
        if current is value or (isinstance(value, (str, bool, int)) and type(current) is type(value) and current == value):
            return self
        obj = self.clone()
        if value is UNDEFINED: obj._flags.pop(name, None)
        else: obj._flags[name] = value
        if isinstance(value, Reference) or is_schema(value) or isinstance(current, Reference) or is_schema(current):
            obj._rebuild()
        return obj

    def _add_terms(self, name: str, items: Iterable[Any]) -> Self:
        obj = self.clone()
        obj._terms[name] = (obj._terms.get(name) or ()) + tuple(items)
        return obj

    def _add_rule(self, name: str, *, method: str | None = None, args: dict | None = None,
                  operator: str | None = None) -> Self:
        method = method or name
        definition: RuleDefinition = self._definition.rule(method)
        args = dict(args or {})
        resolve = []
        for arg in definition.args:
            value = args.get(arg.name, UNDEFINED)
            if isinstance(value, Reference):
                assert_schema(arg.ref, f"{name}(): {arg.name} cannot be a reference")
                resolve.append(arg.name)
            elif arg.assert_ is not None and not arg.assert_(value):
                raise invalid_argument(name, arg.name, value, arg.message or "valid")
        rule = Rule(name=name, method=method, args=args, resolve=tuple(resolve), operator=operator)

        obj = self.clone()
        rules = obj._rules
        if not definition.multi: rules = tuple(r for r in rules if r.name != name)
        obj._rules = (rule, *rules) if definition.priority else (*rules, rule)
        if resolve or any(is_schema(v) for v in args.values()): obj._rebuild()
        return obj

    def _rules_named(self, name: str) -> list[Rule]:
        return [rule for rule in self._rules if rule.name == name]

    def _rebuild(self) -> Self:
        """Recompute the reference registry from rules, values, flags and terms."""
        refs = RefRegistry()
        for rule in self._rules:
            for name in rule.resolve:
                refs.register(rule.args[name])
            for value in rule.args.values():
                if is_schema(value): refs.register(value)
        for value in (*self._valids.references(), *self._invalids.references()):
            refs.register(value)
        for name, value in self._flags.items():
            if isinstance(value, Reference) or (is_schema(value) and name != "empty"): refs.register(value)
        self._refs = refs
        self._rebuild_terms()
        return self

    def _rebuild_terms(self) -> None:
        """Hook: register children and recompute derived term structures."""

    def _register(self, schema: Any, family: int | None = None) -> None:
        if family is None: self._refs.register(schema)
        else: self._refs.register(schema, family)

    def _cast(self, value: Any) -> Schema:
        from .compile import compile_schema

        return compile_schema(value)

    def _error(self, code, value: Any, local: dict | None, state, prefs, *, flags: dict | None = None,
               template: str | None = None) -> Report:
        return Report(code=code, value=value, local=local or {}, path=tuple(state.path),
            flags=self._flags if flags is None else flags, prefs=prefs, template=template)

    def _prefs_for(self, prefs):
        """Merge schema-level preferences; memoized for the default preferences."""
        if not self._preferences: return prefs
        if prefs is preferences_module.defaults():
            if self._memo is None: self._memo = preferences_module.merge(prefs, self._preferences)
            return self._memo
        return preferences_module.merge(prefs, self._preferences)

    def _match(self, value: Any, state, prefs) -> bool:
        return not validate(value, self, state.isolated(), prefs).errors

    # ------------------------------------------------------------------
    # Allow / deny
    # ------------------------------------------------------------------

    def _values(self, values: tuple, target: str) -> Self:
        assert_schema(values, f"Missing values in {target.lstrip('_')}")
        obj = self.clone()
        other = "_invalids" if target == "_valids" else "_valids"
        this_set = getattr(obj, target).clone()
        other_set = getattr(obj, other).clone()
        for value in values:
            assert_schema(value is not UNDEFINED, "Cannot call allow/valid/invalid with UNDEFINED")
            assert_schema(not is_schema(value), "Cannot use a schema as an allowed or denied value")
            other_set.remove(value)
            this_set.add(value)
        setattr(obj, target, this_set)
        setattr(obj, other, other_set)
        if any(isinstance(v, Reference) for v in values) or this_set.has_ref or other_set.has_ref: obj._rebuild()
        return obj

    def allow(self, *values: Any) -> Self:
        """Allow the listed values in addition to what the type accepts."""
        return self._values(values, "_valids")

    def valid(self, *values: Any) -> Self:
        """Allow only the listed values."""
        return self.allow(*values).only()

    equal = valid

    def invalid(self, *values: Any) -> Self:
        """Reject the listed values."""
        return self._values(values, "_invalids")

    disallow = invalid

    def only(self, mode: bool = True) -> Self:
        assert_schema(isinstance(mode, bool), "only() mode must be a boolean")
        return self._set_flag("only", True if mode else UNDEFINED)

    # ------------------------------------------------------------------
    # Presence
    # ------------------------------------------------------------------

    def presence(self, mode: str) -> Self:
        assert_schema(mode in PRESENCE_MODES, "Unknown presence mode", mode)
        return self._set_flag("presence", mode)

    def required(self) -> Self:
        return self.presence("required")

    exist = required

    def optional(self) -> Self:
        return self.presence("optional")

    def forbidden(self) -> Self:
        return self.presence("forbidden")

    # ------------------------------------------------------------------
    # Result shaping
    # ------------------------------------------------------------------

    def default(self, value: Any = UNDEFINED) -> Self:
        """Value used when the input is absent.

        Callables are invoked at validation time with ``(parent, helpers)``
        when they accept arguments. Objects accept no argument, meaning
        "build the object from its children's defaults".
        """
        if value is UNDEFINED:
            assert_schema(self.type == "object", "default() requires a value")
            value = DEEP_DEFAULT
        assert_schema(not is_schema(value), "default() value cannot be a schema")
        return self._set_flag("default", value)

    def failover(self, value: Any) -> Self:
        """Value replacing the result when validation fails."""
        assert_schema(value is not UNDEFINED, "failover() requires a value")
        assert_schema(not is_schema(value), "failover() value cannot be a schema")
        return self._set_flag("failover", value)

    def empty(self, schema: Any = UNDEFINED) -> Self:
        """Values matching schema are treated as absent."""
        if schema is UNDEFINED: return self._set_flag("empty", UNDEFINED)
        return self._set_flag("empty", self._cast(schema))

    def strip(self, enabled: bool = True) -> Self:
        """Remove the value from the parent's output."""
        return self._set_flag("result", "strip" if enabled else UNDEFINED)

    def raw(self, enabled: bool = True) -> Self:
        """Return the pre-coercion value."""
        return self._set_flag("result", "raw" if enabled else UNDEFINED)

    def cast(self, to: str | bool) -> Self:
        """Convert the final value, e.g. ``number().cast("string")``; False removes the cast."""
        assert_schema(to is False or (isinstance(to, str) and to in self._definition.casts),
            "Type", self.type, "does not support casting to", to)
        return self._set_flag("cast", UNDEFINED if to is False else to)

    # ------------------------------------------------------------------
    # Metadata
    # ------------------------------------------------------------------

    def label(self, name: str) -> Self:
        assert_schema(isinstance(name, str) and name, "Label name must be a non-empty string")
        return self._set_flag("label", name)

    def description(self, text: str) -> Self:
        assert_schema(isinstance(text, str) and text, "Description must be a non-empty string")
        return self._set_flag("description", text)

    def id(self, value: str) -> Self:
        assert_schema(isinstance(value, str) and value and "." not in value, "id must be a non-empty string without dots")
        return self._set_flag("id", value)

    def note(self, *notes: str) -> Self:
        assert_schema(notes and all(isinstance(n, str) and n for n in notes), "Notes must be non-empty strings")
        return self._add_terms("notes", notes)

    def tag(self, *tags: str) -> Self:
        assert_schema(tags and all(isinstance(t, str) and t for t in tags), "Tags must be non-empty strings")
        return self._add_terms("tags", tags)

    def meta(self, meta: Any) -> Self:
        assert_schema(meta is not UNDEFINED, "Meta cannot be UNDEFINED")
        return self._add_terms("metas", (meta,))

    def example(self, *examples: Any) -> Self:
        assert_schema(examples and UNDEFINED not in examples, "Missing examples")
        return self._add_terms("examples", examples)

    # ------------------------------------------------------------------
    # Preferences
    # ------------------------------------------------------------------

    def prefs(self, **options: Any) -> Self:
        """Preferences applied when validating this node and its children."""
        if not options: return self
        assert_schema("context" not in options, "Cannot override context")
        assert_schema("renderer" not in options, "Cannot set renderer on a schema")
        checked = preferences_module.check(options)
        obj = self.clone()
        merged = dict(obj._preferences or {})
        if "messages" in checked and "messages" in merged: checked["messages"] = {**merged["messages"], **checked["messages"]}
        merged.update(checked)
        obj._preferences = merged
        return obj

    preferences = prefs
    options = prefs

    def strict(self, enabled: bool = True) -> Self:
        return self.prefs(convert=not enabled)

    def message(self, template: str) -> Self:
        """Override the message of the most recently added rule."""
        assert_schema(isinstance(template, str) and template, "message() requires a template string")
        assert_schema(self._rules, "Cannot set message without a rule")
        obj = self.clone()
        obj._rules = (*obj._rules[:-1], replace(obj._rules[-1], message=template))
        return obj

    # ------------------------------------------------------------------
    # Rules and composition
    # ------------------------------------------------------------------

    def custom(self, method: Callable, description: str | None = None) -> Self:
        """Custom validation: ``method(value, helpers)`` returns the new value or raises."""
        assert_schema(callable(method), "custom() method must be a function")
        return self._add_rule("custom", args={"method": method, "description": description})

    def concat(self, source: Schema) -> Self:
        """Merge source into a copy of this schema; source wins on conflicts."""
        assert_schema(is_schema(source), "Invalid schema object")
        assert_schema(self.type == "any" or source.type == "any" or self.type == source.type,
            "Cannot merge type", self.type, "with another type:", source.type)

        obj = self.clone()
        if self.type == "any" and source.type != "any":
            promoted = source.clone()
            promoted._flags, promoted._rules = obj._flags, obj._rules
            promoted._valids, promoted._invalids = obj._valids, obj._invalids
            promoted._preferences = obj._preferences
            promoted._terms = {key: value for key, value in obj._terms.items()}
            for key, value in type(source)()._terms.items():
                promoted._terms.setdefault(key, value)
            obj = promoted

        if source._preferences:
            obj._preferences = {**(obj._preferences or {}), **source._preferences}
        obj._valids = Values.merge(obj._valids, source._valids, source._invalids)
        obj._invalids = Values.merge(obj._invalids, source._invalids, source._valids)

        definition = source._definition
        single = {rule.name for rule in source._rules if not definition.rule(rule.method).multi}
        obj._rules = tuple(rule for rule in obj._rules if rule.name not in single) + source._rules

        source_flags = dict(source._flags)
        if "empty" in obj._flags and "empty" in source_flags:
            obj._flags["empty"] = obj._flags["empty"].concat(source_flags.pop("empty"))
        obj._flags.update(source_flags)

        obj._concat_terms(source)
        return obj._rebuild()

    def _concat_terms(self, source: Schema) -> None:
        for key, terms in source._terms.items():
            if terms is None:
                if not self._terms.get(key): self._terms[key] = None
                continue
            current = self._terms.get(key)
            self._terms[key] = tuple(terms) if not current else current + tuple(terms)

    def when(self, condition: Any, *, is_: Any = UNDEFINED, then: Any = UNDEFINED, otherwise: Any = UNDEFINED,
             switch: list | None = None) -> Schema:
        """Conditional schema: this schema merged with ``then`` or ``otherwise``.

        Returns an alternatives node whose branches are ``self.concat(then)``
        and ``self.concat(otherwise)`` (this schema itself for a missing branch).
        """
        from .types.alternatives import AlternativesSchema

        def branch(value: Any) -> Schema:
            return self if value is UNDEFINED else self.concat(self._cast(value))

        if switch is not None:
            assert_schema(isinstance(switch, list) and switch, '"switch" must be a non-empty list')
            assert_schema(is_ is UNDEFINED and then is UNDEFINED, 'Cannot combine "switch" with "is_" or "then"')
            cases = []
            for i, case in enumerate(switch):
                assert_schema(isinstance(case, dict) and "is_" in case and "then" in case, "Switch case requires is_ and then")
                item = {"is_": case["is_"], "then": branch(case["then"])}
                last = i + 1 == len(switch)
                if "otherwise" in case:
                    assert_schema(last, "Only the last switch case may define otherwise")
                    item["otherwise"] = branch(case["otherwise"])
                cases.append(item)
            if otherwise is not UNDEFINED:
                assert_schema("otherwise" not in cases[-1], 'Cannot specify "otherwise" inside and outside a "switch"')
            cases[-1].setdefault("otherwise", branch(otherwise))
            alternatives = AlternativesSchema().conditional(condition, switch=cases)
        else:
            assert_schema(then is not UNDEFINED or otherwise is not UNDEFINED, 'when() requires "then" or "otherwise"')
            alternatives = AlternativesSchema().conditional(condition, is_=is_, then=branch(then), otherwise=branch(otherwise))
        return alternatives

    # ------------------------------------------------------------------
    # Entrypoints
    # ------------------------------------------------------------------

    def validate(self, value: Any, prefs: Any = None, **options: Any) -> ValidationResult:
        """Validate value; returns ``ValidationResult(value, error)``."""
        return entry(value, self, prefs, **options)

    def attempt(self, value: Any, message: str | None = None, prefs: Any = None, **options: Any) -> Any:
        """Validate value and return the result, raising ValidationError on failure."""
        result = entry(value, self, prefs, **options)
        if result.error is not None:
            if message:
                error = result.error
                raise ValidationError(f"{message} {error.message}", error.details, error.original)
            raise result.error
        return result.value

    def describe(self) -> dict:
        from .manifest import describe

        return describe(self)

