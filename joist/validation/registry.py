"""Type Registry

Each concrete schema type contributes a TypeDefinition: its base check,
optional coercion, named rule table, message templates and supported
casts. The validator dispatches by ``schema.type`` and is otherwise type-agnostic.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Mapping

from joist.errors import SchemaError


@dataclass(frozen=True, slots=True)
class RuleArg:
    """Declared rule argument.

    - assert_: predicate the (resolved) argument must satisfy
    - message: reason reported when the predicate fails
    - ref: whether a Reference is accepted in place of a literal
    - normalize: applied to resolved reference values before the predicate
    """
    name: str
    assert_: Callable[[Any], bool] | None = None
    message: str = ""
    ref: bool = True
    normalize: Callable[[Any], Any] | None = None


@dataclass(frozen=True, slots=True)
class RuleDefinition:
    """Named rule of a type.

    - validate: (value, helpers, args, rule) -> value | Report | ReportList
    - convert: rule is applied during coercion when convert is on
    - multi: rule may appear several times (otherwise last one wins)
    - priority: rule runs before all others
    - manifest: rule is described (False when rebuilt from terms)
    """
    name: str
    validate: Callable | None
    args: tuple[RuleArg, ...] = ()
    convert: bool = False
    multi: bool = False
    priority: bool = False
    manifest: bool = True

    def arg(self, name: str) -> RuleArg | None:
        for arg in self.args:
            if arg.name == name: return arg
        return None


@dataclass(frozen=True, slots=True)
class Coercion:
    """Coercion hook: runs when convert is on and the value's type is accepted."""
    from_types: tuple[type, ...] | Callable[[Any], bool]
    method: Callable

    def accepts(self, value: Any) -> bool:
        if isinstance(self.from_types, tuple):
            return isinstance(value, self.from_types) and not (bool not in self.from_types and isinstance(value, bool))
        return self.from_types(value)


@dataclass(frozen=True, slots=True)
class Cast:
    """Conversion applied to a valid value when the schema carries a cast flag."""
    from_types: tuple[type, ...] | Callable[[Any], bool]
    method: Callable

    def accepts(self, value: Any) -> bool:
        if isinstance(self.from_types, tuple):
            return isinstance(value, self.from_types)
        return self.from_types(value)


@dataclass(frozen=True, slots=True)
class TypeDefinition:
    type: str
    schema_class: type
    base_check: Callable | None = None
    coerce: Coercion | None = None
    rules: Mapping[str, RuleDefinition] = field(default_factory=dict)
    messages: Mapping[str, str] = field(default_factory=dict)
    casts: Mapping[str, Cast] = field(default_factory=dict)
    build: Callable | None = None
    describe: Callable | None = None

    def rule(self, name: str) -> RuleDefinition:
        try:
            return self.rules[name]
        except KeyError:
            raise SchemaError(f"Unknown rule {name} for type {self.type}") from None


class TypeRegistry:
    """Registry of type definitions keyed by type tag."""

    def __init__(self):
        self._types: dict[str, TypeDefinition] = {}
        self._messages: dict[str, str] = {}

    def register(self, definition: TypeDefinition) -> TypeDefinition:
        self._types[definition.type] = definition
        self._messages.update(definition.messages)
        return definition

    def get(self, type_name: str) -> TypeDefinition:
        try:
            return self._types[type_name]
        except KeyError:
            raise SchemaError(f"Unknown schema type: {type_name}") from None

    def message(self, code: str) -> str | None:
        return self._messages.get(code)


REGISTRY = TypeRegistry()
