"""Schema Manifest

describe() turns a schema into a JSON-compatible dict; build() replays a
description into an equivalent schema.

Description layout:
{
    "type": "string",
    "flags": {"presence": "required", "label": "name"},
    "preferences": {"convert": false},
    "allow": [...],                    # members added to the type's default allow set
    "invalid": [...],                  # members added to the type's default deny set
    "rules": [{"name": "min", "method": "length", "args": {"limit": 3}, "operator": ">="}],
    "notes": [...], "tags": [...], "metas": [...], "examples": [...],
    ...                                # type-specific terms (keys, items, matches, ...)
}

Non-JSON values are wrapped in single-key dicts: {"special": "undefined" | "deep" |
"nan" | "inf" | "-inf"}, {"date": iso}, {"buffer": base64}, {"ref": ...},
{"regex": ..., "flags": ...}, {"schema": ...}, {"value": {...}} for plain dicts and
{"function": name} for callables, which cannot be rebuilt.
"""
from __future__ import annotations

import base64
import math
import re
from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError as PydanticValidationError

from joist.errors import SchemaError, assert_schema, schema_error
from joist.logging import schema_logger

from .common import DEEP_DEFAULT, UNDEFINED, is_schema
from .ref import Reference
from .registry import REGISTRY

_METADATA_TERMS = {"notes": "note", "tags": "tag", "metas": "meta", "examples": "example"}

KNOWN_FLAGS = frozenset({
    "presence", "only", "insensitive", "default", "failover", "empty", "label", "description", "result", "id",
    "unknown", "truncate", "single", "sparse", "match", "sensitive", "format", "encoding", "lazy", "once", "cast",
})

_SPECIALS = {"undefined": UNDEFINED, "deep": DEEP_DEFAULT, "nan": math.nan, "inf": math.inf, "-inf": -math.inf}


# ============================================================================
# Description models
# ============================================================================

class RuleDescription(BaseModel):
    model_config = ConfigDict(extra="forbid")

    name: str
    method: str | None = None
    args: dict[str, Any] = Field(default_factory=dict)
    operator: str | None = None
    message: str | None = None


class SchemaDescription(BaseModel):
    """Shape shared by every description; type-specific terms pass through as extras."""
    model_config = ConfigDict(extra="allow")

    type: str
    flags: dict[str, Any] = Field(default_factory=dict)
    preferences: dict[str, Any] | None = None
    allow: list[Any] = Field(default_factory=list)
    invalid: list[Any] = Field(default_factory=list)
    rules: list[RuleDescription] = Field(default_factory=list)
    notes: list[Any] = Field(default_factory=list)
    tags: list[Any] = Field(default_factory=list)
    metas: list[Any] = Field(default_factory=list)
    examples: list[Any] = Field(default_factory=list)

    @property
    def terms(self) -> dict[str, Any]:
        return dict(self.model_extra or {})


# ============================================================================
# Value codec
# ============================================================================

class Codec:
    """Encodes values and nested schemas for descriptions, and back."""

    def describe(self, schema) -> dict:
        return describe(schema)

    def build(self, desc: dict):
        return build(desc)

    def encode(self, value: Any) -> Any:
        if value is UNDEFINED: return {"special": "undefined"}
        if value is DEEP_DEFAULT: return {"special": "deep"}
        if isinstance(value, float) and not math.isfinite(value):
            return {"special": "nan" if math.isnan(value) else ("inf" if value > 0 else "-inf")}
        if value is None or isinstance(value, (bool, int, float, str)): return value
        if isinstance(value, datetime): return {"date": value.isoformat()}
        if isinstance(value, (bytes, bytearray)): return {"buffer": base64.b64encode(bytes(value)).decode("ascii")}
        if isinstance(value, Reference): return {"ref": value.describe()}
        if isinstance(value, re.Pattern): return {"regex": value.pattern, "flags": int(value.flags)}
        if is_schema(value): return {"schema": describe(value)}
        if isinstance(value, dict): return {"value": {str(k): self.encode(v) for k, v in value.items()}}
        if isinstance(value, tuple): return {"tuple": [self.encode(v) for v in value]}
        if isinstance(value, list): return [self.encode(v) for v in value]
        if callable(value): return {"function": getattr(value, "__qualname__", repr(value))}
        raise schema_error("Cannot describe value of type", type(value).__name__)

    def decode(self, value: Any) -> Any:
        if isinstance(value, list): return [self.decode(v) for v in value]
        if not isinstance(value, dict): return value
        if "special" in value:
            assert_schema(value["special"] in _SPECIALS, "Unknown special value", value["special"])
            return _SPECIALS[value["special"]]
        if "date" in value: return datetime.fromisoformat(value["date"])
        if "buffer" in value: return base64.b64decode(value["buffer"])
        if "ref" in value: return Reference.build(value["ref"])
        if "regex" in value: return re.compile(value["regex"], value.get("flags", 0))
        if "schema" in value: return build(value["schema"])
        if "value" in value: return {k: self.decode(v) for k, v in value["value"].items()}
        if "tuple" in value: return tuple(self.decode(v) for v in value["tuple"])
        if "function" in value: raise schema_error("Cannot build function", value["function"], "from a description")
        raise schema_error("Invalid encoded value:", value)


CODEC = Codec()


# ============================================================================
# Describe
# ============================================================================

def describe(schema) -> dict:
    """JSON-compatible description of schema."""
    definition = schema._definition
    fresh = definition.schema_class()
    desc: dict[str, Any] = {"type": schema.type}

    flags = {}
    for name, value in schema._flags.items():
        if name.startswith("_"): continue
        default = fresh._flags.get(name, UNDEFINED)
        if default is not UNDEFINED and type(default) is type(value) and default == value: continue
        flags[name] = CODEC.encode(value)
    if flags: desc["flags"] = flags

    if schema._preferences:
        desc["preferences"] = {name: CODEC.encode(value.model_dump() if isinstance(value, BaseModel) else value)
            for name, value in schema._preferences.items()}

    allow = [CODEC.encode(v) for v in schema._valids.describe() if not fresh._valids.has(v)]
    if allow: desc["allow"] = allow
    invalid = [CODEC.encode(v) for v in schema._invalids.describe() if not fresh._invalids.has(v)]
    if invalid: desc["invalid"] = invalid

    rules = []
    for rule in schema._rules:
        if not definition.rule(rule.method).manifest: continue
        item: dict[str, Any] = {"name": rule.name}
        if rule.method != rule.name: item["method"] = rule.method
        if rule.args: item["args"] = {name: CODEC.encode(value) for name, value in rule.args.items()}
        if rule.operator is not None: item["operator"] = rule.operator
        if rule.message is not None: item["message"] = rule.message
        rules.append(item)
    if rules: desc["rules"] = rules

    for term in _METADATA_TERMS:
        if schema._terms.get(term): desc[term] = [CODEC.encode(v) for v in schema._terms[term]]

    if definition.describe is not None:
        for key, value in definition.describe(schema, CODEC).items():
            assert_schema(key not in desc, "Cannot describe schema due to internal name conflict with", key)
            desc[key] = value
    return desc


# ============================================================================
# Build
# ============================================================================

def build(desc: dict):
    """Schema equivalent to a description produced by describe().

    Raises:
        SchemaError: malformed description, unknown type/flag/rule, or a value that cannot be rebuilt
    """
    try:
        parsed = SchemaDescription.model_validate(desc)
    except PydanticValidationError as e:
        problems = "; ".join(f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in e.errors())
        raise SchemaError(f"Invalid schema description: {problems}") from e

    definition = REGISTRY.get(parsed.type)
    obj = definition.schema_class()

    for name, value in parsed.flags.items():
        assert_schema(name in KNOWN_FLAGS, "Unknown flag", name, "for type", parsed.type)
        obj = obj._set_flag(name, CODEC.decode(value))

    if parsed.preferences:
        obj = obj.prefs(**{name: CODEC.decode(value) for name, value in parsed.preferences.items()})

    if parsed.allow: obj = obj.allow(*CODEC.decode(parsed.allow))
    if parsed.invalid: obj = obj.invalid(*CODEC.decode(parsed.invalid))

    for rule in parsed.rules:
        args = {name: CODEC.decode(value) for name, value in rule.args.items()}
        obj = obj._add_rule(rule.name, method=rule.method, args=args, operator=rule.operator)
        if rule.message is not None: obj = obj.message(rule.message)

    for term, method in _METADATA_TERMS.items():
        for value in getattr(parsed, term):
            obj = getattr(obj, method)(CODEC.decode(value))

    terms = parsed.terms
    if terms:
        assert_schema(definition.build is not None, "Unexpected terms", sorted(terms), "for type", parsed.type)
        obj = definition.build(obj, terms, CODEC)

    schema_logger().debug("schema_built", schema_type=parsed.type, rules=len(parsed.rules), flags=len(parsed.flags))
    return obj
