"""Validation Preferences

Options controlling a validation run. Preferences are a frozen pydantic
model so unknown options and malformed values are rejected when a schema
attaches them (``.prefs()``) or when ``validate()`` receives them.

Features:
- Process-wide defaults read from Settings (JOIST_* environment variables)
- Partial overrides merged with model_copy, validated once up front
- ``strip_unknown`` accepts a bool or a StripUnknown(arrays, objects) pair
"""
from __future__ import annotations

from functools import lru_cache
from typing import Any, Literal, Mapping

from pydantic import BaseModel, ConfigDict, Field, ValidationError as PydanticValidationError

from joist.config import get_settings
from joist.errors import SchemaError


class StripUnknown(BaseModel):
    """Per-container selection of unknown-value stripping."""
    model_config = ConfigDict(frozen=True, extra="forbid")

    arrays: bool = False
    objects: bool = False


class Preferences(BaseModel):
    """Options recognized by validate()."""
    model_config = ConfigDict(frozen=True, extra="forbid", arbitrary_types_allowed=True)

    abort_early: bool = True
    convert: bool = True
    allow_unknown: bool = False
    strip_unknown: bool | StripUnknown = False
    presence: Literal["optional", "required", "forbidden"] = "optional"
    context: Any = None
    no_defaults: bool = False
    messages: dict[str, str] = Field(default_factory=dict)
    error_label: Literal["path", "key"] = "path"
    renderer: Any = Field(default=None, exclude=True)

    @property
    def strip_objects(self) -> bool:
        if isinstance(self.strip_unknown, StripUnknown): return self.strip_unknown.objects
        return self.strip_unknown

    @property
    def strip_arrays(self) -> bool:
        if isinstance(self.strip_unknown, StripUnknown): return self.strip_unknown.arrays
        return self.strip_unknown


@lru_cache
def defaults() -> Preferences:
    """Default preferences, seeded from Settings."""
    return Preferences(**get_settings().default_preferences())


def check(options: Mapping[str, Any]) -> dict[str, Any]:
    """Validate a partial set of options and return their normalized values.

    Raises:
        SchemaError: unknown option name or invalid value
    """
    try:
        parsed = Preferences(**options)
    except PydanticValidationError as e:
        problems = "; ".join(f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in e.errors())
        raise SchemaError(f"Invalid preferences: {problems}", details={"options": sorted(options)}) from e
    return {name: getattr(parsed, name) for name in options}


def merge(base: Preferences, overrides: Mapping[str, Any] | Preferences | None) -> Preferences:
    """Apply already-validated overrides on top of base."""
    if not overrides: return base
    if isinstance(overrides, Preferences):
        overrides = {name: getattr(overrides, name) for name in overrides.model_fields_set}
    update = dict(overrides)
    if "messages" in update and base.messages:
        update["messages"] = {**base.messages, **update["messages"]}
    return base.model_copy(update=update)


def resolve(prefs: Preferences | Mapping[str, Any] | None, **options) -> Preferences:
    """Build the preferences of a top-level validate() call."""
    if isinstance(prefs, Preferences) and not options: return prefs
    overrides: dict[str, Any] = {}
    if isinstance(prefs, Preferences):
        return merge(prefs, check(options))
    if prefs: overrides.update(prefs)
    overrides.update(options)
    if not overrides: return defaults()
    return merge(defaults(), check(overrides))
