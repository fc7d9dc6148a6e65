"""Pydantic Integration

Use a joist schema as an Annotated field constraint. The schema runs on
the raw input before pydantic's own type validation, so conversions
(trim, case, numeric strings, renames, defaults) reach the model.

Usage:
    from typing import Annotated
    from pydantic import BaseModel

    class Signup(BaseModel):
        username: Annotated[str, Validated(joist.string().trim().min(3))]
        tags: Annotated[list[str], Validated(joist.array().items(joist.string()).unique())]
"""
from __future__ import annotations

from typing import Any

from pydantic import GetCoreSchemaHandler, GetJsonSchemaHandler
from pydantic.json_schema import JsonSchemaValue
from pydantic_core import CoreSchema, core_schema

from .preferences import Preferences
from . import preferences as preferences_module


class Validated:
    """Annotated marker running a joist schema as a before-validator."""

    __slots__ = ("schema", "prefs")

    def __init__(self, schema, prefs: Preferences | dict | None = None, **options: Any):
        self.schema = schema
        self.prefs = preferences_module.resolve(prefs, **options)

    def __get_pydantic_core_schema__(self, source_type: Any, handler: GetCoreSchemaHandler) -> CoreSchema:
        return core_schema.no_info_before_validator_function(self._validate, handler(source_type))

    def _validate(self, value: Any) -> Any:
        result = self.schema.validate(value, self.prefs)
        if result.error is not None: raise ValueError(result.error.message)
        return result.value

    def __get_pydantic_json_schema__(self, schema: CoreSchema, handler: GetJsonSchemaHandler) -> JsonSchemaValue:
        json_schema = handler(schema)
        description = self.schema._flags.get("description")
        if description: json_schema = {**json_schema, "description": description}
        return json_schema
