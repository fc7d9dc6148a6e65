"""Lazy type: the schema is produced by a generator on first use (recursive structures)."""
from __future__ import annotations

from typing import Any, Callable

from joist.errors import Err, ErrorCode, Ok, assert_schema, try_result
from joist.logging import schema_logger, validation_logger

from ..common import is_schema
from ..schema import Schema
from ..validator import Outcome, validate
from .any import define


class LazySchema(Schema):
    type = "lazy"

    def _init(self) -> None:
        self._flags["once"] = True
        self._cache: Schema | None = None

    def set(self, fn: Callable[[], Schema], once: bool = True) -> LazySchema:
        """Generator returning the schema; with once, it runs a single time per node."""
        assert_schema(callable(fn), "You must provide a function as first argument")
        assert_schema(isinstance(once, bool), 'Option "once" must be a boolean')
        obj = self._set_flag("lazy", fn)._set_flag("once", once)
        obj._cache = None
        return obj

    def _generate(self) -> Schema | Err:
        if self._cache is not None: return self._cache
        match try_result(self._flags["lazy"], code=ErrorCode.LAZY_SCHEMA, origin="lazy"):
            case Ok(schema):
                if not is_schema(schema): return schema
                schema_logger().debug("lazy_schema_generated", schema_type=schema.type, once=self._flags["once"])
                if self._flags["once"]: self._cache = schema
                return schema
            case Err(_) as failure:
                return failure


def _base(value: Any, helpers) -> Outcome:
    schema = helpers.schema
    if "lazy" not in schema._flags: return Outcome(value, [helpers.error(ErrorCode.LAZY_BASE)])

    generated = schema._generate()
    if isinstance(generated, Err):
        validation_logger().debug("callback_failed", flag="lazy", error=generated.error.message)
        return Outcome(value, [helpers.error(ErrorCode.LAZY_SCHEMA, {"schema": None, "error": generated.error.cause})])
    if not is_schema(generated):
        return Outcome(value, [helpers.error(ErrorCode.LAZY_SCHEMA, {"schema": generated})])
    return validate(value, generated, helpers.state.nest(generated), helpers.prefs)


define("lazy", LazySchema, base_check=_base,
    messages={
        ErrorCode.LAZY_BASE: "schema error: lazy schema must be set",
        ErrorCode.LAZY_SCHEMA: "schema error: lazy schema function must return a schema",
    })
