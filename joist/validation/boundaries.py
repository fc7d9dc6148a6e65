"""Validation at System Boundaries

Parse-don't-validate helpers returning Result instead of raising:
- parse(): one value against a schema
- parse_batch(): many values, collecting (index, error) pairs
- BoundaryValidator: a schema bound to fixed preferences, reusable across calls

Usage:
    match parse(user_schema, payload, abort_early=False):
        case Ok(user):
            save(user)
        case Err(error):
            respond(422, error.to_dict())
"""
from __future__ import annotations

from typing import Any

from joist.errors import AppError, Err, Ok, Result

from . import preferences as preferences_module
from .preferences import Preferences


class BoundaryValidator:
    """Stateless boundary validator for a specific schema.

    Usage:
        user_validator = BoundaryValidator(user_schema, abort_early=False)
        result = user_validator.parse(request_data)
    """

    __slots__ = ("schema", "prefs")

    def __init__(self, schema, prefs: Preferences | dict | None = None, **options: Any):
        self.schema = schema
        self.prefs = preferences_module.resolve(prefs, **options)

    def parse(self, value: Any, *, origin: str = "ingress") -> Result[Any, AppError]:
        """Validated value, or Err carrying every rendered failure in its metadata."""
        result = self.schema.validate(value, self.prefs)
        if result.error is None: return Ok(result.value)
        error = result.error.to_app_error()
        return Err(AppError(code=error.code, message=error.message, metadata=error.metadata, origin=origin))


def parse(schema, value: Any, prefs: Preferences | dict | None = None, **options: Any) -> Result[Any, AppError]:
    return BoundaryValidator(schema, prefs, **options).parse(value)


def parse_batch(
    schema,
    values: list[Any],
    prefs: Preferences | dict | None = None,
    *,
    max_errors: int = 50,
    **options: Any,
) -> Result[list[Any], list[tuple[int, AppError]]]:
    """Parse and validate a batch of values.

    Returns Ok with all validated values or Err with (index, error) pairs.

    Usage:
        match parse_batch(user_schema, rows):
            case Ok(users):
                bulk_insert(users)
            case Err(errors):
                for idx, err in errors:
                    log.error("invalid_row", index=idx, error=err.message)
    """
    validator = BoundaryValidator(schema, prefs, **options)
    valid: list[Any] = []
    errors: list[tuple[int, AppError]] = []

    for idx, value in enumerate(values):
        if len(errors) >= max_errors: break
        match validator.parse(value, origin="batch"):
            case Ok(parsed):
                valid.append(parsed)
            case Err(error):
                errors.append((idx, error.with_metadata(index=idx)))

    if errors: return Err(errors)
    return Ok(valid)
