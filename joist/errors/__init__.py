"""Error Handling for joist

Key components:
- ErrorCode: dotted validation codes with a category
- Result[T, E]: Ok/Err container used to capture collaborator callbacks
- SchemaError: raised for schema-construction misuse
- Builders: ergonomic error construction

Usage:
    from joist.errors import Ok, Err, try_result, ErrorCode

    match try_result(lambda: compute_default(parent), code=ErrorCode.ANY_DEFAULT):
        case Ok(value):
            ...
        case Err(error):
            report(error.code, error.message)
"""
from .types import (
    # Core types
    Result,
    Ok,
    Err,
    AppError,
    ErrorCode,
    ErrorCategory,
    SchemaError,
    # Constructors
    from_exception,
    try_result,
    is_base_code,
)

from .builders import (
    schema_error,
    assert_schema,
    invalid_argument,
    coercion_failed,
)

__all__ = [
    "Result",
    "Ok",
    "Err",
    "AppError",
    "ErrorCode",
    "ErrorCategory",
    "SchemaError",
    "from_exception",
    "try_result",
    "is_base_code",
    "schema_error",
    "assert_schema",
    "invalid_argument",
    "coercion_failed",
]
