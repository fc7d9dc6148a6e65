"""Error Types for Schema Validation

Implements the error code taxonomy used by every validation report together
with a small Result monad for capturing collaborator callbacks (computed
defaults, custom rules, lazy generators) without letting their exceptions
escape the validator.

Validation-time failures are always returned as data. Schema-construction
misuse raises SchemaError synchronously.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Generic, NoReturn, TypeVar, Union, final

T = TypeVar("T")
E = TypeVar("E", bound="AppError")


class ErrorCategory(str, Enum):
    """Kind of failure, independent of the concrete code."""
    STRUCTURAL = "structural"
    COERCION = "coercion"
    PRESENCE = "presence"
    ALLOW_DENY = "allow_deny"
    RULE = "rule"
    COMPOSITION = "composition"
    CALLBACK = "callback"
    SCHEMA = "schema"


class ErrorCode(str, Enum):
    """Dotted validation error codes.

    The value is the code string handed to the message renderer and exposed
    as ``ErrorDetail.type``. Codes are grouped by the type that emits them.
    """
    # any
    ANY_REQUIRED = "any.required"
    ANY_UNKNOWN = "any.unknown"
    ANY_INVALID = "any.invalid"
    ANY_EMPTY = "any.empty"
    ANY_ALLOW_ONLY = "any.allowOnly"
    ANY_REF = "any.ref"
    ANY_DEFAULT = "any.default"
    ANY_FAILOVER = "any.failover"
    ANY_CUSTOM = "any.custom"

    # string
    STRING_BASE = "string.base"
    STRING_MIN = "string.min"
    STRING_MAX = "string.max"
    STRING_LENGTH = "string.length"
    STRING_PATTERN_BASE = "string.pattern.base"
    STRING_PATTERN_NAME = "string.pattern.name"
    STRING_PATTERN_INVERT_BASE = "string.pattern.invert.base"
    STRING_PATTERN_INVERT_NAME = "string.pattern.invert.name"
    STRING_ALPHANUM = "string.alphanum"
    STRING_TOKEN = "string.token"
    STRING_HEX = "string.hex"
    STRING_HEX_ALIGN = "string.hexAlign"
    STRING_BASE64 = "string.base64"
    STRING_GUID = "string.guid"
    STRING_ISO_DATE = "string.isoDate"
    STRING_ISO_DURATION = "string.isoDuration"
    STRING_CREDIT_CARD = "string.creditCard"
    STRING_LOWERCASE = "string.lowercase"
    STRING_UPPERCASE = "string.uppercase"
    STRING_TRIM = "string.trim"
    STRING_NORMALIZE = "string.normalize"

    # number
    NUMBER_BASE = "number.base"
    NUMBER_INFINITY = "number.infinity"
    NUMBER_MIN = "number.min"
    NUMBER_MAX = "number.max"
    NUMBER_GREATER = "number.greater"
    NUMBER_LESS = "number.less"
    NUMBER_INTEGER = "number.integer"
    NUMBER_PRECISION = "number.precision"
    NUMBER_MULTIPLE = "number.multiple"
    NUMBER_POSITIVE = "number.positive"
    NUMBER_NEGATIVE = "number.negative"
    NUMBER_PORT = "number.port"

    # boolean
    BOOLEAN_BASE = "boolean.base"

    # date
    DATE_BASE = "date.base"
    DATE_FORMAT = "date.format"
    DATE_MIN = "date.min"
    DATE_MAX = "date.max"
    DATE_GREATER = "date.greater"
    DATE_LESS = "date.less"

    # binary
    BINARY_BASE = "binary.base"
    BINARY_MIN = "binary.min"
    BINARY_MAX = "binary.max"
    BINARY_LENGTH = "binary.length"

    # object
    OBJECT_BASE = "object.base"
    OBJECT_MIN = "object.min"
    OBJECT_MAX = "object.max"
    OBJECT_LENGTH = "object.length"
    OBJECT_ALLOW_UNKNOWN = "object.allowUnknown"
    OBJECT_RENAME_MULTIPLE = "object.rename.multiple"
    OBJECT_RENAME_OVERRIDE = "object.rename.override"
    OBJECT_WITH = "object.with"
    OBJECT_WITHOUT = "object.without"
    OBJECT_XOR = "object.xor"
    OBJECT_OXOR = "object.oxor"
    OBJECT_MISSING = "object.missing"
    OBJECT_AND = "object.and"
    OBJECT_NAND = "object.nand"
    OBJECT_ASSERT = "object.assert"
    OBJECT_INSTANCE = "object.instance"
    OBJECT_PATTERN_MATCH = "object.pattern.match"
    OBJECT_REF_TYPE = "object.refType"
    OBJECT_SCHEMA = "object.schema"

    # array
    ARRAY_BASE = "array.base"
    ARRAY_INCLUDES = "array.includes"
    ARRAY_INCLUDES_REQUIRED_KNOWNS = "array.includesRequiredKnowns"
    ARRAY_INCLUDES_REQUIRED_UNKNOWNS = "array.includesRequiredUnknowns"
    ARRAY_INCLUDES_REQUIRED_BOTH = "array.includesRequiredBoth"
    ARRAY_EXCLUDES = "array.excludes"
    ARRAY_ORDERED_LENGTH = "array.orderedLength"
    ARRAY_SPARSE = "array.sparse"
    ARRAY_MIN = "array.min"
    ARRAY_MAX = "array.max"
    ARRAY_LENGTH = "array.length"
    ARRAY_UNIQUE = "array.unique"
    ARRAY_HAS_KNOWN = "array.hasKnown"
    ARRAY_HAS_UNKNOWN = "array.hasUnknown"
    ARRAY_SORT = "array.sort"
    ARRAY_SORT_MISMATCHING = "array.sort.mismatching"
    ARRAY_SORT_UNSUPPORTED = "array.sort.unsupported"

    # alternatives
    ALTERNATIVES_BASE = "alternatives.base"
    ALTERNATIVES_TYPES = "alternatives.types"
    ALTERNATIVES_ONE = "alternatives.one"
    ALTERNATIVES_ALL = "alternatives.all"
    ALTERNATIVES_ANY = "alternatives.any"

    # function
    FUNCTION_BASE = "function.base"
    FUNCTION_ARITY = "function.arity"
    FUNCTION_MIN_ARITY = "function.minArity"
    FUNCTION_MAX_ARITY = "function.maxArity"
    FUNCTION_CLASS = "function.class"

    # lazy
    LAZY_BASE = "lazy.base"
    LAZY_SCHEMA = "lazy.schema"

    # construction
    SCHEMA_INVALID = "schema.invalid"

    @property
    def family(self) -> str:
        """Type name the code belongs to (``"object"`` for ``object.rename.multiple``)."""
        return self.value.split(".", 1)[0]

    @property
    def category(self) -> ErrorCategory:
        """Kind of failure the code represents."""
        return _categorize(self)


_COMPOSITION_PREFIXES = (
    "object.allowUnknown", "object.rename.", "object.with", "object.without", "object.xor",
    "object.oxor", "object.missing", "object.and", "object.nand", "object.assert",
    "object.pattern.", "alternatives.", "array.includes", "array.excludes", "array.orderedLength",
    "array.has", "array.sparse", "lazy.",
)


def _categorize(code: ErrorCode) -> ErrorCategory:
    value = code.value
    if value in ("any.required", "any.unknown"): return ErrorCategory.PRESENCE
    if value in ("any.invalid", "any.empty", "any.allowOnly"): return ErrorCategory.ALLOW_DENY
    if value in ("any.default", "any.failover", "any.custom"): return ErrorCategory.CALLBACK
    if value == "number.infinity": return ErrorCategory.COERCION
    if value == "schema.invalid": return ErrorCategory.SCHEMA
    if value.startswith(_COMPOSITION_PREFIXES): return ErrorCategory.COMPOSITION
    if value.endswith(".base") or value == "date.format": return ErrorCategory.STRUCTURAL
    return ErrorCategory.RULE


def is_base_code(code: ErrorCode | str) -> bool:
    """True for fundamental-kind mismatch codes such as ``string.base``."""
    value = code.value if isinstance(code, ErrorCode) else code
    return value.endswith(".base") and value.count(".") == 1 and not value.startswith(("alternatives.", "any."))


# ============================================================================
# Application error payload
# ============================================================================

@dataclass(frozen=True, slots=True)
class AppError:
    """Error payload carried by Err.

    - code: taxonomy code the failure maps to
    - message: human-readable description
    - metadata: structured context for rendering and debugging
    - origin: component that produced the error
    - cause: original exception when the error wraps one
    """
    code: ErrorCode
    message: str
    metadata: dict = field(default_factory=dict)
    origin: str = ""
    cause: Exception | None = None

    def with_metadata(self, **kwargs) -> AppError:
        """Create new error with additional metadata."""
        return AppError(code=self.code, message=self.message, metadata={**self.metadata, **kwargs},
            origin=self.origin, cause=self.cause)

    def to_dict(self) -> dict:
        return {
            "code": self.code.value,
            "category": self.code.category.value,
            "message": self.message,
            "origin": self.origin,
            "metadata": self.metadata,
        }

    def __str__(self) -> str:
        return f"[{self.code.value}] {self.message}"


class SchemaError(Exception):
    """Raised when a schema is constructed incorrectly.

    Covers invalid rule arguments, cyclic key dependencies, incompatible
    concat, malformed descriptions and unknown preferences.
    """

    def __init__(self, message: str, *, details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    @property
    def code(self) -> ErrorCode:
        return ErrorCode.SCHEMA_INVALID


# ============================================================================
# Result monad
# ============================================================================

@final
@dataclass(frozen=True, slots=True)
class Ok(Generic[T]):
    """Success variant of Result."""
    value: T

    def is_ok(self) -> bool:
        return True

    def is_err(self) -> bool:
        return False

    def unwrap(self) -> T:
        return self.value


@final
@dataclass(frozen=True, slots=True)
class Err(Generic[E]):
    """Failure variant of Result."""
    error: E

    def is_ok(self) -> bool:
        return False

    def is_err(self) -> bool:
        return True

    def unwrap(self) -> NoReturn:
        raise ValueError(f"Called unwrap on Err: {self.error}")

    def unwrap_err(self) -> E:
        return self.error


Result = Union[Ok[T], Err[E]]


def from_exception(
    exc: Exception,
    code: ErrorCode = ErrorCode.ANY_CUSTOM,
    message: str | None = None,
    origin: str = "",
    **metadata,
) -> Err[AppError]:
    """Convert exception to Err with context."""
    return Err(AppError(code=code, message=message or str(exc) or type(exc).__name__,
        metadata=metadata, origin=origin, cause=exc))


def try_result(
    f: Callable[[], T],
    code: ErrorCode = ErrorCode.ANY_CUSTOM,
    origin: str = "",
) -> Result[T, AppError]:
    """Execute function and wrap its outcome in Result.

    Every external callback invoked during validation goes through here so
    that raised exceptions turn into error reports.
    """
    try:
        return Ok(f())
    except Exception as e:
        return from_exception(e, code=code, origin=origin)
