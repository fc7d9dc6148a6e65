"""Schema Validation Engine

Immutable, chainable schema nodes validated by a single type-agnostic
protocol. Failures are returned as data (ValidationResult.error); schema
construction misuse raises SchemaError.

Key components:
- Schema and one subclass per type (types/)
- validator: coerce -> empty -> presence -> allow/deny -> base -> rules -> finalize
- Reference: sibling, ancestor, root and context pointers
- manifest: describe()/build() round-tripping
- boundaries: Result-returning parse helpers
- annotated: Validated marker for pydantic models
"""
from .common import DEEP_DEFAULT, UNDEFINED, is_schema
from .schema import Rule, Schema
from .types import (
    Alternative,
    AlternativesSchema,
    AnySchema,
    ArraySchema,
    BinarySchema,
    BooleanSchema,
    DateSchema,
    FunctionSchema,
    LazySchema,
    NumberSchema,
    ObjectSchema,
    StringSchema,
    define,
)
from .compile import compile_schema
from .errors import ErrorDetail, Report, ReportList, ValidationError
from .manifest import CODEC, Codec, build, describe
from .messages import MessageRenderer, TemplateRenderer
from .preferences import Preferences, StripUnknown
from .ref import Reference, create as ref, is_reference
from .registry import REGISTRY, Cast, Coercion, RuleArg, RuleDefinition, TypeDefinition, TypeRegistry
from .state import State
from .validator import Outcome, ValidationResult, entry, validate
from .values import Values
from .boundaries import BoundaryValidator, parse, parse_batch
from .annotated import Validated

__all__ = [
    "DEEP_DEFAULT",
    "UNDEFINED",
    "is_schema",
    "Rule",
    "Schema",
    "Alternative",
    "AlternativesSchema",
    "AnySchema",
    "ArraySchema",
    "BinarySchema",
    "BooleanSchema",
    "DateSchema",
    "FunctionSchema",
    "LazySchema",
    "NumberSchema",
    "ObjectSchema",
    "StringSchema",
    "define",
    "compile_schema",
    "ErrorDetail",
    "Report",
    "ReportList",
    "ValidationError",
    "CODEC",
    "Codec",
    "build",
    "describe",
    "MessageRenderer",
    "TemplateRenderer",
    "Preferences",
    "StripUnknown",
    "Reference",
    "ref",
    "is_reference",
    "REGISTRY",
    "Cast",
    "Coercion",
    "RuleArg",
    "RuleDefinition",
    "TypeDefinition",
    "TypeRegistry",
    "State",
    "Outcome",
    "ValidationResult",
    "entry",
    "validate",
    "Values",
    "BoundaryValidator",
    "parse",
    "parse_batch",
    "Validated",
]
