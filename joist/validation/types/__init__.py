"""Built-in schema types. Importing this package registers every type definition."""
from .any import AnySchema, define
from .string import StringSchema
from .number import NumberSchema
from .boolean import BooleanSchema
from .date import DateSchema
from .binary import BinarySchema
from .object import ObjectSchema
from .array import ArraySchema
from .alternatives import Alternative, AlternativesSchema
from .function import FunctionSchema
from .lazy import LazySchema

__all__ = [
    "AnySchema",
    "StringSchema",
    "NumberSchema",
    "BooleanSchema",
    "DateSchema",
    "BinarySchema",
    "ObjectSchema",
    "ArraySchema",
    "Alternative",
    "AlternativesSchema",
    "FunctionSchema",
    "LazySchema",
    "define",
]
