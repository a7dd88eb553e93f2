"""Describe dataclass records as indented descriptions or aligned tables."""

from record_descriptor.config import RenderConfig, resolve_config
from record_descriptor.errors import (
    ConflictingFieldAttributes,
    DescriptorError,
    EmptyTableError,
    FieldResolutionFailed,
    HeaderCountMismatch,
    NonScalarTableCell,
    NotARecordError,
    UnknownFieldPath,
)
from record_descriptor.fields import (
    FieldDescriptor,
    RecordDescriptor,
    build_descriptor,
    describe_enum,
    describe_field,
    descriptor,
    get_descriptor,
    register,
)
from record_descriptor.output import (
    object_describe,
    object_describe_to_string,
    table_describe,
    table_describe_to_string,
    table_describe_with_header_to_string,
)

__version__ = "0.1.0"

__all__ = [
    "ConflictingFieldAttributes",
    "DescriptorError",
    "EmptyTableError",
    "FieldDescriptor",
    "FieldResolutionFailed",
    "HeaderCountMismatch",
    "NonScalarTableCell",
    "NotARecordError",
    "RecordDescriptor",
    "RenderConfig",
    "UnknownFieldPath",
    "build_descriptor",
    "describe_enum",
    "describe_field",
    "descriptor",
    "get_descriptor",
    "object_describe",
    "object_describe_to_string",
    "register",
    "resolve_config",
    "table_describe",
    "table_describe_to_string",
    "table_describe_with_header_to_string",
]
