"""Exceptions raised while building descriptors or rendering records."""

from __future__ import annotations


class DescriptorError(Exception):
    """Base class for every record-descriptor error."""


class NotARecordError(DescriptorError):
    """Raised when a descriptor is requested for something that is not a dataclass."""

    def __init__(self, obj: object) -> None:
        super().__init__(f"{obj!r} is not a dataclass record")
        self.obj = obj


class HeaderCountMismatch(DescriptorError):
    """Raised when a ``headers`` override does not match the table columns of a record."""

    def __init__(self, record_name: str, expected: int, got: int) -> None:
        super().__init__(f"{record_name}: headers override has {got} entries, expected {expected}")
        self.record_name = record_name
        self.expected = expected
        self.got = got


class ConflictingFieldAttributes(DescriptorError):
    """Raised when a field declares attributes that cannot be combined."""

    def __init__(self, record_name: str, field: str, attributes: tuple[str, ...]) -> None:
        super().__init__(f"{record_name}.{field}: cannot combine {', '.join(attributes)}")
        self.record_name = record_name
        self.field = field
        self.attributes = attributes


class FieldResolutionFailed(DescriptorError):
    """Raised when a transform or conversion fails while resolving a field."""

    def __init__(self, field: str, cause: BaseException) -> None:
        super().__init__(f"failed to resolve field {field!r}: {cause}")
        self.field = field
        self.cause = cause


class EmptyTableError(DescriptorError):
    """Raised when a table is requested for an empty sequence."""

    def __init__(self) -> None:
        super().__init__("cannot describe an empty sequence as a table")


class NonScalarTableCell(DescriptorError):
    """Raised when a table column would hold a value that is not a single line of text."""

    def __init__(self, field: str) -> None:
        super().__init__(f"field {field!r} cannot be rendered as a table cell")
        self.field = field


class UnknownFieldPath(DescriptorError):
    """Raised when an explicit table header names no known field."""

    def __init__(self, path: str) -> None:
        super().__init__(f"unknown field path: {path!r}")
        self.path = path
