"""Value resolution: turn one record instance into display-ready cells."""

from __future__ import annotations

import dataclasses
import enum
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Union

from record_descriptor.config import DEFAULT_CONFIG, RenderConfig
from record_descriptor.errors import DescriptorError, FieldResolutionFailed
from record_descriptor.fields import (
    FieldDescriptor,
    RecordDescriptor,
    enum_label,
    get_descriptor,
    is_record,
    rendered_descriptor,
)

_SEQUENCE_TYPES = (list, tuple)
_SET_TYPES = (set, frozenset)

# Leading path segment of fields spliced in from an extra-fields record
EXTRA_SEGMENT = "<extra>"


class RenderMode(enum.Enum):
    DESCRIPTION = "description"
    TABLE = "table"


@dataclass(frozen=True)
class Scalar:
    text: str


@dataclass(frozen=True)
class ScalarSequence:
    items: tuple[str, ...]


@dataclass(frozen=True)
class NestedRecord:
    record: ResolvedRecord


@dataclass(frozen=True)
class RecordSequence:
    records: tuple[ResolvedRecord, ...]
    descriptor: RecordDescriptor
    as_table: bool = False


ResolvedCell = Union[Scalar, ScalarSequence, NestedRecord, RecordSequence]


@dataclass(frozen=True)
class ResolvedField:
    """One displayed field.

    ``path`` locates the field inside its record: ``("name",)`` for an own
    field, ``("owner", "name")`` for a field spliced in by flattening
    ``owner``. Unlike ``name`` it is unique within a record.
    """

    name: str
    description_label: str
    header_label: str
    cell: ResolvedCell
    path: tuple[str, ...] = ()


@dataclass(frozen=True)
class ResolvedRecord:
    """Resolved fields of one record instance, in display order.

    ``source`` is the (converted) record the fields were read from and
    ``descriptor`` its descriptor; both are ``None`` for resolved mappings.
    """

    fields: tuple[ResolvedField, ...]
    source: Any = None
    descriptor: RecordDescriptor | None = None

    def get(self, key: str | tuple[str, ...]) -> ResolvedField | None:
        """Look a field up by its path, or by name for an own field."""
        path = (key,) if isinstance(key, str) else tuple(key)
        for resolved in self.fields:
            if resolved.path == path:
                return resolved
        return None


def format_scalar(value: Any, config: RenderConfig = DEFAULT_CONFIG) -> str:
    """Default text form of a scalar value."""
    if value is None:
        return config.absent_marker
    if isinstance(value, bool):
        return str(value).lower()
    if isinstance(value, enum.Enum):
        return enum_label(value)
    if isinstance(value, datetime):
        return value.strftime(config.datetime_format)
    return str(value)


def _call(field: str, func: Callable[..., Any], *args: Any) -> Any:
    """Call user code, wrapping any failure as ``FieldResolutionFailed``."""
    try:
        return func(*args)
    except DescriptorError:
        raise
    except Exception as e:
        raise FieldResolutionFailed(field, e) from e


class _Resolver:
    """Resolves records for one render call."""

    def __init__(self, mode: RenderMode, config: RenderConfig, include_hidden: bool) -> None:
        self.mode = mode
        self.config = config
        self.include_hidden = include_hidden

    def _hidden(self, fd: FieldDescriptor) -> bool:
        if self.mode is RenderMode.DESCRIPTION:
            return fd.hidden_in_description
        if self.include_hidden:
            return fd.skip
        return fd.hidden_in_table

    def record(self, record: Any, depth: int, field: str) -> ResolvedRecord:
        if depth > self.config.max_depth:
            raise FieldResolutionFailed(
                field, RecursionError(f"maximum description depth {self.config.max_depth} exceeded")
            )

        record_descriptor = get_descriptor(type(record))
        if record_descriptor.convert_target is not None:
            record = _call(field, record_descriptor.convert, record)
            return self.record(record, depth + 1, field)

        fields: list[ResolvedField] = []
        for fd in record_descriptor.fields:
            if self._hidden(fd):
                continue
            fields.extend(self.field(fd, record, depth))

        if record_descriptor.extra_fields is not None:
            extra = _call(record_descriptor.extra_fields.__name__, record_descriptor.extra, record)
            fields.extend(_spliced(EXTRA_SEGMENT, self.record(extra, depth + 1, field)))

        return ResolvedRecord(tuple(fields), source=record, descriptor=record_descriptor)

    def field(self, fd: FieldDescriptor, owner: Any, depth: int) -> list[ResolvedField]:
        value = getattr(owner, fd.name)

        if value is None and (fd.resolve_option or fd.transform is None):
            if fd.flatten:
                return []
            text = "" if fd.resolve_option else self.config.absent_marker
            return [self._resolved(fd, Scalar(text))]

        if fd.convert_target is not None:
            value = _call(fd.name, fd.convert, value)

        if fd.flatten:
            return _spliced(fd.name, self.record(value, depth + 1, fd.name))

        if fd.transform is not None:
            shown = _call(fd.name, fd.transform, owner, value)
            text = shown if isinstance(shown, str) else format_scalar(shown, self.config)
            return [self._resolved(fd, Scalar(text))]

        return [self._resolved(fd, self.value(value, depth, fd.name, fd.output_as_table))]

    def value(self, value: Any, depth: int, field: str, as_table: bool = False) -> ResolvedCell:
        if value is None:
            return Scalar(self.config.absent_marker)
        if is_record(value):
            return NestedRecord(self.record(value, depth + 1, field))
        if isinstance(value, Mapping):
            return self.mapping(value, depth, field)
        if isinstance(value, _SEQUENCE_TYPES + _SET_TYPES):
            return self.sequence(value, depth, field, as_table)
        return Scalar(format_scalar(value, self.config))

    def mapping(self, value: Mapping[Any, Any], depth: int, field: str) -> ResolvedCell:
        if not value:
            return Scalar(self.config.absent_marker)
        entries = []
        for key in sorted(value, key=str):
            label = f"{key}:"
            cell = self.value(value[key], depth + 1, field)
            entries.append(ResolvedField(str(key), label, str(key), cell, path=(str(key),)))
        return NestedRecord(ResolvedRecord(tuple(entries)))

    def sequence(self, value: Any, depth: int, field: str, as_table: bool) -> ResolvedCell:
        if not value:
            return Scalar(self.config.absent_marker)
        if isinstance(value, _SEQUENCE_TYPES) and all(is_record(item) for item in value):
            element_descriptor = rendered_descriptor(get_descriptor(type(value[0])))
            resolver = self
            if as_table:
                # Nested tables pick their own columns
                resolver = _Resolver(RenderMode.TABLE, self.config, element_descriptor.headers is not None)
            records = tuple(resolver.record(item, depth + 1, field) for item in value)
            return RecordSequence(records, element_descriptor, as_table=as_table)
        items = [format_scalar(item, self.config) for item in value]
        if isinstance(value, _SET_TYPES):
            items.sort()
        return ScalarSequence(tuple(items))

    @staticmethod
    def _resolved(fd: FieldDescriptor, cell: ResolvedCell) -> ResolvedField:
        return ResolvedField(fd.name, fd.description_label, fd.header_label, cell, path=(fd.name,))


def _spliced(segment: str, record: ResolvedRecord) -> list[ResolvedField]:
    return [dataclasses.replace(f, path=(segment, *f.path)) for f in record.fields]


def resolve(
    record: Any,
    mode: RenderMode = RenderMode.DESCRIPTION,
    config: RenderConfig | None = None,
    *,
    include_hidden: bool = False,
) -> ResolvedRecord:
    """Resolve every displayed field of ``record`` for ``mode``.

    In table mode fields hidden from the default columns are left out unless
    ``include_hidden`` is set, which explicit header selection needs.

    Raises:
        FieldResolutionFailed: a transform or conversion failed, or the record
            nests deeper than ``config.max_depth``.
    """
    resolver = _Resolver(mode, config or DEFAULT_CONFIG, include_hidden)
    return resolver.record(record, 0, type(record).__name__)
