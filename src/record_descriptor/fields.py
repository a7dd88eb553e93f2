"""Field and record descriptors: the static rendering metadata of a record type.

Descriptors are built once per dataclass, either eagerly through the
``@descriptor`` class decorator or lazily on first use, and then shared
read-only by every render call.

Per-field options are declared through dataclass field metadata::

    @descriptor
    @dataclass
    class User:
        name: str
        age: int = field(metadata=describe_field(transform=lambda user, age: f"{age} years"))
        address: Address = field(metadata=describe_field(flatten=True))
"""

from __future__ import annotations

import dataclasses
import enum
import logging
import re
import sys
import threading
import types
import typing
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass
from typing import Any, TypeVar, Union

from record_descriptor.errors import (
    ConflictingFieldAttributes,
    HeaderCountMismatch,
    NotARecordError,
    UnknownFieldPath,
)

logger = logging.getLogger(__name__)

METADATA_KEY = "record_descriptor"

Transform = Callable[[Any, Any], Any]
Converter = Callable[[Any], Any]
CellTransform = Callable[[Any, str], str]

_T = TypeVar("_T")

_registry: dict[type, RecordDescriptor] = {}
_enum_labels: dict[type, dict[str, str]] = {}
_lock = threading.Lock()

_CAMEL_BOUNDARY = re.compile(r"(?<=[a-z0-9])(?=[A-Z])")
_SEQUENCE_ORIGINS = (list, tuple, set, frozenset, Sequence)


class FieldKind(enum.Enum):
    """Declared type category of a field."""

    SCALAR = "scalar"
    RECORD = "record"
    SEQUENCE = "sequence"
    MAPPING = "mapping"
    UNKNOWN = "unknown"


@dataclass(frozen=True)
class FieldOptions:
    """Options declared on one dataclass field through ``describe_field``."""

    skip: bool = False
    skip_header: bool = False
    skip_description: bool = False
    output_table: bool = False
    resolve_option: bool = False
    flatten: bool = False
    transform: Transform | None = None
    into: type | None = None
    via: Converter | None = None
    rename_header: str | None = None
    rename_description: str | None = None


@dataclass(frozen=True)
class FieldDescriptor:
    """Rendering metadata for one field of one record type."""

    name: str
    header_label: str
    description_label: str
    kind: FieldKind = FieldKind.SCALAR
    optional: bool = False
    target: type | None = None
    skip: bool = False
    skip_header: bool = False
    skip_description: bool = False
    output_as_table: bool = False
    resolve_option: bool = False
    flatten: bool = False
    transform: Transform | None = None
    convert_target: type | None = None
    converter: Converter | None = None

    @property
    def hidden_in_table(self) -> bool:
        return self.skip or self.skip_header

    @property
    def hidden_in_description(self) -> bool:
        return self.skip or self.skip_description

    def convert(self, value: Any) -> Any:
        """Apply the declared conversion, if any."""
        if self.convert_target is None:
            return value
        converter = self.converter or self.convert_target
        return converter(value)


@dataclass(frozen=True)
class RecordDescriptor:
    """Ordered field descriptors of one record type plus record-level options."""

    record_type: type
    fields: tuple[FieldDescriptor, ...]
    headers: tuple[str, ...] | None = None
    convert_target: type | None = None
    converter: Converter | None = None
    extra_fields: type | None = None
    extra_converter: Converter | None = None
    cell_transform: CellTransform | None = None

    @property
    def name(self) -> str:
        return self.record_type.__name__

    def field(self, name: str) -> FieldDescriptor | None:
        for fd in self.fields:
            if fd.name == name:
                return fd
        return None

    def convert(self, record: Any) -> Any:
        """Apply the record-level conversion, if any."""
        if self.convert_target is None:
            return record
        converter = self.converter or self.convert_target
        return converter(record)

    def extra(self, record: Any) -> Any:
        """Compute the extra-fields record for ``record``."""
        converter = self.extra_converter or self.extra_fields
        return converter(record)  # type: ignore[misc]


# ── Labels ────────────────────────────────────────────────────────────


def _words(name: str) -> list[str]:
    return [w for w in _CAMEL_BOUNDARY.sub("_", name).split("_") if w]


def default_header_label(name: str) -> str:
    """``created_at`` -> ``CREATED_AT``."""
    return "_".join(w.upper() for w in _words(name))


def default_description_label(name: str) -> str:
    """``created_at`` -> ``Created At:``."""
    return " ".join(w[:1].upper() + w[1:].lower() for w in _words(name)) + ":"


# ── Type classification ───────────────────────────────────────────────


def is_record_type(tp: Any) -> bool:
    return isinstance(tp, type) and dataclasses.is_dataclass(tp)


def is_record(value: Any) -> bool:
    return dataclasses.is_dataclass(value) and not isinstance(value, type)


def classify(tp: Any) -> tuple[FieldKind, bool, type | None]:
    """Return ``(kind, optional, target)`` for a declared type."""
    if tp is None or isinstance(tp, str):
        return FieldKind.UNKNOWN, False, None

    optional = False
    origin = typing.get_origin(tp)
    if origin is Union or origin is types.UnionType:
        args = [a for a in typing.get_args(tp) if a is not type(None)]
        optional = len(args) < len(typing.get_args(tp))
        if len(args) != 1:
            return FieldKind.SCALAR, optional, None
        tp = args[0]
        origin = typing.get_origin(tp)

    if is_record_type(tp):
        return FieldKind.RECORD, optional, tp
    if tp in (str, bytes):
        return FieldKind.SCALAR, optional, None

    container = origin or tp
    if isinstance(container, type):
        if issubclass(container, Mapping):
            return FieldKind.MAPPING, optional, None
        if issubclass(container, _SEQUENCE_ORIGINS):
            args = typing.get_args(tp)
            element = args[0] if args else None
            return FieldKind.SEQUENCE, optional, element if is_record_type(element) else None
    return FieldKind.SCALAR, optional, None


def _field_hint(annotation: Any, globalns: dict[str, Any], localns: dict[str, Any]) -> Any:
    def holder() -> None: ...

    holder.__annotations__ = {"hint": annotation}
    return typing.get_type_hints(holder, globalns, localns)["hint"]


def _type_hints(cls: type) -> dict[str, Any]:
    """Resolved field annotations of ``cls``.

    Annotations that cannot be resolved, such as forward references to
    classes local to a function, are left out and classify as unknown.
    """
    localns = {cls.__name__: cls}
    try:
        return typing.get_type_hints(cls, localns=localns)
    except Exception:
        logger.debug("Could not evaluate type hints of %s, resolving fields one by one", cls.__name__)

    module = sys.modules.get(cls.__module__)
    globalns = vars(module) if module is not None else {}
    hints: dict[str, Any] = {}
    for f in dataclasses.fields(cls):
        try:
            hints[f.name] = _field_hint(f.type, globalns, localns)
        except Exception:
            logger.debug("Unresolved annotation %r of %s.%s", f.type, cls.__name__, f.name)
    return hints


# ── Building ──────────────────────────────────────────────────────────


def describe_field(
    *,
    skip: bool = False,
    skip_header: bool = False,
    skip_description: bool = False,
    output_table: bool = False,
    resolve_option: bool = False,
    flatten: bool = False,
    transform: Transform | None = None,
    into: type | None = None,
    via: Converter | None = None,
    rename_header: str | None = None,
    rename_description: str | None = None,
) -> dict[str, FieldOptions]:
    """Build dataclass field metadata carrying rendering options.

    Args:
        skip: Hide the field from both descriptions and tables.
        skip_header: Hide the field from default table columns.
        skip_description: Hide the field from descriptions.
        output_table: Render a sequence of records as a nested table.
        resolve_option: Render ``None`` as an empty value instead of ``~``.
        flatten: Splice the nested record's fields into the parent.
        transform: ``(record, value) -> display value`` called before display.
        into: Record (or scalar) type the value is converted to before display.
        via: Conversion callable; defaults to calling ``into``.
        rename_header: Table header label.
        rename_description: Description label (a ``:`` is appended).
    """
    return {
        METADATA_KEY: FieldOptions(
            skip=skip,
            skip_header=skip_header,
            skip_description=skip_description,
            output_table=output_table,
            resolve_option=resolve_option,
            flatten=flatten,
            transform=transform,
            into=into,
            via=via,
            rename_header=rename_header,
            rename_description=rename_description,
        )
    }


def _check_conflicts(record_name: str, name: str, opts: FieldOptions, kind: FieldKind) -> None:
    if opts.flatten:
        for attribute, present in (
            ("into", opts.into is not None),
            ("transform", opts.transform is not None),
            ("output_table", opts.output_table),
        ):
            if present:
                raise ConflictingFieldAttributes(record_name, name, ("flatten", attribute))
        if kind not in (FieldKind.RECORD, FieldKind.UNKNOWN):
            raise ConflictingFieldAttributes(record_name, name, ("flatten", f"{kind.value} type"))
    if opts.output_table and opts.transform is not None:
        raise ConflictingFieldAttributes(record_name, name, ("output_table", "transform"))


def _build_field(record_name: str, dc_field: dataclasses.Field[Any], hint: Any) -> FieldDescriptor:
    opts: FieldOptions = dc_field.metadata.get(METADATA_KEY, FieldOptions())
    kind, optional, target = classify(hint)
    if opts.into is not None:
        kind, _, target = classify(opts.into)
    _check_conflicts(record_name, dc_field.name, opts, kind)

    description_label = (
        f"{opts.rename_description}:"
        if opts.rename_description is not None
        else default_description_label(dc_field.name)
    )
    return FieldDescriptor(
        name=dc_field.name,
        header_label=opts.rename_header or default_header_label(dc_field.name),
        description_label=description_label,
        kind=kind,
        optional=optional,
        target=target,
        skip=opts.skip,
        skip_header=opts.skip or opts.skip_header,
        skip_description=opts.skip or opts.skip_description,
        output_as_table=opts.output_table,
        resolve_option=opts.resolve_option,
        flatten=opts.flatten,
        transform=opts.transform,
        convert_target=opts.into,
        converter=opts.via,
    )


def _table_target(fd: FieldDescriptor) -> type | None:
    if fd.kind is FieldKind.RECORD and fd.transform is None:
        return fd.target
    return None


def _has_column(
    fields: Sequence[FieldDescriptor], extra_fields: type | None, path: str, seen: tuple[type, ...]
) -> bool:
    """Whether dotted ``path`` names at least one table column of a record."""
    head, _, rest = path.partition(".")
    for fd in fields:
        if fd.skip:
            continue
        target = _table_target(fd)
        sub = rendered_descriptor(get_descriptor(target)) if target is not None and target not in seen else None
        if fd.flatten and sub is not None:
            if fd.name == head and not rest:
                return True
            inner = rest if fd.name == head else path
            if _has_column(sub.fields, sub.extra_fields, inner, (*seen, sub.record_type)):
                return True
        elif fd.name == head:
            if not rest:
                return True
            if sub is not None and _has_column(sub.fields, sub.extra_fields, rest, (*seen, sub.record_type)):
                return True
    if extra_fields is not None:
        extra = rendered_descriptor(get_descriptor(extra_fields))
        if extra.record_type not in seen:
            return _has_column(extra.fields, extra.extra_fields, path, (*seen, extra.record_type))
    return False


def _check_headers(
    cls: type, fields: Sequence[FieldDescriptor], headers: Sequence[str], extra_fields: type | None
) -> None:
    labelled = [fd for fd in fields if not fd.skip_header and not fd.flatten]
    if len(headers) != len(labelled):
        raise HeaderCountMismatch(cls.__name__, expected=len(labelled), got=len(headers))
    for path in headers:
        if not _has_column(fields, extra_fields, path, (cls,)):
            raise UnknownFieldPath(path)


def build_descriptor(
    cls: type,
    *,
    headers: Sequence[str] | None = None,
    into: type | None = None,
    via: Converter | None = None,
    extra_fields: type | None = None,
    extra_via: Converter | None = None,
    cell_transform: CellTransform | None = None,
) -> RecordDescriptor:
    """Build the immutable descriptor of a dataclass record type.

    Raises:
        NotARecordError: ``cls``, ``into`` or ``extra_fields`` is not a dataclass.
        ConflictingFieldAttributes: a field combines incompatible options.
        HeaderCountMismatch: ``headers`` does not name one path per default column.
        UnknownFieldPath: a ``headers`` path names no column.
    """
    for record_type in (cls, into, extra_fields):
        if record_type is not None and not is_record_type(record_type):
            raise NotARecordError(record_type)

    hints = _type_hints(cls)
    fields = [_build_field(cls.__name__, f, hints.get(f.name)) for f in dataclasses.fields(cls)]
    if headers is not None:
        _check_headers(cls, fields, headers, extra_fields)

    logger.debug("Built descriptor for %s with %d fields", cls.__name__, len(fields))
    return RecordDescriptor(
        record_type=cls,
        fields=tuple(fields),
        headers=tuple(headers) if headers is not None else None,
        convert_target=into,
        converter=via,
        extra_fields=extra_fields,
        extra_converter=extra_via,
        cell_transform=cell_transform,
    )


# ── Registry ──────────────────────────────────────────────────────────


def register(record_descriptor: RecordDescriptor) -> RecordDescriptor:
    """Register ``record_descriptor`` for its record type, replacing any previous one."""
    with _lock:
        _registry[record_descriptor.record_type] = record_descriptor
    logger.debug("Registered descriptor for %s", record_descriptor.name)
    return record_descriptor


def get_descriptor(cls: type) -> RecordDescriptor:
    """Return the registered descriptor of ``cls``, building a default one if needed."""
    with _lock:
        found = _registry.get(cls)
    if found is not None:
        return found
    built = build_descriptor(cls)
    with _lock:
        return _registry.setdefault(cls, built)


def rendered_descriptor(record_descriptor: RecordDescriptor) -> RecordDescriptor:
    """Follow record-level conversions to the descriptor whose fields are displayed."""
    seen = {record_descriptor.record_type}
    while record_descriptor.convert_target is not None and is_record_type(record_descriptor.convert_target):
        record_descriptor = get_descriptor(record_descriptor.convert_target)
        if record_descriptor.record_type in seen:
            break
        seen.add(record_descriptor.record_type)
    return record_descriptor


def descriptor(
    cls: type[_T] | None = None,
    *,
    headers: Sequence[str] | None = None,
    into: type | None = None,
    via: Converter | None = None,
    extra_fields: type | None = None,
    extra_via: Converter | None = None,
    cell_transform: CellTransform | None = None,
) -> Any:
    """Class decorator building and registering a record's descriptor eagerly.

    Usable bare (``@descriptor``) or with record-level options::

        @descriptor(headers=["seat", "brand"])
        @dataclass
        class Car:
            brand: str
            seat: int

    Build errors are raised when the class is defined.
    """

    def wrap(klass: type[_T]) -> type[_T]:
        register(
            build_descriptor(
                klass,
                headers=headers,
                into=into,
                via=via,
                extra_fields=extra_fields,
                extra_via=extra_via,
                cell_transform=cell_transform,
            )
        )
        return klass

    if cls is None:
        return wrap
    return wrap(cls)


def describe_enum(labels: Mapping[str, str] | None = None) -> Callable[[type[_T]], type[_T]]:
    """Class decorator registering display labels for enum members.

    Members without a label are displayed by name.
    """

    def wrap(klass: type[_T]) -> type[_T]:
        if not (isinstance(klass, type) and issubclass(klass, enum.Enum)):
            raise TypeError(f"{klass!r} is not an Enum")
        with _lock:
            _enum_labels[klass] = dict(labels or {})
        return klass

    return wrap


def enum_label(member: enum.Enum) -> str:
    with _lock:
        labels = _enum_labels.get(type(member), {})
    return labels.get(member.name, member.name)
