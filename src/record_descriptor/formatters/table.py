"""Table formatting: aligned columns for a sequence of same-shaped records."""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from typing import Any

from rich.cells import cell_len
from rich.text import Text

from record_descriptor.config import DEFAULT_CONFIG, RenderConfig
from record_descriptor.errors import EmptyTableError, FieldResolutionFailed, NonScalarTableCell, UnknownFieldPath
from record_descriptor.fields import (
    FieldDescriptor,
    FieldKind,
    RecordDescriptor,
    get_descriptor,
    rendered_descriptor,
)
from record_descriptor.resolver import (
    EXTRA_SEGMENT,
    NestedRecord,
    RenderMode,
    ResolvedRecord,
    Scalar,
    ScalarSequence,
    resolve,
)


@dataclass(frozen=True)
class Column:
    """One table column: the field path it reads and its header label.

    ``path`` is the dotted path users select the column by; flattened and
    extra fields appear in it under their own name. ``lookup`` holds, per
    nesting level, the resolved field path the cell is read from.
    ``non_scalar`` marks columns that cannot hold a single line of text; they
    fail only once selected for display.
    """

    path: tuple[str, ...]
    header: str
    lookup: tuple[tuple[str, ...], ...]
    hidden: bool = False
    non_scalar: bool = False

    @property
    def dotted(self) -> str:
        return ".".join(self.path)

    @property
    def source(self) -> str:
        """Dotted path including the names of flattened parents."""
        return ".".join(segment for step in self.lookup for segment in step)

    def spliced(self, segment: str, hidden: bool) -> Column:
        """This column as seen from a record that splices it in under ``segment``."""
        first, *rest = self.lookup
        return Column(self.path, self.header, ((segment, *first), *rest), hidden or self.hidden, self.non_scalar)

    def nested(self, name: str, header: str, hidden: bool) -> Column:
        """This column as seen from a record holding its record in field ``name``."""
        return Column(
            (name, *self.path),
            f"{header}.{self.header}",
            ((name,), *self.lookup),
            hidden or self.hidden,
            self.non_scalar,
        )


def cell_width(text: str) -> int:
    """Terminal cell width of ``text``, ignoring ANSI escape sequences."""
    if "\x1b" in text:
        return Text.from_ansi(text).cell_len
    return cell_len(text)


def pad_cell(text: str, width: int) -> str:
    return text + " " * (width - cell_width(text))


def _nested_descriptor(fd: FieldDescriptor) -> RecordDescriptor | None:
    if fd.transform is not None or fd.kind is not FieldKind.RECORD or fd.target is None:
        return None
    return rendered_descriptor(get_descriptor(fd.target))


def _field_columns(fd: FieldDescriptor, seen: tuple[type, ...]) -> list[Column]:
    hidden = fd.hidden_in_table
    nested = _nested_descriptor(fd)
    if nested is not None:
        if nested.record_type in seen:
            return [Column((fd.name,), fd.header_label, ((fd.name,),), hidden, non_scalar=True)]
        sub_columns = table_columns(nested, _seen=seen)
        if fd.flatten:
            return [c.spliced(fd.name, hidden) for c in sub_columns]
        return [c.nested(fd.name, fd.header_label, hidden) for c in sub_columns]

    non_scalar = fd.transform is None and (
        fd.kind is FieldKind.MAPPING or (fd.kind is FieldKind.SEQUENCE and fd.target is not None)
    )
    return [Column((fd.name,), fd.header_label, ((fd.name,),), hidden, non_scalar)]


def table_columns(record_descriptor: RecordDescriptor, *, _seen: tuple[type, ...] = ()) -> list[Column]:
    """Every column of a record type, hidden ones included, in display order."""
    seen = (*_seen, record_descriptor.record_type)
    columns: list[Column] = []
    for fd in record_descriptor.fields:
        if fd.skip:
            continue
        columns.extend(_field_columns(fd, seen))
    if record_descriptor.extra_fields is not None:
        extra = rendered_descriptor(get_descriptor(record_descriptor.extra_fields))
        if extra.record_type not in seen:
            columns.extend(c.spliced(EXTRA_SEGMENT, False) for c in table_columns(extra, _seen=seen))
    return columns


def _matching(columns: Sequence[Column], path: str) -> list[Column]:
    """Columns selected by one dotted ``path``.

    Full source paths (``owner.name`` for a flattened ``owner``) win over the
    shorter display paths, so a flattened field shadowed by a parent field
    stays reachable.
    """
    for key in (lambda c: c.source, lambda c: c.dotted):
        matches = [c for c in columns if key(c) == path or key(c).startswith(f"{path}.")]
        if matches:
            return matches
    return []


def select_columns(record_descriptor: RecordDescriptor, headers: Sequence[str] | None = None) -> list[Column]:
    """Pick the displayed columns.

    ``headers`` are dotted field paths; naming a nested record selects all of
    its sub-columns. Without ``headers`` the record's own ``headers`` option
    applies, and failing that every column not hidden from tables.

    Raises:
        NonScalarTableCell: a selected column cannot hold a single line of text.
        UnknownFieldPath: a header names no column.
    """
    columns = table_columns(record_descriptor)
    headers = headers or record_descriptor.headers
    if headers:
        selected = []
        for path in headers:
            matches = _matching(columns, path)
            if not matches:
                raise UnknownFieldPath(path)
            selected.extend(matches)
    else:
        selected = [c for c in columns if not c.hidden]

    for column in selected:
        if column.non_scalar:
            raise NonScalarTableCell(column.dotted)
    return selected


def cell_text(record: ResolvedRecord, column: Column, config: RenderConfig = DEFAULT_CONFIG) -> str:
    """Text of ``column`` for one resolved row."""
    chain = [record]
    text = None
    current = record
    for step in column.lookup:
        resolved = current.get(step)
        if resolved is None:
            text = config.absent_marker
            break
        cell = resolved.cell
        if isinstance(cell, NestedRecord):
            current = cell.record
            chain.append(current)
            continue
        if isinstance(cell, Scalar):
            text = cell.text
        elif isinstance(cell, ScalarSequence):
            text = ",".join(cell.items)
        break

    if text is None or "\n" in text:
        raise NonScalarTableCell(column.dotted)

    for owner in reversed(chain):
        record_descriptor = owner.descriptor
        if record_descriptor is not None and record_descriptor.cell_transform is not None:
            try:
                text = record_descriptor.cell_transform(owner.source, text)
            except Exception as e:
                raise FieldResolutionFailed(column.dotted, e) from e
    return text


def render_rows(headers: Sequence[str], rows: Sequence[Sequence[str]]) -> list[str]:
    """Align a header row and data rows into lines.

    Every column but the last is padded to its widest entry; columns are
    separated by one space and trailing whitespace is trimmed.
    """
    widths = [cell_width(h) for h in headers]
    for row in rows:
        for idx, cell in enumerate(row):
            widths[idx] = max(widths[idx], cell_width(cell))

    def line(cells: Sequence[str]) -> str:
        padded = [pad_cell(cell, widths[idx]) for idx, cell in enumerate(cells[:-1])]
        return " ".join([*padded, *cells[-1:]]).rstrip()

    return [line(headers), *(line(row) for row in rows)]


def render_resolved(
    record_descriptor: RecordDescriptor,
    records: Iterable[ResolvedRecord],
    headers: Sequence[str] | None = None,
    config: RenderConfig = DEFAULT_CONFIG,
) -> list[str]:
    """Render already resolved records as table lines."""
    return _render_columns(select_columns(record_descriptor, headers), records, config)


def _render_columns(columns: Sequence[Column], records: Iterable[ResolvedRecord], config: RenderConfig) -> list[str]:
    rows = [[cell_text(record, column, config) for column in columns] for record in records]
    return render_rows([c.header for c in columns], rows)


def describe_table(
    records: Sequence[Any],
    headers: Sequence[str] | None = None,
    config: RenderConfig | None = None,
) -> str:
    """Render ``records`` as an aligned table, header first.

    Raises:
        EmptyTableError: ``records`` is empty.
        FieldResolutionFailed: a transform or conversion failed.
        NonScalarTableCell: a column cannot hold a single line of text.
        UnknownFieldPath: an explicit header names no column.
    """
    records = list(records)
    if not records:
        raise EmptyTableError()

    config = config or DEFAULT_CONFIG
    record_descriptor = rendered_descriptor(get_descriptor(type(records[0])))
    columns = select_columns(record_descriptor, headers)
    include_hidden = bool(headers or record_descriptor.headers)
    resolved = [resolve(r, RenderMode.TABLE, config, include_hidden=include_hidden) for r in records]
    return "\n".join(_render_columns(columns, resolved, config))
