"""Object description formatter: indented ``Label: value`` blocks."""

from __future__ import annotations

from typing import Any

from record_descriptor.config import DEFAULT_CONFIG, RenderConfig
from record_descriptor.formatters.table import cell_width, pad_cell, render_resolved
from record_descriptor.resolver import (
    NestedRecord,
    RecordSequence,
    RenderMode,
    ResolvedRecord,
    Scalar,
    ScalarSequence,
    resolve,
)

ITEM_MARKER = "- "
ITEM_INDENT = "  "


def describe(record: Any, config: RenderConfig | None = None) -> str:
    """Render one record as an indented description.

    A record without visible fields renders as an empty string.
    """
    config = config or DEFAULT_CONFIG
    resolved = resolve(record, RenderMode.DESCRIPTION, config)
    return "\n".join(render_block(resolved, config))


def render_block(record: ResolvedRecord, config: RenderConfig = DEFAULT_CONFIG) -> list[str]:
    """Render the fields of one resolved record, labels aligned within the block."""
    if not record.fields:
        return []

    pad = max(cell_width(f.description_label) for f in record.fields)
    unit = config.indent_unit
    lines: list[str] = []
    for resolved in record.fields:
        label = resolved.description_label
        cell = resolved.cell

        if isinstance(cell, Scalar):
            if not cell.text:
                lines.append(label)
                continue
            # Continuation lines line up with the value column
            first, *rest = cell.text.split("\n")
            lines.append(f"{pad_cell(label, pad)} {first}")
            lines.extend((" " * (pad + 1) + line).rstrip() for line in rest)
            continue

        lines.append(label)
        if isinstance(cell, NestedRecord):
            lines.extend(unit + line for line in render_block(cell.record, config))
        elif isinstance(cell, ScalarSequence):
            lines.extend(ITEM_MARKER + item for item in cell.items)
        elif isinstance(cell, RecordSequence) and cell.as_table:
            table = render_resolved(cell.descriptor, cell.records, config=config)
            lines.extend(unit + line for line in table)
        elif isinstance(cell, RecordSequence):
            for element in cell.records:
                lines.extend(_render_item(element, config))
    return lines


def _render_item(record: ResolvedRecord, config: RenderConfig) -> list[str]:
    """Render one element of a record list, its first line marked with ``- ``."""
    block = render_block(record, config)
    if not block:
        return [ITEM_MARKER.rstrip()]
    return [ITEM_MARKER + block[0], *(ITEM_INDENT + line for line in block[1:])]
