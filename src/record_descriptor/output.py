"""Public entry points: describe records as strings or onto a stream."""

from __future__ import annotations

import logging
import sys
from collections.abc import Sequence
from typing import IO, Any

from record_descriptor.config import RenderConfig
from record_descriptor.errors import DescriptorError
from record_descriptor.formatters.description import describe
from record_descriptor.formatters.table import describe_table

logger = logging.getLogger(__name__)


def object_describe_to_string(record: Any, *, config: RenderConfig | None = None) -> str:
    """Describe one record as indented ``Label: value`` lines.

    Raises:
        DescriptorError: the record's descriptor is invalid or a field failed to resolve.
    """
    try:
        return describe(record, config)
    except DescriptorError as e:
        logger.debug("Description of %s aborted: %s", type(record).__name__, e)
        raise


def table_describe_to_string(records: Sequence[Any], *, config: RenderConfig | None = None) -> str:
    """Describe a non-empty sequence of same-shaped records as an aligned table.

    Raises:
        EmptyTableError: ``records`` is empty.
        DescriptorError: any other build or resolution failure.
    """
    return table_describe_with_header_to_string(records, (), config=config)


def table_describe_with_header_to_string(
    records: Sequence[Any],
    headers: Sequence[str],
    *,
    config: RenderConfig | None = None,
) -> str:
    """Describe records as a table restricted to the columns named by ``headers``.

    Headers are dotted field paths (``address.town``) and may name fields
    hidden from the default columns. An empty ``headers`` selects the default
    columns.
    """
    try:
        return describe_table(records, headers or None, config)
    except DescriptorError as e:
        logger.debug("Table description aborted: %s", e)
        raise


def object_describe(record: Any, file: IO[str] | None = None, *, config: RenderConfig | None = None) -> None:
    """Write the description of ``record`` followed by a newline to ``file`` (stdout by default)."""
    text = object_describe_to_string(record, config=config)
    (file or sys.stdout).write(f"{text}\n")


def table_describe(
    records: Sequence[Any],
    headers: Sequence[str] = (),
    file: IO[str] | None = None,
    *,
    config: RenderConfig | None = None,
) -> None:
    """Write the table of ``records`` followed by a newline to ``file`` (stdout by default)."""
    text = table_describe_with_header_to_string(records, headers, config=config)
    (file or sys.stdout).write(f"{text}\n")
