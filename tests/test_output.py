"""Tests for the public output functions."""

from __future__ import annotations

import io
import logging
from dataclasses import dataclass, field
from typing import Optional

import pytest

import record_descriptor
from record_descriptor.config import RenderConfig
from record_descriptor.errors import EmptyTableError, FieldResolutionFailed
from record_descriptor.fields import describe_field
from record_descriptor.output import (
    object_describe,
    object_describe_to_string,
    table_describe,
    table_describe_to_string,
    table_describe_with_header_to_string,
)


@dataclass
class Address:
    street: str
    town: str


@dataclass
class User:
    name: str
    age: int
    address: Address
    email: Optional[str] = field(default=None, metadata=describe_field(resolve_option=True, skip_header=True))


USERS = [
    User("Adrien", 32, Address("Main street", "NY")),
    User("Corentin", 40, Address("10 rue de la paix", "Paris"), email="c@example.com"),
]


def _fail(owner, value):
    raise ValueError("cannot display")


@dataclass
class Failing:
    value: int = field(metadata=describe_field(transform=_fail))


class TestObjectDescribeToString:
    """Test object_describe_to_string."""

    def test_description(self):
        assert object_describe_to_string(USERS[0]) == (
            "Name:    Adrien\n"
            "Age:     32\n"
            "Address:\n"
            "  Street: Main street\n"
            "  Town:   NY\n"
            "Email:"
        )

    def test_config_is_used(self):
        text = object_describe_to_string(USERS[1], config=RenderConfig(indent=3))
        assert "\n   Street: 10 rue de la paix" in text

    def test_failure_returns_no_output(self, caplog):
        """Test that a failing transform aborts the render and is logged at debug level."""
        caplog.set_level(logging.DEBUG, logger="record_descriptor.output")
        with pytest.raises(FieldResolutionFailed):
            object_describe_to_string(Failing(1))
        assert "Description of Failing aborted" in caplog.text


class TestTableDescribeToString:
    """Test table_describe_to_string and its header variant."""

    def test_table(self):
        assert table_describe_to_string(USERS) == (
            "NAME     AGE ADDRESS.STREET    ADDRESS.TOWN\n"
            "Adrien   32  Main street       NY\n"
            "Corentin 40  10 rue de la paix Paris"
        )

    def test_empty(self):
        with pytest.raises(EmptyTableError):
            table_describe_to_string([])

    def test_accepts_tuples(self):
        assert table_describe_to_string(tuple(USERS)) == table_describe_to_string(USERS)

    def test_with_headers(self):
        assert table_describe_with_header_to_string(USERS, ["name", "email"]) == (
            "NAME     EMAIL\n"
            "Adrien\n"
            "Corentin c@example.com"
        )

    def test_empty_headers_select_defaults(self):
        assert table_describe_with_header_to_string(USERS, []) == table_describe_to_string(USERS)

    def test_package_exports(self):
        assert record_descriptor.table_describe_to_string is table_describe_to_string
        assert record_descriptor.object_describe_to_string is object_describe_to_string


class TestStreamOutput:
    """Test the stream writing variants."""

    def test_object_describe_to_stdout(self, capsys):
        object_describe(USERS[0])
        captured = capsys.readouterr()
        assert captured.out.startswith("Name:    Adrien\n")
        assert captured.out.endswith("Email:\n")

    def test_table_describe_to_file(self):
        buffer = io.StringIO()
        table_describe(USERS, ["name"], file=buffer)
        assert buffer.getvalue() == "NAME\nAdrien\nCorentin\n"

    def test_failure_writes_nothing(self):
        buffer = io.StringIO()
        with pytest.raises(FieldResolutionFailed):
            table_describe([Failing(1)], file=buffer)
        assert buffer.getvalue() == ""
