"""Tests for config resolution module."""

from __future__ import annotations

import pytest

from record_descriptor.config import (
    DEFAULT_ABSENT_MARKER,
    DEFAULT_DATETIME_FORMAT,
    DEFAULT_INDENT,
    DEFAULT_MAX_DEPTH,
    RenderConfig,
    _load_toml,
    _resolve,
    resolve_config,
)

ENV_VARS = (
    "DESCRIPTOR_INDENT",
    "DESCRIPTOR_ABSENT_MARKER",
    "DESCRIPTOR_DATETIME_FORMAT",
    "DESCRIPTOR_MAX_DEPTH",
)


@pytest.fixture
def clean_env(monkeypatch):
    for var in ENV_VARS:
        monkeypatch.delenv(var, raising=False)
    return monkeypatch


class TestRenderConfig:
    """Test RenderConfig dataclass."""

    def test_default_values(self):
        """Test that dataclass has correct defaults."""
        config = RenderConfig()
        assert config.indent == DEFAULT_INDENT == 2
        assert config.absent_marker == DEFAULT_ABSENT_MARKER == "~"
        assert config.datetime_format == DEFAULT_DATETIME_FORMAT
        assert config.max_depth == DEFAULT_MAX_DEPTH

    def test_indent_unit(self):
        assert RenderConfig().indent_unit == "  "
        assert RenderConfig(indent=4).indent_unit == "    "

    def test_immutability(self):
        """Test that config is frozen (immutable)."""
        config = RenderConfig()
        with pytest.raises(AttributeError):
            config.indent = 4  # type: ignore[misc]


class TestLoadToml:
    """Test TOML file loading."""

    def test_load_missing_file(self, tmp_path):
        """Test that missing file returns empty dict."""
        assert _load_toml(tmp_path / "missing.toml") == {}

    def test_load_valid_toml(self, tmp_path):
        """Test loading valid TOML file."""
        config_file = tmp_path / "config.toml"
        config_file.write_text(
            """
[render]
indent = 4
absent_marker = "-"
"""
        )
        result = _load_toml(config_file)
        assert result["render"]["indent"] == 4
        assert result["render"]["absent_marker"] == "-"

    def test_load_invalid_toml(self, tmp_path, caplog):
        """Test that invalid TOML returns empty dict and logs warning."""
        config_file = tmp_path / "config.toml"
        config_file.write_text("invalid toml content [[[")
        assert _load_toml(config_file) == {}
        assert "Failed to parse config file" in caplog.text


class TestResolve:
    """Test the precedence helper."""

    def test_argument_wins(self, clean_env):
        clean_env.setenv("DESCRIPTOR_INDENT", "8")
        assert _resolve(3, "DESCRIPTOR_INDENT", 5, 2) == 3

    def test_env_before_file(self, clean_env):
        clean_env.setenv("DESCRIPTOR_INDENT", "8")
        assert _resolve(None, "DESCRIPTOR_INDENT", 5, 2) == "8"

    def test_file_before_default(self, clean_env):
        assert _resolve(None, "DESCRIPTOR_INDENT", 5, 2) == 5

    def test_default(self, clean_env):
        assert _resolve(None, "DESCRIPTOR_INDENT", None, 2) == 2

    def test_zero_argument_is_kept(self, clean_env):
        """Test that falsy explicit arguments still take precedence."""
        assert _resolve(0, "DESCRIPTOR_INDENT", 5, 2) == 0


class TestResolveConfig:
    """Test full configuration resolution."""

    def test_defaults_without_sources(self, clean_env, tmp_path):
        assert resolve_config(config_file=tmp_path / "missing.toml") == RenderConfig()

    def test_from_file(self, clean_env, tmp_path):
        config_file = tmp_path / "config.toml"
        config_file.write_text('[render]\nindent = 4\nmax_depth = 8\ndatetime_format = "%Y"\n')
        config = resolve_config(config_file=config_file)
        assert config.indent == 4
        assert config.max_depth == 8
        assert config.datetime_format == "%Y"
        assert config.absent_marker == "~"

    def test_env_overrides_file(self, clean_env, tmp_path):
        config_file = tmp_path / "config.toml"
        config_file.write_text("[render]\nindent = 4\n")
        clean_env.setenv("DESCRIPTOR_INDENT", "3")
        clean_env.setenv("DESCRIPTOR_ABSENT_MARKER", "n/a")
        config = resolve_config(config_file=config_file)
        assert config.indent == 3
        assert config.absent_marker == "n/a"

    def test_arguments_override_env(self, clean_env, tmp_path):
        clean_env.setenv("DESCRIPTOR_MAX_DEPTH", "5")
        config = resolve_config(max_depth=10, config_file=tmp_path / "missing.toml")
        assert config.max_depth == 10

    def test_invalid_file_falls_back(self, clean_env, tmp_path):
        config_file = tmp_path / "config.toml"
        config_file.write_text("not = [valid")
        assert resolve_config(config_file=config_file) == RenderConfig()

    def test_invalid_integer_falls_back(self, clean_env, tmp_path, caplog):
        """Test that a non-integer setting logs a warning and uses its default."""
        clean_env.setenv("DESCRIPTOR_INDENT", "wide")
        clean_env.setenv("DESCRIPTOR_MAX_DEPTH", "deep")
        config = resolve_config(config_file=tmp_path / "missing.toml")
        assert config.indent == DEFAULT_INDENT
        assert config.max_depth == DEFAULT_MAX_DEPTH
        assert "Invalid value for indent" in caplog.text
        assert "Invalid value for max_depth" in caplog.text
