"""Tests for parser configuration."""

import pytest
from pydantic import ValidationError

from gtfs_reader.data.config import ParserConfig, RowLengthPolicy, get_parser_config


class TestParserConfig:
    """Tests for ParserConfig."""

    def test_defaults(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Test defaults when no environment variables are set."""
        for name in (
            "GTFS_ENCODING",
            "GTFS_ROW_LENGTH_POLICY",
            "GTFS_SKIP_INVALID_ROWS",
            "GTFS_MAX_LINE_LENGTH",
        ):
            monkeypatch.delenv(name, raising=False)

        config = ParserConfig(_env_file=None)

        assert config.encoding == "utf-8"
        assert config.row_length_policy is RowLengthPolicy.ERROR
        assert config.skip_invalid_rows is False
        assert config.max_line_length is None

    def test_from_environment(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Test that settings are read from environment variables."""
        monkeypatch.setenv("GTFS_ENCODING", "latin-1")
        monkeypatch.setenv("GTFS_ROW_LENGTH_POLICY", "skip")
        monkeypatch.setenv("GTFS_SKIP_INVALID_ROWS", "true")
        monkeypatch.setenv("GTFS_MAX_LINE_LENGTH", "4096")

        config = ParserConfig(_env_file=None)

        assert config.encoding == "latin-1"
        assert config.row_length_policy is RowLengthPolicy.SKIP
        assert config.skip_invalid_rows is True
        assert config.max_line_length == 4096

    def test_by_field_name(self) -> None:
        """Test passing settings by field name."""
        config = ParserConfig(skip_invalid_rows=True, max_line_length=100)
        assert config.skip_invalid_rows is True
        assert config.max_line_length == 100

    def test_invalid_max_line_length(self) -> None:
        with pytest.raises(ValidationError):
            ParserConfig(max_line_length=0)

    def test_invalid_policy(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("GTFS_ROW_LENGTH_POLICY", "ignore")
        with pytest.raises(ValidationError):
            ParserConfig(_env_file=None)

    def test_get_parser_config_cached(self) -> None:
        """Test the cached singleton."""
        get_parser_config.cache_clear()
        assert get_parser_config() is get_parser_config()
        get_parser_config.cache_clear()
