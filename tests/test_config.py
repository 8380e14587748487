"""Tests for runtime options."""

import pytest

from dbtop.config import DEFAULT_URI, Options, env_log_level, env_uri, int_env, split_fields
from dbtop.errors import BadOptions
from dbtop.models import Shape


class TestIntEnv:
    """Tests for integer environment variables."""

    def test_unset_uses_default(self, monkeypatch):
        monkeypatch.delenv("DBTOP_TEST_INT", raising=False)
        assert int_env("DBTOP_TEST_INT", 5) == 5

    def test_parsed(self, monkeypatch):
        monkeypatch.setenv("DBTOP_TEST_INT", "7")
        assert int_env("DBTOP_TEST_INT", 5) == 7

    def test_garbage_uses_default(self, monkeypatch):
        monkeypatch.setenv("DBTOP_TEST_INT", "seven")
        assert int_env("DBTOP_TEST_INT", 5) == 5

    def test_minimum(self, monkeypatch):
        monkeypatch.setenv("DBTOP_TEST_INT", "0")
        assert int_env("DBTOP_TEST_INT", 5, min_value=1) == 1


def test_env_uri(monkeypatch):
    """Test the connection string can come from the environment."""
    monkeypatch.delenv("DBTOP_URI", raising=False)
    assert env_uri() == DEFAULT_URI
    monkeypatch.setenv("DBTOP_URI", "mongodb://db:27018")
    assert env_uri() == "mongodb://db:27018"


def test_env_log_level(monkeypatch):
    """Test the log level is upper-cased."""
    monkeypatch.setenv("DBTOP_LOG_LEVEL", "debug")
    assert env_log_level() == "DEBUG"


class TestOptions:
    """Tests for Options."""

    def test_defaults(self):
        """Test the default run samples top every second forever."""
        options = Options().validate()
        assert options.shape is Shape.TOP
        assert options.sleep_time == 1
        assert options.row_count == 0

    @pytest.mark.parametrize(
        ("kwargs", "shape"),
        [
            ({"locks": True}, Shape.LOCKS),
            ({"operation_metrics": True}, Shape.OPERATION_METRICS),
            ({"stat": True}, Shape.STAT),
        ],
    )
    def test_shape_selection(self, kwargs, shape):
        assert Options(**kwargs).shape is shape

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"locks": True, "stat": True},
            {"sleep_time": 0},
            {"row_count": -1},
            {"list_count": -3},
            {"json": True, "tui": True},
            {"fields": ("conn", "bogus")},
            {"headers": "tiny"},
        ],
    )
    def test_invalid(self, kwargs):
        """Test conflicting or out-of-range options are rejected."""
        with pytest.raises(BadOptions):
            Options(**kwargs).validate()

    def test_header_index(self):
        """Test header styles map onto status line name slots."""
        assert Options().header_index == 0
        assert Options(headers="long").header_index == 1
        assert Options(headers="deprecated").header_index == 2

    def test_known_fields_accepted(self):
        assert Options(stat=True, fields=("host", "conn", "time")).validate().fields == ("host", "conn", "time")


def test_split_fields():
    """Test a comma-separated field list ignores blanks and spaces."""
    assert split_fields("conn, insert,,time") == ("conn", "insert", "time")
    assert split_fields("") == ()
