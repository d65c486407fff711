# tests/test_exceptions.py
"""Tests for the hookwatch.exceptions module."""

import pytest

from hookwatch.exceptions import (
    ConfigError,
    HookWatchError,
    IngestionError,
    UnknownTimeRangeError,
)


class TestHookWatchError:
    """Tests for the base HookWatchError exception."""

    def test_default_message(self):
        error = HookWatchError()
        assert "unspecified error" in str(error).lower()

    def test_custom_message(self):
        assert str(HookWatchError("Custom error message")) == "Custom error message"

    def test_is_exception(self):
        assert isinstance(HookWatchError(), Exception)


class TestSubclasses:
    """Inheritance of the specific errors."""

    @pytest.mark.parametrize("cls", [ConfigError, IngestionError, UnknownTimeRangeError])
    def test_inherits_from_base(self, cls):
        assert issubclass(cls, HookWatchError)

    def test_unknown_range_is_config_error(self):
        with pytest.raises(ConfigError):
            raise UnknownTimeRangeError("2h", ["1m", "5m"])


class TestUnknownTimeRangeError:
    """Tests for UnknownTimeRangeError message and attributes."""

    def test_attributes(self):
        error = UnknownTimeRangeError("2h", ["1m", "5m"])
        assert error.range_name == "2h"
        assert error.available == ["1m", "5m"]

    def test_message_lists_available_ranges(self):
        error = UnknownTimeRangeError("2h", ["1m", "5m"])
        assert str(error) == "Unknown time range '2h'. Available: 1m, 5m"

    def test_message_without_ranges(self):
        assert "none configured" in str(UnknownTimeRangeError("2h"))
