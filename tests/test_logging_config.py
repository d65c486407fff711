# tests/test_logging_config.py
"""
Tests for the hookwatch.logging_config module.

Tests the LoggingManager singleton, the display filter, file modes and
component log levels.
"""

import logging

import pytest

from hookwatch.logging_config import (
    DEFAULT_LOGGING_CONFIG,
    DisplayFilter,
    LoggingManager,
    configure_logging,
    get_log_file_path,
    log_display,
)


def _record(level=logging.INFO, display=False) -> logging.LogRecord:
    record = logging.LogRecord("hookwatch.test", level, __file__, 1, "message", None, None)
    if display:
        record.display = True
    return record


class TestDefaultLoggingConfig:
    """Tests for default logging configuration."""

    def test_console_quiet_by_default(self):
        assert DEFAULT_LOGGING_CONFIG["console_enabled"] is False

    def test_file_enabled_single_mode(self):
        assert DEFAULT_LOGGING_CONFIG["file_enabled"] is True
        assert DEFAULT_LOGGING_CONFIG["file_mode"] == "single"

    def test_components_defined(self):
        components = DEFAULT_LOGGING_CONFIG["components"]
        assert "hookwatch" in components
        assert "watchdog" in components


class TestDisplayFilter:
    """Tests for DisplayFilter."""

    def test_plain_records_blocked_in_quiet_mode(self):
        assert not DisplayFilter().filter(_record())

    def test_display_records_pass_in_quiet_mode(self):
        assert DisplayFilter().filter(_record(display=True))

    def test_display_records_below_min_level_blocked(self):
        display_filter = DisplayFilter(display_min_level=logging.WARNING)
        assert not display_filter.filter(_record(logging.INFO, display=True))

    def test_everything_passes_when_console_enabled(self):
        assert DisplayFilter(console_globally_enabled=True).filter(_record(logging.DEBUG))


class TestLoggingManager:
    """Tests for LoggingManager configuration."""

    def test_singleton(self):
        assert LoggingManager() is LoggingManager.get_instance()

    def test_single_file_mode(self, tmp_path):
        path = configure_logging(app_name="unit", config={"file_directory": str(tmp_path)})
        assert path == tmp_path / "unit.log"
        assert get_log_file_path() == path
        assert LoggingManager.is_configured()

    def test_per_run_file_mode(self, tmp_path):
        path = configure_logging(
            app_name="unit",
            config={"file_directory": str(tmp_path), "file_mode": "per_run"},
        )
        assert path.parent == tmp_path
        assert path.name.startswith("unit_")

    def test_file_disabled(self):
        assert configure_logging(config={"file_enabled": False}) is None

    def test_configure_only_once(self, tmp_path):
        first = configure_logging(app_name="one", config={"file_directory": str(tmp_path)})
        second = configure_logging(app_name="two", config={"file_directory": str(tmp_path)})
        assert first == second

    def test_force_reconfigure(self, tmp_path):
        configure_logging(app_name="one", config={"file_directory": str(tmp_path)})
        second = configure_logging(
            app_name="two", config={"file_directory": str(tmp_path)}, force_reconfigure=True
        )
        assert second == tmp_path / "two.log"

    def test_component_levels_applied(self):
        configure_logging(config={"file_enabled": False, "components": {"hookwatch.x": "ERROR"}})
        assert logging.getLogger("hookwatch.x").level == logging.ERROR

    def test_messages_reach_file(self, tmp_path):
        path = configure_logging(app_name="unit", config={"file_directory": str(tmp_path)})
        logging.getLogger("hookwatch.unit").info("written to file")
        LoggingManager._file_handler.flush()
        assert "written to file" in path.read_text(encoding="utf-8")

    def test_reset_removes_handlers(self, tmp_path):
        configure_logging(config={"file_directory": str(tmp_path)})
        handlers = (LoggingManager._console_handler, LoggingManager._file_handler)
        LoggingManager().reset()
        root = logging.getLogger()
        assert all(h not in root.handlers for h in handlers)
        assert not LoggingManager.is_configured()


class TestLogDisplay:
    """Tests for log_display()."""

    def test_sets_display_flag(self, caplog):
        caplog.set_level(logging.INFO, logger="hookwatch.test")
        log_display(logging.getLogger("hookwatch.test"), logging.INFO, "Watching: %s", "f.jsonl")
        record = caplog.records[-1]
        assert record.getMessage() == "Watching: f.jsonl"
        assert record.display is True

    def test_preserves_caller_extra(self, caplog):
        caplog.set_level(logging.INFO, logger="hookwatch.test")
        log_display(logging.getLogger("hookwatch.test"), logging.INFO, "x", extra={"tag": 1})
        assert caplog.records[-1].tag == 1


@pytest.fixture(autouse=True)
def _fresh_manager():
    LoggingManager().reset()
    yield
