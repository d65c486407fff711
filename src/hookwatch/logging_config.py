# src/hookwatch/logging_config.py
"""
Logging Configuration for hookwatch.

Every module logs through ``logging.getLogger(__name__)``. This module wires
those loggers to handlers once, at process start, from the ``[hookwatch.logging]``
configuration section.

Key concepts:

    **Display filter**: When ``console_enabled=False`` (the default), the
    console handler still exists but only passes through log records that
    carry ``extra={"display": True}``.  Operational messages such as
    "Watching: <file>" therefore reach the terminal while per-event chatter
    stays in the log file.

    **File modes**: ``file_mode="single"`` (the default) appends to one
    ``RotatingFileHandler`` file, which suits the capture hook being spawned
    once per assistant event. ``file_mode="per_run"`` creates a new
    timestamped file per invocation.

Usage:
    from hookwatch.logging_config import configure_logging, log_display

    configure_logging(app_name="hookwatch-server")

    logger = logging.getLogger("hookwatch.server")
    log_display(logger, logging.INFO, "Listening on %s:%d", host, port)
"""

import logging
import os
import sys
from datetime import datetime
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any, Optional

DEFAULT_LOGGING_CONFIG: dict[str, Any] = {
    "console_enabled": False,
    "console_level": "WARNING",
    "console_format": "%(levelname)s - %(message)s",
    "file_enabled": True,
    "file_level": "DEBUG",
    "file_directory": "~/.local/share/hookwatch/logs",
    "file_mode": "single",
    "file_name_pattern": "{app}_{timestamp:%Y%m%d_%H%M%S}.log",
    "file_single_name": "{app}.log",
    "file_format": "%(asctime)s [%(levelname)-8s] %(name)-30s - %(message)s (%(filename)s:%(lineno)d)",
    "rotation_max_bytes": 10 * 1024 * 1024,  # 10 MB
    "rotation_backup_count": 5,
    "display_min_level": "INFO",
    "components": {
        "hookwatch": "INFO",
        "watchdog": "WARNING",
        "uvicorn": "INFO",
        "uvicorn.access": "WARNING",
        "asyncio": "WARNING",
    },
}


def _level(value: str | int, fallback: int) -> int:
    if isinstance(value, int):
        return value
    level = logging.getLevelName(str(value).upper())
    return level if isinstance(level, int) else fallback


class DisplayFilter(logging.Filter):
    """Controls which log records pass through to the console handler.

    With the console globally enabled (verbose mode) every record passes and
    the handler level decides. Otherwise only records logged with
    ``extra={"display": True}`` pass, and only at or above
    ``display_min_level``.
    """

    def __init__(
        self,
        console_globally_enabled: bool = False,
        display_min_level: int = logging.INFO,
    ) -> None:
        super().__init__()
        self.console_globally_enabled = console_globally_enabled
        self.display_min_level = display_min_level

    def filter(self, record: logging.LogRecord) -> bool:
        if self.console_globally_enabled:
            return True

        if getattr(record, "display", False):
            return record.levelno >= self.display_min_level

        return False


class LoggingManager:
    """
    Singleton manager for the process-wide logging setup.

    Ensures handlers are only installed once; ``force_reconfigure`` replaces
    them (used by tests and by the CLI when ``--verbose`` is given late).
    """

    _instance: Optional["LoggingManager"] = None
    _configured: bool = False
    _log_file_path: Path | None = None
    _console_handler: logging.Handler | None = None
    _file_handler: logging.Handler | None = None

    def __new__(cls) -> "LoggingManager":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    @classmethod
    def get_instance(cls) -> "LoggingManager":
        return cls()

    @classmethod
    def is_configured(cls) -> bool:
        return cls._configured

    def configure(
        self,
        app_name: str = "hookwatch",
        config: dict[str, Any] | None = None,
        force_reconfigure: bool = False,
    ) -> Path | None:
        """
        Install console and file handlers on the root logger.

        Args:
            app_name: Used in the log file name.
            config: Overrides for DEFAULT_LOGGING_CONFIG.
            force_reconfigure: Replace handlers even if already configured.

        Returns:
            Path of the log file, or None when file logging is off or failed.
        """
        if LoggingManager._configured and not force_reconfigure:
            return LoggingManager._log_file_path

        log_config = {**DEFAULT_LOGGING_CONFIG, **(config or {})}

        root_logger = logging.getLogger()
        for handler in (LoggingManager._console_handler, LoggingManager._file_handler):
            if handler is not None:
                root_logger.removeHandler(handler)
                handler.close()
        LoggingManager._console_handler = None
        LoggingManager._file_handler = None
        LoggingManager._log_file_path = None

        root_logger.setLevel(logging.DEBUG)

        console_globally_enabled = bool(log_config.get("console_enabled", False))
        display_filter = DisplayFilter(
            console_globally_enabled=console_globally_enabled,
            display_min_level=_level(log_config.get("display_min_level", "INFO"), logging.INFO),
        )
        console_handler = logging.StreamHandler(sys.stderr)
        if console_globally_enabled:
            console_handler.setLevel(_level(log_config["console_level"], logging.WARNING))
        else:
            # the filter is the only gate when the console is "off"
            console_handler.setLevel(logging.DEBUG)
        console_handler.setFormatter(logging.Formatter(log_config["console_format"]))
        console_handler.addFilter(display_filter)
        root_logger.addHandler(console_handler)
        LoggingManager._console_handler = console_handler

        if log_config.get("file_enabled", True):
            file_handler, log_file_path = self._create_file_handler(log_config, app_name)
            if file_handler is not None:
                root_logger.addHandler(file_handler)
                LoggingManager._file_handler = file_handler
                LoggingManager._log_file_path = log_file_path

        components = log_config.get("components", DEFAULT_LOGGING_CONFIG["components"])
        for component_name, level_str in components.items():
            logging.getLogger(component_name).setLevel(_level(level_str, logging.INFO))

        LoggingManager._configured = True

        if LoggingManager._log_file_path:
            logging.getLogger(__name__).debug(
                f"Logging configured. Log file: {LoggingManager._log_file_path}"
            )
        return LoggingManager._log_file_path

    def _create_file_handler(
        self, config: dict[str, Any], app_name: str
    ) -> tuple[logging.Handler | None, Path | None]:
        log_dir = Path(os.path.expanduser(config["file_directory"]))
        try:
            log_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            sys.stderr.write(f"Warning: Cannot create log directory {log_dir}: {e}\n")
            return None, None

        try:
            if config.get("file_mode", "single") == "single":
                log_file_path = log_dir / config["file_single_name"].format(app=app_name)
                handler: logging.Handler = RotatingFileHandler(
                    log_file_path,
                    maxBytes=config["rotation_max_bytes"],
                    backupCount=config["rotation_backup_count"],
                    encoding="utf-8",
                )
            else:
                filename = config["file_name_pattern"].format(
                    app=app_name, timestamp=datetime.now()
                )
                log_file_path = log_dir / filename
                handler = logging.FileHandler(log_file_path, encoding="utf-8")
        except (KeyError, ValueError) as e:
            sys.stderr.write(f"Warning: Invalid log file name pattern: {e}\n")
            return None, None
        except OSError as e:
            sys.stderr.write(f"Warning: Cannot create log file in {log_dir}: {e}\n")
            return None, None

        handler.setLevel(_level(config.get("file_level", "DEBUG"), logging.DEBUG))
        handler.setFormatter(logging.Formatter(config["file_format"]))
        return handler, log_file_path

    def reset(self) -> None:
        """Remove installed handlers and forget the configuration."""
        root_logger = logging.getLogger()
        for handler in (LoggingManager._console_handler, LoggingManager._file_handler):
            if handler is not None:
                root_logger.removeHandler(handler)
                handler.close()
        LoggingManager._console_handler = None
        LoggingManager._file_handler = None
        LoggingManager._log_file_path = None
        LoggingManager._configured = False


# ---------------------------------------------------------------------------
# Public module-level functions
# ---------------------------------------------------------------------------


def configure_logging(
    app_name: str = "hookwatch",
    config: dict[str, Any] | None = None,
    force_reconfigure: bool = False,
) -> Path | None:
    """
    Configure logging for the application.

    Example:
        configure_logging(
            app_name="hookwatch-server",
            config={"console_enabled": True, "file_enabled": False},
        )
    """
    return LoggingManager.get_instance().configure(
        app_name=app_name,
        config=config,
        force_reconfigure=force_reconfigure,
    )


def log_display(
    logger: logging.Logger,
    level: int,
    msg: str,
    *args: Any,
    **kwargs: Any,
) -> None:
    """Log a message that also appears on the console in quiet mode.

    Wraps ``logger.log()`` with ``extra={"display": True}`` merged into any
    ``extra`` the caller passes.
    """
    extra = kwargs.pop("extra", None) or {}
    extra["display"] = True
    kwargs["extra"] = extra
    logger.log(level, msg, *args, **kwargs)


def get_log_file_path() -> Path | None:
    """Get the current log file path."""
    return LoggingManager._log_file_path
