# src/hookwatch/config.py
"""
Configuration Models for hookwatch.

Pydantic models that map to the optional ``[hookwatch]`` section of a TOML
configuration file. Every value has a default, so running without any
configuration file is the normal case.

Configuration Structure:
    [hookwatch.ingest]
    base_dir = "~/.local/share/pai"
    timezone = "America/Los_Angeles"
    rotation_check_interval_seconds = 3600

    [hookwatch.store]
    max_events = 1000
    max_filter_sessions = 100

    [hookwatch.aggregation]
    debounce_ms = 50
    retention_ms = 300000
    sweep_interval_seconds = 1.0
    default_time_range = "1m"
    agent_filter = ""            # "app:session-prefix"

    [hookwatch.server]
    host = "127.0.0.1"
    port = 4000

    [hookwatch.logging]
    console_enabled = false

Environment variables:
    - PAI_DIR: overrides ``ingest.base_dir``
    - HOOKWATCH_TIMEZONE: overrides ``ingest.timezone``

Usage:
    >>> from hookwatch.config import load_config
    >>> config = load_config()                       # defaults + environment
    >>> config = load_config(config_file_path="hookwatch.toml")
    >>> config.store.max_events
    1000
"""

from __future__ import annotations

import logging
import os
import tomllib
from collections.abc import Mapping
from pathlib import Path
from typing import Any
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import BaseModel, Field, ValidationError, field_validator, model_validator

from .exceptions import ConfigError
from .models import DEFAULT_TIME_RANGE, DEFAULT_TIME_RANGES, TOOL_CALL_EVENT_TYPE, TimeRangeConfig

logger = logging.getLogger(__name__)

ENV_BASE_DIR = "PAI_DIR"
ENV_TIMEZONE = "HOOKWATCH_TIMEZONE"

DEFAULT_BASE_DIR = "~/.local/share/pai"
DEFAULT_TIMEZONE = "America/Los_Angeles"
EVENTS_FILE_SUFFIX = "_all-events.jsonl"


# =============================================================================
# SECTION MODELS
# =============================================================================


class IngestConfig(BaseModel):
    """
    Where event files live and how day rotation is computed.

    Maps to: [hookwatch.ingest]
    """

    base_dir: str = Field(default=DEFAULT_BASE_DIR, description="Root of the history tree")
    timezone: str = Field(
        default=DEFAULT_TIMEZONE, description="Timezone anchoring the day boundary"
    )
    file_suffix: str = Field(default=EVENTS_FILE_SUFFIX, description="Daily file name suffix")
    rotation_check_interval_seconds: float = Field(
        default=3600.0, gt=0, description="How often to look for a new day's file"
    )

    @field_validator("timezone")
    @classmethod
    def validate_timezone(cls, v: str) -> str:
        try:
            ZoneInfo(v)
        except (ZoneInfoNotFoundError, ValueError) as e:
            raise ValueError(f"Unknown timezone '{v}'") from e
        return v

    @property
    def base_dir_expanded(self) -> Path:
        """Get expanded base directory."""
        return Path(self.base_dir).expanduser()

    @property
    def tzinfo(self) -> ZoneInfo:
        return ZoneInfo(self.timezone)


class StoreConfig(BaseModel):
    """
    Bounded in-memory event retention.

    Maps to: [hookwatch.store]
    """

    max_events: int = Field(default=1000, ge=1, description="Events kept for display")
    max_filter_sessions: int = Field(
        default=100, ge=1, description="Session ids reported by filter_options"
    )


class AggregationConfig(BaseModel):
    """
    Chart bucketing, debounce and retention.

    Maps to: [hookwatch.aggregation]
    """

    debounce_ms: int = Field(default=50, ge=0, description="Quiet period before a merge")
    retention_ms: int = Field(
        default=5 * 60 * 1000, gt=0, description="Age limit of the re-aggregation history"
    )
    sweep_interval_seconds: float = Field(
        default=1.0, gt=0, description="Period of the background pruning sweep"
    )
    default_time_range: str = Field(default=DEFAULT_TIME_RANGE)
    time_ranges: dict[str, TimeRangeConfig] = Field(
        default_factory=lambda: dict(DEFAULT_TIME_RANGES)
    )
    tool_call_event_type: str = Field(default=TOOL_CALL_EVENT_TYPE)
    agent_filter: str | None = Field(
        default=None, description="Optional 'app:session-prefix' restriction"
    )

    @field_validator("time_ranges", mode="before")
    @classmethod
    def fill_range_names(cls, v: Any) -> Any:
        # TOML tables are keyed by name; let the key double as the name
        if isinstance(v, Mapping):
            filled = {}
            for name, geometry in v.items():
                if isinstance(geometry, Mapping) and "name" not in geometry:
                    geometry = {**geometry, "name": name}
                filled[name] = geometry
            return filled
        return v

    @model_validator(mode="after")
    def check_default_range(self) -> AggregationConfig:
        if not self.time_ranges:
            raise ValueError("At least one time range must be configured")
        if self.default_time_range not in self.time_ranges:
            raise ValueError(
                f"default_time_range '{self.default_time_range}' is not one of "
                f"{sorted(self.time_ranges)}"
            )
        return self


class ServerConfig(BaseModel):
    """
    HTTP/WebSocket server.

    Maps to: [hookwatch.server]
    """

    host: str = Field(default="127.0.0.1")
    port: int = Field(default=4000, ge=1, le=65535)
    recent_limit: int = Field(default=100, ge=1, description="Events sent on connect")


# =============================================================================
# MAIN CONFIG MODEL
# =============================================================================


class HookWatchConfig(BaseModel):
    """
    Complete hookwatch configuration.

    Example:
        >>> config = HookWatchConfig()
        >>> config.aggregation.debounce_ms
        50
        >>> HookWatchConfig(store={"max_events": 10}).store.max_events
        10
    """

    ingest: IngestConfig = Field(default_factory=IngestConfig)
    store: StoreConfig = Field(default_factory=StoreConfig)
    aggregation: AggregationConfig = Field(default_factory=AggregationConfig)
    server: ServerConfig = Field(default_factory=ServerConfig)
    logging: dict[str, Any] = Field(
        default_factory=dict, description="Passed to configure_logging()"
    )


# =============================================================================
# LOADING FUNCTIONS
# =============================================================================


def _read_toml(config_file_path: str | Path) -> dict[str, Any]:
    path = Path(config_file_path).expanduser()
    try:
        with path.open("rb") as f:
            return tomllib.load(f)
    except FileNotFoundError as e:
        raise ConfigError(f"Configuration file not found: {path}") from e
    except (OSError, tomllib.TOMLDecodeError) as e:
        raise ConfigError(f"Failed to read configuration file {path}: {e}") from e


def _apply_environment(section: dict[str, Any], environ: Mapping[str, str]) -> dict[str, Any]:
    overrides = {}
    if environ.get(ENV_BASE_DIR):
        overrides["base_dir"] = environ[ENV_BASE_DIR]
    if environ.get(ENV_TIMEZONE):
        overrides["timezone"] = environ[ENV_TIMEZONE]
    if not overrides:
        return section

    ingest = section.get("ingest")
    ingest = dict(ingest) if isinstance(ingest, Mapping) else {}
    ingest.update(overrides)
    return {**section, "ingest": ingest}


def load_config(
    config_dict: dict[str, Any] | None = None,
    config_file_path: str | Path | None = None,
    section_path: str = "hookwatch",
    environ: Mapping[str, str] | None = None,
) -> HookWatchConfig:
    """
    Load hookwatch configuration.

    Sources, lowest precedence first: model defaults, the TOML file (if
    given), ``config_dict`` (if given), then environment variables.

    Args:
        config_dict: Pre-loaded configuration (whole document or section).
        config_file_path: Path to a TOML file.
        section_path: Dot-separated path to the hookwatch section.
        environ: Environment mapping (defaults to ``os.environ``).

    Returns:
        HookWatchConfig instance. A section that fails validation is
        reported and replaced by defaults.

    Raises:
        ConfigError: if ``config_file_path`` cannot be read or parsed.
    """
    environ = os.environ if environ is None else environ

    document: dict[str, Any] = {}
    if config_file_path is not None:
        document = _read_toml(config_file_path)
    if config_dict:
        document = {**document, **config_dict}

    section: Any = document
    for part in section_path.split("."):
        if not isinstance(section, dict) or part not in section:
            section = document if section is document else {}
            break
        section = section[part]

    if not isinstance(section, dict):
        logger.warning(f"Config section '{section_path}' is not a table, using defaults")
        section = {}

    section = _apply_environment(section, environ)

    try:
        return HookWatchConfig.model_validate(section)
    except ValidationError as e:
        logger.warning(f"Failed to parse hookwatch config: {e}. Using defaults.")

    try:
        return HookWatchConfig.model_validate(_apply_environment({}, environ))
    except ValidationError as e:
        logger.warning(f"Ignoring invalid environment overrides: {e}")
        return HookWatchConfig()


def get_default_config() -> HookWatchConfig:
    """Get the default configuration (environment variables ignored)."""
    return HookWatchConfig()
