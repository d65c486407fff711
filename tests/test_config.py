# tests/test_config.py
"""Tests for hookwatch configuration models and load_config()."""

from pathlib import Path

import pytest
from pydantic import ValidationError

from hookwatch.config import (
    DEFAULT_BASE_DIR,
    DEFAULT_TIMEZONE,
    AggregationConfig,
    HookWatchConfig,
    IngestConfig,
    get_default_config,
    load_config,
)
from hookwatch.exceptions import ConfigError


class TestDefaults:
    """Tests for default configuration values."""

    def test_default_values(self):
        config = get_default_config()
        assert config.ingest.base_dir == DEFAULT_BASE_DIR
        assert config.ingest.timezone == DEFAULT_TIMEZONE
        assert config.store.max_events == 1000
        assert config.store.max_filter_sessions == 100
        assert config.aggregation.debounce_ms == 50
        assert config.aggregation.retention_ms == 300_000
        assert config.aggregation.default_time_range == "1m"
        assert set(config.aggregation.time_ranges) == {"1m", "3m", "5m", "10m"}
        assert config.server.port == 4000

    def test_base_dir_expanded(self):
        assert IngestConfig(base_dir="~/x").base_dir_expanded == Path.home() / "x"

    def test_tzinfo(self):
        assert IngestConfig(timezone="Europe/Paris").tzinfo.key == "Europe/Paris"


class TestValidation:
    """Tests for model validation rules."""

    def test_unknown_timezone_rejected(self):
        with pytest.raises(ValidationError, match="Unknown timezone"):
            IngestConfig(timezone="Mars/Olympus_Mons")

    def test_default_range_must_exist(self):
        with pytest.raises(ValidationError, match="default_time_range"):
            AggregationConfig(default_time_range="2h")

    def test_time_range_names_filled_from_keys(self):
        config = AggregationConfig(
            default_time_range="30s",
            time_ranges={"30s": {"window_ms": 30_000, "bucket_size_ms": 500, "max_buckets": 60}},
        )
        assert config.time_ranges["30s"].name == "30s"

    def test_negative_debounce_rejected(self):
        with pytest.raises(ValidationError):
            AggregationConfig(debounce_ms=-1)


class TestLoadConfig:
    """Tests for load_config() sources and precedence."""

    def test_no_sources_gives_defaults(self):
        assert load_config(environ={}) == HookWatchConfig()

    def test_config_dict_with_section(self):
        config = load_config(config_dict={"hookwatch": {"store": {"max_events": 5}}}, environ={})
        assert config.store.max_events == 5

    def test_config_dict_without_section(self):
        config = load_config(config_dict={"server": {"port": 9000}}, environ={})
        assert config.server.port == 9000

    def test_toml_file(self, tmp_path):
        path = tmp_path / "hookwatch.toml"
        path.write_text(
            "[hookwatch.aggregation]\n"
            "debounce_ms = 10\n"
            'default_time_range = "30s"\n'
            'agent_filter = "claude-code:abcdef12"\n'
            "[hookwatch.aggregation.time_ranges.30s]\n"
            "window_ms = 30000\n"
            "bucket_size_ms = 500\n"
            "max_buckets = 60\n",
            encoding="utf-8",
        )
        config = load_config(config_file_path=path, environ={})
        assert config.aggregation.debounce_ms == 10
        assert config.aggregation.agent_filter == "claude-code:abcdef12"
        assert set(config.aggregation.time_ranges) == {"30s"}

    def test_config_dict_overrides_file(self, tmp_path):
        path = tmp_path / "hookwatch.toml"
        path.write_text("[hookwatch.server]\nport = 5000\n", encoding="utf-8")
        config = load_config(
            config_dict={"hookwatch": {"server": {"port": 6000}}},
            config_file_path=path,
            environ={},
        )
        assert config.server.port == 6000

    def test_missing_file_raises(self, tmp_path):
        with pytest.raises(ConfigError, match="not found"):
            load_config(config_file_path=tmp_path / "missing.toml", environ={})

    def test_malformed_file_raises(self, tmp_path):
        path = tmp_path / "bad.toml"
        path.write_text("[hookwatch\n", encoding="utf-8")
        with pytest.raises(ConfigError):
            load_config(config_file_path=path, environ={})

    def test_environment_overrides(self, tmp_path):
        config = load_config(
            config_dict={"hookwatch": {"ingest": {"base_dir": "/from/file"}}},
            environ={"PAI_DIR": str(tmp_path), "HOOKWATCH_TIMEZONE": "UTC"},
        )
        assert config.ingest.base_dir == str(tmp_path)
        assert config.ingest.timezone == "UTC"

    def test_invalid_section_falls_back_to_defaults(self, caplog):
        config = load_config(config_dict={"store": {"max_events": 0}}, environ={})
        assert config.store.max_events == 1000
        assert "Using defaults" in caplog.text

    def test_invalid_section_keeps_environment(self, tmp_path):
        config = load_config(
            config_dict={"store": {"max_events": 0}}, environ={"PAI_DIR": str(tmp_path)}
        )
        assert config.ingest.base_dir == str(tmp_path)

    def test_invalid_environment_falls_back_to_plain_defaults(self):
        config = load_config(environ={"HOOKWATCH_TIMEZONE": "Not/AZone"})
        assert config == HookWatchConfig()
