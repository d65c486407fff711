# tests/test_cli.py
"""Tests for the hookwatch command-line interface."""

import io
from datetime import datetime
from unittest.mock import patch
from zoneinfo import ZoneInfo

import pytest

from hookwatch.cli import cmd_where, create_parser, format_event, main
from hookwatch.models import EventRecord


@pytest.fixture
def config_file(tmp_path, monkeypatch):
    monkeypatch.delenv("PAI_DIR", raising=False)
    monkeypatch.delenv("HOOKWATCH_TIMEZONE", raising=False)
    path = tmp_path / "hookwatch.toml"
    path.write_text(
        "[hookwatch.ingest]\n"
        f'base_dir = "{(tmp_path / "pai").as_posix()}"\n'
        'timezone = "UTC"\n'
        "[hookwatch.server]\n"
        "port = 4555\n"
        "[hookwatch.logging]\n"
        "file_enabled = false\n",
        encoding="utf-8",
    )
    return path


class TestParser:
    """Tests for argument parsing."""

    def test_serve_options(self):
        args = create_parser().parse_args(["serve", "--host", "0.0.0.0", "-p", "8080"])
        assert (args.command, args.host, args.port) == ("serve", "0.0.0.0", 8080)

    def test_tail_json_flag(self):
        assert create_parser().parse_args(["tail", "--json"]).json is True

    def test_global_options(self):
        args = create_parser().parse_args(["-v", "-c", "x.toml", "where"])
        assert args.verbose and args.config == "x.toml"


class TestCommands:
    """Tests for command dispatch."""

    def test_no_command_prints_help(self, capsys):
        assert main([]) == 0
        assert "usage:" in capsys.readouterr().out

    def test_where(self, config_file, tmp_path, capsys):
        assert main(["--config", str(config_file), "where"]) == 0
        printed = capsys.readouterr().out.strip()
        today = datetime.now(ZoneInfo("UTC")).strftime("%Y-%m-%d")
        assert printed.startswith(str(tmp_path / "pai" / "history" / "raw-outputs"))
        assert printed.endswith(f"{today}_all-events.jsonl")

    def test_where_to_stream(self, config):
        out = io.StringIO()
        assert cmd_where(config, out) == 0
        assert out.getvalue().endswith("_all-events.jsonl\n")

    def test_missing_config_file(self, tmp_path, capsys):
        assert main(["--config", str(tmp_path / "nope.toml"), "where"]) == 2
        assert "not found" in capsys.readouterr().err

    def test_serve_uses_configured_port(self, config_file):
        with patch("uvicorn.run") as run:
            assert main(["--config", str(config_file), "serve"]) == 0
        _, kwargs = run.call_args
        assert kwargs["port"] == 4555
        assert kwargs["host"] == "127.0.0.1"

    def test_serve_port_override(self, config_file):
        with patch("uvicorn.run") as run:
            main(["--config", str(config_file), "serve", "--port", "9001"])
        assert run.call_args.kwargs["port"] == 9001


def test_format_event():
    record = EventRecord(
        id=3, source_app="kai", session_id="abcdef123", hook_event_type="Stop", timestamp=10
    )
    assert format_event(record) == "#3 10 kai:abcdef12 Stop"
