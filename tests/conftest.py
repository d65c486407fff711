# tests/conftest.py
"""
Shared fixtures for the hookwatch test suite.

Time is always injected: aggregator tests use ``FakeClock`` and coordinator
tests use a settable ``now``. File watching is replaced by ``StubWatcher`` so
no watchdog observer thread is started.
"""

import json
from pathlib import Path

import pytest

from hookwatch.config import HookWatchConfig
from hookwatch.logging_config import LoggingManager
from hookwatch.models import EventRecord

# 2026-03-10 12:00:00 UTC, a round multiple of every default bucket size
BASE_TS = 1_773_144_000_000


class FakeClock:
    """Epoch-ms clock that only moves when told to."""

    def __init__(self, start: int = BASE_TS):
        self.now = start

    def __call__(self) -> int:
        return self.now

    def advance(self, ms: int) -> int:
        self.now += ms
        return self.now


class StubWatcher:
    """Stands in for FileWatcher; records what it was asked to watch."""

    instances: list["StubWatcher"] = []

    def __init__(self, on_change):
        self.on_change = on_change
        self.watched: list[Path] = []
        self.started = False
        self.stopped = False
        StubWatcher.instances.append(self)

    def start(self) -> None:
        self.started = True

    def watch(self, path) -> bool:
        self.watched.append(Path(path))
        return True

    def stop(self) -> None:
        self.stopped = True

    def fire(self, path) -> None:
        self.on_change(Path(path))


@pytest.fixture(autouse=True)
def reset_logging_manager():
    """Undo any configure_logging() call a test makes."""
    yield
    LoggingManager().reset()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def stub_watcher():
    StubWatcher.instances = []
    return StubWatcher


@pytest.fixture
def make_event():
    """Factory for EventRecords with sensible defaults."""

    def _make(
        timestamp=BASE_TS,
        source_app="claude-code",
        session_id="abcdef1234567890",
        hook_event_type="PreToolUse",
        **extra,
    ) -> EventRecord:
        return EventRecord(
            source_app=source_app,
            session_id=session_id,
            hook_event_type=hook_event_type,
            timestamp=timestamp,
            **extra,
        )

    return _make


@pytest.fixture
def write_lines():
    """Append raw text lines (newline-terminated) to a file."""

    def _write(path: Path, *lines: str, terminate: bool = True) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        with path.open("a", encoding="utf-8") as f:
            for i, line in enumerate(lines):
                last = i == len(lines) - 1
                f.write(line + ("\n" if terminate or not last else ""))

    return _write


@pytest.fixture
def event_line():
    """JSON line for one event, as the capture hook writes it."""

    def _line(timestamp=BASE_TS, source_app="claude-code", session_id="abcdef1234567890",
              hook_event_type="PreToolUse", **payload) -> str:
        return json.dumps({
            "source_app": source_app,
            "session_id": session_id,
            "hook_event_type": hook_event_type,
            "payload": payload,
            "timestamp": timestamp,
        })

    return _line


@pytest.fixture
def config(tmp_path):
    """Configuration rooted in a temporary directory, UTC day boundary, file logging off."""
    return HookWatchConfig(
        ingest={"base_dir": str(tmp_path / "pai"), "timezone": "UTC"},
        logging={"file_enabled": False},
    )

