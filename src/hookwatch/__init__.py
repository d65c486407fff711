# src/hookwatch/__init__.py
"""
hookwatch - live observability for AI coding-assistant lifecycle hooks.

A capture hook appends one JSON line per assistant hook event to a daily
file. The pipeline tails that file, keeps a bounded in-memory event list,
and aggregates a sliding window of events into fixed-size time buckets for
a live activity chart.
"""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("hookwatch")
except PackageNotFoundError:
    __version__ = "0.0.0"

from .config import HookWatchConfig, load_config
from .exceptions import ConfigError, HookWatchError, IngestionError, UnknownTimeRangeError
from .models import (
    AgentFilter,
    ChartSnapshot,
    EventRecord,
    FilterOptions,
    TimeBucket,
    TimeRangeConfig,
    TimingMetrics,
)
from .pipeline import EventPipeline

__all__ = [
    "__version__",
    "AgentFilter",
    "ChartSnapshot",
    "ConfigError",
    "EventPipeline",
    "EventRecord",
    "FilterOptions",
    "HookWatchConfig",
    "HookWatchError",
    "IngestionError",
    "TimeBucket",
    "TimeRangeConfig",
    "TimingMetrics",
    "UnknownTimeRangeError",
    "load_config",
]
