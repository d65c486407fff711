# src/hookwatch/pipeline.py
"""
The assembled event pipeline.

EventPipeline wires the pieces together::

    JsonlTailer -> IngestionCoordinator -> EventStore (ids, display list)
                                        -> BucketedAggregator -> ChartSeriesProducer

and exposes the synchronous query interface used by the server and CLI.
Only ``set_time_range`` and ``clear`` change state.

Usage:
    >>> pipeline = EventPipeline(load_config())
    >>> await pipeline.start(on_batch=lambda records: print(len(records)))
    >>> pipeline.recent(10)
    >>> pipeline.series()
    >>> await pipeline.stop()
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from pathlib import Path
from typing import Any

from .aggregation import BucketedAggregator, ChartSeriesProducer
from .aggregation.aggregator import Clock
from .config import HookWatchConfig
from .ingest import EventStore, FileWatcher, IngestionCoordinator
from .ingest.coordinator import BatchCallback
from .models import (
    ChartSnapshot,
    EventRecord,
    FilterOptions,
    TimeBucket,
    TimingMetrics,
)

logger = logging.getLogger(__name__)


class EventPipeline:
    """
    Owns one store, one aggregator and one coordinator.

    Args:
        config: Full configuration (defaults when omitted).
        clock: Epoch-ms time source for the aggregator.
        watcher_factory: Builds the file watcher for the coordinator.
    """

    def __init__(
        self,
        config: HookWatchConfig | None = None,
        clock: Clock | None = None,
        watcher_factory: Callable[[Callable[[Path], None]], FileWatcher] = FileWatcher,
    ):
        self.config = config or HookWatchConfig()
        self.store = EventStore(
            max_events=self.config.store.max_events,
            max_filter_sessions=self.config.store.max_filter_sessions,
        )
        self.aggregator = BucketedAggregator.from_config(self.config.aggregation, clock=clock)
        self.chart = ChartSeriesProducer(
            self.aggregator, tool_call_event_type=self.config.aggregation.tool_call_event_type
        )
        self.coordinator = IngestionCoordinator(
            self.config.ingest, self.store, watcher_factory=watcher_factory
        )
        self.coordinator.subscribe(self._on_batch)
        self._subscriber: BatchCallback | None = None

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    async def start(self, on_batch: BatchCallback | None = None) -> None:
        """Start the aggregator sweep and file ingestion."""
        if on_batch is not None:
            self._subscriber = on_batch
        await self.aggregator.start()
        await self.coordinator.start()

    async def stop(self) -> None:
        """Stop ingestion, then flush and stop the aggregator."""
        await self.coordinator.stop()
        await self.aggregator.cleanup()

    def subscribe(self, on_batch: BatchCallback | None) -> None:
        """Set (or remove) the single downstream batch subscriber."""
        self._subscriber = on_batch

    def _on_batch(self, records: list[EventRecord]) -> None:
        self.aggregator.add_events(records)
        if self._subscriber is not None:
            self._subscriber(records)

    def ingest(self, records: Sequence[EventRecord]) -> list[EventRecord]:
        """Feed records directly, as if they had been read from a file."""
        return self.coordinator.ingest(records)

    # -------------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------------

    def recent(self, limit: int = 100) -> list[EventRecord]:
        return self.store.recent(limit)

    def filter_options(self) -> FilterOptions:
        return self.store.filter_options()

    def series(self) -> list[TimeBucket]:
        return self.chart.series()

    def unique_agent_count(self) -> int:
        return self.chart.unique_agent_count()

    def tool_call_count(self) -> int:
        return self.chart.tool_call_count()

    def timing_metrics(self) -> TimingMetrics:
        return self.chart.timing_metrics()

    def snapshot(self) -> ChartSnapshot:
        return self.chart.snapshot()

    # -------------------------------------------------------------------------
    # Commands
    # -------------------------------------------------------------------------

    def set_time_range(self, name: str) -> None:
        """Raises UnknownTimeRangeError for an unconfigured range name."""
        self.aggregator.set_time_range(name)

    def clear(self) -> None:
        """User-initiated reset of the display list and the chart."""
        self.store.clear()
        self.aggregator.clear()
        logger.info("Pipeline cleared")

    @property
    def stats(self) -> dict[str, Any]:
        return {
            "store": self.store.stats,
            "aggregation": self.aggregator.stats,
            "tailer": self.coordinator.tailer.stats,
            "current_file": str(self.coordinator.current_file or ""),
        }
