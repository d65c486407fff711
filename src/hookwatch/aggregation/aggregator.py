# src/hookwatch/aggregation/aggregator.py
"""
Time-bucketed event aggregation for the activity chart.

BucketedAggregator keeps two views of the incoming event stream:

- **Buckets**: a sparse map ``bucket_start_ms -> TimeBucket`` for the active
  time range, updated incrementally. Arrivals are collected in a buffer and
  merged in one pass once no new event has arrived for ``debounce_ms``, so a
  burst of hook events costs one merge rather than one per event.
- **History**: every accepted event from the last ``retention_ms``. It exists
  so that switching the time range can rebuild the buckets at the new
  granularity from scratch.

Both views are pruned on every merge and by a periodic sweep, so stale data
disappears even when nothing new arrives.

Threading:
    None. All methods must be called from the event loop thread; the
    debounce timer and the sweep are scheduled on that same loop.

Usage:
    >>> aggregator = BucketedAggregator.from_config(config.aggregation)
    >>> await aggregator.start()
    >>> aggregator.add_event(record)         # merged ~50ms later
    >>> aggregator.set_time_range("5m")      # full re-aggregation
    >>> await aggregator.cleanup()           # flushes anything still buffered
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Callable, Iterable, Mapping
from typing import Any

from ..config import AggregationConfig
from ..exceptions import UnknownTimeRangeError
from ..models import (
    DEFAULT_TIME_RANGE,
    DEFAULT_TIME_RANGES,
    AgentFilter,
    EventRecord,
    TimeBucket,
    TimeRangeConfig,
)

logger = logging.getLogger(__name__)

DEFAULT_DEBOUNCE_MS = 50
DEFAULT_RETENTION_MS = 5 * 60 * 1000
DEFAULT_SWEEP_INTERVAL_SECONDS = 1.0

Clock = Callable[[], int]


def wall_clock_ms() -> int:
    """Current wall-clock time in epoch milliseconds."""
    return int(time.time() * 1000)


class BucketedAggregator:
    """
    Debounced, windowed bucket counts with re-aggregation on range change.

    Args:
        time_ranges: Named window/bucket geometries.
        default_range: Name of the initially active range.
        debounce_ms: Quiet period before buffered events are merged. 0 merges
            on every ``add_event``.
        retention_ms: Age limit of the re-aggregation history.
        sweep_interval_seconds: Period of the background prune.
        agent_filter: Optional ``AgentFilter`` or ``"app:session"`` string.
        clock: Returns "now" in epoch ms.
    """

    def __init__(
        self,
        time_ranges: Mapping[str, TimeRangeConfig] | None = None,
        default_range: str = DEFAULT_TIME_RANGE,
        debounce_ms: int = DEFAULT_DEBOUNCE_MS,
        retention_ms: int = DEFAULT_RETENTION_MS,
        sweep_interval_seconds: float = DEFAULT_SWEEP_INTERVAL_SECONDS,
        agent_filter: AgentFilter | str | None = None,
        clock: Clock | None = None,
    ):
        self._time_ranges = dict(time_ranges or DEFAULT_TIME_RANGES)
        if default_range not in self._time_ranges:
            raise UnknownTimeRangeError(default_range, list(self._time_ranges))
        self._range = self._time_ranges[default_range]
        self._debounce_seconds = debounce_ms / 1000
        self._retention_ms = retention_ms
        self._sweep_interval = sweep_interval_seconds
        self._filter = (
            AgentFilter.parse(agent_filter) if isinstance(agent_filter, str) else agent_filter
        )
        self._clock = clock or wall_clock_ms

        self._buckets: dict[int, TimeBucket] = {}
        self._history: list[EventRecord] = []
        self._buffer: list[EventRecord] = []
        self._timer: asyncio.TimerHandle | None = None
        self._sweep_task: asyncio.Task | None = None
        self._merge_count = 0

    @classmethod
    def from_config(
        cls, config: AggregationConfig, clock: Clock | None = None
    ) -> BucketedAggregator:
        return cls(
            time_ranges=config.time_ranges,
            default_range=config.default_time_range,
            debounce_ms=config.debounce_ms,
            retention_ms=config.retention_ms,
            sweep_interval_seconds=config.sweep_interval_seconds,
            agent_filter=config.agent_filter,
            clock=clock,
        )

    # -------------------------------------------------------------------------
    # Properties
    # -------------------------------------------------------------------------

    @property
    def config(self) -> TimeRangeConfig:
        """The active time range geometry."""
        return self._range

    @property
    def time_range(self) -> str:
        return self._range.name

    @property
    def time_ranges(self) -> dict[str, TimeRangeConfig]:
        return dict(self._time_ranges)

    @property
    def agent_filter(self) -> AgentFilter | None:
        return self._filter

    @property
    def pending(self) -> int:
        """Events buffered but not merged yet."""
        return len(self._buffer)

    def now(self) -> int:
        return self._clock()

    # -------------------------------------------------------------------------
    # Incremental path
    # -------------------------------------------------------------------------

    def add_event(self, event: EventRecord) -> None:
        """
        Buffer an event and (re)start the debounce timer.

        Events without a timestamp are ignored. Outside a running event loop
        there is nothing to schedule a timer on, so the buffer is merged
        immediately.
        """
        if event.timestamp is None:
            return
        self._buffer.append(event)

        loop = self._running_loop()
        if loop is None or self._debounce_seconds <= 0:
            self.flush()
            return

        if self._timer is not None:
            self._timer.cancel()
        self._timer = loop.call_later(self._debounce_seconds, self._on_debounce)

    def add_events(self, events: Iterable[EventRecord]) -> None:
        for event in events:
            self.add_event(event)

    def _on_debounce(self) -> None:
        self._timer = None
        self.flush()

    def flush(self) -> int:
        """
        Merge everything buffered, in one pass, then prune.

        Returns:
            Number of events accepted (after the agent filter).
        """
        self._cancel_timer()
        if not self._buffer:
            return 0

        accepted = self._accept(self._take_buffer())
        self._history.extend(accepted)
        self._merge(accepted)

        now = self.now()
        self._prune_buckets(now)
        self._prune_history(now)
        self._merge_count += 1
        logger.debug(f"Merged {len(accepted)} event(s) into {len(self._buckets)} bucket(s)")
        return len(accepted)

    def _take_buffer(self) -> list[EventRecord]:
        events, self._buffer = self._buffer, []
        return events

    def _accept(self, events: Iterable[EventRecord]) -> list[EventRecord]:
        return [
            event
            for event in events
            if event.timestamp is not None and (self._filter is None or self._filter.matches(event))
        ]

    def _merge(self, events: Iterable[EventRecord]) -> None:
        config = self._range
        for event in events:
            key = config.bucket_key(event.timestamp)
            bucket = self._buckets.get(key)
            if bucket is None:
                bucket = self._buckets[key] = TimeBucket(timestamp=key)
            bucket.add(event)

    # -------------------------------------------------------------------------
    # Pruning
    # -------------------------------------------------------------------------

    def _prune_buckets(self, now: int) -> None:
        cutoff = now - self._range.window_ms
        keys = sorted(key for key in self._buckets if key >= cutoff)
        if len(keys) > self._range.max_buckets:
            keys = keys[-self._range.max_buckets :]
        self._buckets = {key: self._buckets[key] for key in keys}

    def _prune_history(self, now: int) -> None:
        cutoff = now - self._retention_ms
        self._history = [event for event in self._history if event.timestamp >= cutoff]

    def sweep(self) -> None:
        """Re-apply age pruning to buckets and history."""
        now = self.now()
        self._prune_buckets(now)
        self._prune_history(now)

    async def _sweep_loop(self) -> None:
        while True:
            await asyncio.sleep(self._sweep_interval)
            try:
                self.sweep()
            except Exception as e:
                logger.error(f"Aggregation sweep failed: {e}", exc_info=True)

    # -------------------------------------------------------------------------
    # Re-aggregation
    # -------------------------------------------------------------------------

    def set_time_range(self, name: str) -> None:
        """
        Switch the active range and rebuild the buckets from history.

        Events still waiting in the debounce buffer are moved into history
        first, so they are part of the rebuild rather than merged under the
        old geometry.

        Raises:
            UnknownTimeRangeError: if ``name`` is not a configured range.
        """
        if name not in self._time_ranges:
            raise UnknownTimeRangeError(name, list(self._time_ranges))

        self._cancel_timer()
        if self._buffer:
            self._history.extend(self._accept(self._take_buffer()))

        self._range = self._time_ranges[name]
        self.reaggregate()
        logger.info(f"Time range set to {name} ({len(self._buckets)} bucket(s) rebuilt)")

    def reaggregate(self) -> None:
        """Discard all buckets and rebuild them from in-window history."""
        now = self.now()
        cutoff = now - self._range.window_ms
        self._buckets = {}
        self._merge(event for event in self._accept(self._history) if event.timestamp >= cutoff)
        self._prune_buckets(now)
        self._prune_history(now)

    # -------------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------------

    def get_bucket(self, timestamp: int) -> TimeBucket | None:
        """Live bucket starting exactly at ``timestamp``; callers must not mutate it."""
        return self._buckets.get(timestamp)

    def buckets(self) -> list[TimeBucket]:
        """Copies of the current buckets, oldest first."""
        return [self._buckets[key].model_copy(deep=True) for key in sorted(self._buckets)]

    def history(self) -> list[EventRecord]:
        """Retained events in arrival order."""
        return list(self._history)

    def history_in_window(self, now: int | None = None) -> list[EventRecord]:
        """Retained events no older than the active window."""
        now = self.now() if now is None else now
        cutoff = now - self._range.window_ms
        return [event for event in self._history if event.timestamp >= cutoff]

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    def _running_loop(self) -> asyncio.AbstractEventLoop | None:
        try:
            return asyncio.get_running_loop()
        except RuntimeError:
            return None

    def _cancel_timer(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    async def start(self) -> None:
        """Start the periodic sweep. Idempotent."""
        if self._sweep_task is None or self._sweep_task.done():
            self._sweep_task = asyncio.create_task(self._sweep_loop())

    async def cleanup(self) -> None:
        """Stop timers and the sweep, merging anything still buffered."""
        if self._sweep_task is not None:
            self._sweep_task.cancel()
            try:
                await self._sweep_task
            except asyncio.CancelledError:
                pass
            self._sweep_task = None
        self.flush()

    def clear(self) -> None:
        """Forget buckets, history and anything buffered."""
        self._cancel_timer()
        self._buffer = []
        self._buckets = {}
        self._history = []

    @property
    def stats(self) -> dict[str, Any]:
        return {
            "time_range": self._range.name,
            "buckets": len(self._buckets),
            "history": len(self._history),
            "pending": len(self._buffer),
            "merges": self._merge_count,
            "agent_filter": str(self._filter) if self._filter else None,
        }
