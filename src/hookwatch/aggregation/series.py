# src/hookwatch/aggregation/series.py
"""
Dense chart series and summary statistics.

The aggregator only holds buckets that received events. The chart wants one
bar per bucket-sized step across the whole window, so ChartSeriesProducer
fills the gaps with empty buckets and trims to ``max_buckets``.
"""

from __future__ import annotations

import logging

from ..models import (
    TOOL_CALL_EVENT_TYPE,
    ChartSnapshot,
    TimeBucket,
    TimingMetrics,
)
from .aggregator import BucketedAggregator

logger = logging.getLogger(__name__)


class ChartSeriesProducer:
    """Read-only views over a BucketedAggregator."""

    def __init__(
        self,
        aggregator: BucketedAggregator,
        tool_call_event_type: str = TOOL_CALL_EVENT_TYPE,
    ):
        self._aggregator = aggregator
        self._tool_call_event_type = tool_call_event_type

    def series(self, now: int | None = None) -> list[TimeBucket]:
        """
        One bucket per step from ``now - window`` to ``now``, oldest first.

        Steps without data get an empty bucket. At most ``max_buckets``
        entries are returned (the most recent ones).
        """
        config = self._aggregator.config
        now = self._aggregator.now() if now is None else now

        points: list[TimeBucket] = []
        step = now - config.window_ms
        while step <= now:
            key = config.bucket_key(step)
            existing = self._aggregator.get_bucket(key)
            points.append(
                existing.model_copy(deep=True) if existing is not None else TimeBucket(timestamp=key)
            )
            step += config.bucket_size_ms

        return points[-config.max_buckets :]

    def unique_agent_ids(self, now: int | None = None) -> list[str]:
        """Distinct ``app:session-prefix`` ids seen within the active window."""
        return list(dict.fromkeys(e.agent_id for e in self._aggregator.history_in_window(now)))

    def unique_agent_count(self, now: int | None = None) -> int:
        return len(self.unique_agent_ids(now))

    def all_unique_agent_ids(self) -> list[str]:
        """Distinct agent ids across all retained history, regardless of window."""
        return list(dict.fromkeys(e.agent_id for e in self._aggregator.history()))

    def tool_call_count(self, event_type: str | None = None) -> int:
        """Total of one event type (tool invocations by default) over current buckets."""
        event_type = event_type or self._tool_call_event_type
        return sum(b.event_type_counts.get(event_type, 0) for b in self._aggregator.buckets())

    def timing_metrics(self, now: int | None = None) -> TimingMetrics:
        """
        Min/max/average gap between consecutive in-window events.

        Zero gaps (simultaneous events) are ignored. All zeros when fewer
        than two events, or no positive gap, exist.
        """
        timestamps = sorted(e.timestamp for e in self._aggregator.history_in_window(now))
        gaps = [b - a for a, b in zip(timestamps, timestamps[1:]) if b - a > 0]
        if not gaps:
            return TimingMetrics()
        return TimingMetrics(
            min_gap=min(gaps),
            max_gap=max(gaps),
            avg_gap=sum(gaps) / len(gaps),
        )

    def snapshot(self) -> ChartSnapshot:
        """Series and statistics computed against a single "now"."""
        now = self._aggregator.now()
        return ChartSnapshot(
            time_range=self._aggregator.time_range,
            series=self.series(now),
            unique_agent_count=self.unique_agent_count(now),
            tool_call_count=self.tool_call_count(),
            timing=self.timing_metrics(now),
        )
