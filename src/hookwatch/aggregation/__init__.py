# src/hookwatch/aggregation/__init__.py
"""
Chart aggregation.

Components:
    - BucketedAggregator: debounced time buckets + re-aggregation history
    - ChartSeriesProducer: dense zero-filled series and summary metrics
"""

from .aggregator import BucketedAggregator, wall_clock_ms
from .series import ChartSeriesProducer

__all__ = [
    "BucketedAggregator",
    "ChartSeriesProducer",
    "wall_clock_ms",
]
