# src/hookwatch/models.py
"""
Data models shared across the hookwatch pipeline.

EventRecord is the wire/data contract for a single hook event as written by
the capture hook (one JSON object per line). The remaining models describe
the derived, aggregated views handed to the presentation layer.

Input lines are produced by several generations of hooks, so the record
accepts both snake_case (``source_app``) and camelCase (``sourceApp``) keys
and tolerates odd timestamp encodings. Unknown top-level fields are kept.
"""

from __future__ import annotations

import json
import math
from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

# Event type counted as a "tool call" on the dashboard
TOOL_CALL_EVENT_TYPE = "PreToolUse"

# App name used for buckets when an event carries no source_app
UNKNOWN_APP = "unknown"

# Length of the session id prefix used to identify an agent
SESSION_FINGERPRINT_LENGTH = 8


# =============================================================================
# EVENT RECORD
# =============================================================================


class EventRecord(BaseModel):
    """
    A single observability event.

    Immutable once created. The ``id`` is assigned by the EventStore when the
    record is accepted (see ``EventStore.append``), which returns a copy.
    """

    model_config = ConfigDict(frozen=True, extra="allow", populate_by_name=True)

    source_app: str = Field(
        default="", validation_alias=AliasChoices("source_app", "sourceApp")
    )
    session_id: str = Field(
        default="", validation_alias=AliasChoices("session_id", "sessionId")
    )
    hook_event_type: str = Field(
        default="", validation_alias=AliasChoices("hook_event_type", "hookEventType")
    )
    payload: dict[str, Any] = Field(default_factory=dict)
    timestamp: int | None = Field(default=None, description="Epoch milliseconds")
    id: int | None = Field(default=None, description="Assigned on ingestion")

    @field_validator("source_app", "session_id", "hook_event_type", mode="before")
    @classmethod
    def _coerce_text(cls, v: Any) -> str:
        if v is None:
            return ""
        return v if isinstance(v, str) else str(v)

    @field_validator("payload", mode="before")
    @classmethod
    def _coerce_payload(cls, v: Any) -> dict[str, Any]:
        if v is None:
            return {}
        if isinstance(v, dict):
            return v
        return {"value": v}

    @field_validator("timestamp", mode="before")
    @classmethod
    def _coerce_timestamp(cls, v: Any) -> int | None:
        # bool is an int subclass; true/false is not a timestamp
        if v is None or isinstance(v, bool):
            return None
        if isinstance(v, int):
            return v
        if isinstance(v, float):
            return math.floor(v) if math.isfinite(v) else None
        if isinstance(v, str):
            try:
                return math.floor(float(v))
            except (ValueError, OverflowError):
                return None
        return None

    @field_validator("id", mode="before")
    @classmethod
    def _coerce_id(cls, v: Any) -> int | None:
        # ids are assigned by the store; whatever the producer wrote is ignored
        return v if isinstance(v, int) and not isinstance(v, bool) else None

    @property
    def session_fingerprint(self) -> str:
        """First characters of the session id, used as a display identity."""
        return self.session_id[:SESSION_FINGERPRINT_LENGTH]

    @property
    def agent_id(self) -> str:
        """``source_app:fingerprint`` identity of the emitting agent."""
        return f"{self.source_app}:{self.session_fingerprint}"

    @property
    def has_timestamp(self) -> bool:
        return self.timestamp is not None

    @classmethod
    def from_json_line(cls, line: str) -> EventRecord:
        """
        Parse one JSONL line.

        Raises:
            ValueError: if the line is not valid JSON or not a JSON object
                (``json.JSONDecodeError`` and pydantic's ``ValidationError``
                are both ValueError subclasses).
            RecursionError: if the JSON nests deeper than the decoder allows.
        """
        data = json.loads(line)
        if not isinstance(data, dict):
            raise ValueError(f"Expected a JSON object, got {type(data).__name__}")
        return cls.model_validate(data)

    def to_dict(self) -> dict[str, Any]:
        """Convert to a JSON-compatible dictionary (extra fields included)."""
        return self.model_dump(mode="json")


# =============================================================================
# AGENT FILTER
# =============================================================================


class AgentFilter(BaseModel):
    """Restricts an aggregation view to one ``(source_app, session prefix)`` pair."""

    model_config = ConfigDict(frozen=True)

    app: str
    session: str

    @classmethod
    def parse(cls, agent_id: str | None) -> AgentFilter | None:
        """Parse ``"app:session"``; anything else yields no filter."""
        if not agent_id:
            return None
        parts = agent_id.split(":")
        if len(parts) != 2:
            return None
        return cls(app=parts[0], session=parts[1])

    def matches(self, event: EventRecord) -> bool:
        return (
            event.source_app == self.app
            and event.session_id[:SESSION_FINGERPRINT_LENGTH] == self.session
        )

    def __str__(self) -> str:
        return f"{self.app}:{self.session}"


# =============================================================================
# AGGREGATION MODELS
# =============================================================================


class TimeRangeConfig(BaseModel):
    """Window and bucket geometry for one named chart range."""

    model_config = ConfigDict(frozen=True)

    name: str
    window_ms: int = Field(..., gt=0, description="Sliding window duration")
    bucket_size_ms: int = Field(..., gt=0, description="Width of one bucket")
    max_buckets: int = Field(..., gt=0, description="Upper bound on buckets kept/returned")

    def bucket_key(self, timestamp: int) -> int:
        """Left-aligned bucket boundary for ``timestamp``."""
        return (timestamp // self.bucket_size_ms) * self.bucket_size_ms


DEFAULT_TIME_RANGES: dict[str, TimeRangeConfig] = {
    "1m": TimeRangeConfig(name="1m", window_ms=60_000, bucket_size_ms=1_000, max_buckets=60),
    "3m": TimeRangeConfig(name="3m", window_ms=180_000, bucket_size_ms=3_000, max_buckets=60),
    "5m": TimeRangeConfig(name="5m", window_ms=300_000, bucket_size_ms=5_000, max_buckets=60),
    "10m": TimeRangeConfig(name="10m", window_ms=600_000, bucket_size_ms=10_000, max_buckets=60),
}

DEFAULT_TIME_RANGE = "1m"


class TimeBucket(BaseModel):
    """Counts for every event whose timestamp falls into one bucket."""

    timestamp: int
    count: int = 0
    event_type_counts: dict[str, int] = Field(default_factory=dict)
    session_counts: dict[str, int] = Field(default_factory=dict)
    app_counts: dict[str, int] = Field(default_factory=dict)

    def add(self, event: EventRecord) -> None:
        self.count += 1
        etype = event.hook_event_type
        self.event_type_counts[etype] = self.event_type_counts.get(etype, 0) + 1
        session = event.session_id
        self.session_counts[session] = self.session_counts.get(session, 0) + 1
        app = event.source_app or UNKNOWN_APP
        self.app_counts[app] = self.app_counts.get(app, 0) + 1


class TimingMetrics(BaseModel):
    """Gaps between consecutive events, in milliseconds."""

    min_gap: float = 0
    max_gap: float = 0
    avg_gap: float = 0


class FilterOptions(BaseModel):
    """Distinct values used to populate dashboard filter controls."""

    source_apps: list[str] = Field(default_factory=list)
    session_ids: list[str] = Field(default_factory=list)
    hook_event_types: list[str] = Field(default_factory=list)


class ChartSnapshot(BaseModel):
    """Everything the chart needs for one render."""

    time_range: str
    series: list[TimeBucket] = Field(default_factory=list)
    unique_agent_count: int = 0
    tool_call_count: int = 0
    timing: TimingMetrics = Field(default_factory=TimingMetrics)
