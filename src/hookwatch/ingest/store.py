# src/hookwatch/ingest/store.py
"""
Bounded in-memory event retention.

EventStore is the canonical record of "what the dashboard can list": the last
``max_events`` records in arrival order. Nothing is persisted; a restart
starts empty.
"""

from __future__ import annotations

import itertools
import logging
from collections import deque
from collections.abc import Iterable
from typing import Any

from ..models import EventRecord, FilterOptions

logger = logging.getLogger(__name__)

DEFAULT_MAX_EVENTS = 1000
DEFAULT_MAX_FILTER_SESSIONS = 100


class EventStore:
    """
    Append-only, FIFO-evicting event sequence.

    ``append`` is the only way records enter the store, and the only place ids
    are assigned. Ids come from one counter for the lifetime of the store, so
    they are strictly increasing in arrival order even across ``clear()``.
    """

    def __init__(
        self,
        max_events: int = DEFAULT_MAX_EVENTS,
        max_filter_sessions: int = DEFAULT_MAX_FILTER_SESSIONS,
    ):
        if max_events < 1:
            raise ValueError("max_events must be at least 1")
        self._events: deque[EventRecord] = deque(maxlen=max_events)
        self._max_events = max_events
        self._max_filter_sessions = max_filter_sessions
        self._ids = itertools.count(1)
        self._total_events = 0
        self._evicted = 0

    def append(self, records: Iterable[EventRecord]) -> list[EventRecord]:
        """
        Accept records, assigning each the next id.

        Returns:
            The stored copies (with ids), in the order given.
        """
        stored = [record.model_copy(update={"id": next(self._ids)}) for record in records]
        if not stored:
            return stored

        overflow = len(self._events) + len(stored) - self._max_events
        if overflow > 0:
            self._evicted += overflow
        self._events.extend(stored)
        self._total_events += len(stored)

        logger.info(f"Received {len(stored)} event(s) ({len(self._events)} in memory)")
        return stored

    def recent(self, limit: int = 100) -> list[EventRecord]:
        """Last ``limit`` records, most recent first."""
        if limit <= 0:
            return []
        return list(itertools.islice(reversed(self._events), limit))

    def all(self) -> list[EventRecord]:
        """All retained records, oldest first."""
        return list(self._events)

    def filter_options(self) -> FilterOptions:
        """Distinct apps, sessions and event types currently retained."""
        source_apps: set[str] = set()
        session_ids: dict[str, None] = {}
        hook_event_types: set[str] = set()

        for event in self._events:
            if event.source_app:
                source_apps.add(event.source_app)
            if event.session_id:
                session_ids.setdefault(event.session_id)
            if event.hook_event_type:
                hook_event_types.add(event.hook_event_type)

        return FilterOptions(
            source_apps=sorted(source_apps),
            session_ids=list(itertools.islice(session_ids, self._max_filter_sessions)),
            hook_event_types=sorted(hook_event_types),
        )

    def clear(self) -> None:
        """Drop every retained record. The id counter keeps counting."""
        self._events.clear()

    @property
    def max_events(self) -> int:
        return self._max_events

    def __len__(self) -> int:
        return len(self._events)

    @property
    def stats(self) -> dict[str, Any]:
        return {
            "size": len(self._events),
            "max_events": self._max_events,
            "total_events": self._total_events,
            "evicted": self._evicted,
        }
