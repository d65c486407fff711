# src/hookwatch/ingest/coordinator.py
"""
Day-rotating ingestion of the capture hook's JSONL files.

The capture hook writes to one file per calendar day::

    <base_dir>/history/raw-outputs/YYYY-MM/YYYY-MM-DD_all-events.jsonl

The day is computed in a single configured timezone so that every process
agrees on which file is "today" regardless of host locale.

IngestionCoordinator tails today's file, looks for a new day's file on a
fixed interval, and hands each batch of new records first to the EventStore
and then to a single subscriber callback.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Sequence
from datetime import UTC, datetime
from pathlib import Path
from zoneinfo import ZoneInfo

from ..config import EVENTS_FILE_SUFFIX, IngestConfig
from ..logging_config import log_display
from ..models import EventRecord
from .store import EventStore
from .tailer import JsonlTailer
from .watcher import FileWatcher

logger = logging.getLogger(__name__)

BatchCallback = Callable[[list[EventRecord]], None]


def events_file_for(
    base_dir: str | Path,
    tz: ZoneInfo | str,
    when: datetime | None = None,
    suffix: str = EVENTS_FILE_SUFFIX,
) -> Path:
    """
    Path of the events file for the day containing ``when``.

    Args:
        base_dir: Root of the history tree.
        tz: Timezone in which the calendar day is determined.
        when: Moment to resolve (aware; defaults to now). Naive values are
            taken as UTC.
        suffix: File name suffix after the date.
    """
    zone = ZoneInfo(tz) if isinstance(tz, str) else tz
    when = when or datetime.now(tz=UTC)
    if when.tzinfo is None:
        when = when.replace(tzinfo=UTC)
    local = when.astimezone(zone)

    month_dir = Path(base_dir).expanduser() / "history" / "raw-outputs" / local.strftime("%Y-%m")
    return month_dir / f"{local.strftime('%Y-%m-%d')}{suffix}"


class IngestionCoordinator:
    """
    Routes newly appended records from today's file into the store.

    Args:
        config: Ingest configuration (base dir, timezone, rotation interval).
        store: Receives every non-empty batch; assigns ids.
        tailer: Offset tracker (a fresh one by default).
        watcher_factory: Builds the file watcher given the change callback.
        now: Current time source, for rotation tests.
    """

    def __init__(
        self,
        config: IngestConfig,
        store: EventStore,
        tailer: JsonlTailer | None = None,
        watcher_factory: Callable[[Callable[[Path], None]], FileWatcher] = FileWatcher,
        now: Callable[[], datetime] | None = None,
    ):
        self._config = config
        self._store = store
        self._tailer = tailer or JsonlTailer()
        self._watcher_factory = watcher_factory
        self._now = now or (lambda: datetime.now(tz=UTC))
        self._watcher: FileWatcher | None = None
        self._on_batch: BatchCallback | None = None
        self._current_file: Path | None = None
        self._rotation_task: asyncio.Task | None = None
        self._running = False

    def today_file(self) -> Path:
        return events_file_for(
            self._config.base_dir_expanded,
            self._config.tzinfo,
            self._now(),
            self._config.file_suffix,
        )

    @property
    def current_file(self) -> Path | None:
        return self._current_file

    @property
    def tailer(self) -> JsonlTailer:
        return self._tailer

    @property
    def is_running(self) -> bool:
        return self._running

    def subscribe(self, on_batch: BatchCallback | None) -> None:
        """Set (or with None, remove) the single batch subscriber."""
        self._on_batch = on_batch

    async def start(self, on_batch: BatchCallback | None = None) -> None:
        """
        Begin tailing today's file and schedule the rotation check.

        Idempotent. Must be awaited from within the event loop that should
        receive change notifications.
        """
        if on_batch is not None:
            self._on_batch = on_batch
        if self._running:
            return

        log_display(logger, logging.INFO, "Starting file-based event streaming (in-memory only)")
        self._watcher = self._watcher_factory(self.handle_change)
        self._watcher.start()
        self._running = True

        self._current_file = self.today_file()
        self._attach(self._current_file)
        self._rotation_task = asyncio.create_task(self._rotation_loop())

    async def stop(self) -> None:
        self._running = False
        if self._rotation_task:
            self._rotation_task.cancel()
            try:
                await self._rotation_task
            except asyncio.CancelledError:
                pass
            self._rotation_task = None
        if self._watcher:
            self._watcher.stop()
            self._watcher = None
        logger.info("File streaming stopped")

    def _attach(self, path: Path, from_start: bool = False) -> bool:
        if not path.exists():
            # created later, so all of it postdates the watch
            from_start = True
            logger.info(f"{path} does not exist yet, will read it from the start once created")
        if not self._tailer.watch(path, from_start=from_start):
            logger.warning(f"Cannot tail {path}, will retry on the next rotation check")
            return False
        if self._watcher is not None:
            self._watcher.watch(path)
        return True

    def check_rotation(self) -> Path:
        """
        Recompute today's file and start tailing it if needed.

        A new day's file is read from its first byte, and anything already
        in it is ingested right away. Files from previous days stay attached;
        they simply stop growing.
        """
        today = self.today_file()
        new_day = today != self._current_file
        if new_day:
            log_display(logger, logging.INFO, "New day detected, watching %s", today)
            self._current_file = today
        if not self._tailer.is_watching(today) and self._attach(today, from_start=new_day):
            self.handle_change(today)
        return today

    async def _rotation_loop(self) -> None:
        while self._running:
            await asyncio.sleep(self._config.rotation_check_interval_seconds)
            try:
                self.check_rotation()
            except Exception as e:
                logger.error(f"Rotation check failed: {e}", exc_info=True)

    def handle_change(self, path: Path) -> list[EventRecord]:
        """Change-notification callback: read, store, notify."""
        return self.ingest(self._tailer.read_new(path))

    def ingest(self, records: Sequence[EventRecord]) -> list[EventRecord]:
        """
        Store a batch and pass the stored copies to the subscriber.

        Returns:
            The stored records (with ids); empty for an empty batch.
        """
        if not records:
            return []

        stored = self._store.append(records)
        if self._on_batch is not None:
            try:
                self._on_batch(stored)
            except Exception as e:
                logger.error(f"Batch subscriber failed: {e}", exc_info=True)
        return stored
