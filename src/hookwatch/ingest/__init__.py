# src/hookwatch/ingest/__init__.py
"""
Ingestion of capture-hook JSONL files.

Components:
    - JsonlTailer: byte-offset tracking and line parsing (tailer.py)
    - FileWatcher: watchdog notifications delivered on the event loop (watcher.py)
    - EventStore: bounded in-memory retention with id assignment (store.py)
    - IngestionCoordinator: day rotation and batch routing (coordinator.py)
"""

from .coordinator import IngestionCoordinator, events_file_for
from .store import EventStore
from .tailer import JsonlTailer
from .watcher import FileWatcher

__all__ = [
    "EventStore",
    "FileWatcher",
    "IngestionCoordinator",
    "JsonlTailer",
    "events_file_for",
]
