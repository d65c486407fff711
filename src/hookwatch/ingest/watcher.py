# src/hookwatch/ingest/watcher.py
"""
File-change notifications delivered on the asyncio event loop.

watchdog observes directories from its own thread. FileWatcher only forwards
"this file changed" for the files it was asked about, using
``loop.call_soon_threadsafe`` so that every callback runs on the loop thread
and never interleaves with other pipeline callbacks.

A file may be watched before it, or its directory, exists. The nearest
existing ancestor directory is then observed recursively so the file is
noticed as soon as it is created.
"""

from __future__ import annotations

import asyncio
import logging
import os
import threading
from collections.abc import Callable
from pathlib import Path

from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer

from ..exceptions import IngestionError

logger = logging.getLogger(__name__)


def _observable_root(directory: str) -> tuple[str, bool]:
    """Nearest existing directory at or above ``directory``, plus whether to recurse."""
    root = directory
    while not os.path.isdir(root):
        parent = os.path.dirname(root)
        if parent == root:
            break
        root = parent
    return root, root != directory


class _ChangeHandler(FileSystemEventHandler):
    """Forwards modify/create events for regular files to the watcher."""

    def __init__(self, watcher: FileWatcher):
        super().__init__()
        self._watcher = watcher

    def on_modified(self, event: FileSystemEvent) -> None:
        if not event.is_directory:
            self._watcher.notify(os.fsdecode(event.src_path))

    def on_created(self, event: FileSystemEvent) -> None:
        if not event.is_directory:
            self._watcher.notify(os.fsdecode(event.src_path))


class FileWatcher:
    """
    Watches individual files and calls ``on_change(path)`` on the event loop.

    Args:
        on_change: Called with the watched ``Path`` each time it changes.
        loop: Loop to deliver callbacks on (defaults to the running loop at
            ``start()``).
        observer_factory: Creates the watchdog observer; swapped for a
            polling observer or a stub in tests.
    """

    def __init__(
        self,
        on_change: Callable[[Path], None],
        loop: asyncio.AbstractEventLoop | None = None,
        observer_factory: Callable[[], Observer] = Observer,
    ):
        self._on_change = on_change
        self._loop = loop
        self._observer_factory = observer_factory
        self._observer: Observer | None = None
        self._handler = _ChangeHandler(self)
        self._lock = threading.Lock()
        self._files: dict[str, Path] = {}
        self._directories: set[tuple[str, bool]] = set()

    def start(self) -> None:
        if self._observer is not None:
            return
        if self._loop is None:
            try:
                self._loop = asyncio.get_running_loop()
            except RuntimeError as e:
                raise IngestionError("FileWatcher.start() requires a running event loop") from e
        self._observer = self._observer_factory()
        self._observer.start()

    def watch(self, file_path: str | Path) -> bool:
        """
        Deliver change notifications for ``file_path``.

        Returns:
            False if no directory above the file can be watched.
        """
        if self._observer is None:
            raise IngestionError("FileWatcher.watch() called before start()")

        path = Path(file_path)
        key = os.path.abspath(path)
        directory, recursive = _observable_root(os.path.dirname(key))

        with self._lock:
            if key in self._files:
                return True
            if (directory, recursive) not in self._directories:
                try:
                    self._observer.schedule(self._handler, directory, recursive=recursive)
                except OSError as e:
                    logger.error(f"Error watching {directory}: {e}")
                    return False
                self._directories.add((directory, recursive))
                if recursive:
                    logger.info(
                        f"{os.path.dirname(key)} does not exist yet, "
                        f"watching {directory} recursively"
                    )
            self._files[key] = path
        return True

    def notify(self, src_path: str) -> None:
        """Called from the observer thread."""
        with self._lock:
            path = self._files.get(os.path.abspath(src_path))
        if path is None or self._loop is None:
            return
        try:
            self._loop.call_soon_threadsafe(self._on_change, path)
        except RuntimeError:
            # loop already closed during shutdown
            logger.debug(f"Dropping change notification for {path}: event loop closed")

    @property
    def watched_files(self) -> list[Path]:
        with self._lock:
            return list(self._files.values())

    def stop(self) -> None:
        if self._observer is None:
            return
        self._observer.stop()
        self._observer.join(timeout=5.0)
        self._observer = None
        with self._lock:
            self._files.clear()
            self._directories.clear()
