# src/hookwatch/ingest/tailer.py
"""
Incremental JSONL reader.

JsonlTailer remembers a byte offset per file and, when asked, returns only the
records appended since the previous read. It does no watching of its own;
``FileWatcher`` tells it when to look.

Semantics:
    - Attaching to a file positions the offset at the current end of file.
      Whatever was on disk before the watch started is never read.
    - Attaching to a missing file is a no-op, unless the caller asks to track
      it from byte 0 (it will be created after the watch started).
    - Each newline-terminated line is parsed independently. A malformed line
      is logged and skipped; it is never retried.
    - An unterminated trailing line is left in place and picked up on a later
      read once the writer finishes it.
    - A file that shrank below the stored offset is read again from byte 0.
    - I/O failures are logged and reported as "no new records".
"""

from __future__ import annotations

import logging
from pathlib import Path

from ..logging_config import log_display
from ..models import EventRecord

logger = logging.getLogger(__name__)

# Characters of an offending line included in parse-failure logs
LOG_LINE_PREVIEW = 100


class JsonlTailer:
    """Tracks read offsets for append-only JSONL files."""

    def __init__(self) -> None:
        self._offsets: dict[Path, int] = {}
        self._parse_errors = 0
        self._records_read = 0

    def watch(self, file_path: str | Path, from_start: bool = False) -> bool:
        """
        Start tracking ``file_path`` from its current end of file.

        Args:
            file_path: File to track.
            from_start: Track from byte 0 instead, even if the file does not
                exist yet. For files created after tailing began.

        Returns:
            True if the file is (now) tracked, False if it does not exist or
            cannot be inspected. Attaching twice keeps the original offset.
        """
        path = Path(file_path)
        if path in self._offsets:
            return True
        if from_start:
            self._offsets[path] = 0
            log_display(logger, logging.INFO, "Watching: %s (from the start)", path)
            return True

        try:
            size = path.stat().st_size
        except FileNotFoundError:
            logger.debug(f"Not watching {path}: file does not exist yet")
            return False
        except OSError as e:
            logger.error(f"Cannot inspect {path}: {e}")
            return False

        self._offsets[path] = size
        log_display(logger, logging.INFO, "Watching: %s (positioned at byte %d)", path, size)
        return True

    def is_watching(self, file_path: str | Path) -> bool:
        return Path(file_path) in self._offsets

    def offset(self, file_path: str | Path) -> int | None:
        """Current read offset, or None if the file is not tracked."""
        return self._offsets.get(Path(file_path))

    @property
    def watched_files(self) -> list[Path]:
        return list(self._offsets)

    def read_new(self, file_path: str | Path) -> list[EventRecord]:
        """
        Read and parse everything appended since the last read.

        Returns:
            Newly appended records in file order; empty if nothing complete
            was appended, the file is not tracked, or reading failed.
        """
        path = Path(file_path)
        offset = self._offsets.get(path)
        if offset is None:
            return []

        try:
            size = path.stat().st_size
            if size < offset:
                logger.warning(f"{path} was truncated ({size} < {offset} bytes), reading from start")
                offset = 0
                self._offsets[path] = 0
            if size == offset:
                return []
            with path.open("rb") as f:
                f.seek(offset)
                chunk = f.read()
        except FileNotFoundError:
            logger.debug(f"{path} does not exist, waiting for it to appear")
            return []
        except OSError as e:
            logger.error(f"Error reading file {path}: {e}")
            return []

        end = chunk.rfind(b"\n")
        if end == -1:
            # only a partial line so far
            return []

        self._offsets[path] = offset + end + 1
        records = self._parse_lines(chunk[: end + 1], path)
        self._records_read += len(records)
        return records

    def _parse_lines(self, data: bytes, path: Path) -> list[EventRecord]:
        records = []
        for raw in data.split(b"\n"):
            line = raw.decode("utf-8", errors="replace").strip()
            if not line:
                continue
            try:
                records.append(EventRecord.from_json_line(line))
            except (ValueError, RecursionError) as e:
                # RecursionError: nesting too deep for the json decoder
                self._parse_errors += 1
                logger.error(
                    f"Failed to parse line in {path.name}: {line[:LOG_LINE_PREVIEW]}... ({e})"
                )
        return records

    @property
    def stats(self) -> dict[str, int]:
        return {
            "watched_files": len(self._offsets),
            "records_read": self._records_read,
            "parse_errors": self._parse_errors,
        }
