# src/logdna_shipper/buffer.py
"""Size-tracked, append-only record buffer owned by a single logger.

Records keep insertion order so a batch preserves chronological log order.
A running byte estimate (see sizeof.py) is kept alongside the records and
is what the logger compares against its flush byte limit.

Thread Safety:
    append() runs on the caller's thread while drain() may run on a timer
    thread. Both take the same lock, so a drain sees either all or none of
    a concurrent append, and the size counter is zeroed together with the
    record list.
"""

from __future__ import annotations

import dataclasses
import threading

import structlog

from logdna_shipper.defaults import MAX_LINE_LENGTH, TRUNCATION_MARKER
from logdna_shipper.records import LogRecord, LogResult, LogResultKind
from logdna_shipper.sizeof import estimate_size

logger = structlog.get_logger(__name__)


class LogBuffer:
    """Ordered queue of LogRecords with byte-size accounting.

    Example:
        buffer = LogBuffer()
        buffer.append(record)
        batch = buffer.drain()  # buffer is now empty, current_size == 0
    """

    def __init__(self, *, truncate: bool = True, max_line_length: int = MAX_LINE_LENGTH) -> None:
        """Initialize an empty buffer.

        Args:
            truncate: Cut lines longer than max_line_length
            max_line_length: Maximum line length kept when truncating

        Raises:
            ValueError: If max_line_length < 1.
        """
        if max_line_length < 1:
            raise ValueError(f"max_line_length must be >= 1, got {max_line_length}")
        self._truncate = truncate
        self._max_line_length = max_line_length
        self._records: list[LogRecord] = []
        self._size = 0
        self._lock = threading.Lock()

    def append(self, record: LogRecord) -> LogResult:
        """Queue a record.

        Never rejects for capacity. Records with an empty line are ignored
        and long lines are truncated when truncation is enabled.

        Returns:
            BUFFERED, TRUNCATED (buffered with a shortened line) or EMPTY.
        """
        if not record.line:
            logger.warning("Ignoring empty message")
            return LogResult.rejected(LogResultKind.EMPTY, "empty message")

        truncated = False
        if self._truncate and len(record.line) > self._max_line_length:
            record = dataclasses.replace(record, line=record.line[: self._max_line_length] + TRUNCATION_MARKER)
            truncated = True
            logger.warning(
                "Line was truncated",
                max_chars=self._max_line_length,
            )

        size = estimate_size(record.to_wire())
        with self._lock:
            self._records.append(record)
            self._size += size
        logger.debug("Buffering message", line=record.line, size=size)

        if truncated:
            return LogResult.truncated(record, f"line longer than {self._max_line_length} chars")
        return LogResult.accepted(record)

    def drain(self) -> list[LogRecord]:
        """Atomically remove and return every queued record (oldest first).

        The size counter is reset to zero in the same critical section.
        """
        with self._lock:
            records = self._records
            self._records = []
            self._size = 0
        return records

    @property
    def current_size(self) -> int:
        """Estimated bytes held by queued records."""
        with self._lock:
            return self._size

    def is_empty(self) -> bool:
        with self._lock:
            return not self._records

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)
