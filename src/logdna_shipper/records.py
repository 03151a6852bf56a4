# src/logdna_shipper/records.py
"""Canonical log record and the result types returned to callers.

LogResult and FlushResult are discriminated by a kind enum so callers can
branch on exactly what happened instead of interpreting a bare boolean.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
from typing import Any


@dataclass(frozen=True, slots=True)
class LogRecord:
    """A single buffered log line.

    Attributes:
        timestamp: Epoch milliseconds
        line: Log text (never empty once buffered)
        level: Severity label, e.g. "INFO"
        app: Application name
        env: Optional environment name
        meta: Structured metadata (index_meta) or its serialized string
    """

    timestamp: int
    line: str
    level: str
    app: str
    env: str | None = None
    meta: Any = None

    def to_wire(self) -> dict[str, Any]:
        """Return the record as sent in the ``ls`` array.

        env and meta are omitted when unset.
        """
        wire: dict[str, Any] = {
            "timestamp": self.timestamp,
            "line": self.line,
            "level": self.level,
            "app": self.app,
        }
        if self.env is not None:
            wire["env"] = self.env
        if self.meta is not None:
            wire["meta"] = self.meta
        return wire


class LogResultKind(StrEnum):
    """Outcome of a single log() call."""

    BUFFERED = "buffered"
    TRUNCATED = "truncated"
    EMPTY = "empty"
    INVALID_OPTIONS_TYPE = "invalid_options_type"
    CLOSED = "closed"


@dataclass(frozen=True, slots=True)
class LogResult:
    """What happened to a statement handed to Logger.log().

    TRUNCATED records were buffered (with a shortened line). EMPTY,
    INVALID_OPTIONS_TYPE and CLOSED records were dropped.
    """

    kind: LogResultKind
    record: LogRecord | None = None
    reason: str | None = None

    @property
    def buffered(self) -> bool:
        return self.kind in (LogResultKind.BUFFERED, LogResultKind.TRUNCATED)

    @property
    def is_error(self) -> bool:
        """True when the statement was rejected and nothing was buffered."""
        return not self.buffered

    @classmethod
    def accepted(cls, record: LogRecord) -> LogResult:
        return cls(kind=LogResultKind.BUFFERED, record=record)

    @classmethod
    def truncated(cls, record: LogRecord, reason: str) -> LogResult:
        return cls(kind=LogResultKind.TRUNCATED, record=record, reason=reason)

    @classmethod
    def rejected(cls, kind: LogResultKind, reason: str) -> LogResult:
        return cls(kind=kind, reason=reason)


class FlushResultKind(StrEnum):
    """Outcome of one flush attempt."""

    EMPTY = "empty"
    SENT = "sent"
    HTTP_ERROR = "http_error"
    NETWORK_ERROR = "network_error"
    NOT_SUBMITTED = "not_submitted"


@dataclass(frozen=True, slots=True)
class FlushResult:
    """Outcome of transmitting one drained batch.

    Records in a failed batch are gone: there is no retry and no requeue.
    Callers that need stronger delivery can inspect ``kind`` and ``error``.

    Attributes:
        kind: What happened
        line_count: Number of records in the batch
        http_status: Response status, when a response was received
        error: Network exception (NETWORK_ERROR) or pool refusal (NOT_SUBMITTED)
    """

    kind: FlushResultKind
    line_count: int = 0
    http_status: int | None = None
    error: BaseException | None = None

    @property
    def ok(self) -> bool:
        return self.kind in (FlushResultKind.EMPTY, FlushResultKind.SENT)

    @classmethod
    def empty(cls) -> FlushResult:
        return cls(kind=FlushResultKind.EMPTY)


@dataclass(frozen=True, slots=True)
class Source:
    """Per-logger defaults stamped on records and sent as query parameters."""

    hostname: str | None = None
    app: str = "default"
    level: str = "INFO"
    env: str | None = None
    tags: str | None = None
