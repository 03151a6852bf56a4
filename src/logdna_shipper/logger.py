# src/logdna_shipper/logger.py
"""Logger instance: formatter, buffer, flush scheduler and transmitter wired together.

log() only touches memory: it formats the statement, appends it to the
buffer, flushes immediately when the buffered size reaches the flush byte
limit, and otherwise makes sure a flush timer is pending. Network I/O always
happens on the registry's worker pool.
"""

from __future__ import annotations

import threading
import uuid
from collections.abc import Mapping
from concurrent.futures import Executor, Future
from typing import Any

import httpx
import structlog

from logdna_shipper.buffer import LogBuffer
from logdna_shipper.clock import DEFAULT_CLOCK, Clock
from logdna_shipper.config import LoggerOptions, validate_ingestion_key
from logdna_shipper.defaults import DEFAULT_APP, DEFAULT_LEVEL, DEFAULT_REQUEST_TIMEOUT_MS, LOGDNA_URL
from logdna_shipper.errors import InvalidLogOptionsError
from logdna_shipper.formatter import format_message
from logdna_shipper.records import FlushResult, FlushResultKind, LogResult, LogResultKind, Source
from logdna_shipper.scheduler import FlushScheduler, SchedulerState, TimerFactory
from logdna_shipper.transmitter import Transmitter
from logdna_shipper.transport import IngestTransport

logger = structlog.get_logger(__name__)


class Logger:
    """Buffers log statements for one ingestion key and ships them in batches.

    Loggers are normally built through LoggerRegistry.create_logger() (or the
    module-level create_logger()), which also registers them for flush_all
    and cleanup_all. Constructing one directly validates the same options
    but leaves registration to the caller.

    Example:
        registry = LoggerRegistry()
        log = registry.create_logger("ingestion-key", {"app": "billing"})
        log.info("invoice created", {"meta": {"invoice": 42}})
        registry.flush_all().result()
    """

    def __init__(
        self,
        ingestion_key: str,
        options: Mapping[str, Any] | LoggerOptions | None = None,
        *,
        executor: Executor,
        clock: Clock = DEFAULT_CLOCK,
        timer_factory: TimerFactory | None = None,
        http_client: httpx.Client | None = None,
    ) -> None:
        """Validate options and build the logger's components.

        Args:
            ingestion_key: Account credential
            options: Construction options (see LoggerOptions)
            executor: Worker pool that performs sends
            clock: Time source for timestamps and the ``now`` parameter
            timer_factory: Overrides the flush timer implementation
            http_client: Pre-built httpx.Client for the transport

        Raises:
            LoggerConfigError: If the key or any option is invalid.
        """
        key = validate_ingestion_key(ingestion_key)
        self._options = LoggerOptions.from_dict(options)
        opts = self._options

        self.handle = uuid.uuid4().hex
        self.source = Source(
            hostname=opts.hostname,
            app=opts.app or DEFAULT_APP,
            level=opts.level or DEFAULT_LEVEL,
            env=opts.env,
            tags=opts.tags,
        )
        self._clock = clock
        self._flush_byte_limit = opts.flush_byte_limit
        self._buffer = LogBuffer(truncate=opts.max_length)
        self._transport = IngestTransport(
            key,
            source=self.source,
            url=opts.logdna_url or LOGDNA_URL,
            timeout_ms=opts.timeout or DEFAULT_REQUEST_TIMEOUT_MS,
            mac=opts.mac,
            ip=opts.ip,
            query_params=opts.query_params,
            with_credentials=opts.with_credentials,
            clock=clock,
            client=http_client,
        )
        self._transmitter = Transmitter(self._transport, executor)
        scheduler_kwargs = {} if timer_factory is None else {"timer_factory": timer_factory}
        self._scheduler = FlushScheduler(opts.flush_interval_ms, self.flush, **scheduler_kwargs)
        self._closed = False
        self._released = False

        self._metrics_lock = threading.Lock()
        self._batches_sent = 0
        self._lines_sent = 0
        self._failed_flushes = 0
        self._lines_dropped = 0

    def __repr__(self) -> str:
        return f"Logger(handle={self.handle!r}, app={self.source.app!r}, buffered={len(self._buffer)})"

    @property
    def options(self) -> LoggerOptions:
        return self._options

    @property
    def buffer(self) -> LogBuffer:
        return self._buffer

    @property
    def transport(self) -> IngestTransport:
        return self._transport

    @property
    def scheduler_state(self) -> SchedulerState:
        return self._scheduler.state

    @property
    def closed(self) -> bool:
        return self._closed

    def log(self, statement: Any, options: Any = None) -> LogResult:
        """Buffer a statement for delivery.

        Args:
            statement: String, structured value or scalar
            options: None, a level string, or a mapping with any of
                level, app, env, timestamp, meta, context, index_meta

        Returns:
            A LogResult. ``result.is_error`` is True when nothing was buffered
            (empty statement, invalid options type, closed logger).
        """
        if self._closed:
            logger.warning("Logger is closed, dropping message", handle=self.handle)
            return LogResult.rejected(LogResultKind.CLOSED, "logger is closed")

        try:
            record = format_message(
                statement,
                options,
                source=self.source,
                index_meta=self._options.index_meta,
                clock=self._clock,
            )
        except InvalidLogOptionsError as e:
            return LogResult.rejected(LogResultKind.INVALID_OPTIONS_TYPE, str(e))

        result = self._buffer.append(record)
        if not result.buffered:
            return result

        if self._buffer.current_size >= self._flush_byte_limit:
            logger.debug(
                "Buffer size meets flush limit, flushing immediately",
                buffered_bytes=self._buffer.current_size,
                flush_byte_limit=self._flush_byte_limit,
            )
            self.flush()

        if not self._closed and not self._buffer.is_empty():
            self._scheduler.schedule()
        return result

    def trace(self, statement: Any, options: Any = None) -> LogResult:
        return self._log_at("TRACE", statement, options)

    def debug(self, statement: Any, options: Any = None) -> LogResult:
        return self._log_at("DEBUG", statement, options)

    def info(self, statement: Any, options: Any = None) -> LogResult:
        return self._log_at("INFO", statement, options)

    def warn(self, statement: Any, options: Any = None) -> LogResult:
        return self._log_at("WARN", statement, options)

    def error(self, statement: Any, options: Any = None) -> LogResult:
        return self._log_at("ERROR", statement, options)

    def fatal(self, statement: Any, options: Any = None) -> LogResult:
        return self._log_at("FATAL", statement, options)

    def _log_at(self, level: str, statement: Any, options: Any) -> LogResult:
        # The caller's mapping is copied, never mutated
        if options is None or isinstance(options, str):
            return self.log(statement, {"level": level})
        if isinstance(options, Mapping):
            return self.log(statement, {**options, "level": level})
        return self.log(statement, options)

    def flush(self) -> Future[FlushResult]:
        """Send everything buffered so far.

        Cancels the pending flush timer, drains the buffer, and hands the
        batch to the worker pool. Statements logged after this call go to
        the next flush.

        Returns:
            Future resolving to the FlushResult. It does not raise for
            transport failures; inspect ``result.kind``.
        """
        self._scheduler.cancel()
        future = self._transmitter.submit(self._buffer.drain())
        future.add_done_callback(self._record_outcome)
        return future

    def _record_outcome(self, future: Future[FlushResult]) -> None:
        if future.cancelled() or future.exception() is not None:
            return
        result = future.result()
        if result.kind is FlushResultKind.EMPTY:
            return
        with self._metrics_lock:
            if result.ok:
                self._batches_sent += 1
                self._lines_sent += result.line_count
            else:
                self._failed_flushes += 1
                self._lines_dropped += result.line_count

    @property
    def health_metrics(self) -> dict[str, int]:
        """Delivery counters since construction.

        - batches_sent / lines_sent: accepted by the endpoint (status < 400)
        - failed_flushes / lines_dropped: HTTP error status or network failure
        - buffered_lines / buffered_bytes: waiting for the next flush
        """
        with self._metrics_lock:
            metrics = {
                "batches_sent": self._batches_sent,
                "lines_sent": self._lines_sent,
                "failed_flushes": self._failed_flushes,
                "lines_dropped": self._lines_dropped,
            }
        metrics["buffered_lines"] = len(self._buffer)
        metrics["buffered_bytes"] = self._buffer.current_size
        return metrics

    def begin_shutdown(self) -> None:
        """Stop accepting statements and cancel the flush timer.

        Statements already buffered can still be flushed. Later log() calls
        return CLOSED. Idempotent.
        """
        self._closed = True
        self._scheduler.cancel()

    def close(self) -> None:
        """Stop accepting statements and release the HTTP client.

        Does not flush: use LoggerRegistry.cleanup() to flush and close.
        Anything still buffered is discarded with a warning and counted in
        ``lines_dropped``. Idempotent.
        """
        if self._released:
            return
        self._released = True
        self.begin_shutdown()
        leftover = self._buffer.drain()
        if leftover:
            logger.warning(
                "Logger closed with unsent lines, dropping them",
                handle=self.handle,
                lines=len(leftover),
            )
            with self._metrics_lock:
                self._lines_dropped += len(leftover)
        self._transport.close()
