"""Registry of active loggers with process-level flush and teardown."""

from __future__ import annotations

import threading
from collections.abc import Callable, Iterator, Mapping
from concurrent.futures import Future, ThreadPoolExecutor
from types import TracebackType
from typing import Any

import httpx
import structlog

from logdna_shipper.clock import DEFAULT_CLOCK, Clock
from logdna_shipper.config import LoggerOptions
from logdna_shipper.logger import Logger
from logdna_shipper.records import FlushResult, FlushResultKind
from logdna_shipper.scheduler import TimerFactory

logger = structlog.get_logger(__name__)

FlushCallback = Callable[[list[FlushResult]], object]

DEFAULT_MAX_WORKERS = 4


def _result_of(future: Future[FlushResult]) -> FlushResult:
    error = future.exception()
    if error is None:
        return future.result()
    # Transmitter converts transport errors into results; anything else is a bug
    logger.error("Flush failed unexpectedly", error=str(error), error_type=type(error).__name__)
    return FlushResult(kind=FlushResultKind.NETWORK_ERROR, error=error)


def join_flushes(futures: list[Future[FlushResult]]) -> Future[list[FlushResult]]:
    """Combine per-logger flush futures into one.

    The combined future resolves once every input future has completed,
    with results in input order. An empty input resolves immediately.
    """
    joined: Future[list[FlushResult]] = Future()
    if not futures:
        joined.set_result([])
        return joined

    remaining = len(futures)
    lock = threading.Lock()

    def _on_done(_: Future[FlushResult]) -> None:
        nonlocal remaining
        with lock:
            remaining -= 1
            finished = remaining == 0
        if finished:
            joined.set_result([_result_of(f) for f in futures])

    for future in futures:
        future.add_done_callback(_on_done)
    return joined


class LoggerRegistry:
    """Collection of active loggers sharing one flush worker pool.

    Build one per application (or per test) at the composition root and pass
    it where loggers are created. Loggers are keyed by their opaque handle,
    so removal never depends on comparing logger state.

    Thread-safe for concurrent registration, flushing and cleanup.

    Example:
        with LoggerRegistry() as registry:
            log = registry.create_logger("ingestion-key", {"app": "svc"})
            log.info("started")
        # leaving the block flushes, waits, and shuts the pool down
    """

    def __init__(
        self,
        *,
        max_workers: int = DEFAULT_MAX_WORKERS,
        clock: Clock = DEFAULT_CLOCK,
        timer_factory: TimerFactory | None = None,
        http_client_factory: Callable[[], httpx.Client] | None = None,
    ) -> None:
        """Initialize an empty registry.

        Args:
            max_workers: Threads available for concurrent sends
            clock: Time source handed to every logger
            timer_factory: Flush timer implementation handed to every logger
            http_client_factory: Builds the httpx.Client for each logger
        """
        self._loggers: dict[str, Logger] = {}
        self._lock = threading.Lock()
        self._executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="logdna-flush")
        self._clock = clock
        self._timer_factory = timer_factory
        self._http_client_factory = http_client_factory
        self._closed = False

    def create_logger(
        self,
        ingestion_key: str,
        options: Mapping[str, Any] | LoggerOptions | None = None,
    ) -> Logger:
        """Build and register a logger.

        Raises:
            LoggerConfigError: If the key or options are invalid. Nothing is
                registered in that case.
            RuntimeError: If the registry has been closed.
        """
        self._check_open()
        instance = Logger(
            ingestion_key,
            options,
            executor=self._executor,
            clock=self._clock,
            timer_factory=self._timer_factory,
            http_client=self._http_client_factory() if self._http_client_factory else None,
        )
        self.register(instance)
        return instance

    def register(self, instance: Logger) -> str:
        """Track a logger for flush_all / cleanup_all.

        Returns:
            The logger's handle.

        Raises:
            RuntimeError: If the registry has been closed.
        """
        with self._lock:
            self._check_open()
            self._loggers[instance.handle] = instance
        logger.debug("Logger registered", handle=instance.handle, app=instance.source.app)
        return instance.handle

    @property
    def closed(self) -> bool:
        return self._closed

    def _check_open(self) -> None:
        if self._closed:
            raise RuntimeError("LoggerRegistry is closed")

    def unregister(self, instance: Logger) -> bool:
        """Stop tracking a logger without flushing it.

        Returns:
            True if the logger was registered.
        """
        with self._lock:
            return self._loggers.pop(instance.handle, None) is not None

    def get(self, handle: str) -> Logger | None:
        with self._lock:
            return self._loggers.get(handle)

    def __len__(self) -> int:
        with self._lock:
            return len(self._loggers)

    def __contains__(self, instance: object) -> bool:
        if not isinstance(instance, Logger):
            return False
        with self._lock:
            return self._loggers.get(instance.handle) is instance

    def __iter__(self) -> Iterator[Logger]:
        with self._lock:
            return iter(list(self._loggers.values()))

    def flush_all(self, callback: FlushCallback | None = None) -> Future[list[FlushResult]]:
        """Flush every registered logger.

        Args:
            callback: Called with the result list once every flush completed

        Returns:
            Future resolving to one FlushResult per logger, after all of them
            have completed (successfully or not). Resolves immediately when
            nothing is registered.
        """
        with self._lock:
            instances = list(self._loggers.values())
        joined = join_flushes([instance.flush() for instance in instances])
        if callback is not None:
            joined.add_done_callback(lambda f: callback(f.result()))
        return joined

    def cleanup(self, instance: Logger) -> Future[FlushResult]:
        """Flush one logger, remove it, and close it once the flush completes.

        The logger stops accepting statements before the flush starts.
        """
        instance.begin_shutdown()
        future = instance.flush()
        self.unregister(instance)
        future.add_done_callback(lambda _: instance.close())
        return future

    def cleanup_all(self, callback: FlushCallback | None = None) -> Future[list[FlushResult]]:
        """Flush every logger, then clear the registry.

        Loggers are closed once their flushes have all completed.
        """
        with self._lock:
            instances = list(self._loggers.values())
            self._loggers.clear()
        for instance in instances:
            instance.begin_shutdown()
        joined = join_flushes([instance.flush() for instance in instances])

        def _close_all(_: Future[list[FlushResult]]) -> None:
            for instance in instances:
                instance.close()

        joined.add_done_callback(_close_all)
        if callback is not None:
            joined.add_done_callback(lambda f: callback(f.result()))
        return joined

    def close(self, timeout: float | None = None) -> list[FlushResult]:
        """Clean up every logger, wait for delivery, and shut the pool down.

        Idempotent. Later calls return an empty list.

        Args:
            timeout: Seconds to wait for outstanding flushes (None waits forever)

        Raises:
            TimeoutError: If flushes are still running after timeout. The pool
                is shut down anyway and in-flight sends are abandoned.
        """
        if self._closed:
            return []
        self._closed = True
        try:
            results = self.cleanup_all().result(timeout=timeout)
        except TimeoutError:
            logger.warning("Timed out waiting for flushes, abandoning in-flight sends", timeout=timeout)
            self._executor.shutdown(wait=False, cancel_futures=True)
            raise
        self._executor.shutdown(wait=True)
        logger.debug(
            "Logger registry closed",
            flushed=len(results),
            failed=sum(1 for r in results if not r.ok),
        )
        return results

    def __enter__(self) -> LoggerRegistry:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        self.close()
