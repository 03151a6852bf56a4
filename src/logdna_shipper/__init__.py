# src/logdna_shipper/__init__.py
"""Buffered, asynchronous log shipping to a LogDNA-compatible ingestion endpoint.

Applications hand discrete statements to a Logger; the logger batches them
in memory and POSTs them from a worker pool, either when the flush interval
elapses or as soon as the buffered size reaches the flush byte limit.

Components:
- formatter: statement + options -> LogRecord
- buffer: LogBuffer, size-tracked queue with atomic drain
- scheduler: FlushScheduler, IDLE/SCHEDULED timer state machine
- transmitter / transport: payload serialization and the httpx POST
- registry: LoggerRegistry, flush_all / cleanup_all across loggers
- config: LoggerOptions validation and settings-file loading

Usage:
    from logdna_shipper import LoggerRegistry

    registry = LoggerRegistry()
    log = registry.create_logger("ingestion-key", {"app": "billing", "tags": ["eu"]})
    log.info("invoice created", {"meta": {"invoice": 42}})
    registry.close()  # flush, wait, release threads

The module-level create_logger(), flush_all() and cleanup_all() act on a
default registry created on first use, for applications without a
composition root of their own.
"""

from __future__ import annotations

import threading
from collections.abc import Mapping
from concurrent.futures import Future
from typing import Any

__version__ = "0.1.0"

from logdna_shipper.config import LoggerOptions, load_settings
from logdna_shipper.errors import LoggerConfigError
from logdna_shipper.logger import Logger
from logdna_shipper.records import FlushResult, FlushResultKind, LogRecord, LogResult, LogResultKind
from logdna_shipper.registry import FlushCallback, LoggerRegistry

_default_registry: LoggerRegistry | None = None
_default_lock = threading.Lock()


def default_registry() -> LoggerRegistry:
    """Return the shared registry, creating it on first use."""
    global _default_registry
    with _default_lock:
        if _default_registry is None:
            _default_registry = LoggerRegistry()
        return _default_registry


def create_logger(
    ingestion_key: str,
    options: Mapping[str, Any] | LoggerOptions | None = None,
    *,
    registry: LoggerRegistry | None = None,
) -> Logger:
    """Create a logger and register it (in the default registry unless one is given).

    Raises:
        LoggerConfigError: If the key or options are invalid.
    """
    target = registry if registry is not None else default_registry()
    return target.create_logger(ingestion_key, options)


def flush_all(callback: FlushCallback | None = None) -> Future[list[FlushResult]]:
    """Flush every logger in the default registry."""
    return default_registry().flush_all(callback)


def cleanup_all(callback: FlushCallback | None = None) -> Future[list[FlushResult]]:
    """Flush and remove every logger in the default registry."""
    return default_registry().cleanup_all(callback)


__all__ = [
    "FlushResult",
    "FlushResultKind",
    "LogRecord",
    "LogResult",
    "LogResultKind",
    "Logger",
    "LoggerConfigError",
    "LoggerOptions",
    "LoggerRegistry",
    "__version__",
    "cleanup_all",
    "create_logger",
    "default_registry",
    "flush_all",
    "load_settings",
]
