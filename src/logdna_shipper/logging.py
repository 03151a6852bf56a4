# src/logdna_shipper/logging.py
"""Diagnostics output for the CLI and for applications that want it.

The library only calls structlog.get_logger(__name__) and never configures
output itself. configure_logging() sends structlog events through stdlib
logging to stderr so shipped data and diagnostics never share a stream.
"""

import logging
import sys
from typing import Any

import structlog
from structlog.stdlib import ProcessorFormatter

# httpx logs every request at INFO and httpcore every connection at DEBUG
_NOISY_LOGGERS: tuple[str, ...] = ("httpx", "httpcore")


def configure_logging(*, json_output: bool = False, level: str = "INFO") -> None:
    """Route library diagnostics to stderr.

    Args:
        json_output: If True, one JSON object per line. If False, human-readable.
        level: Minimum level (DEBUG, INFO, WARNING, ERROR).
    """
    log_level = getattr(logging, level.upper())

    pre_chain: list[Any] = [
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
    ]
    renderer: Any = (
        structlog.processors.JSONRenderer() if json_output else structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty())
    )

    structlog.configure(
        processors=[*pre_chain, ProcessorFormatter.wrap_for_formatter],
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        # configure_logging may run more than once per process (tests, CLI re-entry)
        cache_logger_on_first_use=False,
    )

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(
        ProcessorFormatter(
            processors=[ProcessorFormatter.remove_processors_meta, renderer],
            foreign_pre_chain=pre_chain,
        )
    )
    root = logging.getLogger()
    root.handlers = [handler]
    root.setLevel(log_level)

    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(log_level, logging.WARNING))


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    logger: structlog.stdlib.BoundLogger = structlog.get_logger(name)
    return logger
