# src/logdna_shipper/formatter.py
"""Normalize a raw log statement plus per-call options into a LogRecord.

The formatter never raises for odd input data. The only exception it
raises is InvalidLogOptionsError for options that are neither a string nor
a mapping, which Logger.log() converts into a soft INVALID_OPTIONS_TYPE
result.
"""

from __future__ import annotations

import math
from collections.abc import Mapping
from datetime import datetime
from typing import Any

import structlog

from logdna_shipper.clock import DEFAULT_CLOCK, Clock
from logdna_shipper.defaults import MAX_INPUT_LENGTH, MS_IN_A_DAY
from logdna_shipper.errors import InvalidLogOptionsError
from logdna_shipper.records import LogRecord, Source
from logdna_shipper.serialization import DROPPED, is_structured, safe_dumps, to_json_safe

logger = structlog.get_logger(__name__)

STATEMENT_INDENT = 2


def statement_to_line(statement: Any) -> str:
    """Render a statement as the record's line.

    Structured statements are pretty-printed JSON with unrepresentable
    values omitted. None renders as an empty line, which the buffer rejects.
    """
    if statement is None:
        return ""
    if isinstance(statement, str):
        return statement
    if is_structured(statement):
        return safe_dumps(statement, indent=STATEMENT_INDENT)
    return str(statement)


def clamp_level(level: str) -> str:
    """Cut a level string to MAX_INPUT_LENGTH characters, warning when cut."""
    if len(level) > MAX_INPUT_LENGTH:
        logger.warning(
            "Level was truncated",
            max_chars=MAX_INPUT_LENGTH,
            original_length=len(level),
        )
        return level[:MAX_INPUT_LENGTH]
    return level


def resolve_timestamp(value: Any, now_ms: int) -> int | None:
    """Return value as epoch millis if it lies within one day of now_ms.

    Returns None (after a warning) for invalid or out-of-range values so the
    caller falls back to the current time.
    """
    candidate: int | None = None
    if isinstance(value, datetime):
        try:
            candidate = int(value.timestamp() * 1000)
        except (OverflowError, OSError, ValueError):
            candidate = None
    elif isinstance(value, int) and not isinstance(value, bool):
        candidate = value
    elif isinstance(value, float) and math.isfinite(value):
        candidate = int(value)

    if candidate is None or candidate <= 0 or abs(candidate - now_ms) > MS_IN_A_DAY:
        logger.warning(
            "Timestamp is invalid or not within one day, using current time",
            timestamp=repr(value),
        )
        return None
    return candidate


def format_message(
    statement: Any,
    options: Any = None,
    *,
    source: Source,
    index_meta: bool = False,
    clock: Clock = DEFAULT_CLOCK,
) -> LogRecord:
    """Build a LogRecord from a statement and optional per-call options.

    Args:
        statement: String, structured value (mapping/sequence/dataclass) or scalar
        options: None, a level string, or a mapping with any of
            level, app, env, timestamp, meta, context, index_meta
        source: Logger defaults for level, app and env
        index_meta: Logger default for keeping meta structured
        clock: Time source for the default timestamp

    Returns:
        The record. Its line may be empty; the buffer decides what to do.

    Raises:
        InvalidLogOptionsError: If options is neither None, a string nor a mapping.
    """
    now_ms = clock.now_ms()
    line = statement_to_line(statement)
    level = source.level
    app = source.app
    env = source.env
    timestamp = now_ms
    meta: Any = None

    if options is None or options == "":
        pass
    elif isinstance(options, str):
        level = clamp_level(options)
    elif isinstance(options, Mapping):
        level = clamp_level(_override(options, "level", level))
        app = _override(options, "app", app)
        env = _override(options, "env", env)

        requested_ts = options.get("timestamp")
        if requested_ts:
            resolved = resolve_timestamp(requested_ts, now_ms)
            if resolved is not None:
                timestamp = resolved

        raw_meta = options.get("meta")
        if raw_meta is None:
            raw_meta = options.get("context")
        meta = _attach_meta(raw_meta, options.get("index_meta"), index_meta)
    else:
        logger.warning(
            "Can only pass a string or a mapping as additional parameter",
            options_type=type(options).__name__,
        )
        raise InvalidLogOptionsError(type(options).__name__)

    return LogRecord(timestamp=timestamp, line=line, level=level, app=app, env=env, meta=meta)


def _override(options: Mapping[str, Any], key: str, fallback: Any) -> Any:
    # Non-string or empty values keep the logger default
    value = options.get(key)
    if isinstance(value, str) and value:
        return value
    return fallback


def _attach_meta(raw_meta: Any, per_call_index_meta: Any, default_index_meta: bool) -> Any:
    # Only structured metadata is attached
    if not is_structured(raw_meta):
        return None
    keep_structured = default_index_meta if per_call_index_meta is None else bool(per_call_index_meta)
    if keep_structured:
        reduced = to_json_safe(raw_meta)
        return None if reduced is DROPPED else reduced
    return safe_dumps(raw_meta)
