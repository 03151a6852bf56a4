# src/logdna_shipper/serialization.py
"""Best-effort JSON serialization for log statements, metadata and payloads.

Application objects handed to a logger are arbitrary: they may contain
cycles, callables, sockets, or other values JSON cannot represent. Logging
must never raise because of them, so values are first reduced to a
JSON-safe tree:

- str / int / bool / None pass through
- finite floats pass through, NaN and Infinity become None
- mappings become dicts; unsupported values are omitted, non-string keys
  are stringified when they are scalars and omitted otherwise
- lists, tuples, sets and frozensets become lists; unsupported elements
  become None so positions are preserved
- datetime / date become ISO 8601 strings, Enum members their value
- dataclass instances are reduced field by field
- cycles and anything else (functions, modules, arbitrary objects) are dropped
"""

from __future__ import annotations

import dataclasses
import json
import math
from collections.abc import Mapping
from datetime import date, datetime
from enum import Enum
from typing import Any, Final


class _Dropped:
    """Sentinel for values that cannot be represented."""

    def __repr__(self) -> str:
        return "<dropped>"


DROPPED: Final = _Dropped()

_SCALAR_KEY_TYPES = (str, int, float, bool)


def is_structured(value: Any) -> bool:
    """Return True for values serialized as JSON objects or arrays."""
    if isinstance(value, (str, bytes, bytearray)):
        return False
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return True
    return isinstance(value, (Mapping, list, tuple, set, frozenset))


def to_json_safe(value: Any) -> Any:
    """Reduce value to a JSON-safe tree, or DROPPED if nothing survives."""
    return _reduce(value, set())


def _reduce(value: Any, active: set[int]) -> Any:
    if value is None or isinstance(value, (str, bool, int)):
        # Enum subclasses of int/str are normalised below
        if isinstance(value, Enum):
            return _reduce(value.value, active)
        return value
    if isinstance(value, float):
        return value if math.isfinite(value) else None
    if isinstance(value, Enum):
        return _reduce(value.value, active)
    if isinstance(value, (datetime, date)):
        return value.isoformat()

    if id(value) in active:
        return DROPPED

    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        active.add(id(value))
        try:
            reduced_fields = {f.name: getattr(value, f.name) for f in dataclasses.fields(value)}
            return _reduce_mapping(reduced_fields, active)
        finally:
            active.discard(id(value))

    if isinstance(value, Mapping):
        active.add(id(value))
        try:
            return _reduce_mapping(value, active)
        finally:
            active.discard(id(value))

    if isinstance(value, (list, tuple, set, frozenset)):
        active.add(id(value))
        try:
            items = []
            for item in value:
                reduced = _reduce(item, active)
                items.append(None if reduced is DROPPED else reduced)
            return items
        finally:
            active.discard(id(value))

    return DROPPED


def _reduce_mapping(mapping: Mapping[Any, Any], active: set[int]) -> dict[str, Any]:
    result: dict[str, Any] = {}
    for key, item in mapping.items():
        if isinstance(key, Enum):
            key = key.value
        if key is None:
            key = "null"
        elif isinstance(key, bool):
            key = "true" if key else "false"
        elif isinstance(key, _SCALAR_KEY_TYPES):
            key = str(key)
        else:
            continue
        reduced = _reduce(item, active)
        if reduced is not DROPPED:
            result[key] = reduced
    return result


def safe_dumps(value: Any, *, indent: int | None = None) -> str:
    """Serialize value to JSON text, omitting whatever cannot be represented.

    Args:
        value: Any Python object.
        indent: Pretty-print indent, or None for compact output.

    Returns:
        JSON text. An empty string when the top-level value itself is
        unrepresentable (e.g. a bare function).
    """
    reduced = to_json_safe(value)
    if reduced is DROPPED:
        return ""
    if indent is None:
        return json.dumps(reduced, ensure_ascii=False, separators=(",", ":"))
    return json.dumps(reduced, ensure_ascii=False, indent=indent)
