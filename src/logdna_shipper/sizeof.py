# src/logdna_shipper/sizeof.py
"""Structural in-memory size estimate for buffered records.

The flush byte limit bounds memory held by a logger, not the size of the
HTTP body, so the estimate mirrors how a record sits in memory rather than
its wire encoding: 2 bytes per string character, 8 bytes per number, 4 bytes
per boolean, nothing for None, and for containers the sum of their keys and
values. Each container is counted once; repeated references and cycles add
nothing further.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

STRING_CHAR_BYTES = 2
NUMBER_BYTES = 8
BOOLEAN_BYTES = 4


def estimate_size(value: Any) -> int:
    """Return the estimated byte footprint of value."""
    return _estimate(value, set())


def _estimate(value: Any, seen: set[int]) -> int:
    if value is None:
        return 0
    if isinstance(value, bool):
        return BOOLEAN_BYTES
    if isinstance(value, str):
        return STRING_CHAR_BYTES * len(value)
    if isinstance(value, (int, float)):
        return NUMBER_BYTES
    if isinstance(value, (bytes, bytearray)):
        return len(value)

    if id(value) in seen:
        return 0
    seen.add(id(value))

    if isinstance(value, Mapping):
        return sum(_estimate(key, seen) + _estimate(item, seen) for key, item in value.items())
    if isinstance(value, (list, tuple, set, frozenset)):
        return sum(_estimate(item, seen) for item in value)

    # Opaque objects: count their attribute dict when they have one
    attributes = getattr(value, "__dict__", None)
    if isinstance(attributes, dict):
        return _estimate(attributes, seen)
    return 0
