# src/logdna_shipper/clock.py
"""Wall-clock abstraction for record timestamps.

Records carry epoch milliseconds and timestamp overrides are checked against
"now", so the formatter and transport read time through a Clock. Production
code uses SystemClock; tests inject MockClock.
"""

from __future__ import annotations

import time
from typing import Protocol


class Clock(Protocol):
    """Source of the current wall-clock time."""

    def now_ms(self) -> int:
        """Return the current time as integer epoch milliseconds."""
        ...


class SystemClock:
    """Production clock backed by time.time()."""

    def now_ms(self) -> int:
        return int(time.time() * 1000)


class MockClock:
    """Controllable clock for deterministic testing.

    Example:
        clock = MockClock(start_ms=1_700_000_000_000)
        clock.advance(250)
        assert clock.now_ms() == 1_700_000_000_250
    """

    def __init__(self, start_ms: int = 1_700_000_000_000) -> None:
        self._current = start_ms

    def now_ms(self) -> int:
        return self._current

    def advance(self, milliseconds: int) -> None:
        """Move the clock forward.

        Raises:
            ValueError: If milliseconds is negative.
        """
        if milliseconds < 0:
            raise ValueError(f"Cannot advance clock by negative amount: {milliseconds}")
        self._current += milliseconds

    def set(self, value_ms: int) -> None:
        """Jump to an absolute time."""
        self._current = value_ms


DEFAULT_CLOCK = SystemClock()
