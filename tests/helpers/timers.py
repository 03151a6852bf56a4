# tests/helpers/timers.py
"""Deterministic stand-ins for threading.Timer."""

from __future__ import annotations

from collections.abc import Callable


class FakeTimer:
    """Timer that fires only when a test calls fire()."""

    def __init__(self, interval: float, function: Callable[[], None]) -> None:
        self.interval = interval
        self.function = function
        self.started = False
        self.cancelled = False

    def start(self) -> None:
        self.started = True

    def cancel(self) -> None:
        self.cancelled = True

    def fire(self) -> None:
        """Run the callback as the timer thread would, unless cancelled."""
        if self.started and not self.cancelled:
            self.function()


class FakeTimerFactory:
    """TimerFactory that records every timer it builds."""

    def __init__(self) -> None:
        self.timers: list[FakeTimer] = []

    def __call__(self, interval: float, function: Callable[[], None]) -> FakeTimer:
        timer = FakeTimer(interval, function)
        self.timers.append(timer)
        return timer

    @property
    def pending(self) -> list[FakeTimer]:
        return [t for t in self.timers if t.started and not t.cancelled]

    def fire_all(self) -> None:
        for timer in self.pending:
            timer.fire()
