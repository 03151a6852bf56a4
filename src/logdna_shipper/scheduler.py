# src/logdna_shipper/scheduler.py
"""Per-logger flush timer modelled as an explicit two-state machine.

IDLE --schedule()--> SCHEDULED --timer fires--> IDLE (flush callback runs)
SCHEDULED --cancel()--> IDLE

At most one timer is outstanding. schedule() while SCHEDULED is a no-op, so
a stream of appends does not keep pushing the deadline back: the first
record after a flush bounds the delay for everything behind it.
"""

from __future__ import annotations

import threading
from collections.abc import Callable
from enum import StrEnum
from typing import Protocol

import structlog

logger = structlog.get_logger(__name__)


class SchedulerState(StrEnum):
    IDLE = "idle"
    SCHEDULED = "scheduled"


class TimerHandle(Protocol):
    """The subset of threading.Timer the scheduler relies on."""

    def start(self) -> None: ...

    def cancel(self) -> None: ...


TimerFactory = Callable[[float, Callable[[], None]], TimerHandle]


def _daemon_timer(interval_seconds: float, function: Callable[[], None]) -> TimerHandle:
    timer = threading.Timer(interval_seconds, function)
    timer.daemon = True
    return timer


class FlushScheduler:
    """Owns the pending-flush timer for one logger.

    Thread Safety:
        schedule() and cancel() are called from the logging thread and from
        flushes; the timer callback runs on its own thread. State changes
        happen under a lock. A timer that fires after being superseded
        (cancel raced with expiry) is recognised by identity and ignored.

    Example:
        scheduler = FlushScheduler(interval_ms=250, on_fire=logger_flush)
        scheduler.schedule()   # IDLE -> SCHEDULED
        scheduler.cancel()     # SCHEDULED -> IDLE, timer stopped
    """

    def __init__(
        self,
        interval_ms: int,
        on_fire: Callable[[], object],
        *,
        timer_factory: TimerFactory = _daemon_timer,
    ) -> None:
        """Initialize an idle scheduler.

        Args:
            interval_ms: Delay between scheduling and firing
            on_fire: Called (on the timer thread) when the timer expires
            timer_factory: Builds the timer; defaults to a daemon threading.Timer

        Raises:
            ValueError: If interval_ms < 1.
        """
        if interval_ms < 1:
            raise ValueError(f"interval_ms must be >= 1, got {interval_ms}")
        self._interval_ms = interval_ms
        self._on_fire = on_fire
        self._timer_factory = timer_factory
        self._timer: TimerHandle | None = None
        self._lock = threading.Lock()

    @property
    def state(self) -> SchedulerState:
        with self._lock:
            return SchedulerState.IDLE if self._timer is None else SchedulerState.SCHEDULED

    @property
    def interval_ms(self) -> int:
        return self._interval_ms

    def schedule(self) -> bool:
        """Arm the timer if IDLE.

        Returns:
            True if a new timer was started, False if one was already pending.
        """
        with self._lock:
            if self._timer is not None:
                return False
            timer: TimerHandle
            timer = self._timer_factory(self._interval_ms / 1000, lambda: self._fire(timer))
            self._timer = timer
        logger.debug("No scheduled flush, scheduling", delay_ms=self._interval_ms)
        timer.start()
        return True

    def cancel(self) -> bool:
        """Stop any pending timer and return to IDLE.

        Returns:
            True if a pending timer was cancelled.
        """
        with self._lock:
            timer = self._timer
            self._timer = None
        if timer is None:
            return False
        timer.cancel()
        return True

    def _fire(self, timer: TimerHandle) -> None:
        with self._lock:
            if self._timer is not timer:
                return
            self._timer = None
        self._on_fire()
