"""
Cooperative tick scheduler.

Replaces wall-clock intervals and timeouts with timers that only move
when the owner calls advance(). Everything runs on one timeline, so a
timer callback never overlaps another one and tests can step time
deterministically.

Usage:
    scheduler = TickScheduler()
    handle = scheduler.every(100, on_tick)
    scheduler.after(1500, on_timeout)

    scheduler.advance(250)   # fires on_tick twice
    handle.cancel()
"""

from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Callable, Optional

TimerCallback = Callable[[], None]


@dataclass
class TimerHandle:
    """
    A scheduled timer.

    Attributes:
        interval_ms: Period for repeating timers, delay for one-shots
        callback: Function called when the timer fires
        repeat: Whether the timer re-arms after firing
        due_ms: Scheduler time at which it next fires
        active: False once cancelled or (for one-shots) fired
    """
    interval_ms: int
    callback: TimerCallback
    repeat: bool
    due_ms: int
    sequence: int
    active: bool = True

    def cancel(self) -> None:
        """Stop the timer; it will not fire again."""
        self.active = False


class TickScheduler:
    """
    Fixed-step timer host driven by explicit time advancement.

    Timers fire in due-time order; ties fire in creation order.
    A repeating timer with a non-positive interval fires once per
    advance() call instead of looping forever.
    """

    def __init__(self):
        self._timers: list[TimerHandle] = []
        self._now_ms: int = 0
        self._sequence: int = 0

    @property
    def now_ms(self) -> int:
        """Scheduler time in milliseconds."""
        return self._now_ms

    @property
    def active_count(self) -> int:
        """Number of timers still armed."""
        return sum(1 for t in self._timers if t.active)

    def every(self, interval_ms: int, callback: TimerCallback) -> TimerHandle:
        """Schedule a repeating timer."""
        return self._add(interval_ms, callback, repeat=True)

    def after(self, delay_ms: int, callback: TimerCallback) -> TimerHandle:
        """Schedule a one-shot timer."""
        return self._add(delay_ms, callback, repeat=False)

    def _add(self, interval_ms: int, callback: TimerCallback, repeat: bool) -> TimerHandle:
        self._sequence += 1
        handle = TimerHandle(
            interval_ms=int(interval_ms),
            callback=callback,
            repeat=repeat,
            due_ms=self._now_ms + max(0, int(interval_ms)),
            sequence=self._sequence,
        )
        self._timers.append(handle)
        return handle

    def advance(self, dt_ms: int) -> None:
        """
        Move time forward, firing every timer that comes due.

        Args:
            dt_ms: Milliseconds to advance (negative values are ignored)
        """
        target = self._now_ms + max(0, int(dt_ms))
        fired_degenerate: set[int] = set()

        while True:
            due = [
                t for t in self._timers
                if t.active and t.due_ms <= target
                and t.sequence not in fired_degenerate
            ]
            if not due:
                break

            timer = min(due, key=lambda t: (t.due_ms, t.sequence))
            self._now_ms = max(self._now_ms, timer.due_ms)

            if timer.repeat:
                if timer.interval_ms > 0:
                    timer.due_ms += timer.interval_ms
                else:
                    fired_degenerate.add(timer.sequence)
            else:
                timer.active = False

            timer.callback()

        self._now_ms = target
        self._timers = [t for t in self._timers if t.active]

    def stop_all(self) -> None:
        """Cancel every timer."""
        for timer in self._timers:
            timer.active = False
        self._timers.clear()


class RunClock:
    """
    Millisecond clock used for timestamps that must survive save files.

    Defaults to wall-clock epoch milliseconds; tests pass a callable.
    """

    def __init__(self, source: Optional[Callable[[], float]] = None):
        self._source = source or (lambda: time.time() * 1000.0)

    def now_ms(self) -> int:
        """Current time in whole milliseconds."""
        return int(self._source())


@dataclass
class ManualClock:
    """Clock source that only moves when told to."""
    current_ms: int = 0

    def __call__(self) -> float:
        return float(self.current_ms)

    def advance(self, dt_ms: int) -> None:
        self.current_ms += int(dt_ms)
