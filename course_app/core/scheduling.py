"""Repeating tick schedulers that drive quiz countdowns.

A quiz session never sleeps or polls the wall clock itself. It asks an
injected scheduler for a repeating tick and keeps the returned handle so the
countdown can be cancelled deterministically. Three implementations exist:

* ``ManualTickScheduler`` advances virtual time on demand (tests, replays).
* ``ThreadingTickScheduler`` ticks from a daemon thread (API server).
* ``course_app.ui.qt_scheduler.QtTickScheduler`` ticks from the Qt event loop.
"""

from __future__ import annotations

from collections.abc import Callable
from datetime import datetime, timedelta, timezone
import logging
from threading import Event, Thread
from typing import Protocol

logger = logging.getLogger(__name__)

TickCallback = Callable[[], None]
Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class TickHandle(Protocol):
    @property
    def active(self) -> bool: ...

    def cancel(self) -> None: ...


class TickScheduler(Protocol):
    def schedule_repeating(self, interval_seconds: float, callback: TickCallback) -> TickHandle: ...


class _ManualTick:
    def __init__(self, interval_seconds: float, callback: TickCallback, next_due: float) -> None:
        self.interval_seconds = interval_seconds
        self.callback = callback
        self.next_due = next_due
        self._active = True

    @property
    def active(self) -> bool:
        return self._active

    def cancel(self) -> None:
        self._active = False


class ManualTickScheduler:
    """Scheduler driven by explicit ``advance`` calls instead of real time.

    Also acts as a clock: ``now()`` returns ``start`` plus the virtual time
    elapsed so far.
    """

    def __init__(self, start: datetime | None = None) -> None:
        self._start = start or datetime(2024, 1, 1, tzinfo=timezone.utc)
        self._elapsed: float = 0.0
        self._ticks: list[_ManualTick] = []

    def schedule_repeating(self, interval_seconds: float, callback: TickCallback) -> _ManualTick:
        if interval_seconds <= 0:
            raise ValueError("Tick interval must be positive.")
        tick = _ManualTick(interval_seconds, callback, self._elapsed + interval_seconds)
        self._ticks.append(tick)
        return tick

    def advance(self, seconds: float) -> None:
        """Move virtual time forward, firing every tick that falls due on the way."""
        target = self._elapsed + seconds
        while True:
            due = [tick for tick in self._ticks if tick.active and tick.next_due <= target]
            if not due:
                break
            tick = min(due, key=lambda item: item.next_due)
            self._elapsed = tick.next_due
            tick.next_due += tick.interval_seconds
            tick.callback()
        self._elapsed = target
        self._ticks = [tick for tick in self._ticks if tick.active]

    @property
    def active_tick_count(self) -> int:
        return sum(1 for tick in self._ticks if tick.active)

    def now(self) -> datetime:
        return self._start + timedelta(seconds=self._elapsed)


class _ThreadTick:
    def __init__(self, interval_seconds: float, callback: TickCallback) -> None:
        self._interval_seconds = interval_seconds
        self._callback = callback
        self._stopped = Event()
        self._thread = Thread(target=self._run, name="QuizCountdown", daemon=True)
        self._thread.start()

    @property
    def active(self) -> bool:
        return not self._stopped.is_set()

    def cancel(self) -> None:
        self._stopped.set()

    def _run(self) -> None:
        while not self._stopped.wait(self._interval_seconds):
            try:
                self._callback()
            except Exception:
                logger.exception("Tick callback failed; stopping the countdown")
                self._stopped.set()


class ThreadingTickScheduler:
    """Ticks from one daemon thread per handle; cancellation is safe from inside the callback."""

    def schedule_repeating(self, interval_seconds: float, callback: TickCallback) -> _ThreadTick:
        if interval_seconds <= 0:
            raise ValueError("Tick interval must be positive.")
        return _ThreadTick(interval_seconds, callback)
