import time
from datetime import datetime, timedelta, timezone

import pytest

from course_app.core.scheduling import ManualTickScheduler, ThreadingTickScheduler


def test_manual_scheduler_fires_each_due_tick():
    scheduler = ManualTickScheduler()
    fired = []
    scheduler.schedule_repeating(2, lambda: fired.append(scheduler.now()))

    scheduler.advance(5)

    start = datetime(2024, 1, 1, tzinfo=timezone.utc)
    assert fired == [start + timedelta(seconds=2), start + timedelta(seconds=4)]
    assert scheduler.now() == start + timedelta(seconds=5)


def test_cancelled_tick_stops_firing():
    scheduler = ManualTickScheduler()
    fired = []
    handle = scheduler.schedule_repeating(1, lambda: fired.append(1))

    scheduler.advance(2)
    handle.cancel()
    scheduler.advance(10)

    assert fired == [1, 1]
    assert not handle.active
    assert scheduler.active_tick_count == 0


def test_tick_may_cancel_itself():
    scheduler = ManualTickScheduler()
    fired = []
    handles = []

    def callback():
        fired.append(1)
        handles[0].cancel()

    handles.append(scheduler.schedule_repeating(1, callback))
    scheduler.advance(5)

    assert fired == [1]


def test_interval_must_be_positive():
    with pytest.raises(ValueError):
        ManualTickScheduler().schedule_repeating(0, lambda: None)
    with pytest.raises(ValueError):
        ThreadingTickScheduler().schedule_repeating(-1, lambda: None)


def test_failing_threaded_tick_is_logged_and_stops(caplog):
    handle = ThreadingTickScheduler().schedule_repeating(0.01, lambda: 1 / 0)

    deadline = time.monotonic() + 5
    while handle.active and time.monotonic() < deadline:
        time.sleep(0.01)

    assert not handle.active
    assert "Tick callback failed" in caplog.text
    assert "ZeroDivisionError" in caplog.text


def test_threading_handle_can_be_cancelled():
    handle = ThreadingTickScheduler().schedule_repeating(60, lambda: None)

    assert handle.active
    handle.cancel()
    assert not handle.active
