"""Tick scheduler backed by ``QTimer`` so quiz countdowns run on the GUI thread."""

from __future__ import annotations

from PySide6.QtCore import QObject, QTimer

from course_app.core.scheduling import TickCallback


class _QtTick:
    def __init__(self, timer: QTimer) -> None:
        self._timer = timer

    @property
    def active(self) -> bool:
        return self._timer is not None and self._timer.isActive()

    def cancel(self) -> None:
        if self._timer is None:
            return
        self._timer.stop()
        self._timer.deleteLater()
        self._timer = None


class QtTickScheduler:
    def __init__(self, parent: QObject | None = None) -> None:
        self._parent = parent

    def schedule_repeating(self, interval_seconds: float, callback: TickCallback) -> _QtTick:
        timer = QTimer(self._parent)
        timer.setInterval(int(interval_seconds * 1000))
        timer.timeout.connect(callback)
        timer.start()
        return _QtTick(timer)
