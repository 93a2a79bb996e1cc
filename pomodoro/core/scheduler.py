from __future__ import annotations

"""Tick sources for the timer: a Qt one for the app, a manual one for tests."""

from typing import Callable, Protocol

from PyQt6.QtCore import QObject, QTimer


TICK_INTERVAL_MS = 1000


class TickScheduler(Protocol):
    @property
    def is_active(self) -> bool: ...

    def start(self, callback: Callable[[], None]) -> None: ...

    def stop(self) -> None: ...


class QtTickScheduler(QObject):
    """Fires the callback once per second from the Qt event loop."""

    def __init__(self, parent: QObject | None = None, interval_ms: int = TICK_INTERVAL_MS) -> None:
        super().__init__(parent)
        self._callback: Callable[[], None] | None = None
        self._timer = QTimer(self)
        self._timer.setInterval(interval_ms)
        self._timer.timeout.connect(self._on_timeout)

    @property
    def is_active(self) -> bool:
        return self._timer.isActive()

    @property
    def interval_ms(self) -> int:
        return self._timer.interval()

    def start(self, callback: Callable[[], None]) -> None:
        self._callback = callback
        if not self._timer.isActive():
            self._timer.start()

    def stop(self) -> None:
        self._timer.stop()

    def _on_timeout(self) -> None:
        if self._callback is not None:
            self._callback()


class ManualScheduler:
    def __init__(self) -> None:
        self._callback: Callable[[], None] | None = None
        self._active = False

    @property
    def is_active(self) -> bool:
        return self._active

    def start(self, callback: Callable[[], None]) -> None:
        self._callback = callback
        self._active = True

    def stop(self) -> None:
        self._active = False

    def advance(self, seconds: int = 1) -> int:
        """Delivers up to `seconds` ticks; stops early once deactivated."""
        fired = 0
        for _ in range(seconds):
            if not self._active or self._callback is None:
                break
            self._callback()
            fired += 1
        return fired
