from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, datetime
from enum import Enum
from typing import Any, Callable, Protocol

from PyQt6.QtCore import QObject, pyqtSignal, pyqtSlot

from pomodoro.core.models import SessionType
from pomodoro.core.notifications import NullNotifier, Notifier
from pomodoro.core.scheduler import ManualScheduler, TickScheduler
from pomodoro.core.settings import TimerSettings


logger = logging.getLogger(__name__)

NOTIFICATION_TITLE = "Pomodoro Timer"
WORK_DONE_MESSAGE = "Work complete! Time for a break."
BREAK_DONE_MESSAGE = "Break over! Time to focus."


class PostCompletionPolicy(str, Enum):
    STOP = "stop"
    FOLLOW_SETTINGS = "follow_settings"


class Recorder(Protocol):
    def create_session(self, session_type: SessionType, duration_minutes: int, started_at: datetime) -> Any: ...

    def complete_session(self, pending: Any, completed_at: datetime) -> Any: ...


@dataclass(frozen=True)
class TimerState:
    current_type: SessionType
    remaining_seconds: int
    is_running: bool
    completed_work_count_in_cycle: int
    total_completed_today: int
    duration_seconds: int

    @property
    def progress(self) -> float:
        if self.duration_seconds <= 0:
            return 1.0
        return 1.0 - self.remaining_seconds / self.duration_seconds

    @property
    def formatted(self) -> str:
        minutes, seconds = divmod(self.remaining_seconds, 60)
        return f"{minutes:02d}:{seconds:02d}"


class PomodoroTimer(QObject):
    """Work/break countdown driven by a one-second tick.

    All mutation goes through the public commands and `tick()`; callers on
    other threads should reach it through queued signals (`apply_settings`
    is a slot for that reason).
    """

    state_changed = pyqtSignal(object)
    interval_completed = pyqtSignal(object, object)

    def __init__(
        self,
        settings: TimerSettings | None = None,
        recorder: Recorder | None = None,
        notifier: Notifier | None = None,
        scheduler: TickScheduler | None = None,
        clock: Callable[[], datetime] | None = None,
        policy: PostCompletionPolicy = PostCompletionPolicy.FOLLOW_SETTINGS,
        parent: QObject | None = None,
    ) -> None:
        super().__init__(parent)
        self._settings = settings or TimerSettings()
        self._pending_settings: TimerSettings | None = None
        self._recorder = recorder
        self._notifier = notifier or NullNotifier()
        self._scheduler = scheduler if scheduler is not None else ManualScheduler()
        self._clock = clock or datetime.now
        self._policy = policy

        self._type = SessionType.WORK
        self._remaining = self._settings.duration_seconds(SessionType.WORK)
        self._running = False
        self._completed_in_cycle = 0
        self._completed_today = 0
        self._day: date = self._clock().date()
        self._open_record: Any = None

    @property
    def settings(self) -> TimerSettings:
        return self._settings

    @property
    def pending_settings(self) -> TimerSettings | None:
        return self._pending_settings

    @property
    def current_type(self) -> SessionType:
        return self._type

    @property
    def remaining_seconds(self) -> int:
        return self._remaining

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def completed_work_count_in_cycle(self) -> int:
        return self._completed_in_cycle

    @property
    def total_completed_today(self) -> int:
        return self._completed_today

    def duration(self, session_type: SessionType | None = None) -> int:
        return self._settings.duration_seconds(session_type or self._type)

    def snapshot(self) -> TimerState:
        return TimerState(
            current_type=self._type,
            remaining_seconds=self._remaining,
            is_running=self._running,
            completed_work_count_in_cycle=self._completed_in_cycle,
            total_completed_today=self._completed_today,
            duration_seconds=self.duration(),
        )

    def start(self) -> None:
        if self._running or self._remaining <= 0:
            return
        if self._open_record is None:
            self._open_record = self._request_create()
        self._running = True
        self._scheduler.start(self.tick)
        self._emit_state()

    def pause(self) -> None:
        self._stop_clock()
        self._emit_state()

    def toggle(self) -> None:
        if self._running:
            self.pause()
        else:
            self.start()

    def reset(self) -> None:
        self._stop_clock()
        self._apply_pending_settings()
        self._open_record = None
        self._remaining = self.duration()
        self._emit_state()

    def switch_type(self, session_type: SessionType) -> None:
        # abandons any in-flight interval; its record stays incomplete
        self._stop_clock()
        self._apply_pending_settings()
        self._open_record = None
        self._type = SessionType(session_type)
        self._remaining = self.duration()
        self._emit_state()

    def tick(self) -> None:
        if not self._running:
            return
        self._remaining = max(0, self._remaining - 1)
        if self._remaining == 0:
            self._complete_interval()
        else:
            self._emit_state()

    @pyqtSlot(object)
    def apply_settings(self, settings: TimerSettings) -> None:
        if self._running:
            logger.debug("Timer running, settings change queued")
            self._pending_settings = settings
            return
        self._pending_settings = settings
        self._apply_pending_settings()
        self._open_record = None
        self._remaining = self.duration()
        self._emit_state()

    def _complete_interval(self) -> None:
        finished = self._type
        self._stop_clock()
        self._send_notification(finished)
        self._apply_pending_settings()

        today = self._clock().date()
        if today != self._day:
            self._day = today
            self._completed_today = 0

        if finished == SessionType.WORK:
            self._completed_in_cycle += 1
            self._completed_today += 1
            if self._completed_in_cycle >= self._settings.sessions_until_long_break:
                self._type = SessionType.LONG_BREAK
                self._completed_in_cycle = 0
            else:
                self._type = SessionType.SHORT_BREAK
        else:
            self._type = SessionType.WORK
        self._remaining = self.duration()

        self._request_complete()
        logger.info(
            "%s interval complete, next: %s (%d/%d in cycle, %d today)",
            finished.value,
            self._type.value,
            self._completed_in_cycle,
            self._settings.sessions_until_long_break,
            self._completed_today,
        )
        self.interval_completed.emit(finished, self._type)
        self._emit_state()

        if self._should_auto_start():
            self.start()

    def _should_auto_start(self) -> bool:
        if self._policy != PostCompletionPolicy.FOLLOW_SETTINGS:
            return False
        if self._type.is_break:
            return self._settings.auto_start_breaks
        return self._settings.auto_start_work

    def _stop_clock(self) -> None:
        self._running = False
        self._scheduler.stop()

    def _apply_pending_settings(self) -> None:
        if self._pending_settings is None:
            return
        self._settings = self._pending_settings
        self._pending_settings = None
        limit = self._settings.sessions_until_long_break
        if self._completed_in_cycle >= limit:
            self._completed_in_cycle = limit - 1

    def _send_notification(self, finished: SessionType) -> None:
        body = WORK_DONE_MESSAGE if finished == SessionType.WORK else BREAK_DONE_MESSAGE
        try:
            self._notifier.play_tone(self._settings.notification_volume / 100)
        except Exception:
            logger.exception("Failed to play notification tone")
        try:
            self._notifier.notify(NOTIFICATION_TITLE, body)
        except Exception:
            logger.exception("Failed to show notification")

    def _request_create(self) -> Any:
        if self._recorder is None:
            return None
        try:
            return self._recorder.create_session(
                self._type,
                self._settings.minutes_for(self._type),
                self._clock(),
            )
        except Exception:
            logger.exception("Could not request session creation")
            return None

    def _request_complete(self) -> None:
        pending, self._open_record = self._open_record, None
        if self._recorder is None or pending is None:
            return
        try:
            self._recorder.complete_session(pending, self._clock())
        except Exception:
            logger.exception("Could not request session completion")

    def _emit_state(self) -> None:
        self.state_changed.emit(self.snapshot())
