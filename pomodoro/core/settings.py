from __future__ import annotations

import logging
from dataclasses import asdict, dataclass, fields
from typing import Any

from PyQt6.QtCore import QObject, pyqtSignal

from pomodoro.core.models import SessionType
from pomodoro.data.storage import Storage


logger = logging.getLogger(__name__)

SETTINGS_KEY = "pomodoroSettings"

# camelCase keys used by the saved settings blob
BLOB_KEYS = {
    "work_minutes": "workDuration",
    "short_break_minutes": "shortBreakDuration",
    "long_break_minutes": "longBreakDuration",
    "sessions_until_long_break": "sessionsUntilLongBreak",
    "auto_start_breaks": "autoStartBreaks",
    "auto_start_work": "autoStartPomodoros",
    "notification_sound": "notificationSound",
    "notification_volume": "notificationVolume",
    "daily_goal": "dailyGoal",
}


# (minimum, maximum) for the integer fields
INT_LIMITS = {
    "work_minutes": (1, None),
    "short_break_minutes": (1, None),
    "long_break_minutes": (1, None),
    "sessions_until_long_break": (1, None),
    "notification_volume": (0, 100),
    "daily_goal": (1, None),
}
BOOL_FIELDS = {"auto_start_breaks", "auto_start_work"}


def _int_or_default(value: Any, default: int, minimum: int, maximum: int | None = None) -> int:
    if isinstance(value, bool):
        return default
    if isinstance(value, float) and not value.is_integer():
        return default
    try:
        number = int(value)
    except (TypeError, ValueError, OverflowError):
        return default
    if number < minimum or (maximum is not None and number > maximum):
        return default
    return number


def _bool_or_default(value: Any, default: bool) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str) and value.lower() in {"true", "false"}:
        return value.lower() == "true"
    return default


@dataclass(frozen=True)
class TimerSettings:
    """Immutable timer configuration.

    Every field is normalised on construction: a value that is malformed or
    out of range is replaced by that field's default, so durations always
    convert to a positive number of seconds.
    """

    work_minutes: int = 25
    short_break_minutes: int = 5
    long_break_minutes: int = 15
    sessions_until_long_break: int = 4
    auto_start_breaks: bool = False
    auto_start_work: bool = False
    notification_sound: str = "default"
    notification_volume: int = 70
    daily_goal: int = 8

    def __post_init__(self) -> None:
        for field in fields(self):
            value = getattr(self, field.name)
            if field.name in INT_LIMITS:
                minimum, maximum = INT_LIMITS[field.name]
                value = _int_or_default(value, field.default, minimum, maximum)
            elif field.name in BOOL_FIELDS:
                value = _bool_or_default(value, field.default)
            elif not isinstance(value, str) or not value:
                value = field.default
            object.__setattr__(self, field.name, value)

    def minutes_for(self, session_type: SessionType) -> int:
        if session_type == SessionType.WORK:
            return self.work_minutes
        if session_type == SessionType.SHORT_BREAK:
            return self.short_break_minutes
        return self.long_break_minutes

    def duration_seconds(self, session_type: SessionType) -> int:
        return self.minutes_for(session_type) * 60

    @classmethod
    def from_dict(cls, raw: Any) -> TimerSettings:
        """Builds settings from a saved blob.

        Accepts camelCase blob keys or the field names; missing keys keep
        their defaults.
        """
        if not isinstance(raw, dict):
            return cls()
        values = {}
        for name, blob_key in BLOB_KEYS.items():
            if name in raw:
                values[name] = raw[name]
            elif blob_key in raw:
                values[name] = raw[blob_key]
        return cls(**values)

    def to_dict(self) -> dict[str, Any]:
        values = asdict(self)
        return {BLOB_KEYS[field.name]: values[field.name] for field in fields(self)}


class SettingsStore(QObject):
    """Reads and writes the single settings blob and announces changes."""

    settings_changed = pyqtSignal(object)

    def __init__(self, storage: Storage) -> None:
        super().__init__()
        self._storage = storage

    def load(self) -> TimerSettings:
        raw = self._storage.get_setting(SETTINGS_KEY)
        if raw is None:
            return TimerSettings()
        if not isinstance(raw, dict):
            logger.warning("Ignoring unparsable saved settings, using defaults")
            return TimerSettings()
        return TimerSettings.from_dict(raw)

    def save(self, settings: TimerSettings) -> None:
        self._storage.set_setting(SETTINGS_KEY, settings.to_dict())
        logger.info("Settings saved")
        self.settings_changed.emit(settings)

    def reset(self) -> TimerSettings:
        self._storage.delete_setting(SETTINGS_KEY)
        settings = TimerSettings()
        logger.info("Settings reset to defaults")
        self.settings_changed.emit(settings)
        return settings
