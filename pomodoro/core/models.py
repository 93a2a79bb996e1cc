from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum


class SessionType(str, Enum):
    WORK = "work"
    SHORT_BREAK = "shortBreak"
    LONG_BREAK = "longBreak"

    @property
    def is_break(self) -> bool:
        return self is not SessionType.WORK


SESSION_NAMES = {
    SessionType.WORK: "Work",
    SessionType.SHORT_BREAK: "Short Break",
    SessionType.LONG_BREAK: "Long Break",
}


@dataclass(frozen=True)
class SessionRecord:
    id: str
    type: SessionType
    duration_minutes: int
    started_at: datetime
    completed_at: datetime | None = None
    is_completed: bool = False


@dataclass(frozen=True)
class DailyStat:
    day_label: str
    session_count: int = 0
    focus_minutes: int = 0
    break_minutes: int = 0
