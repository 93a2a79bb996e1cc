from __future__ import annotations

"""Per-day aggregates and summary metrics over stored session records."""

import logging
import math
from dataclasses import dataclass, field, replace
from datetime import date, datetime, timedelta
from typing import Iterable

from pomodoro.core.models import SESSION_NAMES, DailyStat, SessionRecord, SessionType
from pomodoro.data.storage import PERSISTENCE_ERRORS, Storage


logger = logging.getLogger(__name__)

DEFAULT_WINDOW_DAYS = 7
WEEKDAY_NAMES = ("Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday")
NO_BEST_DAY = DailyStat(day_label="-")


@dataclass(frozen=True)
class StatisticsReport:
    days: list[DailyStat] = field(default_factory=list)
    total_sessions: int = 0
    total_focus_hours: int = 0
    average_sessions_per_day: int = 0
    best_day: DailyStat = NO_BEST_DAY


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def day_label(day: date, window_days: int = DEFAULT_WINDOW_DAYS) -> str:
    name = WEEKDAY_NAMES[day.weekday()]
    if window_days <= len(WEEKDAY_NAMES):
        return name
    return f"{name[:3]} {day.month:02d}/{day.day:02d}"


def _local_date(moment: datetime) -> date:
    if moment.tzinfo is not None:
        moment = moment.astimezone()
    return moment.date()


def aggregate(
    records: Iterable[SessionRecord],
    today: date | None = None,
    days: int = DEFAULT_WINDOW_DAYS,
) -> StatisticsReport:
    """Buckets completed records into the trailing `days` days ending today.

    Incomplete records and records outside the window are ignored.
    """
    if days < 1:
        raise ValueError("days must be at least 1")
    today = today or date.today()
    window = [today - timedelta(days=offset) for offset in range(days - 1, -1, -1)]
    buckets = {day: DailyStat(day_label=day_label(day, days)) for day in window}

    for record in records:
        if not record.is_completed or record.completed_at is None:
            continue
        day = _local_date(record.completed_at)
        stat = buckets.get(day)
        if stat is None:
            continue
        if record.type == SessionType.WORK:
            stat = replace(stat, focus_minutes=stat.focus_minutes + record.duration_minutes)
        else:
            stat = replace(stat, break_minutes=stat.break_minutes + record.duration_minutes)
        buckets[day] = replace(stat, session_count=stat.session_count + 1)

    daily = [buckets[day] for day in window]
    total_sessions = sum(stat.session_count for stat in daily)
    if total_sessions == 0:
        return StatisticsReport(days=daily)

    best = daily[0]
    for stat in daily[1:]:
        if stat.session_count > best.session_count:
            best = stat
    return StatisticsReport(
        days=daily,
        total_sessions=total_sessions,
        total_focus_hours=round_half_up(sum(stat.focus_minutes for stat in daily) / 60),
        average_sessions_per_day=round_half_up(total_sessions / len(daily)),
        best_day=best,
    )


def recent_sessions(records: Iterable[SessionRecord], limit: int = 4) -> list[SessionRecord]:
    completed = [record for record in records if record.is_completed and record.completed_at is not None]
    completed.sort(key=lambda record: record.completed_at.timestamp(), reverse=True)
    return completed[:limit]


def describe_session(record: SessionRecord) -> str:
    return f"{SESSION_NAMES[record.type]} - {record.duration_minutes} min"


def load_report(
    storage: Storage,
    today: date | None = None,
    days: int = DEFAULT_WINDOW_DAYS,
    limit: int = 1000,
) -> StatisticsReport:
    """Pulls records from storage; a failed read counts as no data."""
    try:
        records = storage.list_sessions(limit=limit)
    except PERSISTENCE_ERRORS:
        logger.exception("Could not load sessions, showing empty statistics")
        records = []
    return aggregate(records, today=today, days=days)
