from __future__ import annotations

"""Entry point of the Pomodoro timer.

Wires storage, settings, the session recorder and the timer together inside
a Qt event loop, or prints the weekly report with `--stats`.
"""

import argparse
import logging
import signal
import sys
from pathlib import Path

from PyQt6.QtCore import QCoreApplication, QTimer

from pomodoro.core.models import SessionType
from pomodoro.core.notifications import DesktopNotifier
from pomodoro.core.recorder import SessionRecorder
from pomodoro.core.scheduler import QtTickScheduler
from pomodoro.core.settings import SettingsStore
from pomodoro.core.statistics import StatisticsReport, load_report
from pomodoro.core.timer import PomodoroTimer, TimerState
from pomodoro.data.storage import Storage


logger = logging.getLogger("pomodoro")

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def setup_logging(level: int = logging.INFO) -> None:
    logging.basicConfig(level=level, format=LOG_FORMAT)


def default_db_path() -> Path:
    """Default SQLite file in the current directory."""
    return Path.cwd() / "pomodoro.db"


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Pomodoro timer")
    parser.add_argument("--db", type=Path, default=None, metavar="PATH", help="SQLite database path")
    parser.add_argument("--stats", action="store_true", help="Print the weekly report and exit")
    parser.add_argument("--verbose", action="store_true", help="Debug logging")
    return parser.parse_args(argv)


def format_report(report: StatisticsReport) -> str:
    lines = [
        f"Total sessions: {report.total_sessions}",
        f"Focus hours: {report.total_focus_hours}h",
        f"Average sessions/day: {report.average_sessions_per_day}",
        f"Best day: {report.best_day.day_label}",
        "",
    ]
    for stat in report.days:
        lines.append(
            f"{stat.day_label:<10} {stat.session_count:>3} sessions"
            f"  {stat.focus_minutes:>4} focus min  {stat.break_minutes:>3} break min"
        )
    return "\n".join(lines)


def log_progress(state: TimerState) -> None:
    if state.is_running and state.remaining_seconds % 60 == 0:
        logger.info("%s %s remaining", state.current_type.value, state.formatted)


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)
    setup_logging(logging.DEBUG if args.verbose else logging.INFO)

    storage = Storage(args.db or default_db_path())
    storage.init_db()

    if args.stats:
        print(format_report(load_report(storage)))
        return 0

    app = QCoreApplication(sys.argv if argv is None else [sys.argv[0], *argv])
    signal.signal(signal.SIGINT, lambda *_: app.quit())
    # lets the interpreter see SIGINT while the event loop is idle
    wakeup = QTimer(app)
    wakeup.timeout.connect(lambda: None)
    wakeup.start(500)

    settings_store = SettingsStore(storage)
    recorder = SessionRecorder(storage)
    timer = PomodoroTimer(
        settings=settings_store.load(),
        recorder=recorder,
        notifier=DesktopNotifier(),
        scheduler=QtTickScheduler(app),
    )
    settings_store.settings_changed.connect(timer.apply_settings)
    timer.state_changed.connect(log_progress)
    timer.switch_type(SessionType.WORK)
    timer.start()

    try:
        return app.exec()
    finally:
        recorder.close()


if __name__ == "__main__":
    raise SystemExit(main())
