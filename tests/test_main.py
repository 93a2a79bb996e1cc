from datetime import date, datetime

from pomodoro.core.models import SessionType
from pomodoro.core.statistics import aggregate
from pomodoro.data.storage import Storage
from pomodoro.main import format_report, main, parse_args


def test_parse_args_defaults() -> None:
    args = parse_args([])
    assert args.db is None
    assert args.stats is False


def test_format_report_lists_each_day() -> None:
    text = format_report(aggregate([], today=date(2026, 10, 19)))
    assert "Total sessions: 0" in text
    assert "Best day: -" in text
    assert len(text.splitlines()) == 5 + 7


def test_stats_flag_prints_report(tmp_path, capsys) -> None:
    db = tmp_path / "pomodoro.db"
    storage = Storage(db)
    storage.init_db()
    now = datetime.now().replace(microsecond=0)
    record = storage.create_session(SessionType.WORK, 25, now)
    storage.update_session(record.id, completed_at=now, is_completed=True)

    assert main(["--db", str(db), "--stats"]) == 0

    out = capsys.readouterr().out
    assert "Total sessions: 1" in out
