import logging
import sqlite3
from datetime import datetime

from pomodoro.core.models import SessionRecord, SessionType
from pomodoro.core.recorder import SessionRecorder
from pomodoro.data.storage import Storage


class FailingStore:
    def __init__(self, fail_create: bool = True) -> None:
        self.fail_create = fail_create
        self.updates = []

    def create_session(self, session_type, duration_minutes, started_at):
        if self.fail_create:
            raise sqlite3.OperationalError("database is locked")
        return SessionRecord("abc", session_type, duration_minutes, started_at)

    def update_session(self, session_id, **fields):
        self.updates.append(session_id)
        raise sqlite3.OperationalError("disk I/O error")


def test_create_then_complete_persists(tmp_path) -> None:
    storage = Storage(tmp_path / "pomodoro.db")
    storage.init_db()
    recorder = SessionRecorder(storage)
    started = datetime(2026, 10, 19, 9, 0, 0)
    finished = datetime(2026, 10, 19, 9, 25, 0)

    pending = recorder.create_session(SessionType.WORK, 25, started)
    done = recorder.complete_session(pending, finished)
    recorder.close()

    assert done.result().is_completed is True
    rows = storage.list_sessions()
    assert len(rows) == 1
    assert rows[0].type == SessionType.WORK
    assert rows[0].duration_minutes == 25
    assert rows[0].started_at == started
    assert rows[0].completed_at == finished
    assert rows[0].is_completed is True


def test_abandoned_session_stays_incomplete(tmp_path) -> None:
    storage = Storage(tmp_path / "pomodoro.db")
    storage.init_db()
    recorder = SessionRecorder(storage)

    recorder.create_session(SessionType.SHORT_BREAK, 5, datetime(2026, 10, 19, 9, 0, 0))
    recorder.flush()

    rows = storage.list_sessions()
    assert rows[0].is_completed is False
    assert rows[0].completed_at is None
    recorder.close()


def test_failed_create_skips_completion(caplog) -> None:
    store = FailingStore(fail_create=True)
    recorder = SessionRecorder(store)

    with caplog.at_level(logging.WARNING):
        pending = recorder.create_session(SessionType.WORK, 25, datetime(2026, 10, 19, 9, 0, 0))
        done = recorder.complete_session(pending, datetime(2026, 10, 19, 9, 25, 0))
        recorder.close()

    assert done.result() is None
    assert store.updates == []
    assert "Failed to create session" in caplog.text
    assert "never created" in caplog.text


def test_failed_update_is_logged(caplog) -> None:
    store = FailingStore(fail_create=False)
    recorder = SessionRecorder(store)

    with caplog.at_level(logging.ERROR):
        pending = recorder.create_session(SessionType.WORK, 25, datetime(2026, 10, 19, 9, 0, 0))
        done = recorder.complete_session(pending, datetime(2026, 10, 19, 9, 25, 0))
        recorder.close()

    assert done.result() is None
    assert store.updates == ["abc"]
    assert "Failed to complete session abc" in caplog.text


class CrashingStore:
    def create_session(self, session_type, duration_minutes, started_at):
        return SessionRecord("abc", session_type, duration_minutes, started_at)

    def update_session(self, session_id, **fields):
        raise RuntimeError("worker crashed")


def test_unexpected_completion_error_is_logged(caplog) -> None:
    recorder = SessionRecorder(CrashingStore())

    with caplog.at_level(logging.ERROR):
        pending = recorder.create_session(SessionType.WORK, 25, datetime(2026, 10, 19, 9, 0, 0))
        done = recorder.complete_session(pending, datetime(2026, 10, 19, 9, 25, 0))
        recorder.close()

    assert isinstance(done.exception(), RuntimeError)
    assert "Failed to complete session: worker crashed" in caplog.text
