from __future__ import annotations

"""SQLite storage: the key/value settings table and the session records."""

import json
import sqlite3
import uuid
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from typing import Any, Iterator

from pomodoro.core.models import SessionRecord, SessionType


SCHEMA_VERSION = 1
UPDATABLE_FIELDS = {"completed_at", "is_completed"}
# what reading or writing a session can raise, including malformed stored rows
PERSISTENCE_ERRORS = (sqlite3.Error, OSError, KeyError, ValueError)


def _to_text(value: datetime | None) -> str | None:
    if value is None:
        return None
    return value.isoformat(timespec="seconds")


def _from_text(value: str | None) -> datetime | None:
    if not value:
        return None
    return datetime.fromisoformat(value)


class Storage:
    """Owns the SQLite file; every call opens its own short-lived connection."""

    def __init__(self, db_path: str | Path) -> None:
        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self.db_path)
        conn.row_factory = sqlite3.Row
        try:
            conn.execute("PRAGMA journal_mode = WAL;")
        except sqlite3.DatabaseError:
            pass
        return conn

    @contextmanager
    def _transaction(self) -> Iterator[sqlite3.Connection]:
        conn = self._connect()
        try:
            yield conn
            conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    def init_db(self) -> None:
        """Creates the tables on first run."""
        with self._transaction() as conn:
            conn.execute("CREATE TABLE IF NOT EXISTS schema_version (version INTEGER NOT NULL)")
            row = conn.execute("SELECT version FROM schema_version LIMIT 1").fetchone()
            if not row:
                conn.execute("INSERT INTO schema_version(version) VALUES (?)", (SCHEMA_VERSION,))
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS sessions(
                    id TEXT PRIMARY KEY,
                    type TEXT NOT NULL,
                    duration_minutes INTEGER NOT NULL CHECK(duration_minutes > 0),
                    started_at TEXT NOT NULL,
                    completed_at TEXT,
                    is_completed INTEGER NOT NULL DEFAULT 0 CHECK(is_completed IN (0, 1))
                )
                """
            )
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS settings(
                    key TEXT PRIMARY KEY,
                    value TEXT
                )
                """
            )

    def get_setting(self, key: str, default: Any = None) -> Any:
        with self._connect() as conn:
            row = conn.execute("SELECT value FROM settings WHERE key = ?", (key,)).fetchone()
        if not row:
            return default
        raw = row["value"]
        try:
            return json.loads(raw)
        except (TypeError, json.JSONDecodeError):
            return raw

    def set_setting(self, key: str, value: Any) -> None:
        payload = json.dumps(value)
        with self._transaction() as conn:
            conn.execute(
                "INSERT INTO settings(key, value) VALUES(?, ?) ON CONFLICT(key) DO UPDATE SET value=excluded.value",
                (key, payload),
            )

    def delete_setting(self, key: str) -> None:
        with self._transaction() as conn:
            conn.execute("DELETE FROM settings WHERE key = ?", (key,))

    def create_session(
        self,
        session_type: SessionType,
        duration_minutes: int,
        started_at: datetime,
    ) -> SessionRecord:
        record = SessionRecord(
            id=uuid.uuid4().hex,
            type=SessionType(session_type),
            duration_minutes=int(duration_minutes),
            started_at=started_at,
        )
        with self._transaction() as conn:
            conn.execute(
                """
                INSERT INTO sessions(id, type, duration_minutes, started_at, completed_at, is_completed)
                VALUES (?, ?, ?, ?, NULL, 0)
                """,
                (record.id, record.type.value, record.duration_minutes, _to_text(started_at)),
            )
        return record

    def update_session(self, session_id: str, **fields: Any) -> SessionRecord:
        """Applies a partial update; completed records are frozen."""
        unknown = set(fields) - UPDATABLE_FIELDS
        if unknown:
            raise ValueError(f"Cannot update session fields: {sorted(unknown)}")
        with self._transaction() as conn:
            row = conn.execute("SELECT * FROM sessions WHERE id = ?", (session_id,)).fetchone()
            if row is None:
                raise KeyError(session_id)
            if row["is_completed"]:
                raise ValueError(f"Session {session_id} is already completed")
            if "completed_at" in fields:
                conn.execute(
                    "UPDATE sessions SET completed_at = ? WHERE id = ?",
                    (_to_text(fields["completed_at"]), session_id),
                )
            if "is_completed" in fields:
                conn.execute(
                    "UPDATE sessions SET is_completed = ? WHERE id = ?",
                    (int(bool(fields["is_completed"])), session_id),
                )
            row = conn.execute("SELECT * FROM sessions WHERE id = ?", (session_id,)).fetchone()
        return self._row_to_record(row)

    def get_session(self, session_id: str) -> SessionRecord | None:
        with self._connect() as conn:
            row = conn.execute("SELECT * FROM sessions WHERE id = ?", (session_id,)).fetchone()
        return self._row_to_record(row) if row else None

    def list_sessions(self, limit: int = 100) -> list[SessionRecord]:
        """Returns the latest sessions, newest first."""
        with self._connect() as conn:
            rows = conn.execute(
                "SELECT * FROM sessions ORDER BY datetime(started_at) DESC, rowid DESC LIMIT ?",
                (limit,),
            ).fetchall()
        return [self._row_to_record(row) for row in rows]

    @staticmethod
    def _row_to_record(row: sqlite3.Row) -> SessionRecord:
        return SessionRecord(
            id=row["id"],
            type=SessionType(row["type"]),
            duration_minutes=row["duration_minutes"],
            started_at=_from_text(row["started_at"]),
            completed_at=_from_text(row["completed_at"]),
            is_completed=bool(row["is_completed"]),
        )
