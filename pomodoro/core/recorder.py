from __future__ import annotations

import logging
from concurrent.futures import Executor, Future, ThreadPoolExecutor, wait
from datetime import datetime
from typing import Callable

from pomodoro.core.models import SessionRecord, SessionType
from pomodoro.data.storage import PERSISTENCE_ERRORS, Storage


logger = logging.getLogger(__name__)


def _failure_logger(action: str) -> Callable[[Future], None]:
    def log_failure(future: Future) -> None:
        if future.cancelled():
            return
        error = future.exception()
        if error is not None:
            logger.error("Failed to %s: %s", action, error, exc_info=error)

    return log_failure


class SessionRecorder:
    """Writes session records off the timer's thread.

    Calls run on a single worker, so a completion always sees the create
    that preceded it. Failures are logged and never reach the caller.
    """

    def __init__(self, store: Storage, executor: Executor | None = None) -> None:
        self._store = store
        self._owns_executor = executor is None
        self._executor = executor or ThreadPoolExecutor(max_workers=1, thread_name_prefix="session-recorder")
        self._pending: list[Future] = []

    def create_session(
        self,
        session_type: SessionType,
        duration_minutes: int,
        started_at: datetime,
    ) -> Future:
        future = self._submit(self._create, session_type, duration_minutes, started_at)
        future.add_done_callback(_failure_logger("create session"))
        return future

    def complete_session(self, pending: Future, completed_at: datetime) -> Future:
        future = self._submit(self._complete, pending, completed_at)
        future.add_done_callback(_failure_logger("complete session"))
        return future

    def flush(self, timeout: float | None = None) -> None:
        pending, self._pending = self._pending, []
        wait(pending, timeout=timeout)

    def close(self) -> None:
        self.flush()
        if self._owns_executor:
            self._executor.shutdown(wait=True)

    def _submit(self, fn, *args) -> Future:
        future = self._executor.submit(fn, *args)
        self._pending = [item for item in self._pending if not item.done()]
        self._pending.append(future)
        return future

    def _create(self, session_type: SessionType, duration_minutes: int, started_at: datetime) -> SessionRecord:
        record = self._store.create_session(session_type, duration_minutes, started_at)
        logger.debug("Created session %s (%s, %d min)", record.id, record.type.value, record.duration_minutes)
        return record

    def _complete(self, pending: Future, completed_at: datetime) -> SessionRecord | None:
        try:
            created = pending.result()
        except PERSISTENCE_ERRORS:
            logger.warning("Skipping completion: the session was never created")
            return None
        try:
            record = self._store.update_session(created.id, completed_at=completed_at, is_completed=True)
        except PERSISTENCE_ERRORS:
            logger.exception("Failed to complete session %s", created.id)
            return None
        logger.debug("Completed session %s", record.id)
        return record
