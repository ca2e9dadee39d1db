"""
Sync tasks: immutable identity plus a lock-guarded status record.

The worker running a task is the only writer; status readers may call
``snapshot()`` from any thread.
"""

import threading
from dataclasses import dataclass
from datetime import UTC, datetime
from enum import Enum


class TaskStatus(str, Enum):
    READY = "ready"
    COMPLETED = "completed"
    ERROR = "error"


@dataclass(frozen=True)
class TaskStatusSnapshot:
    source_table: str
    target_table: str
    batch_size: int
    status: TaskStatus
    error: str | None
    last_sync_time: datetime | None

    def to_dict(self) -> dict:
        return {
            "source_table": self.source_table,
            "target_table": self.target_table,
            "batch_size": self.batch_size,
            "status": self.status.value,
            "error": self.error,
            "last_sync_time": self.last_sync_time.isoformat() if self.last_sync_time else None,
        }


class SyncTask:
    """One source/target table pair owned by the sync service."""

    def __init__(self, source_table: str, target_table: str, batch_size: int):
        self._source_table = source_table
        self._target_table = target_table
        self._batch_size = batch_size

        self._lock = threading.Lock()
        self._status = TaskStatus.READY
        self._error: Exception | None = None
        self._last_sync_time: datetime | None = None

    @property
    def source_table(self) -> str:
        return self._source_table

    @property
    def target_table(self) -> str:
        return self._target_table

    @property
    def batch_size(self) -> int:
        return self._batch_size

    @property
    def status(self) -> TaskStatus:
        with self._lock:
            return self._status

    @property
    def error(self) -> Exception | None:
        with self._lock:
            return self._error

    def mark_completed(self) -> None:
        with self._lock:
            self._status = TaskStatus.COMPLETED
            self._error = None
            self._last_sync_time = datetime.now(UTC)

    def mark_error(self, error: Exception) -> None:
        with self._lock:
            self._status = TaskStatus.ERROR
            self._error = error

    def snapshot(self) -> TaskStatusSnapshot:
        with self._lock:
            return TaskStatusSnapshot(
                source_table=self._source_table,
                target_table=self._target_table,
                batch_size=self._batch_size,
                status=self._status,
                error=str(self._error) if self._error is not None else None,
                last_sync_time=self._last_sync_time,
            )

    def __repr__(self) -> str:
        return f"SyncTask({self._source_table!r} -> {self._target_table!r})"
