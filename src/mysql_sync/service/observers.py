"""Lifecycle observers notified by the sync service."""

import logging
import threading
import time
from typing import Protocol

from ..utils.metrics import SyncMetrics
from .tasks import SyncTask

logger = logging.getLogger(__name__)


class SyncObserver(Protocol):
    """Receives start, completion and error events for each task run."""

    def on_sync_start(self, task: SyncTask) -> None: ...

    def on_sync_complete(self, task: SyncTask) -> None: ...

    def on_sync_error(self, task: SyncTask, error: Exception) -> None: ...


class LogObserver:
    """Writes one log line per lifecycle event."""

    def on_sync_start(self, task: SyncTask) -> None:
        logger.info(f"Sync started: {task.source_table} -> {task.target_table}")

    def on_sync_complete(self, task: SyncTask) -> None:
        logger.info(f"Sync completed: {task.source_table} -> {task.target_table}")

    def on_sync_error(self, task: SyncTask, error: Exception) -> None:
        logger.error(
            f"Sync failed: {task.source_table} -> {task.target_table}: "
            f"{type(error).__name__}: {error}"
        )


class MetricsObserver:
    """Records run counts and durations in Prometheus."""

    def __init__(self, metrics: SyncMetrics):
        self.metrics = metrics
        self._started: dict[str, float] = {}
        self._lock = threading.Lock()

    def _elapsed(self, task: SyncTask) -> float:
        with self._lock:
            started = self._started.pop(task.source_table, None)
        return time.monotonic() - started if started is not None else 0.0

    def on_sync_start(self, task: SyncTask) -> None:
        with self._lock:
            self._started[task.source_table] = time.monotonic()

    def on_sync_complete(self, task: SyncTask) -> None:
        self.metrics.record_sync_run(task.source_table, success=True,
                                     duration=self._elapsed(task))

    def on_sync_error(self, task: SyncTask, error: Exception) -> None:
        self.metrics.record_sync_run(task.source_table, success=False,
                                     duration=self._elapsed(task))
