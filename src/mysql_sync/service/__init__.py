"""Sync service runtime: tasks, observers, fan-out and scheduling."""

from .observers import LogObserver, MetricsObserver, SyncObserver
from .scheduler import SyncScheduler
from .service import SyncService
from .tasks import SyncTask, TaskStatus, TaskStatusSnapshot

__all__ = [
    "LogObserver",
    "MetricsObserver",
    "SyncObserver",
    "SyncScheduler",
    "SyncService",
    "SyncTask",
    "TaskStatus",
    "TaskStatusSnapshot",
]
