"""
Data sync service: task registry, per-table pipeline and tick fan-out.

Per task the stages run strictly in order:
schema repair -> change detection -> (if needed) replication -> drift cleanup.
The first failing stage records the error on the task and skips the rest;
other tasks are unaffected.
"""

import dataclasses
import logging
import threading
from concurrent.futures import ThreadPoolExecutor

from ..context import SyncContext
from ..replication import BatchReplicator, ChangeDetector, DriftCleaner, SchemaRepairer
from ..utils.tracing import add_span_attributes, trace_operation
from .observers import SyncObserver
from .tasks import SyncTask, TaskStatus, TaskStatusSnapshot

logger = logging.getLogger(__name__)


class SyncService:
    """
    Owns sync tasks and runs them against the context's catalogs

    Observers are called synchronously in registration order. An observer
    that raises is not isolated: the exception reaches the caller.
    """

    def __init__(self, context: SyncContext):
        self.context = context
        self.config = context.config

        self.repairer = SchemaRepairer(context.source, context.target)
        self.detector = ChangeDetector(context.source, context.target)
        self.replicator = BatchReplicator(
            context.source,
            context.target,
            batch_size=self.config.sync.batch_size,
            sync_mode=self.config.sync.sync_mode,
            metrics=context.metrics,
        )
        self.cleaner = DriftCleaner(context.source, context.target, metrics=context.metrics)

        self._tasks: dict[str, SyncTask] = {}
        self._observers: list[SyncObserver] = []
        self._lock = threading.RLock()

    @classmethod
    def from_config_pairs(cls, context: SyncContext) -> "SyncService":
        """Create a service with one task per configured table pair."""
        service = cls(context)
        for pair in context.config.sync.table_pairs:
            service.add_sync_task(pair.source, pair.target)
        return service

    def add_sync_task(self, source_table: str, target_table: str) -> SyncTask:
        """Register (or replace) the task for ``source_table``."""
        task = SyncTask(source_table, target_table, self.config.sync.batch_size)
        with self._lock:
            self._tasks[source_table] = task
        logger.info(f"Registered sync task {source_table} -> {target_table}")
        return task

    def register_observer(self, observer: SyncObserver) -> None:
        with self._lock:
            self._observers.append(observer)

    def get_task(self, source_table: str) -> SyncTask | None:
        with self._lock:
            return self._tasks.get(source_table)

    def tasks(self) -> list[SyncTask]:
        with self._lock:
            return list(self._tasks.values())

    def task_statuses(self) -> list[TaskStatusSnapshot]:
        return [task.snapshot() for task in self.tasks()]

    def _notify_start(self, task: SyncTask) -> None:
        for observer in list(self._observers):
            observer.on_sync_start(task)

    def _notify_complete(self, task: SyncTask) -> None:
        for observer in list(self._observers):
            observer.on_sync_complete(task)

    def _notify_error(self, task: SyncTask, error: Exception) -> None:
        for observer in list(self._observers):
            observer.on_sync_error(task, error)

    def _run_pipeline(self, task: SyncTask) -> None:
        pair = self.config.get_table_config(task.source_table)
        if pair.target != task.target_table:
            pair = dataclasses.replace(pair, target=task.target_table)

        added = self.repairer.repair(pair.source, pair.target)
        if added and self.context.metrics is not None:
            self.context.metrics.record_columns_added(pair.target, len(added))

        decision = self.detector.detect(pair)
        add_span_attributes(check_method=decision.method, sync_needed=decision.sync_needed)
        if not decision.sync_needed:
            logger.info(f"{pair.source} -> {pair.target}: already in sync")
            return

        result = self.replicator.replicate(pair, decision.method)
        deleted = self.cleaner.clean(pair.source, pair.target)
        add_span_attributes(pages=result.pages, rows_upserted=result.rows_upserted,
                            rows_deleted=deleted)

    def sync_table(self, task: SyncTask) -> None:
        """
        Run the full pipeline for one task

        Stage failures are recorded on the task and reported to observers;
        they are not raised.
        """
        self._notify_start(task)

        failure: Exception | None = None
        with trace_operation("sync_table", source_table=task.source_table,
                             target_table=task.target_table):
            try:
                self._run_pipeline(task)
            except Exception as e:
                logger.debug(f"{task.source_table}: pipeline failed", exc_info=True)
                failure = e

        if failure is None:
            task.mark_completed()
            self._notify_complete(task)
        else:
            task.mark_error(failure)
            self._notify_error(task, failure)

    def sync_all(self) -> list[TaskStatusSnapshot]:
        """
        Run every registered task concurrently and wait for all of them

        One worker thread per task. Returns the status of every task once
        the tick has finished.
        """
        tasks = self.tasks()
        if not tasks:
            logger.info("No sync tasks registered")
            return []

        logger.info(f"Sync tick started for {len(tasks)} task(s)")
        with ThreadPoolExecutor(max_workers=len(tasks), thread_name_prefix="sync") as executor:
            futures = [executor.submit(self.sync_table, task) for task in tasks]

        # Every worker has finished here; surfaces observer exceptions
        for future in futures:
            future.result()

        statuses = [task.snapshot() for task in tasks]
        failed = [status.source_table for status in statuses if status.status == TaskStatus.ERROR]
        logger.info(
            f"Sync tick finished: {len(statuses) - len(failed)} completed, "
            f"{len(failed)} failed{': ' + ', '.join(failed) if failed else ''}"
        )
        return statuses
