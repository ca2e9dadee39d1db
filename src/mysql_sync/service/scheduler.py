"""
APScheduler-based sync scheduler.

Runs ``SyncService.sync_all`` on a fixed interval. Ticks never overlap:
a slow tick delays the next one, and missed runs are coalesced.
"""

import logging
from datetime import datetime
from typing import Any

from apscheduler.schedulers.blocking import BlockingScheduler
from apscheduler.triggers.interval import IntervalTrigger

from .service import SyncService

logger = logging.getLogger(__name__)

SYNC_JOB_ID = "sync_all"


class SyncScheduler:
    """
    Interval scheduler for the sync service

    ``stop()`` shuts the scheduler down; a tick already running finishes
    first.
    """

    def __init__(self, service: SyncService, interval_seconds: int):
        self.service = service
        self.interval_seconds = interval_seconds
        self.scheduler = BlockingScheduler()

    def add_sync_job(self, run_immediately: bool = True) -> None:
        trigger = IntervalTrigger(seconds=self.interval_seconds)
        options: dict[str, Any] = {}
        if run_immediately:
            options["next_run_time"] = datetime.now()

        self.scheduler.add_job(
            self.service.sync_all,
            trigger=trigger,
            id=SYNC_JOB_ID,
            max_instances=1,
            coalesce=True,
            replace_existing=True,
            **options,
        )
        logger.info(f"Added sync job with {self.interval_seconds}s interval")

    def start(self, run_immediately: bool = True) -> None:
        """
        Start the scheduler

        Blocks the current thread until ``stop()`` or Ctrl+C.
        """
        self.add_sync_job(run_immediately=run_immediately)
        logger.info(f"Starting sync scheduler for {len(self.service.tasks())} task(s)")

        try:
            self.scheduler.start()
        except (KeyboardInterrupt, SystemExit):
            logger.info("Scheduler stopped by user")
            self.stop()

    def stop(self) -> None:
        """Stop the scheduler, waiting for an in-flight tick to finish."""
        if self.scheduler.running:
            self.scheduler.shutdown(wait=True)
        logger.info("Scheduler stopped")

    def run_once(self):
        """Run a single tick in the calling thread."""
        return self.service.sync_all()
