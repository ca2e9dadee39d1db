"""
Paged row replication from a source table into a target table.

Each page is upserted inside one target transaction with foreign-key
checks off. A page that fails is retried as a whole: 3 attempts, 100ms
backoff doubling per attempt and capped at 2s.
"""

import logging
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from typing import Any

from ..config import TablePairConfig
from ..db.catalog import Catalog
from ..errors import MySQLSyncError, ReplicationError
from ..utils.logging import ContextLogger
from ..utils.metrics import SyncMetrics
from ..utils.retry import retry_with_backoff
from ..utils.tracing import add_span_event

logger = logging.getLogger(__name__)

PAGE_ATTEMPTS = 3
PAGE_RETRY_BASE_DELAY = 0.1
PAGE_RETRY_MAX_DELAY = 2.0


def page_count(total_rows: int, batch_size: int) -> int:
    """Number of pages needed for ``total_rows`` at ``batch_size`` rows per page."""
    if batch_size <= 0:
        raise ValueError("batch_size must be greater than 0")
    return (total_rows + batch_size - 1) // batch_size


@dataclass
class ReplicationResult:
    pages: int = 0
    rows_upserted: int = 0
    retries: int = 0
    floor: Any = None


class BatchReplicator:
    """
    Copy source rows into the target page by page

    Args:
        source: Source catalog
        target: Target catalog
        batch_size: Rows per page
        sync_mode: "full" reads every row; "incremental" reads rows newer
            than the target's current maximum update_time value
        metrics: Optional metrics sink
    """

    def __init__(
        self,
        source: Catalog,
        target: Catalog,
        batch_size: int,
        sync_mode: str = "full",
        metrics: SyncMetrics | None = None,
    ):
        self.source = source
        self.target = target
        self.batch_size = batch_size
        self.sync_mode = sync_mode
        self.metrics = metrics

    def replicate(self, pair: TablePairConfig, method: str) -> ReplicationResult:
        """
        Replicate one table pair

        Args:
            pair: Table pair being synced
            method: Detection method that actually ran; incremental reads
                only apply when it is update_time

        Raises:
            ReplicationError: If a read fails, or a page fails every attempt.
                Remaining pages are not attempted.
        """
        log = ContextLogger(__name__, source_table=pair.source, target_table=pair.target)
        result = ReplicationResult()

        try:
            total_rows = self.source.count_rows(pair.source)
            order_by = self.source.primary_key_column(pair.source)

            floor_column = None
            if self.sync_mode == "incremental" and method == "update_time":
                floor_column = pair.update_field
                # Computed once per run, rows updated mid-run wait for the next cycle
                result.floor = self.target.max_value(pair.target, floor_column)
        except MySQLSyncError as e:
            raise ReplicationError(f"Cannot prepare replication of {pair.source}: {e}") from e

        pages = page_count(total_rows, self.batch_size)
        log.info(
            f"Replicating {total_rows} rows in {pages} pages "
            f"(mode={self.sync_mode}, floor={result.floor})"
        )

        for page in range(pages):
            try:
                rows = self.source.fetch_page(
                    pair.source,
                    limit=self.batch_size,
                    offset=page * self.batch_size,
                    order_by=order_by,
                    floor_column=floor_column,
                    floor=result.floor,
                )
            except MySQLSyncError as e:
                raise ReplicationError(
                    f"Reading page {page + 1}/{pages} of {pair.source} failed: {e}"
                ) from e

            result.retries += self._apply_page(pair.target, rows)
            result.pages += 1
            result.rows_upserted += len(rows)
            log.info(f"Synced page {page + 1}/{pages} ({len(rows)} rows)")

        if self.metrics is not None:
            self.metrics.record_rows_upserted(pair.target, result.rows_upserted)
        return result

    def _apply_page(self, target_table: str, rows: Sequence[Mapping[str, Any]]) -> int:
        """Upsert one page, retrying it as a whole. Returns the retry count."""
        if not rows:
            return 0

        retries = 0

        def on_retry(attempt: int, error: Exception, delay: float) -> None:
            nonlocal retries
            retries += 1
            add_span_event("page_retry", table=target_table, attempt=attempt,
                           delay=delay, error=type(error).__name__)
            if self.metrics is not None:
                self.metrics.record_page_retry(target_table)

        @retry_with_backoff(
            max_retries=PAGE_ATTEMPTS - 1,
            base_delay=PAGE_RETRY_BASE_DELAY,
            max_delay=PAGE_RETRY_MAX_DELAY,
            jitter=False,
            on_retry=on_retry,
        )
        def upsert_page() -> None:
            with self.target.transaction(foreign_key_checks=False) as tx:
                for row in rows:
                    tx.upsert(target_table, row)

        try:
            upsert_page()
        except Exception as e:
            raise ReplicationError(
                f"batch sync into {target_table} failed after {PAGE_ATTEMPTS} attempts: {e}"
            ) from e
        return retries
