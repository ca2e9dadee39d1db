"""
Drift cleanup: delete target rows whose key no longer exists in the source.

Inside one target transaction with foreign-key checks off, current source
rows are copied into a temporary table shaped like the target, and target
rows without a match are removed with a LEFT JOIN anti-join.
"""

import logging
import time
from collections.abc import Callable

from ..db.catalog import Catalog
from ..errors import CleanupError, MySQLSyncError
from ..utils.logging import ContextLogger
from ..utils.metrics import SyncMetrics

logger = logging.getLogger(__name__)

FALLBACK_KEY_COLUMN = "id"


class DriftCleaner:
    """
    Remove target rows that are absent from the source

    Args:
        source: Source catalog
        target: Target catalog
        copy_batch_size: Source rows copied into the temporary table per read
        metrics: Optional metrics sink
        clock_ns: Nanosecond clock used to name the temporary table
    """

    def __init__(
        self,
        source: Catalog,
        target: Catalog,
        copy_batch_size: int = 1000,
        metrics: SyncMetrics | None = None,
        clock_ns: Callable[[], int] = time.time_ns,
    ):
        self.source = source
        self.target = target
        self.copy_batch_size = copy_batch_size
        self.metrics = metrics
        self.clock_ns = clock_ns

    def resolve_key_column(self, target_table: str) -> str:
        key_column = self.target.primary_key_column(target_table)
        if key_column:
            return key_column
        # TODO: make a missing primary key a hard error once every synced table declares one
        logger.warning(
            f"{target_table}: no primary key found, assuming column "
            f"'{FALLBACK_KEY_COLUMN}' for drift cleanup"
        )
        return FALLBACK_KEY_COLUMN

    def clean(self, source_table: str, target_table: str) -> int:
        """
        Delete target rows missing from the source

        Returns:
            Number of deleted rows (0 when the target is empty)

        Raises:
            CleanupError: If any step fails; rows replicated earlier stay
        """
        log = ContextLogger(__name__, source_table=source_table, target_table=target_table)

        try:
            key_column = self.resolve_key_column(target_table)
            order_by = self.source.primary_key_column(source_table)

            with self.target.transaction(foreign_key_checks=False) as tx:
                if tx.count_rows(target_table) == 0:
                    log.info("Target table is empty, nothing to clean up")
                    return 0

                temp_table = f"temp_{target_table}_{self.clock_ns()}"
                tx.create_temporary_like(temp_table, target_table)

                copied = 0
                offset = 0
                while True:
                    rows = self.source.fetch_page(
                        source_table, limit=self.copy_batch_size, offset=offset,
                        order_by=order_by,
                    )
                    if not rows:
                        break
                    columns = list(rows[0].keys())
                    copied += tx.insert_rows(
                        temp_table, columns, [[row[column] for column in columns] for row in rows]
                    )
                    offset += len(rows)
                    if len(rows) < self.copy_batch_size:
                        break

                deleted = tx.delete_absent(target_table, temp_table, key_column)
                tx.drop_temporary(temp_table)
        except MySQLSyncError as e:
            raise CleanupError(f"Drift cleanup of {target_table} failed: {e}") from e

        log.info(f"Drift cleanup removed {deleted} rows ({copied} source rows compared)")
        if self.metrics is not None:
            self.metrics.record_rows_deleted(target_table, deleted)
        return deleted
