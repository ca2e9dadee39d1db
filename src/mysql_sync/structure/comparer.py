"""
Structure comparison runs between two databases.

Writes per-table or merged JSON/SQL plans, reports tables that exist
only in the target and verifies their CREATE TABLE statements.
"""

import logging
import os
from collections.abc import Callable
from datetime import datetime

from ..db.catalog import Catalog
from ..db.statements import quote_identifier
from ..errors import MySQLSyncError
from ..utils.metrics import SyncMetrics
from ..utils.tracing import trace_operation
from .differ import diff_tables
from .extractor import extract_table_snapshot
from .models import MergedSyncPlan, SyncPlan

logger = logging.getLogger(__name__)

FILE_TIMESTAMP_FORMAT = "%Y%m%d_%H%M%S"
VERIFY_TABLE_PREFIX = "__tmp_sync_check_"


class StructureComparer:
    """
    Compare table structures of a source and a target database

    Args:
        source: Catalog of the database holding the desired structure
        target: Catalog of the database to bring in line
        output_dir: Directory for generated JSON/SQL files
        clock: Returns the current time (used for file names and headers)
        metrics: Optional metrics sink for difference counts
    """

    def __init__(
        self,
        source: Catalog,
        target: Catalog,
        output_dir: str = ".",
        clock: Callable[[], datetime] = datetime.now,
        metrics: SyncMetrics | None = None,
    ):
        self.source = source
        self.target = target
        self.output_dir = output_dir
        self.clock = clock
        self.metrics = metrics

    def _path(self, filename: str) -> str:
        return os.path.join(self.output_dir, filename)

    def compare(self, table: str, source_table: str | None = None) -> SyncPlan:
        """
        Diff one table, taking fresh snapshots of both sides

        Args:
            table: Table name in the target (and in the source by default)
            source_table: Source table to read instead of ``table``

        Raises:
            TableNotFoundError: If either side has no such table
            CatalogQueryError: If a catalog query fails
        """
        with trace_operation("compare_table", table=table):
            source_snapshot = extract_table_snapshot(self.source, source_table or table)
            target_snapshot = extract_table_snapshot(self.target, table)
            differences = diff_tables(source_snapshot, target_snapshot, table)

        if self.metrics is not None:
            self.metrics.record_structure_differences(table, len(differences))
        return SyncPlan(table=table, differences=differences)

    def _save_plan(self, plan: SyncPlan, now: datetime) -> tuple[str, str]:
        stamp = now.strftime(FILE_TIMESTAMP_FORMAT)
        json_path = self._path(f"{plan.table}_{stamp}.json")
        sql_path = self._path(f"{plan.table}_{stamp}.sql")
        plan.save_json(json_path)
        plan.save_sql(sql_path, generated_at=now)
        logger.info(f"Table {plan.table}: sync plan saved to {json_path} and {sql_path}")
        return json_path, sql_path

    def compare_table(self, table: str) -> SyncPlan:
        """
        Compare one table and write its plan files when it differs

        Errors propagate; a single-table run has nothing to continue with.
        """
        plan = self.compare(table)
        if not plan.has_differences:
            logger.info(f"Table {table}: structures are identical, no files written")
            return plan

        self._save_plan(plan, self.clock())
        logger.info(f"Comparison completed: {len(plan.differences)} differences found")
        for number, difference in enumerate(plan.differences, start=1):
            logger.info(f"{number}. {difference.type.value}: {difference.description}")
        return plan

    def compare_all(self, merge_output: bool = False) -> list[SyncPlan]:
        """
        Compare every source table, then report target-only tables

        A table that fails to compare is logged and skipped. Identical
        tables produce no files. With ``merge_output`` every differing
        table goes into one ``merged_sync_<ts>`` pair of files.

        Returns:
            Plans of the tables that differ
        """
        plans = []
        for table in self.source.list_tables():
            try:
                plan = self.compare(table)
            except MySQLSyncError as e:
                logger.error(f"Table {table}: comparison failed: {e}")
                continue

            if not plan.has_differences:
                logger.info(f"Table {table}: structures are identical")
                continue

            logger.info(f"Table {table}: {len(plan.differences)} differences")
            if not merge_output:
                self._save_plan(plan, self.clock())
            plans.append(plan)

        if merge_output:
            self._save_merged(plans)

        self.report_extra_tables()
        return plans

    def _save_merged(self, plans: list[SyncPlan]) -> MergedSyncPlan | None:
        if not plans:
            logger.info("All table structures are identical, no files written")
            return None

        merged = MergedSyncPlan()
        for plan in plans:
            merged.add(plan)
        merged.status = "completed"

        now = self.clock()
        stamp = now.strftime(FILE_TIMESTAMP_FORMAT)
        json_path = self._path(f"merged_sync_{stamp}.json")
        sql_path = self._path(f"merged_sync_{stamp}.sql")
        merged.save_json(json_path)
        merged.save_sql(sql_path, generated_at=now)
        logger.info(
            f"Merged sync plan saved to {json_path} and {sql_path}: "
            f"{merged.total_tables} tables, {merged.total_differences} differences"
        )
        return merged

    def extra_tables(self) -> list[str]:
        """Tables present in the target but not in the source."""
        source_tables = set(self.source.list_tables())
        return [table for table in self.target.list_tables() if table not in source_tables]

    def report_extra_tables(self) -> list[str]:
        """
        Write CREATE TABLE scripts for target-only tables and verify them

        Returns:
            Paths of the written scripts
        """
        extra = self.extra_tables()
        if not extra:
            logger.info("Target has no tables missing from the source")
            return []

        logger.info(f"Tables only in target: {', '.join(extra)}")
        written = []
        for table in extra:
            try:
                create_sql = self.target.show_create_table(table)
            except MySQLSyncError as e:
                logger.error(f"Table {table}: cannot read CREATE TABLE: {e}")
                continue

            stamp = self.clock().strftime(FILE_TIMESTAMP_FORMAT)
            path = self._path(f"extra_{table}_create_{stamp}.sql")
            os.makedirs(os.path.dirname(path) or ".", exist_ok=True)
            with open(path, "w", encoding="utf-8") as f:
                f.write(create_sql + ";\n")
            logger.info(f"Table {table}: CREATE TABLE saved to {path}")
            written.append(path)

            try:
                self.verify_create_statement(table, create_sql)
            except MySQLSyncError as e:
                logger.error(f"Table {table}: verification of CREATE TABLE failed: {e}")
        return written

    def verify_create_statement(self, table: str, create_sql: str) -> bool:
        """
        Check that a CREATE TABLE statement reproduces the target table

        The statement is replayed in the source under a scratch name, the
        result compared against the target table, and the scratch table
        dropped again.

        Returns:
            True if the replayed table matches the target exactly
        """
        scratch = VERIFY_TABLE_PREFIX + table
        scratch_sql = create_sql.replace(
            f"CREATE TABLE {quote_identifier(table)}",
            f"CREATE TABLE {quote_identifier(scratch)}",
            1,
        )

        self.source.drop_table(scratch)
        try:
            self.source.execute(scratch_sql)
        except MySQLSyncError as e:
            logger.error(f"Table {table}: replaying CREATE TABLE in source failed: {e}")
            return False

        try:
            plan = self.compare(table, source_table=scratch)
        except MySQLSyncError as e:
            logger.error(f"Table {table}: comparing replayed table failed: {e}")
            return False
        finally:
            self.source.drop_table(scratch)

        if not plan.has_differences:
            logger.info(f"Table {table}: CREATE TABLE statement matches the target exactly")
            return True

        logger.warning(f"Table {table}: CREATE TABLE statement still differs from the target:")
        for number, difference in enumerate(plan.differences, start=1):
            logger.warning(f"{number}. {difference.type.value}: {difference.description}")
        return False
