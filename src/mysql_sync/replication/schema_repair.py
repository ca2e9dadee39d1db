"""Additive schema repair run before every data sync."""

import logging

from ..db.catalog import Catalog
from ..errors import MySQLSyncError, SchemaRepairError, TableNotFoundError
from ..structure import ddl
from ..structure.extractor import column_from_row

logger = logging.getLogger(__name__)


class SchemaRepairer:
    """
    Add target columns that exist only in the source

    Only ever adds: target columns are never dropped, narrowed or
    reordered, and indexes and primary keys are left alone.
    """

    def __init__(self, source: Catalog, target: Catalog):
        self.source = source
        self.target = target

    def repair(self, source_table: str, target_table: str) -> list[str]:
        """
        Add every missing column to the target table

        Returns:
            Executed ALTER TABLE statements, in source column order

        Raises:
            SchemaRepairError: If a catalog read or an ALTER TABLE fails
        """
        try:
            source_rows = self.source.table_columns(source_table)
            if not source_rows:
                raise TableNotFoundError(source_table)
            target_columns = set(self.target.column_names(target_table))
        except MySQLSyncError as e:
            raise SchemaRepairError(
                f"Cannot read columns of {source_table} -> {target_table}: {e}"
            ) from e

        executed = []
        for row in source_rows:
            column = column_from_row(row)
            if column.name in target_columns:
                continue

            sql = ddl.repair_add_column(target_table, column)
            logger.info(f"{target_table}: adding missing column '{column.name}': {sql}")
            try:
                self.target.execute(sql)
            except MySQLSyncError as e:
                raise SchemaRepairError(
                    f"Failed to add column '{column.name}' to {target_table}: {e}"
                ) from e
            executed.append(sql)

        return executed
