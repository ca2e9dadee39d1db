"""Build TableSnapshot objects from a database catalog."""

import logging

from ..db.catalog import Catalog
from ..errors import TableNotFoundError
from .models import ColumnSnapshot, IndexSnapshot, PrimaryKeySnapshot, TableSnapshot

logger = logging.getLogger(__name__)

PRIMARY_INDEX_NAME = "PRIMARY"


def column_from_row(row: dict) -> ColumnSnapshot:
    """Build a ColumnSnapshot from an INFORMATION_SCHEMA.COLUMNS row."""
    return ColumnSnapshot(
        name=row["COLUMN_NAME"],
        type=row["COLUMN_TYPE"],
        nullable=str(row["IS_NULLABLE"]).upper() == "YES",
        key=row.get("COLUMN_KEY") or "",
        default=row.get("COLUMN_DEFAULT"),
        extra=row.get("EXTRA") or "",
        comment=row.get("COLUMN_COMMENT") or "",
    )


def _group_indexes(rows: list[dict]) -> tuple[IndexSnapshot, ...]:
    # Rows arrive ordered by (INDEX_NAME, SEQ_IN_INDEX)
    grouped: dict[str, dict] = {}
    for row in rows:
        name = row["INDEX_NAME"]
        if name == PRIMARY_INDEX_NAME:
            continue
        entry = grouped.setdefault(name, {
            "columns": [],
            "unique": int(row["NON_UNIQUE"]) == 0,
            "index_type": row.get("INDEX_TYPE") or "BTREE",
        })
        entry["columns"].append(row["COLUMN_NAME"])

    return tuple(
        IndexSnapshot(
            name=name,
            columns=tuple(entry["columns"]),
            unique=entry["unique"],
            index_type=entry["index_type"],
        )
        for name, entry in grouped.items()
    )


def extract_table_snapshot(catalog: Catalog, table_name: str) -> TableSnapshot:
    """
    Capture the current structure of one table

    Args:
        catalog: Catalog of the database holding the table
        table_name: Table to describe

    Returns:
        TableSnapshot with columns in ordinal order, indexes grouped in
        statistics order and the primary key built from PRI columns

    Raises:
        TableNotFoundError: If the table has no visible columns
    """
    columns = tuple(column_from_row(row) for row in catalog.table_columns(table_name))
    if not columns:
        raise TableNotFoundError(table_name)

    key_columns = tuple(column.name for column in columns if column.key == "PRI")
    primary_key = PrimaryKeySnapshot(columns=key_columns) if key_columns else None

    indexes = _group_indexes(catalog.index_rows(table_name))

    logger.debug(
        f"[{catalog.name}] {table_name}: {len(columns)} columns, {len(indexes)} indexes, "
        f"primary key {key_columns or 'none'}"
    )
    return TableSnapshot(
        name=table_name,
        columns=columns,
        indexes=indexes,
        primary_key=primary_key,
    )
