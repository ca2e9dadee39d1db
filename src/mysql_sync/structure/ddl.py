"""
DDL templates for structural differences.

All identifiers are backtick-quoted. A default equal to the current-time
sentinel (``CURRENT_TIMESTAMP``, optionally with a precision) is rendered
bare; every other default is a quoted literal.
"""

import re

from ..db.statements import column_list, quote_identifier, quote_literal
from .models import ColumnSnapshot, IndexSnapshot, PrimaryKeySnapshot

CURRENT_TIMESTAMP_PATTERN = re.compile(r"^current_timestamp(\(\d*\))?$", re.IGNORECASE)
ON_UPDATE_PATTERN = re.compile(r"on update (current_timestamp(\(\d*\))?)", re.IGNORECASE)


def render_default(default: str) -> str:
    if CURRENT_TIMESTAMP_PATTERN.match(default.strip()):
        return default.strip().upper()
    return quote_literal(default)


def render_on_update(extra: str) -> str:
    """Current-time clause of an EXTRA value, keeping its fractional precision."""
    match = ON_UPDATE_PATTERN.search(extra)
    return match.group(1).upper() if match else "CURRENT_TIMESTAMP"


def column_definition(column: ColumnSnapshot, explicit_null: bool = False,
                      include_comment: bool = False) -> str:
    """
    Render ```name` TYPE [NOT NULL] [DEFAULT ..] [ON UPDATE ..] [AUTO_INCREMENT]``

    Args:
        column: Column to render
        explicit_null: Write ``NULL`` for nullable columns instead of nothing
        include_comment: Append ``COMMENT '...'`` when the column has one
    """
    parts = [quote_identifier(column.name), column.type]
    if not column.nullable:
        parts.append("NOT NULL")
    elif explicit_null:
        parts.append("NULL")
    if column.default is not None:
        parts.append(f"DEFAULT {render_default(column.default)}")
    if column.on_update:
        parts.append(f"ON UPDATE {render_on_update(column.extra)}")
    if column.auto_increment:
        parts.append("AUTO_INCREMENT")
    if include_comment and column.comment:
        parts.append(f"COMMENT {quote_literal(column.comment)}")
    return " ".join(parts)


def add_column(table: str, column: ColumnSnapshot) -> str:
    return f"ALTER TABLE {quote_identifier(table)} ADD COLUMN {column_definition(column)}"


def repair_add_column(table: str, column: ColumnSnapshot) -> str:
    """ADD COLUMN used by schema repair: explicit NULL and the column comment."""
    definition = column_definition(column, explicit_null=True, include_comment=True)
    return f"ALTER TABLE {quote_identifier(table)} ADD COLUMN {definition}"


def modify_column(table: str, column: ColumnSnapshot) -> str:
    return f"ALTER TABLE {quote_identifier(table)} MODIFY COLUMN {column_definition(column)}"


def drop_column(table: str, column_name: str) -> str:
    return f"ALTER TABLE {quote_identifier(table)} DROP COLUMN {quote_identifier(column_name)}"


def add_index(table: str, index: IndexSnapshot) -> str:
    index_type = (index.index_type or "").upper()
    if index_type in ("FULLTEXT", "SPATIAL"):
        kind = f"{index_type} INDEX"
    else:
        kind = "UNIQUE INDEX" if index.unique else "INDEX"
    sql = (
        f"CREATE {kind} {quote_identifier(index.name)} ON {quote_identifier(table)} "
        f"({column_list(index.columns)})"
    )
    if index_type in ("BTREE", "HASH"):
        sql += f" USING {index_type}"
    return sql


def drop_index(table: str, index_name: str) -> str:
    return f"DROP INDEX {quote_identifier(index_name)} ON {quote_identifier(table)}"


def add_primary_key(table: str, primary_key: PrimaryKeySnapshot) -> str:
    return (
        f"ALTER TABLE {quote_identifier(table)} "
        f"ADD PRIMARY KEY ({column_list(primary_key.columns)})"
    )


def drop_primary_key(table: str) -> str:
    return f"ALTER TABLE {quote_identifier(table)} DROP PRIMARY KEY"
