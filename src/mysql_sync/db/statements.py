"""
SQL text for catalog reads and data movement.

Every identifier goes through ``quote_identifier``; values are always
passed as driver parameters (``%s``) except where MySQL requires a
literal, which goes through ``quote_literal``.
"""

from collections.abc import Sequence

COLUMNS_QUERY = (
    "SELECT COLUMN_NAME, COLUMN_TYPE, IS_NULLABLE, COLUMN_KEY, COLUMN_DEFAULT, "
    "EXTRA, COLUMN_COMMENT "
    "FROM INFORMATION_SCHEMA.COLUMNS "
    "WHERE TABLE_SCHEMA = DATABASE() AND TABLE_NAME = %s "
    "ORDER BY ORDINAL_POSITION"
)

INDEXES_QUERY = (
    "SELECT INDEX_NAME, COLUMN_NAME, NON_UNIQUE, INDEX_TYPE "
    "FROM INFORMATION_SCHEMA.STATISTICS "
    "WHERE TABLE_SCHEMA = DATABASE() AND TABLE_NAME = %s "
    "ORDER BY INDEX_NAME, SEQ_IN_INDEX"
)

TABLES_QUERY = (
    "SELECT TABLE_NAME FROM INFORMATION_SCHEMA.TABLES "
    "WHERE TABLE_SCHEMA = DATABASE() AND TABLE_TYPE = 'BASE TABLE' "
    "ORDER BY TABLE_NAME"
)

PRIMARY_KEY_QUERY = (
    "SELECT COLUMN_NAME FROM INFORMATION_SCHEMA.COLUMNS "
    "WHERE TABLE_SCHEMA = DATABASE() AND TABLE_NAME = %s AND COLUMN_KEY = 'PRI' "
    "ORDER BY ORDINAL_POSITION LIMIT 1"
)

COLUMN_EXISTS_QUERY = (
    "SELECT COUNT(*) AS found FROM INFORMATION_SCHEMA.COLUMNS "
    "WHERE TABLE_SCHEMA = DATABASE() AND TABLE_NAME = %s AND COLUMN_NAME = %s"
)

DISABLE_FOREIGN_KEY_CHECKS = "SET FOREIGN_KEY_CHECKS = 0"
ENABLE_FOREIGN_KEY_CHECKS = "SET FOREIGN_KEY_CHECKS = 1"


def quote_identifier(name: str) -> str:
    """
    Quote a MySQL identifier with backticks

    Embedded backticks are doubled.

    Raises:
        ValueError: If the name is empty or contains a NUL byte
    """
    if not name or "\x00" in name:
        raise ValueError(f"Invalid SQL identifier: {name!r}")
    return "`" + name.replace("`", "``") + "`"


def quote_literal(value: str) -> str:
    """Render a string as a single-quoted MySQL literal."""
    escaped = str(value).replace("\\", "\\\\").replace("'", "\\'")
    return f"'{escaped}'"


def column_list(columns: Sequence[str]) -> str:
    return ", ".join(quote_identifier(column) for column in columns)


def count_sql(table: str) -> str:
    return f"SELECT COUNT(*) AS row_count FROM {quote_identifier(table)}"


def checksum_sql(table: str) -> str:
    return f"CHECKSUM TABLE {quote_identifier(table)}"


def max_value_sql(table: str, column: str) -> str:
    return (
        f"SELECT MAX({quote_identifier(column)}) AS max_value "
        f"FROM {quote_identifier(table)}"
    )


def show_create_table_sql(table: str) -> str:
    return f"SHOW CREATE TABLE {quote_identifier(table)}"


def drop_table_sql(table: str, temporary: bool = False) -> str:
    kind = "TEMPORARY TABLE" if temporary else "TABLE"
    return f"DROP {kind} IF EXISTS {quote_identifier(table)}"


def select_page_sql(
    table: str,
    order_by: str | None = None,
    floor_column: str | None = None,
) -> str:
    """
    Paged ``SELECT *``; parameters are ``[floor,] limit, offset``

    Args:
        table: Table to read
        order_by: Column giving pages a stable order (usually the primary key)
        floor_column: When set, only rows with ``floor_column > %s`` are read
    """
    sql = f"SELECT * FROM {quote_identifier(table)}"
    if floor_column:
        sql += f" WHERE {quote_identifier(floor_column)} > %s"
    if order_by:
        sql += f" ORDER BY {quote_identifier(order_by)}"
    return sql + " LIMIT %s OFFSET %s"


def upsert_sql(table: str, columns: Sequence[str]) -> str:
    """
    ``INSERT ... ON DUPLICATE KEY UPDATE`` overwriting every column

    Example:
        >>> upsert_sql("t", ["id", "name"])
        'INSERT INTO `t` (`id`, `name`) VALUES (%s, %s) ON DUPLICATE KEY UPDATE `id` = VALUES(`id`), `name` = VALUES(`name`)'
    """
    if not columns:
        raise ValueError("upsert needs at least one column")
    placeholders = ", ".join(["%s"] * len(columns))
    updates = ", ".join(
        f"{quote_identifier(column)} = VALUES({quote_identifier(column)})"
        for column in columns
    )
    return (
        f"INSERT INTO {quote_identifier(table)} ({column_list(columns)}) "
        f"VALUES ({placeholders}) ON DUPLICATE KEY UPDATE {updates}"
    )


def insert_sql(table: str, columns: Sequence[str]) -> str:
    placeholders = ", ".join(["%s"] * len(columns))
    return f"INSERT INTO {quote_identifier(table)} ({column_list(columns)}) VALUES ({placeholders})"


def create_temporary_like_sql(temp_table: str, template_table: str) -> str:
    return (
        f"CREATE TEMPORARY TABLE {quote_identifier(temp_table)} "
        f"LIKE {quote_identifier(template_table)}"
    )


def anti_join_delete_sql(target_table: str, reference_table: str, key_column: str) -> str:
    """
    Delete target rows whose key has no match in the reference table

    Example:
        >>> anti_join_delete_sql("t", "tmp", "id")
        'DELETE t1 FROM `t` t1 LEFT JOIN `tmp` t2 ON t1.`id` = t2.`id` WHERE t2.`id` IS NULL'
    """
    key = quote_identifier(key_column)
    return (
        f"DELETE t1 FROM {quote_identifier(target_table)} t1 "
        f"LEFT JOIN {quote_identifier(reference_table)} t2 ON t1.{key} = t2.{key} "
        f"WHERE t2.{key} IS NULL"
    )
