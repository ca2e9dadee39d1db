"""
Catalog access for one MySQL database.

``Catalog`` is the seam every engine talks to; ``MySQLCatalog`` implements
it on top of a ``MySQLConnectionPool``. Rows come back as dicts keyed by
column name in result-set order.
"""

import logging
from collections.abc import Iterator, Mapping, Sequence
from contextlib import AbstractContextManager, contextmanager
from typing import Any, Protocol

import pymysql

from ..errors import CatalogQueryError
from ..utils.retry import retry_database_operation
from . import statements
from .pool import BaseConnectionPool

logger = logging.getLogger(__name__)


class CatalogTransaction(Protocol):
    """Operations available inside one catalog transaction."""

    def upsert(self, table: str, row: Mapping[str, Any]) -> None: ...

    def count_rows(self, table: str) -> int: ...

    def create_temporary_like(self, temp_table: str, template_table: str) -> None: ...

    def insert_rows(self, table: str, columns: Sequence[str],
                    rows: Sequence[Sequence[Any]]) -> int: ...

    def delete_absent(self, target_table: str, reference_table: str, key_column: str) -> int: ...

    def drop_temporary(self, table: str) -> None: ...


class Catalog(Protocol):
    """Read and write access to one database, as used by both engines."""

    name: str

    def list_tables(self) -> list[str]: ...

    def table_columns(self, table: str) -> list[dict[str, Any]]: ...

    def index_rows(self, table: str) -> list[dict[str, Any]]: ...

    def column_names(self, table: str) -> list[str]: ...

    def has_column(self, table: str, column: str) -> bool: ...

    def primary_key_column(self, table: str) -> str | None: ...

    def count_rows(self, table: str) -> int: ...

    def checksum(self, table: str) -> int | None: ...

    def max_value(self, table: str, column: str) -> Any: ...

    def fetch_page(self, table: str, limit: int, offset: int, order_by: str | None = None,
                   floor_column: str | None = None, floor: Any = None) -> list[dict[str, Any]]: ...

    def show_create_table(self, table: str) -> str: ...

    def execute(self, sql: str, params: Sequence[Any] | None = None) -> int: ...

    def drop_table(self, table: str) -> None: ...

    def transaction(self, foreign_key_checks: bool = True) -> AbstractContextManager[CatalogTransaction]: ...


class MySQLTransaction:
    """CatalogTransaction bound to one open connection."""

    def __init__(self, connection: pymysql.connections.Connection):
        self._connection = connection

    def _execute(self, sql: str, params: Sequence[Any] | None = None) -> int:
        with self._connection.cursor() as cursor:
            return cursor.execute(sql, params)

    def upsert(self, table: str, row: Mapping[str, Any]) -> None:
        columns = list(row.keys())
        self._execute(statements.upsert_sql(table, columns), [row[column] for column in columns])

    def count_rows(self, table: str) -> int:
        with self._connection.cursor() as cursor:
            cursor.execute(statements.count_sql(table))
            return int(cursor.fetchone()["row_count"])

    def create_temporary_like(self, temp_table: str, template_table: str) -> None:
        self._execute(statements.create_temporary_like_sql(temp_table, template_table))

    def insert_rows(self, table: str, columns: Sequence[str],
                    rows: Sequence[Sequence[Any]]) -> int:
        if not rows:
            return 0
        with self._connection.cursor() as cursor:
            return cursor.executemany(statements.insert_sql(table, columns), rows)

    def delete_absent(self, target_table: str, reference_table: str, key_column: str) -> int:
        return self._execute(
            statements.anti_join_delete_sql(target_table, reference_table, key_column)
        )

    def drop_temporary(self, table: str) -> None:
        self._execute(statements.drop_table_sql(table, temporary=True))


class MySQLCatalog:
    """
    Catalog over a pooled MySQL database

    Args:
        pool: Connection pool for the database
        name: Label used in logs ("source", "target", or a configured name)
    """

    def __init__(self, pool: BaseConnectionPool, name: str):
        self.pool = pool
        self.name = name

    @retry_database_operation(max_retries=2, base_delay=0.5)
    def _fetch_all(self, sql: str, params: Sequence[Any] | None = None) -> list[dict[str, Any]]:
        with self.pool.acquire() as connection:
            with connection.cursor() as cursor:
                cursor.execute(sql, params)
                return list(cursor.fetchall())

    def query(self, sql: str, params: Sequence[Any] | None = None) -> list[dict[str, Any]]:
        """Run a read query and return every row."""
        try:
            return self._fetch_all(sql, params)
        except pymysql.MySQLError as e:
            raise CatalogQueryError(f"[{self.name}] query failed: {e}") from e

    def execute(self, sql: str, params: Sequence[Any] | None = None) -> int:
        """Run one statement in autocommit mode and return the affected row count."""
        try:
            with self.pool.acquire() as connection:
                with connection.cursor() as cursor:
                    return cursor.execute(sql, params)
        except pymysql.MySQLError as e:
            raise CatalogQueryError(f"[{self.name}] statement failed: {e}") from e

    def list_tables(self) -> list[str]:
        return [row["TABLE_NAME"] for row in self.query(statements.TABLES_QUERY)]

    def table_columns(self, table: str) -> list[dict[str, Any]]:
        return self.query(statements.COLUMNS_QUERY, [table])

    def index_rows(self, table: str) -> list[dict[str, Any]]:
        return self.query(statements.INDEXES_QUERY, [table])

    def column_names(self, table: str) -> list[str]:
        return [row["COLUMN_NAME"] for row in self.table_columns(table)]

    def has_column(self, table: str, column: str) -> bool:
        rows = self.query(statements.COLUMN_EXISTS_QUERY, [table, column])
        return bool(rows and int(rows[0]["found"]) > 0)

    def primary_key_column(self, table: str) -> str | None:
        rows = self.query(statements.PRIMARY_KEY_QUERY, [table])
        return rows[0]["COLUMN_NAME"] if rows else None

    def count_rows(self, table: str) -> int:
        return int(self.query(statements.count_sql(table))[0]["row_count"])

    def checksum(self, table: str) -> int | None:
        rows = self.query(statements.checksum_sql(table))
        return rows[0]["Checksum"] if rows else None

    def max_value(self, table: str, column: str) -> Any:
        rows = self.query(statements.max_value_sql(table, column))
        return rows[0]["max_value"] if rows else None

    def fetch_page(self, table: str, limit: int, offset: int, order_by: str | None = None,
                   floor_column: str | None = None, floor: Any = None) -> list[dict[str, Any]]:
        """
        Read one page of rows

        With ``floor_column`` set and a non-null ``floor``, only rows whose
        column value is strictly greater than the floor are read.
        """
        if floor_column and floor is not None:
            sql = statements.select_page_sql(table, order_by, floor_column)
            return self.query(sql, [floor, limit, offset])
        return self.query(statements.select_page_sql(table, order_by), [limit, offset])

    def show_create_table(self, table: str) -> str:
        rows = self.query(statements.show_create_table_sql(table))
        if not rows:
            raise CatalogQueryError(f"[{self.name}] SHOW CREATE TABLE returned nothing for {table}")
        return rows[0]["Create Table"]

    def drop_table(self, table: str) -> None:
        self.execute(statements.drop_table_sql(table))

    @contextmanager
    def transaction(self, foreign_key_checks: bool = True) -> Iterator[MySQLTransaction]:
        """
        Run a block inside one transaction on a single pooled connection

        Commits when the block completes and rolls back when it raises.
        With ``foreign_key_checks=False`` the session variable is switched
        off for the transaction and restored before the connection goes
        back to the pool. Failing to switch it off only logs a warning.

        Raises:
            CatalogQueryError: driver errors raised inside the block
        """
        with self.pool.acquire() as connection:
            if not foreign_key_checks:
                try:
                    with connection.cursor() as cursor:
                        cursor.execute(statements.DISABLE_FOREIGN_KEY_CHECKS)
                except pymysql.MySQLError as e:
                    logger.warning(f"[{self.name}] could not disable foreign key checks: {e}")

            try:
                connection.begin()
                yield MySQLTransaction(connection)
                connection.commit()
            except pymysql.MySQLError as e:
                connection.rollback()
                raise CatalogQueryError(f"[{self.name}] transaction failed: {e}") from e
            except Exception:
                connection.rollback()
                raise
            finally:
                if not foreign_key_checks:
                    self._restore_foreign_key_checks(connection)

    def _restore_foreign_key_checks(self, connection: Any) -> None:
        """Switch foreign key checks back on, closing the connection if that fails."""
        try:
            with connection.cursor() as cursor:
                cursor.execute(statements.ENABLE_FOREIGN_KEY_CHECKS)
        except pymysql.MySQLError as e:
            logger.warning(
                f"[{self.name}] could not restore foreign key checks, closing connection: {e}"
            )
            # A closed connection fails the pool's checkout health check
            try:
                if connection.open:
                    connection.close()
            except pymysql.MySQLError as close_error:
                logger.warning(f"[{self.name}] error closing connection: {close_error}")
