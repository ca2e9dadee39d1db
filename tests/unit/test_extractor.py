"""Unit tests for snapshot extraction"""

from unittest.mock import Mock

import pytest

from fakes import column_row, index_row
from mysql_sync.errors import TableNotFoundError
from mysql_sync.structure.extractor import extract_table_snapshot


class TestExtractTableSnapshot:

    def setup_method(self):
        self.catalog = Mock()
        self.catalog.name = "source"
        self.catalog.table_columns.return_value = [
            column_row("tenant_id", "int", nullable=False, key="PRI"),
            column_row("id", "bigint", nullable=False, key="PRI", extra="auto_increment"),
            column_row("email", "varchar(128)", key="UNI"),
            column_row("updated_at", "timestamp", nullable=False, default="CURRENT_TIMESTAMP",
                       extra="DEFAULT_GENERATED on update CURRENT_TIMESTAMP"),
        ]
        self.catalog.index_rows.return_value = [
            index_row("PRIMARY", "tenant_id", non_unique=0),
            index_row("PRIMARY", "id", non_unique=0),
            index_row("idx_tenant_updated", "tenant_id"),
            index_row("idx_tenant_updated", "updated_at"),
            index_row("uk_email", "email", non_unique=0),
        ]

    def test_columns_keep_ordinal_order(self):
        snapshot = extract_table_snapshot(self.catalog, "users")

        assert [column.name for column in snapshot.columns] == [
            "tenant_id", "id", "email", "updated_at"
        ]
        assert snapshot.columns[0].nullable is False
        assert snapshot.columns[2].nullable is True

    def test_on_update_flag_is_derived_from_extra(self):
        snapshot = extract_table_snapshot(self.catalog, "users")

        assert snapshot.column("updated_at").on_update is True
        assert snapshot.column("email").on_update is False

    def test_primary_key_from_key_columns_in_encounter_order(self):
        snapshot = extract_table_snapshot(self.catalog, "users")

        assert snapshot.primary_key.columns == ("tenant_id", "id")

    def test_indexes_grouped_without_primary(self):
        snapshot = extract_table_snapshot(self.catalog, "users")

        assert [index.name for index in snapshot.indexes] == ["idx_tenant_updated", "uk_email"]
        assert snapshot.index("idx_tenant_updated").columns == ("tenant_id", "updated_at")
        assert snapshot.index("idx_tenant_updated").unique is False
        assert snapshot.index("uk_email").unique is True

    def test_no_primary_key(self):
        self.catalog.table_columns.return_value = [column_row("name", "varchar(10)")]
        self.catalog.index_rows.return_value = []

        snapshot = extract_table_snapshot(self.catalog, "plain")

        assert snapshot.primary_key is None
        assert snapshot.indexes == ()

    def test_missing_table_raises_not_found(self):
        self.catalog.table_columns.return_value = []

        with pytest.raises(TableNotFoundError, match="missing"):
            extract_table_snapshot(self.catalog, "missing")

        self.catalog.index_rows.assert_not_called()

    def test_each_call_reads_catalog_again(self):
        extract_table_snapshot(self.catalog, "users")
        extract_table_snapshot(self.catalog, "users")

        assert self.catalog.table_columns.call_count == 2
