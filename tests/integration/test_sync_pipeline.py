"""
Pipeline scenarios for the data sync service.

Run the full schema repair -> detection -> replication -> cleanup
pipeline against in-memory source and target catalogs.
"""

import pytest

from fakes import T0, T1, T2, column_row, people_table
from mysql_sync.config import TablePairConfig
from mysql_sync.service import SyncService, TaskStatus

pytestmark = pytest.mark.integration


def row(i, name, ts, **extra):
    return {"id": i, "name": name, "updated_at": ts, **extra}


@pytest.fixture
def run_sync(make_context):
    def run(batch_size=1, sync_mode="full"):
        service = SyncService(make_context(batch_size=batch_size, sync_mode=sync_mode))
        service.add_sync_task("t", "t")
        [status] = service.sync_all()
        return status
    return run


class TestSyncPipeline:

    def test_full_copy_into_empty_target(self, run_sync, source_catalog, target_catalog,
                                         registry):
        source_catalog.tables["t"] = people_table([row(1, "a", T1), row(2, "b", T2)])
        target_catalog.tables["t"] = people_table()

        status = run_sync(batch_size=1)

        assert status.status == TaskStatus.COMPLETED
        assert len(source_catalog.page_reads) == 2
        upserts = [event for event in target_catalog.events if event[0] == "upsert"]
        assert len(upserts) == 2
        assert target_catalog.rows("t") == source_catalog.rows("t")
        assert ("delete_absent", "t", 0) in target_catalog.events
        assert registry.get_sample_value(
            "mysql_sync_rows_upserted_total", {"table_name": "t"}
        ) == 2.0

    def test_row_missing_from_source_is_deleted(self, run_sync, source_catalog,
                                                target_catalog):
        source_catalog.tables["t"] = people_table([row(1, "a", T1), row(2, "b", T2)])
        target_catalog.tables["t"] = people_table([row(3, "c", T0)])

        status = run_sync(batch_size=1)

        assert status.status == TaskStatus.COMPLETED
        assert ("delete_absent", "t", 1) in target_catalog.events
        assert sorted(r["id"] for r in target_catalog.rows("t")) == [1, 2]

    def test_new_source_column_added_before_any_copy(self, run_sync, source_catalog,
                                                     target_catalog):
        email = column_row("email", "varchar(128)")
        source_catalog.tables["t"] = people_table(
            [row(1, "a", T1, email="a@example.com")], extra_columns=[email]
        )
        target_catalog.tables["t"] = people_table()

        status = run_sync()

        assert status.status == TaskStatus.COMPLETED
        kinds = [event[0] for event in target_catalog.events]
        alters = [e for e in target_catalog.events
                  if e[0] == "execute" and "ADD COLUMN" in e[1]]
        assert len(alters) == 1
        assert "`email` varchar(128)" in alters[0][1]
        assert kinds.index("execute") < kinds.index("upsert")
        assert target_catalog.rows("t")[0]["email"] == "a@example.com"

    def test_identical_tables_skip_replication(self, run_sync, source_catalog, target_catalog):
        rows = [row(1, "a", T1)]
        source_catalog.tables["t"] = people_table(rows)
        target_catalog.tables["t"] = people_table([dict(r) for r in rows])

        status = run_sync()

        assert status.status == TaskStatus.COMPLETED
        assert source_catalog.page_reads == []
        assert target_catalog.transactions == []

    def test_incremental_reads_only_newer_rows(self, run_sync, source_catalog, target_catalog,
                                               make_context):
        source_catalog.tables["t"] = people_table([row(1, "a", T0), row(2, "b", T2)])
        target_catalog.tables["t"] = people_table([row(1, "a", T0)])
        pair = TablePairConfig("t", "t", check_method="update_time", update_field="updated_at")
        service = SyncService(make_context(pairs=[pair], batch_size=10, sync_mode="incremental"))
        service.add_sync_task("t", "t")

        [status] = service.sync_all()

        assert status.status == TaskStatus.COMPLETED
        assert {read["floor"] for read in source_catalog.page_reads
                if read["floor_column"]} == {T0}
        assert [e[2]["id"] for e in target_catalog.events if e[0] == "upsert"] == [2]
        assert sorted(r["id"] for r in target_catalog.rows("t")) == [1, 2]
