"""Unit tests for SyncService pipeline ordering, isolation and fan-out"""

import threading
from unittest.mock import Mock

import pytest

from fakes import T1, people_table
from mysql_sync.config import TablePairConfig
from mysql_sync.errors import DetectionError, SchemaRepairError
from mysql_sync.replication import ChangeDecision, ReplicationResult
from mysql_sync.service import SyncService, TaskStatus


class RecordingObserver:
    def __init__(self, name, journal):
        self.name = name
        self.journal = journal

    def on_sync_start(self, task):
        self.journal.append((self.name, "start", task.source_table))

    def on_sync_complete(self, task):
        self.journal.append((self.name, "complete", task.source_table))

    def on_sync_error(self, task, error):
        self.journal.append((self.name, "error", task.source_table))


def stub_stages(service, sync_needed=True, fail_at=None):
    """Replace the pipeline stages with mocks writing to a shared journal."""
    journal = []

    def stage(name, result):
        def run(*args, **kwargs):
            journal.append(name)
            if name == fail_at:
                raise SchemaRepairError(f"{name} failed")
            return result
        return run

    service.repairer = Mock(repair=Mock(side_effect=stage("repair", [])))
    service.detector = Mock(detect=Mock(side_effect=stage(
        "detect", ChangeDecision("checksum", sync_needed, 1, 2)
    )))
    service.replicator = Mock(replicate=Mock(side_effect=stage("replicate", ReplicationResult())))
    service.cleaner = Mock(clean=Mock(side_effect=stage("clean", 0)))
    return journal


@pytest.fixture
def service(make_context):
    service = SyncService(make_context())
    service.add_sync_task("orders", "orders")
    return service


class TestRegistry:

    def test_from_config_pairs(self, make_context):
        context = make_context(pairs=[TablePairConfig("a", "a_copy"), TablePairConfig("b", "b")])

        service = SyncService.from_config_pairs(context)

        assert [(t.source_table, t.target_table) for t in service.tasks()] == [
            ("a", "a_copy"), ("b", "b"),
        ]
        assert service.get_task("a").batch_size == 100

    def test_add_replaces_existing_task(self, service):
        service.add_sync_task("orders", "orders_v2")

        assert len(service.tasks()) == 1
        assert service.get_task("orders").target_table == "orders_v2"

    def test_unknown_task(self, service):
        assert service.get_task("missing") is None


class TestPipeline:

    def test_stages_run_in_order(self, service):
        journal = stub_stages(service)

        service.sync_table(service.get_task("orders"))

        assert journal == ["repair", "detect", "replicate", "clean"]
        assert service.get_task("orders").status == TaskStatus.COMPLETED

    def test_no_sync_needed_skips_replication(self, service):
        journal = stub_stages(service, sync_needed=False)

        service.sync_table(service.get_task("orders"))

        assert journal == ["repair", "detect"]
        assert service.get_task("orders").status == TaskStatus.COMPLETED

    @pytest.mark.parametrize("fail_at,expected", [
        ("repair", ["repair"]),
        ("detect", ["repair", "detect"]),
        ("replicate", ["repair", "detect", "replicate"]),
        ("clean", ["repair", "detect", "replicate", "clean"]),
    ])
    def test_first_failure_stops_the_pipeline(self, service, fail_at, expected):
        journal = stub_stages(service, fail_at=fail_at)

        service.sync_table(service.get_task("orders"))

        assert journal == expected
        snapshot = service.get_task("orders").snapshot()
        assert snapshot.status == TaskStatus.ERROR
        assert snapshot.error == f"{fail_at} failed"

    def test_unconfigured_task_uses_checksum_pair(self, service):
        stub_stages(service)

        service.sync_table(service.get_task("orders"))

        pair = service.detector.detect.call_args.args[0]
        assert pair == TablePairConfig("orders", "orders", check_method="checksum")

    def test_task_target_overrides_configured_pair(self, make_context):
        service = SyncService(make_context(pairs=[TablePairConfig("orders", "orders_a")]))
        service.add_sync_task("orders", "orders_b")
        stub_stages(service)

        service.sync_table(service.get_task("orders"))

        assert service.detector.detect.call_args.args[0].target == "orders_b"


class TestObserverNotification:

    def test_observers_called_in_registration_order(self, service):
        stub_stages(service)
        journal = []
        service.register_observer(RecordingObserver("first", journal))
        service.register_observer(RecordingObserver("second", journal))

        service.sync_table(service.get_task("orders"))

        assert journal == [
            ("first", "start", "orders"),
            ("second", "start", "orders"),
            ("first", "complete", "orders"),
            ("second", "complete", "orders"),
        ]

    def test_error_notification(self, service):
        stub_stages(service, fail_at="detect")
        journal = []
        service.register_observer(RecordingObserver("only", journal))

        service.sync_table(service.get_task("orders"))

        assert journal[-1] == ("only", "error", "orders")

    def test_observer_exception_propagates(self, service):
        stub_stages(service)
        observer = Mock()
        observer.on_sync_start.side_effect = RuntimeError("observer broke")
        service.register_observer(observer)

        with pytest.raises(RuntimeError, match="observer broke"):
            service.sync_table(service.get_task("orders"))


class TestSyncAll:

    def test_no_tasks(self, make_context):
        assert SyncService(make_context()).sync_all() == []

    def test_failure_is_isolated_per_task(self, service):
        service.add_sync_task("customers", "customers")

        def detect(pair):
            if pair.source == "orders":
                raise DetectionError("lock wait timeout")
            return ChangeDecision("checksum", False)

        stub_stages(service)
        service.detector.detect.side_effect = detect

        statuses = {s.source_table: s for s in service.sync_all()}

        assert statuses["orders"].status == TaskStatus.ERROR
        assert statuses["orders"].error == "lock wait timeout"
        assert statuses["customers"].status == TaskStatus.COMPLETED

    def test_tasks_run_concurrently(self, service):
        service.add_sync_task("customers", "customers")
        barrier = threading.Barrier(2, timeout=5)

        def repair(source_table, target_table):
            barrier.wait()
            return []

        stub_stages(service, sync_needed=False)
        service.repairer.repair.side_effect = repair

        statuses = service.sync_all()

        assert {s.status for s in statuses} == {TaskStatus.COMPLETED}

    def test_end_to_end_with_in_memory_catalogs(self, make_context, source_catalog,
                                                target_catalog):
        source_catalog.tables["people"] = people_table([
            {"id": 1, "name": "a", "updated_at": T1},
            {"id": 2, "name": "b", "updated_at": T1},
        ])
        target_catalog.tables["people"] = people_table([
            {"id": 9, "name": "gone", "updated_at": T1},
        ])
        service = SyncService(make_context())
        service.add_sync_task("people", "people")

        [status] = service.sync_all()

        assert status.status == TaskStatus.COMPLETED
        assert [row["id"] for row in target_catalog.rows("people")] == [1, 2]
