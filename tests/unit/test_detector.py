"""Unit tests for change detection strategies"""

import pytest

from fakes import T1, T2, InMemoryCatalog, people_table
from mysql_sync.config import TablePairConfig
from mysql_sync.errors import DetectionError
from mysql_sync.replication import ChangeDetector


def rows(*pairs):
    return [{"id": i, "name": f"n{i}", "updated_at": ts} for i, ts in pairs]


@pytest.fixture
def source():
    return InMemoryCatalog("source", {"t": people_table(rows((1, T1), (2, T2)))})


@pytest.fixture
def target():
    return InMemoryCatalog("target", {"t": people_table(rows((1, T1)))})


@pytest.fixture
def detector(source, target):
    return ChangeDetector(source, target)


class TestResolveMethod:

    def test_configured_method_kept(self, detector):
        pair = TablePairConfig("t", "t", check_method="count")
        assert detector.resolve_method(pair) == "count"

    def test_unknown_method_falls_back_to_checksum(self, detector):
        pair = TablePairConfig("t", "t", check_method="rowhash")
        assert detector.resolve_method(pair) == "checksum"

    def test_update_time_without_field_falls_back(self, detector):
        pair = TablePairConfig("t", "t", check_method="update_time")
        assert detector.resolve_method(pair) == "checksum"

    def test_update_time_with_missing_column_falls_back(self, detector, caplog):
        pair = TablePairConfig("t", "t", check_method="update_time", update_field="modified")

        assert detector.resolve_method(pair) == "checksum"
        assert "modified" in caplog.text

    def test_update_time_with_existing_column(self, detector):
        pair = TablePairConfig("t", "t", check_method="update_time", update_field="updated_at")
        assert detector.resolve_method(pair) == "update_time"


class TestDetect:

    def test_count_differs(self, detector):
        decision = detector.detect(TablePairConfig("t", "t", check_method="count"))

        assert decision.method == "count"
        assert decision.sync_needed is True
        assert (decision.source_value, decision.target_value) == (2, 1)

    def test_count_equal(self, detector, source, target):
        target.tables["t"]["rows"] = rows((1, T1), (5, T1))

        decision = detector.detect(TablePairConfig("t", "t", check_method="count"))

        assert decision.sync_needed is False

    def test_checksum_equal_tables(self, detector, source, target):
        target.tables["t"]["rows"] = rows((1, T1), (2, T2))

        decision = detector.detect(TablePairConfig("t", "t"))

        assert decision.method == "checksum"
        assert decision.sync_needed is False

    def test_checksum_differs(self, detector):
        assert detector.detect(TablePairConfig("t", "t")).sync_needed is True

    def test_update_time_compares_maxima(self, detector):
        pair = TablePairConfig("t", "t", check_method="update_time", update_field="updated_at")

        decision = detector.detect(pair)

        assert decision.method == "update_time"
        assert decision.source_value == T2
        assert decision.target_value == T1
        assert decision.sync_needed is True

    def test_fallback_is_reported_in_decision(self, detector):
        pair = TablePairConfig("t", "t", check_method="update_time", update_field="modified")

        assert detector.detect(pair).method == "checksum"

    def test_query_failure_raises_detection_error(self, detector, target):
        target.fail_queries.add("count_rows")

        with pytest.raises(DetectionError, match="t -> t"):
            detector.detect(TablePairConfig("t", "t", check_method="count"))

    def test_missing_checksum_raises(self, source, target):
        detector = ChangeDetector(source, target)

        with pytest.raises(DetectionError, match="CHECKSUM TABLE"):
            detector.detect(TablePairConfig("t", "missing"))
