"""
Prometheus metrics for sync runs and structure comparisons.

Usage:
    from mysql_sync.utils.metrics import SyncMetrics, start_metrics_server

    start_metrics_server(port=28081)
    metrics = SyncMetrics()
    metrics.record_sync_run("orders", success=True, duration=3.2)
"""

import logging
import time
from typing import Callable, Optional, TypeVar

from prometheus_client import (
    REGISTRY,
    CollectorRegistry,
    Counter,
    Gauge,
    Histogram,
    start_http_server,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")


def get_or_create_metric(
    metric_factory: Callable[[], T],
    metric_name: str,
    registry: CollectorRegistry = REGISTRY,
) -> T:
    """
    Create a metric, or return the one already registered under that name.

    Example:
        RUNS = get_or_create_metric(
            lambda: Counter("runs_total", "Total runs", ["table_name"]),
            "runs_total",
        )
    """
    try:
        return metric_factory()
    except ValueError:
        existing = registry._names_to_collectors.get(metric_name)
        if existing is not None:
            return existing
        raise


def start_metrics_server(port: int, addr: str = "0.0.0.0",
                         registry: CollectorRegistry = REGISTRY) -> None:
    """Expose ``/metrics`` over HTTP on a daemon thread."""
    start_http_server(port, addr=addr, registry=registry)
    logger.info(f"Metrics server listening on {addr}:{port}")


class SyncMetrics:
    """
    Metrics for data sync and structure comparison

    Tracks task runs, rows moved, retries and structural drift.
    """

    def __init__(self, registry: Optional[CollectorRegistry] = None):
        """
        Args:
            registry: Custom Prometheus registry (default: global REGISTRY)
        """
        self.registry = registry or REGISTRY

        self.sync_runs_total = self._metric(lambda: Counter(
            "mysql_sync_runs_total",
            "Total number of table sync runs",
            ["table_name", "status"],
            registry=self.registry,
        ), "mysql_sync_runs_total")

        self.sync_duration_seconds = self._metric(lambda: Histogram(
            "mysql_sync_duration_seconds",
            "Duration of table sync runs in seconds",
            ["table_name"],
            buckets=(0.1, 0.5, 1, 5, 10, 30, 60, 120, 300, 600, 1800),
            registry=self.registry,
        ), "mysql_sync_duration_seconds")

        self.sync_last_run_timestamp = self._metric(lambda: Gauge(
            "mysql_sync_last_run_timestamp",
            "Timestamp of the last finished sync run",
            ["table_name"],
            registry=self.registry,
        ), "mysql_sync_last_run_timestamp")

        self.rows_upserted_total = self._metric(lambda: Counter(
            "mysql_sync_rows_upserted_total",
            "Rows written to the target by upsert",
            ["table_name"],
            registry=self.registry,
        ), "mysql_sync_rows_upserted_total")

        self.rows_deleted_total = self._metric(lambda: Counter(
            "mysql_sync_rows_deleted_total",
            "Target rows removed by drift cleanup",
            ["table_name"],
            registry=self.registry,
        ), "mysql_sync_rows_deleted_total")

        self.page_retries_total = self._metric(lambda: Counter(
            "mysql_sync_page_retries_total",
            "Page attempts that failed and were retried",
            ["table_name"],
            registry=self.registry,
        ), "mysql_sync_page_retries_total")

        self.columns_added_total = self._metric(lambda: Counter(
            "mysql_sync_columns_added_total",
            "Columns added to target tables by schema repair",
            ["table_name"],
            registry=self.registry,
        ), "mysql_sync_columns_added_total")

        self.structure_differences = self._metric(lambda: Gauge(
            "mysql_sync_structure_differences",
            "Structural differences found by the last comparison",
            ["table_name"],
            registry=self.registry,
        ), "mysql_sync_structure_differences")

    def _metric(self, factory: Callable[[], T], name: str) -> T:
        return get_or_create_metric(factory, name, self.registry)

    def record_sync_run(self, table_name: str, success: bool, duration: float) -> None:
        """Record a finished sync run."""
        status = "success" if success else "failed"
        self.sync_runs_total.labels(table_name=table_name, status=status).inc()
        self.sync_duration_seconds.labels(table_name=table_name).observe(duration)
        self.sync_last_run_timestamp.labels(table_name=table_name).set(time.time())

    def record_rows_upserted(self, table_name: str, count: int) -> None:
        self.rows_upserted_total.labels(table_name=table_name).inc(count)

    def record_rows_deleted(self, table_name: str, count: int) -> None:
        self.rows_deleted_total.labels(table_name=table_name).inc(count)

    def record_page_retry(self, table_name: str) -> None:
        self.page_retries_total.labels(table_name=table_name).inc()

    def record_columns_added(self, table_name: str, count: int) -> None:
        self.columns_added_total.labels(table_name=table_name).inc(count)

    def record_structure_differences(self, table_name: str, count: int) -> None:
        self.structure_differences.labels(table_name=table_name).set(count)
