"""
Distributed tracing for sync runs and structure comparisons.

Usage:
    from mysql_sync.utils.tracing import initialize_tracing, trace_operation

    initialize_tracing(service_name="mysql-sync", otlp_endpoint="localhost:4317")

    with trace_operation("sync_table", source_table="orders"):
        ...
"""

from .context import add_span_attributes, add_span_event, trace_operation
from .tracer import get_tracer, initialize_tracing, shutdown_tracing

__all__ = [
    "initialize_tracing",
    "get_tracer",
    "shutdown_tracing",
    "trace_operation",
    "add_span_attributes",
    "add_span_event",
]
