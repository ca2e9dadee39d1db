"""Shared infrastructure: retry, logging, tracing and metrics."""
