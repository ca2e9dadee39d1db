"""
CLI command implementations.

- compare: structure comparison between two named databases
- sync: periodic (or one-shot) data sync for the configured table pairs
"""

import argparse
import logging
import os

from ..config import load_config
from ..context import SyncContext
from ..db import open_catalog
from ..errors import MySQLSyncError
from ..service import LogObserver, MetricsObserver, SyncScheduler, SyncService, TaskStatus
from ..structure import StructureComparer
from ..utils.logging import setup_logging, shutdown_logging
from ..utils.metrics import SyncMetrics, start_metrics_server
from ..utils.tracing import initialize_tracing, shutdown_tracing

logger = logging.getLogger(__name__)


def _configure_logging(args: argparse.Namespace, config) -> None:
    setup_logging(
        level=args.log_level or config.log_level,
        log_file=config.log_file or None,
        json_format=args.log_json or config.log_json,
    )


def _configure_tracing() -> bool:
    """Initialize tracing when an exporter is configured in the environment."""
    if os.getenv("OTLP_ENDPOINT") or os.getenv("TRACE_CONSOLE", "").lower() == "true":
        initialize_tracing()
        return True
    return False


def cmd_compare(args: argparse.Namespace) -> int:
    """
    Compare table structures between two named databases

    Returns:
        Process exit code
    """
    try:
        config = load_config(args.config, validate=False)
        _configure_logging(args, config)
        source_settings = config.named_database(args.source)
        target_settings = config.named_database(args.target)
    except MySQLSyncError as e:
        logger.error(f"Configuration error: {e}")
        shutdown_logging()
        return 1

    tracing = _configure_tracing()
    source = open_catalog(source_settings, config.pool, args.source)
    target = open_catalog(target_settings, config.pool, args.target)
    comparer = StructureComparer(
        source,
        target,
        output_dir=args.output_dir or config.output_dir,
        metrics=SyncMetrics(),
    )

    logger.info(f"Starting table structure comparison: {args.source} -> {args.target}")
    try:
        if args.table:
            comparer.compare_table(args.table)
        else:
            comparer.compare_all(merge_output=args.merge_output or config.merge_output)
    except MySQLSyncError as e:
        logger.error(f"Comparison failed: {e}")
        return 1
    finally:
        source.pool.close()
        target.pool.close()
        if tracing:
            shutdown_tracing()
        shutdown_logging()
    return 0


def cmd_sync(args: argparse.Namespace) -> int:
    """
    Run the data sync scheduler, or a single tick with ``--once``

    Returns:
        Process exit code
    """
    try:
        config = load_config(args.config)
    except MySQLSyncError as e:
        logging.basicConfig(level=logging.INFO)
        logger.error(f"Configuration error: {e}")
        return 1
    _configure_logging(args, config)
    tracing = _configure_tracing()

    metrics = SyncMetrics()
    context = SyncContext.from_config(config, metrics=metrics)
    try:
        try:
            context.verify()
        except MySQLSyncError as e:
            logger.error(str(e))
            return 1

        if not args.no_metrics_server:
            start_metrics_server(config.server_port, addr=config.server_host)

        service = SyncService.from_config_pairs(context)
        service.register_observer(LogObserver())
        service.register_observer(MetricsObserver(metrics))

        scheduler = SyncScheduler(service, config.sync.interval)
        if args.once:
            statuses = scheduler.run_once()
            return 1 if any(status.status == TaskStatus.ERROR for status in statuses) else 0
        scheduler.start()
        return 0
    finally:
        context.close()
        if tracing:
            shutdown_tracing()
        shutdown_logging()
