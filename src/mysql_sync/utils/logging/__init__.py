"""
Structured logging for mysql-sync

Usage:
    from mysql_sync.utils.logging import setup_logging, ContextLogger

    setup_logging(level="INFO", json_format=True)

    logger = ContextLogger(__name__, source_table="orders", target_table="orders")
    logger.info("Page synced", page=1, pages=4)
"""

from .config import setup_logging, shutdown_logging
from .formatters import ConsoleFormatter, JSONFormatter
from .handlers import ContextLogger

__all__ = [
    "setup_logging",
    "shutdown_logging",
    "JSONFormatter",
    "ConsoleFormatter",
    "ContextLogger",
]
