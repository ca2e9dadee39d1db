"""
Logger wrapper that binds context to every line.

Usage:
    logger = ContextLogger(__name__, source_table="orders", target_table="orders_copy")
    logger.info("Page synced", page=2, pages=5)
"""

import logging


class ContextLogger:
    """Logger wrapper that merges bound context into ``extra``."""

    def __init__(self, name: str, **context):
        self.logger = logging.getLogger(name)
        self.context = context

    def bind(self, **context) -> "ContextLogger":
        """Return a new ContextLogger with additional bound context."""
        return ContextLogger(self.logger.name, **{**self.context, **context})

    def _log(self, level: int, msg: str, *args, exc_info=None, **kwargs) -> None:
        self.logger.log(level, msg, *args, exc_info=exc_info, extra={**self.context, **kwargs})

    def debug(self, msg: str, *args, **kwargs) -> None:
        self._log(logging.DEBUG, msg, *args, **kwargs)

    def info(self, msg: str, *args, **kwargs) -> None:
        self._log(logging.INFO, msg, *args, **kwargs)

    def warning(self, msg: str, *args, **kwargs) -> None:
        self._log(logging.WARNING, msg, *args, **kwargs)

    def error(self, msg: str, *args, exc_info=None, **kwargs) -> None:
        self._log(logging.ERROR, msg, *args, exc_info=exc_info, **kwargs)
