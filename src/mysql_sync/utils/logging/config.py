"""
Logging configuration for mysql-sync.

The CLI installs one console handler and, when ``logging.file`` is set, a
rotating file handler. Only handlers installed here are replaced on
reconfiguration or removed by ``shutdown_logging``; handlers attached by
an embedding application are left alone.
"""

import logging
import logging.handlers
import os
import sys

from .formatters import ConsoleFormatter, JSONFormatter

NOISY_LOGGERS = ("apscheduler", "pymysql", "urllib3", "opentelemetry")

PLAIN_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

LOG_FILE_MAX_BYTES = 100 * 1024 * 1024
LOG_FILE_BACKUPS = 5

_installed: list[logging.Handler] = []


def _formatter(json_format: bool, to_file: bool) -> logging.Formatter:
    if json_format:
        return JSONFormatter(app_name="mysql-sync")
    if to_file:
        return logging.Formatter(fmt=PLAIN_FORMAT, datefmt=DATE_FORMAT)
    return ConsoleFormatter(use_colors=sys.stderr.isatty())


def _file_handler(log_file: str) -> logging.Handler:
    log_dir = os.path.dirname(log_file)
    if log_dir:
        os.makedirs(log_dir, exist_ok=True)
    return logging.handlers.RotatingFileHandler(
        filename=log_file,
        maxBytes=LOG_FILE_MAX_BYTES,
        backupCount=LOG_FILE_BACKUPS,
        encoding="utf-8",
    )


def setup_logging(
    level: str = "INFO",
    log_file: str | None = None,
    json_format: bool = False,
    console_output: bool = True,
) -> list[logging.Handler]:
    """
    Configure the root logger for a sync or compare run

    Calling it again replaces the handlers installed by the previous call.

    Args:
        level: Log level name; unknown names fall back to INFO
        log_file: Rotating log file path (None disables file logging)
        json_format: One JSON object per line instead of plain text
        console_output: Log to stderr

    Returns:
        The handlers that were installed
    """
    numeric_level = getattr(logging, level.upper(), logging.INFO)
    shutdown_logging()

    handlers: list[logging.Handler] = []
    if console_output:
        console = logging.StreamHandler(sys.stderr)
        console.setFormatter(_formatter(json_format, to_file=False))
        handlers.append(console)
    if log_file:
        file_handler = _file_handler(log_file)
        file_handler.setFormatter(_formatter(json_format, to_file=True))
        handlers.append(file_handler)

    root_logger = logging.getLogger()
    root_logger.setLevel(numeric_level)
    for handler in handlers:
        handler.setLevel(numeric_level)
        root_logger.addHandler(handler)
        _installed.append(handler)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(numeric_level, logging.WARNING))

    logging.getLogger(__name__).debug(
        f"Logging initialized: level={level}, file={log_file or 'none'}, json={json_format}"
    )
    return handlers


def shutdown_logging() -> None:
    """Flush, close and detach the handlers installed by setup_logging."""
    root_logger = logging.getLogger()
    while _installed:
        handler = _installed.pop()
        root_logger.removeHandler(handler)
        handler.flush()
        handler.close()
