"""
Unit tests for mysql_sync.utils.logging

Covers JSON and console formatting, context binding and handler setup.
"""

import json
import logging
import sys

import pytest

from mysql_sync.utils.logging import (
    ConsoleFormatter,
    ContextLogger,
    JSONFormatter,
    setup_logging,
    shutdown_logging,
)


def make_record(msg="Page synced", level=logging.INFO, **extra):
    record = logging.LogRecord(
        name="mysql_sync.replication", level=level, pathname="replicator.py",
        lineno=10, msg=msg, args=(), exc_info=None,
    )
    for key, value in extra.items():
        setattr(record, key, value)
    return record


@pytest.fixture
def restore_root_logger():
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield root
    shutdown_logging()
    for handler in root.handlers[:]:
        if handler not in handlers:
            handler.close()
    root.handlers[:] = handlers
    root.setLevel(level)


class TestJSONFormatter:

    def test_basic_fields(self):
        data = json.loads(JSONFormatter(app_name="test-app").format(make_record()))

        assert data["level"] == "INFO"
        assert data["logger"] == "mysql_sync.replication"
        assert data["message"] == "Page synced"
        assert data["app"] == "test-app"
        assert "timestamp" in data
        assert data["source"]["line"] == 10

    def test_extra_fields_grouped_under_context(self):
        record = make_record(source_table="orders", page=2)

        data = json.loads(JSONFormatter().format(record))

        assert data["context"] == {"source_table": "orders", "page": 2}

    def test_without_timestamp_and_hostname(self):
        formatter = JSONFormatter(include_timestamp=False, include_hostname=False)

        data = json.loads(formatter.format(make_record()))

        assert "timestamp" not in data
        assert "hostname" not in data

    def test_exception_info(self):
        try:
            raise ValueError("bad page")
        except ValueError:
            record = make_record(level=logging.ERROR)
            record.exc_info = sys.exc_info()

        data = json.loads(JSONFormatter().format(record))

        assert data["exception"]["type"] == "ValueError"
        assert data["exception"]["message"] == "bad page"

    def test_non_serialisable_context_uses_str(self):
        data = json.loads(JSONFormatter().format(make_record(floor=object())))

        assert data["context"]["floor"].startswith("<object")


class TestConsoleFormatter:

    def test_appends_context_pairs(self):
        formatter = ConsoleFormatter(use_colors=False)

        line = formatter.format(make_record(source_table="orders", page=1))

        assert "[INFO] mysql_sync.replication: Page synced" in line
        assert line.endswith("[source_table=orders, page=1]")

    def test_level_name_restored_after_format(self):
        formatter = ConsoleFormatter(use_colors=True)
        formatter.use_colors = True
        record = make_record()

        formatter.format(record)

        assert record.levelname == "INFO"


class TestContextLogger:

    def test_bound_context_reaches_record(self, caplog):
        logger = ContextLogger("mysql_sync.test", source_table="orders")

        with caplog.at_level(logging.INFO, logger="mysql_sync.test"):
            logger.info("Synced page", page=3)

        record = caplog.records[-1]
        assert record.source_table == "orders"
        assert record.page == 3

    def test_bind_returns_new_logger(self):
        base = ContextLogger("mysql_sync.test", source_table="orders")

        bound = base.bind(target_table="orders_copy")

        assert bound.context == {"source_table": "orders", "target_table": "orders_copy"}
        assert base.context == {"source_table": "orders"}


class TestSetupLogging:

    def test_console_handler(self, restore_root_logger):
        [handler] = setup_logging(level="DEBUG")

        assert restore_root_logger.level == logging.DEBUG
        assert handler in restore_root_logger.handlers
        assert isinstance(handler.formatter, ConsoleFormatter)

    def test_unknown_level_falls_back_to_info(self, restore_root_logger):
        setup_logging(level="chatty")

        assert restore_root_logger.level == logging.INFO

    def test_json_file_handler(self, restore_root_logger, tmp_path):
        log_file = tmp_path / "logs" / "sync.log"

        [handler] = setup_logging(level="INFO", log_file=str(log_file), json_format=True,
                                  console_output=False)
        logging.getLogger("mysql_sync.test").info("hello")
        handler.flush()

        lines = log_file.read_text().splitlines()
        assert json.loads(lines[-1])["message"] == "hello"

    def test_plain_file_format(self, restore_root_logger, tmp_path):
        log_file = tmp_path / "sync.log"

        setup_logging(level="INFO", log_file=str(log_file), console_output=False)
        logging.getLogger("mysql_sync.test").warning("disk low")
        shutdown_logging()

        assert "[WARNING] mysql_sync.test: disk low" in log_file.read_text()

    def test_reconfiguring_replaces_installed_handlers(self, restore_root_logger):
        first = setup_logging(level="INFO")
        second = setup_logging(level="INFO", json_format=True)

        assert first[0] not in restore_root_logger.handlers
        assert second[0] in restore_root_logger.handlers
        assert isinstance(second[0].formatter, JSONFormatter)

    def test_shutdown_leaves_foreign_handlers(self, restore_root_logger):
        foreign = logging.NullHandler()
        restore_root_logger.addHandler(foreign)
        installed = setup_logging(level="INFO")

        shutdown_logging()

        assert foreign in restore_root_logger.handlers
        assert not any(handler in restore_root_logger.handlers for handler in installed)

    def test_noisy_loggers_quietened(self, restore_root_logger):
        setup_logging(level="DEBUG")

        assert logging.getLogger("apscheduler").level == logging.WARNING
