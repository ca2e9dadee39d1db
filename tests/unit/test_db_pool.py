"""
Unit tests for database connection pooling.

Tests checkout/checkin, recycling, limits, and the PyMySQL pool.
"""

import time
from threading import Thread
from unittest.mock import Mock, patch

import pymysql
import pytest

from mysql_sync.db.pool import (
    BaseConnectionPool,
    MySQLConnectionPool,
    PoolClosedError,
    PooledConnection,
    PoolExhaustedError,
)
from mysql_sync.errors import DatabaseConnectionError


class TestPooledConnection:
    """Test PooledConnection dataclass."""

    def test_mark_used_updates_timestamp(self):
        pooled = PooledConnection(connection=Mock(), last_used=time.monotonic() - 60)
        old_last_used = pooled.last_used

        pooled.mark_used()

        assert pooled.last_used > old_last_used
        assert pooled.use_count == 1


class MockConnectionPool(BaseConnectionPool):
    """Mock implementation of BaseConnectionPool for testing."""

    def __init__(self, **kwargs):
        self.connections_created = 0
        self.connections_closed = 0
        self.create_should_fail = False
        self.health_check_should_fail = False
        super().__init__(**kwargs)

    def _create_connection(self):
        if self.create_should_fail:
            raise DatabaseConnectionError("Connection creation failed")
        self.connections_created += 1
        return Mock(spec=["close"])

    def _is_connection_healthy(self, conn):
        return not self.health_check_should_fail

    def _close_connection(self, conn):
        self.connections_closed += 1
        conn.close()


class TestBaseConnectionPool:
    """Test BaseConnectionPool functionality."""

    def test_no_connections_opened_up_front(self):
        pool = MockConnectionPool(max_size=5)

        assert pool.connections_created == 0
        assert pool.get_stats()["total_connections"] == 0

    def test_acquire_reuses_connections(self):
        pool = MockConnectionPool(max_size=5)

        with pool.acquire() as first:
            pass
        with pool.acquire() as second:
            pass

        assert first is second
        assert pool.connections_created == 1

    def test_acquire_timeout_when_pool_exhausted(self):
        pool = MockConnectionPool(max_size=1, acquire_timeout=0.2)

        with pool.acquire():
            with pytest.raises(PoolExhaustedError):
                with pool.acquire():
                    pass

    def test_acquire_raises_error_when_pool_closed(self):
        pool = MockConnectionPool(max_size=1)
        pool.close()

        with pytest.raises(PoolClosedError):
            with pool.acquire():
                pass

    def test_connection_discarded_after_exception(self):
        pool = MockConnectionPool(max_size=2)

        with pytest.raises(RuntimeError):
            with pool.acquire():
                raise RuntimeError("query failed")

        assert pool.connections_closed == 1
        assert pool.get_stats()["total_connections"] == 0

    def test_unhealthy_connection_recycled(self):
        pool = MockConnectionPool(max_size=2)
        with pool.acquire():
            pass

        pool.health_check_should_fail = True
        with pool.acquire():
            pass

        assert pool.connections_created == 2
        assert pool.connections_closed == 1

    def test_max_lifetime_exceeded(self):
        pool = MockConnectionPool(max_size=2, max_lifetime=0)
        with pool.acquire():
            pass
        time.sleep(0.01)

        with pool.acquire():
            pass

        assert pool.connections_created == 2

    def test_max_idle_limits_kept_connections(self):
        pool = MockConnectionPool(max_size=3, max_idle=1)

        with pool.acquire():
            with pool.acquire():
                pass

        stats = pool.get_stats()
        assert stats["idle_connections"] == 1
        assert stats["total_connections"] == 1
        assert pool.connections_closed == 1

    def test_creation_failure_releases_slot(self):
        pool = MockConnectionPool(max_size=1, acquire_timeout=0.2)
        pool.create_should_fail = True

        with pytest.raises(DatabaseConnectionError):
            with pool.acquire():
                pass

        pool.create_should_fail = False
        with pool.acquire():
            pass

    def test_concurrent_access(self):
        pool = MockConnectionPool(max_size=3, acquire_timeout=5)
        errors = []

        def worker():
            try:
                for _ in range(20):
                    with pool.acquire():
                        time.sleep(0.001)
            except Exception as e:
                errors.append(e)

        threads = [Thread(target=worker) for _ in range(6)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert errors == []
        assert pool.connections_created <= 3

    def test_close_closes_idle_connections(self):
        pool = MockConnectionPool(max_size=2)
        with pool.acquire():
            pass

        pool.close()

        assert pool.connections_closed == 1
        assert pool.get_stats()["closed"] is True


class TestMySQLConnectionPool:
    """Test the PyMySQL-backed pool."""

    def make_pool(self):
        return MySQLConnectionPool(
            host="db", port=3306, database="shop", user="sync", password="secret",
            max_size=2, pool_name="source",
        )

    @patch("mysql_sync.db.pool.pymysql.connect")
    def test_create_connection(self, mock_connect):
        pool = self.make_pool()

        with pool.acquire() as conn:
            assert conn is mock_connect.return_value

        kwargs = mock_connect.call_args.kwargs
        assert kwargs["host"] == "db"
        assert kwargs["database"] == "shop"
        assert kwargs["charset"] == "utf8mb4"
        assert kwargs["cursorclass"] is pymysql.cursors.DictCursor
        assert kwargs["autocommit"] is True
        assert "ALLOW_INVALID_DATES" in kwargs["init_command"]

    @patch("mysql_sync.db.pool.pymysql.connect")
    def test_connect_failure_is_wrapped(self, mock_connect):
        mock_connect.side_effect = pymysql.err.OperationalError(2003, "Can't connect")

        with pytest.raises(DatabaseConnectionError, match="sync@db:3306/shop"):
            with self.make_pool().acquire():
                pass

    @patch("mysql_sync.db.pool.pymysql.connect")
    def test_health_check_pings(self, mock_connect):
        pool = self.make_pool()
        conn = Mock(open=True)

        assert pool._is_connection_healthy(conn) is True
        conn.ping.assert_called_once_with(reconnect=False)

        conn.ping.side_effect = pymysql.err.OperationalError(2006, "gone away")
        assert pool._is_connection_healthy(conn) is False

        assert pool._is_connection_healthy(Mock(open=False)) is False

    @patch("mysql_sync.db.pool.pymysql.connect")
    def test_close_connection(self, mock_connect):
        pool = self.make_pool()
        conn = Mock(open=True)

        pool._close_connection(conn)

        conn.close.assert_called_once()
