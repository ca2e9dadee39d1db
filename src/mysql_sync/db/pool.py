"""
Thread-safe MySQL connection pooling.

Connections are handed out through ``acquire()``; at most ``max_size``
connections are open at once, at most ``max_idle`` are kept when
returned, and any connection older than ``max_lifetime`` is recycled on
its next checkout.
"""

import logging
import threading
import time
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass, field
from queue import Empty, LifoQueue
from typing import Any

import pymysql
import pymysql.cursors
from opentelemetry import trace
from prometheus_client import Counter, Gauge, Histogram

from ..errors import DatabaseConnectionError
from ..utils.metrics import get_or_create_metric
from ..utils.tracing import trace_operation

logger = logging.getLogger(__name__)


CONNECTION_POOL_SIZE = get_or_create_metric(lambda: Gauge(
    "mysql_sync_pool_size",
    "Open connections in the pool",
    ["pool_name"],
), "mysql_sync_pool_size")

CONNECTION_POOL_IDLE = get_or_create_metric(lambda: Gauge(
    "mysql_sync_pool_idle",
    "Idle connections in the pool",
    ["pool_name"],
), "mysql_sync_pool_idle")

CONNECTION_POOL_ERRORS = get_or_create_metric(lambda: Counter(
    "mysql_sync_pool_errors_total",
    "Connection pool errors",
    ["pool_name", "error_type"],
), "mysql_sync_pool_errors_total")

CONNECTION_ACQUIRE_TIME = get_or_create_metric(lambda: Histogram(
    "mysql_sync_pool_acquire_seconds",
    "Time to acquire a connection from the pool",
    ["pool_name"],
    buckets=[0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0],
), "mysql_sync_pool_acquire_seconds")


@dataclass
class PooledConnection:
    """Wrapper for a pooled connection with metadata."""

    connection: Any
    created_at: float = field(default_factory=time.monotonic)
    last_used: float = field(default_factory=time.monotonic)
    use_count: int = 0

    def mark_used(self) -> None:
        self.last_used = time.monotonic()
        self.use_count += 1


class ConnectionPoolError(DatabaseConnectionError):
    """Base exception for connection pool errors."""

    pass


class PoolExhaustedError(ConnectionPoolError):
    """Raised when no connection frees up within the acquire timeout."""

    pass


class PoolClosedError(ConnectionPoolError):
    """Raised when attempting to use a closed pool."""

    pass


class BaseConnectionPool:
    """
    Base class for connection pools.

    Subclasses provide ``_create_connection``, ``_is_connection_healthy``
    and ``_close_connection``.
    """

    def __init__(
        self,
        max_size: int = 100,
        max_idle: int = 10,
        max_lifetime: int = 3600,
        acquire_timeout: float = 30.0,
        pool_name: str = "default",
    ):
        """
        Args:
            max_size: Maximum number of open connections
            max_idle: Maximum number of idle connections kept for reuse
            max_lifetime: Maximum connection lifetime in seconds
            acquire_timeout: Timeout for acquiring a connection in seconds
            pool_name: Name of the pool for logs and metrics
        """
        self.max_size = max_size
        self.max_idle = max_idle
        self.max_lifetime = max_lifetime
        self.acquire_timeout = acquire_timeout
        self.pool_name = pool_name

        self._idle: LifoQueue[PooledConnection] = LifoQueue()
        self._open_count = 0
        self._lock = threading.Lock()
        self._available = threading.Condition(self._lock)
        self._closed = False

        logger.info(
            f"Initialized {self.__class__.__name__} '{pool_name}' "
            f"(max_open={max_size}, max_idle={max_idle}, max_lifetime={max_lifetime}s)"
        )

    def _create_connection(self) -> Any:
        raise NotImplementedError

    def _is_connection_healthy(self, conn: Any) -> bool:
        raise NotImplementedError

    def _close_connection(self, conn: Any) -> None:
        raise NotImplementedError

    def _discard(self, pooled_conn: PooledConnection) -> None:
        try:
            self._close_connection(pooled_conn.connection)
        except Exception as e:
            logger.warning(f"Error closing connection in pool '{self.pool_name}': {e}")
        with self._available:
            self._open_count -= 1
            self._available.notify()
        self._update_metrics()

    def _is_usable(self, pooled_conn: PooledConnection) -> bool:
        if time.monotonic() - pooled_conn.created_at > self.max_lifetime:
            logger.debug("Connection exceeded max lifetime, recycling")
            return False
        return self._is_connection_healthy(pooled_conn.connection)

    def _checkout(self) -> PooledConnection:
        deadline = time.monotonic() + self.acquire_timeout
        while True:
            if self._closed:
                raise PoolClosedError(f"Connection pool '{self.pool_name}' is closed")

            try:
                pooled_conn = self._idle.get_nowait()
            except Empty:
                pooled_conn = None

            if pooled_conn is not None:
                if self._is_usable(pooled_conn):
                    return pooled_conn
                self._discard(pooled_conn)
                continue

            with self._available:
                if self._open_count < self.max_size:
                    self._open_count += 1
                    reserved = True
                else:
                    reserved = False
                    remaining = deadline - time.monotonic()
                    if remaining <= 0:
                        raise PoolExhaustedError(
                            f"No connection available in pool '{self.pool_name}' "
                            f"within {self.acquire_timeout}s"
                        )
                    self._available.wait(timeout=min(remaining, 0.5))

            if reserved:
                try:
                    return PooledConnection(connection=self._create_connection())
                except Exception:
                    with self._available:
                        self._open_count -= 1
                        self._available.notify()
                    CONNECTION_POOL_ERRORS.labels(
                        pool_name=self.pool_name, error_type="creation"
                    ).inc()
                    raise

    def _checkin(self, pooled_conn: PooledConnection) -> None:
        if self._closed or self._idle.qsize() >= self.max_idle:
            self._discard(pooled_conn)
            return
        self._idle.put(pooled_conn)
        with self._available:
            self._available.notify()
        self._update_metrics()

    def _update_metrics(self) -> None:
        CONNECTION_POOL_SIZE.labels(pool_name=self.pool_name).set(self._open_count)
        CONNECTION_POOL_IDLE.labels(pool_name=self.pool_name).set(self._idle.qsize())

    @contextmanager
    def acquire(self) -> Iterator[Any]:
        """
        Acquire a connection from the pool.

        Yields:
            Database connection

        Raises:
            PoolClosedError: If pool is closed
            PoolExhaustedError: If no connection is available within timeout
        """
        start_time = time.monotonic()
        with trace_operation(
            "db_pool_acquire", kind=trace.SpanKind.CLIENT, pool_name=self.pool_name
        ):
            pooled_conn = self._checkout()

        pooled_conn.mark_used()
        self._update_metrics()
        CONNECTION_ACQUIRE_TIME.labels(pool_name=self.pool_name).observe(
            time.monotonic() - start_time
        )

        try:
            yield pooled_conn.connection
        except BaseException:
            # State of a connection that failed mid-use is unknown
            self._discard(pooled_conn)
            raise
        else:
            self._checkin(pooled_conn)

    def close(self) -> None:
        """Close idle connections and refuse further checkouts."""
        if self._closed:
            return

        logger.info(f"Closing connection pool '{self.pool_name}'")
        self._closed = True
        while True:
            try:
                pooled_conn = self._idle.get_nowait()
            except Empty:
                break
            self._discard(pooled_conn)

    def get_stats(self) -> dict[str, Any]:
        """Get pool statistics."""
        with self._lock:
            idle = self._idle.qsize()
            return {
                "pool_name": self.pool_name,
                "total_connections": self._open_count,
                "idle_connections": idle,
                "active_connections": self._open_count - idle,
                "max_size": self.max_size,
                "max_idle": self.max_idle,
                "closed": self._closed,
            }


class MySQLConnectionPool(BaseConnectionPool):
    """Connection pool for MySQL-compatible servers using PyMySQL."""

    def __init__(
        self,
        host: str,
        port: int,
        database: str,
        user: str,
        password: str,
        charset: str = "utf8mb4",
        **kwargs: Any,
    ):
        self.host = host
        self.port = port
        self.database = database
        self.user = user
        self.password = password
        self.charset = charset

        super().__init__(**kwargs)

    def _create_connection(self) -> pymysql.connections.Connection:
        with trace_operation(
            "mysql_connect",
            kind=trace.SpanKind.CLIENT,
            db_host=self.host,
            db_name=self.database,
        ):
            try:
                return pymysql.connect(
                    host=self.host,
                    port=self.port,
                    user=self.user,
                    password=self.password,
                    database=self.database,
                    charset=self.charset,
                    cursorclass=pymysql.cursors.DictCursor,
                    autocommit=True,
                    connect_timeout=10,
                    init_command="SET SESSION sql_mode = 'ALLOW_INVALID_DATES'",
                )
            except pymysql.MySQLError as e:
                raise DatabaseConnectionError(
                    f"Cannot connect to {self.user}@{self.host}:{self.port}/{self.database}: {e}"
                ) from e

    def _is_connection_healthy(self, conn: pymysql.connections.Connection) -> bool:
        if conn is None or not conn.open:
            return False
        try:
            conn.ping(reconnect=False)
            return True
        except pymysql.MySQLError:
            return False

    def _close_connection(self, conn: pymysql.connections.Connection) -> None:
        if conn is not None and conn.open:
            conn.close()
