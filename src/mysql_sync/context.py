"""
Runtime context built once at startup.

Holds the configuration and the two catalogs every engine works against;
components receive it explicitly instead of reaching for globals.
"""

import logging
from dataclasses import dataclass, field

from .config import AppConfig
from .db import Catalog, open_catalog
from .errors import DatabaseConnectionError, MySQLSyncError
from .utils.metrics import SyncMetrics

logger = logging.getLogger(__name__)


@dataclass
class SyncContext:
    config: AppConfig
    source: Catalog
    target: Catalog
    metrics: SyncMetrics | None = field(default=None)

    @classmethod
    def from_config(cls, config: AppConfig, metrics: SyncMetrics | None = None) -> "SyncContext":
        """Open pooled catalogs for the configured source and target databases."""
        return cls(
            config=config,
            source=open_catalog(config.source, config.pool, "source"),
            target=open_catalog(config.target, config.pool, "target"),
            metrics=metrics,
        )

    def verify(self) -> None:
        """
        Check that both databases answer a trivial query

        Raises:
            DatabaseConnectionError: naming the side that failed
        """
        for catalog in (self.source, self.target):
            try:
                catalog.list_tables()
            except MySQLSyncError as e:
                raise DatabaseConnectionError(
                    f"Cannot reach {catalog.name} database: {e}"
                ) from e
            logger.info(f"Connected to {catalog.name} database")

    def close(self) -> None:
        for catalog in (self.source, self.target):
            pool = getattr(catalog, "pool", None)
            if pool is not None:
                pool.close()
