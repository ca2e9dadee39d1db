"""Database access: pooling, SQL text and the catalog seam."""

from ..config import DatabaseSettings, PoolSettings
from .catalog import Catalog, CatalogTransaction, MySQLCatalog
from .pool import MySQLConnectionPool


def open_catalog(settings: DatabaseSettings, pool_settings: PoolSettings,
                 name: str) -> MySQLCatalog:
    """Create a pooled MySQLCatalog for one configured database."""
    pool = MySQLConnectionPool(
        host=settings.host,
        port=settings.port,
        database=settings.database,
        user=settings.user,
        password=settings.password,
        charset=settings.charset,
        max_size=pool_settings.max_open,
        max_idle=pool_settings.max_idle,
        max_lifetime=pool_settings.max_lifetime,
        acquire_timeout=pool_settings.acquire_timeout,
        pool_name=name,
    )
    return MySQLCatalog(pool, name)


__all__ = [
    "Catalog",
    "CatalogTransaction",
    "MySQLCatalog",
    "MySQLConnectionPool",
    "open_catalog",
]
