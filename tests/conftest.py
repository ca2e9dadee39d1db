"""
Pytest configuration and shared fixtures for mysql-sync tests.
"""

from unittest.mock import patch

import pytest
from prometheus_client import CollectorRegistry

from fakes import InMemoryCatalog, make_config
from mysql_sync.context import SyncContext
from mysql_sync.utils.metrics import SyncMetrics


def pytest_configure(config: pytest.Config) -> None:
    """Configure pytest with custom markers."""
    config.addinivalue_line("markers", "integration: pipeline test against in-memory catalogs")
    config.addinivalue_line("markers", "slow: mark test as slow running")


@pytest.fixture
def no_sleep():
    """Patch time.sleep so retry backoff does not slow tests down."""
    with patch("time.sleep") as mock_sleep:
        yield mock_sleep


@pytest.fixture
def registry() -> CollectorRegistry:
    return CollectorRegistry()


@pytest.fixture
def metrics(registry) -> SyncMetrics:
    return SyncMetrics(registry=registry)


@pytest.fixture
def source_catalog() -> InMemoryCatalog:
    return InMemoryCatalog("source")


@pytest.fixture
def target_catalog() -> InMemoryCatalog:
    return InMemoryCatalog("target")


@pytest.fixture
def make_context(source_catalog, target_catalog, metrics):
    """Build a SyncContext over the in-memory source and target catalogs."""
    def factory(pairs=(), batch_size=100, sync_mode="full") -> SyncContext:
        return SyncContext(
            config=make_config(pairs, batch_size=batch_size, sync_mode=sync_mode),
            source=source_catalog,
            target=target_catalog,
            metrics=metrics,
        )
    return factory
