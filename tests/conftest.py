"""Pytest configuration and fixtures for dataorbit tests."""

from __future__ import annotations

import tempfile
from pathlib import Path
from typing import Any, Callable, Generator

import pytest
from prometheus_client import CollectorRegistry

from dataorbit import DataOrbit
from dataorbit.infrastructure.config import StoreConfig, load_config
from dataorbit.infrastructure.metrics import MetricsRegistry

TEST_KEY = "clave-super-secreta"


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Provide a temporary directory for tests."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def data_file(temp_dir: Path) -> Path:
    """Location of the encrypted data file."""
    return temp_dir / "data" / "store.db"


@pytest.fixture
def test_config(data_file: Path) -> StoreConfig:
    """Provide a store configuration with a users table."""
    return load_config(
        {
            "file": data_file,
            "encryptionKey": TEST_KEY,
            "tables": {
                "usuarios": {
                    "primaryKey": "id",
                    "unique": ["email"],
                    "schema": {
                        "nombre": {"type": "Text", "required": True},
                        "email": {"type": "Text", "required": True},
                        "edad": {"type": "Number"},
                    },
                }
            },
        }
    )


@pytest.fixture
def collector_registry() -> CollectorRegistry:
    """Provide a private prometheus registry for each test."""
    return CollectorRegistry(auto_describe=True)


@pytest.fixture
def metrics_registry(collector_registry: CollectorRegistry) -> MetricsRegistry:
    """Provide a fresh metrics registry for each test."""
    # Use a separate registry to avoid conflicts between tests
    return MetricsRegistry(registry=collector_registry)


@pytest.fixture
def make_store(
    test_config: StoreConfig, metrics_registry: MetricsRegistry
) -> Generator[Callable[..., DataOrbit], None, None]:
    """Factory opening stores on the test file; every store is closed afterwards."""
    opened: list[DataOrbit] = []

    def factory(config: StoreConfig | dict[str, Any] | None = None, **overrides: Any) -> DataOrbit:
        store = DataOrbit(config or test_config, metrics=metrics_registry, **overrides)
        opened.append(store)
        return store

    yield factory
    for store in opened:
        store.close()


@pytest.fixture
def store(make_store: Callable[..., DataOrbit]) -> DataOrbit:
    """Provide an open store on an empty data file."""
    return make_store()


# Markers for test categories
def pytest_configure(config: pytest.Config) -> None:
    """Configure custom pytest markers."""
    config.addinivalue_line("markers", "unit: Unit tests (fast, isolated)")
    config.addinivalue_line("markers", "integration: Integration tests")
    config.addinivalue_line("markers", "slow: Slow tests")
