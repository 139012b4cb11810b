"""Pytest configuration and fixtures for quickkv tests."""

from __future__ import annotations

import tempfile
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Generator

import pytest
from prometheus_client import CollectorRegistry

from quickkv import QuickClient
from quickkv.infrastructure.config import QuickConfiguration
from quickkv.infrastructure.metrics import MetricsRegistry


class FakeClock:
    """Manually advanced clock for expiry tests."""

    def __init__(self, start: datetime | None = None) -> None:
        self.now = start or datetime(2024, 1, 1, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, delta: timedelta) -> None:
        self.now += delta


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Provide a temporary directory for tests."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def db_path(temp_dir: Path) -> Path:
    """Provide a database file path inside the temporary directory."""
    return temp_dir / "test.qkv"


@pytest.fixture
def test_config(db_path: Path) -> QuickConfiguration:
    """Provide a test configuration pointing at a temporary file."""
    return QuickConfiguration(
        path=db_path,
        sync_mode="none",  # Faster for tests
    )


@pytest.fixture
def metrics_registry() -> MetricsRegistry:
    """Provide a fresh metrics registry for each test."""
    # Use a separate registry to avoid conflicts between tests
    registry = CollectorRegistry(auto_describe=True)
    return MetricsRegistry(registry=registry)


@pytest.fixture
def clock() -> FakeClock:
    """Provide a manually advanced clock."""
    return FakeClock()


@pytest.fixture
def client(
    test_config: QuickConfiguration, metrics_registry: MetricsRegistry
) -> Generator[QuickClient, None, None]:
    """Provide an open client on a fresh database file."""
    c = QuickClient(test_config, metrics=metrics_registry)
    yield c
    c.close()


# Markers for test categories
def pytest_configure(config: pytest.Config) -> None:
    """Configure custom pytest markers."""
    config.addinivalue_line("markers", "unit: Unit tests (fast, isolated)")
    config.addinivalue_line("markers", "integration: Integration tests")
    config.addinivalue_line("markers", "slow: Slow tests")
