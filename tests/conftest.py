"""
Pytest configuration and fixtures for kmetrics tests.
"""

from datetime import datetime, timezone
from unittest.mock import AsyncMock, Mock

import pytest

from kmetrics.config import KMetricsConfig
from kmetrics.telemetry.schemas import CollectionMode, WriteReport


@pytest.fixture
def fixed_time():
    """A fixed UTC timestamp for deterministic samples."""
    return datetime(2025, 1, 1, 12, 0, 0, tzinfo=timezone.utc)


@pytest.fixture
def mock_config():
    """Valid configuration in mock mode."""
    return KMetricsConfig.model_validate(
        {
            "influxdb": {"token": "test-token"},
            "collection": {"mode": CollectionMode.MOCK.value, "interval_seconds": 30},
        }
    )


@pytest.fixture
def mock_storage():
    """Storage backend double that accepts every batch."""
    storage = Mock()
    storage.bucket = "k8s"
    storage.connect = AsyncMock()
    storage.disconnect = AsyncMock()

    async def write_samples(samples):
        batch = list(samples)
        return WriteReport(attempted=len(batch), written=len(batch), failed=0)

    storage.write_samples = AsyncMock(side_effect=write_samples)
    storage.query_metrics = AsyncMock(return_value=[])
    return storage
