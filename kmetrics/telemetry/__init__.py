"""
kmetrics telemetry system.

Periodic usage collection for Kubernetes nodes and pod containers, stored
as InfluxDB 2.x points and read back with parameterized Flux queries.

Key Features:
- Type-safe samples with Pydantic models
- Live collection from metrics.k8s.io or a deterministic mock catalog
- Best-effort batch writes that never stop on a single bad point
- Bounded health probe for readiness checks

Usage:
    from kmetrics.config import KMetricsConfig
    from kmetrics.telemetry.service import MetricsService

    service = MetricsService(KMetricsConfig.load("/etc/kmetrics/config.yml"))
    await service.run()
"""

from kmetrics.telemetry.collectors import (
    KubernetesMetricsCollector,
    MockCluster,
    MockMetricsGenerator,
)
from kmetrics.telemetry.health import StoreHealthMonitor
from kmetrics.telemetry.query import FluxQuery, MetricsQueryBuilder
from kmetrics.telemetry.scheduler import CollectionScheduler
from kmetrics.telemetry.schemas import (
    CollectionMode,
    HealthStatus,
    MetricRecord,
    MetricsQuery,
    Sample,
    SampleScope,
    SchedulerState,
    WriteReport,
)
from kmetrics.telemetry.storage import InfluxStorageBackend

__all__ = [
    # Collection
    "KubernetesMetricsCollector",
    "MockMetricsGenerator",
    "MockCluster",
    "CollectionScheduler",
    # Storage and queries
    "InfluxStorageBackend",
    "MetricsQueryBuilder",
    "FluxQuery",
    "StoreHealthMonitor",
    # Schemas
    "Sample",
    "SampleScope",
    "CollectionMode",
    "MetricsQuery",
    "MetricRecord",
    "HealthStatus",
    "SchedulerState",
    "WriteReport",
]
