"""
Telemetry collector implementations.
"""

from kmetrics.telemetry.collectors.kubernetes_collector import KubernetesMetricsCollector
from kmetrics.telemetry.collectors.mock_collector import MockCluster, MockMetricsGenerator

__all__ = [
    "KubernetesMetricsCollector",
    "MockCluster",
    "MockMetricsGenerator",
]
