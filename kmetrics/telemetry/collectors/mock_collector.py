"""
Synthetic telemetry for clusters that are not reachable.

Produces the same fixed catalog on every call so the write path, the store
schema and the query API can be smoke-tested without a live cluster.
"""

from datetime import datetime, timezone
from typing import List, Optional

from kmetrics.telemetry.schemas import PodInfo, Sample

GiB = 1024 * 1024 * 1024
MiB = 1024 * 1024

# (node, cpu millicores, memory bytes)
MOCK_NODES = (
    ("node-1", 500, 4 * GiB),
    ("node-2", 750, 6 * GiB),
    ("node-3", 300, 2 * GiB),
)

# (namespace, pod, container, cpu millicores, memory bytes)
MOCK_CONTAINERS = (
    ("default", "web-app-1", "web-container", 200, 512 * MiB),
    ("default", "web-app-1", "sidecar", 50, 128 * MiB),
    ("kube-system", "kube-dns-1", "dns", 100, 256 * MiB),
    ("monitoring", "prometheus-1", "prometheus", 300, 1 * GiB),
    ("database", "postgres-1", "postgres", 400, 2 * GiB),
)


class MockMetricsGenerator:
    """Deterministic stand-in for the Kubernetes collector."""

    name = "MockMetricsGenerator"

    def generate(self, timestamp: Optional[datetime] = None) -> List[Sample]:
        """
        Build the mock batch.

        Args:
            timestamp: Time shared by every sample; defaults to now (UTC)

        Returns:
            3 node samples followed by 5 pod container samples
        """
        now = timestamp or datetime.now(timezone.utc)

        samples = [
            Sample.for_node(node, cpu, memory, now) for node, cpu, memory in MOCK_NODES
        ]
        samples.extend(
            Sample.for_container(namespace, pod, container, cpu, memory, now)
            for namespace, pod, container, cpu, memory in MOCK_CONTAINERS
        )
        return samples


class MockCluster:
    """Namespace/pod listings matching the mock catalog."""

    async def list_namespaces(self) -> List[str]:
        return list(dict.fromkeys(ns for ns, *_ in MOCK_CONTAINERS))

    async def list_pods(self, namespace: Optional[str] = None) -> List[PodInfo]:
        pods = dict.fromkeys((ns, pod) for ns, pod, *_ in MOCK_CONTAINERS)
        return [
            PodInfo(name=pod, namespace=ns)
            for ns, pod in pods
            if not namespace or ns == namespace
        ]
