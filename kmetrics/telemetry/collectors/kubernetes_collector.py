"""
Kubernetes usage collector.

Reads the node and pod usage snapshots from metrics-server
(metrics.k8s.io/v1beta1) and maps them to samples: one per node and one
per container of every pod.
"""

import logging
from datetime import datetime, timezone
from decimal import ROUND_CEILING, Decimal
from typing import Any, Dict, List

from kubernetes.utils import parse_quantity

from kmetrics.cluster import KubernetesCluster
from kmetrics.errors import UpstreamFetchError
from kmetrics.telemetry.base import BaseCollector
from kmetrics.telemetry.schemas import Sample

logger = logging.getLogger(__name__)


def _ceil(value: Decimal) -> int:
    return int(value.to_integral_value(rounding=ROUND_CEILING))


def cpu_millicores(quantity: Any) -> int:
    """
    Convert a CPU quantity ("250m", "2", "12345678n") to millicores, rounding up.

    Raises:
        ValueError: If the quantity is malformed
    """
    return _ceil(parse_quantity(quantity or "0") * 1000)


def memory_bytes(quantity: Any) -> int:
    """
    Convert a memory quantity ("512Mi", "1Gi", "1000Ki") to bytes, rounding up.

    Raises:
        ValueError: If the quantity is malformed
    """
    return _ceil(parse_quantity(quantity or "0"))


class KubernetesMetricsCollector(BaseCollector[Sample]):
    """Collects node and container usage from the metrics API."""

    def __init__(self, cluster: KubernetesCluster, timeout_seconds: float = 30):
        """
        Args:
            cluster: Cluster facade used for the metrics API calls
            timeout_seconds: Budget for one full collection
        """
        super().__init__(name="KubernetesMetricsCollector", timeout_seconds=timeout_seconds)
        self.cluster = cluster

    async def collect(self) -> List[Sample]:
        """
        Fetch both usage snapshots and build the batch.

        Every sample of the batch carries the same timestamp.

        Raises:
            UpstreamFetchError: If either snapshot cannot be fetched or parsed
        """
        now = datetime.now(timezone.utc)

        try:
            nodes = await self.cluster.node_usage()
        except Exception as e:
            raise UpstreamFetchError(f"error getting node metrics: {e}") from e

        try:
            pods = await self.cluster.pod_usage()
        except Exception as e:
            raise UpstreamFetchError(f"error getting pod metrics: {e}") from e

        try:
            samples = [self._node_sample(item, now) for item in nodes]
            for item in pods:
                samples.extend(self._container_samples(item, now))
        except (KeyError, ValueError, TypeError) as e:
            raise UpstreamFetchError(f"malformed usage snapshot: {e}") from e

        logger.info(
            f"Collected {len(samples)} samples ({len(nodes)} nodes, {len(pods)} pods)"
        )
        return samples

    def _node_sample(self, item: Dict[str, Any], now: datetime) -> Sample:
        usage = item.get("usage") or {}
        return Sample.for_node(
            node=item["metadata"]["name"],
            cpu_millicores=cpu_millicores(usage.get("cpu")),
            memory_bytes=memory_bytes(usage.get("memory")),
            timestamp=now,
        )

    def _container_samples(self, item: Dict[str, Any], now: datetime) -> List[Sample]:
        metadata = item["metadata"]
        samples = []
        for container in item.get("containers") or []:
            usage = container.get("usage") or {}
            samples.append(
                Sample.for_container(
                    namespace=metadata["namespace"],
                    pod=metadata["name"],
                    container=container["name"],
                    cpu_millicores=cpu_millicores(usage.get("cpu")),
                    memory_bytes=memory_bytes(usage.get("memory")),
                    timestamp=now,
                )
            )
        return samples
