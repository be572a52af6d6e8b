"""
Kubernetes access for kmetrics.

Wraps the official client: configuration loading (kubeconfig file or
in-cluster service account), the metrics.k8s.io usage snapshots and the
namespace/pod listings served by the pass-through API. All calls are
blocking and are pushed to the default executor.
"""

import asyncio
import logging
from typing import Any, Dict, List, Optional, Protocol

from kubernetes import client, config

from kmetrics.errors import ConfigError
from kmetrics.telemetry.schemas import PodInfo

logger = logging.getLogger(__name__)

METRICS_GROUP = "metrics.k8s.io"
METRICS_VERSION = "v1beta1"


class ClusterSource(Protocol):
    """What the API layer needs for the namespace/pod pass-through endpoints."""

    async def list_namespaces(self) -> List[str]: ...

    async def list_pods(self, namespace: Optional[str] = None) -> List[PodInfo]: ...


def load_api_client(kubeconfig: Optional[str] = None) -> client.ApiClient:
    """
    Build an API client from a kubeconfig file or the in-cluster environment.

    Args:
        kubeconfig: Path to a kubeconfig file; in-cluster config is used when None

    Returns:
        Configured ApiClient

    Raises:
        ConfigError: If no usable configuration can be loaded
    """
    configuration = client.Configuration()
    try:
        if kubeconfig:
            config.load_kube_config(config_file=kubeconfig, client_configuration=configuration)
            logger.info(f"Loaded kubeconfig from {kubeconfig}")
        else:
            config.load_incluster_config(client_configuration=configuration)
            logger.info("Loaded in-cluster Kubernetes config")
    except (config.ConfigException, OSError) as e:
        raise ConfigError(f"Error getting Kubernetes config: {e}") from e

    return client.ApiClient(configuration)


class KubernetesCluster:
    """Thin async facade over the core and custom-objects APIs."""

    def __init__(self, api_client: client.ApiClient, request_timeout: Optional[float] = None):
        """
        Args:
            api_client: Configured Kubernetes ApiClient
            request_timeout: Per-request timeout in seconds for every API call
        """
        self._core = client.CoreV1Api(api_client)
        self._custom = client.CustomObjectsApi(api_client)
        self.request_timeout = request_timeout

    @classmethod
    def from_kubeconfig(
        cls, kubeconfig: Optional[str] = None, request_timeout: Optional[float] = None
    ) -> "KubernetesCluster":
        return cls(load_api_client(kubeconfig), request_timeout=request_timeout)

    async def _run(self, func, *args, **kwargs):
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, lambda: func(*args, **kwargs))

    def _timeout_kwargs(self) -> Dict[str, Any]:
        return {"_request_timeout": self.request_timeout} if self.request_timeout else {}

    async def node_usage(self) -> List[Dict[str, Any]]:
        """Current NodeMetrics items (cluster scoped)."""
        result = await self._run(
            self._custom.list_cluster_custom_object,
            METRICS_GROUP,
            METRICS_VERSION,
            "nodes",
            **self._timeout_kwargs(),
        )
        return result.get("items") or []

    async def pod_usage(self) -> List[Dict[str, Any]]:
        """Current PodMetrics items across all namespaces."""
        result = await self._run(
            self._custom.list_cluster_custom_object,
            METRICS_GROUP,
            METRICS_VERSION,
            "pods",
            **self._timeout_kwargs(),
        )
        return result.get("items") or []

    async def list_namespaces(self) -> List[str]:
        namespaces = await self._run(self._core.list_namespace, **self._timeout_kwargs())
        return [ns.metadata.name for ns in namespaces.items]

    async def list_pods(self, namespace: Optional[str] = None) -> List[PodInfo]:
        timeout = self._timeout_kwargs()
        if namespace:
            pods = await self._run(self._core.list_namespaced_pod, namespace, **timeout)
        else:
            pods = await self._run(self._core.list_pod_for_all_namespaces, **timeout)
        return [PodInfo(name=p.metadata.name, namespace=p.metadata.namespace) for p in pods.items]
