"""
Telemetry service that wires collection, storage and the HTTP API.

The service resolves the data source once (live cluster or mock catalog),
runs the collection scheduler as a background task and serves the API on
the same event loop until a shutdown signal arrives.
"""

import logging
from typing import Optional

from kmetrics.cluster import ClusterSource, KubernetesCluster
from kmetrics.config import KMetricsConfig
from kmetrics.telemetry.collectors import (
    KubernetesMetricsCollector,
    MockCluster,
    MockMetricsGenerator,
)
from kmetrics.telemetry.health import StoreHealthMonitor
from kmetrics.telemetry.query import MetricsQueryBuilder
from kmetrics.telemetry.scheduler import CollectionScheduler
from kmetrics.telemetry.schemas import CollectionMode
from kmetrics.telemetry.storage import InfluxStorageBackend

logger = logging.getLogger(__name__)


class MetricsService:
    """
    Main kmetrics service.

    This service:
    - Connects to the cluster (live mode) or uses the mock catalog
    - Runs the periodic collection loop
    - Writes samples to InfluxDB
    - Provides the components the HTTP API queries
    """

    def __init__(
        self,
        config: KMetricsConfig,
        cluster: Optional[ClusterSource] = None,
        storage: Optional[InfluxStorageBackend] = None,
        health_monitor: Optional[StoreHealthMonitor] = None,
    ):
        """
        Initialize the service.

        Args:
            config: Validated configuration
            cluster: Cluster access; built from config when None
            storage: Storage backend; built from config when None
            health_monitor: Store probe; built from config when None

        Raises:
            ConfigError: If live mode is selected and no cluster config can be loaded
        """
        self.config = config
        self.mode = config.collection.mode

        if cluster is None:
            if self.mode == CollectionMode.MOCK:
                cluster = MockCluster()
            else:
                cluster = KubernetesCluster.from_kubeconfig(
                    config.kubernetes.kubeconfig,
                    request_timeout=config.collection.timeout_seconds,
                )
        self.cluster = cluster

        self.storage = storage or InfluxStorageBackend(
            url=config.influxdb.url,
            token=config.influxdb.token or "",
            org=config.influxdb.org,
            bucket=config.influxdb.bucket,
        )
        self.health_monitor = health_monitor or StoreHealthMonitor(
            config.influxdb.url, config.influxdb.token or ""
        )
        self.query_builder = MetricsQueryBuilder(bucket=config.influxdb.bucket)

        collector = None
        if self.mode == CollectionMode.LIVE:
            collector = KubernetesMetricsCollector(
                self.cluster, timeout_seconds=config.collection.timeout_seconds
            )
        self.scheduler = CollectionScheduler(
            storage_backend=self.storage,
            mock_generator=MockMetricsGenerator(),
            collector=collector,
            mode=self.mode,
            interval_seconds=config.collection.interval_seconds,
            test_mode=config.collection.test_mode,
        )

        self._running = False

    async def start(self) -> None:
        """Connect storage and start the collection loop."""
        if self._running:
            logger.warning("Metrics service already running")
            return

        await self.storage.connect()
        await self.scheduler.start()
        self._running = True
        logger.info(f"Metrics service started (mode={self.mode.value})")

    async def stop(self) -> None:
        """Stop collection and release the store client."""
        if not self._running:
            return

        await self.scheduler.stop()
        if self.scheduler.collector:
            logger.info(f"Collector stats: {self.scheduler.collector.get_stats()}")
        await self.storage.disconnect()

        self._running = False
        logger.info("Metrics service stopped")

    async def run(self) -> None:
        """Run collection and the API server until uvicorn receives SIGINT/SIGTERM."""
        import uvicorn

        from kmetrics.api import create_app

        server = uvicorn.Server(
            uvicorn.Config(
                create_app(self),
                host=self.config.api.host,
                port=self.config.api.port,
                log_level="info",
            )
        )

        try:
            await self.start()
            logger.info(f"Starting web server on {self.config.api.host}:{self.config.api.port}")
            await server.serve()
        finally:
            await self.stop()

    @property
    def is_running(self) -> bool:
        return self._running
