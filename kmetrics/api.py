"""
HTTP API for kmetrics.

Serves the namespace/pod pass-through listings, pod metric queries against
the store, and the readiness/liveness probes used by the kubelet.
"""

import logging
from pathlib import Path
from typing import Dict, List, Optional

from fastapi import APIRouter, FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles

from kmetrics import __version__
from kmetrics.errors import InternalQueryError
from kmetrics.telemetry.health import HEALTH_TIMEOUT_SECONDS
from kmetrics.telemetry.schemas import (
    HealthStatus,
    MetricRecord,
    MetricsQuery,
    NamespaceList,
    PodList,
)
from kmetrics.telemetry.service import MetricsService
from kmetrics.utils.log_sanitizer import sanitize_for_log, sanitize_label

logger = logging.getLogger(__name__)


class MetricsAPI:
    """
    API interface for collected metrics.

    Provides endpoints for:
    - Namespace and pod listings
    - Pod metric queries
    - Readiness and liveness probes
    """

    def __init__(self, service: MetricsService):
        """
        Initialize metrics API.

        Args:
            service: The running metrics service
        """
        self.service = service
        self.router = APIRouter()
        self._setup_routes()

    def _setup_routes(self):
        """Set up API routes."""
        # Cluster pass-through
        self.router.get("/api/namespaces", response_model=NamespaceList)(self.list_namespaces)
        self.router.get("/api/pods", response_model=PodList)(self.list_pods)

        # Store queries
        self.router.post("/api/metrics", response_model=List[MetricRecord])(self.query_metrics)

        # Probes
        self.router.get("/ready")(self.ready)
        self.router.get("/status")(self.status)

    async def list_namespaces(self) -> NamespaceList:
        """List namespace names from the cluster."""
        try:
            namespaces = await self.service.cluster.list_namespaces()
        except Exception as e:
            logger.error(f"Failed to list namespaces: {e}")
            raise HTTPException(status_code=500, detail=str(e))

        return NamespaceList(namespaces=namespaces)

    async def list_pods(self, namespace: Optional[str] = None) -> PodList:
        """
        List pods, optionally restricted to one namespace.

        Args:
            namespace: Namespace filter; all namespaces when omitted
        """
        try:
            pods = await self.service.cluster.list_pods(namespace or None)
        except Exception as e:
            logger.error(f"Failed to list pods in {sanitize_label(namespace)}: {e}")
            raise HTTPException(status_code=500, detail=str(e))

        return PodList(pods=pods)

    async def query_metrics(self, query: MetricsQuery) -> List[MetricRecord]:
        """
        Query pod metrics over a window ending now.

        Args:
            query: Window and optional namespace/pod filters

        Returns:
            One record per stored value
        """
        logger.info(
            f"Metrics query start={sanitize_for_log(query.start, 20)} "
            f"namespace={sanitize_label(query.namespace)} pod={sanitize_label(query.pod)}"
        )

        flux = self.service.query_builder.build(query)
        try:
            return await self.service.storage.query_metrics(flux)
        except InternalQueryError as e:
            raise HTTPException(status_code=500, detail=str(e))

    async def ready(self) -> JSONResponse:
        """Readiness: 200 only if the store answered its health check."""
        reachable = await self.service.health_monitor.check(timeout=HEALTH_TIMEOUT_SECONDS)
        health = HealthStatus.from_probe(reachable)
        return JSONResponse(
            status_code=200 if reachable else 503,
            content=health.model_dump(),
        )

    async def status(self) -> Dict[str, str]:
        """Liveness: the process is serving requests."""
        return {"status": "alive"}


async def _validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    # Malformed JSON and invalid fields are client errors, not 422s.
    logger.warning(f"Rejected request to {request.url.path}: {sanitize_for_log(exc, 200)}")
    return JSONResponse(status_code=400, content={"detail": str(exc)})


def create_app(service: MetricsService) -> FastAPI:
    """
    Build the FastAPI application for a service.

    Args:
        service: Service whose cluster, store and health probe back the routes

    Returns:
        Configured application
    """
    app = FastAPI(
        title="kmetrics",
        description="Kubernetes usage telemetry",
        version=__version__,
    )
    app.add_exception_handler(RequestValidationError, _validation_error_handler)

    metrics_api = MetricsAPI(service)
    app.include_router(metrics_api.router)

    static_dir = service.config.api.static_dir
    if static_dir:
        if Path(static_dir).is_dir():
            # Mounted last so the API routes take precedence.
            app.mount("/", StaticFiles(directory=static_dir, html=True), name="static")
            logger.info(f"Serving static files from {static_dir}")
        else:
            logger.warning(f"Static directory {static_dir} does not exist, not serving files")

    return app
