"""
Type-safe telemetry schemas for kmetrics.

These schemas define the in-memory data model for usage samples, read
queries and the HTTP payloads built on top of them.
"""

from datetime import datetime, timedelta
from enum import Enum
from typing import Any, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from kmetrics.utils.durations import parse_duration

# ============================================================================
# ENUMS
# ============================================================================


class SampleScope(str, Enum):
    """What a usage sample describes."""

    NODE = "node"
    POD_CONTAINER = "pod_container"


class CollectionMode(str, Enum):
    """Deployment-time data source for the collection loop."""

    LIVE = "live"  # Kubernetes metrics API
    MOCK = "mock"  # Synthetic catalog, no cluster required


# Store layout: measurement names per scope and the field names they carry.
NODE_MEASUREMENT = "node_metrics"
POD_MEASUREMENT = "pod_metrics"
CPU_FIELD = "cpu_usage"
MEMORY_FIELD = "memory_usage"


# ============================================================================
# SAMPLES
# ============================================================================


class Sample(BaseModel):
    """One CPU/memory reading for a node or a pod container."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    scope: SampleScope
    node: Optional[str] = None
    namespace: Optional[str] = None
    pod: Optional[str] = None
    container: Optional[str] = None

    cpu_millicores: int = Field(ge=0, description="CPU usage in millicores")
    memory_bytes: int = Field(ge=0, description="Working set memory in bytes")
    timestamp: datetime

    @model_validator(mode="after")
    def _check_identity(self) -> "Sample":
        if self.scope == SampleScope.NODE:
            if not self.node:
                raise ValueError("node samples require a node name")
        elif not (self.namespace and self.pod and self.container):
            raise ValueError("pod container samples require namespace, pod and container")
        return self

    @classmethod
    def for_node(
        cls, node: str, cpu_millicores: int, memory_bytes: int, timestamp: datetime
    ) -> "Sample":
        return cls(
            scope=SampleScope.NODE,
            node=node,
            cpu_millicores=cpu_millicores,
            memory_bytes=memory_bytes,
            timestamp=timestamp,
        )

    @classmethod
    def for_container(
        cls,
        namespace: str,
        pod: str,
        container: str,
        cpu_millicores: int,
        memory_bytes: int,
        timestamp: datetime,
    ) -> "Sample":
        return cls(
            scope=SampleScope.POD_CONTAINER,
            namespace=namespace,
            pod=pod,
            container=container,
            cpu_millicores=cpu_millicores,
            memory_bytes=memory_bytes,
            timestamp=timestamp,
        )

    @property
    def measurement(self) -> str:
        return NODE_MEASUREMENT if self.scope == SampleScope.NODE else POD_MEASUREMENT

    @property
    def tags(self) -> dict:
        """Tag set written alongside the point."""
        if self.scope == SampleScope.NODE:
            return {"node": self.node}
        return {"namespace": self.namespace, "pod": self.pod, "container": self.container}

    @property
    def subject(self) -> str:
        """Human-readable identity for log lines."""
        if self.scope == SampleScope.NODE:
            return f"node/{self.node}"
        return f"{self.namespace}/{self.pod}/{self.container}"


# ============================================================================
# QUERIES
# ============================================================================


class MetricsQuery(BaseModel):
    """Read request for pod metrics over a relative window ending now."""

    model_config = ConfigDict(extra="ignore")

    start: str = "1h"
    # Accepted for compatibility, not used when building the range.
    stop: Optional[str] = None
    namespace: Optional[str] = None
    pod: Optional[str] = None

    @field_validator("start")
    @classmethod
    def _validate_start(cls, value: str) -> str:
        parse_duration(value)
        return value.strip()

    @property
    def window(self) -> timedelta:
        """Length of the lookback window."""
        return parse_duration(self.start)


class MetricRecord(BaseModel):
    """One row of a metrics query result."""

    time: Optional[datetime] = None
    value: Any = None
    field: Optional[str] = None
    namespace: Optional[str] = None
    pod: Optional[str] = None
    container: Optional[str] = None


# ============================================================================
# HEALTH AND STATE
# ============================================================================


class HealthStatus(BaseModel):
    """Readiness result, computed fresh on every call."""

    influxdb: bool
    status: Literal["healthy", "unhealthy"]

    @classmethod
    def from_probe(cls, reachable: bool) -> "HealthStatus":
        return cls(influxdb=reachable, status="healthy" if reachable else "unhealthy")


class SchedulerState(BaseModel):
    """Collection loop state. Written only by the scheduler's tick handler."""

    interval_seconds: float = Field(gt=0)
    mode: CollectionMode
    test_mode: bool = False
    first_run_done: bool = False
    ticks: int = Field(default=0, ge=0)
    last_tick_at: Optional[datetime] = None
    last_error: Optional[str] = None


class WriteReport(BaseModel):
    """Outcome of writing one batch to the store."""

    attempted: int = Field(ge=0)
    written: int = Field(ge=0)
    failed: int = Field(ge=0)


# ============================================================================
# PASS-THROUGH PAYLOADS
# ============================================================================


class NamespaceList(BaseModel):
    namespaces: List[str] = Field(default_factory=list)


class PodInfo(BaseModel):
    name: str
    namespace: str


class PodList(BaseModel):
    pods: List[PodInfo] = Field(default_factory=list)
