"""
Flux query construction for metrics reads.

Queries are composed as a chain of stages (source, range, filters) whose
values are never written into the query text. Every value is a named
parameter (``_<name>``) that the InfluxDB client binds as a Flux option
when the query executes, so caller-supplied namespace or pod names cannot
alter the query.
"""

from typing import Any, Dict, List

from pydantic import BaseModel, ConfigDict

from kmetrics.telemetry.schemas import POD_MEASUREMENT, MetricsQuery


class FluxQuery(BaseModel):
    """Flux text plus the parameters it references."""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    text: str
    params: Dict[str, Any]


class MetricsQueryBuilder:
    """Builds the scoped range query behind POST /api/metrics."""

    def __init__(self, bucket: str, measurement: str = POD_MEASUREMENT):
        self.bucket = bucket
        self.measurement = measurement

    def build(self, query: MetricsQuery) -> FluxQuery:
        """
        Translate a read request into a parameterized Flux query.

        The range always ends now; ``query.stop`` is not applied.

        Args:
            query: Validated read request

        Returns:
            Query text and parameter bindings
        """
        stages: List[str] = [
            "from(bucket: _bucket)",
            "range(start: _start)",
            "filter(fn: (r) => r._measurement == _measurement)",
        ]
        params: Dict[str, Any] = {
            "_bucket": self.bucket,
            # Negative duration: the window reaches back from now.
            "_start": -query.window,
            "_measurement": self.measurement,
        }

        if query.namespace:
            stages.append("filter(fn: (r) => r.namespace == _namespace)")
            params["_namespace"] = query.namespace

        if query.pod:
            stages.append("filter(fn: (r) => r.pod == _pod)")
            params["_pod"] = query.pod

        return FluxQuery(text="\n  |> ".join(stages), params=params)
