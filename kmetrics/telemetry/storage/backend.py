"""
InfluxDB 2.x storage backend for telemetry samples.

Writes are best effort: one shared write session per batch, one point per
sample, and a failed point never stops the rest of the batch. Reads run the
parameterized Flux queries built by MetricsQueryBuilder.
"""

import asyncio
import logging
from typing import Iterable, List, Optional

from influxdb_client import InfluxDBClient, Point, WritePrecision
from influxdb_client.client.write_api import SYNCHRONOUS

from kmetrics.errors import InternalQueryError, UpstreamWriteError
from kmetrics.telemetry.query import FluxQuery
from kmetrics.telemetry.schemas import (
    CPU_FIELD,
    MEMORY_FIELD,
    MetricRecord,
    Sample,
    WriteReport,
)

logger = logging.getLogger(__name__)


def sample_to_point(sample: Sample) -> Point:
    """Map a sample to an InfluxDB point (measurement per scope, integer fields)."""
    point = Point(sample.measurement)
    for key, value in sample.tags.items():
        point = point.tag(key, value)
    return (
        point.field(CPU_FIELD, sample.cpu_millicores)
        .field(MEMORY_FIELD, sample.memory_bytes)
        .time(sample.timestamp, WritePrecision.NS)
    )


class InfluxStorageBackend:
    """
    Storage backend for InfluxDB.

    Handles point writes for collected samples and metric queries for the API.
    """

    def __init__(
        self,
        url: str,
        token: str,
        org: str,
        bucket: str,
        timeout_ms: int = 10_000,
    ):
        """
        Initialize storage backend.

        Args:
            url: InfluxDB base URL
            token: API token
            org: Organization name
            bucket: Bucket samples are written to and read from
            timeout_ms: HTTP timeout for writes and queries
        """
        self.url = url
        self.token = token
        self.org = org
        self.bucket = bucket
        self.timeout_ms = timeout_ms
        self._client: Optional[InfluxDBClient] = None

    async def connect(self) -> None:
        """Create the client. No request is made until the first write or query."""
        if self._client:
            return

        self._client = InfluxDBClient(
            url=self.url, token=self.token, org=self.org, timeout=self.timeout_ms
        )
        logger.info(f"InfluxDB client ready for {self.url} (org={self.org}, bucket={self.bucket})")

    async def disconnect(self) -> None:
        """Close the client."""
        if self._client:
            self._client.close()
            self._client = None
            logger.info("Disconnected from InfluxDB")

    @property
    def is_connected(self) -> bool:
        return self._client is not None

    async def write_samples(self, samples: Iterable[Sample]) -> WriteReport:
        """
        Write a batch, one point per sample.

        Args:
            samples: Samples from one collection cycle

        Returns:
            Counts of attempted, written and failed points

        Raises:
            UpstreamWriteError: If no write session can be opened
        """
        batch = list(samples)
        if not batch:
            return WriteReport(attempted=0, written=0, failed=0)

        if not self._client:
            raise UpstreamWriteError("InfluxDB client is not connected")

        loop = asyncio.get_running_loop()
        report = await loop.run_in_executor(None, self._write_batch, batch)

        if report.failed:
            logger.warning(
                f"Wrote {report.written}/{report.attempted} points to {self.bucket} "
                f"({report.failed} failed)"
            )
        else:
            logger.info(f"Wrote {report.written} points to {self.bucket}")
        return report

    def _write_batch(self, batch: List[Sample]) -> WriteReport:
        try:
            write_api = self._client.write_api(write_options=SYNCHRONOUS)
        except Exception as e:
            raise UpstreamWriteError(f"Failed to open write session: {e}") from e

        written = 0
        try:
            for sample in batch:
                try:
                    write_api.write(bucket=self.bucket, org=self.org, record=sample_to_point(sample))
                    written += 1
                except Exception as e:
                    logger.error(f"Error writing {sample.measurement} for {sample.subject}: {e}")
        finally:
            write_api.close()

        return WriteReport(attempted=len(batch), written=written, failed=len(batch) - written)

    async def query_metrics(self, query: FluxQuery) -> List[MetricRecord]:
        """
        Run a metrics query.

        Args:
            query: Parameterized Flux query

        Returns:
            One record per result row

        Raises:
            InternalQueryError: If the query fails
        """
        if not self._client:
            raise InternalQueryError("InfluxDB client is not connected")

        loop = asyncio.get_running_loop()
        try:
            tables = await loop.run_in_executor(
                None,
                lambda: self._client.query_api().query(
                    query.text, org=self.org, params=query.params
                ),
            )
        except Exception as e:
            logger.error(f"Metrics query failed: {e}")
            raise InternalQueryError(str(e)) from e

        return [
            MetricRecord(
                time=record.get_time(),
                value=record.get_value(),
                field=record.get_field(),
                namespace=record.values.get("namespace"),
                pod=record.values.get("pod"),
                container=record.values.get("container"),
            )
            for table in tables
            for record in table.records
        ]
