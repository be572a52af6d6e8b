"""
Error taxonomy for kmetrics.

Background collection errors are logged by the scheduler and never reach
HTTP callers. Request-path errors are turned into HTTP responses by the API.
"""


class KMetricsError(Exception):
    """Base class for all kmetrics errors."""


class ConfigError(KMetricsError):
    """Configuration is missing or invalid. Fatal at startup."""


class UpstreamFetchError(KMetricsError):
    """The Kubernetes metrics API could not be read for this cycle."""


class UpstreamWriteError(KMetricsError):
    """The time-series store rejected a write or no write session is available."""


class StoreHealthError(KMetricsError):
    """The store health probe failed or timed out."""


class InternalQueryError(KMetricsError):
    """A query against the time-series store failed."""
