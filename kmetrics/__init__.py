"""kmetrics - Kubernetes CPU and memory usage telemetry backed by InfluxDB."""

__version__ = "1.0.0"
