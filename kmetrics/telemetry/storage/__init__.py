"""
Telemetry storage backend module.

Provides InfluxDB storage for telemetry samples.
"""

from kmetrics.telemetry.storage.backend import InfluxStorageBackend, sample_to_point

__all__ = ["InfluxStorageBackend", "sample_to_point"]
