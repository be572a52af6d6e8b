"""
Configuration for kmetrics.

Settings come from three layers, later layers overriding earlier ones:
YAML file, environment variables, command line flags.
"""

import logging
import os
from pathlib import Path
from typing import Any, Dict, Optional

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator

from kmetrics.errors import ConfigError
from kmetrics.telemetry.schemas import CollectionMode
from kmetrics.utils.durations import parse_duration

logger = logging.getLogger(__name__)


class InfluxDBConfig(BaseModel):
    """Connection settings for the InfluxDB 2.x store."""

    url: str = "http://localhost:8086"
    token: Optional[str] = None
    org: str = "default"
    bucket: str = "k8s"


class KubernetesConfig(BaseModel):
    """Cluster access. No kubeconfig means in-cluster service account."""

    kubeconfig: Optional[str] = None


class CollectionConfig(BaseModel):
    """Collection loop settings."""

    interval_seconds: float = Field(default=30.0, gt=0)
    mode: CollectionMode = CollectionMode.LIVE
    test_mode: bool = False
    timeout_seconds: float = Field(default=30.0, gt=0)

    @field_validator("interval_seconds", mode="before")
    @classmethod
    def _parse_interval(cls, value: Any) -> Any:
        if isinstance(value, str):
            return parse_duration(value).total_seconds()
        return value


class APIConfig(BaseModel):
    """HTTP server settings."""

    host: str = "0.0.0.0"
    port: int = Field(default=8080, gt=0, le=65535)
    static_dir: Optional[str] = None


class KMetricsConfig(BaseModel):
    """Complete kmetrics configuration."""

    influxdb: InfluxDBConfig = Field(default_factory=InfluxDBConfig)
    kubernetes: KubernetesConfig = Field(default_factory=KubernetesConfig)
    collection: CollectionConfig = Field(default_factory=CollectionConfig)
    api: APIConfig = Field(default_factory=APIConfig)

    @classmethod
    def from_file(cls, path: str) -> "KMetricsConfig":
        """
        Load configuration from a YAML file.

        Args:
            path: Path to the YAML file

        Returns:
            Parsed configuration

        Raises:
            ConfigError: If the file cannot be read or does not validate
        """
        config_path = Path(path)
        if not config_path.exists():
            raise ConfigError(f"Configuration file not found: {path}")

        try:
            with open(config_path) as f:
                data = yaml.safe_load(f) or {}
        except (OSError, yaml.YAMLError) as e:
            raise ConfigError(f"Failed to read configuration file {path}: {e}") from e

        if not isinstance(data, dict):
            raise ConfigError(f"Configuration file {path} must contain a mapping")

        try:
            return cls.model_validate(data)
        except ValidationError as e:
            raise ConfigError(f"Invalid configuration in {path}: {e}") from e

    @classmethod
    def load(
        cls,
        path: Optional[str] = None,
        overrides: Optional[Dict[str, Dict[str, Any]]] = None,
        environ: Optional[Dict[str, str]] = None,
    ) -> "KMetricsConfig":
        """
        Build the effective configuration.

        Args:
            path: Optional YAML file; skipped if it does not exist
            overrides: Per-section values from the command line (None values are ignored)
            environ: Environment mapping, defaults to os.environ

        Returns:
            Validated configuration with the store token present

        Raises:
            ConfigError: On invalid values or a missing store token
        """
        if path and Path(path).exists():
            base = cls.from_file(path).model_dump()
        else:
            if path:
                logger.debug(f"No configuration file at {path}, using defaults")
            base = cls().model_dump()

        for layer in (env_overrides(os.environ if environ is None else environ), overrides or {}):
            for section, values in layer.items():
                for key, value in values.items():
                    if value is not None:
                        base.setdefault(section, {})[key] = value

        try:
            config = cls.model_validate(base)
        except ValidationError as e:
            raise ConfigError(f"Invalid configuration: {e}") from e

        config.validate_required()
        return config

    def validate_required(self) -> None:
        """Raise ConfigError if a required setting is missing."""
        if not self.influxdb.token:
            raise ConfigError(
                "InfluxDB token is required. Provide it with --influx-token, "
                "KMETRICS_INFLUX_TOKEN or influxdb.token in the config file"
            )

    def save(self, path: str) -> None:
        """Write configuration to a YAML file."""
        config_path = Path(path)
        config_path.parent.mkdir(parents=True, exist_ok=True)
        with open(config_path, "w") as f:
            yaml.dump(self.model_dump(mode="json"), f, default_flow_style=False, sort_keys=False)


def _parse_bool(value: str) -> bool:
    return value.strip().lower() in ("1", "true", "yes", "on")


def env_overrides(environ: Dict[str, str]) -> Dict[str, Dict[str, Any]]:
    """Map KMETRICS_* environment variables onto config sections."""
    result: Dict[str, Dict[str, Any]] = {
        "influxdb": {
            "url": environ.get("KMETRICS_INFLUX_URL"),
            "token": environ.get("KMETRICS_INFLUX_TOKEN"),
            "org": environ.get("KMETRICS_INFLUX_ORG"),
            "bucket": environ.get("KMETRICS_INFLUX_BUCKET"),
        },
        "kubernetes": {"kubeconfig": environ.get("KUBECONFIG")},
        "collection": {
            "interval_seconds": environ.get("KMETRICS_INTERVAL"),
            "mode": environ.get("KMETRICS_MODE"),
            "test_mode": (
                _parse_bool(environ["KMETRICS_TEST_MODE"])
                if "KMETRICS_TEST_MODE" in environ
                else None
            ),
        },
        "api": {},
    }

    listen_addr = environ.get("KMETRICS_LISTEN_ADDR")
    if listen_addr:
        result["api"].update(parse_listen_addr(listen_addr))

    return result


def parse_listen_addr(value: str) -> Dict[str, Any]:
    """
    Split a "host:port" listen address. An empty host (":8080") keeps the default host.

    Raises:
        ConfigError: If the port is missing or not a number
    """
    host, sep, port = value.rpartition(":")
    if not sep or not port.isdigit():
        raise ConfigError(f"Invalid listen address {value!r}, expected host:port")
    result: Dict[str, Any] = {"port": int(port)}
    if host:
        result["host"] = host
    return result
