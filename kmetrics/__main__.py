"""
kmetrics CLI entry point.
"""

import argparse
import asyncio
import logging
import os
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

from kmetrics.config import KMetricsConfig, parse_listen_addr
from kmetrics.errors import ConfigError
from kmetrics.logging_config import setup_logging as setup_full_logging
from kmetrics.telemetry.schemas import CollectionMode
from kmetrics.telemetry.service import MetricsService

DEFAULT_CONFIG_PATH = "/etc/kmetrics/config.yml"


def setup_logging(verbose: bool = False) -> None:
    """Setup logging, falling back to console-only output if the log directory is not writable."""
    console_level = "DEBUG" if verbose else "INFO"

    log_dir = "/var/log/kmetrics"
    if not os.access("/var/log", os.W_OK):
        log_dir = str(Path.home() / ".local" / "log" / "kmetrics")

    try:
        setup_full_logging(
            log_dir=log_dir,
            console_level=console_level,
            file_level="DEBUG",
            use_json=False,
        )
    except PermissionError:
        # Fall back to basic logging if file logging fails
        logging.basicConfig(
            level=getattr(logging, console_level),
            format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
            handlers=[logging.StreamHandler(sys.stdout)],
        )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="kmetrics - Kubernetes usage telemetry collector"
    )

    parser.add_argument(
        "--config",
        "-c",
        type=str,
        default=DEFAULT_CONFIG_PATH,
        help="Path to configuration file (optional)",
    )
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable verbose logging")
    parser.add_argument(
        "--generate-config",
        action="store_true",
        help="Generate default configuration file and exit",
    )
    parser.add_argument(
        "--validate-config", action="store_true", help="Validate configuration file and exit"
    )

    # Store
    parser.add_argument("--influx-url", help="InfluxDB URL (default http://localhost:8086)")
    parser.add_argument("--influx-token", help="InfluxDB API token (required)")
    parser.add_argument("--influx-org", help="InfluxDB organization (default 'default')")
    parser.add_argument("--influx-bucket", help="InfluxDB bucket (default 'k8s')")

    # Cluster and collection
    parser.add_argument("--kubeconfig", help="Path to kubeconfig; in-cluster config when omitted")
    parser.add_argument(
        "--interval", help="Collection interval, seconds or a duration like 30s, 1m (default 30s)"
    )
    parser.add_argument(
        "--test-mode",
        action="store_true",
        default=None,
        help="Write one batch of mock metrics at startup, then collect live",
    )
    parser.add_argument(
        "--mock",
        action="store_true",
        default=None,
        help="Collect mock metrics only; no cluster access for collection",
    )

    # HTTP
    parser.add_argument("--listen-addr", help="HTTP listen address host:port (default :8080)")
    parser.add_argument("--static-dir", help="Directory of static files served at /")

    return parser


def overrides_from_args(args: argparse.Namespace) -> Dict[str, Dict[str, Any]]:
    """
    Map command line flags onto config sections. Unset flags are None and do not override.

    Raises:
        ConfigError: If --listen-addr is malformed
    """
    overrides: Dict[str, Dict[str, Any]] = {
        "influxdb": {
            "url": args.influx_url,
            "token": args.influx_token,
            "org": args.influx_org,
            "bucket": args.influx_bucket,
        },
        "kubernetes": {"kubeconfig": args.kubeconfig},
        "collection": {
            "interval_seconds": args.interval,
            "test_mode": args.test_mode,
            "mode": CollectionMode.MOCK.value if args.mock else None,
        },
        "api": {"static_dir": args.static_dir},
    }
    if args.listen_addr:
        overrides["api"].update(parse_listen_addr(args.listen_addr))
    return overrides


def main(argv: Optional[List[str]] = None) -> int:
    """CLI entry point."""
    args = build_parser().parse_args(argv)

    setup_logging(args.verbose)
    logger = logging.getLogger(__name__)

    # Handle config generation
    if args.generate_config:
        config = KMetricsConfig()
        config.save(args.config)
        print(f"Generated default configuration at: {args.config}")
        return 0

    # Handle config validation
    if args.validate_config:
        try:
            KMetricsConfig.from_file(args.config)
            print(f"Configuration valid: {args.config}")
            return 0
        except ConfigError as e:
            print(f"Configuration invalid: {e}")
            return 1

    try:
        config = KMetricsConfig.load(args.config, overrides=overrides_from_args(args))
        logger.info(
            f"Configuration loaded (store={config.influxdb.url}, bucket={config.influxdb.bucket}, "
            f"interval={config.collection.interval_seconds}s, mode={config.collection.mode.value})"
        )

        service = MetricsService(config)
        asyncio.run(service.run())

    except ConfigError as e:
        logger.error(f"Configuration error: {e}")
        print(f"Error: {e}", file=sys.stderr)
        return 1
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        return 0
    except Exception as e:
        logger.error(f"Fatal error: {e}", exc_info=True)
        print(f"Error running kmetrics: {e}", file=sys.stderr)
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
