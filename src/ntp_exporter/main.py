"""
NTP Exporter command-line entry point.

    ntp-exporter --ntp.server pool.ntp.org --ntp.measurement-duration 30s
    ntp-exporter --config configs/ntp_exporter.yaml
"""

import argparse
import logging
import sys
from typing import List, Optional

from prometheus_client import CollectorRegistry

from . import __version__
from .collector import NTPCollector
from .config import (ConfigError, DriftComparison, ExporterConfig, config_from_dict,
                     load_config_file, split_listen_address, with_overrides)
from .debug_logger import enable_debug
from .engine import MeasurementEngine
from .metrics import MetricsState
from .server import create_app, serve

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog='ntp-exporter',
                                     description="Prometheus exporter for NTP clock drift")
    parser.add_argument('--config', type=str,
                        help='YAML configuration file (flags override its values)')
    parser.add_argument('--ntp.server', dest='server', type=str,
                        help='NTP server to use (default: pool.ntp.org)')
    parser.add_argument('--ntp.protocol-version', dest='protocol_version', type=int,
                        help='NTP protocol version to use (2, 3 or 4; default: 4)')
    parser.add_argument('--ntp.measurement-duration', dest='measurement_duration', type=str,
                        help='Duration of measurements in case of high (>10ms) drift (default: 30s)')
    parser.add_argument('--ntp.query-timeout', dest='query_timeout', type=str,
                        help='Timeout of a single NTP query (default: 5s)')
    parser.add_argument('--ntp.drift-comparison', dest='drift_comparison',
                        choices=[c.value for c in DriftComparison],
                        help='Compare the signed or absolute offset against the high-drift threshold '
                             '(default: signed)')
    parser.add_argument('--web.listen-address', dest='listen_address', type=str,
                        help='Address on which to expose metrics (default: :9559)')
    parser.add_argument('--web.telemetry-path', dest='telemetry_path', type=str,
                        help='Path under which to expose metrics (default: /metrics)')
    parser.add_argument('--log.level', dest='log_level', type=str,
                        help='Log level (default: INFO)')
    parser.add_argument('--debug', action='store_true', default=None,
                        help='Trace NTP queries and scrapes')
    parser.add_argument('--version', action='version', version=f'%(prog)s {__version__}')
    return parser


def resolve_config(args: argparse.Namespace) -> ExporterConfig:
    """Defaults, then the YAML file, then command-line flags."""
    config = ExporterConfig()
    if args.config:
        config = config_from_dict(load_config_file(args.config), base=config)

    return with_overrides(
        config,
        server=args.server,
        protocol_version=args.protocol_version,
        measurement_duration=args.measurement_duration,
        query_timeout=args.query_timeout,
        drift_comparison=args.drift_comparison,
        listen_address=args.listen_address,
        telemetry_path=args.telemetry_path,
        log_level=args.log_level,
        debug=args.debug,
    )


def build_registry(config: ExporterConfig) -> CollectorRegistry:
    """Wire MetricsState, engine and collector into a fresh registry."""
    metrics = MetricsState()
    engine = MeasurementEngine(config.measurement, metrics)
    registry = CollectorRegistry()
    registry.register(NTPCollector(engine))
    return registry


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    logging.basicConfig(
        level=logging.INFO,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )

    try:
        config = resolve_config(args)
    except (ConfigError, FileNotFoundError) as e:
        logger.error(f"Invalid configuration: {e}")
        return 2

    logging.getLogger().setLevel(config.log_level)
    if config.debug:
        enable_debug()

    m = config.measurement
    logger.info(f"Starting ntp-exporter {__version__}: server={m.server}, version={m.protocol_version}, "
                f"measurement_duration={m.measurement_duration:.2f}s, query_timeout={m.query_timeout:.2f}s, "
                f"drift_comparison={m.drift_comparison.value}")

    registry = build_registry(config)
    app = create_app(registry, config.telemetry_path, server_name=m.server)
    host, port = split_listen_address(config.listen_address)

    try:
        serve(app, host, port)
    except KeyboardInterrupt:
        logger.info("Shutting down")
    except OSError as e:
        logger.error(f"Cannot listen on {config.listen_address}: {e}")
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
