"""
NTP Exporter Configuration

Typed configuration for the exporter, loaded from an optional YAML file and
overridden by command-line flags.

Example file:

    ntp:
      server: pool.ntp.org
      protocol_version: 4
      measurement_duration: 30s
      query_timeout: 5s
      drift_comparison: signed
    web:
      listen_address: ":9559"
      telemetry_path: /metrics
    logging:
      level: INFO
      debug: false
"""

import logging
import math
import re
from dataclasses import dataclass, field, replace
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Optional, Tuple, Union

import yaml

logger = logging.getLogger(__name__)

SUPPORTED_PROTOCOL_VERSIONS = (2, 3, 4)

_DURATION_UNITS = {
    'ns': 1e-9,
    'us': 1e-6,
    'µs': 1e-6,
    'ms': 1e-3,
    's': 1.0,
    'm': 60.0,
    'h': 3600.0,
}
_DURATION_TERM = re.compile(r'(\d+(?:\.\d*)?|\.\d+)(ns|us|µs|ms|s|m|h)')


class ConfigError(ValueError):
    """Invalid exporter configuration."""


class DriftComparison(str, Enum):
    """How the first sample's offset is compared against the high-drift threshold."""
    SIGNED = "signed"      # offset > threshold: only positive drift triggers resampling
    ABSOLUTE = "absolute"  # |offset| > threshold


@dataclass(frozen=True)
class MeasurementConfig:
    """What to measure and for how long to keep re-sampling on high drift."""
    server: str = "pool.ntp.org"
    protocol_version: int = 4
    measurement_duration: float = 30.0  # seconds
    query_timeout: float = 5.0  # seconds
    drift_comparison: DriftComparison = DriftComparison.SIGNED

    def __post_init__(self):
        if not self.server:
            raise ConfigError("NTP server address must not be empty")
        if self.protocol_version not in SUPPORTED_PROTOCOL_VERSIONS:
            raise ConfigError(f"invalid NTP protocol version {self.protocol_version}; "
                              f"must be one of {', '.join(map(str, SUPPORTED_PROTOCOL_VERSIONS))}")
        if not (math.isfinite(self.measurement_duration) and math.isfinite(self.query_timeout)):
            raise ConfigError(f"durations must be finite: measurement_duration={self.measurement_duration}, "
                              f"query_timeout={self.query_timeout}")
        if self.measurement_duration < 0:
            raise ConfigError(f"measurement duration must not be negative: {self.measurement_duration}")
        if self.query_timeout <= 0:
            raise ConfigError(f"query timeout must be positive: {self.query_timeout}")


@dataclass(frozen=True)
class ExporterConfig:
    """Full exporter configuration"""
    measurement: MeasurementConfig = field(default_factory=MeasurementConfig)
    listen_address: str = ":9559"
    telemetry_path: str = "/metrics"
    log_level: str = "INFO"
    debug: bool = False

    def __post_init__(self):
        if not self.telemetry_path.startswith('/'):
            raise ConfigError(f"telemetry path must start with '/': {self.telemetry_path!r}")
        if self.telemetry_path == '/':
            raise ConfigError("telemetry path must not be '/' (reserved for the landing page)")
        if not isinstance(logging.getLevelName(self.log_level.upper()), int):
            raise ConfigError(f"unknown log level: {self.log_level!r}")
        split_listen_address(self.listen_address)


def parse_duration(value: Union[str, int, float]) -> float:
    """
    Parse a duration into seconds.

    Accepts plain numbers (seconds) and Go-style strings such as "30s",
    "1m30s", "500ms" or "1.5h".
    """
    if isinstance(value, bool):
        raise ConfigError(f"invalid duration: {value!r}")
    if isinstance(value, (int, float)):
        return _finite(float(value), value)

    text = str(value).strip()
    if not text:
        raise ConfigError("invalid duration: empty string")

    try:
        seconds = float(text)
    except ValueError:
        seconds = None
    if seconds is not None:
        return _finite(seconds, value)

    pos = 0
    total = 0.0
    for match in _DURATION_TERM.finditer(text):
        if match.start() != pos:
            break
        total += float(match.group(1)) * _DURATION_UNITS[match.group(2)]
        pos = match.end()

    if pos != len(text) or pos == 0:
        raise ConfigError(f"invalid duration: {value!r}")
    return _finite(total, value)


def _finite(seconds: float, value: Any) -> float:
    if not math.isfinite(seconds):
        raise ConfigError(f"duration must be finite: {value!r}")
    return seconds


def parse_protocol_version(value: Any) -> int:
    """Integral NTP protocol version; "4" and 4.0 are accepted, 3.9 and True are not."""
    if isinstance(value, bool):
        raise ConfigError(f"invalid NTP protocol version: {value!r}")
    if isinstance(value, float):
        if not value.is_integer():
            raise ConfigError(f"NTP protocol version must be an integer: {value!r}")
        return int(value)
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ConfigError(f"NTP protocol version must be an integer: {value!r}") from None


def split_listen_address(address: str) -> Tuple[str, int]:
    """Split "host:port" or ":port" into (host, port); an empty host means all interfaces."""
    host, sep, port_str = address.rpartition(':')
    if not sep:
        raise ConfigError(f"listen address must be host:port or :port, got {address!r}")
    try:
        port = int(port_str)
    except ValueError:
        raise ConfigError(f"invalid port in listen address {address!r}") from None
    if not 0 <= port <= 65535:
        raise ConfigError(f"port out of range in listen address {address!r}")
    return host.strip('[]'), port


def load_config_file(config_path: Union[str, Path]) -> Dict[str, Any]:
    """Load the raw configuration mapping from a YAML file."""
    try:
        with open(config_path, 'r') as f:
            config = yaml.safe_load(f)
    except FileNotFoundError:
        logger.error(f"Configuration file not found: {config_path}")
        raise
    except yaml.YAMLError as e:
        raise ConfigError(f"error parsing configuration file {config_path}: {e}") from e

    if config is None:
        return {}
    if not isinstance(config, dict):
        raise ConfigError(f"configuration file {config_path} must contain a mapping")
    return config


def config_from_dict(raw: Dict[str, Any], base: Optional[ExporterConfig] = None) -> ExporterConfig:
    """
    Build an ExporterConfig from a raw mapping (as loaded from YAML).

    Missing keys keep the values of `base` (defaults when not given).
    """
    base = base or ExporterConfig()
    ntp_section = raw.get('ntp') or {}
    web_section = raw.get('web') or {}
    logging_section = raw.get('logging') or {}

    known = {'ntp', 'web', 'logging'}
    unknown = set(raw) - known
    if unknown:
        logger.warning(f"Ignoring unknown configuration sections: {sorted(unknown)}")

    m = base.measurement
    try:
        measurement = MeasurementConfig(
            server=str(ntp_section.get('server', m.server)),
            protocol_version=parse_protocol_version(ntp_section.get('protocol_version', m.protocol_version)),
            measurement_duration=parse_duration(ntp_section.get('measurement_duration', m.measurement_duration)),
            query_timeout=parse_duration(ntp_section.get('query_timeout', m.query_timeout)),
            drift_comparison=DriftComparison(ntp_section.get('drift_comparison', m.drift_comparison)),
        )
    except ConfigError:
        raise
    except (TypeError, ValueError) as e:
        raise ConfigError(f"invalid ntp configuration: {e}") from e

    return ExporterConfig(
        measurement=measurement,
        listen_address=str(web_section.get('listen_address', base.listen_address)),
        telemetry_path=str(web_section.get('telemetry_path', base.telemetry_path)),
        log_level=str(logging_section.get('level', base.log_level)).upper(),
        debug=bool(logging_section.get('debug', base.debug)),
    )


def with_overrides(config: ExporterConfig, **overrides: Any) -> ExporterConfig:
    """
    Apply command-line overrides; None values are ignored.

    Keys: server, protocol_version, measurement_duration, query_timeout,
    drift_comparison, listen_address, telemetry_path, log_level, debug.
    """
    measurement_keys = {'server', 'protocol_version', 'measurement_duration',
                        'query_timeout', 'drift_comparison'}
    given = {k: v for k, v in overrides.items() if v is not None}

    measurement_changes = {k: v for k, v in given.items() if k in measurement_keys}
    if 'protocol_version' in measurement_changes:
        measurement_changes['protocol_version'] = parse_protocol_version(measurement_changes['protocol_version'])
    if 'measurement_duration' in measurement_changes:
        measurement_changes['measurement_duration'] = parse_duration(measurement_changes['measurement_duration'])
    if 'query_timeout' in measurement_changes:
        measurement_changes['query_timeout'] = parse_duration(measurement_changes['query_timeout'])
    if 'drift_comparison' in measurement_changes:
        try:
            measurement_changes['drift_comparison'] = DriftComparison(measurement_changes['drift_comparison'])
        except ValueError as e:
            raise ConfigError(str(e)) from e

    top_changes = {k: v for k, v in given.items() if k not in measurement_keys}
    if 'log_level' in top_changes:
        top_changes['log_level'] = str(top_changes['log_level']).upper()
    unknown = set(top_changes) - {'listen_address', 'telemetry_path', 'log_level', 'debug'}
    if unknown:
        raise TypeError(f"unknown configuration overrides: {sorted(unknown)}")

    return replace(config, measurement=replace(config.measurement, **measurement_changes), **top_changes)
