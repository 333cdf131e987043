"""
NTP Exporter - Clock Drift Metrics for Prometheus

Measures the local clock's offset against an NTP server on every scrape and
exposes it as Prometheus metrics. High drift readings are stabilized by
re-sampling over a measurement window and reporting the median.
"""

__version__ = "1.0.0"
__author__ = "NTP Exporter Team"

from .config import ConfigError, DriftComparison, ExporterConfig, MeasurementConfig
from .engine import HIGH_DRIFT_THRESHOLD, MeasurementEngine, MeasurementResult
from .metrics import MetricsState
from .ntp_client import NTPClient, NTPQueryFailed, NTPSample
from .stats import median
from .collector import NTPCollector

__all__ = [
    "ConfigError",
    "DriftComparison",
    "ExporterConfig",
    "MeasurementConfig",
    "HIGH_DRIFT_THRESHOLD",
    "MeasurementEngine",
    "MeasurementResult",
    "MetricsState",
    "NTPClient",
    "NTPQueryFailed",
    "NTPSample",
    "NTPCollector",
    "median",
    "__version__",
]
