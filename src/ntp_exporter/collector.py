"""
NTP Exporter Collector

prometheus_client custom collector: every `collect()` runs one measurement and
renders the resulting metric state.
"""

import logging
import threading
from typing import List

from prometheus_client.metrics_core import Metric

from .debug_logger import DebugTimer
from .engine import MeasurementEngine
from .ntp_client import NTPQueryFailed

logger = logging.getLogger(__name__)


class NTPCollector:
    """
    Collector bound to one MeasurementEngine.

    Scrapes are serialized: overlapping requests wait for the running
    measurement instead of interleaving their metric writes.
    """

    def __init__(self, engine: MeasurementEngine):
        self.engine = engine
        self.metrics = engine.metrics
        self._lock = threading.Lock()

    def describe(self) -> List[Metric]:
        return self.metrics.describe()

    def collect(self) -> List[Metric]:
        """Measure, then render. A failed scrape renders only ntp_server_is_up."""
        with self._lock:
            with DebugTimer(f"scrape {self.engine.config.server}"):
                try:
                    self.engine.measure()
                except NTPQueryFailed as e:
                    logger.error(str(e))
                    return self.metrics.collect_up()
            return self.metrics.collect()
