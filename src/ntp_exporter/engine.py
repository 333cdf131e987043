"""
NTP Exporter Measurement Engine

Runs one scrape: takes an initial NTP sample and, when the clock drift looks
unusually high, keeps sampling for the configured measurement window and reports
the median instead of the single noisy value.
"""

import logging
import time
from dataclasses import dataclass
from typing import Callable, List, Optional

from .config import DriftComparison, MeasurementConfig
from .debug_logger import debug_log_call
from .metrics import MetricsState
from .ntp_client import NTPClient, NTPQueryFailed, NTPSample
from .stats import median, summarize

logger = logging.getLogger(__name__)

# Offsets above 10ms trigger the resampling window
HIGH_DRIFT_THRESHOLD = 0.01


@dataclass
class MeasurementResult:
    """Outcome of one successful scrape"""
    server_up: bool
    offset_seconds: float
    stratum: float
    scrape_duration_seconds: float
    sample_count: int = 1  # samples reduced into offset/stratum
    resampled: bool = False


class MeasurementEngine:
    """
    Measurement engine for a single NTP server.

    Writes its results to a MetricsState. `server_is_up` is set exactly once
    per scrape; drift, stratum and scrape duration are only written when the
    whole scrape succeeds.
    """

    def __init__(self, config: MeasurementConfig, metrics: MetricsState,
                 client: Optional[NTPClient] = None,
                 clock: Callable[[], float] = time.monotonic):
        """
        Args:
            config: server, protocol version and resampling window
            metrics: instruments to publish to
            client: NTP query collaborator (defaults to an ntplib-backed NTPClient)
            clock: monotonic time source in seconds
        """
        self.config = config
        self.metrics = metrics
        self.client = client or NTPClient(timeout=config.query_timeout)
        self.clock = clock

    def is_high_drift(self, offset: float) -> bool:
        if self.config.drift_comparison is DriftComparison.ABSOLUTE:
            return abs(offset) > HIGH_DRIFT_THRESHOLD
        return offset > HIGH_DRIFT_THRESHOLD

    def _sample(self) -> NTPSample:
        try:
            return self.client.query(self.config.server, self.config.protocol_version)
        except NTPQueryFailed:
            self.metrics.mark_down()
            raise

    @debug_log_call
    def measure(self) -> MeasurementResult:
        """
        Take one measurement and publish it.

        Returns: MeasurementResult
        Raises: NTPQueryFailed if any sample fails; `server_is_up` is then 0 and
            nothing else is published
        """
        begin = self.clock()
        first = self._sample()
        offset, stratum = first.offset, first.stratum
        sample_count = 1
        resampled = False

        if self.is_high_drift(offset):
            offsets, strata = self._resample(begin)

            if offsets:
                offset = median(offsets)
                stratum = median(strata)
                sample_count = len(offsets)
                resampled = True
                spread = summarize(offsets)
                logger.info(f"Median of {spread['count']} samples from {self.config.server}: "
                            f"offset={offset*1000:.3f}ms, stratum={stratum:g} "
                            f"(min={spread['min']*1000:.3f}ms, max={spread['max']*1000:.3f}ms, "
                            f"mad={spread['mad']*1000:.3f}ms)")
            else:
                logger.warning(f"Measurement window of {self.config.measurement_duration:.2f}s elapsed "
                               f"before any resample from {self.config.server}; "
                               f"reporting the initial sample offset={offset*1000:.3f}ms")
        elif offset < -HIGH_DRIFT_THRESHOLD:
            logger.warning(f"Clock drift {offset*1000:.3f}ms from {self.config.server} is below "
                           f"-{HIGH_DRIFT_THRESHOLD:.2f}s but not resampled under signed comparison")

        duration = self.clock() - begin
        self.metrics.publish(self.config.server, offset, stratum, duration)

        return MeasurementResult(
            server_up=True,
            offset_seconds=offset,
            stratum=stratum,
            scrape_duration_seconds=duration,
            sample_count=sample_count,
            resampled=resampled,
        )

    def _resample(self, begin: float):
        """Sample until the measurement window measured from `begin` is used up."""
        offsets: List[float] = []
        strata: List[float] = []

        logger.warning(f"clock drift is above {HIGH_DRIFT_THRESHOLD:.2f}s, taking multiple "
                       f"measurements for {self.config.measurement_duration:.2f} seconds")
        while self.clock() - begin < self.config.measurement_duration:
            sample = self._sample()
            offsets.append(sample.offset)
            strata.append(sample.stratum)
            logger.debug(f"Resample {len(offsets)}: offset={sample.offset*1000:.3f}ms, "
                         f"stratum={sample.stratum:g}")

        return offsets, strata
