"""
NTP Exporter Metric State

The four instruments written by the measurement engine and rendered on each
scrape. Created once per process and passed to whoever needs them; the
instruments are not registered in the global prometheus_client registry.
"""

from typing import List

from prometheus_client import Gauge, Summary
from prometheus_client.metrics_core import Metric

NAMESPACE = "ntp"


class MetricsState:
    """
    Exported metric state for one NTP target.

    `describe()` and `collect()` follow the prometheus_client collector protocol
    and render the current values without triggering a measurement.
    """

    def __init__(self):
        self.server_is_up = Gauge(
            'server_is_up', 'Ntp server is functional or not.',
            namespace=NAMESPACE, registry=None,
        )
        self.drift = Gauge(
            'drift_seconds', 'Difference between system time and NTP time.',
            ['server'], namespace=NAMESPACE, registry=None,
        )
        self.stratum = Gauge(
            'stratum', 'Stratum of NTP server.',
            namespace=NAMESPACE, registry=None,
        )
        self.scrape_duration = Summary(
            'scrape_duration_seconds', 'ntp_exporter: Duration of a scrape job.',
            namespace=NAMESPACE, registry=None,
        )

    def mark_down(self):
        self.server_is_up.set(0)

    def publish(self, server: str, offset: float, stratum: float, duration: float):
        """Write a successful measurement to all four instruments."""
        self.drift.labels(server=server).set(offset)
        self.stratum.set(stratum)
        self.server_is_up.set(1)
        self.scrape_duration.observe(duration)

    def describe(self) -> List[Metric]:
        families = []
        for instrument in (self.server_is_up, self.drift, self.stratum, self.scrape_duration):
            families.extend(instrument.describe())
        return families

    def collect(self) -> List[Metric]:
        families = []
        for instrument in (self.server_is_up, self.drift, self.stratum, self.scrape_duration):
            families.extend(instrument.collect())
        return families

    def collect_up(self) -> List[Metric]:
        """Only the up/down flag, rendered after a failed scrape."""
        return list(self.server_is_up.collect())
