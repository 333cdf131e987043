"""
Pytest configuration and shared fixtures for NTP exporter tests.
"""

from dataclasses import replace

import pytest
from prometheus_client import CollectorRegistry

from ntp_exporter.config import MeasurementConfig
from ntp_exporter.engine import MeasurementEngine
from ntp_exporter.metrics import MetricsState
from ntp_exporter.ntp_client import NTPQueryFailed, NTPSample


class FakeClock:
    """Monotonic clock advanced by hand (or by FakeNTPClient per query)."""

    def __init__(self, start: float = 100.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float):
        self.now += seconds


class FakeNTPClient:
    """
    Scripted NTP query collaborator.

    Each entry of `script` is an NTPSample, an (offset, stratum) tuple, or an
    exception instance to raise. Every query advances the clock by `query_time`.
    """

    def __init__(self, script, clock: FakeClock, query_time: float = 1.0):
        self.script = list(script)
        self.clock = clock
        self.query_time = query_time
        self.calls = []

    def query(self, server, version):
        self.calls.append((server, version))
        self.clock.advance(self.query_time)
        if not self.script:
            raise AssertionError("FakeNTPClient script exhausted")
        step = self.script.pop(0)
        if isinstance(step, Exception):
            raise step
        return NTPSample(*step)


def query_failure(cause="No response received from test.ntp.server."):
    return NTPQueryFailed("test.ntp.server", cause)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def metrics():
    return MetricsState()


@pytest.fixture
def registry(metrics):
    """Registry that renders the metric state without measuring."""
    reg = CollectorRegistry()
    reg.register(metrics)
    return reg


@pytest.fixture
def measurement_config():
    return MeasurementConfig(
        server="test.ntp.server",
        protocol_version=4,
        measurement_duration=4.0,
        query_timeout=1.0,
    )


@pytest.fixture
def make_engine(measurement_config, metrics, clock):
    """Factory: engine over a scripted client; config fields can be overridden."""
    def _make(script, query_time=1.0, **config_overrides):
        config = replace(measurement_config, **config_overrides)
        client = FakeNTPClient(script, clock, query_time=query_time)
        return MeasurementEngine(config, metrics, client=client, clock=clock), client

    return _make
