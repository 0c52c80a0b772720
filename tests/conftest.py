"""
Shared fixtures and fakes for the Network Monitor tests.

The fakes stand in for the network so that scanner and monitor behaviour
can be checked deterministically without sending a single packet.
"""

import threading
from datetime import datetime

import pytest

from network_monitor.core.data_models import AlertPolicy, UNRESOLVED_NAME
from network_monitor.core.host_statistics import StatisticsSnapshot
from network_monitor.utils.logger import Logger, LogLevel


class FakeProber:
    """Prober answering from a table of address -> result."""

    def __init__(self, results=None, default=False, error=None):
        self.results = results or {}
        self.default = default
        self.error = error
        self.calls = []
        self._lock = threading.Lock()

    def probe(self, address, timeout_ms, cancel_event=None):
        with self._lock:
            self.calls.append((address, timeout_ms))
        if self.error is not None:
            raise self.error
        return self.results.get(address, self.default)


class FakeResolver:
    """Resolver answering from fixed name and MAC tables."""

    def __init__(self, names=None, macs=None):
        self.names = names or {}
        self.macs = macs or {}

    def resolve_name(self, address):
        return self.names.get(address, UNRESOLVED_NAME)

    def resolve_mac(self, address):
        return self.macs.get(address)


def open_ports_connect(open_ports_by_address):
    """Build a PortProber connect function from {address: {ports}}."""
    def connect(address, port, timeout_ms):
        return port in open_ports_by_address.get(address, set())
    return connect


def make_snapshot(availability=100.0, last_response_time_ms=0, device_id="dev-1", **overrides):
    values = dict(
        device_id=device_id,
        total_checks=1,
        failures=0,
        availability_percent=availability,
        last_check_at=datetime(2024, 1, 1, 12, 0, 0),
        last_failure_at=None,
        last_response_time_ms=last_response_time_ms,
        mean_response_time_ms=float(last_response_time_ms),
        stability_percent=100.0,
        response_times=(last_response_time_ms,),
        recent_states=(True,),
        failure_history=(),
    )
    values.update(overrides)
    return StatisticsSnapshot(**values)


@pytest.fixture
def quiet_logger():
    """Logger that only prints errors."""
    return Logger("test", min_level=LogLevel.ERROR)


@pytest.fixture
def policy():
    return AlertPolicy(availability_threshold_percent=99.0, max_response_time_ms=2000)
