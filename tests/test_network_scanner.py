"""
Tests for NetworkScanner using fake probers and resolvers.
"""

import threading
import time

import pytest

from network_monitor.core.network_scanner import NetworkScanner
from network_monitor.probes.port_prober import FULL_PORT_CATALOG, PortProber
from network_monitor.utils.error_handler import ValidationError

from conftest import FakeProber, FakeResolver, open_ports_connect


def make_scanner(quiet_logger, prober=None, open_ports=None, resolver=None, **kwargs):
    return NetworkScanner(
        prober=prober or FakeProber(),
        port_prober=PortProber(connect=open_ports_connect(open_ports or {})),
        resolver=resolver or FakeResolver(),
        logger=quiet_logger,
        **kwargs
    )


class TestDiscover:

    def test_printer_found_through_port_fallback(self, quiet_logger):
        scanner = make_scanner(quiet_logger, open_ports={"10.0.0.5": {9100}})

        devices = scanner.discover("10.0.0", 5, 5, 500)

        assert len(devices) == 1
        device = devices[0]
        assert device.address == "10.0.0.5"
        assert device.device_type == "Printer"
        assert device.os_guess == "Network Printer"
        assert device.open_ports == {9100}
        assert device.resolved_name == "Unknown"
        assert device.mac_address is None
        assert device.state_label == "Active"

    def test_only_responding_hosts_are_returned_sorted(self, quiet_logger):
        prober = FakeProber({"10.0.0.10": True, "10.0.0.2": True})
        scanner = make_scanner(quiet_logger, prober=prober)

        devices = scanner.discover("10.0.0", 1, 12, 500)

        assert [d.address for d in devices] == ["10.0.0.2", "10.0.0.10"]
        # reachable with no open port
        assert devices[0].device_type == "Network Device"
        assert len(prober.calls) == 12

    def test_name_and_mac_are_resolved(self, quiet_logger):
        resolver = FakeResolver(
            names={"10.0.0.3": "kitchen-iphone"},
            macs={"10.0.0.3": "7C:00:00:00:00:01"},
        )
        scanner = make_scanner(
            quiet_logger,
            prober=FakeProber(default=True),
            open_ports={"10.0.0.3": {23}},
            resolver=resolver,
        )

        device = scanner.discover("10.0.0", 3, 3, 500)[0]

        assert device.resolved_name == "kitchen-iphone"
        assert device.mac_address == "7C:00:00:00:00:01"
        assert device.device_type == "Mobile Phone"
        assert device.wifi_interface_guess == "5GHz"

    def test_task_errors_count_as_not_found(self, quiet_logger):
        class PartlyBrokenProber(FakeProber):
            def probe(self, address, timeout_ms, cancel_event=None):
                if address == "10.0.0.2":
                    raise RuntimeError("driver error")
                return True

        scanner = make_scanner(quiet_logger, prober=PartlyBrokenProber())

        devices = scanner.discover("10.0.0", 1, 3, 500)

        assert [d.address for d in devices] == ["10.0.0.1", "10.0.0.3"]
        assert scanner.error_handler.total_errors() == 1

    @pytest.mark.parametrize("prefix, start, end, timeout_ms", [
        ("10.0", 1, 2, 500),
        ("10.0.0.0", 1, 2, 500),
        ("10.0.300", 1, 2, 500),
        ("10.0.0", 5, 2, 500),
        ("10.0.0", -1, 2, 500),
        ("10.0.0", 1, 256, 500),
        ("10.0.0", 1, 2, 0),
    ])
    def test_invalid_arguments(self, quiet_logger, prefix, start, end, timeout_ms):
        prober = FakeProber()
        scanner = make_scanner(quiet_logger, prober=prober)

        with pytest.raises(ValidationError):
            scanner.discover(prefix, start, end, timeout_ms)
        assert prober.calls == []

    def test_empty_network(self, quiet_logger):
        assert make_scanner(quiet_logger).discover("192.168.50", 0, 255, 100) == []


class TestDiscoverAddressesOnly:

    def test_reachability_only(self, quiet_logger):
        prober = FakeProber({"10.0.0.7": True, "10.0.0.20": True})
        # open ports must not count for the quick sweep
        scanner = make_scanner(quiet_logger, prober=prober, open_ports={"10.0.0.9": {80}})

        assert scanner.discover_addresses_only("10.0.0", 1, 30, 200) == ["10.0.0.7", "10.0.0.20"]

    def test_deadline_returns_partial_results(self, quiet_logger):
        release = threading.Event()

        class SlowProber(FakeProber):
            def probe(self, address, timeout_ms, cancel_event=None):
                if address == "10.0.0.2":
                    release.wait(5)
                return True

        scanner = make_scanner(quiet_logger, prober=SlowProber(), sweep_deadline_s=0.3)

        started = time.monotonic()
        try:
            found = scanner.discover_addresses_only("10.0.0", 1, 3, 200)
        finally:
            release.set()

        assert found == ["10.0.0.1", "10.0.0.3"]
        assert time.monotonic() - started < 3

    def test_invalid_range(self, quiet_logger):
        with pytest.raises(ValidationError):
            make_scanner(quiet_logger).discover_addresses_only("10.0.0", 9, 1, 200)


class TestDiscoverLocal:

    def test_sweeps_detected_prefix(self, quiet_logger, monkeypatch):
        monkeypatch.setattr(
            "network_monitor.core.network_scanner.detect_local_prefix", lambda: "172.16.4"
        )
        prober = FakeProber({"172.16.4.1": True})
        scanner = make_scanner(quiet_logger, prober=prober)

        devices = scanner.discover_local(100)

        assert [d.address for d in devices] == ["172.16.4.1"]
        probed = {address for address, _ in prober.calls}
        assert len(probed) == 254
        assert "172.16.4.0" not in probed and "172.16.4.255" not in probed


class TestCancellation:

    def test_discover_deadline_cuts_fingerprinting_short(self, quiet_logger):
        slow_ports = []
        lock = threading.Lock()

        def connect(address, port, timeout_ms):
            if address == "10.0.0.2":
                with lock:
                    slow_ports.append(port)
                time.sleep(0.05)
                return False
            return port == 22

        scanner = NetworkScanner(
            prober=FakeProber(default=True),
            port_prober=PortProber(connect=connect),
            resolver=FakeResolver(),
            logger=quiet_logger,
            fingerprint_deadline_s=0.3,
        )

        started = time.monotonic()
        devices = scanner.discover("10.0.0", 1, 2, 200)

        assert time.monotonic() - started < 2
        assert [d.address for d in devices] == ["10.0.0.1"]
        assert devices[0].open_ports == {22}

        time.sleep(0.2)
        with lock:
            probed = len(slow_ports)
        time.sleep(0.2)
        with lock:
            assert len(slow_ports) == probed
        assert probed < len(set(FULL_PORT_CATALOG))

    def test_interrupted_wait_cancels_running_tasks(self, quiet_logger, monkeypatch):
        running = threading.Event()
        saw_cancel = []

        class WaitingProber(FakeProber):
            def probe(self, address, timeout_ms, cancel_event=None):
                running.set()
                saw_cancel.append(cancel_event.wait(2))
                return True

        def interrupted_wait(futures, timeout=None):
            running.wait(2)
            raise KeyboardInterrupt

        monkeypatch.setattr("network_monitor.core.network_scanner.wait", interrupted_wait)
        scanner = make_scanner(quiet_logger, prober=WaitingProber())

        with pytest.raises(KeyboardInterrupt):
            scanner.discover("10.0.0", 1, 1, 200)

        deadline = time.monotonic() + 3
        while not saw_cancel and time.monotonic() < deadline:
            time.sleep(0.01)
        assert saw_cancel == [True]
