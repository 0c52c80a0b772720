"""
Tests for the reachability, port and host resolution probers.

Subprocess and socket calls are mocked so no traffic leaves the machine.
"""

import socket
import subprocess
import threading
from unittest.mock import MagicMock, patch

import pytest

from network_monitor.probes.base_prober import BaseProber
from network_monitor.probes.host_resolver import HostResolver
from network_monitor.probes.port_prober import FULL_PORT_CATALOG, QUICK_PORTS, PortProber
from network_monitor.probes.reachability import (
    CompositeProber,
    ReachabilityProber,
    TcpConnectProber,
    tcp_connect,
)

LINUX_REPLY = (
    "PING 10.0.0.1 (10.0.0.1) 56(84) bytes of data.\n"
    "64 bytes from 10.0.0.1: icmp_seq=1 ttl=64 time=0.512 ms\n\n"
    "--- 10.0.0.1 ping statistics ---\n"
    "1 packets transmitted, 1 received, 0% packet loss, time 0ms\n"
)

LINUX_UNREACHABLE = (
    "PING 10.0.0.9 (10.0.0.9) 56(84) bytes of data.\n"
    "From 10.0.0.2 icmp_seq=1 Destination Host Unreachable\n\n"
    "1 packets transmitted, 0 received, +1 errors, 100% packet loss\n"
)

WINDOWS_REPLY = (
    "Pinging 10.0.0.1 with 32 bytes of data:\n"
    "Reply from 10.0.0.1: bytes=32 time<1ms TTL=128\n\n"
    "Packets: Sent = 1, Received = 1, Lost = 0 (0% loss),\n"
)

WINDOWS_TIMEOUT = (
    "Pinging 10.0.0.9 with 32 bytes of data:\n"
    "Request timed out.\n\n"
    "Packets: Sent = 1, Received = 0, Lost = 1 (100% loss),\n"
)


class ExplodingProber(BaseProber):
    def _probe(self, address, timeout_ms, cancel_event=None):
        raise RuntimeError("boom")


class StaticProber(BaseProber):
    def __init__(self, answer):
        super().__init__()
        self.answer = answer
        self.calls = 0

    def _probe(self, address, timeout_ms, cancel_event=None):
        self.calls += 1
        return self.answer


class TestBaseProber:

    def test_exceptions_become_false(self):
        assert ExplodingProber().probe("10.0.0.1", 100) is False

    def test_invalid_arguments_are_false(self):
        prober = StaticProber(True)

        assert prober.probe("", 100) is False
        assert prober.probe("10.0.0.1", 0) is False
        assert prober.calls == 0

    def test_callable(self):
        assert StaticProber(True)("10.0.0.1", 100) is True


class TestReachabilityProber:

    def test_linux_command_uses_seconds(self):
        prober = ReachabilityProber(system="Linux")
        assert prober.build_command("10.0.0.1", 1500) == ["ping", "-c", "1", "-W", "2", "10.0.0.1"]
        assert prober.build_command("10.0.0.1", 200) == ["ping", "-c", "1", "-W", "1", "10.0.0.1"]

    def test_windows_and_macos_commands_use_milliseconds(self):
        assert ReachabilityProber(system="Windows").build_command("h", 800) == ["ping", "-n", "1", "-w", "800", "h"]
        assert ReachabilityProber(system="Darwin").build_command("h", 800) == ["ping", "-c", "1", "-W", "800", "h"]

    @pytest.mark.parametrize("system, output, expected", [
        ("linux", LINUX_REPLY, True),
        ("linux", LINUX_UNREACHABLE, False),
        ("linux", "", False),
        ("windows", WINDOWS_REPLY, True),
        ("windows", WINDOWS_TIMEOUT, False),
    ])
    def test_analyze_output(self, system, output, expected):
        prober = ReachabilityProber(system=system)
        assert prober.analyze_output(output, "10.0.0.1") is expected

    def test_probe_runs_ping(self):
        process = MagicMock()
        process.communicate.return_value = (LINUX_REPLY, None)
        with patch("network_monitor.probes.reachability.subprocess.Popen", return_value=process) as popen:
            assert ReachabilityProber(system="Linux").probe("10.0.0.1", 1000) is True

        assert popen.call_args[0][0] == ["ping", "-c", "1", "-W", "1", "10.0.0.1"]

    def test_missing_ping_is_false(self):
        with patch("network_monitor.probes.reachability.subprocess.Popen", side_effect=FileNotFoundError("ping")):
            assert ReachabilityProber(system="Linux").probe("10.0.0.1", 1000) is False

    def test_cancel_kills_running_ping(self):
        cancel = threading.Event()
        process = MagicMock()

        def communicate(timeout=None):
            if process.kill.called:
                return ("", None)
            cancel.set()
            raise subprocess.TimeoutExpired(cmd="ping", timeout=timeout)

        process.communicate.side_effect = communicate
        with patch("network_monitor.probes.reachability.subprocess.Popen", return_value=process):
            assert ReachabilityProber(system="Linux").probe("10.0.0.1", 60000, cancel) is False

        process.kill.assert_called_once()

    def test_wall_timeout_kills_ping(self):
        process = MagicMock()
        process.communicate.side_effect = [subprocess.TimeoutExpired(cmd="ping", timeout=0.05), ("", None)]

        assert ReachabilityProber._wait_for_output(process, 0, None) is None
        process.kill.assert_called_once()

    def test_already_cancelled_never_spawns(self):
        cancel = threading.Event()
        cancel.set()
        with patch("network_monitor.probes.reachability.subprocess.Popen") as popen:
            assert ReachabilityProber(system="Linux").probe("10.0.0.1", 1000, cancel) is False

        popen.assert_not_called()


class TestTcpProbers:

    def test_tcp_connect_accepted(self):
        with patch("network_monitor.probes.reachability.socket.create_connection") as create:
            assert tcp_connect("10.0.0.1", 80, 500) is True

        create.assert_called_once_with(("10.0.0.1", 80), timeout=0.5)

    @pytest.mark.parametrize("error", [ConnectionRefusedError(), socket.timeout(), socket.gaierror()])
    def test_tcp_connect_failures(self, error):
        with patch("network_monitor.probes.reachability.socket.create_connection", side_effect=error):
            assert tcp_connect("10.0.0.1", 80, 500) is False

    def test_tcp_connect_prober_uses_port(self):
        with patch("network_monitor.probes.reachability.tcp_connect", return_value=True) as connect:
            assert TcpConnectProber(port=8080).probe("web", 2000) is True

        connect.assert_called_once_with("web", 8080, 2000)

    def test_composite_stops_at_first_success(self):
        first, second, third = StaticProber(False), StaticProber(True), StaticProber(True)

        assert CompositeProber(first, second, third).probe("10.0.0.1", 100) is True
        assert (first.calls, second.calls, third.calls) == (1, 1, 0)

    def test_composite_all_fail(self):
        assert CompositeProber(StaticProber(False), ExplodingProber()).probe("10.0.0.1", 100) is False

    def test_composite_stops_when_cancelled(self):
        cancel = threading.Event()
        cancel.set()
        member = StaticProber(True)

        assert CompositeProber(member).probe("10.0.0.1", 100, cancel) is False
        assert member.calls == 0


class TestPortProber:

    def test_scan_ports_reports_open_ports(self):
        calls = []

        def connect(address, port, timeout_ms):
            calls.append(port)
            return port in (22, 80)

        prober = PortProber(connect=connect)

        assert prober.scan_ports("10.0.0.1", [22, 23, 80, 22], 300) == {22, 80}
        assert calls == [22, 23, 80]

    def test_connect_errors_are_closed_ports(self):
        def connect(address, port, timeout_ms):
            if port == 23:
                raise OSError("network down")
            return True

        assert PortProber(connect=connect).scan_ports("10.0.0.1", [22, 23], 300) == {22}

    def test_cancel_event_stops_scan(self):
        cancel = threading.Event()
        cancel.set()
        connect = MagicMock(return_value=True)

        assert PortProber(connect=connect).scan_ports("10.0.0.1", [22, 80], 300, cancel) == set()
        connect.assert_not_called()

    def test_verify_any_port_open_returns_on_first_hit(self):
        calls = []

        def connect(address, port, timeout_ms):
            calls.append((port, timeout_ms))
            return port == 445

        assert PortProber(connect=connect).verify_any_port_open("10.0.0.1") is True
        assert calls == [(80, 200), (443, 200), (22, 200), (445, 200)]

    def test_verify_any_port_open_all_closed(self):
        connect = MagicMock(return_value=False)

        assert PortProber(connect=connect).verify_any_port_open("10.0.0.1") is False
        assert connect.call_count == len(QUICK_PORTS)

    def test_scan_all_probes_each_catalog_port_once(self):
        seen = []
        timeouts = set()

        def connect(address, port, timeout_ms):
            seen.append(port)
            timeouts.add(timeout_ms)
            return port == 9109

        assert PortProber(connect=connect).scan_all("10.0.0.1") == {9109}
        assert timeouts == {300}
        assert len(seen) == len(set(seen)) == len(set(FULL_PORT_CATALOG))
        for port in (21, 445, 9100, 9109, 62078, 62090, 5000, 5005, 1723, 5905):
            assert port in seen


class TestHostResolver:

    def test_resolve_name(self):
        with patch("network_monitor.probes.host_resolver.socket.gethostbyaddr",
                   return_value=("printer.lan", [], ["10.0.0.5"])):
            assert HostResolver().resolve_name("10.0.0.5") == "printer.lan"

    def test_unresolved_name_returns_sentinel(self):
        resolver = HostResolver()
        with patch("network_monitor.probes.host_resolver.socket.gethostbyaddr",
                   side_effect=socket.herror("not found")):
            assert resolver.resolve_name("10.0.0.5") == "Unknown"
        with patch("network_monitor.probes.host_resolver.socket.gethostbyaddr",
                   return_value=("10.0.0.5", [], ["10.0.0.5"])):
            assert resolver.resolve_name("10.0.0.5") == "Unknown"

    def test_resolve_mac_from_arp_table(self):
        reader = MagicMock(return_value={"10.0.0.5": "aa-bb-cc-dd-ee-ff"})
        resolver = HostResolver(arp_table_reader=reader, clock=lambda: 100.0)

        with patch("network_monitor.probes.host_resolver.psutil.net_if_addrs", return_value={}):
            assert resolver.resolve_mac("10.0.0.5") == "AA:BB:CC:DD:EE:FF"
            assert resolver.resolve_mac("10.0.0.6") is None

        # table read once within its maximum age
        assert reader.call_count == 1

    def test_arp_table_failure_gives_none(self):
        resolver = HostResolver(arp_table_reader=MagicMock(side_effect=OSError("no arp")))

        with patch("network_monitor.probes.host_resolver.psutil.net_if_addrs", return_value={}):
            assert resolver.resolve_mac("10.0.0.5") is None

    def test_parse_ip_neigh(self):
        output = (
            "10.0.0.1 dev eth0 lladdr 00:11:22:33:44:55 REACHABLE\n"
            "10.0.0.7 dev eth0  FAILED\n"
        )
        assert HostResolver._parse_ip_neigh(output) == {"10.0.0.1": "00:11:22:33:44:55"}

    def test_parse_unix_arp(self):
        output = "gw.lan (10.0.0.1) at 00:11:22:33:44:55 [ether] on eth0\n? (10.0.0.8) at <incomplete> on eth0\n"
        assert HostResolver._parse_unix_arp(output) == {"10.0.0.1": "00:11:22:33:44:55"}

    def test_parse_windows_arp(self):
        output = (
            "Interface: 10.0.0.2 --- 0x4\n"
            "  Internet Address      Physical Address      Type\n"
            "  10.0.0.1              00-11-22-33-44-55     dynamic\n"
        )
        assert HostResolver._parse_windows_arp(output) == {"10.0.0.1": "00-11-22-33-44-55"}
