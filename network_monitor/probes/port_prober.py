"""
TCP port probing for service fingerprinting.

PortProber connects to a list of candidate ports on one host and reports the
ones that accepted. It is used both as a reachability fallback for hosts that
drop ICMP (printers and phones often do) and to build a service fingerprint
for the device classifier.
"""

import threading
from typing import Callable, Iterable, Optional, Set, Tuple

from .reachability import tcp_connect
from ..utils.logger import Logger

# Short list tried when a host ignores ping
QUICK_PORTS: Tuple[int, ...] = (80, 443, 22, 445, 9100, 631, 515, 62078, 5000)

FULL_PORT_CATALOG: Tuple[int, ...] = (
    # Servers
    21, 22, 23, 25, 53, 80, 110, 143, 443, 445, 3389, 8080, 8443,
    # Printers
    515, 631, 9100, 9101, 9102, 9103, 9104, 9105, 9106, 9107, 9108, 9109,
    # Network services
    135, 139, 548, 993, 995,
    # Mobile devices
    62078, 62079, 62080, 62081, 62082, 62083, 62084, 62085, 62086, 62087, 62088, 62089, 62090,
    # Multimedia (DLNA, AirPlay)
    5000, 5001, 5002, 5003, 5004, 5005,
    # Other common services
    1723, 3306, 5432, 5900, 5901, 5902, 5903, 5904, 5905,
)

QUICK_PORT_TIMEOUT_MS = 200
PORT_TIMEOUT_MS = 300

ConnectFunc = Callable[[str, int, int], bool]


def _unique(ports: Iterable[int]):
    seen = set()
    for port in ports:
        if port not in seen:
            seen.add(port)
            yield port


class PortProber:
    """
    Sequential TCP port prober for a single host.

    Ports are probed one after another and independently; closed, filtered
    and timed-out ports are left out of the result without raising. The
    prober holds no per-host state, so one instance serves every scan worker.
    """

    def __init__(self, connect: Optional[ConnectFunc] = None, logger: Optional[Logger] = None):
        """
        Initialize the port prober.

        Args:
            connect: Function (address, port, timeout_ms) -> bool performing
                one connect-and-close; defaults to a plain TCP connect
            logger: Logger instance for debug output
        """
        self._connect = connect or tcp_connect
        self.logger = logger

    def scan_ports(
        self,
        address: str,
        ports: Iterable[int],
        timeout_ms_per_port: int,
        cancel_event: Optional[threading.Event] = None,
    ) -> Set[int]:
        """
        Probe every port and collect the ones that accepted a connection.

        Args:
            address: Target host
            ports: Ports to probe, in order; duplicates are probed once
            timeout_ms_per_port: Connect timeout for each port
            cancel_event: When set, probing stops and the ports found so far
                are returned

        Returns:
            Set of open ports
        """
        open_ports: Set[int] = set()
        for port in _unique(ports):
            if cancel_event is not None and cancel_event.is_set():
                break
            if self._try_port(address, port, timeout_ms_per_port):
                open_ports.add(port)

        if open_ports and self.logger:
            self.logger.debug(f"{address}: open ports {sorted(open_ports)}")
        return open_ports

    def verify_any_port_open(
        self,
        address: str,
        ports: Iterable[int] = QUICK_PORTS,
        timeout_ms: int = QUICK_PORT_TIMEOUT_MS,
        cancel_event: Optional[threading.Event] = None,
    ) -> bool:
        """
        Check whether at least one port accepts a connection.

        Returns as soon as one port answers.

        Args:
            address: Target host
            ports: Ports to try, in order
            timeout_ms: Connect timeout for each port
            cancel_event: When set, no further ports are tried

        Returns:
            True if any port accepted a connection
        """
        for port in _unique(ports):
            if cancel_event is not None and cancel_event.is_set():
                return False
            if self._try_port(address, port, timeout_ms):
                return True
        return False

    def scan_all(
        self,
        address: str,
        ports: Iterable[int] = FULL_PORT_CATALOG,
        timeout_ms: int = PORT_TIMEOUT_MS,
        cancel_event: Optional[threading.Event] = None,
    ) -> Set[int]:
        """
        Probe the full port catalog to build the host's service fingerprint.

        Args:
            address: Target host
            ports: Port catalog (defaults to FULL_PORT_CATALOG)
            timeout_ms: Connect timeout for each port
            cancel_event: When set, probing stops early

        Returns:
            Set of open ports
        """
        return self.scan_ports(address, ports, timeout_ms, cancel_event)

    def _try_port(self, address: str, port: int, timeout_ms: int) -> bool:
        try:
            return bool(self._connect(address, port, timeout_ms))
        except Exception as e:
            if self.logger:
                self.logger.debug(f"Port probe {address}:{port} failed: {e}")
            return False
