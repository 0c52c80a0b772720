"""
Reachability probers.

ReachabilityProber sends one ICMP echo through the operating system's ping
command (raw sockets would need elevated privileges) and inspects the output
rather than trusting the return code alone. TcpConnectProber confirms a host
by opening and closing a TCP connection to one port. CompositeProber chains
probers and succeeds on the first positive answer.
"""

import math
import platform
import socket
import subprocess
import threading
import time
from typing import List, Optional

from .base_prober import BaseProber
from ..utils.logger import Logger

# How often a running ping checks the cancellation event
CANCEL_POLL_S = 0.05

_UNIX_FAILURE_INDICATORS = [
    "destination host unreachable",
    "no route to host",
    "network is unreachable",
    "name or service not known",
    "temporary failure in name resolution",
    "unknown host",
]

_WINDOWS_FAILURE_INDICATORS = [
    "destination host unreachable",
    "request timed out",
    "could not find host",
    "ping request could not find host",
    "general failure",
    "transmit failed",
    "unable to contact ip driver",
]


class ReachabilityProber(BaseProber):
    """
    ICMP echo prober backed by the system ping command.

    The command line is chosen per platform:
    Windows ``ping -n 1 -w <ms>``, macOS ``ping -c 1 -W <ms>`` and other
    Unix systems ``ping -c 1 -W <seconds>``.
    """

    def __init__(self, logger: Optional[Logger] = None, system: Optional[str] = None):
        """
        Initialize the prober.

        Args:
            logger: Logger instance for debug output
            system: Platform name override (defaults to platform.system())
        """
        super().__init__(logger)
        self.system = (system or platform.system()).lower()

    def build_command(self, address: str, timeout_ms: int) -> List[str]:
        """
        Build the ping command line for this platform.

        Args:
            address: Target address
            timeout_ms: Reply timeout in milliseconds

        Returns:
            Command as an argument list
        """
        if self.system == "windows":
            return ["ping", "-n", "1", "-w", str(timeout_ms), address]
        if self.system == "darwin":
            return ["ping", "-c", "1", "-W", str(timeout_ms), address]
        seconds = max(1, math.ceil(timeout_ms / 1000))
        return ["ping", "-c", "1", "-W", str(seconds), address]

    def _probe(
        self, address: str, timeout_ms: int, cancel_event: Optional[threading.Event] = None
    ) -> bool:
        cmd = self.build_command(address, timeout_ms)
        wall_timeout = max(1.0, timeout_ms / 1000) + 2

        try:
            process = subprocess.Popen(
                cmd,
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
                text=True
            )
        except FileNotFoundError:
            self._log_debug("ping command not available")
            return False

        output = self._wait_for_output(process, wall_timeout, cancel_event)
        if output is None:
            self._log_debug(f"Ping timeout or cancelled: {address}")
            return False

        is_alive = self.analyze_output(output, address)
        if is_alive:
            self._log_debug(f"Ping successful: {address}")
        return is_alive

    @staticmethod
    def _wait_for_output(
        process: subprocess.Popen, wall_timeout: float, cancel_event: Optional[threading.Event]
    ) -> Optional[str]:
        """
        Collect the ping output, killing the process on timeout or cancellation.

        Returns:
            The combined output, or None when the process was killed
        """
        deadline = time.monotonic() + wall_timeout
        while True:
            try:
                output, _ = process.communicate(timeout=CANCEL_POLL_S)
                return output or ""
            except subprocess.TimeoutExpired:
                cancelled = cancel_event is not None and cancel_event.is_set()
                if cancelled or time.monotonic() >= deadline:
                    process.kill()
                    process.communicate()
                    return None

    def analyze_output(self, output: str, address: str) -> bool:
        """
        Analyze ping output to determine if the host actually replied.

        Gateways answering "destination host unreachable" make ping exit 0 on
        some systems, so the reply lines are inspected instead.

        Args:
            output: Raw ping output
            address: Target address

        Returns:
            bool: True if the host replied
        """
        if not output:
            return False

        output_lower = output.lower()

        if self.system == "windows":
            for indicator in _WINDOWS_FAILURE_INDICATORS:
                if indicator in output_lower:
                    return False

            if "received = 0" in output_lower:
                return False
            if "received = 1" in output_lower:
                return True

            success_indicators = [f"reply from {address}", "time<1ms", "time=", "ttl="]
            return any(indicator in output_lower for indicator in success_indicators)

        for indicator in _UNIX_FAILURE_INDICATORS:
            if indicator in output_lower:
                return False

        if "1 packets transmitted, 0" in output_lower:
            return False
        if "1 packets transmitted, 1" in output_lower:
            return True

        success_indicators = ["bytes from", "time=", "ttl="]
        return any(indicator in output_lower for indicator in success_indicators)


class TcpConnectProber(BaseProber):
    """
    Prober that confirms a host by connecting to one TCP port.
    """

    def __init__(self, port: int = 80, logger: Optional[Logger] = None):
        """
        Initialize the prober.

        Args:
            port: TCP port to connect to
            logger: Logger instance for debug output
        """
        super().__init__(logger)
        self.port = port

    def _probe(self, address: str, timeout_ms: int, cancel_event: Optional[threading.Event] = None) -> bool:
        return tcp_connect(address, self.port, timeout_ms)


class CompositeProber(BaseProber):
    """
    Prober that asks each member in order and succeeds on the first success.
    """

    def __init__(self, *probers: BaseProber, logger: Optional[Logger] = None):
        super().__init__(logger)
        self.probers = list(probers)

    def _probe(self, address: str, timeout_ms: int, cancel_event: Optional[threading.Event] = None) -> bool:
        return any(prober.probe(address, timeout_ms, cancel_event) for prober in self.probers)


def tcp_connect(address: str, port: int, timeout_ms: int) -> bool:
    """
    Open and close one TCP connection.

    Args:
        address: Target host
        port: Target port
        timeout_ms: Connect timeout in milliseconds

    Returns:
        True if the connection was accepted; refused, unreachable, timed out
        and unresolvable targets all return False
    """
    try:
        with socket.create_connection((address, port), timeout=timeout_ms / 1000):
            return True
    except OSError:
        return False
