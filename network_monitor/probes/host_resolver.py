"""
Name and hardware address resolution for discovered hosts.

Reverse DNS lookups and MAC resolution are best effort: an unresolved name
becomes the UNRESOLVED_NAME sentinel and an unknown MAC becomes None, never
an exception. MAC addresses come from this host's own interfaces (psutil)
or from the system neighbour/ARP table, so only hosts on the local segment
that have recently exchanged traffic with us can be resolved.
"""

import platform
import socket
import subprocess
import threading
import time
from typing import Callable, Dict, Optional

import psutil

from ..core.data_models import UNRESOLVED_NAME
from ..utils.logger import Logger
from ..utils.network_utils import is_valid_ip, is_valid_mac, normalize_mac

ARP_TABLE_MAX_AGE_S = 5.0


class HostResolver:
    """
    Resolves hostnames and MAC addresses for scan hits.

    The neighbour table is read at most once every ARP_TABLE_MAX_AGE_S
    seconds and shared between scan workers.
    """

    def __init__(
        self,
        logger: Optional[Logger] = None,
        arp_table_reader: Optional[Callable[[], Dict[str, str]]] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        """
        Initialize the resolver.

        Args:
            logger: Logger instance for debug output
            arp_table_reader: Function returning {ip: mac}; defaults to
                parsing the system ARP table
            clock: Monotonic time source for the table cache
        """
        self.logger = logger
        self._read_arp_table = arp_table_reader or self._get_arp_table
        self._clock = clock
        self._lock = threading.Lock()
        self._arp_table: Dict[str, str] = {}
        self._arp_table_read_at: Optional[float] = None

    def resolve_name(self, address: str) -> str:
        """
        Reverse-resolve an address.

        Args:
            address: IP address

        Returns:
            Hostname, or UNRESOLVED_NAME if there is no usable PTR record
        """
        try:
            hostname = socket.gethostbyaddr(address)[0]
        except (socket.herror, socket.gaierror, OSError, UnicodeError):
            return UNRESOLVED_NAME
        if not hostname or hostname == address:
            return UNRESOLVED_NAME
        return hostname

    def resolve_mac(self, address: str) -> Optional[str]:
        """
        Find the MAC address for an IP address.

        Args:
            address: IP address

        Returns:
            Upper-case colon separated MAC address, or None when unavailable
        """
        mac = self._local_interface_mac(address)
        if mac:
            return mac

        with self._lock:
            now = self._clock()
            if self._arp_table_read_at is None or now - self._arp_table_read_at > ARP_TABLE_MAX_AGE_S:
                try:
                    self._arp_table = self._read_arp_table()
                except Exception as e:
                    self._log_debug(f"Failed to read ARP table: {e}")
                    self._arp_table = {}
                self._arp_table_read_at = now
            mac = self._arp_table.get(address)

        return normalize_mac(mac) if mac else None

    def _local_interface_mac(self, address: str) -> Optional[str]:
        """Return the MAC of this host's interface owning the address, if any."""
        try:
            interfaces = psutil.net_if_addrs()
        except (OSError, AttributeError):
            return None

        for addresses in interfaces.values():
            if not any(a.family == socket.AF_INET and a.address == address for a in addresses):
                continue
            for a in addresses:
                if a.family == psutil.AF_LINK and is_valid_mac(a.address):
                    return normalize_mac(a.address)
        return None

    def _get_arp_table(self) -> Dict[str, str]:
        """
        Read the system ARP table to map IP addresses to MAC addresses.

        Returns:
            Dictionary mapping IP addresses to MAC addresses
        """
        if platform.system().lower() == "windows":
            return self._parse_windows_arp(self._run(["arp", "-a"]))

        table = self._parse_ip_neigh(self._run(["ip", "neigh"]))
        if not table:
            table = self._parse_unix_arp(self._run(["arp", "-a"]))
        self._log_debug(f"ARP table contains {len(table)} entries")
        return table

    def _run(self, cmd) -> str:
        try:
            result = subprocess.run(cmd, capture_output=True, text=True, timeout=10)
        except (subprocess.TimeoutExpired, FileNotFoundError, OSError):
            return ""
        return result.stdout if result.returncode == 0 else ""

    @staticmethod
    def _parse_ip_neigh(output: str) -> Dict[str, str]:
        # Format: "192.168.1.1 dev eth0 lladdr 00:11:22:33:44:55 REACHABLE"
        table = {}
        for line in output.splitlines():
            parts = line.split()
            if 'lladdr' not in parts:
                continue
            mac_idx = parts.index('lladdr') + 1
            if mac_idx < len(parts) and is_valid_ip(parts[0]) and is_valid_mac(parts[mac_idx]):
                table[parts[0]] = parts[mac_idx]
        return table

    @staticmethod
    def _parse_unix_arp(output: str) -> Dict[str, str]:
        # Format: "hostname (192.168.1.1) at 00:11:22:33:44:55 [ether] on eth0"
        table = {}
        for line in output.splitlines():
            if '(' in line and ')' in line and ' at ' in line:
                ip_part = line.split('(')[1].split(')')[0]
                mac_part = line.split(' at ')[1].split()[0]
                if is_valid_ip(ip_part) and is_valid_mac(mac_part):
                    table[ip_part] = mac_part
        return table

    @staticmethod
    def _parse_windows_arp(output: str) -> Dict[str, str]:
        # Format: "192.168.1.1          00-11-22-33-44-55     dynamic"
        table = {}
        for line in output.splitlines():
            parts = line.split()
            if len(parts) >= 2 and is_valid_ip(parts[0]) and is_valid_mac(parts[1]):
                table[parts[0]] = parts[1]
        return table

    def _log_debug(self, message: str) -> None:
        if self.logger:
            self.logger.debug(message)
