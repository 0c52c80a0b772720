"""
Device Classification for the Network Monitor.

This module guesses what a discovered host is from evidence already
collected by the scanner:
- Open TCP ports (ordered rules, first match wins)
- Reverse-resolved hostname keywords (fallback when ports say nothing)
- MAC address prefixes (manufacturer and WiFi band guesses)

Every function here is pure; no network I/O happens in this module. The
manufacturer and WiFi band guesses are rough heuristics with no authoritative
source behind them and must not be treated as ground truth.
"""

from dataclasses import dataclass, field
from typing import Iterable, List, Optional, Set, Tuple

from .data_models import DiscoveredDevice, UNKNOWN_LABEL, UNRESOLVED_NAME
from ..utils.network_utils import normalize_mac

# Device type labels
PRINTER = "Printer"
MOBILE_PHONE = "Mobile Phone"
WEB_SERVER = "Web Server"
LINUX_SERVER = "Linux/Unix Server"
WINDOWS_SERVER = "Windows Server"
WINDOWS_COMPUTER = "Windows Computer"
FTP_SERVER = "FTP Server"
MEDIA_DEVICE = "Media Device"
NETWORK_DEVICE = "Network Device"
COMPUTER = "Computer"
ROUTER = "Router/Access Point"

BAND_5GHZ = "5GHz"
BAND_GENERIC = "WiFi"


@dataclass
class ClassificationRule:
    """
    A rule mapping a set of indicator ports to a device type.

    Attributes:
        name: Human-readable name for the rule
        device_type: Device type label assigned on match
        os_guess: Operating system guess assigned on match
        port_patterns: The rule matches if any of these ports is open
    """
    name: str
    device_type: str
    os_guess: str
    port_patterns: Set[int] = field(default_factory=set)

    def matches(self, open_ports: Set[int]) -> bool:
        return bool(self.port_patterns & open_ports)


@dataclass
class NameKeywordGroup:
    """
    Hostname keywords indicating a device type.

    Attributes:
        device_type: Device type label assigned on match
        os_guess: Operating system guess assigned on match
        keywords: Lower-case substrings searched for in the hostname
    """
    device_type: str
    os_guess: str
    keywords: List[str]

    def matches(self, hostname_lower: str) -> bool:
        return any(keyword in hostname_lower for keyword in self.keywords)


class DeviceClassifier:
    """
    Heuristic device classifier.

    Rules are evaluated in list order and the first match wins, so more
    specific device kinds (printers, phones) are listed before generic
    server rules.
    """

    def __init__(self):
        """Initialize the classifier with the built-in rule tables."""
        self.port_rules = self._initialize_port_rules()
        self.name_groups = self._initialize_name_groups()
        self.manufacturer_prefixes = self._initialize_manufacturer_prefixes()
        self.modern_device_prefixes = ("60:", "7C:", "DC:", "2E:")

    def _initialize_port_rules(self) -> List[ClassificationRule]:
        """
        Initialize the ordered port rules.

        Returns:
            List of ClassificationRule objects in evaluation order
        """
        return [
            ClassificationRule(
                name="Printer Ports",
                device_type=PRINTER,
                os_guess="Network Printer",
                port_patterns={9100, 9101, 9102, 631, 515},  # JetDirect, IPP, LPD
            ),
            ClassificationRule(
                name="Mobile Device Ports",
                device_type=MOBILE_PHONE,
                os_guess="iOS/Android",
                port_patterns={62078, 62079, 62080, 5000, 5001},  # lockdownd, AirPlay
            ),
            ClassificationRule(
                name="Web Server Ports",
                device_type=WEB_SERVER,
                os_guess="Linux/Windows Server",
                port_patterns={80, 443, 8080},
            ),
            ClassificationRule(
                name="SSH",
                device_type=LINUX_SERVER,
                os_guess="Linux/Unix",
                port_patterns={22},
            ),
            ClassificationRule(
                name="Remote Desktop",
                device_type=WINDOWS_SERVER,
                os_guess="Windows Server",
                port_patterns={3389},
            ),
            ClassificationRule(
                name="Windows File Sharing",
                device_type=WINDOWS_COMPUTER,
                os_guess="Windows",
                port_patterns={445, 139},  # SMB, NetBIOS
            ),
            ClassificationRule(
                name="FTP",
                device_type=FTP_SERVER,
                os_guess=UNKNOWN_LABEL,
                port_patterns={21},
            ),
            # 5000/5001 are already claimed by the mobile rule; only 5002 reaches here
            ClassificationRule(
                name="Multimedia Ports",
                device_type=MEDIA_DEVICE,
                os_guess="DLNA/AirPlay",
                port_patterns={5000, 5001, 5002},
            ),
        ]

    def _initialize_name_groups(self) -> List[NameKeywordGroup]:
        """
        Initialize hostname keyword groups in evaluation order.

        Returns:
            List of NameKeywordGroup objects
        """
        return [
            NameKeywordGroup(
                device_type=PRINTER,
                os_guess="Network Printer",
                keywords=['printer', 'print', 'hp', 'canon', 'epson', 'brother',
                          'xerox', 'lexmark', 'samsung', 'konica'],
            ),
            NameKeywordGroup(
                device_type=MOBILE_PHONE,
                os_guess="iOS/Android",
                keywords=['iphone', 'android', 'phone', 'mobile', 'samsung',
                          'huawei', 'xiaomi', 'pixel'],
            ),
            NameKeywordGroup(
                device_type=COMPUTER,
                os_guess="Windows/Linux/Mac",
                keywords=['pc', 'laptop', 'desktop', 'computer', 'notebook',
                          'macbook'],
            ),
            NameKeywordGroup(
                device_type=ROUTER,
                os_guess="Router OS",
                keywords=['router', 'gateway', 'ap', 'access-point', 'tp-link',
                          'netgear', 'cisco', 'd-link'],
            ),
        ]

    def _initialize_manufacturer_prefixes(self) -> List[Tuple[str, str]]:
        """
        Initialize the MAC prefix table (first three octets).

        Returns:
            List of (prefix, manufacturer) pairs
        """
        return [
            ("00:50:56", "VMware"),
            ("00:0C:29", "VMware"),
            ("00:1B:21", "Xen"),
            ("00:1C:42", "Xen"),
            ("08:00:27", "VirtualBox"),
        ]

    def classify_by_ports(self, open_ports: Iterable[int], reachable: bool = True) -> Tuple[str, str]:
        """
        Classify a host from its open ports.

        Args:
            open_ports: Ports that accepted a connection
            reachable: Whether the host answered the reachability check

        Returns:
            Tuple of (device_type, os_guess); (Unknown, Unknown) if no rule fits
        """
        ports = set(open_ports)

        for rule in self.port_rules:
            if rule.matches(ports):
                return rule.device_type, rule.os_guess

        if not ports and reachable:
            return NETWORK_DEVICE, "Router/Switch/AP"

        return UNKNOWN_LABEL, UNKNOWN_LABEL

    def classify_by_name(self, hostname: Optional[str]) -> Tuple[str, str]:
        """
        Classify a host from its resolved name.

        Matching is a case-insensitive substring search; the first matching
        keyword group wins.

        Args:
            hostname: Resolved hostname, or the unresolved sentinel

        Returns:
            Tuple of (device_type, os_guess); (Unknown, Unknown) if nothing fits
        """
        if not hostname or hostname == UNRESOLVED_NAME:
            return UNKNOWN_LABEL, UNKNOWN_LABEL

        hostname_lower = hostname.lower()
        for group in self.name_groups:
            if group.matches(hostname_lower):
                return group.device_type, group.os_guess

        return UNKNOWN_LABEL, UNKNOWN_LABEL

    def classify_manufacturer(self, mac_address: Optional[str]) -> str:
        """
        Guess the manufacturer from the MAC prefix.

        Only a handful of virtualization vendors are known.

        Args:
            mac_address: MAC address, colon or dash separated

        Returns:
            Manufacturer name or "Unknown"
        """
        if not mac_address or len(mac_address) < 8:
            return UNKNOWN_LABEL

        prefix = normalize_mac(mac_address[:8])
        for known_prefix, manufacturer in self.manufacturer_prefixes:
            if prefix == known_prefix:
                return manufacturer
        return UNKNOWN_LABEL

    def classify_wifi_band(self, mac_address: Optional[str], address: str) -> str:
        """
        Guess the WiFi band a host is connected on.

        The access point cannot be queried from here, so this is a guess from
        MAC prefixes common on recent phones and laptops. The address is
        accepted for future heuristics and currently unused.

        Args:
            mac_address: MAC address if known
            address: IP address of the host

        Returns:
            "5GHz" for known modern prefixes, otherwise the generic "WiFi"
        """
        if mac_address:
            mac_upper = normalize_mac(mac_address)
            if mac_upper.startswith(self.modern_device_prefixes):
                return BAND_5GHZ
        return BAND_GENERIC

    def classify(self, device: DiscoveredDevice, reachable: bool = True) -> DiscoveredDevice:
        """
        Fill in the guesses of a discovered device from its collected evidence.

        Port rules are applied first; the hostname is only consulted when they
        yield Unknown.

        Args:
            device: Device with address, resolved name, MAC and ports populated
            reachable: Whether the host answered the reachability check

        Returns:
            The same device, with classification fields set
        """
        device_type, os_guess = self.classify_by_ports(device.open_ports, reachable)
        if device_type == UNKNOWN_LABEL:
            device_type, os_guess = self.classify_by_name(device.resolved_name)

        device.device_type = device_type
        device.os_guess = os_guess
        device.manufacturer = self.classify_manufacturer(device.mac_address)
        device.wifi_interface_guess = self.classify_wifi_band(device.mac_address, device.address)
        return device
