"""
Network utility functions for address composition and validation.

This module provides helper functions for building scan targets from a
three-octet network prefix, validating addresses and MAC strings, and
detecting the prefix of the local private network.
"""

import ipaddress
import re
import socket
from typing import List, Optional

import psutil

from .error_handler import ValidationError

DEFAULT_PREFIX = "192.168.1"

_MAC_PATTERN = re.compile(r'^([0-9A-Fa-f]{2}[:-]){5}([0-9A-Fa-f]{2})$')


def is_valid_ip(ip_address: str) -> bool:
    """
    Check if a string represents a valid IPv4 address.

    Args:
        ip_address: String to validate as IPv4 address

    Returns:
        bool: True if valid IPv4 address, False otherwise
    """
    try:
        ipaddress.IPv4Address(ip_address)
        return True
    except (ipaddress.AddressValueError, ValueError):
        return False


def is_valid_mac(mac: Optional[str]) -> bool:
    """Check if string is a valid MAC address (colon or dash separated)."""
    if not mac or len(mac) != 17:
        return False
    return bool(_MAC_PATTERN.match(mac))


def normalize_mac(mac: str) -> str:
    """Return the MAC upper-cased with colon separators."""
    return mac.replace('-', ':').upper()


def is_valid_prefix(network_prefix: str) -> bool:
    """
    Check if a string is a three-octet network prefix such as "192.168.1".

    Args:
        network_prefix: Prefix to validate

    Returns:
        bool: True if the prefix plus any host octet forms a valid address
    """
    if not isinstance(network_prefix, str):
        return False
    parts = network_prefix.split('.')
    if len(parts) != 3:
        return False
    return is_valid_ip(f"{network_prefix}.0")


def validate_range(network_prefix: str, start_octet: int, end_octet: int) -> None:
    """
    Validate scan range arguments.

    Raises:
        ValidationError: If the prefix is malformed or the octet bounds are
            outside 0-255 or inverted
    """
    if not is_valid_prefix(network_prefix):
        raise ValidationError(f"Invalid network prefix: {network_prefix!r}")
    for name, value in (("start_octet", start_octet), ("end_octet", end_octet)):
        if isinstance(value, bool) or not isinstance(value, int):
            raise ValidationError(f"{name} must be an integer, got {value!r}")
        if not 0 <= value <= 255:
            raise ValidationError(f"{name} must be between 0 and 255, got {value}")
    if start_octet > end_octet:
        raise ValidationError(
            f"start_octet {start_octet} is greater than end_octet {end_octet}"
        )


def compose_addresses(network_prefix: str, start_octet: int, end_octet: int) -> List[str]:
    """
    Build the list of addresses covered by a prefix and an inclusive octet range.

    Args:
        network_prefix: Three-octet prefix (e.g., "192.168.1")
        start_octet: First host octet
        end_octet: Last host octet (inclusive)

    Returns:
        List[str]: Addresses in ascending order

    Raises:
        ValidationError: If the arguments are invalid
    """
    validate_range(network_prefix, start_octet, end_octet)
    return [f"{network_prefix}.{octet}" for octet in range(start_octet, end_octet + 1)]


def address_sort_key(address: str):
    """Sort key ordering IPv4 addresses numerically and anything else after them."""
    try:
        return (0, int(ipaddress.IPv4Address(address)))
    except (ipaddress.AddressValueError, ValueError):
        return (1, address)


def detect_local_prefix(default: str = DEFAULT_PREFIX) -> str:
    """
    Detect the three-octet prefix of the first private IPv4 interface address.

    Loopback and down interfaces are skipped.

    Args:
        default: Prefix returned when no private address is found

    Returns:
        str: Network prefix such as "192.168.1"
    """
    try:
        stats = psutil.net_if_stats()
        for interface_name, addresses in psutil.net_if_addrs().items():
            interface_stats = stats.get(interface_name)
            if interface_stats is not None and not interface_stats.isup:
                continue
            for address in addresses:
                if address.family != socket.AF_INET:
                    continue
                try:
                    ip = ipaddress.IPv4Address(address.address)
                except (ipaddress.AddressValueError, ValueError):
                    continue
                if ip.is_loopback or not ip.is_private:
                    continue
                return address.address.rsplit('.', 1)[0]
    except (OSError, AttributeError):
        pass
    return default
