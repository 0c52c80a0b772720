"""
Core data models and enums for the Network Monitor.

This module defines the data structures shared by the scanner, the health
monitor and the alerting layer: monitored devices, devices found by a scan,
alert thresholds and monitor events.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Set
from datetime import datetime

from ..utils.error_handler import ValidationError

UNKNOWN_LABEL = "Unknown"

# Reverse name resolution sentinel for addresses without a PTR record
UNRESOLVED_NAME = "Unknown"


class DeviceState(Enum):
    """Enumeration of states a monitored device can be in."""
    UNKNOWN = "UNKNOWN"
    ACTIVE = "ACTIVE"
    INACTIVE = "INACTIVE"
    ERROR = "ERROR"


class EventType(Enum):
    """Enumeration of events emitted by the health monitor."""
    CHECK_OK = "CHECK_OK"
    CHECK_FAILED = "CHECK_FAILED"
    DEVICE_ADDED = "DEVICE_ADDED"
    DEVICE_REMOVED = "DEVICE_REMOVED"
    ALERT = "ALERT"
    MONITOR_STARTED = "MONITOR_STARTED"
    MONITOR_STOPPED = "MONITOR_STOPPED"
    REPORT_TRIGGERED = "REPORT_TRIGGERED"


@dataclass(eq=False)
class Device:
    """
    A device registered with the health monitor.

    Identity is the caller supplied id, which is not necessarily the address.
    Two devices with the same id are the same entity.

    Attributes:
        id: Caller supplied identifier
        address: Hostname or IP address probed by the monitor
        state: Result of the latest probe
    """
    id: str
    address: str
    state: DeviceState = DeviceState.UNKNOWN

    def __eq__(self, other) -> bool:
        if not isinstance(other, Device):
            return NotImplemented
        return self.id == other.id

    def __hash__(self) -> int:
        return hash(self.id)


@dataclass
class DiscoveredDevice:
    """
    Information about a host found by a network scan.

    Instances are built once per responding address during a scan and are
    not modified afterwards.

    Attributes:
        address: IP address of the host
        resolved_name: Reverse-resolved hostname or UNRESOLVED_NAME
        state_label: Human readable state ("Active" for every scan hit)
        mac_address: MAC address when it could be resolved
        open_ports: Ports that accepted a TCP connection
        manufacturer: Manufacturer guess from the MAC prefix
        device_type: Device type guess from ports or hostname
        os_guess: Operating system guess
        response_time_ms: Time taken to confirm the host was up
        wifi_interface_guess: WiFi band guess; an approximation only
        connection_type_guess: Addressing mode guess
    """
    address: str
    resolved_name: str = UNRESOLVED_NAME
    state_label: str = "Active"
    mac_address: Optional[str] = None
    open_ports: Set[int] = field(default_factory=set)
    manufacturer: str = UNKNOWN_LABEL
    device_type: str = UNKNOWN_LABEL
    os_guess: str = UNKNOWN_LABEL
    response_time_ms: int = 0
    wifi_interface_guess: str = UNKNOWN_LABEL
    connection_type_guess: str = "DHCP-IP"

    def add_open_port(self, port: int) -> None:
        self.open_ports.add(port)

    def ports_as_text(self) -> str:
        if not self.open_ports:
            return "None"
        return ", ".join(str(port) for port in sorted(self.open_ports))


@dataclass(frozen=True)
class AlertPolicy:
    """
    Alert thresholds supplied when the monitor is created.

    Attributes:
        availability_threshold_percent: Alert when availability drops below this
        max_response_time_ms: Alert when the latest response time exceeds this
    """
    availability_threshold_percent: float = 99.0
    max_response_time_ms: int = 2000

    def __post_init__(self):
        threshold = self.availability_threshold_percent
        if isinstance(threshold, bool) or not isinstance(threshold, (int, float)):
            raise ValidationError(f"Invalid availability threshold: {threshold!r}")
        if not 0.0 <= threshold <= 100.0:
            raise ValidationError(
                f"Availability threshold must be between 0 and 100, got {threshold}"
            )
        max_time = self.max_response_time_ms
        if isinstance(max_time, bool) or not isinstance(max_time, int) or max_time < 0:
            raise ValidationError(
                f"Maximum response time must be a non-negative integer, got {max_time!r}"
            )


@dataclass
class MonitorEvent:
    """
    An event emitted by the health monitor.

    Attributes:
        event_type: Kind of event
        description: Human readable description
        response_time_ms: Measured response time, when the event is a check
        timestamp: When the event happened
    """
    event_type: EventType
    description: str
    response_time_ms: float = 0.0
    timestamp: datetime = field(default_factory=datetime.now)

    def __str__(self) -> str:
        return (
            f"[{self.timestamp.strftime('%Y-%m-%d %H:%M:%S')}] "
            f"{self.event_type.value} - {self.description} "
            f"(Response time: {self.response_time_ms:.2f}ms)"
        )
