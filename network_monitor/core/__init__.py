"""
Core components for network monitoring functionality.
"""

from .data_models import (
    DeviceState,
    EventType,
    Device,
    DiscoveredDevice,
    AlertPolicy,
    MonitorEvent,
    UNRESOLVED_NAME
)
from .host_statistics import HostStatistics, StatisticsSnapshot, WINDOW_CAPACITY
from .device_classifier import DeviceClassifier, ClassificationRule

__all__ = [
    'DeviceState',
    'EventType',
    'Device',
    'DiscoveredDevice',
    'AlertPolicy',
    'MonitorEvent',
    'UNRESOLVED_NAME',
    'HostStatistics',
    'StatisticsSnapshot',
    'WINDOW_CAPACITY',
    'DeviceClassifier',
    'ClassificationRule'
]
