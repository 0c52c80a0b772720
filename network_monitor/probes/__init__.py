"""
Probe implementations for the Network Monitor.

This package contains the prober interface, the reachability probers
(system ping, TCP connect), the TCP port prober used for fingerprinting and
the hostname/MAC resolver.
"""

from .base_prober import BaseProber
from .reachability import ReachabilityProber, TcpConnectProber, CompositeProber, tcp_connect
from .port_prober import PortProber, QUICK_PORTS, FULL_PORT_CATALOG
from .host_resolver import HostResolver

__all__ = [
    'BaseProber',
    'ReachabilityProber',
    'TcpConnectProber',
    'CompositeProber',
    'tcp_connect',
    'PortProber',
    'QUICK_PORTS',
    'FULL_PORT_CATALOG',
    'HostResolver'
]
