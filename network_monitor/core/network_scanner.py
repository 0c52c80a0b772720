"""
Network Scanner for the Network Monitor.

This module sweeps an address range concurrently. Every address is checked
with the reachability prober, falling back to a quick TCP port check for
hosts that drop ICMP. Hosts that answer are fingerprinted (name, MAC, open
ports) and classified. The sweep runs in a thread pool with a soft deadline:
when it expires, pending work is cancelled and whatever was collected so far
is returned.
"""

import threading
import time
from concurrent.futures import ThreadPoolExecutor, wait
from typing import Callable, List, Optional

from .data_models import DiscoveredDevice
from .device_classifier import DeviceClassifier
from ..probes.base_prober import BaseProber
from ..probes.reachability import ReachabilityProber
from ..probes.port_prober import PortProber, QUICK_PORT_TIMEOUT_MS, PORT_TIMEOUT_MS
from ..probes.host_resolver import HostResolver
from ..utils.logger import Logger, get_logger
from ..utils.error_handler import (
    ErrorHandler, ErrorContext, ErrorType, ErrorSeverity, ValidationError
)
from ..utils.network_utils import (
    compose_addresses, address_sort_key, detect_local_prefix
)

SWEEP_WORKERS = 50
FINGERPRINT_WORKERS = 100
SWEEP_DEADLINE_S = 30.0
FINGERPRINT_DEADLINE_S = 90.0


class NetworkScanner:
    """
    Concurrent host discovery and fingerprinting over a /24 address range.

    One scanner instance may run several scans one after another; every call
    owns its own pool, result list, lock and cancellation event.
    """

    def __init__(
        self,
        prober: Optional[BaseProber] = None,
        port_prober: Optional[PortProber] = None,
        resolver: Optional[HostResolver] = None,
        classifier: Optional[DeviceClassifier] = None,
        logger: Optional[Logger] = None,
        error_handler: Optional[ErrorHandler] = None,
        sweep_workers: int = SWEEP_WORKERS,
        fingerprint_workers: int = FINGERPRINT_WORKERS,
        sweep_deadline_s: float = SWEEP_DEADLINE_S,
        fingerprint_deadline_s: float = FINGERPRINT_DEADLINE_S,
        quick_port_timeout_ms: int = QUICK_PORT_TIMEOUT_MS,
        port_timeout_ms: int = PORT_TIMEOUT_MS,
        clock: Callable[[], float] = time.monotonic,
    ):
        """
        Initialize the network scanner.

        Args:
            prober: Reachability prober (defaults to the system ping prober)
            port_prober: TCP port prober used as fallback and for fingerprints
            resolver: Hostname and MAC resolver
            classifier: Device classifier
            logger: Logger instance for output
            error_handler: Error accounting for failed scan tasks
            sweep_workers: Pool size for address-only sweeps
            fingerprint_workers: Pool size for full discovery
            sweep_deadline_s: Soft deadline for address-only sweeps
            fingerprint_deadline_s: Soft deadline for full discovery
            quick_port_timeout_ms: Per-port timeout of the fallback check
            port_timeout_ms: Per-port timeout of the fingerprint scan
            clock: Monotonic time source used for latency measurement
        """
        self.logger = logger or get_logger(__name__)
        self.error_handler = error_handler or ErrorHandler(self.logger)
        self.prober = prober or ReachabilityProber(self.logger)
        self.port_prober = port_prober or PortProber(logger=self.logger)
        self.resolver = resolver or HostResolver(self.logger)
        self.classifier = classifier or DeviceClassifier()

        self.sweep_workers = sweep_workers
        self.fingerprint_workers = fingerprint_workers
        self.sweep_deadline_s = sweep_deadline_s
        self.fingerprint_deadline_s = fingerprint_deadline_s
        self.quick_port_timeout_ms = quick_port_timeout_ms
        self.port_timeout_ms = port_timeout_ms
        self._clock = clock

    @classmethod
    def from_config(cls, scan_config, **kwargs) -> "NetworkScanner":
        """
        Build a scanner from a ScanConfig.

        Args:
            scan_config: Scan configuration section
            **kwargs: Collaborators passed through to the constructor

        Returns:
            Configured NetworkScanner
        """
        return cls(
            sweep_workers=scan_config.sweep_workers,
            fingerprint_workers=scan_config.fingerprint_workers,
            sweep_deadline_s=scan_config.sweep_deadline_s,
            fingerprint_deadline_s=scan_config.fingerprint_deadline_s,
            quick_port_timeout_ms=scan_config.quick_port_timeout_ms,
            port_timeout_ms=scan_config.port_timeout_ms,
            **kwargs
        )

    def discover(
        self, network_prefix: str, start_octet: int, end_octet: int, timeout_ms: int
    ) -> List[DiscoveredDevice]:
        """
        Find and fingerprint every responding host in the range.

        Args:
            network_prefix: Three-octet prefix (e.g., "192.168.1")
            start_octet: First host octet
            end_octet: Last host octet (inclusive)
            timeout_ms: Reachability timeout per host

        Returns:
            Discovered devices sorted by address; partial when the deadline
            expired

        Raises:
            ValidationError: If the range or timeout is invalid
        """
        addresses = self._prepare(network_prefix, start_octet, end_octet, timeout_ms)
        self.logger.info(
            f"Scanning {len(addresses)} addresses in {network_prefix}.{start_octet}-{end_octet}"
        )

        devices = self._run_pool(
            addresses,
            lambda address, cancel_event: self._fingerprint_address(address, timeout_ms, cancel_event),
            self.fingerprint_workers,
            self.fingerprint_deadline_s,
            "discover",
        )
        devices.sort(key=lambda device: address_sort_key(device.address))

        self.logger.success(f"Scan completed: {len(devices)} devices found")
        return devices

    def discover_addresses_only(
        self, network_prefix: str, start_octet: int, end_octet: int, timeout_ms: int
    ) -> List[str]:
        """
        Find responding addresses without fingerprinting them.

        Args:
            network_prefix: Three-octet prefix (e.g., "192.168.1")
            start_octet: First host octet
            end_octet: Last host octet (inclusive)
            timeout_ms: Reachability timeout per host

        Returns:
            Responding addresses sorted numerically

        Raises:
            ValidationError: If the range or timeout is invalid
        """
        addresses = self._prepare(network_prefix, start_octet, end_octet, timeout_ms)
        self.logger.info(f"Quick sweep of {len(addresses)} addresses")

        def check(address: str, cancel_event: threading.Event) -> Optional[str]:
            if cancel_event.is_set():
                return None
            return address if self.prober.probe(address, timeout_ms, cancel_event=cancel_event) else None

        found = self._run_pool(
            addresses, check, self.sweep_workers, self.sweep_deadline_s, "discover_addresses_only"
        )
        found.sort(key=address_sort_key)

        self.logger.success(f"Quick sweep completed: {len(found)} addresses responding")
        return found

    def discover_local(self, timeout_ms: int) -> List[DiscoveredDevice]:
        """
        Run discover() over hosts 1-254 of the local private /24 network.

        Args:
            timeout_ms: Reachability timeout per host

        Returns:
            Discovered devices sorted by address
        """
        network_prefix = detect_local_prefix()
        self.logger.info(f"Local network prefix: {network_prefix}")
        return self.discover(network_prefix, 1, 254, timeout_ms)

    def _prepare(self, network_prefix: str, start_octet: int, end_octet: int, timeout_ms: int) -> List[str]:
        if isinstance(timeout_ms, bool) or not isinstance(timeout_ms, int) or timeout_ms <= 0:
            raise ValidationError(f"timeout_ms must be a positive integer, got {timeout_ms!r}")
        return compose_addresses(network_prefix, start_octet, end_octet)

    def _run_pool(self, addresses: List[str], task, workers: int, deadline_s: float, operation: str) -> list:
        """
        Run task(address, cancel_event) for every address on a thread pool.

        Non-None task results are collected in a lock-guarded list. When the
        deadline expires, queued tasks are cancelled, running tasks see the
        cancellation event and stop contributing results, and the results
        gathered so far are returned. The event is also set when the wait is
        interrupted, so running tasks never outlive the call by a full scan.
        """
        results = []
        results_lock = threading.Lock()
        cancel_event = threading.Event()

        def run(address: str) -> None:
            try:
                result = task(address, cancel_event)
            except Exception as e:
                context = ErrorContext(
                    error_type=ErrorType.NETWORK_ERROR,
                    severity=ErrorSeverity.LOW,
                    operation=operation,
                    component="NetworkScanner",
                    additional_info={"address": address},
                )
                self.error_handler.handle_error(e, context)
                return
            if result is None:
                return
            with results_lock:
                if not cancel_event.is_set():
                    results.append(result)

        executor = ThreadPoolExecutor(
            max_workers=max(1, min(workers, len(addresses))),
            thread_name_prefix="netmon-scan",
        )
        try:
            futures = [executor.submit(run, address) for address in addresses]
            _, not_done = wait(futures, timeout=deadline_s)
            with results_lock:
                if not_done:
                    cancel_event.set()
                collected = list(results)
            if not_done:
                for future in not_done:
                    future.cancel()
                self.logger.warning(
                    f"Scan deadline of {deadline_s}s reached, "
                    f"{len(not_done)} addresses not completed",
                    collected=len(collected),
                )
        finally:
            cancel_event.set()
            executor.shutdown(wait=False, cancel_futures=True)

        return collected

    def _fingerprint_address(
        self, address: str, timeout_ms: int, cancel_event: threading.Event
    ) -> Optional[DiscoveredDevice]:
        """
        Check one address and, if it answers, build its DiscoveredDevice.

        Args:
            address: Address to check
            timeout_ms: Reachability timeout
            cancel_event: Set when the scan deadline expired

        Returns:
            DiscoveredDevice, or None when the host did not answer
        """
        if cancel_event.is_set():
            return None

        started = self._clock()
        reachable = self.prober.probe(address, timeout_ms, cancel_event=cancel_event)
        if not reachable and not cancel_event.is_set():
            reachable = self.port_prober.verify_any_port_open(
                address, timeout_ms=self.quick_port_timeout_ms, cancel_event=cancel_event
            )
        if not reachable or cancel_event.is_set():
            return None
        elapsed_ms = int((self._clock() - started) * 1000)

        device = DiscoveredDevice(address=address, response_time_ms=elapsed_ms)
        device.resolved_name = self.resolver.resolve_name(address)
        device.mac_address = self.resolver.resolve_mac(address)

        for port in self.port_prober.scan_all(
            address, timeout_ms=self.port_timeout_ms, cancel_event=cancel_event
        ):
            device.add_open_port(port)

        self.classifier.classify(device, reachable=True)
        self.logger.debug(
            f"Found {address}: {device.device_type}",
            name=device.resolved_name,
            ports=device.ports_as_text(),
        )
        return device
