"""
Health Monitor for the Network Monitor.

This module contains the DeviceRegistry, which owns the monitored devices and
their statistics, and the HealthMonitor, a background scheduler that probes
every registered device once per cycle, records the result, raises alerts
through the notifier and periodically hands a statistics snapshot to a report
hook.
"""

import threading
import time
from collections import deque
from dataclasses import replace
from datetime import datetime
from typing import Callable, Deque, Dict, List, Optional, Tuple

from .data_models import AlertPolicy, Device, DeviceState, EventType, MonitorEvent
from .host_statistics import HostStatistics, StatisticsSnapshot
from .network_scanner import NetworkScanner
from ..alerts.alert_evaluator import AlertEvaluator
from ..alerts.notifier import Notifier
from ..probes.base_prober import BaseProber
from ..probes.reachability import ReachabilityProber
from ..utils.logger import Logger, get_logger
from ..utils.error_handler import (
    ErrorHandler, ErrorContext, ErrorType, ErrorSeverity, ValidationError
)

DEFAULT_INTERVAL_S = 10
DEFAULT_PROBE_TIMEOUT_MS = 2000
DEFAULT_REPORT_EVERY = 10
EVENT_LOG_CAPACITY = 1000
# Longest stop() waits for a probe that ignores cancellation
STOP_GRACE_S = 0.5

ReportHook = Callable[[List[Device], Dict[str, StatisticsSnapshot]], None]
EventHook = Callable[[MonitorEvent], None]


class DeviceRegistry:
    """
    Registry of monitored devices and their statistics.

    All access goes through an RLock. Readers get copies of devices and
    snapshots of statistics, never the live objects.
    """

    def __init__(self, clock: Callable[[], datetime] = datetime.now):
        self._lock = threading.RLock()
        self._entries: Dict[str, Tuple[Device, HostStatistics]] = {}
        self._clock = clock

    def add(self, device_id: str, address: str) -> bool:
        """
        Register a device.

        Returns:
            True if the device was added, False if the id was already present
        """
        with self._lock:
            if device_id in self._entries:
                return False
            self._entries[device_id] = (
                Device(id=device_id, address=address),
                HostStatistics(device_id, clock=self._clock),
            )
            return True

    def remove(self, device_id: str) -> bool:
        with self._lock:
            return self._entries.pop(device_id, None) is not None

    def __contains__(self, device_id: str) -> bool:
        with self._lock:
            return device_id in self._entries

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def get_device(self, device_id: str) -> Optional[Device]:
        with self._lock:
            entry = self._entries.get(device_id)
            return replace(entry[0]) if entry else None

    def get_statistics(self, device_id: str) -> Optional[StatisticsSnapshot]:
        with self._lock:
            entry = self._entries.get(device_id)
            return entry[1].snapshot() if entry else None

    def device_ids(self) -> List[str]:
        with self._lock:
            return list(self._entries)

    def devices(self) -> List[Device]:
        with self._lock:
            return [replace(device) for device, _ in self._entries.values()]

    def statistics(self) -> Dict[str, StatisticsSnapshot]:
        with self._lock:
            return {device_id: stats.snapshot() for device_id, (_, stats) in self._entries.items()}

    def record(
        self, device_id: str, state: DeviceState, success: bool, response_time_ms: int
    ) -> Optional[StatisticsSnapshot]:
        """
        Store the outcome of one probe.

        Returns:
            Snapshot of the updated statistics, or None when the device was
            removed while it was being probed
        """
        with self._lock:
            entry = self._entries.get(device_id)
            if entry is None:
                return None
            device, stats = entry
            device.state = state
            stats.record_check(success, response_time_ms)
            return stats.snapshot()


class HealthMonitor:
    """
    Periodic reachability monitor for a set of registered devices.

    The monitor is either idle or running. While running, a daemon thread
    executes run_cycle() and then waits interval_s seconds on an event that
    stop() sets, so stopping never waits for the full interval. Devices are
    probed one after another within a cycle, so each device's statistics
    have a single writer.
    """

    def __init__(
        self,
        policy: AlertPolicy,
        interval_s: float = DEFAULT_INTERVAL_S,
        prober: Optional[BaseProber] = None,
        notifier: Optional[Notifier] = None,
        report_hook: Optional[ReportHook] = None,
        event_hook: Optional[EventHook] = None,
        report_every: int = DEFAULT_REPORT_EVERY,
        registry: Optional[DeviceRegistry] = None,
        probe_timeout_ms: int = DEFAULT_PROBE_TIMEOUT_MS,
        scanner: Optional[NetworkScanner] = None,
        logger: Optional[Logger] = None,
        error_handler: Optional[ErrorHandler] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        """
        Initialize the health monitor.

        Args:
            policy: Alert thresholds
            interval_s: Seconds to wait between cycles
            prober: Reachability prober (defaults to the system ping prober)
            notifier: Receives alert messages; alerts are only logged when None
            report_hook: Called with (devices, statistics) every report_every cycles
            event_hook: Called with every MonitorEvent
            report_every: Number of cycles between report_hook calls
            registry: Device registry to use (a private one when None)
            probe_timeout_ms: Timeout of each device probe
            scanner: Scanner used by scan() and scan_addresses_only()
            logger: Logger instance for output
            error_handler: Error accounting for probe and hook failures
            clock: Monotonic time source used to time probes

        Raises:
            ValidationError: If policy is missing or a numeric setting is invalid
        """
        if policy is None:
            raise ValidationError("Alert policy is required")
        if isinstance(interval_s, bool) or not isinstance(interval_s, (int, float)) or interval_s <= 0:
            raise ValidationError(f"interval_s must be positive, got {interval_s!r}")
        if isinstance(report_every, bool) or not isinstance(report_every, int) or report_every < 1:
            raise ValidationError(f"report_every must be a positive integer, got {report_every!r}")
        if probe_timeout_ms <= 0:
            raise ValidationError(f"probe_timeout_ms must be positive, got {probe_timeout_ms!r}")

        self.logger = logger or get_logger(__name__)
        self.error_handler = error_handler or ErrorHandler(self.logger)
        self.policy = policy
        self.evaluator = AlertEvaluator(policy)
        self.interval_s = interval_s
        self.prober = prober or ReachabilityProber(self.logger)
        self.notifier = notifier
        self.report_hook = report_hook
        self.event_hook = event_hook
        self.report_every = report_every
        self.registry = registry if registry is not None else DeviceRegistry()
        self.probe_timeout_ms = probe_timeout_ms
        self._scanner = scanner
        self._clock = clock

        self._state_lock = threading.Lock()
        self._running = False
        self._thread: Optional[threading.Thread] = None
        self._stop_event = threading.Event()
        self._cycle_count = 0
        self._events_lock = threading.Lock()
        self._events: Deque[MonitorEvent] = deque(maxlen=EVENT_LOG_CAPACITY)

    # Lifecycle

    def start(self) -> None:
        """Start the monitoring thread; does nothing if already running."""
        with self._state_lock:
            if self._running:
                return
            self._running = True
            self._stop_event = threading.Event()
            self._thread = threading.Thread(
                target=self._monitoring_loop,
                args=(self._stop_event,),
                name="netmon-health-monitor",
                daemon=True
            )
            self._thread.start()

        self.logger.info(f"Health monitor started (interval: {self.interval_s}s)")
        self._emit(EventType.MONITOR_STARTED, f"Monitoring {len(self.registry)} devices")

    def stop(self, timeout_s: Optional[float] = None) -> None:
        """
        Stop the monitoring thread; does nothing if idle.

        The stop event cancels the probe in progress, if any, and the loop
        exits without probing further devices. A probe that finishes after
        the stop has its result discarded.

        Args:
            timeout_s: Maximum time to wait for the thread (defaults to the
                smaller of interval_s and STOP_GRACE_S)
        """
        with self._state_lock:
            if not self._running:
                return
            self._running = False
            self._stop_event.set()
            thread = self._thread
            self._thread = None

        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout=timeout_s if timeout_s is not None else min(self.interval_s, STOP_GRACE_S))
            if thread.is_alive():
                self.logger.debug("Monitoring thread still finishing a probe; its result will be discarded")

        self.logger.info("Health monitor stopped")
        self._emit(EventType.MONITOR_STOPPED, f"Stopped after {self.cycle_count} cycles")

    def is_running(self) -> bool:
        with self._state_lock:
            return self._running

    @property
    def cycle_count(self) -> int:
        with self._state_lock:
            return self._cycle_count

    def _monitoring_loop(self, stop_event: threading.Event) -> None:
        while not stop_event.is_set():
            try:
                self._run_cycle(stop_event)
            except Exception as e:
                self._handle(e, "monitoring_loop", ErrorType.COLLABORATOR_ERROR, ErrorSeverity.HIGH)
            stop_event.wait(self.interval_s)

    # Cycle

    def run_cycle(self) -> None:
        """Probe every registered device once, synchronously."""
        self._run_cycle(None)

    def _run_cycle(self, stop_event: Optional[threading.Event]) -> None:
        for device in self.registry.devices():
            if stop_event is not None and stop_event.is_set():
                return
            self._check_device(device, stop_event)
        if stop_event is not None and stop_event.is_set():
            return

        with self._state_lock:
            self._cycle_count += 1
            cycle = self._cycle_count

        if cycle % self.report_every == 0:
            self._trigger_report(cycle)

    def _check_device(self, device: Device, stop_event: Optional[threading.Event] = None) -> None:
        started = self._clock()
        try:
            success = bool(self.prober.probe(device.address, self.probe_timeout_ms, cancel_event=stop_event))
            state = DeviceState.ACTIVE if success else DeviceState.INACTIVE
        except Exception as e:
            self._handle(e, "probe", ErrorType.NETWORK_ERROR, ErrorSeverity.MEDIUM, device=device.id)
            success = False
            state = DeviceState.ERROR
        response_time_ms = int((self._clock() - started) * 1000)
        if stop_event is not None and stop_event.is_set():
            self.logger.debug(f"Monitor stopped during probe of {device.id}, result discarded")
            return

        snapshot = self.registry.record(device.id, state, success, response_time_ms)
        if snapshot is None:
            self.logger.debug(f"Device {device.id} removed during probe, result discarded")
            return

        if success:
            self._emit(EventType.CHECK_OK, f"{device.id} ({device.address}) is up", response_time_ms)
        else:
            self._emit(
                EventType.CHECK_FAILED,
                f"{device.id} ({device.address}) is {state.value.lower()}",
                response_time_ms,
            )

        message = self.evaluator.evaluate(snapshot)
        if message is None:
            return
        self._emit(EventType.ALERT, message, response_time_ms)
        if self.notifier is not None:
            self.notifier.notify(message)
        else:
            self.logger.warning(message)

    def _trigger_report(self, cycle: int) -> None:
        self._emit(EventType.REPORT_TRIGGERED, f"Report after cycle {cycle}")
        if self.report_hook is None:
            return
        try:
            self.report_hook(self.registry.devices(), self.registry.statistics())
        except Exception as e:
            self._handle(e, "report_hook", ErrorType.COLLABORATOR_ERROR, ErrorSeverity.MEDIUM)

    # Registry access

    def add_device(self, device_id: str, address: str) -> None:
        """
        Register a device for monitoring; adding an existing id is a no-op.

        Raises:
            ValidationError: If the id or address is empty
        """
        if not isinstance(device_id, str) or not device_id.strip():
            raise ValidationError(f"Invalid device id: {device_id!r}")
        if not isinstance(address, str) or not address.strip():
            raise ValidationError(f"Invalid device address: {address!r}")
        if self.registry.add(device_id, address):
            self._emit(EventType.DEVICE_ADDED, f"{device_id} ({address}) added")

    def remove_device(self, device_id: str) -> bool:
        """Stop monitoring a device; returns False if it was not registered."""
        removed = self.registry.remove(device_id)
        if removed:
            self._emit(EventType.DEVICE_REMOVED, f"{device_id} removed")
        return removed

    def get_device(self, device_id: str) -> Optional[Device]:
        return self.registry.get_device(device_id)

    def get_statistics(self, device_id: str) -> Optional[StatisticsSnapshot]:
        return self.registry.get_statistics(device_id)

    def list_device_ids(self) -> List[str]:
        return self.registry.device_ids()

    def list_devices(self) -> List[Device]:
        return self.registry.devices()

    def statistics_snapshot(self) -> Dict[str, StatisticsSnapshot]:
        return self.registry.statistics()

    def events(self) -> List[MonitorEvent]:
        """Most recent events, oldest first."""
        with self._events_lock:
            return list(self._events)

    # Scanning

    @property
    def scanner(self) -> NetworkScanner:
        if self._scanner is None:
            self._scanner = NetworkScanner(logger=self.logger, error_handler=self.error_handler)
        return self._scanner

    def scan(self, network_prefix: str, start_octet: int, end_octet: int, timeout_ms: int):
        """Run a full discovery; see NetworkScanner.discover."""
        return self.scanner.discover(network_prefix, start_octet, end_octet, timeout_ms)

    def scan_addresses_only(self, network_prefix: str, start_octet: int, end_octet: int, timeout_ms: int):
        """Run an address-only sweep; see NetworkScanner.discover_addresses_only."""
        return self.scanner.discover_addresses_only(network_prefix, start_octet, end_octet, timeout_ms)

    # Events and errors

    def _emit(self, event_type: EventType, description: str, response_time_ms: float = 0.0) -> None:
        event = MonitorEvent(event_type, description, response_time_ms)
        with self._events_lock:
            self._events.append(event)
        self.logger.debug(str(event))

        if self.event_hook is None:
            return
        try:
            self.event_hook(event)
        except Exception as e:
            self._handle(e, "event_hook", ErrorType.COLLABORATOR_ERROR, ErrorSeverity.MEDIUM)

    def _handle(self, error: Exception, operation: str, error_type: ErrorType,
                severity: ErrorSeverity, **info) -> None:
        context = ErrorContext(
            error_type=error_type,
            severity=severity,
            operation=operation,
            component="HealthMonitor",
            additional_info=info,
        )
        self.error_handler.handle_error(error, context)
