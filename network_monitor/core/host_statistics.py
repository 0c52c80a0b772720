"""
Rolling availability and latency statistics for one monitored device.

HostStatistics keeps lifetime counters plus two bounded windows holding the
most recent response times and up/down states. The health monitor is the
only writer; readers receive immutable StatisticsSnapshot copies so a
presentation layer can refresh while the monitor is recording checks.
"""

import threading
from collections import deque
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Deque, List, Optional, Tuple

import numpy as np

WINDOW_CAPACITY = 100


@dataclass(frozen=True)
class StatisticsSnapshot:
    """
    Point-in-time copy of a device's statistics.

    Attributes:
        device_id: Identifier of the device the statistics belong to
        total_checks: Number of checks recorded
        failures: Number of failed checks recorded
        availability_percent: Share of successful checks, 100.0 before any check
        last_check_at: When the latest check was recorded
        last_failure_at: When the latest failure was recorded
        last_response_time_ms: Response time of the latest check
        mean_response_time_ms: Mean of the response time window
        stability_percent: Stability score of the state window
        response_times: Response time window, oldest first
        recent_states: State window, oldest first
        failure_history: Timestamps of every recorded failure
    """
    device_id: str
    total_checks: int
    failures: int
    availability_percent: float
    last_check_at: Optional[datetime]
    last_failure_at: Optional[datetime]
    last_response_time_ms: int
    mean_response_time_ms: float
    stability_percent: float
    response_times: Tuple[int, ...]
    recent_states: Tuple[bool, ...]
    failure_history: Tuple[datetime, ...]


def _mean(values) -> float:
    if not values:
        return 0.0
    return float(np.mean(np.fromiter(values, dtype=np.float64, count=len(values))))


def _stability(states) -> float:
    length = len(states)
    if length < 2:
        return 100.0
    window = np.fromiter(states, dtype=np.int8, count=length)
    transitions = int(np.count_nonzero(np.diff(window)))
    return 100.0 * (1.0 - transitions / length)


class HostStatistics:
    """
    Availability and latency statistics for one device.

    Invariants: 0 <= failures <= total_checks, and availability_percent is
    100 * (total_checks - failures) / total_checks once a check exists.
    Both windows hold at most WINDOW_CAPACITY entries; the oldest entry is
    dropped first.
    """

    def __init__(self, device_id: str, clock: Callable[[], datetime] = datetime.now):
        """
        Initialize empty statistics.

        Args:
            device_id: Identifier of the device being tracked
            clock: Time source used for check and failure timestamps
        """
        self.device_id = device_id
        self._clock = clock
        self._lock = threading.RLock()

        self._total_checks = 0
        self._failures = 0
        self._availability = 100.0
        self._last_check_at: Optional[datetime] = None
        self._last_failure_at: Optional[datetime] = None
        self._last_response_time_ms = 0
        self._failure_history: List[datetime] = []
        self._response_times: Deque[int] = deque()
        self._recent_states: Deque[bool] = deque()

    def record_check(self, success: bool, response_time_ms: int) -> None:
        """
        Record the outcome of one check.

        Args:
            success: Whether the device responded
            response_time_ms: Time the check took in milliseconds
        """
        now = self._clock()
        with self._lock:
            self._total_checks += 1
            self._last_check_at = now
            if not success:
                self._failures += 1
                self._last_failure_at = now
                self._failure_history.append(now)

            self._push(self._response_times, int(response_time_ms))
            self._push(self._recent_states, bool(success))
            self._last_response_time_ms = int(response_time_ms)

            self._availability = (
                100.0 * (self._total_checks - self._failures) / self._total_checks
            )

    @staticmethod
    def _push(window: deque, value) -> None:
        window.append(value)
        if len(window) > WINDOW_CAPACITY:
            window.popleft()

    @property
    def total_checks(self) -> int:
        with self._lock:
            return self._total_checks

    @property
    def failures(self) -> int:
        with self._lock:
            return self._failures

    @property
    def availability_percent(self) -> float:
        with self._lock:
            return self._availability

    @property
    def last_check_at(self) -> Optional[datetime]:
        with self._lock:
            return self._last_check_at

    @property
    def last_failure_at(self) -> Optional[datetime]:
        with self._lock:
            return self._last_failure_at

    @property
    def last_response_time_ms(self) -> int:
        with self._lock:
            return self._last_response_time_ms

    @property
    def failure_history(self) -> List[datetime]:
        with self._lock:
            return list(self._failure_history)

    @property
    def response_times(self) -> Tuple[int, ...]:
        with self._lock:
            return tuple(self._response_times)

    @property
    def recent_states(self) -> Tuple[bool, ...]:
        with self._lock:
            return tuple(self._recent_states)

    def mean_response_time(self) -> float:
        """Arithmetic mean of the response time window, 0.0 when empty."""
        with self._lock:
            return _mean(self._response_times)

    def min_response_time(self) -> float:
        with self._lock:
            if not self._response_times:
                return 0.0
            return float(min(self._response_times))

    def max_response_time(self) -> float:
        with self._lock:
            if not self._response_times:
                return 0.0
            return float(max(self._response_times))

    def percentile_response_time(self, percentile: float) -> float:
        """
        Percentile of the response time window.

        Args:
            percentile: Percentile between 0 and 100

        Returns:
            float: Interpolated percentile, 0.0 when the window is empty

        Raises:
            ValueError: If percentile is outside 0-100
        """
        if not 0 <= percentile <= 100:
            raise ValueError(f"Percentile must be between 0 and 100, got {percentile}")
        with self._lock:
            if not self._response_times:
                return 0.0
            return float(np.percentile(np.array(self._response_times), percentile))

    def stability(self) -> float:
        """
        Stability score of the recent state window.

        100 * (1 - transitions / window length), where transitions counts
        adjacent entries that differ. Windows shorter than two entries score
        100.0.
        """
        with self._lock:
            return _stability(self._recent_states)

    def snapshot(self) -> StatisticsSnapshot:
        """Return an immutable copy of the current statistics."""
        with self._lock:
            return StatisticsSnapshot(
                device_id=self.device_id,
                total_checks=self._total_checks,
                failures=self._failures,
                availability_percent=self._availability,
                last_check_at=self._last_check_at,
                last_failure_at=self._last_failure_at,
                last_response_time_ms=self._last_response_time_ms,
                mean_response_time_ms=_mean(self._response_times),
                stability_percent=_stability(self._recent_states),
                response_times=tuple(self._response_times),
                recent_states=tuple(self._recent_states),
                failure_history=tuple(self._failure_history),
            )

    def summary(self) -> str:
        """Multi-line human readable summary of the statistics."""
        snap = self.snapshot()
        last_check = snap.last_check_at.isoformat() if snap.last_check_at else "N/A"
        last_failure = snap.last_failure_at.isoformat() if snap.last_failure_at else "N/A"
        return (
            f"Host: {snap.device_id}\n"
            f"Availability: {snap.availability_percent:.2f}%\n"
            f"Total checks: {snap.total_checks}\n"
            f"Failures: {snap.failures}\n"
            f"Mean response time: {snap.mean_response_time_ms:.2f} ms\n"
            f"Stability: {snap.stability_percent:.2f}%\n"
            f"Last check: {last_check}\n"
            f"Last failure: {last_failure}"
        )
