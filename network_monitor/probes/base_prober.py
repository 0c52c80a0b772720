"""
Base prober interface for the Network Monitor.

This module defines the abstract base class that all probers implement,
giving the scanner and the health monitor one interface for reachability
checks (ICMP echo through the system ping, TCP connect, or combinations).
"""

import threading
from abc import ABC, abstractmethod
from typing import Optional

from ..utils.logger import Logger


class BaseProber(ABC):
    """
    Abstract base class for all reachability probers.

    probe() never raises: any failure, timeout or resolution error is
    reported as False. Implementations keep no mutable state so a single
    instance can be shared by many threads.
    """

    def __init__(self, logger: Optional[Logger] = None):
        """
        Initialize the base prober.

        Args:
            logger: Logger instance for debug output
        """
        self.logger = logger

    def probe(
        self, address: str, timeout_ms: int, cancel_event: Optional[threading.Event] = None
    ) -> bool:
        """
        Attempt one reachability check.

        Args:
            address: Hostname or IP address to check
            timeout_ms: Upper bound for the attempt in milliseconds
            cancel_event: When set, the check is abandoned and reported as False

        Returns:
            True only when the host confirmed it is up
        """
        if not address or timeout_ms <= 0:
            return False
        if cancel_event is not None and cancel_event.is_set():
            return False
        try:
            return bool(self._probe(address, timeout_ms, cancel_event))
        except Exception as e:
            self._log_debug(f"{type(self).__name__} failed for {address}: {e}")
            return False

    @abstractmethod
    def _probe(
        self, address: str, timeout_ms: int, cancel_event: Optional[threading.Event] = None
    ) -> bool:
        """
        Perform the actual check.

        This method must be implemented by all concrete prober classes.
        Exceptions raised here are turned into a failed probe by probe().
        Long running checks should give up once cancel_event is set.

        Args:
            address: Hostname or IP address to check
            timeout_ms: Upper bound for the attempt in milliseconds
            cancel_event: Optional cancellation signal

        Returns:
            True if the host responded
        """
        pass

    def __call__(self, address: str, timeout_ms: int, cancel_event: Optional[threading.Event] = None) -> bool:
        return self.probe(address, timeout_ms, cancel_event)

    def _log_debug(self, message: str) -> None:
        """Log a debug message if logger is available."""
        if self.logger:
            self.logger.debug(message)
