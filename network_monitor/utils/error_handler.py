"""
Error handling for the Network Monitor.

Defines the exception hierarchy raised for contract violations and the
ErrorHandler used by the scanner and the monitor loop to fold operational
failures (unreachable hosts, failing notification channels, collaborator
hooks) into counted, severity-aware log lines instead of exceptions.
"""

import threading
from enum import Enum
from dataclasses import dataclass
from typing import Optional, Any, Dict

from .logger import Logger, get_logger


class ErrorType(Enum):
    """Enumeration for different types of errors."""
    NETWORK_ERROR = "network_error"
    CONFIGURATION_ERROR = "configuration_error"
    NOTIFICATION_ERROR = "notification_error"
    COLLABORATOR_ERROR = "collaborator_error"


class ErrorSeverity(Enum):
    """Enumeration for error severity levels."""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


@dataclass
class ErrorContext:
    """
    Context information for error handling.

    Attributes:
        error_type: Type of error that occurred
        severity: Severity level of the error
        operation: Operation that was being performed when error occurred
        component: Component/module where error occurred
        additional_info: Additional context information
    """
    error_type: ErrorType
    severity: ErrorSeverity
    operation: str
    component: str
    additional_info: Dict[str, Any] = None

    def __post_init__(self):
        if self.additional_info is None:
            self.additional_info = {}


class NetworkMonitorError(Exception):
    """Base exception class for the Network Monitor."""

    def __init__(self, message: str, error_context: Optional[ErrorContext] = None):
        super().__init__(message)
        self.message = message
        self.error_context = error_context


class ConfigurationError(NetworkMonitorError):
    """Exception for configuration-related errors."""
    pass


class ValidationError(NetworkMonitorError):
    """Exception for invalid arguments passed by a caller."""
    pass


class NotificationError(NetworkMonitorError):
    """Exception raised by a notification channel that could not deliver."""

    def __init__(self, message: str, channel: str = None, **kwargs):
        super().__init__(message, **kwargs)
        self.channel = channel


class ErrorHandler:
    """
    Centralized error accounting.

    Counts errors per type and logs them with a level that matches their
    severity. Safe to call from several threads at once.
    """

    def __init__(self, logger: Optional[Logger] = None):
        """
        Initialize the ErrorHandler.

        Args:
            logger: Logger instance for error reporting
        """
        self.logger = logger or get_logger(__name__)
        self._lock = threading.Lock()
        self.error_statistics: Dict[ErrorType, int] = {
            error_type: 0 for error_type in ErrorType
        }

    def handle_error(self, error: Exception, context: ErrorContext) -> None:
        """
        Record and log an error that the caller has decided not to propagate.

        Args:
            error: The exception that occurred
            context: Error context information
        """
        with self._lock:
            self.error_statistics[context.error_type] += 1

        error_msg = f"Error in {context.component}.{context.operation}: {error}"
        details = context.additional_info

        if context.severity == ErrorSeverity.CRITICAL:
            self.logger.error(error_msg, exception=error, **details)
        elif context.severity == ErrorSeverity.HIGH:
            self.logger.error(error_msg, **details)
        elif context.severity == ErrorSeverity.MEDIUM:
            self.logger.warning(error_msg, **details)
        else:
            self.logger.debug(error_msg, **details)

    def get_error_statistics(self) -> Dict[str, int]:
        """Return a copy of the per-type error counters keyed by type value."""
        with self._lock:
            return {
                error_type.value: count
                for error_type, count in self.error_statistics.items()
            }

    def total_errors(self) -> int:
        with self._lock:
            return sum(self.error_statistics.values())
