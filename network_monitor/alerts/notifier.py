"""
Alert fan-out to registered notification channels.
"""

import threading
from datetime import datetime
from typing import Callable, List, Optional, Tuple

from .channels import DeliveryResult, NotificationChannel
from ..utils.logger import Logger, get_logger
from ..utils.error_handler import ErrorHandler, ErrorContext, ErrorType, ErrorSeverity

TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"


class Notifier:
    """
    Delivers timestamped messages to every registered channel.

    Channels are called in registration order. A channel that fails, or
    raises, does not prevent delivery to the others and the failure never
    reaches the caller.
    """

    def __init__(
        self,
        channels: Optional[List[NotificationChannel]] = None,
        logger: Optional[Logger] = None,
        error_handler: Optional[ErrorHandler] = None,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self.logger = logger or get_logger(__name__)
        self.error_handler = error_handler or ErrorHandler(self.logger)
        self._clock = clock
        self._lock = threading.Lock()
        self._channels: List[NotificationChannel] = []
        for channel in channels or []:
            self.register(channel)

    @property
    def channels(self) -> Tuple[NotificationChannel, ...]:
        with self._lock:
            return tuple(self._channels)

    def register(self, channel: NotificationChannel) -> None:
        """Add a channel; registering the same channel twice has no effect."""
        with self._lock:
            if any(existing is channel for existing in self._channels):
                return
            self._channels.append(channel)

    def unregister(self, channel: NotificationChannel) -> None:
        """Remove a channel if it is registered."""
        with self._lock:
            self._channels = [existing for existing in self._channels if existing is not channel]

    def format_message(self, message: str) -> str:
        return f"{self._clock().strftime(TIMESTAMP_FORMAT)} - {message}"

    def notify(self, message: str) -> List[DeliveryResult]:
        """
        Timestamp a message and deliver it to every channel.

        Args:
            message: Alert text

        Returns:
            One DeliveryResult per channel, in registration order
        """
        text = self.format_message(message)
        results = []

        for channel in self.channels:
            name = getattr(channel, "name", type(channel).__name__)
            try:
                result = channel.deliver(text)
            except Exception as e:
                result = DeliveryResult(channel=name, success=False, error=str(e))

            if not result.success:
                context = ErrorContext(
                    error_type=ErrorType.NOTIFICATION_ERROR,
                    severity=ErrorSeverity.MEDIUM,
                    operation="notify",
                    component="Notifier",
                    additional_info={"channel": name},
                )
                self.error_handler.handle_error(RuntimeError(result.error), context)
            results.append(result)

        return results
