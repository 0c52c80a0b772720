"""
Notification channels for alert delivery.

Every channel exposes deliver(message), which never raises: a failed send is
reported through the returned DeliveryResult. Concrete channels implement
send(), which raises NotificationError (or any other exception) on failure.
"""

import smtplib
import sys
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from email.mime.text import MIMEText
from typing import Callable, Optional

import requests
from colorama import Fore, Style

from ..utils.logger import Logger, get_logger
from ..utils.error_handler import NotificationError


@dataclass
class DeliveryResult:
    """
    Outcome of delivering one message through one channel.

    Attributes:
        channel: Name of the channel
        success: Whether the message was delivered
        error: Error description when delivery failed
        delivered_at: When the attempt finished
    """
    channel: str
    success: bool
    error: Optional[str] = None
    delivered_at: datetime = field(default_factory=datetime.now)


class NotificationChannel(ABC):
    """Base class for notification channels."""

    name = "channel"

    def deliver(self, message: str) -> DeliveryResult:
        """
        Deliver a message, converting any failure into a DeliveryResult.

        Args:
            message: Timestamped message text

        Returns:
            DeliveryResult for this attempt
        """
        try:
            self.send(message)
        except Exception as e:
            return DeliveryResult(channel=self.name, success=False, error=str(e))
        return DeliveryResult(channel=self.name, success=True)

    @abstractmethod
    def send(self, message: str) -> None:
        """
        Send a message.

        Args:
            message: Timestamped message text

        Raises:
            NotificationError: If the message could not be delivered
        """
        pass

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self.name!r})"


class ConsoleChannel(NotificationChannel):
    """Prints alerts to the terminal in color."""

    name = "console"

    def __init__(self, stream=None):
        self.stream = stream

    def send(self, message: str) -> None:
        print(
            f"{Fore.MAGENTA}{Style.BRIGHT}🔔 ALERT{Style.RESET_ALL} {message}",
            file=self.stream or sys.stdout,
            flush=True,
        )


class LoggerChannel(NotificationChannel):
    """Writes alerts through the project logger at warning level."""

    name = "logger"

    def __init__(self, logger: Optional[Logger] = None):
        self.logger = logger or get_logger("NetworkMonitor.alerts")

    def send(self, message: str) -> None:
        self.logger.warning(message)


class CallbackChannel(NotificationChannel):
    """
    Hands alerts to a caller supplied function.

    Used to connect a presentation layer (status bar, dialog, dashboard) to
    the monitor without the monitor knowing about it.
    """

    def __init__(self, callback: Callable[[str], None], name: str = "callback"):
        if not callable(callback):
            raise TypeError("callback must be callable")
        self.callback = callback
        self.name = name

    def send(self, message: str) -> None:
        self.callback(message)


class EmailChannel(NotificationChannel):
    """
    Sends alerts by e-mail over SMTP with STARTTLS.
    """

    name = "email"

    def __init__(
        self,
        smtp_host: str,
        email_to: str,
        smtp_port: int = 587,
        smtp_user: str = "",
        smtp_password: str = "",
        email_from: str = "",
        use_tls: bool = True,
        timeout_s: float = 10.0,
    ):
        """
        Initialize the e-mail channel.

        Args:
            smtp_host: SMTP server hostname
            email_to: Recipient addresses, comma separated
            smtp_port: SMTP server port
            smtp_user: SMTP username; login is skipped when empty
            smtp_password: SMTP password
            email_from: Sender address (defaults to smtp_user)
            use_tls: Issue STARTTLS before login
            timeout_s: Socket timeout for the SMTP session
        """
        self.smtp_host = smtp_host
        self.smtp_port = smtp_port
        self.smtp_user = smtp_user
        self.smtp_password = smtp_password
        self.email_from = email_from or smtp_user
        self.email_to = email_to
        self.use_tls = use_tls
        self.timeout_s = timeout_s

    @classmethod
    def from_config(cls, alert_config) -> "EmailChannel":
        """Build the channel from an AlertConfig."""
        return cls(
            smtp_host=alert_config.smtp_host,
            email_to=alert_config.email_to,
            smtp_port=alert_config.smtp_port,
            smtp_user=alert_config.smtp_user,
            smtp_password=alert_config.smtp_password,
        )

    def is_enabled(self) -> bool:
        """Check if the channel has enough configuration to send."""
        return bool(self.smtp_host and self.email_to and self.email_from)

    def send(self, message: str) -> None:
        if not self.is_enabled():
            raise NotificationError("Email channel is not configured", channel=self.name)

        recipients = [r.strip() for r in self.email_to.split(",") if r.strip()]
        msg = MIMEText(message, "plain", "utf-8")
        msg["Subject"] = "[Network Monitor] Performance alert"
        msg["From"] = self.email_from
        msg["To"] = ", ".join(recipients)

        try:
            with smtplib.SMTP(self.smtp_host, self.smtp_port, timeout=self.timeout_s) as server:
                if self.use_tls:
                    server.starttls()
                if self.smtp_user:
                    server.login(self.smtp_user, self.smtp_password)
                server.send_message(msg, to_addrs=recipients)
        except (smtplib.SMTPException, OSError) as e:
            raise NotificationError(f"SMTP delivery failed: {e}", channel=self.name) from e


class WebhookChannel(NotificationChannel):
    """
    Posts alerts as JSON to an HTTP endpoint.

    Payload: {"source": "network-monitor", "message": <text>}.
    """

    name = "webhook"

    def __init__(self, url: str, token: str = "", timeout_s: float = 10.0, session=None):
        """
        Initialize the webhook channel.

        Args:
            url: Endpoint receiving the POST
            token: Optional bearer token
            timeout_s: Request timeout
            session: requests.Session to reuse (a plain requests.post when None)
        """
        self.url = url
        self.token = token
        self.timeout_s = timeout_s
        self.session = session

    def is_enabled(self) -> bool:
        return bool(self.url)

    def send(self, message: str) -> None:
        if not self.is_enabled():
            raise NotificationError("Webhook channel is not configured", channel=self.name)

        headers = {"Content-Type": "application/json", "User-Agent": "network-monitor/1.0"}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"

        post = self.session.post if self.session is not None else requests.post
        try:
            response = post(
                self.url,
                json={"source": "network-monitor", "message": message},
                headers=headers,
                timeout=self.timeout_s,
            )
            response.raise_for_status()
        except requests.RequestException as e:
            raise NotificationError(f"Webhook delivery failed: {e}", channel=self.name) from e
