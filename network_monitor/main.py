"""
Main entry point for the Network Monitor.

This module provides the command-line interface: a one-shot network scan
that prints the devices it finds, and a long-running monitor for a list of
hosts that stops gracefully on SIGINT or SIGTERM.
"""

import argparse
import signal
import sys
import threading
from pathlib import Path
from typing import Dict, List, Optional

from . import __version__
from .alerts.channels import ConsoleChannel, EmailChannel, WebhookChannel
from .alerts.notifier import Notifier
from .config.config_loader import ConfigLoader, AlertConfig
from .core.data_models import Device
from .core.health_monitor import HealthMonitor
from .core.host_statistics import StatisticsSnapshot
from .core.network_scanner import NetworkScanner
from .probes.reachability import CompositeProber, ReachabilityProber, TcpConnectProber
from .utils.error_handler import (
    ConfigurationError, ErrorContext, ErrorSeverity, ErrorType, NetworkMonitorError
)
from .utils.logger import LogLevel, get_logger, set_log_level
from .utils.network_utils import detect_local_prefix

SCAN_COLUMNS = ["Address", "Name", "Type", "OS", "MAC", "Manufacturer", "Open ports"]
SCAN_WIDTHS = [15, 24, 18, 18, 17, 12, 24]
REPORT_COLUMNS = ["Device", "State", "Availability", "Checks", "Failures", "Mean ms", "Stability"]
REPORT_WIDTHS = [24, 8, 12, 7, 8, 8, 9]


class NetworkMonitorApp:
    """
    Main application class for the Network Monitor.

    Handles the CLI commands and the application lifecycle.
    """

    def __init__(self):
        """Initialize the application."""
        self.logger = get_logger(__name__)
        self.monitor: Optional[HealthMonitor] = None
        self.shutdown_requested = False
        self._shutdown_event = threading.Event()

        # Register signal handlers for graceful shutdown
        signal.signal(signal.SIGINT, self._signal_handler)
        signal.signal(signal.SIGTERM, self._signal_handler)

    def _signal_handler(self, signum: int, frame) -> None:
        """
        Handle shutdown signals gracefully.

        Args:
            signum: Signal number
            frame: Current stack frame
        """
        signal_names = {signal.SIGINT: "SIGINT", signal.SIGTERM: "SIGTERM"}
        signal_name = signal_names.get(signum, f"Signal {signum}")

        if not self.shutdown_requested:
            self.logger.warning(f"Received {signal_name} - initiating graceful shutdown...")
            self.shutdown_requested = True
            self._shutdown_event.set()
            if self.monitor is None:
                raise KeyboardInterrupt
        else:
            self.logger.error("Force shutdown requested - terminating immediately")
            sys.exit(1)

    def _cleanup(self) -> None:
        """Stop the monitor if it is running."""
        if self.monitor is not None and self.monitor.is_running():
            self.logger.info("Stopping health monitor...")
            self.monitor.stop()

    def run(self, args: argparse.Namespace) -> int:
        """
        Run the selected command.

        Args:
            args: Parsed command line arguments

        Returns:
            int: Exit code (0 for success, non-zero for failure)
        """
        if args.config_dir and not Path(args.config_dir).is_dir():
            self.logger.error(f"Configuration directory does not exist: {args.config_dir}")
            return 1

        loader = ConfigLoader(args.config_dir, env_file=args.env_file, logger=self.logger)

        try:
            if args.command == "init-config":
                loader.create_default_configs()
                return 0
            if args.command == "scan":
                return self._run_scan(args, loader)
            if args.command == "monitor":
                return self._run_monitor(args, loader)
            self.logger.error(f"Unknown command: {args.command}")
            return 2

        except NetworkMonitorError as e:
            self.logger.error(e.message)
            return 2
        except KeyboardInterrupt:
            self.logger.warning("Interrupted by user")
            return 130  # Standard exit code for SIGINT
        except Exception as e:
            self.logger.error(f"Network monitor failed: {str(e)}", exception=e)
            return 1
        finally:
            self._cleanup()

    def _run_scan(self, args: argparse.Namespace, loader: ConfigLoader) -> int:
        scan_config = loader.load_scan_config()
        scanner = NetworkScanner.from_config(scan_config, logger=self.logger)

        prefix = args.prefix or detect_local_prefix()
        timeout_ms = args.timeout or scan_config.timeout_ms

        self.logger.section("NETWORK SCAN")
        if args.quick:
            addresses = scanner.discover_addresses_only(prefix, args.start, args.end, timeout_ms)
            for address in addresses:
                self.logger.info(f"Active: {address}")
            return 0

        devices = scanner.discover(prefix, args.start, args.end, timeout_ms)
        self.logger.table_header(SCAN_COLUMNS, SCAN_WIDTHS)
        for device in devices:
            self.logger.table_row(
                [
                    device.address,
                    device.resolved_name[:24],
                    device.device_type,
                    device.os_guess,
                    device.mac_address or "N/A",
                    device.manufacturer,
                    device.ports_as_text()[:24],
                ],
                SCAN_WIDTHS,
            )
        return 0

    def _run_monitor(self, args: argparse.Namespace, loader: ConfigLoader) -> int:
        monitor_config = loader.load_monitor_config()
        alert_config = loader.load_alert_config()

        hosts = args.hosts or monitor_config.hosts
        if not hosts:
            raise ConfigurationError(
                "No hosts to monitor (pass them on the command line or in monitor_config.yml)",
                ErrorContext(
                    error_type=ErrorType.CONFIGURATION_ERROR,
                    severity=ErrorSeverity.HIGH,
                    operation="monitor",
                    component="NetworkMonitorApp",
                ),
            )

        self.monitor = HealthMonitor(
            alert_config.to_policy(),
            interval_s=args.interval or monitor_config.interval_s,
            prober=self._build_prober(args.port or monitor_config.probe_port),
            notifier=self._build_notifier(alert_config),
            report_hook=self._print_report,
            report_every=monitor_config.report_every,
            probe_timeout_ms=monitor_config.probe_timeout_ms,
            logger=self.logger,
        )
        for host in hosts:
            self.monitor.add_device(host, host)

        self.logger.section("HEALTH MONITOR")
        self.monitor.start()
        self._shutdown_event.wait()
        self.monitor.stop()
        self._print_report(self.monitor.list_devices(), self.monitor.statistics_snapshot())
        return 0

    def _build_prober(self, probe_port: Optional[int]):
        ping = ReachabilityProber(self.logger)
        if probe_port:
            return CompositeProber(TcpConnectProber(probe_port, self.logger), ping, logger=self.logger)
        return ping

    def _build_notifier(self, alert_config: AlertConfig) -> Notifier:
        notifier = Notifier(logger=self.logger)
        if alert_config.console:
            notifier.register(ConsoleChannel())
        email = EmailChannel.from_config(alert_config)
        if email.is_enabled():
            notifier.register(email)
        if alert_config.webhook_url:
            notifier.register(WebhookChannel(alert_config.webhook_url))
        self.logger.debug(f"Notification channels: {[c.name for c in notifier.channels]}")
        return notifier

    def _print_report(self, devices: List[Device], statistics: Dict[str, StatisticsSnapshot]) -> None:
        self.logger.section("AVAILABILITY REPORT")
        self.logger.table_header(REPORT_COLUMNS, REPORT_WIDTHS)
        for device in devices:
            snap = statistics.get(device.id)
            if snap is None:
                continue
            self.logger.table_row(
                [
                    device.id[:24],
                    device.state.value,
                    f"{snap.availability_percent:.2f}%",
                    snap.total_checks,
                    snap.failures,
                    f"{snap.mean_response_time_ms:.1f}",
                    f"{snap.stability_percent:.1f}%",
                ],
                REPORT_WIDTHS,
                highlight=snap.failures > 0,
            )


def create_argument_parser() -> argparse.ArgumentParser:
    """
    Create and configure the command line argument parser.

    Returns:
        argparse.ArgumentParser: Configured argument parser
    """
    parser = argparse.ArgumentParser(
        prog="network_monitor",
        description="Network Monitor - host discovery, classification and availability monitoring",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m network_monitor scan                              # Scan the local /24
  python -m network_monitor scan --prefix 10.0.0 --end 50     # Scan 10.0.0.1-50
  python -m network_monitor scan --quick                      # Addresses only
  python -m network_monitor monitor 192.168.1.1 nas.local     # Monitor two hosts
  python -m network_monitor init-config --config-dir ./conf   # Write default YAML files
        """
    )

    parser.add_argument(
        "--config-dir",
        type=str,
        help="Directory containing scan_config.yml, monitor_config.yml and alert_config.yml. "
             "Defaults to network_monitor/config/"
    )

    parser.add_argument(
        "--env-file",
        type=str,
        help="Path of a .env file with NETMON_SMTP_PASSWORD / NETMON_WEBHOOK_URL"
    )

    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Enable verbose logging output"
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"Network Monitor {__version__}"
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    scan = subparsers.add_parser("scan", help="Discover and classify hosts on a /24 network")
    scan.add_argument("--prefix", type=str, help="Three-octet prefix (defaults to the local network)")
    scan.add_argument("--start", type=int, default=1, help="First host octet (default: 1)")
    scan.add_argument("--end", type=int, default=254, help="Last host octet (default: 254)")
    scan.add_argument("--timeout", type=int, help="Reachability timeout per host in ms")
    scan.add_argument("--quick", action="store_true", help="Only list responding addresses")

    monitor = subparsers.add_parser("monitor", help="Monitor hosts until interrupted")
    monitor.add_argument("hosts", nargs="*", help="Hosts to monitor (defaults to monitor_config.yml)")
    monitor.add_argument("--interval", type=int, help="Seconds between monitoring cycles")
    monitor.add_argument("--port", type=int, help="Probe this TCP port before falling back to ping")

    subparsers.add_parser("init-config", help="Write default configuration files")

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """
    Main entry point for the Network Monitor.

    Returns:
        int: Exit code (0 for success, non-zero for failure)
    """
    # Parse command line arguments
    parser = create_argument_parser()
    args = parser.parse_args(argv)

    # Configure logging level based on verbose flag
    if args.verbose:
        set_log_level(LogLevel.DEBUG)

    # Create and run the application
    app = NetworkMonitorApp()
    return app.run(args)


if __name__ == "__main__":
    sys.exit(main())
