"""
Configuration loader for the Network Monitor.
Handles loading and validation of YAML configuration files with fallback to defaults.
Secrets for the alert channels may also come from the environment or a .env file.
"""

import os
import yaml
from typing import Any, Dict, List, Optional
from dataclasses import asdict, dataclass, field
from pathlib import Path

from dotenv import load_dotenv

from ..core.data_models import AlertPolicy
from ..utils.error_handler import ConfigurationError, ErrorContext, ErrorSeverity, ErrorType
from ..utils.logger import Logger, get_logger

SMTP_PASSWORD_ENV = "NETMON_SMTP_PASSWORD"
WEBHOOK_URL_ENV = "NETMON_WEBHOOK_URL"


@dataclass
class ScanConfig:
    """Configuration for network discovery."""
    timeout_ms: int = 1000
    quick_port_timeout_ms: int = 200
    port_timeout_ms: int = 300
    sweep_workers: int = 50
    fingerprint_workers: int = 100
    sweep_deadline_s: int = 30
    fingerprint_deadline_s: int = 90


@dataclass
class MonitorConfig:
    """Configuration for the health monitor."""
    interval_s: int = 10
    probe_timeout_ms: int = 2000
    probe_port: Optional[int] = None  # TCP port to probe instead of ping
    report_every: int = 10
    hosts: List[str] = field(default_factory=list)


@dataclass
class AlertConfig:
    """Configuration for alert thresholds and notification channels."""
    availability_threshold: float = 99.0
    max_response_time_ms: int = 2000
    console: bool = True
    email_to: str = ""
    smtp_host: str = ""
    smtp_port: int = 587
    smtp_user: str = ""
    smtp_password: str = ""
    webhook_url: str = ""

    def to_policy(self) -> AlertPolicy:
        return AlertPolicy(
            availability_threshold_percent=float(self.availability_threshold),
            max_response_time_ms=int(self.max_response_time_ms),
        )


class ConfigLoader:
    """
    Loads and validates YAML configuration files for the scanner, the monitor
    and the alerting layer. Provides fallback to default configurations when
    files are missing or malformed.
    """

    def __init__(self, config_dir: Optional[str] = None, env_file: Optional[str] = None,
                 logger: Optional[Logger] = None):
        """
        Initialize ConfigLoader.

        Args:
            config_dir: Directory containing configuration files.
                       Defaults to the config directory relative to this file.
            env_file: .env file to load secrets from (searched for when omitted)
            logger: Logger instance for warnings
        """
        if config_dir is None:
            self.config_dir = Path(__file__).parent
        else:
            self.config_dir = Path(config_dir)

        self.logger = logger or get_logger(__name__)
        load_dotenv(env_file)

    def load_scan_config(self, config_file: str = "scan_config.yml") -> ScanConfig:
        """
        Load scan configuration from YAML file.

        Args:
            config_file: Name of the scan configuration file

        Returns:
            ScanConfig object with loaded or default configuration
        """
        data = self._load_section(config_file, 'scan')
        if data is None:
            return ScanConfig()

        defaults = ScanConfig()
        return ScanConfig(**{
            name: self._validate_positive_int(data.get(name, default), name, default)
            for name, default in asdict(defaults).items()
        })

    def load_monitor_config(self, config_file: str = "monitor_config.yml") -> MonitorConfig:
        """
        Load monitor configuration from YAML file.

        Args:
            config_file: Name of the monitor configuration file

        Returns:
            MonitorConfig object with loaded or default configuration
        """
        data = self._load_section(config_file, 'monitor')
        if data is None:
            return MonitorConfig()

        probe_port = data.get('probe_port')
        if probe_port is not None:
            probe_port = self._validate_port(probe_port, 'probe_port', None)

        return MonitorConfig(
            interval_s=self._validate_positive_int(data.get('interval_s', 10), 'interval_s', 10),
            probe_timeout_ms=self._validate_positive_int(data.get('probe_timeout_ms', 2000), 'probe_timeout_ms', 2000),
            probe_port=probe_port,
            report_every=self._validate_positive_int(data.get('report_every', 10), 'report_every', 10),
            hosts=self._validate_hosts(data.get('hosts', []))
        )

    def load_alert_config(self, config_file: str = "alert_config.yml") -> AlertConfig:
        """
        Load alert configuration from YAML file and the environment.

        NETMON_SMTP_PASSWORD and NETMON_WEBHOOK_URL take precedence over the
        values in the file.

        Args:
            config_file: Name of the alert configuration file

        Returns:
            AlertConfig object with loaded or default configuration
        """
        data = self._load_section(config_file, 'alerts') or {}

        config = AlertConfig(
            availability_threshold=self._validate_percentage(
                data.get('availability_threshold', 99.0), 'availability_threshold', 99.0),
            max_response_time_ms=self._validate_non_negative_int(
                data.get('max_response_time_ms', 2000), 'max_response_time_ms', 2000),
            console=bool(data.get('console', True)),
            email_to=str(data.get('email_to') or ""),
            smtp_host=str(data.get('smtp_host') or ""),
            smtp_port=self._validate_port(data.get('smtp_port', 587), 'smtp_port', 587),
            smtp_user=str(data.get('smtp_user') or ""),
            smtp_password=str(data.get('smtp_password') or ""),
            webhook_url=str(data.get('webhook_url') or "")
        )

        config.smtp_password = os.environ.get(SMTP_PASSWORD_ENV) or config.smtp_password
        config.webhook_url = os.environ.get(WEBHOOK_URL_ENV) or config.webhook_url
        return config

    def _load_section(self, config_file: str, section: str) -> Optional[Dict[str, Any]]:
        """
        Read one top-level section of a YAML file.

        Returns:
            The section mapping, or None when the defaults should be used
        """
        config_path = self.config_dir / config_file

        if not config_path.exists():
            self.logger.debug(f"Config file not found at {config_path}. Using default configuration.")
            return None

        try:
            with open(config_path, 'r', encoding='utf-8') as f:
                config_data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            self.logger.error(f"Error parsing config file {config_path}: {e}")
            self.logger.warning(f"Using default {section} configuration.")
            return None
        except OSError as e:
            self.logger.error(f"Error reading config file {config_path}: {e}")
            self.logger.warning(f"Using default {section} configuration.")
            return None

        if not isinstance(config_data, dict) or not isinstance(config_data.get(section), dict):
            self.logger.warning(f"Invalid {section} config structure in {config_path}. Using default configuration.")
            return None

        return config_data[section]

    def _validate_positive_int(self, value: Any, field_name: str, default: int) -> int:
        """
        Validate that a value is a positive integer.

        Args:
            value: Value to validate
            field_name: Name of the field for error messages
            default: Default value to use if validation fails

        Returns:
            Validated integer value or default
        """
        try:
            int_value = int(value)
            if int_value <= 0:
                self.logger.warning(f"Invalid {field_name}: {value}. Must be positive. Using default: {default}")
                return default
            return int_value
        except (ValueError, TypeError):
            self.logger.warning(f"Invalid {field_name}: {value}. Must be an integer. Using default: {default}")
            return default

    def _validate_non_negative_int(self, value: Any, field_name: str, default: int) -> int:
        """Validate an integer that may be zero, the same rule AlertPolicy applies."""
        if isinstance(value, bool):
            self.logger.warning(f"Invalid {field_name}: {value}. Must be an integer. Using default: {default}")
            return default
        try:
            int_value = int(value)
        except (ValueError, TypeError):
            self.logger.warning(f"Invalid {field_name}: {value}. Must be an integer. Using default: {default}")
            return default
        if int_value < 0:
            self.logger.warning(f"Invalid {field_name}: {value}. Must not be negative. Using default: {default}")
            return default
        return int_value

    def _validate_port(self, value: Any, field_name: str, default: Optional[int]) -> Optional[int]:
        try:
            port = int(value)
        except (ValueError, TypeError):
            self.logger.warning(f"Invalid {field_name}: {value}. Must be an integer. Using default: {default}")
            return default
        if not 1 <= port <= 65535:
            self.logger.warning(f"Invalid {field_name}: {value}. Must be 1-65535. Using default: {default}")
            return default
        return port

    def _validate_percentage(self, value: Any, field_name: str, default: float) -> float:
        try:
            percentage = float(value)
        except (ValueError, TypeError):
            self.logger.warning(f"Invalid {field_name}: {value}. Must be a number. Using default: {default}")
            return default
        if not 0.0 <= percentage <= 100.0:
            self.logger.warning(f"Invalid {field_name}: {value}. Must be 0-100. Using default: {default}")
            return default
        return percentage

    def _validate_hosts(self, hosts: Any) -> List[str]:
        """
        Validate the list of hosts to monitor.

        Entries may be IP addresses or hostnames; empty and non-string
        entries are skipped.
        """
        if not isinstance(hosts, list):
            self.logger.warning(f"Invalid hosts: {hosts}. Must be a list. Using default: []")
            return []

        valid_hosts = []
        for host in hosts:
            if isinstance(host, str) and host.strip():
                valid_hosts.append(host.strip())
            else:
                self.logger.warning(f"Invalid host entry: {host!r}. Skipping.")
        return valid_hosts

    def create_default_configs(self) -> None:
        """
        Create default configuration files if they don't exist.

        Raises:
            ConfigurationError: If a file cannot be written
        """
        self._write_default("scan_config.yml", {'scan': asdict(ScanConfig())})
        self._write_default("monitor_config.yml", {'monitor': asdict(MonitorConfig())})

        alert_defaults = asdict(AlertConfig())
        # Secrets belong in the environment
        alert_defaults.pop('smtp_password')
        self._write_default("alert_config.yml", {'alerts': alert_defaults})

    def _write_default(self, config_file: str, default_config: Dict[str, Any]) -> None:
        config_path = self.config_dir / config_file
        if config_path.exists():
            return

        try:
            self.config_dir.mkdir(parents=True, exist_ok=True)
            with open(config_path, 'w', encoding='utf-8') as f:
                yaml.safe_dump(default_config, f, default_flow_style=False, indent=2)
            self.logger.info(f"Created default config at {config_path}")
        except OSError as e:
            raise ConfigurationError(
                f"Failed to create default config {config_path}: {e}",
                ErrorContext(
                    error_type=ErrorType.CONFIGURATION_ERROR,
                    severity=ErrorSeverity.HIGH,
                    operation="create_default_configs",
                    component="ConfigLoader",
                    additional_info={"path": str(config_path)},
                ),
            ) from e
