"""
Configuration module for the Network Monitor.
Provides configuration loading and validation for the scanner, monitor and alerts.
"""

from .config_loader import ConfigLoader, ScanConfig, MonitorConfig, AlertConfig

__all__ = ['ConfigLoader', 'ScanConfig', 'MonitorConfig', 'AlertConfig']
