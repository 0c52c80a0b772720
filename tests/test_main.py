"""
Tests for the command line entry point.
"""

import pytest

from network_monitor import main as cli
from network_monitor.config.config_loader import ConfigLoader
from network_monitor.utils.error_handler import ConfigurationError


@pytest.fixture(autouse=True)
def keep_signal_handlers(monkeypatch):
    monkeypatch.setattr(cli.signal, "signal", lambda *args: None)


class TestArgumentParser:

    def test_scan_defaults(self):
        args = cli.create_argument_parser().parse_args(["scan"])

        assert args.command == "scan"
        assert (args.start, args.end) == (1, 254)
        assert args.prefix is None
        assert args.quick is False

    def test_monitor_hosts(self):
        args = cli.create_argument_parser().parse_args(["monitor", "10.0.0.1", "nas", "--interval", "5"])

        assert args.hosts == ["10.0.0.1", "nas"]
        assert args.interval == 5

    def test_command_required(self):
        with pytest.raises(SystemExit):
            cli.create_argument_parser().parse_args([])


class TestMain:

    def test_init_config_writes_files(self, tmp_path):
        assert cli.main(["--config-dir", str(tmp_path), "init-config"]) == 0
        assert (tmp_path / "scan_config.yml").exists()
        assert (tmp_path / "alert_config.yml").exists()

    def test_invalid_prefix_is_reported(self, tmp_path):
        assert cli.main(["--config-dir", str(tmp_path), "scan", "--prefix", "10.0", "--quick"]) == 2

    def test_missing_config_dir(self, tmp_path):
        assert cli.main(["--config-dir", str(tmp_path / "nope"), "scan"]) == 1

    def test_monitor_without_hosts(self, tmp_path):
        assert cli.main(["--config-dir", str(tmp_path), "monitor"]) == 2

    def test_monitor_without_hosts_is_a_configuration_error(self, tmp_path):
        app = cli.NetworkMonitorApp()
        args = cli.create_argument_parser().parse_args(["--config-dir", str(tmp_path), "monitor"])
        loader = ConfigLoader(str(tmp_path), env_file=str(tmp_path / "missing.env"))

        with pytest.raises(ConfigurationError):
            app._run_monitor(args, loader)
        assert app.monitor is None
