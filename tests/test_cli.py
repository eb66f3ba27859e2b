"""Tests for the command line entry point."""

import argparse

import pytest

from lanscan import __main__ as cli
from lanscan.exceptions import LanScanError
from lanscan.models.config import Config


class TestParsePorts:
    """Tests for parse_ports."""

    def test_valid(self):
        """Test a comma separated list."""
        assert cli.parse_ports("22, 80,443") == [22, 80, 443]

    def test_invalid(self):
        """Test non-numeric ports are rejected."""
        with pytest.raises(argparse.ArgumentTypeError):
            cli.parse_ports("22,http")

    def test_empty(self):
        """Test an empty list is rejected."""
        with pytest.raises(argparse.ArgumentTypeError):
            cli.parse_ports(",")


class TestScanArguments:
    """Tests for turning arguments into scan input."""

    def parse(self, *argv):
        return cli.build_parser().parse_args(["scan", *argv])

    def test_options_override_config(self, sample_config_data):
        """Test command line flags win over the config file."""
        config = Config.model_validate(sample_config_data)
        args = self.parse("--ports", "21,23", "--no-banners", "--offline", "--concurrency", "3")
        options = cli._build_options(args, config)
        assert options.ports_to_scan == [21, 23]
        assert options.perform_banner_grab is False
        assert options.scan_offline_hosts is True
        assert options.max_concurrent_scans == 3
        assert options.ping_timeout_ms == 500

    def test_no_ports(self):
        """Test --no-ports turns the port scan off."""
        options = cli._build_options(self.parse("--no-ports"), Config())
        assert options.perform_port_scan is False

    def test_explicit_cidr(self):
        """Test a positional subnet is used as given."""
        subnet = cli._select_subnet(self.parse("10.1.0.0/16"), Config())
        assert subnet.network_range == "10.1.0.0/16"

    def test_named_target(self, sample_config_data):
        """Test --target picks a configured subnet."""
        config = Config.model_validate(sample_config_data)
        subnet = cli._select_subnet(self.parse("--target", "lab"), config)
        assert subnet.network_range == "10.0.0.0/28"

    def test_unknown_target(self, sample_config_data):
        """Test an unknown target is an error."""
        config = Config.model_validate(sample_config_data)
        with pytest.raises(LanScanError):
            cli._select_subnet(self.parse("--target", "office"), config)

    def test_first_configured_target(self, sample_config_data):
        """Test the first target is the default."""
        config = Config.model_validate(sample_config_data)
        assert cli._select_subnet(self.parse(), config).network_range == "192.168.1.0/24"


class TestMain:
    """Tests for main."""

    def test_version(self, capsys):
        """Test --version prints the version."""
        assert cli.main(["--version"]) == 0
        assert "lanscan v" in capsys.readouterr().out

    def test_no_command(self, capsys):
        """Test running without a command prints help."""
        assert cli.main([]) == 1
        assert "usage" in capsys.readouterr().out

    def test_wake(self, temp_dir, monkeypatch):
        """Test the wake command sends a packet."""
        sent = []
        monkeypatch.setattr(cli.WakeOnLanSender, "send", lambda self, mac: sent.append(mac) or True)
        monkeypatch.setattr(cli, "setup_logging", lambda *args, **kwargs: None)
        argv = ["-c", str(temp_dir / "none.json"), "wake", "AA:BB:CC:DD:EE:FF"]
        assert cli.main(argv) == 0
        assert sent == ["AA:BB:CC:DD:EE:FF"]

    def test_wake_invalid_mac(self, temp_dir, monkeypatch):
        """Test a malformed MAC is reported as an error."""
        monkeypatch.setattr(cli, "setup_logging", lambda *args, **kwargs: None)
        argv = ["-c", str(temp_dir / "none.json"), "wake", "bogus"]
        assert cli.main(argv) == 1

    def test_invalid_config(self, temp_dir, capsys):
        """Test a broken config file is reported."""
        path = temp_dir / "lanscan.json"
        path.write_text('{"scan": {"max_concurrent_scans": 0}}')
        assert cli.main(["-c", str(path), "interfaces"]) == 2
        assert "Invalid configuration" in capsys.readouterr().err
