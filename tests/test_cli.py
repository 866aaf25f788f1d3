"""Tests for CLI interface"""

from __future__ import annotations

import logging
import sys
from unittest.mock import MagicMock, patch

import click
import pytest
import yaml
from click.testing import CliRunner

from retryflow.cli import _build_retry_config, _die, cli, setup_logging
from retryflow.domain.config import AppConfig, CommandConfig, RetryConfiguration
from retryflow.domain.errors import CommandFailedError


@pytest.fixture(autouse=True)
def _isolate(monkeypatch, tmp_path):
    monkeypatch.chdir(tmp_path)
    for name in ("RETRYFLOW_RETRIES", "RETRYFLOW_DELAY", "RETRYFLOW_TIMEOUT"):
        monkeypatch.delenv(name, raising=False)


def _python(code: str) -> list[str]:
    return [sys.executable, "-c", code]


class TestSetupLogging:
    """Tests for setup_logging function"""

    def test_setup_logging_info_level(self):
        """Test that logging is set to INFO level by default"""
        setup_logging(verbose=False)
        assert logging.getLogger().level == logging.INFO

    def test_setup_logging_debug_level(self):
        """Test that logging is set to DEBUG level when verbose"""
        setup_logging(verbose=True)
        assert logging.getLogger().level == logging.DEBUG


class TestDie:
    """Tests for _die function"""

    def test_die_without_exception(self):
        """Test _die without exception"""
        with pytest.raises(click.ClickException, match="Test error"):
            _die("Test error", verbose=False)

    def test_die_with_exception_verbose(self):
        """Test _die with exception in verbose mode"""
        exc = ValueError("Test exception")
        with pytest.raises(click.ClickException, match="Test error"):
            _die("Test error", verbose=True, exc=exc)


class TestBuildRetryConfig:
    """Tests for merging config and CLI options"""

    def _manager(self, retry: RetryConfiguration, command: CommandConfig = None) -> MagicMock:
        manager = MagicMock()
        manager.get_retry_config.return_value = retry
        manager.get_command_config.return_value = command or CommandConfig()
        return manager

    def test_cli_options_override_config(self):
        manager = self._manager(RetryConfiguration(retries=2, delay=500, backoff=True))

        config = _build_retry_config(
            manager, {"retries": 5, "delay": None, "backoff": False, "timeout": 100}, ()
        )

        assert config.retries == 5
        assert config.delay == 500
        assert config.backoff is False
        assert config.timeout == 100
        assert config.on_retry is not None

    def test_exit_codes_from_options_take_priority(self):
        manager = self._manager(RetryConfiguration(), CommandConfig(retry_exit_codes=[1]))

        config = _build_retry_config(manager, {}, (75,))

        assert config.should_retry(CommandFailedError(["x"], 75), 1) is True
        assert config.should_retry(CommandFailedError(["x"], 1), 1) is False

    def test_exit_codes_from_config(self):
        manager = self._manager(RetryConfiguration(), CommandConfig(retry_exit_codes=[1]))

        config = _build_retry_config(manager, {}, ())

        assert config.should_retry(CommandFailedError(["x"], 1), 1) is True
        assert config.should_retry(CommandFailedError(["x"], 2), 1) is False


class TestRunCommand:
    """Tests for run command"""

    def test_run_success(self):
        runner = CliRunner()
        result = runner.invoke(cli, ["run", "--", *_python("pass")], obj={})
        assert result.exit_code == 0

    def test_run_propagates_last_exit_code(self):
        runner = CliRunner()
        result = runner.invoke(
            cli,
            ["run", "--retries", "1", "--delay", "0", "--", *_python("import sys; sys.exit(4)")],
            obj={},
        )
        assert result.exit_code == 4

    def test_run_retries_until_success(self, tmp_path):
        counter = tmp_path / "count"
        script = (
            "import pathlib, sys\n"
            f"p = pathlib.Path({str(counter)!r})\n"
            "n = int(p.read_text()) + 1 if p.exists() else 1\n"
            "p.write_text(str(n))\n"
            "sys.exit(0 if n >= 2 else 1)\n"
        )
        runner = CliRunner()
        result = runner.invoke(cli, ["run", "-r", "3", "-d", "0", "--", *_python(script)], obj={})

        assert result.exit_code == 0
        assert counter.read_text() == "2"

    def test_run_stops_on_unlisted_exit_code(self, tmp_path):
        counter = tmp_path / "count"
        script = (
            "import pathlib, sys\n"
            f"p = pathlib.Path({str(counter)!r})\n"
            "p.write_text(p.read_text() + 'x' if p.exists() else 'x')\n"
            "sys.exit(2)\n"
        )
        runner = CliRunner()
        result = runner.invoke(
            cli,
            ["run", "-r", "3", "-d", "0", "--retry-on-exit-code", "75", "--", *_python(script)],
            obj={},
        )

        assert result.exit_code == 2
        assert counter.read_text() == "x"

    def test_run_timeout_exits_with_error(self):
        runner = CliRunner()
        result = runner.invoke(
            cli,
            ["run", "-r", "0", "-t", "100", "--", *_python("import time; time.sleep(30)")],
            obj={},
        )
        assert result.exit_code == 1
        assert "timed out" in result.output

    def test_run_missing_program(self):
        runner = CliRunner()
        result = runner.invoke(cli, ["run", "-d", "0", "--", "retryflow-no-such-program"], obj={})
        assert result.exit_code == 1
        assert "Command not found" in result.output

    def test_run_invalid_option_value(self):
        runner = CliRunner()
        result = runner.invoke(cli, ["run", "--delay", "-5", "--", *_python("pass")], obj={})
        assert result.exit_code == 1
        assert "Fatal error" in result.output

    def test_run_requires_command(self):
        runner = CliRunner()
        result = runner.invoke(cli, ["run"], obj={})
        assert result.exit_code != 0

    @patch("retryflow.cli.ConfigManager")
    def test_run_uses_config_manager(self, mock_config_manager):
        mock_config = MagicMock()
        mock_config.get_retry_config.return_value = RetryConfiguration(retries=0, delay=0)
        mock_config.get_command_config.return_value = CommandConfig()
        mock_config_manager.return_value = mock_config

        runner = CliRunner()
        result = runner.invoke(cli, ["run", "--", *_python("import sys; sys.exit(9)")], obj={})

        assert result.exit_code == 9
        mock_config_manager.assert_called_once_with(config_path=None)


class TestShowConfigCommand:
    """Tests for show-config command"""

    def test_show_defaults(self):
        runner = CliRunner()
        result = runner.invoke(cli, ["show-config"], obj={})

        assert result.exit_code == 0
        data = yaml.safe_load(result.stdout)
        assert data["retry"]["retries"] == 3
        assert "on_retry" not in data["retry"]
        assert set(data) == set(AppConfig.model_fields)

    def test_show_config_file(self, tmp_path):
        config_file = tmp_path / "custom.yml"
        config_file.write_text("retry:\n  delay: 50\n  backoff: true\n", encoding="utf-8")

        runner = CliRunner()
        result = runner.invoke(cli, ["--config", str(config_file), "show-config"], obj={})

        assert result.exit_code == 0
        data = yaml.safe_load(result.stdout)
        assert data["retry"]["delay"] == 50
        assert data["retry"]["backoff"] is True

    def test_show_config_keeps_logs_off_stdout(self, tmp_path):
        config_file = tmp_path / "custom.yml"
        config_file.write_text("retry:\n  retries: 2\n", encoding="utf-8")

        runner = CliRunner()
        result = runner.invoke(cli, ["--config", str(config_file), "show-config"], obj={})

        assert result.exit_code == 0
        assert "Loaded configuration" in result.stderr
        assert "Loaded configuration" not in result.stdout
        assert yaml.safe_load(result.stdout)["retry"]["retries"] == 2

    def test_show_invalid_config(self, tmp_path):
        config_file = tmp_path / "bad.yml"
        config_file.write_text("retry:\n  delay: -1\n", encoding="utf-8")

        runner = CliRunner()
        result = runner.invoke(cli, ["--config", str(config_file), "show-config"], obj={})

        assert result.exit_code == 1
        assert "retry.delay" in result.output
