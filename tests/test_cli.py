"""Tests for the root subctl CLI."""

from pathlib import Path

import pytest
from click.testing import CliRunner

from subctl import __version__
from subctl.cli import cli


def test_cli_help(cli_runner: CliRunner) -> None:
    result = cli_runner.invoke(cli, ["--help"])
    assert result.exit_code == 0
    assert "subctl" in result.output


def test_cli_version(cli_runner: CliRunner) -> None:
    result = cli_runner.invoke(cli, ["--version"])
    assert result.exit_code == 0
    assert __version__ in result.output


def test_cli_no_args(cli_runner: CliRunner) -> None:
    result = cli_runner.invoke(cli, [])
    assert result.exit_code == 0
    assert "Usage" in result.output


@pytest.mark.parametrize(
    "flag",
    ["--json", "-q", "-v", "--log-json", "--async-hooks"],
)
def test_global_flags_accepted(cli_runner: CliRunner, flag: str) -> None:
    result = cli_runner.invoke(cli, [flag, "--version"])
    assert result.exit_code == 0


def test_config_option_accepted(cli_runner: CliRunner) -> None:
    result = cli_runner.invoke(cli, ["-c", "/tmp/does-not-exist.toml", "--version"])
    assert result.exit_code == 0


@pytest.mark.usefixtures("_isolated_store")
def test_async_hooks_run(cli_runner: CliRunner) -> None:
    result = cli_runner.invoke(cli, ["--async-hooks", "--json", "register", "42"])
    assert result.exit_code == 0, result.output


def test_missing_config_file_rejected(cli_runner: CliRunner, tmp_path: Path) -> None:
    result = cli_runner.invoke(cli, ["-c", str(tmp_path / "missing.toml"), "stats"])
    assert result.exit_code == 1
    assert "Config file not found" in result.output


@pytest.mark.usefixtures("_isolated_store")
def test_data_dir_option(cli_runner: CliRunner, tmp_path: Path) -> None:
    elsewhere = tmp_path / "elsewhere"
    result = cli_runner.invoke(cli, ["-d", str(elsewhere), "--json", "register", "42"])
    assert result.exit_code == 0, result.output
    assert (elsewhere / ".subctl" / "subctl.db").is_file()
    assert not (tmp_path / ".subctl").exists()
