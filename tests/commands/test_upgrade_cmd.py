"""Tests for the upgrade CLI command."""

from __future__ import annotations

import json
from pathlib import Path

import pytest
from click.testing import CliRunner

from subctl.cli import cli


class TestUpgradeCommand:
    def test_fresh_init_is_current(
        self, cli_runner: CliRunner, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.delenv("SUBCTL_CONFIG", raising=False)
        assert cli_runner.invoke(cli, ["init", str(tmp_path)]).exit_code == 0
        monkeypatch.chdir(tmp_path)

        result = cli_runner.invoke(cli, ["--json", "upgrade", "--check"])
        assert result.exit_code == 0, result.output
        assert json.loads(result.output)["data"]["pending_count"] == 0

    @pytest.mark.usefixtures("_isolated_store")
    def test_unversioned_store_is_stamped(self, cli_runner: CliRunner) -> None:
        # register creates the tables without version tracking
        assert cli_runner.invoke(cli, ["register", "42"]).exit_code == 0

        check = cli_runner.invoke(cli, ["--json", "upgrade", "--check"])
        assert json.loads(check.output)["data"]["pending_count"] == 1

        result = cli_runner.invoke(cli, ["--json", "upgrade"])
        assert result.exit_code == 0, result.output
        data = json.loads(result.output)["data"]
        assert data["applied_count"] == 1
        assert Path(data["backup_path"]).exists()

    @pytest.mark.usefixtures("_isolated_store")
    def test_check_reports_backup_dir(self, cli_runner: CliRunner, tmp_path: Path) -> None:
        result = cli_runner.invoke(cli, ["--json", "upgrade", "--check"])
        assert result.exit_code == 0, result.output
        data = json.loads(result.output)["data"]
        assert Path(data["backup_dir"]).resolve() == (tmp_path / ".subctl" / "backups").resolve()
        assert not list((tmp_path / ".subctl" / "backups").glob("*.db"))
