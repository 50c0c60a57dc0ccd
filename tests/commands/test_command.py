"""Tests for the command CLI command (admin message gateway)."""

from __future__ import annotations

import json

import pytest
from click.testing import CliRunner

from subctl.cli import cli


@pytest.mark.usefixtures("_isolated_store")
class TestCommandCommand:
    def test_stats_reply(self, cli_runner: CliRunner) -> None:
        result = cli_runner.invoke(cli, ["command", "stats"])
        assert result.exit_code == 0, result.output
        assert result.output.startswith("Subscription stats")

    def test_renew_via_command(self, cli_runner: CliRunner) -> None:
        assert cli_runner.invoke(cli, ["register", "42", "--handle", "alice"]).exit_code == 0
        result = cli_runner.invoke(cli, ["command", "renew", "42", "30", "20"])
        assert result.exit_code == 0, result.output
        assert result.output.startswith("Renewed @alice until ")
        assert "(20.00 USD)" in result.output

    def test_quoted_text(self, cli_runner: CliRunner) -> None:
        assert cli_runner.invoke(cli, ["register", "42"]).exit_code == 0
        result = cli_runner.invoke(cli, ["--json", "command", "renew 42 7"])
        assert result.exit_code == 0, result.output
        data = json.loads(result.output)["data"]
        assert data["command"] == "renew"

    def test_rejected_command(self, cli_runner: CliRunner) -> None:
        result = cli_runner.invoke(cli, ["command", "renew", "42", "zero"])
        assert result.exit_code == 1
        assert "VALIDATION_FAILED" in result.output

    def test_non_admin_sender_ignored(self, cli_runner: CliRunner) -> None:
        result = cli_runner.invoke(cli, ["--json", "command", "--sender", "555", "stats"])
        assert result.exit_code == 0
        assert json.loads(result.output)["data"]["ignored"] == "sender"


class TestCommandWithoutAdmin:
    def test_requires_sender(
        self, cli_runner: CliRunner, tmp_path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.chdir(tmp_path)
        monkeypatch.delenv("SUBCTL_CONFIG", raising=False)
        monkeypatch.delenv("SUBCTL_ADMIN__CHAT_ID", raising=False)
        (tmp_path / "subctl.toml").write_text("", encoding="utf-8")
        result = cli_runner.invoke(cli, ["command", "stats"])
        assert result.exit_code == 2
        assert "admin.chat_id is not configured" in result.output
