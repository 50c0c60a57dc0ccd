"""Tests for local directory plugin discovery in PluginManager."""

from __future__ import annotations

import sys
from pathlib import Path

from subctl.plugins import PluginManager

_VALID_PLUGIN_SRC = """\
from subctl.plugins import hookimpl


class LocalTestPlugin:
    @hookimpl
    def post_revoke(self, user_id: int, external_id: str) -> None:
        pass
"""

_CAPTURE_PLUGIN_SRC = """\
from subctl.plugins import hookimpl

calls: list[dict] = []


class RenewCapturePlugin:
    @hookimpl
    def post_renew(self, user_id, external_id, end_date, amount, currency):
        calls.append({"external_id": external_id, "end_date": end_date, "amount": amount})
"""

_SYNTAX_ERROR_SRC = """\
def broken(
"""

_NO_HOOKS_SRC = """\
class PlainClass:
    def hello(self) -> str:
        return "world"
"""


class TestLocalDiscovery:
    def test_discovers_local_plugin(self, tmp_path: Path) -> None:
        (tmp_path / "myplugin.py").write_text(_VALID_PLUGIN_SRC, encoding="utf-8")

        pm = PluginManager()
        pm.discover_and_load(local_dir=tmp_path)

        assert "subctl_local_plugin_myplugin.LocalTestPlugin" in pm.list_plugin_names()

    def test_skips_bad_plugin_gracefully(self, tmp_path: Path) -> None:
        (tmp_path / "broken.py").write_text(_SYNTAX_ERROR_SRC, encoding="utf-8")

        pm = PluginManager()
        names = pm.discover_and_load(local_dir=tmp_path)

        assert all("broken" not in n for n in names)
        assert "subctl_local_plugin_broken" not in sys.modules

    def test_class_without_hooks_not_registered(self, tmp_path: Path) -> None:
        (tmp_path / "plain.py").write_text(_NO_HOOKS_SRC, encoding="utf-8")

        pm = PluginManager()
        pm._load_local_dir(tmp_path, set())

        assert all("plain" not in n for n in pm.list_plugin_names())

    def test_underscore_files_skipped(self, tmp_path: Path) -> None:
        (tmp_path / "_private.py").write_text(_VALID_PLUGIN_SRC, encoding="utf-8")

        pm = PluginManager()
        pm._load_local_dir(tmp_path, set())

        assert pm.list_plugin_names() == []

    def test_nonexistent_dir_is_noop(self, tmp_path: Path) -> None:
        pm = PluginManager()
        names = pm.discover_and_load(local_dir=tmp_path / "does_not_exist")
        assert pm.is_loaded is True
        assert isinstance(names, list)

    def test_local_plugin_hooks_fire(self, tmp_path: Path) -> None:
        (tmp_path / "capture.py").write_text(_CAPTURE_PLUGIN_SRC, encoding="utf-8")

        pm = PluginManager()
        pm._load_local_dir(tmp_path, set())
        pm.hook.post_renew(
            user_id=1, external_id="42", end_date="2026-04-14", amount="20.00", currency="USD"
        )

        mod = sys.modules["subctl_local_plugin_capture"]
        assert mod.calls == [  # type: ignore[attr-defined]
            {"external_id": "42", "end_date": "2026-04-14", "amount": "20.00"}
        ]

    def test_blocked_local_plugin_skipped(self, tmp_path: Path) -> None:
        (tmp_path / "quiet.py").write_text(_VALID_PLUGIN_SRC, encoding="utf-8")

        pm = PluginManager()
        names = pm.discover_and_load(local_dir=tmp_path, blocked=["quiet"])

        assert all("quiet" not in n for n in names)
        assert pm.is_blocked("quiet")
