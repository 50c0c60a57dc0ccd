"""Tests for InitService — data directory bootstrap."""

from __future__ import annotations

import tomllib
from pathlib import Path

from sqlalchemy import create_engine, inspect, text

from subctl.services.init import InitService


def _tables(db_path: Path) -> set[str]:
    engine = create_engine(f"sqlite:///{db_path}")
    try:
        return set(inspect(engine).get_table_names())
    finally:
        engine.dispose()


class TestInitStore:
    def test_creates_config_and_database(self, tmp_path: Path) -> None:
        result = InitService.init_store(tmp_path, admin_id="1000", grace_period_days=5)

        assert result.ok, result.error
        config = tomllib.loads((tmp_path / "subctl.toml").read_text(encoding="utf-8"))
        assert config["admin"]["chat_id"] == "1000"
        assert "chat_id" not in config["group"]
        assert config["policy"]["grace_period_days"] == 5
        assert config["policy"]["currency"] == "USD"
        assert result.data["admin_configured"] is True

        db_path = Path(result.data["db_path"])
        assert db_path.exists()
        assert {"users", "subscriptions", "payments", "config_records", "event_wal"} <= _tables(
            db_path
        )

    def test_stamps_head(self, tmp_path: Path) -> None:
        result = InitService.init_store(tmp_path)
        engine = create_engine(f"sqlite:///{result.data['db_path']}")
        try:
            with engine.connect() as conn:
                version = conn.execute(text("SELECT version_num FROM alembic_version")).scalar()
        finally:
            engine.dispose()
        assert version == "001_baseline"

    def test_group_id_written(self, tmp_path: Path) -> None:
        InitService.init_store(tmp_path, admin_id="1", group_id="-100")
        config = tomllib.loads((tmp_path / "subctl.toml").read_text(encoding="utf-8"))
        assert config["group"]["chat_id"] == "-100"

    def test_creates_missing_directory(self, tmp_path: Path) -> None:
        target = tmp_path / "a" / "b"
        assert InitService.init_store(target).ok
        assert (target / "subctl.toml").exists()

    def test_keeps_existing_config(self, tmp_path: Path) -> None:
        (tmp_path / "subctl.toml").write_text('[admin]\nchat_id = "7"\n', encoding="utf-8")
        result = InitService.init_store(tmp_path, admin_id="1000")
        assert result.ok
        assert result.warnings == ["Kept existing subctl.toml"]
        assert 'chat_id = "7"' in (tmp_path / "subctl.toml").read_text(encoding="utf-8")

    def test_refuses_existing_store(self, tmp_path: Path) -> None:
        assert InitService.init_store(tmp_path).ok
        result = InitService.init_store(tmp_path)
        assert result.ok is False
        assert result.error is not None
        assert result.error.code == "ALREADY_INITIALIZED"
