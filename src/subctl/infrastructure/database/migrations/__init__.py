"""Alembic migration infrastructure for subctl.

Configured in code; no alembic.ini needed. The migration scripts live
alongside this module.
"""

from __future__ import annotations

from pathlib import Path

from alembic.config import Config

from subctl.infrastructure.database.engine import db_path_for


def build_config(db_url: str) -> Config:
    """Build an Alembic Config pointing at our migration scripts."""
    cfg = Config()
    cfg.set_main_option("script_location", str(Path(__file__).parent))
    cfg.set_main_option("sqlalchemy.url", db_url)
    return cfg


def db_url_for(data_dir: Path) -> str:
    return f"sqlite:///{db_path_for(data_dir)}"


def stamp_head(data_dir: Path) -> None:
    """Stamp a freshly created database as at the current head revision."""
    from alembic import command

    command.stamp(build_config(db_url_for(data_dir)), "head")
