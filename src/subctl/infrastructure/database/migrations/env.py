"""Alembic environment for subctl.

Online runs reuse :func:`create_db_engine`, so migrations see the same
pragmas and ``BEGIN IMMEDIATE`` transactions as the application.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

from alembic import context
from sqlalchemy.engine import make_url

from subctl.infrastructure.database.engine import create_db_engine
from subctl.infrastructure.database.schema import metadata


def _url() -> str:
    url = context.config.get_main_option("sqlalchemy.url")
    if not url:
        raise RuntimeError("sqlalchemy.url is not set on the Alembic config")
    return url


def _configure(**kwargs: Any) -> None:
    # SQLite cannot ALTER most constraints in place; batch mode rebuilds the table.
    context.configure(
        target_metadata=metadata,
        render_as_batch=True,
        compare_type=True,
        **kwargs,
    )


def run_offline() -> None:
    """Emit migration SQL to stdout."""
    _configure(url=_url(), literal_binds=True, dialect_opts={"paramstyle": "named"})
    with context.begin_transaction():
        context.run_migrations()


def run_online() -> None:
    """Apply migrations to the database file named by the configured URL."""
    database = make_url(_url()).database
    if not database:
        raise RuntimeError("Migrations need a file-backed SQLite database")
    engine = create_db_engine(Path(database))
    try:
        with engine.connect() as connection:
            _configure(connection=connection)
            with context.begin_transaction():
                context.run_migrations()
    finally:
        engine.dispose()


if context.is_offline_mode():
    run_offline()
else:
    run_online()
