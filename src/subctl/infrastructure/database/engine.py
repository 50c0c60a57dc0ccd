"""Database engine setup for SQLite with WAL mode.

SQLite is the entitlement store: WAL mode for concurrent reads, ACID
transactions for the renewal and revocation writes. The DB is stored at
{data_dir}/.subctl/subctl.db.

Every transaction opens with ``BEGIN IMMEDIATE`` so a read-then-write
sequence holds the write lock from its first read. Two processes
renewing and revoking the same user therefore serialize instead of
interleaving. A lock held longer than the busy timeout surfaces as
``OperationalError``.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine

from subctl.infrastructure.database.schema import metadata

DB_DIRNAME = ".subctl"
DB_FILENAME = "subctl.db"


def db_path_for(data_dir: Path) -> Path:
    """Location of the database file for *data_dir*."""
    return data_dir / DB_DIRNAME / DB_FILENAME


def create_db_engine(db_path: Path, *, busy_timeout: float = 5.0) -> Engine:
    """Create a SQLite engine with WAL mode, foreign keys and immediate transactions."""
    engine = create_engine(
        f"sqlite:///{db_path}",
        echo=False,
        connect_args={"timeout": busy_timeout},
    )

    @event.listens_for(engine, "connect")
    def _set_sqlite_pragma(dbapi_conn: Any, _: Any) -> None:
        # Hand transaction control to SQLAlchemy's "begin" event below.
        dbapi_conn.isolation_level = None
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA journal_mode=WAL")
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    @event.listens_for(engine, "begin")
    def _begin_immediate(conn: Any) -> None:
        conn.exec_driver_sql("BEGIN IMMEDIATE")

    return engine


def init_database(data_dir: Path, *, busy_timeout: float = 5.0) -> Engine:
    """Initialize the subctl database at ``{data_dir}/.subctl/subctl.db``.

    Creates the ``.subctl/`` directory structure and all tables from
    :data:`schema.metadata`. Idempotent, so safe to call on an existing store.

    Returns the engine ready for use.
    """
    subctl_dir = data_dir / DB_DIRNAME
    subctl_dir.mkdir(parents=True, exist_ok=True)
    (subctl_dir / "backups").mkdir(exist_ok=True)
    (subctl_dir / "plugins").mkdir(exist_ok=True)

    engine = create_db_engine(subctl_dir / DB_FILENAME, busy_timeout=busy_timeout)
    metadata.create_all(engine)
    return engine
