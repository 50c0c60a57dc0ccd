"""SQLite entitlement store engine and schema via SQLAlchemy Core."""

from subctl.infrastructure.database.engine import create_db_engine, db_path_for, init_database
from subctl.infrastructure.database.schema import (
    config_records,
    event_wal,
    metadata,
    payments,
    subscriptions,
    users,
)

__all__ = [
    "config_records",
    "create_db_engine",
    "db_path_for",
    "event_wal",
    "init_database",
    "metadata",
    "payments",
    "subscriptions",
    "users",
]
