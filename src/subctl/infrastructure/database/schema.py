"""SQLAlchemy Core table definitions for the subctl database.

Dates are stored as ISO ``YYYY-MM-DD`` text so calendar comparisons are
plain string comparisons; timestamps are ISO 8601 UTC text.
"""

from __future__ import annotations

from sqlalchemy import (
    Column,
    ForeignKey,
    Index,
    Integer,
    MetaData,
    Table,
    Text,
    text,
)

metadata = MetaData()

users = Table(
    "users",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("external_id", Text, nullable=False, unique=True),
    Column("handle", Text),
    Column("display_name", Text),
    Column("status", Text, nullable=False, default="pending", server_default="pending"),
    Column("end_date", Text),  # denormalized from the active subscription
    Column("created_at", Text, nullable=False),
    Column("updated_at", Text, nullable=False),
)

subscriptions = Table(
    "subscriptions",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("user_id", Integer, ForeignKey("users.id"), nullable=False),
    Column("start_date", Text, nullable=False),
    Column("end_date", Text, nullable=False),
    Column("status", Text, nullable=False),
    Column("created_at", Text, nullable=False),
    Column("closed_at", Text),
)

payments = Table(
    "payments",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("subscription_id", Integer, ForeignKey("subscriptions.id"), nullable=False),
    Column("amount_cents", Integer, nullable=False),
    Column("currency", Text, nullable=False),
    Column("method", Text, nullable=False),
    Column("paid_at", Text, nullable=False),
)

config_records = Table(
    "config_records",
    metadata,
    Column("key", Text, primary_key=True),
    Column("value", Text, nullable=False),
    Column("updated_at", Text, nullable=False),
)

event_wal = Table(
    "event_wal",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("hook_name", Text, nullable=False),
    Column("payload", Text, nullable=False),  # JSON
    Column("status", Text, nullable=False),
    Column("error", Text),
    Column("retries", Integer, default=0, server_default="0"),
    Column("created", Text, nullable=False),
    Column("completed", Text),
)

# ---------------------------------------------------------------------------
# Indexes
# ---------------------------------------------------------------------------

Index("ix_users_status", users.c.status)
Index("ix_subscriptions_status_end", subscriptions.c.status, subscriptions.c.end_date)
Index("ix_payments_subscription", payments.c.subscription_id)
Index("ix_payments_paid_at", payments.c.paid_at)

# At most one active subscription per user, enforced by the store itself.
Index(
    "uq_subscriptions_one_active",
    subscriptions.c.user_id,
    unique=True,
    sqlite_where=text("status = 'active'"),
)
