"""Baseline schema: users, subscriptions, payments, config records, event WAL.

Revision ID: 001_baseline
Revises: None
Create Date: 2026-10-02
"""

from __future__ import annotations

import sqlalchemy as sa
from alembic import op

revision: str = "001_baseline"
down_revision: str | None = None
branch_labels: tuple[str, ...] | None = None
depends_on: tuple[str, ...] | None = None


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("external_id", sa.Text, nullable=False, unique=True),
        sa.Column("handle", sa.Text),
        sa.Column("display_name", sa.Text),
        sa.Column("status", sa.Text, nullable=False, server_default="pending"),
        sa.Column("end_date", sa.Text),
        sa.Column("created_at", sa.Text, nullable=False),
        sa.Column("updated_at", sa.Text, nullable=False),
    )
    op.create_index("ix_users_status", "users", ["status"])

    op.create_table(
        "subscriptions",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("user_id", sa.Integer, sa.ForeignKey("users.id"), nullable=False),
        sa.Column("start_date", sa.Text, nullable=False),
        sa.Column("end_date", sa.Text, nullable=False),
        sa.Column("status", sa.Text, nullable=False),
        sa.Column("created_at", sa.Text, nullable=False),
        sa.Column("closed_at", sa.Text),
    )
    op.create_index("ix_subscriptions_status_end", "subscriptions", ["status", "end_date"])
    op.create_index(
        "uq_subscriptions_one_active",
        "subscriptions",
        ["user_id"],
        unique=True,
        sqlite_where=sa.text("status = 'active'"),
    )

    op.create_table(
        "payments",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column(
            "subscription_id", sa.Integer, sa.ForeignKey("subscriptions.id"), nullable=False
        ),
        sa.Column("amount_cents", sa.Integer, nullable=False),
        sa.Column("currency", sa.Text, nullable=False),
        sa.Column("method", sa.Text, nullable=False),
        sa.Column("paid_at", sa.Text, nullable=False),
    )
    op.create_index("ix_payments_subscription", "payments", ["subscription_id"])
    op.create_index("ix_payments_paid_at", "payments", ["paid_at"])

    op.create_table(
        "config_records",
        sa.Column("key", sa.Text, primary_key=True),
        sa.Column("value", sa.Text, nullable=False),
        sa.Column("updated_at", sa.Text, nullable=False),
    )

    op.create_table(
        "event_wal",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("hook_name", sa.Text, nullable=False),
        sa.Column("payload", sa.Text, nullable=False),
        sa.Column("status", sa.Text, nullable=False),
        sa.Column("error", sa.Text),
        sa.Column("retries", sa.Integer, server_default="0"),
        sa.Column("created", sa.Text, nullable=False),
        sa.Column("completed", sa.Text),
    )


def downgrade() -> None:
    op.drop_table("event_wal")
    op.drop_table("config_records")
    op.drop_index("ix_payments_paid_at", "payments")
    op.drop_index("ix_payments_subscription", "payments")
    op.drop_table("payments")
    op.drop_index("uq_subscriptions_one_active", "subscriptions")
    op.drop_index("ix_subscriptions_status_end", "subscriptions")
    op.drop_table("subscriptions")
    op.drop_index("ix_users_status", "users")
    op.drop_table("users")
