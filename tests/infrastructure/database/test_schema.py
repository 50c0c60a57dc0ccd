"""Tests for schema constraints."""

import pytest
from sqlalchemy import insert
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError

from subctl.infrastructure.database.schema import payments, subscriptions, users

NOW = "2026-03-15T09:00:00+00:00"


def _user(conn: object, external_id: str = "42") -> int:
    result = conn.execute(  # type: ignore[attr-defined]
        insert(users).values(
            external_id=external_id, status="pending", created_at=NOW, updated_at=NOW
        )
    )
    return int(result.inserted_primary_key[0])


def _subscription(conn: object, user_id: int, status: str) -> None:
    conn.execute(  # type: ignore[attr-defined]
        insert(subscriptions).values(
            user_id=user_id,
            start_date="2026-03-15",
            end_date="2026-04-14",
            status=status,
            created_at=NOW,
        )
    )


class TestUsers:
    def test_external_id_unique(self, db_engine: Engine) -> None:
        with db_engine.begin() as conn:
            _user(conn)
        with pytest.raises(IntegrityError), db_engine.begin() as conn:
            _user(conn)


class TestSubscriptions:
    def test_one_active_per_user(self, db_engine: Engine) -> None:
        with db_engine.begin() as conn:
            uid = _user(conn)
            _subscription(conn, uid, "active")
        with pytest.raises(IntegrityError), db_engine.begin() as conn:
            _subscription(conn, uid, "active")

    def test_many_expired_allowed(self, db_engine: Engine) -> None:
        with db_engine.begin() as conn:
            uid = _user(conn)
            _subscription(conn, uid, "expired")
            _subscription(conn, uid, "expired")
            _subscription(conn, uid, "active")

    def test_active_per_user_is_independent(self, db_engine: Engine) -> None:
        with db_engine.begin() as conn:
            _subscription(conn, _user(conn, "1"), "active")
            _subscription(conn, _user(conn, "2"), "active")

    def test_user_must_exist(self, db_engine: Engine) -> None:
        with pytest.raises(IntegrityError), db_engine.begin() as conn:
            _subscription(conn, 999, "active")


class TestPayments:
    def test_subscription_must_exist(self, db_engine: Engine) -> None:
        with pytest.raises(IntegrityError), db_engine.begin() as conn:
            conn.execute(
                insert(payments).values(
                    subscription_id=999,
                    amount_cents=100,
                    currency="USD",
                    method="manual",
                    paid_at=NOW,
                )
            )
