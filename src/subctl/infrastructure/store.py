"""Store — repository pattern over the entitlement database.

The Store is the single dependency injected into every service. It owns
the database engine, the notification port, the plugin event bus, and the
clock that defines "today". The :meth:`Store.transaction` context manager
wraps one atomic unit of work:

- **DB**: native SQLAlchemy ``engine.begin()`` (``BEGIN IMMEDIATE``) with
  auto-commit on success and rollback on exception.
- **Faults**: lock timeouts and I/O errors surface as
  :class:`StoreUnavailable` after rollback, so callers never observe a
  partial write.

Notifications are not part of the transaction. Services send them after
the ``with`` block has committed.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import date
from typing import TYPE_CHECKING, Any

from sqlalchemy import exc as sa_exc
from sqlalchemy import insert, select, update

from subctl.domain.lifecycle import InvalidTransition, SubscriptionStatus, is_valid_transition
from subctl.infrastructure.database.engine import init_database
from subctl.infrastructure.database.schema import (
    config_records,
    payments,
    subscriptions,
    users,
)
from subctl.infrastructure.notifications import LoggingNotifier, NotificationPort

if TYPE_CHECKING:
    from collections.abc import Iterator
    from pathlib import Path

    from sqlalchemy import Connection, Row
    from sqlalchemy.engine import Engine

    from subctl.config.settings import SubSettings
    from subctl.plugins.event_bus import EventBus

logger = logging.getLogger(__name__)

GROUP_CHAT_ID_KEY = "group_chat_id"


class StoreUnavailable(Exception):
    """The store could not complete a transaction. Nothing was written; retry later."""


# ---------------------------------------------------------------------------
# StoreTransaction: yielded to callers within transaction()
# ---------------------------------------------------------------------------


@dataclass
class StoreTransaction:
    """Active transaction with consolidated data-access helpers.

    Every read inside the block sees the same snapshot the writes apply
    to; nothing here is cached beyond the block.
    """

    conn: Connection

    # --- users ---------------------------------------------------------

    def find_user(self, external_id: str) -> Row[Any] | None:
        return self.conn.execute(select(users).where(users.c.external_id == external_id)).first()

    def insert_user(
        self,
        external_id: str,
        *,
        handle: str | None,
        display_name: str | None,
        now: str,
    ) -> int:
        result = self.conn.execute(
            insert(users).values(
                external_id=external_id,
                handle=handle,
                display_name=display_name,
                status="pending",
                end_date=None,
                created_at=now,
                updated_at=now,
            )
        )
        assert result.inserted_primary_key is not None
        return int(result.inserted_primary_key[0])

    def set_user_state(
        self,
        user_id: int,
        *,
        current: str,
        status: str,
        end_date: str | None,
        now: str,
    ) -> None:
        """Move a user from *current* to *status*.

        Raises InvalidTransition if the lifecycle forbids the change.
        """
        if not is_valid_transition(current, status):
            raise InvalidTransition(current, status)
        self.conn.execute(
            update(users)
            .where(users.c.id == user_id)
            .values(status=status, end_date=end_date, updated_at=now)
        )

    # --- subscriptions -------------------------------------------------

    def active_subscription(self, user_id: int) -> Row[Any] | None:
        return self.conn.execute(
            select(subscriptions).where(
                subscriptions.c.user_id == user_id,
                subscriptions.c.status == SubscriptionStatus.ACTIVE,
            )
        ).first()

    def expire_subscription(self, subscription_id: int, *, now: str) -> None:
        self.conn.execute(
            update(subscriptions)
            .where(subscriptions.c.id == subscription_id)
            .values(status=SubscriptionStatus.EXPIRED, closed_at=now)
        )

    def open_subscription(
        self,
        user_id: int,
        *,
        start_date: str,
        end_date: str,
        now: str,
    ) -> int:
        result = self.conn.execute(
            insert(subscriptions).values(
                user_id=user_id,
                start_date=start_date,
                end_date=end_date,
                status=SubscriptionStatus.ACTIVE,
                created_at=now,
            )
        )
        assert result.inserted_primary_key is not None
        return int(result.inserted_primary_key[0])

    # --- payments ------------------------------------------------------

    def record_payment(
        self,
        subscription_id: int,
        *,
        amount_cents: int,
        currency: str,
        method: str,
        now: str,
    ) -> int:
        result = self.conn.execute(
            insert(payments).values(
                subscription_id=subscription_id,
                amount_cents=amount_cents,
                currency=currency,
                method=method,
                paid_at=now,
            )
        )
        assert result.inserted_primary_key is not None
        return int(result.inserted_primary_key[0])

    # --- config records ------------------------------------------------

    def get_config(self, key: str) -> str | None:
        return self.conn.execute(
            select(config_records.c.value).where(config_records.c.key == key)
        ).scalar_one_or_none()

    def put_config(self, key: str, value: str, *, now: str) -> bool:
        """Upsert a config record. Returns True if the stored value changed."""
        current = self.get_config(key)
        if current == value:
            return False
        if current is None:
            self.conn.execute(insert(config_records).values(key=key, value=value, updated_at=now))
        else:
            self.conn.execute(
                update(config_records)
                .where(config_records.c.key == key)
                .values(value=value, updated_at=now)
            )
        return True


# ---------------------------------------------------------------------------
# Store
# ---------------------------------------------------------------------------


class Store:
    """Repository encapsulating the entitlement database and its collaborators.

    Constructed once per process from :class:`SubSettings` and stored in
    ``click.Context.obj``. Services receive the Store via their
    :class:`BaseService` constructor.
    """

    def __init__(
        self,
        settings: SubSettings,
        *,
        notifier: NotificationPort | None = None,
        clock: Callable[[], date] | None = None,
    ) -> None:
        self._settings = settings
        self._engine: Engine = init_database(
            settings.data_dir, busy_timeout=settings.store.busy_timeout_seconds
        )
        self._notifier = notifier or _default_notifier(settings)
        self._clock = clock or settings.today
        self._event_bus: EventBus | None = None

    @property
    def data_dir(self) -> Path:
        return self._settings.data_dir

    @property
    def engine(self) -> Engine:
        """The underlying SQLAlchemy engine (for direct access when needed)."""
        return self._engine

    @property
    def settings(self) -> SubSettings:
        return self._settings

    @property
    def notifier(self) -> NotificationPort:
        return self._notifier

    @property
    def event_bus(self) -> EventBus | None:
        """The plugin event bus (None if not initialized)."""
        return self._event_bus

    def today(self) -> date:
        """The calendar date all lifecycle comparisons use."""
        return self._clock()

    def init_event_bus(self, *, sync: bool = True) -> None:
        """Discover lifecycle plugins and wire up the WAL-backed event bus."""
        from subctl.plugins.event_bus import EventBus
        from subctl.plugins.manager import PluginManager

        pm = PluginManager()
        pm.discover_and_load(
            local_dir=self.data_dir / ".subctl" / "plugins",
            blocked=self._settings.hooks.disabled,
        )
        self._event_bus = EventBus(
            self._engine,
            pm,
            sync=sync,
            max_retries=self._settings.hooks.max_retries,
            max_workers=self._settings.hooks.max_workers,
        )

    def group_channel_id(self) -> str | None:
        """Target group id: explicit configuration first, then the persisted record."""
        if self._settings.group.chat_id:
            return self._settings.group.chat_id
        with self.transaction() as txn:
            return txn.get_config(GROUP_CHAT_ID_KEY)

    def close(self) -> None:
        if self._event_bus is not None:
            self._event_bus.shutdown()
        close_notifier = getattr(self._notifier, "close", None)
        if callable(close_notifier):
            close_notifier()
        self._engine.dispose()

    @contextmanager
    def transaction(self) -> Iterator[StoreTransaction]:
        """One atomic unit of work against the store.

        Commits when the block exits normally and rolls back on any
        exception. Store-level faults (lock timeout, disk I/O) are
        re-raised as :class:`StoreUnavailable`.

        Usage::

            with store.transaction() as txn:
                user = txn.find_user("42")
                txn.set_user_state(user.id, current=user.status, status="active", ...)
        """
        try:
            with self._engine.begin() as conn:
                yield StoreTransaction(conn=conn)
        except (sa_exc.OperationalError, sa_exc.TimeoutError) as exc:
            logger.warning("store.unavailable", extra={"error": str(exc)})
            raise StoreUnavailable(str(exc)) from exc


def _default_notifier(settings: SubSettings) -> NotificationPort:
    if settings.telegram.bot_token:
        from subctl.infrastructure.telegram import TelegramNotifier

        return TelegramNotifier(settings.telegram)
    return LoggingNotifier()
