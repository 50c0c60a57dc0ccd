"""Shared pytest fixtures and test helpers for subctl tests."""

from __future__ import annotations

from collections.abc import Iterator
from datetime import date, timedelta
from pathlib import Path
from typing import Any

import pytest
from click.testing import CliRunner
from sqlalchemy import select
from sqlalchemy.engine import Engine

from subctl.config.settings import SubSettings
from subctl.infrastructure.database.engine import init_database
from subctl.infrastructure.database.schema import subscriptions, users
from subctl.infrastructure.notifications import NotificationFailure
from subctl.infrastructure.store import Store

ADMIN_ID = "1000"
GROUP_ID = "-100200"
TODAY = date(2026, 3, 15)


class RecordingNotifier:
    """In-memory notification port. Flip ``fail_send`` / ``fail_revoke`` to simulate outages."""

    def __init__(self) -> None:
        self.messages: list[tuple[str, str]] = []
        self.revoked: list[tuple[str, str]] = []
        self.fail_send = False
        self.fail_revoke = False

    def send_message(self, target_id: str, text: str) -> None:
        if self.fail_send:
            raise NotificationFailure("send_message", target_id, "platform down")
        self.messages.append((target_id, text))

    def revoke_membership(self, channel_id: str, external_id: str) -> None:
        if self.fail_revoke:
            raise NotificationFailure("revoke_membership", external_id, "platform down")
        self.revoked.append((channel_id, external_id))

    def to(self, target_id: str) -> list[str]:
        """Messages sent to *target_id*, in order."""
        return [text for target, text in self.messages if target == target_id]


class FixedClock:
    """Settable "today" for lifecycle tests."""

    def __init__(self, today: date = TODAY) -> None:
        self.today = today

    def __call__(self) -> date:
        return self.today

    def advance(self, days: int) -> None:
        self.today += timedelta(days=days)


@pytest.fixture
def cli_runner() -> CliRunner:
    """Provide a Click CLI test runner."""
    return CliRunner()


@pytest.fixture
def db_engine(tmp_path: Path) -> Iterator[Engine]:
    """Initialized SQLite engine with all tables created."""
    engine = init_database(tmp_path)
    try:
        yield engine
    finally:
        engine.dispose()


@pytest.fixture
def settings(tmp_path: Path) -> SubSettings:
    return SubSettings.from_cli(
        data_dir=tmp_path,
        admin={"chat_id": ADMIN_ID},
        group={"chat_id": GROUP_ID},
    )


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock()


@pytest.fixture
def store(settings: SubSettings, notifier: RecordingNotifier, clock: FixedClock) -> Iterator[Store]:
    """Store on a temp directory with a recording notifier and a fixed clock."""
    s = Store(settings, notifier=notifier, clock=clock)
    try:
        yield s
    finally:
        s.close()


@pytest.fixture
def _isolated_store(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    """Run CLI tests from a temp directory holding a minimal subctl.toml.

    Use via ``@pytest.mark.usefixtures("_isolated_store")`` on command test
    classes.
    """
    (tmp_path / "subctl.toml").write_text(
        f'[admin]\nchat_id = "{ADMIN_ID}"\n\n[group]\nchat_id = "{GROUP_ID}"\n',
        encoding="utf-8",
    )
    monkeypatch.chdir(tmp_path)
    monkeypatch.delenv("SUBCTL_CONFIG", raising=False)
    monkeypatch.delenv("SUBCTL_TELEGRAM__BOT_TOKEN", raising=False)


# ---------------------------------------------------------------------------
# Shared test helpers
# ---------------------------------------------------------------------------


def register(store: Store, external_id: str, **kwargs: Any) -> dict[str, Any]:
    """Register a user via LifecycleService, asserting success."""
    from subctl.services.lifecycle import LifecycleService

    result = LifecycleService(store).register_user(external_id, **kwargs)
    assert result.ok, result.error
    return result.data


def renew(store: Store, external_id: str, days: int, **kwargs: Any) -> dict[str, Any]:
    """Renew a user via LifecycleService, asserting success."""
    from subctl.services.lifecycle import LifecycleService

    result = LifecycleService(store).renew(external_id, days, **kwargs)
    assert result.ok, result.error
    return result.data


def user_row(store: Store, external_id: str) -> Any:
    with store.engine.connect() as conn:
        return conn.execute(select(users).where(users.c.external_id == external_id)).one()


def active_subscriptions(store: Store, user_id: int) -> list[Any]:
    with store.engine.connect() as conn:
        return conn.execute(
            select(subscriptions).where(
                subscriptions.c.user_id == user_id, subscriptions.c.status == "active"
            )
        ).fetchall()
