"""Tests for EventService — inbound event dispatch and acknowledgement."""

from __future__ import annotations

import pytest
from sqlalchemy.exc import NoResultFound

from subctl.domain.events import (
    AdminMessage,
    ChannelIdentified,
    Member,
    MembershipChanged,
    NewMembers,
)
from subctl.infrastructure.store import GROUP_CHAT_ID_KEY, Store, StoreUnavailable
from subctl.services.events import EventService
from tests.conftest import ADMIN_ID, RecordingNotifier, user_row


class TestNewMembers:
    def test_registers_humans_skips_bots(self, store: Store) -> None:
        event = NewMembers(
            members=[
                Member(external_id="42", handle="alice"),
                Member(external_id="77", handle="helper_bot", is_automated=True),
            ]
        )
        result = EventService(store).handle(event)
        assert result.ok
        assert result.data["skipped_automated"] == 1
        assert user_row(store, "42").status == "pending"
        with pytest.raises(NoResultFound):
            user_row(store, "77")

    def test_duplicate_is_noop(self, store: Store, notifier: RecordingNotifier) -> None:
        event = NewMembers(members=[Member(external_id="42")])
        EventService(store).handle(event)
        result = EventService(store).handle(event)
        assert result.ok
        assert result.data["members"] == [{"external_id": "42", "created": False}]
        assert len(notifier.to(ADMIN_ID)) == 1


class TestMembershipChanged:
    def test_active_registers(self, store: Store) -> None:
        event = MembershipChanged(external_id="42", handle="alice", new_status="active")
        result = EventService(store).handle(event)
        assert result.data["action"] == "register"
        assert user_row(store, "42").handle == "alice"

    def test_left_ignored(self, store: Store) -> None:
        event = MembershipChanged(external_id="42", new_status="left")
        result = EventService(store).handle(event)
        assert result.ok
        assert result.data["action"] == "ignored"


class TestAdminMessage:
    def test_reply_sent_to_sender(self, store: Store, notifier: RecordingNotifier) -> None:
        result = EventService(store).handle(AdminMessage(sender_id=ADMIN_ID, text="stats"))
        assert result.ok
        assert result.data["replied"] is True
        assert notifier.to(ADMIN_ID)[-1].startswith("Subscription stats")

    def test_rejected_command_still_acknowledged(
        self, store: Store, notifier: RecordingNotifier
    ) -> None:
        result = EventService(store).handle(AdminMessage(sender_id=ADMIN_ID, text="renew x -1"))
        assert result.ok
        assert result.data["command_ok"] is False
        assert notifier.to(ADMIN_ID)[-1].startswith("Rejected:")

    def test_oversized_renewal_still_acknowledged(
        self, store: Store, notifier: RecordingNotifier
    ) -> None:
        result = EventService(store).handle(
            AdminMessage(sender_id=ADMIN_ID, text="renew 42 99999999")
        )
        assert result.ok
        assert result.data["command_ok"] is False
        assert notifier.to(ADMIN_ID)[-1].startswith("Rejected:")

    def test_stranger_gets_no_reply(self, store: Store, notifier: RecordingNotifier) -> None:
        result = EventService(store).handle(AdminMessage(sender_id="555", text="stats"))
        assert result.ok
        assert result.data["action"] == "ignored"
        assert notifier.messages == []

    def test_reply_failure_is_warning(self, store: Store, notifier: RecordingNotifier) -> None:
        notifier.fail_send = True
        result = EventService(store).handle(AdminMessage(sender_id=ADMIN_ID, text="stats"))
        assert result.ok
        assert result.data["replied"] is False
        assert result.warnings


class TestChannelIdentified:
    def test_persists_group_id(self, store: Store, notifier: RecordingNotifier) -> None:
        result = EventService(store).handle(ChannelIdentified(channel_id="-100999", title="VIP"))
        assert result.ok
        assert result.data["changed"] is True
        with store.transaction() as txn:
            assert txn.get_config(GROUP_CHAT_ID_KEY) == "-100999"
        assert "VIP" in notifier.to(ADMIN_ID)[0]

    def test_same_id_twice_notifies_once(self, store: Store, notifier: RecordingNotifier) -> None:
        EventService(store).handle(ChannelIdentified(channel_id="-100999"))
        result = EventService(store).handle(ChannelIdentified(channel_id="-100999"))
        assert result.data["changed"] is False
        assert len(notifier.to(ADMIN_ID)) == 1

    def test_store_fault_is_warning(self, store: Store, monkeypatch: pytest.MonkeyPatch) -> None:
        def broken() -> None:
            raise StoreUnavailable("database is locked")

        monkeypatch.setattr(store, "transaction", broken)
        result = EventService(store).handle(ChannelIdentified(channel_id="-100999"))
        assert result.ok
        assert result.data["saved"] is False
        assert result.warnings


class TestUnclassified:
    def test_none_acknowledged(self, store: Store) -> None:
        result = EventService(store).handle(None)
        assert result.ok
        assert result.data["action"] == "ignored"
