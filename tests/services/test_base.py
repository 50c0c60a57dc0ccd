"""Tests for BaseService notification and hook plumbing."""

from __future__ import annotations

from sqlalchemy import select

from subctl.infrastructure.database.schema import event_wal
from subctl.infrastructure.store import Store, StoreUnavailable
from subctl.plugins import hookimpl
from subctl.services.base import BaseService
from tests.conftest import ADMIN_ID, RecordingNotifier


class _Exploding:
    @hookimpl
    def post_revoke(self, user_id: int, external_id: str) -> None:
        raise RuntimeError("boom")


class TestSend:
    def test_delivers(self, store: Store, notifier: RecordingNotifier) -> None:
        warnings: list[str] = []
        assert BaseService(store)._notify_admin("hello", warnings) is True
        assert notifier.to(ADMIN_ID) == ["hello"]
        assert warnings == []

    def test_failure_becomes_warning(self, store: Store, notifier: RecordingNotifier) -> None:
        notifier.fail_send = True
        warnings: list[str] = []
        assert BaseService(store)._send("42", "hello", warnings) is False
        assert len(warnings) == 1
        assert "platform down" in warnings[0]

    def test_missing_target_skipped(self, store: Store, notifier: RecordingNotifier) -> None:
        warnings: list[str] = []
        assert BaseService(store)._send(None, "hello", warnings) is False
        assert notifier.messages == []
        assert warnings == []


class TestDispatchEvent:
    def test_noop_without_bus(self, store: Store) -> None:
        warnings: list[str] = []
        payload = {"user_id": 1, "external_id": "42"}
        BaseService(store)._dispatch_event("post_revoke", payload, warnings)
        assert warnings == []

    def test_plugin_failure_is_recorded_not_raised(self, store: Store) -> None:
        store.init_event_bus(sync=True)
        assert store.event_bus is not None
        store.event_bus._pm.register_plugin(_Exploding())
        warnings: list[str] = []

        payload = {"user_id": 1, "external_id": "42"}
        BaseService(store)._dispatch_event("post_revoke", payload, warnings)

        with store.engine.connect() as conn:
            status = conn.execute(select(event_wal.c.status)).scalar_one()
        assert status == "failed"
        assert warnings == []


class TestStoreFault:
    def test_result_shape(self) -> None:
        result = BaseService._store_fault("renew", StoreUnavailable("database is locked"))
        assert result.ok is False
        assert result.error is not None
        assert result.error.code == "STORE_UNAVAILABLE"
        assert result.error.detail == {"retryable": True}
        assert "database is locked" in result.error.message
