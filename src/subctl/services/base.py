"""BaseService — shared foundation for all subctl services.

Every service receives a :class:`Store` at construction time. The Store
provides transactional access to the database plus the notification port
and the event bus. Services own their transaction boundaries via
``self._store.transaction()`` and only talk to the outside world after
that block has committed.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from subctl.infrastructure.notifications import NotificationFailure
from subctl.services.result import STORE_UNAVAILABLE, ServiceResult

if TYPE_CHECKING:
    from subctl.infrastructure.store import Store, StoreUnavailable

logger = logging.getLogger(__name__)


class BaseService:
    """Base for all service-layer classes.

    Usage::

        class LifecycleService(BaseService):
            def renew(self, ...) -> ServiceResult:
                with self._store.transaction() as txn:
                    ...
                self._send(admin_id, "...", warnings)
    """

    def __init__(self, store: Store) -> None:
        self._store = store

    @property
    def _admin_id(self) -> str | None:
        return self._store.settings.admin.chat_id

    def _send(self, target_id: str | None, text: str, warnings: list[str]) -> bool:
        """Best-effort message through the notification port.

        INVARIANT: Notification failures are warnings, never errors.
        Returns True if the message was handed off successfully.
        """
        if not target_id:
            logger.debug("No target for message, skipped: %s", text)
            return False
        try:
            self._store.notifier.send_message(target_id, text)
        except NotificationFailure as exc:
            logger.warning(
                "notification.failed",
                extra={"operation": exc.operation, "target": exc.target, "reason": exc.reason},
            )
            warnings.append(str(exc))
            return False
        return True

    def _notify_admin(self, text: str, warnings: list[str]) -> bool:
        return self._send(self._admin_id, text, warnings)

    def _dispatch_event(
        self,
        hook_name: str,
        payload: dict[str, Any],
        warnings: list[str],
    ) -> None:
        """Dispatch a lifecycle hook. No-op if the event bus is not initialized.

        INVARIANT: Plugin failures are warnings, never errors.
        """
        bus = self._store.event_bus
        if bus is None:
            return
        try:
            bus.dispatch(hook_name, payload)
        except Exception:
            logger.debug("Event dispatch failed for %s", hook_name, exc_info=True)
            warnings.append(f"Event dispatch failed for {hook_name}")

    @staticmethod
    def _store_fault(op: str, exc: StoreUnavailable) -> ServiceResult:
        """Result for an operation aborted by a store fault (nothing was written)."""
        return ServiceResult.failure(
            op,
            STORE_UNAVAILABLE,
            f"Store unavailable, nothing was changed: {exc}",
            retryable=True,
        )
