"""EventService — acknowledges and applies inbound platform events.

``handle`` always returns ``ok=True``: the platform must see every event
acknowledged, so processing problems are reported as warnings.
"""

from __future__ import annotations

import logging
from typing import Any

from subctl.domain.events import (
    ACTIVE_MEMBERSHIP,
    AdminMessage,
    ChannelIdentified,
    InboundEvent,
    MembershipChanged,
    NewMembers,
)
from subctl.infrastructure.store import GROUP_CHAT_ID_KEY, StoreUnavailable
from subctl.services._helpers import now_iso
from subctl.services.base import BaseService
from subctl.services.gateway import GatewayService
from subctl.services.lifecycle import LifecycleService
from subctl.services.result import ServiceResult

logger = logging.getLogger(__name__)


class EventService(BaseService):
    """Dispatches each inbound event variant to its handler."""

    def handle(self, event: InboundEvent | None) -> ServiceResult:
        op = "event"
        if event is None:
            return ServiceResult(ok=True, op=op, data={"kind": None, "action": "ignored"})

        warnings: list[str] = []
        if isinstance(event, NewMembers):
            data = self._on_new_members(event, warnings)
        elif isinstance(event, MembershipChanged):
            data = self._on_membership_changed(event, warnings)
        elif isinstance(event, AdminMessage):
            data = self._on_admin_message(event, warnings)
        else:
            data = self._on_channel_identified(event, warnings)

        return ServiceResult(ok=True, op=op, data={"kind": event.kind, **data}, warnings=warnings)

    # --- handlers ------------------------------------------------------

    def _register(
        self,
        external_id: str,
        handle: str | None,
        display_name: str | None,
        warnings: list[str],
    ) -> dict[str, Any]:
        result = LifecycleService(self._store).register_user(
            external_id, handle=handle, display_name=display_name
        )
        warnings.extend(result.warnings)
        if not result.ok:
            assert result.error is not None
            warnings.append(f"register {external_id}: {result.error.message}")
            return {"external_id": external_id, "created": None}
        return {"external_id": external_id, "created": result.data["created"]}

    def _on_new_members(self, event: NewMembers, warnings: list[str]) -> dict[str, Any]:
        registered = [
            self._register(m.external_id, m.handle, m.display_name, warnings)
            for m in event.members
            if not m.is_automated
        ]
        skipped = sum(1 for m in event.members if m.is_automated)
        return {"action": "register", "members": registered, "skipped_automated": skipped}

    def _on_membership_changed(
        self, event: MembershipChanged, warnings: list[str]
    ) -> dict[str, Any]:
        if event.new_status != ACTIVE_MEMBERSHIP:
            return {"action": "ignored", "new_status": event.new_status}
        registered = self._register(event.external_id, event.handle, event.display_name, warnings)
        return {"action": "register", "members": [registered]}

    def _on_admin_message(self, event: AdminMessage, warnings: list[str]) -> dict[str, Any]:
        result = GatewayService(self._store).handle(event.sender_id, event.text)
        warnings.extend(result.warnings)
        reply = result.data.get("reply")
        if reply is None:
            return {"action": "ignored", "reason": result.data.get("ignored")}
        replied = self._send(event.sender_id, reply, warnings)
        return {
            "action": "command",
            "command": result.data.get("command"),
            "command_ok": result.ok,
            "replied": replied,
        }

    def _on_channel_identified(
        self, event: ChannelIdentified, warnings: list[str]
    ) -> dict[str, Any]:
        try:
            with self._store.transaction() as txn:
                changed = txn.put_config(GROUP_CHAT_ID_KEY, event.channel_id, now=now_iso())
        except StoreUnavailable as exc:
            warnings.append(f"group id not saved: {exc}")
            return {"action": "channel", "channel_id": event.channel_id, "saved": False}

        if changed:
            logger.info("group.identified", extra={"channel_id": event.channel_id})
            title = f" ({event.title})" if event.title else ""
            self._notify_admin(f"Managing group {event.channel_id}{title}", warnings)
        return {
            "action": "channel",
            "channel_id": event.channel_id,
            "saved": True,
            "changed": changed,
        }
