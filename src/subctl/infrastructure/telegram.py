"""Telegram Bot API implementation of the notification port.

Revocation is a kick, not a ban: ``banChatMember`` removes the member and
``unbanChatMember`` with ``only_if_banned`` lifts the ban straight away,
so a renewed user can rejoin through an invite link.
"""

from __future__ import annotations

import logging
from typing import Any

import httpx

from subctl.config.models import TelegramConfig
from subctl.infrastructure.notifications import NotificationFailure

logger = logging.getLogger(__name__)


class TelegramNotifier:
    """Notification port backed by the Telegram Bot API over httpx.

    Parameters:
        config: ``[telegram]`` settings; ``bot_token`` is required.
        client: Optional pre-built client (tests pass one with a mock transport).
    """

    def __init__(self, config: TelegramConfig, *, client: httpx.Client | None = None) -> None:
        if not config.bot_token:
            msg = "TelegramNotifier requires telegram.bot_token"
            raise ValueError(msg)
        self._client = client or httpx.Client(
            base_url=f"{config.api_base.rstrip('/')}/bot{config.bot_token}/",
            timeout=config.timeout_seconds,
        )

    def send_message(self, target_id: str, text: str) -> None:
        self._call("sendMessage", target_id, {"chat_id": target_id, "text": text})

    def revoke_membership(self, channel_id: str, external_id: str) -> None:
        self._call(
            "banChatMember",
            external_id,
            {"chat_id": channel_id, "user_id": external_id},
        )
        self._call(
            "unbanChatMember",
            external_id,
            {"chat_id": channel_id, "user_id": external_id, "only_if_banned": True},
        )

    def close(self) -> None:
        self._client.close()

    def _call(self, method: str, target: str, params: dict[str, Any]) -> Any:
        """POST one Bot API method; raise NotificationFailure on any failure."""
        try:
            response = self._client.post(method, json=params)
            body = response.json()
        except (httpx.HTTPError, ValueError) as exc:
            raise NotificationFailure(method, target, str(exc)) from exc

        if not body.get("ok"):
            reason = body.get("description") or f"HTTP {response.status_code}"
            raise NotificationFailure(method, target, reason)

        logger.debug("telegram.%s ok", method, extra={"target": target})
        return body.get("result")
