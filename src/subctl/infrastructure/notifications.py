"""Notification port — outbound calls to the external platform.

Both operations are fire-and-forget from the engine's point of view:
implementations raise :class:`NotificationFailure` and the caller logs it.
A failed notification never rolls back or retries the state change that
preceded it.
"""

from __future__ import annotations

import logging
from typing import Protocol, runtime_checkable

logger = logging.getLogger(__name__)


class NotificationFailure(Exception):
    """An outbound platform call did not succeed."""

    def __init__(self, operation: str, target: str, reason: str) -> None:
        super().__init__(f"{operation} to {target} failed: {reason}")
        self.operation = operation
        self.target = target
        self.reason = reason


@runtime_checkable
class NotificationPort(Protocol):
    """Outbound messaging and membership control."""

    def send_message(self, target_id: str, text: str) -> None:
        """Send *text* to the chat or user *target_id*."""

    def revoke_membership(self, channel_id: str, external_id: str) -> None:
        """Remove *external_id* from the group *channel_id*."""


class LoggingNotifier:
    """Port used when no bot token is configured: records intent in the log."""

    def send_message(self, target_id: str, text: str) -> None:
        logger.info("notify.send_message", extra={"target_id": target_id, "text": text})

    def revoke_membership(self, channel_id: str, external_id: str) -> None:
        logger.info(
            "notify.revoke_membership",
            extra={"channel_id": channel_id, "external_id": external_id},
        )
