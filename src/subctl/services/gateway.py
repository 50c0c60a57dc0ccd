"""GatewayService — administrator text commands to lifecycle operations."""

from __future__ import annotations

import logging
from typing import Any

from subctl.domain.commands import CommandRejected, RenewCommand, StatsCommand, parse_command
from subctl.services.base import BaseService
from subctl.services.lifecycle import LifecycleService
from subctl.services.result import VALIDATION_FAILED, ServiceResult

logger = logging.getLogger(__name__)


def format_stats_report(data: dict[str, Any]) -> str:
    """Multi-line plain-text report for the ``stats`` reply."""
    currency = data.get("currency", "")
    return "\n".join(
        [
            "Subscription stats",
            f"Active: {data['active_count']}",
            f"Pending: {data['pending_count']}",
            f"Expired: {data['expired_count']}",
            f"Removed: {data['removed_count']}",
            f"Payments: {data['payment_count']}",
            f"Total revenue: {data['total_revenue']:.2f} {currency}",
            f"This month: {data['month_to_date_revenue']:.2f} {currency}",
            f"Average payment: {data['average_payment']:.2f} {currency}",
        ]
    )


def format_renew_reply(result: ServiceResult) -> str:
    """One-line reply to a ``renew`` command."""
    if result.ok:
        d = result.data
        who = f"@{d['handle']}" if d.get("handle") else d["external_id"]
        return f"Renewed {who} until {d['new_end_date']} ({d['amount']:.2f} {d['currency']})"
    assert result.error is not None
    return f"Renew failed: {result.error.message}"


class GatewayService(BaseService):
    """Turns administrator messages into engine calls and replies."""

    def handle(self, sender_id: str, text: str) -> ServiceResult:
        """Execute one command line from *sender_id*.

        The result's ``data["reply"]`` holds the text to send back, or is
        absent when the message is ignored (unknown sender or not a
        command). The reply is not sent here.
        """
        op = "command"
        admin_id = self._admin_id
        if admin_id is None or str(sender_id) != admin_id:
            logger.debug("command.ignored_sender", extra={"sender_id": sender_id})
            return ServiceResult(ok=True, op=op, data={"ignored": "sender"})

        parsed = parse_command(text)
        if parsed is None:
            return ServiceResult(ok=True, op=op, data={"ignored": "unrecognized"})

        if isinstance(parsed, CommandRejected):
            logger.info(
                "command.rejected", extra={"command": parsed.command, "reason": parsed.reason}
            )
            return ServiceResult.failure(op, VALIDATION_FAILED, parsed.reason).model_copy(
                update={"data": {"command": parsed.command, "reply": f"Rejected: {parsed.reason}"}}
            )

        lifecycle = LifecycleService(self._store)

        if isinstance(parsed, RenewCommand):
            result = lifecycle.renew(parsed.external_id, parsed.days, amount=parsed.amount)
            return result.model_copy(
                update={
                    "op": op,
                    "data": {
                        **result.data,
                        "command": "renew",
                        "reply": format_renew_reply(result),
                    },
                }
            )

        assert isinstance(parsed, StatsCommand)
        result = lifecycle.compute_stats()
        if not result.ok:
            assert result.error is not None
            reply = f"Stats unavailable: {result.error.message}"
        else:
            reply = format_stats_report(result.data)
        return result.model_copy(
            update={"op": op, "data": {**result.data, "command": "stats", "reply": reply}}
        )
