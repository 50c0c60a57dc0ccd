"""Administrator command parsing.

Text protocol (one command per message, whitespace separated)::

    renew <external_id> <days> [<amount>]
    stats

:func:`parse_command` is strict: malformed numbers are rejected with a
reason, never coerced. Text that is not a known command yields ``None``
and is ignored by the gateway.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Literal

from pydantic import BaseModel

from subctl.domain.lifecycle import MAX_DURATION_DAYS
from subctl.domain.money import parse_amount

RENEW_USAGE = "usage: renew <id> <days> [<amount>]"


class RenewCommand(BaseModel):
    """``renew`` with validated arguments. ``amount`` None means "use default"."""

    model_config = {"frozen": True}

    kind: Literal["renew"] = "renew"
    external_id: str
    days: int
    amount: Decimal | None = None


class StatsCommand(BaseModel):
    model_config = {"frozen": True}

    kind: Literal["stats"] = "stats"


class CommandRejected(BaseModel):
    """A recognized command whose arguments failed validation."""

    model_config = {"frozen": True}

    kind: Literal["rejected"] = "rejected"
    command: str
    reason: str


ParsedCommand = RenewCommand | StatsCommand


def parse_command(text: str) -> ParsedCommand | CommandRejected | None:
    """Parse one administrator command line.

    Returns a command model, a :class:`CommandRejected` with a user-facing
    reason, or ``None`` for unrecognized input.
    """
    parts = text.strip().split()
    if not parts:
        return None

    # Telegram-style "/renew" and "renew@botname" are accepted too.
    name = parts[0].lstrip("/").split("@", 1)[0].lower()
    args = parts[1:]

    if name == "stats":
        return StatsCommand()
    if name == "renew":
        return _parse_renew(args)
    return None


def _parse_renew(args: list[str]) -> RenewCommand | CommandRejected:
    if len(args) not in (2, 3):
        return CommandRejected(command="renew", reason=RENEW_USAGE)

    external_id, raw_days = args[0], args[1]

    if not (raw_days.isascii() and raw_days.isdigit()):
        return CommandRejected(
            command="renew",
            reason=f"days must be a positive whole number, got {raw_days!r}",
        )
    days = int(raw_days)
    if days <= 0:
        return CommandRejected(command="renew", reason="days must be greater than 0")
    if days > MAX_DURATION_DAYS:
        return CommandRejected(
            command="renew", reason=f"days must be at most {MAX_DURATION_DAYS}, got {days}"
        )

    amount: Decimal | None = None
    if len(args) == 3:
        try:
            amount = parse_amount(args[2])
        except ValueError as exc:
            return CommandRejected(command="renew", reason=f"invalid amount: {exc}")

    return RenewCommand(external_id=external_id, days=days, amount=amount)
