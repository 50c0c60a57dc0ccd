"""Command: renew a user's subscription."""

from __future__ import annotations

from decimal import Decimal
from typing import TYPE_CHECKING

import click

from subctl.commands._base import SubCommand
from subctl.domain.lifecycle import MAX_DURATION_DAYS

if TYPE_CHECKING:
    from subctl.commands._context import AppContext


class AmountType(click.ParamType):
    """Non-negative decimal with at most two places."""

    name = "amount"

    def convert(
        self, value: object, param: click.Parameter | None, ctx: click.Context | None
    ) -> Decimal:
        if isinstance(value, Decimal):
            return value
        from subctl.domain.money import parse_amount

        try:
            return parse_amount(str(value))
        except ValueError as exc:
            self.fail(str(exc), param, ctx)


@click.command(
    cls=SubCommand,
    examples="""\
  subctl renew 123456789 30
  subctl renew 123456789 30 20.00
  subctl renew 123456789 90 50 --method transfer""",
)
@click.argument("external_id")
@click.argument("days", type=click.IntRange(min=1, max=MAX_DURATION_DAYS))
@click.argument("amount", type=AmountType(), required=False)
@click.option("--method", default=None, help="Payment method (default from config).")
@click.pass_obj
def renew(
    app: AppContext,
    external_id: str,
    days: int,
    amount: Decimal | None,
    method: str | None,
) -> None:
    """Extend EXTERNAL_ID by DAYS from today and record a payment of AMOUNT."""
    from subctl.services.lifecycle import LifecycleService

    app.emit(LifecycleService(app.store).renew(external_id, days, amount=amount, method=method))
