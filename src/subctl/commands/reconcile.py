"""Command: run the daily reconciliation once (for cron)."""

from __future__ import annotations

from typing import TYPE_CHECKING

import click

from subctl.commands._base import SubCommand
from subctl.domain.lifecycle import MAX_GRACE_PERIOD_DAYS

if TYPE_CHECKING:
    from subctl.commands._context import AppContext


@click.command(
    cls=SubCommand,
    examples="""\
  subctl reconcile
  subctl reconcile --due-only
  subctl reconcile --overdue-only --grace-days 0
  subctl --json reconcile""",
)
@click.option("--due-only", is_flag=True, help="Only send expiring-today reminders.")
@click.option("--overdue-only", is_flag=True, help="Only lapse and revoke.")
@click.option(
    "--grace-days",
    type=click.IntRange(min=0, max=MAX_GRACE_PERIOD_DAYS),
    default=None,
    help="Override the configured grace period for this run.",
)
@click.pass_obj
def reconcile(
    app: AppContext,
    due_only: bool,
    overdue_only: bool,
    grace_days: int | None,
) -> None:
    """Remind users expiring today, then revoke users past the grace period."""
    if due_only and overdue_only:
        raise click.UsageError("--due-only and --overdue-only are mutually exclusive")

    from subctl.services.scheduler import ReconcileService

    app.emit(
        ReconcileService(app.store).run_daily(
            due=not overdue_only,
            overdue=not due_only,
            grace_period_days=grace_days,
        )
    )
