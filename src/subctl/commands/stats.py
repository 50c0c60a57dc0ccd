"""Command: subscription and revenue statistics."""

from __future__ import annotations

from typing import TYPE_CHECKING

import click

from subctl.commands._base import SubCommand

if TYPE_CHECKING:
    from subctl.commands._context import AppContext


@click.command(
    cls=SubCommand,
    examples="""\
  subctl stats
  subctl --json stats""",
)
@click.pass_obj
def stats(app: AppContext) -> None:
    """Show user counts by status and revenue totals."""
    from subctl.services.lifecycle import LifecycleService

    app.emit(LifecycleService(app.store).compute_stats())
