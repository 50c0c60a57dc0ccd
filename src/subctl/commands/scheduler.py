"""Command: foreground daily scheduler."""

from __future__ import annotations

from typing import TYPE_CHECKING

import click

from subctl.commands._base import SubCommand

if TYPE_CHECKING:
    from subctl.commands._context import AppContext
    from subctl.services.result import ServiceResult


@click.command(
    cls=SubCommand,
    examples="""\
  subctl scheduler
  subctl scheduler --run-now
  subctl --log-json scheduler""",
)
@click.option("--run-now", is_flag=True, help="Run once immediately before waiting.")
@click.pass_obj
def scheduler(app: AppContext, run_now: bool) -> None:
    """Run reconciliation every day at schedule.daily_at until interrupted."""
    from subctl.services.scheduler import DailyScheduler

    store = app.store
    schedule = store.settings.schedule

    def report(result: ServiceResult) -> None:
        app.emit(result, exit_on_error=False)

    worker = DailyScheduler(store, on_result=report)
    if run_now:
        worker.run_once()

    click.echo(
        f"Scheduler running daily at {schedule.daily_at:%H:%M} {schedule.timezone}. "
        "Ctrl+C to stop.",
        err=True,
    )
    worker.start()
    try:
        while worker.is_alive():
            worker.join(timeout=1.0)
    except KeyboardInterrupt:
        click.echo("Stopping scheduler...", err=True)
    finally:
        worker.stop()
        worker.join(timeout=5.0)
