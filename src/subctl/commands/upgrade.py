"""Command: bring the store's schema up to date."""

from __future__ import annotations

from typing import TYPE_CHECKING

import click

from subctl.commands._base import SubCommand

if TYPE_CHECKING:
    from subctl.commands._context import AppContext


@click.command(
    cls=SubCommand,
    examples="""\
  subctl upgrade --check                 # pending revisions and backup folder
  subctl upgrade                         # snapshot .subctl/subctl.db, then migrate
  subctl -d /srv/members upgrade --check""",
)
@click.option(
    "--check",
    "check_only",
    is_flag=True,
    help="Report pending revisions and where backups go; change nothing.",
)
@click.pass_obj
def upgrade(app: AppContext, check_only: bool) -> None:
    """Migrate the subscription store to the current schema.

    A snapshot is written to .subctl/backups/ before any revision runs;
    the newest ten snapshots are kept.
    """
    from subctl.services.upgrade import UpgradeService

    service = UpgradeService(app.store)
    if check_only:
        app.emit(service.check_pending())
        return
    app.emit(service.apply())
