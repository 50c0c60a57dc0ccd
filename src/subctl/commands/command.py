"""Command: run one administrator command line."""

from __future__ import annotations

from typing import TYPE_CHECKING

import click

from subctl.commands._base import SubCommand

if TYPE_CHECKING:
    from subctl.commands._context import AppContext


@click.command(
    cls=SubCommand,
    examples="""\
  subctl command "renew 123456789 30 20"
  subctl command stats
  subctl command --sender 987654 "renew 42 7\"""",
)
@click.argument("text", nargs=-1, required=True)
@click.option("--sender", default=None, help="Sender id (defaults to the configured admin).")
@click.pass_obj
def command(app: AppContext, text: tuple[str, ...], sender: str | None) -> None:
    """Parse TEXT as an admin message and execute it (the reply is printed)."""
    from subctl.services.gateway import GatewayService

    sender_id = sender or app.settings.admin.chat_id
    if sender_id is None:
        raise click.UsageError("No --sender given and admin.chat_id is not configured")
    app.emit(GatewayService(app.store).handle(sender_id, " ".join(text)))
