"""Command: register a user manually."""

from __future__ import annotations

from typing import TYPE_CHECKING

import click

from subctl.commands._base import SubCommand

if TYPE_CHECKING:
    from subctl.commands._context import AppContext


@click.command(
    cls=SubCommand,
    examples="""\
  subctl register 123456789
  subctl register 123456789 --handle alice --name "Alice Doe"
  subctl --json register 123456789""",
)
@click.argument("external_id")
@click.option("--handle", default=None, help="Platform username, without @.")
@click.option("--name", "display_name", default=None, help="Display name.")
@click.pass_obj
def register(
    app: AppContext,
    external_id: str,
    handle: str | None,
    display_name: str | None,
) -> None:
    """Record EXTERNAL_ID as a pending user (no-op if already known)."""
    from subctl.services.lifecycle import LifecycleService

    app.emit(
        LifecycleService(app.store).register_user(
            external_id, handle=handle.lstrip("@") if handle else None, display_name=display_name
        )
    )
