"""Command: data directory initialization (named init_cmd to avoid shadowing builtins)."""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

import click

from subctl.commands._base import SubCommand

if TYPE_CHECKING:
    from subctl.commands._context import AppContext

_INIT_EXAMPLES = """\
  subctl init
  subctl init /srv/subctl --admin-id 123456789
  subctl init . --admin-id 123456789 --group-id -1001234567890 --grace-days 5"""


@click.command("init", cls=SubCommand, examples=_INIT_EXAMPLES)
@click.argument("path", required=False, default=".")
@click.option("--admin-id", default=None, help="Administrator chat id.")
@click.option("--group-id", default=None, help="Managed group id (discovered if omitted).")
@click.option("--grace-days", type=click.IntRange(min=0), default=3, show_default=True)
@click.option("--currency", default="USD", show_default=True)
@click.pass_obj
def init_cmd(
    app: AppContext,
    path: str,
    admin_id: str | None,
    group_id: str | None,
    grace_days: int,
    currency: str,
) -> None:
    """Create subctl.toml and the database in PATH."""
    from subctl.services.init import InitService

    app.emit(
        InitService.init_store(
            Path(path),
            admin_id=admin_id,
            group_id=group_id,
            grace_period_days=grace_days,
            currency=currency.upper(),
        )
    )
