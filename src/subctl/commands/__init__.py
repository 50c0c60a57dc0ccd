"""Subcommand modules for subctl.

:func:`register_commands` imports each module on registration so the
root group stays the only import-time dependency of ``subctl --help``.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    import click


def register_commands(cli: click.Group) -> None:
    """Attach every subcommand to the root group."""
    from subctl.commands.command import command
    from subctl.commands.ingest import ingest
    from subctl.commands.init_cmd import init_cmd
    from subctl.commands.reconcile import reconcile
    from subctl.commands.register import register
    from subctl.commands.renew import renew
    from subctl.commands.scheduler import scheduler
    from subctl.commands.stats import stats
    from subctl.commands.upgrade import upgrade

    cli.add_command(init_cmd)
    cli.add_command(register)
    cli.add_command(renew)
    cli.add_command(stats)
    cli.add_command(reconcile)
    cli.add_command(scheduler)
    cli.add_command(ingest)
    cli.add_command(command)
    cli.add_command(upgrade)
