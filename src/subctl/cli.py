"""Root CLI group for subctl with global flags and command registration."""

from __future__ import annotations

from pathlib import Path

import click

from subctl import __version__
from subctl.commands import register_commands
from subctl.commands._context import AppContext
from subctl.config.settings import SubSettings


@click.group(invoke_without_command=True)
@click.version_option(version=__version__, prog_name="subctl")
@click.option("--json", "json_output", is_flag=True, help="Print results as JSON.")
@click.option("-q", "--quiet", is_flag=True, help="Print ids or one status line only.")
@click.option("-v", "--verbose", is_flag=True, help="Show detail fields and debug logs.")
@click.option("--log-json", is_flag=True, help="Write logs to stderr as JSON lines.")
@click.option("-c", "--config", "config_path", default=None, help="Use this subctl.toml.")
@click.option(
    "-d",
    "--data-dir",
    type=click.Path(file_okay=False, path_type=Path),
    default=None,
    help="Directory holding .subctl/ (default: next to subctl.toml).",
)
@click.option("--async-hooks", is_flag=True, help="Run plugin hooks on a background pool.")
@click.pass_context
def cli(
    ctx: click.Context,
    json_output: bool,
    quiet: bool,
    verbose: bool,
    log_json: bool,
    config_path: str | None,
    data_dir: Path | None,
    async_hooks: bool,
) -> None:
    """subctl: paid-group subscription manager.

    Registers members, records renewals, and removes members whose
    subscription ran out more than the grace period ago.
    """
    ctx.obj = AppContext(
        SubSettings.from_cli(
            config_path=config_path,
            data_dir=data_dir,
            json_output=json_output,
            quiet=quiet,
            verbose=verbose,
            log_json=log_json,
            async_hooks=async_hooks,
        )
    )
    if ctx.invoked_subcommand is None:
        click.echo(ctx.get_help())


register_commands(cli)
