"""AppContext — shared Click context for all commands.

Created once by the root group and passed to subcommands with
``@click.pass_obj``. The Store is opened lazily so ``--help`` and
``--version`` never touch the database.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import click

from subctl.output.formatters import OutputSettings, format_result

if TYPE_CHECKING:
    from subctl.config.settings import SubSettings
    from subctl.infrastructure.store import Store
    from subctl.services.result import ServiceResult


class AppContext:
    """State shared by every subcommand of one CLI invocation."""

    def __init__(self, settings: SubSettings) -> None:
        self.settings = settings
        self._store: Store | None = None

        from subctl.config.logging import configure_logging

        configure_logging(verbose=settings.verbose, log_json=settings.log_json)

    @property
    def store(self) -> Store:
        """The Store (opened on first access, closed with the Click context)."""
        if self._store is None:
            from subctl.infrastructure.store import Store

            self._store = Store(self.settings)
            self._store.init_event_bus(sync=not self.settings.async_hooks)
            ctx = click.get_current_context(silent=True)
            if ctx is not None:
                ctx.call_on_close(self.close)
        return self._store

    def close(self) -> None:
        if self._store is not None:
            self._store.close()
            self._store = None

    def emit(self, result: ServiceResult, *, exit_on_error: bool = True) -> None:
        """Print *result* and apply exit semantics.

        Success goes to stdout with warnings on stderr. Failure goes to
        stderr and exits with code 1 unless *exit_on_error* is False.
        """
        settings = OutputSettings(
            json_output=self.settings.json_output,
            quiet=self.settings.quiet,
            verbose=self.settings.verbose,
        )
        output = format_result(result, settings=settings)
        if result.ok:
            click.echo(output)
            if not settings.json_output:
                for warning in result.warnings:
                    click.echo(f"WARNING: {warning}", err=True)
        else:
            click.echo(output, err=True)
            if exit_on_error:
                raise SystemExit(1)
