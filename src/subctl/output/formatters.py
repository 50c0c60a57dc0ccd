"""Adapts a ServiceResult to the requested output mode.

Three modes: ``--json`` (the full result model), ``--quiet`` (one line or
ids only), and the default Rich rendering.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from pydantic import BaseModel

from subctl.output.renderers import render_quiet, render_result

if TYPE_CHECKING:
    from subctl.services.result import ServiceResult


class OutputSettings(BaseModel):
    """Output-related subset of the CLI flags."""

    model_config = {"frozen": True}

    json_output: bool = False
    quiet: bool = False
    verbose: bool = False


def format_result(result: ServiceResult, *, settings: OutputSettings | None = None) -> str:
    settings = settings or OutputSettings()
    if settings.json_output:
        return result.model_dump_json(indent=2)
    if settings.quiet:
        return render_quiet(result)
    return render_result(result, verbose=settings.verbose)
