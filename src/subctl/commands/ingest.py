"""Command: feed one inbound platform update through the event handler."""

from __future__ import annotations

import json
from typing import TYPE_CHECKING, Any

import click
from pydantic import ValidationError

from subctl.commands._base import SubCommand

if TYPE_CHECKING:
    from subctl.commands._context import AppContext


@click.command(
    cls=SubCommand,
    examples="""\
  subctl ingest update.json
  curl -s "$WEBHOOK_DUMP" | subctl ingest -
  echo '{"kind": "admin_message", "sender_id": "1", "text": "stats"}' | subctl ingest -""",
)
@click.argument("source", type=click.File("r", encoding="utf-8"), default="-")
@click.pass_obj
def ingest(app: AppContext, source: Any) -> None:
    """Classify a Bot API update (JSON from SOURCE or stdin) and apply it."""
    from subctl.domain.events import classify_update
    from subctl.services.events import EventService

    try:
        payload = json.load(source)
    except json.JSONDecodeError as exc:
        raise click.BadParameter(f"not valid JSON: {exc}", param_hint="SOURCE") from exc
    if not isinstance(payload, dict):
        raise click.BadParameter("expected a JSON object", param_hint="SOURCE")

    try:
        event = classify_update(payload)
    except ValidationError as exc:
        raise click.BadParameter(f"malformed event: {exc}", param_hint="SOURCE") from exc

    app.emit(EventService(app.store).handle(event))
