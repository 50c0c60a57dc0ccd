"""structlog configuration for subctl.

Every record, from structlog or stdlib ``logging``, is rendered by one
``ProcessorFormatter`` on stderr:

- console (default): human-readable, colored on a terminal
- JSON (``--log-json``): one object per line for the scheduler under a
  process supervisor

Fields bound with ``structlog.contextvars`` (the scheduler binds the run
number) are merged into every record emitted while they are bound.
"""

from __future__ import annotations

import logging
import sys

import structlog

_QUIET_LIBRARIES = ("alembic", "httpx", "httpcore")


def _shared_processors() -> list[structlog.types.Processor]:
    return [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.ExtraAdder(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]


def _final_processors(log_json: bool) -> list[structlog.types.Processor]:
    if log_json:
        return [structlog.processors.format_exc_info, structlog.processors.JSONRenderer()]
    return [structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty())]


def configure_logging(
    *,
    verbose: bool = False,
    log_json: bool = False,
    level: int | None = None,
) -> None:
    """Route all logging through structlog and set the ``subctl`` level.

    Args:
        verbose: ``subctl`` logs at DEBUG instead of WARNING.
        log_json: Render JSON lines instead of console output.
        level: Explicit ``subctl`` level; wins over *verbose*.
    """
    if level is None:
        level = logging.DEBUG if verbose else logging.WARNING

    shared = _shared_processors()
    structlog.configure(
        processors=[*shared, structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=False,
    )

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            foreign_pre_chain=shared,
            processors=[
                structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                *_final_processors(log_json),
            ],
        )
    )

    root = logging.getLogger()
    root.handlers[:] = [handler]
    root.setLevel(logging.WARNING)

    logging.getLogger("subctl").setLevel(level)
    for name in _QUIET_LIBRARIES:
        logging.getLogger(name).setLevel(logging.WARNING)
