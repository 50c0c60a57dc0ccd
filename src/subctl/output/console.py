"""Rich Console factory and theme for subctl output.

Consoles render into a StringIO buffer so ``format_result`` stays a pure
``ServiceResult -> str`` function. Rich drops color codes on its own when
the output is not a terminal (tests, pipes).
"""

from __future__ import annotations

from io import StringIO

from rich.console import Console
from rich.theme import Theme

SUB_THEME = Theme(
    {
        "sub.ok": "bold green",
        "sub.error": "bold red",
        "sub.warning": "bold yellow",
        "sub.op": "bold cyan",
        "sub.key": "dim",
        "sub.id": "bold blue",
        "sub.date": "magenta",
        "sub.money": "green",
        "sub.status.pending": "yellow",
        "sub.status.active": "green",
        "sub.status.expired": "red",
        "sub.status.removed": "dim",
    }
)


def create_console(*, no_color: bool = False, width: int | None = None) -> Console:
    return Console(
        file=StringIO(),
        theme=SUB_THEME,
        no_color=no_color,
        highlight=False,
        width=width or 120,
    )


def get_output(console: Console) -> str:
    """Text written to a StringIO-backed Console so far."""
    assert isinstance(console.file, StringIO)
    return console.file.getvalue()


def style_for_status(status: str) -> str:
    return f"sub.status.{status}" if status in {"pending", "active", "expired", "removed"} else ""
