"""Locate ``subctl.toml``.

Resolution order: the ``SUBCTL_CONFIG`` environment variable, then the
nearest ``subctl.toml`` in the start directory or any of its ancestors.
``--config`` on the command line bypasses discovery entirely.
"""

from __future__ import annotations

import os
from pathlib import Path

CONFIG_FILENAME = "subctl.toml"
CONFIG_ENV_VAR = "SUBCTL_CONFIG"


def _ancestors(start: Path) -> list[Path]:
    resolved = start.resolve()
    return [resolved, *resolved.parents]


def find_config(start: Path | None = None) -> Path | None:
    """Return the config file governing *start* (default: cwd), or None.

    A ``SUBCTL_CONFIG`` pointing at a missing file yields None rather than
    falling back to discovery, so a typo never silently picks up another
    deployment's settings.
    """
    override = os.environ.get(CONFIG_ENV_VAR)
    if override:
        explicit = Path(override)
        return explicit if explicit.is_file() else None

    for directory in _ancestors(start or Path.cwd()):
        candidate = directory / CONFIG_FILENAME
        if candidate.is_file():
            return candidate
    return None
