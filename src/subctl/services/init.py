"""InitService — create a subctl data directory.

Writes ``subctl.toml`` (unless one exists), creates the database under
``.subctl/``, and stamps it at the current migration head.
"""

from __future__ import annotations

import logging
from pathlib import Path

from subctl.config.discovery import CONFIG_FILENAME
from subctl.infrastructure.database.engine import db_path_for, init_database
from subctl.infrastructure.database.migrations import stamp_head
from subctl.services.result import ServiceResult

logger = logging.getLogger(__name__)

_CONFIG_TEMPLATE = """\
# subctl configuration

[admin]
{admin_line}

[group]
# Discovered automatically when the bot is added to the group.
{group_line}

[policy]
grace_period_days = {grace}
currency = "{currency}"
default_amount = "0"
default_method = "manual"

[schedule]
daily_at = "09:00"
timezone = "UTC"

[telegram]
# bot_token = "123456:ABC..."   (or SUBCTL_TELEGRAM__BOT_TOKEN)

[hooks]
# disabled = ["plugin_name"]
"""


def _line(key: str, value: str | None) -> str:
    return f'{key} = "{value}"' if value else f'# {key} = ""'


class InitService:
    """Bootstraps a data directory. Runs before any Store exists."""

    @staticmethod
    def init_store(
        path: Path,
        *,
        admin_id: str | None = None,
        group_id: str | None = None,
        grace_period_days: int = 3,
        currency: str = "USD",
    ) -> ServiceResult:
        op = "init"
        warnings: list[str] = []
        path = path.resolve()

        if db_path_for(path).exists():
            return ServiceResult.failure(
                op,
                "ALREADY_INITIALIZED",
                f"A subctl store already exists at {path}",
                path=str(path),
            )

        path.mkdir(parents=True, exist_ok=True)
        config_path = path / CONFIG_FILENAME
        if config_path.exists():
            warnings.append(f"Kept existing {config_path.name}")
        else:
            config_path.write_text(
                _CONFIG_TEMPLATE.format(
                    admin_line=_line("chat_id", admin_id),
                    group_line=_line("chat_id", group_id),
                    grace=grace_period_days,
                    currency=currency,
                ),
                encoding="utf-8",
            )

        engine = init_database(path)
        engine.dispose()
        stamp_head(path)
        logger.info("store.initialized", extra={"path": str(path)})

        return ServiceResult(
            ok=True,
            op=op,
            data={
                "path": str(path),
                "config_path": str(config_path),
                "db_path": str(db_path_for(path)),
                "admin_configured": admin_id is not None,
            },
            warnings=warnings,
        )
