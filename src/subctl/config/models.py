"""Pydantic configuration models with code-baked defaults.

Sparse TOML contract: defaults baked here, subctl.toml only contains overrides.
A fresh deployment needs only [admin] chat_id and [telegram] bot_token.
"""

from __future__ import annotations

from datetime import time
from decimal import Decimal
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import BaseModel, Field, field_validator

from subctl.domain.lifecycle import MAX_GRACE_PERIOD_DAYS

# --- subctl.toml sections ---


class AdminConfig(BaseModel):
    """[admin] section. Numeric ids in TOML are read as strings."""

    model_config = {"frozen": True, "coerce_numbers_to_str": True}

    chat_id: str | None = None


class GroupConfig(BaseModel):
    """[group] section.

    ``chat_id`` overrides the group identity discovered at runtime and
    persisted in the store.
    """

    model_config = {"frozen": True, "coerce_numbers_to_str": True}

    chat_id: str | None = None


class PolicyConfig(BaseModel):
    """[policy] section."""

    model_config = {"frozen": True}

    grace_period_days: int = Field(default=3, ge=0, le=MAX_GRACE_PERIOD_DAYS)
    currency: str = "USD"
    default_amount: Decimal = Field(default=Decimal("0"), ge=0)
    default_method: str = "manual"


class ScheduleConfig(BaseModel):
    """[schedule] section."""

    model_config = {"frozen": True}

    daily_at: time = time(9, 0)
    timezone: str = "UTC"

    @field_validator("timezone")
    @classmethod
    def _known_timezone(cls, value: str) -> str:
        try:
            ZoneInfo(value)
        except (ZoneInfoNotFoundError, ValueError) as exc:
            msg = f"Unknown timezone: {value!r}"
            raise ValueError(msg) from exc
        return value


class StoreConfig(BaseModel):
    """[store] section."""

    model_config = {"frozen": True}

    busy_timeout_seconds: float = Field(default=5.0, gt=0)


class TelegramConfig(BaseModel):
    """[telegram] section."""

    model_config = {"frozen": True}

    bot_token: str | None = None
    api_base: str = "https://api.telegram.org"
    timeout_seconds: float = Field(default=10.0, gt=0)


class HooksConfig(BaseModel):
    """[hooks] section."""

    model_config = {"frozen": True}

    max_retries: int = Field(default=3, ge=1)
    max_workers: int = Field(default=2, ge=1)
    disabled: tuple[str, ...] = ()
