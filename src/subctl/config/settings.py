"""SubSettings: one frozen object for CLI flags, ``SUBCTL_*`` env and TOML.

Sources are consulted in this order, first hit wins:

* keyword arguments (the root CLI group passes its flags here)
* environment variables, ``SUBCTL_`` prefix with ``__`` between nesting levels
  (``SUBCTL_TELEGRAM__BOT_TOKEN``)
* the ``subctl.toml`` located by :func:`find_config` or given with ``-c``
* defaults on the section models
"""

from __future__ import annotations

import tomllib
from contextvars import ContextVar
from datetime import date, datetime
from pathlib import Path
from typing import Any
from zoneinfo import ZoneInfo

import click
from pydantic import Field
from pydantic_settings import BaseSettings, PydanticBaseSettingsSource

from subctl.config.discovery import find_config
from subctl.config.models import (
    AdminConfig,
    GroupConfig,
    HooksConfig,
    PolicyConfig,
    ScheduleConfig,
    StoreConfig,
    TelegramConfig,
)

# Parsed TOML for the SubSettings construction in progress.
_toml_data: ContextVar[dict[str, Any]] = ContextVar("subctl_toml_data", default={})


def load_toml(path: Path) -> dict[str, Any]:
    """Parse *path*, turning syntax errors into a CLI-friendly exception."""
    try:
        with path.open("rb") as fh:
            return tomllib.load(fh)
    except tomllib.TOMLDecodeError as exc:
        raise click.ClickException(f"Invalid TOML in {path}: {exc}") from exc


class TomlSettingsSource(PydanticBaseSettingsSource):
    """Settings source over an already-parsed TOML document."""

    def __init__(self, settings_cls: type[BaseSettings], data: dict[str, Any]) -> None:
        super().__init__(settings_cls)
        self._data = data

    def get_field_value(self, field: Any, field_name: str) -> tuple[Any, str, bool]:
        return self._data.get(field_name), field_name, field_name in self._data

    def __call__(self) -> dict[str, Any]:
        return {k: v for k, v in self._data.items() if k in self.settings_cls.model_fields}


class SubSettings(BaseSettings):
    """Settings shared by every command, the scheduler and the event handler.

    Attributes:
        data_dir: Directory holding ``.subctl/``. Defaults to the folder of
            the config file, else the working directory.
        config_path: The TOML file that was read, or None.
    """

    model_config = {
        "frozen": True,
        "env_prefix": "SUBCTL_",
        "env_nested_delimiter": "__",
    }

    data_dir: Path = Field(default_factory=Path.cwd)
    config_path: Path | None = None

    # Global CLI flags
    json_output: bool = False
    quiet: bool = False
    verbose: bool = False
    log_json: bool = False
    async_hooks: bool = False

    # subctl.toml sections
    admin: AdminConfig = Field(default_factory=AdminConfig)
    group: GroupConfig = Field(default_factory=GroupConfig)
    policy: PolicyConfig = Field(default_factory=PolicyConfig)
    schedule: ScheduleConfig = Field(default_factory=ScheduleConfig)
    store: StoreConfig = Field(default_factory=StoreConfig)
    telegram: TelegramConfig = Field(default_factory=TelegramConfig)
    hooks: HooksConfig = Field(default_factory=HooksConfig)

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        return (init_settings, env_settings, TomlSettingsSource(settings_cls, _toml_data.get()))

    @classmethod
    def from_cli(
        cls,
        *,
        config_path: str | Path | None = None,
        data_dir: Path | None = None,
        **cli_flags: Any,
    ) -> SubSettings:
        """Build settings for one CLI invocation.

        An explicit *config_path* must exist. Without one, ``subctl.toml``
        is searched upward from *data_dir* (or the working directory).
        """
        if config_path is not None:
            toml_path: Path | None = Path(config_path)
            if not toml_path.is_file():
                raise click.ClickException(f"Config file not found: {toml_path}")
        else:
            toml_path = find_config(data_dir)

        if data_dir is None:
            data_dir = toml_path.parent if toml_path is not None else Path.cwd()

        token = _toml_data.set(load_toml(toml_path) if toml_path is not None else {})
        try:
            return cls(data_dir=data_dir, config_path=toml_path, **cli_flags)
        finally:
            _toml_data.reset(token)

    @property
    def tz(self) -> ZoneInfo:
        return ZoneInfo(self.schedule.timezone)

    def today(self) -> date:
        """Current calendar date in the configured timezone."""
        return datetime.now(self.tz).date()
