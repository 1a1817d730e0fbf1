"""Portal settings: code defaults, then a YAML file, then ``FACILITY_BOOKING_*`` environment variables.

Only the entry points (the Flask app factory and the MCP server) load
settings; the booking engine itself never does.
"""

from __future__ import annotations

import os
import threading
from functools import lru_cache
from pathlib import Path
from typing import Any
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

import holidays
import yaml
from pydantic import field_validator
from pydantic_settings import BaseSettings, PydanticBaseSettingsSource, SettingsConfigDict

ENV_PREFIX = "FACILITY_BOOKING_"
DEFAULT_CONFIG_FILE = "facility_booking.yaml"
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


class YamlSettingsSource(PydanticBaseSettingsSource):
    """Top-level keys of a ``facility_booking.yaml`` mapping."""

    def __init__(self, settings_cls: type[BaseSettings], yaml_path: Path | None) -> None:
        super().__init__(settings_cls)
        self._data: dict[str, Any] = {}
        if yaml_path is None:
            return
        try:
            payload = yaml.safe_load(yaml_path.read_text(encoding="utf-8"))
        except (OSError, UnicodeDecodeError, yaml.YAMLError) as error:
            raise ValueError(f"Could not read config file {yaml_path}: {error}") from error
        if payload is not None and not isinstance(payload, dict):
            raise ValueError(f"Config file {yaml_path} must contain a mapping.")
        self._data = payload or {}

    def get_field_value(self, field: Any, field_name: str) -> tuple[Any, str, bool]:
        return self._data.get(field_name), field_name, False

    def __call__(self) -> dict[str, Any]:
        return dict(self._data)


# Config file path handed to the sources while a PortalSettings is being built.
_tls = threading.local()


class PortalSettings(BaseSettings):
    model_config = SettingsConfigDict(frozen=True, env_prefix=ENV_PREFIX, extra="forbid")

    data_dir: Path = Path("data")
    holiday_country: str = "US"
    log_level: str = "INFO"
    time_step_minutes: int = 0
    # IANA zone that offset-carrying request timestamps are converted to; empty means the host zone.
    time_zone: str = ""

    @field_validator("holiday_country", mode="before")
    @classmethod
    def _known_country(cls, value: Any) -> str:
        code = str(value or "").strip().upper()
        if code and code not in holidays.list_supported_countries():
            raise ValueError(f"holiday_country {code!r} is not supported by the holidays package")
        return code

    @field_validator("log_level", mode="before")
    @classmethod
    def _known_level(cls, value: Any) -> str:
        level = str(value).strip().upper()
        if level not in LOG_LEVELS:
            raise ValueError(f"log_level must be one of {', '.join(LOG_LEVELS)}")
        return level

    @field_validator("time_step_minutes")
    @classmethod
    def _divides_hour(cls, value: int) -> int:
        if value < 0 or (value and 60 % value):
            raise ValueError("time_step_minutes must be 0 or a divisor of 60")
        return value

    @field_validator("time_zone", mode="before")
    @classmethod
    def _known_zone(cls, value: Any) -> str:
        name = str(value or "").strip()
        if name:
            try:
                ZoneInfo(name)
            except (ZoneInfoNotFoundError, ValueError) as error:
                raise ValueError(f"time_zone {name!r} is not a known IANA zone") from error
        return name

    def zone(self) -> ZoneInfo | None:
        return ZoneInfo(self.time_zone) if self.time_zone else None

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        return (
            init_settings,
            env_settings,
            YamlSettingsSource(settings_cls, getattr(_tls, "yaml_path", None)),
        )


def load_settings(path: str | Path | None = None) -> PortalSettings:
    """Build settings from ``path`` (or ``$FACILITY_BOOKING_CONFIG``, or ``./facility_booking.yaml``).

    A missing explicit ``path`` is an error; a missing default file is not.
    Invalid values raise ``ValueError`` (pydantic's ``ValidationError``).
    """
    if path is not None:
        yaml_path: Path | None = Path(path)
        if not yaml_path.is_file():
            raise ValueError(f"Config file not found: {yaml_path}")
    else:
        discovered = Path(os.environ.get(f"{ENV_PREFIX}CONFIG", DEFAULT_CONFIG_FILE))
        yaml_path = discovered if discovered.is_file() else None

    _tls.yaml_path = yaml_path
    try:
        return PortalSettings()
    finally:
        _tls.yaml_path = None


@lru_cache(maxsize=1)
def get_settings() -> PortalSettings:
    return load_settings()
