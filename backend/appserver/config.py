"""
Typed configuration sections and their validation rules.

Each section is keyed by name in the layered YAML source (see ``loader``).
Sections registered with ``default_if_missing`` fall back to their documented
defaults when absent; all others are required.
"""

from __future__ import annotations

import math
import re
from datetime import timedelta
from pathlib import Path
from typing import Any, Dict, NamedTuple, Tuple, Type

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    IPvAnyAddress,
    SecretStr,
    ValidationInfo,
    field_validator,
)
from pydantic_core import PydanticCustomError
from pydantic_settings import BaseSettings, PydanticBaseSettingsSource, SettingsConfigDict

_DURATION_UNITS: Dict[str, float] = {
    "ms": 0.001,
    "msec": 0.001,
    "msecs": 0.001,
    "millisecond": 0.001,
    "milliseconds": 0.001,
    "s": 1,
    "sec": 1,
    "secs": 1,
    "second": 1,
    "seconds": 1,
    "m": 60,
    "min": 60,
    "mins": 60,
    "minute": 60,
    "minutes": 60,
    "h": 3600,
    "hr": 3600,
    "hrs": 3600,
    "hour": 3600,
    "hours": 3600,
    "d": 86400,
    "day": 86400,
    "days": 86400,
}

_FRIENDLY_DURATION = re.compile(r"(?:\s*\d+(?:\.\d+)?\s*[a-zA-Z]+\s*,?)+")
_DURATION_PART = re.compile(r"(\d+(?:\.\d+)?)\s*([a-zA-Z]+)")


def parse_signed_duration(value: Any) -> Any:
    """
    Convert friendly duration strings such as ``"30s"``, ``"1m 30s"`` or
    ``"-5s"`` into a ``timedelta``.

    Anything else is returned untouched so pydantic can handle plain numbers
    of seconds and ISO-8601 durations itself.
    """

    if not isinstance(value, str):
        return value

    text = value.strip()
    sign = 1
    if text[:1] in {"-", "+"}:
        sign = -1 if text[0] == "-" else 1
        text = text[1:].lstrip()

    if not _FRIENDLY_DURATION.fullmatch(text):
        return value

    seconds = 0.0
    for amount, unit in _DURATION_PART.findall(text):
        factor = _DURATION_UNITS.get(unit.lower())
        if factor is None:
            raise ValueError(f"unknown duration unit {unit!r}")
        seconds += float(amount) * factor
    try:
        return timedelta(seconds=sign * seconds)
    except OverflowError:
        raise ValueError(f"duration {value!r} is out of range") from None


def parse_port(value: Any) -> Any:
    """Accept an int or a string of ASCII digits; reject bools and decimals."""
    if isinstance(value, bool):
        raise ValueError("port must be an unsigned integer")
    if isinstance(value, str):
        text = value.strip()
        if not (text.isascii() and text.isdigit()):
            raise ValueError(f"port must be an unsigned integer, got {value!r}")
        return int(text)
    return value


class ServerConfig(BaseModel):
    """Configuration for the HTTP server used to expose the API."""

    model_config = ConfigDict(frozen=True)

    port: int = Field(strict=True, ge=0, le=65535)
    ip: IPvAnyAddress
    graceful_shutdown_timeout: timedelta
    log_level: str = Field(default="INFO")

    @field_validator("port", mode="before")
    @classmethod
    def parse_port_string(cls, value: Any) -> Any:
        return parse_port(value)

    @field_validator("graceful_shutdown_timeout", mode="before")
    @classmethod
    def parse_shutdown_timeout(cls, value: Any) -> Any:
        return parse_signed_duration(value)

    @field_validator("graceful_shutdown_timeout")
    @classmethod
    def reject_negative_timeout(cls, value: timedelta) -> timedelta:
        if value < timedelta(0):
            raise ValueError("graceful shutdown timeout must be positive")
        return value

    @field_validator("log_level")
    @classmethod
    def normalize_log_level(cls, value: str) -> str:
        allowed = {"TRACE", "DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        value_upper = value.upper()
        if value_upper not in allowed:
            raise ValueError(f"log_level must be one of {sorted(allowed)}")
        return value_upper

    def bind_address(self) -> Tuple[str, int]:
        return str(self.ip), self.port

    def graceful_shutdown_seconds(self) -> int:
        # uvicorn takes whole seconds; never shorten the configured grace period.
        return math.ceil(self.graceful_shutdown_timeout.total_seconds())


class DatabaseConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    username: str = ""
    password: SecretStr = SecretStr("")
    port: int = Field(default=0, strict=True, ge=0, le=65535)
    host: str = ""
    database_name: str = ""
    require_ssl: bool = False

    @field_validator("port", mode="before")
    @classmethod
    def parse_port_string(cls, value: Any) -> Any:
        return parse_port(value)


class ObjectStorageConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    endpoint: str = ""
    access_key: str = Field(default="", repr=False)
    secret_key: str = Field(default="", repr=False)
    bucket: str = ""
    region: str = ""


class TemplateConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    directory: Path = Path("templates")


class StaticServerConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    root_dir: Path = Path("public")
    mount_path: str = "/static"

    @field_validator("mount_path")
    @classmethod
    def validate_mount_path(cls, value: str) -> str:
        if not value.startswith("/"):
            raise ValueError("mount_path must start with '/'")
        return value.rstrip("/") or "/"


class ApplicationConfig(BaseSettings):
    """
    Aggregate of every section, overridable from ``PX_<SECTION>__<FIELD>``
    environment variables.  File layers are added by ``loader.ConfigLoader``.
    """

    model_config = SettingsConfigDict(
        env_prefix="PX_",
        env_nested_delimiter="__",
        case_sensitive=False,
        extra="ignore",
        frozen=True,
    )

    server: ServerConfig
    databaseconfig: DatabaseConfig = Field(default_factory=DatabaseConfig)
    opendalconfig: ObjectStorageConfig = Field(default_factory=ObjectStorageConfig)
    templateconfig: TemplateConfig = Field(default_factory=TemplateConfig)
    staticserverconfig: StaticServerConfig = Field(default_factory=StaticServerConfig)

    @field_validator("*", mode="before")
    @classmethod
    def fill_missing_section(cls, value: Any, info: ValidationInfo) -> Any:
        # A section written as `key:` with no body arrives as None.
        if value is not None:
            return value
        if not SECTIONS[info.field_name].default_if_missing:
            raise PydanticCustomError("missing", "Field required")
        return SECTIONS[info.field_name].model()

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: Type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> Tuple[PydanticBaseSettingsSource, ...]:
        return init_settings, env_settings


class Section(NamedTuple):
    model: Type[BaseModel]
    default_if_missing: bool


SECTIONS: Dict[str, Section] = {
    "server": Section(ServerConfig, default_if_missing=False),
    "databaseconfig": Section(DatabaseConfig, default_if_missing=True),
    "opendalconfig": Section(ObjectStorageConfig, default_if_missing=True),
    "templateconfig": Section(TemplateConfig, default_if_missing=True),
    "staticserverconfig": Section(StaticServerConfig, default_if_missing=True),
}


__all__ = [
    "ApplicationConfig",
    "DatabaseConfig",
    "ObjectStorageConfig",
    "SECTIONS",
    "Section",
    "ServerConfig",
    "StaticServerConfig",
    "TemplateConfig",
    "parse_port",
    "parse_signed_duration",
]
