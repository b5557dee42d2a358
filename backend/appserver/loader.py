"""
Layered configuration loading.

Layers, highest precedence first:

1. ``PX_<SECTION>__<FIELD>`` environment variables
2. ``<config_dir>/<profile>.yaml`` (optional, e.g. ``dev.yaml``)
3. ``<config_dir>/base.yaml`` (required)

pydantic-settings merges the layers recursively; any non-mapping value in a
higher layer replaces the lower one.  The merged tree is validated into an
``ApplicationConfig`` in one go, so either every section is valid or loading
fails.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any, Dict, List, Tuple, Type

import yaml
from pydantic import ValidationError
from pydantic_settings import BaseSettings, PydanticBaseSettingsSource, YamlConfigSettingsSource

from .config import ApplicationConfig
from .errors import ConfigError
from .profile import Profile

logger = logging.getLogger(__name__)

BASE_FILE = "base.yaml"


class YamlLayer(YamlConfigSettingsSource):
    """A single YAML file whose top level must be a mapping of sections."""

    def _read_file(self, file_path: Path) -> Dict[str, Any]:
        try:
            data = super()._read_file(file_path)
        except yaml.YAMLError as exc:
            raise ConfigError(f"Unable to parse configuration file {file_path}: {exc}") from exc
        if not isinstance(data, dict):
            raise ConfigError(f"Configuration file {file_path} must contain a mapping of sections")
        return data


def _format_validation_error(exc: ValidationError) -> str:
    problems = []
    for error in exc.errors():
        location = ".".join(str(part) for part in error["loc"])
        problems.append(f"{location}: {error['msg']}")
    return "; ".join(problems)


def _missing_sections(exc: ValidationError) -> List[str]:
    return [
        str(error["loc"][0])
        for error in exc.errors()
        if error["type"] == "missing" and len(error["loc"]) == 1
    ]


class ConfigLoader:
    def __init__(self, config_dir: Path | str, profile: Profile) -> None:
        self.config_dir = Path(config_dir)
        self.profile = profile

    @property
    def base_path(self) -> Path:
        return self.config_dir / BASE_FILE

    @property
    def profile_path(self) -> Path:
        return self.config_dir / f"{self.profile.value}.yaml"

    def settings_class(self) -> Type[ApplicationConfig]:
        base_path = self.base_path
        profile_path = self.profile_path

        class LayeredApplicationConfig(ApplicationConfig):
            @classmethod
            def settings_customise_sources(
                cls,
                settings_cls: Type[BaseSettings],
                init_settings: PydanticBaseSettingsSource,
                env_settings: PydanticBaseSettingsSource,
                dotenv_settings: PydanticBaseSettingsSource,
                file_secret_settings: PydanticBaseSettingsSource,
            ) -> Tuple[PydanticBaseSettingsSource, ...]:
                return (
                    init_settings,
                    env_settings,
                    YamlLayer(settings_cls, yaml_file=profile_path),
                    YamlLayer(settings_cls, yaml_file=base_path),
                )

        return LayeredApplicationConfig

    def load(self) -> ApplicationConfig:
        if not self.base_path.is_file():
            raise ConfigError(f"Configuration file not found: {self.base_path}")
        if not self.profile_path.is_file():
            logger.debug("No configuration overrides at %s", self.profile_path)

        try:
            return self.settings_class()()
        except ValidationError as exc:
            missing = _missing_sections(exc)
            if missing:
                raise ConfigError(f"missing required configuration section '{missing[0]}'") from exc
            raise ConfigError(f"invalid configuration: {_format_validation_error(exc)}") from exc


def default_config_dir() -> Path:
    candidate = os.environ.get("APP_CONFIG_DIR")
    if candidate:
        return Path(candidate)
    return Path.cwd() / "configuration"


def load_configuration(profile: Profile, config_dir: Path | str | None = None) -> ApplicationConfig:
    loader = ConfigLoader(config_dir or default_config_dir(), profile)
    config = loader.load()
    logger.info("Application configuration loaded: %r", config)
    return config


__all__ = [
    "ConfigLoader",
    "YamlLayer",
    "default_config_dir",
    "load_configuration",
]
