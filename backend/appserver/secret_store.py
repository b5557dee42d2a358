"""
Key/value secret source consulted once at startup.

Values come from an optional dotenv-style ``Secrets.env`` file; process
environment variables win for the keys the service knows about.  Lookups of
absent keys never raise.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Dict, Iterator, Mapping, Optional

from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_SECRETS_FILE = "Secrets.env"


class SecretSettings(BaseSettings):
    model_config = SettingsConfigDict(
        case_sensitive=True,
        extra="allow",
        frozen=True,
        env_file_encoding="utf-8",
    )

    PX_PROFILE: str = ""


class SecretStore(Mapping[str, str]):
    def __init__(self, values: Optional[Mapping[str, Any]] = None) -> None:
        self._values: Dict[str, str] = {
            str(key): str(value) for key, value in (values or {}).items() if value is not None
        }

    @classmethod
    def from_sources(cls, path: Path | str | None = None) -> "SecretStore":
        if path is None:
            path = os.environ.get("APP_SECRETS_PATH", DEFAULT_SECRETS_FILE)
        settings = SecretSettings(_env_file=Path(path))
        return cls(settings.model_dump())

    def __getitem__(self, key: str) -> str:
        return self._values[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._values)

    def __len__(self) -> int:
        return len(self._values)

    def __repr__(self) -> str:
        return f"<SecretStore with {len(self._values)} secrets>"


__all__ = ["DEFAULT_SECRETS_FILE", "SecretSettings", "SecretStore"]
