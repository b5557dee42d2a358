from __future__ import annotations

from typing import Optional


class StartupError(Exception):
    """Raised when the process must not start serving traffic."""

    stage = "startup"

    def __init__(self, message: str, *, stage: Optional[str] = None) -> None:
        super().__init__(message)
        if stage is not None:
            self.stage = stage


class ProfileError(StartupError):
    stage = "profile"


class ConfigError(StartupError):
    stage = "configuration"


class StorageConfigError(StartupError):
    stage = "storage"


class StorageError(Exception):
    """A single storage round-trip failed. Never fatal to the process."""


__all__ = [
    "ConfigError",
    "ProfileError",
    "StartupError",
    "StorageConfigError",
    "StorageError",
]
