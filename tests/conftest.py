from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Callable, Dict, Optional

import pytest
import yaml


def write_yaml(path: Path, data: Any) -> Path:
    path.write_text(yaml.safe_dump(data), encoding="utf-8")
    return path


@pytest.fixture
def base_data(tmp_path: Path) -> Dict[str, Any]:
    templates = tmp_path / "templates"
    templates.mkdir()
    public = tmp_path / "public"
    public.mkdir()
    return {
        "server": {
            "ip": "127.0.0.1",
            "port": "8000",
            "graceful_shutdown_timeout": "30s",
        },
        "databaseconfig": {
            "username": "app",
            "password": "hunter2",
            "port": "5432",
            "host": "localhost",
            "database_name": "appdb",
            "require_ssl": False,
        },
        "opendalconfig": {
            "endpoint": "http://localhost:9000",
            "access_key": "minio-access",
            "secret_key": "minio-secret",
            "bucket": "app",
            "region": "us-east-1",
        },
        "templateconfig": {"directory": str(templates)},
        "staticserverconfig": {"root_dir": str(public), "mount_path": "/static"},
    }


@pytest.fixture
def make_config_dir(tmp_path: Path, base_data: Dict[str, Any]) -> Callable[..., Path]:
    def _make(base: Optional[Dict[str, Any]] = None, **profiles: Dict[str, Any]) -> Path:
        config_dir = tmp_path / "configuration"
        config_dir.mkdir(exist_ok=True)
        write_yaml(config_dir / "base.yaml", base_data if base is None else base)
        for name, data in profiles.items():
            write_yaml(config_dir / f"{name}.yaml", data)
        return config_dir

    return _make


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch):
    for name in list(os.environ):
        if name.upper().startswith("PX_") or name in {"APP_CONFIG_DIR", "APP_SECRETS_PATH"}:
            monkeypatch.delenv(name, raising=False)
