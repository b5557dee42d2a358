from __future__ import annotations

from typing import Optional

import pytest
from fastapi.testclient import TestClient

from appserver import container
from appserver.errors import ConfigError, ProfileError, StartupError, StorageError
from appserver.main import create_application
from appserver.profile import PROFILE_KEY

DEV_SECRETS = {PROFILE_KEY: "dev"}


class StubOperator:
    def __init__(self, error: Optional[Exception] = None) -> None:
        self.error = error
        self.calls = 0
        self.closed = False

    async def check(self) -> None:
        self.calls += 1
        if self.error is not None:
            raise self.error

    def close(self) -> None:
        self.closed = True


def test_storage_health_ok(make_config_dir):
    operator = StubOperator()
    app = create_application(DEV_SECRETS, make_config_dir(), operator=operator)

    with TestClient(app) as client:
        response = client.get("/storage-health")

    assert response.status_code == 200
    assert operator.calls == 1
    assert operator.closed


def test_storage_health_failure_maps_to_500(make_config_dir):
    operator = StubOperator(StorageError("connection refused"))
    app = create_application(DEV_SECRETS, make_config_dir(), operator=operator)

    with TestClient(app) as client:
        first = client.get("/storage-health")
        second = client.get("/storage-health")

    assert first.status_code == 500
    assert second.status_code == 500
    # one backend round-trip per request, no retries
    assert operator.calls == 2


def test_state_is_built_from_configuration(make_config_dir):
    app = create_application(DEV_SECRETS, make_config_dir())
    state = app.state.application

    assert state.operator.bucket == "app"
    assert state.pool.url.database == "appdb"
    assert state.config.server.port == 8000


def test_static_files_are_mounted(make_config_dir, tmp_path):
    (tmp_path / "public" / "robots.txt").write_text("User-agent: *\n", encoding="utf-8")
    app = create_application(DEV_SECRETS, make_config_dir(), operator=StubOperator())

    with TestClient(app) as client:
        response = client.get("/static/robots.txt")

    assert response.status_code == 200
    assert response.text == "User-agent: *\n"


def test_bad_profile_fails_before_reading_configuration(tmp_path):
    with pytest.raises(ProfileError):
        create_application({PROFILE_KEY: "qa"}, tmp_path / "does-not-exist")


def test_config_failure_is_reported_with_context(make_config_dir, base_data):
    base_data["server"]["port"] = "eighty"
    with pytest.raises(ConfigError, match="Unable to load the application configuration"):
        create_application(DEV_SECRETS, make_config_dir(base_data))


def test_malformed_storage_endpoint_aborts_startup(make_config_dir, base_data):
    base_data["opendalconfig"]["endpoint"] = "minio:9000"
    with pytest.raises(StartupError, match="Unable to build the storage operator") as excinfo:
        create_application(DEV_SECRETS, make_config_dir(base_data))
    assert excinfo.value.stage == "storage"


def test_missing_template_directory_aborts_startup(make_config_dir, base_data, tmp_path):
    base_data["templateconfig"]["directory"] = str(tmp_path / "missing")
    with pytest.raises(StartupError, match="Unable to build the template engine") as excinfo:
        create_application(DEV_SECRETS, make_config_dir(base_data), operator=StubOperator())
    assert excinfo.value.stage == "templates"


def test_missing_static_directory_aborts_startup(make_config_dir, base_data, tmp_path):
    base_data["staticserverconfig"]["root_dir"] = str(tmp_path / "missing")
    with pytest.raises(StartupError, match="Unable to build the static server") as excinfo:
        create_application(DEV_SECRETS, make_config_dir(base_data), operator=StubOperator())
    assert excinfo.value.stage == "static"


def test_failed_startup_releases_built_operator(make_config_dir, base_data, tmp_path, monkeypatch):
    built = StubOperator()
    monkeypatch.setattr(container, "get_storage_operator", lambda config: built)
    base_data["staticserverconfig"]["root_dir"] = str(tmp_path / "missing")

    with pytest.raises(StartupError, match="Unable to build the static server"):
        create_application(DEV_SECRETS, make_config_dir(base_data))

    assert built.closed


def test_failed_startup_leaves_injected_operator_open(make_config_dir, base_data, tmp_path):
    injected = StubOperator()
    base_data["templateconfig"]["directory"] = str(tmp_path / "missing")

    with pytest.raises(StartupError):
        create_application(DEV_SECRETS, make_config_dir(base_data), operator=injected)

    assert not injected.closed
