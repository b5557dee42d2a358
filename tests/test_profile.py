from __future__ import annotations

import pytest

from appserver.errors import ProfileError, StartupError
from appserver.profile import PROFILE_KEY, Profile, resolve_profile
from appserver.secret_store import SecretStore


def test_dev_resolves_to_development():
    assert resolve_profile(SecretStore({PROFILE_KEY: "dev"})) is Profile.DEVELOPMENT


def test_prod_resolves_to_production():
    assert resolve_profile(SecretStore({PROFILE_KEY: "prod"})) is Profile.PRODUCTION


@pytest.mark.parametrize("value", ["", "Dev", "PROD", "production", "development", " dev", "staging"])
def test_unrecognized_profile_is_fatal(value):
    with pytest.raises(ProfileError) as excinfo:
        resolve_profile(SecretStore({PROFILE_KEY: value}))
    assert excinfo.value.stage == "profile"
    assert isinstance(excinfo.value, StartupError)


def test_missing_profile_key_is_fatal():
    with pytest.raises(ProfileError, match="PX_PROFILE=''"):
        resolve_profile(SecretStore())
