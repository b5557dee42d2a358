from __future__ import annotations

import logging
from enum import Enum
from typing import Mapping

from .errors import ProfileError

logger = logging.getLogger(__name__)

PROFILE_KEY = "PX_PROFILE"


class Profile(str, Enum):
    DEVELOPMENT = "dev"
    PRODUCTION = "prod"


def resolve_profile(secrets: Mapping[str, str]) -> Profile:
    """
    Select the deployment profile from the ``PX_PROFILE`` secret.

    Only the exact values ``dev`` and ``prod`` are accepted.  Anything else,
    including an absent key, aborts startup instead of falling back to a
    default profile.
    """

    value = secrets.get(PROFILE_KEY, "")
    try:
        profile = Profile(value)
    except ValueError:
        raise ProfileError(
            f"Unable to set the application profile: {PROFILE_KEY}={value!r} "
            f"(expected one of {[p.value for p in Profile]})"
        ) from None

    logger.info("Application profile (set from secrets): %s", profile.value)
    return profile


__all__ = ["PROFILE_KEY", "Profile", "resolve_profile"]
