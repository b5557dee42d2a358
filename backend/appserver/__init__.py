"""
Profile-aware configuration and resource provisioning for the web service.

Startup runs once, in order: secrets → profile → layered configuration →
resource handles (database pool, storage operator) → FastAPI application.
"""

from .config import ApplicationConfig
from .loader import load_configuration
from .profile import Profile, resolve_profile

__all__ = ["ApplicationConfig", "Profile", "load_configuration", "resolve_profile"]
