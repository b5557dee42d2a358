from __future__ import annotations

import logging
import sys
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Mapping, Optional

from fastapi import FastAPI
from sqlalchemy.ext.asyncio import AsyncEngine

from .container import ApplicationState
from .db import TRACE
from .errors import ConfigError, StartupError
from .loader import load_configuration
from .profile import resolve_profile
from .routers import health
from .secret_store import SecretStore
from .storage import StorageOperator

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(level=logging.INFO, format=LOG_FORMAT)
    resolved = TRACE if level == "TRACE" else logging.getLevelName(level)
    logging.getLogger().setLevel(resolved)


def create_application(
    secrets: Optional[Mapping[str, str]] = None,
    config_dir: Path | str | None = None,
    pool: Optional[AsyncEngine] = None,
    operator: Optional[StorageOperator] = None,
) -> FastAPI:
    """
    Resolve the profile, load configuration and build every shared resource.

    Any failure raises ``StartupError`` before the FastAPI app exists, so no
    request can ever observe a partially initialised state.
    """

    if secrets is None:
        secrets = SecretStore.from_sources()
    profile = resolve_profile(secrets)

    try:
        config = load_configuration(profile, config_dir=config_dir)
    except ConfigError as exc:
        raise ConfigError(f"Unable to load the application configuration: {exc}") from exc

    state = ApplicationState.build(config, pool=pool, operator=operator)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        await state.startup(app)
        try:
            yield
        finally:
            await state.shutdown(app)

    app = FastAPI(title="appserver", version="0.1.0", lifespan=lifespan)
    app.state.application = state

    app.include_router(health.router)
    app.mount(config.staticserverconfig.mount_path, state.static_server, name="static")

    return app


def main() -> None:
    import uvicorn

    configure_logging()
    try:
        app = create_application()
    except StartupError as exc:
        logger.error("Startup failed during %s: %s", exc.stage, exc)
        sys.exit(1)

    server_config = app.state.application.config.server
    configure_logging(server_config.log_level)
    host, port = server_config.bind_address()
    uvicorn.run(
        app,
        host=host,
        port=port,
        timeout_graceful_shutdown=server_config.graceful_shutdown_seconds(),
        log_config=None,
    )


if __name__ == "__main__":
    main()
