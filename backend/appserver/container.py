from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from fastapi import FastAPI
from fastapi.staticfiles import StaticFiles
from fastapi.templating import Jinja2Templates
from sqlalchemy.ext.asyncio import AsyncEngine

from .config import ApplicationConfig, StaticServerConfig, TemplateConfig
from .db import get_database_pool
from .errors import StartupError, StorageConfigError
from .storage import StorageOperator, get_storage_operator

logger = logging.getLogger(__name__)


def build_template_engine(config: TemplateConfig) -> Jinja2Templates:
    if not config.directory.is_dir():
        raise StartupError(
            f"Unable to build the template engine: directory {config.directory} does not exist",
            stage="templates",
        )
    return Jinja2Templates(directory=str(config.directory))


def build_static_server(config: StaticServerConfig) -> StaticFiles:
    try:
        return StaticFiles(directory=str(config.root_dir), check_dir=True)
    except RuntimeError as exc:
        raise StartupError(f"Unable to build the static server: {exc}", stage="static") from exc


@dataclass
class ApplicationState:
    """Process-wide handles shared by every request handler."""

    config: ApplicationConfig
    pool: AsyncEngine
    operator: StorageOperator
    templates: Jinja2Templates
    static_server: StaticFiles

    @classmethod
    def build(
        cls,
        config: ApplicationConfig,
        pool: Optional[AsyncEngine] = None,
        operator: Optional[StorageOperator] = None,
    ) -> "ApplicationState":
        # Externally provisioned handles take precedence over configuration;
        # only handles built here are released if a later stage fails.
        owns_pool = pool is None
        owns_operator = operator is None
        if owns_pool:
            pool = get_database_pool(config.databaseconfig)

        try:
            if owns_operator:
                try:
                    operator = get_storage_operator(config.opendalconfig)
                except StorageConfigError as exc:
                    raise StartupError(
                        f"Unable to build the storage operator: {exc}", stage=exc.stage
                    ) from exc

            templates = build_template_engine(config.templateconfig)
            static_server = build_static_server(config.staticserverconfig)
        except StartupError:
            if owns_operator and operator is not None:
                operator.close()
            if owns_pool:
                # Lazy pool: nothing has connected yet.
                pool.sync_engine.dispose(close=False)
            raise

        logger.info("Application state built")
        return cls(
            config=config,
            pool=pool,
            operator=operator,
            templates=templates,
            static_server=static_server,
        )

    async def startup(self, app: FastAPI) -> None:
        host, port = self.config.server.bind_address()
        logger.info("Serving on %s:%s", host, port)

    async def shutdown(self, app: FastAPI) -> None:
        await self.pool.dispose()
        self.operator.close()
        logger.info("Application resources released")


__all__ = ["ApplicationState", "build_static_server", "build_template_engine"]
