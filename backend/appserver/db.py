from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from enum import Enum
from typing import Any, Callable, Dict, Optional

from pydantic import SecretStr
from sqlalchemy import event, text
from sqlalchemy.engine import URL
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine

from .config import DatabaseConfig

logger = logging.getLogger(__name__)
statement_logger = logging.getLogger(f"{__name__}.statements")

TRACE = 5
logging.addLevelName(TRACE, "TRACE")

DRIVER_NAME = "postgresql+asyncpg"
ACQUIRE_TIMEOUT = 2


class SslMode(str, Enum):
    REQUIRE = "require"
    PREFER = "prefer"


@dataclass(frozen=True)
class ConnectionOptions:
    """Everything needed to open a Postgres connection, derived on demand."""

    host: str
    port: int
    username: str
    password: SecretStr
    ssl_mode: SslMode
    database: Optional[str] = None
    statement_log_level: Optional[int] = None

    def database_url(self) -> URL:
        return URL.create(
            drivername=DRIVER_NAME,
            username=self.username or None,
            password=self.password.get_secret_value() or None,
            host=self.host or None,
            port=self.port or None,
            database=self.database or None,
        )

    def connect_args(self) -> Dict[str, Any]:
        return {"ssl": self.ssl_mode.value, "timeout": ACQUIRE_TIMEOUT}


def without_db(config: DatabaseConfig) -> ConnectionOptions:
    """Administrative options: no target database selected."""
    ssl_mode = SslMode.REQUIRE if config.require_ssl else SslMode.PREFER
    return ConnectionOptions(
        host=config.host,
        port=config.port,
        username=config.username,
        password=config.password,
        ssl_mode=ssl_mode,
    )


def with_db(config: DatabaseConfig) -> ConnectionOptions:
    """Application options: target database selected, statements logged at TRACE."""
    return replace(
        without_db(config),
        database=config.database_name,
        statement_log_level=TRACE,
    )


def log_statements(engine: AsyncEngine, level: int) -> Callable[..., None]:
    @event.listens_for(engine.sync_engine, "before_cursor_execute")
    def _before_cursor_execute(conn, cursor, statement, parameters, context, executemany):
        statement_logger.log(level, statement)

    return _before_cursor_execute


def get_database_pool(config: DatabaseConfig) -> AsyncEngine:
    """
    Build the shared connection pool without touching the network.

    The first connection is opened (and may fail) only when something acquires
    one; acquisition waits at most ``ACQUIRE_TIMEOUT`` seconds.
    """

    options = with_db(config)
    engine = create_async_engine(
        options.database_url(),
        pool_timeout=ACQUIRE_TIMEOUT,
        connect_args=options.connect_args(),
    )
    if options.statement_log_level is not None:
        log_statements(engine, options.statement_log_level)

    logger.info(
        "Database pool configured for %s (ssl=%s)",
        engine.url.render_as_string(hide_password=True),
        options.ssl_mode.value,
    )
    return engine


async def ping(engine: AsyncEngine) -> None:
    async with engine.connect() as conn:
        await conn.execute(text("SELECT 1"))


__all__ = [
    "ACQUIRE_TIMEOUT",
    "ConnectionOptions",
    "SslMode",
    "TRACE",
    "get_database_pool",
    "log_statements",
    "ping",
    "with_db",
    "without_db",
]
