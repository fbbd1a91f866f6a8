"""Async engine and session handling for role storage.

One ``Database`` owns the engine for the process. Request handlers get a
session through ``get_db_session``; startup jobs and scripts use
``session_scope``. Both commit when the block finishes cleanly and roll back
otherwise.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator, Mapping
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from sqlalchemy import event, text
from sqlalchemy.engine import URL, make_url
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool

from role_engine.common.logging import log_context
from role_engine.settings import Settings

from .base import metadata

__all__ = [
    "Database",
    "DatabaseConfig",
    "DatabaseNotInitializedError",
    "db",
    "get_db_session",
    "session_scope",
]

logger = logging.getLogger(__name__)

_DEFAULT_SQLITE_PRAGMAS: Mapping[str, str | int] = {
    "foreign_keys": "ON",
    "journal_mode": "WAL",
    "synchronous": "NORMAL",
    "busy_timeout": 30_000,
}


class DatabaseNotInitializedError(RuntimeError):
    """Raised when the engine is used before ``Database.init``."""


@dataclass(frozen=True)
class DatabaseConfig:
    """Engine options; ``url`` must use an async driver (``sqlite+aiosqlite://``)."""

    url: str
    echo: bool = False
    pool_size: int = 5
    max_overflow: int = 10
    pool_timeout: int = 30
    sqlite_pragmas: Mapping[str, str | int] = field(
        default_factory=lambda: dict(_DEFAULT_SQLITE_PRAGMAS)
    )

    @classmethod
    def from_settings(cls, settings: Settings) -> DatabaseConfig:
        if settings.database_dsn is None:
            raise DatabaseNotInitializedError("ROLE_ENGINE_DATABASE_DSN is not set")
        return cls(url=settings.database_dsn, echo=settings.database_echo)


def _sqlite_in_memory(url: URL) -> bool:
    database = (url.database or "").strip()
    if database in {"", ":memory:"}:
        return True
    return database.startswith("file:") and url.query.get("mode") == "memory"


def _sqlite_engine_options(url: URL, cfg: DatabaseConfig) -> dict[str, Any]:
    options: dict[str, Any] = {"connect_args": {"check_same_thread": False}}
    if _sqlite_in_memory(url):
        # Every session must see the same in-memory database.
        options["poolclass"] = StaticPool
        return options

    database = url.database or ""
    if not database.startswith("file:"):
        Path(database).expanduser().resolve().parent.mkdir(parents=True, exist_ok=True)
    # SQLite serializes writers; one pooled connection avoids "database is locked".
    options.update(pool_size=1, max_overflow=0, pool_timeout=max(1, cfg.pool_timeout))
    return options


def _install_sqlite_pragmas(engine: AsyncEngine, pragmas: Mapping[str, str | int]) -> None:
    @event.listens_for(engine.sync_engine, "connect")
    def _apply(dbapi_connection: Any, _record: Any) -> None:
        cursor = dbapi_connection.cursor()
        try:
            for name, value in pragmas.items():
                cursor.execute(f"PRAGMA {name}={value}")
        finally:
            cursor.close()


class Database:
    """Process-wide engine plus session factory."""

    def __init__(self) -> None:
        self._config: DatabaseConfig | None = None
        self._engine: AsyncEngine | None = None
        self._sessionmaker: async_sessionmaker[AsyncSession] | None = None

    @property
    def engine(self) -> AsyncEngine:
        if self._engine is None:
            raise DatabaseNotInitializedError("Database.init() has not been called")
        return self._engine

    @property
    def sessionmaker(self) -> async_sessionmaker[AsyncSession]:
        if self._sessionmaker is None:
            raise DatabaseNotInitializedError("Database.init() has not been called")
        return self._sessionmaker

    def init(self, config: DatabaseConfig) -> None:
        """Create the engine; calling again with the same config is a no-op."""

        if self._engine is not None and self._config == config:
            return

        url = make_url(config.url)
        options: dict[str, Any] = {"echo": config.echo, "pool_pre_ping": True}
        sqlite = url.get_backend_name() == "sqlite"
        if sqlite:
            options.update(_sqlite_engine_options(url, config))
        else:
            options.update(
                pool_size=config.pool_size,
                max_overflow=config.max_overflow,
                pool_timeout=config.pool_timeout,
            )

        engine = create_async_engine(url, **options)
        if sqlite:
            pragmas = dict(config.sqlite_pragmas)
            if _sqlite_in_memory(url):
                pragmas["journal_mode"] = "MEMORY"
            _install_sqlite_pragmas(engine, pragmas)

        self._config = config
        self._engine = engine
        self._sessionmaker = async_sessionmaker(engine, expire_on_commit=False, autoflush=False)
        logger.debug(
            "db.init",
            extra=log_context(backend=url.get_backend_name(), database=url.database),
        )

    async def create_all(self) -> None:
        """Create missing role tables."""

        import role_engine.models  # noqa: F401

        async with self.engine.begin() as connection:
            await connection.run_sync(metadata.create_all)

    async def ping(self) -> bool:
        """Return whether a trivial query succeeds."""

        try:
            async with self.engine.connect() as connection:
                await connection.execute(text("SELECT 1"))
        except SQLAlchemyError:
            logger.warning("db.ping.failed", exc_info=True)
            return False
        return True

    async def dispose(self) -> None:
        if self._engine is not None:
            await self._engine.dispose()
        self._config = None
        self._engine = None
        self._sessionmaker = None


db = Database()


@asynccontextmanager
async def session_scope(database: Database | None = None) -> AsyncIterator[AsyncSession]:
    """Yield a session that commits on success and rolls back on error."""

    session = (database or db).sessionmaker()
    try:
        yield session
        await session.commit()
    except Exception:
        await session.rollback()
        raise
    finally:
        await asyncio.shield(session.close())


async def get_db_session() -> AsyncIterator[AsyncSession]:
    """FastAPI dependency: one session per request, committed after the handler."""

    async with session_scope(db) as session:
        yield session
