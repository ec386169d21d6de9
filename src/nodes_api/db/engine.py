from __future__ import annotations

import json
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator

from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from .settings import DBSettings


def _json_dumps(value: Any) -> str:
    # keep non-ASCII as-is so substring search over data::text sees real characters
    return json.dumps(value, ensure_ascii=False)


def _unicode_lower(value: Any) -> Any:
    return value.lower() if isinstance(value, str) else value


def _register_sqlite_functions(dbapi_connection, _connection_record) -> None:
    # SQLite's builtin lower() folds ASCII only; match str.lower() used for search needles
    dbapi_connection.create_function("lower", 1, _unicode_lower)


def _engine_options(settings: DBSettings, url: str) -> dict[str, Any]:
    opts: dict[str, Any] = {"echo": settings.echo, "json_serializer": _json_dumps}

    if url.startswith("sqlite"):
        # one shared connection, otherwise every checkout sees a fresh empty database
        if ":memory:" in url:
            opts.update(poolclass=StaticPool, connect_args={"check_same_thread": False})
        return opts

    opts.update(
        pool_pre_ping=True,
        pool_size=settings.pool_size,
        max_overflow=settings.max_overflow,
        pool_timeout=settings.pool_timeout,
        pool_recycle=settings.pool_recycle,
    )
    if url.startswith("postgresql+asyncpg://"):
        opts["connect_args"] = {
            "statement_cache_size": settings.statement_cache_size,
            "timeout": settings.pool_timeout,
        }
    return opts


class DBEngine:
    """Async SQLAlchemy engine plus session factory for one database.

    One instance per process; repositories borrow sessions from it and never
    open connections of their own.
    """

    def __init__(self, settings: DBSettings):
        self.settings = settings
        url = settings.resolved_database_url
        self._engine: AsyncEngine = create_async_engine(url, **_engine_options(settings, url))
        if self._engine.dialect.name == "sqlite":
            event.listen(self._engine.sync_engine, "connect", _register_sqlite_functions)
        self._sessions: async_sessionmaker[AsyncSession] = async_sessionmaker(self._engine, expire_on_commit=False)

    @property
    def engine(self) -> AsyncEngine:
        return self._engine

    @property
    def dialect_name(self) -> str:
        return self._engine.dialect.name

    def safe_url(self) -> str:
        return self._engine.url.render_as_string(hide_password=True)

    @asynccontextmanager
    async def session(self) -> AsyncIterator[AsyncSession]:
        async with self._sessions() as sess:
            yield sess

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[AsyncSession]:
        """Session inside BEGIN; commits on clean exit, rolls back on any exception."""
        async with self._sessions.begin() as sess:
            yield sess

    async def dispose(self) -> None:
        await self._engine.dispose()
