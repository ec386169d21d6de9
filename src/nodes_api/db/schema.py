"""Idempotent schema setup for the nodes table.

`create_schema` is safe to run on every start: tables and indexes use
IF NOT EXISTS semantics, and an "already exists" error from a concurrent
starter is treated as success.
"""

from __future__ import annotations

import logging

from sqlalchemy import text
from sqlalchemy.exc import ProgrammingError
from sqlalchemy.ext.asyncio import AsyncConnection

from .base import Base
from .engine import DBEngine

logger = logging.getLogger(__name__)

# GIN / full-text indexes only exist on PostgreSQL
POSTGRES_INDEXES: tuple[str, ...] = (
    "CREATE INDEX IF NOT EXISTS idx_nodes_data ON nodes USING GIN (data)",
    "CREATE INDEX IF NOT EXISTS idx_nodes_tags ON nodes USING GIN (tags)",
    "CREATE INDEX IF NOT EXISTS idx_nodes_tsvector ON nodes "
    "USING GIN (to_tsvector('english', label || ' ' || data::text))",
)


def _already_exists(exc: Exception) -> bool:
    return "already exists" in str(exc).lower()


async def _create_tables(conn: AsyncConnection) -> None:
    await conn.run_sync(Base.metadata.create_all, checkfirst=True)


async def create_schema(engine: DBEngine) -> None:
    # model modules register their tables on Base.metadata when imported
    from ..nodes import models  # noqa: F401

    try:
        async with engine.engine.begin() as conn:
            await _create_tables(conn)
    except ProgrammingError as exc:
        if not _already_exists(exc):
            raise
        logger.debug("Tables already exist: %s", exc)

    if engine.dialect_name != "postgresql":
        logger.info("Schema ready (dialect=%s)", engine.dialect_name)
        return

    for ddl in POSTGRES_INDEXES:
        try:
            async with engine.engine.begin() as conn:
                await conn.execute(text(ddl))
        except ProgrammingError as exc:
            if not _already_exists(exc):
                raise
            logger.debug("Index already exists: %s", exc)
    logger.info("Schema ready (dialect=%s)", engine.dialect_name)


async def drop_schema(engine: DBEngine) -> None:
    from ..nodes import models  # noqa: F401

    async with engine.engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
