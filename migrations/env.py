"""Alembic environment for the nodes table.

URL precedence: sqlalchemy.url from the Config (set by `nodes-api db upgrade`),
then DB_DATABASE_URL / DATABASE_URL. Async drivers run through run_sync.
"""

from __future__ import annotations

import asyncio
import logging
import os
import sys
from logging.config import fileConfig
from pathlib import Path

from alembic import context
from sqlalchemy import pool
from sqlalchemy.engine import Connection, make_url
from sqlalchemy.ext.asyncio import create_async_engine

# running `alembic` from a checkout without `pip install -e .`
_SRC = Path(__file__).resolve().parents[1] / "src"
if _SRC.is_dir() and str(_SRC) not in sys.path:
    sys.path.insert(0, str(_SRC))

from nodes_api.app.core.logging import setup_logging  # noqa: E402
from nodes_api.db.base import Base  # noqa: E402
from nodes_api.db.settings import DBSettings  # noqa: E402
from nodes_api.nodes import models  # noqa: E402,F401

config = context.config

if os.getenv("ALEMBIC_USE_APP_LOGGING", "1") == "1":
    setup_logging()
elif config.config_file_name is not None:
    fileConfig(config.config_file_name, disable_existing_loggers=False)
logger = logging.getLogger("alembic.env")

url = config.get_main_option("sqlalchemy.url") or DBSettings().resolved_database_url
target_metadata = Base.metadata


def _configure(**kwargs) -> None:
    context.configure(target_metadata=target_metadata, compare_type=True, **kwargs)
    with context.begin_transaction():
        context.run_migrations()


def _migrate_on(connection: Connection) -> None:
    _configure(connection=connection)


async def _migrate_async() -> None:
    engine = create_async_engine(url, poolclass=pool.NullPool)
    try:
        async with engine.connect() as conn:
            await conn.run_sync(_migrate_on)
    finally:
        await engine.dispose()


if context.is_offline_mode():
    _configure(url=url, literal_binds=True)
elif make_url(url).get_dialect().is_async:
    logger.debug("Migrating %s with async driver", make_url(url).render_as_string(hide_password=True))
    asyncio.run(_migrate_async())
else:
    from sqlalchemy import create_engine

    sync_engine = create_engine(url, poolclass=pool.NullPool)
    with sync_engine.connect() as conn:
        _migrate_on(conn)
    sync_engine.dispose()
