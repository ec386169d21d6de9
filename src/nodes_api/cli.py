from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Optional

import typer
import uvicorn
from alembic import command
from alembic.config import Config

from .app.core.logging import setup_logging
from .app.settings import get_api_settings
from .db.engine import DBEngine
from .db.health import db_healthcheck
from .db.schema import create_schema
from .db.settings import DBSettings, get_db_settings
from .exceptions import ConfigurationError

app = typer.Typer(no_args_is_help=True, add_completion=False, help="Nodes API service commands.")
db_app = typer.Typer(no_args_is_help=True, add_completion=False, help="Database schema commands.")
app.add_typer(db_app, name="db")

ALEMBIC_DIR = "migrations"
ALEMBIC_INI = "alembic.ini"


def _db_settings(database_url: Optional[str]) -> DBSettings:
    if database_url:
        return DBSettings(database_url=database_url)
    return get_db_settings()


def _resolved_url_or_exit(settings: DBSettings) -> str:
    try:
        return settings.resolved_database_url
    except ConfigurationError as exc:
        typer.echo(f"Error: {exc.message}", err=True)
        raise typer.Exit(code=1)


def _load_alembic_config(project_root: Path, database_url: str) -> Config:
    cfg = Config(str(project_root / ALEMBIC_INI))
    # configparser interpolation: a literal % in a password must be doubled
    cfg.set_main_option("sqlalchemy.url", database_url.replace("%", "%%"))
    cfg.set_main_option("script_location", str(project_root / ALEMBIC_DIR))
    # let env.py decide logging (app logger vs fileConfig)
    cfg.attributes["configure_logger"] = False
    return cfg


@app.command("serve")
def serve(
    host: Optional[str] = typer.Option(None, help="Bind address (default: API_HOST)"),
    port: Optional[int] = typer.Option(None, help="Port (default: API_PORT)"),
    reload: bool = typer.Option(False, help="Auto-reload on code changes (dev only)"),
):
    """Run the HTTP API with uvicorn."""
    setup_logging()
    settings = get_api_settings()
    uvicorn.run(
        "nodes_api.api:create_app",
        factory=True,
        host=host or settings.host,
        port=port or settings.port,
        reload=reload,
        log_config=None,  # keep our logging config
    )


@db_app.command("init")
def db_init(
    database_url: Optional[str] = typer.Option(None, help="Override DATABASE_URL; defaults to env"),
):
    """Create the nodes table and its indexes (idempotent)."""
    setup_logging()
    settings = _db_settings(database_url)
    _resolved_url_or_exit(settings)

    async def run() -> None:
        engine = DBEngine(settings)
        try:
            await create_schema(engine)
        finally:
            await engine.dispose()

    asyncio.run(run())
    typer.echo("Schema ready")


@db_app.command("upgrade")
def db_upgrade(
    revision: str = typer.Option("head", help="Target alembic revision"),
    project_root: Path = typer.Option(Path.cwd(), help="Directory holding alembic.ini and migrations/"),
    database_url: Optional[str] = typer.Option(None, help="Override DATABASE_URL; defaults to env"),
):
    """Apply alembic migrations up to REVISION."""
    url = _resolved_url_or_exit(_db_settings(database_url))
    cfg = _load_alembic_config(project_root.resolve(), url)
    command.upgrade(cfg, revision)
    typer.echo(f"Upgraded to {revision}")


@db_app.command("check")
def db_check(
    database_url: Optional[str] = typer.Option(None, help="Override DATABASE_URL; defaults to env"),
):
    """Exit 0 when the database answers `select 1`, 1 otherwise."""
    settings = _db_settings(database_url)
    _resolved_url_or_exit(settings)

    async def run() -> bool:
        engine = DBEngine(settings)
        try:
            async with engine.session() as s:
                return await db_healthcheck(s)
        finally:
            await engine.dispose()

    if not asyncio.run(run()):
        typer.echo("Database unavailable", err=True)
        raise typer.Exit(code=1)
    typer.echo("Database ready")


def main() -> None:
    app()


if __name__ == "__main__":
    main()
