"""Tests for the nodes-api CLI.

Tests for:
- nodes-api serve
- nodes-api db init / check / upgrade
"""

from __future__ import annotations

import sqlite3
from pathlib import Path

import pytest
from typer.testing import CliRunner

from nodes_api import cli as cli_mod
from nodes_api.cli import app as cli_app

runner = CliRunner()

PROJECT_ROOT = Path(__file__).resolve().parents[3]


@pytest.fixture(autouse=True)
def quiet_logging(monkeypatch: pytest.MonkeyPatch) -> None:
    """Commands configure global logging; keep the test process's handlers intact."""
    monkeypatch.setattr(cli_mod, "setup_logging", lambda *a, **kw: None)
    monkeypatch.setattr("nodes_api.app.core.logging.setup_logging", lambda *a, **kw: None)


@pytest.fixture
def no_db_env(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> pytest.MonkeyPatch:
    monkeypatch.delenv("DATABASE_URL", raising=False)
    monkeypatch.delenv("DB_DATABASE_URL", raising=False)
    monkeypatch.chdir(tmp_path)
    cli_mod.get_db_settings.cache_clear()
    yield monkeypatch
    cli_mod.get_db_settings.cache_clear()


def _sqlite_url(path: Path) -> str:
    return f"sqlite+aiosqlite:///{path}"


def _tables(path: Path) -> set[str]:
    with sqlite3.connect(path) as conn:
        rows = conn.execute("select name from sqlite_master where type = 'table'").fetchall()
    return {r[0] for r in rows}


def _indexes(path: Path) -> set[str]:
    with sqlite3.connect(path) as conn:
        rows = conn.execute("select name from sqlite_master where type = 'index'").fetchall()
    return {r[0] for r in rows}


class TestDbInit:
    def test_creates_table(self, tmp_path: Path) -> None:
        db = tmp_path / "nodes.db"

        result = runner.invoke(cli_app, ["db", "init", "--database-url", _sqlite_url(db)])

        assert result.exit_code == 0, result.output
        assert "Schema ready" in result.output
        assert "nodes" in _tables(db)
        assert {"idx_nodes_label", "idx_nodes_created_at"} <= _indexes(db)

    def test_is_idempotent(self, tmp_path: Path) -> None:
        url = _sqlite_url(tmp_path / "nodes.db")

        assert runner.invoke(cli_app, ["db", "init", "--database-url", url]).exit_code == 0
        assert runner.invoke(cli_app, ["db", "init", "--database-url", url]).exit_code == 0

    def test_url_from_env(self, no_db_env: pytest.MonkeyPatch, tmp_path: Path) -> None:
        db = tmp_path / "from_env.db"
        no_db_env.setenv("DATABASE_URL", _sqlite_url(db))

        result = runner.invoke(cli_app, ["db", "init"])

        assert result.exit_code == 0, result.output
        assert "nodes" in _tables(db)

    def test_missing_url_exits_1(self, no_db_env: pytest.MonkeyPatch) -> None:
        result = runner.invoke(cli_app, ["db", "init"])

        assert result.exit_code == 1
        assert "DATABASE_URL" in result.output


class TestDbCheck:
    def test_ready(self, tmp_path: Path) -> None:
        result = runner.invoke(cli_app, ["db", "check", "--database-url", _sqlite_url(tmp_path / "x.db")])

        assert result.exit_code == 0, result.output
        assert "Database ready" in result.output

    def test_unavailable(self, tmp_path: Path) -> None:
        url = _sqlite_url(tmp_path / "missing" / "dir" / "x.db")

        result = runner.invoke(cli_app, ["db", "check", "--database-url", url])

        assert result.exit_code == 1
        assert "Database unavailable" in result.output

    def test_missing_url_exits_1(self, no_db_env: pytest.MonkeyPatch) -> None:
        assert runner.invoke(cli_app, ["db", "check"]).exit_code == 1


class TestDbUpgrade:
    def test_applies_migrations(self, tmp_path: Path) -> None:
        db = tmp_path / "migrated.db"

        result = runner.invoke(
            cli_app,
            ["db", "upgrade", "--project-root", str(PROJECT_ROOT), "--database-url", _sqlite_url(db)],
        )

        assert result.exit_code == 0, result.output
        assert "Upgraded to head" in result.output
        assert {"nodes", "alembic_version"} <= _tables(db)
        with sqlite3.connect(db) as conn:
            (version,) = conn.execute("select version_num from alembic_version").fetchone()
        assert version == "0001_create_nodes"

    def test_missing_url_exits_1(self, no_db_env: pytest.MonkeyPatch) -> None:
        result = runner.invoke(cli_app, ["db", "upgrade", "--project-root", str(PROJECT_ROOT)])

        assert result.exit_code == 1


class TestServe:
    def test_runs_uvicorn_factory(self, monkeypatch: pytest.MonkeyPatch) -> None:
        calls: list[tuple[tuple, dict]] = []
        monkeypatch.setattr(cli_mod.uvicorn, "run", lambda *a, **kw: calls.append((a, kw)))

        result = runner.invoke(cli_app, ["serve", "--host", "127.0.0.1", "--port", "8123"])

        assert result.exit_code == 0, result.output
        (args, kwargs), = calls
        assert args == ("nodes_api.api:create_app",)
        assert kwargs["factory"] is True
        assert kwargs["host"] == "127.0.0.1"
        assert kwargs["port"] == 8123
        assert kwargs["log_config"] is None

    def test_defaults_from_api_settings(self, monkeypatch: pytest.MonkeyPatch) -> None:
        calls: list[dict] = []
        monkeypatch.setattr(cli_mod.uvicorn, "run", lambda *a, **kw: calls.append(kw))

        assert runner.invoke(cli_app, ["serve"]).exit_code == 0

        assert calls[0]["port"] == cli_mod.get_api_settings().port


def test_help_lists_commands() -> None:
    result = runner.invoke(cli_app, ["--help"])

    assert result.exit_code == 0
    assert "serve" in result.output
    assert "db" in result.output
