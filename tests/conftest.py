"""
Root conftest.py for nodes-api tests.

Provides:
1. Marker registration
2. An in-memory SQLite engine with the schema created
3. A NodeRepository with zero-delay retries
4. An httpx AsyncClient bound to the FastAPI app
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncIterator, Callable

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from nodes_api.api import create_app
from nodes_api.app.settings import ApiSettings
from nodes_api.db import DBEngine, DBSettings, create_schema
from nodes_api.nodes import NodeRepository
from nodes_api.resilience import RetryConfig

SQLITE_MEMORY_URL = "sqlite+aiosqlite:///:memory:"


def pytest_configure(config):
    for name, desc in [
        ("nodes", "Node repository and API tests"),
        ("db", "Database engine and schema tests"),
    ]:
        config.addinivalue_line("markers", f"{name}: {desc}")


def make_settings(**overrides) -> DBSettings:
    values = {
        "database_url": SQLITE_MEMORY_URL,
        "retry_base_delay": 0.0,
        "auto_create_schema": False,
    }
    values.update(overrides)
    return DBSettings(**values)


@pytest_asyncio.fixture()
async def engine() -> AsyncIterator[DBEngine]:
    eng = DBEngine(make_settings())
    await create_schema(eng)
    yield eng
    await eng.dispose()


@pytest.fixture
def fast_retry() -> RetryConfig:
    return RetryConfig(max_attempts=3, base_delay=0.0, jitter=0.0)


@pytest.fixture
def repo(engine: DBEngine, fast_retry: RetryConfig) -> NodeRepository:
    return NodeRepository(engine, retry=fast_retry)


@pytest.fixture
def api_settings() -> ApiSettings:
    return ApiSettings(cors_origins="http://localhost:3001", max_search_limit=500)


@pytest_asyncio.fixture()
async def client(engine: DBEngine, api_settings: ApiSettings) -> AsyncIterator[AsyncClient]:
    app = create_app(engine, api_settings=api_settings)
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as c:
        yield c


class FlakyEngine:
    """Wraps a DBEngine; the first `failures` transactions raise `exc_factory()`."""

    def __init__(self, inner: DBEngine, failures: int, exc_factory: Callable[[], Exception]):
        self.inner = inner
        self.failures = failures
        self.exc_factory = exc_factory
        self.calls = 0

    @property
    def settings(self) -> DBSettings:
        return self.inner.settings

    @property
    def dialect_name(self) -> str:
        return self.inner.dialect_name

    @asynccontextmanager
    async def transaction(self):
        self.calls += 1
        if self.failures > 0:
            self.failures -= 1
            raise self.exc_factory()
        async with self.inner.transaction() as session:
            yield session


@pytest.fixture
def make_flaky(engine: DBEngine) -> Callable[[int, Callable[[], Exception]], FlakyEngine]:
    def factory(failures: int, exc_factory: Callable[[], Exception]) -> FlakyEngine:
        return FlakyEngine(engine, failures, exc_factory)

    return factory
