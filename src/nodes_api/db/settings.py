from __future__ import annotations

import os
from functools import lru_cache
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from ..exceptions import ConfigurationError
from ..resilience import RetryConfig


class DBSettings(BaseSettings):
    """
    Database settings.

    Env support:
      - DB_* variables: DB_DATABASE_URL, DB_ECHO, DB_POOL_SIZE, DB_POOL_TIMEOUT, ...
      - DATABASE_URL is accepted as a fallback for the URL.

    pool_size + max_overflow bounds the number of concurrent connections; a
    caller waits at most pool_timeout seconds for a free one.
    """

    database_url: Optional[str] = Field(default=None)
    echo: bool = Field(default=False)
    pool_size: int = Field(default=10, ge=1)
    max_overflow: int = Field(default=10, ge=0)
    pool_timeout: float = Field(default=20.0, gt=0)
    pool_recycle: int = Field(default=1800)
    statement_cache_size: int = Field(default=1000)

    retry_attempts: int = Field(default=3, ge=1)
    retry_base_delay: float = Field(default=0.5, ge=0)
    retry_max_delay: float = Field(default=5.0, ge=0)

    auto_create_schema: bool = Field(default=True)

    model_config = SettingsConfigDict(
        env_prefix="DB_",
        env_file=".env",
        extra="ignore",
    )

    @property
    def resolved_database_url(self) -> str:
        url = self.database_url or os.getenv("DATABASE_URL")
        if not url:
            raise ConfigurationError(
                "DATABASE_URL or DB_DATABASE_URL must be set for database connectivity",
                config_key="DATABASE_URL",
            )
        # plain postgres URLs (as handed out by most hosts) -> async driver
        if url.startswith("postgres://"):
            url = url.replace("postgres://", "postgresql+asyncpg://", 1)
        elif url.startswith("postgresql://"):
            url = url.replace("postgresql://", "postgresql+asyncpg://", 1)
        return url

    def retry_config(self) -> RetryConfig:
        return RetryConfig(
            max_attempts=self.retry_attempts,
            base_delay=self.retry_base_delay,
            max_delay=self.retry_max_delay,
        )


@lru_cache
def get_db_settings(**kwargs) -> DBSettings:
    filtered = {k: v for k, v in kwargs.items() if v is not None}
    return DBSettings(**filtered)
