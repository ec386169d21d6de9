from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class AppSettings(BaseSettings):
    name: str = "Nodes API"
    version: str = "0.1.0"

    model_config = SettingsConfigDict(
        env_prefix="APP_",  # APP_NAME, APP_VERSION
        extra="ignore",
    )


class ApiSettings(BaseSettings):
    host: str = "0.0.0.0"
    port: int = 3000
    # comma-separated in the environment: API_CORS_ORIGINS="http://a,http://b"
    cors_origins: str = "*"
    max_search_limit: int = Field(default=500, ge=1)

    model_config = SettingsConfigDict(
        env_prefix="API_",
        env_file=".env",
        extra="ignore",
    )

    @property
    def cors_origin_list(self) -> list[str]:
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]


@lru_cache
def get_app_settings(**kwargs) -> AppSettings:
    # Only include kwargs that are not None, so defaults in AppSettings are used
    filtered_kwargs = {k: v for k, v in kwargs.items() if v is not None}
    return AppSettings(**filtered_kwargs)


@lru_cache
def get_api_settings(**kwargs) -> ApiSettings:
    filtered_kwargs = {k: v for k, v in kwargs.items() if v is not None}
    return ApiSettings(**filtered_kwargs)
