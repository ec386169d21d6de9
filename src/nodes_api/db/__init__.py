# Public DB API exports
from .settings import DBSettings, get_db_settings
from .engine import DBEngine
from .base import Base, UUIDMixin, TimestampMixin, utcnow
from .schema import create_schema, drop_schema
from .health import db_healthcheck

__all__ = [
    "DBSettings",
    "get_db_settings",
    "DBEngine",
    "Base",
    "UUIDMixin",
    "TimestampMixin",
    "utcnow",
    "create_schema",
    "drop_schema",
    "db_healthcheck",
]
