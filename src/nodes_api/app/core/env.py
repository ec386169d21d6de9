from __future__ import annotations

import os
import warnings
from enum import StrEnum
from functools import cache
from typing import Any


class Env(StrEnum):
    LOCAL = "local"
    DEV = "dev"
    TEST = "test"
    PROD = "prod"


# accepted spellings of APP_ENV beyond the canonical values
_ALIASES: dict[str, Env] = {
    "development": Env.DEV,
    "testing": Env.TEST,
    "ci": Env.TEST,
    "production": Env.PROD,
}


def normalize_env(raw: str | None) -> Env | None:
    """Map an APP_ENV string onto Env; None when empty or unrecognized."""
    key = (raw or "").strip().lower()
    if not key:
        return None
    try:
        return Env(key)
    except ValueError:
        return _ALIASES.get(key)


@cache
def get_env() -> Env:
    """
    Deployment environment from APP_ENV, "local" when unset.

    An unrecognized value also resolves to "local" and warns once per process.
    """
    raw = os.getenv("APP_ENV")
    resolved = normalize_env(raw)
    if resolved is not None:
        return resolved
    if raw:
        warnings.warn(f"Unrecognized APP_ENV '{raw}', defaulting to 'local'.", RuntimeWarning, stacklevel=2)
    return Env.LOCAL


def pick(*, prod: Any, nonprod: Any, dev: Any = None, test: Any = None, local: Any = None, env: Env | None = None):
    """
    Per-environment value. `nonprod` covers any non-prod env without its own override.

    Example:
        level = pick(prod="INFO", nonprod="DEBUG")
    """
    current = env or get_env()
    if current is Env.PROD:
        return prod
    override = {Env.DEV: dev, Env.TEST: test, Env.LOCAL: local}[current]
    return nonprod if override is None else override


CURRENT_ENVIRONMENT: Env = get_env()
