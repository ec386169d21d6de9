from __future__ import annotations

import json
import logging
import os
from logging.config import dictConfig
from traceback import format_exception
from typing import Any, Optional

from .env import Env, get_env, pick

DATEFMT = "%Y-%m-%dT%H:%M:%S"
PLAIN_FORMAT = "%(asctime)s %(levelname)-5s [pid:%(process)d] %(name)s: %(message)s"

# LogRecord attribute -> key under "http" in JSON output
_HTTP_FIELDS = (("http_method", "method"), ("path", "path"), ("status_code", "status"))

# loggers that should only reach root through propagation, at a fixed level
_ROUTED_LOGGERS = {
    "uvicorn": "INFO",
    "uvicorn.error": "INFO",
    "uvicorn.access": "INFO",
    # SQL echo stays opt-in via DB_ECHO
    "sqlalchemy.engine": "WARNING",
}


def _error_payload(exc_info) -> dict[str, Any]:
    exc_type, exc, tb = exc_info
    out: dict[str, Any] = {}
    if exc_type is not None:
        out["type"] = exc_type.__name__
    if exc is not None and str(exc):
        out["message"] = str(exc)
    limit = int(os.getenv("LOG_STACK_LIMIT", "4000"))
    stack = "".join(format_exception(exc_type, exc, tb))
    out["stack"] = stack if len(stack) <= limit else stack[:limit] + "...(truncated)"
    return out


class JsonFormatter(logging.Formatter):
    """One JSON object per line. Picks up `node_id` and HTTP fields passed via `extra=`."""

    def format(self, record: logging.LogRecord) -> str:  # type: ignore[override]
        payload: dict[str, Any] = {
            "time": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "logger": record.name,
            "pid": record.process,
            "message": record.getMessage(),
        }

        node_id = getattr(record, "node_id", None)
        if node_id is not None:
            payload["node_id"] = str(node_id)

        http = {key: getattr(record, attr) for attr, key in _HTTP_FIELDS if getattr(record, attr, None) is not None}
        if http:
            payload["http"] = http

        if record.exc_info:
            payload["error"] = _error_payload(record.exc_info)

        return json.dumps(payload, ensure_ascii=False)


def _resolve(explicit: Optional[str], env_var: str, *, prod: str, nonprod: str, env: Env) -> str:
    return explicit or os.getenv(env_var) or pick(prod=prod, nonprod=nonprod, env=env)


def setup_logging(level: Optional[str] = None, fmt: Optional[str] = None, env: Optional[Env] = None) -> None:
    """
    Configure root logging once per process.

    Level: `level` arg, else LOG_LEVEL, else INFO in prod and DEBUG elsewhere.
    Format: `fmt` arg, else LOG_FORMAT ("json" | "plain"), else json in prod.
    """
    env = env or get_env()
    level = _resolve(level, "LOG_LEVEL", prod="INFO", nonprod="DEBUG", env=env).upper()
    use_json = _resolve(fmt, "LOG_FORMAT", prod="json", nonprod="plain", env=env).lower() == "json"

    dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {
                "plain": {"format": PLAIN_FORMAT, "datefmt": DATEFMT},
                "json": {"()": JsonFormatter, "datefmt": DATEFMT},
            },
            "handlers": {
                "stream": {
                    "class": "logging.StreamHandler",
                    "level": level,
                    "formatter": "json" if use_json else "plain",
                }
            },
            "root": {"level": level, "handlers": ["stream"]},
            "loggers": {
                name: {"level": lvl, "handlers": [], "propagate": True} for name, lvl in _ROUTED_LOGGERS.items()
            },
        }
    )
