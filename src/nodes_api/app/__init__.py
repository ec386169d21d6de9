from .core.env import CURRENT_ENVIRONMENT, Env, get_env, normalize_env, pick
from .core.logging import JsonFormatter, setup_logging
from .settings import ApiSettings, AppSettings, get_api_settings, get_app_settings

__all__ = [
    "CURRENT_ENVIRONMENT",
    "Env",
    "get_env",
    "normalize_env",
    "pick",
    "JsonFormatter",
    "setup_logging",
    "ApiSettings",
    "AppSettings",
    "get_api_settings",
    "get_app_settings",
]
