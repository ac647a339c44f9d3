# task_api/config.py
"""Settings read from environment variables at import time."""

import os


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        return default


DATABASE_URL = os.getenv("TASK_API_DATABASE_URL", "sqlite:///./tasks.db")

CORS_ORIGINS = os.getenv(
    "CORS_ORIGINS",
    "http://localhost:3000,http://localhost:5173",
).split(",")

DEBUG = _env_bool("TASK_API_DEBUG", False)
LOG_LEVEL = os.getenv("TASK_API_LOG_LEVEL", "INFO").upper()

TOKEN_TTL_HOURS = _env_int("TASK_API_TOKEN_TTL_HOURS", 24 * 7)
PASSWORD_ITERATIONS = _env_int("TASK_API_PASSWORD_ITERATIONS", 200_000)

DEFAULT_PAGE_SIZE = _env_int("TASK_API_DEFAULT_PAGE_SIZE", 10)
MAX_PAGE_SIZE = _env_int("TASK_API_MAX_PAGE_SIZE", 100)

HOST = os.getenv("TASK_API_HOST", "127.0.0.1")
PORT = _env_int("TASK_API_PORT", 5000)
