"""Settings loaded from environment variables (+ optional .env).

One frozen Settings object for the whole app; nothing secret is required at
import time. Variables use the TODOX_ prefix.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path

from dotenv import load_dotenv

ENV_PREFIX = "TODOX"

STORE_KINDS = ("memory", "sql", "mongo")


def _k(suffix: str) -> str:
    """Build env var name with the project prefix."""
    return f"{ENV_PREFIX}_{suffix}"


def _env(name: str, default: str = "") -> str:
    v = os.getenv(name)
    return default if v is None or v.strip() == "" else v.strip()


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _env_path(name: str, default: Path) -> Path:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return Path(raw).expanduser()


@dataclass(frozen=True, slots=True)
class Settings:
    # ---- App / logging ----
    log_level: str
    log_dir: Path

    # ---- HTTP ----
    host: str
    port: int

    # ---- Storage ----
    store: str
    database_url: str
    mongo_uri: str
    mongo_db: str
    todo_collection: str

    # ---- Sessions ----
    session_secret: str
    session_cookie: str
    session_ttl_seconds: int

    @staticmethod
    def from_env() -> "Settings":
        log_dir = _env_path(_k("LOG_DIR"), Path(".local/todox"))
        return Settings(
            log_level=_env(_k("LOG_LEVEL"), "INFO").upper(),
            log_dir=log_dir,
            host=_env(_k("HOST"), "127.0.0.1"),
            port=_env_int(_k("PORT"), 8000),
            store=_env(_k("STORE"), "memory").lower(),
            database_url=_env(_k("DATABASE_URL"), "sqlite+aiosqlite:///.local/todox/tasks.db"),
            mongo_uri=_env(_k("MONGO_URI"), "mongodb://localhost:27017"),
            mongo_db=_env(_k("MONGO_DB"), "todox"),
            todo_collection=_env(_k("TODO_COLLECTION"), "todos"),
            session_secret=_env(_k("SESSION_SECRET"), ""),
            session_cookie=_env(_k("SESSION_COOKIE"), "todox-session"),
            session_ttl_seconds=_env_int(_k("SESSION_TTL_SECONDS"), 86400),
        )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Process-wide settings; `.env` is read on first use, real env vars win."""
    load_dotenv(override=False)
    return Settings.from_env()
