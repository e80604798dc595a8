"""Process configuration.

Values come from the environment; a `.env` file next to the project root is
loaded first (existing variables win).
"""
from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path

from dotenv import load_dotenv

from .errors import ConfigError

_PROJECT_ROOT = Path(__file__).resolve().parent.parent

DEFAULT_SERVER_PORT = 8080
DEFAULT_LOG_LEVEL = "info"
DEFAULT_MAX_REQUEST_SIZE = 10 * 1024 * 1024  # 10MB

DB_ENV_KEYS = ("DB_HOST", "DB_PORT", "DB_USER", "DB_PASSWORD", "DB_NAME")
TEST_DB_ENV_KEYS = tuple(f"TEST_{k}" for k in DB_ENV_KEYS)


@dataclass
class DatabaseConfig:
    host: str = ""
    port: int = 0
    user: str = ""
    password: str = ""
    name: str = ""

    def is_complete(self) -> bool:
        return bool(self.host and self.port and self.user and self.password and self.name)

    def dsn(self) -> str:
        """`user:password@host:port/name`, or "" when any field is missing."""
        if not self.is_complete():
            return ""
        return f"{self.user}:{self.password}@{self.host}:{self.port}/{self.name}"


@dataclass
class AppConfig:
    database: DatabaseConfig = field(default_factory=DatabaseConfig)
    server_port: int = DEFAULT_SERVER_PORT
    log_level: str = DEFAULT_LOG_LEVEL
    cors_origins: list[str] = field(default_factory=lambda: ["*"])
    max_request_size: int = DEFAULT_MAX_REQUEST_SIZE


def load_env_file(path: str | os.PathLike | None = None) -> bool:
    return load_dotenv(path or _PROJECT_ROOT / ".env", override=False)


def _int_env(key: str, default: int | None = None) -> int | None:
    raw = (os.environ.get(key) or "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError as e:
        raise ConfigError(f"invalid {key}: {raw!r}") from e


def parse_origins(raw: str | None) -> list[str]:
    origins = [o.strip() for o in (raw or "").split(",") if o.strip()]
    return origins or ["*"]


def _read_database(keys: tuple[str, ...]) -> DatabaseConfig | None:
    """Read the five DB variables; None as soon as one is missing."""
    host_k, port_k, user_k, password_k, name_k = keys
    values = {k: (os.environ.get(k) or "").strip() for k in keys}
    if not all(values.values()):
        return None
    return DatabaseConfig(
        host=values[host_k],
        port=_int_env(port_k),
        user=values[user_k],
        password=values[password_k],
        name=values[name_k],
    )


def load_config() -> AppConfig:
    load_env_file()
    cfg = AppConfig()
    cfg.database = _read_database(DB_ENV_KEYS) or DatabaseConfig(name=(os.environ.get("DB_NAME") or "").strip())
    cfg.server_port = _int_env("SERVER_PORT", DEFAULT_SERVER_PORT)
    cfg.log_level = (os.environ.get("LOG_LEVEL") or DEFAULT_LOG_LEVEL).strip().lower()
    cfg.cors_origins = parse_origins(os.environ.get("CORS_ALLOWED_ORIGINS"))
    cfg.max_request_size = _int_env("MAX_REQUEST_SIZE", DEFAULT_MAX_REQUEST_SIZE)
    return cfg


def load_test_config() -> DatabaseConfig:
    """Database settings for integration tests.

    Returns an empty config when any TEST_DB_* variable is absent, so the
    harness can fall back to its default target instead of failing.
    """
    load_env_file()
    return _read_database(TEST_DB_ENV_KEYS) or DatabaseConfig()


def resolve_test_db_path(cfg: DatabaseConfig, fallback: str) -> str:
    """SQLite file for the test harness: the configured DB name, else `fallback`."""
    return cfg.name if cfg.is_complete() else fallback
