"""vista_guard.config

Centralized configuration for the guard and its execution pipeline.

Uses environment variables to avoid hardcoded secrets.
"""

from __future__ import annotations
from dataclasses import dataclass
import os

from vista_guard.errors import ConfigError
from vista_guard.policy.dialects import get_dialect_policy


def _env(name: str, default: str | None = None) -> str | None:
    val = os.getenv(name)
    return val if val is not None else default


def _env_bool(name: str, default: bool = False) -> bool:
    v = os.getenv(name)
    if v is None:
        return default
    return v.strip().lower() in ("1", "true", "yes", "y", "on")


def _env_int(name: str, default: int) -> int:
    v = os.getenv(name)
    if v is None:
        return default
    try:
        return int(v)
    except ValueError:
        return default


def _env_choice(name: str, default: str, choices: tuple[str, ...]) -> str:
    v = (_env(name, default) or default).strip().lower()
    if v not in choices:
        raise ConfigError(f"{name} must be one of {choices}, got {v!r}")
    return v


@dataclass(frozen=True)
class Settings:
    """Application settings loaded from environment variables."""

    # Guard
    dialect: str  # postgresql|mysql|sqlite
    max_rows: int
    allow_trailing_semicolon: bool
    existing_limit_policy: str  # preserve|clamp

    # DB
    db_backend: str  # postgresql|sqlite
    database_url: str | None
    sqlite_path: str
    statement_timeout_seconds: int

    # Schema introspection
    schema_cache_ttl_seconds: int

    # Display
    max_cols: int

    # Logging
    log_dir: str

    @staticmethod
    def load() -> "Settings":
        dialect = (_env("GUARD_DIALECT", "postgresql") or "postgresql").strip().lower()
        # Fail fast on an unknown dialect rather than on the first query.
        dialect = get_dialect_policy(dialect).name
        return Settings(
            dialect=dialect,
            max_rows=max(1, _env_int("GUARD_MAX_ROWS", 5000)),
            allow_trailing_semicolon=_env_bool("GUARD_ALLOW_TRAILING_SEMICOLON", False),
            existing_limit_policy=_env_choice("GUARD_EXISTING_LIMIT_POLICY", "preserve", ("preserve", "clamp")),
            db_backend=_env_choice("DB_BACKEND", "postgresql", ("postgresql", "sqlite")),
            database_url=_env("DATABASE_URL"),
            sqlite_path=_env("SQLITE_PATH", "data/app.db") or "data/app.db",
            statement_timeout_seconds=max(1, _env_int("DB_STATEMENT_TIMEOUT_SECONDS", 10)),
            schema_cache_ttl_seconds=max(0, _env_int("SCHEMA_CACHE_TTL_SECONDS", 300)),
            max_cols=max(1, _env_int("UI_MAX_COLS", 20)),
            log_dir=_env("LOG_DIR", "logs") or "logs",
        )
