from __future__ import annotations

import os
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any

from dotenv import load_dotenv

load_dotenv()

DEFAULT_DATA_DIR = Path(os.getenv("POSINDEX_DATA_DIR", "data"))
DEFAULT_DUCKDB_PATH = DEFAULT_DATA_DIR / "posindex.duckdb"
DEFAULT_MAX_CONCURRENT_GAMES = 50
DEFAULT_TRANSPOSITION_MIN_PLY = 6
DEFAULT_TRANSPOSITION_LIMIT = 50
SUPPORTED_BACKENDS = ("duckdb", "postgres")


def _env_str(name: str, default: str | None = None) -> str | None:
    value = os.getenv(name)
    if value is None or not value.strip():
        return default
    return value.strip()


def _env_int(name: str, default: int) -> int:
    value = _env_str(name)
    if value is None:
        return default
    try:
        return int(value)
    except ValueError as exc:
        raise ValueError(f"{name} must be an integer, got {value!r}") from exc


def _env_path(name: str, default: Path) -> Path:
    return Path(_env_str(name) or default)


@dataclass(slots=True)
class Settings:
    """Central configuration for ingestion, storage, and replay."""

    backend: str = field(default_factory=lambda: _env_str("POSINDEX_BACKEND", "duckdb"))
    duckdb_path: Path = field(
        default_factory=lambda: _env_path("POSINDEX_DUCKDB_PATH", DEFAULT_DUCKDB_PATH)
    )
    postgres_dsn: str | None = field(
        default_factory=lambda: _env_str("POSINDEX_POSTGRES_DSN", _env_str("DATABASE_URL"))
    )
    postgres_host: str | None = field(default_factory=lambda: _env_str("POSINDEX_POSTGRES_HOST"))
    postgres_port: int = field(default_factory=lambda: _env_int("POSINDEX_POSTGRES_PORT", 5432))
    postgres_db: str | None = field(default_factory=lambda: _env_str("POSINDEX_POSTGRES_DB"))
    postgres_user: str | None = field(default_factory=lambda: _env_str("POSINDEX_POSTGRES_USER"))
    postgres_password: str | None = field(
        default_factory=lambda: _env_str("POSINDEX_POSTGRES_PASSWORD")
    )
    postgres_sslmode: str = field(
        default_factory=lambda: _env_str("POSINDEX_POSTGRES_SSLMODE", "disable")
    )
    postgres_connect_timeout_s: int = field(
        default_factory=lambda: _env_int("POSINDEX_POSTGRES_CONNECT_TIMEOUT", 5)
    )
    max_concurrent_games: int = field(
        default_factory=lambda: _env_int(
            "POSINDEX_MAX_CONCURRENT_GAMES",
            DEFAULT_MAX_CONCURRENT_GAMES,
        )
    )
    transposition_min_ply: int = field(
        default_factory=lambda: _env_int(
            "POSINDEX_TRANSPOSITION_MIN_PLY",
            DEFAULT_TRANSPOSITION_MIN_PLY,
        )
    )
    transposition_limit: int = field(
        default_factory=lambda: _env_int(
            "POSINDEX_TRANSPOSITION_LIMIT",
            DEFAULT_TRANSPOSITION_LIMIT,
        )
    )
    log_level: str = field(default_factory=lambda: _env_str("POSINDEX_LOG_LEVEL", "INFO"))
    log_file: Path | None = field(
        default_factory=lambda: (
            Path(value) if (value := _env_str("POSINDEX_LOG_FILE")) else None
        )
    )

    def __post_init__(self) -> None:
        self.backend = (self.backend or "duckdb").lower()
        if self.backend not in SUPPORTED_BACKENDS:
            raise ValueError(
                f"Unsupported backend {self.backend!r}; expected one of {SUPPORTED_BACKENDS}"
            )
        self.duckdb_path = Path(self.duckdb_path)
        if self.max_concurrent_games < 1:
            raise ValueError("max_concurrent_games must be at least 1")
        if self.transposition_min_ply < 0:
            raise ValueError("transposition_min_ply cannot be negative")
        if self.transposition_limit < 0:
            raise ValueError("transposition_limit cannot be negative")


def _apply_overrides(settings: Settings, overrides: dict[str, Any]) -> None:
    known = {item.name for item in fields(Settings)}
    for name, value in overrides.items():
        if name not in known:
            raise TypeError(f"Settings got an unexpected override '{name}'")
        if value is not None:
            setattr(settings, name, value)


def get_settings(**overrides: Any) -> Settings:
    """Return a Settings instance with ``.env`` reloaded and overrides applied.

    Overrides set to ``None`` are ignored so CLI flags can be passed through
    unconditionally.
    """
    load_dotenv()
    settings = Settings()
    _apply_overrides(settings, overrides)
    settings.__post_init__()
    return settings


__all__ = [
    "DEFAULT_DUCKDB_PATH",
    "DEFAULT_MAX_CONCURRENT_GAMES",
    "DEFAULT_TRANSPOSITION_LIMIT",
    "DEFAULT_TRANSPOSITION_MIN_PLY",
    "Settings",
    "get_settings",
]
