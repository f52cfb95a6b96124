"""Postgres schema and connection pool helpers."""

from __future__ import annotations

from typing import Any

from psycopg2.extensions import connection as PgConnection  # noqa: N812
from psycopg2.pool import ThreadedConnectionPool

from posindex.config import Settings
from posindex.utils.logger import get_logger

logger = get_logger(__name__)

POSTGRES_SCHEMA_STATEMENTS = (
    """
    CREATE TABLE IF NOT EXISTS players (
        name TEXT PRIMARY KEY
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS games (
        id BIGSERIAL PRIMARY KEY,
        white TEXT NOT NULL REFERENCES players (name),
        black TEXT NOT NULL REFERENCES players (name),
        event TEXT NOT NULL,
        played_at TIMESTAMP NOT NULL,
        white_elo INTEGER,
        black_elo INTEGER
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS moves (
        game_id BIGINT NOT NULL REFERENCES games (id),
        ply INTEGER NOT NULL,
        san TEXT NOT NULL,
        fingerprint BIGINT NOT NULL,
        PRIMARY KEY (game_id, ply)
    )
    """,
    "CREATE INDEX IF NOT EXISTS moves_fingerprint_idx ON moves (fingerprint)",
    "CREATE INDEX IF NOT EXISTS games_white_idx ON games (white)",
    "CREATE INDEX IF NOT EXISTS games_black_idx ON games (black)",
)


def _connection_kwargs(settings: Settings) -> dict[str, Any] | None:
    if settings.postgres_dsn:
        return {"dsn": settings.postgres_dsn}
    if not settings.postgres_host or not settings.postgres_db:
        return None
    return {
        "host": settings.postgres_host,
        "port": settings.postgres_port,
        "dbname": settings.postgres_db,
        "user": settings.postgres_user,
        "password": settings.postgres_password,
        "sslmode": settings.postgres_sslmode,
        "connect_timeout": settings.postgres_connect_timeout_s,
    }


def init_postgres_schema(conn: PgConnection) -> None:
    """Ensure the players, games, and moves tables exist."""
    with conn.cursor() as cur:
        for statement in POSTGRES_SCHEMA_STATEMENTS:
            cur.execute(statement)


def build_connection_pool(settings: Settings) -> ThreadedConnectionPool:
    """Return a thread-safe pool sized to the ingestion concurrency bound.

    Raises ``ValueError`` when no Postgres connection settings are present.
    """
    kwargs = _connection_kwargs(settings)
    if not kwargs:
        raise ValueError("Postgres backend selected but no DSN or host/db configured")
    logger.debug("Opening Postgres pool (max %s connections)", settings.max_concurrent_games)
    return ThreadedConnectionPool(1, settings.max_concurrent_games, **kwargs)
