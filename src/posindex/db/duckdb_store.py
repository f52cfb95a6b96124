from __future__ import annotations

from pathlib import Path

import duckdb

from posindex.utils.logger import get_logger

logger = get_logger(__name__)

PLAYERS_SCHEMA = """
CREATE TABLE IF NOT EXISTS players (
    name TEXT PRIMARY KEY
);
"""

GAMES_ID_SEQUENCE = "CREATE SEQUENCE IF NOT EXISTS games_id_seq START 1;"

GAMES_SCHEMA = """
CREATE TABLE IF NOT EXISTS games (
    id BIGINT DEFAULT nextval('games_id_seq') PRIMARY KEY,
    white TEXT NOT NULL REFERENCES players (name),
    black TEXT NOT NULL REFERENCES players (name),
    event TEXT NOT NULL,
    played_at TIMESTAMP NOT NULL,
    white_elo INTEGER,
    black_elo INTEGER
);
"""

MOVES_SCHEMA = """
CREATE TABLE IF NOT EXISTS moves (
    game_id BIGINT NOT NULL REFERENCES games (id),
    ply INTEGER NOT NULL,
    san TEXT NOT NULL,
    fingerprint BIGINT NOT NULL,
    PRIMARY KEY (game_id, ply)
);
"""

INDEXES = (
    "CREATE INDEX IF NOT EXISTS moves_fingerprint_idx ON moves (fingerprint)",
    "CREATE INDEX IF NOT EXISTS games_white_idx ON games (white)",
    "CREATE INDEX IF NOT EXISTS games_black_idx ON games (black)",
)


def get_connection(db_path: Path | str) -> duckdb.DuckDBPyConnection:
    path = Path(db_path)
    if str(path) != ":memory:":
        path.parent.mkdir(parents=True, exist_ok=True)
    logger.debug("Opening DuckDB at %s", path)
    return duckdb.connect(str(path))


def init_schema(conn: duckdb.DuckDBPyConnection) -> None:
    """Create tables, the game id sequence, and lookup indexes if missing."""
    conn.execute(PLAYERS_SCHEMA)
    conn.execute(GAMES_ID_SEQUENCE)
    conn.execute(GAMES_SCHEMA)
    conn.execute(MOVES_SCHEMA)
    for statement in INDEXES:
        conn.execute(statement)


def list_tables(conn: duckdb.DuckDBPyConnection) -> list[str]:
    rows = conn.execute(
        "SELECT table_name FROM information_schema.tables ORDER BY table_name"
    ).fetchall()
    return [str(row[0]) for row in rows]
