"""Game, move, and position repository for DuckDB-backed storage."""

from __future__ import annotations

from collections.abc import Callable, Iterable
from dataclasses import dataclass
from datetime import datetime

import duckdb

from posindex.board_engine import to_signed_fingerprint
from posindex.db.row_mappers import (
    GAME_COLUMNS,
    MOVE_COLUMNS,
    game_from_row,
    move_from_row,
    rows_to_dicts,
    select_list,
    transposition_from_values,
)
from posindex.models import Game, Move, Transposition
from posindex.ports.repositories import MoveRow

MOVE_INSERT_CHUNK = 250


def _build_move_insert_values(game_id: int, rows: list[MoveRow]) -> list[object]:
    values: list[object] = []
    for ply, san, fingerprint in rows:
        values.extend((game_id, ply, san, to_signed_fingerprint(fingerprint)))
    return values


def _chunks(rows: list[MoveRow], size: int) -> Iterable[list[MoveRow]]:
    for start in range(0, len(rows), size):
        yield rows[start : start + size]


@dataclass(frozen=True)
class DuckDbGameDependencies:
    """Dependencies used by the game repository."""

    rows_to_dicts: Callable[[duckdb.DuckDBPyConnection], list[dict[str, object]]]
    insert_chunk_size: int = MOVE_INSERT_CHUNK


class DuckDbGameRepository:
    """Encapsulates player, game, and move persistence and reads for DuckDB."""

    def __init__(
        self,
        conn: duckdb.DuckDBPyConnection,
        *,
        dependencies: DuckDbGameDependencies,
    ) -> None:
        self._conn = conn
        self._dependencies = dependencies

    def upsert_player(self, name: str) -> None:
        """Create the player unless one with this name already exists."""
        self._conn.execute(
            """
            INSERT INTO players (name)
            SELECT ? WHERE NOT EXISTS (SELECT 1 FROM players WHERE name = ?)
            """,
            [name, name],
        )

    def insert_game(
        self,
        event: str,
        played_at: datetime,
        white: str,
        black: str,
        white_elo: int | None = None,
        black_elo: int | None = None,
    ) -> int:
        """Insert a game row and return its new id."""
        row = self._conn.execute(
            """
            INSERT INTO games (white, black, event, played_at, white_elo, black_elo)
            VALUES (?, ?, ?, ?, ?, ?)
            RETURNING id
            """,
            [white, black, event, played_at, white_elo, black_elo],
        ).fetchone()
        return int(row[0])

    def insert_moves(self, game_id: int, moves: Iterable[MoveRow]) -> int:
        """Insert move rows with multi-row VALUES statements."""
        rows = list(moves)
        for chunk in _chunks(rows, self._dependencies.insert_chunk_size):
            placeholders = ", ".join(["(?, ?, ?, ?)"] * len(chunk))
            self._conn.execute(
                f"INSERT INTO moves (game_id, ply, san, fingerprint) VALUES {placeholders}",
                _build_move_insert_values(game_id, chunk),
            )
        return len(rows)

    def games_by_player(self, name: str) -> list[Game]:
        result = self._conn.execute(
            f"""
            SELECT {", ".join(GAME_COLUMNS)}
            FROM games
            WHERE white = ? OR black = ?
            ORDER BY played_at, id
            """,
            [name, name],
        )
        return [game_from_row(row) for row in self._dependencies.rows_to_dicts(result)]

    def game_by_id(self, game_id: int) -> Game | None:
        result = self._conn.execute(
            f"SELECT {', '.join(GAME_COLUMNS)} FROM games WHERE id = ?",
            [game_id],
        )
        rows = self._dependencies.rows_to_dicts(result)
        return game_from_row(rows[0]) if rows else None

    def moves_by_game(self, game_id: int) -> list[Move]:
        """Return a game's moves in ascending ply order."""
        result = self._conn.execute(
            f"SELECT {', '.join(MOVE_COLUMNS)} FROM moves WHERE game_id = ? ORDER BY ply",
            [game_id],
        )
        return [move_from_row(row) for row in self._dependencies.rows_to_dicts(result)]

    def move_at_ply(self, game_id: int, ply: int) -> Move | None:
        result = self._conn.execute(
            f"SELECT {', '.join(MOVE_COLUMNS)} FROM moves WHERE game_id = ? AND ply = ?",
            [game_id, ply],
        )
        rows = self._dependencies.rows_to_dicts(result)
        return move_from_row(rows[0]) if rows else None

    def moves_by_fingerprint(
        self,
        fingerprint: int,
        exclude_game_id: int | None = None,
        limit: int | None = None,
    ) -> list[Transposition]:
        """Return (move, game) pairs reaching ``fingerprint``."""
        sql = (
            f"SELECT {select_list('m', MOVE_COLUMNS)}, {select_list('g', GAME_COLUMNS)} "
            "FROM moves m JOIN games g ON g.id = m.game_id "
            "WHERE m.fingerprint = ?"
        )
        params: list[object] = [to_signed_fingerprint(fingerprint)]
        if exclude_game_id is not None:
            sql += " AND m.game_id <> ?"
            params.append(exclude_game_id)
        sql += " ORDER BY m.game_id, m.ply"
        if limit is not None:
            sql += f" LIMIT {max(int(limit), 0)}"
        rows = self._conn.execute(sql, params).fetchall()
        return [transposition_from_values(row) for row in rows]

    def count_by_fingerprint(self, fingerprint: int, exclude_game_id: int | None = None) -> int:
        sql = "SELECT COUNT(*) FROM moves WHERE fingerprint = ?"
        params: list[object] = [to_signed_fingerprint(fingerprint)]
        if exclude_game_id is not None:
            sql += " AND game_id <> ?"
            params.append(exclude_game_id)
        return self._count(sql, params)

    def count_players(self) -> int:
        return self._count("SELECT COUNT(*) FROM players", [])

    def count_games(self) -> int:
        return self._count("SELECT COUNT(*) FROM games", [])

    def count_moves(self, game_id: int | None = None) -> int:
        if game_id is None:
            return self._count("SELECT COUNT(*) FROM moves", [])
        return self._count("SELECT COUNT(*) FROM moves WHERE game_id = ?", [game_id])

    def _count(self, sql: str, params: list[object]) -> int:
        row = self._conn.execute(sql, params).fetchone()
        return int(row[0]) if row else 0


def default_game_dependencies() -> DuckDbGameDependencies:
    """Return default dependency wiring for DuckDB game operations."""
    return DuckDbGameDependencies(rows_to_dicts=rows_to_dicts)


def game_repository(conn: duckdb.DuckDBPyConnection) -> DuckDbGameRepository:
    """Return a DuckDbGameRepository bound to the provided connection."""
    return DuckDbGameRepository(conn, dependencies=default_game_dependencies())
