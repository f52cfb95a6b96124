"""Postgres game, move, and position repository."""

from __future__ import annotations

from collections.abc import Iterable
from datetime import datetime

from psycopg2.extensions import connection as PgConnection  # noqa: N812
from psycopg2.extras import RealDictCursor, execute_values

from posindex.board_engine import to_signed_fingerprint
from posindex.db.row_mappers import (
    GAME_COLUMNS,
    MOVE_COLUMNS,
    game_from_row,
    move_from_row,
    select_list,
    transposition_from_values,
)
from posindex.models import Game, Move, Transposition
from posindex.ports.repositories import MoveRow

MOVE_PAGE_SIZE = 500


class PostgresGameRepository:
    """Encapsulates player, game, and move persistence and reads for Postgres."""

    def __init__(self, conn: PgConnection, *, page_size: int = MOVE_PAGE_SIZE) -> None:
        self._conn = conn
        self._page_size = page_size

    def upsert_player(self, name: str) -> None:
        with self._conn.cursor() as cur:
            cur.execute(
                "INSERT INTO players (name) VALUES (%s) ON CONFLICT (name) DO NOTHING",
                (name,),
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
        with self._conn.cursor() as cur:
            cur.execute(
                """
                INSERT INTO games (white, black, event, played_at, white_elo, black_elo)
                VALUES (%s, %s, %s, %s, %s, %s)
                RETURNING id
                """,
                (white, black, event, played_at, white_elo, black_elo),
            )
            row = cur.fetchone()
        return int(row[0])

    def insert_moves(self, game_id: int, moves: Iterable[MoveRow]) -> int:
        """Bulk insert move rows through ``execute_values``."""
        rows = [
            (game_id, ply, san, to_signed_fingerprint(fingerprint)) for ply, san, fingerprint in moves
        ]
        if not rows:
            return 0
        with self._conn.cursor() as cur:
            execute_values(
                cur,
                "INSERT INTO moves (game_id, ply, san, fingerprint) VALUES %s",
                rows,
                page_size=self._page_size,
            )
        return len(rows)

    def games_by_player(self, name: str) -> list[Game]:
        with self._conn.cursor(cursor_factory=RealDictCursor) as cur:
            cur.execute(
                f"""
                SELECT {", ".join(GAME_COLUMNS)}
                FROM games
                WHERE white = %s OR black = %s
                ORDER BY played_at, id
                """,
                (name, name),
            )
            rows = cur.fetchall()
        return [game_from_row(row) for row in rows]

    def game_by_id(self, game_id: int) -> Game | None:
        with self._conn.cursor(cursor_factory=RealDictCursor) as cur:
            cur.execute(
                f"SELECT {', '.join(GAME_COLUMNS)} FROM games WHERE id = %s",
                (game_id,),
            )
            row = cur.fetchone()
        return game_from_row(row) if row else None

    def moves_by_game(self, game_id: int) -> list[Move]:
        with self._conn.cursor(cursor_factory=RealDictCursor) as cur:
            cur.execute(
                f"SELECT {', '.join(MOVE_COLUMNS)} FROM moves WHERE game_id = %s ORDER BY ply",
                (game_id,),
            )
            rows = cur.fetchall()
        return [move_from_row(row) for row in rows]

    def move_at_ply(self, game_id: int, ply: int) -> Move | None:
        with self._conn.cursor(cursor_factory=RealDictCursor) as cur:
            cur.execute(
                f"SELECT {', '.join(MOVE_COLUMNS)} FROM moves WHERE game_id = %s AND ply = %s",
                (game_id, ply),
            )
            row = cur.fetchone()
        return move_from_row(row) if row else None

    def moves_by_fingerprint(
        self,
        fingerprint: int,
        exclude_game_id: int | None = None,
        limit: int | None = None,
    ) -> list[Transposition]:
        sql = (
            f"SELECT {select_list('m', MOVE_COLUMNS)}, {select_list('g', GAME_COLUMNS)} "
            "FROM moves m JOIN games g ON g.id = m.game_id "
            "WHERE m.fingerprint = %s"
        )
        params: list[object] = [to_signed_fingerprint(fingerprint)]
        if exclude_game_id is not None:
            sql += " AND m.game_id <> %s"
            params.append(exclude_game_id)
        sql += " ORDER BY m.game_id, m.ply"
        if limit is not None:
            sql += " LIMIT %s"
            params.append(max(int(limit), 0))
        with self._conn.cursor() as cur:
            cur.execute(sql, tuple(params))
            rows = cur.fetchall()
        return [transposition_from_values(row) for row in rows]

    def count_by_fingerprint(self, fingerprint: int, exclude_game_id: int | None = None) -> int:
        sql = "SELECT COUNT(*) FROM moves WHERE fingerprint = %s"
        params: list[object] = [to_signed_fingerprint(fingerprint)]
        if exclude_game_id is not None:
            sql += " AND game_id <> %s"
            params.append(exclude_game_id)
        return self._count(sql, params)

    def count_players(self) -> int:
        return self._count("SELECT COUNT(*) FROM players", [])

    def count_games(self) -> int:
        return self._count("SELECT COUNT(*) FROM games", [])

    def count_moves(self, game_id: int | None = None) -> int:
        if game_id is None:
            return self._count("SELECT COUNT(*) FROM moves", [])
        return self._count("SELECT COUNT(*) FROM moves WHERE game_id = %s", [game_id])

    def _count(self, sql: str, params: list[object]) -> int:
        with self._conn.cursor() as cur:
            cur.execute(sql, tuple(params))
            row = cur.fetchone()
        return int(row[0]) if row else 0


def postgres_game_repository(conn: PgConnection) -> PostgresGameRepository:
    """Return a PostgresGameRepository bound to the provided connection."""
    return PostgresGameRepository(conn)
