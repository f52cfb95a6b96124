from __future__ import annotations

import unittest
from datetime import datetime
from unittest.mock import MagicMock, patch

from psycopg2.extras import RealDictCursor

from posindex.board_engine import to_signed_fingerprint
from posindex.db.postgres_game_repository import PostgresGameRepository

HIGH_BIT_FINGERPRINT = 0xF000000000000001


def _connection_with_cursor() -> tuple[MagicMock, MagicMock]:
    conn = MagicMock()
    cursor = MagicMock()
    conn.cursor.return_value.__enter__.return_value = cursor
    return conn, cursor


class PostgresGameRepositoryTests(unittest.TestCase):
    def test_upsert_player_ignores_conflicts(self) -> None:
        conn, cursor = _connection_with_cursor()
        PostgresGameRepository(conn).upsert_player("alice")
        sql, params = cursor.execute.call_args.args
        self.assertIn("ON CONFLICT (name) DO NOTHING", sql)
        self.assertEqual(params, ("alice",))

    def test_insert_game_returns_new_id(self) -> None:
        conn, cursor = _connection_with_cursor()
        cursor.fetchone.return_value = (42,)
        game_id = PostgresGameRepository(conn).insert_game(
            "Event", datetime(2024, 1, 1), "alice", "bob", 1500, None
        )
        self.assertEqual(game_id, 42)
        sql, params = cursor.execute.call_args.args
        self.assertIn("RETURNING id", sql)
        self.assertEqual(params[:3], ("alice", "bob", "Event"))

    def test_insert_moves_uses_execute_values_with_signed_fingerprints(self) -> None:
        conn, cursor = _connection_with_cursor()
        with patch("posindex.db.postgres_game_repository.execute_values") as execute_values:
            count = PostgresGameRepository(conn, page_size=10).insert_moves(
                7, [(1, "e4", 5), (2, "e5", HIGH_BIT_FINGERPRINT)]
            )
        self.assertEqual(count, 2)
        args, kwargs = execute_values.call_args
        self.assertIs(args[0], cursor)
        self.assertEqual(
            args[2],
            [(7, 1, "e4", 5), (7, 2, "e5", to_signed_fingerprint(HIGH_BIT_FINGERPRINT))],
        )
        self.assertEqual(kwargs["page_size"], 10)

    def test_insert_moves_skips_empty_games(self) -> None:
        conn, _ = _connection_with_cursor()
        with patch("posindex.db.postgres_game_repository.execute_values") as execute_values:
            self.assertEqual(PostgresGameRepository(conn).insert_moves(7, []), 0)
        execute_values.assert_not_called()

    def test_game_by_id_maps_dict_rows(self) -> None:
        conn, cursor = _connection_with_cursor()
        cursor.fetchone.return_value = {
            "id": 3,
            "event": "Event",
            "played_at": datetime(2024, 1, 1, 12, 0),
            "white": "alice",
            "black": "bob",
            "white_elo": None,
            "black_elo": 1600,
        }
        game = PostgresGameRepository(conn).game_by_id(3)
        self.assertEqual(game.id, 3)
        self.assertEqual(game.black_elo, 1600)
        conn.cursor.assert_called_with(cursor_factory=RealDictCursor)

    def test_game_by_id_returns_none_when_missing(self) -> None:
        conn, cursor = _connection_with_cursor()
        cursor.fetchone.return_value = None
        self.assertIsNone(PostgresGameRepository(conn).game_by_id(99))

    def test_moves_by_game_unsigns_fingerprints(self) -> None:
        conn, cursor = _connection_with_cursor()
        cursor.fetchall.return_value = [
            {"game_id": 1, "ply": 1, "san": "e4", "fingerprint": to_signed_fingerprint(HIGH_BIT_FINGERPRINT)},
        ]
        moves = PostgresGameRepository(conn).moves_by_game(1)
        self.assertEqual(moves[0].fingerprint, HIGH_BIT_FINGERPRINT)
        self.assertIn("ORDER BY ply", cursor.execute.call_args.args[0])

    def test_moves_by_fingerprint_builds_filters(self) -> None:
        conn, cursor = _connection_with_cursor()
        cursor.fetchall.return_value = [
            (2, 4, "Nf6", 9, 2, "Event", datetime(2024, 1, 1), "carol", "dave", None, None),
        ]
        rows = PostgresGameRepository(conn).moves_by_fingerprint(9, exclude_game_id=1, limit=5)
        sql, params = cursor.execute.call_args.args
        self.assertIn("m.game_id <> %s", sql)
        self.assertIn("LIMIT %s", sql)
        self.assertEqual(params, (9, 1, 5))
        self.assertEqual(rows[0].move.san, "Nf6")
        self.assertEqual(rows[0].game.white, "carol")

    def test_counts(self) -> None:
        conn, cursor = _connection_with_cursor()
        cursor.fetchone.return_value = (4,)
        repo = PostgresGameRepository(conn)
        self.assertEqual(repo.count_players(), 4)
        self.assertEqual(repo.count_moves(1), 4)
        self.assertEqual(cursor.execute.call_args.args[1], (1,))


if __name__ == "__main__":
    unittest.main()
