from __future__ import annotations

import io
import os
import tempfile
import unittest
from pathlib import Path
from unittest.mock import MagicMock, patch

from psycopg2.pool import PoolError
from rich.console import Console

from posindex.board_engine import replay
from posindex.cli import build_parser, main, next_state, run_viewer
from posindex.navigator import jump
from posindex.store import GameStore

from game_fixtures import TWO_GAME_PGN, replay_state


def _console() -> Console:
    return Console(file=io.StringIO(), width=120, color_system=None)


class CliTests(unittest.TestCase):
    def setUp(self) -> None:
        self.tmp_dir = Path(tempfile.mkdtemp())
        self.db_path = self.tmp_dir / "cli.duckdb"
        self.pgn_path = self.tmp_dir / "games.pgn"
        self.pgn_path.write_text(TWO_GAME_PGN, encoding="utf-8")
        env = patch.dict(os.environ, {}, clear=True)
        env.start()
        self.addCleanup(env.stop)
        dotenv = patch("posindex.config.load_dotenv")
        dotenv.start()
        self.addCleanup(dotenv.stop)

    def _run(self, *argv: str) -> tuple[int, str]:
        console = _console()
        code = main(["--duckdb-path", str(self.db_path), *argv], console=console)
        return code, console.file.getvalue()

    def test_fill_then_list_games(self) -> None:
        code, output = self._run("fill", str(self.pgn_path), "--no-progress")
        self.assertEqual(code, 0)
        self.assertIn("2 games inserted in", output)

        code, output = self._run("games", "alice")
        self.assertEqual(code, 0)
        self.assertIn("bob", output)
        self.assertIn("carol", output)

    def test_fill_missing_source_exits_with_error(self) -> None:
        code, output = self._run("fill", str(self.tmp_dir / "absent.pgn"), "--no-progress")
        self.assertEqual(code, 1)
        self.assertIn("absent.pgn", output)

    def test_games_for_unknown_player(self) -> None:
        code, output = self._run("games", "nobody")
        self.assertEqual(code, 0)
        self.assertIn("No games found for nobody.", output)

    def test_lookup_by_fingerprint(self) -> None:
        self._run("fill", str(self.pgn_path), "--no-progress")
        fingerprint = replay(["e4", "e5"])[-1].fingerprint
        code, output = self._run("lookup", hex(fingerprint))
        self.assertEqual(code, 0)
        self.assertIn("alice", output)
        self.assertIn("carol", output)
        self.assertIn("Showing 2 of 2 moves reaching this position.", output)

    def test_lookup_limit_caps_rows_but_not_the_count(self) -> None:
        self._run("fill", str(self.pgn_path), "--no-progress")
        fingerprint = replay(["e4", "e5"])[-1].fingerprint
        code, output = self._run("lookup", hex(fingerprint), "--limit", "1")
        self.assertEqual(code, 0)
        self.assertIn("Showing 1 of 2 moves reaching this position.", output)

    def test_lookup_limit_zero_means_no_cap(self) -> None:
        os.environ["POSINDEX_TRANSPOSITION_LIMIT"] = "1"
        self._run("fill", str(self.pgn_path), "--no-progress")
        fingerprint = replay(["e4", "e5"])[-1].fingerprint
        _, capped = self._run("lookup", hex(fingerprint))
        self.assertIn("Showing 1 of 2", capped)
        code, output = self._run("lookup", hex(fingerprint), "--limit", "0")
        self.assertEqual(code, 0)
        self.assertIn("Showing 2 of 2", output)

    def test_query_that_cannot_start_exits_with_error(self) -> None:
        starved = MagicMock()
        starved.begin.side_effect = PoolError("connection pool exhausted")
        store = GameStore("postgres", lambda write: starved, MagicMock())
        with patch("posindex.cli.open_store", return_value=store):
            code, output = self._run("games", "alice")
        self.assertEqual(code, 1)
        self.assertIn("connection pool exhausted", output)

    def test_view_unknown_game_exits_with_error(self) -> None:
        with patch("posindex.cli.log_to_file"):
            code, output = self._run("view", "404")
        self.assertEqual(code, 1)
        self.assertIn("game 404 not found", output)

    def test_view_loads_policy_from_flags(self) -> None:
        self._run("fill", str(self.pgn_path), "--no-progress")
        with patch("posindex.cli.log_to_file") as log_to_file, patch(
            "posindex.cli.run_viewer"
        ) as viewer:
            code, _ = self._run("view", "1", "--min-ply", "1", "--limit", "3")
        self.assertEqual(code, 0)
        log_to_file.assert_called_once()
        state = viewer.call_args.args[0]
        self.assertEqual(state.game.id, 1)
        self.assertEqual(len(state.transpositions), state.max_ply + 1)

    def test_parser_accepts_signed_fingerprints(self) -> None:
        args = build_parser().parse_args(["lookup", "-1"])
        self.assertEqual(args.fingerprint, 2**64 - 1)


class ViewerLoopTests(unittest.TestCase):
    def test_next_state_commands(self) -> None:
        state = replay_state(("e4", "e5", "Nf3"))
        self.assertEqual(next_state(state, "n").ply, 1)
        self.assertEqual(next_state(state, "").ply, 1)
        self.assertEqual(next_state(jump(state, 2), "p").ply, 1)
        self.assertEqual(next_state(state, "e").ply, 3)
        self.assertEqual(next_state(jump(state, 2), "s").ply, 0)
        self.assertEqual(next_state(state, "2").ply, 2)
        self.assertIs(next_state(state, "?"), state)
        self.assertIsNone(next_state(state, "q"))

    def test_run_viewer_stops_on_quit(self) -> None:
        commands = iter(["n", "n", "p", "q"])
        final = run_viewer(replay_state(("e4", "e5")), _console(), lambda: next(commands))
        self.assertEqual(final.ply, 1)

    def test_run_viewer_stops_at_end_of_input(self) -> None:
        def _read() -> str:
            raise EOFError

        final = run_viewer(replay_state(("e4",)), _console(), _read)
        self.assertEqual(final.ply, 0)


if __name__ == "__main__":
    unittest.main()
