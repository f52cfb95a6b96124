from __future__ import annotations

import tempfile
import unittest
from pathlib import Path
from unittest.mock import MagicMock

from posindex.config import Settings
from posindex.ingestion import ingest_game
from posindex.transpositions import (
    TranspositionPolicy,
    transpositions_at_ply,
    transpositions_by_ply,
    transpositions_for_fingerprint,
)

from game_fixtures import KNIGHTS_FIRST, KNIGHTS_SWAPPED, SCHOLARS_MATE, parsed_game, temp_store


class TranspositionQueryTests(unittest.TestCase):
    def setUp(self) -> None:
        self.store = temp_store(Path(tempfile.mkdtemp()))
        self.first = ingest_game(self.store, parsed_game(KNIGHTS_FIRST))
        self.second = ingest_game(
            self.store, parsed_game(KNIGHTS_SWAPPED, white="carol", black="dave")
        )
        self.unrelated = ingest_game(self.store, parsed_game(SCHOLARS_MATE))
        self.policy = TranspositionPolicy(min_ply=3)

    def tearDown(self) -> None:
        self.store.close()

    def _at(self, game_id: int, ply: int, policy: TranspositionPolicy):
        return self.store.read(lambda repo: transpositions_at_ply(repo, game_id, ply, policy))

    def test_lookup_is_symmetric(self) -> None:
        forward = self._at(self.first, 4, self.policy)
        backward = self._at(self.second, 4, self.policy)
        self.assertEqual([(m.game_id, m.ply) for m, _ in forward], [(self.second, 4)])
        self.assertEqual([(m.game_id, m.ply) for m, _ in backward], [(self.first, 4)])

    def test_originating_game_is_excluded(self) -> None:
        matches = self._at(self.first, 4, self.policy)
        self.assertNotIn(self.first, [game.id for _, game in matches])

    def test_early_plies_are_not_looked_up(self) -> None:
        self.assertEqual(self._at(self.first, 4, TranspositionPolicy()), [])
        self.assertEqual(self._at(self.first, 3, self.policy), [])

    def test_threshold_is_inclusive(self) -> None:
        self.assertEqual(len(self._at(self.first, 4, TranspositionPolicy(min_ply=3))), 1)
        self.assertEqual(self._at(self.first, 4, TranspositionPolicy(min_ply=4)), [])

    def test_unknown_ply_is_empty(self) -> None:
        self.assertEqual(self._at(self.first, 40, self.policy), [])

    def test_by_ply_has_an_entry_per_position(self) -> None:
        def _handler(repo):
            moves = repo.moves_by_game(self.first)
            return transpositions_by_ply(repo, self.first, moves, self.policy)

        per_ply = self.store.read(_handler)
        self.assertEqual(len(per_ply), len(KNIGHTS_FIRST) + 1)
        self.assertEqual(per_ply[:4], ((), (), (), ()))
        for ply in (4, 5, 6):
            self.assertEqual([game.id for _, game in per_ply[ply]], [self.second])

    def test_for_fingerprint_applies_limit(self) -> None:
        fingerprint = self.store.read(lambda repo: repo.move_at_ply(self.first, 6).fingerprint)
        rows = self.store.read(
            lambda repo: transpositions_for_fingerprint(
                repo, fingerprint, None, TranspositionPolicy(limit=1)
            )
        )
        self.assertEqual(len(rows), 1)


class TranspositionPolicyTests(unittest.TestCase):
    def test_defaults(self) -> None:
        policy = TranspositionPolicy()
        self.assertEqual((policy.min_ply, policy.limit), (6, 50))
        self.assertTrue(policy.is_excluded(6))
        self.assertFalse(policy.is_excluded(7))

    def test_from_settings(self) -> None:
        settings = Settings(transposition_min_ply=2, transposition_limit=0)
        policy = TranspositionPolicy.from_settings(settings)
        self.assertEqual(policy.min_ply, 2)
        self.assertIsNone(policy.limit)

    def test_rejects_negative_values(self) -> None:
        with self.assertRaises(ValueError):
            TranspositionPolicy(min_ply=-1)
        with self.assertRaises(ValueError):
            TranspositionPolicy(limit=-5)

    def test_passes_limit_and_exclusion_to_repository(self) -> None:
        repo = MagicMock()
        repo.moves_by_fingerprint.return_value = []
        transpositions_for_fingerprint(repo, 123, 9, TranspositionPolicy(limit=7))
        repo.moves_by_fingerprint.assert_called_once_with(123, 9, 7)


if __name__ == "__main__":
    unittest.main()
