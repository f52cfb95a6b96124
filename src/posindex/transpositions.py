"""Look up other games that reached the same position."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass

from posindex.config import DEFAULT_TRANSPOSITION_LIMIT, DEFAULT_TRANSPOSITION_MIN_PLY, Settings
from posindex.models import Move, Transposition
from posindex.ports.repositories import GameRepository
from posindex.utils.logger import get_logger

logger = get_logger(__name__)

PerPlyTranspositions = tuple[tuple[Transposition, ...], ...]


@dataclass(frozen=True, slots=True)
class TranspositionPolicy:
    """Which plies are looked up and how many matches each may return.

    Plies at or below ``min_ply`` are opening positions shared by too many
    games and are never looked up. ``limit`` of ``None`` disables the cap.
    """

    min_ply: int = DEFAULT_TRANSPOSITION_MIN_PLY
    limit: int | None = DEFAULT_TRANSPOSITION_LIMIT

    def __post_init__(self) -> None:
        if self.min_ply < 0:
            raise ValueError("min_ply cannot be negative")
        if self.limit is not None and self.limit < 0:
            raise ValueError("limit cannot be negative")

    @classmethod
    def from_settings(cls, settings: Settings) -> TranspositionPolicy:
        return cls(
            min_ply=settings.transposition_min_ply,
            limit=settings.transposition_limit or None,
        )

    def is_excluded(self, ply: int) -> bool:
        return ply <= self.min_ply


def transpositions_for_fingerprint(
    repo: GameRepository,
    fingerprint: int,
    exclude_game_id: int | None = None,
    policy: TranspositionPolicy | None = None,
) -> list[Transposition]:
    """Return (move, game) pairs reaching ``fingerprint`` from other games."""
    policy = policy or TranspositionPolicy()
    return repo.moves_by_fingerprint(fingerprint, exclude_game_id, policy.limit)


def transpositions_at_ply(
    repo: GameRepository,
    game_id: int,
    ply: int,
    policy: TranspositionPolicy | None = None,
) -> list[Transposition]:
    """Return transpositions of ``game_id``'s position after ``ply``.

    Uses the stored fingerprint for that ply. Excluded or unknown plies give
    an empty list.
    """
    policy = policy or TranspositionPolicy()
    if policy.is_excluded(ply):
        return []
    move = repo.move_at_ply(game_id, ply)
    if move is None:
        return []
    return transpositions_for_fingerprint(repo, move.fingerprint, game_id, policy)


def transpositions_by_ply(
    repo: GameRepository,
    game_id: int,
    moves: Sequence[Move],
    policy: TranspositionPolicy | None = None,
) -> PerPlyTranspositions:
    """Precompute results for every ply of a game.

    The result has one entry per position, ``len(moves) + 1`` in total;
    entry 0 is the initial position and is always empty.
    """
    policy = policy or TranspositionPolicy()
    results: list[tuple[Transposition, ...]] = [()]
    for move in moves:
        if policy.is_excluded(move.ply):
            results.append(())
            continue
        matches = transpositions_for_fingerprint(repo, move.fingerprint, game_id, policy)
        results.append(tuple(matches))
    found = sum(1 for entry in results if entry)
    logger.debug("Game %s: %s of %s plies have transpositions", game_id, found, len(moves))
    return tuple(results)


__all__ = [
    "PerPlyTranspositions",
    "TranspositionPolicy",
    "transpositions_at_ply",
    "transpositions_by_ply",
    "transpositions_for_fingerprint",
]
