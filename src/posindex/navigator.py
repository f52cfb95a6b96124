"""Ply-by-ply navigation over a stored game.

``ReplayState`` is immutable; every transition returns a new state and
clamps at either end of the game instead of raising.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from enum import Enum

import chess

from posindex.board_engine import move_squares, position_after
from posindex.errors import GameNotFoundError
from posindex.models import Game, Move, Transposition
from posindex.ports.repositories import GameRepository
from posindex.transpositions import PerPlyTranspositions, TranspositionPolicy, transpositions_by_ply


class ReplayPhase(Enum):
    AT_START = "at_start"
    MID_GAME = "mid_game"
    AT_END = "at_end"


@dataclass(frozen=True, slots=True)
class ReplayState:
    """A game, its moves, per-ply transpositions, and the current ply."""

    game: Game
    moves: tuple[Move, ...]
    transpositions: PerPlyTranspositions
    ply: int = 0

    @property
    def max_ply(self) -> int:
        return len(self.moves)

    @property
    def sans(self) -> tuple[str, ...]:
        return tuple(move.san for move in self.moves)


def load_replay(
    repo: GameRepository,
    game_id: int,
    policy: TranspositionPolicy | None = None,
) -> ReplayState:
    """Fetch a game with its moves and precomputed transpositions.

    Raises ``GameNotFoundError`` when ``game_id`` is not stored.
    """
    game = repo.game_by_id(game_id)
    if game is None:
        raise GameNotFoundError(game_id)
    moves = tuple(repo.moves_by_game(game_id))
    return ReplayState(
        game=game,
        moves=moves,
        transpositions=transpositions_by_ply(repo, game_id, moves, policy),
    )


def jump(state: ReplayState, ply: int) -> ReplayState:
    """Move to ``ply``, clamped to ``[0, max_ply]``."""
    target = max(0, min(ply, state.max_ply))
    if target == state.ply:
        return state
    return replace(state, ply=target)


def advance(state: ReplayState) -> ReplayState:
    return jump(state, state.ply + 1)


def retreat(state: ReplayState) -> ReplayState:
    return jump(state, state.ply - 1)


def to_start(state: ReplayState) -> ReplayState:
    return jump(state, 0)


def to_end(state: ReplayState) -> ReplayState:
    return jump(state, state.max_ply)


def phase(state: ReplayState) -> ReplayPhase:
    # A game without moves sits at ply 0, which counts as the start.
    if state.ply == 0:
        return ReplayPhase.AT_START
    if state.ply >= state.max_ply:
        return ReplayPhase.AT_END
    return ReplayPhase.MID_GAME


def current_board(state: ReplayState) -> chess.Board:
    """Replay the first ``ply`` moves from the initial position."""
    return position_after(state.sans, state.ply).board()


def current_transpositions(state: ReplayState) -> tuple[Transposition, ...]:
    return state.transpositions[state.ply]


def last_move(state: ReplayState) -> Move | None:
    if state.ply == 0:
        return None
    return state.moves[state.ply - 1]


def last_move_squares(state: ReplayState) -> tuple[chess.Square, chess.Square] | None:
    """Return the (from, to) squares of the move that led to the current ply."""
    if state.ply == 0:
        return None
    before = position_after(state.sans, state.ply - 1)
    return move_squares(before, state.moves[state.ply - 1].san)


__all__ = [
    "ReplayPhase",
    "ReplayState",
    "advance",
    "current_board",
    "current_transpositions",
    "jump",
    "last_move",
    "last_move_squares",
    "load_replay",
    "phase",
    "retreat",
    "to_end",
    "to_start",
]
