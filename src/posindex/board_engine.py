"""SAN replay, legality checks, and position fingerprints.

Every public function takes the position it works on explicitly and returns a
new value; nothing here keeps engine state between calls.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from typing import NamedTuple

import chess
import chess.polyglot

from posindex.errors import IllegalMoveError

FINGERPRINT_BITS = 64
_FINGERPRINT_MASK = (1 << FINGERPRINT_BITS) - 1
_SIGNED_LIMIT = 1 << (FINGERPRINT_BITS - 1)


class Position:
    """Immutable chess position.

    Two positions are equal when piece placement, side to move, castling
    rights, and the (legal) en-passant square match. Move counters are
    ignored.
    """

    __slots__ = ("_board",)

    def __init__(self, board: chess.Board | None = None) -> None:
        self._board = chess.Board() if board is None else board.copy(stack=False)

    @property
    def fen(self) -> str:
        return self._board.fen()

    def _key(self) -> str:
        return self._board.epd(en_passant="legal")

    def board(self) -> chess.Board:
        """Return a private copy of the underlying board."""
        return self._board.copy(stack=False)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Position):
            return NotImplemented
        return self._key() == other._key()

    def __hash__(self) -> int:
        return hash(self._key())

    def __repr__(self) -> str:
        return f"Position({self.fen!r})"


class MoveRecord(NamedTuple):
    """One replayed ply: notation plus the fingerprint after the move."""

    ply: int
    san: str
    fingerprint: int


def initial_position() -> Position:
    return Position()


def position_from_fen(fen: str) -> Position:
    try:
        return Position(chess.Board(fen))
    except ValueError as exc:
        raise ValueError(f"invalid FEN {fen!r}: {exc}") from exc


def _resolve_move(board: chess.Board, san: str, ply: int | None) -> chess.Move:
    token = san.strip()
    if not token:
        raise IllegalMoveError(san, ply, "empty move token")
    try:
        move = board.parse_san(token)
    except ValueError as exc:
        raise IllegalMoveError(san, ply, str(exc)) from exc
    if not move:
        raise IllegalMoveError(san, ply, "null move")
    return move


def apply_move(position: Position, san: str, ply: int | None = None) -> Position:
    """Return the position reached by playing ``san`` from ``position``.

    Raises ``IllegalMoveError`` when the notation is malformed, ambiguous,
    blocked, or leaves the mover's king in check.
    """
    board = position.board()
    board.push(_resolve_move(board, san, ply))
    return Position(board)


def _board_fingerprint(board: chess.Board) -> int:
    return chess.polyglot.zobrist_hash(board) & _FINGERPRINT_MASK


def fingerprint(position: Position) -> int:
    """Return the unsigned 64-bit Zobrist fingerprint of ``position``."""
    return _board_fingerprint(position._board)


def to_signed_fingerprint(value: int) -> int:
    """Map an unsigned fingerprint onto the signed BIGINT range."""
    value &= _FINGERPRINT_MASK
    return value - (1 << FINGERPRINT_BITS) if value >= _SIGNED_LIMIT else value


def to_unsigned_fingerprint(value: int) -> int:
    return value & _FINGERPRINT_MASK


def replay(moves: Iterable[str]) -> list[MoveRecord]:
    """Replay ``moves`` from the initial position in a single pass.

    Returns one record per ply carrying the canonical SAN and the fingerprint
    of the position after the move. Raises ``IllegalMoveError`` (with the
    1-based ply) at the first move that is not legal.
    """
    board = chess.Board()
    records: list[MoveRecord] = []
    for ply, san in enumerate(moves, start=1):
        move = _resolve_move(board, san, ply)
        notation = board.san(move)
        board.push(move)
        records.append(MoveRecord(ply, notation, _board_fingerprint(board)))
    return records


def position_after(moves: Sequence[str], ply: int) -> Position:
    """Return the position after the first ``ply`` moves of ``moves``."""
    ply = max(0, min(ply, len(moves)))
    board = chess.Board()
    for index, san in enumerate(moves[:ply], start=1):
        board.push(_resolve_move(board, san, index))
    return Position(board)


def move_squares(position: Position, san: str) -> tuple[chess.Square, chess.Square]:
    """Return the (from, to) squares of ``san`` played from ``position``."""
    move = _resolve_move(position._board, san, None)
    return move.from_square, move.to_square


__all__ = [
    "FINGERPRINT_BITS",
    "MoveRecord",
    "Position",
    "apply_move",
    "fingerprint",
    "initial_position",
    "move_squares",
    "position_after",
    "position_from_fen",
    "replay",
    "to_signed_fingerprint",
    "to_unsigned_fingerprint",
]
