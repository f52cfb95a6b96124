"""Map raw database rows onto domain models."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from datetime import datetime
from typing import Any

from posindex.board_engine import to_unsigned_fingerprint
from posindex.models import Game, Move, Transposition

GAME_COLUMNS = ("id", "event", "played_at", "white", "black", "white_elo", "black_elo")
MOVE_COLUMNS = ("game_id", "ply", "san", "fingerprint")


def _coerce_datetime(value: object) -> datetime:
    if isinstance(value, datetime):
        return value
    return datetime.fromisoformat(str(value))


def _optional_int(value: object) -> int | None:
    return None if value is None else int(value)


def game_from_row(row: Mapping[str, object]) -> Game:
    return Game(
        id=int(row["id"]),
        event=str(row["event"]),
        played_at=_coerce_datetime(row["played_at"]),
        white=str(row["white"]),
        black=str(row["black"]),
        white_elo=_optional_int(row.get("white_elo")),
        black_elo=_optional_int(row.get("black_elo")),
    )


def move_from_row(row: Mapping[str, object]) -> Move:
    return Move(
        game_id=int(row["game_id"]),
        ply=int(row["ply"]),
        san=str(row["san"]),
        fingerprint=to_unsigned_fingerprint(int(row["fingerprint"])),
    )


def transposition_from_values(values: Sequence[object]) -> Transposition:
    """Build a pair from a joined row laid out as MOVE_COLUMNS + GAME_COLUMNS."""
    move_part = dict(zip(MOVE_COLUMNS, values[: len(MOVE_COLUMNS)], strict=True))
    game_part = dict(zip(GAME_COLUMNS, values[len(MOVE_COLUMNS) :], strict=True))
    return Transposition(move_from_row(move_part), game_from_row(game_part))


def select_list(alias: str, columns: Sequence[str]) -> str:
    return ", ".join(f"{alias}.{column}" for column in columns)


def rows_to_dicts(result: Any) -> list[dict[str, object]]:
    """Return a DB-API result's remaining rows keyed by column name."""
    if result.description is None:
        return []
    columns = [column[0] for column in result.description]
    return [dict(zip(columns, values, strict=True)) for values in result.fetchall()]
