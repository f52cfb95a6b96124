"""Stored game model."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime


@dataclass(frozen=True, slots=True)
class Game:
    """A stored game. Immutable once written."""

    id: int
    event: str
    played_at: datetime
    white: str
    black: str
    white_elo: int | None = None
    black_elo: int | None = None

    def side_of(self, player: str) -> str | None:
        if player == self.white:
            return "white"
        if player == self.black:
            return "black"
        return None

    def opponent_of(self, player: str) -> str | None:
        side = self.side_of(player)
        if side is None:
            return None
        return self.black if side == "white" else self.white

    def describe(self) -> str:
        return f"{_with_elo(self.white, self.white_elo)} vs {_with_elo(self.black, self.black_elo)}"


def _with_elo(name: str, elo: int | None) -> str:
    return f"{name} ({elo})" if elo is not None else name
