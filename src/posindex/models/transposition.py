"""Move/game pair sharing a position with the game being examined."""

from __future__ import annotations

from typing import NamedTuple

from posindex.models.game import Game
from posindex.models.move import Move


class Transposition(NamedTuple):
    move: Move
    game: Game
