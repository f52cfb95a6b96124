"""Domain models for stored games and moves."""

from posindex.models.game import Game
from posindex.models.move import Move
from posindex.models.transposition import Transposition

__all__ = ["Game", "Move", "Transposition"]
