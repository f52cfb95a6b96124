"""Stored move model."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class Move:
    """One ply of a stored game.

    ``fingerprint`` identifies the position after the move; ``ply`` is
    1-based, odd for white and even for black.
    """

    game_id: int
    ply: int
    san: str
    fingerprint: int

    @property
    def move_number(self) -> int:
        return (self.ply + 1) // 2

    @property
    def is_white(self) -> bool:
        return self.ply % 2 == 1

    def label(self) -> str:
        separator = "." if self.is_white else "..."
        return f"{self.move_number}{separator} {self.san}"
