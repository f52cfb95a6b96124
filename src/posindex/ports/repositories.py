"""Repository port interfaces for database access boundaries."""

from __future__ import annotations

from collections.abc import Iterable
from datetime import datetime
from typing import Protocol

from posindex.models import Game, Move, Transposition

MoveRow = tuple[int, str, int]


class PlayerRepository(Protocol):
    """Repository interface for player persistence."""

    def upsert_player(self, name: str) -> None:
        """Create the player unless one with this name already exists."""

    def count_players(self) -> int:
        """Return the number of stored players."""


class GameRepository(PlayerRepository, Protocol):
    """Repository interface for games, moves, and position lookups."""

    def insert_game(
        self,
        event: str,
        played_at: datetime,
        white: str,
        black: str,
        white_elo: int | None = None,
        black_elo: int | None = None,
    ) -> int:
        """Insert a game row and return its new id."""

    def insert_moves(self, game_id: int, moves: Iterable[MoveRow]) -> int:
        """Insert (ply, san, fingerprint) rows for a game and return the count."""

    def games_by_player(self, name: str) -> list[Game]:
        """Return games where the player had either colour."""

    def game_by_id(self, game_id: int) -> Game | None:
        """Return the game with this id, if any."""

    def moves_by_game(self, game_id: int) -> list[Move]:
        """Return a game's moves in ascending ply order."""

    def move_at_ply(self, game_id: int, ply: int) -> Move | None:
        """Return a single stored move."""

    def moves_by_fingerprint(
        self,
        fingerprint: int,
        exclude_game_id: int | None = None,
        limit: int | None = None,
    ) -> list[Transposition]:
        """Return (move, game) pairs whose position matches ``fingerprint``."""

    def count_by_fingerprint(self, fingerprint: int, exclude_game_id: int | None = None) -> int:
        """Return how many stored moves reach ``fingerprint``."""

    def count_games(self) -> int:
        """Return the number of stored games."""

    def count_moves(self, game_id: int | None = None) -> int:
        """Return the number of stored moves, optionally for one game."""
