"""Custom error types used in posindex."""


class PosIndexError(Exception):
    """Base class for posindex errors."""


class IncompleteDataError(PosIndexError, ValueError):
    """A required PGN header was missing when the game ended."""

    def __init__(self, field: str, game_index: int | None = None) -> None:
        self.field = field
        self.game_index = game_index
        super().__init__(f"{field} missing")


class IllegalMoveError(PosIndexError, ValueError):
    """A SAN token does not resolve to a legal move from the replay position."""

    def __init__(self, san: str, ply: int | None = None, reason: str | None = None) -> None:
        self.san = san
        self.ply = ply
        self.reason = reason
        message = f"illegal move {san!r}"
        if ply is not None:
            message += f" at ply {ply}"
        if reason:
            message += f": {reason}"
        super().__init__(message)


class StoreError(PosIndexError, RuntimeError):
    """Connectivity or constraint failure inside a unit of work."""


class StoreUnavailableError(StoreError):
    """No store connection could be obtained."""


class GameNotFoundError(PosIndexError, LookupError):
    """No game exists for the requested id."""

    def __init__(self, game_id: int) -> None:
        self.game_id = game_id
        super().__init__(f"game {game_id} not found")


class SourceUnavailableError(PosIndexError, OSError):
    """The PGN source could not be opened."""


__all__ = [
    "GameNotFoundError",
    "IllegalMoveError",
    "IncompleteDataError",
    "PosIndexError",
    "SourceUnavailableError",
    "StoreError",
    "StoreUnavailableError",
]
