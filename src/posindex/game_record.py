"""Assemble parsed games from PGN header pairs and move tokens."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, replace
from datetime import date, datetime, time

from posindex.errors import IncompleteDataError

DATE_FORMAT = "%Y.%m.%d"
TIME_FORMAT = "%H:%M:%S"
REQUIRED_HEADERS = ("Event", "UTCDate", "UTCTime", "White", "Black")


@dataclass(frozen=True, slots=True)
class ParsedGame:
    """A fully parsed game whose moves have not been validated yet."""

    event: str
    played_at: datetime
    white: str
    black: str
    moves: tuple[str, ...]
    white_elo: int | None = None
    black_elo: int | None = None
    game_index: int | None = None
    unreadable: tuple[int, str] | None = None

    def label(self) -> str:
        return f"{self.white} vs {self.black} ({self.event}, {self.played_at:%Y-%m-%d %H:%M})"


def _parse_date(value: str) -> date | None:
    try:
        return datetime.strptime(value.strip(), DATE_FORMAT).date()
    except ValueError:
        return None


def _parse_time(value: str) -> time | None:
    try:
        return datetime.strptime(value.strip(), TIME_FORMAT).time()
    except ValueError:
        return None


def _parse_rating(value: str) -> int | None:
    value = value.strip()
    return int(value) if value.isdigit() else None


def _non_empty(value: str) -> str | None:
    value = value.strip()
    return value or None


@dataclass(frozen=True, slots=True)
class GameRecordBuilder:
    """Accumulate one game's headers and moves.

    Each ``with_*`` call returns a new builder, so a game is the fold of its
    tokens over ``GameRecordBuilder()``.
    """

    event: str | None = None
    utc_date: date | None = None
    utc_time: time | None = None
    white: str | None = None
    black: str | None = None
    white_elo: int | None = None
    black_elo: int | None = None
    moves: tuple[str, ...] = ()
    game_index: int | None = None
    unreadable: tuple[int, str] | None = None

    def with_header(self, key: str, value: str) -> GameRecordBuilder:
        if key == "Event":
            return replace(self, event=_non_empty(value))
        if key == "UTCDate":
            return replace(self, utc_date=_parse_date(value))
        if key == "UTCTime":
            return replace(self, utc_time=_parse_time(value))
        if key == "White":
            return replace(self, white=_non_empty(value))
        if key == "Black":
            return replace(self, black=_non_empty(value))
        if key == "WhiteElo":
            return replace(self, white_elo=_parse_rating(value))
        if key == "BlackElo":
            return replace(self, black_elo=_parse_rating(value))
        return self

    def with_move(self, token: str) -> GameRecordBuilder:
        return replace(self, moves=(*self.moves, token))

    def with_index(self, game_index: int) -> GameRecordBuilder:
        return replace(self, game_index=game_index)

    def with_unreadable(self, ply: int, token: str) -> GameRecordBuilder:
        """Mark movetext the reader skipped; ``ply`` is where the token stood."""
        return replace(self, unreadable=(ply, token))

    def missing_fields(self) -> list[str]:
        values = (self.event, self.utc_date, self.utc_time, self.white, self.black)
        return [name for name, value in zip(REQUIRED_HEADERS, values, strict=True) if value is None]

    def build(self) -> ParsedGame:
        """Return the finished game or raise ``IncompleteDataError``."""
        missing = self.missing_fields()
        if missing:
            raise IncompleteDataError(missing[0], self.game_index)
        return ParsedGame(
            event=self.event,
            played_at=datetime.combine(self.utc_date, self.utc_time),
            white=self.white,
            black=self.black,
            moves=self.moves,
            white_elo=self.white_elo,
            black_elo=self.black_elo,
            game_index=self.game_index,
            unreadable=self.unreadable,
        )

    def label(self) -> str:
        white = self.white or "?"
        black = self.black or "?"
        return f"{white} vs {black} ({self.event or 'unknown event'})"


def fold_game(
    headers: Iterable[tuple[str, str]],
    moves: Iterable[str],
    game_index: int | None = None,
) -> ParsedGame:
    """Fold header pairs and move tokens into a ``ParsedGame``."""
    builder = GameRecordBuilder(game_index=game_index)
    for key, value in headers:
        builder = builder.with_header(key, value)
    for token in moves:
        builder = builder.with_move(token)
    return builder.build()


__all__ = [
    "GameRecordBuilder",
    "ParsedGame",
    "REQUIRED_HEADERS",
    "fold_game",
]
