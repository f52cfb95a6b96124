"""Replay parsed games and persist them with their position fingerprints.

Each game is handled by its own unit of work: both players are upserted, the
game row is inserted, and every move row is bulk inserted in one
transaction. A game whose movetext contains an illegal move never reaches
the store.
"""

from __future__ import annotations

import time
from collections.abc import Callable, Iterable, Iterator
from concurrent.futures import FIRST_COMPLETED, Future, ThreadPoolExecutor, wait
from dataclasses import dataclass, field
from pathlib import Path

from posindex.board_engine import MoveRecord, replay
from posindex.config import Settings
from posindex.errors import (
    IllegalMoveError,
    IncompleteDataError,
    StoreError,
    StoreUnavailableError,
)
from posindex.game_record import GameRecordBuilder, ParsedGame
from posindex.pgn_source import open_source, read_builders
from posindex.ports.repositories import GameRepository
from posindex.store import GameStore
from posindex.utils.logger import get_logger

logger = get_logger(__name__)

RECOVERABLE_ERRORS = (IncompleteDataError, IllegalMoveError, StoreError)

ProgressCallback = Callable[[int], None]


@dataclass(frozen=True, slots=True)
class IngestionFailure:
    """A game that could not be stored, with the reason."""

    game_index: int | None
    label: str
    error: Exception

    def describe(self) -> str:
        position = "?" if self.game_index is None else str(self.game_index)
        return f"game #{position} ({self.label}): {self.error}"


@dataclass(frozen=True, slots=True)
class BuildFailure:
    """A source item that failed before it became a ``ParsedGame``."""

    game_index: int | None
    label: str
    error: Exception


IngestItem = ParsedGame | BuildFailure


@dataclass
class IngestionReport:
    committed: int = 0
    failures: list[IngestionFailure] = field(default_factory=list)
    elapsed_s: float = 0.0
    game_ids: list[int] = field(default_factory=list)

    @property
    def failed(self) -> int:
        return len(self.failures)

    def summary(self) -> str:
        text = f"{self.committed} games inserted in {self.elapsed_s:.2f} seconds."
        if self.failures:
            text += f" {self.failed} games rejected."
        return text


def replay_parsed_game(parsed: ParsedGame) -> list[MoveRecord]:
    """Validate the movetext and compute a fingerprint per ply.

    A game marked with unreadable movetext is rejected at that token's ply,
    once the moves before it have replayed cleanly.
    """
    if parsed.unreadable is None:
        return replay(parsed.moves)
    ply, token = parsed.unreadable
    replay(parsed.moves[: ply - 1])
    raise IllegalMoveError(token, ply, "unreadable movetext")


def _persist(parsed: ParsedGame, records: list[MoveRecord]) -> Callable[[GameRepository], int]:
    def _handler(repo: GameRepository) -> int:
        repo.upsert_player(parsed.white)
        repo.upsert_player(parsed.black)
        game_id = repo.insert_game(
            parsed.event,
            parsed.played_at,
            parsed.white,
            parsed.black,
            parsed.white_elo,
            parsed.black_elo,
        )
        repo.insert_moves(game_id, [(r.ply, r.san, r.fingerprint) for r in records])
        return game_id

    return _handler


def persist_parsed_game(store: GameStore, parsed: ParsedGame, records: list[MoveRecord]) -> int:
    """Write one replayed game atomically and return its id."""
    return store.write(_persist(parsed, records))


def ingest_game(store: GameStore, parsed: ParsedGame) -> int:
    """Replay then persist ``parsed``; the store is untouched when replay fails."""
    records = replay_parsed_game(parsed)
    return persist_parsed_game(store, parsed, records)


def build_items(builders: Iterable[GameRecordBuilder]) -> Iterator[IngestItem]:
    """Build each game, turning missing headers into ``BuildFailure`` items."""
    for builder in builders:
        try:
            yield builder.build()
        except IncompleteDataError as exc:
            yield BuildFailure(builder.game_index, builder.label(), exc)


def _record_failure(report: IngestionReport, failure: IngestionFailure) -> None:
    logger.warning("Rejected %s", failure.describe())
    report.failures.append(failure)


def _drain(
    done: Iterable[Future[int]],
    pending: dict[Future[int], ParsedGame],
    report: IngestionReport,
    progress: ProgressCallback | None,
) -> None:
    for future in done:
        parsed = pending.pop(future)
        try:
            game_id = future.result()
        except StoreUnavailableError:
            raise
        except RECOVERABLE_ERRORS as exc:
            _record_failure(report, IngestionFailure(parsed.game_index, parsed.label(), exc))
        else:
            report.committed += 1
            report.game_ids.append(game_id)
        if progress is not None:
            progress(1)


def ingest_games(
    store: GameStore,
    items: Iterable[IngestItem],
    max_in_flight: int = 50,
    progress: ProgressCallback | None = None,
) -> IngestionReport:
    """Ingest games concurrently with at most ``max_in_flight`` units running.

    Per-game failures, including a unit that cannot get a connection, are
    collected in the report without affecting other games.
    ``StoreUnavailableError`` aborts the batch: games already submitted
    finish, nothing new is started, and the error propagates.
    """
    if max_in_flight < 1:
        raise ValueError("max_in_flight must be at least 1")
    report = IngestionReport()
    started = time.perf_counter()
    pending: dict[Future[int], ParsedGame] = {}
    with ThreadPoolExecutor(max_workers=max_in_flight, thread_name_prefix="ingest") as pool:
        for item in items:
            if isinstance(item, BuildFailure):
                _record_failure(report, IngestionFailure(item.game_index, item.label, item.error))
                if progress is not None:
                    progress(1)
                continue
            if len(pending) >= max_in_flight:
                done, _ = wait(pending, return_when=FIRST_COMPLETED)
                _drain(done, pending, report, progress)
            pending[pool.submit(ingest_game, store, item)] = item
        while pending:
            done, _ = wait(pending, return_when=FIRST_COMPLETED)
            _drain(done, pending, report, progress)
    report.game_ids.sort()
    report.elapsed_s = time.perf_counter() - started
    return report


def ingest_file(
    store: GameStore,
    path: Path | str,
    settings: Settings,
    progress: ProgressCallback | None = None,
) -> IngestionReport:
    """Ingest every game in a PGN file (plain or ``.zst``).

    Raises ``SourceUnavailableError`` when the file cannot be opened.
    """
    with open_source(path) as handle:
        report = ingest_games(
            store,
            build_items(read_builders(handle)),
            max_in_flight=settings.max_concurrent_games,
            progress=progress,
        )
    logger.info(report.summary())
    return report


__all__ = [
    "BuildFailure",
    "IngestionFailure",
    "IngestionReport",
    "build_items",
    "ingest_file",
    "ingest_game",
    "ingest_games",
    "persist_parsed_game",
    "replay_parsed_game",
]
