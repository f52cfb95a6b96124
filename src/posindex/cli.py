"""Command line entry point: fill, games, view, lookup."""

from __future__ import annotations

import argparse
from collections.abc import Callable, Sequence
from dataclasses import replace
from pathlib import Path

import tqdm
from rich.console import Console

from posindex.board_engine import to_unsigned_fingerprint
from posindex.config import Settings, get_settings
from posindex.errors import (
    GameNotFoundError,
    SourceUnavailableError,
    StoreError,
    StoreUnavailableError,
)
from posindex.ingestion import ingest_file
from posindex.models import Transposition
from posindex.navigator import ReplayState, advance, jump, load_replay, retreat, to_end, to_start
from posindex.ports.repositories import GameRepository
from posindex.render import render_games, render_replay, render_transpositions
from posindex.store import GameStore, open_store
from posindex.transpositions import TranspositionPolicy, transpositions_for_fingerprint
from posindex.utils.logger import get_logger, log_to_file, set_level

logger = get_logger(__name__)

VIEW_HELP = "n/Enter next, p previous, s start, e end, <number> jump to ply, q quit"

_VIEW_COMMANDS: dict[str, Callable[[ReplayState], ReplayState]] = {
    "": advance,
    "n": advance,
    "p": retreat,
    "s": to_start,
    "e": to_end,
}


def _fingerprint_arg(value: str) -> int:
    """Accept decimal (signed or unsigned) or 0x-prefixed hex fingerprints."""
    try:
        number = int(value, 0)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"invalid fingerprint {value!r}") from exc
    return to_unsigned_fingerprint(number)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="posindex",
        description="Index chess games by position and browse transpositions",
    )
    parser.add_argument("--duckdb-path", type=Path, help="DuckDB database file")
    parser.add_argument("--postgres-dsn", help="Use Postgres at this DSN instead of DuckDB")
    parser.add_argument("--log-level", help="Logging level (default from POSINDEX_LOG_LEVEL)")
    parser.add_argument("--log-file", type=Path, help="Write logs to this file")
    commands = parser.add_subparsers(dest="command", required=True)

    fill = commands.add_parser("fill", help="Ingest a PGN file (.pgn or .pgn.zst)")
    fill.add_argument("pgn_file", type=Path)
    fill.add_argument("--max-concurrent", type=int, help="Games ingested at once")
    fill.add_argument("--no-progress", action="store_true", help="Hide the progress bar")

    games = commands.add_parser("games", help="List games of a player")
    games.add_argument("player")

    view = commands.add_parser("view", help="Step through a game and its transpositions")
    view.add_argument("game_id", type=int)
    view.add_argument("--min-ply", type=int, help="Skip lookups for plies up to this one")
    view.add_argument("--limit", type=int, help="Maximum matches per ply")

    lookup = commands.add_parser("lookup", help="List moves reaching a position fingerprint")
    lookup.add_argument("fingerprint", type=_fingerprint_arg)
    lookup.add_argument("--exclude-game", type=int, help="Game id to leave out")
    lookup.add_argument("--limit", type=int, help="Maximum matches")
    return parser


def _settings_from_args(args: argparse.Namespace) -> Settings:
    overrides: dict[str, object] = {
        "duckdb_path": args.duckdb_path,
        "log_level": args.log_level,
        "log_file": args.log_file,
    }
    if args.postgres_dsn:
        overrides["backend"] = "postgres"
        overrides["postgres_dsn"] = args.postgres_dsn
    if args.command == "fill":
        overrides["max_concurrent_games"] = args.max_concurrent
    if args.command == "view":
        overrides["transposition_min_ply"] = args.min_ply
    if args.command in ("view", "lookup"):
        overrides["transposition_limit"] = args.limit
    return get_settings(**overrides)


def _configure_logging(settings: Settings, command: str) -> None:
    log_file = settings.log_file
    if log_file is None and command == "view":
        log_file = Path("view.log")
    if log_file is not None:
        log_to_file(log_file, settings.log_level)
    else:
        set_level(settings.log_level)


def _run_fill(store: GameStore, settings: Settings, args: argparse.Namespace, console: Console) -> int:
    progress_bar = None if args.no_progress else tqdm.tqdm(unit="game", mininterval=0.5)
    try:
        report = ingest_file(
            store,
            args.pgn_file,
            settings,
            progress=progress_bar.update if progress_bar is not None else None,
        )
    finally:
        if progress_bar is not None:
            progress_bar.close()
    console.print(report.summary())
    for failure in report.failures:
        console.print(f"rejected {failure.describe()}", style="yellow", markup=False)
    return 0


def _run_games(store: GameStore, args: argparse.Namespace, console: Console) -> int:
    games = store.read(lambda repo: repo.games_by_player(args.player))
    if not games:
        console.print(f"No games found for {args.player}.")
        return 0
    console.print(render_games(games, args.player))
    return 0


def _run_lookup(store: GameStore, settings: Settings, args: argparse.Namespace, console: Console) -> int:
    policy = replace(TranspositionPolicy.from_settings(settings), min_ply=0)

    def _lookup(repo: GameRepository) -> tuple[list[Transposition], int]:
        rows = transpositions_for_fingerprint(repo, args.fingerprint, args.exclude_game, policy)
        return rows, repo.count_by_fingerprint(args.fingerprint, args.exclude_game)

    rows, total = store.read(_lookup)
    if not rows:
        console.print(f"No moves reach position {args.fingerprint:#018x}.")
        return 0
    console.print(render_transpositions(rows, title=f"Position {args.fingerprint:#018x}"))
    console.print(f"Showing {len(rows)} of {total} moves reaching this position.")
    return 0


def next_state(state: ReplayState, command: str) -> ReplayState | None:
    """Apply one viewer command; ``None`` means quit."""
    command = command.strip().lower()
    if command == "q":
        return None
    if command.isdigit():
        return jump(state, int(command))
    action = _VIEW_COMMANDS.get(command)
    return action(state) if action is not None else state


def run_viewer(
    state: ReplayState,
    console: Console,
    read_command: Callable[[], str] | None = None,
) -> ReplayState:
    """Drive the replay loop until the user quits or input ends."""
    read_command = read_command or (lambda: console.input(f"[dim]{VIEW_HELP}[/dim] > "))
    while True:
        console.clear()
        console.print(render_replay(state))
        try:
            command = read_command()
        except EOFError:
            return state
        following = next_state(state, command)
        if following is None:
            return state
        state = following


def _run_view(store: GameStore, settings: Settings, args: argparse.Namespace, console: Console) -> int:
    policy = TranspositionPolicy.from_settings(settings)
    state = store.read(lambda repo: load_replay(repo, args.game_id, policy))
    logger.info("Viewing game %s with %s plies", state.game.id, state.max_ply)
    run_viewer(state, console)
    return 0


def main(argv: Sequence[str] | None = None, console: Console | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    console = console or Console()
    try:
        settings = _settings_from_args(args)
    except ValueError as exc:
        parser.error(str(exc))
    _configure_logging(settings, args.command)

    try:
        store = open_store(settings)
    except StoreUnavailableError as exc:
        logger.error("%s", exc)
        console.print(str(exc), style="red", markup=False)
        return 1
    try:
        if args.command == "fill":
            return _run_fill(store, settings, args, console)
        if args.command == "games":
            return _run_games(store, args, console)
        if args.command == "lookup":
            return _run_lookup(store, settings, args, console)
        return _run_view(store, settings, args, console)
    except (SourceUnavailableError, StoreError, GameNotFoundError) as exc:
        logger.error("%s", exc)
        console.print(str(exc), style="red", markup=False)
        return 1
    finally:
        store.close()


__all__ = ["build_parser", "main", "next_state", "run_viewer"]
