"""Chess position index: ingest PGN archives and browse transpositions."""

from posindex.board_engine import fingerprint, initial_position, replay
from posindex.ingestion import IngestionReport, ingest_file, ingest_game, ingest_games
from posindex.navigator import ReplayState, load_replay
from posindex.store import GameStore, open_store
from posindex.transpositions import TranspositionPolicy

__version__ = "0.1.0"

__all__ = [
    "GameStore",
    "IngestionReport",
    "ReplayState",
    "TranspositionPolicy",
    "fingerprint",
    "ingest_file",
    "ingest_game",
    "ingest_games",
    "initial_position",
    "load_replay",
    "open_store",
    "replay",
]
