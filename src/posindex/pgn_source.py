"""Stream PGN sources into game record builders.

Tokenizing is delegated to python-chess. The visitor below only forwards
header pairs and raw SAN tokens to a ``GameRecordBuilder``; move legality is
checked later, once, by the ingestion replay.
"""

from __future__ import annotations

import io
import re
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import TextIO

import chess
import chess.pgn
import zstandard

from posindex.errors import SourceUnavailableError
from posindex.game_record import GameRecordBuilder
from posindex.utils.logger import get_logger

logger = get_logger(__name__)

ZSTD_SUFFIXES = (".zst", ".zstd")

_HEADER_LINE = re.compile(r'^\ufeff?[ \t]*(?:\[\w+[ \t]+"[^\n]*|%[^\n]*)', re.MULTILINE)
_COMMENT = re.compile(r"\{[^}]*\}?|;[^\n]*")
_VARIATION = re.compile(r"\([^()]*\)")
_MOVE_NUMBER = re.compile(r"\d+\.*")
_MOVE_NUMBER_PREFIX = re.compile(r"^\d+\.+")
_IGNORED_TOKEN = re.compile(r"\$\d+|[?!]{1,2}|\*|1-0|0-1|1/2-1/2")
_SAN_TOKEN = re.compile(
    r"(?:[NBKRQ]?[a-h]?[1-8]?[\-x]?[a-h][1-8](?:=?[nbrqkNBRQK])?"
    r"|[PNBRQK]?@[a-h][1-8]|--|Z0|0000|@@@@|O-O(?:-O)?|0-0(?:-0)?)"
    r"[+#]?[?!]{0,2}"
)


class _BuilderVisitor(chess.pgn.BaseVisitor[GameRecordBuilder]):
    """Collect one game's headers and mainline SAN tokens.

    ``parse_san`` records the token and hands the reader a null move so the
    tokenizer's own board never rejects anything. Variations are skipped.
    """

    def __init__(self) -> None:
        self._builder = GameRecordBuilder()

    def visit_header(self, tagname: str, tagvalue: str) -> None:
        self._builder = self._builder.with_header(tagname, tagvalue)

    def begin_variation(self) -> chess.pgn.SkipType:
        return chess.pgn.SKIP

    def parse_san(self, board: chess.Board, san: str) -> chess.Move:
        self._builder = self._builder.with_move(san)
        return chess.Move.null()

    def handle_error(self, error: Exception) -> None:
        logger.warning("PGN tokenizer error in %s: %s", self._builder.label(), error)

    def result(self) -> GameRecordBuilder:
        return self._builder


class _LineRecorder:
    """Pass ``readline`` through while keeping the text of the current game."""

    def __init__(self, handle: TextIO) -> None:
        self._handle = handle
        self._lines: list[str] = []

    def readline(self) -> str:
        line = self._handle.readline()
        self._lines.append(line)
        return line

    def take(self) -> str:
        text = "".join(self._lines)
        self._lines = []
        return text


def first_unreadable_token(text: str) -> tuple[int, str] | None:
    """Return ``(ply, token)`` for the first movetext token the reader drops.

    ``text`` is one game as read from the source. Headers, comments,
    variations, NAGs, move numbers and results are ignored; every other token
    must look like SAN. ``ply`` counts the SAN tokens before it, plus one.
    """
    text = _HEADER_LINE.sub(" ", text)
    text = _COMMENT.sub(" ", text)
    while True:
        stripped = _VARIATION.sub(" ", text)
        if stripped == text:
            break
        text = stripped
    text = text.replace("(", " ").replace(")", " ")
    ply = 0
    for token in text.split():
        if _IGNORED_TOKEN.fullmatch(token):
            continue
        if not _SAN_TOKEN.fullmatch(token):
            if _MOVE_NUMBER.fullmatch(token):
                continue
            token = _MOVE_NUMBER_PREFIX.sub("", token)
            if not _SAN_TOKEN.fullmatch(token):
                return ply + 1, token
        ply += 1
    return None


def read_builders(handle: TextIO) -> Iterator[GameRecordBuilder]:
    """Yield one builder per game in ``handle``, tagged with its index.

    A game holding text the tokenizer would skip comes back marked with the
    first such token, so ingestion can reject it instead of storing a shorter
    game.
    """
    recorder = _LineRecorder(handle)
    index = 0
    while True:
        builder = chess.pgn.read_game(recorder, Visitor=_BuilderVisitor)
        if builder is None:
            return
        unreadable = first_unreadable_token(recorder.take())
        if unreadable is not None:
            logger.warning("Unreadable movetext %r in %s", unreadable[1], builder.label())
            builder = builder.with_unreadable(*unreadable)
        yield builder.with_index(index)
        index += 1


def _is_zstd(path: Path) -> bool:
    return path.suffix.lower() in ZSTD_SUFFIXES


@contextmanager
def open_source(path: Path | str) -> Iterator[TextIO]:
    """Open a PGN file, decompressing ``.zst`` archives on the fly.

    Raises ``SourceUnavailableError`` when the file cannot be opened.
    """
    source = Path(path)
    try:
        raw = open(source, "rb")  # noqa: SIM115
    except OSError as exc:
        raise SourceUnavailableError(f"cannot open PGN source {source}: {exc}") from exc
    try:
        if _is_zstd(source):
            stream = zstandard.ZstdDecompressor().stream_reader(raw)
            text = io.TextIOWrapper(stream, encoding="utf-8", errors="replace")
        else:
            text = io.TextIOWrapper(raw, encoding="utf-8-sig", errors="replace")
        logger.debug("Opened PGN source %s", source)
        yield text
    finally:
        raw.close()


__all__ = ["first_unreadable_token", "open_source", "read_builders"]
