"""Rich renderables for the replay viewer and query commands."""

from __future__ import annotations

from collections.abc import Iterable, Sequence

import chess
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from posindex.models import Game, Move, Transposition
from posindex.navigator import (
    ReplayPhase,
    ReplayState,
    current_board,
    current_transpositions,
    last_move_squares,
    phase,
)

_PIECE_SYMBOLS = {
    "K": "♔", "Q": "♕", "R": "♖", "B": "♗",
    "N": "♘", "P": "♙",
    "k": "♚", "q": "♛", "r": "♜", "b": "♝",
    "n": "♞", "p": "♟",
}

_LIGHT_SQ = "grey85"
_DARK_SQ = "grey50"
_HIGHLIGHT = "yellow"

_PHASE_LABELS = {
    ReplayPhase.AT_START: "start",
    ReplayPhase.MID_GAME: "",
    ReplayPhase.AT_END: "end",
}


def render_board(board: chess.Board, highlight: Iterable[chess.Square] = ()) -> Table:
    """Draw ``board`` from white's side, shading ``highlight`` squares."""
    highlight_squares = set(highlight)
    table = Table(show_header=False, show_edge=False, pad_edge=False, box=None, padding=(0, 0))
    table.add_column(width=2, justify="right")
    for _ in range(8):
        table.add_column(width=3, justify="center")

    for rank in range(7, -1, -1):
        row: list[Text] = [Text(f"{rank + 1} ", style="bold")]
        for file in range(8):
            square = chess.square(file, rank)
            piece = board.piece_at(square)
            is_light = (rank + file) % 2 == 1
            bg = _LIGHT_SQ if is_light else _DARK_SQ
            if square in highlight_squares:
                bg = _HIGHLIGHT
            symbol = _PIECE_SYMBOLS.get(piece.symbol(), "?") if piece is not None else " "
            row.append(Text(f" {symbol} ", style=f"black on {bg}"))
        table.add_row(*row)

    files = [Text("  ")] + [Text(f" {name} ", style="bold") for name in chess.FILE_NAMES]
    table.add_row(*files)
    return table


def render_move_list(moves: Sequence[Move], current_ply: int) -> Text:
    """Render moves in numbered pairs with the current ply emphasised."""
    text = Text()
    for move in moves:
        if move.is_white:
            if move.ply > 1:
                text.append("\n")
            text.append(f"{move.move_number}. ", style="dim")
        style = "bold reverse" if move.ply == current_ply else ""
        text.append(move.san, style=style)
        text.append(" ")
    return text


def render_transpositions(rows: Sequence[Transposition], title: str = "Transpositions") -> Table:
    table = Table(title=title, expand=True)
    table.add_column("Game", justify="right")
    table.add_column("Move")
    table.add_column("White")
    table.add_column("Black")
    table.add_column("Event")
    table.add_column("Date")
    for move, game in rows:
        table.add_row(
            str(game.id),
            move.label(),
            game.white,
            game.black,
            game.event,
            f"{game.played_at:%Y-%m-%d}",
        )
    return table


def render_games(games: Sequence[Game], player: str) -> Table:
    table = Table(title=f"Games of {player}")
    table.add_column("Id", justify="right")
    table.add_column("Date")
    table.add_column("Colour")
    table.add_column("Opponent")
    table.add_column("Event")
    for game in games:
        table.add_row(
            str(game.id),
            f"{game.played_at:%Y-%m-%d %H:%M}",
            game.side_of(player) or "",
            game.opponent_of(player) or "",
            game.event,
        )
    return table


def render_replay(state: ReplayState) -> Table:
    """Lay out the board, the move list, and the current transpositions."""
    highlight = last_move_squares(state) or ()
    board_panel = Panel(
        render_board(current_board(state), highlight),
        title=state.game.describe(),
        border_style="blue",
    )
    label = _PHASE_LABELS[phase(state)]
    status = f"ply {state.ply}/{state.max_ply}" + (f" ({label})" if label else "")
    moves_panel = Panel(render_move_list(state.moves, state.ply), title=status)

    grid = Table.grid(padding=(0, 1))
    grid.add_column()
    grid.add_column(ratio=1)
    grid.add_row(board_panel, moves_panel)

    layout = Table.grid()
    layout.add_column()
    layout.add_row(grid)
    matches = current_transpositions(state)
    if matches:
        layout.add_row(render_transpositions(matches, title=f"Transpositions at ply {state.ply}"))
    else:
        layout.add_row(Text("No transpositions at this ply.", style="dim"))
    return layout


__all__ = [
    "render_board",
    "render_games",
    "render_move_list",
    "render_replay",
    "render_transpositions",
]
