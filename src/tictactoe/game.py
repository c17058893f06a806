"""Core rules for tic-tac-toe: boards, win detection and state transitions."""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Callable, List, Optional, Tuple

Player = str  # "X" or "O"
Board = Tuple[str, ...]  # 9 cells, row-major

EMPTY = " "

MODE_COMPUTER = "computer"
MODE_MULTIPLAYER = "multiplayer"
GAME_MODES: Tuple[str, ...] = (MODE_COMPUTER, MODE_MULTIPLAYER)

COMPUTER_PLAYER: Player = "O"

# Rows, then columns, then the two diagonals. Order decides ties.
WINNING_LINES: Tuple[Tuple[int, int, int], ...] = (
    (0, 1, 2),
    (3, 4, 5),
    (6, 7, 8),
    (0, 3, 6),
    (1, 4, 7),
    (2, 5, 8),
    (0, 4, 8),
    (2, 4, 6),
)

EMPTY_BOARD: Board = (EMPTY,) * 9


# ---------- Board helpers ----------


@dataclass(frozen=True)
class WinOutcome:
    winner: Player
    line: Tuple[int, int, int]


def detect_winner(board: Board) -> Optional[WinOutcome]:
    """Return the first completed line, or ``None``.

    A full board without a completed line also yields ``None``; callers
    tell a draw apart with :func:`is_full`.
    """
    for a, b, c in WINNING_LINES:
        v = board[a]
        if v != EMPTY and v == board[b] == board[c]:
            return WinOutcome(winner=v, line=(a, b, c))
    return None


def is_full(board: Board) -> bool:
    return all(c != EMPTY for c in board)


def empty_cells(board: Board) -> List[int]:
    return [i for i, c in enumerate(board) if c == EMPTY]


def place(board: Board, index: int, player: Player) -> Board:
    cells = list(board)
    cells[index] = player
    return tuple(cells)


# ---------- Game state ----------


@dataclass(frozen=True)
class GameState:
    """Immutable snapshot of a session: history, move pointer and mode.

    ``version`` increases on every transition that touches the history or
    the move pointer, so scheduled work can tell whether it is stale.
    """

    history: Tuple[Board, ...] = (EMPTY_BOARD,)
    move: int = 0
    mode: Optional[str] = None
    version: int = 0

    @property
    def board(self) -> Board:
        return self.history[self.move]

    @property
    def current_player(self) -> Player:
        return "X" if self.move % 2 == 0 else "O"

    @property
    def outcome(self) -> Optional[WinOutcome]:
        return detect_winner(self.board)

    @property
    def drawn(self) -> bool:
        return self.outcome is None and is_full(self.board)

    @property
    def finished(self) -> bool:
        return self.outcome is not None or is_full(self.board)

    @property
    def computer_turn(self) -> bool:
        return self.mode == MODE_COMPUTER and self.current_player == COMPUTER_PLAYER


def _apply(state: GameState, index: int) -> GameState:
    # Playing from an earlier pointer drops the recorded future.
    board = place(state.board, index, state.current_player)
    history = state.history[: state.move + 1] + (board,)
    return replace(
        state, history=history, move=len(history) - 1, version=state.version + 1
    )


def select_mode(state: GameState, mode: str) -> GameState:
    """Set the game mode. Only the first choice of a session counts."""
    if state.mode is not None or mode not in GAME_MODES:
        return state
    return replace(state, mode=mode)


def play_move(state: GameState, index: int) -> GameState:
    """Apply a human move; any illegal move returns ``state`` unchanged."""
    if state.mode is None:
        return state
    if not 0 <= index < 9:
        return state
    if state.board[index] != EMPTY or state.outcome is not None:
        return state
    if state.computer_turn:
        return state
    return _apply(state, index)


def computer_move(
    state: GameState, choose: Callable[[Board], Optional[int]]
) -> GameState:
    """Let the computer pick a cell for O via ``choose``."""
    if not needs_computer_move(state):
        return state
    index = choose(state.board)
    if index is None or state.board[index] != EMPTY:
        return state
    return _apply(state, index)


def reset(state: GameState) -> GameState:
    return GameState(mode=state.mode, version=state.version + 1)


def jump_to(state: GameState, move: int) -> GameState:
    """Point at an earlier (or later) recorded board without dropping history."""
    if state.mode is None or move == state.move:
        return state
    if not 0 <= move < len(state.history):
        return state
    return replace(state, move=move, version=state.version + 1)


def needs_computer_move(state: GameState) -> bool:
    return (
        state.computer_turn
        and state.outcome is None
        and not is_full(state.board)
    )


def current_status(state: GameState) -> str:
    outcome = state.outcome
    if outcome is not None:
        return f"winner: {outcome.winner}"
    if is_full(state.board):
        return "draw"
    return f"next player: {state.current_player}"
