"""Unit tests for tic-tac-toe rules and state transitions."""

import pytest

from tictactoe import game
from tictactoe.game import (
    EMPTY,
    EMPTY_BOARD,
    MODE_COMPUTER,
    MODE_MULTIPLAYER,
    WINNING_LINES,
    GameState,
    WinOutcome,
    current_status,
    detect_winner,
)


def board_from(text):
    """Build a board from a 9-character string, '.' for empty."""
    return tuple(EMPTY if c == "." else c for c in text)


def play_all(state, *cells):
    for cell in cells:
        state = game.play_move(state, cell)
    return state


@pytest.mark.parametrize("line", WINNING_LINES)
@pytest.mark.parametrize("player", ["X", "O"])
def test_detect_each_line(line, player):
    cells = [EMPTY] * 9
    for index in line:
        cells[index] = player
    assert detect_winner(tuple(cells)) == WinOutcome(winner=player, line=line)


def test_detect_nothing_on_open_board():
    assert detect_winner(EMPTY_BOARD) is None
    assert detect_winner(board_from("XX.OO....")) is None


def test_detect_nothing_on_full_draw_board():
    board = board_from("XOXXOOOXX")
    assert detect_winner(board) is None
    assert game.is_full(board)


def test_detect_prefers_rows_over_columns():
    board = board_from("XXXX..X..")
    assert detect_winner(board).line == (0, 1, 2)


def test_play_requires_mode():
    state = GameState()
    assert game.play_move(state, 4) is state


def test_select_mode_only_once():
    state = game.select_mode(GameState(), MODE_MULTIPLAYER)
    assert state.mode == MODE_MULTIPLAYER
    assert game.select_mode(state, MODE_COMPUTER) is state
    assert game.select_mode(GameState(), "solo").mode is None


def test_successful_move_changes_one_cell_and_advances_pointer():
    state = game.select_mode(GameState(), MODE_MULTIPLAYER)
    for cell, player in ((4, "X"), (0, "O"), (8, "X")):
        before = state
        state = game.play_move(state, cell)
        diff = [i for i in range(9) if before.board[i] != state.board[i]]
        assert diff == [cell]
        assert state.board[cell] == player
        assert state.move == before.move + 1
        assert len(state.history) == len(before.history) + 1


def test_scenario_diagonal_win_for_x():
    state = game.select_mode(GameState(), MODE_MULTIPLAYER)
    state = play_all(state, 4, 0, 8)
    assert state.outcome is None
    assert current_status(state) == "next player: O"

    # O clicking an occupied cell does nothing
    assert game.play_move(state, 0) is state

    state = game.reset(state)
    state = play_all(state, 4, 1, 8)
    assert game.play_move(state, 1) is state
    state = play_all(state, 2, 0)
    assert state.outcome == WinOutcome(winner="X", line=(0, 4, 8))
    assert current_status(state) == "winner: X"


def test_no_move_after_win():
    state = game.select_mode(GameState(), MODE_MULTIPLAYER)
    state = play_all(state, 0, 3, 1, 4, 2)
    assert state.outcome.winner == "X"
    assert game.play_move(state, 8) is state


def test_out_of_range_cell_is_ignored():
    state = game.select_mode(GameState(), MODE_MULTIPLAYER)
    assert game.play_move(state, 9) is state
    assert game.play_move(state, -1) is state


def test_human_cannot_play_for_computer():
    state = game.select_mode(GameState(), MODE_COMPUTER)
    state = game.play_move(state, 4)
    assert state.computer_turn
    assert game.play_move(state, 0) is state


def test_canonical_draw_status():
    state = GameState(
        history=(EMPTY_BOARD, board_from("XOXXOOOXX")), move=1, mode=MODE_MULTIPLAYER
    )
    assert state.outcome is None
    assert state.drawn
    assert current_status(state) == "draw"


def test_draw_reached_through_play():
    state = game.select_mode(GameState(), MODE_MULTIPLAYER)
    state = play_all(state, 0, 1, 2, 4, 3, 5, 7, 6, 8)
    assert state.board == board_from("XOXXOOOXX")
    assert current_status(state) == "draw"


def test_reset_keeps_mode_and_clears_history():
    state = game.select_mode(GameState(), MODE_COMPUTER)
    state = play_all(state, 4)
    fresh = game.reset(state)
    assert fresh.history == (EMPTY_BOARD,)
    assert fresh.move == 0
    assert fresh.mode == MODE_COMPUTER
    assert fresh.version > state.version


def test_jump_then_play_truncates_history():
    state = game.select_mode(GameState(), MODE_MULTIPLAYER)
    state = play_all(state, 0, 1, 2, 3)
    assert len(state.history) == 5

    state = game.jump_to(state, 2)
    assert state.move == 2
    assert len(state.history) == 5
    assert current_status(state) == "next player: X"

    state = game.play_move(state, 8)
    assert len(state.history) == 4
    assert state.move == 3
    assert state.board == board_from("XO......X")


def test_jump_out_of_range_is_ignored():
    state = game.select_mode(GameState(), MODE_MULTIPLAYER)
    state = play_all(state, 0)
    assert game.jump_to(state, 5) is state
    assert game.jump_to(state, 1) is state


def test_computer_move_preconditions():
    always_zero = lambda board: 0

    multiplayer = play_all(game.select_mode(GameState(), MODE_MULTIPLAYER), 4)
    assert game.computer_move(multiplayer, always_zero) is multiplayer

    vs_computer = game.select_mode(GameState(), MODE_COMPUTER)
    assert game.computer_move(vs_computer, always_zero) is vs_computer

    waiting = game.play_move(vs_computer, 4)
    assert game.needs_computer_move(waiting)
    moved = game.computer_move(waiting, always_zero)
    diff = [i for i in range(9) if waiting.board[i] != moved.board[i]]
    assert diff == [0]
    assert moved.board[0] == "O"
    assert moved.move == waiting.move + 1
    assert len(moved.history) == len(waiting.history) + 1


def test_computer_move_rejects_occupied_choice():
    state = play_all(game.select_mode(GameState(), MODE_COMPUTER), 4)
    assert game.computer_move(state, lambda board: 4) is state
    assert game.computer_move(state, lambda board: None) is state
