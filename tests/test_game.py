"""Unit tests for board state, terminal detection and the game loop."""

import pytest

from tictactoe.game import (
    Board,
    InvalidBoardState,
    InvalidMove,
    Mark,
    TicTacToeGame,
    evaluate_terminal,
    is_full,
    is_terminal,
    winner,
    winning_line,
)


def test_board_from_string_and_key():
    board = Board.from_string("XO..X...O")
    assert board.cells[0] is Mark.X
    assert board.cells[1] is Mark.O
    assert board.cells[2] is Mark.EMPTY
    assert board.key() == "XO  X   O"
    assert board.legal_moves() == [2, 3, 5, 6, 7]


def test_board_rejects_bad_input():
    with pytest.raises(InvalidBoardState):
        Board.from_string("XO?......")
    with pytest.raises(InvalidBoardState):
        Board.from_string("XO")


def test_side_to_move_and_validity():
    assert Board().side_to_move() is Mark.X
    assert Board.from_string("X........").side_to_move() is Mark.O
    assert Board.from_string("XO.......").is_valid()
    assert not Board.from_string("XX.......").is_valid()
    assert not Board.from_string("OO.X.....").is_valid()
    # Both players owning a line cannot happen in real play.
    assert not Board.from_string("XXXOOO...").is_valid()


def test_place_rejects_occupied_and_out_of_range():
    board = Board()
    board.place(4, Mark.X)
    with pytest.raises(InvalidMove):
        board.place(4, Mark.O)
    with pytest.raises(InvalidMove):
        board.place(9, Mark.O)


def test_trial_restores_cell_on_error():
    board = Board.from_string("X........")
    with pytest.raises(RuntimeError):
        with board.trial(4, Mark.O):
            assert board.cells[4] is Mark.O
            raise RuntimeError("boom")
    assert board.key() == "X        "


def test_winner_detection_rows_columns_diagonals():
    assert winner(Board.from_string("XXXOO....")) is Mark.X
    assert winner(Board.from_string("XO.XO.X..")) is Mark.X
    assert winner(Board.from_string("OXXXO.X.O")) is Mark.O
    assert winning_line(Board.from_string("..OXOXO.X")) == (2, 4, 6)
    assert winner(Board.from_string("XO.......")) is None


def test_draw_and_terminal():
    full = Board.from_string("XOXXOOOXX")
    assert winner(full) is None
    assert is_full(full)
    assert is_terminal(full)
    state = evaluate_terminal(full)
    assert state.is_draw and state.winner is None and state.is_over

    ongoing = evaluate_terminal(Board.from_string("XO......."))
    assert not ongoing.is_over


def test_game_play_and_win():
    game = TicTacToeGame()
    for index in (0, 3, 1, 4, 2):
        game.play_move(index)
    assert game.winner is Mark.X
    assert game.finished
    # The winner stays the current player once the game is over.
    assert game.current_player is Mark.X
    assert game.available_moves() == []
    with pytest.raises(InvalidMove):
        game.play_move(8)


def test_game_draw():
    game = TicTacToeGame()
    for index in (0, 4, 8, 1, 7, 6, 2, 5, 3):
        game.play_move(index)
    assert game.drawn
    assert game.winner is None
    assert game.moves == 9


def test_undo_restores_previous_turn():
    game = TicTacToeGame()
    game.play_move(4)
    game.play_move(0)
    record = game.undo()
    assert record.player is Mark.O
    assert record.index == 0
    assert game.board.cells[0] is Mark.EMPTY
    assert game.current_player is Mark.O
    game.undo()
    with pytest.raises(InvalidMove):
        game.undo()


def test_undo_reopens_finished_game():
    game = TicTacToeGame()
    for index in (0, 3, 1, 4, 2):
        game.play_move(index)
    game.undo()
    assert not game.finished
    assert game.current_player is Mark.X


def test_move_record_row_and_col():
    game = TicTacToeGame()
    game.play_move(5)
    record = game.history[-1]
    assert (record.row, record.col) == (2, 3)


def test_reset_and_clone_are_independent():
    game = TicTacToeGame()
    game.play_move(0)
    copy = game.clone()
    game.reset()
    assert game.moves == 0
    assert game.current_player is Mark.X
    assert copy.board.cells[0] is Mark.X
    assert copy.current_player is Mark.O


def test_mark_opponent():
    assert Mark.X.opponent is Mark.O
    assert Mark.O.opponent is Mark.X
    with pytest.raises(ValueError):
        Mark.EMPTY.opponent
