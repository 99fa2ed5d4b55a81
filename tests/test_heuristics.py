"""Tests for the move heuristic."""

from tictactoe.game import Board, Mark
from tictactoe.heuristics import count_threats, creates_fork, evaluate, lines_through


def test_positional_weights_on_empty_board():
    board = Board()
    assert evaluate(board, 4, Mark.X) == 4.0
    assert evaluate(board, 0, Mark.X) == 2.5
    assert evaluate(board, 1, Mark.X) == 1.5


def test_lines_through_cells():
    assert len(lines_through(4)) == 4
    assert len(lines_through(0)) == 3
    assert len(lines_through(1)) == 2


def test_near_win_and_block_line_scores():
    # X holds 0 and 1, O holds the centre.
    board = Board.from_string("XX..O....")
    # 30 for completing the top row, 3 for the diagonal through O.
    assert evaluate(board, 2, Mark.X) == 2.5 + 30 + 3
    # For O the same cell blocks the row (25) and extends the diagonal (5).
    assert evaluate(board, 2, Mark.O) == 2.5 + 25 + 5


def test_fork_detection():
    board = Board.from_string("X...O...X")
    assert creates_fork(board, 2, Mark.X)
    assert not creates_fork(board, 2, Mark.O)
    assert not creates_fork(board, 0, Mark.X)
    assert board.key() == "X   O   X"


def test_fork_bonus_and_denial():
    board = Board.from_string("X...O...X")
    assert evaluate(board, 2, Mark.X) == 2.5 + 50 + 5 + 5 + 3
    assert evaluate(board, 2, Mark.O) == 2.5 + 40 + 3 + 3 + 5


def test_count_threats():
    assert count_threats(Board.from_string("XX..O...."), Mark.X) == 1
    assert count_threats(Board.from_string("XX..O...."), Mark.O) == 0
    assert count_threats(Board.from_string("X.X...X.."), Mark.X) == 3


def test_evaluate_is_deterministic_and_leaves_board_untouched():
    board = Board.from_string("XO..X...O")
    before = board.key()
    scores = {evaluate(board, 2, Mark.O) for _ in range(5)}
    assert len(scores) == 1
    assert board.key() == before
