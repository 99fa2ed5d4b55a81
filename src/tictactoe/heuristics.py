"""Positional and tactical scoring of a single candidate move."""

from __future__ import annotations

from typing import Dict, List, Tuple

from .game import CENTER, CORNERS, WINNING_LINES, Board, Mark

POSITION_SCALE = 0.5
POSITION_WEIGHTS: Tuple[int, ...] = tuple(
    8 if i == CENTER else (5 if i in CORNERS else 3) for i in range(9)
)

FORK_BONUS = 50.0
FORK_DENIAL_BONUS = 40.0
NEAR_WIN_BONUS = 30.0
BLOCK_BONUS = 25.0
OWN_LINE_BONUS = 5.0
OPPONENT_LINE_BONUS = 3.0

_LINES_THROUGH: Dict[int, Tuple[Tuple[int, int, int], ...]] = {
    i: tuple(line for line in WINNING_LINES if i in line) for i in range(9)
}


def lines_through(index: int) -> Tuple[Tuple[int, int, int], ...]:
    return _LINES_THROUGH[index]


def _trio(board: Board, line: Tuple[int, int, int]) -> List[Mark]:
    a, b, c = line
    return [board.cells[a], board.cells[b], board.cells[c]]


def count_threats(board: Board, mark: Mark) -> int:
    """Number of lines holding two ``mark`` and one empty cell."""
    cnt = 0
    for line in WINNING_LINES:
        trio = _trio(board, line)
        if trio.count(mark) == 2 and trio.count(Mark.EMPTY) == 1:
            cnt += 1
    return cnt


def creates_fork(board: Board, move: int, mark: Mark) -> bool:
    if board.cells[move] is not Mark.EMPTY:
        return False
    with board.trial(move, mark):
        return count_threats(board, mark) >= 2


def evaluate(board: Board, move: int, mover: Mark) -> float:
    """Heuristic value of ``mover`` playing ``move`` on ``board``.

    Used only to separate moves the search rates equally. The score adds a
    positional weight, a bonus for making (or denying the opponent) a double
    threat, and per-line credit for the lines running through ``move``.
    """
    opp = mover.opponent
    score = POSITION_WEIGHTS[move] * POSITION_SCALE

    if creates_fork(board, move, mover):
        score += FORK_BONUS
    if creates_fork(board, move, opp):
        score += FORK_DENIAL_BONUS

    for line in lines_through(move):
        trio = _trio(board, line)
        mine = trio.count(mover)
        theirs = trio.count(opp)
        empty = trio.count(Mark.EMPTY)
        if mine == 2 and empty == 1:
            score += NEAR_WIN_BONUS
        elif theirs == 2 and empty == 1:
            score += BLOCK_BONUS
        elif mine == 1 and empty == 2:
            score += OWN_LINE_BONUS
        elif theirs == 1 and empty == 2:
            score += OPPONENT_LINE_BONUS
    return score
