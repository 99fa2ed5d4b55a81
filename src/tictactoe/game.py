"""Board representation, terminal detection and game-loop state for tic-tac-toe."""

from __future__ import annotations

from contextlib import contextmanager
from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable, Iterator, List, Optional, Tuple


class Mark(str, Enum):
    EMPTY = " "
    X = "X"
    O = "O"

    @property
    def opponent(self) -> "Mark":
        if self is Mark.X:
            return Mark.O
        if self is Mark.O:
            return Mark.X
        raise ValueError("EMPTY has no opponent")


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

CENTER = 4
CORNERS: Tuple[int, ...] = (0, 2, 6, 8)

_EMPTY_TOKENS = {" ", ".", "_", ""}


class InvalidBoardState(ValueError):
    """The board is malformed or cannot be used for the requested operation."""


class InvalidMove(ValueError):
    """A move that the rules do not allow."""


def _parse_cell(value: object) -> Mark:
    if isinstance(value, Mark):
        return value
    if value is None:
        return Mark.EMPTY
    text = str(value).upper()
    if text in _EMPTY_TOKENS:
        return Mark.EMPTY
    if text == "X":
        return Mark.X
    if text == "O":
        return Mark.O
    raise InvalidBoardState(f"Cells must be X, O or empty, got {value!r}")


# ---------- Board ----------


@dataclass
class Board:
    cells: List[Mark] = field(default_factory=lambda: [Mark.EMPTY] * 9)

    def __post_init__(self) -> None:
        if len(self.cells) != 9:
            raise InvalidBoardState(f"A board has 9 cells, got {len(self.cells)}")
        self.cells = [_parse_cell(c) for c in self.cells]

    @classmethod
    def from_cells(cls, cells: Iterable[object]) -> "Board":
        return cls(cells=list(cells))

    @classmethod
    def from_string(cls, text: str) -> "Board":
        """Build a board from a 9-character row-major string such as ``"XO.X..O.."``."""
        return cls(cells=list(text))

    def key(self) -> str:
        """Canonical fixed-width serialization used as the cache key."""
        return "".join(c.value for c in self.cells)

    def copy(self) -> "Board":
        return Board(cells=self.cells.copy())

    def legal_moves(self) -> List[int]:
        return [i for i, c in enumerate(self.cells) if c is Mark.EMPTY]

    def count(self, mark: Mark) -> int:
        return sum(1 for c in self.cells if c is mark)

    def marks_placed(self) -> int:
        return 9 - self.count(Mark.EMPTY)

    def side_to_move(self) -> Mark:
        return Mark.X if self.count(Mark.X) == self.count(Mark.O) else Mark.O

    def is_valid(self) -> bool:
        diff = self.count(Mark.X) - self.count(Mark.O)
        if diff not in (0, 1):
            return False
        owners = {self.cells[a] for a, b, c in WINNING_LINES if _line_owner(self, a, b, c)}
        return len(owners) <= 1

    def place(self, index: int, mark: Mark) -> None:
        if not 0 <= index < 9:
            raise InvalidMove(f"Cell index {index} is outside the board")
        mark = Mark(mark)
        if mark is Mark.EMPTY:
            raise InvalidMove("Cannot place an empty mark")
        if self.cells[index] is not Mark.EMPTY:
            raise InvalidMove("Cell already occupied")
        self.cells[index] = mark

    @contextmanager
    def trial(self, index: int, mark: Mark) -> Iterator["Board"]:
        """Temporarily place ``mark`` at ``index``; the cell is emptied again on exit."""
        self.place(index, mark)
        try:
            yield self
        finally:
            self.cells[index] = Mark.EMPTY

    def __str__(self) -> str:
        rows = []
        for r in range(3):
            rows.append("|".join(c.value for c in self.cells[r * 3 : r * 3 + 3]))
        return "\n-+-+-\n".join(rows)


# ---------- Terminal detection ----------


def _line_owner(board: Board, a: int, b: int, c: int) -> bool:
    v = board.cells[a]
    return v is not Mark.EMPTY and v is board.cells[b] is board.cells[c]


def winning_line(board: Board) -> Optional[Tuple[int, int, int]]:
    for line in WINNING_LINES:
        if _line_owner(board, *line):
            return line
    return None


def winner(board: Board) -> Optional[Mark]:
    line = winning_line(board)
    return board.cells[line[0]] if line else None


def is_full(board: Board) -> bool:
    return all(c is not Mark.EMPTY for c in board.cells)


def is_terminal(board: Board) -> bool:
    return winner(board) is not None or is_full(board)


@dataclass(frozen=True)
class TerminalState:
    winner: Optional[Mark]
    is_draw: bool

    @property
    def is_over(self) -> bool:
        return self.winner is not None or self.is_draw


def evaluate_terminal(board: Board) -> TerminalState:
    """Report the winner, or a draw when the board filled up without one."""
    w = winner(board)
    return TerminalState(winner=w, is_draw=w is None and is_full(board))


# ---------- Game ----------


@dataclass(frozen=True)
class MoveRecord:
    player: Mark
    index: int

    @property
    def row(self) -> int:
        return self.index // 3 + 1

    @property
    def col(self) -> int:
        return self.index % 3 + 1


@dataclass
class TicTacToeGame:
    board: Board = field(default_factory=Board)
    current_player: Mark = Mark.X
    winner: Optional[Mark] = None
    drawn: bool = False
    history: List[MoveRecord] = field(default_factory=list)

    # ---- API used by UI & AI ----

    @property
    def finished(self) -> bool:
        return self.winner is not None or self.drawn

    @property
    def moves(self) -> int:
        return len(self.history)

    def available_moves(self) -> List[int]:
        if self.finished:
            return []
        return self.board.legal_moves()

    def play_move(self, index: int) -> None:
        """Place the current player's mark, then update the result and the turn."""
        if self.finished:
            raise InvalidMove("Game already finished")
        self.board.place(index, self.current_player)
        self.history.append(MoveRecord(player=self.current_player, index=index))
        self._update_state()
        if not self.finished:
            self.current_player = self.current_player.opponent

    def undo(self) -> MoveRecord:
        if not self.history:
            raise InvalidMove("No moves to undo")
        last = self.history.pop()
        self.board.cells[last.index] = Mark.EMPTY
        self.current_player = last.player
        self.winner = None
        self.drawn = False
        return last

    def reset(self) -> None:
        self.board = Board()
        self.current_player = Mark.X
        self.winner = None
        self.drawn = False
        self.history = []

    def clone(self) -> "TicTacToeGame":
        return TicTacToeGame(
            board=self.board.copy(),
            current_player=self.current_player,
            winner=self.winner,
            drawn=self.drawn,
            history=list(self.history),
        )

    # ---- helpers ----

    def _update_state(self) -> None:
        state = evaluate_terminal(self.board)
        self.winner = state.winner
        self.drawn = state.is_draw
