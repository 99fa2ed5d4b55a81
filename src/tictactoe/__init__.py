"""Tic-tac-toe package exposing game logic, the minimax AI, and the web application."""

from .ai import MinimaxAI, choose_move
from .game import (
    Board,
    InvalidBoardState,
    InvalidMove,
    Mark,
    TerminalState,
    TicTacToeGame,
    evaluate_terminal,
)
from .ui import app

__all__ = [
    "Board",
    "InvalidBoardState",
    "InvalidMove",
    "Mark",
    "MinimaxAI",
    "TerminalState",
    "TicTacToeGame",
    "app",
    "choose_move",
    "evaluate_terminal",
]
