"""Full-depth minimax AI with alpha-beta pruning and a transposition table."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Optional
import logging
import math
import os
import random

from .game import (
    CENTER,
    CORNERS,
    Board,
    InvalidBoardState,
    Mark,
    evaluate_terminal,
    is_full,
    winner,
)
from .heuristics import evaluate

logger = logging.getLogger(__name__)

# Score of a win reached at the root; every ply of delay costs one point.
# Large enough that the heuristic bonus (at most 214) never changes the
# win/draw/loss class of a move.
WIN_BASE = 1000

MAX_CACHE_SIZE = int(os.environ.get("TICTACTOE_MAX_CACHE", "10000"))

# TT entry flags
EXACT, LOWER, UPPER = 0, 1, 2


@dataclass
class TTEntry:
    # Stored relative to the cached node, see _to_tt/_from_tt.
    score: float
    flag: int


def _to_tt(score: float, depth: int) -> float:
    if score > 0:
        return score + depth
    if score < 0:
        return score - depth
    return score


def _from_tt(score: float, depth: int) -> float:
    if score > 0:
        return score - depth
    if score < 0:
        return score + depth
    return score


@dataclass
class MinimaxAI:
    """Optimal tic-tac-toe player.

    Usage:
      - MinimaxAI(player=Mark.O)
      - choose(board) -> cell index
      - search(board, depth, maximizing) -> score from ``player``'s point of view
    """

    player: Mark = Mark.O
    max_cache_size: int = MAX_CACHE_SIZE
    seed: Optional[int] = None
    nodes: int = field(default=0, init=False)
    rng: random.Random = field(init=False, repr=False)
    _tt: Dict[str, TTEntry] = field(default_factory=dict, repr=False)

    def __post_init__(self) -> None:
        self.player = Mark(self.player)
        if self.player is Mark.EMPTY:
            raise ValueError("The AI must play X or O")
        self.rng = random.Random(self.seed)

    # ---- public API ----

    def choose(self, board: Board) -> int:
        """Pick the cell to play for ``self.player``.

        The board is used as scratch space during the search and is handed
        back unchanged.
        """
        if not board.is_valid():
            raise InvalidBoardState(f"Board is not a legal position:\n{board}")
        if evaluate_terminal(board).is_over:
            raise InvalidBoardState("Game is already over")
        if board.side_to_move() is not self.player:
            raise InvalidBoardState("It is not this AI player's turn")

        opening = self._opening_move(board)
        if opening is not None:
            logger.debug("%s plays opening move %d", self.player.value, opening)
            return opening

        legal = board.legal_moves()
        tied = self._best_moves(board, legal)

        # A win on the spot beats every other candidate, tied or not.
        for move in tied + [m for m in legal if m not in tied]:
            if self._wins_at(board, move, self.player):
                logger.debug("%s wins at %d", self.player.value, move)
                return move

        opp = self.player.opponent
        for move in legal:
            if self._wins_at(board, move, opp):
                logger.debug("%s blocks at %d", self.player.value, move)
                return move

        move = self.rng.choice(tied)
        logger.debug("%s picks %d from %s", self.player.value, move, tied)
        return move

    def clear_cache(self) -> None:
        self._tt.clear()

    def cache_size(self) -> int:
        return len(self._tt)

    def end_game(self) -> None:
        """Release the transposition table once a game has finished."""
        logger.debug("Clearing %d cached positions for %s", len(self._tt), self.player.value)
        self.clear_cache()

    # ---- core search ----

    def search(
        self,
        board: Board,
        depth: int,
        maximizing: bool,
        alpha: float = -math.inf,
        beta: float = math.inf,
    ) -> float:
        """Minimax value of ``board`` for ``self.player``.

        ``maximizing`` must be true exactly when ``self.player`` is to move,
        since cache keys carry no turn information of their own.
        """
        key = board.key()

        tt_hit = self._tt.get(key)
        if tt_hit is not None:
            score = _from_tt(tt_hit.score, depth)
            if tt_hit.flag == EXACT:
                return score
            if tt_hit.flag == LOWER and score >= beta:
                return score
            if tt_hit.flag == UPPER and score <= alpha:
                return score

        # Terminal
        w = winner(board)
        if w is not None:
            value = WIN_BASE - depth if w is self.player else depth - WIN_BASE
            self._store(key, value, depth, EXACT)
            return value
        if is_full(board):
            self._store(key, 0.0, depth, EXACT)
            return 0.0

        self.nodes += 1
        alpha_orig, beta_orig = alpha, beta

        if maximizing:
            value = -math.inf
            for move in board.legal_moves():
                with board.trial(move, self.player):
                    score = self.search(board, depth + 1, False, alpha, beta)
                value = max(value, score)
                alpha = max(alpha, value)
                if beta <= alpha:
                    break
        else:
            value = math.inf
            for move in board.legal_moves():
                with board.trial(move, self.player.opponent):
                    score = self.search(board, depth + 1, True, alpha, beta)
                value = min(value, score)
                beta = min(beta, value)
                if beta <= alpha:
                    break

        if value <= alpha_orig:
            flag = UPPER
        elif value >= beta_orig:
            flag = LOWER
        else:
            flag = EXACT
        self._store(key, value, depth, flag)
        return value

    # ---- move selection helpers ----

    def _opening_move(self, board: Board) -> Optional[int]:
        placed = board.marks_placed()
        if placed == 0:
            return CENTER
        if placed == 2:
            if board.cells[CENTER] is Mark.EMPTY:
                return CENTER
            # Centre taken by either side, ours included when we opened there.
            corners = [c for c in CORNERS if board.cells[c] is Mark.EMPTY]
            return self.rng.choice(corners)
        return None

    def _best_moves(self, board: Board, legal: List[int]) -> List[int]:
        best = -math.inf
        tied: List[int] = []
        for move in legal:
            bonus = evaluate(board, move, self.player)
            with board.trial(move, self.player):
                score = self.search(board, 1, False) + bonus
            if score > best:
                best, tied = score, [move]
            elif score == best:
                tied.append(move)
        return tied

    def _wins_at(self, board: Board, move: int, mark: Mark) -> bool:
        with board.trial(move, mark):
            return winner(board) is mark

    def _store(self, key: str, score: float, depth: int, flag: int) -> None:
        if key not in self._tt and len(self._tt) >= self.max_cache_size:
            logger.debug("Transposition table full (%d entries), clearing", len(self._tt))
            self._tt.clear()
        self._tt[key] = TTEntry(score=_to_tt(score, depth), flag=flag)


_ENGINES: Dict[Mark, MinimaxAI] = {}


def engine_for(mover: Mark) -> MinimaxAI:
    """Shared AI for ``mover``; its cache lives across calls."""
    mover = Mark(mover)
    engine = _ENGINES.get(mover)
    if engine is None:
        engine = _ENGINES[mover] = MinimaxAI(player=mover)
    return engine


def choose_move(board: Board, mover: Mark) -> int:
    return engine_for(mover).choose(board)
