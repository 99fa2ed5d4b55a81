"""FastAPI-powered single-page front end for playing tic-tac-toe in the browser."""

from __future__ import annotations

import logging
import random
import threading
import time
import uuid
from dataclasses import dataclass, field
from typing import Dict, List, Literal, Optional, Tuple

from fastapi import BackgroundTasks, FastAPI, HTTPException
from fastapi.responses import HTMLResponse
from pydantic import BaseModel, ConfigDict, Field, field_validator

from .ai import MinimaxAI
from .game import Mark, TicTacToeGame, winning_line

logger = logging.getLogger(__name__)

AI_NAME = "AI"
AI_THINK_DELAY: Tuple[float, float] = (0.3, 0.6)
MAX_NAME_LENGTH = 24


@dataclass
class GameSession:
    """Container for an active game, its optional AI opponent and the scoreboard."""

    game: TicTacToeGame
    ai: Optional[MinimaxAI]
    players: Dict[str, str] = field(default_factory=lambda: {"X": "X", "O": "O"})
    scores: Dict[str, int] = field(default_factory=lambda: {"X": 0, "O": 0})
    ai_pending: bool = False
    lock: threading.Lock = field(default_factory=threading.Lock, repr=False)

    @property
    def mode(self) -> str:
        return "single" if self.ai else "multi"


SESSIONS: Dict[str, GameSession] = {}
app = FastAPI(title="Tic-Tac-Toe", description="Tic-tac-toe against a friend or the computer")


class NewGameRequest(BaseModel):
    """Request payload for starting a new game."""

    model_config = ConfigDict(populate_by_name=True)

    mode: Literal["single", "multi"] = "single"
    player_x: str = Field(default="X", alias="playerX", max_length=MAX_NAME_LENGTH)
    player_o: str = Field(default="O", alias="playerO", max_length=MAX_NAME_LENGTH)

    @field_validator("player_x", "player_o")
    @classmethod
    def strip_name(cls, value: str) -> str:
        return value.strip()


class MoveRequest(BaseModel):
    """Request payload for submitting a move on an existing game."""

    model_config = ConfigDict(populate_by_name=True)

    cell_index: int = Field(alias="cellIndex", ge=0, le=8)


def _create_session(request: NewGameRequest) -> Tuple[str, GameSession]:
    """Create a new game session and register it for later access."""

    ai = MinimaxAI(player=Mark.O) if request.mode == "single" else None
    session = GameSession(game=TicTacToeGame(), ai=ai)
    session.players["X"] = request.player_x or "X"
    session.players["O"] = AI_NAME if ai else (request.player_o or "O")
    session_id = uuid.uuid4().hex
    SESSIONS[session_id] = session
    logger.info(
        "Created %s game %s: %s vs %s",
        session.mode,
        session_id,
        session.players["X"],
        session.players["O"],
    )
    return session_id, session


def _get_session(game_id: str) -> GameSession:
    try:
        return SESSIONS[game_id]
    except KeyError as exc:
        raise HTTPException(status_code=404, detail="Game not found") from exc


def _record_result(game_id: str, session: GameSession) -> None:
    """Tally a finished game and drop the AI's cached positions. Caller holds the lock."""

    game = session.game
    if not game.finished:
        return
    if game.winner is not None:
        session.scores[game.winner.value] += 1
        logger.info("Game %s won by %s", game_id, session.players[game.winner.value])
    else:
        logger.info("Game %s drawn", game_id)
    if session.ai:
        session.ai.end_game()


def _run_ai_turn(game_id: str) -> None:
    session = SESSIONS.get(game_id)
    if not session:
        return

    time.sleep(max(0.0, random.uniform(*AI_THINK_DELAY)))

    with session.lock:
        try:
            if not session.ai:
                return
            game = session.game
            if game.finished:
                return
            if game.current_player is not session.ai.player:
                return
            cell_index = session.ai.choose(game.board)
            game.play_move(cell_index)
            _record_result(game_id, session)
        finally:
            session.ai_pending = False


def _serialize_session(game_id: str, session: GameSession) -> Dict[str, object]:
    with session.lock:
        game = session.game
        move_log: List[Dict[str, object]] = [
            {
                "player": record.player.value,
                "name": session.players[record.player.value],
                "cellIndex": record.index,
                "row": record.row,
                "col": record.col,
            }
            for record in game.history
        ]
        state: Dict[str, object] = {
            "id": game_id,
            "mode": session.mode,
            "board": [c.value if c is not Mark.EMPTY else "" for c in game.board.cells],
            "currentPlayer": game.current_player.value,
            "winner": game.winner.value if game.winner else None,
            "drawn": game.drawn,
            "winningLine": list(winning_line(game.board) or ()),
            "availableMoves": game.available_moves(),
            "moves": game.moves,
            "moveLog": move_log,
            "players": dict(session.players),
            "scores": dict(session.scores),
            "aiPending": session.ai_pending,
        }
        if move_log:
            state["lastMove"] = move_log[-1]
        return state


def _apply_player_move(
    game_id: str,
    session: GameSession,
    cell_index: int,
    background_tasks: Optional[BackgroundTasks] = None,
) -> None:
    should_schedule_ai = False
    with session.lock:
        game = session.game
        if game.finished:
            raise HTTPException(status_code=400, detail="Game already finished")

        if session.ai_pending:
            raise HTTPException(status_code=400, detail="AI is completing its move")

        if session.ai and game.current_player is session.ai.player:
            raise HTTPException(status_code=400, detail="It is the AI's turn")

        try:
            game.play_move(cell_index)
        except ValueError as exc:
            raise HTTPException(status_code=400, detail=str(exc)) from exc

        _record_result(game_id, session)

        should_schedule_ai = bool(
            session.ai
            and not game.finished
            and game.current_player is session.ai.player
        )
        if should_schedule_ai:
            session.ai_pending = True

    if should_schedule_ai and background_tasks is not None:
        background_tasks.add_task(_run_ai_turn, game_id)


def _undo(session: GameSession) -> None:
    with session.lock:
        game = session.game
        if session.ai_pending:
            raise HTTPException(status_code=400, detail="AI is completing its move")
        try:
            if game.winner is not None:
                # The tally counted this game; reopening it takes the point back.
                session.scores[game.winner.value] -= 1
            game.undo()
            # Against the AI, step back to the human's turn.
            if session.ai and game.current_player is session.ai.player and game.history:
                game.undo()
        except ValueError as exc:
            raise HTTPException(status_code=400, detail=str(exc)) from exc


def _new_round(session: GameSession, reset_scores: bool = False) -> None:
    with session.lock:
        if session.ai_pending:
            raise HTTPException(status_code=400, detail="AI is completing its move")
        session.game.reset()
        if reset_scores:
            session.scores = {"X": 0, "O": 0}
        if session.ai:
            session.ai.end_game()


@app.post("/api/game")
def create_game(request: NewGameRequest) -> Dict[str, object]:
    game_id, session = _create_session(request)
    return _serialize_session(game_id, session)


@app.get("/api/game/{game_id}")
def get_game(game_id: str) -> Dict[str, object]:
    session = _get_session(game_id)
    return _serialize_session(game_id, session)


@app.post("/api/game/{game_id}/move")
def make_move(
    game_id: str, request: MoveRequest, background_tasks: BackgroundTasks
) -> Dict[str, object]:
    session = _get_session(game_id)
    _apply_player_move(game_id, session, request.cell_index, background_tasks)
    return _serialize_session(game_id, session)


@app.post("/api/game/{game_id}/undo")
def undo_move(game_id: str) -> Dict[str, object]:
    session = _get_session(game_id)
    _undo(session)
    return _serialize_session(game_id, session)


@app.post("/api/game/{game_id}/new")
def new_round(game_id: str) -> Dict[str, object]:
    session = _get_session(game_id)
    _new_round(session)
    return _serialize_session(game_id, session)


@app.post("/api/game/{game_id}/reset-stats")
def reset_stats(game_id: str) -> Dict[str, object]:
    session = _get_session(game_id)
    _new_round(session, reset_scores=True)
    return _serialize_session(game_id, session)


@app.get("/", response_class=HTMLResponse)
def index() -> str:
    return HTML_PAGE


HTML_PAGE = """<!DOCTYPE html>
<html lang=\"en\">
  <head>
    <meta charset=\"utf-8\" />
    <meta name=\"viewport\" content=\"width=device-width, initial-scale=1\" />
    <title>Tic-Tac-Toe</title>
    <style>
      :root {
        color-scheme: light;
        font-family: system-ui, -apple-system, BlinkMacSystemFont, \"Segoe UI\", sans-serif;
        --x-color: #3a66ff;
        --o-color: #ff5a7a;
      }
      body {
        margin: 0;
        min-height: 100vh;
        display: flex;
        justify-content: center;
        padding: 2rem 1rem;
        background: radial-gradient(circle at top, #f2f5ff, #dbe0ff 40%, #cfd8ff 70%);
        color: #13203a;
      }
      main {
        background: rgba(255, 255, 255, 0.92);
        border-radius: 18px;
        box-shadow: 0 20px 40px rgba(34, 47, 79, 0.16);
        padding: 2rem;
        width: min(480px, 100%);
      }
      h1 {
        margin: 0 0 1rem;
        text-align: center;
        letter-spacing: 0.06em;
      }
      .controls,
      .scores {
        display: flex;
        flex-wrap: wrap;
        gap: 0.75rem;
        justify-content: center;
        margin-bottom: 1rem;
      }
      button,
      input[type='text'] {
        font-size: 1rem;
        padding: 0.45rem 0.85rem;
        border-radius: 999px;
        border: 1px solid rgba(60, 70, 120, 0.25);
        background: white;
        font-family: inherit;
      }
      button {
        cursor: pointer;
      }
      button:disabled {
        cursor: default;
        opacity: 0.6;
      }
      .board {
        display: grid;
        grid-template-columns: repeat(3, 1fr);
        gap: 0.5rem;
        margin: 0 auto 1rem;
        width: min(320px, 100%);
      }
      .cell {
        aspect-ratio: 1;
        border-radius: 12px;
        font-size: 2.5rem;
        font-weight: 700;
      }
      .cell.x {
        color: var(--x-color);
      }
      .cell.o {
        color: var(--o-color);
      }
      .cell.win {
        background: #fff4c2;
      }
      #status {
        text-align: center;
        font-weight: 600;
        margin-bottom: 1rem;
      }
      #history {
        white-space: pre-wrap;
        font-family: ui-monospace, monospace;
        font-size: 0.85rem;
        max-height: 10rem;
        overflow-y: auto;
        background: rgba(226, 232, 255, 0.6);
        border-radius: 12px;
        padding: 0.75rem;
      }
    </style>
  </head>
  <body>
    <main>
      <h1>Tic-Tac-Toe</h1>
      <div class=\"controls\">
        <input id=\"player-x\" type=\"text\" placeholder=\"Player X\" maxlength=\"24\" />
        <input id=\"player-o\" type=\"text\" placeholder=\"Player O\" maxlength=\"24\" />
        <label><input id=\"single-player\" type=\"checkbox\" checked /> vs computer</label>
      </div>
      <div class=\"controls\">
        <button id=\"start\" type=\"button\">Start</button>
        <button id=\"new-game\" type=\"button\" disabled>New round</button>
        <button id=\"undo\" type=\"button\" disabled>Undo</button>
        <button id=\"reset-stats\" type=\"button\" disabled>Reset stats</button>
      </div>
      <div class=\"scores\" id=\"scores\"></div>
      <div id=\"status\">Choose a mode and press Start.</div>
      <div class=\"board\" id=\"board\"></div>
      <div id=\"history\"></div>
    </main>
    <script>
      const boardEl = document.getElementById('board');
      const statusEl = document.getElementById('status');
      const scoresEl = document.getElementById('scores');
      const historyEl = document.getElementById('history');
      const singleEl = document.getElementById('single-player');
      const undoBtn = document.getElementById('undo');
      const newBtn = document.getElementById('new-game');
      const resetBtn = document.getElementById('reset-stats');
      let gameState = null;
      let pollTimer = null;

      async function call(path, body) {
        const response = await fetch(path, {
          method: body === undefined ? 'GET' : 'POST',
          headers: { 'Content-Type': 'application/json' },
          body: body === undefined ? undefined : JSON.stringify(body),
        });
        const data = await response.json();
        if (!response.ok) {
          throw new Error(data.detail || 'Request failed');
        }
        return data;
      }

      function setState(data) {
        gameState = data;
        render();
        if (gameState.aiPending) {
          ensurePolling();
        }
      }

      function ensurePolling() {
        if (pollTimer) return;
        pollTimer = setInterval(async () => {
          const data = await call(`/api/game/${gameState.id}`);
          if (!data.aiPending) {
            clearInterval(pollTimer);
            pollTimer = null;
          }
          setState(data);
        }, 150);
      }

      async function startGame() {
        setState(
          await call('/api/game', {
            mode: singleEl.checked ? 'single' : 'multi',
            playerX: document.getElementById('player-x').value,
            playerO: document.getElementById('player-o').value,
          })
        );
      }

      async function action(name) {
        try {
          setState(await call(`/api/game/${gameState.id}/${name}`, {}));
        } catch (err) {
          statusEl.textContent = err.message;
        }
      }

      async function sendMove(cellIndex) {
        try {
          setState(await call(`/api/game/${gameState.id}/move`, { cellIndex }));
        } catch (err) {
          statusEl.textContent = err.message;
        }
      }

      function render() {
        const { board, players, scores, winningLine } = gameState;
        boardEl.innerHTML = '';
        const aiTurn = gameState.mode === 'single' && gameState.currentPlayer === 'O';
        board.forEach((value, index) => {
          const cell = document.createElement('button');
          cell.type = 'button';
          cell.classList.add('cell');
          cell.textContent = value;
          if (value) cell.classList.add(value.toLowerCase());
          if (winningLine.includes(index)) cell.classList.add('win');
          cell.disabled = Boolean(value) || gameState.winner || gameState.drawn || aiTurn || gameState.aiPending;
          cell.addEventListener('click', () => sendMove(index));
          boardEl.appendChild(cell);
        });
        scoresEl.textContent = `${players.X}: ${scores.X}    ${players.O}: ${scores.O}    Moves: ${gameState.moves}`;
        historyEl.textContent = gameState.moveLog
          .map((m) => `${m.name}: (${m.row},${m.col})`)
          .join('\\n');
        if (gameState.winner) {
          statusEl.textContent = `${players[gameState.winner]} wins!`;
        } else if (gameState.drawn) {
          statusEl.textContent = "It's a draw!";
        } else if (gameState.aiPending) {
          statusEl.textContent = 'AI is thinking...';
        } else {
          statusEl.textContent = `Current player: ${players[gameState.currentPlayer]}`;
        }
        undoBtn.disabled = gameState.moveLog.length === 0 || gameState.aiPending;
        newBtn.disabled = false;
        resetBtn.disabled = false;
      }

      document.getElementById('start').addEventListener('click', startGame);
      newBtn.addEventListener('click', () => action('new'));
      undoBtn.addEventListener('click', () => action('undo'));
      resetBtn.addEventListener('click', () => action('reset-stats'));
    </script>
  </body>
</html>
"""
