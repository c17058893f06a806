"""FastAPI-powered web UI for playing tic-tac-toe in the browser."""

from __future__ import annotations

import asyncio
import logging
import os
import time
import uuid
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Tuple

from fastapi import FastAPI, HTTPException, WebSocket, WebSocketDisconnect
from fastapi.responses import HTMLResponse
from pydantic import BaseModel, ConfigDict, Field, field_validator

from .ai import RandomAI
from .controller import GameController
from .game import GAME_MODES, GameState, current_status

logger = logging.getLogger(__name__)


@dataclass
class GameSession:
    """Container for one browser session's controller and its watchers."""

    controller: GameController
    last_active: float = field(default_factory=lambda: time.time())
    # close callbacks of attached websockets
    watchers: List[Callable[[], None]] = field(default_factory=list, repr=False)

    def touch(self) -> None:
        self.last_active = time.time()

    def close(self) -> None:
        self.controller.close()
        for notify_closed in list(self.watchers):
            notify_closed()
        self.watchers.clear()


SESSIONS: Dict[str, GameSession] = {}
app = FastAPI(title="Tic Tac Toe", description="Tic tac toe played in the browser")


COMPUTER_MOVE_DELAY = float(os.environ.get("TICTACTOE_COMPUTER_DELAY", "0.5"))
SESSION_TTL_SECONDS = 60 * 60  # 1 hour


def _cleanup_sessions() -> None:
    """Drop sessions that have been idle for longer than the TTL.

    Sessions with an attached websocket are still in use and never expire.
    """

    now = time.time()
    expired = [
        game_id
        for game_id, session in list(SESSIONS.items())
        if not session.watchers and now - session.last_active >= SESSION_TTL_SECONDS
    ]
    for game_id in expired:
        session = SESSIONS.pop(game_id, None)
        if session:
            session.close()
            logger.info("session %s expired", game_id)


def _check_mode(value: Optional[str]) -> Optional[str]:
    if value is not None and value not in GAME_MODES:
        raise ValueError(
            f"Unsupported game mode {value!r}. "
            f"Choose one of {', '.join(GAME_MODES)}."
        )
    return value


class NewGameRequest(BaseModel):
    """Request payload for starting a new session."""

    mode: Optional[str] = Field(
        default=None,
        description="Game mode; leave empty to pick it later",
    )

    @field_validator("mode")
    @classmethod
    def ensure_supported_mode(cls, value: Optional[str]) -> Optional[str]:
        return _check_mode(value)


class ModeRequest(BaseModel):
    mode: str

    @field_validator("mode")
    @classmethod
    def ensure_supported_mode(cls, value: str) -> str:
        return _check_mode(value)


class MoveRequest(BaseModel):
    """Request payload for clicking a cell."""

    model_config = ConfigDict(populate_by_name=True)

    cell_index: int = Field(alias="cellIndex", ge=0, le=8)


class JumpRequest(BaseModel):
    move: int = Field(ge=0, description="History entry to display")


def _create_session(mode: Optional[str]) -> Tuple[str, GameSession]:
    """Create a new game session and register it for later access."""

    _cleanup_sessions()
    controller = GameController(ai=RandomAI(), delay=COMPUTER_MOVE_DELAY)
    if mode is not None:
        controller.select_mode(mode)
    session = GameSession(controller=controller)
    game_id = uuid.uuid4().hex
    SESSIONS[game_id] = session
    logger.info("session %s created (mode=%s)", game_id, mode)
    return game_id, session


def _get_session(game_id: str) -> GameSession:
    try:
        session = SESSIONS[game_id]
    except KeyError as exc:
        raise HTTPException(status_code=404, detail="Game not found") from exc
    session.touch()
    return session


def _cells(board: Tuple[str, ...]) -> list:
    return [c if c in ("X", "O") else "" for c in board]


def _serialize_state(
    game_id: str, state: GameState, computer_pending: bool
) -> Dict[str, object]:
    outcome = state.outcome
    return {
        "id": game_id,
        "mode": state.mode,
        "board": _cells(state.board),
        "history": [_cells(board) for board in state.history],
        "moveNumber": state.move,
        "currentPlayer": state.current_player,
        "winner": outcome.winner if outcome else None,
        "winningLine": list(outcome.line) if outcome else [],
        "drawn": state.drawn,
        "status": current_status(state),
        "computerPending": computer_pending,
    }


def _serialize_session(game_id: str, session: GameSession) -> Dict[str, object]:
    state, pending = session.controller.snapshot()
    return _serialize_state(game_id, state, pending)


def _action_result(
    game_id: str, session: GameSession, accepted: bool
) -> Dict[str, object]:
    payload = _serialize_session(game_id, session)
    payload["accepted"] = accepted
    return payload


@app.post("/api/game")
def create_game(request: NewGameRequest) -> Dict[str, object]:
    game_id, session = _create_session(request.mode)
    return _serialize_session(game_id, session)


@app.get("/api/game/{game_id}")
def get_game(game_id: str) -> Dict[str, object]:
    session = _get_session(game_id)
    return _serialize_session(game_id, session)


@app.delete("/api/game/{game_id}")
def delete_game(game_id: str) -> Dict[str, object]:
    session = _get_session(game_id)
    SESSIONS.pop(game_id, None)
    session.close()
    logger.info("session %s closed", game_id)
    return {"id": game_id, "deleted": True}


@app.post("/api/game/{game_id}/mode")
def select_mode(game_id: str, request: ModeRequest) -> Dict[str, object]:
    session = _get_session(game_id)
    accepted = session.controller.select_mode(request.mode)
    return _action_result(game_id, session, accepted)


@app.post("/api/game/{game_id}/move")
def make_move(game_id: str, request: MoveRequest) -> Dict[str, object]:
    session = _get_session(game_id)
    accepted = session.controller.play_move(request.cell_index)
    return _action_result(game_id, session, accepted)


@app.post("/api/game/{game_id}/reset")
def reset_game(game_id: str) -> Dict[str, object]:
    session = _get_session(game_id)
    accepted = session.controller.reset()
    return _action_result(game_id, session, accepted)


@app.post("/api/game/{game_id}/jump")
def jump_to_move(game_id: str, request: JumpRequest) -> Dict[str, object]:
    session = _get_session(game_id)
    accepted = session.controller.jump_to(request.move)
    return _action_result(game_id, session, accepted)


@app.websocket("/ws/game/{game_id}")
async def game_updates(websocket: WebSocket, game_id: str) -> None:
    """Push the session state on connect and after every change.

    The socket is closed from the server side once the session is deleted
    or expires.
    """

    session = SESSIONS.get(game_id)
    if session is None:
        await websocket.close(code=4404)
        return
    await websocket.accept()
    session.touch()

    loop = asyncio.get_running_loop()
    # version numbers of committed changes; None once the session is closed
    updates: asyncio.Queue = asyncio.Queue()

    def push(item: Optional[int]) -> None:
        # Runs on whichever thread committed the change.
        try:
            loop.call_soon_threadsafe(updates.put_nowait, item)
        except RuntimeError:
            pass

    def on_change(state: GameState) -> None:
        push(state.version)

    def on_close() -> None:
        push(None)

    unsubscribe = session.controller.subscribe(on_change)
    session.watchers.append(on_close)

    async def forward() -> None:
        while True:
            item = await updates.get()
            if item is None:
                return
            session.touch()
            await websocket.send_json(_serialize_session(game_id, session))

    async def drain() -> None:
        # Incoming messages are ignored; this only watches for disconnects.
        try:
            while True:
                await websocket.receive_text()
        except WebSocketDisconnect:
            pass

    await websocket.send_json(_serialize_session(game_id, session))
    forwarder = asyncio.create_task(forward())
    receiver = asyncio.create_task(drain())
    try:
        await asyncio.wait({forwarder, receiver}, return_when=asyncio.FIRST_COMPLETED)
    finally:
        unsubscribe()
        if on_close in session.watchers:
            session.watchers.remove(on_close)
        forwarder.cancel()
        receiver.cancel()

    if forwarder.done() and not forwarder.cancelled() and not receiver.done():
        try:
            await websocket.close(code=1000)
        except RuntimeError:
            pass


@app.get("/", response_class=HTMLResponse)
def index() -> str:
    return HTML_PAGE


HTML_PAGE = """<!DOCTYPE html>
<html lang=\"en\">
  <head>
    <meta charset=\"utf-8\" />
    <meta name=\"viewport\" content=\"width=device-width, initial-scale=1\" />
    <title>Tic Tac Toe</title>
    <style>
      :root {
        color-scheme: light;
        font-family: system-ui, -apple-system, BlinkMacSystemFont, \"Segoe UI\", sans-serif;
      }
      * {
        box-sizing: border-box;
      }
      body {
        margin: 0;
        min-height: 100vh;
        display: flex;
        justify-content: center;
        padding: 2rem 1rem 3rem;
        color: #13203a;
        background: #f2f5ff;
      }
      main {
        background: white;
        border-radius: 18px;
        box-shadow: 0 20px 40px rgba(34, 47, 79, 0.16);
        padding: 2rem;
        width: min(420px, 100%);
      }
      h1 {
        margin: 0 0 1.5rem;
        text-align: center;
      }
      .hidden {
        display: none !important;
      }
      .mode-picker {
        display: flex;
        flex-direction: column;
        gap: 1rem;
      }
      button {
        font-size: 1rem;
        padding: 0.55rem 0.95rem;
        border-radius: 10px;
        border: 1px solid rgba(60, 70, 120, 0.25);
        background: white;
        cursor: pointer;
        font-family: inherit;
      }
      button:disabled {
        cursor: default;
        opacity: 0.6;
      }
      #status {
        text-align: center;
        font-size: 1.3rem;
        font-weight: 600;
        margin-bottom: 1rem;
      }
      .board-grid {
        display: grid;
        grid-template-columns: repeat(3, 1fr);
        gap: 0.4rem;
        margin: 0 auto;
        max-width: 300px;
      }
      .cell {
        aspect-ratio: 1 / 1;
        font-size: 2.2rem;
        font-weight: 700;
        border-radius: 10px;
      }
      .cell.x {
        color: #3a7bff;
      }
      .cell.o {
        color: #f04a6a;
      }
      .cell.winning {
        background: #b9f0c4;
      }
      .controls {
        display: flex;
        gap: 0.75rem;
        justify-content: center;
        margin-top: 1.5rem;
      }
      #history {
        margin-top: 1.5rem;
        padding-left: 1.5rem;
      }
      #history button.current {
        font-weight: 700;
      }
    </style>
  </head>
  <body>
    <main>
      <h1>Tic Tac Toe</h1>
      <section id=\"mode-picker\" class=\"mode-picker\">
        <p>Choose your game mode:</p>
        <button id=\"choose-computer\">Play vs Computer</button>
        <button id=\"choose-multiplayer\">Multiplayer</button>
      </section>
      <section id=\"game-area\" class=\"hidden\">
        <div id=\"status\" role=\"status\"></div>
        <div id=\"board\" class=\"board-grid\"></div>
        <div class=\"controls\">
          <button id=\"reset\">Reset Game</button>
          <button id=\"change-mode\">Change mode</button>
        </div>
        <ol id=\"history\" start=\"0\"></ol>
      </section>
    </main>
    <script>
      const modePicker = document.getElementById('mode-picker');
      const gameArea = document.getElementById('game-area');
      const statusEl = document.getElementById('status');
      const boardEl = document.getElementById('board');
      const historyEl = document.getElementById('history');

      let gameId = null;
      let gameState = null;
      let socket = null;

      function statusText(state) {
        if (state.winner) return `Winner: ${state.winner}`;
        if (state.drawn) return 'Game Draw!';
        if (state.computerPending) return 'Computer is thinking…';
        return `Next player: ${state.currentPlayer}`;
      }

      function render() {
        if (!gameState || !gameState.mode) {
          modePicker.classList.remove('hidden');
          gameArea.classList.add('hidden');
          return;
        }
        modePicker.classList.add('hidden');
        gameArea.classList.remove('hidden');
        statusEl.textContent = statusText(gameState);

        boardEl.innerHTML = '';
        const computerTurn = gameState.mode === 'computer' && gameState.currentPlayer === 'O';
        gameState.board.forEach((value, index) => {
          const cell = document.createElement('button');
          cell.type = 'button';
          cell.classList.add('cell');
          if (value) cell.classList.add(value === 'X' ? 'x' : 'o');
          if (gameState.winningLine.includes(index)) cell.classList.add('winning');
          cell.textContent = value;
          cell.setAttribute('aria-label', value ? `${value} placed` : 'Empty cell');
          cell.disabled = Boolean(value) || Boolean(gameState.winner) || computerTurn;
          cell.addEventListener('click', () => post(`/api/game/${gameId}/move`, { cellIndex: index }));
          boardEl.appendChild(cell);
        });

        historyEl.innerHTML = '';
        gameState.history.forEach((_, move) => {
          const item = document.createElement('li');
          const button = document.createElement('button');
          button.textContent = move === 0 ? 'Go to game start' : `Go to move #${move}`;
          if (move === gameState.moveNumber) button.classList.add('current');
          button.addEventListener('click', () => post(`/api/game/${gameId}/jump`, { move }));
          item.appendChild(button);
          historyEl.appendChild(item);
        });
      }

      async function post(url, body) {
        const response = await fetch(url, {
          method: 'POST',
          headers: { 'Content-Type': 'application/json' },
          body: body === undefined ? undefined : JSON.stringify(body),
        });
        if (response.ok) {
          gameState = await response.json();
          render();
        }
      }

      function subscribe() {
        if (socket) socket.close();
        const scheme = window.location.protocol === 'https:' ? 'wss' : 'ws';
        socket = new WebSocket(`${scheme}://${window.location.host}/ws/game/${gameId}`);
        socket.addEventListener('message', (event) => {
          gameState = JSON.parse(event.data);
          render();
        });
      }

      async function startGame(mode) {
        const response = await fetch('/api/game', {
          method: 'POST',
          headers: { 'Content-Type': 'application/json' },
          body: JSON.stringify({ mode }),
        });
        if (!response.ok) return;
        gameState = await response.json();
        gameId = gameState.id;
        subscribe();
        render();
      }

      function changeMode() {
        if (socket) socket.close();
        if (gameId) fetch(`/api/game/${gameId}`, { method: 'DELETE' });
        socket = null;
        gameId = null;
        gameState = null;
        render();
      }

      document.getElementById('choose-computer').addEventListener('click', () => startGame('computer'));
      document.getElementById('choose-multiplayer').addEventListener('click', () => startGame('multiplayer'));
      document.getElementById('reset').addEventListener('click', () => post(`/api/game/${gameId}/reset`));
      document.getElementById('change-mode').addEventListener('click', changeMode);
      render();
    </script>
  </body>
</html>
"""
