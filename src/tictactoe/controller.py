"""Session controller: owns the game state and the delayed computer move."""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import Any, Callable, List, Optional, Tuple

from . import game
from .ai import RandomAI
from .game import GameState

logger = logging.getLogger(__name__)

COMPUTER_MOVE_DELAY = 0.5

Listener = Callable[[GameState], None]
# scheduler(delay, callback) -> handle exposing cancel()
Scheduler = Callable[[float, Callable[[], None]], Any]


def start_timer(delay: float, callback: Callable[[], None]) -> threading.Timer:
    timer = threading.Timer(delay, callback)
    timer.daemon = True
    timer.start()
    return timer


@dataclass
class PendingMove:
    version: int
    handle: Any


class GameController:
    """Holds one session's :class:`GameState` and applies transitions to it.

    Every public operation returns whether the state changed. Illegal
    actions are ignored rather than reported. Listeners are called with the
    new state after each change, while the controller lock is held, so they
    see changes in order and must not block.
    """

    def __init__(
        self,
        ai: Optional[RandomAI] = None,
        delay: float = COMPUTER_MOVE_DELAY,
        scheduler: Scheduler = start_timer,
    ) -> None:
        self.ai = ai if ai is not None else RandomAI()
        self.delay = delay
        self._scheduler = scheduler
        self._state = GameState()
        self._lock = threading.RLock()
        self._listeners: List[Listener] = []
        self._pending: Optional[PendingMove] = None

    # ---- read access ----

    @property
    def state(self) -> GameState:
        return self._state

    @property
    def computer_pending(self) -> bool:
        return self._pending is not None

    def snapshot(self) -> Tuple[GameState, bool]:
        with self._lock:
            return self._state, self._pending is not None

    def status(self) -> str:
        return game.current_status(self._state)

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        with self._lock:
            self._listeners.append(listener)

        def unsubscribe() -> None:
            with self._lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)

        return unsubscribe

    # ---- operations ----

    def select_mode(self, mode: str) -> bool:
        with self._lock:
            return self._commit(game.select_mode(self._state, mode))

    def play_move(self, index: int) -> bool:
        with self._lock:
            return self._commit(game.play_move(self._state, index))

    def computer_move(self) -> bool:
        with self._lock:
            return self._commit(game.computer_move(self._state, self.ai.choose))

    def reset(self) -> bool:
        with self._lock:
            return self._commit(game.reset(self._state))

    def jump_to(self, move: int) -> bool:
        with self._lock:
            return self._commit(game.jump_to(self._state, move))

    def close(self) -> None:
        with self._lock:
            self._cancel_pending()
            self._listeners.clear()

    # ---- internals ----

    def _commit(self, new_state: GameState) -> bool:
        if new_state is self._state:
            return False
        self._state = new_state
        if self._pending is not None and self._pending.version != new_state.version:
            self._cancel_pending()

        logger.debug(
            "state v%d: move %d, %s",
            new_state.version,
            new_state.move,
            game.current_status(new_state),
        )
        if new_state.outcome is not None or new_state.drawn:
            logger.info("game finished: %s", game.current_status(new_state))

        self._arm_computer_move()
        for listener in list(self._listeners):
            listener(new_state)
        return True

    def _arm_computer_move(self) -> None:
        state = self._state
        if not game.needs_computer_move(state):
            return
        if self._pending is not None and self._pending.version == state.version:
            return
        version = state.version
        handle = self._scheduler(self.delay, lambda: self._run_scheduled(version))
        self._pending = PendingMove(version=version, handle=handle)
        logger.debug("computer move scheduled for v%d in %.2fs", version, self.delay)

    def _cancel_pending(self) -> None:
        if self._pending is None:
            return
        logger.debug("computer move for v%d cancelled", self._pending.version)
        self._pending.handle.cancel()
        self._pending = None

    def _run_scheduled(self, version: int) -> None:
        with self._lock:
            pending = self._pending
            if pending is None or pending.version != version:
                return
            self._pending = None
            if self._state.version != version:
                return
            self._commit(game.computer_move(self._state, self.ai.choose))
