"""Tic-tac-toe package exposing game rules, the computer player, and the web application."""

from .ai import RandomAI
from .controller import GameController
from .game import GameState, WinOutcome, detect_winner
from .ui import app

__all__ = [
    "GameController",
    "GameState",
    "RandomAI",
    "WinOutcome",
    "app",
    "detect_winner",
]
