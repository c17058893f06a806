"""Random-move computer opponent."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional
import random

from .game import COMPUTER_PLAYER, EMPTY, Board, Player, detect_winner, empty_cells


def player_to_move(board: Board) -> Player:
    # X moves first, so an odd number of empty cells means X is up.
    return "X" if board.count(EMPTY) % 2 == 1 else "O"


@dataclass
class RandomAI:
    """Computer player that picks uniformly among the open cells.

    Pass a seeded ``random.Random`` as ``rng`` for reproducible games.
    """

    player: Player = COMPUTER_PLAYER
    rng: random.Random = field(default_factory=random.Random, repr=False)

    def choose(self, board: Board) -> Optional[int]:
        if detect_winner(board) is not None:
            return None
        moves = empty_cells(board)
        if not moves:
            return None
        if player_to_move(board) != self.player:
            raise ValueError("It is not this computer player's turn")
        return self.rng.choice(moves)
