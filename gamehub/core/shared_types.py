"""
Type definitions used across layers
"""

from enum import StrEnum


class GameId(StrEnum):
    """Identifiers of the games hosted by the front-end."""

    TIC_TAC_TOE = "tic-tac-toe"
    CHECKERS = "checkers"
    CHESS = "chess"
    LUDO = "ludo"
    SNAKES_AND_LADDERS = "snake-and-ladder"
    SUDOKU = "sudoku"
    MEMORY = "memory-game"


class StatusKind(StrEnum):
    PLAYING = "playing"
    WIN = "win"
    DRAW = "draw"
    STALEMATE = "stalemate"


class Outcome(StrEnum):
    """Result of a finished session as seen by the human player (what the stats recorder stores)."""

    WIN = "win"
    LOSS = "loss"
    DRAW = "draw"


class SessionState(StrEnum):
    AWAITING_HUMAN_MOVE = "awaiting human move"
    AWAITING_OPPONENT_MOVE = "awaiting opponent move"
    RESOLVING = "resolving"
    FINISHED = "finished"
