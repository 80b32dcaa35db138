"""
Lookup of the rules engine for a game id, following the strategy tables used by the chess movement rules.
"""

from typing import Any, Callable

from gamehub.core.config import Settings
from gamehub.core.exceptions import GameStateError
from gamehub.core.shared_types import GameId
from gamehub.engines.base import GameEngine
from gamehub.engines.checkers import CheckersColor, CheckersEngine
from gamehub.engines.chess.engine import ChessEngine
from gamehub.engines.chess.pieces import Color
from gamehub.engines.ludo import LudoColor, LudoEngine
from gamehub.engines.memory import MemoryEngine, MemoryPlayer
from gamehub.engines.snakes_ladders import Racer, SnakesLaddersEngine
from gamehub.engines.sudoku import SudokuEngine, SudokuPlayer
from gamehub.engines.tic_tac_toe import Mark, TicTacToeEngine

EngineFactory = Callable[[Settings], GameEngine]

ENGINES: dict[GameId, EngineFactory] = {
    GameId.TIC_TAC_TOE: lambda settings: TicTacToeEngine(),
    GameId.CHECKERS: lambda settings: CheckersEngine(),
    GameId.CHESS: lambda settings: ChessEngine(),
    GameId.LUDO: lambda settings: LudoEngine(),
    GameId.SNAKES_AND_LADDERS: lambda settings: SnakesLaddersEngine(),
    GameId.SUDOKU: lambda settings: SudokuEngine(default_size=settings.sudoku_default_size),
    GameId.MEMORY: lambda settings: MemoryEngine(),
}

# the side the human plays by default, every other player is driven by the opponent chooser
HUMAN_PLAYERS: dict[GameId, frozenset[Any]] = {
    GameId.TIC_TAC_TOE: frozenset({Mark.O}),
    GameId.CHECKERS: frozenset({CheckersColor.RED}),
    GameId.CHESS: frozenset({Color.WHITE}),
    GameId.LUDO: frozenset({LudoColor.RED}),
    GameId.SNAKES_AND_LADDERS: frozenset({Racer.PLAYER}),
    GameId.SUDOKU: frozenset({SudokuPlayer.SOLVER}),
    GameId.MEMORY: frozenset({MemoryPlayer.PLAYER}),
}


def create_engine(game_id: GameId, settings: Settings) -> GameEngine:
    try:
        factory = ENGINES[game_id]
    except KeyError as error:
        raise GameStateError(f"No rules engine registered for {game_id!r}.") from error
    return factory(settings)
