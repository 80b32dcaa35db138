"""
The common contract every rules engine implements.

Key idea: the host (the session coordinator) never needs to know which game it is running.
It asks an engine for the legal moves of a position, applies one of them, and asks for the status afterwards.

Engines are stateless: all game state lives in the (immutable) Position objects they produce.
"""

from dataclasses import dataclass
from typing import Any, Hashable, Optional, Protocol, Self, Sequence

from gamehub.core.exceptions import GameStateError, InvalidMoveError
from gamehub.core.shared_types import GameId, StatusKind


@dataclass(frozen=True)
class GameStatus:
    """Outcome of the terminal-state detector. Only engines create these."""

    kind: StatusKind
    winner: Optional[str] = None
    reason: Optional[str] = None

    @classmethod
    def playing(cls) -> Self:
        return cls(StatusKind.PLAYING)

    @classmethod
    def win(cls, player: str, reason: Optional[str] = None) -> Self:
        return cls(StatusKind.WIN, winner=str(player), reason=reason)

    @classmethod
    def draw(cls, reason: Optional[str] = None) -> Self:
        return cls(StatusKind.DRAW, reason=reason)

    @classmethod
    def stalemate(cls, reason: Optional[str] = None) -> Self:
        return cls(StatusKind.STALEMATE, reason=reason)

    @property
    def is_terminal(self) -> bool:
        return self.kind != StatusKind.PLAYING


class GameEngine(Protocol):
    """
    Rules of a single game
    ----

    * `legal_moves()` is the move generator. It never mutates the position.
    * `apply()` is the move applier. It raises InvalidMoveError for anything not produced by `legal_moves()`.
    * `status()` is the terminal-state detector.

    Dice games (`rolls_dice = True`) get their roll through `roll()` before moves are generated,
    and use `pass_turn()` when a roll does not give any legal move.
    """

    game_id: GameId
    players: tuple[Any, ...]
    rolls_dice: bool

    def initial_position(self, **options: Any) -> Any: ...
    def active_player(self, position: Any) -> Any: ...
    def legal_moves(self, position: Any, player: Any = None) -> list[Any]: ...
    def apply(self, position: Any, move: Any) -> Any: ...
    def status(self, position: Any) -> GameStatus: ...
    def parse_move(self, notation: str) -> Any: ...
    def position_to_dict(self, position: Any) -> dict[str, Any]: ...
    def position_from_dict(self, data: dict[str, Any]) -> Any: ...
    def roll(self, position: Any, value: int) -> Any: ...
    def pass_turn(self, position: Any) -> Any: ...
    def pending_effect(self, position: Any) -> bool: ...
    def settle(self, position: Any) -> Any: ...


class BaseEngine:
    """
    Defaults shared by the engines.
    ----

    Most games have no dice and no timer driven follow-up, so those parts of the contract are implemented here once.
    """

    game_id: GameId
    players: tuple[Any, ...] = ()
    rolls_dice: bool = False

    def active_player(self, position: Any) -> Any:
        return position.to_move

    def roll(self, position: Any, value: int) -> Any:
        raise GameStateError(f"{self.game_id} is not played with dice.")

    def pass_turn(self, position: Any) -> Any:
        raise GameStateError(f"{self.game_id} has no pass-turn rule.")

    def pending_effect(self, position: Any) -> bool:
        return False

    def settle(self, position: Any) -> Any:
        return position

    # -- helpers for the concrete engines --
    def _assert_legal(self, position: Any, move: Hashable, legal: Sequence[Any]) -> None:
        """Every engine checks membership of the legal move set before touching the position."""
        if move not in legal:
            raise InvalidMoveError(f"Move not allowed in {self.game_id}: {move}")


def parse_cell(text: str) -> tuple[int, int]:
    """'r,c' -> (r, c). Used by the grid based games for their move notation."""
    try:
        row_str, col_str = text.split(",")
        return int(row_str), int(col_str)
    except ValueError as error:
        raise InvalidMoveError(f"Cannot interpret {text!r} as a cell 'row,col'.") from error


def format_cell(cell: tuple[int, int]) -> str:
    return f"{cell[0]},{cell[1]}"


def is_whole_number(value: Any) -> bool:
    """Strict integer check for snapshot data: JSON booleans and floats do not count."""
    return isinstance(value, int) and not isinstance(value, bool)
