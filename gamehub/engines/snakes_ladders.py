"""
Snakes & Ladders for two players on the classic 10x10 board.

The die decides everything: after a roll the only legal move is to advance.
Landing exactly on the start of a ladder or the head of a snake teleports the token to the other end.
Overshooting the final square leaves the token where it is. A 6 grants another roll.
"""

from dataclasses import dataclass, replace
from enum import StrEnum
from typing import Any, Optional, Self

from gamehub.core.exceptions import CorruptSnapshotError, GameStateError, InvalidMoveError
from gamehub.core.shared_types import GameId
from gamehub.engines.base import BaseEngine, GameStatus, is_whole_number

FIRST_SQUARE = 1
WIN_SQUARE = 100
BONUS_VALUE = 6
DIE_FACES = 6

# ladder if end > start, snake if end < start
SNAKES_LADDERS_MAP: dict[int, int] = {
    4: 14,
    9: 31,
    17: 7,
    20: 38,
    28: 84,
    40: 59,
    51: 67,
    54: 34,
    62: 19,
    63: 81,
    64: 60,
    71: 91,
    87: 24,
    93: 73,
    95: 75,
    99: 78,
}


class Racer(StrEnum):
    PLAYER = "player"
    AI = "ai"


def other(racer: Racer) -> Racer:
    return Racer.AI if racer == Racer.PLAYER else Racer.PLAYER


@dataclass(frozen=True)
class Advance:
    """Move the token of the player to move by the current roll"""

    def to_notation(self) -> str:
        return "advance"


ADVANCE = Advance()


@dataclass(frozen=True)
class SnakesLaddersPosition:
    squares: tuple[tuple[Racer, int], ...]
    to_move: Racer
    dice: Optional[int] = None

    @classmethod
    def starting_position(cls) -> Self:
        return cls(
            squares=((Racer.PLAYER, FIRST_SQUARE), (Racer.AI, FIRST_SQUARE)),
            to_move=Racer.PLAYER,
        )

    def square_of(self, racer: Racer) -> int:
        return dict(self.squares)[racer]

    def with_square(self, racer: Racer, square: int) -> Self:
        squares = dict(self.squares)
        squares[racer] = square
        return replace(self, squares=tuple(squares.items()))


class SnakesLaddersEngine(BaseEngine):
    game_id = GameId.SNAKES_AND_LADDERS
    players = (Racer.PLAYER, Racer.AI)
    rolls_dice = True

    def __init__(self, board_map: Optional[dict[int, int]] = None) -> None:
        self.board_map = dict(SNAKES_LADDERS_MAP if board_map is None else board_map)

    def initial_position(self, **options: Any) -> SnakesLaddersPosition:
        return SnakesLaddersPosition.starting_position()

    def roll(self, position: SnakesLaddersPosition, value: int) -> SnakesLaddersPosition:
        if position.dice is not None:
            raise GameStateError(f"Already rolled a {position.dice}.")
        if not 1 <= value <= DIE_FACES:
            raise GameStateError(f"A die has no face {value}.")
        return replace(position, dice=value)

    def legal_moves(
        self, position: SnakesLaddersPosition, player: Optional[Racer] = None
    ) -> list[Advance]:
        racer = player or position.to_move
        if position.dice is None or racer != position.to_move:
            return []
        if self.status(position).is_terminal:
            return []
        # an overshoot is still a (no-op) move: the turn passes as usual
        return [ADVANCE]

    def apply(
        self, position: SnakesLaddersPosition, move: Advance
    ) -> SnakesLaddersPosition:
        self._assert_legal(position, move, self.legal_moves(position))
        assert position.dice is not None
        racer = position.to_move
        roll = position.dice

        square = self.destination(position.square_of(racer), roll)
        return replace(
            position.with_square(racer, square),
            to_move=racer if roll == BONUS_VALUE else other(racer),
            dice=None,
        )

    def status(self, position: SnakesLaddersPosition) -> GameStatus:
        for racer, square in position.squares:
            if square == WIN_SQUARE:
                return GameStatus.win(racer, reason=f"reached {WIN_SQUARE}")
        return GameStatus.playing()

    def destination(self, square: int, roll: int) -> int:
        """Where a token on `square` ends up after rolling `roll` (ladders/snakes included)."""
        target = square + roll
        if target > WIN_SQUARE:
            return square
        return self.board_map.get(target, target)

    def is_ladder(self, square: int) -> bool:
        return self.board_map.get(square, square) > square

    def is_snake(self, square: int) -> bool:
        return self.board_map.get(square, square) < square

    def parse_move(self, notation: str) -> Advance:
        if notation != ADVANCE.to_notation():
            raise InvalidMoveError(f"The only move in {self.game_id} is 'advance', got {notation!r}.")
        return ADVANCE

    # -- snapshots --
    def position_to_dict(self, position: SnakesLaddersPosition) -> dict[str, Any]:
        return {
            "squares": {racer.value: square for racer, square in position.squares},
            "to_move": position.to_move.value,
            "dice": position.dice,
        }

    def position_from_dict(self, data: dict[str, Any]) -> SnakesLaddersPosition:
        try:
            squares = tuple(
                (racer, data["squares"][racer.value]) for racer in self.players
            )
            to_move = Racer(data["to_move"])
            dice = data.get("dice")
        except (KeyError, TypeError, ValueError, AttributeError) as error:
            raise CorruptSnapshotError(f"Invalid snakes & ladders position: {error}") from error

        for racer, square in squares:
            if not is_whole_number(square) or not FIRST_SQUARE <= square <= WIN_SQUARE:
                raise CorruptSnapshotError(f"{racer} stands off the board: {square}")
        if dice is not None and (not is_whole_number(dice) or not 1 <= dice <= DIE_FACES):
            raise CorruptSnapshotError(f"Invalid die value: {dice!r}")
        return SnakesLaddersPosition(squares=squares, to_move=to_move, dice=dice)
