"""
Ludo for four colors
----

Geometry used here:

* 52 squares on the main track. Red starts on square 0, green on 13, yellow on 26 and blue on 39.
* A piece is tracked by the number of steps it travelled from its own start:
  -1 = still at home, 0..50 = main track, 51..55 = home stretch, 56 = finished.
* Safe squares are every start square and the square eight steps further.

Rules:

* Leaving home needs a 6 (and a start square that is not blockaded by an opponent).
* Two or more pieces of one color on a main track square form a blockade: opponents can neither land on it nor pass it.
* Landing on a non-safe square held by a single opposing piece sends that piece home.
* The finish must be reached with the exact count.
* Rolling a 6, capturing or finishing a piece gives a bonus turn.
"""

from dataclasses import dataclass, replace
from enum import StrEnum
from typing import Any, Optional, Self

from gamehub.core.exceptions import CorruptSnapshotError, GameStateError, InvalidMoveError
from gamehub.core.shared_types import GameId
from gamehub.engines.base import BaseEngine, GameStatus, is_whole_number

TRACK_LENGTH = 52
PIECES_PER_PLAYER = 4
ENTER_VALUE = 6
BONUS_VALUE = 6
DIE_FACES = 6

AT_HOME = -1
LAST_TRACK_STEP = 50
FINISH_STEP = 56


class LudoColor(StrEnum):
    RED = "red"
    GREEN = "green"
    YELLOW = "yellow"
    BLUE = "blue"


# clockwise
TURN_ORDER: tuple[LudoColor, ...] = (
    LudoColor.RED,
    LudoColor.GREEN,
    LudoColor.YELLOW,
    LudoColor.BLUE,
)
START_SQUARES: dict[LudoColor, int] = {
    LudoColor.RED: 0,
    LudoColor.GREEN: 13,
    LudoColor.YELLOW: 26,
    LudoColor.BLUE: 39,
}
SAFE_SQUARES: frozenset[int] = frozenset(
    square for start in START_SQUARES.values() for square in (start, start + 8)
)


def next_color(color: LudoColor) -> LudoColor:
    return TURN_ORDER[(TURN_ORDER.index(color) + 1) % len(TURN_ORDER)]


def track_square(color: LudoColor, steps: int) -> Optional[int]:
    """Main track square of a piece, or None when it is at home / in its home stretch / finished."""
    if AT_HOME < steps <= LAST_TRACK_STEP:
        return (START_SQUARES[color] + steps) % TRACK_LENGTH
    return None


@dataclass(frozen=True)
class LudoMove:
    """Move the piece with this index (0-3) of the player to move by the current roll."""

    piece: int

    @classmethod
    def from_notation(cls, notation: str) -> Self:
        try:
            return cls(int(notation))
        except ValueError as error:
            raise InvalidMoveError(f"Cannot interpret {notation!r} as a piece index.") from error

    def to_notation(self) -> str:
        return str(self.piece)


@dataclass(frozen=True)
class LudoPosition:
    # steps travelled per piece, per color
    pieces: tuple[tuple[int, ...], ...]
    to_move: LudoColor
    dice: Optional[int] = None

    @classmethod
    def starting_position(cls) -> Self:
        at_home = (AT_HOME,) * PIECES_PER_PLAYER
        return cls(pieces=(at_home,) * len(TURN_ORDER), to_move=TURN_ORDER[0])

    def steps(self, color: LudoColor) -> tuple[int, ...]:
        return self.pieces[TURN_ORDER.index(color)]

    def with_steps(self, color: LudoColor, steps: tuple[int, ...]) -> Self:
        pieces = list(self.pieces)
        pieces[TURN_ORDER.index(color)] = steps
        return replace(self, pieces=tuple(pieces))

    def occupants(self, square: int) -> dict[LudoColor, list[int]]:
        """Indices of the pieces standing on a main track square, per color."""
        found: dict[LudoColor, list[int]] = {}
        for color in TURN_ORDER:
            for index, steps in enumerate(self.steps(color)):
                if track_square(color, steps) == square:
                    found.setdefault(color, []).append(index)
        return found

    def is_blockaded(self, square: int, for_color: LudoColor) -> bool:
        """Two or more pieces of one OTHER color stand on the square"""
        return any(
            len(indices) >= 2
            for color, indices in self.occupants(square).items()
            if color != for_color
        )

    def finished_count(self, color: LudoColor) -> int:
        return sum(1 for steps in self.steps(color) if steps == FINISH_STEP)


class LudoEngine(BaseEngine):
    game_id = GameId.LUDO
    players = TURN_ORDER
    rolls_dice = True

    def initial_position(self, **options: Any) -> LudoPosition:
        return LudoPosition.starting_position()

    def roll(self, position: LudoPosition, value: int) -> LudoPosition:
        if position.dice is not None:
            raise GameStateError(f"Already rolled a {position.dice}. Move a piece first.")
        if not 1 <= value <= DIE_FACES:
            raise GameStateError(f"A die has no face {value}.")
        return replace(position, dice=value)

    def pass_turn(self, position: LudoPosition) -> LudoPosition:
        """A roll without any legal move hands the dice to the next player (even after a 6)."""
        if position.dice is None or self.legal_moves(position):
            raise GameStateError("Can only pass after a roll that allows no move.")
        return replace(position, to_move=next_color(position.to_move), dice=None)

    # --- MOVE GENERATOR ---
    def legal_moves(
        self, position: LudoPosition, player: Optional[LudoColor] = None
    ) -> list[LudoMove]:
        color = player or position.to_move
        # moves only exist for the player holding the current roll
        if position.dice is None or color != position.to_move:
            return []
        if self.status(position).is_terminal:
            return []
        return [
            LudoMove(index)
            for index, steps in enumerate(position.steps(color))
            if self._destination(position, color, steps, position.dice) is not None
        ]

    def _destination(
        self, position: LudoPosition, color: LudoColor, steps: int, roll: int
    ) -> Optional[int]:
        """Steps after moving, or None if the piece cannot move with this roll."""
        if steps == FINISH_STEP:
            return None

        if steps == AT_HOME:
            if roll != ENTER_VALUE or position.is_blockaded(START_SQUARES[color], color):
                return None
            return 0

        target = steps + roll
        if target > FINISH_STEP:
            return None

        # every main track square passed or landed on must be free of opposing blockades
        for step in range(steps + 1, target + 1):
            square = track_square(color, step)
            if square is not None and position.is_blockaded(square, color):
                return None
        return target

    # --- MOVE APPLIER ---
    def apply(self, position: LudoPosition, move: LudoMove) -> LudoPosition:
        self._assert_legal(position, move, self.legal_moves(position))
        assert position.dice is not None
        color = position.to_move
        roll = position.dice

        steps = list(position.steps(color))
        target = self._destination(position, color, steps[move.piece], roll)
        assert target is not None
        entered_board = steps[move.piece] == AT_HOME
        steps[move.piece] = target
        new_position = position.with_steps(color, tuple(steps))

        captured = False
        square = track_square(color, target)
        if not entered_board and square is not None and square not in SAFE_SQUARES:
            for opponent, indices in position.occupants(square).items():
                # blockades were ruled out by the move generator, so these are single pieces
                if opponent == color:
                    continue
                opponent_steps = list(new_position.steps(opponent))
                for index in indices:
                    opponent_steps[index] = AT_HOME
                new_position = new_position.with_steps(opponent, tuple(opponent_steps))
                captured = True

        finished = target == FINISH_STEP
        bonus_turn = roll == BONUS_VALUE or captured or finished
        return replace(
            new_position,
            to_move=color if bonus_turn else next_color(color),
            dice=None,
        )

    # --- TERMINAL STATE DETECTOR ---
    def status(self, position: LudoPosition) -> GameStatus:
        for color in TURN_ORDER:
            if position.finished_count(color) == PIECES_PER_PLAYER:
                return GameStatus.win(color, reason="all pieces finished")
        return GameStatus.playing()

    def parse_move(self, notation: str) -> LudoMove:
        return LudoMove.from_notation(notation)

    # -- snapshots --
    def position_to_dict(self, position: LudoPosition) -> dict[str, Any]:
        return {
            "pieces": {color.value: list(position.steps(color)) for color in TURN_ORDER},
            "to_move": position.to_move.value,
            "dice": position.dice,
        }

    def position_from_dict(self, data: dict[str, Any]) -> LudoPosition:
        try:
            pieces = tuple(tuple(data["pieces"][color.value]) for color in TURN_ORDER)
            to_move = LudoColor(data["to_move"])
            dice = data.get("dice")
        except (KeyError, TypeError, ValueError, AttributeError) as error:
            raise CorruptSnapshotError(f"Invalid ludo position: {error}") from error

        for color_steps in pieces:
            if len(color_steps) != PIECES_PER_PLAYER:
                raise CorruptSnapshotError(f"Every color has {PIECES_PER_PLAYER} pieces.")
            if any(
                not is_whole_number(steps) or not AT_HOME <= steps <= FINISH_STEP
                for steps in color_steps
            ):
                raise CorruptSnapshotError(f"Piece progress out of range: {color_steps}")
        if dice is not None and (not is_whole_number(dice) or not 1 <= dice <= DIE_FACES):
            raise CorruptSnapshotError(f"Invalid die value: {dice!r}")
        return LudoPosition(pieces=pieces, to_move=to_move, dice=dice)
