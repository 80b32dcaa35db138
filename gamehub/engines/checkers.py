"""
Checkers (8x8, English draughts starting layout)
----

* Pieces stand on the dark squares: (row + col) is odd.
* Black starts on rows 0-2 and moves down the board, red starts on rows 5-7 and moves up. Red opens.
* Men move diagonally forward, kings in both directions.
* Capture priority: when any jump is available, only jumps are legal.
* A man reaching the far row is crowned.

NOTE: A turn is a single step or a single jump. Jump chains are not continued after a capture.
"""

from dataclasses import dataclass, replace
from enum import StrEnum
from typing import Any, Optional, Self

from gamehub.core.exceptions import CorruptSnapshotError, InvalidMoveError
from gamehub.core.shared_types import GameId
from gamehub.engines.base import BaseEngine, GameStatus, format_cell, parse_cell

BOARD_SIZE = 8
STARTING_ROWS = 3

Cell = tuple[int, int]


class CheckersColor(StrEnum):
    RED = "red"
    BLACK = "black"


def opponent_of(color: CheckersColor) -> CheckersColor:
    return CheckersColor.BLACK if color == CheckersColor.RED else CheckersColor.RED


# Red moves UP the board (towards row 0), black moves DOWN
FORWARD: dict[CheckersColor, int] = {CheckersColor.RED: -1, CheckersColor.BLACK: 1}
CROWNING_ROW: dict[CheckersColor, int] = {
    CheckersColor.RED: 0,
    CheckersColor.BLACK: BOARD_SIZE - 1,
}


@dataclass(frozen=True)
class CheckersPiece:
    color: CheckersColor
    is_king: bool = False

    def directions(self) -> list[int]:
        """Row directions this piece may move in."""
        return [-1, 1] if self.is_king else [FORWARD[self.color]]

    def to_code(self) -> str:
        """Compact snapshot code: 'r', 'b' for men and 'R', 'B' for kings (same letters the AI prompt used)."""
        letter = self.color.value[0]
        return letter.upper() if self.is_king else letter

    @classmethod
    def from_code(cls, code: str) -> Self:
        colors = {color.value[0]: color for color in CheckersColor}
        return cls(colors[code.lower()], is_king=code.isupper())


@dataclass(frozen=True)
class CheckersMove:
    from_cell: Cell
    to_cell: Cell
    captured: Optional[Cell] = None

    @property
    def is_capture(self) -> bool:
        return self.captured is not None

    @classmethod
    def from_notation(cls, notation: str) -> Self:
        """'r,c>r,c'. A jump is recognised by its length, the jumped cell lies in the middle."""
        try:
            from_text, to_text = notation.split(">")
        except ValueError as error:
            raise InvalidMoveError(f"Cannot interpret {notation!r} as 'r,c>r,c'.") from error
        from_cell, to_cell = parse_cell(from_text), parse_cell(to_text)
        captured = None
        if abs(to_cell[0] - from_cell[0]) == 2:
            captured = (
                (from_cell[0] + to_cell[0]) // 2,
                (from_cell[1] + to_cell[1]) // 2,
            )
        return cls(from_cell, to_cell, captured)

    def to_notation(self) -> str:
        return f"{format_cell(self.from_cell)}>{format_cell(self.to_cell)}"


Grid = tuple[tuple[Optional[CheckersPiece], ...], ...]


def is_within_bounds(cell: Cell) -> bool:
    return 0 <= cell[0] < BOARD_SIZE and 0 <= cell[1] < BOARD_SIZE


@dataclass(frozen=True)
class CheckersPosition:
    board: Grid
    to_move: CheckersColor

    @classmethod
    def starting_position(cls) -> Self:
        rows: list[list[Optional[CheckersPiece]]] = []
        for r in range(BOARD_SIZE):
            row: list[Optional[CheckersPiece]] = []
            for c in range(BOARD_SIZE):
                piece = None
                if (r + c) % 2 == 1:
                    if r < STARTING_ROWS:
                        piece = CheckersPiece(CheckersColor.BLACK)
                    elif r >= BOARD_SIZE - STARTING_ROWS:
                        piece = CheckersPiece(CheckersColor.RED)
                row.append(piece)
            rows.append(row)
        return cls(board=tuple(tuple(row) for row in rows), to_move=CheckersColor.RED)

    def piece(self, cell: Cell) -> Optional[CheckersPiece]:
        return self.board[cell[0]][cell[1]]

    def locate_color(self, color: CheckersColor) -> list[Cell]:
        return [
            (r, c)
            for r in range(BOARD_SIZE)
            for c in range(BOARD_SIZE)
            if (piece := self.board[r][c]) is not None and piece.color == color
        ]

    def count(self, color: CheckersColor) -> int:
        return len(self.locate_color(color))


# --- MOVEMENT RULES ---
def candidate_steps(position: CheckersPosition, cell: Cell) -> list[CheckersMove]:
    piece = position.piece(cell)
    assert piece is not None
    moves: list[CheckersMove] = []
    for dr in piece.directions():
        for dc in (-1, 1):
            target = (cell[0] + dr, cell[1] + dc)
            if is_within_bounds(target) and position.piece(target) is None:
                moves.append(CheckersMove(cell, target))
    return moves


def candidate_jumps(position: CheckersPosition, cell: Cell) -> list[CheckersMove]:
    """Jump over an adjacent opponent piece onto the empty square right behind it."""
    piece = position.piece(cell)
    assert piece is not None
    moves: list[CheckersMove] = []
    for dr in piece.directions():
        for dc in (-1, 1):
            jumped = (cell[0] + dr, cell[1] + dc)
            landing = (cell[0] + 2 * dr, cell[1] + 2 * dc)
            if not is_within_bounds(landing) or position.piece(landing) is not None:
                continue
            jumped_piece = position.piece(jumped)
            if jumped_piece is not None and jumped_piece.color != piece.color:
                moves.append(CheckersMove(cell, landing, captured=jumped))
    return moves


class CheckersEngine(BaseEngine):
    game_id = GameId.CHECKERS
    players = (CheckersColor.RED, CheckersColor.BLACK)

    def initial_position(self, **options: Any) -> CheckersPosition:
        return CheckersPosition.starting_position()

    def legal_moves(
        self, position: CheckersPosition, player: Optional[CheckersColor] = None
    ) -> list[CheckersMove]:
        color = player or position.to_move
        if position.count(CheckersColor.RED) == 0 or position.count(CheckersColor.BLACK) == 0:
            return []

        jumps: list[CheckersMove] = []
        steps: list[CheckersMove] = []
        for cell in position.locate_color(color):
            jumps.extend(candidate_jumps(position, cell))
            steps.extend(candidate_steps(position, cell))

        # capture priority
        return jumps if jumps else steps

    def apply(self, position: CheckersPosition, move: CheckersMove) -> CheckersPosition:
        self._assert_legal(position, move, self.legal_moves(position))

        rows = [list(row) for row in position.board]
        piece = rows[move.from_cell[0]][move.from_cell[1]]
        assert piece is not None
        rows[move.from_cell[0]][move.from_cell[1]] = None
        if move.captured is not None:
            rows[move.captured[0]][move.captured[1]] = None

        if not piece.is_king and move.to_cell[0] == CROWNING_ROW[piece.color]:
            piece = replace(piece, is_king=True)
        rows[move.to_cell[0]][move.to_cell[1]] = piece

        return CheckersPosition(
            board=tuple(tuple(row) for row in rows),
            to_move=opponent_of(position.to_move),
        )

    def status(self, position: CheckersPosition) -> GameStatus:
        for color in self.players:
            if position.count(color) == 0:
                return GameStatus.win(opponent_of(color), reason="no pieces left")
        if not self.legal_moves(position):
            return GameStatus.win(opponent_of(position.to_move), reason="no legal moves")
        return GameStatus.playing()

    def parse_move(self, notation: str) -> CheckersMove:
        return CheckersMove.from_notation(notation)

    # -- snapshots --
    def position_to_dict(self, position: CheckersPosition) -> dict[str, Any]:
        return {
            "board": [
                [piece.to_code() if piece else None for piece in row]
                for row in position.board
            ],
            "to_move": position.to_move.value,
        }

    def position_from_dict(self, data: dict[str, Any]) -> CheckersPosition:
        try:
            rows = data["board"]
            if len(rows) != BOARD_SIZE or any(len(row) != BOARD_SIZE for row in rows):
                raise CorruptSnapshotError(f"Expected a {BOARD_SIZE}x{BOARD_SIZE} board.")
            board = tuple(
                tuple(CheckersPiece.from_code(code) if code else None for code in row)
                for row in rows
            )
            to_move = CheckersColor(data["to_move"])
        except (KeyError, TypeError, ValueError, AttributeError) as error:
            raise CorruptSnapshotError(f"Invalid checkers position: {error}") from error

        for r, row in enumerate(board):
            for c, piece in enumerate(row):
                if piece is not None and (r + c) % 2 == 0:
                    raise CorruptSnapshotError(f"Piece on a light square: {(r, c)}")
        return CheckersPosition(board=board, to_move=to_move)
