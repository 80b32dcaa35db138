"""Tic-Tac-Toe on a 3x3 board. O (usually the human) opens by default."""

from dataclasses import dataclass, replace
from enum import StrEnum
from typing import Any, Optional, Self

from gamehub.core.exceptions import CorruptSnapshotError
from gamehub.core.shared_types import GameId
from gamehub.engines.base import BaseEngine, GameStatus, format_cell, parse_cell

BOARD_SIZE = 3

Cell = tuple[int, int]


class Mark(StrEnum):
    O = "O"
    X = "X"


def other(mark: Mark) -> Mark:
    return Mark.X if mark == Mark.O else Mark.O


# rows, columns, diagonals
WINNING_LINES: tuple[tuple[Cell, Cell, Cell], ...] = (
    *(((r, 0), (r, 1), (r, 2)) for r in range(BOARD_SIZE)),
    *(((0, c), (1, c), (2, c)) for c in range(BOARD_SIZE)),
    ((0, 0), (1, 1), (2, 2)),
    ((0, 2), (1, 1), (2, 0)),
)


@dataclass(frozen=True)
class TicTacToeMove:
    cell: Cell

    @classmethod
    def from_notation(cls, notation: str) -> Self:
        return cls(parse_cell(notation))

    def to_notation(self) -> str:
        return format_cell(self.cell)


@dataclass(frozen=True)
class TicTacToePosition:
    # row major, None for an empty cell
    board: tuple[tuple[Optional[Mark], ...], ...]
    to_move: Mark

    @classmethod
    def empty(cls, first: Mark = Mark.O) -> Self:
        row = (None,) * BOARD_SIZE
        return cls(board=(row,) * BOARD_SIZE, to_move=first)

    def mark(self, cell: Cell) -> Optional[Mark]:
        return self.board[cell[0]][cell[1]]

    def empty_cells(self) -> list[Cell]:
        return [
            (r, c)
            for r in range(BOARD_SIZE)
            for c in range(BOARD_SIZE)
            if self.board[r][c] is None
        ]

    def with_mark(self, cell: Cell, mark: Mark) -> Self:
        rows = [list(row) for row in self.board]
        rows[cell[0]][cell[1]] = mark
        return replace(self, board=tuple(tuple(row) for row in rows))


class TicTacToeEngine(BaseEngine):
    game_id = GameId.TIC_TAC_TOE
    players = (Mark.O, Mark.X)

    def initial_position(self, **options: Any) -> TicTacToePosition:
        return TicTacToePosition.empty(Mark(options.get("first", Mark.O)))

    def legal_moves(
        self, position: TicTacToePosition, player: Optional[Mark] = None
    ) -> list[TicTacToeMove]:
        # who moves does not change the set of free cells
        if self.status(position).is_terminal:
            return []
        return [TicTacToeMove(cell) for cell in position.empty_cells()]

    def apply(
        self, position: TicTacToePosition, move: TicTacToeMove
    ) -> TicTacToePosition:
        self._assert_legal(position, move, self.legal_moves(position))
        placed = position.with_mark(move.cell, position.to_move)
        return replace(placed, to_move=other(position.to_move))

    def status(self, position: TicTacToePosition) -> GameStatus:
        winner = self.winner(position)
        if winner is not None:
            return GameStatus.win(winner, reason="three in a line")
        if not position.empty_cells():
            return GameStatus.draw(reason="board full")
        return GameStatus.playing()

    def winner(self, position: TicTacToePosition) -> Optional[Mark]:
        for line in WINNING_LINES:
            first = position.mark(line[0])
            if first is not None and all(position.mark(cell) == first for cell in line):
                return first
        return None

    def winning_lines(self, position: TicTacToePosition) -> list[tuple[Cell, ...]]:
        """All completed lines (the UI highlights them)."""
        return [
            line
            for line in WINNING_LINES
            if position.mark(line[0]) is not None
            and all(position.mark(cell) == position.mark(line[0]) for cell in line)
        ]

    def parse_move(self, notation: str) -> TicTacToeMove:
        return TicTacToeMove.from_notation(notation)

    # -- snapshots --
    def position_to_dict(self, position: TicTacToePosition) -> dict[str, Any]:
        return {
            "board": [
                [mark.value if mark else None for mark in row] for row in position.board
            ],
            "to_move": position.to_move.value,
        }

    def position_from_dict(self, data: dict[str, Any]) -> TicTacToePosition:
        try:
            rows = data["board"]
            if len(rows) != BOARD_SIZE or any(len(row) != BOARD_SIZE for row in rows):
                raise CorruptSnapshotError(f"Expected a {BOARD_SIZE}x{BOARD_SIZE} board.")
            board = tuple(
                tuple(Mark(cell) if cell is not None else None for cell in row)
                for row in rows
            )
            position = TicTacToePosition(board=board, to_move=Mark(data["to_move"]))
        except (KeyError, TypeError, ValueError) as error:
            raise CorruptSnapshotError(f"Invalid tic-tac-toe position: {error}") from error

        # players alternate, so the counts never differ by more than one
        o_count = sum(row.count(Mark.O) for row in board)
        x_count = sum(row.count(Mark.X) for row in board)
        if abs(o_count - x_count) > 1:
            raise CorruptSnapshotError(
                f"Impossible mark counts: O={o_count}, X={x_count}."
            )
        # whoever placed more marks opened the game and has just moved
        if o_count != x_count and position.to_move == (Mark.O if o_count > x_count else Mark.X):
            raise CorruptSnapshotError(
                f"{position.to_move} cannot be to move with O={o_count}, X={x_count}."
            )
        if len({position.mark(line[0]) for line in self.winning_lines(position)}) > 1:
            raise CorruptSnapshotError("Both players completed a line.")
        return position
