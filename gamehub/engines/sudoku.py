"""
Sudoku (single player)
----

A puzzle consists of the givens (pre-filled cells) and the known solution. The player assigns values to the other cells,
and the game is won as soon as the grid equals the solution.

Supported sizes: 4x4 (2x2 boxes), 6x6 (2x3 boxes: 2 rows, 3 columns) and 9x9 (3x3 boxes).
"""

import random
from dataclasses import dataclass, replace
from enum import StrEnum
from typing import Any, Optional, Self

from gamehub.core.exceptions import CorruptSnapshotError, InvalidMoveError, InvalidPuzzleError
from gamehub.core.shared_types import GameId
from gamehub.engines.base import BaseEngine, GameStatus, format_cell, parse_cell

EMPTY = 0

# grid size -> (box height, box width)
BOX_SHAPES: dict[int, tuple[int, int]] = {
    4: (2, 2),
    6: (2, 3),
    9: (3, 3),
}

Cell = tuple[int, int]
Grid = tuple[tuple[int, ...], ...]


class SudokuPlayer(StrEnum):
    SOLVER = "solver"


class Difficulty(StrEnum):
    EASY = "easy"
    MEDIUM = "medium"
    HARD = "hard"


# share of cells left empty when a puzzle is generated
BLANK_RATIO: dict[Difficulty, float] = {
    Difficulty.EASY: 0.4,
    Difficulty.MEDIUM: 0.55,
    Difficulty.HARD: 0.65,
}


@dataclass(frozen=True)
class SudokuMove:
    """Write `value` into `cell`. A value of 0 clears the cell."""

    cell: Cell
    value: int

    @classmethod
    def from_notation(cls, notation: str) -> Self:
        """'r,c=v' -> SudokuMove((r, c), v)"""
        cell_str, separator, value_str = notation.partition("=")
        if not separator or not value_str.strip().isdigit():
            raise InvalidMoveError(f"Cannot interpret {notation!r} as 'row,col=value'.")
        return cls(parse_cell(cell_str), int(value_str))

    def to_notation(self) -> str:
        return f"{format_cell(self.cell)}={self.value}"


def box_of(cell: Cell, size: int) -> tuple[int, int]:
    box_height, box_width = BOX_SHAPES[size]
    return cell[0] // box_height, cell[1] // box_width


def units(size: int) -> list[list[Cell]]:
    """Every row, column and box of a grid: each of them must hold the values 1..size exactly once."""
    box_height, box_width = BOX_SHAPES[size]
    rows = [[(r, c) for c in range(size)] for r in range(size)]
    columns = [[(r, c) for r in range(size)] for c in range(size)]
    boxes = [
        [
            (top + r, left + c)
            for r in range(box_height)
            for c in range(box_width)
        ]
        for top in range(0, size, box_height)
        for left in range(0, size, box_width)
    ]
    return rows + columns + boxes


def validate_puzzle(puzzle: Grid, solution: Grid) -> None:
    """Raise InvalidPuzzleError unless the givens and the solution describe one consistent puzzle."""
    size = len(solution)
    if size not in BOX_SHAPES:
        raise InvalidPuzzleError(f"Unsupported grid size {size}, expected one of {sorted(BOX_SHAPES)}.")
    if len(puzzle) != size or any(len(row) != size for row in (*puzzle, *solution)):
        raise InvalidPuzzleError(f"Puzzle and solution must both be {size}x{size} grids.")

    digits = set(range(1, size + 1))
    for unit in units(size):
        if {solution[r][c] for r, c in unit} != digits:
            raise InvalidPuzzleError(f"Solution is not a valid {size}x{size} sudoku.")

    for r in range(size):
        for c in range(size):
            given = puzzle[r][c]
            if given != EMPTY and given != solution[r][c]:
                raise InvalidPuzzleError(
                    f"Given {given} at {format_cell((r, c))} disagrees with the solution."
                )


def generate_solution(size: int, rng: random.Random) -> Grid:
    """
    Fill a grid with the classic shifted-row pattern, then shuffle it without breaking any rule:
    digits are relabelled, and rows are shuffled within their band.
    """
    box_height, box_width = BOX_SHAPES[size]
    pattern = [
        [(r % box_height * box_width + r // box_height + c) % size + 1 for c in range(size)]
        for r in range(size)
    ]

    relabel = list(range(1, size + 1))
    rng.shuffle(relabel)

    row_order: list[int] = []
    for band in range(0, size, box_height):
        rows = list(range(band, band + box_height))
        rng.shuffle(rows)
        row_order.extend(rows)

    return tuple(tuple(relabel[pattern[r][c] - 1] for c in range(size)) for r in row_order)


def generate_puzzle(
    size: int, difficulty: Difficulty, rng: random.Random
) -> tuple[Grid, Grid]:
    """Random (puzzle, solution) pair. The givens are not guaranteed to admit a single solution."""
    solution = generate_solution(size, rng)
    cells = [(r, c) for r in range(size) for c in range(size)]
    blanks = set(rng.sample(cells, round(len(cells) * BLANK_RATIO[difficulty])))
    puzzle = tuple(
        tuple(EMPTY if (r, c) in blanks else solution[r][c] for c in range(size))
        for r in range(size)
    )
    return puzzle, solution


@dataclass(frozen=True)
class SudokuPosition:
    puzzle: Grid
    solution: Grid
    grid: Grid
    to_move: SudokuPlayer = SudokuPlayer.SOLVER

    @classmethod
    def from_puzzle(cls, puzzle: Grid, solution: Grid) -> Self:
        validate_puzzle(puzzle, solution)
        return cls(puzzle=puzzle, solution=solution, grid=puzzle)

    @property
    def size(self) -> int:
        return len(self.grid)

    def value(self, cell: Cell) -> int:
        return self.grid[cell[0]][cell[1]]

    def is_given(self, cell: Cell) -> bool:
        return self.puzzle[cell[0]][cell[1]] != EMPTY

    def with_value(self, cell: Cell, value: int) -> Self:
        rows = [list(row) for row in self.grid]
        rows[cell[0]][cell[1]] = value
        return replace(self, grid=tuple(tuple(row) for row in rows))


class SudokuEngine(BaseEngine):
    game_id = GameId.SUDOKU
    players = (SudokuPlayer.SOLVER,)

    def __init__(self, default_size: int = 9) -> None:
        self.default_size = default_size

    def initial_position(self, **options: Any) -> SudokuPosition:
        """
        Options
        ----
        * puzzle/solution: play this puzzle (validated)
        * size, difficulty, rng: generate a puzzle otherwise
        """
        puzzle, solution = options.get("puzzle"), options.get("solution")
        if puzzle is not None or solution is not None:
            if puzzle is None or solution is None:
                raise InvalidPuzzleError("A puzzle needs both its givens and its solution.")
            return SudokuPosition.from_puzzle(to_grid(puzzle), to_grid(solution))

        size = int(options.get("size", self.default_size))
        if size not in BOX_SHAPES:
            raise InvalidPuzzleError(f"Unsupported grid size {size}, expected one of {sorted(BOX_SHAPES)}.")
        difficulty = Difficulty(options.get("difficulty", Difficulty.EASY))
        rng: random.Random = options.get("rng") or random.Random()
        return SudokuPosition.from_puzzle(*generate_puzzle(size, difficulty, rng))

    def is_legal(self, position: SudokuPosition, move: SudokuMove) -> bool:
        row, col = move.cell
        size = position.size
        return (
            0 <= row < size
            and 0 <= col < size
            and not position.is_given(move.cell)
            and EMPTY <= move.value <= size
        )

    def legal_moves(
        self, position: SudokuPosition, player: Optional[SudokuPlayer] = None
    ) -> list[SudokuMove]:
        if self.status(position).is_terminal:
            return []
        size = position.size
        return [
            SudokuMove((r, c), value)
            for r in range(size)
            for c in range(size)
            if not position.is_given((r, c))
            for value in range(EMPTY, size + 1)
        ]

    def apply(self, position: SudokuPosition, move: SudokuMove) -> SudokuPosition:
        # same check as membership of legal_moves(), without building the full list
        if self.status(position).is_terminal or not self.is_legal(position, move):
            raise InvalidMoveError(f"Move not allowed in {self.game_id}: {move}")
        return position.with_value(move.cell, move.value)

    def status(self, position: SudokuPosition) -> GameStatus:
        if position.grid == position.solution:
            return GameStatus.win(SudokuPlayer.SOLVER, reason="puzzle solved")
        return GameStatus.playing()

    def conflicts(self, position: SudokuPosition) -> set[Cell]:
        """Filled cells sharing their value with another cell of the same row, column or box."""
        clashing: set[Cell] = set()
        for unit in units(position.size):
            seen: dict[int, list[Cell]] = {}
            for cell in unit:
                if position.value(cell) != EMPTY:
                    seen.setdefault(position.value(cell), []).append(cell)
            for cells in seen.values():
                if len(cells) > 1:
                    clashing.update(cells)
        return clashing

    def parse_move(self, notation: str) -> SudokuMove:
        return SudokuMove.from_notation(notation)

    # -- snapshots --
    def position_to_dict(self, position: SudokuPosition) -> dict[str, Any]:
        return {
            "puzzle": [list(row) for row in position.puzzle],
            "solution": [list(row) for row in position.solution],
            "grid": [list(row) for row in position.grid],
        }

    def position_from_dict(self, data: dict[str, Any]) -> SudokuPosition:
        try:
            puzzle = to_grid(data["puzzle"])
            solution = to_grid(data["solution"])
            grid = to_grid(data["grid"])
            validate_puzzle(puzzle, solution)
        except (KeyError, TypeError, ValueError, InvalidPuzzleError) as error:
            raise CorruptSnapshotError(f"Invalid sudoku position: {error}") from error

        size = len(solution)
        if len(grid) != size or any(len(row) != size for row in grid):
            raise CorruptSnapshotError(f"Expected a {size}x{size} grid.")
        for r in range(size):
            for c in range(size):
                if not EMPTY <= grid[r][c] <= size:
                    raise CorruptSnapshotError(f"Value out of range at {format_cell((r, c))}.")
                if puzzle[r][c] != EMPTY and grid[r][c] != puzzle[r][c]:
                    raise CorruptSnapshotError(f"Given at {format_cell((r, c))} was overwritten.")
        return SudokuPosition(puzzle=puzzle, solution=solution, grid=grid)


def to_grid(rows: Any) -> Grid:
    """Nested lists (None or 0 for an empty cell) -> immutable grid"""
    return tuple(tuple(EMPTY if value is None else int(value) for value in row) for row in rows)
