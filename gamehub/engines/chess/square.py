"""
A square on the chess board

(placed in its own module as multiple other modules need to import it)
"""

from __future__ import annotations

from dataclasses import dataclass

# (files, ranks)
BOARD_DIMENSIONS = (8, 8)


@dataclass(frozen=True)
class Square:
    file: int
    rank: int

    @classmethod
    def from_algebraic(cls, sq: str) -> Square:
        """Algebraic notation: 'a1' - 'h8' get converted to (1,1) - (8,8)"""
        file = ord(sq[0]) - ord("a") + 1
        rank = int(sq[1:])
        return cls(file, rank)

    def to_algebraic(self) -> str:
        return f"{chr(self.file + ord('a') - 1)}{self.rank}"

    def is_within_bounds(self) -> bool:
        return (1 <= self.file <= BOARD_DIMENSIONS[0]) and (
            1 <= self.rank <= BOARD_DIMENSIONS[1]
        )

    def offset(self, df: int, dr: int) -> Square:
        """The square reached by stepping df files and dr ranks (may be off the board)."""
        return Square(self.file + df, self.rank + dr)

    @property
    def is_light(self) -> bool:
        """a1 is a dark square. Needed to compare bishops for the insufficient material rule."""
        return (self.file + self.rank) % 2 == 1


def all_squares() -> list[Square]:
    return [
        Square(file, rank)
        for rank in range(1, BOARD_DIMENSIONS[1] + 1)
        for file in range(1, BOARD_DIMENSIONS[0] + 1)
    ]
