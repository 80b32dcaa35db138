"""
Everything encoded in a FEN string besides the board itself: side to move, castling rights, en passant square and move counters.
"""

from dataclasses import dataclass, replace
from string import ascii_lowercase
from typing import Optional, Self

from gamehub.core.exceptions import CorruptSnapshotError
from gamehub.engines.chess.castling import CASTLING_ORDER, CastlingDirection, directions_for
from gamehub.engines.chess.pieces import FEN_TO_PIECE, Color
from gamehub.engines.chess.square import BOARD_DIMENSIONS, Square

STARTING_FEN = "rnbqkbnr/pppppppp/8/8/8/8/PPPPPPPP/RNBQKBNR w KQkq - 0 1"


def castling_from_fen(castle_fen: str) -> frozenset[CastlingDirection]:
    """parse the part of the FEN string that encodes castling rights"""
    return frozenset(
        direction for direction in CastlingDirection if direction.value in castle_fen
    )


def castling_to_fen(castling_rights: frozenset[CastlingDirection]) -> str:
    """create the part of the FEN string that encodes castling rights"""
    castling_chars = "".join(
        direction.value for direction in CASTLING_ORDER if direction in castling_rights
    )
    return castling_chars or "-"


def is_valid_fen(fen: str) -> bool:
    """
    Check if given string follows proper FEN notation.
    """
    # there should be 6 parts to the string
    parts = fen.split(" ")
    if len(parts) != 6:
        return False

    position, color, castling, en_passant, half_move_counter, full_move_counter = parts
    return (
        is_valid_position(position)
        and is_valid_color_code(color)
        and is_valid_castling_rights(castling)
        and is_valid_en_passant(en_passant)
        and is_valid_move_counter(half_move_counter)
        and is_valid_move_counter(full_move_counter)
    )


def is_valid_position(position: str) -> bool:
    """Only check the part of the FEN encoding for the board position."""
    num_files, num_ranks = BOARD_DIMENSIONS
    rank_fens = position.split("/")
    if len(rank_fens) != num_ranks:
        return False

    for rank_fen in rank_fens:
        file_count = 0
        for character in rank_fen:
            if character.isdigit():
                file_count += int(character)
            elif character.lower() in FEN_TO_PIECE:
                file_count += 1
            else:
                return False

        # make sure you are creating a correctly sized board
        if file_count != num_files:
            return False

    # exactly one king per side
    return position.count("K") == 1 and position.count("k") == 1


def is_valid_color_code(color: str) -> bool:
    return color in {"w", "b"}


def is_valid_castling_rights(castling: str) -> bool:
    """A valid castling encoding lists rights in KQkq order, or is a '-' if all rights have been revoked."""
    if castling == "-":
        return True
    expected_order = "".join(direction.value for direction in CASTLING_ORDER)
    remaining = iter(expected_order)
    # every character must appear in the canonical order (and only once)
    return bool(castling) and all(char in remaining for char in castling)


def is_valid_en_passant(en_passant: str) -> bool:
    """Valid en passant square encoding should be a square that exists on the board or a '-'"""
    return (en_passant == "-") or is_valid_square(en_passant)


def is_valid_square(square: str) -> bool:
    """Valid square should be a letter for the file + a number for the rank"""
    num_files, num_ranks = BOARD_DIMENSIONS
    if len(square) < 2:
        return False

    file_char, rank_char = square[0], square[1:]
    if file_char not in ascii_lowercase[:num_files]:
        return False
    if not rank_char.isdigit():
        return False
    return 1 <= int(rank_char) <= num_ranks


def is_valid_move_counter(counter: str) -> bool:
    return counter.isdigit()


@dataclass(frozen=True)
class FENState:
    """
    Data that can be constructed from a FEN string.
    ----

    FEN, or Forsyth-Edwards Notation, is a standard notation for describing a particular board position of a chess game.
    It provides all the necessary information to restart a game from a particular position.

    <board position string> <active color> <castling rights> <en passant square> <half move clock> <number of turns>

    * The active color is either "w" or "b"
    * Castling rights: "K"/"Q" for white king-/queen-side, "k"/"q" for black. "-" once all are revoked.
    * The en passant square is the square a pawn can take on (the square just passed by a double pawn push). "-" if none.
    * The half move clock counts the moves made since the last pawn move or capture (fifty-move rule).
    * The number of turns starts at 1 and increments after every move black makes.

    ex) The standard starting position has a FEN
    rnbqkbnr/pppppppp/8/8/8/8/PPPPPPPP/RNBQKBNR w KQkq - 0 1
    """

    position: str
    color_to_move: Color
    castling_rights: frozenset[CastlingDirection]
    en_passant_square: Optional[Square]
    half_move_clock: int
    num_turns: int

    @classmethod
    def from_fen(cls, fen: str) -> Self:
        """Parse the FEN into data. Saved games are the only source of FEN strings, so a bad one means corrupt save data."""
        if not is_valid_fen(fen):
            raise CorruptSnapshotError(f"Cannot interpret supplied string as FEN: {fen}")

        (
            position,
            active_color,
            castling_str,
            en_passant_algebraic,
            half_move_clock,
            num_turns,
        ) = fen.split(" ")

        en_passant_square = (
            Square.from_algebraic(en_passant_algebraic)
            if en_passant_algebraic != "-"
            else None
        )
        return cls(
            position=position,
            color_to_move=Color.WHITE if active_color == "w" else Color.BLACK,
            castling_rights=castling_from_fen(castling_str),
            en_passant_square=en_passant_square,
            half_move_clock=int(half_move_clock),
            num_turns=int(num_turns),
        )

    def to_fen(self) -> str:
        """reverse operation: write a FEN from the given data"""
        return f"{self.repetition_key()} {self.half_move_clock} {self.num_turns}"

    def repetition_key(self) -> str:
        """
        The part of the FEN that identifies a position for the repetition rule
        (the move counters differ between otherwise identical positions).
        """
        active_color = "w" if self.color_to_move == Color.WHITE else "b"
        en_passant_algebraic = (
            self.en_passant_square.to_algebraic()
            if self.en_passant_square is not None
            else "-"
        )
        return f"{self.position} {active_color} {castling_to_fen(self.castling_rights)} {en_passant_algebraic}"

    @classmethod
    def starting_position(cls) -> Self:
        return cls.from_fen(STARTING_FEN)

    # -- castling rights --
    def can_castle(self, color: Color) -> bool:
        return any(direction in self.castling_rights for direction in directions_for(color))

    def revoke_castling_rights(self, *directions: CastlingDirection) -> Self:
        return replace(self, castling_rights=self.castling_rights - set(directions))

    def revoke_all_castling_rights(self, color: Color) -> Self:
        return self.revoke_castling_rights(*directions_for(color))
