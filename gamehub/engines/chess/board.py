"""The Board implements all rules that affect the placement of the pieces (the first part of a FEN string)"""

from dataclasses import dataclass, field
from typing import Optional, Self

from gamehub.engines.chess.moves import MOVEMENT_RULES, CandidateMovesFn, Move, is_attacked
from gamehub.engines.chess.pieces import Color, Piece, PieceType
from gamehub.engines.chess.square import BOARD_DIMENSIONS, Square


@dataclass(frozen=True)
class Board:
    """
    Immutable placement of pieces: only occupied squares are stored.

    Every update returns a new Board, so simulating a move (to see if it leaves your king in check) never touches the original.
    """

    position: dict[Square, Piece] = field(default_factory=dict)

    @classmethod
    def from_fen(cls, fen_str: str) -> Self:
        """Construct a board using the first part of a FEN string.

        ex. standard starting position:
        rnbqkbnr/pppppppp/8/8/8/8/PPPPPPPP/RNBQKBNR
        means:
        * black pieces are on the 8th rank, starting with the rook on a8, knight on b8, etc.
        * pawns cover 7th rank entirely
        * ranks 6 through 3 have 8 consecutive empty squares
        * rank 2 are the white pawns (capital letters)
        * 1st rank are the white pieces.
        """
        position: dict[Square, Piece] = {}
        for rank_idx, fen_one_rank in enumerate(fen_str.split("/")):
            # FEN string is read from top rank (8th) to bottom rank (1st) ...
            rank = BOARD_DIMENSIONS[1] - rank_idx
            # ... but the first character is the a-file, so reads in normal direction
            file = 1
            for character in fen_one_rank:
                if character.isdigit():
                    # A number denotes the amount of empty squares after each other
                    file += int(character)
                else:
                    position[Square(file, rank)] = Piece.from_fen(character)
                    file += 1
        return cls(position)

    def to_fen(self) -> str:
        """Ranks are separated by slashes in FEN string."""
        return "/".join(
            self._rank_to_fen(rank) for rank in range(BOARD_DIMENSIONS[1], 0, -1)
        )

    def _rank_to_fen(self, rank: int) -> str:
        fen_characters: list[str] = []
        empty_count = 0
        for file in range(1, BOARD_DIMENSIONS[0] + 1):
            piece = self.piece(Square(file, rank))
            if piece is None:
                empty_count += 1
                continue
            if empty_count > 0:
                fen_characters.append(str(empty_count))
                empty_count = 0
            fen_characters.append(piece.to_fen())

        # if the entire rank is empty, then we still place this number in the string
        if empty_count > 0:
            fen_characters.append(str(empty_count))
        return "".join(fen_characters)

    # -- queries --
    def piece(self, square: Square) -> Optional[Piece]:
        return self.position.get(square)

    def locate_color(self, color: Color) -> list[Square]:
        return [square for square, piece in self.position.items() if piece.color == color]

    def locate(self, piece: Piece) -> list[Square]:
        return [square for square, found in self.position.items() if found == piece]

    def king_square(self, color: Color) -> Optional[Square]:
        kings = self.locate(Piece(PieceType.KING, color))
        return kings[0] if kings else None

    def is_any_occupied(self, squares: list[Square]) -> bool:
        return any(self.piece(square) is not None for square in squares)

    def is_any_under_attack(self, squares: list[Square], by_color: Color) -> bool:
        return any(is_attacked(square, by_color, self) for square in squares)

    def is_check(self, color: Color) -> bool:
        """Is the king of the given color attacked? (A board without that king is never in check.)"""
        king = self.king_square(color)
        if king is None:
            return False
        return is_attacked(king, color.opponent, self)

    def generate_candidate_moves(self, color: Color) -> list[Move]:
        """
        Before knowing the set of legal moves, we use raycasting to find candidate moves, which will later be tested for legality
        (making sure it does not put yourself in check.)
        """
        candidate_moves: list[Move] = []
        for starting_square in self.locate_color(color):
            piece = self.position[starting_square]
            movement_rule: CandidateMovesFn = MOVEMENT_RULES[piece.type]
            candidate_moves.extend(movement_rule(starting_square, self))
        return candidate_moves

    def count_material(self) -> dict[Color, int]:
        """Tally the points of material each player has on the board"""
        return {
            color: sum(piece.points for piece in self.position.values() if piece.color == color)
            for color in Color
        }

    # -- updates (copy on write) --
    def move_piece(self, from_square: Square, to_square: Square) -> Self:
        """Whatever stood on the target square is captured."""
        position = dict(self.position)
        position[to_square] = position.pop(from_square)
        return type(self)(position)

    def remove_piece(self, square: Square) -> Self:
        position = dict(self.position)
        position.pop(square, None)
        return type(self)(position)

    def place_piece(self, piece: Piece, square: Square) -> Self:
        position = dict(self.position)
        position[square] = piece
        return type(self)(position)

    def __hash__(self) -> int:
        return hash(self.to_fen())
