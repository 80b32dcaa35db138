"""
Geometry/Base movement and capturing/attacking rules

Key idea: Use strategy pattern to define candidate move sets for each piece type.


Legality (not leaving your own king in check, castling, en passant) is checked later by the ChessEngine
"""

from dataclasses import dataclass
from typing import Callable, Optional, Protocol, Self

from gamehub.core.exceptions import InvalidMoveError
from gamehub.engines.chess.pieces import FEN_TO_PIECE, PIECE_TO_FEN, Color, Piece, PieceType
from gamehub.engines.chess.square import BOARD_DIMENSIONS, Square


class Board(Protocol):
    """Just the parts the movement strategies need"""

    def piece(self, square: Square) -> Optional[Piece]: ...


Vector = tuple[int, int]

KNIGHT_DELTAS: list[Vector] = [
    (2, 1),
    (2, -1),
    (-2, 1),
    (-2, -1),
    (1, 2),
    (1, -2),
    (-1, 2),
    (-1, -2),
]
KING_DELTAS: list[Vector] = [
    (0, 1),
    (0, -1),
    (1, 0),
    (-1, 0),
    (1, 1),
    (1, -1),
    (-1, 1),
    (-1, -1),
]
DIAGONALS: list[Vector] = [(1, 1), (-1, 1), (1, -1), (-1, -1)]
STRAIGHTS: list[Vector] = [(1, 0), (-1, 0), (0, 1), (0, -1)]

PROMOTION_OPTIONS: list[PieceType] = [
    PieceType.KNIGHT,
    PieceType.BISHOP,
    PieceType.ROOK,
    PieceType.QUEEN,
]
DEFAULT_PROMOTION = PieceType.QUEEN


@dataclass(frozen=True)
class Move:
    """
    basic definition of a move to be made

    NOTE: Castling and en passant are recognised from the board when the move is applied
    (castling = king moving two files, en passant = pawn moving diagonally onto the en passant square).
    """

    from_square: Square
    to_square: Square
    promote_to: Optional[PieceType] = None

    @classmethod
    def from_uci(cls, uci: str) -> Self:
        """
        Universal Chess Interface:
        ---

        One of the standard chess notations for moves

        examples:
        * "e2e4": move the piece that was on e2 to e4
        * "e7e8q" : (pawn) moves from e7 to e8 and promotes to a queen (the q)
        * "e1g1": the king castles king side
        """
        if len(uci) not in (4, 5):
            raise InvalidMoveError(f"Cannot interpret {uci!r} as a UCI move.")
        try:
            from_sq = Square.from_algebraic(uci[:2])
            to_sq = Square.from_algebraic(uci[2:4])
            promote_to = FEN_TO_PIECE[uci[4]] if len(uci) == 5 else None
        except (KeyError, ValueError) as error:
            raise InvalidMoveError(f"Cannot interpret {uci!r} as a UCI move.") from error
        if not (from_sq.is_within_bounds() and to_sq.is_within_bounds()):
            raise InvalidMoveError(f"Move {uci!r} leaves the board.")
        return cls(from_sq, to_sq, promote_to)

    def to_uci(self) -> str:
        """Convert into UCI notation"""
        piece_char = PIECE_TO_FEN[self.promote_to] if self.promote_to else ""
        return f"{self.from_square.to_algebraic()}{self.to_square.to_algebraic()}{piece_char}"

    def to_notation(self) -> str:
        return self.to_uci()


# --- MOVEMENT RULES ---
def raycasting_move(
    square: Square, board: Board, directions: list[Vector]
) -> list[Move]:
    """
    Raycasting algorithm
    -----

    The main trick we use to check the 'line of sight of a piece'.
    We move along each direction until we hit another piece or the edge of the board.
    An opponent's piece at the end of the ray can be captured, an own piece cannot.
    """
    mover = board.piece(square)
    assert mover is not None

    moves: list[Move] = []
    for df, dr in directions:
        target = square.offset(df, dr)
        while target.is_within_bounds():
            occupant = board.piece(target)
            if occupant is None:
                moves.append(Move(square, target))
            else:
                if occupant.color != mover.color:
                    moves.append(Move(square, target))
                break
            target = target.offset(df, dr)
    return moves


def single_step_move(square: Square, board: Board, deltas: list[Vector]) -> list[Move]:
    """Raycasting is for sliding pieces. This is the equivalent for kings and knights that just jump a single step"""
    mover = board.piece(square)
    assert mover is not None

    moves: list[Move] = []
    for df, dr in deltas:
        target = square.offset(df, dr)
        if not target.is_within_bounds():
            continue
        occupant = board.piece(target)
        if occupant is None or occupant.color != mover.color:
            moves.append(Move(square, target))
    return moves


def candidate_pawn_moves(square: Square, board: Board) -> list[Move]:
    """
    A pawn:
    - moves by a single square forward (never captures that way).
    - can move by two in their first move (so when on their starting rank), if both squares are empty
    - takes diagonally

    NOTE: En passant and the expansion into promotion moves are taken care of by the engine
    """
    pawn = board.piece(square)
    assert pawn is not None
    direction = pawn.color.pawn_direction
    starting_rank = 2 if pawn.color == Color.WHITE else BOARD_DIMENSIONS[1] - 1

    moves: list[Move] = []
    one_step = square.offset(0, direction)
    if one_step.is_within_bounds() and board.piece(one_step) is None:
        moves.append(Move(square, one_step))
        two_steps = square.offset(0, 2 * direction)
        if square.rank == starting_rank and board.piece(two_steps) is None:
            moves.append(Move(square, two_steps))

    for df in (-1, 1):
        target = square.offset(df, direction)
        if not target.is_within_bounds():
            continue
        occupant = board.piece(target)
        if occupant is not None and occupant.color != pawn.color:
            moves.append(Move(square, target))
    return moves


def candidate_knight_moves(square: Square, board: Board) -> list[Move]:
    """Knights always move such that |delta_rank| + |delta_file| = 3"""
    return single_step_move(square, board, KNIGHT_DELTAS)


def candidate_bishop_moves(square: Square, board: Board) -> list[Move]:
    """Bishops move diagonally: |delta_rank| = |delta_file|"""
    return raycasting_move(square, board, DIAGONALS)


def candidate_rook_moves(square: Square, board: Board) -> list[Move]:
    """Rooks move either horizontally or vertically"""
    return raycasting_move(square, board, STRAIGHTS)


def candidate_queen_moves(square: Square, board: Board) -> list[Move]:
    """The Queen combines the rook moves and bishop moves"""
    return raycasting_move(square, board, DIAGONALS + STRAIGHTS)


def candidate_king_moves(square: Square, board: Board) -> list[Move]:
    """
    The king can move by a single square at the time.

    Castling is modelled as a special king move (handled by the engine).
    """
    return single_step_move(square, board, KING_DELTAS)


# -- STRATEGY PATTERN: MOVEMENT RULES ---
CandidateMovesFn = Callable[[Square, Board], list[Move]]
MOVEMENT_RULES: dict[PieceType, CandidateMovesFn] = {
    PieceType.PAWN: candidate_pawn_moves,
    PieceType.KNIGHT: candidate_knight_moves,
    PieceType.BISHOP: candidate_bishop_moves,
    PieceType.ROOK: candidate_rook_moves,
    PieceType.QUEEN: candidate_queen_moves,
    PieceType.KING: candidate_king_moves,
}


# --- ATTACKING RULES ---
def raycasting_attack(
    square: Square,
    by_color: Color,
    by_piece_types: set[PieceType],
    board: Board,
    directions: list[Vector],
) -> bool:
    """
    Raycasting algorithm for attacks.
    ---

    Where `raycasting_move()` determines _"What is the line-of-sight of the piece standing on the specified square?"_,
    this function determines _"Is the specified square in the line-of-sight of a piece of the given color and type(s)?"_

    Only the first piece found along a direction matters.
    """
    for df, dr in directions:
        target = square.offset(df, dr)
        while target.is_within_bounds():
            occupant = board.piece(target)
            if occupant is not None:
                if occupant.color == by_color and occupant.type in by_piece_types:
                    return True
                break
            target = target.offset(df, dr)
    return False


def single_step_attack(
    square: Square,
    by_color: Color,
    by_piece_type: PieceType,
    board: Board,
    deltas: list[Vector],
) -> bool:
    """The single step equivalent for pawns, kings, and knights."""
    for df, dr in deltas:
        target = square.offset(df, dr)
        if not target.is_within_bounds():
            continue
        occupant = board.piece(target)
        if occupant == Piece(by_piece_type, by_color):
            return True
    return False


def is_attacked_by_pawn(square: Square, by_color: Color, board: Board) -> bool:
    """
    Pawns take diagonally
    ----

    NOTE: Pawn moves are not symmetric. To check IF a white pawn could take on your square -->
    look one rank DOWN the board. Hence the vectors point opposite to the pawn's own direction.
    """
    back = -by_color.pawn_direction
    return single_step_attack(
        square, by_color, PieceType.PAWN, board, [(1, back), (-1, back)]
    )


def is_attacked_by_knight(square: Square, by_color: Color, board: Board) -> bool:
    return single_step_attack(square, by_color, PieceType.KNIGHT, board, KNIGHT_DELTAS)


def is_attacked_by_king(square: Square, by_color: Color, board: Board) -> bool:
    return single_step_attack(square, by_color, PieceType.KING, board, KING_DELTAS)


def is_attacked_along_diagonals(square: Square, by_color: Color, board: Board) -> bool:
    """Bishops and queens"""
    return raycasting_attack(
        square, by_color, {PieceType.BISHOP, PieceType.QUEEN}, board, DIAGONALS
    )


def is_attacked_along_straights(square: Square, by_color: Color, board: Board) -> bool:
    """Rooks and queens"""
    return raycasting_attack(
        square, by_color, {PieceType.ROOK, PieceType.QUEEN}, board, STRAIGHTS
    )


# --- STRATEGY PATTERN: ATTACKING RULES ---
IsAttackedFn = Callable[[Square, Color, Board], bool]
ATTACK_RULES: list[IsAttackedFn] = [
    is_attacked_by_pawn,
    is_attacked_by_knight,
    is_attacked_by_king,
    is_attacked_along_diagonals,
    is_attacked_along_straights,
]


def is_attacked(square: Square, by_color: Color, board: Board) -> bool:
    return any(rule(square, by_color, board) for rule in ATTACK_RULES)


# -- PAWN PROMOTION MOVES --
def is_promotion_square(square: Square) -> bool:
    return square.rank in (1, BOARD_DIMENSIONS[1])


def pawn_pushes_w_promotion(pawn_push: Move) -> list[Move]:
    """Return multiple copies of the pawn push with the piece type to promote into filled in."""
    return [
        Move(
            from_square=pawn_push.from_square,
            to_square=pawn_push.to_square,
            promote_to=piece_type,
        )
        for piece_type in PROMOTION_OPTIONS
    ]
