"""Unit tests for gamehub/engines/chess/moves.py"""

import pytest

from gamehub.core.exceptions import InvalidMoveError
from gamehub.engines.chess.board import Board
from gamehub.engines.chess.moves import (
    Move,
    PieceType,
    candidate_bishop_moves,
    candidate_king_moves,
    candidate_knight_moves,
    candidate_pawn_moves,
    candidate_rook_moves,
    is_attacked,
    pawn_pushes_w_promotion,
)
from gamehub.engines.chess.pieces import Color
from gamehub.engines.chess.square import Square


def sq(algebraic: str) -> Square:
    return Square.from_algebraic(algebraic)


def targets(moves: list[Move]) -> set[str]:
    return {move.to_square.to_algebraic() for move in moves}


# -- UCI NOTATION ---
@pytest.mark.parametrize(
    "uci, from_alg, to_alg, promote_to",
    [
        ("e2e4", "e2", "e4", None),
        ("g1f3", "g1", "f3", None),
        ("e7e8q", "e7", "e8", PieceType.QUEEN),
        ("a2a1n", "a2", "a1", PieceType.KNIGHT),
    ],
)
def test_uci_round_trip(uci: str, from_alg: str, to_alg: str, promote_to: PieceType | None) -> None:
    move = Move.from_uci(uci)
    assert move == Move(sq(from_alg), sq(to_alg), promote_to)
    assert move.to_uci() == uci


@pytest.mark.parametrize("uci", ["e2", "e2e9", "e2e4x", "zzzz", "e2e4e5"])
def test_invalid_uci(uci: str) -> None:
    with pytest.raises(InvalidMoveError):
        Move.from_uci(uci)


# -- MOVEMENT RULES ---
def test_pawn_moves_from_starting_rank() -> None:
    board = Board.from_fen("4k3/8/8/8/8/8/4P3/4K3")
    assert targets(candidate_pawn_moves(sq("e2"), board)) == {"e3", "e4"}


def test_blocked_pawn_takes_diagonally() -> None:
    board = Board.from_fen("4k3/8/8/8/3pp3/4P3/8/4K3")
    assert targets(candidate_pawn_moves(sq("e3"), board)) == {"d4"}


def test_black_pawn_moves_down() -> None:
    board = Board.from_fen("4k3/3p4/8/8/8/8/8/4K3")
    assert targets(candidate_pawn_moves(sq("d7"), board)) == {"d6", "d5"}


def test_knight_in_the_corner() -> None:
    board = Board.from_fen("4k3/8/8/8/8/8/8/N3K3")
    assert targets(candidate_knight_moves(sq("a1"), board)) == {"b3", "c2"}


def test_rook_stops_at_pieces() -> None:
    # own pawn on a4 blocks, enemy knight on c1 can be taken
    board = Board.from_fen("4k3/8/8/8/P7/8/8/R1n1K3")
    assert targets(candidate_rook_moves(sq("a1"), board)) == {"a2", "a3", "b1", "c1"}


def test_bishop_rays() -> None:
    board = Board.from_fen("4k3/8/8/8/8/8/1p6/B3K3")
    assert targets(candidate_bishop_moves(sq("a1"), board)) == {"b2"}


def test_king_single_steps() -> None:
    board = Board.from_fen("4k3/8/8/8/8/8/8/4K3")
    assert targets(candidate_king_moves(sq("e1"), board)) == {"d1", "f1", "d2", "e2", "f2"}


# -- ATTACK RULES ---
@pytest.mark.parametrize(
    "fen, square, by_color, expected",
    [
        ("4k3/8/8/8/8/8/3p4/4K3", "e1", Color.BLACK, True),  # pawn
        ("4k3/8/8/8/8/5n2/8/4K3", "e1", Color.BLACK, True),  # knight
        ("4k3/8/8/8/8/8/8/q3K3", "e1", Color.BLACK, True),  # queen along the rank
        ("4k3/8/8/8/8/8/8/q2PK3", "e1", Color.BLACK, False),  # blocked
        ("4k3/8/8/8/b7/8/8/4K3", "e1", Color.BLACK, False),  # bishop on a4 does not see e1
        ("4k3/8/8/8/8/8/8/4K3", "d7", Color.BLACK, True),  # king
    ],
)
def test_is_attacked(fen: str, square: str, by_color: Color, expected: bool) -> None:
    assert is_attacked(sq(square), by_color, Board.from_fen(fen)) is expected


def test_promotion_expansion() -> None:
    moves = pawn_pushes_w_promotion(Move(sq("e7"), sq("e8")))
    assert {move.promote_to for move in moves} == {
        PieceType.KNIGHT,
        PieceType.BISHOP,
        PieceType.ROOK,
        PieceType.QUEEN,
    }
