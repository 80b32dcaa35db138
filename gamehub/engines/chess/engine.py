"""
The ChessEngine orchestrates all the rules required to play a turn of chess:
candidate moves from the Board, the special moves (castling, en passant, promotion),
the check-safety filter and the end-of-game conditions.
"""

from dataclasses import dataclass, replace
from typing import Any, Optional, Self

from gamehub.core.exceptions import CorruptSnapshotError
from gamehub.core.shared_types import GameId
from gamehub.engines.base import BaseEngine, GameStatus
from gamehub.engines.chess.board import Board
from gamehub.engines.chess.castling import (
    CASTLING_RULES,
    CastlingDirection,
    castling_path,
    directions_for,
    king_crossing,
)
from gamehub.engines.chess.fen import FENState
from gamehub.engines.chess.moves import (
    DEFAULT_PROMOTION,
    Move,
    is_promotion_square,
    pawn_pushes_w_promotion,
)
from gamehub.engines.chess.pieces import Color, Piece, PieceType
from gamehub.engines.chess.square import Square

# fifty moves by each player
FIFTY_MOVE_HALF_MOVES = 100
REPETITIONS_FOR_DRAW = 3


@dataclass(frozen=True)
class ChessPosition:
    """FEN state + the repetition keys of every earlier position in the game."""

    state: FENState
    history: tuple[str, ...] = ()

    @classmethod
    def from_fen(cls, fen: str, history: tuple[str, ...] = ()) -> Self:
        return cls(FENState.from_fen(fen), history)

    @property
    def to_move(self) -> Color:
        return self.state.color_to_move

    @property
    def board(self) -> Board:
        return Board.from_fen(self.state.position)

    def to_fen(self) -> str:
        return self.state.to_fen()


class ChessEngine(BaseEngine):
    game_id = GameId.CHESS
    players = (Color.WHITE, Color.BLACK)

    def initial_position(self, **options: Any) -> ChessPosition:
        starting_fen: Optional[str] = options.get("starting_fen")
        state = FENState.from_fen(starting_fen) if starting_fen else FENState.starting_position()
        return ChessPosition(state)

    # --- MOVE GENERATOR ---
    def legal_moves(
        self, position: ChessPosition, player: Optional[Color] = None
    ) -> list[Move]:
        """
        List of legal moves for the player with the 'color' pieces
        ----

        1. generate candidate moves, using the basic movement rules for all pieces (the board does this calculation)
        2. add candidate castling moves
        3. add candidate en passant moves
        4. remove moves that would put (or leave) you in check
        5. Pawn push to promotion square? --> one move for every piece type to promote into.
        """
        color = player or position.to_move
        if self._is_drawn(position):
            return []
        board = position.board
        state = position.state
        if color != state.color_to_move:
            # asking on behalf of the side that is not to move: the en passant square belongs to the mover
            state = replace(state, color_to_move=color, en_passant_square=None)

        candidate_moves = board.generate_candidate_moves(color)
        candidate_moves.extend(self._castling_moves(board, state))
        candidate_moves.extend(self._en_passant_moves(board, state))

        legal_moves: list[Move] = []
        for move in candidate_moves:
            if self._is_putting_yourself_in_check(board, state, move):
                continue
            if self._is_pawn_move(board, move) and is_promotion_square(move.to_square):
                legal_moves.extend(pawn_pushes_w_promotion(move))
            else:
                legal_moves.append(move)
        return legal_moves

    # --- MOVE APPLIER ---
    def apply(self, position: ChessPosition, move: Move) -> ChessPosition:
        """
        Make a move
        -----

        1. update the board (castling moves the rook too, en passant removes the pawn behind the target square)
        2. revoke castling rights if needed
        3. set the new en passant square
        4. update the move counters and the side to move
        5. remember the previous position for the repetition rule
        """
        move = self._with_default_promotion(position, move)
        self._assert_legal(position, move, self.legal_moves(position))

        state = position.state
        board = position.board
        color = state.color_to_move
        moving_piece = board.piece(move.from_square)
        assert moving_piece is not None
        captured = board.piece(move.to_square)

        if self._is_en_passant(board, state, move):
            captured = board.piece(self._en_passant_victim(state, move))
        new_board = self._update_board(board, state, move)

        new_state = self._revoke_castling_rights_if_needed(state, move, moving_piece)
        is_pawn_move = moving_piece.type == PieceType.PAWN
        new_state = replace(
            new_state,
            position=new_board.to_fen(),
            en_passant_square=self._determine_en_passant_square(move, is_pawn_move),
            half_move_clock=0 if (is_pawn_move or captured) else state.half_move_clock + 1,
            num_turns=state.num_turns + 1 if color == Color.BLACK else state.num_turns,
            color_to_move=color.opponent,
        )
        return ChessPosition(new_state, position.history + (state.repetition_key(),))

    # --- TERMINAL STATE DETECTOR ---
    def status(self, position: ChessPosition) -> GameStatus:
        """Mate and stalemate take precedence over the draw rules."""
        board = position.board
        color = position.to_move
        if self._has_legal_move_ignoring_draws(position):
            if self._is_insufficient_material(board):
                return GameStatus.draw(reason="insufficient material")
            if self._is_three_fold_repetition(position):
                return GameStatus.draw(reason="threefold repetition")
            if self._is_fifty_move_draw(position):
                return GameStatus.draw(reason="fifty-move rule")
            return GameStatus.playing()

        if board.is_check(color):
            return GameStatus.win(color.opponent, reason="checkmate")
        return GameStatus.stalemate(reason="no legal moves")

    def is_check(self, position: ChessPosition) -> bool:
        return position.board.is_check(position.to_move)

    def material(self, position: ChessPosition) -> dict[Color, int]:
        return position.board.count_material()

    def parse_move(self, notation: str) -> Move:
        return Move.from_uci(notation)

    # -- snapshots --
    def position_to_dict(self, position: ChessPosition) -> dict[str, Any]:
        return {"fen": position.to_fen(), "history": list(position.history)}

    def position_from_dict(self, data: dict[str, Any]) -> ChessPosition:
        try:
            fen = data["fen"]
            history = tuple(data.get("history", []))
        except (KeyError, TypeError, AttributeError) as error:
            raise CorruptSnapshotError(f"Invalid chess position: {error}") from error
        if not isinstance(fen, str) or not all(isinstance(key, str) for key in history):
            raise CorruptSnapshotError("Chess positions are stored as FEN strings.")
        # FENState validates the string itself
        return ChessPosition.from_fen(fen, history)

    # -- LEGAL MOVES HELPERS ---
    def _has_legal_move_ignoring_draws(self, position: ChessPosition) -> bool:
        board = position.board
        state = position.state
        candidates = board.generate_candidate_moves(state.color_to_move)
        candidates.extend(self._en_passant_moves(board, state))
        # castling is never the only legal move: the king can always step towards the rook instead
        return any(
            not self._is_putting_yourself_in_check(board, state, move)
            for move in candidates
        )

    def _is_putting_yourself_in_check(
        self, board: Board, state: FENState, move: Move
    ) -> bool:
        """Simulate the move on a copy of the board and see if the mover's king is attacked afterwards."""
        after = self._update_board(board, state, move)
        return after.is_check(state.color_to_move)

    def _is_pawn_move(self, board: Board, move: Move) -> bool:
        piece = board.piece(move.from_square)
        return piece is not None and piece.type == PieceType.PAWN

    def _with_default_promotion(self, position: ChessPosition, move: Move) -> Move:
        """A pawn reaching the last rank without a chosen piece becomes a queen."""
        if (
            move.promote_to is None
            and is_promotion_square(move.to_square)
            and self._is_pawn_move(position.board, move)
        ):
            return replace(move, promote_to=DEFAULT_PROMOTION)
        return move

    def _update_board(self, board: Board, state: FENState, move: Move) -> Board:
        direction = self._castling_direction(board, move)
        if direction is not None:
            rule = CASTLING_RULES[direction]
            return board.move_piece(rule.king_from, rule.king_to).move_piece(
                rule.rook_from, rule.rook_to
            )
        if self._is_en_passant(board, state, move):
            board = board.remove_piece(self._en_passant_victim(state, move))

        new_board = board.move_piece(move.from_square, move.to_square)
        if move.promote_to is not None:
            pawn = new_board.piece(move.to_square)
            assert pawn is not None
            new_board = new_board.place_piece(pawn.promoted_to(move.promote_to), move.to_square)
        return new_board

    # -- CASTLING RULE HELPERS ---
    def _castling_direction(self, board: Board, move: Move) -> Optional[CastlingDirection]:
        """A king moving two files is castling"""
        piece = board.piece(move.from_square)
        if piece is None or piece.type != PieceType.KING:
            return None
        if abs(move.to_square.file - move.from_square.file) != 2:
            return None
        for direction in directions_for(piece.color):
            rule = CASTLING_RULES[direction]
            if (move.from_square, move.to_square) == (rule.king_from, rule.king_to):
                return direction
        return None

    def _castling_moves(self, board: Board, state: FENState) -> list[Move]:
        """
        **you are allowed to castle if**

        * Castling rights are not yet revoked (and king and rook are still on their squares).
        * All squares between king and rook are empty.
        * You are not in check, and the king does not pass over / land on an attacked square.
        """
        color = state.color_to_move
        if not state.can_castle(color) or board.is_check(color):
            return []

        moves: list[Move] = []
        for direction in directions_for(color):
            if direction not in state.castling_rights:
                continue
            rule = CASTLING_RULES[direction]
            if board.piece(rule.king_from) != Piece(PieceType.KING, color):
                continue
            if board.piece(rule.rook_from) != Piece(PieceType.ROOK, color):
                continue
            if board.is_any_occupied(castling_path(direction)):
                continue
            if board.is_any_under_attack(king_crossing(direction), color.opponent):
                continue
            moves.append(Move(rule.king_from, rule.king_to))
        return moves

    def _revoke_castling_rights_if_needed(
        self, state: FENState, move: Move, moving_piece: Piece
    ) -> FENState:
        """
        1. If you are moving your king (castling included) --> revoke both
        2. If a rook leaves its starting square --> revoke the right in that direction
        3. If anything lands on a rook's starting square (capturing it) --> revoke the right in that direction
        """
        if moving_piece.type == PieceType.KING:
            state = state.revoke_all_castling_rights(moving_piece.color)

        for direction in CastlingDirection:
            rook_square = CASTLING_RULES[direction].rook_from
            if rook_square in (move.from_square, move.to_square):
                state = state.revoke_castling_rights(direction)
        return state

    # --- EN PASSANT RULE HELPERS ----
    def _en_passant_moves(self, board: Board, state: FENState) -> list[Move]:
        """Pawns on the adjacent files (one rank behind the en passant square, seen from the mover) may take en passant."""
        target = state.en_passant_square
        if target is None:
            return []
        color = state.color_to_move
        own_pawn = Piece(PieceType.PAWN, color)
        moves: list[Move] = []
        for df in (-1, 1):
            maybe_pawn_square = target.offset(df, -color.pawn_direction)
            if board.piece(maybe_pawn_square) == own_pawn:
                moves.append(Move(maybe_pawn_square, target))
        return moves

    def _is_en_passant(self, board: Board, state: FENState, move: Move) -> bool:
        return (
            state.en_passant_square is not None
            and move.to_square == state.en_passant_square
            and self._is_pawn_move(board, move)
            and move.from_square.file != move.to_square.file
        )

    def _en_passant_victim(self, state: FENState, move: Move) -> Square:
        """The pawn taken stands on the file of the en passant square, on the rank the capturing pawn started from."""
        assert state.en_passant_square is not None
        return Square(state.en_passant_square.file, move.from_square.rank)

    def _determine_en_passant_square(self, move: Move, is_pawn_move: bool) -> Optional[Square]:
        """A double pawn push creates an en passant square right behind the pawn."""
        ranks_moved = move.to_square.rank - move.from_square.rank
        if is_pawn_move and abs(ranks_moved) == 2:
            return move.from_square.offset(0, ranks_moved // 2)
        return None

    # --- CHECKS FOR ENDING THE GAME ---
    def _is_drawn(self, position: ChessPosition) -> bool:
        return (
            self._is_insufficient_material(position.board)
            or self._is_three_fold_repetition(position)
            or self._is_fifty_move_draw(position)
        )

    def _is_three_fold_repetition(self, position: ChessPosition) -> bool:
        """The current position occurred twice before"""
        key = position.state.repetition_key()
        return position.history.count(key) + 1 >= REPETITIONS_FOR_DRAW

    def _is_fifty_move_draw(self, position: ChessPosition) -> bool:
        return position.state.half_move_clock >= FIFTY_MOVE_HALF_MOVES

    def _is_insufficient_material(self, board: Board) -> bool:
        """
        Neither side can ever mate:

        * king vs king
        * king and a single bishop or knight vs king
        * king and bishop vs king and bishop, with both bishops on the same square color
        """
        others = [
            (square, piece)
            for square, piece in board.position.items()
            if piece.type != PieceType.KING
        ]
        if not others:
            return True
        if any(piece.type not in (PieceType.BISHOP, PieceType.KNIGHT) for _, piece in others):
            return False
        if len(others) == 1:
            return True
        if len(others) == 2 and all(piece.type == PieceType.BISHOP for _, piece in others):
            (square_a, bishop_a), (square_b, bishop_b) = others
            return bishop_a.color != bishop_b.color and square_a.is_light == square_b.is_light
        return False

