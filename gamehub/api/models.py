"""Requests and Response models"""

from typing import Any, Optional
from uuid import UUID

from pydantic import BaseModel, field_validator

from gamehub.core.exceptions import InvalidRequestError
from gamehub.core.shared_types import GameId, SessionState, StatusKind
from gamehub.engines.sudoku import BOX_SHAPES, Difficulty


# --- REQUEST MODELS ---
class StartSessionRequest(BaseModel):
    game_id: GameId
    resume: bool = True
    sudoku_size: Optional[int] = None
    difficulty: Optional[Difficulty] = None
    seed: Optional[int] = None

    @field_validator("sudoku_size")
    @classmethod
    def validate_sudoku_size(cls, value: Optional[int]) -> Optional[int]:
        if value is not None and value not in BOX_SHAPES:
            raise InvalidRequestError(
                f"Sudoku grids come in sizes {sorted(BOX_SHAPES)}, not {value}."
            )
        return value


class SessionRequest(BaseModel):
    session_id: UUID


class MoveRequest(BaseModel):
    session_id: UUID
    move: str

    @field_validator("move")
    @classmethod
    def validate_move(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise InvalidRequestError("A move needs a notation, got an empty string.")
        return value


# --- RESPONSE MODELS ---
class SessionResponse(BaseModel):
    session_id: UUID
    game_id: GameId
    state: SessionState
    status: StatusKind
    winner: Optional[str] = None
    reason: Optional[str] = None
    active_player: str
    dice: Optional[int] = None
    position: dict[str, Any]
    legal_moves: list[str]
    elapsed_seconds: int
    resumed: bool = False
    # False when a submitted human move was ignored
    accepted: Optional[bool] = None
    # moves played by the opponent(s) during this request
    opponent_moves: list[str] = []


class LegalMovesResponse(BaseModel):
    session_id: UUID
    game_id: GameId
    active_player: str
    legal_moves: list[str]
