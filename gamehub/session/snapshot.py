"""
Save/resume data of a session
----

The session store treats a snapshot as an opaque string. Only this module knows its shape,
and nothing is accepted on resume before it passed validation here.
"""

from typing import Any, Literal

from pydantic import BaseModel, Field, ValidationError

from gamehub.core.exceptions import CorruptSnapshotError
from gamehub.core.shared_types import GameId
from gamehub.engines.base import GameEngine

SNAPSHOT_VERSION = 1


class SessionSnapshot(BaseModel):
    version: Literal[1] = SNAPSHOT_VERSION
    game_id: GameId
    position: dict[str, Any]
    active_player: str
    elapsed_seconds: int = Field(ge=0)


def encode_snapshot(engine: GameEngine, position: Any, elapsed_seconds: int) -> str:
    snapshot = SessionSnapshot(
        game_id=engine.game_id,
        position=engine.position_to_dict(position),
        active_player=str(engine.active_player(position)),
        elapsed_seconds=elapsed_seconds,
    )
    return snapshot.model_dump_json()


def decode_snapshot(engine: GameEngine, blob: str) -> tuple[Any, int]:
    """
    Validate a stored snapshot and rebuild its position.

    Returns
    ----
    (position, elapsed_seconds)

    Raises CorruptSnapshotError when anything about the snapshot is off. Callers then start a fresh session.
    """
    try:
        snapshot = SessionSnapshot.model_validate_json(blob)
    except ValidationError as error:
        raise CorruptSnapshotError(f"Snapshot does not have the expected shape: {error}") from error

    if snapshot.game_id != engine.game_id:
        raise CorruptSnapshotError(
            f"Snapshot belongs to {snapshot.game_id}, not to {engine.game_id}."
        )

    position = engine.position_from_dict(snapshot.position)
    if str(engine.active_player(position)) != snapshot.active_player:
        raise CorruptSnapshotError(
            f"Snapshot says {snapshot.active_player} is to move, the position says {engine.active_player(position)}."
        )

    # snapshots are only taken while the game is in progress, between two resolutions
    if engine.status(position).is_terminal:
        raise CorruptSnapshotError("Snapshot holds a finished game.")
    if engine.pending_effect(position):
        raise CorruptSnapshotError("Snapshot was taken in the middle of a resolution.")
    if getattr(position, "dice", None) is not None and not engine.legal_moves(position):
        raise CorruptSnapshotError("Snapshot holds a roll that allows no move.")
    return position, snapshot.elapsed_seconds
