"""Protocols of the persistence collaborators (SQLAlchemy implementations in sql_repository.py)"""

from typing import Protocol

from gamehub.core.shared_types import Outcome


class SessionStore(Protocol):
    """Keeps at most one saved session per game. Snapshots are opaque strings to the store."""

    def save(self, game_id: str, snapshot: str) -> None:
        """Store the snapshot, replacing any earlier one of the same game."""
        ...

    def load(self, game_id: str) -> str | None:
        """Get the saved snapshot of a game, if there is one."""
        ...

    def clear(self, game_id: str) -> None:
        """Discard the saved snapshot of a game (no-op if there is none)."""
        ...


class StatsRecorder(Protocol):
    """Receives the result of every finished session, exactly once."""

    def record_result(self, game_id: str, outcome: Outcome, elapsed_seconds: int) -> None: ...
