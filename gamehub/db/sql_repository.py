"""Implementations of SessionStore and StatsRecorder using SQLAlchemy"""

from sqlalchemy import select
from sqlalchemy.orm import Session

from gamehub.core.models import GameStatsModel
from gamehub.core.shared_types import Outcome
from gamehub.db.schema import DBGameStats, DBSavedSession


class SQLSessionStore:
    """One row per game in the saved_sessions table"""

    def __init__(self, db_session: Session) -> None:
        self.db = db_session

    def save(self, game_id: str, snapshot: str) -> None:
        """Store the snapshot, replacing any earlier one of the same game."""
        saved = self._fetch(game_id)
        if saved is None:
            self.db.add(DBSavedSession(game_id=str(game_id), snapshot=snapshot))
        else:
            saved.snapshot = snapshot
        self.db.commit()

    def load(self, game_id: str) -> str | None:
        """Get the saved snapshot of a game, if there is one."""
        saved = self._fetch(game_id)
        return saved.snapshot if saved else None

    def clear(self, game_id: str) -> None:
        saved = self._fetch(game_id)
        if saved is None:
            return
        self.db.delete(saved)
        self.db.commit()

    def _fetch(self, game_id: str) -> DBSavedSession | None:
        query = select(DBSavedSession).where(DBSavedSession.game_id == str(game_id))
        return self.db.scalar(query)


class SQLStatsRecorder:
    """Win/loss/draw tally and total time played per game, in the game_stats table"""

    def __init__(self, db_session: Session) -> None:
        self.db = db_session

    def record_result(self, game_id: str, outcome: Outcome, elapsed_seconds: int) -> None:
        stats_db = self._fetch(game_id)
        if stats_db is None:
            stats_db = DBGameStats(game_id=str(game_id), wins=0, losses=0, draws=0, time_played=0)
            self.db.add(stats_db)

        match Outcome(outcome):
            case Outcome.WIN:
                stats_db.wins += 1
            case Outcome.LOSS:
                stats_db.losses += 1
            case Outcome.DRAW:
                stats_db.draws += 1
        stats_db.time_played += max(0, elapsed_seconds)
        self.db.commit()

    def get_stats(self, game_id: str) -> GameStatsModel:
        """Tally of a game. A game without finished sessions has all counters at zero."""
        stats_db = self._fetch(game_id)
        if stats_db is None:
            return GameStatsModel(game_id=str(game_id))
        return self._to_model(stats_db)

    def _fetch(self, game_id: str) -> DBGameStats | None:
        query = select(DBGameStats).where(DBGameStats.game_id == str(game_id))
        return self.db.scalar(query)

    def _to_model(self, stats_db: DBGameStats) -> GameStatsModel:
        """Convert SQLAlchemy model to data transfer model."""
        return GameStatsModel(
            game_id=stats_db.game_id,
            wins=stats_db.wins,
            losses=stats_db.losses,
            draws=stats_db.draws,
            time_played=stats_db.time_played,
        )
