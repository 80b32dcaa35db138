"""
Boundary layer data model(s).

Transport-safe objects passed between the db layer and the service layer (keeps SQLAlchemy rows out of the service).
"""

from dataclasses import dataclass


@dataclass
class GameStatsModel:
    """Tally of finished sessions for a single game (the leaderboard/profile pages read this)."""

    game_id: str
    wins: int = 0
    losses: int = 0
    draws: int = 0
    time_played: int = 0  # in seconds

    @property
    def games_played(self) -> int:
        return self.wins + self.losses + self.draws
