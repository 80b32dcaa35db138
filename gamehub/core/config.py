"""Application settings. Defaults match the timings of the web front-end."""

import os
from dataclasses import dataclass
from typing import Self

ENV_PREFIX = "GAMEHUB_"


@dataclass(frozen=True)
class Settings:
    database_url: str = "sqlite:///gamehub.db"
    # the external chooser may be network backed
    opponent_timeout_seconds: float = 10.0
    # mismatched memory cards stay face up this long
    memory_revert_delay_seconds: float = 1.0
    sudoku_default_size: int = 9

    @classmethod
    def from_env(cls) -> Self:
        """Override the defaults with GAMEHUB_* environment variables (if set)."""
        defaults = cls()
        return cls(
            database_url=os.environ.get(
                f"{ENV_PREFIX}DATABASE_URL", defaults.database_url
            ),
            opponent_timeout_seconds=float(
                os.environ.get(
                    f"{ENV_PREFIX}OPPONENT_TIMEOUT_SECONDS",
                    defaults.opponent_timeout_seconds,
                )
            ),
            memory_revert_delay_seconds=float(
                os.environ.get(
                    f"{ENV_PREFIX}MEMORY_REVERT_DELAY_SECONDS",
                    defaults.memory_revert_delay_seconds,
                )
            ),
            sudoku_default_size=int(
                os.environ.get(
                    f"{ENV_PREFIX}SUDOKU_DEFAULT_SIZE", defaults.sudoku_default_size
                )
            ),
        )
