"""Custom exceptions shared across layers. Catch `GameError` to handle anything raised on purpose by this package."""


class GameError(Exception):
    """Top-level exception for anything going wrong while playing a game."""


class InvalidMoveError(GameError):
    """The move is not part of the legal move set (or could not be parsed)."""


class NotYourTurnError(GameError):
    """A move was submitted while the session was waiting for someone else."""


class GameStateError(GameError):
    """Operation is not allowed in the current state of the game/session."""


class OpponentChooserError(GameError):
    """The external opponent move chooser failed, timed out or answered with an illegal move."""


class CorruptSnapshotError(GameError):
    """Saved session data does not have the expected shape."""


class InvalidPuzzleError(GameError):
    """Sudoku puzzle and solution do not fit together."""


class RepositoryError(GameError):
    """Requested record does not exist."""


class InvalidRequestError(GameError):
    """Request data rejected at the boundary."""
