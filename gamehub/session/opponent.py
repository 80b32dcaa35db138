"""
Opponent move chooser
----

Whoever picks the moves of the non-human players (for instance a generative text service) hides behind
the OpponentChooser protocol. It may be slow, fail, or answer nonsense: `choose_with_fallback()` bounds the call with a
timeout and replaces any bad answer with a uniformly random legal move.
"""

import logging
import random
import threading
from concurrent.futures import Future
from concurrent.futures import TimeoutError as FutureTimeoutError
from typing import Any, Protocol, Sequence

from gamehub.core.exceptions import OpponentChooserError

logger = logging.getLogger(__name__)


class OpponentChooser(Protocol):
    def choose_move(self, position: Any, legal_moves: Sequence[Any]) -> Any:
        """Return one element of `legal_moves`."""
        ...


class RandomChooser:
    """Uniformly random legal move."""

    def __init__(self, rng: random.Random | None = None) -> None:
        self.rng = rng or random.Random()

    def choose_move(self, position: Any, legal_moves: Sequence[Any]) -> Any:
        return self.rng.choice(list(legal_moves))


def _ask(
    chooser: OpponentChooser,
    position: Any,
    legal_moves: Sequence[Any],
    timeout: float,
) -> Any:
    """
    Call the chooser in a worker thread. Anything but a legal move in time becomes an OpponentChooserError.

    The worker is a daemon thread: a chooser that never answers is abandoned and cannot hold up interpreter exit.
    """
    future: Future[Any] = Future()

    def run() -> None:
        try:
            future.set_result(chooser.choose_move(position, list(legal_moves)))
        except Exception as error:
            future.set_exception(error)

    threading.Thread(target=run, name="opponent-chooser", daemon=True).start()
    try:
        move = future.result(timeout=timeout)
    except FutureTimeoutError as error:
        raise OpponentChooserError(f"No answer within {timeout} seconds.") from error
    except Exception as error:
        raise OpponentChooserError(f"Chooser failed: {error!r}") from error

    if move not in legal_moves:
        raise OpponentChooserError(f"Chooser answered with an illegal move: {move!r}")
    return move


def choose_with_fallback(
    chooser: OpponentChooser,
    position: Any,
    legal_moves: Sequence[Any],
    rng: random.Random,
    timeout: float,
) -> Any:
    """A legal move, no matter what the chooser does."""
    if not legal_moves:
        raise OpponentChooserError("Cannot choose from an empty set of legal moves.")
    try:
        return _ask(chooser, position, legal_moves, timeout)
    except OpponentChooserError as error:
        logger.warning("Opponent chooser failed, playing a random legal move instead: %s", error)
        return rng.choice(list(legal_moves))
