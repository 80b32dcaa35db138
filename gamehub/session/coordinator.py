"""
Turn coordinator / session state machine
----

A GameSession owns the authoritative position of one game and sequences the turns:

    AWAITING_HUMAN_MOVE / AWAITING_OPPONENT_MOVE --move--> RESOLVING --status--> next AWAITING state | FINISHED

* Bonus turns need no special case: the engine keeps the same player to move, so the same AWAITING state repeats.
* Dice games get their roll from the coordinator when a turn starts. A roll without legal moves passes the turn.
* Pending effects (a mismatched memory pair) keep the session RESOLVING until a scheduled callback settles them.
* On FINISHED the result is recorded exactly once and the stored snapshot is discarded.

The host UI only gets read-only SessionView objects, and forwards moves back through `submit_move()`.
"""

import logging
import random
import threading
import time
from dataclasses import dataclass
from typing import Any, Callable, Iterable, Optional

from gamehub.core.config import Settings
from gamehub.core.exceptions import (
    CorruptSnapshotError,
    GameStateError,
    InvalidMoveError,
    NotYourTurnError,
)
from gamehub.core.shared_types import Outcome, SessionState, StatusKind
from gamehub.db.repository import SessionStore, StatsRecorder
from gamehub.engines.base import GameEngine, GameStatus
from gamehub.session.opponent import OpponentChooser, choose_with_fallback
from gamehub.session.snapshot import decode_snapshot, encode_snapshot
from gamehub.session.timers import Scheduler, TimerHandle

logger = logging.getLogger(__name__)

DIE_FACES = 6


@dataclass(frozen=True)
class SessionView:
    """What the host UI gets to see after every resolution."""

    position: Any
    legal_moves: list[Any]
    status: GameStatus
    state: SessionState
    active_player: Any
    dice: Optional[int]
    elapsed_seconds: int


Listener = Callable[[SessionView], None]


class GameSession:
    def __init__(
        self,
        engine: GameEngine,
        *,
        human_players: Iterable[Any],
        chooser: OpponentChooser,
        stats: StatsRecorder,
        store: SessionStore,
        scheduler: Scheduler,
        rng: Optional[random.Random] = None,
        clock: Callable[[], float] = time.monotonic,
        settings: Optional[Settings] = None,
        options: Optional[dict[str, Any]] = None,
    ) -> None:
        self.engine = engine
        self.human_players = frozenset(str(player) for player in human_players)
        self.chooser = chooser
        self.stats = stats
        self.store = store
        self.scheduler = scheduler
        self.rng = rng or random.Random()
        self.clock = clock
        self.settings = settings or Settings()
        self.options = options or {}

        self.position: Any = None
        self.state = SessionState.RESOLVING
        self.resumed = False

        self._listeners: list[Listener] = []
        self._lock = threading.RLock()
        self._pending: Optional[TimerHandle] = None
        self._closed = False
        self._result_recorded = False
        self._started_at = 0.0
        self._elapsed_before = 0
        self._final_elapsed: Optional[int] = None

    @property
    def game_id(self) -> str:
        return self.engine.game_id

    # -- lifecycle --
    def start(self, resume: bool = True) -> SessionView:
        """
        Resume from the stored snapshot (if any and if it passes validation), otherwise start a fresh game.
        A new game (`resume=False`) discards whatever snapshot was stored.
        """
        with self._lock:
            position, elapsed = None, 0
            if resume:
                position, elapsed = self._load_snapshot()
            else:
                self.store.clear(self.game_id)

            self.resumed = position is not None
            if position is None:
                position = self.engine.initial_position(**self.options)
                logger.info("Started a new %s session", self.game_id)
            else:
                logger.info("Resumed %s session after %s seconds of play", self.game_id, elapsed)

            self.position = position
            self._elapsed_before = elapsed
            self._started_at = self.clock()
            self._advance()
            return self.view()

    def _load_snapshot(self) -> tuple[Any, int]:
        blob = self.store.load(self.game_id)
        if blob is None:
            return None, 0
        # a snapshot is consumed exactly once
        self.store.clear(self.game_id)
        try:
            position, elapsed = decode_snapshot(self.engine, blob)
            # saving is only possible while a human is to move
            if not self._is_human(self.engine.active_player(position)):
                raise CorruptSnapshotError(
                    f"{self.engine.active_player(position)} is to move, which is not a human player."
                )
            return position, elapsed
        except CorruptSnapshotError as error:
            logger.warning("Discarding corrupt %s snapshot: %s", self.game_id, error)
            return None, 0

    def save(self) -> str:
        """Store a snapshot. Only possible while the human is to move (never mid-resolution)."""
        with self._lock:
            if self._closed or self.state != SessionState.AWAITING_HUMAN_MOVE:
                raise GameStateError(f"Cannot save a session in state '{self.state}'.")
            blob = encode_snapshot(self.engine, self.position, self.elapsed_seconds)
            self.store.save(self.game_id, blob)
            logger.info("Saved %s session", self.game_id)
            return blob

    def close(self) -> None:
        """Tear the session down. Scheduled callbacks are cancelled and can no longer touch it."""
        with self._lock:
            self._closed = True
            if self._pending is not None:
                self._pending.cancel()
                self._pending = None

    @property
    def closed(self) -> bool:
        return self._closed

    # -- moves --
    def submit_move(self, move: Any) -> bool:
        """
        Human move. Input that is not acceptable right now (wrong state, illegal move) is ignored.

        Returns
        ----
        whether the move was played
        """
        with self._lock:
            if self._closed or self.state != SessionState.AWAITING_HUMAN_MOVE:
                logger.debug("Ignored %r: session is %s", move, "closed" if self._closed else self.state)
                return False
            try:
                position = self.engine.apply(self.position, move)
            except InvalidMoveError:
                logger.debug("Ignored illegal move %r in %s", move, self.game_id)
                return False
            self._resolve(position)
            return True

    def play_opponent_turn(self) -> Any:
        """Let the opponent chooser (or the random fallback) play one move. Returns the move played."""
        with self._lock:
            if self._closed:
                raise GameStateError("Session is closed.")
            if self.state == SessionState.AWAITING_HUMAN_MOVE:
                raise NotYourTurnError(f"{self.active_player} is played by a human.")
            if self.state != SessionState.AWAITING_OPPONENT_MOVE:
                raise GameStateError(f"No opponent move possible in state '{self.state}'.")

            legal_moves = self.engine.legal_moves(self.position)
            move = choose_with_fallback(
                self.chooser,
                self.position,
                legal_moves,
                self.rng,
                self.settings.opponent_timeout_seconds,
            )
            self._resolve(self.engine.apply(self.position, move))
            return move

    # -- state machine --
    def _resolve(self, position: Any) -> None:
        self.position = position
        self._advance()

    def _advance(self) -> None:
        """Run the terminal-state detector and move on to whatever the position asks for next."""
        self.state = SessionState.RESOLVING
        while True:
            status = self.engine.status(self.position)
            if status.is_terminal:
                self._finish(status)
                return

            if self.engine.pending_effect(self.position):
                self._schedule_settle()
                self._notify()
                return

            if self.engine.rolls_dice and getattr(self.position, "dice", None) is None:
                self.position = self.engine.roll(self.position, self.rng.randint(1, DIE_FACES))
                if not self.engine.legal_moves(self.position):
                    logger.debug(
                        "%s rolled a %s without any legal move, passing the turn",
                        self.active_player,
                        self.position.dice,
                    )
                    self.position = self.engine.pass_turn(self.position)
                    continue
            break

        self.state = (
            SessionState.AWAITING_HUMAN_MOVE
            if self._is_human(self.active_player)
            else SessionState.AWAITING_OPPONENT_MOVE
        )
        self._notify()

    def _schedule_settle(self) -> None:
        delay = self.settings.memory_revert_delay_seconds
        logger.debug("Settling the pending effect of %s in %s seconds", self.game_id, delay)
        self._pending = self.scheduler.schedule(delay, self._settle)

    def _settle(self) -> None:
        with self._lock:
            if self._closed:
                return
            self._pending = None
            self.position = self.engine.settle(self.position)
            self._advance()

    def _finish(self, status: GameStatus) -> None:
        self.state = SessionState.FINISHED
        self._final_elapsed = self.elapsed_seconds
        if not self._result_recorded:
            self._result_recorded = True
            outcome = self.outcome(status)
            self.stats.record_result(self.game_id, outcome, self._final_elapsed)
            logger.info(
                "Finished %s session: %s (%s) after %s seconds",
                self.game_id,
                outcome,
                status.reason,
                self._final_elapsed,
            )
        self.store.clear(self.game_id)
        self._notify()

    def outcome(self, status: GameStatus) -> Outcome:
        """Terminal status as seen by the human player."""
        if status.kind == StatusKind.WIN:
            return Outcome.WIN if self._is_human(status.winner) else Outcome.LOSS
        return Outcome.DRAW

    # -- queries --
    def _is_human(self, player: Any) -> bool:
        return str(player) in self.human_players

    @property
    def active_player(self) -> Any:
        return self.engine.active_player(self.position)

    @property
    def elapsed_seconds(self) -> int:
        if self._final_elapsed is not None:
            return self._final_elapsed
        return self._elapsed_before + max(0, int(self.clock() - self._started_at))

    def view(self) -> SessionView:
        legal_moves = (
            self.engine.legal_moves(self.position)
            if self.state == SessionState.AWAITING_HUMAN_MOVE
            else []
        )
        return SessionView(
            position=self.position,
            legal_moves=legal_moves,
            status=self.engine.status(self.position),
            state=self.state,
            active_player=self.active_player,
            dice=getattr(self.position, "dice", None),
            elapsed_seconds=self.elapsed_seconds,
        )

    # -- listeners --
    def add_listener(self, listener: Listener) -> None:
        self._listeners.append(listener)

    def _notify(self) -> None:
        if not self._listeners:
            return
        view = self.view()
        for listener in self._listeners:
            listener(view)
