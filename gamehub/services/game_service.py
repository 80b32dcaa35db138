"""Orchestration of communication from the host UI to the game sessions and persistence layer (and the reverse direction)."""

import logging
import random
import time
from typing import Any, Callable, Optional
from uuid import UUID, uuid4

from gamehub.api.models import (
    LegalMovesResponse,
    MoveRequest,
    SessionRequest,
    SessionResponse,
    StartSessionRequest,
)
from gamehub.core.config import Settings
from gamehub.core.exceptions import RepositoryError
from gamehub.core.shared_types import GameId, SessionState
from gamehub.db.database import build_sessionmaker
from gamehub.db.repository import SessionStore, StatsRecorder
from gamehub.db.sql_repository import SQLSessionStore, SQLStatsRecorder
from gamehub.engines.registry import HUMAN_PLAYERS, create_engine
from gamehub.session.coordinator import GameSession, SessionView
from gamehub.session.opponent import OpponentChooser, RandomChooser
from gamehub.session.timers import Scheduler, ThreadingScheduler

logger = logging.getLogger(__name__)


class GameHubService:
    """
    Hosts any number of independent game sessions.
    ----

    Each session owns its position exclusively, so an error in one of them never affects another.
    GameError subclasses propagate to the caller.
    """

    def __init__(
        self,
        store: SessionStore,
        stats: StatsRecorder,
        *,
        settings: Optional[Settings] = None,
        chooser: Optional[OpponentChooser] = None,
        scheduler: Optional[Scheduler] = None,
        rng: Optional[random.Random] = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.store = store
        self.stats = stats
        self.settings = settings or Settings()
        self.rng = rng or random.Random()
        self.chooser = chooser or RandomChooser(self.rng)
        self.scheduler = scheduler or ThreadingScheduler()
        self.clock = clock
        self._sessions: dict[UUID, GameSession] = {}

    # -- host UI logic ---
    def start_session(self, request: StartSessionRequest) -> SessionResponse:
        """Open a game: resume its saved session if requested (and valid), otherwise start a new one."""
        session = GameSession(
            create_engine(request.game_id, self.settings),
            human_players=HUMAN_PLAYERS[request.game_id],
            chooser=self.chooser,
            stats=self.stats,
            store=self.store,
            scheduler=self.scheduler,
            rng=self.rng,
            clock=self.clock,
            settings=self.settings,
            options=self._engine_options(request),
        )
        session.start(resume=request.resume)

        session_id = uuid4()
        self._sessions[session_id] = session
        return self._create_session_response(session_id, session)

    def get_session(self, request: SessionRequest) -> SessionResponse:
        """
        Retrieve current session state.
        ----
        Used in a polling loop by the host, for instance to see a mismatched memory pair turned back.
        """
        session = self._fetch_session(request.session_id)
        return self._create_session_response(request.session_id, session)

    def legal_moves(self, request: SessionRequest) -> LegalMovesResponse:
        session = self._fetch_session(request.session_id)
        view = session.view()
        return LegalMovesResponse(
            session_id=request.session_id,
            game_id=session.game_id,
            active_player=str(view.active_player),
            legal_moves=[move.to_notation() for move in view.legal_moves],
        )

    def make_move(self, request: MoveRequest) -> SessionResponse:
        """Human move attempt. A move that is not acceptable right now is ignored (accepted=False)."""
        session = self._fetch_session(request.session_id)

        # unparseable notation raises InvalidMoveError
        move = session.engine.parse_move(request.move)
        accepted = session.submit_move(move)
        response = self._create_session_response(request.session_id, session, accepted=accepted)
        self._release_if_finished(request.session_id, session)
        return response

    def play_opponent_turn(self, request: SessionRequest) -> SessionResponse:
        """Play opponent moves until the human is to move again (or the game is over)."""
        session = self._fetch_session(request.session_id)

        played: list[str] = []
        while session.state == SessionState.AWAITING_OPPONENT_MOVE:
            played.append(session.play_opponent_turn().to_notation())
        response = self._create_session_response(
            request.session_id, session, opponent_moves=played
        )
        self._release_if_finished(request.session_id, session)
        return response

    def save_and_exit(self, request: SessionRequest) -> None:
        """Store a snapshot of the session, then close it."""
        session = self._fetch_session(request.session_id)
        session.save()
        self._close(request.session_id)

    def end_session(self, request: SessionRequest) -> None:
        """Close the session without saving."""
        self._fetch_session(request.session_id)
        self._close(request.session_id)

    # -- Internal helpers --
    def _engine_options(self, request: StartSessionRequest) -> dict[str, Any]:
        options: dict[str, Any] = {}
        if request.seed is not None:
            options["rng"] = random.Random(request.seed)
        if request.game_id == GameId.SUDOKU:
            options["size"] = request.sudoku_size or self.settings.sudoku_default_size
            if request.difficulty is not None:
                options["difficulty"] = request.difficulty
        return options

    def _release_if_finished(self, session_id: UUID, session: GameSession) -> None:
        """A finished session has sent its final response and is dropped."""
        if session.state == SessionState.FINISHED:
            self._close(session_id)

    def _close(self, session_id: UUID) -> None:
        session = self._sessions.pop(session_id)
        session.close()
        logger.info("Closed %s session %s", session.game_id, session_id)

    def _create_session_response(
        self,
        session_id: UUID,
        session: GameSession,
        accepted: Optional[bool] = None,
        opponent_moves: Optional[list[str]] = None,
    ) -> SessionResponse:
        """Convert the session view to a SessionResponse."""
        view: SessionView = session.view()
        return SessionResponse(
            session_id=session_id,
            game_id=session.game_id,
            state=view.state,
            status=view.status.kind,
            winner=view.status.winner,
            reason=view.status.reason,
            active_player=str(view.active_player),
            dice=view.dice,
            position=session.engine.position_to_dict(view.position),
            legal_moves=[move.to_notation() for move in view.legal_moves],
            elapsed_seconds=view.elapsed_seconds,
            resumed=session.resumed,
            accepted=accepted,
            opponent_moves=opponent_moves or [],
        )

    def _fetch_session(self, session_id: UUID) -> GameSession:
        """Attempt to find the session and raise error if it fails."""
        session = self._sessions.get(session_id)
        if session is None:
            raise RepositoryError(f"Session with {session_id=} not found.")
        return session


def create_service(settings: Optional[Settings] = None) -> GameHubService:
    """Service backed by the SQL database named in the settings."""
    settings = settings or Settings.from_env()
    db = build_sessionmaker(settings)()
    return GameHubService(
        SQLSessionStore(db),
        SQLStatsRecorder(db),
        settings=settings,
    )
