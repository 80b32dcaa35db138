"""Unit tests for gamehub/session/coordinator.py"""

import logging
import random
from collections.abc import Generator
from typing import Any, Sequence

import pytest

from gamehub.core.config import Settings
from gamehub.core.exceptions import GameStateError, NotYourTurnError
from gamehub.core.shared_types import Outcome, SessionState
from gamehub.engines.base import GameEngine, GameStatus
from gamehub.engines.ludo import LudoColor, LudoEngine
from gamehub.engines.memory import MemoryEngine, Reveal
from gamehub.engines.snakes_ladders import ADVANCE, Racer, SnakesLaddersEngine
from gamehub.engines.tic_tac_toe import Mark, TicTacToeEngine, TicTacToeMove
from gamehub.session.coordinator import GameSession, SessionView
from gamehub.session.opponent import RandomChooser
from gamehub.session.snapshot import encode_snapshot
from gamehub.session.timers import ManualScheduler


# --- MOCK DEPENDENCIES ----
class MockSessionStore:
    """Mock the SessionStore using a dictionary of snapshots."""

    def __init__(self) -> None:
        self._snapshots: dict[str, str] = {}

    def save(self, game_id: str, snapshot: str) -> None:
        self._snapshots[str(game_id)] = snapshot

    def load(self, game_id: str) -> str | None:
        return self._snapshots.get(str(game_id))

    def clear(self, game_id: str) -> None:
        self._snapshots.pop(str(game_id), None)


class MockStatsRecorder:
    """Keeps every recorded result in a list."""

    def __init__(self) -> None:
        self.results: list[tuple[str, Outcome, int]] = []

    def record_result(self, game_id: str, outcome: Outcome, elapsed_seconds: int) -> None:
        self.results.append((str(game_id), outcome, elapsed_seconds))


class ScriptedChooser:
    """Plays the given moves in order."""

    def __init__(self, moves: Sequence[Any]) -> None:
        self.moves = list(moves)

    def choose_move(self, position: Any, legal_moves: Sequence[Any]) -> Any:
        return self.moves.pop(0)


class FailingChooser:
    def choose_move(self, position: Any, legal_moves: Sequence[Any]) -> Any:
        raise RuntimeError("opponent crashed")


class ScriptedDice(random.Random):
    """Rolls the given values, then ones."""

    def __init__(self, rolls: Sequence[int]) -> None:
        super().__init__(0)
        self.rolls = list(rolls)

    def randint(self, a: int, b: int) -> int:
        return self.rolls.pop(0) if self.rolls else 1


class FakeClock:
    def __init__(self, now: float = 100.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now


@pytest.fixture
def store() -> MockSessionStore:
    return MockSessionStore()


@pytest.fixture
def stats() -> MockStatsRecorder:
    return MockStatsRecorder()


@pytest.fixture
def scheduler() -> ManualScheduler:
    return ManualScheduler()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


def make_session(
    engine: GameEngine,
    store: MockSessionStore,
    stats: MockStatsRecorder,
    scheduler: ManualScheduler,
    clock: FakeClock,
    *,
    humans: Sequence[Any],
    chooser: Any = None,
    rng: random.Random | None = None,
    options: dict[str, Any] | None = None,
) -> GameSession:
    return GameSession(
        engine,
        human_players=humans,
        chooser=chooser or RandomChooser(random.Random(0)),
        stats=stats,
        store=store,
        scheduler=scheduler,
        rng=rng or random.Random(0),
        clock=clock,
        settings=Settings(opponent_timeout_seconds=1.0, memory_revert_delay_seconds=1.0),
        options=options,
    )


@pytest.fixture
def tic_tac_toe(
    store: MockSessionStore,
    stats: MockStatsRecorder,
    scheduler: ManualScheduler,
    clock: FakeClock,
) -> Generator[GameSession]:
    session = make_session(
        TicTacToeEngine(), store, stats, scheduler, clock, humans=[Mark.O]
    )
    try:
        yield session
    finally:
        session.close()


def ttt(notation: str) -> TicTacToeMove:
    return TicTacToeMove.from_notation(notation)


# --- TURN SEQUENCING ----
def test_fresh_start(tic_tac_toe: GameSession) -> None:
    view = tic_tac_toe.start()
    assert not tic_tac_toe.resumed
    assert view.state == SessionState.AWAITING_HUMAN_MOVE
    assert view.active_player == Mark.O
    assert len(view.legal_moves) == 9
    assert view.dice is None


def test_human_then_opponent(tic_tac_toe: GameSession) -> None:
    tic_tac_toe.start()
    assert tic_tac_toe.submit_move(ttt("1,1"))
    assert tic_tac_toe.state == SessionState.AWAITING_OPPONENT_MOVE
    assert tic_tac_toe.view().legal_moves == []

    move = tic_tac_toe.play_opponent_turn()
    assert tic_tac_toe.position.mark(move.cell) == Mark.X
    assert tic_tac_toe.state == SessionState.AWAITING_HUMAN_MOVE


def test_illegal_human_move_is_ignored(tic_tac_toe: GameSession) -> None:
    tic_tac_toe.start()
    tic_tac_toe.submit_move(ttt("0,0"))
    tic_tac_toe.play_opponent_turn()
    before = tic_tac_toe.position

    taken = next(
        TicTacToeMove((r, c))
        for r in range(3)
        for c in range(3)
        if before.mark((r, c)) is not None
    )
    assert not tic_tac_toe.submit_move(taken)
    assert tic_tac_toe.position == before
    assert tic_tac_toe.state == SessionState.AWAITING_HUMAN_MOVE


def test_human_move_on_opponent_turn_is_ignored(tic_tac_toe: GameSession) -> None:
    tic_tac_toe.start()
    tic_tac_toe.submit_move(ttt("0,0"))
    before = tic_tac_toe.position
    assert not tic_tac_toe.submit_move(ttt("2,2"))
    assert tic_tac_toe.position == before


def test_opponent_turn_requested_on_human_turn(tic_tac_toe: GameSession) -> None:
    tic_tac_toe.start()
    with pytest.raises(NotYourTurnError):
        tic_tac_toe.play_opponent_turn()


def test_broken_chooser_falls_back_to_a_legal_move(
    store: MockSessionStore,
    stats: MockStatsRecorder,
    scheduler: ManualScheduler,
    clock: FakeClock,
    caplog: pytest.LogCaptureFixture,
) -> None:
    session = make_session(
        TicTacToeEngine(), store, stats, scheduler, clock,
        humans=[Mark.O], chooser=FailingChooser(),
    )
    session.start()
    session.submit_move(ttt("1,1"))
    with caplog.at_level(logging.WARNING):
        move = session.play_opponent_turn()
    assert move.cell != (1, 1)
    assert session.position.mark(move.cell) == Mark.X
    assert "opponent crashed" in caplog.text


def test_listeners_see_every_resolution(tic_tac_toe: GameSession) -> None:
    views: list[SessionView] = []
    tic_tac_toe.add_listener(views.append)
    tic_tac_toe.start()
    tic_tac_toe.submit_move(ttt("0,0"))
    assert [view.state for view in views] == [
        SessionState.AWAITING_HUMAN_MOVE,
        SessionState.AWAITING_OPPONENT_MOVE,
    ]


# --- FINISHING ----
def test_human_win_is_recorded_once(
    store: MockSessionStore,
    stats: MockStatsRecorder,
    scheduler: ManualScheduler,
    clock: FakeClock,
) -> None:
    session = make_session(
        TicTacToeEngine(), store, stats, scheduler, clock,
        humans=[Mark.O], chooser=ScriptedChooser([ttt("0,1"), ttt("0,2")]),
    )
    session.start()
    for notation in ("0,0", "1,1"):
        session.submit_move(ttt(notation))
        session.play_opponent_turn()
    clock.now += 12
    session.submit_move(ttt("2,2"))

    assert session.state == SessionState.FINISHED
    assert stats.results == [("tic-tac-toe", Outcome.WIN, 12)]

    # nothing can happen to a finished session
    assert not session.submit_move(ttt("1,0"))
    with pytest.raises(GameStateError):
        session.play_opponent_turn()
    clock.now += 100
    assert session.elapsed_seconds == 12
    assert len(stats.results) == 1


def test_opponent_win_is_a_loss(
    store: MockSessionStore,
    stats: MockStatsRecorder,
    scheduler: ManualScheduler,
    clock: FakeClock,
) -> None:
    session = make_session(
        TicTacToeEngine(), store, stats, scheduler, clock,
        humans=[Mark.O],
        chooser=ScriptedChooser([ttt("0,0"), ttt("0,1"), ttt("0,2")]),
    )
    session.start()
    for notation in ("1,0", "2,1", "2,2"):
        session.submit_move(ttt(notation))
        session.play_opponent_turn()

    assert session.view().status.winner == Mark.X
    assert stats.results == [("tic-tac-toe", Outcome.LOSS, 0)]


def test_finish_discards_the_stored_snapshot(
    tic_tac_toe: GameSession, store: MockSessionStore
) -> None:
    tic_tac_toe.start()
    tic_tac_toe.save()
    assert store.load("tic-tac-toe") is not None

    tic_tac_toe.submit_move(ttt("0,0"))
    while tic_tac_toe.state != SessionState.FINISHED:
        if tic_tac_toe.state == SessionState.AWAITING_OPPONENT_MOVE:
            tic_tac_toe.play_opponent_turn()
        else:
            tic_tac_toe.submit_move(tic_tac_toe.view().legal_moves[0])
    assert store.load("tic-tac-toe") is None


@pytest.mark.parametrize(
    "status, expected",
    [
        (GameStatus.win(Mark.O), Outcome.WIN),
        (GameStatus.win(Mark.X), Outcome.LOSS),
        (GameStatus.draw("board full"), Outcome.DRAW),
        (GameStatus.stalemate(), Outcome.DRAW),
    ],
)
def test_outcome_from_the_human_side(
    tic_tac_toe: GameSession, status: GameStatus, expected: Outcome
) -> None:
    assert tic_tac_toe.outcome(status) == expected


# --- SAVE / RESUME ----
def test_save_only_while_human_to_move(tic_tac_toe: GameSession) -> None:
    tic_tac_toe.start()
    tic_tac_toe.submit_move(ttt("0,0"))
    with pytest.raises(GameStateError):
        tic_tac_toe.save()


def test_resume_round_trip(
    store: MockSessionStore,
    stats: MockStatsRecorder,
    scheduler: ManualScheduler,
    clock: FakeClock,
) -> None:
    first = make_session(TicTacToeEngine(), store, stats, scheduler, clock, humans=[Mark.O])
    first.start()
    first.submit_move(ttt("1,1"))
    first.play_opponent_turn()
    clock.now += 30
    first.save()
    first.close()
    saved_position = first.position

    clock.now = 5000
    second = make_session(TicTacToeEngine(), store, stats, scheduler, clock, humans=[Mark.O])
    view = second.start()
    assert second.resumed
    assert view.position == saved_position
    assert view.state == SessionState.AWAITING_HUMAN_MOVE
    assert view.elapsed_seconds == 30
    # a snapshot is good for a single resume
    assert store.load("tic-tac-toe") is None

    clock.now += 5
    assert second.elapsed_seconds == 35


def test_new_game_discards_snapshot(
    tic_tac_toe: GameSession, store: MockSessionStore
) -> None:
    engine = TicTacToeEngine()
    played = engine.apply(engine.initial_position(), ttt("0,0"))
    store.save("tic-tac-toe", encode_snapshot(engine, played, elapsed_seconds=3))

    view = tic_tac_toe.start(resume=False)
    assert not tic_tac_toe.resumed
    assert view.position == engine.initial_position()
    assert store.load("tic-tac-toe") is None


@pytest.mark.parametrize("blob", ["not a snapshot", '{"version": 1, "game_id": "chess"}'])
def test_corrupt_snapshot_starts_fresh(
    tic_tac_toe: GameSession,
    store: MockSessionStore,
    caplog: pytest.LogCaptureFixture,
    blob: str,
) -> None:
    store.save("tic-tac-toe", blob)
    with caplog.at_level(logging.WARNING, logger="gamehub.session.coordinator"):
        view = tic_tac_toe.start()
    assert not tic_tac_toe.resumed
    assert view.position == TicTacToeEngine().initial_position()
    assert store.load("tic-tac-toe") is None
    assert "corrupt" in caplog.text


def snapshot_of(*cells: str) -> str:
    engine = TicTacToeEngine()
    position = engine.initial_position()
    for cell in cells:
        position = engine.apply(position, ttt(cell))
    return encode_snapshot(engine, position, elapsed_seconds=5)


def test_finished_game_snapshot_starts_fresh(
    tic_tac_toe: GameSession, store: MockSessionStore, stats: MockStatsRecorder
) -> None:
    # O holds row 0
    store.save("tic-tac-toe", snapshot_of("0,0", "1,0", "0,1", "1,1", "0,2"))
    view = tic_tac_toe.start()

    assert not tic_tac_toe.resumed
    assert view.state == SessionState.AWAITING_HUMAN_MOVE
    assert view.position == TicTacToeEngine().initial_position()
    assert stats.results == []
    assert store.load("tic-tac-toe") is None


def test_snapshot_with_opponent_to_move_starts_fresh(
    tic_tac_toe: GameSession, store: MockSessionStore
) -> None:
    store.save("tic-tac-toe", snapshot_of("0,0"))
    view = tic_tac_toe.start()

    assert not tic_tac_toe.resumed
    assert view.position == TicTacToeEngine().initial_position()


# --- DICE GAMES ----
def test_roll_without_moves_passes_the_turn(
    store: MockSessionStore,
    stats: MockStatsRecorder,
    scheduler: ManualScheduler,
    clock: FakeClock,
) -> None:
    session = make_session(
        LudoEngine(), store, stats, scheduler, clock,
        humans=list(LudoColor), rng=ScriptedDice([3, 6]),
    )
    view = session.start()
    # red cannot leave home with a 3
    assert view.active_player == LudoColor.GREEN
    assert view.dice == 6
    assert view.state == SessionState.AWAITING_HUMAN_MOVE
    assert view.legal_moves


def test_dice_rolled_at_turn_start(
    store: MockSessionStore,
    stats: MockStatsRecorder,
    scheduler: ManualScheduler,
    clock: FakeClock,
) -> None:
    engine = SnakesLaddersEngine()
    session = make_session(
        engine, store, stats, scheduler, clock,
        humans=[Racer.PLAYER], rng=ScriptedDice([2, 4]),
    )
    view = session.start()
    assert view.dice == 2
    assert view.legal_moves == [ADVANCE]

    assert session.submit_move(ADVANCE)
    assert session.position.square_of(Racer.PLAYER) == engine.destination(1, 2)
    assert session.state == SessionState.AWAITING_OPPONENT_MOVE
    assert session.view().dice == 4

    session.play_opponent_turn()
    assert session.position.square_of(Racer.AI) == engine.destination(1, 4)
    assert session.state == SessionState.AWAITING_HUMAN_MOVE
    assert session.view().dice == 1


# --- PENDING EFFECTS ----
@pytest.fixture
def memory(
    store: MockSessionStore,
    stats: MockStatsRecorder,
    scheduler: ManualScheduler,
    clock: FakeClock,
) -> Generator[GameSession]:
    session = make_session(
        MemoryEngine(), store, stats, scheduler, clock,
        humans=["player"],
        options={"symbols": ("A", "B"), "rng": random.Random(7)},
    )
    session.start()
    try:
        yield session
    finally:
        session.close()


def pair_and_other(session: GameSession) -> tuple[int, int]:
    cards = session.position.cards
    twin = next(i for i in range(1, len(cards)) if cards[i] == cards[0])
    other = next(i for i in range(1, len(cards)) if cards[i] != cards[0])
    return twin, other


def test_mismatch_reverts_after_delay(
    memory: GameSession, scheduler: ManualScheduler
) -> None:
    twin, other = pair_and_other(memory)
    assert memory.submit_move(Reveal(0))
    assert memory.state == SessionState.AWAITING_HUMAN_MOVE
    assert memory.submit_move(Reveal(other))

    assert memory.state == SessionState.RESOLVING
    assert memory.position.face_up == (0, other)
    assert not memory.submit_move(Reveal(twin))

    assert scheduler.advance(0.5) == 0
    assert memory.position.face_up == (0, other)
    assert scheduler.advance(0.5) == 1
    assert memory.position.face_up == ()
    assert memory.position.attempts == 1
    assert memory.state == SessionState.AWAITING_HUMAN_MOVE


def test_close_cancels_pending_revert(
    memory: GameSession, scheduler: ManualScheduler
) -> None:
    _, other = pair_and_other(memory)
    memory.submit_move(Reveal(0))
    memory.submit_move(Reveal(other))
    memory.close()

    assert scheduler.pending == 0
    assert scheduler.advance(5.0) == 0
    assert memory.position.face_up == (0, other)


def test_memory_solved_is_a_win(
    memory: GameSession, stats: MockStatsRecorder, clock: FakeClock
) -> None:
    twin, other = pair_and_other(memory)
    rest = [i for i in range(1, 4) if i not in (twin, other)]
    memory.submit_move(Reveal(0))
    memory.submit_move(Reveal(twin))
    clock.now += 7
    memory.submit_move(Reveal(other))
    memory.submit_move(Reveal(rest[0]))

    assert memory.state == SessionState.FINISHED
    assert memory.view().status.reason == "all pairs found in 2 moves"
    assert stats.results == [("memory-game", Outcome.WIN, 7)]
