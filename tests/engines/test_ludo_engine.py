"""Unit tests for gamehub/engines/ludo.py"""

import pytest

from gamehub.core.exceptions import CorruptSnapshotError, GameStateError, InvalidMoveError
from gamehub.core.shared_types import StatusKind
from gamehub.engines.ludo import (
    AT_HOME,
    FINISH_STEP,
    START_SQUARES,
    LudoColor,
    LudoEngine,
    LudoMove,
    LudoPosition,
    next_color,
    track_square,
)

HOME = (AT_HOME,) * 4


@pytest.fixture
def engine() -> LudoEngine:
    return LudoEngine()


def make_position(
    to_move: LudoColor = LudoColor.RED,
    dice: int | None = None,
    **steps: tuple[int, ...],
) -> LudoPosition:
    """Pieces per color name (red=..., green=...), everyone else at home."""
    position = LudoPosition.starting_position()
    for name, color_steps in steps.items():
        position = position.with_steps(LudoColor(name), color_steps)
    return LudoPosition(pieces=position.pieces, to_move=to_move, dice=dice)


def test_turn_order() -> None:
    assert next_color(LudoColor.RED) == LudoColor.GREEN
    assert next_color(LudoColor.BLUE) == LudoColor.RED


def test_track_squares() -> None:
    assert track_square(LudoColor.GREEN, 0) == START_SQUARES[LudoColor.GREEN]
    assert track_square(LudoColor.BLUE, 20) == (39 + 20) % 52
    assert track_square(LudoColor.RED, AT_HOME) is None
    assert track_square(LudoColor.RED, 53) is None


def test_no_moves_before_rolling(engine: LudoEngine) -> None:
    assert engine.legal_moves(engine.initial_position()) == []


@pytest.mark.parametrize("roll", [1, 2, 3, 4, 5])
def test_leaving_home_needs_a_six(engine: LudoEngine, roll: int) -> None:
    position = engine.roll(engine.initial_position(), roll)
    assert engine.legal_moves(position) == []


def test_six_lets_every_piece_leave_home(engine: LudoEngine) -> None:
    position = engine.roll(engine.initial_position(), 6)
    assert engine.legal_moves(position) == [LudoMove(i) for i in range(4)]

    after = engine.apply(position, LudoMove(2))
    assert after.steps(LudoColor.RED) == (AT_HOME, AT_HOME, 0, AT_HOME)
    # rolling a 6 grants a bonus turn
    assert after.to_move == LudoColor.RED
    assert after.dice is None


def test_only_pieces_on_the_track_move_without_a_six(engine: LudoEngine) -> None:
    position = make_position(dice=4, red=(10, AT_HOME, AT_HOME, AT_HOME))
    assert engine.legal_moves(position) == [LudoMove(0)]
    after = engine.apply(position, LudoMove(0))
    assert after.steps(LudoColor.RED)[0] == 14
    assert after.to_move == LudoColor.GREEN


def test_pass_turn_without_moves(engine: LudoEngine) -> None:
    position = engine.roll(engine.initial_position(), 3)
    after = engine.pass_turn(position)
    assert after.to_move == LudoColor.GREEN
    assert after.dice is None


def test_cannot_pass_with_legal_moves(engine: LudoEngine) -> None:
    position = engine.roll(engine.initial_position(), 6)
    with pytest.raises(GameStateError):
        engine.pass_turn(position)


def test_cannot_roll_twice(engine: LudoEngine) -> None:
    position = engine.roll(engine.initial_position(), 2)
    with pytest.raises(GameStateError):
        engine.roll(position, 5)


@pytest.mark.parametrize("value", [0, 7])
def test_die_faces(engine: LudoEngine, value: int) -> None:
    with pytest.raises(GameStateError):
        engine.roll(engine.initial_position(), value)


def test_capture_sends_opponent_home(engine: LudoEngine) -> None:
    # red piece on square 3 moves to 5, where a single green piece (green step 44 = square 5) stands
    position = make_position(dice=2, red=(3, AT_HOME, AT_HOME, AT_HOME), green=(44, AT_HOME, AT_HOME, AT_HOME))
    assert track_square(LudoColor.GREEN, 44) == 5
    after = engine.apply(position, LudoMove(0))
    assert after.steps(LudoColor.GREEN)[0] == AT_HOME
    # capturing grants a bonus turn
    assert after.to_move == LudoColor.RED


def test_no_capture_on_safe_squares(engine: LudoEngine) -> None:
    # square 8 is safe (red start + 8); green step 47 = square 8
    position = make_position(dice=3, red=(5, AT_HOME, AT_HOME, AT_HOME), green=(47, AT_HOME, AT_HOME, AT_HOME))
    after = engine.apply(position, LudoMove(0))
    assert after.steps(LudoColor.GREEN)[0] == 47
    assert after.to_move == LudoColor.GREEN


def test_blockade_cannot_be_passed(engine: LudoEngine) -> None:
    # two green pieces on square 5 block the red piece on square 3
    position = make_position(dice=4, red=(3, AT_HOME, AT_HOME, AT_HOME), green=(44, 44, AT_HOME, AT_HOME))
    assert position.is_blockaded(5, LudoColor.RED)
    assert engine.legal_moves(position) == []


def test_blockade_on_start_square_keeps_pieces_home(engine: LudoEngine) -> None:
    # green step 39 = square 0, the red start
    position = make_position(dice=6, green=(39, 39, AT_HOME, AT_HOME))
    assert engine.legal_moves(position) == []


def test_finish_needs_the_exact_count(engine: LudoEngine) -> None:
    position = make_position(dice=5, red=(FINISH_STEP - 3, AT_HOME, AT_HOME, AT_HOME))
    assert engine.legal_moves(position) == []

    position = make_position(dice=3, red=(FINISH_STEP - 3, AT_HOME, AT_HOME, AT_HOME))
    after = engine.apply(position, LudoMove(0))
    assert after.steps(LudoColor.RED)[0] == FINISH_STEP
    # finishing grants a bonus turn
    assert after.to_move == LudoColor.RED


def test_all_pieces_finished_wins(engine: LudoEngine) -> None:
    position = make_position(dice=2, red=(FINISH_STEP, FINISH_STEP, FINISH_STEP, FINISH_STEP - 2))
    after = engine.apply(position, LudoMove(3))
    status = engine.status(after)
    assert status.kind == StatusKind.WIN
    assert status.winner == LudoColor.RED
    assert engine.legal_moves(engine.roll(after, 6)) == []


def test_other_players_have_no_moves(engine: LudoEngine) -> None:
    position = engine.roll(engine.initial_position(), 6)
    assert engine.legal_moves(position, LudoColor.GREEN) == []


def test_illegal_move_is_rejected(engine: LudoEngine) -> None:
    position = engine.roll(engine.initial_position(), 2)
    with pytest.raises(InvalidMoveError):
        engine.apply(position, LudoMove(0))


def test_notation(engine: LudoEngine) -> None:
    assert engine.parse_move("3") == LudoMove(3)
    with pytest.raises(InvalidMoveError):
        engine.parse_move("third")


def test_snapshot_round_trip(engine: LudoEngine) -> None:
    position = make_position(to_move=LudoColor.YELLOW, dice=4, red=(5, AT_HOME, 56, 12), yellow=(0, 0, 1, AT_HOME))
    assert engine.position_from_dict(engine.position_to_dict(position)) == position


@pytest.mark.parametrize(
    "patch",
    [
        {"to_move": "purple"},
        {"dice": 9},
        {"dice": True},
        {"pieces": {"red": [0, 0, 0, 1.5], "green": list(HOME), "yellow": list(HOME), "blue": list(HOME)}},
        {"pieces": {"red": [0, 0, 0]}},
        {"pieces": {"red": [0, 0, 0, 99], "green": list(HOME), "yellow": list(HOME), "blue": list(HOME)}},
    ],
)
def test_corrupt_snapshots(engine: LudoEngine, patch: dict) -> None:
    data = engine.position_to_dict(engine.initial_position()) | patch
    with pytest.raises(CorruptSnapshotError):
        engine.position_from_dict(data)
