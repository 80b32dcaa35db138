"""
Memory (single player)
----

16 face-down cards hold 8 pairs of symbols. The player reveals two cards per attempt:
a matching pair stays retired, a mismatched pair stays face up until it is settled (turned back) by a timer.
"""

import random
from dataclasses import dataclass, replace
from enum import StrEnum
from typing import Any, Optional, Self, Sequence

from gamehub.core.exceptions import CorruptSnapshotError, InvalidMoveError
from gamehub.core.shared_types import GameId
from gamehub.engines.base import BaseEngine, GameStatus

SYMBOLS: tuple[str, ...] = ("🧠", "🕹️", "🎲", "🧩", "🃏", "👑", "🚀", "⭐")
CARDS_PER_ATTEMPT = 2


class MemoryPlayer(StrEnum):
    PLAYER = "player"


@dataclass(frozen=True)
class Reveal:
    card: int

    @classmethod
    def from_notation(cls, notation: str) -> Self:
        try:
            return cls(int(notation))
        except ValueError as error:
            raise InvalidMoveError(f"Cannot interpret {notation!r} as a card index.") from error

    def to_notation(self) -> str:
        return str(self.card)


@dataclass(frozen=True)
class MemoryPosition:
    cards: tuple[str, ...]
    matched: frozenset[int] = frozenset()
    # revealed but not (yet) matched, in reveal order
    face_up: tuple[int, ...] = ()
    attempts: int = 0
    to_move: MemoryPlayer = MemoryPlayer.PLAYER

    @classmethod
    def shuffled(cls, symbols: Sequence[str], rng: random.Random) -> Self:
        deck = [*symbols, *symbols]
        rng.shuffle(deck)
        return cls(cards=tuple(deck))

    @property
    def awaiting_revert(self) -> bool:
        """A mismatched pair is showing"""
        return len(self.face_up) == CARDS_PER_ATTEMPT

    def is_visible(self, card: int) -> bool:
        return card in self.matched or card in self.face_up


class MemoryEngine(BaseEngine):
    game_id = GameId.MEMORY
    players = (MemoryPlayer.PLAYER,)

    def initial_position(self, **options: Any) -> MemoryPosition:
        rng: random.Random = options.get("rng") or random.Random()
        return MemoryPosition.shuffled(options.get("symbols", SYMBOLS), rng)

    def legal_moves(
        self, position: MemoryPosition, player: Optional[MemoryPlayer] = None
    ) -> list[Reveal]:
        if position.awaiting_revert or self.status(position).is_terminal:
            return []
        return [
            Reveal(card)
            for card in range(len(position.cards))
            if not position.is_visible(card)
        ]

    def apply(self, position: MemoryPosition, move: Reveal) -> MemoryPosition:
        self._assert_legal(position, move, self.legal_moves(position))
        if not position.face_up:
            return replace(position, face_up=(move.card,))

        first = position.face_up[0]
        attempted = replace(position, attempts=position.attempts + 1)
        if position.cards[first] == position.cards[move.card]:
            return replace(
                attempted, matched=position.matched | {first, move.card}, face_up=()
            )
        return replace(attempted, face_up=(first, move.card))

    def pending_effect(self, position: MemoryPosition) -> bool:
        return position.awaiting_revert

    def settle(self, position: MemoryPosition) -> MemoryPosition:
        """Turn a mismatched pair face down again."""
        if not position.awaiting_revert:
            return position
        return replace(position, face_up=())

    def status(self, position: MemoryPosition) -> GameStatus:
        if len(position.matched) == len(position.cards):
            return GameStatus.win(
                MemoryPlayer.PLAYER, reason=f"all pairs found in {position.attempts} moves"
            )
        return GameStatus.playing()

    def parse_move(self, notation: str) -> Reveal:
        return Reveal.from_notation(notation)

    # -- snapshots --
    def position_to_dict(self, position: MemoryPosition) -> dict[str, Any]:
        return {
            "cards": list(position.cards),
            "matched": sorted(position.matched),
            "face_up": list(position.face_up),
            "attempts": position.attempts,
        }

    def position_from_dict(self, data: dict[str, Any]) -> MemoryPosition:
        try:
            cards = tuple(str(card) for card in data["cards"])
            matched = frozenset(int(card) for card in data["matched"])
            face_up = tuple(int(card) for card in data["face_up"])
            attempts = int(data["attempts"])
        except (KeyError, TypeError, ValueError) as error:
            raise CorruptSnapshotError(f"Invalid memory position: {error}") from error

        if len(cards) % 2 or any(cards.count(symbol) != 2 for symbol in cards):
            raise CorruptSnapshotError("Every symbol must appear on exactly two cards.")
        indices = range(len(cards))
        if any(card not in indices for card in (*matched, *face_up)):
            raise CorruptSnapshotError("Card index out of range.")
        if len(face_up) > CARDS_PER_ATTEMPT or matched & set(face_up):
            raise CorruptSnapshotError(f"Impossible face up cards: {face_up}")
        # a pair showing face up is a mismatch, matching pairs are retired right away
        if len(face_up) == CARDS_PER_ATTEMPT and cards[face_up[0]] == cards[face_up[1]]:
            raise CorruptSnapshotError(f"Matching pair left face up: {face_up}")
        for card in matched:
            twin = next(i for i in indices if i != card and cards[i] == cards[card])
            if twin not in matched:
                raise CorruptSnapshotError(f"Card {card} is matched without its twin {twin}.")
        if attempts < 0:
            raise CorruptSnapshotError("Negative move counter.")
        return MemoryPosition(cards=cards, matched=matched, face_up=face_up, attempts=attempts)
