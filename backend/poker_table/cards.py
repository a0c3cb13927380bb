"""Card, Deck, and shuffling."""

from __future__ import annotations

import random
from enum import Enum
from typing import Any, Optional


class Suit(str, Enum):
    SPADES = "S"
    HEARTS = "H"
    DIAMONDS = "D"
    CLUBS = "C"


class Rank(str, Enum):
    ACE = "A"
    TWO = "2"
    THREE = "3"
    FOUR = "4"
    FIVE = "5"
    SIX = "6"
    SEVEN = "7"
    EIGHT = "8"
    NINE = "9"
    TEN = "10"
    JACK = "J"
    QUEEN = "Q"
    KING = "K"


DECK_SIZE = len(Suit) * len(Rank)
ID_SPACE = 16**8


class DeckExhausted(ValueError):
    """Raised when dealing from an empty deck."""


class Card:
    __slots__ = ("id", "rank", "suit", "face_down")

    def __init__(
        self, card_id: str, rank: Rank, suit: Suit, face_down: bool = True
    ) -> None:
        self.id = card_id
        self.rank = rank
        self.suit = suit
        self.face_down = face_down

    def __repr__(self) -> str:
        return f"{self.rank.value}{self.suit.value}"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Card):
            return NotImplemented
        return self.rank == other.rank and self.suit == other.suit

    def __hash__(self) -> int:
        return hash((self.rank, self.suit))

    def reveal(self) -> None:
        self.face_down = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "rank": self.rank.value,
            "suit": self.suit.value,
            "faceDown": self.face_down,
        }

    def to_public_dict(self) -> dict[str, Any]:
        """Observer view: hidden cards carry only their identifier."""
        if self.face_down:
            return {"id": self.id, "faceDown": True}
        return self.to_dict()


def generate_deck(rng: Optional[random.Random] = None) -> list[Card]:
    """Canonical 52-card order: suit-major, rank-minor, all face down.

    Card ids are random tokens, distinct within the deck, so an id seen by
    an observer says nothing about the face behind it.
    """
    rng = rng or random.Random()
    tokens = rng.sample(range(ID_SPACE), DECK_SIZE)
    faces = [(rank, suit) for suit in Suit for rank in Rank]
    return [
        Card(f"card-{token:08x}", rank, suit)
        for token, (rank, suit) in zip(tokens, faces)
    ]


def shuffle(cards: list[Card], rng: Optional[random.Random] = None) -> list[Card]:
    """Return a uniformly random permutation (Fisher-Yates) of *cards*."""
    rng = rng or random.Random()
    shuffled = list(cards)
    for i in range(len(shuffled) - 1, 0, -1):
        j = rng.randint(0, i)
        shuffled[i], shuffled[j] = shuffled[j], shuffled[i]
    return shuffled


class Deck:
    """A freshly generated, shuffled deck dealt from the tail."""

    def __init__(self, rng: Optional[random.Random] = None) -> None:
        self._cards: list[Card] = shuffle(generate_deck(rng), rng)

    def deal(self) -> Card:
        if not self._cards:
            raise DeckExhausted("No cards left in deck")
        return self._cards.pop()

    def deal_many(self, n: int) -> list[Card]:
        return [self.deal() for _ in range(n)]

    def peek(self, n: int) -> list[Card]:
        """The next *n* cards in deal order, without removing them."""
        return list(reversed(self._cards[-n:])) if n > 0 else []

    @property
    def remaining(self) -> int:
        return len(self._cards)
