"""
Player state management.
"""
from collections import Counter
from dataclasses import dataclass, field
from typing import Iterable, Iterator, List

from .cards import Card
from .errors import CardNotOwnedError


class Hand:
    """A player's cards: a multiset, so duplicates are kept."""

    def __init__(self, cards: Iterable[Card] = ()):
        self._cards: List[Card] = list(cards)

    def __len__(self) -> int:
        return len(self._cards)

    def __iter__(self) -> Iterator[Card]:
        return iter(self._cards)

    def __contains__(self, card: Card) -> bool:
        return card in self._cards

    def __eq__(self, other) -> bool:
        if not isinstance(other, Hand):
            return NotImplemented
        return Counter(self._cards) == Counter(other._cards)

    def __str__(self) -> str:
        return "[" + ", ".join(str(card) for card in self._cards) + "]"

    def contains(self, card: Card) -> bool:
        return card in self._cards

    def add(self, card: Card) -> None:
        self._cards.append(card)

    def add_all(self, cards: Iterable[Card]) -> None:
        self._cards.extend(cards)

    def remove(self, card: Card) -> None:
        """
        Remove one copy of a card.

        Raises:
            CardNotOwnedError: if the hand holds no such card
        """
        try:
            self._cards.remove(card)
        except ValueError:
            raise CardNotOwnedError("You do not have this card!") from None


@dataclass(eq=False)
class Player:
    """Represents a player in the game. Names are unique per server."""

    name: str
    hand: Hand = field(default_factory=Hand)

    # Connection tracking
    connected: bool = True

    @property
    def card_count(self) -> int:
        return len(self.hand)

    @property
    def is_vulnerable(self) -> bool:
        """True when the player holds exactly one card."""
        return len(self.hand) == 1

    def __str__(self) -> str:
        return self.name
