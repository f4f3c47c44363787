"""
Cards, piles and the full deck.
"""
import random
from dataclasses import dataclass
from typing import Iterable, Iterator, List, Optional

from shared.constants import (
    CARD_SEPARATOR, MIN_NUMBER, MAX_NUMBER,
    ZERO_COPIES, NUMBER_COPIES, SPECIAL_COPIES,
)
from shared.enums import CardKind, Color, Speciality

from .errors import EmptyPileError, IllegalCardFormatError


@dataclass(frozen=True)
class Card:
    """
    A playable card.

    Tagged by ``kind``: NUMBERED cards carry ``number``, SPECIAL cards
    carry ``speciality``. Use the ``numbered``/``special`` constructors.
    """

    kind: CardKind
    color: Color
    number: Optional[int] = None
    speciality: Optional[Speciality] = None

    def __post_init__(self):
        if self.kind == CardKind.NUMBERED:
            if self.number is None or self.speciality is not None:
                raise ValueError("Numbered cards need a number and no speciality")
            if not MIN_NUMBER <= self.number <= MAX_NUMBER:
                raise ValueError(f"Card number out of range: {self.number}")
        elif self.kind == CardKind.SPECIAL:
            if self.speciality is None or self.number is not None:
                raise ValueError("Special cards need a speciality and no number")

    @classmethod
    def numbered(cls, color: Color, number: int) -> "Card":
        return cls(kind=CardKind.NUMBERED, color=color, number=number)

    @classmethod
    def special(cls, color: Color, speciality: Speciality) -> "Card":
        return cls(kind=CardKind.SPECIAL, color=color, speciality=speciality)

    @property
    def is_numbered(self) -> bool:
        return self.kind == CardKind.NUMBERED

    @property
    def is_special(self) -> bool:
        return self.kind == CardKind.SPECIAL

    def __str__(self) -> str:
        value = self.number if self.is_numbered else self.speciality.value
        return f"{self.color.initial}{CARD_SEPARATOR}{value}"

    def __repr__(self) -> str:
        return str(self)

    def is_playable_on(self, top: "Card") -> bool:
        """
        Check if this card may be played on top of ``top``.

        Cards match by color, by number when both are numbered, or by
        speciality when both are special.
        """
        same_color = self.color == top.color
        same_number = self.is_numbered and top.is_numbered and self.number == top.number
        same_speciality = (
            self.is_special and top.is_special and self.speciality == top.speciality
        )
        return same_color or same_number or same_speciality


def parse_card(token: str) -> Card:
    """
    Parse a move token such as ``R:5`` or ``B:SKIP`` into a Card.

    The colon may be left out (``R5``, ``BSKIP``).

    Raises:
        IllegalCardFormatError: if the token does not name a card
    """
    if not token:
        raise IllegalCardFormatError("Empty card string")

    color_part, value_part = token[0], token[1:]
    if value_part.startswith(CARD_SEPARATOR):
        value_part = value_part[len(CARD_SEPARATOR):]

    try:
        color = Color.from_initial(color_part)
    except ValueError:
        raise IllegalCardFormatError(
            f"Illegal color in '{token}', use one of R, Y, G, B"
        ) from None

    # str.isdigit also accepts non-ASCII digits such as "²"
    if value_part.isascii() and value_part.isdigit():
        number = int(value_part)
        if not MIN_NUMBER <= number <= MAX_NUMBER:
            raise IllegalCardFormatError(
                f"Illegal number in '{token}', use {MIN_NUMBER}-{MAX_NUMBER}"
            )
        return Card.numbered(color, number)

    try:
        speciality = Speciality(value_part)
    except ValueError:
        raise IllegalCardFormatError(
            f"Illegal card '{token}', expected a number or one of "
            f"{', '.join(s.value for s in Speciality)}"
        ) from None
    return Card.special(color, speciality)


def build_deck() -> List[Card]:
    """
    Create the full, unshuffled deck.

    Per color: one 0, two of each 1-9, two of each special.
    """
    cards: List[Card] = []
    for color in Color:
        cards.extend(Card.numbered(color, 0) for _ in range(ZERO_COPIES))
        for number in range(1, MAX_NUMBER + 1):
            cards.extend(Card.numbered(color, number) for _ in range(NUMBER_COPIES))
        for speciality in Speciality:
            cards.extend(Card.special(color, speciality) for _ in range(SPECIAL_COPIES))
    return cards


class Pile:
    """An ordered stack of cards. The top is the most recently added card."""

    def __init__(self, cards: Iterable[Card] = ()):
        self._cards: List[Card] = list(cards)

    def __len__(self) -> int:
        return len(self._cards)

    def __iter__(self) -> Iterator[Card]:
        return iter(self._cards)

    def __repr__(self) -> str:
        return f"Pile({self._cards!r})"

    @property
    def is_empty(self) -> bool:
        return not self._cards

    def add_card(self, card: Card) -> None:
        self._cards.append(card)

    def add_cards(self, cards: Iterable[Card]) -> None:
        self._cards.extend(cards)

    def pop_top_card(self) -> Card:
        if not self._cards:
            raise EmptyPileError("The pile is empty")
        return self._cards.pop()

    def peek_top_card(self) -> Card:
        if not self._cards:
            raise EmptyPileError("The pile is empty")
        return self._cards[-1]

    def take_all_but_top(self) -> List[Card]:
        """Remove and return every card below the top one."""
        rest, self._cards = self._cards[:-1], self._cards[-1:]
        return rest

    def shuffle(self, rng: random.Random) -> None:
        rng.shuffle(self._cards)
