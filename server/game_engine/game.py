"""
Shared game state: players, turn order, status and the two piles.
"""
import logging
import random
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, List, Optional

from shared.constants import HAND_SIZE, MIN_PLAYERS, MAX_PLAYERS
from shared.enums import GameStatus

from .cards import Card, Pile, build_deck
from .errors import EmptyPileError, IllegalMoveError
from .player import Player


logger = logging.getLogger(__name__)


@dataclass
class PendingDraw:
    """A drawn, playable card waiting for its owner to decide play or skip."""
    player_name: str
    card: Card


@dataclass
class Game:
    """
    The single shared game.

    Turn order never physically changes: ``direction`` is +1 or -1 and the
    turn index moves by it. ``ordered_players`` gives the order of play.
    """

    required_players: int = MIN_PLAYERS
    reshuffle_discard: bool = True
    seed: Optional[int] = None

    players: List[Player] = field(default_factory=list)
    current_player_index: int = 0
    direction: int = 1
    status: GameStatus = GameStatus.WAITING_FOR_PLAYERS

    draw_pile: Pile = field(default_factory=Pile)
    discard_pile: Pile = field(default_factory=Pile)
    pending_draw: Optional[PendingDraw] = None

    turn_number: int = 0
    winner: Optional[str] = None
    started_at: Optional[datetime] = None

    def __post_init__(self):
        if not MIN_PLAYERS <= self.required_players <= MAX_PLAYERS:
            raise ValueError(
                f"required_players must be between {MIN_PLAYERS} and {MAX_PLAYERS}"
            )
        self._random = random.Random(self.seed)

    # =========== Queries ===========

    @property
    def player_count(self) -> int:
        return len(self.players)

    @property
    def is_started(self) -> bool:
        return self.status != GameStatus.WAITING_FOR_PLAYERS

    @property
    def is_finished(self) -> bool:
        return self.status == GameStatus.FINISHED

    @property
    def current_player(self) -> Optional[Player]:
        if not self.players:
            return None
        return self.players[self.current_player_index]

    @property
    def next_player(self) -> Optional[Player]:
        if not self.players:
            return None
        return self.players[self._step(self.current_player_index)]

    @property
    def top_card(self) -> Card:
        return self.discard_pile.peek_top_card()

    def player(self, name: str) -> Optional[Player]:
        for player in self.players:
            if player.name == name:
                return player
        return None

    def ordered_players(self) -> List[Player]:
        """Players in order of play for the current direction."""
        if self.direction == 1:
            return list(self.players)
        return list(reversed(self.players))

    def hand_sizes(self) -> Dict[str, int]:
        return {p.name: len(p.hand) for p in self.ordered_players()}

    def total_cards(self) -> int:
        """Cards across both piles and every hand."""
        return (
            len(self.draw_pile)
            + len(self.discard_pile)
            + sum(len(p.hand) for p in self.players)
        )

    # =========== Player Management ===========

    def add_player(self, name: str) -> Player:
        """
        Seat a new player. The game starts once the table is full.

        Raises:
            IllegalMoveError: if the game already started or the name is taken
        """
        if self.is_started:
            raise IllegalMoveError("Game has already started")
        if not name:
            raise IllegalMoveError("Player name is required")
        if self.player(name) is not None:
            raise IllegalMoveError(f"The name '{name}' is already taken")

        player = Player(name=name)
        self.players.append(player)
        logger.info(f"{name} joined ({self.player_count}/{self.required_players})")

        if self.player_count == self.required_players:
            self._start()

        return player

    def _start(self) -> None:
        """Shuffle, deal and flip the first discard."""
        deck = Pile(build_deck())
        deck.shuffle(self._random)

        for _ in range(HAND_SIZE):
            for player in self.players:
                player.hand.add(deck.pop_top_card())

        self.discard_pile.add_card(deck.pop_top_card())
        self.draw_pile = deck

        self.current_player_index = 0
        self.direction = 1
        self.status = GameStatus.IN_PROGRESS
        self.turn_number = 1
        self.started_at = datetime.utcnow()

        logger.info(
            f"Game started with {[p.name for p in self.players]}, "
            f"top card {self.top_card}"
        )

    # =========== Turn Order ===========

    def _step(self, index: int) -> int:
        return (index + self.direction) % len(self.players)

    def advance_turn(self, steps: int = 1) -> None:
        """Move the turn ``steps`` players along the current direction."""
        for _ in range(steps):
            self.current_player_index = self._step(self.current_player_index)
        self.turn_number += 1

    def reverse(self) -> None:
        """Flip the direction of play."""
        self.direction = -self.direction

    # =========== Drawing ===========

    def cards_available(self) -> int:
        """How many cards a draw could hand out right now."""
        available = len(self.draw_pile)
        if self.reshuffle_discard:
            available += max(len(self.discard_pile) - 1, 0)
        return available

    def ensure_available(self, count: int) -> None:
        """
        Raises:
            EmptyPileError: if fewer than ``count`` cards can be drawn
        """
        if self.cards_available() < count:
            raise EmptyPileError(
                f"The draw pile is exhausted ({len(self.draw_pile)} left, {count} needed)"
            )

    def draw_cards(self, count: int) -> List[Card]:
        """
        Remove ``count`` cards from the draw pile.

        Refills the draw pile from under the discard top when needed. Nothing
        is removed if the cards cannot all be supplied.
        """
        self.ensure_available(count)
        if len(self.draw_pile) < count:
            self._reshuffle()
        return [self.draw_pile.pop_top_card() for _ in range(count)]

    def _reshuffle(self) -> None:
        refill = Pile(self.discard_pile.take_all_but_top())
        refill.shuffle(self._random)
        # Keep the remaining draw cards on top
        refill.add_cards(self.draw_pile)
        self.draw_pile = refill
        logger.info(f"Discard pile reshuffled into draw pile ({len(refill)} cards)")
