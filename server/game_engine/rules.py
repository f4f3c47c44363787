"""
Rule enforcement and validation for UNO.

Checks only; nothing here changes the game.
"""
from shared.constants import DRAW2_CARDS
from shared.enums import GameStatus, Speciality

from .cards import Card
from .errors import (
    CardNotOwnedError, GameOverError, IllegalMoveError,
    InsufficientPlayersError, NotYourTurnError,
)
from .game import Game
from .player import Player


def check_turn(game: Game, player: Player) -> None:
    """
    Validate that ``player`` may make a turn-checked move now.

    While UNO is pending anyone may move, so the claim race can be won by
    any player.
    """
    if game.status == GameStatus.WAITING_FOR_PLAYERS:
        raise InsufficientPlayersError("Insufficient players!")

    if game.status == GameStatus.FINISHED:
        raise GameOverError("Game is over!")

    if game.status != GameStatus.UNO_PENDING and game.current_player is not player:
        raise NotYourTurnError("Not your turn!")


def check_can_play(player: Player, card: Card, top: Card) -> None:
    """Validate that ``player`` owns ``card`` and it matches ``top``."""
    if not player.hand.contains(card):
        raise CardNotOwnedError("You do not have this card!")

    if not card.is_playable_on(top):
        raise IllegalMoveError(
            "Your card color/number/speciality does not match top card on pile!"
        )


def cards_needed(card: Card) -> int:
    """Number of cards playing ``card`` takes from the draw pile."""
    if card.is_special and card.speciality == Speciality.DRAW2:
        return DRAW2_CARDS
    return 0
