"""
Game engine package.
"""
from .errors import (
    GameError,
    InsufficientPlayersError,
    NotYourTurnError,
    GameOverError,
    CardNotOwnedError,
    IllegalMoveError,
    IllegalCardFormatError,
    EmptyPileError,
)
from .cards import Card, Pile, build_deck, parse_card
from .player import Hand, Player
from .game import Game, PendingDraw
from .engine import MoveEngine, MoveResult, Outbound, Outbox

__all__ = [
    "GameError",
    "InsufficientPlayersError",
    "NotYourTurnError",
    "GameOverError",
    "CardNotOwnedError",
    "IllegalMoveError",
    "IllegalCardFormatError",
    "EmptyPileError",
    "Card",
    "Pile",
    "build_deck",
    "parse_card",
    "Hand",
    "Player",
    "Game",
    "PendingDraw",
    "MoveEngine",
    "MoveResult",
    "Outbound",
    "Outbox",
]
