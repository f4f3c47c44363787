"""
Errors raised by the game engine.

Every GameError is recoverable: it is reported to the acting player only,
and the move that raised it has not changed the game.
"""


class GameError(Exception):
    """Base class for rejected moves."""
    code = "GAME_ERROR"


# Turn legality

class InsufficientPlayersError(GameError):
    code = "INSUFFICIENT_PLAYERS"


class NotYourTurnError(GameError):
    code = "NOT_YOUR_TURN"


class GameOverError(GameError):
    code = "GAME_OVER"


# Card legality

class CardNotOwnedError(GameError):
    code = "CARD_NOT_OWNED"


class IllegalMoveError(GameError):
    code = "ILLEGAL_MOVE"


# Data and format

class IllegalCardFormatError(GameError):
    code = "ILLEGAL_CARD_FORMAT"


class EmptyPileError(GameError):
    """The pile has no card left to give (deck exhaustion on draw)."""
    code = "EMPTY_PILE"
