"""
Enumerations used throughout the game.
"""
from enum import Enum


class Color(str, Enum):
    """Card colors."""
    RED = "RED"
    YELLOW = "YELLOW"
    GREEN = "GREEN"
    BLUE = "BLUE"

    @property
    def initial(self) -> str:
        return self.value[0]

    @classmethod
    def from_initial(cls, initial: str) -> "Color":
        for color in cls:
            if color.initial == initial:
                return color
        raise ValueError(f"Unknown color initial: {initial!r}")


class Speciality(str, Enum):
    """Effects carried by special colored cards."""
    SKIP = "SKIP"
    DRAW2 = "DRAW2"
    REVERSE = "REVERSE"


class CardKind(str, Enum):
    """Discriminant of the card variant."""
    NUMBERED = "NUMBERED"
    SPECIAL = "SPECIAL"


class GameStatus(str, Enum):
    """Current status of the game."""
    WAITING_FOR_PLAYERS = "WAITING_FOR_PLAYERS"
    IN_PROGRESS = "IN_PROGRESS"
    UNO_PENDING = "UNO_PENDING"
    FINISHED = "FINISHED"


class MessageType(str, Enum):
    """Types of messages between client and server."""
    # Connection
    CONNECT = "CONNECT"
    DISCONNECT = "DISCONNECT"

    # Lobby
    PLAYER_JOINED = "PLAYER_JOINED"
    GAME_STARTED = "GAME_STARTED"

    # Moves
    MOVE = "MOVE"
    PROMPT = "PROMPT"
    NOTICE = "NOTICE"

    # Errors
    ERROR = "ERROR"
