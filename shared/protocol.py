"""
Message protocol for client-server communication.

All messages are JSON objects with a "type" field and optional "data" field.
"""

from dataclasses import dataclass, field
from typing import Any
import json

from shared.enums import MessageType


@dataclass
class Message:
    """Base message structure for all client-server communication."""
    type: MessageType
    data: dict[str, Any] = field(default_factory=dict)
    request_id: str | None = None  # Optional, for matching requests to responses

    def to_json(self) -> str:
        """Serialize message to JSON string."""
        return json.dumps(self.to_dict())

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return {
            "type": self.type.value,
            "data": self.data,
            "request_id": self.request_id,
        }

    @classmethod
    def from_json(cls, json_str: str) -> "Message":
        """Deserialize message from JSON string."""
        raw = json.loads(json_str)
        return cls.from_dict(raw)

    @classmethod
    def from_dict(cls, raw: dict) -> "Message":
        """Create message from dictionary."""
        if not isinstance(raw, dict):
            raise ValueError("message must be a JSON object")
        data = raw.get("data") or {}
        if not isinstance(data, dict):
            raise ValueError("data must be an object")
        return cls(
            type=MessageType(raw["type"]),
            data=data,
            request_id=raw.get("request_id"),
        )


@dataclass
class ErrorMessage(Message):
    """Error response message."""
    type: MessageType = MessageType.ERROR

    @classmethod
    def create(cls, message: str, code: str = "ERROR", request_id: str | None = None) -> "ErrorMessage":
        """Create an error message."""
        return cls(
            data={"message": message, "code": code},
            request_id=request_id,
        )


# =============================================================================
# Client -> Server
# =============================================================================

@dataclass
class ConnectRequest(Message):
    """First message on a connection: registers the player's name."""
    type: MessageType = MessageType.CONNECT

    @classmethod
    def create(cls, player_name: str) -> "ConnectRequest":
        return cls(data={"player_name": player_name})


@dataclass
class MoveRequest(Message):
    """A move token typed by the player, or the answer to a prompt."""
    type: MessageType = MessageType.MOVE

    @classmethod
    def create(cls, move: str, request_id: str | None = None) -> "MoveRequest":
        return cls(data={"move": move}, request_id=request_id)


# =============================================================================
# Server -> Client
# =============================================================================

@dataclass
class ConnectedMessage(Message):
    """Acknowledges a successful CONNECT."""
    type: MessageType = MessageType.CONNECT

    @classmethod
    def create(cls, player_name: str, status: str) -> "ConnectedMessage":
        return cls(data={
            "success": True,
            "player_name": player_name,
            "status": status,
        })


@dataclass
class NoticeMessage(Message):
    """Free-text game information for one player."""
    type: MessageType = MessageType.NOTICE

    @classmethod
    def create(cls, text: str) -> "NoticeMessage":
        return cls(data={"text": text})


@dataclass
class PromptMessage(Message):
    """Asks the player for a follow-up answer in the middle of a move."""
    type: MessageType = MessageType.PROMPT

    @classmethod
    def create(cls, text: str) -> "PromptMessage":
        return cls(data={"text": text})


@dataclass
class PlayerJoinedMessage(Message):
    """Broadcast when a player joins the table."""
    type: MessageType = MessageType.PLAYER_JOINED

    @classmethod
    def create(cls, player_name: str, player_count: int, required_players: int) -> "PlayerJoinedMessage":
        return cls(data={
            "player_name": player_name,
            "player_count": player_count,
            "required_players": required_players,
        })


@dataclass
class GameStartedMessage(Message):
    """Broadcast when the table is full and cards are dealt."""
    type: MessageType = MessageType.GAME_STARTED

    @classmethod
    def create(cls, player_order: list[str], top_card: str, current_player: str) -> "GameStartedMessage":
        return cls(data={
            "player_order": player_order,
            "top_card": top_card,
            "current_player": current_player,
        })


@dataclass
class PlayerDisconnectedMessage(Message):
    """Broadcast when a player disconnects."""
    type: MessageType = MessageType.DISCONNECT

    @classmethod
    def create(cls, player_name: str) -> "PlayerDisconnectedMessage":
        return cls(data={"player_name": player_name})


# =============================================================================
# Helper function for parsing incoming messages
# =============================================================================

def parse_message(json_str: str) -> Message:
    """
    Parse a JSON string into a Message.

    The message handler uses the type field to determine how to process it.
    """
    return Message.from_json(json_str)
