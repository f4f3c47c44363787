"""
Network layer for the UNO game server.

Provides WebSocket server, connection management, and message handling.
"""

from server.network.connection_manager import ConnectionManager, PlayerConnection
from server.network.game_manager import GameManager, ManagedGame
from server.network.message_handler import MessageHandler, HandleResult
from server.network.server import UnoServer, run_server


__all__ = [
    "ConnectionManager",
    "PlayerConnection",
    "GameManager",
    "ManagedGame",
    "MessageHandler",
    "HandleResult",
    "UnoServer",
    "run_server",
]
