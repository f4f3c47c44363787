"""
Registry of the WebSocket connection behind each seated player.

Tracks connected clients by player name and delivers messages to single
players or to the whole table. Sending never touches game state, so it is
safe to call while a move holds the game lock.
"""

import asyncio
import json
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Iterable

from websockets.asyncio.server import ServerConnection

from server.game_engine import Outbound
from shared.protocol import Message, NoticeMessage


logger = logging.getLogger(__name__)


@dataclass
class PlayerConnection:
    """Tracks a connected player's session."""
    player_name: str
    websocket: ServerConnection
    connected_at: datetime = field(default_factory=datetime.utcnow)
    last_activity: datetime = field(default_factory=datetime.utcnow)

    def update_activity(self) -> None:
        """Record that the connection was just used."""
        self.last_activity = datetime.utcnow()


class ConnectionManager:
    """
    Maps player names to live sockets for the table.

    Engine output arrives as ``Outbound`` records; ``deliver`` turns each
    into NOTICE frames for exactly the players it addresses.
    """

    def __init__(self):
        # websocket -> PlayerConnection
        self._connections: dict[ServerConnection, PlayerConnection] = {}

        # player_name -> websocket (for quick lookup)
        self._player_to_socket: dict[str, ServerConnection] = {}

        self._lock = asyncio.Lock()

    # =========================================================================
    # Connection Lifecycle
    # =========================================================================

    async def connect(self, websocket: ServerConnection, player_name: str) -> PlayerConnection:
        """Register a new player connection."""
        async with self._lock:
            connection = PlayerConnection(player_name=player_name, websocket=websocket)
            self._connections[websocket] = connection
            self._player_to_socket[player_name] = websocket
            logger.info(f"Player {player_name} connected")
            return connection

    async def disconnect(self, websocket: ServerConnection) -> PlayerConnection | None:
        """
        Forget a connection.

        Returns:
            The forgotten PlayerConnection, or None if it was unknown
        """
        async with self._lock:
            connection = self._connections.pop(websocket, None)
            if connection:
                self._player_to_socket.pop(connection.player_name, None)
                logger.info(f"Player {connection.player_name} disconnected")
            return connection

    # =========================================================================
    # Queries
    # =========================================================================

    def get_connection(self, websocket: ServerConnection) -> PlayerConnection | None:
        return self._connections.get(websocket)

    def get_connection_by_name(self, player_name: str) -> PlayerConnection | None:
        websocket = self._player_to_socket.get(player_name)
        if websocket:
            return self._connections.get(websocket)
        return None

    def is_player_connected(self, player_name: str) -> bool:
        return player_name in self._player_to_socket

    def get_player_names(self) -> list[str]:
        return list(self._player_to_socket)

    # =========================================================================
    # Messaging
    # =========================================================================

    async def send_to_player(self, player_name: str, message: Message | dict | str) -> bool:
        """
        Send a message to one player by name.

        Returns:
            False if the player has no live connection
        """
        websocket = self._player_to_socket.get(player_name)
        if not websocket:
            return False
        return await self._send_to_websocket(websocket, message)

    async def broadcast(
        self,
        message: Message | dict | str,
        exclude: Iterable[str] = ()
    ) -> int:
        """
        Broadcast a message to every connected player not in ``exclude``.

        Returns:
            How many players received the message
        """
        excluded = set(exclude)
        sent_count = 0
        for websocket, conn in list(self._connections.items()):
            if conn.player_name in excluded:
                continue
            if await self._send_to_websocket(websocket, message):
                sent_count += 1
        return sent_count

    async def deliver(self, outbound: Outbound) -> int:
        """Send one engine message as a NOTICE to the players it is for."""
        notice = NoticeMessage.create(outbound.text)
        if outbound.recipient is not None:
            return 1 if await self.send_to_player(outbound.recipient, notice) else 0
        return await self.broadcast(notice, exclude=outbound.excluded)

    async def _send_to_websocket(
        self,
        websocket: ServerConnection,
        message: Message | dict | str
    ) -> bool:
        """Serialize and send. Failures are logged, never raised."""
        try:
            if isinstance(message, Message):
                data = message.to_json()
            elif isinstance(message, dict):
                data = json.dumps(message)
            else:
                data = message

            await websocket.send(data)

            connection = self._connections.get(websocket)
            if connection:
                connection.update_activity()

            return True

        except Exception as e:
            logger.error(f"Failed to send message: {e}")
            return False

    # =========================================================================
    # Statistics
    # =========================================================================

    def get_stats(self) -> dict[str, Any]:
        """Snapshot of who is connected."""
        return {
            "total_connections": len(self._connections),
            "players": sorted(self._player_to_socket),
        }
