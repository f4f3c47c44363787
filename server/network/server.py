"""
WebSocket server for UNO.

Accepts player connections and feeds their frames to the message handler,
one coroutine per player.
"""

import asyncio
import functools
import json
import logging
import signal
from typing import Any

from websockets.asyncio.server import ServerConnection, serve
from websockets.exceptions import ConnectionClosed

from server.network.connection_manager import ConnectionManager
from server.network.game_manager import GameManager
from server.network.message_handler import MessageHandler
from server.config import settings
from shared.protocol import (
    ErrorMessage,
    PromptMessage,
    parse_message,
)
from shared.enums import MessageType


logger = logging.getLogger(__name__)


class UnoServer:
    """
    WebSocket server for one UNO table.

    Handles client connections, routes moves, and tears sessions down when
    their connection goes away.
    """

    def __init__(
        self,
        host: str = None,
        port: int = None,
        game_manager: GameManager | None = None
    ):
        self.host = host or settings.HOST
        self.port = port or settings.PORT

        self._connections = ConnectionManager()
        self._games = game_manager or GameManager()
        self._handler = MessageHandler(self._games, self._connections)

        # Server state
        self._server = None
        self._running = False
        self._shutdown_event = asyncio.Event()

    async def start(self) -> None:
        """Start the WebSocket server and run until stopped."""
        self._running = True
        self._shutdown_event.clear()

        self._server = await serve(
            self._handle_client,
            self.host,
            self.port,
            ping_interval=30,
            ping_timeout=10,
        )

        logger.info(f"UNO server started on ws://{self.host}:{self.port}")

        await self._shutdown_event.wait()

    async def stop(self) -> None:
        """Close the listener and release start()."""
        logger.info("Shutting down server...")
        self._running = False

        if self._server:
            self._server.close()
            await self._server.wait_closed()

        self._shutdown_event.set()
        logger.info("Server stopped")

    def request_shutdown(self) -> None:
        """Schedule stop() from a signal handler."""
        asyncio.create_task(self.stop())

    async def _handle_client(self, websocket: ServerConnection) -> None:
        """
        Serve one player for the lifetime of their socket.

        The first message must be a CONNECT message with player_name.
        After that, every MOVE is passed to the message handler.
        """
        player_name = None

        try:
            player_name = await self._handle_connect(websocket)

            if not player_name:
                return

            ask = functools.partial(self._ask, websocket)

            async for raw_message in websocket:
                if not self._running:
                    break

                await self._handle_message(websocket, player_name, raw_message, ask)

        except ConnectionClosed:
            logger.debug(f"Connection closed for player {player_name}")
        except Exception as e:
            logger.exception(f"Error handling client {player_name}: {e}")
        finally:
            if player_name:
                await self._handle_disconnect(websocket, player_name)

    async def _handle_connect(self, websocket: ServerConnection) -> str | None:
        """
        Handle the initial CONNECT message.

        Returns the player name if the player was seated, None otherwise.
        """
        try:
            raw = await asyncio.wait_for(websocket.recv(), timeout=settings.CONNECT_TIMEOUT)
            data = json.loads(raw)

            if not isinstance(data, dict) or data.get("type") != MessageType.CONNECT.value:
                await self._send_error(
                    websocket,
                    "First message must be CONNECT",
                    "CONNECT_REQUIRED"
                )
                return None

            player_name = (data.get("data") or {}).get("player_name")

            if not isinstance(player_name, str) or not player_name.strip():
                await self._send_error(
                    websocket,
                    "player_name is required",
                    "MISSING_PLAYER_NAME"
                )
                return None

            player_name = player_name.strip()
            result = await self._handler.handle_join(websocket, player_name)
            if not result.ok:
                await websocket.send(result.response.to_json())
                return None

            return player_name

        except asyncio.TimeoutError:
            await self._send_error(websocket, "Connection timeout", "TIMEOUT")
            return None
        except json.JSONDecodeError:
            await self._send_error(websocket, "Invalid JSON", "PARSE_ERROR")
            return None

    async def _handle_message(
        self,
        websocket: ServerConnection,
        player_name: str,
        raw_message: str,
        ask
    ) -> None:
        """Handle an incoming message from a seated player."""
        try:
            result = await self._handler.handle_message(player_name, raw_message, ask)

            if result.response:
                await websocket.send(result.response.to_json())

        except ConnectionClosed:
            raise
        except Exception as e:
            logger.exception(f"Error handling message from {player_name}: {e}")
            await self._send_error(websocket, f"Internal error: {e}", "INTERNAL_ERROR")

    async def _ask(self, websocket: ServerConnection, prompt: str) -> str:
        """
        Prompt the player on this connection and wait for their answer.

        Only called from inside this connection's own message handling, so
        it never competes with the ``async for`` loop for ``recv``.
        """
        await websocket.send(PromptMessage.create(prompt).to_json())

        while True:
            raw = await websocket.recv()
            try:
                message = parse_message(raw)
            except (ValueError, KeyError) as e:
                await self._send_error(websocket, f"Invalid message format: {e}", "PARSE_ERROR")
                continue

            answer = message.data.get("move")
            if message.type == MessageType.MOVE and isinstance(answer, str):
                return answer

            await self._send_error(websocket, f"Please answer: {prompt}", "ANSWER_REQUIRED")

    async def _handle_disconnect(self, websocket: ServerConnection, player_name: str) -> None:
        """Forget the socket, then let the table forfeit the player's turns."""
        await self._connections.disconnect(websocket)
        await self._handler.handle_disconnect(player_name)

    async def _send_error(
        self,
        websocket: ServerConnection,
        message: str,
        code: str
    ) -> None:
        """Send an ERROR frame, ignoring a closed socket."""
        try:
            error = ErrorMessage.create(message, code)
            await websocket.send(error.to_json())
        except ConnectionClosed:
            pass

    def get_stats(self) -> dict[str, Any]:
        """Connection and table counters."""
        return {
            "running": self._running,
            "connections": self._connections.get_stats(),
            "game": self._games.get_stats(),
        }


async def run_server(host: str = None, port: int = None) -> None:
    """
    Run the UNO server.

    SIGINT and SIGTERM stop the server cleanly.
    """
    server = UnoServer(host, port)

    loop = asyncio.get_running_loop()

    for sig in (signal.SIGTERM, signal.SIGINT):
        loop.add_signal_handler(sig, server.request_shutdown)

    try:
        await server.start()
    finally:
        for sig in (signal.SIGTERM, signal.SIGINT):
            loop.remove_signal_handler(sig)


def main():
    """Console entry point: configure logging and serve forever."""
    logging.basicConfig(
        level=getattr(logging, settings.LOG_LEVEL),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )

    print(f"Starting UNO server on ws://{settings.HOST}:{settings.PORT}")
    print(f"Waiting for {settings.REQUIRED_PLAYERS} players. Press Ctrl+C to stop")

    try:
        asyncio.run(run_server())
    except KeyboardInterrupt:
        print("\nServer stopped")


if __name__ == "__main__":
    main()
