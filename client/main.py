#!/usr/bin/env python3
"""
Terminal client for the UNO server.

Usage:
    python -m client.main [--host HOST] [--port PORT] [--name NAME]

Every line you type is sent to the server as a move: VIEW CARDS,
VIEW CARDS -O, UNO, DRAW, or a card such as R:5 or B:SKIP. When the
server asks "play or skip?", the next line is your answer.
"""

import argparse
import asyncio
import json
import sys
from typing import Optional

from websockets.asyncio.client import ClientConnection, connect
from websockets.exceptions import ConnectionClosed

from client.config import settings
from shared.enums import MessageType
from shared.protocol import ConnectRequest, MoveRequest


HELP = """
Moves:
  VIEW CARDS     - Show your hand
  VIEW CARDS -O  - Show how many cards everyone holds
  UNO            - Declare UNO, or catch someone holding one card
  DRAW           - Draw a card
  <card>         - Play a card, e.g. R:5, Y:SKIP, G:DRAW2, B:REVERSE
  quit           - Disconnect and exit
"""


class TerminalClient:
    """Line-based UNO client."""

    def __init__(self, url: str, player_name: str):
        self.url = url
        self.player_name = player_name
        self.websocket: Optional[ClientConnection] = None
        self.running = True

    async def connect(self) -> bool:
        """Connect and register the player's name."""
        try:
            print(f"Connecting to {self.url}...")
            self.websocket = await connect(self.url, ping_interval=30, ping_timeout=10)
            await self.websocket.send(ConnectRequest.create(self.player_name).to_json())

            response = await asyncio.wait_for(
                self.websocket.recv(), timeout=settings.connect_timeout
            )
            data = json.loads(response)

            if data.get("type") == MessageType.CONNECT.value and data.get("data", {}).get("success"):
                print(f"✓ Seated as {self.player_name}")
                return True

            self._print_message(data)
            return False

        except (OSError, asyncio.TimeoutError, ConnectionClosed) as e:
            print(f"✗ Connection failed: {e}")
            return False

    def _print_message(self, data: dict) -> None:
        """Print a received message nicely."""
        msg_type = data.get("type", "unknown")
        msg_data = data.get("data", {})

        if msg_type == MessageType.NOTICE.value:
            print(f"\n{msg_data.get('text')}")
        elif msg_type == MessageType.PROMPT.value:
            print(f"\n? {msg_data.get('text')}")
        elif msg_type == MessageType.PLAYER_JOINED.value:
            print(
                f"  → {msg_data.get('player_name')} joined "
                f"({msg_data.get('player_count')}/{msg_data.get('required_players')})"
            )
        elif msg_type == MessageType.GAME_STARTED.value:
            print(f"  → Game started! Order: {', '.join(msg_data.get('player_order', []))}")
            print(f"    Top card: {msg_data.get('top_card')}, {msg_data.get('current_player')} moves first")
        elif msg_type == MessageType.DISCONNECT.value:
            print(f"  → Player disconnected: {msg_data.get('player_name')}")
        elif msg_type == MessageType.ERROR.value:
            print(f"  ✗ {msg_data.get('message')} ({msg_data.get('code')})")
        else:
            print(f"  → {msg_type}: {json.dumps(msg_data)[:200]}")

    async def run_interactive(self) -> None:
        """Read moves from stdin while printing what the server sends."""
        print(HELP)
        listener_task = asyncio.create_task(self._listen())

        try:
            while self.running:
                try:
                    line = await asyncio.to_thread(input, f"[{self.player_name}]> ")
                except EOFError:
                    break

                line = line.strip()
                if not line or not self.running:
                    continue
                if line.lower() == "quit":
                    break

                try:
                    await self.websocket.send(MoveRequest.create(line).to_json())
                except ConnectionClosed:
                    break
        finally:
            self.running = False
            await self.websocket.close()
            listener_task.cancel()
            try:
                await listener_task
            except asyncio.CancelledError:
                pass

    async def _listen(self) -> None:
        """Background task printing server messages."""
        try:
            async for message in self.websocket:
                self._print_message(json.loads(message))
        except ConnectionClosed:
            pass
        print("\n  [Connection closed by server]")
        self.running = False


async def main() -> None:
    parser = argparse.ArgumentParser(description="UNO terminal client")
    parser.add_argument("--host", default=settings.server_host, help="Server host")
    parser.add_argument("--port", type=int, default=settings.server_port, help="Server port")
    parser.add_argument("--name", default=None, help="Player name")
    args = parser.parse_args()

    player_name = args.name
    if not player_name:
        player_name = input("What's your name? ").strip() or "Player"

    client = TerminalClient(f"ws://{args.host}:{args.port}", player_name)

    if await client.connect():
        await client.run_interactive()
    else:
        sys.exit(1)


def run() -> None:
    """Console script entry point."""
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        print("\nGoodbye!")


if __name__ == "__main__":
    run()
