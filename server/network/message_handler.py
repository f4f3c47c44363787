"""
Message handler for routing client messages to the move engine.

Parses incoming messages, runs moves under the table lock, and delivers
the engine's messages to the players they are addressed to.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Awaitable, Callable

from websockets.exceptions import ConnectionClosed

from server.config import settings
from server.game_engine import GameError, MoveEngine, MoveResult, Player
from server.network.game_manager import GameManager, ManagedGame
from server.network.connection_manager import ConnectionManager
from shared.protocol import (
    Message,
    ErrorMessage,
    ConnectedMessage,
    NoticeMessage,
    PlayerJoinedMessage,
    GameStartedMessage,
    PlayerDisconnectedMessage,
    parse_message,
)
from shared.enums import MessageType


logger = logging.getLogger(__name__)


# Sends a prompt to the acting player and waits for their answer
AskPlayer = Callable[[str], Awaitable[str]]


@dataclass
class HandleResult:
    """Result of handling a message."""
    # Response to send back to the requesting player (None if no response needed)
    response: Message | None = None
    # Engine results delivered while handling, in order
    results: list[MoveResult] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.response is None or self.response.type != MessageType.ERROR


class MessageHandler:
    """
    Routes incoming messages to the move engine.

    Each move holds the table lock from validation until its last message is
    delivered, including the play-or-skip prompt after a DRAW, so moves from
    different players never interleave.
    """

    def __init__(
        self,
        game_manager: GameManager,
        connection_manager: ConnectionManager,
        engine: MoveEngine | None = None,
        prompt_timeout: float | None = None
    ):
        self._games = game_manager
        self._connections = connection_manager
        self._engine = engine or MoveEngine()
        self._prompt_timeout = (
            settings.PROMPT_TIMEOUT if prompt_timeout is None else prompt_timeout
        )

    # =========================================================================
    # Joining
    # =========================================================================

    async def handle_join(self, websocket, player_name: str) -> HandleResult:
        """
        Seat a player and register their connection.

        When the table fills up the game starts and every player is sent
        their hand.
        """
        table = self._games.table

        async with table.lock:
            success, msg, player = self._games.join_game(player_name)
            if not success:
                return HandleResult(response=ErrorMessage.create(msg, "JOIN_FAILED"))

            await self._connections.connect(websocket, player_name)
            game = table.game
            await self._connections.send_to_player(
                player_name, ConnectedMessage.create(player_name, game.status.value)
            )
            await self._connections.broadcast(
                PlayerJoinedMessage.create(
                    player_name=player_name,
                    player_count=game.player_count,
                    required_players=game.required_players,
                )
            )

            if game.is_started:
                await self._announce_start(table)

        return HandleResult()

    async def _announce_start(self, table: ManagedGame) -> None:
        game = table.game
        await self._connections.broadcast(
            GameStartedMessage.create(
                player_order=[p.name for p in game.ordered_players()],
                top_card=str(game.top_card),
                current_player=game.current_player.name,
            )
        )
        for player in game.players:
            await self._connections.send_to_player(
                player.name, NoticeMessage.create(f"Your cards now:\n{player.hand}")
            )
        await self._connections.send_to_player(
            game.current_player.name,
            NoticeMessage.create(f"Your turn! Top card: {game.top_card}"),
        )

    # =========================================================================
    # Moves
    # =========================================================================

    async def handle_message(
        self,
        player_name: str,
        message: Message | str | dict,
        ask: AskPlayer
    ) -> HandleResult:
        """
        Handle an incoming message from a seated player.

        Args:
            player_name: Name of the player sending the message
            message: The message (Message object, JSON string, or dict)
            ask: Used to prompt this player mid-move

        Returns:
            HandleResult with the error response, if any
        """
        if isinstance(message, str):
            try:
                message = parse_message(message)
            except (ValueError, KeyError) as e:
                logger.error(f"Failed to parse message: {e}")
                return HandleResult(
                    response=ErrorMessage.create(f"Invalid message format: {e}", "PARSE_ERROR")
                )
        elif isinstance(message, dict):
            try:
                message = Message.from_dict(message)
            except (ValueError, KeyError) as e:
                logger.error(f"Failed to parse message dict: {e}")
                return HandleResult(
                    response=ErrorMessage.create(f"Invalid message format: {e}", "PARSE_ERROR")
                )

        if message.type != MessageType.MOVE:
            return HandleResult(
                response=ErrorMessage.create(
                    f"Unknown message type: {message.type.value}",
                    "UNKNOWN_MESSAGE_TYPE",
                    message.request_id
                )
            )

        move = message.data.get("move")
        if not isinstance(move, str):
            return HandleResult(
                response=ErrorMessage.create("move is required", "MISSING_MOVE", message.request_id)
            )

        result = await self.handle_move(player_name, move, ask)

        if self._games.get_player(player_name) is not None:
            # The rest of the table sees every line, accepted or not
            await self._connections.broadcast(
                NoticeMessage.create(f"{player_name} made the move: {move}"),
                exclude=[player_name],
            )

        if result.response and message.request_id:
            result.response.request_id = message.request_id

        return result

    async def handle_move(self, player_name: str, move: str, ask: AskPlayer) -> HandleResult:
        """Run one move token for a player under the table lock."""
        table = self._games.table
        player = self._games.get_player(player_name)
        if player is None:
            return HandleResult(
                response=ErrorMessage.create("You are not in the game", "NOT_IN_GAME")
            )

        outcome = HandleResult()

        async with table.lock:
            try:
                result = self._engine.process_move(table.game, player, move)
            except GameError as e:
                logger.debug(f"Rejected {move!r} from {player_name}: {e}")
                return HandleResult(response=ErrorMessage.create(str(e), e.code))

            await self._deliver(result)
            outcome.results.append(result)

            while result.awaiting_decision:
                result = await self._ask_draw_decision(table, player, result.prompt, ask)
                outcome.results.append(result)

            outcome.results.extend(await self._forfeit_disconnected(table))

        return outcome

    async def _ask_draw_decision(
        self,
        table: ManagedGame,
        player: Player,
        prompt: str,
        ask: AskPlayer
    ) -> MoveResult:
        """
        Ask the player whether to play the card they drew.

        Returns the engine result; it carries a prompt again when the answer
        was not usable.
        """
        try:
            answer = await asyncio.wait_for(ask(prompt), timeout=self._prompt_timeout)
        except asyncio.TimeoutError:
            logger.warning(f"{player.name} did not answer the draw prompt in time")
            await self._connections.send_to_player(
                player.name, NoticeMessage.create("Too slow! You keep the card and your turn ends.")
            )
            return await self._forfeit(table, player)
        except ConnectionClosed:
            logger.warning(f"{player.name} disconnected during the draw prompt")
            self._games.mark_disconnected(player.name)
            await self._connections.broadcast(
                PlayerDisconnectedMessage.create(player.name), exclude=[player.name]
            )
            return await self._forfeit(table, player)

        try:
            result = self._engine.resolve_draw(table.game, player, answer)
        except GameError as e:
            await self._connections.send_to_player(
                player.name, ErrorMessage.create(str(e), e.code)
            )
            return MoveResult(prompt=prompt)

        await self._deliver(result)
        return result

    # =========================================================================
    # Disconnection
    # =========================================================================

    async def handle_disconnect(self, player_name: str) -> list[MoveResult]:
        """
        Mark a seated player as gone and skip their turn if it is up.

        Must not be called while the caller holds the table lock.
        """
        table = self._games.table
        async with table.lock:
            player = self._games.get_player(player_name)
            if player is None:
                return []
            if player.connected:
                self._games.mark_disconnected(player_name)
                await self._connections.broadcast(
                    PlayerDisconnectedMessage.create(player_name), exclude=[player_name]
                )
            return await self._forfeit_disconnected(table)

    async def _forfeit_disconnected(self, table: ManagedGame) -> list[MoveResult]:
        """Forfeit turns while the current player is disconnected."""
        game = table.game
        results = []
        if not game.is_started or not table.connected_players():
            return results

        for _ in range(game.player_count):
            current = game.current_player
            if game.is_finished or current.connected:
                break
            result = await self._forfeit(table, current)
            if not result.messages:
                break
            results.append(result)
        return results

    async def _forfeit(self, table: ManagedGame, player: Player) -> MoveResult:
        result = self._engine.forfeit_turn(table.game, player)
        await self._deliver(result)
        return result

    async def _deliver(self, result: MoveResult) -> None:
        for outbound in result.messages:
            await self._connections.deliver(outbound)
