"""
Game manager for the server's single table.

Owns the shared Game together with the lock that serializes every move
made against it.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from server.config import settings
from server.game_engine import Game, GameError, Player


logger = logging.getLogger(__name__)


@dataclass
class ManagedGame:
    """Wrapper around a Game with the lock and management metadata."""
    game: Game
    lock: asyncio.Lock = field(default_factory=asyncio.Lock)
    created_at: datetime = field(default_factory=datetime.utcnow)

    @property
    def is_started(self) -> bool:
        return self.game.is_started

    @property
    def is_finished(self) -> bool:
        return self.game.is_finished

    @property
    def player_count(self) -> int:
        return self.game.player_count

    def connected_players(self) -> list[Player]:
        return [p for p in self.game.players if p.connected]


class GameManager:
    """
    Creates the table at startup and seats players as they arrive.

    Callers must hold ``table.lock`` around anything that reads or changes
    the game.
    """

    def __init__(
        self,
        required_players: int | None = None,
        reshuffle_discard: bool | None = None,
        seed: int | None = None
    ):
        game = Game(
            required_players=required_players or settings.REQUIRED_PLAYERS,
            reshuffle_discard=(
                settings.RESHUFFLE_DISCARD if reshuffle_discard is None else reshuffle_discard
            ),
            seed=settings.DECK_SEED if seed is None else seed,
        )
        self.table = ManagedGame(game=game)
        logger.info(f"Table created for {game.required_players} players")

    @property
    def game(self) -> Game:
        return self.table.game

    # =========================================================================
    # Joining and Leaving
    # =========================================================================

    def join_game(self, player_name: str) -> tuple[bool, str, Player | None]:
        """
        Seat a player at the table.

        Returns:
            Tuple of (success, message, Player or None)
        """
        try:
            player = self.game.add_player(player_name)
        except GameError as e:
            return False, str(e), None

        if self.game.is_started:
            return True, "Game started", player
        return True, f"{player_name} joined the game", player

    def get_player(self, player_name: str) -> Player | None:
        return self.game.player(player_name)

    def mark_disconnected(self, player_name: str) -> Player | None:
        """Flag a seated player as gone. Their turns will be forfeited."""
        player = self.game.player(player_name)
        if player:
            player.connected = False
            logger.info(f"Player {player_name} marked as disconnected")
        return player

    # =========================================================================
    # Statistics
    # =========================================================================

    def get_stats(self) -> dict[str, Any]:
        """Get game manager statistics."""
        game = self.game
        return {
            "status": game.status.value,
            "players": [p.name for p in game.ordered_players()],
            "required_players": game.required_players,
            "connected_players": len(self.table.connected_players()),
            "turn_number": game.turn_number,
            "winner": game.winner,
        }
