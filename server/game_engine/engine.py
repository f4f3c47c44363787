"""
Move engine: validates a player's move, applies it to the game, and
collects the messages each player should receive.

Every check runs before the first change to the game, so a rejected move
leaves the game exactly as it was.

Drawing a playable card is a two-phase move. ``process_move("DRAW")``
returns a result with ``prompt`` set and records the card on
``game.pending_draw``; the caller must ask the same player and pass the
answer to ``resolve_draw`` (or call ``forfeit_turn`` if the player goes
away). Until then only that answer and the VIEW commands are accepted.
"""
import logging
from dataclasses import dataclass, field
from typing import List, Optional, Tuple

from shared.constants import (
    MOVE_VIEW_CARDS, MOVE_VIEW_OTHERS, MOVE_UNO, MOVE_DRAW,
    DRAW_PROMPT, DECISION_PLAY, DECISION_SKIP, DRAW2_CARDS, UNO_PENALTY_CARDS,
)
from shared.enums import CardKind, GameStatus, Speciality

from .cards import Card, parse_card
from .errors import IllegalMoveError, NotYourTurnError
from .game import Game, PendingDraw
from .player import Player
from .rules import check_can_play, check_turn, cards_needed


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Outbound:
    """
    One message to deliver.

    Sent to ``recipient`` alone when set, otherwise to every player not
    named in ``excluded``.
    """
    text: str
    recipient: Optional[str] = None
    excluded: Tuple[str, ...] = ()

    def is_for(self, player_name: str) -> bool:
        if self.recipient is not None:
            return self.recipient == player_name
        return player_name not in self.excluded


class Outbox:
    """Records the messages a move produces, in order."""

    def __init__(self):
        self.messages: List[Outbound] = []

    def message_player(self, text: str, player: Player) -> None:
        self.messages.append(Outbound(text, recipient=player.name))

    def broadcast(self, text: str) -> None:
        self.messages.append(Outbound(text))

    def broadcast_to_all_except(self, text: str, *excluded: Player) -> None:
        self.messages.append(Outbound(text, excluded=tuple(p.name for p in excluded)))

    def broadcast_to_others_and_player(
        self,
        others_text: str,
        player_text: str,
        player: Player
    ) -> None:
        self.broadcast_to_all_except(others_text, player)
        self.message_player(player_text, player)


@dataclass
class MoveResult:
    """Outcome of one engine call."""
    messages: List[Outbound] = field(default_factory=list)
    # Set when the engine needs a follow-up answer from the acting player
    prompt: Optional[str] = None

    @property
    def awaiting_decision(self) -> bool:
        return self.prompt is not None

    def texts_for(self, player_name: str) -> List[str]:
        return [m.text for m in self.messages if m.is_for(player_name)]


class MoveEngine:
    """
    Applies move tokens to a Game.

    The caller is responsible for serializing calls for the same game.
    """

    def process_move(self, game: Game, player: Player, move: str) -> MoveResult:
        """
        Validate and apply one move token.

        Raises:
            GameError: if the move is rejected; the game is unchanged
        """
        outbox = Outbox()

        if move == MOVE_VIEW_CARDS:
            self._inform_hand(outbox, player)
            return MoveResult(outbox.messages)

        if move == MOVE_VIEW_OTHERS:
            self._inform_hand_sizes(outbox, game, player)
            return MoveResult(outbox.messages)

        self._check_not_a_stray_answer(game, player, move)
        check_turn(game, player)
        self._check_no_pending_draw(game, player)

        turn_before = game.turn_number
        prompt = None

        if move == MOVE_UNO:
            self._process_uno(game, player, outbox)
        elif move == MOVE_DRAW:
            prompt = self._process_draw(game, player, outbox)
        else:
            card = parse_card(move)
            check_can_play(player, card, game.top_card)
            game.ensure_available(cards_needed(card))
            self._play_card(game, player, card, outbox)

        logger.debug(f"{player.name} made the move {move!r}")

        if prompt is None:
            self._announce_turn(game, outbox, turn_before)
        return MoveResult(outbox.messages, prompt=prompt)

    def resolve_draw(self, game: Game, player: Player, answer: str) -> MoveResult:
        """
        Complete a DRAW with the player's ``play`` or ``skip`` answer.

        Any other answer leaves the draw pending and repeats the prompt.
        """
        pending = game.pending_draw
        if pending is None or pending.player_name != player.name:
            raise IllegalMoveError("You have no drawn card waiting for a decision")

        decision = answer.strip().lower()
        if decision not in (DECISION_PLAY, DECISION_SKIP):
            logger.warning(f"{player.name} answered {answer!r} to the draw prompt")
            return MoveResult(prompt=DRAW_PROMPT)

        card = pending.card
        if decision == DECISION_PLAY:
            check_can_play(player, card, game.top_card)
            game.ensure_available(cards_needed(card))

        outbox = Outbox()
        turn_before = game.turn_number
        game.pending_draw = None
        outbox.broadcast_to_all_except(f"{player.name} drew a card.", player)

        if decision == DECISION_PLAY:
            outbox.broadcast_to_all_except(f"{player.name} is playing the drawn card!", player)
            self._play_card(game, player, card, outbox)
        else:
            self._inform_hand(outbox, player)
            game.advance_turn()

        self._announce_turn(game, outbox, turn_before)
        return MoveResult(outbox.messages)

    def forfeit_turn(self, game: Game, player: Player) -> MoveResult:
        """
        Give up the player's turn, e.g. after a disconnect or prompt timeout.

        A pending draw is resolved as ``skip``: the card stays in the hand.
        """
        outbox = Outbox()
        turn_before = game.turn_number
        pending = game.pending_draw

        if pending is not None and pending.player_name == player.name:
            game.pending_draw = None
            outbox.broadcast_to_all_except(
                f"{player.name} drew a card and forfeited the turn.", player
            )
            game.advance_turn()
        elif (
            game.status in (GameStatus.IN_PROGRESS, GameStatus.UNO_PENDING)
            and pending is None
            and game.current_player is player
        ):
            outbox.broadcast_to_all_except(f"{player.name} forfeited the turn.", player)
            game.advance_turn()
        else:
            return MoveResult()

        logger.info(f"{player.name} forfeited the turn")
        self._announce_turn(game, outbox, turn_before)
        return MoveResult(outbox.messages)

    # =========================================================================
    # Turn-checked moves
    # =========================================================================

    def _check_not_a_stray_answer(self, game: Game, player: Player, move: str) -> None:
        """Reject a play/skip answer sent when no drawn card awaits it, e.g. after a timeout."""
        decision = move.strip().lower()
        if decision not in (DECISION_PLAY, DECISION_SKIP):
            return
        pending = game.pending_draw
        if pending is None or pending.player_name != player.name:
            raise IllegalMoveError(
                f"You have no drawn card to {decision}; play a card, DRAW or UNO"
            )

    def _check_no_pending_draw(self, game: Game, player: Player) -> None:
        pending = game.pending_draw
        if pending is None:
            return
        if pending.player_name == player.name:
            raise IllegalMoveError(
                f"Answer '{DECISION_PLAY}' or '{DECISION_SKIP}' for the card you drew"
            )
        raise NotYourTurnError(
            f"Waiting for {pending.player_name} to play or skip the drawn card"
        )

    def _process_uno(self, game: Game, player: Player, outbox: Outbox) -> None:
        if player.is_vulnerable:
            outbox.broadcast_to_others_and_player(
                f"{player.name} said UNO!", "Successful UNO!", player
            )
            game.status = GameStatus.IN_PROGRESS
            return

        caught = next((p for p in game.ordered_players() if p.is_vulnerable), None)
        if caught is None:
            # Nobody holds one card; UNO_PENDING would stall the table
            outbox.message_player("Nobody to UNO", player)
            game.status = GameStatus.IN_PROGRESS
            return

        caught.hand.add_all(game.draw_cards(UNO_PENALTY_CARDS))

        outbox.message_player(f"You were UNO'd by {player.name}", caught)
        outbox.message_player(
            f"You successfully UNO'd {caught.name} who had to draw "
            f"{UNO_PENALTY_CARDS} cards",
            player,
        )
        self._inform_hand(outbox, caught)
        outbox.broadcast_to_all_except(
            f"{player.name} successfully UNO'd {caught.name} who had to draw "
            f"{UNO_PENALTY_CARDS} cards",
            player, caught,
        )
        game.status = GameStatus.IN_PROGRESS
        logger.info(f"{player.name} caught {caught.name} holding one card")

    def _process_draw(self, game: Game, player: Player, outbox: Outbox) -> Optional[str]:
        """Draw one card. Returns the prompt if the card could be played."""
        [card] = game.draw_cards(1)
        player.hand.add(card)
        outbox.message_player(f"You drew the card {card}", player)

        if not card.is_playable_on(game.top_card):
            outbox.broadcast_to_all_except(f"{player.name} drew a card.", player)
            self._inform_hand(outbox, player)
            game.advance_turn()
            return None

        game.pending_draw = PendingDraw(player_name=player.name, card=card)
        return DRAW_PROMPT

    # =========================================================================
    # Card plays
    # =========================================================================

    def _play_card(self, game: Game, player: Player, card: Card, outbox: Outbox) -> None:
        """Discard an owned, legal card and apply its effect."""
        player.hand.remove(card)
        game.discard_pile.add_card(card)

        if card.kind == CardKind.NUMBERED:
            self._play_numbered(game, player, card, outbox)
        elif card.kind == CardKind.SPECIAL:
            if card.speciality == Speciality.SKIP:
                self._play_skip(game, player, card, outbox)
            elif card.speciality == Speciality.DRAW2:
                self._play_draw2(game, player, card, outbox)
            elif card.speciality == Speciality.REVERSE:
                self._play_reverse(game, player, card, outbox)
            else:
                raise ValueError(f"Unhandled speciality: {card.speciality}")
        else:
            raise ValueError(f"Unhandled card kind: {card.kind}")

        if len(player.hand) == 1:
            game.status = GameStatus.UNO_PENDING

        if len(player.hand) == 0:
            game.status = GameStatus.FINISHED
            game.winner = player.name
            outbox.broadcast_to_others_and_player(
                f"{player.name} won the game", "YOU WIN!", player
            )
            logger.info(f"{player.name} won the game")

    def _play_numbered(self, game: Game, player: Player, card: Card, outbox: Outbox) -> None:
        outbox.broadcast_to_others_and_player(
            f"{player.name} played {card}", f"You played {card}", player
        )
        self._inform_hand(outbox, player)
        game.advance_turn()

    def _play_skip(self, game: Game, player: Player, card: Card, outbox: Outbox) -> None:
        skipped = game.next_player
        info = f"played a skip of {card.color.value.lower()} color."

        outbox.broadcast_to_others_and_player(
            f"{player.name} {info}", f"You {info}", player
        )
        self._inform_hand(outbox, player)
        outbox.message_player("Your turn was skipped", skipped)
        outbox.broadcast_to_all_except(f"{skipped.name}'s turn skipped", skipped)

        game.advance_turn(2)

    def _play_draw2(self, game: Game, player: Player, card: Card, outbox: Outbox) -> None:
        victim = game.next_player
        drawn = game.draw_cards(DRAW2_CARDS)
        victim.hand.add_all(drawn)

        outbox.broadcast_to_others_and_player(
            f"{player.name} played {card}",
            f"You made {victim.name} draw {DRAW2_CARDS} cards",
            player,
        )
        self._inform_hand(outbox, player)
        outbox.message_player(
            f"You have to draw the following {DRAW2_CARDS} cards: "
            f"[{', '.join(str(c) for c in drawn)}]",
            victim,
        )
        self._inform_hand(outbox, victim)

        game.advance_turn(2)

    def _play_reverse(self, game: Game, player: Player, card: Card, outbox: Outbox) -> None:
        game.reverse()

        outbox.broadcast_to_others_and_player(
            f"{player.name} reversed the order", "You reversed the order", player
        )
        order = ", ".join(p.name for p in game.ordered_players())
        outbox.broadcast(f"Now the order of moves is: [{order}]")
        self._inform_hand(outbox, player)

        game.advance_turn()

    # =========================================================================
    # Information
    # =========================================================================

    def _inform_hand(self, outbox: Outbox, player: Player) -> None:
        outbox.message_player(f"Your cards now:\n{player.hand}", player)

    def _inform_hand_sizes(self, outbox: Outbox, game: Game, player: Player) -> None:
        lines = [f"{name}: {size}" for name, size in game.hand_sizes().items()]
        outbox.message_player("\n".join(lines), player)

    def _announce_turn(self, game: Game, outbox: Outbox, turn_before: int) -> None:
        if game.is_finished or game.turn_number == turn_before:
            return
        outbox.message_player(
            f"Your turn! Top card: {game.top_card}", game.current_player
        )
