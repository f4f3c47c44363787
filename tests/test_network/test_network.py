"""
Test suite for the UNO network layer.

Tests connection management, the table, message handling, the draw
prompt, and the wire protocol.

Run from project root: python -m pytest tests/test_network -v
"""

import asyncio
import json
import sys
from pathlib import Path

import pytest
from websockets.exceptions import ConnectionClosed

# Add project root to path
project_root = Path(__file__).parent.parent.parent
sys.path.insert(0, str(project_root))

from server.game_engine import Game, Hand, Outbound, Pile, parse_card
from server.network import ConnectionManager, GameManager, MessageHandler, UnoServer
from shared.enums import GameStatus, MessageType
from shared.protocol import (
    ConnectRequest, Message, MoveRequest, NoticeMessage, parse_message,
)


# =============================================================================
# Helpers
# =============================================================================

class MockWebSocket:
    """Mock WebSocket for testing without real connections."""

    def __init__(self, id: str, incoming: list[str] | None = None):
        self.id = id
        self.sent_messages = []
        self.incoming = list(incoming or [])
        self.closed = False

    async def send(self, data: str) -> None:
        if self.closed:
            raise Exception("Connection closed")
        self.sent_messages.append(data)

    async def recv(self) -> str:
        if not self.incoming:
            raise ConnectionClosed(None, None)
        return self.incoming.pop(0)

    async def close(self) -> None:
        self.closed = True

    def __hash__(self):
        return hash(self.id)

    def __eq__(self, other):
        return isinstance(other, MockWebSocket) and self.id == other.id

    def get_messages(self) -> list[dict]:
        return [json.loads(m) for m in self.sent_messages]

    def get_types(self) -> list[str]:
        return [m["type"] for m in self.get_messages()]

    def get_notices(self) -> list[str]:
        return [m["data"]["text"] for m in self.get_messages() if m["type"] == "NOTICE"]

    def clear_messages(self) -> None:
        self.sent_messages.clear()


def rig_game(game: Game, hands: dict[str, list[str]], top: str, draw: list[str] = ()) -> None:
    """Replace the dealt cards with a known layout. Last ``draw`` card is on top."""
    for player in game.players:
        player.hand = Hand(parse_card(c) for c in hands[player.name])
    game.discard_pile = Pile([parse_card(top)])
    game.draw_pile = Pile(parse_card(c) for c in draw)


async def seated_table(names=("A", "B"), prompt_timeout: float = 5.0):
    """A started table with every player joined over a mock socket."""
    games = GameManager(required_players=len(names), reshuffle_discard=False, seed=3)
    handler = MessageHandler(games, ConnectionManager(), prompt_timeout=prompt_timeout)

    sockets = {}
    for name in names:
        sockets[name] = MockWebSocket(name)
        result = await handler.handle_join(sockets[name], name)
        assert result.ok

    for ws in sockets.values():
        ws.clear_messages()
    return handler, games.game, sockets


def answers(*replies: str):
    """An ask callable that returns ``replies`` in order and records prompts."""
    pending = list(replies)

    async def ask(prompt: str) -> str:
        ask.prompts.append(prompt)
        return pending.pop(0)

    ask.prompts = []
    return ask


async def never_asked(prompt: str) -> str:
    raise AssertionError(f"Unexpected prompt: {prompt}")


# =============================================================================
# Connection Manager
# =============================================================================

class TestConnectionManager:

    def test_connect_and_disconnect(self):
        async def run():
            manager = ConnectionManager()
            ws = MockWebSocket("ws1")

            await manager.connect(ws, "Alice")
            assert manager.is_player_connected("Alice")
            assert manager.get_connection(ws).player_name == "Alice"
            assert manager.get_connection_by_name("Alice").websocket is ws

            await manager.disconnect(ws)
            assert not manager.is_player_connected("Alice")
            assert manager.get_player_names() == []

        asyncio.run(run())

    def test_send_to_player(self):
        async def run():
            manager = ConnectionManager()
            ws = MockWebSocket("ws1")
            await manager.connect(ws, "Alice")

            assert await manager.send_to_player("Alice", NoticeMessage.create("hi"))
            assert not await manager.send_to_player("Nobody", NoticeMessage.create("hi"))
            assert ws.get_notices() == ["hi"]

            ws.closed = True
            assert not await manager.send_to_player("Alice", NoticeMessage.create("lost"))

        asyncio.run(run())

    def test_broadcast_with_exclusions(self):
        async def run():
            manager = ConnectionManager()
            sockets = {name: MockWebSocket(name) for name in "ABC"}
            for name, ws in sockets.items():
                await manager.connect(ws, name)

            sent = await manager.broadcast(NoticeMessage.create("hello"), exclude=["B"])

            assert sent == 2
            assert sockets["A"].get_notices() == ["hello"]
            assert sockets["B"].get_notices() == []
            assert sockets["C"].get_notices() == ["hello"]

        asyncio.run(run())

    def test_deliver_engine_messages(self):
        async def run():
            manager = ConnectionManager()
            sockets = {name: MockWebSocket(name) for name in "ABC"}
            for name, ws in sockets.items():
                await manager.connect(ws, name)

            await manager.deliver(Outbound("just you", recipient="B"))
            await manager.deliver(Outbound("not you two", excluded=("A", "B")))
            await manager.deliver(Outbound("everyone"))

            assert sockets["A"].get_notices() == ["everyone"]
            assert sockets["B"].get_notices() == ["just you", "everyone"]
            assert sockets["C"].get_notices() == ["not you two", "everyone"]

        asyncio.run(run())


# =============================================================================
# Game Manager
# =============================================================================

class TestGameManager:

    def test_join_until_started(self):
        manager = GameManager(required_players=2, reshuffle_discard=False, seed=1)

        success, _, player = manager.join_game("Alice")
        assert success and player.name == "Alice"
        assert not manager.table.is_started

        success, message, _ = manager.join_game("Bob")
        assert success
        assert message == "Game started"
        assert manager.game.status == GameStatus.IN_PROGRESS

    def test_join_rejections(self):
        manager = GameManager(required_players=2, reshuffle_discard=False, seed=1)
        manager.join_game("Alice")

        success, message, player = manager.join_game("Alice")
        assert not success and player is None
        assert "already taken" in message

        manager.join_game("Bob")
        success, _, _ = manager.join_game("Carol")
        assert not success

    def test_mark_disconnected(self):
        manager = GameManager(required_players=2, reshuffle_discard=False, seed=1)
        manager.join_game("Alice")

        assert manager.mark_disconnected("Alice").connected is False
        assert manager.mark_disconnected("Nobody") is None
        assert manager.get_stats()["connected_players"] == 0


# =============================================================================
# Message Handler: joining
# =============================================================================

class TestJoin:

    def test_table_starts_when_full(self):
        async def run():
            games = GameManager(required_players=2, reshuffle_discard=False, seed=3)
            handler = MessageHandler(games, ConnectionManager(), prompt_timeout=5)
            alice, bob = MockWebSocket("A"), MockWebSocket("B")

            await handler.handle_join(alice, "A")
            assert alice.get_types() == ["CONNECT", "PLAYER_JOINED"]

            await handler.handle_join(bob, "B")
            assert alice.get_types() == [
                "CONNECT", "PLAYER_JOINED", "PLAYER_JOINED", "GAME_STARTED", "NOTICE", "NOTICE",
            ]
            assert bob.get_types() == ["CONNECT", "PLAYER_JOINED", "GAME_STARTED", "NOTICE"]

            started = bob.get_messages()[2]["data"]
            assert started["player_order"] == ["A", "B"]
            assert started["current_player"] == "A"

            game = games.game
            assert alice.get_notices() == [
                f"Your cards now:\n{game.player('A').hand}",
                f"Your turn! Top card: {game.top_card}",
            ]

        asyncio.run(run())

    def test_duplicate_name_rejected(self):
        async def run():
            games = GameManager(required_players=3, reshuffle_discard=False, seed=3)
            connections = ConnectionManager()
            handler = MessageHandler(games, connections, prompt_timeout=5)
            first, second = MockWebSocket("ws1"), MockWebSocket("ws2")

            await handler.handle_join(first, "A")
            result = await handler.handle_join(second, "A")

            assert not result.ok
            assert result.response.data["code"] == "JOIN_FAILED"
            assert connections.get_connection_by_name("A").websocket is first
            assert second.sent_messages == []

        asyncio.run(run())


# =============================================================================
# Message Handler: moves
# =============================================================================

class TestMoves:

    def test_move_is_delivered(self):
        async def run():
            handler, game, ws = await seated_table()
            rig_game(game, {"A": ["R:5", "G:1"], "B": ["Y:1", "Y:2"]}, "R:5")

            result = await handler.handle_message(
                "A", MoveRequest.create("R:5").to_json(), never_asked
            )

            assert result.ok
            assert ws["A"].get_notices() == ["You played R:5", "Your cards now:\n[G:1]"]
            assert ws["B"].get_notices() == [
                "A played R:5", "Your turn! Top card: R:5", "A made the move: R:5",
            ]

        asyncio.run(run())

    def test_rejected_move_keeps_request_id(self):
        async def run():
            handler, game, ws = await seated_table()

            result = await handler.handle_message(
                "B", MoveRequest.create("DRAW", request_id="r-1").to_json(), never_asked
            )

            assert not result.ok
            assert result.response.data["code"] == "NOT_YOUR_TURN"
            assert result.response.request_id == "r-1"
            assert ws["A"].get_notices() == ["B made the move: DRAW"]

        asyncio.run(run())

    def test_view_commands_are_echoed_to_others(self):
        async def run():
            handler, game, ws = await seated_table(names=("A", "B", "C"))

            await handler.handle_message("B", MoveRequest.create("VIEW CARDS -O").to_json(), never_asked)

            assert ws["A"].get_notices() == ["B made the move: VIEW CARDS -O"]
            assert ws["C"].get_notices() == ["B made the move: VIEW CARDS -O"]
            assert ws["B"].get_notices() == ["A: 7\nB: 7\nC: 7"]

        asyncio.run(run())

    def test_bad_messages(self):
        async def run():
            handler, _, _ = await seated_table()

            result = await handler.handle_message("A", "not json", never_asked)
            assert result.response.data["code"] == "PARSE_ERROR"

            result = await handler.handle_message("A", {"type": "CONNECT"}, never_asked)
            assert result.response.data["code"] == "UNKNOWN_MESSAGE_TYPE"

            result = await handler.handle_message("A", Message(type=MessageType.MOVE), never_asked)
            assert result.response.data["code"] == "MISSING_MOVE"

            result = await handler.handle_move("Stranger", "DRAW", never_asked)
            assert result.response.data["code"] == "NOT_IN_GAME"

        asyncio.run(run())


# =============================================================================
# Message Handler: draw prompt
# =============================================================================

class TestDrawPrompt:

    def test_play_drawn_card(self):
        async def run():
            handler, game, ws = await seated_table()
            rig_game(game, {"A": ["B:2", "B:3"], "B": ["Y:1"]}, "R:5", draw=["R:7"])
            ask = answers("play")

            result = await handler.handle_move("A", "DRAW", ask)

            assert result.ok
            assert ask.prompts == ["play or skip?"]
            assert game.top_card == parse_card("R:7")
            assert game.current_player.name == "B"
            assert "A is playing the drawn card!" in ws["B"].get_notices()

        asyncio.run(run())

    def test_skip_drawn_card(self):
        async def run():
            handler, game, ws = await seated_table()
            rig_game(game, {"A": ["B:2"], "B": ["Y:1"]}, "R:5", draw=["R:7"])

            await handler.handle_move("A", "DRAW", answers("skip"))

            assert game.player("A").hand.contains(parse_card("R:7"))
            assert game.current_player.name == "B"
            assert ws["B"].get_notices() == ["A drew a card.", "Your turn! Top card: R:5"]

        asyncio.run(run())

    def test_prompt_repeats_until_answered(self):
        async def run():
            handler, game, _ = await seated_table()
            rig_game(game, {"A": ["B:2"], "B": ["Y:1"]}, "R:5", draw=["R:7"])
            ask = answers("maybe", "PLAY")

            await handler.handle_move("A", "DRAW", ask)

            assert ask.prompts == ["play or skip?", "play or skip?"]
            assert game.top_card == parse_card("R:7")

        asyncio.run(run())

    def test_prompt_timeout_forfeits(self):
        async def run():
            handler, game, ws = await seated_table(prompt_timeout=0.05)
            rig_game(game, {"A": ["B:2"], "B": ["Y:1"]}, "R:5", draw=["R:7"])

            async def slow(prompt: str) -> str:
                await asyncio.sleep(10)
                return "play"

            await handler.handle_move("A", "DRAW", slow)

            assert game.pending_draw is None
            assert game.player("A").hand.contains(parse_card("R:7"))
            assert game.current_player.name == "B"
            assert "Too slow! You keep the card and your turn ends." in ws["A"].get_notices()
            assert "A drew a card and forfeited the turn." in ws["B"].get_notices()

        asyncio.run(run())

    def test_zero_prompt_timeout_is_honoured(self):
        async def run():
            handler, game, ws = await seated_table(prompt_timeout=0)
            rig_game(game, {"A": ["B:2"], "B": ["Y:1"]}, "R:5", draw=["R:7"])

            async def slow(prompt: str) -> str:
                await asyncio.sleep(10)
                return "play"

            await asyncio.wait_for(handler.handle_move("A", "DRAW", slow), timeout=2)

            assert game.top_card == parse_card("R:5")
            assert game.player("A").hand.contains(parse_card("R:7"))
            assert game.current_player.name == "B"

        asyncio.run(run())

    def test_late_answer_after_timeout(self):
        async def run():
            handler, game, ws = await seated_table(prompt_timeout=0.05)
            rig_game(game, {"A": ["B:2"], "B": ["Y:1"]}, "R:5", draw=["R:7"])

            async def slow(prompt: str) -> str:
                await asyncio.sleep(10)
                return "play"

            await handler.handle_move("A", "DRAW", slow)
            result = await handler.handle_message(
                "A", MoveRequest.create("play").to_json(), never_asked
            )

            assert result.response.data["code"] == "ILLEGAL_MOVE"
            assert "no drawn card to play" in result.response.data["message"]
            assert game.current_player.name == "B"

        asyncio.run(run())

    def test_disconnect_during_prompt(self):
        async def run():
            handler, game, ws = await seated_table()
            rig_game(game, {"A": ["B:2"], "B": ["Y:1"]}, "R:5", draw=["R:7"])

            async def gone(prompt: str) -> str:
                raise ConnectionClosed(None, None)

            await handler.handle_move("A", "DRAW", gone)

            assert game.player("A").connected is False
            assert game.pending_draw is None
            assert game.current_player.name == "B"
            assert "DISCONNECT" in ws["B"].get_types()

        asyncio.run(run())

    def test_moves_wait_for_pending_prompt(self):
        async def run():
            handler, game, ws = await seated_table()
            rig_game(game, {"A": ["B:2"], "B": ["Y:1"]}, "R:5", draw=["G:9", "R:7"])
            answered = asyncio.Event()

            async def thinking(prompt: str) -> str:
                await answered.wait()
                return "skip"

            a_task = asyncio.create_task(handler.handle_move("A", "DRAW", thinking))
            await asyncio.sleep(0.01)
            b_task = asyncio.create_task(handler.handle_move("B", "DRAW", never_asked))
            await asyncio.sleep(0.01)

            # B's move may not run while A holds the table
            assert not b_task.done()
            answered.set()

            assert (await a_task).ok
            b_result = await b_task
            assert b_result.ok
            assert game.player("B").hand.contains(parse_card("G:9"))
            assert game.current_player.name == "A"

        asyncio.run(run())


# =============================================================================
# Message Handler: disconnects
# =============================================================================

class TestDisconnect:

    def test_disconnect_forfeits_current_turn(self):
        async def run():
            handler, game, ws = await seated_table()
            rig_game(game, {"A": ["B:2"], "B": ["R:1", "R:2"]}, "R:5")

            await handler.handle_disconnect("A")

            assert game.player("A").connected is False
            assert game.current_player.name == "B"
            assert "DISCONNECT" in ws["B"].get_types()
            assert ws["B"].get_notices() == [
                "A forfeited the turn.", "Your turn! Top card: R:5",
            ]

        asyncio.run(run())

    def test_disconnected_player_is_skipped(self):
        async def run():
            handler, game, ws = await seated_table(names=("A", "B", "C"))
            rig_game(
                game,
                {"A": ["R:1", "R:2", "G:3"], "B": ["B:2"], "C": ["R:3", "R:4"]},
                "R:5",
            )
            await handler.handle_disconnect("B")

            await handler.handle_move("A", "R:1", never_asked)

            assert game.current_player.name == "C"
            assert "B forfeited the turn." in ws["C"].get_notices()

        asyncio.run(run())

    def test_disconnect_while_waiting(self):
        async def run():
            games = GameManager(required_players=2, reshuffle_discard=False, seed=3)
            handler = MessageHandler(games, ConnectionManager(), prompt_timeout=5)
            await handler.handle_join(MockWebSocket("A"), "A")

            assert await handler.handle_disconnect("A") == []
            assert games.game.status == GameStatus.WAITING_FOR_PLAYERS

        asyncio.run(run())


# =============================================================================
# Server
# =============================================================================

class TestServer:

    @staticmethod
    def make_server() -> UnoServer:
        return UnoServer(
            "localhost", 0,
            game_manager=GameManager(required_players=2, reshuffle_discard=False, seed=3),
        )

    def test_ask_waits_for_a_move(self):
        async def run():
            server = self.make_server()
            ws = MockWebSocket("A", incoming=[
                "garbage",
                ConnectRequest.create("A").to_json(),
                MoveRequest.create("skip").to_json(),
            ])

            assert await server._ask(ws, "play or skip?") == "skip"

            messages = ws.get_messages()
            assert messages[0] == {
                "type": "PROMPT", "data": {"text": "play or skip?"}, "request_id": None,
            }
            assert [m["data"]["code"] for m in messages[1:]] == ["PARSE_ERROR", "ANSWER_REQUIRED"]

        asyncio.run(run())

    def test_connect_handshake(self):
        async def run():
            server = self.make_server()
            ws = MockWebSocket("A", incoming=[ConnectRequest.create("  A ").to_json()])

            assert await server._handle_connect(ws) == "A"
            assert ws.get_messages()[0]["data"]["success"] is True

        asyncio.run(run())

    @pytest.mark.parametrize("first,code", [
        (MoveRequest.create("DRAW").to_json(), "CONNECT_REQUIRED"),
        (ConnectRequest.create("   ").to_json(), "MISSING_PLAYER_NAME"),
        ("{oops", "PARSE_ERROR"),
    ])
    def test_connect_handshake_errors(self, first, code):
        async def run():
            server = self.make_server()
            ws = MockWebSocket("A", incoming=[first])

            assert await server._handle_connect(ws) is None
            assert ws.get_messages()[-1]["data"]["code"] == code

        asyncio.run(run())


# =============================================================================
# Protocol
# =============================================================================

class TestProtocol:

    def test_move_request(self):
        message = parse_message(MoveRequest.create("R:5", request_id="7").to_json())
        assert message.type == MessageType.MOVE
        assert message.data == {"move": "R:5"}
        assert message.request_id == "7"

    @pytest.mark.parametrize("raw", ['[1, 2]', '{"type": "NOPE"}', '{"data": {}}', '{"type": "MOVE", "data": 3}'])
    def test_rejects_malformed(self, raw):
        with pytest.raises((ValueError, KeyError)):
            parse_message(raw)
