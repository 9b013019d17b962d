"""Protocol tests for the room relay, driven without a network."""

import asyncio
from dataclasses import dataclass, field
from typing import Any, Dict, List

from tictacrelay.relay import RoomRelay
from tictacrelay.rooms import CleanupPolicy, RoomRegistry

EMPTY = [None] * 9


@dataclass(eq=False)
class FakeConnection:
    id: str
    sent: List[Dict[str, Any]] = field(default_factory=list)

    async def send_json(self, message: Dict[str, Any]) -> None:
        self.sent.append(message)

    def types(self) -> List[str]:
        return [message["type"] for message in self.sent]


def _run(coro):
    return asyncio.run(coro)


def test_first_join_assigns_x_without_ready():
    relay = RoomRelay(RoomRegistry())
    a = FakeConnection("a")
    _run(relay.join(a, "abc"))
    assert a.sent == [{"type": "player_assignment", "data": "X"}]


def test_second_join_assigns_o_and_broadcasts_ready():
    relay = RoomRelay(RoomRegistry())
    a, b = FakeConnection("a"), FakeConnection("b")

    async def scenario():
        await relay.join(a, "abc")
        await relay.join(b, "ABC")

    _run(scenario())
    ready = {"type": "game_ready", "data": {"board": EMPTY, "turn": "X"}}
    assert b.sent == [{"type": "player_assignment", "data": "O"}, ready]
    assert a.sent[-1] == ready


def test_third_join_is_rejected_without_mutation():
    registry = RoomRegistry()
    relay = RoomRelay(registry)
    a, b, c = FakeConnection("a"), FakeConnection("b"), FakeConnection("c")

    async def scenario():
        await relay.join(a, "FULL")
        await relay.join(b, "FULL")
        await relay.join(c, "FULL")
        await relay.move(a, "FULL", 0, "X")

    _run(scenario())
    assert c.sent == [{"type": "error", "data": "Room is full"}]
    room = registry.get("FULL")
    assert room.participants == ["a", "b"]
    assert "c" not in room.connections
    assert room.turn == "O"
    assert b.sent[-1]["data"]["board"][0] == "X"


def test_full_protocol_sequence():
    registry = RoomRegistry()
    relay = RoomRelay(registry)
    a, b = FakeConnection("a"), FakeConnection("b")

    async def scenario():
        await relay.join(a, "A")
        await relay.join(b, "A")
        await relay.move(a, "A", 0, "X")
        await relay.move(b, "A", 0, "O")
        await relay.move(b, "A", 4, "O")
        await relay.reset(a, "A")

    _run(scenario())
    assert a.types() == [
        "player_assignment",
        "game_ready",
        "move_made",
        "move_made",
        "game_reset",
    ]
    first, second = a.sent[2]["data"], a.sent[3]["data"]
    assert first["board"][0] == "X" and first["turn"] == "O"
    assert second["board"][4] == "O" and second["turn"] == "X"
    assert a.sent[4]["data"] == {"board": EMPTY, "turn": "X"}
    assert b.sent[2:] == a.sent[2:]


def test_out_of_turn_move_is_dropped():
    registry = RoomRegistry()
    relay = RoomRelay(registry)
    a, b = FakeConnection("a"), FakeConnection("b")

    async def scenario():
        await relay.join(a, "T")
        await relay.join(b, "T")
        await relay.move(b, "T", 3, "O")

    _run(scenario())
    assert "move_made" not in a.types()
    assert registry.get("T").board == EMPTY


def test_unknown_room_move_and_reset_are_noops():
    registry = RoomRegistry()
    relay = RoomRelay(registry)
    a = FakeConnection("a")

    async def scenario():
        await relay.move(a, "NOPE", 0, "X")
        await relay.reset(a, "NOPE")

    _run(scenario())
    assert a.sent == []
    assert len(registry) == 0


def test_claimed_symbol_is_trusted_by_default():
    relay = RoomRelay(RoomRegistry())
    a, b = FakeConnection("a"), FakeConnection("b")

    async def scenario():
        await relay.join(a, "TRUST")
        await relay.join(b, "TRUST")
        await relay.move(b, "TRUST", 0, "X")

    _run(scenario())
    assert a.types()[-1] == "move_made"


def test_bound_symbols_reject_impersonation():
    relay = RoomRelay(RoomRegistry(), bind_symbols=True)
    a, b = FakeConnection("a"), FakeConnection("b")

    async def scenario():
        await relay.join(a, "BOUND")
        await relay.join(b, "BOUND")
        await relay.move(b, "BOUND", 0, "X")
        await relay.move(a, "BOUND", 0, "X")

    _run(scenario())
    assert a.types() == ["player_assignment", "game_ready", "move_made"]


def test_dispatch_routes_and_drops_malformed_messages():
    registry = RoomRegistry()
    relay = RoomRelay(registry)
    a, b = FakeConnection("a"), FakeConnection("b")

    async def scenario():
        await relay.dispatch(a, {"type": "join_room", "data": " room1 "})
        await relay.dispatch(b, {"type": "join_room", "data": "ROOM1"})
        await relay.dispatch(a, {"type": "make_move", "data": {"roomCode": "room1", "index": 9, "symbol": "X"}})
        await relay.dispatch(a, {"type": "make_move", "data": "oops"})
        await relay.dispatch(a, {"type": "shout", "data": "hi"})
        await relay.dispatch(a, ["not", "an", "object"])
        await relay.dispatch(a, {"type": "join_room", "data": ""})
        await relay.dispatch(a, {"type": "make_move", "data": {"roomCode": "room1", "index": 8, "symbol": "X"}})

    _run(scenario())
    assert a.types() == ["player_assignment", "game_ready", "move_made"]
    assert registry.get("ROOM1").board[8] == "X"
    assert len(registry) == 1


def test_rejoin_from_same_connection_resends_assignment():
    registry = RoomRegistry()
    relay = RoomRelay(registry)
    a = FakeConnection("a")

    async def scenario():
        await relay.join(a, "AGAIN")
        await relay.join(a, "AGAIN")

    _run(scenario())
    assert a.types() == ["player_assignment", "player_assignment"]
    assert registry.get("AGAIN").participants == ["a"]


def test_disconnect_stops_broadcasts_but_keeps_seat():
    registry = RoomRegistry()
    relay = RoomRelay(registry)
    a, b, c = FakeConnection("a"), FakeConnection("b"), FakeConnection("c")

    async def scenario():
        await relay.join(a, "LEFT")
        await relay.join(b, "LEFT")
        await relay.disconnect(b)
        await relay.move(a, "LEFT", 0, "X")
        await relay.join(c, "LEFT")

    _run(scenario())
    assert b.types() == ["player_assignment", "game_ready"]
    assert a.types()[-1] == "move_made"
    assert c.types() == ["error"]


def test_disconnect_evicts_abandoned_room_when_configured():
    registry = RoomRegistry(cleanup=CleanupPolicy.EVICT_EMPTY)
    relay = RoomRelay(registry)
    a, b = FakeConnection("a"), FakeConnection("b")

    async def scenario():
        await relay.join(a, "BYE")
        await relay.join(b, "BYE")
        first = await relay.disconnect(a)
        second = await relay.disconnect(b)
        return first, second

    assert _run(scenario()) == ([], ["BYE"])
    assert "BYE" not in registry


def test_failed_send_does_not_block_broadcast():
    class BrokenConnection(FakeConnection):
        async def send_json(self, message):
            raise RuntimeError("socket closed")

    relay = RoomRelay(RoomRegistry())
    a, b = FakeConnection("a"), BrokenConnection("b")

    async def scenario():
        await relay.join(a, "SEND")
        await relay.join(b, "SEND")

    _run(scenario())
    assert a.types() == ["player_assignment", "game_ready"]


def test_join_waiting_on_evicted_room_pairs_in_live_room():
    @dataclass(eq=False)
    class GatedConnection(FakeConnection):
        gate: Any = None

        async def send_json(self, message):
            if self.gate is not None:
                await self.gate.wait()
            self.sent.append(message)

    registry = RoomRegistry(cleanup=CleanupPolicy.EVICT_EMPTY)
    relay = RoomRelay(registry)
    a = GatedConnection("a")
    b, c = FakeConnection("b"), FakeConnection("c")

    async def scenario():
        await relay.join(a, "R")
        a.gate = asyncio.Event()
        # a's reset holds the room lock while its send is stalled.
        resetting = asyncio.create_task(relay.reset(a, "R"))
        joining = asyncio.create_task(relay.join(b, "R"))
        for _ in range(3):
            await asyncio.sleep(0)
        assert await relay.disconnect(a) == ["R"]
        a.gate.set()
        await resetting
        await joining
        await relay.join(c, "R")

    _run(scenario())
    assert b.sent[0] == {"type": "player_assignment", "data": "X"}
    assert c.sent[0] == {"type": "player_assignment", "data": "O"}
    assert b.types() == c.types() == ["player_assignment", "game_ready"]
    assert registry.get("R").participants == ["b", "c"]
