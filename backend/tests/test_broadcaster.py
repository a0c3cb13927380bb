"""Tests for event fan-out and seat-addressed delivery."""

from poker_table.broadcaster import Broadcaster
from poker_table.models import Event
from poker_table.seats import SeatRegistry


def _setup(fake_ws):
    b = Broadcaster()
    seats = SeatRegistry(2)
    sockets = {}
    for cid in ("a", "b", "watcher"):
        sockets[cid] = fake_ws()
        b.connect(cid, sockets[cid])
    seats.join("a")
    seats.join("b")
    return b, seats, sockets


class TestPublish:
    async def test_broadcast_reaches_everyone(self, fake_ws):
        b, seats, sockets = _setup(fake_ws)
        await b.publish([Event(name="pot_update", data={"pot": 10})], seats)
        for ws in sockets.values():
            assert ws.sent == [{"type": "pot_update", "data": {"pot": 10}}]

    async def test_addressed_event_reaches_owner_only(self, fake_ws):
        b, seats, sockets = _setup(fake_ws)
        await b.publish([Event(name="deal_private", data={"seat": 1}, seat=1)], seats)
        assert sockets["b"].types() == ["deal_private"]
        assert sockets["a"].sent == []
        assert sockets["watcher"].sent == []

    async def test_addressed_to_empty_seat_is_dropped(self, fake_ws):
        b, seats, sockets = _setup(fake_ws)
        seats.leave("b")
        await b.publish([Event(name="deal_private", seat=1)], seats)
        assert all(ws.sent == [] for ws in sockets.values())

    async def test_excluded_seat_is_skipped(self, fake_ws):
        b, seats, sockets = _setup(fake_ws)
        relay = Event(name="remote_action", data={"type": "check", "seat": 0}, exclude_seat=0)
        await b.publish([relay], seats)
        assert sockets["a"].sent == []
        assert sockets["b"].types() == ["remote_action"]
        assert sockets["watcher"].types() == ["remote_action"]

    async def test_order_preserved(self, fake_ws):
        b, seats, sockets = _setup(fake_ws)
        events = [
            Event(name="hand_ended", data={"winner": 0}),
            Event(name="game_stage_change", data={"stage": "WAITING"}),
        ]
        await b.publish(events, seats)
        assert sockets["a"].types() == ["hand_ended", "game_stage_change"]


class TestConnections:
    async def test_failed_send_drops_connection(self, fake_ws):
        b, seats, sockets = _setup(fake_ws)
        sockets["watcher"].broken = True
        await b.broadcast(Event(name="ping"))
        assert b.connection_ids() == {"a", "b"}

    async def test_send_to_unknown_is_noop(self, fake_ws):
        b, _, sockets = _setup(fake_ws)
        await b.send_to("ghost", Event(name="error", data={"message": "x"}))
        assert all(ws.sent == [] for ws in sockets.values())

    def test_disconnect(self, fake_ws):
        b, _, _ = _setup(fake_ws)
        b.disconnect("a")
        b.disconnect("a")
        assert "a" not in b.connection_ids()
