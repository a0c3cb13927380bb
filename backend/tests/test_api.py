"""Tests for the REST endpoints and the WebSocket protocol."""

from __future__ import annotations

import random
from unittest.mock import patch

import pytest
from fastapi.testclient import TestClient
from httpx import ASGITransport, AsyncClient

from poker_table.config import TableSettings
from poker_table.main import app as fastapi_app
from poker_table.table import Table


@pytest.fixture
def fresh_table():
    table = Table(TableSettings(deal_delay_ms=0, board_delay_ms=0), rng=random.Random(5))
    with patch("poker_table.main.table", table):
        yield table


def _until(ws, name: str) -> dict:
    """Read frames until one of type *name* arrives; return its data."""
    while True:
        msg = ws.receive_json()
        if msg["type"] == name:
            return msg["data"]


# ---------------------------------------------------------------------------
# REST
# ---------------------------------------------------------------------------


class TestRestEndpoints:
    async def test_root(self, fresh_table):
        async with AsyncClient(
            transport=ASGITransport(app=fastapi_app), base_url="http://test"
        ) as client:
            resp = await client.get("/")
        assert resp.status_code == 200
        assert "running" in resp.text

    async def test_table_snapshot(self, fresh_table):
        fresh_table.seats.join("c0", "Alice")

        async with AsyncClient(
            transport=ASGITransport(app=fastapi_app), base_url="http://test"
        ) as client:
            resp = await client.get("/api/table")

        assert resp.status_code == 200
        body = resp.json()
        assert body["stage"] == "WAITING"
        assert body["pot"] == 0
        assert body["players"] == [{"id": "c0", "seat": 0, "name": "Alice"}]


# ---------------------------------------------------------------------------
# WebSocket
# ---------------------------------------------------------------------------


class TestWebSocket:
    def test_join_and_room_full(self, fresh_table):
        client = TestClient(fastapi_app)
        with client.websocket_connect("/ws") as ws0:
            ws0.send_json({"type": "join_game", "data": {"name": "Alice"}})
            init = _until(ws0, "init_state")
            assert init["yourSeat"] == 0
            assert init["stage"] == "WAITING"
            assert _until(ws0, "player_joined")["name"] == "Alice"

            with client.websocket_connect("/ws") as ws1:
                ws1.send_json({"type": "join_game"})
                assert _until(ws1, "init_state")["yourSeat"] == 1

                with client.websocket_connect("/ws") as ws2:
                    ws2.send_json({"type": "join_game"})
                    assert ws2.receive_json() == {
                        "type": "error",
                        "data": {"message": "Room is full"},
                    }

    def test_malformed_frames(self, fresh_table):
        client = TestClient(fastapi_app)
        with client.websocket_connect("/ws") as ws:
            ws.send_text("not json")
            assert _until(ws, "error") == {"message": "Malformed message"}

            ws.send_json({"type": "shuffle_up"})
            assert _until(ws, "error") == {"message": "Unknown message type: shuffle_up"}

            ws.send_json({"type": "player_action", "data": {"type": "dance", "seat": 0}})
            assert _until(ws, "error") == {"message": "Malformed message"}

    def test_hand_over_websocket(self, fresh_table):
        client = TestClient(fastapi_app)
        with client.websocket_connect("/ws") as ws0, client.websocket_connect("/ws") as ws1:
            ws0.send_json({"type": "join_game"})
            _until(ws0, "init_state")
            ws1.send_json({"type": "join_game"})
            _until(ws1, "init_state")

            ws0.send_json({"type": "start_game"})
            assert _until(ws0, "new_round") == {"stage": "PRE_FLOP", "activeSeat": 0}
            private = _until(ws1, "deal_private")
            assert private["seat"] == 1
            assert _until(ws1, "new_round")["activeSeat"] == 0

            ws0.send_json(
                {"type": "player_action", "data": {"type": "bet", "seat": 0, "amount": 100}}
            )
            assert _until(ws1, "remote_action") == {"type": "bet", "seat": 0, "amount": 100}
            assert _until(ws1, "pot_update") == {"pot": 100}
            assert _until(ws1, "turn_change") == {"seat": 1}

            ws1.send_json({"type": "player_action", "data": {"type": "check", "seat": 1}})
            assert _until(ws1, "error")["message"].startswith("Cannot check")

            ws1.send_json({"type": "player_action", "data": {"type": "fold", "seat": 1}})
            assert _until(ws0, "remote_action") == {"type": "fold", "seat": 1, "amount": 0}
            ended = _until(ws0, "hand_ended")
            assert ended["winner"] == 0
            assert ended["pot"] == 100
            assert _until(ws0, "game_stage_change") == {"stage": "WAITING"}
