"""Shared fixtures: a recording fake WebSocket and fast tables."""

from __future__ import annotations

import json
import os
import random

# Disable rate limiting before any app module reads its settings
os.environ.setdefault("RATE_LIMIT_ENABLED", "0")

import pytest

from poker_table.config import TableSettings
from poker_table.table import Table


class FakeWebSocket:
    """Records every frame sent to it."""

    def __init__(self) -> None:
        self.sent: list[dict] = []
        self.broken = False

    async def send_text(self, text: str) -> None:
        if self.broken:
            raise RuntimeError("socket closed")
        self.sent.append(json.loads(text))

    def types(self) -> list[str]:
        return [m["type"] for m in self.sent]

    def of_type(self, name: str) -> list[dict]:
        return [m["data"] for m in self.sent if m["type"] == name]

    def clear(self) -> None:
        self.sent.clear()


@pytest.fixture
def fake_ws():
    return FakeWebSocket


@pytest.fixture
def fast_settings() -> TableSettings:
    return TableSettings(deal_delay_ms=0, board_delay_ms=0)


@pytest.fixture
def make_table(fast_settings):
    """Factory for a table with *n* connected sockets (not yet seated)."""

    def _make(n: int = 2, table_settings: TableSettings | None = None, seed: int = 7):
        table = Table(table_settings or fast_settings, rng=random.Random(seed))
        sockets = {}
        for i in range(n):
            ws = FakeWebSocket()
            table.broadcaster.connect(f"c{i}", ws)
            sockets[f"c{i}"] = ws
        return table, sockets

    return _make
