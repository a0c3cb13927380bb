"""WebSocket connection registry and event fan-out."""

from __future__ import annotations

import logging
from typing import Iterable, Optional

from fastapi import WebSocket

from poker_table.models import Event
from poker_table.seats import SeatRegistry

logger = logging.getLogger(__name__)


class ClientConnection:
    """Wraps a single WebSocket connection."""

    __slots__ = ("ws", "connection_id")

    def __init__(self, ws: WebSocket, connection_id: str) -> None:
        self.ws = ws
        self.connection_id = connection_id

    async def send(self, text: str) -> bool:
        """Send text, returning False on failure."""
        try:
            await self.ws.send_text(text)
            return True
        except Exception:
            return False


class Broadcaster:
    """Delivers events to every connection, or to one seat's owner."""

    def __init__(self) -> None:
        # connection_id -> ClientConnection
        self._connections: dict[str, ClientConnection] = {}

    def connect(self, connection_id: str, ws: WebSocket) -> ClientConnection:
        conn = ClientConnection(ws, connection_id)
        self._connections[connection_id] = conn
        logger.info("WS connect: %s", connection_id)
        return conn

    def disconnect(self, connection_id: str) -> None:
        if self._connections.pop(connection_id, None) is not None:
            logger.info("WS disconnect: %s", connection_id)

    # ------------------------------------------------------------------
    # Messaging
    # ------------------------------------------------------------------

    async def send_to(self, connection_id: str, event: Event) -> None:
        """Send an event to a single connection."""
        conn = self._connections.get(connection_id)
        if conn and not await conn.send(event.to_message()):
            self.disconnect(connection_id)

    async def broadcast(self, event: Event, exclude: Optional[str] = None) -> None:
        """Send an event to all connections, optionally skipping one."""
        message = event.to_message()
        stale: list[str] = []
        for cid, conn in list(self._connections.items()):
            if cid == exclude:
                continue
            if not await conn.send(message):
                stale.append(cid)
        for cid in stale:
            self.disconnect(cid)

    async def publish(self, events: Iterable[Event], seats: SeatRegistry) -> None:
        """Deliver events in order; seat-addressed events go to the seat owner only."""
        for event in events:
            if event.seat is None:
                skip = None
                if event.exclude_seat is not None:
                    skip = seats.occupant(event.exclude_seat)
                await self.broadcast(event, exclude=skip)
                continue
            owner = seats.occupant(event.seat)
            if owner is not None:
                await self.send_to(owner, event)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def connection_ids(self) -> set[str]:
        return set(self._connections)
