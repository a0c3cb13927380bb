"""Seat registry: maps connections to a fixed pool of seats."""

from __future__ import annotations

import logging
from typing import Optional

from poker_table.models import PlayerInfo

logger = logging.getLogger(__name__)


class RoomFull(ValueError):
    """Raised when every seat is occupied."""


class SeatRegistry:
    """Fixed-size seat pool. Seat count never changes after construction."""

    def __init__(self, seat_count: int = 2) -> None:
        self._seats: list[Optional[str]] = [None] * seat_count
        self._players: dict[str, PlayerInfo] = {}

    @property
    def seat_count(self) -> int:
        return len(self._seats)

    def join(self, connection_id: str, name: Optional[str] = None) -> PlayerInfo:
        """Seat a connection in the lowest empty seat."""
        existing = self._players.get(connection_id)
        if existing is not None:
            return existing

        try:
            seat = self._seats.index(None)
        except ValueError:
            raise RoomFull("Room is full") from None

        player = PlayerInfo(id=connection_id, seat=seat, name=name or f"Player {seat + 1}")
        self._seats[seat] = connection_id
        self._players[connection_id] = player
        logger.info("Seat %d -> %s (pool: %s)", seat, connection_id, self._seats)
        return player

    def leave(self, connection_id: str) -> Optional[PlayerInfo]:
        """Free the connection's seat. Returns the departed player, if any."""
        player = self._players.pop(connection_id, None)
        if player is None:
            return None
        self._seats[player.seat] = None
        logger.info("Seat %d freed by %s", player.seat, connection_id)
        return player

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def occupant(self, seat: int) -> Optional[str]:
        if 0 <= seat < len(self._seats):
            return self._seats[seat]
        return None

    def seat_of(self, connection_id: str) -> Optional[int]:
        player = self._players.get(connection_id)
        return player.seat if player else None

    def occupied_seats(self) -> list[int]:
        return [i for i, cid in enumerate(self._seats) if cid is not None]

    def players(self) -> list[PlayerInfo]:
        return sorted(self._players.values(), key=lambda p: p.seat)
