"""Pydantic models for the table wire protocol."""

from __future__ import annotations

import json
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, Field


class Stage(str, Enum):
    WAITING = "WAITING"
    DEALING = "DEALING"
    PLAYING = "PLAYING"


class Street(str, Enum):
    PRE_FLOP = "PRE_FLOP"
    FLOP = "FLOP"
    TURN = "TURN"
    RIVER = "RIVER"
    SHOWDOWN = "SHOWDOWN"


class ActionKind(str, Enum):
    FOLD = "fold"
    CHECK = "check"
    CALL = "call"
    BET = "bet"
    RAISE = "raise"


# --- Request models ---


class ClientMessage(BaseModel):
    """Envelope for every frame a client sends."""

    type: str
    data: dict[str, Any] = Field(default_factory=dict)


class JoinGameRequest(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=20)


class PlayerActionRequest(BaseModel):
    type: ActionKind
    seat: int = Field(..., ge=0)
    amount: Optional[int] = Field(default=None, ge=0)  # chips added by this action


# --- Response / state models ---


class PlayerInfo(BaseModel):
    id: str
    seat: int
    name: str


class TableSnapshot(BaseModel):
    """Public table state; never includes hole cards."""

    stage: Stage
    street: Street
    hand_number: int
    players: list[PlayerInfo]
    community_cards: list[dict[str, Any]]
    visible_board_count: int
    pot: int
    active_seat: Optional[int]
    highest_bet: int


class Event(BaseModel):
    """A server notification.

    ``seat`` set means addressed to that seat's owner only; ``exclude_seat``
    set means broadcast to everyone except that seat's owner.
    """

    name: str
    data: dict[str, Any] = Field(default_factory=dict)
    seat: Optional[int] = None
    exclude_seat: Optional[int] = None

    def to_message(self) -> str:
        return json.dumps({"type": self.name, "data": self.data})
