"""FastAPI application: WebSocket table protocol plus a small REST surface."""

import json
import logging
import uuid
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, WebSocket, WebSocketDisconnect
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse
from pydantic import ValidationError
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address

from poker_table.config import settings
from poker_table.engine import InvalidAction, OutOfTurnAction
from poker_table.models import (
    ClientMessage,
    Event,
    JoinGameRequest,
    PlayerActionRequest,
    TableSnapshot,
)
from poker_table.seats import RoomFull
from poker_table.table import InvalidStageRequest, table

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    yield
    # Stop any deal still pacing its reveals
    await table.shutdown()


app = FastAPI(title="Poker Table Server", lifespan=lifespan)

# ---------- Rate Limiting ----------

limiter = Limiter(
    key_func=get_remote_address,
    enabled=settings.rate_limit_enabled,
)
app.state.limiter = limiter


@app.exception_handler(RateLimitExceeded)
async def _rate_limit_handler(request: Request, exc: RateLimitExceeded):
    return JSONResponse(
        status_code=429,
        content={"detail": "Rate limit exceeded. Please slow down."},
    )


app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST"],
    allow_headers=["*"],
)

# ---------- REST endpoints ----------


@app.get("/", response_class=PlainTextResponse)
@limiter.limit("60/minute")
async def root(request: Request):
    return "Poker table server is running."


@app.get("/api/table", response_model=TableSnapshot)
@limiter.limit("30/minute")
async def get_table(request: Request):
    """Public table state (no hole cards)."""
    return table.snapshot()


# ---------- WebSocket ----------


@app.websocket("/ws")
async def websocket_endpoint(ws: WebSocket):
    await ws.accept()
    connection_id = str(uuid.uuid4())
    table.broadcaster.connect(connection_id, ws)

    try:
        while True:
            raw = await ws.receive_text()
            await _handle_message(connection_id, raw)
    except WebSocketDisconnect:
        pass
    finally:
        try:
            await table.leave(connection_id)
        except Exception:
            logger.exception("Error releasing seat for %s", connection_id)


async def _handle_message(connection_id: str, raw: str) -> None:
    """Dispatch one client frame to the table."""
    try:
        msg = ClientMessage.model_validate(json.loads(raw))
        if msg.type == "join_game":
            req = JoinGameRequest.model_validate(msg.data)
            await table.join(connection_id, req.name)
        elif msg.type == "start_game":
            await table.start_game()
        elif msg.type == "player_action":
            req = PlayerActionRequest.model_validate(msg.data)
            await table.player_action(connection_id, req)
        else:
            await _send_error(connection_id, f"Unknown message type: {msg.type}")
    except (OutOfTurnAction, InvalidStageRequest) as e:
        logger.debug("Dropped request from %s: %s", connection_id, e)
    except (RoomFull, InvalidAction) as e:
        logger.info("Rejected request from %s: %s", connection_id, e)
        await _send_error(connection_id, str(e))
    except (json.JSONDecodeError, ValidationError) as e:
        logger.debug("Malformed message from %s: %s", connection_id, e)
        await _send_error(connection_id, "Malformed message")


async def _send_error(connection_id: str, message: str) -> None:
    await table.broadcaster.send_to(
        connection_id, Event(name="error", data={"message": message})
    )
