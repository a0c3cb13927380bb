"""Table: the hand lifecycle and the single writer of table state.

Every inbound request runs under one ``asyncio.Lock`` so it is applied and
published completely before the next one starts. The deal choreography runs
as a background task that takes the lock once per step and sleeps outside
it; any reset to WAITING cancels that task.
"""

from __future__ import annotations

import asyncio
import logging
import random
from typing import Iterable, Optional

from poker_table.broadcaster import Broadcaster
from poker_table.config import TableSettings, settings
from poker_table.dealer import Dealer
from poker_table.engine import BettingEngine, HandState
from poker_table.models import Event, PlayerActionRequest, PlayerInfo, Stage, TableSnapshot
from poker_table.seats import SeatRegistry

logger = logging.getLogger(__name__)


class InvalidStageRequest(ValueError):
    """Request that does not apply to the current stage (dropped silently)."""


class Table:
    """One table, one hand in flight at a time."""

    def __init__(
        self,
        table_settings: TableSettings,
        broadcaster: Optional[Broadcaster] = None,
        rng: Optional[random.Random] = None,
    ) -> None:
        self.settings = table_settings
        self.seats = SeatRegistry(table_settings.seat_count)
        self.state = HandState()
        self.engine = BettingEngine(self.state, self.seats)
        self.dealer = Dealer(table_settings)
        self.broadcaster = broadcaster or Broadcaster()
        self._rng = rng
        self._lock = asyncio.Lock()
        self._deal_task: Optional[asyncio.Task] = None

    @property
    def deal_task(self) -> Optional[asyncio.Task]:
        return self._deal_task

    async def _publish(self, events: Iterable[Event]) -> None:
        await self.broadcaster.publish(events, self.seats)

    # ------------------------------------------------------------------
    # Seating
    # ------------------------------------------------------------------

    async def join(self, connection_id: str, name: Optional[str] = None) -> PlayerInfo:
        """Seat a connection; raises RoomFull with no state change."""
        async with self._lock:
            rejoin = self.seats.seat_of(connection_id) is not None
            player = self.seats.join(connection_id, name)
            await self.broadcaster.send_to(connection_id, self._init_state(player))
            if not rejoin:
                await self.broadcaster.broadcast(
                    Event(name="player_joined", data=player.model_dump())
                )
            return player

    async def leave(self, connection_id: str) -> Optional[PlayerInfo]:
        """Release a connection's seat.

        An in-hand seat leaving mid-deal aborts the hand; leaving during
        betting folds the seat first.
        """
        async with self._lock:
            seat = self.seats.seat_of(connection_id)
            events: list[Event] = []
            if seat is not None and seat in self.state.in_hand:
                if self.state.stage == Stage.DEALING:
                    logger.warning(
                        "Seat %d left during deal, aborting hand %d",
                        seat,
                        self.state.hand_number,
                    )
                    self._cancel_deal()
                    events = self.engine.end_hand([])
                elif self.state.stage == Stage.PLAYING:
                    events = self.engine.fold(seat)

            self.state.round_bets.pop(connection_id, None)
            player = self.seats.leave(connection_id)
            self.broadcaster.disconnect(connection_id)
            if player is not None:
                events.insert(0, Event(name="player_left", data={"seat": player.seat}))
            await self._publish(events)
            return player

    # ------------------------------------------------------------------
    # Hand Lifecycle
    # ------------------------------------------------------------------

    async def start_game(self) -> None:
        """Begin a hand from WAITING; raises InvalidStageRequest otherwise."""
        async with self._lock:
            st = self.state
            if st.stage != Stage.WAITING:
                raise InvalidStageRequest(f"Hand already in progress ({st.stage.value})")
            occupied = self.seats.occupied_seats()
            if len(occupied) < 2:
                raise InvalidStageRequest("Need at least 2 seated players")

            st.start_hand(occupied, self._rng)
            logger.info("===== Hand %d start: seats %s =====", st.hand_number, occupied)
            logger.debug("Next 10 cards: %s", st.deck.peek(10))

            await self._publish([Event(name="game_stage_change", data={"stage": st.stage.value})])
            self._deal_task = asyncio.create_task(self._run_deal())

    async def _run_deal(self) -> None:
        steps = self.dealer.steps(self.state)
        try:
            while True:
                async with self._lock:
                    step = next(steps, None)
                    if step is None:
                        await self._publish(self.engine.start_betting())
                        return
                    await self._publish(step.events)
                await asyncio.sleep(step.delay)
        except asyncio.CancelledError:
            logger.info("Deal cancelled for hand %d", self.state.hand_number)
            raise
        except Exception:
            logger.exception("Deal failed for hand %d, aborting", self.state.hand_number)
            async with self._lock:
                await self._publish(self.engine.end_hand([]))
            raise

    def _cancel_deal(self) -> None:
        task = self._deal_task
        if task is not None and not task.done() and task is not asyncio.current_task():
            task.cancel()
        self._deal_task = None

    async def player_action(self, connection_id: str, req: PlayerActionRequest) -> None:
        """Apply a betting action.

        Raises OutOfTurnAction for stale or out-of-turn requests and
        InvalidAction for illegal amounts; state is unchanged in both cases.
        """
        async with self._lock:
            events = self.engine.process_action(connection_id, req)
            await self._publish(events)

    async def shutdown(self) -> None:
        self._cancel_deal()

    # ------------------------------------------------------------------
    # Views
    # ------------------------------------------------------------------

    def _init_state(self, player: PlayerInfo) -> Event:
        st = self.state
        return Event(
            name="init_state",
            seat=player.seat,
            data={
                "yourSeat": player.seat,
                "players": {p.id: p.model_dump() for p in self.seats.players()},
                "stage": st.stage.value,
                "communityCards": st.public_board(),
                "visibleBoardCount": st.visible_board_count,
                "pot": st.pot,
                "activeSeat": st.active_seat,
                "highestBet": st.highest_bet,
            },
        )

    def snapshot(self) -> TableSnapshot:
        return self.state.snapshot(self.seats)


table = Table(settings)
