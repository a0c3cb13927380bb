"""Hand state and betting-round engine.

Owns the authoritative per-hand state: the deck, the board, the pot and
the per-street betting bookkeeping. Every mutation returns the list of
events the lifecycle must publish, in order.
"""

from __future__ import annotations

import logging
import random
from typing import Any, Optional

from poker_table.cards import Card, Deck
from poker_table.models import (
    ActionKind,
    Event,
    PlayerActionRequest,
    Stage,
    Street,
    TableSnapshot,
)
from poker_table.seats import SeatRegistry

logger = logging.getLogger(__name__)

BOARD_SIZE = 5
HOLE_CARDS = 2

NEXT_STREET: dict[Street, Street] = {
    Street.PRE_FLOP: Street.FLOP,
    Street.FLOP: Street.TURN,
    Street.TURN: Street.RIVER,
    Street.RIVER: Street.SHOWDOWN,
}

# Board cards turned face up on entering each street
STREET_REVEALS: dict[Street, int] = {
    Street.FLOP: 3,
    Street.TURN: 1,
    Street.RIVER: 1,
    Street.SHOWDOWN: 0,
}


class OutOfTurnAction(ValueError):
    """Action from a seat that does not hold the turn (dropped silently)."""


class InvalidAction(ValueError):
    """Action that is in turn but not legal for the current bet."""


def _event(name: str, **data: Any) -> Event:
    return Event(name=name, data=data)


class HandState:
    """The single shared hand aggregate."""

    def __init__(self) -> None:
        self.stage: Stage = Stage.WAITING
        self.street: Street = Street.PRE_FLOP
        self.hand_number: int = 0
        self.deck: Optional[Deck] = None
        self.community_cards: list[Card] = []
        self.visible_board_count: int = 0
        self.pot: int = 0
        self.active_seat: Optional[int] = None
        self.highest_bet: int = 0
        # connection id -> chips committed this street
        self.round_bets: dict[str, int] = {}
        self.round_action_count: int = 0
        # Seats dealt into the current hand and not folded
        self.in_hand: list[int] = []
        self.first_actor: Optional[int] = None
        self.hole_cards: dict[int, list[Card]] = {}

    def start_hand(self, seats: list[int], rng: Optional[random.Random] = None) -> None:
        self.hand_number += 1
        self.stage = Stage.DEALING
        self.street = Street.PRE_FLOP
        self.deck = Deck(rng)
        self.community_cards = []
        self.visible_board_count = 0
        self.pot = 0
        self.in_hand = sorted(seats)
        self.first_actor = None
        self.hole_cards = {seat: [] for seat in self.in_hand}
        self.reset_round()
        self.active_seat = None

    def reset_round(self) -> None:
        self.highest_bet = 0
        self.round_bets = {}
        self.round_action_count = 0

    def reset_to_waiting(self) -> None:
        self.stage = Stage.WAITING
        self.street = Street.PRE_FLOP
        self.deck = None
        self.community_cards = []
        self.visible_board_count = 0
        self.pot = 0
        self.active_seat = None
        self.in_hand = []
        self.first_actor = None
        self.hole_cards = {}
        self.reset_round()

    def hidden_board(self) -> list[Card]:
        return [c for c in self.community_cards if c.face_down]

    def public_board(self) -> list[dict[str, Any]]:
        return [c.to_public_dict() for c in self.community_cards]

    def snapshot(self, seats: SeatRegistry) -> TableSnapshot:
        return TableSnapshot(
            stage=self.stage,
            street=self.street,
            hand_number=self.hand_number,
            players=seats.players(),
            community_cards=self.public_board(),
            visible_board_count=self.visible_board_count,
            pot=self.pot,
            active_seat=self.active_seat,
            highest_bet=self.highest_bet,
        )


class BettingEngine:
    """Applies player actions to a ``HandState`` and drives street changes."""

    def __init__(self, state: HandState, seats: SeatRegistry) -> None:
        self.state = state
        self.seats = seats

    # ------------------------------------------------------------------
    # Accessors
    # ------------------------------------------------------------------

    def _contribution(self, seat: int) -> int:
        pid = self.seats.occupant(seat)
        if pid is None:
            return 0
        return self.state.round_bets.get(pid, 0)

    def _next_in_hand(self, seat: int) -> int:
        """Next in-hand seat after *seat*, wrapping around."""
        n = self.seats.seat_count
        for offset in range(1, n + 1):
            i = (seat + offset) % n
            if i in self.state.in_hand:
                return i
        return seat

    def is_round_complete(self) -> bool:
        st = self.state
        if st.round_action_count < len(st.in_hand):
            return False
        return all(self._contribution(s) == st.highest_bet for s in st.in_hand)

    # ------------------------------------------------------------------
    # Street lifecycle
    # ------------------------------------------------------------------

    def start_betting(self) -> list[Event]:
        """Enter PLAYING at pre-flop with the first in-hand seat to act."""
        st = self.state
        st.stage = Stage.PLAYING
        st.street = Street.PRE_FLOP
        st.reset_round()
        st.active_seat = st.in_hand[0]
        st.first_actor = st.active_seat
        logger.info("Hand %d: betting opens, seat %d to act", st.hand_number, st.active_seat)
        return [
            _event("game_stage_change", stage=st.stage.value),
            _event("new_round", stage=st.street.value, activeSeat=st.active_seat),
            _event("turn_change", seat=st.active_seat),
            _event("highest_bet_update", highestBet=st.highest_bet),
        ]

    def advance_street(self, cards_to_reveal: int, next_actor: int) -> list[Event]:
        """Move to the next street, turning up *cards_to_reveal* board cards."""
        st = self.state
        st.street = NEXT_STREET[st.street]
        events: list[Event] = []

        if cards_to_reveal:
            for card in st.hidden_board()[:cards_to_reveal]:
                card.reveal()
            logger.info(
                "Hand %d: %s %s",
                st.hand_number,
                st.street.value,
                [c for c in st.community_cards if not c.face_down],
            )
            events.append(_event("deal_public", cards=st.public_board()))

        if st.street == Street.SHOWDOWN:
            return events + self._showdown()

        st.reset_round()
        st.active_seat = next_actor
        events += [
            _event("new_round", stage=st.street.value, activeSeat=st.active_seat),
            _event("turn_change", seat=st.active_seat),
            _event("highest_bet_update", highestBet=st.highest_bet),
        ]
        return events

    def _complete_round(self) -> list[Event]:
        next_street = NEXT_STREET[self.state.street]
        post_flop_actor = self._next_in_hand(self.state.first_actor)
        return self.advance_street(STREET_REVEALS[next_street], post_flop_actor)

    def _showdown(self) -> list[Event]:
        st = self.state
        hands = [
            {"seat": s, "cards": [c.to_dict() for c in st.hole_cards.get(s, [])]}
            for s in st.in_hand
        ]
        return [_event("showdown", hands=hands)] + self.end_hand(list(st.in_hand))

    def end_hand(self, winners: list[int]) -> list[Event]:
        """Close the hand: split the pot among *winners* and reset to WAITING.

        Odd chips go to the lowest winning seats. An empty *winners* list
        aborts the hand with nothing awarded.
        """
        st = self.state
        pot = st.pot
        winners = sorted(winners)
        if winners:
            share, remainder = divmod(pot, len(winners))
            awards = [
                {"seat": s, "amount": share + (1 if i < remainder else 0)}
                for i, s in enumerate(winners)
            ]
        else:
            awards = []

        logger.info("Hand %d ended: winners=%s pot=%d", st.hand_number, winners, pot)
        st.reset_to_waiting()
        return [
            _event(
                "hand_ended",
                winner=winners[0] if len(winners) == 1 else None,
                winners=winners,
                awards=awards,
                pot=pot,
            ),
            _event("game_stage_change", stage=st.stage.value),
        ]

    # ------------------------------------------------------------------
    # Action Processing
    # ------------------------------------------------------------------

    def process_action(self, connection_id: str, req: PlayerActionRequest) -> list[Event]:
        """Validate and apply one action. Returns events to publish."""
        st = self.state
        if st.stage != Stage.PLAYING:
            raise OutOfTurnAction("No hand in play")
        if req.seat != st.active_seat:
            raise OutOfTurnAction(f"Seat {req.seat} acted out of turn")
        if self.seats.occupant(req.seat) != connection_id:
            raise OutOfTurnAction(f"Seat {req.seat} is not held by {connection_id}")

        if req.type == ActionKind.FOLD:
            return [self._relay(req.seat, req.type, 0)] + self.fold(req.seat)

        amount = self._resolve_amount(req.seat, req.type, req.amount)
        return [self._relay(req.seat, req.type, amount)] + self._commit(
            req.seat, req.type, amount
        )

    def _relay(self, seat: int, kind: ActionKind, amount: int) -> Event:
        """Tell the other connections which action a seat took."""
        return Event(
            name="remote_action",
            data={"type": kind.value, "seat": seat, "amount": amount},
            exclude_seat=seat,
        )

    def _resolve_amount(self, seat: int, kind: ActionKind, amount: Optional[int]) -> int:
        """Chips added by this action; raises InvalidAction if illegal."""
        highest = self.state.highest_bet
        prior = self._contribution(seat)
        to_call = highest - prior

        if kind == ActionKind.CHECK:
            if to_call > 0:
                raise InvalidAction(f"Cannot check, {to_call} to call")
            if amount:
                raise InvalidAction("Check cannot carry an amount")
            return 0

        if kind == ActionKind.CALL:
            if to_call <= 0:
                raise InvalidAction("Nothing to call, check instead")
            if amount is None:
                amount = to_call
            if amount != to_call:
                raise InvalidAction(f"Call must be exactly {to_call}")
            return amount

        if kind == ActionKind.BET:
            if highest > 0:
                raise InvalidAction("Cannot bet into an open bet, raise instead")
            if not amount:
                raise InvalidAction("Bet amount must be positive")
            return amount

        # raise
        if amount is None or prior + amount <= highest:
            raise InvalidAction(f"Raise must take the bet above {highest}")
        return amount

    def _commit(self, seat: int, kind: ActionKind, amount: int) -> list[Event]:
        st = self.state
        pid = self.seats.occupant(seat)
        contribution = st.round_bets.get(pid, 0) + amount
        st.round_bets[pid] = contribution
        st.pot += amount

        if contribution > st.highest_bet:
            # A new high bet reopens the action for every other seat
            st.highest_bet = contribution
            st.round_action_count = 0
        st.round_action_count += 1

        logger.info(
            "Hand %d %s: seat %d %s %d (round=%d, pot=%d)",
            st.hand_number,
            st.street.value,
            seat,
            kind.value,
            amount,
            contribution,
            st.pot,
        )

        events = [
            _event("pot_update", pot=st.pot),
            _event("highest_bet_update", highestBet=st.highest_bet),
        ]

        if self.is_round_complete():
            return events + self._complete_round()

        st.active_seat = self._next_in_hand(seat)
        events.append(_event("turn_change", seat=st.active_seat))
        return events

    def fold(self, seat: int) -> list[Event]:
        """Remove *seat* from the hand (also used when a seat disconnects)."""
        st = self.state
        if seat not in st.in_hand:
            return []
        st.in_hand.remove(seat)
        logger.info("Hand %d: seat %d folds", st.hand_number, seat)

        if len(st.in_hand) == 1:
            return self.end_hand(list(st.in_hand))

        if self.is_round_complete():
            return self._complete_round()

        if st.active_seat == seat:
            st.active_seat = self._next_in_hand(seat)
            return [_event("turn_change", seat=st.active_seat)]
        return []
