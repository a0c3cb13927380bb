"""Deal choreography: the paced sequence of hole-card and board reveals.

The dealer does no I/O and never sleeps. ``steps()`` yields one
``DealStep`` at a time; the caller applies it (publishing its events) and
then waits ``delay`` seconds before asking for the next one, so a hand reset
between steps simply stops the iteration.
"""

from __future__ import annotations

import logging
from typing import Iterator

from poker_table.config import TableSettings
from poker_table.engine import BOARD_SIZE, HOLE_CARDS, HandState
from poker_table.models import Event

logger = logging.getLogger(__name__)


class DealStep:
    __slots__ = ("events", "delay")

    def __init__(self, events: list[Event], delay: float = 0.0) -> None:
        self.events = events
        self.delay = delay


class Dealer:
    def __init__(self, settings: TableSettings) -> None:
        self.deal_delay = settings.deal_delay
        self.board_delay = settings.board_delay

    def steps(self, state: HandState) -> Iterator[DealStep]:
        yield from self._hole_cards(state)
        yield from self._board(state)

    def _hole_cards(self, state: HandState) -> Iterator[DealStep]:
        for round_idx in range(HOLE_CARDS):
            for seat in list(state.in_hand):
                card = state.deck.deal()
                state.hole_cards[seat].append(card)
                logger.debug(
                    "Hand %d: %r (%s) -> seat %d, round %d",
                    state.hand_number,
                    card,
                    card.id,
                    seat,
                    round_idx + 1,
                )
                yield DealStep(
                    [
                        Event(name="deal_private", data={"card": card.to_dict(), "seat": seat}, seat=seat),
                        Event(name="deal_notify", data={"seat": seat, "cardId": card.id}),
                    ],
                    self.deal_delay,
                )

    def _board(self, state: HandState) -> Iterator[DealStep]:
        state.community_cards = state.deck.deal_many(BOARD_SIZE)
        logger.debug("Hand %d board: %s", state.hand_number, state.community_cards)
        yield DealStep(
            [Event(name="deal_public", data={"cards": state.public_board()})],
            self.board_delay,
        )

        for count in range(1, BOARD_SIZE + 1):
            state.visible_board_count = count
            yield DealStep(
                [Event(name="update_board_count", data={"visibleBoardCount": count})],
                self.board_delay if count < BOARD_SIZE else 0.0,
            )
