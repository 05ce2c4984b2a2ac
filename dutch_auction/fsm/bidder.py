"""
Bidder State Machine
====================

The buyer's side of the protocol.

State Diagram:

    WAIT_START ──STARTED──► WAIT_CALL ──OFFERED──────► END
                              │   ▲    ──AUCTION_OVER─► END
                              └───┘
                             DECLINED

A bidder commits at most one offer for its whole lifetime: after
offering it stops listening, win or lose. Once started it only listens
to the auctioneer and auction that sent the start notice.
"""

import logging
from dataclasses import dataclass
from decimal import Decimal
from enum import Enum, auto
from typing import Optional

from ..agents import bid_decision
from ..errors import MalformedMessage, SendFailure
from ..protocol import Decline, Offer, parse_price
from ..transport import MessageChannel, match_types
from .state_machine import StateMachine

logger = logging.getLogger(__name__)


class BidderStateName(Enum):
    WAIT_START = auto()
    WAIT_CALL = auto()
    END = auto()


class BidderEvent(Enum):
    STARTED = auto()
    OFFERED = auto()
    DECLINED = auto()
    AUCTION_OVER = auto()


@dataclass
class BidderState:
    """Private state of one buyer. `price_limit` never changes."""
    price_limit: Decimal
    has_started: bool = False
    auctioneer: Optional[str] = None
    auction_id: Optional[str] = None
    offered_price: Optional[Decimal] = None


class BidderFSM(StateMachine):
    """
    One buyer's participation in one auction.

    Args:
        address: This buyer's address
        price_limit: Highest price this buyer will offer
        channel: Where messages are sent and received
    """

    S = BidderStateName
    E = BidderEvent

    INITIAL = BidderStateName.WAIT_START
    TERMINAL = frozenset({BidderStateName.END})
    TRANSITIONS = {
        (S.WAIT_START, E.STARTED): S.WAIT_CALL,
        (S.WAIT_CALL, E.DECLINED): S.WAIT_CALL,
        (S.WAIT_CALL, E.OFFERED): S.END,
        (S.WAIT_CALL, E.AUCTION_OVER): S.END,
    }

    def __init__(self, address: str, price_limit: Decimal, channel: MessageChannel):
        self.address = address
        self.channel = channel
        self.bidder_state = BidderState(price_limit=price_limit)
        super().__init__()

    def _handlers(self):
        return {
            BidderStateName.WAIT_START: self._wait_start,
            BidderStateName.WAIT_CALL: self._wait_call,
            BidderStateName.END: self._end,
        }

    def _wait_start(self) -> Optional[BidderEvent]:
        envelope = self.channel.receive(self.address, match_types("start"))
        if envelope is None:
            return None

        bs = self.bidder_state
        bs.has_started = True
        bs.auctioneer = envelope.sender
        bs.auction_id = envelope.auction_id
        logger.info("[Bidder %s] was informed.", self.address)
        return BidderEvent.STARTED

    def _is_from_auction(self, envelope) -> bool:
        """Only the auctioneer that sent the start notice may call or close."""
        bs = self.bidder_state
        return envelope.sender == bs.auctioneer and envelope.auction_id == bs.auction_id

    def _wait_call(self) -> Optional[BidderEvent]:
        bs = self.bidder_state
        while True:
            envelope = self.channel.receive(self.address, match_types("cfp", "final"))
            if envelope is None:
                return None

            if not self._is_from_auction(envelope):
                logger.warning(
                    "[Bidder %s] Dropped %s from %s (auction %s)",
                    self.address, envelope.type, envelope.sender, envelope.auction_id,
                )
                continue

            if envelope.type == "final":
                logger.info("[Bidder %s] Auction ended without an offer from us", self.address)
                return BidderEvent.AUCTION_OVER

            try:
                price = parse_price(envelope.payload.price)
            except MalformedMessage as exc:
                logger.warning("[Bidder %s] Dropped call for proposal: %s", self.address, exc)
                continue

            decision = bid_decision(price, bs.price_limit)
            logger.info("[Bidder %s] received CFP with price %s -> %s", self.address, price, decision)

            reply = Offer() if decision == "offer" else Decline()
            try:
                self.channel.send(self.address, [envelope.sender], reply, envelope.auction_id)
            except SendFailure as exc:
                logger.warning("[Bidder %s] Could not send %s: %s", self.address, reply.type, exc)

            if decision == "offer":
                bs.offered_price = price
                return BidderEvent.OFFERED
            return BidderEvent.DECLINED

    def _end(self) -> None:
        logger.debug("[Bidder %s] done (offered at %s)", self.address, self.bidder_state.offered_price)
