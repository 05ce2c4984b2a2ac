"""
Auction Coordinator State Machine
=================================

The auctioneer's side of the protocol.

State Diagram:

    DISCOVER ──► ANNOUNCE ──► CALL_FOR_BIDS ──► COLLECT
                                   ▲               │
                                   │      ┌────────┴────────┐
                              VALID_PRICE NO_WINNER     HAS_WINNER
                                   │      │                 │
                                   │      ▼                 ▼
                                REDUCE_PRICE              ACCEPT
                                          │                 │
                                    BELOW_RESERVE           │
                                          ▼                 │
                                         END ◄──────────────┘

Tie-break: the first offer the coordinator PROCESSES in a round wins.
Every later offer in that round is a loser and gets a reject notice.
"""

import logging
from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum, auto
from typing import List, Optional, Set
from uuid import uuid4

from ..agents import AuctionConfig, is_below_reserve, next_price
from ..coordination import AuctionPolicy
from ..errors import DiscoveryError, SendFailure
from ..protocol import (
    AcceptNotice,
    AuctionMessage,
    CallForProposal,
    FinalNotice,
    Offer,
    RejectNotice,
    StartNotice,
    format_price,
)
from ..transport import Directory, MessageChannel
from .state_machine import StateMachine

logger = logging.getLogger(__name__)

BUYER_CAPABILITY = "flower-buyer"


class CoordinatorState(Enum):
    DISCOVER = auto()
    ANNOUNCE = auto()
    CALL_FOR_BIDS = auto()
    COLLECT = auto()
    REDUCE_PRICE = auto()
    ACCEPT = auto()
    END = auto()


class CoordinatorEvent(Enum):
    DONE = auto()           # one-shot state completed
    HAS_WINNER = auto()
    NO_WINNER = auto()
    VALID_PRICE = auto()
    BELOW_RESERVE = auto()


@dataclass
class RoundState:
    """
    Mutable auction state, owned by the coordinator alone.

    `buyers` is fixed after discovery. `responses_received` counts the
    replies of the current round and is reset when a round completes;
    `winner` is written at most once; `losers` only grows.
    """
    current_price: Decimal
    buyers: List[str] = field(default_factory=list)
    responses_received: int = 0
    responded: Set[str] = field(default_factory=set)
    winner: Optional[str] = None
    winning_price: Optional[Decimal] = None
    losers: List[str] = field(default_factory=list)
    rounds: int = 0
    prices_broadcast: List[Decimal] = field(default_factory=list)

    def round_complete(self) -> bool:
        return self.responses_received == len(self.buyers)

    def record_offer(self, sender: str) -> bool:
        """First offer wins. Returns True if `sender` became the winner."""
        if self.winner is None:
            self.winner = sender
            self.winning_price = self.current_price
            return True
        if sender not in self.losers:
            self.losers.append(sender)
        return False

    def reset_round(self) -> None:
        self.responses_received = 0
        self.responded.clear()


@dataclass(frozen=True)
class AuctionResult:
    """What is left of an auction once its RoundState is released."""
    auction_id: str
    winner: Optional[str]
    winning_price: Optional[Decimal]
    losers: List[str]
    buyers: List[str]
    rounds: int
    prices_broadcast: List[Decimal]

    @property
    def sold(self) -> bool:
        return self.winner is not None


class AuctionCoordinatorFSM(StateMachine):
    """
    One auction, run from discovery to the final notice.

    Args:
        address: This auctioneer's address
        config: Prices and rates, immutable for the whole auction
        directory: Where buyers are discovered
        channel: Where messages are sent and received
        buyer_capability: Capability tag advertised by buyers
        policy: Decides which replies count during collection
        auction_id: Conversation id stamped on every message
    """

    S = CoordinatorState
    E = CoordinatorEvent

    INITIAL = CoordinatorState.DISCOVER
    TERMINAL = frozenset({CoordinatorState.END})
    TRANSITIONS = {
        (S.DISCOVER, E.DONE): S.ANNOUNCE,
        (S.ANNOUNCE, E.DONE): S.CALL_FOR_BIDS,
        (S.CALL_FOR_BIDS, E.DONE): S.COLLECT,
        (S.COLLECT, E.HAS_WINNER): S.ACCEPT,
        (S.COLLECT, E.NO_WINNER): S.REDUCE_PRICE,
        (S.REDUCE_PRICE, E.VALID_PRICE): S.CALL_FOR_BIDS,
        (S.REDUCE_PRICE, E.BELOW_RESERVE): S.END,
        (S.ACCEPT, E.DONE): S.END,
    }

    def __init__(
        self,
        address: str,
        config: AuctionConfig,
        directory: Directory,
        channel: MessageChannel,
        buyer_capability: str = BUYER_CAPABILITY,
        policy: Optional[AuctionPolicy] = None,
        auction_id: Optional[str] = None,
    ):
        self.address = address
        self.config = config
        self.directory = directory
        self.channel = channel
        self.buyer_capability = buyer_capability
        self.policy = policy or AuctionPolicy()
        self.auction_id = auction_id or str(uuid4())
        self.round_state: Optional[RoundState] = RoundState(current_price=config.initial_price)
        self.result: Optional[AuctionResult] = None
        super().__init__()

    def _handlers(self):
        return {
            CoordinatorState.DISCOVER: self._discover,
            CoordinatorState.ANNOUNCE: self._announce,
            CoordinatorState.CALL_FOR_BIDS: self._call_for_bids,
            CoordinatorState.COLLECT: self._collect,
            CoordinatorState.REDUCE_PRICE: self._reduce_price,
            CoordinatorState.ACCEPT: self._accept,
            CoordinatorState.END: self._end,
        }

    # ------------------------------------------------------------------
    # Sending
    # ------------------------------------------------------------------

    def _send(self, recipients: List[str], payload: AuctionMessage) -> None:
        """Best-effort delivery: a failed recipient is logged and skipped."""
        for recipient in recipients:
            try:
                self.channel.send(self.address, [recipient], payload, self.auction_id)
            except SendFailure as exc:
                logger.warning("[Auctioneer] Could not send %s to %s: %s", payload.type, recipient, exc)

    # ------------------------------------------------------------------
    # States
    # ------------------------------------------------------------------

    def _discover(self) -> CoordinatorEvent:
        rs = self.round_state
        try:
            found = self.directory.find(self.buyer_capability)
        except DiscoveryError as exc:
            logger.error("[Auctioneer] Buyer discovery failed, continuing without buyers: %s", exc)
            found = []

        for address in found:
            if address != self.address and address not in rs.buyers:
                rs.buyers.append(address)

        if rs.buyers:
            logger.info("[Auctioneer] Buyers found: %s", ", ".join(rs.buyers))
        else:
            logger.info("[Auctioneer] No buyers found...")
        return CoordinatorEvent.DONE

    def _announce(self) -> CoordinatorEvent:
        self._send(self.round_state.buyers, StartNotice())
        logger.info("[Auctioneer] The auction is about to begin...")
        return CoordinatorEvent.DONE

    def _call_for_bids(self) -> CoordinatorEvent:
        rs = self.round_state
        rs.rounds += 1
        rs.prices_broadcast.append(rs.current_price)
        logger.info("[Auctioneer] Round %d: calling for proposals at %s", rs.rounds, rs.current_price)
        self._send(rs.buyers, CallForProposal(price=format_price(rs.current_price)))
        return CoordinatorEvent.DONE

    def _collect(self) -> Optional[CoordinatorEvent]:
        rs = self.round_state
        while not rs.round_complete():
            envelope = self.channel.receive(self.address)
            if envelope is None:
                return None

            verdict = self.policy.validate_reply(envelope, self.auction_id, rs.buyers, rs.responded)
            if not verdict.allowed:
                logger.warning("[Auctioneer] Dropped message from %s: %s", envelope.sender, verdict.reason)
                continue

            if isinstance(envelope.payload, Offer):
                if rs.record_offer(envelope.sender):
                    logger.info("[Auctioneer] %s offered first at %s", envelope.sender, rs.current_price)
                else:
                    logger.info("[Auctioneer] %s offered too late", envelope.sender)
            else:
                logger.debug("[Auctioneer] %s declined %s", envelope.sender, rs.current_price)

            rs.responded.add(envelope.sender)
            rs.responses_received += 1

        rs.reset_round()
        if rs.winner is not None:
            return CoordinatorEvent.HAS_WINNER
        return CoordinatorEvent.NO_WINNER

    def _reduce_price(self) -> CoordinatorEvent:
        rs = self.round_state
        rs.current_price = next_price(rs.current_price, self.config)
        logger.info(
            "[Auctioneer] No bids this round. Lowering price to %s (reserve %s)",
            rs.current_price, self.config.reserve_price,
        )
        if is_below_reserve(rs.current_price, self.config):
            logger.info("[Auctioneer] Hit reserve value! Ending auction...")
            return CoordinatorEvent.BELOW_RESERVE
        return CoordinatorEvent.VALID_PRICE

    def _accept(self) -> CoordinatorEvent:
        rs = self.round_state
        self._send([rs.winner], AcceptNotice())
        if rs.losers:
            self._send(rs.losers, RejectNotice())
        return CoordinatorEvent.DONE

    def _end(self) -> None:
        rs = self.round_state
        self._send(rs.buyers, FinalNotice())

        if rs.winner is not None:
            logger.info("[Auctioneer] Auction finished with %s as the winner at %s", rs.winner, rs.winning_price)
        else:
            logger.info("[Auctioneer] Auction finished without winners..")

        self.result = AuctionResult(
            auction_id=self.auction_id,
            winner=rs.winner,
            winning_price=rs.winning_price,
            losers=list(rs.losers),
            buyers=list(rs.buyers),
            rounds=rs.rounds,
            prices_broadcast=list(rs.prices_broadcast),
        )
        self.round_state = None
