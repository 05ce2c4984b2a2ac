"""
Auction Reply Policy
====================

Explicit rules for which inbound messages count as a round response.

This is NOT the FSM (which state comes next).
This is NOT protocol (message shape).

This IS:
- Who may answer a call for proposal
- What may be counted towards round completion
"""

from dataclasses import dataclass
from enum import Enum, auto
from typing import Collection, Optional

from ..protocol import MessageEnvelope, is_reply


class ReplyViolation(Enum):
    """Reasons an inbound message is dropped during collection."""
    UNEXPECTED_MESSAGE = auto()  # Not an offer or decline
    WRONG_AUCTION = auto()       # Belongs to another auction
    UNKNOWN_SENDER = auto()      # Not one of the discovered buyers
    DUPLICATE_REPLY = auto()     # Sender already answered this round


@dataclass
class PolicyResult:
    """Result of a policy check."""
    allowed: bool
    violation: Optional[ReplyViolation] = None
    reason: str = ""


class AuctionPolicy:
    """
    Reply policy for the auctioneer.

    Rules:
    ------
    1. Only offers and declines are responses
    2. The reply must carry this auction's id
    3. Only discovered buyers may answer
    4. Each buyer answers at most once per round
    """

    def validate_reply(
        self,
        envelope: MessageEnvelope,
        auction_id: str,
        buyers: Collection[str],
        responded: Collection[str],
    ) -> PolicyResult:
        if not is_reply(envelope.payload):
            return PolicyResult(
                allowed=False,
                violation=ReplyViolation.UNEXPECTED_MESSAGE,
                reason=f"Expected offer or decline, got {envelope.type}",
            )

        if envelope.auction_id != auction_id:
            return PolicyResult(
                allowed=False,
                violation=ReplyViolation.WRONG_AUCTION,
                reason=f"Reply for auction {envelope.auction_id}, running {auction_id}",
            )

        if envelope.sender not in buyers:
            return PolicyResult(
                allowed=False,
                violation=ReplyViolation.UNKNOWN_SENDER,
                reason=f"{envelope.sender} is not a bidder in this auction",
            )

        if envelope.sender in responded:
            return PolicyResult(
                allowed=False,
                violation=ReplyViolation.DUPLICATE_REPLY,
                reason=f"{envelope.sender} already answered this round",
            )

        return PolicyResult(allowed=True)
