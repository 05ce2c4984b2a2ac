"""
FSM - Protocol State Machines
=============================

Question this layer answers:
"Are we allowed to continue?"

Two machines, both driven by an explicit transition table:

    AuctionCoordinatorFSM   one per seller
    BidderFSM               one per buyer

Both terminate:
- END is the only terminal state and has no outgoing transitions
- The coordinator's price strictly decreases every silent round, so it
  falls below reserve after finitely many rounds
- A bidder leaves WAIT_CALL on its first offer or on the final notice
"""

from .state_machine import StateMachine, Transition
from .coordinator import (
    AuctionCoordinatorFSM,
    AuctionResult,
    BUYER_CAPABILITY,
    CoordinatorEvent,
    CoordinatorState,
    RoundState,
)
from .bidder import BidderEvent, BidderFSM, BidderState, BidderStateName

__all__ = [
    "StateMachine",
    "Transition",
    "AuctionCoordinatorFSM",
    "AuctionResult",
    "BUYER_CAPABILITY",
    "CoordinatorEvent",
    "CoordinatorState",
    "RoundState",
    "BidderEvent",
    "BidderFSM",
    "BidderState",
    "BidderStateName",
]
