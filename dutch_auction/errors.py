"""
Error Taxonomy
==============

All failures are local to a participant. None of these is ever sent
across the wire as a protocol message.

    FatalConfigError   -> participant terminates before registering
    DiscoveryError     -> treated as "no buyers found"
    MalformedMessage   -> message dropped, participant keeps waiting
    SendFailure        -> logged, not retried
    InvalidTransition  -> programming error in a transition table
    AuctionStalled     -> runtime gave up: every participant is parked
                          while the auctioneer is still unfinished
"""


class AuctionError(Exception):
    """Base class for every auction error."""


class FatalConfigError(AuctionError, ValueError):
    """Missing or invalid startup configuration (price, rate)."""


class DiscoveryError(AuctionError):
    """Directory lookup or registration failed."""


class MalformedMessage(AuctionError, ValueError):
    """Unparseable payload or unexpected message kind."""


class SendFailure(AuctionError):
    """Outbound message could not be delivered."""


class InvalidTransition(AuctionError):
    """A (state, event) pair has no entry in the transition table."""


class AuctionStalled(AuctionError):
    """Every participant is parked and the auctioneer has not finished."""

    def __init__(self, waiting):
        self.waiting = list(waiting)
        super().__init__(f"Auction stalled, still waiting: {', '.join(self.waiting)}")
