"""
Dutch Auction Negotiation
=========================

A descending-price auction between one auctioneer and any number of
buyers that only communicate through messages.

Layers (leaves first):

    protocol      What can be said
    transport     How participants find and reach each other
    agents        What each side decides
    coordination  Which replies count
    fsm           Are we allowed to continue
    runtime       How an auction is run
"""

from .agents import AuctionConfig, BidderConfig
from .errors import (
    AuctionError,
    AuctionStalled,
    DiscoveryError,
    FatalConfigError,
    InvalidTransition,
    MalformedMessage,
    SendFailure,
)
from .fsm import AuctionCoordinatorFSM, AuctionResult, BidderFSM
from .runtime import AuctionRuntime, Config, load_config

__version__ = "0.1.0"
__all__ = [
    "AuctionConfig",
    "BidderConfig",
    "AuctionError",
    "AuctionStalled",
    "DiscoveryError",
    "FatalConfigError",
    "InvalidTransition",
    "MalformedMessage",
    "SendFailure",
    "AuctionCoordinatorFSM",
    "AuctionResult",
    "BidderFSM",
    "AuctionRuntime",
    "Config",
    "load_config",
]
