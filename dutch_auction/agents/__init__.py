"""
AGENTS - Decision Layer
=======================

Question this layer answers:
"What does this agent decide?"

Auctioneer:
- Fixes reserve price and reduction step from AuctionConfig
- Lowers the price one step per silent round

Bidder:
- Offers when price <= limit, declines otherwise

Agents do NOT:
- Manage rounds (that's the FSM)
- Talk to transport directly
- Know about runtime lifecycle
"""

from .auctioneer import (
    AuctionConfig,
    DEFAULT_RESERVE_RATE,
    DEFAULT_REDUCTION_RATE,
    next_price,
    is_below_reserve,
    price_schedule,
)
from .bidder import BidderConfig, bid_decision

__all__ = [
    "AuctionConfig",
    "DEFAULT_RESERVE_RATE",
    "DEFAULT_REDUCTION_RATE",
    "next_price",
    "is_below_reserve",
    "price_schedule",
    "BidderConfig",
    "bid_decision",
]
