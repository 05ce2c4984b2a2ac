"""
Bidder Strategy
===============

Pure decision logic for a buyer: offer as soon as the price is within
the limit. A limit exactly equal to the price accepts.
"""

from dataclasses import dataclass
from decimal import Decimal
from typing import Literal

from .auctioneer import to_config_decimal

BidDecision = Literal["offer", "decline"]


def bid_decision(price: Decimal, price_limit: Decimal) -> BidDecision:
    """
    Decide how to answer a call for proposal.

    Example:
        bid_decision(Decimal("88"), Decimal("90"))  # "offer"
        bid_decision(Decimal("94"), Decimal("90"))  # "decline"
    """
    if price <= price_limit:
        return "offer"
    return "decline"


@dataclass(frozen=True)
class BidderConfig:
    """A named buyer and the most it will pay."""
    name: str
    price_limit: Decimal

    def __post_init__(self):
        object.__setattr__(
            self, "price_limit",
            to_config_decimal(self.price_limit, f"price limit for {self.name}"),
        )
