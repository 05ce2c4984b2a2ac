"""
Auctioneer Pricing Rules
========================

Pure pricing logic for the seller.

This is STRATEGY only - no state machine, no transport.

    reserve_price  = initial_price * reserve_rate
    reduction_step = (initial_price - reserve_price) * reduction_rate

The price drops by one fixed step per unanswered round and the auction
ends as soon as it falls strictly below the reserve price.
"""

from dataclasses import dataclass
from decimal import Decimal
from typing import List

from ..errors import FatalConfigError, MalformedMessage
from ..protocol import parse_price

DEFAULT_RESERVE_RATE = Decimal("0.4")
DEFAULT_REDUCTION_RATE = Decimal("0.1")


def to_config_decimal(value, what: str) -> Decimal:
    """Parse a positive decimal from configuration, or fail fatally."""
    try:
        return parse_price(value)
    except MalformedMessage as exc:
        raise FatalConfigError(f"Invalid {what}: {value!r}") from exc


@dataclass(frozen=True)
class AuctionConfig:
    """
    Immutable parameters of one auction.

    Example:
        config = AuctionConfig(initial_price=100)
        config.reserve_price   # Decimal("40.0")
        config.reduction_step  # Decimal("6.00")

    Raises:
        FatalConfigError: If a price or rate is missing or out of range.
    """
    initial_price: Decimal
    reserve_rate: Decimal = DEFAULT_RESERVE_RATE
    reduction_rate: Decimal = DEFAULT_REDUCTION_RATE

    def __post_init__(self):
        initial_price = to_config_decimal(self.initial_price, "initial price")
        reserve_rate = to_config_decimal(self.reserve_rate, "reserve rate")
        reduction_rate = to_config_decimal(self.reduction_rate, "reduction rate")

        if reserve_rate >= 1:
            raise FatalConfigError(f"Reserve rate must be in (0, 1), got {reserve_rate}")
        if reduction_rate > 1:
            raise FatalConfigError(f"Reduction rate must be in (0, 1], got {reduction_rate}")

        object.__setattr__(self, "initial_price", initial_price)
        object.__setattr__(self, "reserve_rate", reserve_rate)
        object.__setattr__(self, "reduction_rate", reduction_rate)

    @property
    def reserve_price(self) -> Decimal:
        return self.initial_price * self.reserve_rate

    @property
    def reduction_step(self) -> Decimal:
        return (self.initial_price - self.reserve_price) * self.reduction_rate


def next_price(current_price: Decimal, config: AuctionConfig) -> Decimal:
    """Price for the next round after nobody bid."""
    return current_price - config.reduction_step


def is_below_reserve(price: Decimal, config: AuctionConfig) -> bool:
    """The auction ends once the price is strictly below reserve."""
    return price < config.reserve_price


def price_schedule(config: AuctionConfig) -> List[Decimal]:
    """
    Every price that would be broadcast if nobody ever bids.

    Example:
        price_schedule(AuctionConfig(initial_price=100))
        # [100, 94, 88, 82, 76, 70, 64, 58, 52, 46, 40]
    """
    prices = []
    price = config.initial_price
    while not is_below_reserve(price, config):
        prices.append(price)
        price = next_price(price, config)
    return prices
