"""
Configuration Loader
====================

Loads auction, bidder and runtime settings from YAML.

    auction:
      initial_price: 100     # required here or on the command line
      reserve_rate: 0.4
    bidders:
      - {name: alice, price_limit: 90}
    runtime:
      log_level: INFO
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional

import yaml

from ..agents import AuctionConfig, BidderConfig, DEFAULT_RESERVE_RATE, DEFAULT_REDUCTION_RATE
from ..errors import FatalConfigError
from ..fsm import BUYER_CAPABILITY
from .participant import AUCTIONEER_CAPABILITY

logger = logging.getLogger(__name__)


@dataclass
class LimitsConfig:
    """How the runtime behaves, not what is auctioned."""
    shutdown_grace_seconds: float = 1.0
    log_level: str = "INFO"


@dataclass
class Config:
    """Complete system configuration."""
    auction: AuctionConfig
    bidders: List[BidderConfig] = field(default_factory=list)
    limits: LimitsConfig = field(default_factory=LimitsConfig)
    auctioneer_name: str = "auctioneer"
    buyer_capability: str = BUYER_CAPABILITY
    auctioneer_capability: str = AUCTIONEER_CAPABILITY


def _parse_bidders(raw) -> List[BidderConfig]:
    if raw is None:
        return []
    if not isinstance(raw, list):
        raise FatalConfigError("'bidders' must be a list")

    bidders = []
    for index, entry in enumerate(raw):
        if not isinstance(entry, dict) or "name" not in entry:
            raise FatalConfigError(f"Bidder #{index + 1} needs a name")
        if "price_limit" not in entry:
            raise FatalConfigError(f"Bidder {entry['name']} needs a price_limit")
        bidders.append(BidderConfig(name=str(entry["name"]), price_limit=entry["price_limit"]))

    names = [b.name for b in bidders]
    if len(set(names)) != len(names):
        raise FatalConfigError(f"Bidder names must be unique: {names}")
    return bidders


def load_config(
    config_path: Optional[str] = None,
    initial_price=None,
    reserve_rate=None,
) -> Config:
    """
    Load configuration from YAML file, overridden by startup arguments.

    Args:
        config_path: Path to YAML config file (optional)
        initial_price: Overrides auction.initial_price (optional)
        reserve_rate: Overrides auction.reserve_rate (optional)

    Returns:
        Config object with all settings

    Raises:
        FatalConfigError: If no initial price is given, or the file holds
            invalid prices, rates or bidders.
    """
    data = {}
    if config_path is not None:
        path = Path(config_path)
        if path.exists():
            with open(path) as f:
                try:
                    data = yaml.safe_load(f) or {}
                except yaml.YAMLError as exc:
                    raise FatalConfigError(f"Invalid YAML in {config_path}: {exc}") from exc
        else:
            logger.warning("[Config] %s not found, using defaults", config_path)

    if not isinstance(data, dict):
        raise FatalConfigError(f"{config_path} must contain a mapping")

    auction_data = data.get("auction") or {}
    runtime_data = data.get("runtime") or {}

    if initial_price is None:
        initial_price = auction_data.get("initial_price")
    if initial_price is None:
        raise FatalConfigError("Initial price not determined: set auction.initial_price or --initial-price")
    if reserve_rate is None:
        reserve_rate = auction_data.get("reserve_rate", DEFAULT_RESERVE_RATE)

    auction = AuctionConfig(
        initial_price=initial_price,
        reserve_rate=reserve_rate,
        reduction_rate=auction_data.get("reduction_rate", DEFAULT_REDUCTION_RATE),
    )

    try:
        grace = float(runtime_data.get("shutdown_grace_seconds", 1.0))
    except (TypeError, ValueError) as exc:
        raise FatalConfigError(f"Invalid shutdown_grace_seconds: {exc}") from exc

    return Config(
        auction=auction,
        bidders=_parse_bidders(data.get("bidders")),
        limits=LimitsConfig(
            shutdown_grace_seconds=grace,
            log_level=str(runtime_data.get("log_level", "INFO")).upper(),
        ),
        auctioneer_name=str(auction_data.get("auctioneer_name", "auctioneer")),
        buyer_capability=auction_data.get("buyer_capability", BUYER_CAPABILITY),
        auctioneer_capability=auction_data.get("auctioneer_capability", AUCTIONEER_CAPABILITY),
    )
