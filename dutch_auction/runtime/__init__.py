"""
RUNTIME - Process Shell
=======================

Question this layer answers:
"How is an auction actually run?"

What the runtime does:
- Loads configuration (YAML)
- Registers participants and tears them down
- Schedules them (deterministic or asyncio)

What the runtime does NOT do:
- Decide bids (that's agents)
- Choose transitions (that's the FSM)
- Validate replies (that's coordination)
"""

from .config import Config, LimitsConfig, load_config
from .participant import AUCTIONEER_CAPABILITY, AuctioneerAgent, BuyerAgent, Participant
from .runner import AuctionRuntime, main

__all__ = [
    "Config",
    "LimitsConfig",
    "load_config",
    "AUCTIONEER_CAPABILITY",
    "AuctioneerAgent",
    "BuyerAgent",
    "Participant",
    "AuctionRuntime",
    "main",
]
