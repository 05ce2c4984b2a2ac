"""
Participants
============

Process lifecycle around each state machine:

    from_arguments()  validate startup arguments (FatalConfigError)
    setup()           register in the directory, open an inbox
    step()            advance the state machine
    take_down()       deregister (best effort), close the inbox

A participant may be taken down from any state. Nothing is sent to the
other side when that happens.
"""

import logging
from typing import Optional, Sequence

from ..agents import AuctionConfig, BidderConfig, DEFAULT_REDUCTION_RATE, DEFAULT_RESERVE_RATE
from ..errors import DiscoveryError, FatalConfigError
from ..fsm import AuctionCoordinatorFSM, AuctionResult, BidderFSM, BUYER_CAPABILITY, StateMachine
from ..transport import Directory, InMemoryChannel

logger = logging.getLogger(__name__)

AUCTIONEER_CAPABILITY = "flower-auctioneer"


def _first_argument(args: Optional[Sequence], missing_message: str):
    if not args:
        raise FatalConfigError(missing_message)
    return args[0]


class Participant:
    """One addressable process with one state machine."""

    role = "participant"

    def __init__(
        self,
        address: str,
        fsm: StateMachine,
        directory: Directory,
        channel: InMemoryChannel,
        capability: str,
    ):
        self.address = address
        self.fsm = fsm
        self.directory = directory
        self.channel = channel
        self.capability = capability
        self.active = False

    @property
    def finished(self) -> bool:
        return self.fsm.finished

    def setup(self) -> None:
        """Open the inbox and advertise the capability."""
        self.channel.connect(self.address)
        try:
            self.directory.register(self.address, [self.capability])
        except DiscoveryError as exc:
            logger.error("[%s %s] Registration failed: %s", self.role, self.address, exc)
        self.active = True

    def step(self) -> bool:
        if not self.active:
            return False
        return self.fsm.step()

    def take_down(self) -> None:
        """Deregister and close the inbox. Never raises, never blocks."""
        if not self.active:
            return
        logger.info("[%s %s] Terminating...", self.role, self.address)
        try:
            self.directory.deregister(self.address)
        except DiscoveryError as exc:
            logger.error("[%s %s] Deregistration failed: %s", self.role, self.address, exc)
        self.channel.disconnect(self.address)
        self.active = False


class AuctioneerAgent(Participant):
    """The seller: runs one auction, then terminates itself."""

    role = "Auctioneer"

    def __init__(
        self,
        address: str,
        config: AuctionConfig,
        directory: Directory,
        channel: InMemoryChannel,
        buyer_capability: str = BUYER_CAPABILITY,
        capability: str = AUCTIONEER_CAPABILITY,
        auction_id: Optional[str] = None,
    ):
        fsm = AuctionCoordinatorFSM(
            address=address,
            config=config,
            directory=directory,
            channel=channel,
            buyer_capability=buyer_capability,
            auction_id=auction_id,
        )
        super().__init__(address, fsm, directory, channel, capability)
        self.config = config

    @classmethod
    def from_arguments(
        cls,
        address: str,
        args: Optional[Sequence],
        directory: Directory,
        channel: InMemoryChannel,
        reserve_rate=DEFAULT_RESERVE_RATE,
        reduction_rate=DEFAULT_REDUCTION_RATE,
        **kwargs,
    ) -> "AuctioneerAgent":
        """
        Build from process arguments; the first one is the initial price.

        Raises:
            FatalConfigError: Before anything is registered.
        """
        initial_price = _first_argument(args, "Initial price not determined, terminating agent...")
        config = AuctionConfig(
            initial_price=initial_price,
            reserve_rate=reserve_rate,
            reduction_rate=reduction_rate,
        )
        return cls(address, config, directory, channel, **kwargs)

    @property
    def result(self) -> Optional[AuctionResult]:
        return self.fsm.result


class BuyerAgent(Participant):
    """A buyer with a fixed price limit."""

    role = "Buyer"

    def __init__(
        self,
        config: BidderConfig,
        directory: Directory,
        channel: InMemoryChannel,
        capability: str = BUYER_CAPABILITY,
    ):
        fsm = BidderFSM(address=config.name, price_limit=config.price_limit, channel=channel)
        super().__init__(config.name, fsm, directory, channel, capability)
        self.config = config

    @classmethod
    def from_arguments(
        cls,
        address: str,
        args: Optional[Sequence],
        directory: Directory,
        channel: InMemoryChannel,
        **kwargs,
    ) -> "BuyerAgent":
        """
        Build from process arguments; the first one is the price limit.

        Raises:
            FatalConfigError: Before anything is registered.
        """
        price_limit = _first_argument(args, "Buying price not determined, terminating agent...")
        return cls(BidderConfig(name=address, price_limit=price_limit), directory, channel, **kwargs)
