"""
Runtime - Running an auction
============================

Wires a directory, a channel, the buyers and one auctioneer, then runs
them as independent participants that only talk through the channel.

Two schedulers:

    run()        deterministic round-robin, one state per participant per
                 pass; what the tests use
    run_async()  one asyncio task per participant; a parked participant
                 sleeps until the channel drops a message in its inbox

Run:
    dutch-auction --initial-price 100 --buyer alice=90 --buyer bob=70
    dutch-auction --config auction.yaml --mode async
    python -m dutch_auction.runtime.runner --schedule --initial-price 100
"""

import argparse
import asyncio
import logging
import sys
from typing import Dict, List, Optional, Set

from ..agents import BidderConfig, price_schedule
from ..errors import AuctionStalled, FatalConfigError
from ..fsm import AuctionResult
from ..transport import InMemoryChannel, InMemoryDirectory
from .config import Config, load_config
from .participant import AuctioneerAgent, BuyerAgent, Participant

logger = logging.getLogger(__name__)


class AuctionRuntime:
    """
    Runs one auction in this process.

    Example:
        runtime = AuctionRuntime(config)
        result = runtime.run()
        result.winner, result.winning_price
    """

    def __init__(
        self,
        config: Config,
        directory: Optional[InMemoryDirectory] = None,
        channel: Optional[InMemoryChannel] = None,
    ):
        self.config = config
        self.directory = directory or InMemoryDirectory()
        self.channel = channel or InMemoryChannel()
        self.buyers: List[BuyerAgent] = []
        self.auctioneer: Optional[AuctioneerAgent] = None
        self._built = False
        self._parked: Set[str] = set()
        self._wakeups: Dict[str, asyncio.Event] = {}
        self._stalled: Optional[asyncio.Event] = None

    @property
    def participants(self) -> List[Participant]:
        """Buyers first, auctioneer last (setup order)."""
        return [*self.buyers, *([self.auctioneer] if self.auctioneer else [])]

    def build(self) -> None:
        """Create and set up every participant. Buyers go first so discovery sees them."""
        if self._built:
            return
        if any(b.name == self.config.auctioneer_name for b in self.config.bidders):
            raise FatalConfigError(f"Buyer name clashes with auctioneer: {self.config.auctioneer_name}")

        for bidder in self.config.bidders:
            buyer = BuyerAgent(
                bidder,
                self.directory,
                self.channel,
                capability=self.config.buyer_capability,
            )
            buyer.setup()
            self.buyers.append(buyer)

        self.auctioneer = AuctioneerAgent(
            self.config.auctioneer_name,
            self.config.auction,
            self.directory,
            self.channel,
            buyer_capability=self.config.buyer_capability,
            capability=self.config.auctioneer_capability,
        )
        self.auctioneer.setup()
        self._built = True

    @property
    def result(self) -> Optional[AuctionResult]:
        return self.auctioneer.result if self.auctioneer else None

    # ------------------------------------------------------------------
    # Deterministic scheduler
    # ------------------------------------------------------------------

    def run(self) -> AuctionResult:
        """
        Step participants round-robin until everyone is finished or parked.

        The auctioneer is taken down as soon as it finishes. Finished
        buyers keep their inbox open until the end of the run so the
        auctioneer's notices still reach them. Participants still parked
        at the end (e.g. a bidder whose start notice never came) are
        taken down too.

        Raises:
            AuctionStalled: If the auctioneer is parked with nobody left
                to wake it.
        """
        self.build()
        active = list(self.participants)
        done: List[Participant] = []

        while active:
            progressed = False
            for participant in list(active):
                if participant.step():
                    progressed = True
                if participant.finished:
                    active.remove(participant)
                    done.append(participant)
                    if participant is self.auctioneer:
                        participant.take_down()
            if not progressed:
                break

        waiting = [participant.address for participant in active]
        for participant in active:
            logger.info("[Runtime] %s still waiting, tearing it down", participant.address)
            participant.take_down()
        for participant in done:
            participant.take_down()

        if not self.auctioneer.finished:
            logger.error("[Runtime] Auction stalled, waiting on: %s", ", ".join(waiting))
            raise AuctionStalled(waiting)
        return self.result

    # ------------------------------------------------------------------
    # asyncio scheduler
    # ------------------------------------------------------------------

    def _check_stalled(self) -> None:
        """Signal a stall once every unfinished participant is parked with no wakeup pending."""
        if self.auctioneer.finished:
            return
        for participant in self.participants:
            if participant.finished:
                continue
            if participant.address not in self._parked or self._wakeups[participant.address].is_set():
                return
        self._stalled.set()

    async def _drive(self, participant: Participant, wakeup: asyncio.Event) -> None:
        while not participant.finished:
            wakeup.clear()
            if participant.step():
                await asyncio.sleep(0)
                continue
            self._parked.add(participant.address)
            self._check_stalled()
            try:
                await wakeup.wait()
            finally:
                self._parked.discard(participant.address)

    async def run_async(self) -> AuctionResult:
        """
        Run every participant as its own task.

        Once the auctioneer is done, buyers get `shutdown_grace_seconds`
        to drain their inboxes; whoever is still parked is cancelled.

        Raises:
            AuctionStalled: If every participant parks while the
                auctioneer is unfinished.
        """
        self.build()

        self._parked = set()
        self._stalled = asyncio.Event()
        self._wakeups = {}
        for participant in self.participants:
            wakeup = asyncio.Event()
            self._wakeups[participant.address] = wakeup
            self.channel.subscribe(participant.address, lambda _envelope, event=wakeup: event.set())

        buyer_tasks = [
            asyncio.create_task(self._drive(buyer, self._wakeups[buyer.address]), name=buyer.address)
            for buyer in self.buyers
        ]
        auctioneer_task = asyncio.create_task(
            self._drive(self.auctioneer, self._wakeups[self.auctioneer.address]),
            name=self.auctioneer.address,
        )
        stall_task = asyncio.create_task(self._stalled.wait())

        done = set()
        waiting: List[str] = []
        try:
            await asyncio.wait({auctioneer_task, stall_task}, return_when=asyncio.FIRST_COMPLETED)
            if not auctioneer_task.done():
                waiting = sorted(self._parked)
                auctioneer_task.cancel()
            await asyncio.gather(auctioneer_task, return_exceptions=bool(waiting))
        finally:
            stall_task.cancel()
            self.auctioneer.take_down()
            if buyer_tasks:
                grace = 0 if waiting else self.config.limits.shutdown_grace_seconds
                done, pending = await asyncio.wait(buyer_tasks, timeout=grace)
                for task in pending:
                    logger.info("[Runtime] %s still waiting, cancelling", task.get_name())
                    task.cancel()
                await asyncio.gather(*pending, return_exceptions=True)
            for buyer in self.buyers:
                buyer.take_down()

        for task in done:
            task.result()
        if waiting:
            logger.error("[Runtime] Auction stalled, waiting on: %s", ", ".join(waiting))
            raise AuctionStalled(waiting)
        return self.result


# ============================================================================
# CLI
# ============================================================================

def parse_buyer(text: str) -> BidderConfig:
    """Parse NAME=LIMIT from the command line."""
    name, sep, limit = text.partition("=")
    if not sep or not name.strip():
        raise FatalConfigError(f"Buyer must look like NAME=LIMIT, got {text!r}")
    return BidderConfig(name=name.strip(), price_limit=limit)


def build_config(args: argparse.Namespace) -> Config:
    """Merge the config file with command-line overrides."""
    config = load_config(
        args.config,
        initial_price=args.initial_price,
        reserve_rate=args.reserve_rate,
    )

    if args.buyer:
        config.bidders = [parse_buyer(text) for text in args.buyer]
        names = [b.name for b in config.bidders]
        if len(set(names)) != len(names):
            raise FatalConfigError(f"Buyer names must be unique: {names}")

    if args.log_level:
        config.limits.log_level = args.log_level.upper()
    if not isinstance(logging.getLevelName(config.limits.log_level), int):
        raise FatalConfigError(f"Unknown log level: {config.limits.log_level}")
    return config


def print_schedule(config: Config) -> None:
    auction = config.auction
    print("=" * 50)
    print("PRICE SCHEDULE")
    print("=" * 50)
    print(f"Initial price:  {auction.initial_price}")
    print(f"Reserve price:  {auction.reserve_price}")
    print(f"Reduction step: {auction.reduction_step}")
    for round_number, price in enumerate(price_schedule(auction), start=1):
        print(f"  Round {round_number:>2}: {price}")
    print("=" * 50)


def print_summary(result: AuctionResult) -> None:
    print("\n" + "=" * 50)
    print("SUMMARY")
    print("=" * 50)
    print(f"Auction: {result.auction_id}")
    print(f"Buyers: {', '.join(result.buyers) if result.buyers else 'none'}")
    print(f"Sold: {'Yes' if result.sold else 'No'}")
    if result.sold:
        print(f"Winner: {result.winner} at {result.winning_price}")
    if result.losers:
        print(f"Rejected late offers: {', '.join(result.losers)}")
    print(f"Rounds: {result.rounds}")
    print(f"Prices: {', '.join(str(p) for p in result.prices_broadcast)}")
    print("=" * 50)


def main(argv: Optional[List[str]] = None) -> int:
    """CLI entrypoint."""
    parser = argparse.ArgumentParser(
        description="Dutch auction between one auctioneer and many buyers",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  dutch-auction --initial-price 100 --buyer alice=90 --buyer bob=70
  dutch-auction --config auction.yaml --mode async
  dutch-auction --initial-price 100 --schedule
""",
    )
    parser.add_argument("--config", type=str, help="Config file path")
    parser.add_argument("--initial-price", type=str, help="Starting price of the auction")
    parser.add_argument("--reserve-rate", type=str, help="Reserve price as a share of the initial price")
    parser.add_argument("--buyer", action="append", metavar="NAME=LIMIT",
                        help="Add a buyer (repeatable, replaces config bidders)")
    parser.add_argument("--mode", choices=["sync", "async"], default="sync",
                        help="sync=deterministic scheduler, async=asyncio tasks")
    parser.add_argument("--schedule", action="store_true", help="Print the price ladder and exit")
    parser.add_argument("--log-level", type=str, help="DEBUG, INFO, WARNING, ...")
    parser.add_argument("--quiet", action="store_true")

    args = parser.parse_args(argv)

    try:
        config = build_config(args)
    except FatalConfigError as exc:
        print(f"[Config] {exc}", file=sys.stderr)
        return 2

    logging.basicConfig(
        level=logging.WARNING if args.quiet else config.limits.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if args.schedule:
        print_schedule(config)
        return 0

    runtime = AuctionRuntime(config)
    try:
        if args.mode == "async":
            result = asyncio.run(runtime.run_async())
        else:
            result = runtime.run()
    except AuctionStalled as exc:
        print(f"[Runtime] {exc}", file=sys.stderr)
        return 1

    if not args.quiet:
        print_summary(result)
    return 0


if __name__ == "__main__":
    sys.exit(main())
