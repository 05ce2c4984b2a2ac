"""
Directory and Message Channel
=============================

The two platform services every participant depends on:

- Directory: capability advertisement and discovery
  (find all addresses that advertise "flower-buyer")
- MessageChannel: addressed delivery into per-participant inboxes,
  FIFO per sender/receiver pair, non-blocking receive with a match
  predicate

Both are abstract so the FSMs never see a concrete transport. The
in-memory implementations below are what tests and the local runtime
use. In production, swap them for a real directory and message bus;
the FSMs do not change.
"""

import logging
from abc import ABC, abstractmethod
from collections import deque
from threading import Lock
from typing import Callable, Deque, Dict, Iterable, List, Optional

from ..errors import DiscoveryError, SendFailure
from ..protocol import AuctionMessage, MessageEnvelope, create_envelope

logger = logging.getLogger(__name__)

MatchPredicate = Callable[[MessageEnvelope], bool]


def match_types(*message_types: str) -> MatchPredicate:
    """
    Build a predicate matching envelopes by payload type.

    Example:
        channel.receive("alice", match_types("cfp", "final"))
    """
    wanted = frozenset(message_types)

    def _match(envelope: MessageEnvelope) -> bool:
        return envelope.type in wanted

    return _match


# =============================================================================
# Directory - Discovery by Capability
# =============================================================================

class Directory(ABC):
    """Lookup of participants by advertised capability."""

    @abstractmethod
    def register(self, address: str, capabilities: Iterable[str]) -> None:
        """Advertise `address` under each capability tag."""

    @abstractmethod
    def deregister(self, address: str) -> None:
        """Remove `address` from the directory."""

    @abstractmethod
    def find(self, capability: str) -> List[str]:
        """Addresses advertising `capability`, in registration order."""


class InMemoryDirectory(Directory):
    """
    Directory kept in a dict.

    `fail_lookups` makes every call raise DiscoveryError, for exercising
    the failure paths.
    """

    def __init__(self):
        self._capabilities: Dict[str, List[str]] = {}
        self._lock = Lock()
        self.fail_lookups = False

    def _check_available(self) -> None:
        if self.fail_lookups:
            raise DiscoveryError("Directory unavailable")

    def register(self, address: str, capabilities: Iterable[str]) -> None:
        self._check_available()
        with self._lock:
            self._capabilities[address] = list(capabilities)

    def deregister(self, address: str) -> None:
        self._check_available()
        with self._lock:
            if self._capabilities.pop(address, None) is None:
                raise DiscoveryError(f"Not registered: {address}")

    def find(self, capability: str) -> List[str]:
        self._check_available()
        with self._lock:
            return [
                address for address, tags in self._capabilities.items()
                if capability in tags
            ]


# =============================================================================
# Message Channel - Addressed Delivery
# =============================================================================

class MessageChannel(ABC):
    """Point-to-point and broadcast delivery of envelopes."""

    @abstractmethod
    def send(
        self,
        sender: str,
        recipients: Iterable[str],
        payload: AuctionMessage,
        auction_id: str,
    ) -> List[MessageEnvelope]:
        """
        Deliver `payload` to each recipient.

        Raises:
            SendFailure: If any recipient cannot be reached. Recipients
                before the failing one have already been served.
        """

    @abstractmethod
    def receive(
        self,
        address: str,
        match: Optional[MatchPredicate] = None,
    ) -> Optional[MessageEnvelope]:
        """
        Remove and return the oldest envelope in `address`'s inbox that
        satisfies `match`, or None. Never blocks.
        """


class InMemoryChannel(MessageChannel):
    """
    Per-participant inboxes in one process.

    Every delivered envelope is also kept in `history` so tests can
    inspect what was said. Subscribers are called after each delivery;
    the async runtime uses this to wake parked participants.
    """

    def __init__(self):
        self._inboxes: Dict[str, Deque[MessageEnvelope]] = {}
        self._subscribers: Dict[str, List[Callable[[MessageEnvelope], None]]] = {}
        self._history: List[MessageEnvelope] = []
        self._lock = Lock()

    def connect(self, address: str) -> None:
        """Open an inbox for `address`."""
        with self._lock:
            self._inboxes.setdefault(address, deque())

    def disconnect(self, address: str) -> None:
        """Close `address`'s inbox, discarding anything still queued."""
        with self._lock:
            self._inboxes.pop(address, None)
            self._subscribers.pop(address, None)

    def send(
        self,
        sender: str,
        recipients: Iterable[str],
        payload: AuctionMessage,
        auction_id: str,
    ) -> List[MessageEnvelope]:
        delivered = []
        for recipient in recipients:
            envelope = create_envelope(sender, recipient, auction_id, payload)
            self.deliver(envelope)
            delivered.append(envelope)
        return delivered

    def deliver(self, envelope: MessageEnvelope) -> None:
        """Put an already built envelope into its recipient's inbox."""
        with self._lock:
            inbox = self._inboxes.get(envelope.recipient)
            if inbox is None:
                raise SendFailure(f"Unknown participant: {envelope.recipient}")
            inbox.append(envelope)
            self._history.append(envelope)
            callbacks = list(self._subscribers.get(envelope.recipient, []))

        for callback in callbacks:
            try:
                callback(envelope)
            except Exception:
                logger.exception("[Channel] Subscriber for %s failed", envelope.recipient)

    def receive(
        self,
        address: str,
        match: Optional[MatchPredicate] = None,
    ) -> Optional[MessageEnvelope]:
        with self._lock:
            inbox = self._inboxes.get(address)
            if not inbox:
                return None
            for index, envelope in enumerate(inbox):
                if match is None or match(envelope):
                    del inbox[index]
                    return envelope
            return None

    def subscribe(self, address: str, callback: Callable[[MessageEnvelope], None]) -> None:
        """Call `callback` after every delivery to `address`."""
        with self._lock:
            self._subscribers.setdefault(address, []).append(callback)

    def pending(self, address: str) -> int:
        """Number of envelopes waiting in `address`'s inbox."""
        with self._lock:
            return len(self._inboxes.get(address, ()))

    def history(
        self,
        recipient: Optional[str] = None,
        sender: Optional[str] = None,
        message_type: Optional[str] = None,
    ) -> List[MessageEnvelope]:
        """Every delivered envelope, optionally filtered."""
        with self._lock:
            envelopes = list(self._history)

        if recipient:
            envelopes = [e for e in envelopes if e.recipient == recipient]
        if sender:
            envelopes = [e for e in envelopes if e.sender == sender]
        if message_type:
            envelopes = [e for e in envelopes if e.type == message_type]

        return envelopes
