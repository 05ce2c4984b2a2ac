"""
Message Schemas for the Dutch Auction Protocol

One payload type per message kind exchanged between the auctioneer
and the buyers:

    start   auctioneer -> all buyers     auction begins
    cfp     auctioneer -> all buyers     current round price
    offer   buyer -> auctioneer          accepts current price
    decline buyer -> auctioneer          rejects current price
    accept  auctioneer -> winner         you won
    reject  auctioneer -> late bidders   you lost (late offer)
    final   auctioneer -> all buyers     auction over

Prices travel as decimal strings (the CFP content) and are parsed on
receipt, so a malformed price is detected by the receiver.
"""

from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from typing import Literal, Union

from ..errors import MalformedMessage


# ============================================================
# PAYLOAD TYPES
# ============================================================

@dataclass
class StartNotice:
    """The auction is about to begin."""
    type: Literal["start"] = field(default="start", init=False)


@dataclass
class CallForProposal:
    """
    Auctioneer broadcasts the current round price.

    Example:
        cfp = CallForProposal(price="94.0")
        parse_price(cfp.price)  # Decimal("94.0")
    """
    type: Literal["cfp"] = field(default="cfp", init=False)
    price: str = ""


@dataclass
class Offer:
    """Buyer accepts the current price."""
    type: Literal["offer"] = field(default="offer", init=False)


@dataclass
class Decline:
    """Buyer rejects the current price."""
    type: Literal["decline"] = field(default="decline", init=False)


@dataclass
class AcceptNotice:
    """Sent to the winner only."""
    type: Literal["accept"] = field(default="accept", init=False)


@dataclass
class RejectNotice:
    """Sent to buyers whose offer arrived after the winner's."""
    type: Literal["reject"] = field(default="reject", init=False)


@dataclass
class FinalNotice:
    """Auction over, sent to every buyer regardless of outcome."""
    type: Literal["final"] = field(default="final", init=False)


AuctionMessage = Union[
    StartNotice,
    CallForProposal,
    Offer,
    Decline,
    AcceptNotice,
    RejectNotice,
    FinalNotice,
]

_PAYLOAD_TYPES = {
    "start": StartNotice,
    "offer": Offer,
    "decline": Decline,
    "accept": AcceptNotice,
    "reject": RejectNotice,
    "final": FinalNotice,
}


# ============================================================
# PRICES
# ============================================================

def parse_price(content) -> Decimal:
    """
    Parse a price from message content.

    Raises:
        MalformedMessage: If the content is not a finite, positive decimal.

    Example:
        parse_price("94.0") == Decimal("94.0")
        parse_price("abc")  # raises MalformedMessage
    """
    if isinstance(content, bool) or content is None:
        raise MalformedMessage(f"Not a price: {content!r}")
    if isinstance(content, float):
        content = repr(content)
    try:
        price = Decimal(str(content).strip())
    except (InvalidOperation, ValueError) as exc:
        raise MalformedMessage(f"Not a price: {content!r}") from exc
    if not price.is_finite():
        raise MalformedMessage(f"Price must be finite, got {content!r}")
    if price <= 0:
        raise MalformedMessage(f"Price must be positive, got {content!r}")
    return price


def format_price(price: Decimal) -> str:
    """Render a price as CFP content (plain notation, never exponent)."""
    return format(price, "f")


# ============================================================
# MESSAGE PARSING
# ============================================================

def parse_message(data: dict) -> AuctionMessage:
    """
    Parse a dictionary into a typed message.

    Raises:
        MalformedMessage: If the type is unknown or a field is missing.

    Example:
        msg = parse_message({"type": "cfp", "price": "100"})
        assert isinstance(msg, CallForProposal)
    """
    if not isinstance(data, dict):
        raise MalformedMessage(f"Payload must be a mapping, got {type(data).__name__}")

    msg_type = data.get("type")

    if msg_type == "cfp":
        if "price" not in data:
            raise MalformedMessage("cfp without price")
        return CallForProposal(price=str(data["price"]))
    elif isinstance(msg_type, str) and msg_type in _PAYLOAD_TYPES:
        return _PAYLOAD_TYPES[msg_type]()
    else:
        raise MalformedMessage(f"Unknown message type: {msg_type}")


def to_dict(msg: AuctionMessage) -> dict:
    """Convert a typed message to a dictionary."""
    if isinstance(msg, CallForProposal):
        return {"type": "cfp", "price": msg.price}
    elif type(msg) in _PAYLOAD_TYPES.values():
        return {"type": msg.type}
    else:
        raise MalformedMessage(f"Unknown message type: {type(msg)}")


# ============================================================
# HELPERS
# ============================================================

def is_reply(msg: AuctionMessage) -> bool:
    """Check if this is a buyer's answer to a CFP."""
    return isinstance(msg, (Offer, Decline))

