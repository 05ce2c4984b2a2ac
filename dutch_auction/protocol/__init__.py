"""
PROTOCOL - Message Contract
===========================

Question this layer answers:
"What can be said, and by whom?"

Typed payloads for the seven message kinds, an envelope carrying
routing metadata, and a dict codec for any wire transport.
"""

from .messages import (
    StartNotice,
    CallForProposal,
    Offer,
    Decline,
    AcceptNotice,
    RejectNotice,
    FinalNotice,
    AuctionMessage,
    parse_message,
    parse_price,
    format_price,
    to_dict,
    is_reply,
)

from .envelope import MessageEnvelope, create_envelope

__all__ = [
    "StartNotice",
    "CallForProposal",
    "Offer",
    "Decline",
    "AcceptNotice",
    "RejectNotice",
    "FinalNotice",
    "AuctionMessage",
    "parse_message",
    "parse_price",
    "format_price",
    "to_dict",
    "is_reply",
    "MessageEnvelope",
    "create_envelope",
]
