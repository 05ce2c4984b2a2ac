"""
Message Envelope - Routing metadata for every auction message

Envelope = WHO, WHEN, WHICH AUCTION
Payload = WHAT
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any
from uuid import uuid4

from ..errors import MalformedMessage
from .messages import AuctionMessage, to_dict, parse_message


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class MessageEnvelope:
    """
    Wrapper for a single addressed message.

    A broadcast is delivered as one envelope per recipient.

    Attributes:
        sender: Address of the participant that sent the message
        recipient: Address of the participant that receives it
        auction_id: Which auction this message belongs to
        payload: The actual message content
        id: Unique message identifier
        timestamp: When the message was created (UTC)

    Example:
        envelope = MessageEnvelope(
            sender="auctioneer",
            recipient="alice",
            auction_id="auction-1",
            payload=CallForProposal(price="100"),
        )
    """
    sender: str
    recipient: str
    auction_id: str
    payload: AuctionMessage
    id: str = field(default_factory=lambda: str(uuid4()))
    timestamp: datetime = field(default_factory=_utcnow)

    @property
    def type(self) -> str:
        return self.payload.type

    def to_dict(self) -> dict:
        """Serialize envelope to dictionary."""
        return {
            "id": self.id,
            "sender": self.sender,
            "recipient": self.recipient,
            "auction_id": self.auction_id,
            "timestamp": self.timestamp.isoformat(),
            "payload": to_dict(self.payload),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "MessageEnvelope":
        """
        Deserialize envelope from dictionary.

        Raises:
            MalformedMessage: If a field is missing or the payload is invalid.
        """
        try:
            return cls(
                id=data["id"],
                sender=data["sender"],
                recipient=data["recipient"],
                auction_id=data["auction_id"],
                timestamp=datetime.fromisoformat(data["timestamp"]),
                payload=parse_message(data["payload"]),
            )
        except (KeyError, TypeError) as exc:
            raise MalformedMessage(f"Invalid envelope: {exc}") from exc
        except ValueError as exc:
            if isinstance(exc, MalformedMessage):
                raise
            raise MalformedMessage(f"Invalid envelope timestamp: {exc}") from exc


def create_envelope(
    sender: str,
    recipient: str,
    auction_id: str,
    payload: AuctionMessage,
) -> MessageEnvelope:
    """Factory function to create an envelope."""
    return MessageEnvelope(
        sender=sender,
        recipient=recipient,
        auction_id=auction_id,
        payload=payload,
    )
