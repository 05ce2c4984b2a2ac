"""
Tests for Protocol Layer
========================
"""

from decimal import Decimal

import pytest

from dutch_auction.errors import MalformedMessage
from dutch_auction.protocol import (
    AcceptNotice,
    CallForProposal,
    Decline,
    FinalNotice,
    MessageEnvelope,
    Offer,
    RejectNotice,
    StartNotice,
    create_envelope,
    format_price,
    is_reply,
    parse_message,
    parse_price,
    to_dict,
)


class TestParsePrice:
    """Prices arrive as CFP content and are parsed by the receiver."""

    def test_parses_decimal_string(self):
        """Decimal strings parse exactly."""
        assert parse_price("94.0") == Decimal("94")

    def test_parses_int_and_float(self):
        """Floats go through their repr, so 0.4 stays 0.4."""
        assert parse_price(100) == Decimal("100")
        assert parse_price(0.4) == Decimal("0.4")

    def test_strips_whitespace(self):
        """Surrounding blanks are ignored."""
        assert parse_price(" 88 ") == Decimal("88")

    @pytest.mark.parametrize("content", ["abc", "", "NaN", "Infinity", "-5", "0", None, True, "1,5"])
    def test_rejects_malformed(self, content):
        """Unparseable, non-finite and non-positive values are malformed."""
        with pytest.raises(MalformedMessage):
            parse_price(content)

    def test_malformed_is_a_value_error(self):
        """Callers may catch ValueError."""
        with pytest.raises(ValueError):
            parse_price("abc")

    def test_format_never_uses_exponent(self):
        """CFP content is plain notation."""
        assert format_price(Decimal("1E+2")) == "100"
        assert format_price(Decimal("94.00")) == "94.00"


class TestMessageCodec:
    """Dictionary form of every payload."""

    def test_cfp_keeps_price(self):
        """The price survives the dict form as a string."""
        msg = parse_message({"type": "cfp", "price": "100"})
        assert isinstance(msg, CallForProposal)
        assert msg.price == "100"
        assert to_dict(msg) == {"type": "cfp", "price": "100"}

    @pytest.mark.parametrize("payload, type_tag", [
        (StartNotice(), "start"),
        (Offer(), "offer"),
        (Decline(), "decline"),
        (AcceptNotice(), "accept"),
        (RejectNotice(), "reject"),
        (FinalNotice(), "final"),
    ])
    def test_plain_notices(self, payload, type_tag):
        """Notices without content are just a type tag."""
        assert to_dict(payload) == {"type": type_tag}
        assert parse_message({"type": type_tag}) == payload

    def test_unknown_type(self):
        """An unknown type tag is malformed."""
        with pytest.raises(MalformedMessage):
            parse_message({"type": "bid"})

    def test_cfp_without_price(self):
        """A CFP must carry a price."""
        with pytest.raises(MalformedMessage):
            parse_message({"type": "cfp"})

    def test_payload_must_be_mapping(self):
        """Anything but a dict is malformed."""
        with pytest.raises(MalformedMessage):
            parse_message(["cfp", "100"])

    def test_only_offer_and_decline_are_replies(self):
        """is_reply covers exactly the buyer's answers."""
        assert is_reply(Offer())
        assert is_reply(Decline())
        assert not is_reply(StartNotice())
        assert not is_reply(CallForProposal(price="1"))


class TestEnvelope:
    """Routing metadata around a payload."""

    def test_type_comes_from_payload(self):
        """The envelope exposes its payload's type."""
        envelope = create_envelope("auctioneer", "alice", "a1", CallForProposal(price="100"))
        assert envelope.type == "cfp"

    def test_dict_form(self):
        """Every field survives to_dict and from_dict."""
        envelope = create_envelope("auctioneer", "alice", "a1", CallForProposal(price="100"))
        data = envelope.to_dict()

        assert data["sender"] == "auctioneer"
        assert data["recipient"] == "alice"
        assert data["auction_id"] == "a1"
        assert data["payload"] == {"type": "cfp", "price": "100"}

        restored = MessageEnvelope.from_dict(data)
        assert restored.id == envelope.id
        assert restored.timestamp == envelope.timestamp
        assert restored.payload == envelope.payload

    def test_ids_are_unique(self):
        """Each envelope gets its own id."""
        first = create_envelope("a", "b", "x", Offer())
        second = create_envelope("a", "b", "x", Offer())
        assert first.id != second.id

    def test_missing_field_is_malformed(self):
        """A missing sender is malformed."""
        data = create_envelope("a", "b", "x", Offer()).to_dict()
        del data["sender"]
        with pytest.raises(MalformedMessage):
            MessageEnvelope.from_dict(data)

    def test_bad_timestamp_is_malformed(self):
        """An unparseable timestamp is malformed."""
        data = create_envelope("a", "b", "x", Offer()).to_dict()
        data["timestamp"] = "yesterday"
        with pytest.raises(MalformedMessage):
            MessageEnvelope.from_dict(data)

    def test_bad_payload_is_malformed(self):
        """An unknown payload type is malformed."""
        data = create_envelope("a", "b", "x", Offer()).to_dict()
        data["payload"] = {"type": "propose"}
        with pytest.raises(MalformedMessage):
            MessageEnvelope.from_dict(data)


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
