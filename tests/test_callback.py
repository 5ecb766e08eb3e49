"""
Unit tests for callback verification.

Tests:
- Known callback body and MAC
- Missing fields
- Invalid signatures
- Decoding of verified fields
- Decrypting the embedded message
"""

from datetime import datetime, timezone

import pytest

from threema_e2e.core.errors import (
    FormatError, MissingFieldError, SignatureError, ValidationError,
)
from threema_e2e.core.values import Identity, MessageId, Nonce
from threema_e2e.callback.verifier import (
    CallbackVerifier, GatewayCallback, verify_callback,
    compute_callback_mac, decode_url_params, encode_url_params,
    parse_timestamp,
)
from threema_e2e.integration.event_logger import EventLogger, EventType
from threema_e2e.messaging.envelope import EncryptedMessage, encrypt_message
from threema_e2e.messaging.messages import Text


BODY = ("from=SENDERXY"
        "&to=RECEIVER"
        "&messageId=0011223344556677"
        "&date=1650000000"
        "&nonce=001122334455667700112233445566770011223344556677"
        "&box=0123456789abcdef"
        "&nickname=three4j"
        "&mac=c1d77e5a605511635c9150fb7c1f6ad9eaedf02352e981b6a1d687c742e84c15")


def signed_body(secret, **fields):
    params = {
        'from': "SENDERXY",
        'to': "RECEIVER",
        'messageId': "0011223344556677",
        'date': "1650000000",
        'nonce': "00" * 24,
        'box': "abcd",
    }
    params.update(fields)
    params['mac'] = compute_callback_mac(params, secret)
    return encode_url_params(params)


class TestUrlParams:
    """Tests for form body parsing."""

    def test_decode(self):
        """Fields should be URL decoded."""
        assert decode_url_params("a=1&b=x+y&c=%C3%A4") == {'a': "1", 'b': "x y", 'c': "ä"}

    def test_malformed_pairs_skipped(self):
        """Pairs without exactly one '=' are ignored."""
        assert decode_url_params("a=1&junk&b=2=3&c=") == {'a': "1", 'c': ""}

    def test_encode(self):
        """Encoding should be decodable again."""
        params = {'nickname': "Max & Moritz"}
        assert decode_url_params(encode_url_params(params)) == params


class TestCallbackVerifier:
    """Tests for callback verification."""

    def test_known_body(self):
        """The known body should verify and decode."""
        callback = CallbackVerifier("secret").verify(BODY)

        assert callback.sender == Identity.of("SENDERXY")
        assert callback.receiver == Identity.of("RECEIVER")
        assert callback.message_id == MessageId.of("0011223344556677")
        assert callback.timestamp == 1650000000
        assert callback.date == datetime.fromtimestamp(1650000000, timezone.utc)
        assert callback.nickname == "three4j"
        assert callback.message.to_hex() == "0123456789abcdef"
        assert callback.message.nonce == Nonce.of("001122334455667700112233445566770011223344556677")

    def test_bytes_body(self):
        """Raw request bytes should verify as well."""
        assert GatewayCallback.from_body(BODY.encode("ascii"), "secret").nickname == "three4j"

    def test_non_ascii_bytes(self):
        """Bodies must be ASCII."""
        with pytest.raises(FormatError):
            verify_callback(b"from=\xff", "secret")

    def test_missing_message_id(self):
        """A missing field should be named."""
        with pytest.raises(MissingFieldError) as exc:
            verify_callback("from=x&to=x&date=x&nonce=x&box=x&mac=x", "x")
        assert exc.value.field == "messageId"
        assert str(exc.value) == "Missing parameter messageId"

    def test_missing_mac(self):
        """A missing MAC is a missing field."""
        with pytest.raises(MissingFieldError) as exc:
            verify_callback("from=x&to=x&messageId=x&date=x&nonce=x&box=x", "x")
        assert str(exc.value) == "Missing parameter mac"

    def test_invalid_signature(self):
        """A wrong MAC is checked before any field is decoded."""
        with pytest.raises(SignatureError) as exc:
            verify_callback("from=x&to=x&messageId=x&date=x&nonce=x&box=x&mac=x", "x")
        assert str(exc.value) == "Invalid signature"

    def test_wrong_secret(self):
        """The known body does not verify with another secret."""
        with pytest.raises(SignatureError):
            verify_callback(BODY, "other")

    def test_modified_field(self):
        """Changing a signed field invalidates the MAC."""
        with pytest.raises(SignatureError):
            verify_callback(BODY.replace("date=1650000000", "date=1650000001"), "secret")

    def test_nickname_not_signed(self):
        """The nickname is not covered by the MAC."""
        body = BODY.replace("nickname=three4j", "nickname=other")
        assert verify_callback(body, "secret").nickname == "other"

    def test_no_nickname(self):
        """The nickname is optional."""
        callback = verify_callback(signed_body("s3cret"), "s3cret")
        assert callback.nickname is None

    def test_invalid_date(self):
        """A verified but non-numeric date is malformed."""
        with pytest.raises(FormatError):
            verify_callback(signed_body("s3cret", date="yesterday"), "s3cret")

    @pytest.mark.parametrize("date", [
        "1_650_000_000",
        " 1650000000",
        "1650000000 ",
        "+1650000000",
        "\uff11\uff16\uff15\uff10",
        "1650000000.0",
        "",
    ])
    def test_date_must_be_plain_digits(self, date):
        """Dates with separators, spaces, signs or non-ASCII digits are malformed."""
        with pytest.raises(FormatError):
            verify_callback(signed_body("s3cret", date=date), "s3cret")

    def test_date_out_of_range(self):
        """A millisecond timestamp lies beyond representable dates."""
        with pytest.raises(FormatError):
            verify_callback(signed_body("s3cret", date="1650000000000"), "s3cret")

    def test_out_of_range_date_audited(self):
        """An unusable date is rejected and audited, never returned."""
        events = EventLogger()
        with pytest.raises(FormatError):
            CallbackVerifier("s3cret", events).verify(signed_body("s3cret", date="9" * 20))
        rejected = events.get_events_by_type(EventType.CALLBACK_REJECTED)
        assert rejected[0].details['reason'] == "FormatError"

    def test_invalid_identity(self):
        """A verified identity of the wrong length is rejected."""
        with pytest.raises(ValidationError):
            verify_callback(signed_body("s3cret", **{'from': "SHORT"}), "s3cret")

    def test_empty_secret(self):
        """An empty secret is a configuration mistake."""
        with pytest.raises(ValueError):
            CallbackVerifier("")

    def test_events_logged(self):
        """Accepted and rejected callbacks are audited."""
        events = EventLogger()
        verifier = CallbackVerifier("secret", events)
        verifier.verify(BODY)
        with pytest.raises(SignatureError):
            verifier.verify(BODY.replace("box=0123", "box=3210"))

        assert len(events.get_events_by_type(EventType.CALLBACK_VERIFIED)) == 1
        rejected = events.get_events_by_type(EventType.CALLBACK_REJECTED)
        assert rejected[0].details['reason'] == "SignatureError"


class TestCallbackMessage:
    """Tests for the message embedded in a callback."""

    def test_decrypt(self, alice, bob):
        """The embedded message decrypts with the sender's key."""
        enc = encrypt_message(Text("via callback"), alice.private_key, bob.public_key)
        body = signed_body("s3cret", box=enc.to_hex(), nonce=enc.nonce.to_hex())

        callback = verify_callback(body, "s3cret")
        assert callback.decrypt(alice.public_key, bob.private_key) == Text("via callback")


class TestTimestamp:
    """Tests for callback date parsing."""

    def test_parse(self):
        """Plain epoch seconds are accepted."""
        assert parse_timestamp("1650000000") == 1650000000
        assert parse_timestamp("0") == 0

    def test_parse_huge(self):
        """Very long digit strings are malformed."""
        with pytest.raises(FormatError):
            parse_timestamp("1" * 5000)

    def test_callback_rejects_out_of_range(self):
        """A callback cannot hold a timestamp without a date."""
        with pytest.raises(ValidationError):
            GatewayCallback(
                sender=Identity.of("SENDERXY"),
                receiver=Identity.of("RECEIVER"),
                message_id=MessageId.from_hex("0011223344556677"),
                timestamp=10 ** 15,
                message=EncryptedMessage.from_hex("abcd", "00" * 24),
            )

    def test_callback_rejects_non_int(self):
        """Timestamps are whole seconds."""
        with pytest.raises(ValidationError):
            GatewayCallback(
                sender=Identity.of("SENDERXY"),
                receiver=Identity.of("RECEIVER"),
                message_id=MessageId.from_hex("0011223344556677"),
                timestamp="1650000000",
                message=EncryptedMessage.from_hex("abcd", "00" * 24),
            )
