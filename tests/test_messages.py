"""
Unit tests for message encoding.

Tests:
- Wire format of every message type
- Decoding back into equal messages
- Malformed, truncated and unknown messages
- File builder and thumbnail rules
"""

import json
import struct

import pytest

from threema_e2e.core.errors import FormatError, UnknownTypeError, ValidationError
from threema_e2e.core.values import BlobId, MessageId, Nonce, SymmetricKey
from threema_e2e.files.blob import Blob, BlobPurpose, THUMBNAIL_NONCE
from threema_e2e.messaging.messages import (
    Text, Location, Image, File, FileBuilder, RenderingType,
    DeliveryReceipt, ReceiptType, MESSAGE_TYPES,
    encode_message, decode_message, message_ids,
)


BLOB_ID = BlobId.of("00112233445566778899aabbccddeeff")
KEY = SymmetricKey(bytes(range(32)))


def uploaded_file(size=1234):
    return Blob.of_file(KEY).uploaded(BLOB_ID, size)


class TestTypeTags:
    """Tests for the type registry."""

    def test_tags(self):
        """Type tags should match the wire protocol."""
        assert Text.TYPE == 0x01
        assert Image.TYPE == 0x02
        assert Location.TYPE == 0x10
        assert File.TYPE == 0x17
        assert DeliveryReceipt.TYPE == 0x80
        assert set(MESSAGE_TYPES) == {0x01, 0x02, 0x10, 0x17, 0x80}

    def test_empty_message(self):
        """An empty message has no type tag."""
        with pytest.raises(FormatError):
            decode_message(b"")

    def test_unknown_tag(self):
        """Unknown tags should raise UnknownTypeError with the tag."""
        with pytest.raises(UnknownTypeError) as exc:
            decode_message(b"\x42hello")
        assert exc.value.type_tag == 0x42


class TestText:
    """Tests for text messages."""

    def test_encode(self):
        """Text is the tag followed by UTF-8 bytes."""
        assert encode_message(Text("Grüezi")) == b"\x01" + "Grüezi".encode("utf-8")

    def test_roundtrip(self):
        """Decoding should restore the text."""
        msg = Text("Hello 👋")
        assert decode_message(msg.encode()) == msg

    def test_empty_text(self):
        """Empty text is allowed."""
        assert decode_message(b"\x01") == Text("")

    def test_invalid_utf8(self):
        """Invalid UTF-8 should raise FormatError."""
        with pytest.raises(FormatError):
            decode_message(b"\x01\xff\xfe")

    def test_str(self):
        """str should show the text."""
        assert str(Text("hi")) == "Text[hi]"


class TestLocation:
    """Tests for location messages."""

    def test_encode_full(self):
        """All fields should be encoded as lines."""
        msg = Location(46.947, 7.444, 40.0, "Bundeshaus", "Bern")
        assert msg.encode_body() == b"46.947,7.444,40.0\nBundeshaus\nBern"

    def test_encode_coordinates_only(self):
        """Without accuracy only two coordinates are sent."""
        assert Location(46.947, 7.444).encode_body() == b"46.947,7.444"

    def test_roundtrip(self):
        """Decoding should restore all fields."""
        msg = Location(46.947, 7.444, 40.0, "Bundeshaus", "Bern")
        assert decode_message(msg.encode()) == msg

    def test_address_only(self):
        """One extra line is the address."""
        msg = decode_message(b"\x10" + b"46.947,7.444\nBern")
        assert msg.address == "Bern"
        assert msg.name is None
        assert msg.accuracy is None

    def test_name_and_address(self):
        """Two extra lines are name then address."""
        msg = decode_message(b"\x10" + b"1.5,2.5,3\nName\nAddress")
        assert msg.name == "Name"
        assert msg.address == "Address"
        assert msg.accuracy == 3.0

    def test_name_requires_address(self):
        """A name without address cannot be encoded."""
        with pytest.raises(ValidationError):
            Location(1.0, 2.0, name="Name")

    @pytest.mark.parametrize("body", [
        b"1.0",
        b"1.0,2.0,3.0,4.0",
        b"a,b",
        b"1.0,2.0\nx\ny\nz",
        b"nan,2.0",
        b"4_6.5,7_0",
        b" 1.0,2.0",
        b"1.0 ,2.0",
        b"\xef\xbc\x91.0,2.0",
        b"inf,2.0",
    ])
    def test_malformed(self, body):
        """Malformed bodies should raise FormatError."""
        with pytest.raises(FormatError):
            decode_message(b"\x10" + body)

    def test_out_of_range(self):
        """Latitude beyond 90 degrees is rejected."""
        with pytest.raises(FormatError):
            decode_message(b"\x10" + b"91.0,2.0")
        with pytest.raises(ValidationError):
            Location(0.0, 181.0)


class TestImage:
    """Tests for image messages."""

    def test_encode(self):
        """Image body is blob id, big-endian size and nonce."""
        nonce = Nonce(bytes(range(24)))
        body = Image(BLOB_ID, 1000, nonce).encode_body()
        assert len(body) == 44
        assert body == BLOB_ID.value + struct.pack(">i", 1000) + nonce.value

    def test_roundtrip(self):
        """Decoding should restore the image reference."""
        msg = Image(BlobId.random(), 123456, Nonce.random())
        assert decode_message(msg.encode()) == msg

    def test_truncated(self):
        """Bodies of the wrong size should raise FormatError."""
        body = Image(BLOB_ID, 1, Nonce.random()).encode()
        with pytest.raises(FormatError):
            decode_message(body[:-1])
        with pytest.raises(FormatError):
            decode_message(body + b"\x00")

    def test_negative_size(self):
        """A negative size on the wire is malformed."""
        body = b"\x02" + BLOB_ID.value + struct.pack(">i", -1) + bytes(24)
        with pytest.raises(FormatError):
            decode_message(body)

    def test_from_blob(self, alice, bob):
        """Image messages reference uploaded image blobs."""
        blob = Blob.new_image(alice.private_key, bob.public_key).uploaded(BLOB_ID, 99)
        msg = Image.from_blob(blob)
        assert msg.nonce == blob.nonce
        assert msg.size == 99
        assert msg.open_blob(bob.private_key, alice.public_key) == blob

    def test_from_file_blob_rejected(self):
        """File blobs cannot be sent as images."""
        with pytest.raises(ValidationError):
            Image.from_blob(uploaded_file())


class TestFile:
    """Tests for file messages."""

    def test_encode_minimal(self):
        """Absent optional fields should not appear in the JSON."""
        body = File(uploaded_file(), "application/pdf").encode_body()
        assert body == (
            '{"b":"00112233445566778899aabbccddeeff",'
            '"k":"' + KEY.to_hex() + '",'
            '"m":"application/pdf","s":1234,"j":0}'
        ).encode("utf-8")

    def test_encode_full(self):
        """Optional fields appear when set."""
        thumb = Blob.of_file(KEY).thumbnail().uploaded(BlobId(bytes(16)), 10)
        msg = (FileBuilder(uploaded_file(), "image/png", RenderingType.MEDIA)
               .with_thumbnail(thumb)
               .with_filename("bild.png")
               .with_description("Ferien")
               .with_correlation_id("c1")
               .build())
        record = json.loads(msg.encode_body())
        assert record == {
            "b": BLOB_ID.to_hex(),
            "t": "00" * 16,
            "k": KEY.to_hex(),
            "m": "image/png",
            "n": "bild.png",
            "d": "Ferien",
            "c": "c1",
            "s": 1234,
            "j": 1,
        }

    def test_roundtrip(self):
        """Decoding should restore all fields."""
        msg = FileBuilder(uploaded_file(), "text/plain").with_filename("ä.txt").build()
        assert decode_message(msg.encode()) == msg

    def test_rendering_default(self):
        """A missing rendering type means default."""
        body = json.dumps({"b": BLOB_ID.to_hex(), "k": KEY.to_hex(),
                           "m": "a/b", "s": 1}).encode()
        msg = decode_message(b"\x17" + body)
        assert msg.rendering_type is RenderingType.DEFAULT

    @pytest.mark.parametrize("record", [
        {"k": KEY.to_hex(), "m": "a/b", "s": 1},
        {"b": BLOB_ID.to_hex(), "k": KEY.to_hex(), "m": "a/b"},
        {"b": BLOB_ID.to_hex(), "k": KEY.to_hex(), "m": None, "s": 1},
        {"b": BLOB_ID.to_hex(), "k": KEY.to_hex(), "m": "a/b", "s": "1"},
        {"b": BLOB_ID.to_hex(), "k": KEY.to_hex(), "m": "a/b", "s": 1, "j": 7},
        {"b": "00", "k": KEY.to_hex(), "m": "a/b", "s": 1},
    ])
    def test_malformed(self, record):
        """Missing or mistyped fields should raise FormatError."""
        with pytest.raises(FormatError):
            decode_message(b"\x17" + json.dumps(record).encode())

    def test_unknown_rendering_type(self):
        """An unknown rendering type ordinal is a validation error."""
        with pytest.raises(ValidationError):
            File(uploaded_file(), "a/b", 9)

    def test_not_json(self):
        """Non-JSON bodies should raise FormatError."""
        with pytest.raises(FormatError):
            decode_message(b"\x17{not json")

    def test_thumbnail_property(self):
        """The thumbnail shares the file key and uses the thumbnail nonce."""
        blob = Blob.new_file()
        thumb = blob.thumbnail().uploaded(BlobId.random(), 10)
        msg = FileBuilder(blob.uploaded(BLOB_ID, 500), "image/jpeg").with_thumbnail(thumb).build()
        assert msg.thumbnail.key == blob.key
        assert msg.thumbnail.nonce == THUMBNAIL_NONCE
        assert msg.thumbnail.blob_id == thumb.blob_id
        assert msg.thumbnail.purpose is BlobPurpose.THUMBNAIL

    def test_no_thumbnail(self):
        """Without thumbnail id there is no thumbnail."""
        assert File(uploaded_file(), "a/b").thumbnail is None

    def test_foreign_thumbnail_rejected(self):
        """A thumbnail of another file cannot be attached."""
        thumb = Blob.new_file().thumbnail().uploaded(BlobId.random(), 10)
        with pytest.raises(ValidationError):
            FileBuilder(uploaded_file(), "a/b").with_thumbnail(thumb)

    def test_file_blob_required(self, alice, bob):
        """Image blobs cannot be sent as files."""
        blob = Blob.new_image(alice.private_key, bob.public_key).uploaded(BLOB_ID, 1)
        with pytest.raises(ValidationError):
            File(blob, "image/png")

    def test_str(self):
        """str should list id, mime type and rendering."""
        msg = File(uploaded_file(), "text/plain", RenderingType.MEDIA)
        assert str(msg) == f"File[{BLOB_ID.to_hex()}, text/plain, MEDIA]"


class TestDeliveryReceipt:
    """Tests for delivery receipts."""

    def test_encode(self):
        """Receipt is the type ordinal followed by message ids."""
        msg = DeliveryReceipt(ReceiptType.READ, message_ids(["1111111111111111"]))
        assert msg.encode() == b"\x80\x02" + b"\x11" * 8

    def test_roundtrip(self):
        """Decoding should restore type and ids."""
        msg = DeliveryReceipt(ReceiptType.THUMBSUP, (MessageId.random(), MessageId.random()))
        assert decode_message(msg.encode()) == msg

    def test_no_ids(self):
        """A receipt without ids is valid."""
        assert decode_message(b"\x80\x01") == DeliveryReceipt(ReceiptType.RECEIVED)

    def test_str(self):
        """str should list type and ids."""
        msg = DeliveryReceipt(ReceiptType.READ,
                              message_ids(["1111111111111111", "2222222222222222"]))
        assert str(msg) == "DeliveryReceipt[READ, 1111111111111111, 2222222222222222]"

    @pytest.mark.parametrize("body", [b"", b"\x09", b"\x01\x00\x00\x00"])
    def test_malformed(self, body):
        """Missing type, unknown type or partial ids should raise FormatError."""
        with pytest.raises(FormatError):
            decode_message(b"\x80" + body)

    def test_unknown_receipt_type(self):
        """An unknown receipt type is a validation error."""
        with pytest.raises(ValidationError):
            DeliveryReceipt(7)
