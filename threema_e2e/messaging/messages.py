"""
Plain Message Module

Unencrypted messages and their binary encoding. Every message starts with a
one byte type tag followed by a type specific body:

    Text             0x01  UTF-8 text
    Image            0x02  blob id (16) | size (4, big-endian) | nonce (24)
    Location         0x10  "lat,lon[,accuracy]" [\\n name] [\\n address]
    File             0x17  UTF-8 JSON with single letter keys
    DeliveryReceipt  0x80  receipt type (1) | message ids (8 each)

Padding is not part of this encoding; see padding.py.
"""

import json
import math
import re
import struct
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import IntEnum
from typing import ClassVar, Dict, Iterable, Optional, Tuple, Type

from nacl.public import PrivateKey, PublicKey

from ..core.errors import FormatError, UnknownTypeError, ValidationError
from ..core.values import BlobId, MessageId, Nonce, SymmetricKey
from ..files.blob import (
    Blob, BlobPurpose, UploadedBlob, THUMBNAIL_NONCE, image_key,
)


IMAGE_BODY_SIZE = BlobId.SIZE + 4 + Nonce.SIZE   # 44 bytes

# ASCII decimal number, optional exponent; no separators or surrounding space
_DECIMAL = re.compile(r'-?(?:[0-9]+(?:\.[0-9]*)?|\.[0-9]+)(?:[eE][+-]?[0-9]+)?')


class PlainMessage(ABC):
    """Base class of all message types. Subclasses are frozen dataclasses."""
    TYPE: ClassVar[int]

    @property
    def type(self) -> int:
        return self.TYPE

    @abstractmethod
    def encode_body(self) -> bytes:
        """Encode the body, without type tag."""

    @classmethod
    @abstractmethod
    def decode_body(cls, body: bytes) -> 'PlainMessage':
        """Decode a body, without type tag."""

    def encode(self) -> bytes:
        return encode_message(self)


# ============================================================================
# Text
# ============================================================================

@dataclass(frozen=True)
class Text(PlainMessage):
    """Simple text message."""
    TYPE: ClassVar[int] = 0x01

    text: str

    def encode_body(self) -> bytes:
        return self.text.encode('utf-8')

    @classmethod
    def decode_body(cls, body: bytes) -> 'Text':
        try:
            return cls(body.decode('utf-8'))
        except UnicodeDecodeError as e:
            raise FormatError("Text message is not valid UTF-8") from e

    def __str__(self) -> str:
        return f"Text[{self.text}]"


# ============================================================================
# Location
# ============================================================================

@dataclass(frozen=True)
class Location(PlainMessage):
    """
    Geographic position with optional accuracy (meters), name and address.

    A name is only transmitted together with an address.
    """
    TYPE: ClassVar[int] = 0x10

    latitude: float
    longitude: float
    accuracy: Optional[float] = None
    name: Optional[str] = None
    address: Optional[str] = None

    def __post_init__(self):
        for label, value in (('latitude', self.latitude),
                             ('longitude', self.longitude),
                             ('accuracy', self.accuracy)):
            if value is not None and not math.isfinite(value):
                raise ValidationError(f"Location {label} must be finite")
        if not -90.0 <= self.latitude <= 90.0:
            raise ValidationError(f"Latitude out of range: {self.latitude}")
        if not -180.0 <= self.longitude <= 180.0:
            raise ValidationError(f"Longitude out of range: {self.longitude}")
        if self.accuracy is not None and self.accuracy < 0:
            raise ValidationError(f"Accuracy must not be negative: {self.accuracy}")
        if self.name is not None and self.address is None:
            raise ValidationError("Location name requires an address")
        for label, value in (('name', self.name), ('address', self.address)):
            if value is not None and '\n' in value:
                raise ValidationError(f"Location {label} must be a single line")

    def encode_body(self) -> bytes:
        coordinates = [repr(float(self.latitude)), repr(float(self.longitude))]
        if self.accuracy is not None:
            coordinates.append(repr(float(self.accuracy)))
        lines = [','.join(coordinates)]
        if self.name is not None:
            lines.append(self.name)
        if self.address is not None:
            lines.append(self.address)
        return '\n'.join(lines).encode('utf-8')

    @classmethod
    def decode_body(cls, body: bytes) -> 'Location':
        try:
            lines = body.decode('utf-8').split('\n')
        except UnicodeDecodeError as e:
            raise FormatError("Location message is not valid UTF-8") from e

        if len(lines) > 3:
            raise FormatError(f"Location message has {len(lines)} lines, at most 3 allowed")

        parts = lines[0].split(',')
        if len(parts) not in (2, 3):
            raise FormatError(f"Location needs 2 or 3 coordinates, got {len(parts)}")
        for p in parts:
            if not _DECIMAL.fullmatch(p):
                raise FormatError(f"Invalid location coordinate: {p!r}")
        numbers = [float(p) for p in parts]
        if not all(math.isfinite(n) for n in numbers):
            raise FormatError("Location coordinates must be finite")

        name = address = None
        if len(lines) == 2:
            address = lines[1]
        elif len(lines) == 3:
            name, address = lines[1], lines[2]

        return cls(
            latitude=numbers[0],
            longitude=numbers[1],
            accuracy=numbers[2] if len(numbers) == 3 else None,
            name=name,
            address=address,
        )


# ============================================================================
# Image
# ============================================================================

@dataclass(frozen=True)
class Image(PlainMessage):
    """
    Reference to an encrypted image blob.

    The blob key is not transmitted; both sides derive it from their keys.
    """
    TYPE: ClassVar[int] = 0x02

    blob_id: BlobId
    size: int
    nonce: Nonce

    def __post_init__(self):
        if not 0 <= self.size < 2 ** 31:
            raise ValidationError(f"Illegal image size: {self.size}")

    @classmethod
    def from_blob(cls, blob: UploadedBlob) -> 'Image':
        """Image message for an uploaded image blob."""
        if blob.purpose is not BlobPurpose.IMAGE:
            raise ValidationError(
                f"Image messages need an image blob, got {blob.purpose.value}"
            )
        return cls(blob.blob_id, blob.size, blob.nonce)

    def blob(self, key: SymmetricKey) -> UploadedBlob:
        """Rebuild the uploaded blob for download and decryption."""
        return UploadedBlob(key, self.nonce, BlobPurpose.IMAGE, self.blob_id, self.size)

    def open_blob(self, private_key: PrivateKey, public_key: PublicKey) -> UploadedBlob:
        """Rebuild the uploaded blob, deriving the key from own and peer keys."""
        return self.blob(image_key(private_key, public_key))

    def encode_body(self) -> bytes:
        return self.blob_id.value + struct.pack('>i', self.size) + self.nonce.value

    @classmethod
    def decode_body(cls, body: bytes) -> 'Image':
        if len(body) != IMAGE_BODY_SIZE:
            raise FormatError(
                f"Image body must be {IMAGE_BODY_SIZE} bytes, got {len(body)}"
            )
        offset = 0

        blob_id = BlobId(body[offset:offset + BlobId.SIZE])
        offset += BlobId.SIZE

        size = struct.unpack('>i', body[offset:offset + 4])[0]
        offset += 4

        nonce = Nonce(body[offset:offset + Nonce.SIZE])

        return cls(blob_id, size, nonce)

    def __str__(self) -> str:
        return f"Image[{self.blob_id.to_hex()}, {self.size}]"


# ============================================================================
# File
# ============================================================================

class RenderingType(IntEnum):
    """Hint how the file content should be rendered."""
    DEFAULT = 0
    MEDIA = 1
    STICKER = 2


@dataclass(frozen=True)
class File(PlainMessage):
    """
    File message referencing a file blob and an optional thumbnail blob.

    Build instances with :class:`FileBuilder` when optional fields are needed.
    """
    TYPE: ClassVar[int] = 0x17

    file: UploadedBlob
    mimetype: str
    rendering_type: RenderingType = RenderingType.DEFAULT
    thumbnail_id: Optional[BlobId] = None
    filename: Optional[str] = None
    description: Optional[str] = None
    correlation_id: Optional[str] = None

    def __post_init__(self):
        if self.file.purpose is not BlobPurpose.FILE:
            raise ValidationError(
                f"File messages need a file blob, got {self.file.purpose.value}"
            )
        try:
            rendering_type = RenderingType(self.rendering_type)
        except ValueError as e:
            raise ValidationError(f"Unknown rendering type: {self.rendering_type!r}") from e
        object.__setattr__(self, 'rendering_type', rendering_type)

    @property
    def thumbnail(self) -> Optional[UploadedBlob]:
        """
        Thumbnail blob, if any.

        Thumbnail sizes are not transmitted, so the file size is reported.
        """
        if self.thumbnail_id is None:
            return None
        return self.file.thumbnail().uploaded(self.thumbnail_id, self.file.size)

    def to_json_record(self) -> Dict[str, object]:
        """JSON record as sent on the wire; absent optionals are omitted."""
        record: Dict[str, object] = {'b': self.file.blob_id.to_hex()}
        if self.thumbnail_id is not None:
            record['t'] = self.thumbnail_id.to_hex()
        record['k'] = self.file.key.to_hex()
        record['m'] = self.mimetype
        if self.filename is not None:
            record['n'] = self.filename
        if self.description is not None:
            record['d'] = self.description
        if self.correlation_id is not None:
            record['c'] = self.correlation_id
        record['s'] = self.file.size
        record['j'] = int(self.rendering_type)
        return record

    def encode_body(self) -> bytes:
        return json.dumps(self.to_json_record(), separators=(',', ':'),
                          ensure_ascii=False).encode('utf-8')

    @classmethod
    def decode_body(cls, body: bytes) -> 'File':
        try:
            record = json.loads(body.decode('utf-8'))
        except (UnicodeDecodeError, json.JSONDecodeError) as e:
            raise FormatError("File message is not valid JSON") from e
        if not isinstance(record, dict):
            raise FormatError("File message must be a JSON object")

        for key in ('b', 'k', 'm', 's'):
            if key not in record:
                raise FormatError(f"File message lacks field '{key}'")

        size = record['s']
        ordinal = record.get('j', RenderingType.DEFAULT)
        for label, value in (('s', size), ('j', ordinal)):
            if isinstance(value, bool) or not isinstance(value, int):
                raise FormatError(f"File field '{label}' must be an integer")
        try:
            rendering_type = RenderingType(ordinal)
        except ValueError as e:
            raise FormatError(f"Unknown rendering type: {ordinal}") from e

        texts = {}
        for key in ('b', 't', 'k', 'm', 'n', 'd', 'c'):
            value = record.get(key)
            if value is not None and not isinstance(value, str):
                raise FormatError(f"File field '{key}' must be a string")
            texts[key] = value
        for key in ('b', 'k', 'm'):
            if texts[key] is None:
                raise FormatError(f"File field '{key}' must not be null")

        blob = Blob.of_file(SymmetricKey.from_hex(texts['k']))
        thumbnail_id = BlobId.from_hex(texts['t']) if texts['t'] is not None else None

        return cls(
            file=blob.uploaded(BlobId.from_hex(texts['b']), size),
            mimetype=texts['m'],
            rendering_type=rendering_type,
            thumbnail_id=thumbnail_id,
            filename=texts['n'],
            description=texts['d'],
            correlation_id=texts['c'],
        )

    def __str__(self) -> str:
        parts = [self.file.blob_id.to_hex()]
        if self.thumbnail_id is not None:
            parts.append(self.thumbnail_id.to_hex())
        parts.append(self.mimetype)
        if self.description is not None:
            parts.append(self.description)
        parts.append(self.rendering_type.name)
        return f"File[{', '.join(parts)}]"


class FileBuilder:
    """
    Collects the optional fields of a file message.

    Example:
        >>> msg = (FileBuilder(uploaded_file, "application/pdf")
        ...        .with_filename("report.pdf")
        ...        .with_thumbnail(uploaded_thumbnail)
        ...        .build())
    """

    def __init__(self, file: UploadedBlob, mimetype: str,
                 rendering_type: RenderingType = RenderingType.DEFAULT):
        self._file = file
        self._mimetype = mimetype
        self._rendering_type = rendering_type
        self._thumbnail_id: Optional[BlobId] = None
        self._filename: Optional[str] = None
        self._description: Optional[str] = None
        self._correlation_id: Optional[str] = None

    def with_thumbnail(self, thumbnail: UploadedBlob) -> 'FileBuilder':
        """Thumbnail must be derived from the file blob (same key)."""
        if thumbnail.purpose is not BlobPurpose.THUMBNAIL or thumbnail.nonce != THUMBNAIL_NONCE:
            raise ValidationError("Thumbnail blob expected")
        if thumbnail.key != self._file.key:
            raise ValidationError("Thumbnail key differs from file key")
        self._thumbnail_id = thumbnail.blob_id
        return self

    def with_filename(self, filename: str) -> 'FileBuilder':
        self._filename = filename
        return self

    def with_description(self, description: str) -> 'FileBuilder':
        self._description = description
        return self

    def with_correlation_id(self, correlation_id: str) -> 'FileBuilder':
        self._correlation_id = correlation_id
        return self

    def build(self) -> File:
        return File(
            file=self._file,
            mimetype=self._mimetype,
            rendering_type=self._rendering_type,
            thumbnail_id=self._thumbnail_id,
            filename=self._filename,
            description=self._description,
            correlation_id=self._correlation_id,
        )


# ============================================================================
# Delivery Receipt
# ============================================================================

class ReceiptType(IntEnum):
    """The type of receipt."""
    UNDEFINED = 0   # reserves 0x00
    RECEIVED = 1
    READ = 2
    THUMBSUP = 3
    THUMBSDOWN = 4


@dataclass(frozen=True)
class DeliveryReceipt(PlainMessage):
    """Receipt for one or more previously received messages."""
    TYPE: ClassVar[int] = 0x80

    receipt_type: ReceiptType
    message_ids: Tuple[MessageId, ...] = ()

    def __post_init__(self):
        try:
            receipt_type = ReceiptType(self.receipt_type)
        except ValueError as e:
            raise ValidationError(f"Unknown receipt type: {self.receipt_type!r}") from e
        object.__setattr__(self, 'receipt_type', receipt_type)
        object.__setattr__(self, 'message_ids', tuple(self.message_ids))

    def encode_body(self) -> bytes:
        return bytes([self.receipt_type]) + b''.join(m.value for m in self.message_ids)

    @classmethod
    def decode_body(cls, body: bytes) -> 'DeliveryReceipt':
        if not body:
            raise FormatError("Delivery receipt lacks receipt type")
        try:
            receipt_type = ReceiptType(body[0])
        except ValueError as e:
            raise FormatError(f"Unknown receipt type: {body[0]}") from e

        ids = body[1:]
        if len(ids) % MessageId.SIZE:
            raise FormatError(
                f"Delivery receipt has {len(ids)} id bytes, not a multiple of {MessageId.SIZE}"
            )
        message_ids = [
            MessageId(ids[i:i + MessageId.SIZE])
            for i in range(0, len(ids), MessageId.SIZE)
        ]
        return cls(receipt_type, tuple(message_ids))

    def __str__(self) -> str:
        parts = [self.receipt_type.name] + [m.to_hex() for m in self.message_ids]
        return f"DeliveryReceipt[{', '.join(parts)}]"


# ============================================================================
# Codec
# ============================================================================

MESSAGE_TYPES: Dict[int, Type[PlainMessage]] = {
    cls.TYPE: cls for cls in (Text, Image, Location, File, DeliveryReceipt)
}


def encode_message(message: PlainMessage) -> bytes:
    """
    Encode a message as type tag followed by its body.

    Args:
        message: Any PlainMessage

    Returns:
        Unpadded binary message
    """
    if MESSAGE_TYPES.get(message.TYPE) is not type(message):
        raise UnknownTypeError(message.TYPE)
    return bytes([message.TYPE]) + message.encode_body()


def decode_message(data: bytes) -> PlainMessage:
    """
    Decode an unpadded binary message into its message type.

    Raises:
        UnknownTypeError: If the type tag is not known
        FormatError: If the body is truncated or malformed
    """
    if not data:
        raise FormatError("Empty message")

    message_class = MESSAGE_TYPES.get(data[0])
    if message_class is None:
        raise UnknownTypeError(data[0])

    try:
        return message_class.decode_body(bytes(data[1:]))
    except ValidationError as e:
        raise FormatError(f"Invalid {message_class.__name__} message: {e}") from e


def message_ids(ids: Iterable[str]) -> Tuple[MessageId, ...]:
    """MessageIds from hex strings, e.g. for a DeliveryReceipt."""
    return tuple(MessageId.from_hex(i) for i in ids)
