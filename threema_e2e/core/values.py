"""
Fixed-length value types.

Every identifier of the protocol is an immutable value with an exact size.
The sizes are checked once, on construction, by a shared base class:

    Identity      8 ASCII characters
    MessageId     8 bytes
    Nonce        24 bytes
    BlobId       16 bytes
    Hash         32 bytes
    SymmetricKey 32 bytes

Values compare equal only when both type and content match, so a 32 byte
Hash never equals a 32 byte SymmetricKey with the same bytes.
"""

from dataclasses import dataclass
from typing import ClassVar, Optional, Type, TypeVar, Union

from .errors import ValidationError
from .randomness import RandomSource, resolve


T = TypeVar('T', bound='FixedBytes')


def to_hex(data: bytes) -> str:
    """Lowercase hex, two digits per byte."""
    return bytes(data).hex()


def from_hex(hex_str: str) -> bytes:
    """
    Decode a hex string.

    Raises:
        ValidationError: If the string is not valid hex
    """
    try:
        return bytes.fromhex(hex_str)
    except (TypeError, ValueError) as e:
        raise ValidationError(f"Invalid hex string ({len(hex_str or '')} chars)") from e


@dataclass(frozen=True, repr=False)
class FixedBytes:
    """Base class for byte values of one exact length."""
    SIZE: ClassVar[int] = 0

    value: bytes

    def __post_init__(self):
        if isinstance(self.value, (bytearray, memoryview)):
            object.__setattr__(self, 'value', bytes(self.value))
        if not isinstance(self.value, bytes):
            raise ValidationError(
                f"{type(self).__name__} requires bytes, got {type(self.value).__name__}"
            )
        if len(self.value) != self.SIZE:
            raise ValidationError(
                f"Illegal {type(self).__name__} size: {len(self.value)} bytes "
                f"(expected {self.SIZE})",
                expected=self.SIZE,
                actual=len(self.value),
            )

    @classmethod
    def of(cls: Type[T], value: Union[bytes, bytearray, str]) -> T:
        """Create from raw bytes or from a hex string."""
        if isinstance(value, str):
            return cls.from_hex(value)
        return cls(value)

    @classmethod
    def from_hex(cls: Type[T], hex_str: str) -> T:
        return cls(from_hex(hex_str))

    @classmethod
    def random(cls: Type[T], rng: Optional[RandomSource] = None) -> T:
        """Fresh value from a secure random source."""
        return cls(resolve(rng).token_bytes(cls.SIZE))

    def to_hex(self) -> str:
        return to_hex(self.value)

    def __bytes__(self) -> bytes:
        return self.value

    def __len__(self) -> int:
        return len(self.value)

    def __repr__(self) -> str:
        return f"{type(self).__name__}[{self.to_hex()}]"


class MessageId(FixedBytes):
    """Unique 8 byte id of every message."""
    SIZE = 8


class Nonce(FixedBytes):
    """Nonce (24 bytes) used for every encrypted content."""
    SIZE = 24


class BlobId(FixedBytes):
    """16 byte identifier the server assigns to uploaded blobs."""
    SIZE = 16


class Hash(FixedBytes):
    """32 byte keyed hash of a phone number or email address."""
    SIZE = 32


class SymmetricKey(FixedBytes):
    """32 byte key for SecretBox encryption."""
    SIZE = 32

    def __repr__(self) -> str:
        # Key material stays out of logs and tracebacks
        return f"{type(self).__name__}[{self.SIZE} bytes]"


@dataclass(frozen=True, repr=False)
class Identity:
    """Eight character Threema ID."""
    SIZE: ClassVar[int] = 8

    value: str

    def __post_init__(self):
        if not isinstance(self.value, str):
            raise ValidationError(
                f"Identity requires str, got {type(self.value).__name__}"
            )
        if len(self.value) != self.SIZE:
            raise ValidationError(
                f"Illegal Identity length: {len(self.value)} chars (expected {self.SIZE})",
                expected=self.SIZE,
                actual=len(self.value),
            )
        if not self.value.isascii():
            raise ValidationError("Identity must be ASCII")

    @classmethod
    def of(cls, value: str) -> 'Identity':
        return cls(value)

    def __str__(self) -> str:
        return self.value

    def __repr__(self) -> str:
        return f"Identity[{self.value}]"
