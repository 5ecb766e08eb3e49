"""
Key pairs and key encoding.

Threema keys are Curve25519 keys as used by the NaCl box construction.
Their textual form is 64 lowercase hex digits.
"""

from dataclasses import dataclass
from typing import Optional

import nacl.exceptions
from nacl.public import PrivateKey, PublicKey

from .errors import ValidationError
from .randomness import RandomSource, resolve
from .values import Identity, from_hex, to_hex


KEY_SIZE = 32  # bytes, public and private
QRCODE_PREFIX = "3mid"


@dataclass
class KeyPair:
    """Curve25519 key pair container."""
    private_key: Optional[PrivateKey]
    public_key: PublicKey

    @classmethod
    def generate(cls, rng: Optional[RandomSource] = None) -> 'KeyPair':
        """Generate a new random key pair."""
        private_key = PrivateKey(resolve(rng).token_bytes(KEY_SIZE))
        return cls(private_key, private_key.public_key)

    @classmethod
    def from_private_hex(cls, hex_str: str) -> 'KeyPair':
        private_key = decode_private_key(hex_str)
        return cls(private_key, private_key.public_key)

    @classmethod
    def from_public_hex(cls, hex_str: str) -> 'KeyPair':
        """Create KeyPair from a public key only."""
        return cls(None, decode_public_key(hex_str))

    def public_hex(self) -> str:
        return encode_public_key(self.public_key)

    def private_hex(self) -> str:
        if self.private_key is None:
            raise ValueError("Key pair has no private key")
        return encode_private_key(self.private_key)


def encode_public_key(key: PublicKey) -> str:
    """Encode a public key as 64 hex digits."""
    return to_hex(bytes(key))


def encode_private_key(key: PrivateKey) -> str:
    """Encode a private key as 64 hex digits."""
    return to_hex(bytes(key))


def _key_bytes(hex_str: str, kind: str) -> bytes:
    raw = from_hex(hex_str)
    if len(raw) != KEY_SIZE:
        raise ValidationError(
            f"Illegal {kind} key size: {len(raw)} bytes (expected {KEY_SIZE})",
            expected=KEY_SIZE,
            actual=len(raw),
        )
    return raw


def decode_public_key(hex_str: str) -> PublicKey:
    """
    Decode a public key.

    Args:
        hex_str: 64 digit hex string

    Returns:
        PublicKey

    Raises:
        ValidationError: On invalid hex or wrong length
    """
    raw = _key_bytes(hex_str, "public")
    try:
        return PublicKey(raw)
    except nacl.exceptions.CryptoError as e:
        raise ValidationError("Invalid public key") from e


def decode_private_key(hex_str: str) -> PrivateKey:
    """Decode a private key from 64 hex digits."""
    raw = _key_bytes(hex_str, "private")
    try:
        return PrivateKey(raw)
    except nacl.exceptions.CryptoError as e:
        raise ValidationError("Invalid private key") from e


def public_key_of(private_key: PrivateKey) -> PublicKey:
    """Derive the public key belonging to a private key."""
    return private_key.public_key


def qrcode_text(identity: Identity, public_key: PublicKey) -> str:
    """
    Text of the QR code used to exchange Threema IDs.

    Scanning it lets users establish a direct trust relationship with e.g.
    a gateway ID.
    """
    return f"{QRCODE_PREFIX}:{identity.value},{encode_public_key(public_key)}"
