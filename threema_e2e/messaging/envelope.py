"""
Message Encryption Module

End-to-end encryption of plain messages with the NaCl public-key box
(Curve25519 key agreement, XSalsa20 encryption, Poly1305 tag).

Pipeline:
    outbound  message -> encode -> pad -> box      -> EncryptedMessage
    inbound   EncryptedMessage  -> open -> unpad -> decode -> message

Security notes:
- A fresh random 24 byte nonce for every message
- Tampering and wrong keys fail the same way (no decryption oracle)
- Encrypted content is limited to 4000 bytes; the limit is checked before
  anything leaves the process
"""

import logging
from dataclasses import dataclass
from typing import Dict, Optional

import nacl.exceptions
from nacl.public import Box, PrivateKey, PublicKey
from nacl.secret import SecretBox

from ..core.errors import AuthenticationError, ThreemaError, ValidationError
from ..core.keys import KeyPair, encode_public_key
from ..core.randomness import RandomSource
from ..core.values import Identity, Nonce, from_hex, to_hex
from ..files.blob import Blob
from ..integration.event_logger import EventLogger
from .messages import PlainMessage, decode_message, encode_message
from .padding import pad, unpad


logger = logging.getLogger(__name__)

# Constants
MAX_CONTENT_LENGTH = 4000   # bytes of ciphertext including tag
TAG_SIZE = SecretBox.MACBYTES   # 16 bytes Poly1305 tag, same for the public-key box


@dataclass(frozen=True)
class EncryptedMessage:
    """
    Encrypted message content and the nonce used to create it.

    Transport form is lowercase hex for both parts.
    """
    ciphertext: bytes   # ciphertext with tag, at most 4000 bytes
    nonce: Nonce

    def __post_init__(self):
        if isinstance(self.ciphertext, (bytearray, memoryview)):
            object.__setattr__(self, 'ciphertext', bytes(self.ciphertext))
        if not isinstance(self.nonce, Nonce):
            raise ValidationError(f"Nonce expected, got {type(self.nonce).__name__}")
        if len(self.ciphertext) > MAX_CONTENT_LENGTH:
            raise ValidationError(
                f"Content too large: {len(self.ciphertext)}",
                expected=MAX_CONTENT_LENGTH,
                actual=len(self.ciphertext),
            )

    def to_hex(self) -> str:
        return to_hex(self.ciphertext)

    @classmethod
    def from_hex(cls, box_hex: str, nonce_hex: str) -> 'EncryptedMessage':
        """Create from the hex encoded box and nonce of the transport form."""
        return cls(from_hex(box_hex), Nonce.from_hex(nonce_hex))

    def to_params(self, to: Identity) -> Dict[str, str]:
        """Form fields addressing this message to a receiver."""
        return {
            'to': to.value,
            'box': self.to_hex(),
            'nonce': self.nonce.to_hex(),
        }

    def decrypt(self, sender_public: PublicKey, receiver_private: PrivateKey) -> PlainMessage:
        return decrypt_message(self, sender_public, receiver_private)

    def __repr__(self) -> str:
        return f"EncryptedMessage[{len(self.ciphertext)} bytes, {self.nonce.to_hex()}]"


def _seal(box: Box, message: PlainMessage,
          rng: Optional[RandomSource]) -> EncryptedMessage:
    padded = pad(encode_message(message), rng)

    if len(padded) + TAG_SIZE > MAX_CONTENT_LENGTH:
        raise ValidationError(
            f"Content too large: {len(padded) + TAG_SIZE}",
            expected=MAX_CONTENT_LENGTH,
            actual=len(padded) + TAG_SIZE,
        )

    nonce = Nonce.random(rng)
    ciphertext = box.encrypt(padded, nonce.value).ciphertext
    logger.debug("encrypted message type=0x%02x size=%d", message.TYPE, len(ciphertext))
    return EncryptedMessage(ciphertext, nonce)


def _open(box: Box, encrypted: EncryptedMessage) -> PlainMessage:
    try:
        padded = box.decrypt(encrypted.ciphertext, encrypted.nonce.value)
    except nacl.exceptions.CryptoError as e:
        # Same outcome for tampered content and wrong keys
        logger.warning("message authentication failed (size=%d)", len(encrypted.ciphertext))
        raise AuthenticationError("Message could not be authenticated") from e

    return decode_message(unpad(padded))


def encrypt_message(message: PlainMessage, sender_private: PrivateKey,
                    receiver_public: PublicKey,
                    rng: Optional[RandomSource] = None) -> EncryptedMessage:
    """
    Encode, pad and encrypt a message.

    Args:
        message: Message to send
        sender_private: Sender's private key
        receiver_public: Receiver's public key
        rng: Optional randomness source for padding and nonce

    Returns:
        EncryptedMessage with fresh nonce

    Raises:
        ValidationError: If the encrypted content would exceed 4000 bytes
    """
    return _seal(Box(sender_private, receiver_public), message, rng)


def decrypt_message(encrypted: EncryptedMessage, sender_public: PublicKey,
                    receiver_private: PrivateKey) -> PlainMessage:
    """
    Decrypt, unpad and decode a message.

    Raises:
        AuthenticationError: If the tag does not verify
        FormatError: If padding or body are malformed
        UnknownTypeError: If the message type is not known
    """
    return _open(Box(receiver_private, sender_public), encrypted)


class MessageChannel:
    """
    Message exchange between an own key pair and one peer.

    The key agreement is computed once in :meth:`establish` and reused for
    every message in both directions.

    Example:
        # Gateway side
        gateway = MessageChannel(gateway_keys)
        gateway.establish(user_public_key)
        encrypted = gateway.encrypt(Text("Hello"))

        # User side
        user = MessageChannel(user_keys)
        user.establish(gateway_public_key)
        message = user.decrypt(encrypted)
    """

    def __init__(self, identity_keys: KeyPair,
                 rng: Optional[RandomSource] = None,
                 event_logger: Optional[EventLogger] = None):
        """
        Initialize message channel with identity keys.

        Args:
            identity_keys: Own long-term key pair (private key required)
            rng: Optional randomness source for padding and nonces
            event_logger: Optional audit trail
        """
        if identity_keys.private_key is None:
            raise ValueError("Private key required for a message channel")
        self._identity_keys = identity_keys
        self._rng = rng
        self._event_logger = event_logger
        self._box: Optional[Box] = None
        self._peer_public_key: Optional[PublicKey] = None

    @property
    def public_key(self) -> PublicKey:
        return self._identity_keys.public_key

    @property
    def peer_public_key(self) -> Optional[PublicKey]:
        return self._peer_public_key

    @property
    def is_established(self) -> bool:
        """Check if channel has been established."""
        return self._box is not None

    def _peer_label(self) -> Optional[str]:
        if self._peer_public_key is None:
            return None
        return encode_public_key(self._peer_public_key)

    def establish(self, peer_public_key: PublicKey) -> None:
        """Compute the key agreement with the peer's public key."""
        self._peer_public_key = peer_public_key
        self._box = Box(self._identity_keys.private_key, peer_public_key)
        if self._event_logger is not None:
            self._event_logger.log_key_agreement(self._peer_label())

    def _require_box(self) -> Box:
        if self._box is None:
            raise RuntimeError("Channel not established. Call establish() first.")
        return self._box

    def encrypt(self, message: PlainMessage) -> EncryptedMessage:
        """Encrypt a message for the peer."""
        encrypted = _seal(self._require_box(), message, self._rng)
        if self._event_logger is not None:
            self._event_logger.log_message_encrypt(
                self._peer_label(), message.TYPE, len(encrypted.ciphertext))
        return encrypted

    def decrypt(self, encrypted: EncryptedMessage) -> PlainMessage:
        """
        Decrypt a message from the peer.

        Raises:
            AuthenticationError: If the tag does not verify
        """
        box = self._require_box()
        try:
            message = _open(box, encrypted)
        except ThreemaError as e:
            if self._event_logger is not None:
                self._event_logger.log_message_rejected(self._peer_label(), type(e).__name__)
            raise
        if self._event_logger is not None:
            self._event_logger.log_message_decrypt(self._peer_label(), message.TYPE)
        return message

    def new_image_blob(self) -> Blob:
        """Image blob whose key the peer can derive from its own keys."""
        return Blob.new_image(self._identity_keys.private_key,
                              self._require_peer(), self._rng)

    def _require_peer(self) -> PublicKey:
        self._require_box()
        return self._peer_public_key
