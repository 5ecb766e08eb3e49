"""
Blob Encryption Module

Key and nonce handling for out-of-band attachments ("blobs"). The blob bytes
are uploaded separately from the message; the message only carries what the
receiver needs to download and decrypt them.

Keying by purpose:
    file       fresh random key, fixed nonce 00..01
    thumbnail  key of its file blob, fixed nonce 00..02
    image      key agreed between sender and receiver keys, random nonce

Fixed nonces are safe for files and thumbnails only because every file key
is random and used for exactly one file and one thumbnail. Image keys come
from long-term key material and repeat between messages, so image nonces
must be random.

Encryption is NaCl SecretBox (XSalsa20-Poly1305), the output being
ciphertext with a 16 byte tag.
"""

import logging
import os
from dataclasses import dataclass
from enum import Enum
from typing import Optional

import nacl.exceptions
from nacl.public import Box, PrivateKey, PublicKey
from nacl.secret import SecretBox

from ..core.errors import AuthenticationError, ValidationError
from ..core.randomness import RandomSource
from ..core.values import BlobId, Nonce, SymmetricKey
from ..integration.event_logger import EventLogger


logger = logging.getLogger(__name__)

# Constants
FILE_NONCE = Nonce(bytes(23) + b"\x01")
THUMBNAIL_NONCE = Nonce(bytes(23) + b"\x02")
TAG_SIZE = SecretBox.MACBYTES   # 16 bytes Poly1305 tag
MAX_BLOB_SIZE = 2 ** 31 - 1     # sizes travel as signed 32 bit integers


class BlobPurpose(Enum):
    """What a blob is used for; decides how key and nonce are chosen."""
    IMAGE = "image"
    FILE = "file"
    THUMBNAIL = "thumbnail"


@dataclass(frozen=True)
class Blob:
    """
    Key and nonce to encrypt or decrypt one blob.

    Use the factory methods rather than the constructor:

        >>> blob = Blob.new_file()
        >>> encrypted = blob.encrypt(b"file content")
        >>> thumb = blob.thumbnail()
    """
    key: SymmetricKey
    nonce: Nonce
    purpose: BlobPurpose

    # Factory methods

    @classmethod
    def new_file(cls, rng: Optional[RandomSource] = None) -> 'Blob':
        """New file blob with a fresh random key."""
        return cls.of_file(SymmetricKey.random(rng))

    @classmethod
    def of_file(cls, key: SymmetricKey) -> 'Blob':
        """File blob for a known key, e.g. one taken from a received message."""
        return cls(key, FILE_NONCE, BlobPurpose.FILE)

    @classmethod
    def new_image(cls, private_key: PrivateKey, public_key: PublicKey,
                  rng: Optional[RandomSource] = None) -> 'Blob':
        """
        New image blob for a sender/receiver pair.

        No key has to be transported: the receiver derives the same key
        from its private key and the sender's public key.

        Args:
            private_key: Own private key
            public_key: The other party's public key
            rng: Optional randomness source for the nonce
        """
        return cls(image_key(private_key, public_key), Nonce.random(rng),
                   BlobPurpose.IMAGE)

    def thumbnail(self) -> 'Blob':
        """Thumbnail blob sharing the key of this file blob."""
        if self.purpose is not BlobPurpose.FILE:
            raise ValidationError(
                f"Thumbnails belong to file blobs, not {self.purpose.value} blobs"
            )
        return Blob(self.key, THUMBNAIL_NONCE, BlobPurpose.THUMBNAIL)

    def as_blob(self) -> 'Blob':
        return Blob(self.key, self.nonce, self.purpose)

    def uploaded(self, blob_id: BlobId, size: int) -> 'UploadedBlob':
        """
        Attach upload information. Has no cryptographic effect.

        Args:
            blob_id: ID assigned by the server
            size: Size of the encrypted content in bytes
        """
        return UploadedBlob(self.key, self.nonce, self.purpose, blob_id, size)

    def encrypt(self, plaintext: bytes) -> bytes:
        """
        Encrypt blob content.

        Returns:
            Ciphertext with tag (len(plaintext) + 16 bytes)
        """
        box = SecretBox(self.key.value)
        return box.encrypt(bytes(plaintext), self.nonce.value).ciphertext

    def decrypt(self, ciphertext: bytes) -> bytes:
        """
        Decrypt and verify blob content.

        Raises:
            AuthenticationError: If the tag does not verify
        """
        box = SecretBox(self.key.value)
        try:
            return box.decrypt(bytes(ciphertext), self.nonce.value)
        except nacl.exceptions.CryptoError as e:
            logger.warning("blob authentication failed (purpose=%s, size=%d)",
                           self.purpose.value, len(ciphertext))
            raise AuthenticationError(
                f"{self.purpose.value} blob could not be authenticated"
            ) from e


@dataclass(frozen=True)
class UploadedBlob(Blob):
    """A blob plus the ID and encrypted size of its upload."""
    blob_id: BlobId
    size: int

    def __post_init__(self):
        if isinstance(self.size, bool) or not isinstance(self.size, int):
            raise ValidationError(f"Blob size must be int, got {type(self.size).__name__}")
        if not 0 <= self.size <= MAX_BLOB_SIZE:
            raise ValidationError(f"Illegal blob size: {self.size}")


def image_key(private_key: PrivateKey, public_key: PublicKey) -> SymmetricKey:
    """Key agreed between own private key and the other party's public key."""
    return SymmetricKey(Box(private_key, public_key).shared_key())


def encrypt_blob(blob: Blob, plaintext: bytes) -> bytes:
    """Encrypt blob content with the blob's key and nonce."""
    return blob.encrypt(plaintext)


def decrypt_blob(blob: Blob, ciphertext: bytes) -> bytes:
    """Decrypt blob content; raises AuthenticationError on tag mismatch."""
    return blob.decrypt(ciphertext)


def uploaded(blob: Blob, blob_id: BlobId, size: int) -> UploadedBlob:
    return blob.uploaded(blob_id, size)


def encrypt_blob_file(blob: Blob, input_path: str, output_path: str,
                      event_logger: Optional[EventLogger] = None) -> dict:
    """
    Encrypt a file on disk for upload.

    Args:
        blob: Blob providing key and nonce
        input_path: Path to the plain file
        output_path: Path for the encrypted output
        event_logger: Optional audit trail

    Returns:
        Dict with input and output sizes
    """
    with open(input_path, 'rb') as f:
        plaintext = f.read()

    encrypted = blob.encrypt(plaintext)
    if len(encrypted) > MAX_BLOB_SIZE:
        raise ValidationError(f"Blob too large: {len(encrypted)} bytes")

    with open(output_path, 'wb') as f:
        f.write(encrypted)

    if event_logger is not None:
        event_logger.log_blob(blob.purpose.value, len(encrypted), encrypt=True)

    return {
        'input_size': len(plaintext),
        'output_size': os.path.getsize(output_path),
        'purpose': blob.purpose.value,
    }


def decrypt_blob_file(blob: Blob, input_path: str, output_path: str,
                      event_logger: Optional[EventLogger] = None) -> dict:
    """
    Decrypt a downloaded blob file.

    Nothing is written when authentication fails.

    Raises:
        AuthenticationError: If the content was tampered with or the key is wrong
    """
    with open(input_path, 'rb') as f:
        ciphertext = f.read()

    try:
        plaintext = blob.decrypt(ciphertext)
    except AuthenticationError:
        if event_logger is not None:
            event_logger.log_blob(blob.purpose.value, len(ciphertext),
                                  encrypt=False, success=False)
        raise

    with open(output_path, 'wb') as f:
        f.write(plaintext)

    if event_logger is not None:
        event_logger.log_blob(blob.purpose.value, len(ciphertext), encrypt=False)

    return {
        'encrypted_size': len(ciphertext),
        'decrypted_size': len(plaintext),
    }
