# Core Module
"""
Building blocks shared by every other module:
- Error taxonomy
- Fixed-length value types (Identity, MessageId, Nonce, BlobId, Hash, SymmetricKey)
- Secure randomness source
- Curve25519 key pairs and hex key encoding
"""

from .errors import (
    ThreemaError,
    ValidationError,
    FormatError,
    UnknownTypeError,
    AuthenticationError,
    MissingFieldError,
    SignatureError,
    ConfigurationError,
)

from .values import (
    FixedBytes,
    Identity,
    MessageId,
    Nonce,
    BlobId,
    Hash,
    SymmetricKey,
    to_hex,
    from_hex,
)

from .randomness import RandomSource, SystemRandomSource, DEFAULT_RANDOM

from .keys import (
    KeyPair,
    encode_public_key,
    encode_private_key,
    decode_public_key,
    decode_private_key,
    public_key_of,
    qrcode_text,
)

__all__ = [
    # Errors
    'ThreemaError',
    'ValidationError',
    'FormatError',
    'UnknownTypeError',
    'AuthenticationError',
    'MissingFieldError',
    'SignatureError',
    'ConfigurationError',
    # Values
    'FixedBytes',
    'Identity',
    'MessageId',
    'Nonce',
    'BlobId',
    'Hash',
    'SymmetricKey',
    'to_hex',
    'from_hex',
    # Randomness
    'RandomSource',
    'SystemRandomSource',
    'DEFAULT_RANDOM',
    # Keys
    'KeyPair',
    'encode_public_key',
    'encode_private_key',
    'decode_public_key',
    'decode_private_key',
    'public_key_of',
    'qrcode_text',
]
