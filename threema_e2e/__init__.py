# threema-e2e
"""
End-to-end message protocol for the Threema Gateway.

Modules:
- core: errors, fixed-length values, randomness, keys
- messaging: padding, message encoding, public-key box envelope
- files: blob keying and encryption
- lookup: hashed phone/email lookup, bulk lookup bodies
- callback: signed inbound callback verification
- integration: structured logging and security audit trail
- config: gateway credentials from the environment
"""

__version__ = "1.0.0"

from .core import (
    ThreemaError,
    ValidationError,
    FormatError,
    UnknownTypeError,
    AuthenticationError,
    MissingFieldError,
    SignatureError,
    ConfigurationError,
    Identity,
    MessageId,
    Nonce,
    BlobId,
    Hash,
    SymmetricKey,
    KeyPair,
)

from .messaging import (
    Text,
    Location,
    Image,
    File,
    FileBuilder,
    DeliveryReceipt,
    EncryptedMessage,
    MessageChannel,
    encrypt_message,
    decrypt_message,
)

from .files import Blob, UploadedBlob
from .lookup import hash_phone, hash_email
from .callback import GatewayCallback, CallbackVerifier
from .config import GatewayConfig

__all__ = [
    '__version__',
    'ThreemaError',
    'ValidationError',
    'FormatError',
    'UnknownTypeError',
    'AuthenticationError',
    'MissingFieldError',
    'SignatureError',
    'ConfigurationError',
    'Identity',
    'MessageId',
    'Nonce',
    'BlobId',
    'Hash',
    'SymmetricKey',
    'KeyPair',
    'Text',
    'Location',
    'Image',
    'File',
    'FileBuilder',
    'DeliveryReceipt',
    'EncryptedMessage',
    'MessageChannel',
    'encrypt_message',
    'decrypt_message',
    'Blob',
    'UploadedBlob',
    'hash_phone',
    'hash_email',
    'GatewayCallback',
    'CallbackVerifier',
    'GatewayConfig',
]
