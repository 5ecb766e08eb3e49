# Messaging Module
"""
End-to-end encrypted messages:
- Random length self-describing padding (padding.py)
- Type tagged message encoding (messages.py)
- NaCl public-key box envelope (envelope.py)

Message format before encryption: [type (1) | body | padding (P x P)]

Security features:
- Fresh random nonce per message
- Authenticated encryption (XSalsa20-Poly1305)
- Padding hides the true message length
- Encrypted content limited to 4000 bytes
"""

from .padding import pad, unpad, MSG_LEN_MIN, PAD_LEN_MAX

from .messages import (
    PlainMessage,
    Text,
    Location,
    Image,
    File,
    FileBuilder,
    RenderingType,
    DeliveryReceipt,
    ReceiptType,
    MESSAGE_TYPES,
    encode_message,
    decode_message,
)

from .envelope import (
    EncryptedMessage,
    MessageChannel,
    encrypt_message,
    decrypt_message,
    MAX_CONTENT_LENGTH,
)

__all__ = [
    # Padding
    'pad',
    'unpad',
    'MSG_LEN_MIN',
    'PAD_LEN_MAX',
    # Messages
    'PlainMessage',
    'Text',
    'Location',
    'Image',
    'File',
    'FileBuilder',
    'RenderingType',
    'DeliveryReceipt',
    'ReceiptType',
    'MESSAGE_TYPES',
    'encode_message',
    'decode_message',
    # Envelope
    'EncryptedMessage',
    'MessageChannel',
    'encrypt_message',
    'decrypt_message',
    'MAX_CONTENT_LENGTH',
]
