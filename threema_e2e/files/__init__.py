# Blob Encryption Module
"""
Attachment ("blob") encryption:
- Random key per file, shared by its thumbnail
- Fixed nonces for file (00..01) and thumbnail (00..02)
- Image keys agreed from sender/receiver keys with random nonces
- NaCl SecretBox (XSalsa20-Poly1305) authenticated encryption
"""

from .blob import (
    Blob,
    UploadedBlob,
    BlobPurpose,
    FILE_NONCE,
    THUMBNAIL_NONCE,
    image_key,
    encrypt_blob,
    decrypt_blob,
    uploaded,
    encrypt_blob_file,
    decrypt_blob_file,
)

__all__ = [
    'Blob',
    'UploadedBlob',
    'BlobPurpose',
    'FILE_NONCE',
    'THUMBNAIL_NONCE',
    'image_key',
    'encrypt_blob',
    'decrypt_blob',
    'uploaded',
    'encrypt_blob_file',
    'decrypt_blob_file',
]
