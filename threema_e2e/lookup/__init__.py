# Lookup Module
"""
Privacy-preserving contact discovery:
- HMAC-SHA256 phone and email hashes under published keys
- Bulk lookup request/response bodies
"""

from .hashing import (
    hash_phone,
    hash_email,
    normalize_phone,
    normalize_email,
    PHONE_HMAC_KEY,
    EMAIL_HMAC_KEY,
)

from .bulk import IdentityKey, write_bulk_request, read_bulk_response

__all__ = [
    'hash_phone',
    'hash_email',
    'normalize_phone',
    'normalize_email',
    'PHONE_HMAC_KEY',
    'EMAIL_HMAC_KEY',
    'IdentityKey',
    'write_bulk_request',
    'read_bulk_response',
]
