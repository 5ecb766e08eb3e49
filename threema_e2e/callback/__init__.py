# Callback Module
"""
Inbound webhook handling:
- Form body parsing
- HMAC-SHA256 signature check with the gateway secret (constant time)
- Decoding into GatewayCallback with the embedded encrypted message
"""

from .verifier import (
    GatewayCallback,
    CallbackVerifier,
    verify_callback,
    compute_callback_mac,
    decode_url_params,
    encode_url_params,
    parse_timestamp,
    MAC_FIELDS,
    REQUIRED_FIELDS,
)

__all__ = [
    'GatewayCallback',
    'CallbackVerifier',
    'verify_callback',
    'compute_callback_mac',
    'decode_url_params',
    'encode_url_params',
    'parse_timestamp',
    'MAC_FIELDS',
    'REQUIRED_FIELDS',
]
