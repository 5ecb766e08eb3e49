"""
Error taxonomy for the message protocol.

Every error is terminal for the single message or callback being processed.
Messages carry the offending field, tag or length but never key material.
"""

from typing import Optional


class ThreemaError(Exception):
    """Base class for all protocol errors."""
    pass


class ValidationError(ThreemaError, ValueError):
    """A fixed-length or size-limit constraint was violated."""

    def __init__(self, message: str, expected: Optional[int] = None,
                 actual: Optional[int] = None):
        super().__init__(message)
        self.expected = expected
        self.actual = actual


class FormatError(ThreemaError, ValueError):
    """An encoded body is malformed or truncated."""
    pass


class UnknownTypeError(ThreemaError):
    """A message carries a type tag outside the known set."""

    def __init__(self, type_tag: int):
        super().__init__(f"Unknown message type: 0x{type_tag:02x}")
        self.type_tag = type_tag


class AuthenticationError(ThreemaError):
    """
    Ciphertext authentication failed.

    Tampered content and wrong keys both end up here.
    """
    pass


class MissingFieldError(ThreemaError):
    """A required callback parameter is absent."""

    def __init__(self, field: str):
        super().__init__(f"Missing parameter {field}")
        self.field = field


class SignatureError(ThreemaError):
    """The callback MAC does not match."""
    pass


class ConfigurationError(ThreemaError):
    """Required configuration is missing or invalid."""
    pass
