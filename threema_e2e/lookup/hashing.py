"""
Hashed contact lookup.

Phone numbers and email addresses are never sent in the clear for ID
lookups. Both are normalized and hashed with HMAC-SHA256 under fixed,
published keys, one per kind:

    phone  every character that is not a decimal digit is removed
    email  surrounding whitespace stripped, ASCII letters lower-cased

Inputs that normalize to the same string yield the same hash.
"""

import hashlib
import hmac
import re

from ..core.values import Hash


PHONE_HMAC_KEY = bytes.fromhex(
    "85adf8226953f3d96cfd5d09bf29555eb955fcd8aa5ec4f9fcd869e258370723")
EMAIL_HMAC_KEY = bytes.fromhex(
    "30a5500fed9701fa6defdb610841900febb8e430881f7ad816826264ec09bad7")

_NON_DIGITS = re.compile(r"[^0-9]")
_ASCII_UPPER = str.maketrans("ABCDEFGHIJKLMNOPQRSTUVWXYZ", "abcdefghijklmnopqrstuvwxyz")


def normalize_phone(number: str) -> str:
    """Keep the decimal digits 0-9 only."""
    return _NON_DIGITS.sub("", number)


def normalize_email(address: str) -> str:
    """Strip whitespace and lower-case ASCII letters, independent of locale."""
    return address.strip().translate(_ASCII_UPPER)


def compute_hmac(key: bytes, data: bytes) -> bytes:
    """Compute HMAC-SHA256."""
    return hmac.new(key, data, hashlib.sha256).digest()


def hash_phone(number: str) -> Hash:
    """
    Hash an international phone number.

    Args:
        number: Phone number in any formatting, e.g. "+41 79 123 45-67"

    Returns:
        32 byte Hash
    """
    return Hash(compute_hmac(PHONE_HMAC_KEY, normalize_phone(number).encode('ascii')))


def hash_email(address: str) -> Hash:
    """
    Hash an email address.

    Args:
        address: Email address, case and surrounding whitespace ignored

    Returns:
        32 byte Hash
    """
    return Hash(compute_hmac(EMAIL_HMAC_KEY, normalize_email(address).encode('utf-8')))
