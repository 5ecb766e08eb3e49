"""
Random length padding for message bodies.

Hides the true plaintext length from network observers. The padding is
self-describing: P bytes, each holding the value P, are appended. Unlike
PKCS#7 the length is not block aligned but chosen at random.

Layout:
    [body | P x P]      with  max(1, 32 - len(body)) <= P <= 255

so every padded message is at least 32 bytes long.
"""

from typing import Optional

from ..core.errors import FormatError
from ..core.randomness import RandomSource, randint


# Constants
MSG_LEN_MIN = 32    # padded messages are never shorter
PAD_LEN_MIN = 1
PAD_LEN_MAX = 255


def padding_bounds(length: int) -> tuple:
    """Inclusive range of padding lengths allowed for a body of ``length``."""
    return max(PAD_LEN_MIN, MSG_LEN_MIN - length), PAD_LEN_MAX


def pad(buffer: bytes, rng: Optional[RandomSource] = None) -> bytes:
    """
    Append random padding to a buffer.

    Args:
        buffer: Encoded message body
        rng: Optional randomness source (secure default)

    Returns:
        Padded buffer, between max(32, len + 1) and len + 255 bytes
    """
    low, high = padding_bounds(len(buffer))
    padding = randint(rng, low, high)
    return bytes(buffer) + bytes([padding]) * padding


def unpad(buffer: bytes) -> bytes:
    """
    Remove padding added by :func:`pad`.

    Raises:
        FormatError: If the buffer is empty or the trailer claims more bytes
            than the buffer holds
    """
    if not buffer:
        raise FormatError("Cannot remove padding from empty buffer")
    padding = buffer[-1]
    if padding > len(buffer):
        raise FormatError(
            f"Invalid padding: {padding} bytes in {len(buffer)} byte buffer"
        )
    return bytes(buffer[:len(buffer) - padding])
