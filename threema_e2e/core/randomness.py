"""
Secure randomness source used for padding, keys and nonces.

Callers may pass their own source (e.g. a deterministic one in tests);
everything else uses the module-level default.
"""

import secrets
from typing import Optional, Protocol


class RandomSource(Protocol):
    """Anything offering the two calls the protocol needs."""

    def token_bytes(self, nbytes: int) -> bytes:
        ...

    def randbelow(self, exclusive_upper_bound: int) -> int:
        ...


class SystemRandomSource:
    """
    Default source backed by the ``secrets`` module.

    ``secrets`` draws from the operating system CSPRNG and can be shared
    between threads.
    """

    def token_bytes(self, nbytes: int) -> bytes:
        return secrets.token_bytes(nbytes)

    def randbelow(self, exclusive_upper_bound: int) -> int:
        return secrets.randbelow(exclusive_upper_bound)


DEFAULT_RANDOM = SystemRandomSource()


def resolve(rng: Optional[RandomSource]) -> RandomSource:
    """Return ``rng`` or the shared default source."""
    return rng if rng is not None else DEFAULT_RANDOM


def randint(rng: Optional[RandomSource], low: int, high: int) -> int:
    """Uniform integer in ``[low, high]`` (both inclusive)."""
    if low > high:
        raise ValueError(f"Empty range [{low}, {high}]")
    return low + resolve(rng).randbelow(high - low + 1)
