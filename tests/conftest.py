"""Shared fixtures."""

import secrets

import pytest

from threema_e2e.core.keys import KeyPair


class DrawRandom:
    """Random source whose integer draws are always the lowest or highest value."""

    def __init__(self, highest: bool = False):
        self.highest = highest

    def token_bytes(self, nbytes: int) -> bytes:
        return secrets.token_bytes(nbytes)

    def randbelow(self, exclusive_upper_bound: int) -> int:
        return exclusive_upper_bound - 1 if self.highest else 0


@pytest.fixture
def min_random():
    return DrawRandom(highest=False)


@pytest.fixture
def max_random():
    return DrawRandom(highest=True)


@pytest.fixture
def alice():
    return KeyPair.generate()


@pytest.fixture
def bob():
    return KeyPair.generate()

