"""
Gateway configuration.

Credentials come from the environment and are never hard coded:

    THREEMA_GATEWAY_ID      gateway identity, e.g. *ABCDEFG
    THREEMA_GATEWAY_SECRET  API secret, also keys the callback MAC
    THREEMA_PRIVATE_KEY     hex private key (optional, end-to-end mode only)
"""

import os
from dataclasses import dataclass, field
from typing import Mapping, Optional

from .callback.verifier import CallbackVerifier
from .core.errors import ConfigurationError, ValidationError
from .core.keys import KeyPair
from .core.values import Identity
from .integration.event_logger import EventLogger


ENV_IDENTITY = "THREEMA_GATEWAY_ID"
ENV_SECRET = "THREEMA_GATEWAY_SECRET"
ENV_PRIVATE_KEY = "THREEMA_PRIVATE_KEY"


@dataclass(frozen=True)
class GatewayConfig:
    identity: Identity
    secret: str = field(repr=False)
    private_key: Optional[str] = field(default=None, repr=False)

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> 'GatewayConfig':
        """
        Read the configuration from environment variables.

        Raises:
            ConfigurationError: If a required variable is missing or invalid
        """
        env = os.environ if environ is None else environ

        def required(name: str) -> str:
            value = env.get(name, "").strip()
            if not value:
                raise ConfigurationError(f"Missing environment variable {name}")
            return value

        try:
            identity = Identity.of(required(ENV_IDENTITY))
        except ValidationError as e:
            raise ConfigurationError(f"Invalid {ENV_IDENTITY}: {e}") from e

        private_key = env.get(ENV_PRIVATE_KEY, "").strip() or None
        return cls(identity, required(ENV_SECRET), private_key)

    def key_pair(self) -> KeyPair:
        """
        Key pair from the configured private key.

        Raises:
            ConfigurationError: If no or an invalid private key is configured
        """
        if self.private_key is None:
            raise ConfigurationError(f"Missing environment variable {ENV_PRIVATE_KEY}")
        try:
            return KeyPair.from_private_hex(self.private_key)
        except ValidationError as e:
            raise ConfigurationError(f"Invalid {ENV_PRIVATE_KEY}: {e}") from e

    def callback_verifier(self, event_logger: Optional[EventLogger] = None) -> CallbackVerifier:
        return CallbackVerifier(self.secret, event_logger)
