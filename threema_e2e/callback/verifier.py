"""
Inbound Callback Verification

The gateway delivers incoming messages as form encoded HTTP bodies signed
with the gateway secret:

    from=SENDERXY&to=RECEIVER&messageId=..&date=..&nonce=..&box=..&nickname=..&mac=..

mac = hex(HMAC-SHA256(secret, from || to || messageId || date || nonce || box))

A GatewayCallback only exists after the MAC has been verified.
"""

import hashlib
import hmac
import logging
import re
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Dict, Mapping, Optional, Union
from urllib.parse import quote_plus, unquote_plus

from nacl.public import PrivateKey, PublicKey

from ..core.errors import (
    FormatError, MissingFieldError, SignatureError, ThreemaError, ValidationError,
)
from ..core.values import Identity, MessageId
from ..integration.event_logger import EventLogger
from ..messaging.envelope import EncryptedMessage
from ..messaging.messages import PlainMessage


logger = logging.getLogger(__name__)

# Order matters: fields enter the MAC in this order
MAC_FIELDS = ('from', 'to', 'messageId', 'date', 'nonce', 'box')
REQUIRED_FIELDS = MAC_FIELDS + ('mac',)
ENCODING = 'utf-8'

# Plain decimal integer, no sign prefix other than '-', no separators
_INTEGER = re.compile(r'-?[0-9]+')


# ============================================================================
# Form Encoding
# ============================================================================

def decode_url_params(body: str) -> Dict[str, str]:
    """
    Split a form encoded body into its fields.

    Pairs without exactly one '=' are skipped.
    """
    params: Dict[str, str] = {}
    for pair in body.split('&'):
        parts = pair.split('=')
        if len(parts) != 2:
            continue
        params[unquote_plus(parts[0])] = unquote_plus(parts[1])
    return params


def encode_url_params(params: Mapping[str, str]) -> str:
    return '&'.join(f"{quote_plus(k)}={quote_plus(v)}" for k, v in params.items())


def compute_callback_mac(params: Mapping[str, str], secret: str) -> str:
    """
    Compute the lowercase hex MAC over the signed callback fields.

    Raises:
        MissingFieldError: If one of the signed fields is absent
    """
    mac = hmac.new(secret.encode(ENCODING), digestmod=hashlib.sha256)
    for field in MAC_FIELDS:
        if field not in params:
            raise MissingFieldError(field)
        mac.update(params[field].encode(ENCODING))
    return mac.hexdigest()


# ============================================================================
# Callback
# ============================================================================

@dataclass(frozen=True)
class GatewayCallback:
    """Verified content of an inbound callback."""
    sender: Identity
    receiver: Identity
    message_id: MessageId
    timestamp: int                  # epoch seconds as sent by the sender
    message: EncryptedMessage
    nickname: Optional[str] = None  # public nickname of the sender, if set

    def __post_init__(self):
        if isinstance(self.timestamp, bool) or not isinstance(self.timestamp, int):
            raise ValidationError(
                f"Timestamp must be int, got {type(self.timestamp).__name__}"
            )
        try:
            datetime.fromtimestamp(self.timestamp, tz=timezone.utc)
        except (ValueError, OverflowError, OSError) as e:
            raise ValidationError(f"Timestamp out of range: {self.timestamp}") from e

    @property
    def date(self) -> datetime:
        return datetime.fromtimestamp(self.timestamp, tz=timezone.utc)

    def decrypt(self, sender_public: PublicKey, receiver_private: PrivateKey) -> PlainMessage:
        """Decrypt the embedded message with the sender's public key."""
        return self.message.decrypt(sender_public, receiver_private)

    @classmethod
    def from_body(cls, body: Union[str, bytes], secret: str) -> 'GatewayCallback':
        return CallbackVerifier(secret).verify(body)


class CallbackVerifier:
    """
    Verifies callback bodies against the gateway secret.

    Example:
        verifier = CallbackVerifier(secret)
        callback = verifier.verify(request_body)
        message = callback.decrypt(sender_public_key, own_private_key)
    """

    def __init__(self, secret: str, event_logger: Optional[EventLogger] = None):
        if not secret:
            raise ValueError("Callback secret must not be empty")
        self._secret = secret
        self._event_logger = event_logger

    def verify(self, body: Union[str, bytes]) -> GatewayCallback:
        """
        Verify and decode a callback body.

        Args:
            body: Form encoded request body

        Returns:
            GatewayCallback with the embedded encrypted message

        Raises:
            MissingFieldError: If a required field is absent
            SignatureError: If the MAC does not match
            FormatError: If a verified field cannot be decoded
            ValidationError: If an identity, id or nonce has the wrong length
        """
        params: Dict[str, str] = {}
        try:
            if isinstance(body, (bytes, bytearray)):
                try:
                    body = bytes(body).decode('ascii')
                except UnicodeDecodeError as e:
                    raise FormatError("Callback body is not ASCII") from e

            params = decode_url_params(body)
            for field in REQUIRED_FIELDS:
                if field not in params:
                    raise MissingFieldError(field)

            expected = compute_callback_mac(params, self._secret)
            if not hmac.compare_digest(expected.encode(ENCODING),
                                       params['mac'].encode(ENCODING)):
                raise SignatureError("Invalid signature")

            callback = self._decode(params)
        except ThreemaError as e:
            logger.warning("callback rejected: %s", type(e).__name__)
            if self._event_logger is not None:
                self._event_logger.log_callback(params.get('from'), params.get('messageId'),
                                                success=False, reason=type(e).__name__)
            raise

        logger.info("callback verified message_id=%s", callback.message_id.to_hex())
        if self._event_logger is not None:
            self._event_logger.log_callback(callback.sender.value,
                                            callback.message_id.to_hex(), success=True)
        return callback

    @staticmethod
    def _decode(params: Mapping[str, str]) -> GatewayCallback:
        timestamp = parse_timestamp(params['date'])

        return GatewayCallback(
            sender=Identity.of(params['from']),
            receiver=Identity.of(params['to']),
            message_id=MessageId.from_hex(params['messageId']),
            timestamp=timestamp,
            message=EncryptedMessage.from_hex(params['box'], params['nonce']),
            nickname=params.get('nickname'),
        )


def parse_timestamp(value: str) -> int:
    """
    Parse the epoch seconds of a callback ``date`` field.

    Raises:
        FormatError: If the value is not a plain decimal integer or lies
            outside the range of representable dates
    """
    if not _INTEGER.fullmatch(value):
        raise FormatError(f"Invalid callback date: {value!r}")
    try:
        timestamp = int(value)
        datetime.fromtimestamp(timestamp, tz=timezone.utc)
    except (ValueError, OverflowError, OSError) as e:
        raise FormatError(f"Callback date out of range: {value}") from e
    return timestamp


def verify_callback(body: Union[str, bytes], secret: str) -> GatewayCallback:
    """Verify a callback body with a one-off verifier."""
    return CallbackVerifier(secret).verify(body)
