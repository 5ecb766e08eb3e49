"""
Event Logger Module

Security audit trail for message, blob and callback handling.

Features:
- Message encrypt / decrypt events
- Blob encrypt / decrypt events
- Callback verification events
- Privacy-preserving identity hashes (SHA-256)
- Listener callbacks and JSON export

Events never contain keys, plaintext or MAC values. Every event is also
written to the ``threema_e2e.audit`` logger.
"""

import hashlib
import json
import logging
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Callable, Dict, Iterable, List, Optional


# ============================================================================
# Constants
# ============================================================================

AUDIT_LOGGER_NAME = "threema_e2e.audit"
EVENT_VERSION = "1.0"
DEFAULT_MAX_EVENTS = 10_000

logger = logging.getLogger(__name__)


# ============================================================================
# Privacy Functions
# ============================================================================

def get_subject_hash(subject: str) -> str:
    """
    Compute privacy-preserving hash of an identity.

    The audit trail can correlate events of one identity without storing
    the identity itself.

    Args:
        subject: Threema ID or other identifier

    Returns:
        Hex-encoded SHA-256 hash
    """
    return hashlib.sha256(subject.encode('utf-8')).hexdigest()


def get_subject_hash_short(subject: str) -> str:
    """First 16 characters of the subject hash, for display."""
    return get_subject_hash(subject)[:16]


# ============================================================================
# Event Types
# ============================================================================

class EventType(Enum):
    """Types of security events that can be logged."""

    # Messaging events
    MESSAGE_ENCRYPT = "message_encrypt"
    MESSAGE_DECRYPT = "message_decrypt"
    MESSAGE_REJECTED = "message_rejected"
    KEY_AGREEMENT = "key_agreement"

    # Blob events
    BLOB_ENCRYPT = "blob_encrypt"
    BLOB_DECRYPT = "blob_decrypt"
    BLOB_REJECTED = "blob_rejected"

    # Callback events
    CALLBACK_VERIFIED = "callback_verified"
    CALLBACK_REJECTED = "callback_rejected"

    # System events
    SYSTEM_START = "system_start"


# ============================================================================
# Event Structure
# ============================================================================

@dataclass
class SecurityEvent:
    """
    Represents a security event to be logged.

    All identities are hashed for privacy.
    """
    event_type: EventType
    subject_hash: str  # SHA-256 of the identity, or "system"
    timestamp: int     # Unix timestamp
    details: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'version': EVENT_VERSION,
            'type': self.event_type.value,
            'subject': self.subject_hash[:16],
            'time': self.timestamp,
            'iso_time': datetime.fromtimestamp(self.timestamp, timezone.utc).isoformat(),
            'details': self.details,
        }

    def to_json(self) -> str:
        """Compact JSON form of the event."""
        return json.dumps(self.to_dict(), separators=(',', ':'))

    @classmethod
    def from_json(cls, json_str: str) -> 'SecurityEvent':
        data = json.loads(json_str)
        return cls(
            event_type=EventType(data['type']),
            subject_hash=data['subject'],
            timestamp=data['time'],
            details=data.get('details', {}),
        )

    def __str__(self) -> str:
        dt = datetime.fromtimestamp(self.timestamp, timezone.utc)
        return (
            f"[{dt.strftime('%Y-%m-%d %H:%M:%S')}] "
            f"{self.event_type.value} | "
            f"subject:{self.subject_hash[:8]}..."
        )


# ============================================================================
# Event Logger
# ============================================================================

class EventLogger:
    """
    In-memory security audit trail.

    Keeps the most recent ``max_events`` events, forwards each one to the
    audit logger and notifies registered listeners.
    """

    def __init__(self, max_events: int = DEFAULT_MAX_EVENTS,
                 audit_logger: Optional[logging.Logger] = None,
                 events: Optional[Iterable[SecurityEvent]] = None):
        """
        Initialize the event logger.

        Args:
            max_events: Number of events kept in memory
            audit_logger: Logger receiving every event (``threema_e2e.audit``)
            events: Earlier events to start from; only the newest max_events are kept
        """
        if max_events < 1:
            raise ValueError("max_events must be positive")
        self._max_events = max_events
        self._events: List[SecurityEvent] = list(events or [])[-max_events:]
        self._audit = audit_logger or logging.getLogger(AUDIT_LOGGER_NAME)
        self._listeners: List[Callable[[SecurityEvent], None]] = []

        self._log_system_event(EventType.SYSTEM_START)

    def _log_system_event(self, event_type: EventType) -> None:
        """Log a system event (no subject)."""
        self._add_event(SecurityEvent(
            event_type=event_type,
            subject_hash="system",
            timestamp=int(time.time()),
            details={'node': 'threema_e2e'},
        ))

    def _record(self, event_type: EventType, subject: Optional[str],
                details: Dict[str, Any]) -> SecurityEvent:
        event = SecurityEvent(
            event_type=event_type,
            subject_hash=get_subject_hash(subject) if subject else "anonymous",
            timestamp=int(time.time()),
            details=details,
        )
        self._add_event(event)
        return event

    def _add_event(self, event: SecurityEvent) -> None:
        self._events.append(event)
        if len(self._events) > self._max_events:
            del self._events[:len(self._events) - self._max_events]

        self._audit.info(event.event_type.value,
                         extra={'extra_fields': {'event': event.to_dict()}})

        for listener in list(self._listeners):
            try:
                listener(event)
            except Exception:
                # A faulty listener must not stop message processing
                logger.exception("audit listener failed for %s", event.event_type.value)

    def add_listener(self, listener: Callable[[SecurityEvent], None]) -> None:
        """Add a callback to be notified of new events."""
        self._listeners.append(listener)

    def remove_listener(self, listener: Callable[[SecurityEvent], None]) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    # ========================================================================
    # Messaging Events
    # ========================================================================

    def log_message_encrypt(self, peer: Optional[str], message_type: int,
                            size: int) -> SecurityEvent:
        """
        Log an outgoing message encryption.

        Args:
            peer: Receiver identity or key fingerprint (will be hashed)
            message_type: Type tag of the message
            size: Size of the encrypted content in bytes
        """
        return self._record(EventType.MESSAGE_ENCRYPT, peer, {
            'msg_type': message_type,
            'size': size,
        })

    def log_message_decrypt(self, peer: Optional[str], message_type: int) -> SecurityEvent:
        """Log a successfully decrypted incoming message."""
        return self._record(EventType.MESSAGE_DECRYPT, peer, {
            'msg_type': message_type,
        })

    def log_message_rejected(self, peer: Optional[str], reason: str) -> SecurityEvent:
        """Log an incoming message that failed authentication or decoding."""
        return self._record(EventType.MESSAGE_REJECTED, peer, {'reason': reason})

    def log_key_agreement(self, peer: Optional[str], purpose: str = "box") -> SecurityEvent:
        return self._record(EventType.KEY_AGREEMENT, peer, {'purpose': purpose})

    # ========================================================================
    # Blob Events
    # ========================================================================

    def log_blob(self, purpose: str, size: int, encrypt: bool = True,
                 success: bool = True) -> SecurityEvent:
        """
        Log blob encryption or decryption.

        Args:
            purpose: Blob purpose (image, file, thumbnail)
            size: Size of the processed content in bytes
            encrypt: True for encryption, False for decryption
            success: False when decryption failed authentication
        """
        if not success:
            event_type = EventType.BLOB_REJECTED
        elif encrypt:
            event_type = EventType.BLOB_ENCRYPT
        else:
            event_type = EventType.BLOB_DECRYPT
        return self._record(event_type, None, {'purpose': purpose, 'size': size})

    # ========================================================================
    # Callback Events
    # ========================================================================

    def log_callback(self, sender: Optional[str], message_id: Optional[str],
                     success: bool, reason: Optional[str] = None) -> SecurityEvent:
        """
        Log an inbound callback.

        Args:
            sender: Sender identity (will be hashed), if known
            message_id: Hex message id, if known
            success: Whether the signature verified
            reason: Error class name when rejected
        """
        details: Dict[str, Any] = {}
        if message_id:
            details['msg_id'] = message_id[:16]
        if reason:
            details['reason'] = reason
        event_type = EventType.CALLBACK_VERIFIED if success else EventType.CALLBACK_REJECTED
        return self._record(event_type, sender, details)

    # ========================================================================
    # Retrieval
    # ========================================================================

    def get_all_events(self) -> List[SecurityEvent]:
        return list(self._events)

    def get_subject_events(self, subject: str) -> List[SecurityEvent]:
        """Get all events for a specific identity."""
        # Exported events only keep a 16 character prefix
        prefix = get_subject_hash_short(subject)
        return [e for e in self._events if e.subject_hash[:16] == prefix]

    def get_events_by_type(self, event_type: EventType) -> List[SecurityEvent]:
        return [e for e in self._events if e.event_type == event_type]

    def get_recent_events(self, count: int = 10) -> List[SecurityEvent]:
        """Get the most recent events."""
        return self._events[-count:] if count > 0 else []

    def export_log(self) -> str:
        """Export the audit trail as a JSON array."""
        return json.dumps([e.to_dict() for e in self._events], separators=(',', ':'))

    @classmethod
    def import_log(cls, json_str: str, max_events: int = DEFAULT_MAX_EVENTS) -> 'EventLogger':
        """Restore an exported audit trail (appends a new SYSTEM_START event)."""
        events = [
            SecurityEvent(
                event_type=EventType(item['type']),
                subject_hash=item['subject'],
                timestamp=item['time'],
                details=item.get('details', {}),
            )
            for item in json.loads(json_str)
        ]
        return cls(max_events=max_events, events=events)

    def __len__(self) -> int:
        return len(self._events)


# ============================================================================
# Convenience Functions
# ============================================================================

def create_event_logger(max_events: int = DEFAULT_MAX_EVENTS) -> EventLogger:
    """Create a new event logger."""
    return EventLogger(max_events=max_events)
