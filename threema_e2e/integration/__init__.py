# Integration Module
"""
Logging and audit trail shared by the messaging and callback modules.

All events are logged with privacy-preserving identity hashes.
"""

from .event_logger import (
    EventType,
    SecurityEvent,
    EventLogger,
    get_subject_hash,
    create_event_logger,
)

from .structured_log import JsonFormatter, configure_logging

__all__ = [
    'EventType',
    'SecurityEvent',
    'EventLogger',
    'get_subject_hash',
    'create_event_logger',
    'JsonFormatter',
    'configure_logging',
]
