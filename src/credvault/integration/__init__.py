# Integration Module
"""
Audit trail shared by all credvault operations.

All events are logged with privacy-preserving user hashes.
"""

from .event_logger import (
    EventLogger,
    EventType,
    SecurityEvent,
    get_user_hash,
)

__all__ = [
    'EventType',
    'SecurityEvent',
    'EventLogger',
    'get_user_hash',
]
