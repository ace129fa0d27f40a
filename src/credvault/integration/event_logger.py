"""
Event Logger Module

Audit trail for credential operations.

Features:
- Password, token, two-factor and backup-code events
- Privacy-preserving user hashes (SHA-256 of the user id)
- Events kept in memory, forwarded to the ``credvault.audit`` logger
  and to any registered callbacks

Tokens, codes, secrets and password material are never part of an event.
"""

import hashlib
import json
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Callable, Dict, List, Optional

from ..clock import Clock, SystemClock


EVENT_VERSION = "1.0"

audit_logger = logging.getLogger("credvault.audit")
logger = logging.getLogger(__name__)


def get_user_hash(user_id: str) -> str:
    """
    Compute privacy-preserving hash of a user id.

    Allows correlating events for the same user without writing the id
    itself into the log.
    """
    return hashlib.sha256(user_id.encode()).hexdigest()


class EventType(Enum):
    """Types of security events that can be logged."""

    # Password events
    PASSWORD_SET = "password_set"
    PASSWORD_VERIFIED = "password_verified"
    PASSWORD_FAILED = "password_failed"
    PASSWORD_REHASHED = "password_rehashed"

    # Token events
    EMAIL_TOKEN_ISSUED = "email_token_issued"
    EMAIL_VERIFIED = "email_verified"
    RESET_TOKEN_ISSUED = "reset_token_issued"
    PASSWORD_RESET = "password_reset"
    TOKEN_REJECTED = "token_rejected"

    # Two-factor events
    TOTP_ENROLLED = "totp_enrolled"
    TOTP_CONFIRMED = "totp_confirmed"
    TOTP_VERIFIED = "totp_verified"
    TOTP_FAILED = "totp_failed"
    TOTP_DISABLED = "totp_disabled"

    # Backup code events
    BACKUP_CODES_GENERATED = "backup_codes_generated"
    BACKUP_CODE_REDEEMED = "backup_code_redeemed"
    BACKUP_CODE_REJECTED = "backup_code_rejected"

    # Account events
    ACCOUNT_REGISTERED = "account_registered"
    LOGIN_RECORDED = "login_recorded"


@dataclass
class SecurityEvent:
    """
    A single audit entry.

    All user-identifying information is hashed for privacy.
    """
    event_type: EventType
    user_hash: str
    timestamp: float
    details: Dict[str, Any] = field(default_factory=dict)

    def to_json(self) -> str:
        return json.dumps({
            'version': EVENT_VERSION,
            'type': self.event_type.value,
            'user': self.user_hash[:16],
            'time': self.timestamp,
            'iso_time': datetime.fromtimestamp(self.timestamp, tz=timezone.utc).isoformat(),
            'details': self.details,
        }, separators=(',', ':'))

    @classmethod
    def from_json(cls, raw: str) -> 'SecurityEvent':
        data = json.loads(raw)
        return cls(
            event_type=EventType(data['type']),
            user_hash=data['user'],
            timestamp=data['time'],
            details=data.get('details', {}),
        )

    def __str__(self) -> str:
        dt = datetime.fromtimestamp(self.timestamp, tz=timezone.utc)
        return (
            f"[{dt.strftime('%Y-%m-%d %H:%M:%S')}] "
            f"{self.event_type.value} | "
            f"user:{self.user_hash[:8]}..."
        )


class EventLogger:
    """
    In-memory audit log that also writes through to Python logging.

    Example:
        >>> events = EventLogger()
        >>> _ = events.log(EventType.TOTP_CONFIRMED, "user-1")
        >>> events.events_of_type(EventType.TOTP_CONFIRMED)[0].details
        {}
    """

    def __init__(self, clock: Optional[Clock] = None, max_events: int = 10000):
        """
        Args:
            clock: Source of event timestamps
            max_events: Oldest events are dropped beyond this many
        """
        self._clock = clock or SystemClock()
        self._max_events = max_events
        self._events: List[SecurityEvent] = []
        self._callbacks: List[Callable[[SecurityEvent], None]] = []

    def log(self, event_type: EventType, user_id: str, **details: Any) -> SecurityEvent:
        """Record an event for ``user_id``."""
        event = SecurityEvent(
            event_type=event_type,
            user_hash=get_user_hash(user_id),
            timestamp=self._clock.now(),
            details=details,
        )
        self._events.append(event)
        if len(self._events) > self._max_events:
            del self._events[0]

        audit_logger.info(
            event.event_type.value,
            extra={'event_type': event.event_type.value,
                   'user_hash': event.user_hash[:16],
                   'event_time': event.timestamp,
                   'details': event.details},
        )

        for callback in self._callbacks:
            try:
                callback(event)
            except Exception:
                logger.exception("Audit callback failed for %s", event_type.value)

        return event

    def add_callback(self, callback: Callable[[SecurityEvent], None]) -> None:
        """Register a function called with every new event."""
        self._callbacks.append(callback)

    def get_events(self, user_id: Optional[str] = None) -> List[SecurityEvent]:
        """All events, or only those for ``user_id``."""
        if user_id is None:
            return list(self._events)
        user_hash = get_user_hash(user_id)
        return [e for e in self._events if e.user_hash == user_hash]

    def events_of_type(self, event_type: EventType) -> List[SecurityEvent]:
        return [e for e in self._events if e.event_type is event_type]

    def __len__(self) -> int:
        return len(self._events)
