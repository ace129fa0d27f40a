# CredVault
"""
Credential operations for a user identity record: password hashing,
email-verification and password-reset tokens, TOTP two-factor
authentication and one-time backup codes.

Storage, email delivery and sessions belong to the host application.
"""

from .clock import ManualClock, SystemClock, SystemRandomSource
from .errors import (
    CodeInvalid,
    CredentialError,
    IntegrityError,
    NotEnrolled,
    RecordNotFound,
    TokenExpired,
    TokenInvalid,
    ValidationError,
    VersionConflict,
)
from .observability import setup_logging
from .record import AuthServices, CredentialRecord, default_services
from .registration import register_account
from .store import InMemoryRecordStore, RecordStore, mutate

__version__ = "0.1.0"

__all__ = [
    'AuthServices',
    'CredentialRecord',
    'default_services',
    'register_account',
    'InMemoryRecordStore',
    'RecordStore',
    'mutate',
    'ManualClock',
    'SystemClock',
    'SystemRandomSource',
    'setup_logging',
    # Errors
    'CredentialError',
    'ValidationError',
    'TokenExpired',
    'TokenInvalid',
    'NotEnrolled',
    'CodeInvalid',
    'IntegrityError',
    'RecordNotFound',
    'VersionConflict',
]
