"""
Credential error taxonomy.

Expected user-facing failures (wrong password, expired token, bad code)
are reported as return values by the operations themselves. These
exceptions cover malformed input, misuse and data corruption, plus the
explicit raise_for_* helpers for callers that prefer exceptions.
"""

from typing import List, Optional


class CredentialError(Exception):
    """Base class for all credvault errors."""


class ValidationError(CredentialError):
    """Malformed input, e.g. an empty password."""

    def __init__(self, message: str, errors: Optional[List[str]] = None):
        super().__init__(message)
        self.errors = list(errors) if errors else [message]


class TokenInvalid(CredentialError):
    """Token is wrong or no token is outstanding."""


class TokenExpired(CredentialError):
    """Token was correct in shape but its expiry has passed."""


class NotEnrolled(CredentialError):
    """TOTP check attempted before a usable secret exists."""


class CodeInvalid(CredentialError):
    """Backup code is wrong or was already used."""


class IntegrityError(CredentialError):
    """A stored digest has an unexpected format (data corruption)."""


class RecordNotFound(CredentialError):
    """No record is stored under the requested id."""


class VersionConflict(CredentialError):
    """Save rejected because the stored record changed since it was loaded."""

    def __init__(self, user_id: str, expected: int, actual: int):
        super().__init__(
            f"Record {user_id} is at version {actual}, save expected {expected}"
        )
        self.user_id = user_id
        self.expected = expected
        self.actual = actual
