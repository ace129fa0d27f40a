"""
Password Hashing Module

Implements the password hash port using the Argon2id algorithm.

Features:
- Argon2id password hashing (winner of Password Hashing Competition)
- Salt generated per hash by argon2-cffi
- Encoded output carries algorithm, parameters and salt, so old hashes
  keep verifying after the cost settings change

Security considerations:
- Never store plaintext passwords
- Verification is constant-time inside argon2
- A malformed stored hash is a data-integrity problem, reported as a
  failed verification and logged, never as a match
"""

import logging
from typing import Optional

from argon2 import PasswordHasher, extract_parameters
from argon2.exceptions import InvalidHashError, VerificationError, VerifyMismatchError

from .. import config
from ..errors import IntegrityError
from .validation import validate_password


logger = logging.getLogger(__name__)


class HashPort:
    """
    Slow, salted one-way password hashing backed by Argon2id.

    Example:
        >>> hasher = HashPort()
        >>> digest = hasher.hash("correct horse")
        >>> hasher.verify("correct horse", digest)
        True
    """

    def __init__(self, **kwargs):
        """
        Initialize the password hasher with Argon2id.

        Args:
            **kwargs: Override default Argon2 parameters from config.ARGON2_CONFIG
        """
        params = config.ARGON2_CONFIG.copy()
        params.update(kwargs)

        self._hasher = PasswordHasher(
            time_cost=params['time_cost'],
            memory_cost=params['memory_cost'],
            parallelism=params['parallelism'],
            hash_len=params['hash_len'],
            salt_len=params['salt_len'],
            type=params['type']
        )

    def hash(self, plaintext: str) -> str:
        """
        Hash a password using Argon2id.

        Args:
            plaintext: Password to hash

        Returns:
            Encoded Argon2id hash string (includes salt and parameters)

        Raises:
            ValidationError: If the password is empty or out of bounds
        """
        validate_password(plaintext)
        return self._hasher.hash(plaintext)

    def verify(self, plaintext: str, digest: Optional[str]) -> bool:
        """
        Verify a password against a stored hash.

        Returns False on mismatch and on a malformed stored hash; never raises
        for either.
        """
        if not isinstance(plaintext, str) or not plaintext:
            return False
        if not isinstance(digest, str) or not digest:
            logger.error("Password verification against an empty stored hash")
            return False

        try:
            return self._hasher.verify(digest, plaintext)
        except VerifyMismatchError:
            return False
        except InvalidHashError:
            logger.error("Stored password hash is not a valid Argon2 hash")
            return False
        except VerificationError:
            return False

    def needs_rehash(self, digest: str) -> bool:
        """
        Check if a hash was produced with parameters other than the current ones.

        Raises:
            IntegrityError: If the stored hash cannot be parsed
        """
        try:
            return self._hasher.check_needs_rehash(digest)
        except InvalidHashError as e:
            raise IntegrityError("Stored password hash is malformed") from e

    def check_integrity(self, digest: Optional[str]) -> None:
        """
        Raise IntegrityError unless ``digest`` is a parsable Argon2 hash.
        """
        if not isinstance(digest, str) or not digest:
            raise IntegrityError("Stored password hash is missing")
        try:
            extract_parameters(digest)
        except InvalidHashError as e:
            raise IntegrityError("Stored password hash is malformed") from e


# Module-level hasher instance
_default_hasher = None


def default_hasher() -> HashPort:
    """Shared HashPort with the configured production parameters."""
    global _default_hasher
    if _default_hasher is None:
        _default_hasher = HashPort()
    return _default_hasher


def hash_password(password: str) -> str:
    """Convenience function to hash a password."""
    return default_hasher().hash(password)


def verify_password(password: str, digest: str) -> bool:
    """Convenience function to verify a password."""
    return default_hasher().verify(password, digest)
