"""
Bearer Token Module

Issues and checks the short-lived opaque tokens used for email
verification and password reset.

Security considerations:
- Tokens carry 256 bits of entropy from the injected random source
- Only the SHA-256 digest of a token is ever stored
- Digest comparison is constant-time (hmac.compare_digest)
- Expiry is checked before the digest, so an expired token reports
  EXPIRED even when the candidate is correct
- Verification never clears the record; consumption is the caller's call
"""

import hashlib
import hmac
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional, Tuple

from .. import config
from ..clock import Clock, RandomSource, SystemClock, SystemRandomSource
from ..errors import TokenExpired, TokenInvalid


@dataclass
class TokenRecord:
    """Stored half of an issued token."""
    token_digest: str
    expires_at: float

    def is_expired(self, now: float) -> bool:
        """Check if the token has expired at ``now``."""
        return now > self.expires_at

    def to_dict(self) -> Dict[str, Any]:
        return {'token_digest': self.token_digest, 'expires_at': self.expires_at}

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> Optional['TokenRecord']:
        if not data:
            return None
        return cls(token_digest=data['token_digest'],
                   expires_at=float(data['expires_at']))


class TokenStatus(Enum):
    """Outcome of a token check. Only VALID is truthy."""
    VALID = "valid"
    EXPIRED = "expired"
    INVALID = "invalid"

    def __bool__(self) -> bool:
        return self is TokenStatus.VALID

    def raise_for_status(self) -> None:
        """Raise TokenExpired / TokenInvalid for a failed check."""
        if self is TokenStatus.EXPIRED:
            raise TokenExpired("Token has expired")
        if self is TokenStatus.INVALID:
            raise TokenInvalid("Token is invalid")


def digest_token(token: str) -> str:
    """SHA-256 hex digest of a plaintext token."""
    return hashlib.sha256(token.encode()).hexdigest()


class RandomTokenIssuer:
    """
    Issues random bearer tokens and verifies candidates against stored digests.

    Example:
        >>> issuer = RandomTokenIssuer()
        >>> token, record = issuer.issue(600)
        >>> issuer.verify(token, record)
        <TokenStatus.VALID: 'valid'>
    """

    def __init__(self, clock: Optional[Clock] = None,
                 random_source: Optional[RandomSource] = None,
                 token_bytes: int = config.TOKEN_BYTES):
        """
        Args:
            clock: Source of the current time
            random_source: Source of random bytes
            token_bytes: Entropy per token in bytes (at least 32)
        """
        if token_bytes < 32:
            raise ValueError("Tokens need at least 32 bytes of entropy")
        self._clock = clock or SystemClock()
        self._random = random_source or SystemRandomSource()
        self._token_bytes = token_bytes

    def issue(self, ttl: float) -> Tuple[str, TokenRecord]:
        """
        Generate a token valid for ``ttl`` seconds.

        Returns:
            Tuple of (plaintext token, TokenRecord holding only its digest)
        """
        if ttl <= 0:
            raise ValueError("Token TTL must be positive")

        token = self._random.token_bytes(self._token_bytes).hex()
        record = TokenRecord(
            token_digest=digest_token(token),
            expires_at=self._clock.now() + ttl,
        )
        return token, record

    def verify(self, candidate: Optional[str],
               record: Optional[TokenRecord]) -> TokenStatus:
        """
        Check a candidate token against a stored record.

        Args:
            candidate: Plaintext token presented by the user
            record: Stored token record, or None if none is outstanding

        Returns:
            TokenStatus.VALID, EXPIRED or INVALID
        """
        if record is None or not record.token_digest:
            return TokenStatus.INVALID

        if record.is_expired(self._clock.now()):
            return TokenStatus.EXPIRED

        if not isinstance(candidate, str) or not candidate:
            return TokenStatus.INVALID

        # CONSTANT-TIME comparison (prevents timing attacks)
        if hmac.compare_digest(digest_token(candidate), record.token_digest):
            return TokenStatus.VALID

        return TokenStatus.INVALID
