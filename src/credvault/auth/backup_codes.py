"""
Backup Code Module

Single-use recovery codes for accounts with two-factor enabled.

Codes are kept exactly as issued (uppercase hex) rather than as digests,
unlike the bearer tokens in tokens.py.
"""

import hmac
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple

from .. import config
from ..clock import RandomSource, SystemRandomSource
from ..errors import CodeInvalid, CredentialError


@dataclass
class BackupCode:
    code: str
    used: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {'code': self.code, 'used': self.used}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'BackupCode':
        return cls(code=data['code'], used=bool(data.get('used', False)))


def normalize_code(code: str) -> str:
    return code.strip().upper()


class BackupCodeVault:
    """
    Generates and redeems batches of one-time recovery codes.

    Example:
        >>> vault = BackupCodeVault()
        >>> codes, plaintext = vault.generate()
        >>> vault.redeem(codes, plaintext[0].lower())
        True
        >>> vault.redeem(codes, plaintext[0])
        False
    """

    def __init__(self, random_source: Optional[RandomSource] = None,
                 count: int = config.BACKUP_CODE_COUNT,
                 code_bytes: int = config.BACKUP_CODE_BYTES,
                 max_draws: int = config.BACKUP_CODE_MAX_DRAWS):
        self._random = random_source or SystemRandomSource()
        self._count = count
        self._code_bytes = code_bytes
        self._max_draws = max(max_draws, count)

    def generate(self) -> Tuple[List[BackupCode], List[str]]:
        """
        Produce a fresh, complete set of distinct codes.

        The set replaces any previous one wholesale.

        Returns:
            Tuple of (entries to store, plaintext codes to show the user)

        Raises:
            CredentialError: If the random source keeps repeating itself
        """
        plaintext: List[str] = []
        draws = 0
        while len(plaintext) < self._count:
            if draws >= self._max_draws:
                raise CredentialError(
                    f"Random source yielded only {len(plaintext)} distinct "
                    f"backup codes in {draws} draws"
                )
            draws += 1
            code = self._random.token_bytes(self._code_bytes).hex().upper()
            if code not in plaintext:
                plaintext.append(code)

        return [BackupCode(code=c) for c in plaintext], list(plaintext)

    def redeem(self, codes: List[BackupCode], submitted: Optional[str]) -> bool:
        """
        Mark the matching unused code as used.

        Args:
            codes: Stored entries (mutated in place on success)
            submitted: Code typed by the user, any case

        Returns:
            True if an unused code matched, False otherwise (nothing changes)
        """
        if not isinstance(submitted, str):
            return False
        candidate = normalize_code(submitted)
        if not candidate:
            return False

        for entry in codes:
            if entry.used:
                continue
            if hmac.compare_digest(entry.code.encode(), candidate.encode()):
                entry.used = True
                return True
        return False

    def redeem_or_raise(self, codes: List[BackupCode], submitted: Optional[str]) -> None:
        """Like redeem(), but raise CodeInvalid instead of returning False."""
        if not self.redeem(codes, submitted):
            raise CodeInvalid("Backup code is invalid or already used")


def remaining_codes(codes: List[BackupCode]) -> int:
    """Number of codes still available for redemption."""
    return sum(1 for c in codes if not c.used)
