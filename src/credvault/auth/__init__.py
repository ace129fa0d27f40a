# Authentication Module
"""
Credential primitives:
- Password hashing (Argon2id) - hashing.py
- Expiring bearer tokens (SHA-256 digests) - tokens.py
- TOTP (2FA, RFC 6238) - totp.py
- Single-use backup codes - backup_codes.py
- Registration field validation - validation.py

Security features:
- Argon2id for password hashing (PHC winner)
- Constant-time comparison for every digest and code check
- Cryptographically secure random tokens, secrets and codes
- Only digests of bearer tokens are ever stored
"""

from .hashing import (
    HashPort,
    hash_password,
    verify_password,
)

from .tokens import (
    RandomTokenIssuer,
    TokenRecord,
    TokenStatus,
    digest_token,
)

from .totp import (
    Enrollment,
    TOTPManager,
    base32_to_secret,
    provisioning_qr,
    secret_to_base32,
)

from .backup_codes import (
    BackupCode,
    BackupCodeVault,
    remaining_codes,
)

from .validation import (
    validate_password,
    validate_registration,
)

__all__ = [
    # Hashing
    'HashPort',
    'hash_password',
    'verify_password',
    # Tokens
    'RandomTokenIssuer',
    'TokenRecord',
    'TokenStatus',
    'digest_token',
    # TOTP
    'Enrollment',
    'TOTPManager',
    'base32_to_secret',
    'provisioning_qr',
    'secret_to_base32',
    # Backup codes
    'BackupCode',
    'BackupCodeVault',
    'remaining_codes',
    # Validation
    'validate_password',
    'validate_registration',
]
