"""
Credential Policy Configuration

Module-level defaults for every tunable in credvault. Components take
keyword overrides at construction, so these are the values used when
nothing else is passed.
"""

from argon2 import Type


# Argon2id configuration
# - time_cost: number of iterations
# - memory_cost: memory usage in KiB
# - parallelism: number of parallel threads
# - hash_len: length of the hash output
# - salt_len: length of the random salt
ARGON2_CONFIG = {
    'time_cost': 3,          # Number of iterations
    'memory_cost': 65536,    # 64 MiB memory
    'parallelism': 4,        # 4 parallel threads
    'hash_len': 32,          # 256-bit hash
    'salt_len': 16,          # 128-bit salt
    'type': Type.ID          # Argon2id (hybrid)
}


# Bearer tokens (email verification, password reset)
TOKEN_BYTES = 32                          # 256-bit tokens
EMAIL_VERIFICATION_TTL = 24 * 60 * 60     # 24 hours
PASSWORD_RESET_TTL = 10 * 60              # 10 minutes


# TOTP configuration (RFC 6238 defaults)
TOTP_DIGITS = 6           # Number of digits in OTP
TOTP_TIME_STEP = 30       # Time step in seconds
TOTP_SECRET_BYTES = 20    # Secret key length (160 bits for SHA-1)
TOTP_VALID_WINDOW = 2     # Accept codes from +/- this many time steps
TOTP_ISSUER = "CredVault"


# Backup codes
BACKUP_CODE_COUNT = 10
BACKUP_CODE_BYTES = 4     # rendered as 8 uppercase hex chars
BACKUP_CODE_MAX_DRAWS = 100  # per batch, duplicates included


# Registration field rules
PASSWORD_MIN_LENGTH = 6
PASSWORD_MAX_LENGTH = 128
NAME_MAX_LENGTH = 50
COMPANY_MAX_LENGTH = 100
ROLES = ('user', 'admin')
DEFAULT_ROLE = 'user'
EMAIL_PATTERN = r'^\w+(?:[.-]\w+)*@\w+(?:[.-]\w+)*(?:\.\w{2,3})+$'
