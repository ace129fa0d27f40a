"""
Credential Record

The per-user aggregate holding password hash, outstanding tokens, TOTP
state and backup codes. It is the only persisted object; everything in
credvault.auth is a stateless primitive that this record drives.

Callers work in a load -> one operation -> save cycle (see store.py).
Issuing operations return the plaintext artifact exactly once;
verification operations return a bool or a TokenStatus.
"""

import secrets
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from . import config
from .auth.backup_codes import BackupCode, BackupCodeVault, remaining_codes
from .auth.hashing import HashPort
from .auth.tokens import RandomTokenIssuer, TokenRecord, TokenStatus
from .auth.totp import Enrollment, TOTPManager
from .auth.validation import validate_password
from .clock import Clock, RandomSource, SystemClock, SystemRandomSource
from .errors import NotEnrolled, ValidationError
from .integration.event_logger import EventLogger, EventType


@dataclass
class AuthServices:
    """
    The primitives a CredentialRecord delegates to, plus TTL policy.

    Shared by every record loaded in a process; holds no per-user state.
    """
    clock: Clock
    hasher: HashPort
    tokens: RandomTokenIssuer
    totp: TOTPManager
    vault: BackupCodeVault
    events: EventLogger
    email_verification_ttl: float = config.EMAIL_VERIFICATION_TTL
    password_reset_ttl: float = config.PASSWORD_RESET_TTL

    @classmethod
    def create(cls, clock: Optional[Clock] = None,
               random_source: Optional[RandomSource] = None,
               hasher: Optional[HashPort] = None,
               events: Optional[EventLogger] = None,
               issuer: str = config.TOTP_ISSUER,
               email_verification_ttl: float = config.EMAIL_VERIFICATION_TTL,
               password_reset_ttl: float = config.PASSWORD_RESET_TTL) -> 'AuthServices':
        """Wire the default primitives around one clock and one random source."""
        clock = clock or SystemClock()
        random_source = random_source or SystemRandomSource()
        return cls(
            clock=clock,
            hasher=hasher or HashPort(),
            tokens=RandomTokenIssuer(clock=clock, random_source=random_source),
            totp=TOTPManager(clock=clock, random_source=random_source, issuer=issuer),
            vault=BackupCodeVault(random_source=random_source),
            events=events or EventLogger(clock=clock),
            email_verification_ttl=email_verification_ttl,
            password_reset_ttl=password_reset_ttl,
        )


_default_services: Optional[AuthServices] = None


def default_services() -> AuthServices:
    global _default_services
    if _default_services is None:
        _default_services = AuthServices.create()
    return _default_services


@dataclass
class CredentialRecord:
    """
    A user identity with its credential state.

    Example:
        >>> record = CredentialRecord.create("alice@example.com", "s3cret-pass")
        >>> record.verify_password("s3cret-pass")
        True
        >>> token = record.issue_password_reset_token()
        >>> bool(record.verify_password_reset_token(token))
        True
    """
    user_id: str
    email: str
    password_hash: str = ''
    first_name: str = ''
    last_name: str = ''
    company: str = ''
    role: str = config.DEFAULT_ROLE
    email_verified: bool = False
    is_active: bool = True
    email_verification: Optional[TokenRecord] = None
    password_reset: Optional[TokenRecord] = None
    totp_secret: Optional[str] = None
    totp_enabled: bool = False
    backup_codes: List[BackupCode] = field(default_factory=list)
    last_login_at: Optional[float] = None
    last_login_ip: Optional[str] = None
    version: int = 0
    services: Optional[AuthServices] = field(default=None, repr=False, compare=False)

    @classmethod
    def create(cls, email: str, password: str,
               services: Optional[AuthServices] = None,
               user_id: Optional[str] = None, **profile: Any) -> 'CredentialRecord':
        """
        Build the registration-time record: password set, everything else
        absent or false.
        """
        record = cls(user_id=user_id or secrets.token_hex(16), email=email,
                     services=services, **profile)
        record.set_password(password)
        return record

    @property
    def _svc(self) -> AuthServices:
        return self.services or default_services()

    def _log(self, event_type: EventType, **details: Any) -> None:
        self._svc.events.log(event_type, self.user_id, **details)

    # ------------------------------------------------------------------
    # Password
    # ------------------------------------------------------------------

    def password_matches(self, plaintext: str) -> bool:
        """Dirty check: True when ``plaintext`` is already the stored password."""
        if not self.password_hash:
            return False
        return self._svc.hasher.verify(plaintext, self.password_hash)

    def set_password(self, plaintext: str) -> bool:
        """
        Hash and store a new password.

        Re-hashing is skipped when the plaintext equals the current password.

        Returns:
            True if the stored hash changed

        Raises:
            ValidationError: If the password is empty or out of bounds
        """
        validate_password(plaintext)
        if self.password_matches(plaintext):
            return False
        self.password_hash = self._svc.hasher.hash(plaintext)
        self._log(EventType.PASSWORD_SET)
        return True

    def verify_password(self, plaintext: str) -> bool:
        ok = self._svc.hasher.verify(plaintext, self.password_hash)
        self._log(EventType.PASSWORD_VERIFIED if ok else EventType.PASSWORD_FAILED)
        return ok

    def upgrade_password_hash(self, plaintext: str) -> bool:
        """
        Re-hash with current Argon2 parameters after a successful login.

        Returns:
            True if the stored hash was replaced
        """
        hasher = self._svc.hasher
        if not hasher.verify(plaintext, self.password_hash):
            return False
        if not hasher.needs_rehash(self.password_hash):
            return False
        self.password_hash = hasher.hash(plaintext)
        self._log(EventType.PASSWORD_REHASHED)
        return True

    # ------------------------------------------------------------------
    # Email verification
    # ------------------------------------------------------------------

    def issue_email_verification_token(self) -> str:
        """Issue a new token (replacing any outstanding one) and return its plaintext."""
        token, self.email_verification = self._svc.tokens.issue(
            self._svc.email_verification_ttl)
        self._log(EventType.EMAIL_TOKEN_ISSUED)
        return token

    def verify_email_verification_token(self, token: str) -> TokenStatus:
        return self._svc.tokens.verify(token, self.email_verification)

    def consume_email_verification_token(self, token: str) -> TokenStatus:
        """Verify the token and, if valid, clear it and mark the email verified."""
        status = self.verify_email_verification_token(token)
        if status:
            self.email_verification = None
            self.email_verified = True
            self._log(EventType.EMAIL_VERIFIED)
        else:
            self._log(EventType.TOKEN_REJECTED, purpose='email_verification',
                      reason=status.value)
        return status

    # ------------------------------------------------------------------
    # Password reset
    # ------------------------------------------------------------------

    def issue_password_reset_token(self) -> str:
        """Issue a new reset token (replacing any outstanding one) and return its plaintext."""
        token, self.password_reset = self._svc.tokens.issue(
            self._svc.password_reset_ttl)
        self._log(EventType.RESET_TOKEN_ISSUED)
        return token

    def verify_password_reset_token(self, token: str) -> TokenStatus:
        return self._svc.tokens.verify(token, self.password_reset)

    def reset_password(self, token: str, new_password: str) -> TokenStatus:
        """
        Consume a reset token and set the new password.

        The new password is validated before the token is checked, so a
        rejected password leaves the token usable.

        Raises:
            ValidationError: If the new password is invalid
        """
        validate_password(new_password)
        status = self.verify_password_reset_token(token)
        if not status:
            self._log(EventType.TOKEN_REJECTED, purpose='password_reset',
                      reason=status.value)
            return status

        self.set_password(new_password)
        self.password_reset = None
        self._log(EventType.PASSWORD_RESET)
        return status

    # ------------------------------------------------------------------
    # Two-factor (TOTP)
    # ------------------------------------------------------------------

    def enroll_two_factor(self, account_label: Optional[str] = None,
                          issuer_label: Optional[str] = None) -> Enrollment:
        """
        Start enrollment: store a fresh secret, leave two-factor disabled.

        Raises:
            ValidationError: If two-factor is already enabled
        """
        if self.totp_enabled:
            raise ValidationError("Two-factor authentication is already enabled")

        enrollment = self._svc.totp.enroll(account_label or self.email, issuer_label)
        self.totp_secret = enrollment.secret
        self._log(EventType.TOTP_ENROLLED)
        return enrollment

    def confirm_two_factor(self, code: str) -> bool:
        """
        Finish enrollment by proving the authenticator produces valid codes.

        Raises:
            NotEnrolled: If enrollment was never started
        """
        if not self.totp_secret:
            raise NotEnrolled("Two-factor enrollment has not been started")

        if self._svc.totp.verify_code(self.totp_secret, code):
            self.totp_enabled = True
            self._log(EventType.TOTP_CONFIRMED)
            return True

        self._log(EventType.TOTP_FAILED, stage='confirm')
        return False

    def verify_two_factor_code(self, code: str) -> bool:
        """
        Raises:
            NotEnrolled: If two-factor is not enabled on this record
        """
        if not self.totp_enabled or not self.totp_secret:
            raise NotEnrolled("Two-factor authentication is not enabled")

        ok = self._svc.totp.verify_code(self.totp_secret, code)
        self._log(EventType.TOTP_VERIFIED if ok else EventType.TOTP_FAILED)
        return ok

    def disable_two_factor(self) -> None:
        """Remove the secret and backup codes and turn two-factor off."""
        self.totp_secret = None
        self.totp_enabled = False
        self.backup_codes = []
        self._log(EventType.TOTP_DISABLED)

    # ------------------------------------------------------------------
    # Backup codes
    # ------------------------------------------------------------------

    def generate_backup_codes(self) -> List[str]:
        """Replace the whole backup code set and return the new plaintext codes."""
        self.backup_codes, plaintext = self._svc.vault.generate()
        self._log(EventType.BACKUP_CODES_GENERATED, count=len(plaintext))
        return plaintext

    def redeem_backup_code(self, code: str) -> bool:
        ok = self._svc.vault.redeem(self.backup_codes, code)
        if ok:
            self._log(EventType.BACKUP_CODE_REDEEMED,
                      remaining=remaining_codes(self.backup_codes))
        else:
            self._log(EventType.BACKUP_CODE_REJECTED)
        return ok

    # ------------------------------------------------------------------
    # Account
    # ------------------------------------------------------------------

    def record_login(self, ip: Optional[str] = None) -> None:
        self.last_login_at = self._svc.clock.now()
        self.last_login_ip = ip
        self._log(EventType.LOGIN_RECORDED)

    # ------------------------------------------------------------------
    # Serialization
    # ------------------------------------------------------------------

    def to_dict(self, include_secrets: bool = False) -> Dict[str, Any]:
        """
        Project the record to plain data.

        The default projection leaves out the password hash and TOTP
        secret; stores pass ``include_secrets=True``.
        """
        data = {
            'user_id': self.user_id,
            'email': self.email,
            'first_name': self.first_name,
            'last_name': self.last_name,
            'company': self.company,
            'role': self.role,
            'email_verified': self.email_verified,
            'is_active': self.is_active,
            'email_verification': (self.email_verification.to_dict()
                                   if self.email_verification else None),
            'password_reset': (self.password_reset.to_dict()
                               if self.password_reset else None),
            'totp_enabled': self.totp_enabled,
            'backup_codes': [c.to_dict() for c in self.backup_codes],
            'last_login_at': self.last_login_at,
            'last_login_ip': self.last_login_ip,
            'version': self.version,
        }
        if include_secrets:
            data['password_hash'] = self.password_hash
            data['totp_secret'] = self.totp_secret
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any],
                  services: Optional[AuthServices] = None) -> 'CredentialRecord':
        return cls(
            user_id=data['user_id'],
            email=data['email'],
            password_hash=data.get('password_hash', ''),
            first_name=data.get('first_name', ''),
            last_name=data.get('last_name', ''),
            company=data.get('company', ''),
            role=data.get('role', config.DEFAULT_ROLE),
            email_verified=bool(data.get('email_verified', False)),
            is_active=bool(data.get('is_active', True)),
            email_verification=TokenRecord.from_dict(data.get('email_verification')),
            password_reset=TokenRecord.from_dict(data.get('password_reset')),
            totp_secret=data.get('totp_secret'),
            totp_enabled=bool(data.get('totp_enabled', False)),
            backup_codes=[BackupCode.from_dict(c) for c in data.get('backup_codes', [])],
            last_login_at=data.get('last_login_at'),
            last_login_ip=data.get('last_login_ip'),
            version=int(data.get('version', 0)),
            services=services,
        )
