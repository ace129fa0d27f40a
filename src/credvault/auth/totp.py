"""
TOTP (Time-based One-Time Password) Module

RFC 6238 two-factor authentication built on pyotp.

Features:
- Enrollment secret generation from the injected random source
- otpauth:// provisioning URI for authenticator apps
- ASCII QR code rendering of the provisioning URI
- Clock drift tolerance (default +/- 2 time steps, i.e. +/- 60 seconds)

Accepted codes are not remembered, so a code can be replayed inside its
validity window.

Used with:
- Google Authenticator
- Authy
- Microsoft Authenticator
- Any RFC 6238 compliant authenticator
"""

import base64
import binascii
import io
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional

import pyotp
import qrcode
from qrcode.constants import ERROR_CORRECT_L

from .. import config
from ..clock import Clock, RandomSource, SystemClock, SystemRandomSource
from ..errors import NotEnrolled


@dataclass(frozen=True)
class Enrollment:
    """Result of starting TOTP enrollment."""
    secret: str            # base32, to be stored on the record
    provisioning_uri: str  # otpauth:// URI to hand to the user


def secret_to_base32(secret: bytes) -> str:
    """
    Encode secret as base32 string (for authenticator apps).

    Returns:
        Base32-encoded string (no padding)
    """
    return base64.b32encode(secret).decode('ascii').rstrip('=')


def base32_to_secret(encoded: str) -> bytes:
    """
    Decode base32 secret string to bytes.

    Raises:
        NotEnrolled: If the string is empty or not valid base32
    """
    if not isinstance(encoded, str) or not encoded.strip():
        raise NotEnrolled("No TOTP secret is enrolled")

    cleaned = encoded.replace(' ', '').upper()
    padding = -len(cleaned) % 8
    try:
        raw = base64.b32decode(cleaned + '=' * padding)
    except (binascii.Error, ValueError) as e:
        raise NotEnrolled("Stored TOTP secret is not valid base32") from e

    if not raw:
        raise NotEnrolled("Stored TOTP secret is empty")
    return raw


def _utc(timestamp: float) -> datetime:
    # aware datetime so pyotp computes the counter without local-time conversion
    return datetime.fromtimestamp(int(timestamp), tz=timezone.utc)


def provisioning_qr(uri: str) -> str:
    """
    Render a provisioning URI as an ASCII QR code for terminal display.
    """
    qr = qrcode.QRCode(
        version=1,
        error_correction=ERROR_CORRECT_L,
        box_size=10,
        border=4,
    )
    qr.add_data(uri)
    qr.make(fit=True)

    out = io.StringIO()
    qr.print_ascii(out=out)
    return out.getvalue()


class TOTPManager:
    """
    Generates enrollment secrets and verifies TOTP codes.

    Example:
        >>> manager = TOTPManager()
        >>> enrollment = manager.enroll("alice@example.com")
        >>> code = manager.current_code(enrollment.secret)
        >>> manager.verify_code(enrollment.secret, code)
        True
    """

    def __init__(self, clock: Optional[Clock] = None,
                 random_source: Optional[RandomSource] = None,
                 issuer: str = config.TOTP_ISSUER,
                 digits: int = config.TOTP_DIGITS,
                 time_step: int = config.TOTP_TIME_STEP,
                 secret_bytes: int = config.TOTP_SECRET_BYTES,
                 valid_window: int = config.TOTP_VALID_WINDOW):
        """
        Args:
            clock: Source of the current time
            random_source: Source of random bytes for secrets
            issuer: Service name shown in authenticator apps
            digits: Number of digits in OTP
            time_step: Time step in seconds
            secret_bytes: Raw secret length before base32 encoding
            valid_window: Default number of steps accepted either side of now
        """
        if secret_bytes < 20:
            raise ValueError("TOTP secrets need at least 20 bytes")
        self._clock = clock or SystemClock()
        self._random = random_source or SystemRandomSource()
        self._issuer = issuer
        self._digits = digits
        self._time_step = time_step
        self._secret_bytes = secret_bytes
        self._valid_window = valid_window

    def _totp(self, secret: str) -> pyotp.TOTP:
        base32_to_secret(secret)
        return pyotp.TOTP(secret, digits=self._digits, interval=self._time_step,
                          issuer=self._issuer)

    def enroll(self, account_label: str,
               issuer_label: Optional[str] = None) -> Enrollment:
        """
        Create a new secret and its provisioning URI.

        The caller stores the secret on the record; two-factor stays
        disabled until a code is confirmed against it.

        Args:
            account_label: Account name shown in the app (usually email)
            issuer_label: Service name, defaults to the manager's issuer
        """
        secret = secret_to_base32(self._random.token_bytes(self._secret_bytes))
        uri = pyotp.TOTP(secret, digits=self._digits, interval=self._time_step).provisioning_uri(
            name=account_label,
            issuer_name=issuer_label or self._issuer,
        )
        return Enrollment(secret=secret, provisioning_uri=uri)

    def current_code(self, secret: str, at: Optional[float] = None) -> str:
        """
        Code for the time step containing ``at`` (defaults to now).

        Raises:
            NotEnrolled: If the secret is absent or malformed
        """
        when = self._clock.now() if at is None else at
        return self._totp(secret).at(_utc(when))

    def verify_code(self, secret: str, code: Optional[str],
                    window: Optional[int] = None) -> bool:
        """
        Verify a TOTP code with drift tolerance.

        Checks the current time step and ``window`` steps either side.

        Args:
            secret: Base32 TOTP secret
            code: Code submitted by the user
            window: Steps to check in each direction (default 2)

        Returns:
            True if any candidate step matches

        Raises:
            NotEnrolled: If the secret is absent or malformed
        """
        totp = self._totp(secret)

        if not isinstance(code, str):
            return False
        code = code.replace(' ', '').strip()
        if len(code) != self._digits or not (code.isascii() and code.isdigit()):
            return False

        steps = self._valid_window if window is None else window
        return totp.verify(code, for_time=_utc(self._clock.now()), valid_window=steps)
