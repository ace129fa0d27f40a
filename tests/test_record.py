"""
Tests for the CredentialRecord aggregate.

Each test drives one record operation and checks both the returned
artifact and the fields it is allowed to touch.
"""

import re

import pytest

from credvault import config
from credvault.auth.tokens import TokenStatus
from credvault.errors import NotEnrolled, ValidationError
from credvault.integration.event_logger import EventType
from credvault.record import CredentialRecord

from tests.conftest import PASSWORD, fast_hasher


def confirm(record):
    """Enroll and confirm two-factor, returning the secret."""
    enrollment = record.enroll_two_factor()
    code = record.services.totp.current_code(enrollment.secret)
    assert record.confirm_two_factor(code)
    return enrollment.secret


class TestCreate:
    """Tests for the registration-time record."""

    def test_initial_state(self, record):
        """Password set, everything else absent or false."""
        assert record.password_hash.startswith("$argon2id$")
        assert record.email_verification is None
        assert record.password_reset is None
        assert record.totp_secret is None
        assert record.totp_enabled is False
        assert record.backup_codes == []
        assert record.email_verified is False
        assert re.fullmatch(r"[0-9a-f]{32}", record.user_id)

    def test_empty_password_rejected(self, services):
        """Registration without a password fails validation."""
        with pytest.raises(ValidationError):
            CredentialRecord.create("bob@example.com", "", services=services)


class TestPassword:
    """Tests for password operations."""

    def test_verify(self, record):
        """Correct password verifies, wrong one does not."""
        assert record.verify_password(PASSWORD)
        assert not record.verify_password(PASSWORD + "x")

    def test_set_new_password(self, record):
        """Changing the password replaces the hash."""
        old_hash = record.password_hash
        assert record.set_password("An0therSecret")
        assert record.password_hash != old_hash
        assert record.verify_password("An0therSecret")
        assert not record.verify_password(PASSWORD)

    def test_set_same_password_is_noop(self, record):
        """Setting the current password does not re-hash."""
        old_hash = record.password_hash
        assert not record.set_password(PASSWORD)
        assert record.password_hash == old_hash

    def test_password_matches(self, record):
        """Dirty check reflects the current password."""
        assert record.password_matches(PASSWORD)
        assert not record.password_matches("different")

    def test_invalid_new_password_keeps_old(self, record):
        """A rejected password leaves the stored hash alone."""
        old_hash = record.password_hash
        with pytest.raises(ValidationError):
            record.set_password("")
        assert record.password_hash == old_hash

    def test_corrupted_hash_fails_verification(self, record):
        """Corrupted stored hash is a failed login, not an exception."""
        record.password_hash = "corrupted"
        assert not record.verify_password(PASSWORD)

    def test_upgrade_password_hash(self, record):
        """Stronger parameters trigger a rehash on successful login."""
        old_hash = record.password_hash
        record.services.hasher = fast_hasher(time_cost=2)

        assert not record.upgrade_password_hash("wrong")
        assert record.upgrade_password_hash(PASSWORD)
        assert record.password_hash != old_hash
        assert not record.upgrade_password_hash(PASSWORD)


class TestEmailVerification:
    """Tests for the email-verification token flow."""

    def test_issue_and_verify(self, record):
        """Fresh token verifies; only its digest is stored."""
        token = record.issue_email_verification_token()
        assert record.verify_email_verification_token(token) is TokenStatus.VALID
        assert record.email_verification.token_digest != token
        assert token not in str(record.to_dict(include_secrets=True))

    def test_ttl_is_24_hours(self, record, clock):
        """Token lives for 24 hours."""
        token = record.issue_email_verification_token()
        assert record.email_verification.expires_at == clock.now() + config.EMAIL_VERIFICATION_TTL

        clock.advance(24 * 60 * 60)
        assert record.verify_email_verification_token(token)
        clock.advance(1)
        assert record.verify_email_verification_token(token) is TokenStatus.EXPIRED

    def test_reissue_invalidates_previous(self, record):
        """Second issuance overwrites the first."""
        first = record.issue_email_verification_token()
        second = record.issue_email_verification_token()

        assert record.verify_email_verification_token(first) is TokenStatus.INVALID
        assert record.verify_email_verification_token(second) is TokenStatus.VALID

    def test_no_token_outstanding(self, record):
        """Verifying with nothing issued is INVALID."""
        assert record.verify_email_verification_token("abc") is TokenStatus.INVALID

    def test_consume_once(self, record):
        """Consuming marks the email verified and clears the token."""
        token = record.issue_email_verification_token()

        assert record.consume_email_verification_token(token) is TokenStatus.VALID
        assert record.email_verified
        assert record.email_verification is None
        assert record.consume_email_verification_token(token) is TokenStatus.INVALID

    def test_consume_expired(self, record, clock):
        """Expired token is not consumed and does not verify the email."""
        token = record.issue_email_verification_token()
        clock.advance(config.EMAIL_VERIFICATION_TTL + 1)

        assert record.consume_email_verification_token(token) is TokenStatus.EXPIRED
        assert not record.email_verified


class TestPasswordReset:
    """Tests for the password-reset token flow."""

    def test_ttl_is_10_minutes(self, record, clock):
        """Token lives for 10 minutes."""
        record.issue_password_reset_token()
        assert record.password_reset.expires_at == clock.now() + 10 * 60

    def test_expired_after_11_minutes(self, record, clock):
        """Verifying after 11 minutes reports EXPIRED, not INVALID."""
        token = record.issue_password_reset_token()
        clock.advance(11 * 60)
        assert record.verify_password_reset_token(token) is TokenStatus.EXPIRED

    def test_reissue_invalidates_previous(self, record):
        """Old plaintext fails after a new issuance."""
        first = record.issue_password_reset_token()
        second = record.issue_password_reset_token()
        assert not record.verify_password_reset_token(first)
        assert record.verify_password_reset_token(second)

    def test_reset_password(self, record):
        """Valid token sets the new password and is consumed."""
        token = record.issue_password_reset_token()

        assert record.reset_password(token, "Fresh-Passw0rd") is TokenStatus.VALID
        assert record.verify_password("Fresh-Passw0rd")
        assert record.password_reset is None
        assert record.reset_password(token, "Other-Passw0rd") is TokenStatus.INVALID

    def test_reset_with_expired_token(self, record, clock):
        """Expired token leaves the password untouched."""
        token = record.issue_password_reset_token()
        clock.advance(11 * 60)

        assert record.reset_password(token, "Fresh-Passw0rd") is TokenStatus.EXPIRED
        assert record.verify_password(PASSWORD)

    def test_reset_with_invalid_password_keeps_token(self, record):
        """Password validation happens before the token is spent."""
        token = record.issue_password_reset_token()
        with pytest.raises(ValidationError):
            record.reset_password(token, "x")
        assert record.verify_password_reset_token(token)

    def test_tokens_independent(self, record):
        """Reset and email-verification tokens do not cross over."""
        reset = record.issue_password_reset_token()
        verify = record.issue_email_verification_token()
        assert not record.verify_email_verification_token(reset)
        assert not record.verify_password_reset_token(verify)


class TestTwoFactor:
    """Tests for TOTP enrollment and verification on the record."""

    def test_enroll_does_not_enable(self, record):
        """Enrollment stores a secret but leaves two-factor off."""
        enrollment = record.enroll_two_factor()
        assert record.totp_secret == enrollment.secret
        assert record.totp_enabled is False
        assert "alice%40example.com" in enrollment.provisioning_uri

    def test_confirm_with_valid_code(self, record):
        """Valid code enables two-factor."""
        confirm(record)
        assert record.totp_enabled is True

    def test_confirm_with_invalid_code(self, record):
        """Invalid code leaves two-factor disabled."""
        enrollment = record.enroll_two_factor()
        code = record.services.totp.current_code(enrollment.secret)
        wrong = f"{(int(code) + 1) % 1000000:06d}"

        assert not record.confirm_two_factor(wrong)
        assert record.totp_enabled is False

    def test_confirm_without_enrollment(self, record):
        """Confirming before enrolling raises NotEnrolled."""
        with pytest.raises(NotEnrolled):
            record.confirm_two_factor("123456")

    def test_verify_requires_enabled(self, record):
        """Verification on a record with two-factor off raises NotEnrolled."""
        record.enroll_two_factor()
        with pytest.raises(NotEnrolled):
            record.verify_two_factor_code("123456")

    def test_verify_code(self, record, clock):
        """Enabled record accepts current and drifted codes."""
        secret = confirm(record)
        totp = record.services.totp

        assert record.verify_two_factor_code(totp.current_code(secret))
        assert record.verify_two_factor_code(totp.current_code(secret, at=clock.now() - 30))
        assert not record.verify_two_factor_code(totp.current_code(secret, at=clock.now() + 120))

    def test_reenroll_while_enabled_refused(self, record):
        """Enrollment cannot replace an active secret."""
        secret = confirm(record)
        with pytest.raises(ValidationError):
            record.enroll_two_factor()
        assert record.totp_secret == secret

    def test_reenroll_before_confirm_replaces_secret(self, record):
        """An unconfirmed secret can be replaced."""
        first = record.enroll_two_factor().secret
        second = record.enroll_two_factor().secret
        assert first != second
        assert record.totp_secret == second

    def test_disable(self, record):
        """Disabling clears the secret and the backup codes."""
        confirm(record)
        record.generate_backup_codes()
        record.disable_two_factor()

        assert record.totp_secret is None
        assert record.totp_enabled is False
        assert record.backup_codes == []

    def test_other_operations_never_enable(self, record):
        """Only confirm_two_factor turns two-factor on."""
        record.enroll_two_factor()
        record.generate_backup_codes()
        record.issue_password_reset_token()
        record.set_password("Changed-Passw0rd")
        assert record.totp_enabled is False


class TestBackupCodes:
    """Tests for backup codes on the record."""

    def test_generate(self, record):
        """Ten distinct uppercase hex codes, all unused."""
        codes = record.generate_backup_codes()
        assert len(codes) == 10
        assert len(set(codes)) == 10
        assert all(re.fullmatch(r"[0-9A-F]{8}", c) for c in codes)
        assert all(not entry.used for entry in record.backup_codes)

    def test_redeem_once(self, record):
        """Code works exactly once."""
        codes = record.generate_backup_codes()
        assert record.redeem_backup_code(codes[5])
        assert not record.redeem_backup_code(codes[5])
        assert [e.used for e in record.backup_codes].count(True) == 1

    def test_regenerate_invalidates_all(self, record):
        """Regeneration rotates the whole set, unused codes included."""
        old = record.generate_backup_codes()
        new = record.generate_backup_codes()

        assert not set(old) & set(new)
        assert not record.redeem_backup_code(old[0])
        assert record.redeem_backup_code(new[0])


class TestProjection:
    """Tests for record serialization."""

    def test_default_projection_hides_secrets(self, record):
        """Password hash and TOTP secret are not in the default projection."""
        record.enroll_two_factor()
        data = record.to_dict()
        assert 'password_hash' not in data
        assert 'totp_secret' not in data

    def test_full_projection_roundtrip(self, record, services):
        """Full projection restores an equal record."""
        record.enroll_two_factor()
        record.generate_backup_codes()
        record.issue_password_reset_token()

        restored = CredentialRecord.from_dict(record.to_dict(include_secrets=True),
                                              services=services)
        assert restored == record


class TestAudit:
    """Tests for the audit events emitted by record operations."""

    def test_events_recorded(self, record, events):
        """Operations produce audit events for the user."""
        record.issue_password_reset_token()
        record.generate_backup_codes()

        types = [e.event_type for e in events.get_events(record.user_id)]
        assert EventType.PASSWORD_SET in types
        assert EventType.RESET_TOKEN_ISSUED in types
        assert EventType.BACKUP_CODES_GENERATED in types

    def test_events_carry_no_secrets(self, record, events):
        """Tokens, codes and user ids never appear in events."""
        token = record.issue_email_verification_token()
        codes = record.generate_backup_codes()
        record.redeem_backup_code(codes[0])

        dump = " ".join(e.to_json() for e in events.get_events())
        assert token not in dump
        assert codes[0] not in dump
        assert record.user_id not in dump

    def test_record_login(self, record, clock):
        """Login bookkeeping uses the injected clock."""
        record.record_login("203.0.113.7")
        assert record.last_login_at == clock.now()
        assert record.last_login_ip == "203.0.113.7"
