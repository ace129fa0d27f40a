"""
Registration Field Validation

Field-level rules for the profile part of a user identity. These run
before a CredentialRecord is constructed; the record itself never checks
names or email formats.

Rules:
- first/last name: required, trimmed, at most 50 characters
- email: required, trimmed, lowercased, simple address pattern
- company: required, trimmed, at most 100 characters
- password: 6 to 128 characters
- role: one of 'user' or 'admin'
"""

import re
from typing import Dict, List, Optional

from .. import config
from ..errors import ValidationError


_EMAIL_RE = re.compile(config.EMAIL_PATTERN, re.ASCII)


def password_errors(password) -> List[str]:
    """Return the list of rule violations for a candidate password."""
    if not isinstance(password, str) or not password:
        return ["Password is required"]

    errors = []
    if len(password) < config.PASSWORD_MIN_LENGTH:
        errors.append(
            f"Password must be at least {config.PASSWORD_MIN_LENGTH} characters"
        )
    if len(password) > config.PASSWORD_MAX_LENGTH:
        errors.append(
            f"Password must be at most {config.PASSWORD_MAX_LENGTH} characters"
        )
    return errors


def validate_password(password) -> str:
    """
    Check a plaintext password against the length rules.

    Raises:
        ValidationError: If the password is missing or out of bounds
    """
    errors = password_errors(password)
    if errors:
        raise ValidationError(errors[0], errors)
    return password


def normalize_email(email: Optional[str]) -> str:
    return (email or '').strip().lower()


def _required_text(value: Optional[str], label: str, max_length: Optional[int],
                   errors: List[str]) -> str:
    if value is not None and not isinstance(value, str):
        errors.append(f"{label} must be a string")
        return ''
    text = (value or '').strip()
    if not text:
        errors.append(f"{label} is required")
    elif max_length is not None and len(text) > max_length:
        errors.append(f"{label} cannot exceed {max_length} characters")
    return text


def validate_registration(first_name: Optional[str],
                          last_name: Optional[str],
                          email: Optional[str],
                          company: Optional[str],
                          password: Optional[str],
                          role: str = config.DEFAULT_ROLE) -> Dict[str, str]:
    """
    Validate and normalize every registration field at once.

    All violations are collected so the caller can report them together.

    Returns:
        Dict of normalized fields (password returned untouched)

    Raises:
        ValidationError: With one entry in ``errors`` per violated rule
    """
    errors: List[str] = []

    first = _required_text(first_name, "First name", config.NAME_MAX_LENGTH, errors)
    last = _required_text(last_name, "Last name", config.NAME_MAX_LENGTH, errors)
    comp = _required_text(company, "Company", config.COMPANY_MAX_LENGTH, errors)

    addr = _required_text(email, "Email", None, errors).lower()
    if addr and not _EMAIL_RE.match(addr):
        errors.append("Please enter a valid email")

    errors.extend(password_errors(password))

    if role not in config.ROLES:
        errors.append(f"Role must be one of: {', '.join(config.ROLES)}")

    if errors:
        raise ValidationError("; ".join(errors), errors)

    return {
        'first_name': first,
        'last_name': last,
        'email': addr,
        'company': comp,
        'password': password,
        'role': role,
    }
