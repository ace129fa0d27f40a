"""
Account Registration

Creates the initial CredentialRecord for a new user: fields validated and
normalized, password hashed, nothing else set.
"""

from typing import Optional

from . import config
from .auth.validation import validate_registration
from .errors import ValidationError
from .integration.event_logger import EventType
from .record import AuthServices, CredentialRecord, default_services
from .store import InMemoryRecordStore


def register_account(store: InMemoryRecordStore,
                     first_name: str,
                     last_name: str,
                     email: str,
                     company: str,
                     password: str,
                     role: str = config.DEFAULT_ROLE,
                     services: Optional[AuthServices] = None) -> CredentialRecord:
    """
    Register a new user with secure password hashing.

    Args:
        store: Where the new record is added
        first_name, last_name, email, company: Profile fields
        password: Plaintext password (will be hashed)
        role: 'user' or 'admin'
        services: Primitives for the record (defaults to the shared set)

    Returns:
        The stored record (version 1)

    Raises:
        ValidationError: On invalid fields or an email that is already taken
    """
    fields = validate_registration(first_name, last_name, email, company,
                                   password, role)

    if store.find_by_email(fields['email']) is not None:
        raise ValidationError("Email is already registered")

    record = CredentialRecord.create(
        fields['email'],
        fields['password'],
        services=services,
        first_name=fields['first_name'],
        last_name=fields['last_name'],
        company=fields['company'],
        role=fields['role'],
    )
    store.add(record)

    (services or default_services()).events.log(EventType.ACCOUNT_REGISTERED,
                                                record.user_id)
    return record
