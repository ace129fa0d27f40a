"""
Record Store

The persistence contract the credential core relies on, and an in-memory
implementation of it.

The store owns atomicity: every save is a compare-and-swap on the
record's ``version``. Two requests that loaded the same version cannot
both save; the second gets VersionConflict and must reload.
"""

import copy
import logging
from typing import Callable, Dict, Optional, Protocol, TypeVar

from .errors import RecordNotFound, VersionConflict
from .record import AuthServices, CredentialRecord


logger = logging.getLogger(__name__)

T = TypeVar('T')


class RecordStore(Protocol):
    def load(self, user_id: str) -> CredentialRecord:
        ...

    def save(self, record: CredentialRecord) -> None:
        ...


class InMemoryRecordStore:
    """
    Dict-backed store holding serialized snapshots.

    Loaded records never share state with the stored copy or with each
    other, so concurrent units of work behave like separate requests.
    """

    def __init__(self, services: Optional[AuthServices] = None):
        """
        Args:
            services: Attached to every record this store loads
        """
        self._services = services
        self._rows: Dict[str, dict] = {}

    def add(self, record: CredentialRecord) -> None:
        """
        Insert a new record at version 1.

        Raises:
            ValueError: If the id is already present
        """
        if record.user_id in self._rows:
            raise ValueError(f"Record {record.user_id} already exists")
        record.version = 1
        self._rows[record.user_id] = copy.deepcopy(record.to_dict(include_secrets=True))

    def load(self, user_id: str) -> CredentialRecord:
        """
        Raises:
            RecordNotFound: If no record has this id
        """
        row = self._rows.get(user_id)
        if row is None:
            raise RecordNotFound(f"No record for {user_id}")
        return CredentialRecord.from_dict(copy.deepcopy(row), services=self._services)

    def save(self, record: CredentialRecord) -> None:
        """
        Persist ``record`` if nobody else saved since it was loaded.

        Raises:
            RecordNotFound: If the record was never added (or was deleted)
            VersionConflict: If the stored version moved on
        """
        row = self._rows.get(record.user_id)
        if row is None:
            raise RecordNotFound(f"No record for {record.user_id}")

        stored_version = row['version']
        if stored_version != record.version:
            logger.warning("Version conflict saving record (stored %d, loaded %d)",
                           stored_version, record.version)
            raise VersionConflict(record.user_id, record.version, stored_version)

        record.version = stored_version + 1
        self._rows[record.user_id] = copy.deepcopy(record.to_dict(include_secrets=True))

    def delete(self, user_id: str) -> bool:
        return self._rows.pop(user_id, None) is not None

    def find_by_email(self, email: str) -> Optional[CredentialRecord]:
        email = email.strip().lower()
        for user_id, row in self._rows.items():
            if row['email'] == email:
                return self.load(user_id)
        return None

    def __len__(self) -> int:
        return len(self._rows)

    def __contains__(self, user_id: str) -> bool:
        return user_id in self._rows


def mutate(store: RecordStore, user_id: str,
           operation: Callable[[CredentialRecord], T]) -> T:
    """
    Run one unit of work: load, apply ``operation``, save.

    The operation's return value (e.g. a freshly issued token) is passed
    back only after the save succeeded. VersionConflict propagates; this
    function does not retry.

    Example:
        >>> token = mutate(store, user_id, lambda r: r.issue_password_reset_token())
    """
    record = store.load(user_id)
    result = operation(record)
    store.save(record)
    return result
