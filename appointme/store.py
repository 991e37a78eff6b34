"""In-memory ordered collection of user records."""

from __future__ import annotations

from typing import Iterable, List, Optional

from .errors import DuplicateEmailError, NotFoundError
from .models import UserRecord


class UserStore:
    """Owns the live records, the id counter and the email uniqueness rule.

    Records keep insertion order. Ids come from a per-process counter that
    only moves forward, so an id freed by a delete is never handed out again.
    """

    def __init__(self) -> None:
        self._records: List[UserRecord] = []
        self._next_id = 1

    def __len__(self) -> int:
        return len(self._records)

    @property
    def next_id(self) -> int:
        return self._next_id

    def allocate_id(self) -> int:
        user_id = self._next_id
        self._next_id += 1
        return user_id

    def _index_of(self, user_id: int) -> int:
        for index, record in enumerate(self._records):
            if record.id == user_id:
                return index
        return -1

    def get(self, user_id: int) -> Optional[UserRecord]:
        index = self._index_of(user_id)
        return self._records[index] if index >= 0 else None

    def find_by_email(self, email: str) -> Optional[UserRecord]:
        # Exact match; search is the only case-insensitive path.
        for record in self._records:
            if record.email == email:
                return record
        return None

    def add(self, record: UserRecord) -> UserRecord:
        if self.find_by_email(record.email) is not None:
            raise DuplicateEmailError(record.email)
        self._records.append(record)
        return record

    def ensure_email_available(self, email: str, *, exclude_id: Optional[int] = None) -> None:
        owner = self.find_by_email(email)
        if owner is not None and owner.id != exclude_id:
            raise DuplicateEmailError(email)

    def replace(self, record: UserRecord) -> UserRecord:
        index = self._index_of(record.id)
        if index < 0:
            raise NotFoundError(record.id)
        self.ensure_email_available(record.email, exclude_id=record.id)
        self._records[index] = record
        return record

    def remove(self, user_id: int) -> UserRecord:
        index = self._index_of(user_id)
        if index < 0:
            raise NotFoundError(user_id)
        return self._records.pop(index)

    def by_type(self, user_type: str) -> List[UserRecord]:
        return [record for record in self._records if record.user_type.value == user_type]

    def search(self, query: Optional[str]) -> List[UserRecord]:
        """Case-insensitive substring match on names, email and user type."""

        if query is None or not query.strip():
            return self.snapshot()

        term = query.strip().lower()
        return [
            record
            for record in self._records
            if term in record.first_name.lower()
            or term in record.last_name.lower()
            or term in record.email.lower()
            or term in record.user_type.value
        ]

    def snapshot(self) -> List[UserRecord]:
        return list(self._records)

    def reset(self, records: Iterable[UserRecord]) -> None:
        """Replace the contents wholesale, e.g. after loading persisted state."""

        self._records = list(records)
        highest = max((record.id for record in self._records), default=0)
        self._next_id = max(self._next_id, highest + 1)


__all__ = ["UserStore"]
