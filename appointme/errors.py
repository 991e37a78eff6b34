"""Exception hierarchy for roster operations."""

from __future__ import annotations

from typing import Sequence


class UserServiceError(RuntimeError):
    """Base class for failures the user service recovers from locally."""


class ValidationError(UserServiceError):
    """Raised when a candidate record is missing fields or carries bad values."""

    def __init__(self, errors: Sequence[str]) -> None:
        super().__init__(", ".join(errors))
        self.errors = list(errors)


class DuplicateEmailError(UserServiceError):
    """Raised when another live record already owns the email address."""

    def __init__(self, email: str) -> None:
        super().__init__("A user with this email already exists")
        self.email = email


class NotFoundError(UserServiceError):
    """Raised when a mutation targets an id that is not in the store."""

    def __init__(self, user_id: object) -> None:
        super().__init__("User not found")
        self.user_id = user_id


class StorageError(UserServiceError):
    """Raised when the persistence adapter cannot read or write the roster."""


__all__ = [
    "DuplicateEmailError",
    "NotFoundError",
    "StorageError",
    "UserServiceError",
    "ValidationError",
]
