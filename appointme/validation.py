"""Field validation for user records."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any, List, Mapping, Union

from .errors import ValidationError
from .models import UserPatch, UserStatus, UserType

_EMAIL_PATTERN = re.compile(r"[^\s@]+@[^\s@]+\.[^\s@]+")
_REQUIRED_FIELDS = ("firstName", "lastName", "email", "phone", "userType")
_VALID_TYPES = frozenset(member.value for member in UserType)
_VALID_STATUSES = frozenset(member.value for member in UserStatus)


@dataclass(frozen=True)
class ValidationResult:
    is_valid: bool
    errors: List[str] = field(default_factory=list)


def is_valid_email(email: str) -> bool:
    return _EMAIL_PATTERN.fullmatch(email) is not None


def validate_user(candidate: Union[UserPatch, Mapping[str, Any]]) -> ValidationResult:
    """Check a candidate record and collect every problem found.

    Checks never short-circuit: required fields are reported in a fixed
    order, followed by the email, user type and status checks. The email,
    type and status checks only run for non-empty values.
    """

    if isinstance(candidate, UserPatch):
        patch = candidate
    else:
        try:
            patch = UserPatch.from_dict(candidate)
        except ValidationError as exc:
            return ValidationResult(is_valid=False, errors=list(exc.errors))

    errors: List[str] = []

    for name in _REQUIRED_FIELDS:
        value = patch.get(name)
        if not value or not value.strip():
            errors.append(f"{name} is required")

    if patch.email and not is_valid_email(patch.email):
        errors.append("Invalid email format")

    if patch.user_type and patch.user_type not in _VALID_TYPES:
        errors.append("Invalid user type")

    if patch.status and patch.status not in _VALID_STATUSES:
        errors.append("Invalid status")

    return ValidationResult(is_valid=not errors, errors=errors)


__all__ = ["ValidationResult", "is_valid_email", "validate_user"]
