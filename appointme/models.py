"""Domain models for the AppointMe user roster."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional

from .errors import ValidationError


class UserType(str, Enum):
    """The role a roster entry plays in the scheduling application."""

    CLIENT = "client"
    PROVIDER = "provider"
    ADMIN = "admin"


class UserStatus(str, Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"


# Serialized (camelCase) name for each patchable attribute, in validation order.
PATCH_FIELDS: Dict[str, str] = {
    "first_name": "firstName",
    "last_name": "lastName",
    "email": "email",
    "phone": "phone",
    "user_type": "userType",
    "status": "status",
}


def serialize_datetime(value: datetime) -> str:
    return value.isoformat()


def parse_datetime(value: str) -> datetime:
    # Browsers write UTC timestamps with a "Z" suffix.
    if value.endswith(("Z", "z")):
        value = value[:-1] + "+00:00"
    return datetime.fromisoformat(value)


@dataclass(frozen=True)
class UserRecord:
    """A single managed user as held by the store."""

    id: int
    first_name: str
    last_name: str
    email: str
    phone: str
    user_type: UserType
    created_at: datetime
    last_active: datetime
    status: UserStatus = UserStatus.ACTIVE
    last_modified: Optional[datetime] = None

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"

    def to_dict(self) -> Dict[str, Any]:
        """Return the plain structure used for persistence and export."""

        data: Dict[str, Any] = {
            "id": self.id,
            "firstName": self.first_name,
            "lastName": self.last_name,
            "email": self.email,
            "phone": self.phone,
            "userType": self.user_type.value,
            "status": self.status.value,
            "createdAt": serialize_datetime(self.created_at),
            "lastActive": serialize_datetime(self.last_active),
        }
        if self.last_modified is not None:
            data["lastModified"] = serialize_datetime(self.last_modified)
        return data

    @staticmethod
    def from_dict(data: Mapping[str, Any]) -> "UserRecord":
        """Rebuild a record from :meth:`to_dict` output.

        Raises ``KeyError``/``ValueError``/``TypeError`` on malformed input;
        callers translate those into storage errors.
        """

        last_modified = data.get("lastModified")
        return UserRecord(
            id=int(data["id"]),
            first_name=str(data["firstName"]),
            last_name=str(data["lastName"]),
            email=str(data["email"]),
            phone=str(data["phone"]),
            user_type=UserType(data["userType"]),
            status=UserStatus(data.get("status") or UserStatus.ACTIVE.value),
            created_at=parse_datetime(str(data["createdAt"])),
            last_active=parse_datetime(str(data.get("lastActive") or data["createdAt"])),
            last_modified=parse_datetime(str(last_modified)) if last_modified else None,
        )


def _normalise_patch_value(name: str, value: Any) -> Optional[str]:
    if value is None:
        return None
    if isinstance(value, Enum):
        return str(value.value)
    if isinstance(value, (str, int, float)):
        return str(value)
    raise ValidationError([f"{name} must be a text value"])


@dataclass
class UserPatch:
    """Partial set of user fields supplied to create or update operations.

    ``None`` means the field was omitted. Values are kept as raw strings so
    the validator can report on exactly what the caller sent.
    """

    first_name: Optional[str] = None
    last_name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    user_type: Optional[str] = None
    status: Optional[str] = None

    @staticmethod
    def from_dict(data: Mapping[str, Any]) -> "UserPatch":
        """Build a patch from camelCase or snake_case keys; unknown keys are ignored."""

        values: Dict[str, Optional[str]] = {}
        for attribute, serialized in PATCH_FIELDS.items():
            if serialized in data:
                raw = data[serialized]
            elif attribute in data:
                raw = data[attribute]
            else:
                continue
            values[attribute] = _normalise_patch_value(serialized, raw)
        return UserPatch(**values)

    def get(self, serialized_name: str) -> Optional[str]:
        for attribute, serialized in PATCH_FIELDS.items():
            if serialized == serialized_name:
                return getattr(self, attribute)
        raise KeyError(serialized_name)

    def provided(self) -> Dict[str, str]:
        """Return only the fields that were supplied."""

        return {
            attribute: getattr(self, attribute)
            for attribute in PATCH_FIELDS
            if getattr(self, attribute) is not None
        }

    def to_dict(self) -> Dict[str, str]:
        return {PATCH_FIELDS[attribute]: value for attribute, value in self.provided().items()}

    def build(self, *, user_id: int, now: datetime) -> UserRecord:
        """Create a new record from a validated patch."""

        return UserRecord(
            id=user_id,
            first_name=self.first_name or "",
            last_name=self.last_name or "",
            email=self.email or "",
            phone=self.phone or "",
            user_type=UserType(self.user_type),
            status=UserStatus(self.status) if self.status else UserStatus.ACTIVE,
            created_at=now,
            last_active=now,
        )

    def apply(self, record: UserRecord, *, modified_at: datetime) -> UserRecord:
        """Merge the supplied fields over ``record``; omitted fields keep their value.

        A blank status counts as omitted, matching the default applied by
        :meth:`build`.
        """

        changes: Dict[str, Any] = dict(self.provided())
        if not (changes.get("status") or "").strip():
            changes.pop("status", None)
        if "user_type" in changes:
            changes["user_type"] = UserType(changes["user_type"])
        if "status" in changes:
            changes["status"] = UserStatus(changes["status"])
        return replace(record, last_modified=modified_at, **changes)


@dataclass(frozen=True)
class UserStats:
    total: int
    active: int
    inactive: int
    new_today: int
    by_type: Dict[str, int] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "total": self.total,
            "active": self.active,
            "inactive": self.inactive,
            "newToday": self.new_today,
            "byType": dict(self.by_type),
        }


@dataclass(frozen=True)
class UserExport:
    users: List[UserRecord]
    export_date: datetime
    stats: UserStats

    def to_dict(self) -> Dict[str, Any]:
        return {
            "users": [user.to_dict() for user in self.users],
            "exportDate": serialize_datetime(self.export_date),
            "stats": self.stats.to_dict(),
        }


@dataclass(frozen=True)
class ImportFailure:
    input: Any
    error: str


@dataclass
class ImportResult:
    success: List[UserRecord] = field(default_factory=list)
    failed: List[ImportFailure] = field(default_factory=list)


__all__ = [
    "ImportFailure",
    "ImportResult",
    "PATCH_FIELDS",
    "UserExport",
    "UserPatch",
    "UserRecord",
    "UserStats",
    "UserStatus",
    "UserType",
    "parse_datetime",
    "serialize_datetime",
]
