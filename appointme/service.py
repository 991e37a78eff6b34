"""User roster service: validation, uniqueness, change events and persistence."""
from __future__ import annotations

import asyncio
import logging
from collections import Counter
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Union

import anyio

from .errors import DuplicateEmailError, NotFoundError, UserServiceError, ValidationError
from .events import EventBus, Listener, ServiceEvent, Subscription
from .models import (
    ImportFailure,
    ImportResult,
    UserExport,
    UserPatch,
    UserRecord,
    UserStats,
    UserStatus,
    UserType,
)
from .storage import DEFAULT_STORAGE_KEY, MemoryStorage, StorageAdapter, decode_users, encode_users
from .store import UserStore
from .validation import validate_user

logger = logging.getLogger("appointme.service")

DEFAULT_AUTOSAVE_INTERVAL = 30.0

SAMPLE_USERS: tuple[Dict[str, str], ...] = (
    {
        "firstName": "John",
        "lastName": "Doe",
        "email": "john.doe@example.com",
        "phone": "+1 (555) 123-4567",
        "userType": "client",
        "status": "active",
    },
    {
        "firstName": "Dr. Sarah",
        "lastName": "Smith",
        "email": "sarah.smith@clinic.com",
        "phone": "+1 (555) 987-6543",
        "userType": "provider",
        "status": "active",
    },
    {
        "firstName": "Admin",
        "lastName": "User",
        "email": "admin@appointme.com",
        "phone": "+1 (555) 000-0000",
        "userType": "admin",
        "status": "active",
    },
)

UserInput = Union[UserPatch, Mapping[str, Any]]


@dataclass(frozen=True)
class ServiceResult:
    """Outcome of a mutating service call; failures carry the error message."""

    success: bool
    data: Any = None
    error: Optional[str] = None


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _coerce_id(value: object) -> Optional[int]:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        try:
            return int(value.strip())
        except ValueError:
            return None
    return None


def _as_patch(data: object) -> UserPatch:
    if isinstance(data, UserPatch):
        return data
    if isinstance(data, Mapping):
        return UserPatch.from_dict(data)
    raise ValidationError(["User data must be a mapping of fields"])


class UserService:
    """Owns the roster and is the only way to change it.

    Mutations are coroutines that never raise: recoverable failures are
    logged, broadcast as ``error`` events and returned as failed
    :class:`ServiceResult` values. Queries are plain methods that return
    snapshots, so callers cannot alter the store behind the service's back.
    """

    def __init__(
        self,
        storage: Optional[StorageAdapter] = None,
        *,
        storage_key: str = DEFAULT_STORAGE_KEY,
        clock: Optional[Callable[[], datetime]] = None,
        bus: Optional[EventBus] = None,
    ) -> None:
        self._storage: StorageAdapter = storage if storage is not None else MemoryStorage()
        self._storage_key = storage_key
        self._clock = clock or _utcnow
        self._bus = bus or EventBus()
        self._store = UserStore()
        self._dirty = False
        self._autosave_task: Optional[asyncio.Task[None]] = None
        self._pending_save: Optional[asyncio.Task[ServiceResult]] = None

    @property
    def storage_key(self) -> str:
        return self._storage_key

    @property
    def has_unsaved_changes(self) -> bool:
        return self._dirty

    @property
    def autosave_enabled(self) -> bool:
        return self._autosave_task is not None and not self._autosave_task.done()

    # ------------------------------------------------------------------
    # Observers
    # ------------------------------------------------------------------
    def subscribe(self, listener: Listener, *events: ServiceEvent | str) -> Subscription:
        return self._bus.subscribe(listener, *events)

    def unsubscribe(self, listener: Listener) -> bool:
        return self._bus.unsubscribe(listener)

    def _notify(self, event: ServiceEvent, payload: Any = None) -> None:
        self._bus.publish(event, payload)

    def _changed(self) -> None:
        self._dirty = True
        self._notify(ServiceEvent.USERS_CHANGED, self._store.snapshot())

    def _fail(self, operation: str, exc: Exception) -> ServiceResult:
        message = str(exc)
        logger.warning("User %s failed: %s", operation, message)
        self._notify(ServiceEvent.ERROR, {"message": message, "type": operation})
        return ServiceResult(success=False, error=message)

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------
    async def create_user(self, data: UserInput) -> ServiceResult:
        """Validate ``data`` and append a new record with the next id."""

        try:
            patch = _as_patch(data)
            validation = validate_user(patch)
            if not validation.is_valid:
                raise ValidationError(validation.errors)
            if self._store.find_by_email(patch.email or "") is not None:
                raise DuplicateEmailError(patch.email or "")

            record = patch.build(user_id=self._store.allocate_id(), now=self._clock())
            self._store.add(record)
        except UserServiceError as exc:
            return self._fail("create", exc)

        logger.info("Created user %s <%s> as %s", record.id, record.email, record.user_type.value)
        self._notify(ServiceEvent.USER_CREATED, record)
        self._changed()
        return ServiceResult(success=True, data=record)

    async def update_user(self, user_id: object, data: UserInput) -> ServiceResult:
        """Merge ``data`` over an existing record.

        The incoming patch is validated on its own, not the merged record,
        so every required field has to be resent with each update.
        """

        try:
            existing = self._require(user_id)
            patch = _as_patch(data)
            validation = validate_user(patch)
            if not validation.is_valid:
                raise ValidationError(validation.errors)
            self._store.ensure_email_available(patch.email or "", exclude_id=existing.id)

            updated = patch.apply(existing, modified_at=self._clock())
            self._store.replace(updated)
        except UserServiceError as exc:
            return self._fail("update", exc)

        logger.info("Updated user %s", updated.id)
        self._notify(ServiceEvent.USER_UPDATED, {"original": existing, "updated": updated})
        self._changed()
        return ServiceResult(success=True, data=updated)

    async def delete_user(self, user_id: object) -> ServiceResult:
        try:
            existing = self._require(user_id)
            removed = self._store.remove(existing.id)
        except UserServiceError as exc:
            return self._fail("delete", exc)

        logger.info("Deleted user %s <%s>", removed.id, removed.email)
        self._notify(ServiceEvent.USER_DELETED, removed)
        self._changed()
        return ServiceResult(success=True, data=removed)

    def _require(self, user_id: object) -> UserRecord:
        record = self.get_user_by_id(user_id)
        if record is None:
            raise NotFoundError(user_id)
        return record

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------
    def get_all_users(self) -> List[UserRecord]:
        return self._store.snapshot()

    def get_user_by_id(self, user_id: object) -> Optional[UserRecord]:
        coerced = _coerce_id(user_id)
        if coerced is None:
            return None
        return self._store.get(coerced)

    def get_user_by_email(self, email: str) -> Optional[UserRecord]:
        return self._store.find_by_email(email)

    def get_users_by_type(self, user_type: UserType | str) -> List[UserRecord]:
        value = user_type.value if isinstance(user_type, UserType) else str(user_type)
        return self._store.by_type(value)

    def search_users(self, query: Optional[str] = None) -> List[UserRecord]:
        return self._store.search(query)

    def get_stats(self) -> UserStats:
        records = self._store.snapshot()
        total = len(records)
        active = sum(1 for record in records if record.status is UserStatus.ACTIVE)

        today = self._clock().astimezone().date()
        new_today = sum(1 for record in records if record.created_at.astimezone().date() == today)

        by_type = Counter(record.user_type.value for record in records)
        return UserStats(
            total=total,
            active=active,
            inactive=total - active,
            new_today=new_today,
            by_type=dict(by_type),
        )

    # ------------------------------------------------------------------
    # Bulk operations
    # ------------------------------------------------------------------
    async def import_users(self, entries: Iterable[Any]) -> ImportResult:
        """Create each entry in turn; failures are collected, not rolled back."""

        result = ImportResult()
        for entry in entries:
            outcome = await self.create_user(entry)
            if outcome.success:
                result.success.append(outcome.data)
            else:
                result.failed.append(ImportFailure(input=entry, error=outcome.error or ""))

        logger.info("Imported %d user(s), %d failed", len(result.success), len(result.failed))
        self._notify(ServiceEvent.BULK_IMPORT, result)
        return result

    def export_users(self) -> UserExport:
        return UserExport(
            users=self._store.snapshot(),
            export_date=self._clock(),
            stats=self.get_stats(),
        )

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------
    async def load_users(self) -> ServiceResult:
        """Restore the roster from storage, seeding sample users when nothing is stored."""

        try:
            stored = await anyio.to_thread.run_sync(self._storage.load, self._storage_key)
            if stored is not None:
                self._store.reset(decode_users(stored))
                self._dirty = False
                logger.info("Loaded %d user(s) from storage", len(self._store))
            else:
                logger.info("No stored roster under %s; loading sample users", self._storage_key)
                await self.load_sample_data()
        except Exception as exc:
            return self._fail("load", exc)

        users = self._store.snapshot()
        self._notify(ServiceEvent.USERS_LOADED, users)
        return ServiceResult(success=True, data=users)

    async def save_users(self) -> ServiceResult:
        # Encode on the loop thread so the stored value is a consistent snapshot.
        users = self._store.snapshot()
        try:
            payload = encode_users(users)
            await anyio.to_thread.run_sync(self._storage.save, self._storage_key, payload)
        except Exception as exc:
            return self._fail("save", exc)

        if self._store.snapshot() == users:
            self._dirty = False
        logger.debug("Saved %d user(s) under %s", len(users), self._storage_key)
        self._notify(ServiceEvent.USERS_SAVED, users)
        return ServiceResult(success=True)

    async def load_sample_data(self) -> None:
        for entry in SAMPLE_USERS:
            await self.create_user(entry)

    # ------------------------------------------------------------------
    # Auto-save
    # ------------------------------------------------------------------
    def enable_autosave(self, interval: float = DEFAULT_AUTOSAVE_INTERVAL) -> None:
        """Save every ``interval`` seconds; must be called from a running event loop.

        Enabling again replaces the existing timer.
        """

        if interval <= 0:
            raise ValueError("Auto-save interval must be positive")
        self.disable_autosave()
        loop = asyncio.get_running_loop()
        self._autosave_task = loop.create_task(self._autosave_loop(interval))
        logger.debug("Auto-save enabled every %.1f seconds", interval)

    def disable_autosave(self) -> None:
        """Stop future auto-saves; a save already running is left to finish."""

        task = self._autosave_task
        if task is None:
            return
        self._autosave_task = None
        task.cancel()
        logger.debug("Auto-save disabled")

    async def _autosave_loop(self, interval: float) -> None:
        while True:
            await asyncio.sleep(interval)
            if self._pending_save is not None and not self._pending_save.done():
                logger.debug("Skipping auto-save while the previous save is still running")
                continue
            self._pending_save = asyncio.create_task(self.save_users())

    async def wait_for_pending_save(self) -> Optional[ServiceResult]:
        task = self._pending_save
        if task is None:
            return None
        return await task


__all__ = ["DEFAULT_AUTOSAVE_INTERVAL", "SAMPLE_USERS", "ServiceResult", "UserService"]
