"""Core package for the AppointMe user roster."""

from __future__ import annotations

from .application import Application, create_application
from .errors import DuplicateEmailError, NotFoundError, StorageError, UserServiceError, ValidationError
from .events import EventBus, ServiceEvent, Subscription
from .models import UserPatch, UserRecord, UserStats, UserStatus, UserType
from .service import ServiceResult, UserService
from .storage import MemoryStorage, SQLiteStorage

__all__ = [
    "Application",
    "DuplicateEmailError",
    "EventBus",
    "MemoryStorage",
    "NotFoundError",
    "SQLiteStorage",
    "ServiceEvent",
    "ServiceResult",
    "StorageError",
    "Subscription",
    "UserPatch",
    "UserRecord",
    "UserService",
    "UserServiceError",
    "UserStats",
    "UserStatus",
    "UserType",
    "ValidationError",
    "create_application",
]
