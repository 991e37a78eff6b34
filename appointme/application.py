"""Bootstrap that wires storage, the user service and auto-save together."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from .config import AppConfig
from .service import ServiceResult, UserService
from .storage import MemoryStorage, SQLiteStorage, StorageAdapter

logger = logging.getLogger("appointme.application")


def create_storage(config: AppConfig) -> StorageAdapter:
    if config.storage.backend == "memory":
        return MemoryStorage()
    storage = SQLiteStorage(config.storage.path)
    storage.initialize()
    return storage


@dataclass
class Application:
    """Owns the service instance handed to front ends."""

    config: AppConfig
    storage: StorageAdapter
    service: UserService
    started: bool = False

    async def start(self) -> ServiceResult:
        result = await self.service.load_users()
        if self.config.autosave.enabled:
            self.service.enable_autosave(self.config.autosave.interval_seconds)
        self.started = True
        logger.info("Roster ready with %d user(s)", len(self.service.get_all_users()))
        return result

    async def shutdown(self) -> Optional[ServiceResult]:
        self.service.disable_autosave()
        await self.service.wait_for_pending_save()
        self.started = False
        if self.service.has_unsaved_changes:
            return await self.service.save_users()
        return None


def create_application(config: Optional[AppConfig] = None) -> Application:
    """Create the storage adapter and service described by ``config``."""

    config = config or AppConfig()
    storage = create_storage(config)
    service = UserService(storage, storage_key=config.storage.key)
    return Application(config=config, storage=storage, service=service)


__all__ = ["Application", "create_application", "create_storage"]
